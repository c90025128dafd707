"""Step definitions for actions (`When`), the requests that generates load."""

from __future__ import annotations

from k6_bdd.steps import Metric, MetricKind, StepDefinition

ACTIONS: tuple[StepDefinition, ...] = (
    StepDefinition(
        pattern='{:Number} usuarios realizan login durante "{:Text}"',
        code="""
            // login and logout, VUs: {{ groups[0] }}, duration: {{ groups[1] }}
            const loginStart = Date.now();
            const loginUrl = `${BASE_URL}/api/auth`;
            const loginPayload = JSON.stringify({
                username: USERNAME,
                password: PASSWORD,
            });
            const loginRes = http.post(loginUrl, loginPayload, {
                headers: { 'Content-Type': 'application/json' },
                tags: { name: 'AUTH_Login' },
            });
            loginDuration.add(Date.now() - loginStart);

            const loginOk = check(loginRes, {
                'login: status 200': (r) => r.status === 200,
                'login: has token': (r) => {
                    try { return JSON.parse(r.body).data.token !== undefined; }
                    catch (e) { return false; }
                },
            });
            if (!loginOk) {
                authFailures.add(1);
                return;
            }
            authFailures.add(0);
            const token = JSON.parse(loginRes.body).data.token;
            sleep(1);

            const logoutStart = Date.now();
            http.del(loginUrl, null, {
                headers: { 'Authorization': `Bearer ${token}`, 'Content-Type': 'application/json' },
                tags: { name: 'AUTH_Logout' },
            });
            logoutDuration.add(Date.now() - logoutStart);
            sleep(2);
        """,
        imports=('USERNAME', 'PASSWORD'),
        metrics=(
            Metric('loginDuration', MetricKind.TREND, 'login_duration', is_time=True),
            Metric('logoutDuration', MetricKind.TREND, 'logout_duration', is_time=True),
            Metric('authFailures', MetricKind.RATE, 'auth_failure_rate'),
        ),
    ),
    StepDefinition(
        pattern='el usuario navega productos en la página {:Number} con {:Number} resultados',
        code="""
            // browse products, page: {{ groups[0] }}, pageSize: {{ groups[1] }}
            const browseStart = Date.now();
            const browseResult = getProducts(data.token, { page: {{ groups[0] }}, pageSize: {{ groups[1] }} });
            productListDuration.add(Date.now() - browseStart);
            if (browseResult && browseResult.data) {
                console.log(`products: ${browseResult.data.total} total`);
            }
            sleep(randomThinkTime(1, 2));
        """,
        imports=('getProducts', 'randomThinkTime'),
        metrics=(Metric('productListDuration', MetricKind.TREND, 'product_list_duration', is_time=True),),
    ),
    StepDefinition(
        pattern='el usuario busca "{:Text}"',
        code="""
            // search products: "{{ groups[0] }}"
            const searchStart = Date.now();
            const searchResult = getProducts(data.token, { search: '{{ groups[0] | js }}', page: 1, pageSize: 10 });
            productSearchDuration.add(Date.now() - searchStart);
            if (searchResult && searchResult.data) {
                console.log(`search '{{ groups[0] | js }}': ${searchResult.data.total} results`);
            }
            sleep(randomThinkTime(0.5, 1));
        """,
        imports=('getProducts', 'randomThinkTime'),
        metrics=(Metric('productSearchDuration', MetricKind.TREND, 'product_search_duration', is_time=True),),
    ),
    StepDefinition(
        pattern='el usuario filtra por categoría "{:Text}"',
        code="""
            // filter by category: "{{ groups[0] }}"
            const filterStart = Date.now();
            const filterResult = getProducts(data.token, { category: '{{ groups[0] | js }}', page: 1, pageSize: 10 });
            categoryFilterDuration.add(Date.now() - filterStart);
            if (filterResult && filterResult.data) {
                console.log(`category '{{ groups[0] | js }}': ${filterResult.data.total} results`);
            }
            sleep(randomThinkTime(0.5, 1));
        """,
        imports=('getProducts', 'randomThinkTime'),
        metrics=(Metric('categoryFilterDuration', MetricKind.TREND, 'category_filter_duration', is_time=True),),
    ),
    StepDefinition(
        pattern='el usuario lista los usuarios del sistema',
        code="""
            // list users
            const usersStart = Date.now();
            const usersResult = getUsers(data.token, { page: 1, pageSize: 10 });
            userListDuration.add(Date.now() - usersStart);
            if (usersResult && usersResult.data) {
                console.log(`users: ${usersResult.data.total} total`);
            }
            sleep(1);
        """,
        imports=('getUsers',),
        metrics=(Metric('userListDuration', MetricKind.TREND, 'user_list_duration', is_time=True),),
    ),
    StepDefinition(
        pattern='el usuario realiza checkout con {:Number} productos',
        code="""
            // checkout with {{ groups[0] }} product(s)
            const { token, skuPool } = data;
            const e2eStart = Date.now();

            const browseStart = Date.now();
            const productsData = getProducts(token, { page: randomInt(1, 5), pageSize: 10 });
            productSearchForCheckout.add(Date.now() - browseStart);
            sleep(randomThinkTime(1, 2));

            let selectedSku;
            if (productsData && productsData.data && productsData.data.items) {
                const available = productsData.data.items.filter(p => p.stock > 0);
                if (available.length > 0) selectedSku = randomItem(available).sku;
            }
            if (!selectedSku && skuPool && skuPool.length > 0) {
                selectedSku = randomItem(skuPool).sku;
            }
            if (!selectedSku) {
                console.warn('no SKU available for checkout');
                checkoutSuccessRate.add(0);
                return;
            }
            sleep(randomThinkTime(0.5, 1));

            const quantity = {{ groups[0] }};
            const checkoutStart = Date.now();
            const orderRes = createOrder(token, [{ sku: selectedSku, quantity }],
                `bdd-test-${Date.now()}@loadtest.com`);
            checkoutDuration.add(Date.now() - checkoutStart);

            if (orderRes.status === 200) {
                checkoutSuccessRate.add(1);
                totalOrdersCreated.add(1);
                sleep(randomThinkTime(0.5, 1));
                const verifyStart = Date.now();
                getOrders(token, { page: 1, pageSize: 5 });
                orderVerifyDuration.add(Date.now() - verifyStart);
            } else if (orderRes.status === 409) {
                stockConflicts.add(1);
                checkoutSuccessRate.add(0);
            } else {
                checkoutSuccessRate.add(0);
            }
            e2eCheckoutDuration.add(Date.now() - e2eStart);
            sleep(randomThinkTime(1, 3));
        """,
        imports=('getProducts', 'createOrder', 'getOrders', 'randomItem', 'randomInt', 'randomThinkTime'),
        metrics=(
            Metric('checkoutDuration', MetricKind.TREND, 'checkout_duration', is_time=True),
            Metric('productSearchForCheckout', MetricKind.TREND, 'product_search_for_checkout', is_time=True),
            Metric('orderVerifyDuration', MetricKind.TREND, 'order_verify_duration', is_time=True),
            Metric('checkoutSuccessRate', MetricKind.RATE, 'checkout_success_rate'),
            Metric('stockConflicts', MetricKind.COUNTER, 'stock_conflicts_409'),
            Metric('totalOrdersCreated', MetricKind.COUNTER, 'total_orders_created'),
            Metric('e2eCheckoutDuration', MetricKind.TREND, 'e2e_checkout_duration', is_time=True),
        ),
    ),
    StepDefinition(
        pattern='el usuario lista las órdenes',
        code="""
            // list orders
            const ordersStart = Date.now();
            const ordersResult = getOrders(data.token, { page: 1, pageSize: 10 });
            orderListDuration.add(Date.now() - ordersStart);
            if (ordersResult && ordersResult.data) {
                console.log(`orders: ${ordersResult.data.total} total`);
            }
            sleep(1);
        """,
        imports=('getOrders',),
        metrics=(Metric('orderListDuration', MetricKind.TREND, 'order_list_duration', is_time=True),),
    ),
    StepDefinition(
        pattern='el usuario realiza logout',
        code="""
            logout(data.token);
            sleep(1);
        """,
        imports=('logout',),
    ),
)
