"""Step definitions for preconditions (`Given`), some of them contributes a `setup()` function to the script.

Setup code returns the context object that the default function receives as `data`.
"""

from __future__ import annotations

from k6_bdd.steps import StepDefinition

PRECONDITIONS: tuple[StepDefinition, ...] = (
    StepDefinition(
        pattern='el sistema está disponible',
        code="""
            // system is expected to respond
            console.log('system available, starting test');
        """,
    ),
    StepDefinition(
        pattern='el usuario está autenticado',
        code="""
            // authenticated in setup()
            const { token } = data;
            if (!token) { console.error('no token available'); return; }
        """,
        setup="""
            const token = login();
            if (!token) throw new Error('Authentication failed during setup.');
            return { token };
        """,
        imports=('login',),
    ),
    StepDefinition(
        pattern='el usuario tiene productos disponibles',
        code="""
            // verify that there are products
            const productCheck = getProducts(data.token, { page: 1, pageSize: 5 });
            if (!productCheck || !productCheck.data || productCheck.data.total === 0) {
                console.warn('no products available');
            }
        """,
        imports=('getProducts',),
    ),
    StepDefinition(
        pattern='existe un pool de SKUs con stock',
        code="""
            // SKU pool is loaded in setup()
            const { token, skuPool } = data;
            if (!skuPool || skuPool.length === 0) {
                console.warn('no SKUs with stock available');
                return;
            }
        """,
        setup="""
            const token = login();
            if (!token) throw new Error('Authentication failed.');
            const skuPool = [];
            for (let page = 1; page <= 3; page++) {
                const result = getProducts(token, { page, pageSize: 50 });
                if (result && result.data && result.data.items) {
                    result.data.items.forEach((p) => {
                        if (p.stock > 0) {
                            skuPool.push({ sku: p.sku, stock: p.stock, name: p.name });
                        }
                    });
                }
            }
            console.log(`setup: ${skuPool.length} SKUs with stock available`);
            return { token, skuPool };
        """,
        imports=('login', 'getProducts'),
    ),
)
