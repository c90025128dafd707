"""Step definitions for assertions (`Then`).

Assertions are not checked in the default function, they become thresholds in the script options and
are enforced by k6. The generated code is only a comment, so the group for the step is still visible.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from k6_bdd.steps import StepDefinition, Threshold

if TYPE_CHECKING:  # pragma: no cover
    from collections.abc import Callable

    ThresholdFactory = Callable[[tuple[Any, ...]], Threshold]


def percentile(metric: str, value: int = 95) -> ThresholdFactory:
    def threshold(groups: tuple[Any, ...]) -> Threshold:
        return Threshold(metric, f'p({value})<{groups[0]}')

    return threshold


def rate(metric: str, operator: str) -> ThresholdFactory:
    def threshold(groups: tuple[Any, ...]) -> Threshold:
        return Threshold(metric, f'rate{operator}{int(groups[0]) / 100:g}')

    return threshold


ASSERTIONS: tuple[StepDefinition, ...] = (
    StepDefinition(
        pattern='el percentil 95 del login debe ser menor a {:Number}ms',
        code='// threshold: login p95 < {{ groups[0] }}ms (enforced by k6 thresholds)',
        threshold=percentile('login_duration'),
    ),
    StepDefinition(
        pattern='la tasa de fallas debe ser menor a {:Number}%',
        code='// threshold: failure rate < {{ groups[0] }}% (enforced by k6 thresholds)',
        threshold=rate('http_req_failed', '<'),
    ),
    StepDefinition(
        pattern='el percentil 95 de productos debe ser menor a {:Number}ms',
        code='// threshold: products p95 < {{ groups[0] }}ms',
        threshold=percentile('product_list_duration'),
    ),
    StepDefinition(
        pattern='el percentil 95 del checkout debe ser menor a {:Number}ms',
        code='// threshold: checkout p95 < {{ groups[0] }}ms',
        threshold=percentile('checkout_duration'),
    ),
    StepDefinition(
        pattern='la tasa de éxito del checkout debe ser mayor a {:Number}%',
        code='// threshold: checkout success rate > {{ groups[0] }}%',
        threshold=rate('checkout_success_rate', '>'),
    ),
    StepDefinition(
        pattern='el percentil 95 de búsqueda debe ser menor a {:Number}ms',
        code='// threshold: search p95 < {{ groups[0] }}ms',
        threshold=percentile('product_search_duration'),
    ),
    StepDefinition(
        pattern='todos los endpoints deben responder correctamente',
        code='// all endpoints responded correctly (enforced by checks)',
        threshold=lambda _: Threshold('http_req_failed', 'rate<0.10'),
    ),
    StepDefinition(
        pattern='el tiempo de respuesta general debe ser menor a {:Number}ms',
        code='// threshold: overall response time p95 < {{ groups[0] }}ms',
        threshold=percentile('http_req_duration'),
    ),
)
