"""Registry of step definitions, each translating one step text into a fragment of a k6 script.

Patterns are [parse](https://github.com/r1chardj0n3s/parse) format strings, the same kind of expressions
behave uses for step implementations. They are case-insensitive and must match the whole step text.
Unnamed fields are captured positionally. `{:Number}` matches an unsigned integer and converts it to `int`,
`{:Text}` matches text without double quotes and is meant to be used between them, `"{:Text}"`.

The registry is ordered and the first definition that matches wins, so narrower patterns must be
declared before broader ones.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from functools import lru_cache
from textwrap import dedent
from typing import TYPE_CHECKING, Any, NamedTuple

import parse
from jinja2 import Environment, StrictUndefined

if TYPE_CHECKING:  # pragma: no cover
    from collections.abc import Callable, Iterable, Iterator

    from jinja2 import Template


def js_string(value: Any) -> str:
    """Escape a value so it can be put inside a single quoted javascript string."""
    return str(value).replace('\\', '\\\\').replace("'", "\\'")


def jinja2_environment_factory() -> Environment:
    environment = Environment(autoescape=False, undefined=StrictUndefined, keep_trailing_newline=False)
    environment.filters['js'] = js_string

    return environment


_environment = jinja2_environment_factory()


@parse.with_pattern(r'\d+')
def parse_number(text: str) -> int:
    return int(text)


@parse.with_pattern(r'[^"]+')
def parse_text(text: str) -> str:
    return text


STEP_TYPES: dict[str, Callable[[str], Any]] = {
    'Number': parse_number,
    'Text': parse_text,
}


class MetricKind(Enum):
    TREND = 'Trend'
    RATE = 'Rate'
    COUNTER = 'Counter'
    GAUGE = 'Gauge'


@dataclass(frozen=True)
class Metric:
    name: str
    kind: MetricKind
    k6_name: str
    is_time: bool = False


@dataclass(frozen=True)
class Threshold:
    metric: str
    rule: str


@dataclass(frozen=True)
class StepDefinition:
    pattern: str
    code: str
    imports: tuple[str, ...] = ()
    metrics: tuple[Metric, ...] = ()
    setup: str | None = None
    threshold: Callable[[tuple[Any, ...]], Threshold] | None = None

    _parser: parse.Parser = field(init=False, repr=False, compare=False)
    _code_template: Template = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        # frozen dataclass, compiled pattern and template are cached on the instance
        object.__setattr__(self, '_parser', parse.compile(self.pattern, extra_types=STEP_TYPES, case_sensitive=False))
        object.__setattr__(self, '_code_template', _environment.from_string(self.code))

    def match(self, text: str) -> tuple[Any, ...] | None:
        result = self._parser.parse(text)

        if not isinstance(result, parse.Result):
            return None

        return tuple(result.fixed)

    def render_code(self, groups: tuple[Any, ...]) -> str:
        return dedent(self._code_template.render(groups=groups)).strip('\n')

    def render_setup(self) -> str | None:
        if self.setup is None:
            return None

        return dedent(_environment.from_string(self.setup).render()).strip('\n')

    def render_threshold(self, groups: tuple[Any, ...]) -> Threshold | None:
        if self.threshold is None:
            return None

        return self.threshold(groups)


class StepMatch(NamedTuple):
    definition: StepDefinition
    groups: tuple[Any, ...]


@dataclass(frozen=True)
class StepDefinitionInfo:
    pattern: str
    has_setup: bool
    has_threshold: bool
    imports: tuple[str, ...]


class StepRegistry:
    _definitions: tuple[StepDefinition, ...]

    def __init__(self, definitions: Iterable[StepDefinition]) -> None:
        self._definitions = tuple(definitions)

    def __len__(self) -> int:
        return len(self._definitions)

    def __iter__(self) -> Iterator[StepDefinition]:
        return iter(self._definitions)

    def match(self, text: str) -> StepMatch | None:
        for definition in self._definitions:
            groups = definition.match(text)
            if groups is not None:
                return StepMatch(definition, groups)

        return None

    def list_definitions(self) -> list[StepDefinitionInfo]:
        return [
            StepDefinitionInfo(
                pattern=definition.pattern,
                has_setup=definition.setup is not None,
                has_threshold=definition.threshold is not None,
                imports=definition.imports,
            )
            for definition in self._definitions
        ]


def create_registry() -> StepRegistry:
    from k6_bdd.steps.actions import ACTIONS
    from k6_bdd.steps.assertions import ASSERTIONS
    from k6_bdd.steps.preconditions import PRECONDITIONS

    return StepRegistry([*PRECONDITIONS, *ACTIONS, *ASSERTIONS])


@lru_cache(maxsize=1)
def default_registry() -> StepRegistry:
    return create_registry()


__all__ = [
    'Metric',
    'MetricKind',
    'StepDefinition',
    'StepDefinitionInfo',
    'StepMatch',
    'StepRegistry',
    'Threshold',
    'create_registry',
    'default_registry',
    'js_string',
]
