"""Parsed representation of feature files, after scenario outlines has been resolved."""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:  # pragma: no cover
    from collections.abc import Mapping


class ScenarioKind(Enum):
    SCENARIO = 'scenario'
    OUTLINE = 'scenario_outline'


@dataclass(frozen=True)
class Step:
    keyword: str
    text: str
    table: tuple[tuple[str, ...], ...] | None = None
    doc_string: str | None = None

    def __str__(self) -> str:
        return f'{self.keyword} {self.text}'


@dataclass(frozen=True)
class ResolvedScenario:
    name: str
    tags: tuple[str, ...] = field(default_factory=tuple)
    kind: ScenarioKind = ScenarioKind.SCENARIO
    examples_name: str | None = None
    parameters: Mapping[str, str] = field(default_factory=dict, hash=False)
    steps: tuple[Step, ...] = field(default_factory=tuple)

    def __post_init__(self) -> None:
        # read-only view of a copy, in column order
        object.__setattr__(self, 'parameters', MappingProxyType(dict(self.parameters)))

    def parameter(self, name: str, default: str | None = None) -> str | None:
        """Value of an examples column, or `default` if the scenario does not have it."""
        return self.parameters.get(name, default)

    def to_dict(self) -> dict[str, Any]:
        return {
            'name': self.name,
            'tags': list(self.tags),
            'kind': self.kind.value,
            'examples_name': self.examples_name,
            'parameters': dict(self.parameters),
            'steps': [asdict(step) for step in self.steps],
        }


@dataclass(frozen=True)
class Feature:
    name: str
    description: str = ''
    tags: tuple[str, ...] = field(default_factory=tuple)
    filename: str | None = None
    background: tuple[Step, ...] | None = None
    scenarios: tuple[ResolvedScenario, ...] = field(default_factory=tuple)

    def to_dict(self) -> dict[str, Any]:
        return {
            'name': self.name,
            'description': self.description,
            'tags': list(self.tags),
            'filename': self.filename,
            'background': [asdict(step) for step in self.background] if self.background is not None else None,
            'scenarios': [scenario.to_dict() for scenario in self.scenarios],
        }
