"""Parse feature files and resolve scenario outlines into concrete scenarios.

The grammar is behave's gherkin parser, which means that a feature file can
select its keyword language with a `# language: <code>` comment on the first line.

Each row, in each `Examples` table, of a scenario outline becomes one `ResolvedScenario`,
where every `<column>` placeholder in the step texts has been replaced with the value of
that row. Placeholders that does not have a corresponding column are left as is. A scenario outline
without any `Examples` table is resolved as a plain scenario.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import TYPE_CHECKING

from behave.model import ScenarioOutline
from behave.parser import ParserError
from behave.parser import parse_feature as behave_parse_feature

from k6_bdd import FEATURE_SUFFIX
from k6_bdd.exceptions import NotFoundError, ParseError
from k6_bdd.model import Feature, ResolvedScenario, ScenarioKind, Step

if TYPE_CHECKING:  # pragma: no cover
    from collections.abc import Iterable, Mapping

    from behave.model import Examples, Scenario, Table
    from behave.model import Step as BehaveStep

logger = logging.getLogger('k6-bdd.parser')

DEFAULT_EXAMPLES_NAME = 'Default'


def _unique(values: Iterable[str]) -> tuple[str, ...]:
    return tuple(dict.fromkeys(str(value) for value in values))


def _convert_table(table: Table | None) -> tuple[tuple[str, ...], ...] | None:
    if table is None:
        return None

    return (tuple(table.headings), *(tuple(row.cells) for row in table.rows))


def _convert_step(step: BehaveStep, parameters: Mapping[str, str] | None = None) -> Step:
    text = step.name

    for name, value in (parameters or {}).items():
        text = text.replace(f'<{name}>', value)

    return Step(
        keyword=step.keyword.strip(),
        text=text,
        table=_convert_table(step.table),
        doc_string=step.text,
    )


def resolve_outline(scenario: ScenarioOutline) -> list[ResolvedScenario]:
    resolved: list[ResolvedScenario] = []

    examples: Examples
    for examples in scenario.examples:
        table = examples.table
        if table is None or len(table.rows) < 1:
            continue

        headings = list(table.headings)
        examples_name = examples.name or DEFAULT_EXAMPLES_NAME

        for index, row in enumerate(table.rows, start=1):
            cells = list(row.cells)
            parameters = {heading: (cells[column] if column < len(cells) else '') for column, heading in enumerate(headings)}

            resolved.append(
                ResolvedScenario(
                    name=f'{scenario.name} [{examples_name} — Row {index}]',
                    tags=_unique([*scenario.tags, *examples.tags]),
                    kind=ScenarioKind.OUTLINE,
                    examples_name=examples_name,
                    parameters=parameters,
                    steps=tuple(_convert_step(step, parameters) for step in scenario.steps),
                ),
            )

    return resolved


def resolve_scenario(scenario: Scenario) -> list[ResolvedScenario]:
    if isinstance(scenario, ScenarioOutline) and len(scenario.examples) > 0:
        return resolve_outline(scenario)

    return [
        ResolvedScenario(
            name=scenario.name,
            tags=_unique(scenario.tags),
            kind=ScenarioKind.SCENARIO,
            steps=tuple(_convert_step(step) for step in scenario.steps),
        ),
    ]


def parse_feature(contents: str, filename: str | None = None) -> Feature:
    try:
        feature = behave_parse_feature(contents, filename=filename)
    except (ParserError, AssertionError, ValueError) as e:
        # malformed tables are rejected by behave's table model, not by the parser itself
        raise ParseError(filename, e) from e

    if feature is None:
        raise ParseError(filename, 'no Feature found')

    scenarios: list[ResolvedScenario] = []
    for scenario in feature.scenarios:
        scenarios.extend(resolve_scenario(scenario))

    background: tuple[Step, ...] | None = None
    if feature.background is not None:
        background = tuple(_convert_step(step) for step in feature.background.steps)

    return Feature(
        name=feature.name,
        description='\n'.join(feature.description).strip(),
        tags=_unique(feature.tags),
        filename=filename,
        background=background,
        scenarios=tuple(scenarios),
    )


def parse_feature_file(file: Path | str) -> Feature:
    path = Path(file).resolve()

    if not path.is_file():
        raise NotFoundError(path, 'file', 'feature file not found')

    return parse_feature(path.read_text(encoding='utf-8'), filename=path.as_posix())


def parse_all_features(directory: Path | str) -> list[Feature]:
    path = Path(directory).resolve()

    if not path.is_dir():
        raise NotFoundError(path, 'directory', 'features directory not found')

    files = sorted(file for file in path.iterdir() if file.suffix == FEATURE_SUFFIX and file.is_file())

    if len(files) < 1:
        raise NotFoundError(path, 'directory', f'no {FEATURE_SUFFIX} files found')

    features: list[Feature] = []
    for file in files:
        logger.info('parsing %s', file.name)
        features.append(parse_feature_file(file))

    return features


def load_features(target: Path | str) -> list[Feature]:
    path = Path(target).resolve()

    if path.is_dir():
        return parse_all_features(path)

    if not path.exists():
        raise NotFoundError(path, 'target', 'feature file or directory not found')

    return [parse_feature_file(path)]
