"""Functionality for `k6-bdd <target>`: parse features, generate a script per scenario and execute them with k6."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from pathlib import Path
from time import perf_counter
from typing import TYPE_CHECKING

from k6_bdd.configuration import Configuration
from k6_bdd.exceptions import ExecutionFailure, GenerationIOError, NotFoundError, ParseError
from k6_bdd.generator import GeneratedScript, ScriptGenerator
from k6_bdd.parser import load_features
from k6_bdd.utils import run_command

if TYPE_CHECKING:  # pragma: no cover
    from collections.abc import Mapping

    from k6_bdd.model import Feature, ResolvedScenario
    from k6_bdd.steps import StepRegistry

logger = logging.getLogger('k6-bdd.runner')

# number of output lines from a failed execution that is repeated in the summary
FAILURE_OUTPUT_LINES = 20


@dataclass(frozen=True)
class ExecutionResult:
    scenario_name: str
    script: Path
    duration: float
    failure: ExecutionFailure | None = None

    @property
    def passed(self) -> bool:
        return self.failure is None


def collect_scenarios(features: list[Feature]) -> list[tuple[Feature, ResolvedScenario]]:
    scenarios: list[tuple[Feature, ResolvedScenario]] = []

    for feature in features:
        logger.info('feature: %s (%d scenarios)', feature.name, len(feature.scenarios))
        for scenario in feature.scenarios:
            logger.info('  - %s', scenario.name)
            scenarios.append((feature, scenario))

    return scenarios


def build_environment(configuration: Configuration, overrides: Mapping[str, str] | None = None) -> dict[str, str]:
    """Configuration environment updated with the overrides, an override wins over the configured value."""
    return {**configuration.environment, **(overrides or {})}


def execute_script(script: Path, environment: Mapping[str, str], *, binary: str, timeout: float | None = None, verbose: bool = False) -> None:
    command = [binary, 'run']
    for key, value in environment.items():
        command.extend(['-e', f'{key}={value}'])
    command.append(script.as_posix())

    try:
        result = run_command(command, timeout=timeout, verbose=verbose)
    except OSError as e:
        raise ExecutionFailure(script, None, str(e)) from e

    output = '\n'.join(result.output)

    if result.timed_out:
        raise ExecutionFailure(script, result.return_code, output, timed_out=True)

    if result.return_code != 0:
        raise ExecutionFailure(script, result.return_code, output)


def execute_scripts(
    scripts: list[GeneratedScript],
    environment: Mapping[str, str],
    *,
    configuration: Configuration,
    verbose: bool = False,
) -> list[ExecutionResult]:
    results: list[ExecutionResult] = []

    Path(configuration.report_dir).mkdir(parents=True, exist_ok=True)

    for index, script in enumerate(scripts, start=1):
        logger.info('')
        logger.info('[%d/%d] executing %s', index, len(scripts), script.path.as_posix())

        start = perf_counter()
        failure: ExecutionFailure | None = None

        try:
            execute_script(script.path, environment, binary=configuration.k6_binary, timeout=configuration.timeout, verbose=verbose)
        except ExecutionFailure as e:
            logger.error('%s: %s', script.scenario_name, e)  # noqa: TRY400
            failure = e

        results.append(ExecutionResult(scenario_name=script.scenario_name, script=script.path, duration=perf_counter() - start, failure=failure))

    return results


def summarize(results: list[ExecutionResult]) -> int:
    passed = [result for result in results if result.passed]
    failed = [result for result in results if not result.passed]

    logger.info('')
    logger.info('summary:')
    for result in results:
        logger.info('  %s  %s (%.1fs)', 'PASS' if result.passed else 'FAIL', result.scenario_name, result.duration)

    logger.info('')
    logger.info('%d passed, %d failed, %d total', len(passed), len(failed), len(results))

    for result in failed:
        if result.failure is None:  # pragma: no cover
            continue

        logger.error('')
        logger.error('%s: %s', result.scenario_name, result.failure)
        for line in result.failure.output.splitlines()[-FAILURE_OUTPUT_LINES:]:
            logger.error('  %s', line)

    return 0 if len(failed) == 0 else 1


def run(
    target: Path,
    *,
    parse_only: bool = False,
    generate_only: bool = False,
    env_overrides: Mapping[str, str] | None = None,
    output_dir: Path | None = None,
    configuration: Configuration | None = None,
    registry: StepRegistry | None = None,
    verbose: bool = False,
) -> int:
    if configuration is None:
        configuration = Configuration()

    if output_dir is None:
        output_dir = configuration.output_dir

    try:
        features = load_features(target)
    except (ParseError, NotFoundError) as e:
        logger.error(str(e))  # noqa: TRY400
        return 1

    scenarios = collect_scenarios(features)

    if parse_only:
        print(json.dumps([feature.to_dict() for feature in features], indent=2, ensure_ascii=False))  # noqa: T201
        return 0

    generator = ScriptGenerator(
        registry=registry,
        output_dir=output_dir,
        library_dir=configuration.library_dir,
        report_dir=configuration.report_dir,
    )

    scripts: list[GeneratedScript] = []
    try:
        for feature, scenario in scenarios:
            scripts.append(generator.generate(feature, scenario))
    except GenerationIOError as e:
        logger.error(str(e))  # noqa: TRY400
        return 1

    if len(scripts) == 0:
        logger.error('no scripts generated from %s', target.as_posix())
        return 1

    unrecognized = sum(len(script.unrecognized_steps) for script in scripts)
    logger.info('generated %d scripts in %s', len(scripts), output_dir.as_posix())
    if unrecognized > 0:
        logger.warning('%d steps did not match any step definition, see comments in the generated scripts', unrecognized)

    if generate_only:
        return 0

    environment = build_environment(configuration, env_overrides)
    results = execute_scripts(scripts, environment, configuration=configuration, verbose=verbose)

    return summarize(results)
