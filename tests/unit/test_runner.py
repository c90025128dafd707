"""Tests for k6_bdd.runner."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import TYPE_CHECKING

import pytest

from k6_bdd.configuration import Configuration
from k6_bdd.exceptions import ExecutionFailure
from k6_bdd.runner import ExecutionResult, build_environment, collect_scenarios, execute_script, run, summarize
from k6_bdd.utils import RunCommandResult
from tests.helpers import SEARCH_FEATURE, SMOKE_FEATURE, cwd, rm_rf, write_feature

if TYPE_CHECKING:  # pragma: no cover
    from _pytest.capture import CaptureFixture
    from _pytest.logging import LogCaptureFixture
    from _pytest.tmpdir import TempPathFactory
    from pytest_mock import MockerFixture

    from k6_bdd.steps import StepRegistry


def create_result(return_code: int, output: list[str] | None = None, *, timed_out: bool = False) -> RunCommandResult:
    result = RunCommandResult(return_code=return_code)
    result.output = output or []
    result.timed_out = timed_out

    return result


def create_configuration(root: Path) -> Configuration:
    return Configuration(
        environment={'BASE_URL': 'https://perfappdemo.vercel.app', 'USERNAME': 'ghauyon', 'PASSWORD': 'user4Test'},
        k6_binary='k6',
        timeout=120,
        output_dir=root / 'tests' / 'generated',
        library_dir=root / 'lib',
        report_dir=(root / 'reports').as_posix(),
    )


def test_build_environment() -> None:
    configuration = Configuration(environment={'BASE_URL': 'http://default', 'USERNAME': 'foo'})

    assert build_environment(configuration) == {'BASE_URL': 'http://default', 'USERNAME': 'foo'}
    assert build_environment(configuration, {'BASE_URL': 'http://override', 'EXTRA': '1'}) == {
        'BASE_URL': 'http://override',
        'USERNAME': 'foo',
        'EXTRA': '1',
    }
    assert configuration.environment == {'BASE_URL': 'http://default', 'USERNAME': 'foo'}


def test_collect_scenarios(caplog: LogCaptureFixture) -> None:
    from k6_bdd.parser import parse_feature

    search = parse_feature(SEARCH_FEATURE)
    smoke = parse_feature(SMOKE_FEATURE)

    with caplog.at_level(logging.INFO, logger='k6-bdd.runner'):
        scenarios = collect_scenarios([search, smoke])

    assert [(feature.name, scenario.name) for feature, scenario in scenarios] == [
        ('Product search', 'Search products [Load Test — Row 1]'),
        ('Smoke test', 'Browse products'),
    ]
    assert caplog.messages == [
        'feature: Product search (1 scenarios)',
        '  - Search products [Load Test — Row 1]',
        'feature: Smoke test (1 scenarios)',
        '  - Browse products',
    ]


def test_execute_script(mocker: MockerFixture) -> None:
    run_command_mock = mocker.patch('k6_bdd.runner.run_command', return_value=create_result(0, ['done']))
    script = Path('tests/generated/smoke.js')

    execute_script(script, {'BASE_URL': 'http://localhost', 'USERNAME': 'foo'}, binary='k6', timeout=60)

    run_command_mock.assert_called_once_with(
        ['k6', 'run', '-e', 'BASE_URL=http://localhost', '-e', 'USERNAME=foo', 'tests/generated/smoke.js'],
        timeout=60,
        verbose=False,
    )

    run_command_mock.return_value = create_result(99, ['thresholds crossed'])

    with pytest.raises(ExecutionFailure, match='smoke.js exited with code 99') as ef:
        execute_script(script, {}, binary='k6')

    assert ef.value.return_code == 99
    assert ef.value.output == 'thresholds crossed'
    assert not ef.value.timed_out

    run_command_mock.return_value = create_result(-15, ['running'], timed_out=True)

    with pytest.raises(ExecutionFailure, match='smoke.js timed out') as ef:
        execute_script(script, {}, binary='k6', timeout=1)

    assert ef.value.timed_out

    run_command_mock.side_effect = FileNotFoundError(2, 'No such file or directory', 'k6')

    with pytest.raises(ExecutionFailure, match='smoke.js could not be started') as ef:
        execute_script(script, {}, binary='k6')

    assert ef.value.return_code is None
    assert 'No such file or directory' in ef.value.output


def test_summarize(caplog: LogCaptureFixture) -> None:
    script = Path('checkout.js')
    failure = ExecutionFailure(script, 99, '\n'.join(f'line {number}' for number in range(1, 31)))

    with caplog.at_level(logging.INFO, logger='k6-bdd.runner'):
        assert summarize([ExecutionResult('smoke', Path('smoke.js'), 1.25)]) == 0

    assert '  PASS  smoke (1.2s)' in caplog.messages
    assert '1 passed, 0 failed, 1 total' in caplog.messages

    caplog.clear()

    with caplog.at_level(logging.INFO, logger='k6-bdd.runner'):
        assert summarize([ExecutionResult('smoke', Path('smoke.js'), 1.0), ExecutionResult('checkout', script, 2.0, failure)]) == 1

    assert '  FAIL  checkout (2.0s)' in caplog.messages
    assert '1 passed, 1 failed, 2 total' in caplog.messages
    assert 'checkout: checkout.js exited with code 99' in caplog.messages
    assert '  line 10' not in caplog.messages
    assert '  line 11' in caplog.messages
    assert '  line 30' in caplog.messages


def test_run_parse_only(tmp_path_factory: TempPathFactory, capsys: CaptureFixture, registry: StepRegistry) -> None:
    test_context = tmp_path_factory.mktemp('test_context')
    features = test_context / 'features'
    features.mkdir()

    try:
        write_feature(features, 'search.feature', SEARCH_FEATURE)
        write_feature(features, 'smoke.feature', SMOKE_FEATURE)
        configuration = create_configuration(test_context)

        assert run(features, parse_only=True, configuration=configuration, registry=registry) == 0

        assert not configuration.output_dir.exists()
        assert sorted(path.name for path in test_context.iterdir()) == ['features']

        output = json.loads(capsys.readouterr().out)
        assert [feature['name'] for feature in output] == ['Product search', 'Smoke test']
        assert output[0]['scenarios'][0]['name'] == 'Search products [Load Test — Row 1]'
        assert output[1]['background'] == [{'keyword': 'Given', 'text': 'el sistema está disponible', 'table': None, 'doc_string': None}]
    finally:
        rm_rf(test_context)


def test_run_generate_only(tmp_path_factory: TempPathFactory, mocker: MockerFixture, registry: StepRegistry) -> None:
    test_context = tmp_path_factory.mktemp('test_context')
    run_command_mock = mocker.patch('k6_bdd.runner.run_command')

    try:
        feature_file = write_feature(test_context, 'search.feature', SEARCH_FEATURE)
        configuration = create_configuration(test_context)

        assert run(feature_file, generate_only=True, configuration=configuration, registry=registry) == 0

        assert [path.name for path in configuration.output_dir.iterdir()] == ['search-products-load-test-row-1.js']
        run_command_mock.assert_not_called()

        output_dir = test_context / 'other'
        assert run(feature_file, generate_only=True, configuration=configuration, output_dir=output_dir, registry=registry) == 0
        assert [path.name for path in output_dir.iterdir()] == ['search-products-load-test-row-1.js']
        assert "from '../lib/config.js';" in (output_dir / 'search-products-load-test-row-1.js').read_text(encoding='utf-8')
    finally:
        rm_rf(test_context)


def test_run_execute(tmp_path_factory: TempPathFactory, mocker: MockerFixture, registry: StepRegistry) -> None:
    test_context = tmp_path_factory.mktemp('test_context')

    try:
        features = test_context / 'features'
        features.mkdir()
        write_feature(features, 'search.feature', SEARCH_FEATURE)
        write_feature(features, 'smoke.feature', SMOKE_FEATURE)
        configuration = create_configuration(test_context)

        run_command_mock = mocker.patch(
            'k6_bdd.runner.run_command',
            side_effect=[create_result(99, ['thresholds on metrics have been crossed']), create_result(0)],
        )

        with cwd(test_context):
            rc = run(features, env_overrides={'BASE_URL': 'http://localhost:3000'}, configuration=configuration, registry=registry)

        # first scenario failed, but the second was still executed
        assert rc == 1
        assert run_command_mock.call_count == 2
        assert (test_context / 'reports').is_dir()

        first_call, second_call = run_command_mock.call_args_list
        command = first_call.args[0]
        assert command[:2] == ['k6', 'run']
        assert command[2:8] == ['-e', 'BASE_URL=http://localhost:3000', '-e', 'USERNAME=ghauyon', '-e', 'PASSWORD=user4Test']
        assert command[-1] == (configuration.output_dir / 'search-products-load-test-row-1.js').as_posix()
        assert first_call.kwargs == {'timeout': 120, 'verbose': False}
        assert second_call.args[0][-1] == (configuration.output_dir / 'browse-products.js').as_posix()

        run_command_mock.reset_mock()
        run_command_mock.side_effect = [create_result(0), create_result(0)]

        assert run(features, configuration=configuration, registry=registry) == 0
        assert run_command_mock.call_args_list[0].args[0][2:4] == ['-e', 'BASE_URL=https://perfappdemo.vercel.app']
    finally:
        rm_rf(test_context)


def test_run_fatal_errors(tmp_path_factory: TempPathFactory, mocker: MockerFixture, caplog: LogCaptureFixture, registry: StepRegistry) -> None:
    test_context = tmp_path_factory.mktemp('test_context')
    run_command_mock = mocker.patch('k6_bdd.runner.run_command')

    try:
        configuration = create_configuration(test_context)

        with caplog.at_level(logging.ERROR, logger='k6-bdd.runner'):
            assert run(test_context / 'missing', configuration=configuration, registry=registry) == 1
        assert caplog.messages[-1].startswith('feature file or directory not found: ')

        broken = write_feature(test_context, 'broken.feature', 'this is not gherkin')
        with caplog.at_level(logging.ERROR, logger='k6-bdd.runner'):
            assert run(broken, configuration=configuration, registry=registry) == 1
        assert caplog.messages[-1].startswith('failed to parse feature file ')

        empty = write_feature(test_context, 'empty.feature', 'Feature: nothing to see here\n')
        with caplog.at_level(logging.ERROR, logger='k6-bdd.runner'):
            assert run(empty, configuration=configuration, registry=registry) == 1
        assert caplog.messages[-1] == f'no scripts generated from {empty.as_posix()}'

        smoke = write_feature(test_context, 'smoke.feature', SMOKE_FEATURE)
        configuration.output_dir.parent.mkdir(parents=True)
        configuration.output_dir.write_text('not a directory')
        with caplog.at_level(logging.ERROR, logger='k6-bdd.runner'):
            assert run(smoke, configuration=configuration, registry=registry) == 1
        assert caplog.messages[-1].startswith('unable to write ')

        run_command_mock.assert_not_called()
    finally:
        rm_rf(test_context)
