"""Tests for k6_bdd.utils."""

from __future__ import annotations

import logging
import signal
import sys
from typing import TYPE_CHECKING

import pytest

from k6_bdd.utils import SignalHandler, merge_dicts, run_command, setup_logging, slugify
from tests.helpers import rm_rf

if TYPE_CHECKING:  # pragma: no cover
    from _pytest.tmpdir import TempPathFactory


@pytest.mark.parametrize(
    ('value', 'separator', 'expected'),
    [
        ('Search products [Load Test — Row 1]', '-', 'search-products-load-test-row-1'),
        ('Search products [Load Test — Row 1]', '_', 'search_products_load_test_row_1'),
        ('  --Already--Slugged--  ', '-', 'already-slugged'),
        ('Búsqueda rápida', '-', 'b-squeda-r-pida'),
        ('!!!', '-', ''),
    ],
)
def test_slugify(value: str, separator: str, expected: str) -> None:
    assert slugify(value, separator) == expected


def test_merge_dicts() -> None:
    merged = {'environment': {'BASE_URL': 'http://localhost', 'USERNAME': 'foo'}, 'k6': {'timeout': 600}}
    source = {'environment': {'USERNAME': 'bar'}, 'k6': None, 'report_dir': 'out'}

    assert merge_dicts(merged, source) == {
        'environment': {'BASE_URL': 'http://localhost', 'USERNAME': 'bar'},
        'k6': {'timeout': 600},
        'report_dir': 'out',
    }

    # arguments are not modified
    assert merged == {'environment': {'BASE_URL': 'http://localhost', 'USERNAME': 'foo'}, 'k6': {'timeout': 600}}
    assert source == {'environment': {'USERNAME': 'bar'}, 'k6': None, 'report_dir': 'out'}


def test_signal_handler() -> None:
    def handler(*_args: object) -> None:
        pass

    original = signal.getsignal(signal.SIGTERM)

    with SignalHandler(handler, signal.SIGTERM):
        assert signal.getsignal(signal.SIGTERM) is handler

    assert signal.getsignal(signal.SIGTERM) is original


def test_run_command() -> None:
    result = run_command([sys.executable, '-c', 'print("hello"); print("world")'], silent=True)

    assert result.return_code == 0
    assert result.output == ['hello', 'world']
    assert not result.timed_out
    assert result.abort_timestamp is None

    result = run_command([sys.executable, '-c', 'import sys; sys.stderr.write("error\\n"); sys.exit(3)'], silent=True)

    assert result.return_code == 3
    assert result.output == ['error']


@pytest.mark.timeout(60)
def test_run_command_fast_exit() -> None:
    # output still buffered in the pipe when the process has already exited
    for _ in range(20):
        result = run_command(['sh', '-c', 'printf "a\\nb\\nc\\nd\\ne\\n"; exit 3'], silent=True)

        assert result.return_code == 3
        assert result.output == ['a', 'b', 'c', 'd', 'e']


def test_run_command_logs_output(caplog: pytest.LogCaptureFixture) -> None:
    with caplog.at_level(logging.INFO, logger='k6-bdd'):
        run_command([sys.executable, '-c', 'print("running")'], verbose=True)

    assert caplog.messages[0].startswith('run_command: ')
    assert caplog.messages[1] == 'running'


@pytest.mark.timeout(20)
def test_run_command_timeout() -> None:
    result = run_command([sys.executable, '-c', 'import time; time.sleep(30)'], timeout=0.5, silent=True)

    assert result.timed_out
    assert result.abort_timestamp is not None
    assert result.return_code != 0


def test_run_command_not_found() -> None:
    with pytest.raises(FileNotFoundError):
        run_command(['/this/binary/does/not/exist'])


def test_setup_logging(tmp_path_factory: TempPathFactory) -> None:
    test_context = tmp_path_factory.mktemp('test_context')
    log_file = test_context / 'k6-bdd.log'

    try:
        setup_logging()

        logger = logging.getLogger('k6-bdd')
        assert logger.level == logging.INFO
        assert not logger.propagate
        assert [handler.__class__ for handler in logger.handlers] == [logging.StreamHandler]

        setup_logging(log_file.as_posix(), verbose=True)
        logger = logging.getLogger('k6-bdd')
        assert logger.level == logging.DEBUG
        assert [handler.__class__ for handler in logger.handlers] == [logging.StreamHandler, logging.FileHandler]

        logging.getLogger('k6-bdd.runner').debug('hello from runner')

        for handler in logger.handlers:
            handler.flush()

        assert 'k6-bdd.runner: hello from runner' in log_file.read_text()
    finally:
        for handler in logging.getLogger('k6-bdd').handlers + logging.getLogger().handlers:
            if isinstance(handler, logging.FileHandler):
                handler.close()
        logging.getLogger().handlers = [handler for handler in logging.getLogger().handlers if not isinstance(handler, logging.FileHandler)]
        rm_rf(test_context)
