"""k6-bdd utils."""

from __future__ import annotations

import logging
import logging.config
import re
import signal as psignal
import subprocess
from collections.abc import Callable, Mapping
from contextlib import suppress
from copy import deepcopy
from dataclasses import dataclass, field
from datetime import datetime, timezone
from os import environ
from threading import Timer
from typing import TYPE_CHECKING, Any, Union

if TYPE_CHECKING:  # pragma: no cover
    from pathlib import Path
    from types import FrameType, TracebackType

logger = logging.getLogger('k6-bdd')


class SignalHandler:
    handler: Callable[[int, FrameType | None], None]
    signals: dict[int, Union[Callable[[int, FrameType | None], Any], int, None]]

    def __init__(self, handler: Callable[[int, FrameType | None], None], signal: int, *signals: int) -> None:
        self.handler = handler
        self.signals = {signal: None}

        for sig in signals:
            self.signals.update({sig: None})

    def __enter__(self) -> None:
        for signal in self.signals:
            self.signals.update({signal: psignal.getsignal(signal)})
            psignal.signal(signal, self.handler)

    def __exit__(self, exc_type: type[BaseException] | None, exc: BaseException | None, tb: TracebackType | None) -> bool:
        for signal, handler in self.signals.items():
            psignal.signal(signal, handler)

        return exc is None


@dataclass
class RunCommandResult:
    return_code: int
    abort_timestamp: datetime | None = field(init=False, default=None)
    timed_out: bool = field(init=False, default=False)
    output: list[str] = field(init=False, default_factory=list)


def run_command(
    command: list[str],
    env: dict[str, str] | None = None,
    *,
    cwd: Path | None = None,
    timeout: float | None = None,
    silent: bool = False,
    verbose: bool = False,
) -> RunCommandResult:
    """Run `command`, streaming its combined stdout and stderr to the `k6-bdd` logger.

    The process is terminated when it has been running for more than `timeout` seconds, or when
    SIGINT/SIGTERM is received. Output is always collected in the result, `silent` only stops it from
    being logged.
    """
    if env is None:
        env = environ.copy()

    if verbose:
        logger.info('run_command: %s', ' '.join(command))

    process = subprocess.Popen(
        command,
        env=env,
        cwd=cwd,
        stderr=subprocess.STDOUT,
        stdout=subprocess.PIPE,
    )

    result = RunCommandResult(return_code=-1)

    def abort() -> None:
        if result.abort_timestamp is None:
            result.abort_timestamp = datetime.now(timezone.utc)
            process.terminate()

    def timeout_handler() -> None:
        result.timed_out = True
        abort()

    def sig_handler(*_args: Any, **_kwargs: Any) -> None:  # pragma: no cover
        abort()

    timer: Timer | None = None
    if timeout is not None and timeout > 0:
        timer = Timer(timeout, timeout_handler)
        timer.daemon = True
        timer.start()

    with SignalHandler(sig_handler, psignal.SIGINT, psignal.SIGTERM):
        try:
            stdout = process.stdout
            assert stdout is not None

            # until end of file, not until the process has exited
            for output in iter(stdout.readline, b''):
                line = output.decode(errors='replace').rstrip()
                result.output.append(line)

                if not silent:
                    logger.info(line)

            process.wait()
        except KeyboardInterrupt:  # pragma: no cover
            with suppress(Exception):
                process.kill()

            process.wait()
        finally:
            if timer is not None:
                timer.cancel()

    result.return_code = process.returncode

    return result


def setup_logging(logfile: str | None = None, *, verbose: bool = False) -> None:
    level = 'DEBUG' if verbose else 'INFO'

    logging_config: dict = {
        'version': 1,
        'disable_existing_loggers': False,
        'formatters': {
            'plain': {
                'format': '%(message)s',
            },
            'detailed': {
                'format': '%(asctime)s %(levelname)-8s %(name)s: %(message)s',
            },
        },
        'handlers': {
            'console': {
                'class': 'logging.StreamHandler',
                'formatter': 'plain',
            },
        },
        'loggers': {
            'k6-bdd': {
                'handlers': ['console'],
                'level': level,
                'propagate': False,
            },
        },
        'root': {
            'handlers': ['console'],
            'level': 'WARNING',
        },
    }

    if logfile is not None:
        logging_config['handlers']['file'] = {
            'class': 'logging.FileHandler',
            'filename': logfile,
            'formatter': 'detailed',
        }

        logging_config['loggers']['k6-bdd']['handlers'].append('file')
        logging_config['root']['handlers'].append('file')

    logging.config.dictConfig(logging_config)


def merge_dicts(merged: dict, source: dict) -> dict:
    """Merge two dicts recursively, where `source` values takes precedance over `merged` values."""
    merged = deepcopy(merged)
    source = deepcopy(source)

    for key in source:
        if key in merged and isinstance(merged[key], dict) and (isinstance(source[key], Mapping) or source[key] is None):
            merged[key] = merge_dicts(merged[key], source[key] or {})
        else:
            merged[key] = source[key]

    return merged


def slugify(value: str, separator: str = '-') -> str:
    """Lower case `value`, with every run of characters that is not `a-z` or `0-9` replaced by `separator`."""
    return re.sub(r'[^a-z0-9]+', separator, value.lower()).strip(separator)
