"""Configuration of pytest."""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import TYPE_CHECKING

import pytest

from k6_bdd.generator import ScriptGenerator
from k6_bdd.steps import StepRegistry, create_registry

if TYPE_CHECKING:  # pragma: no cover
    from collections.abc import Callable, Generator

    from _pytest.tmpdir import TempPathFactory

GENERATED_AT = datetime(2024, 5, 1, 12, 30, 15, 123000, tzinfo=timezone.utc)


@pytest.fixture(autouse=True)
def run_before_and_after_tests(tmp_path_factory: TempPathFactory) -> Generator[None, None, None]:
    original_tmp_path = tmp_path_factory._basetemp
    root_logger = logging.getLogger()
    original_root_handlers = root_logger.handlers[:]
    original_root_level = root_logger.level
    test_root = (Path(__file__).parent / '..' / '.pytest_tmp').resolve()
    tmp_path_factory._basetemp = test_root
    tmp_path_factory._basetemp.mkdir(exist_ok=True)

    try:
        yield
    finally:
        tmp_path_factory._basetemp = original_tmp_path

        # setup_logging stops propagation, caplog only sees records that reaches the root logger
        logger = logging.getLogger('k6-bdd')
        logger.propagate = True
        logger.handlers.clear()
        logger.setLevel(logging.NOTSET)
        root_logger.handlers = original_root_handlers
        root_logger.setLevel(original_root_level)


@pytest.fixture
def registry() -> StepRegistry:
    return create_registry()


@pytest.fixture
def clock() -> Callable[[], datetime]:
    return lambda: GENERATED_AT


@pytest.fixture
def generator_factory(registry: StepRegistry, clock: Callable[[], datetime]) -> Callable[[Path], ScriptGenerator]:
    def factory(output_dir: Path) -> ScriptGenerator:
        return ScriptGenerator(
            registry=registry,
            output_dir=output_dir,
            library_dir=output_dir.parent / 'lib',
            report_dir='reports',
            clock=clock,
        )

    return factory
