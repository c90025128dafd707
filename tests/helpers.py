"""Test k6-bdd helpers."""

from __future__ import annotations

import os
import stat
from abc import ABCMeta
from contextlib import contextmanager
from pathlib import Path
from shutil import rmtree
from typing import TYPE_CHECKING, Any, Callable, Union

if TYPE_CHECKING:  # pragma: no cover
    from collections.abc import Generator


SEARCH_FEATURE = """Feature: Product search
    Scenario Outline: Search products
        Given el usuario está autenticado
        When el usuario busca "<term>"
        Then el percentil 95 de búsqueda debe ser menor a <p95>ms

        Examples: Load Test
            | term  | vus | duration | p95  |
            | Apple | 20  | 2m       | 1500 |
"""

SMOKE_FEATURE = """@smoke
Feature: Smoke test
    Basic availability of the system.

    Background:
        Given el sistema está disponible

    Scenario: Browse products
        Given el usuario está autenticado
        When el usuario navega productos en la página 1 con 10 resultados
        And el usuario realiza logout
        Then todos los endpoints deben responder correctamente
"""


def onerror(
    func: Callable,
    path: str,
    exc_info: Any,  # noqa: ARG001
) -> None:
    """Error handler for shutil.rmtree, if the error is due to an access error (read only file) it attempts to add write permission and then retries."""
    _path = Path(path)
    if not os.access(_path, os.W_OK):
        _path.chmod(stat.S_IWUSR)
        func(path)
    else:
        raise  # noqa: PLE0704


def rm_rf(path: Union[str, Path]) -> None:
    """Remove the path contents recursively, even if some elements are read-only."""
    p = path.as_posix() if isinstance(path, Path) else path

    if Path(p).is_file():
        Path(p).unlink()
    else:
        rmtree(p, onerror=onerror)


@contextmanager
def cwd(path: Path) -> Generator[None, None, None]:
    current_cwd = Path.cwd()
    os.chdir(path)

    try:
        yield
    finally:
        os.chdir(current_cwd)


def ANY(*cls: type, message: str | None = None) -> object:  # noqa: N802
    """Compare equal to everything, as long as it is of the same type."""

    class WrappedAny(metaclass=ABCMeta):  # noqa: B024
        def __eq__(self, other: object) -> bool:
            if len(cls) < 1:
                return True

            return isinstance(other, cls) and (message is None or (message is not None and message in str(other)))

        def __ne__(self, other: object) -> bool:
            return not self.__eq__(other)

        def __repr__(self) -> str:
            c = cls[0] if len(cls) == 1 else cls
            representation: list[str] = [f'<ANY({c})', '>']

            if message is not None:
                representation.insert(-1, f", message='{message}'")

            return ''.join(representation)

        def __hash__(self) -> int:
            return id(self)

    for c in cls:
        WrappedAny.register(c)

    return WrappedAny()


def write_feature(directory: Path, name: str, contents: str) -> Path:
    file = directory / name
    file.write_text(contents, encoding='utf-8')

    return file
