"""Custom k6-bdd exceptions."""

from __future__ import annotations

from typing import TYPE_CHECKING, Literal

if TYPE_CHECKING:  # pragma: no cover
    from pathlib import Path


class K6BddError(Exception):
    pass


class ParseError(K6BddError):
    def __init__(self, filename: str | None, error: Exception | str) -> None:
        self.filename = filename
        self.error = error

        super().__init__(str(self))

    def __str__(self) -> str:
        return f'failed to parse feature file {self.filename or "<string>"}: {self.error!s}'


class NotFoundError(K6BddError):
    def __init__(self, path: Path, kind: Literal['file', 'directory', 'target'], message: str | None = None) -> None:
        self.path = path
        self.kind = kind
        self.message = message

        super().__init__(str(self))

    def __str__(self) -> str:
        if self.message is not None:
            return f'{self.message}: {self.path.as_posix()}'

        return f'{self.kind} not found: {self.path.as_posix()}'


class UnrecognizedStepError(K6BddError):
    """Not raised, collected per generated script so the author can see which steps lacks a definition."""

    def __init__(self, keyword: str, text: str) -> None:
        self.keyword = keyword
        self.text = text

        super().__init__(str(self))

    def __str__(self) -> str:
        return f'[{self.keyword}] {self.text}: unrecognized step, no definition matches'


class GenerationIOError(K6BddError):
    def __init__(self, path: Path, error: OSError) -> None:
        self.path = path
        self.error = error

        super().__init__(str(self))

    def __str__(self) -> str:
        return f'unable to write {self.path.as_posix()}: {self.error!s}'


class ExecutionFailure(K6BddError):  # noqa: N818
    def __init__(self, script: Path, return_code: int | None, output: str = '', *, timed_out: bool = False) -> None:
        self.script = script
        self.return_code = return_code
        self.output = output
        self.timed_out = timed_out

        super().__init__(str(self))

    def __str__(self) -> str:
        if self.timed_out:
            return f'{self.script.name} timed out'

        if self.return_code is None:
            return f'{self.script.name} could not be started'

        return f'{self.script.name} exited with code {self.return_code}'
