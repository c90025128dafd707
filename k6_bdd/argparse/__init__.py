"""k6-bdd wrapper around argparse."""

from __future__ import annotations

import re
import sys
from argparse import ArgumentParser as CoreArgumentParser
from typing import TYPE_CHECKING, Any, NoReturn, cast

if TYPE_CHECKING:  # pragma: no cover
    from typing import IO

    from _typeshed import SupportsWrite


class ArgumentParser(CoreArgumentParser):
    def __init__(self, *args: Any, **kwargs: Any) -> None:
        super().__init__(*args, **kwargs)

        self._optionals.title = 'optional arguments'

    def error_no_help(self, message: str) -> NoReturn:
        sys.stderr.write(f'{self.prog}: error: {message}\n')
        sys.exit(2)

    def print_help(self, file: SupportsWrite[str] | None = None) -> None:
        """Make help more command line friendly, if there is markdown markers in the text."""
        file = cast('IO[str] | None', file)
        original_description = self.description
        original_help = {id(action): action.help for action in self._actions}

        # code block "markers" are not really nice to have in cli help
        if self.description is not None:
            self.description = '\n'.join([line for line in self.description.split('\n') if '```' not in line])
            self.description = self.description.replace('\n\n', '\n')

        for action in self._actions:
            if action.help is not None:
                # remove any markdown link and code markers
                action.help = re.sub(r'\[([^\]]*)\][\(\[][^\)]*[\)\]]', r'\1', action.help).replace('`', '')

        try:
            super().print_help(file)
        finally:
            self.description = original_description
            for action in self._actions:
                action.help = original_help[id(action)]
