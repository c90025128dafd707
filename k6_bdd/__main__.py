"""Main entrypoint for k6_bdd."""

from __future__ import annotations

import sys
from pathlib import Path
from traceback import format_exc
from typing import TYPE_CHECKING

from k6_bdd import FEATURE_SUFFIX, __version__
from k6_bdd.argparse import ArgumentParser
from k6_bdd.configuration import load_configuration, parse_env_overrides
from k6_bdd.exceptions import K6BddError
from k6_bdd.runner import run
from k6_bdd.steps import default_registry
from k6_bdd.utils import setup_logging

if TYPE_CHECKING:  # pragma: no cover
    import argparse


def _create_parser() -> ArgumentParser:
    parser = ArgumentParser(
        description=(
            'compile BDD feature files to k6 load test scripts, and run them.\n\n'
            'each scenario, and each row in the examples of a scenario outline, becomes one script:\n\n'
            '```bash\n'
            'k6-bdd features/ --generate-only\n'
            '```'
        ),
    )

    if parser.prog != 'k6-bdd':
        parser.prog = 'k6-bdd'

    parser.add_argument(
        'target',
        nargs='?',
        type=Path,
        default=None,
        help=f'a `{FEATURE_SUFFIX}` file, or a directory with `{FEATURE_SUFFIX}` files',
    )

    mode_group = parser.add_mutually_exclusive_group()
    mode_group.add_argument(
        '--parse-only',
        action='store_true',
        default=False,
        help='parse the feature files and print them as JSON, without generating any scripts',
    )
    mode_group.add_argument(
        '--generate-only',
        action='store_true',
        default=False,
        help='generate the k6 scripts, but do not execute them',
    )
    mode_group.add_argument(
        '--list-steps',
        action='store_true',
        default=False,
        help='list all step expressions that can be used in a feature file, and exit',
    )

    parser.add_argument(
        '--env',
        action='append',
        type=str,
        default=None,
        metavar='KEY=VALUE',
        help='environment variable passed to k6 with `-e`, overrides the configured value. can be specified multiple times',
    )
    parser.add_argument(
        '--output-dir',
        type=Path,
        default=None,
        help='directory where the scripts are written, default `tests/generated`',
    )
    parser.add_argument(
        '-c',
        '--configuration-file',
        type=Path,
        default=None,
        help='YAML file with configuration for k6-bdd',
    )
    parser.add_argument(
        '--timeout',
        type=int,
        default=None,
        help='maximum number of seconds a k6 execution is allowed to run, default 600',
    )
    parser.add_argument(
        '--verbose',
        action='store_true',
        default=False,
        help='changes the log level to `DEBUG`, and prints full tracebacks on errors',
    )
    parser.add_argument(
        '-l',
        '--log-file',
        type=str,
        default=None,
        help='save all output to this file',
    )
    parser.add_argument(
        '--version',
        action='store_true',
        default=False,
        help='print version of k6-bdd, and exit',
    )

    return parser


def _parse_arguments(argv: list[str] | None = None) -> argparse.Namespace:
    parser = _create_parser()

    if argv is None:
        argv = sys.argv[1:]

    if len(argv) == 0:
        parser.print_help()
        raise SystemExit(0)

    args = parser.parse_args(argv)

    if args.version:
        print(f'k6-bdd {__version__}')  # noqa: T201
        raise SystemExit(0)

    if args.target is None and not args.list_steps:
        parser.error_no_help('no feature file or directory specified')

    if args.timeout is not None and args.timeout < 1:
        parser.error_no_help('--timeout must be a positive number of seconds')

    setup_logging(args.log_file, verbose=args.verbose)

    return args


def _list_steps() -> int:
    definitions = default_registry().list_definitions()

    print(f'{len(definitions)} step definitions:')  # noqa: T201
    for definition in definitions:
        markers = [marker for marker, enabled in [('setup', definition.has_setup), ('threshold', definition.has_threshold)] if enabled]
        suffix = f'  [{", ".join(markers)}]' if len(markers) > 0 else ''
        if len(definition.imports) > 0:
            suffix = f'{suffix}  imports: {", ".join(definition.imports)}'
        print(f'  {definition.pattern}{suffix}')  # noqa: T201

    return 0


def main(argv: list[str] | None = None) -> int:
    args: argparse.Namespace | None = None

    try:
        args = _parse_arguments(argv)

        if args.list_steps:
            return _list_steps()

        configuration = load_configuration(args.configuration_file)

        if args.timeout is not None:
            configuration.timeout = args.timeout

        if args.output_dir is not None:
            configuration.output_dir = args.output_dir

        rc = run(
            args.target,
            parse_only=args.parse_only,
            generate_only=args.generate_only,
            env_overrides=parse_env_overrides(args.env),
            configuration=configuration,
            verbose=args.verbose,
        )
    except (KeyboardInterrupt, ValueError, K6BddError) as e:
        print()  # noqa: T201
        if not isinstance(e, KeyboardInterrupt):
            exception = format_exc() if args is not None and args.verbose else str(e)

            print(exception)  # noqa: T201

        print('\n!! aborted k6-bdd')  # noqa: T201
        return 1
    else:
        return rc


if __name__ == '__main__':
    sys.exit(main())
