"""Configuration of k6-bdd, defaults that can be changed with an YAML file and command line arguments.

```yaml
configuration:
  environment:
    BASE_URL: https://staging.example.com
    USERNAME: loadtest
    PASSWORD: {{ environ.get('LOADTEST_PASSWORD', '') }}
  k6:
    binary: /usr/local/bin/k6
    timeout: 900
  output_dir: tests/generated
  library_dir: lib
  report_dir: reports
```

The file is rendered as a Jinja2 template before it is loaded, with `environ` available in the context.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from os import environ
from pathlib import Path
from typing import Any

import yaml
from jinja2 import Environment, StrictUndefined

from k6_bdd import K6_BINARY
from k6_bdd.utils import merge_dicts

logger = logging.getLogger('k6-bdd.configuration')

DEFAULT_ENVIRONMENT: dict[str, str] = {
    'BASE_URL': 'https://perfappdemo.vercel.app',
    'USERNAME': 'ghauyon',
    'PASSWORD': 'user4Test',
}

DEFAULT_TIMEOUT = 600
DEFAULT_OUTPUT_DIR = 'tests/generated'
DEFAULT_LIBRARY_DIR = 'lib'
DEFAULT_REPORT_DIR = 'reports'


@dataclass
class Configuration:
    environment: dict[str, str] = field(default_factory=lambda: dict(DEFAULT_ENVIRONMENT))
    k6_binary: str = field(default_factory=lambda: K6_BINARY)
    timeout: int = DEFAULT_TIMEOUT
    output_dir: Path = field(default_factory=lambda: Path(DEFAULT_OUTPUT_DIR))
    library_dir: Path = field(default_factory=lambda: Path(DEFAULT_LIBRARY_DIR))
    report_dir: str = DEFAULT_REPORT_DIR

    def as_dict(self) -> dict[str, Any]:
        return {
            'environment': dict(self.environment),
            'k6': {
                'binary': self.k6_binary,
                'timeout': self.timeout,
            },
            'output_dir': self.output_dir.as_posix(),
            'library_dir': self.library_dir.as_posix(),
            'report_dir': self.report_dir,
        }

    @classmethod
    def from_dict(cls, values: dict[str, Any]) -> Configuration:
        k6 = values.get('k6', None) or {}

        try:
            timeout = int(k6.get('timeout', DEFAULT_TIMEOUT))
        except (TypeError, ValueError) as e:
            message = f'k6.timeout must be a number of seconds, got {k6.get("timeout")!r}'
            raise ValueError(message) from e

        environment = values.get('environment', None) or {}
        if not isinstance(environment, dict):
            message = 'environment must be a mapping of variable names and values'
            raise ValueError(message)  # noqa: TRY004

        return cls(
            environment={str(key): '' if value is None else str(value) for key, value in environment.items()},
            k6_binary=str(k6.get('binary', None) or K6_BINARY),
            timeout=timeout,
            output_dir=Path(values.get('output_dir', None) or DEFAULT_OUTPUT_DIR),
            library_dir=Path(values.get('library_dir', None) or DEFAULT_LIBRARY_DIR),
            report_dir=str(values.get('report_dir', None) or DEFAULT_REPORT_DIR),
        )


def load_configuration_file(file: Path) -> dict[str, Any]:
    """Render and load the `configuration` mapping of an YAML file, later documents are overridden by earlier ones."""
    configuration: dict[str, Any] = {}

    environment = Environment(autoescape=False, undefined=StrictUndefined)
    yaml_template = environment.from_string(file.read_text(encoding='utf-8'))
    yaml_content = yaml_template.render(environ=environ)

    yaml_configurations = list(yaml.load_all(yaml_content, Loader=yaml.SafeLoader))
    yaml_configurations.reverse()
    for yaml_configuration in yaml_configurations:
        if yaml_configuration is None:
            continue

        layer = yaml_configuration.get('configuration', None) if isinstance(yaml_configuration, dict) else None
        if not isinstance(layer, dict):
            message = f'{file.as_posix()} does not have a top-level configuration mapping'
            raise ValueError(message)

        configuration = merge_dicts(configuration, layer)

    logger.debug('configuration: %r', configuration)

    return configuration


def load_configuration(file: Path | None = None) -> Configuration:
    defaults = Configuration()

    if file is None:
        return defaults

    if not file.exists():
        message = f'{file.as_posix()} does not exist'
        raise ValueError(message)

    if file.suffix not in ['.yml', '.yaml']:
        message = 'configuration file must have file extension yml or yaml'
        raise ValueError(message)

    values = merge_dicts(defaults.as_dict(), load_configuration_file(file))

    return Configuration.from_dict(values)


def parse_env_overrides(values: list[str] | None) -> dict[str, str]:
    """Convert `KEY=VALUE` arguments to a dictionary, a later argument overrides an earlier with the same key."""
    overrides: dict[str, str] = {}

    for value in values or []:
        key, separator, variable_value = value.partition('=')
        key = key.strip()

        if not separator or not key:
            message = f'environment variable {value!r} is not in the format KEY=VALUE'
            raise ValueError(message)

        overrides.update({key: variable_value})

    return overrides


def library_import_path(output_dir: Path, library_dir: Path) -> str:
    """Path of `library_dir` relative to where the scripts are written, as it should be written in an `import`."""
    relative_path = Path(os.path.relpath(library_dir.absolute(), output_dir.absolute())).as_posix()

    if not relative_path.startswith('.'):
        relative_path = f'./{relative_path}'

    return relative_path
