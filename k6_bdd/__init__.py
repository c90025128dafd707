"""Any import from a k6_bdd module should initialize the version and path variables."""

from __future__ import annotations

from os import environ
from pathlib import Path

from .__version__ import __version__

STATIC_CONTEXT = Path.joinpath(Path(__file__).parent.absolute(), 'templates').as_posix()

FEATURE_SUFFIX = '.feature'

K6_BINARY = environ.get('K6_BDD_BINARY', 'k6')


__all__ = ['__version__']
