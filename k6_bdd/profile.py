"""Derive the load profile of a scenario from its `vus`, `duration` and `iterations` parameters."""

from __future__ import annotations

import re
from dataclasses import dataclass
from math import floor
from typing import TYPE_CHECKING, Any, Union

if TYPE_CHECKING:  # pragma: no cover
    from collections.abc import Mapping

DURATION_PATTERN = re.compile(r'^(\d+)(s|m|h)$', re.IGNORECASE)

DURATION_UNITS = {
    's': 1,
    'm': 60,
    'h': 3600,
}

DEFAULT_VUS = 1
DEFAULT_DURATION = '30s'
DEFAULT_ITERATIONS = 1
FALLBACK_SECONDS = 60

# fixed profile is used for at most this many users during at most this many seconds
FIXED_MAX_VUS = 1
FIXED_MAX_SECONDS = 30


@dataclass(frozen=True)
class Stage:
    duration_seconds: int
    target: int

    def to_options(self) -> dict[str, Any]:
        return {'duration': f'{self.duration_seconds}s', 'target': self.target}


@dataclass(frozen=True)
class FixedProfile:
    virtual_users: int
    iterations: int

    def to_options(self, scenario_key: str) -> dict[str, Any]:  # noqa: ARG002
        return {'vus': self.virtual_users, 'iterations': self.iterations}


@dataclass(frozen=True)
class RampingProfile:
    start_virtual_users: int
    stages: tuple[Stage, Stage, Stage]

    @property
    def ramp_up(self) -> Stage:
        return self.stages[0]

    @property
    def steady(self) -> Stage:
        return self.stages[1]

    @property
    def ramp_down(self) -> Stage:
        return self.stages[2]

    def to_options(self, scenario_key: str) -> dict[str, Any]:
        return {
            'scenarios': {
                scenario_key: {
                    'executor': 'ramping-vus',
                    'startVUs': self.start_virtual_users,
                    'stages': [stage.to_options() for stage in self.stages],
                },
            },
        }


LoadProfile = Union[FixedProfile, RampingProfile]


def parse_duration(duration: str) -> int:
    """Convert a k6 duration (`30s`, `2m`, `1h`) to seconds, anything else is `60` seconds."""
    match = DURATION_PATTERN.match(duration.strip())
    if not match:
        return FALLBACK_SECONDS

    return int(match.group(1)) * DURATION_UNITS[match.group(2).lower()]


def _as_int(value: str | None, default: int) -> int:
    try:
        number = int(str(value).strip())
    except ValueError:
        return default

    # zero or negative is not usable, same as not specifying it
    return number if number > 0 else default


def derive_load_profile(parameters: Mapping[str, str]) -> LoadProfile:
    vus = _as_int(parameters.get('vus'), DEFAULT_VUS)
    total_seconds = parse_duration(parameters.get('duration', DEFAULT_DURATION) or DEFAULT_DURATION)

    if vus <= FIXED_MAX_VUS and total_seconds <= FIXED_MAX_SECONDS:
        return FixedProfile(virtual_users=vus, iterations=_as_int(parameters.get('iterations'), DEFAULT_ITERATIONS))

    ramp_up = max(10, floor(total_seconds * 0.20))
    ramp_down = max(5, floor(total_seconds * 0.15))
    # steady floors the ramp-down fraction on its own, so it can differ from `total - ramp_up - ramp_down`
    steady = max(10, total_seconds - ramp_up - floor(total_seconds * 0.15))

    return RampingProfile(
        start_virtual_users=max(1, floor(vus * 0.1)),
        stages=(
            Stage(ramp_up, vus),
            Stage(steady, vus),
            Stage(ramp_down, 0),
        ),
    )
