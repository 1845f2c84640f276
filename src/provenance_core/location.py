"""Ambient location providers.

A location provider answers "what is the current addressable location?"
(typically a URL that may carry an exported state). Returning None means
the environment has no such location.
"""

from __future__ import annotations

import os
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Callable

    LocationProvider = Callable[[], str | None]

DEFAULT_LOCATION_ENV = "PROVENANCE_LOCATION"


def env_location(var: str = DEFAULT_LOCATION_ENV) -> LocationProvider:
    """Provider reading the location from an environment variable."""

    def _read() -> str | None:
        return os.environ.get(var) or None

    return _read


def static_location(location: str | None) -> LocationProvider:
    """Provider returning a fixed location."""

    def _read() -> str | None:
        return location

    return _read
