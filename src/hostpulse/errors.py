"""Error taxonomy for hostpulse.

None of these are fatal. They are raised by the lowest layer and recovered
before a snapshot reaches the caller, where they show up as unavailable fields.
"""

from collections.abc import Hashable


class HostPulseError(Exception):
    """Base class for hostpulse errors."""


class SourceUnavailable(HostPulseError):
    """Counter file is missing, unreadable, or permission-denied."""


class ParseAnomaly(SourceUnavailable):
    """Counter line is present but does not have the expected shape."""


class CounterRegression(HostPulseError):
    """A cumulative counter went backwards (wraparound or reset)."""

    def __init__(self, key: Hashable, previous: int | float, current: int | float) -> None:
        super().__init__(f"counter {key!r} regressed from {previous} to {current}")
        self.key = key
        self.previous = previous
        self.current = current
