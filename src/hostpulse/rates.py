"""Rate computation over consecutive cumulative counter samples."""

import threading
from collections.abc import Hashable

import structlog

from hostpulse.errors import CounterRegression
from hostpulse.models import UNAVAILABLE, CounterSample

log = structlog.get_logger(__name__)

AGGREGATE_KEY = "aggregate"


def usage_between(key: Hashable, previous: CounterSample, current: CounterSample) -> float:
    """
    Compute CPU usage percent between two tick samples.

    Returns 0.0 when no ticks elapsed. The result is clamped to [0, 100]
    since idle can advance by a tick more than total between two reads.

    Raises:
        CounterRegression: If either counter went backwards.
    """
    idle_delta = current.idle_ticks - previous.idle_ticks
    total_delta = current.total_ticks - previous.total_ticks
    if total_delta < 0:
        raise CounterRegression(key, previous.total_ticks, current.total_ticks)
    if idle_delta < 0:
        raise CounterRegression(key, previous.idle_ticks, current.idle_ticks)
    if total_delta == 0:
        return 0.0

    usage = 100.0 * (1.0 - idle_delta / total_delta)
    return min(100.0, max(0.0, usage))


class RateEngine:
    """
    Holds the previous sample per tracked entity and turns pairs into rates.

    Entities are keyed by any hashable: ``"aggregate"`` for the machine,
    the core index for each core. Every call stores the current sample as
    the new previous one, whichever branch it takes. All calls are
    serialized behind one lock so concurrent samplers see consistent pairs.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._samples: dict[Hashable, CounterSample] = {}
        self._values: dict[Hashable, tuple[float, float]] = {}

    def compute_usage(self, entity_key: Hashable, sample: CounterSample) -> float | None:
        """
        Return usage percent for ``entity_key`` or None if unavailable.

        The first observation of an entity is always unavailable, as is a
        tick where the counters went backwards.
        """
        with self._lock:
            previous = self._samples.get(entity_key)
            self._samples[entity_key] = sample

        if previous is None:
            return UNAVAILABLE
        try:
            return usage_between(entity_key, previous, sample)
        except CounterRegression as e:
            log.warning("counter_regression", key=entity_key, previous=e.previous, current=e.current)
            return UNAVAILABLE

    def compute_rate(self, entity_key: Hashable, value: int, observed_at: float) -> float | None:
        """
        Return the per-second rate of a cumulative counter, or None.

        Same state rules as compute_usage: first observation and regressions
        are unavailable, zero elapsed time is 0.0.
        """
        with self._lock:
            previous = self._values.get(entity_key)
            self._values[entity_key] = (value, observed_at)

        if previous is None:
            return UNAVAILABLE
        prev_value, prev_at = previous
        if value < prev_value:
            log.warning("counter_regression", key=entity_key, previous=prev_value, current=value)
            return UNAVAILABLE
        elapsed = observed_at - prev_at
        if elapsed <= 0:
            return 0.0
        return (value - prev_value) / elapsed

    def tracked_keys(self) -> list[Hashable]:
        """Return the keys of every entity seen so far."""
        with self._lock:
            return list(dict.fromkeys([*self._samples, *self._values]))

    def reset(self) -> None:
        """Forget all previous samples."""
        with self._lock:
            self._samples.clear()
            self._values.clear()
