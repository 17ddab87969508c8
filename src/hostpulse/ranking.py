"""Top-N process ranking by CPU ticks consumed."""

import heapq
from operator import attrgetter

import structlog

from hostpulse.counters import CounterSource, tick_frequency
from hostpulse.errors import SourceUnavailable
from hostpulse.models import ProcessSample, TopProcess

log = structlog.get_logger(__name__)


def rank_processes(
    samples: list[ProcessSample], n: int, frequency: int
) -> list[TopProcess]:
    """
    Return the ``n`` heaviest processes, heaviest first.

    Ties keep scan order. heapq.nlargest is stable and only keeps n
    candidates, so a small n never sorts the whole table.
    """
    if n <= 0:
        return []
    top = heapq.nlargest(n, samples, key=attrgetter("cpu_ticks_since_start"))
    return [
        TopProcess(
            pid=s.pid,
            name=s.name,
            cpu_share_percent=s.cpu_ticks_since_start * 100.0 / frequency,
        )
        for s in top
    ]


class ProcessRanker:
    """
    Ranks processes by CPU ticks accumulated since each process started.

    Unlike the machine and per-core figures in RateEngine, this is not a
    delta against a previous scan. The share is lifetime CPU seconds scaled
    to a percentage of one second of clock ticks, so long-lived processes
    rank by total consumption rather than recent activity. It is not clamped
    and routinely exceeds 100.
    """

    def __init__(self, source: CounterSource, frequency: int | None = None) -> None:
        """
        Initialize the ProcessRanker.

        Args:
            source: Where process samples come from.
            frequency: Clock ticks per second. Defaults to the kernel's USER_HZ.
        """
        self._source = source
        self._frequency = frequency or tick_frequency()

    @property
    def tick_frequency(self) -> int:
        return self._frequency

    def top_n(self, n: int) -> list[TopProcess]:
        """Return at most ``n`` processes; fewer if fewer are running."""
        try:
            samples = self._source.list_processes()
        except SourceUnavailable as e:
            log.warning("process_table_unavailable", error=str(e))
            return []
        return rank_processes(samples, n, self._frequency)
