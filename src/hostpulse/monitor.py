"""Sampling engine for hostpulse."""

import threading
import time
from queue import Queue

import structlog

from hostpulse.counters import CounterSource
from hostpulse.errors import SourceUnavailable
from hostpulse.facts import SystemFactsProvider
from hostpulse.models import UNAVAILABLE, NetworkRates, Snapshot, TopProcess
from hostpulse.ranking import ProcessRanker
from hostpulse.rates import AGGREGATE_KEY, RateEngine

log = structlog.get_logger(__name__)

NET_RX_KEY = ("net", "rx")
NET_TX_KEY = ("net", "tx")
DEFAULT_TOP_N = 3


class MetricsFacade:
    """
    Runs one sampling pass and merges the results into a Snapshot.

    A metric whose source is unavailable this tick becomes None in the
    snapshot; the rest of the pass carries on.
    """

    def __init__(
        self,
        source: CounterSource | None = None,
        engine: RateEngine | None = None,
        ranker: ProcessRanker | None = None,
        facts: SystemFactsProvider | None = None,
        top_n: int = DEFAULT_TOP_N,
    ) -> None:
        """
        Initialize the MetricsFacade.

        Args:
            source: Counter reader. Defaults to the live /proc.
            engine: Rate state. Pass one in to share it between facades.
            ranker: Process ranker. Defaults to one over ``source``.
            facts: Static facts provider, or None to leave facts out.
            top_n: How many processes to rank.
        """
        self._source = source or CounterSource()
        self._engine = engine or RateEngine()
        self._ranker = ranker or ProcessRanker(self._source)
        self._facts = facts
        self._top_n = top_n

    @property
    def engine(self) -> RateEngine:
        return self._engine

    def sample_once(self) -> Snapshot:
        """Take one sample of every metric."""
        core_ids, per_core = self._sample_cores()

        return Snapshot(
            cpu_percent=self._sample_aggregate(),
            cpu_percent_per_core=per_core,
            core_count=None if core_ids is None else len(core_ids),
            core_indices=core_ids or [],
            top_processes=self._sample_top(),
            process_count=self._sample_process_count(),
            network=self._sample_network(),
            facts=self._facts.collect() if self._facts is not None else None,
            taken_at=time.time(),
        )

    def _sample_aggregate(self) -> float | None:
        try:
            sample = self._source.read_aggregate()
        except SourceUnavailable as e:
            log.debug("aggregate_unavailable", error=str(e))
            return UNAVAILABLE
        return self._engine.compute_usage(AGGREGATE_KEY, sample)

    def _sample_cores(self) -> tuple[list[int] | None, list[float | None]]:
        try:
            core_ids = self._source.core_indices()
        except SourceUnavailable as e:
            log.debug("cores_unavailable", error=str(e))
            return None, []

        per_core: list[float | None] = []
        for index in core_ids:
            try:
                sample = self._source.read_core(index)
            except SourceUnavailable as e:
                log.debug("core_unavailable", core=index, error=str(e))
                per_core.append(UNAVAILABLE)
                continue
            per_core.append(self._engine.compute_usage(index, sample))
        return core_ids, per_core

    def _sample_top(self) -> list[TopProcess]:
        return self._ranker.top_n(self._top_n)

    def _sample_process_count(self) -> int | None:
        try:
            return self._source.count_processes()
        except SourceUnavailable as e:
            log.debug("process_count_unavailable", error=str(e))
            return None

    def _sample_network(self) -> NetworkRates | None:
        try:
            counters = self._source.read_network()
        except SourceUnavailable as e:
            log.debug("network_unavailable", error=str(e))
            return None
        return NetworkRates(
            rx_bytes=counters.rx_bytes,
            tx_bytes=counters.tx_bytes,
            rx_per_sec=self._engine.compute_rate(NET_RX_KEY, counters.rx_bytes, counters.observed_at),
            tx_per_sec=self._engine.compute_rate(NET_TX_KEY, counters.tx_bytes, counters.observed_at),
        )


class SystemMonitor:
    """
    Background poller that drives a MetricsFacade on a fixed interval.

    Runs in a separate daemon thread and pushes snapshots to a thread-safe Queue.
    """

    def __init__(
        self,
        facade: MetricsFacade,
        update_queue: Queue[Snapshot],
        poll_rate: float = 1.0,
    ) -> None:
        """
        Initialize the SystemMonitor.

        Args:
            facade: Facade to sample.
            update_queue: Thread-safe queue to push snapshots to.
            poll_rate: Seconds between samples. Default 1.0s.
        """
        self._facade = facade
        self._queue = update_queue
        self._poll_rate = max(0.1, poll_rate)
        self._stop_event = threading.Event()
        self._thread: threading.Thread | None = None

    @property
    def poll_rate(self) -> float:
        """Get the current poll rate."""
        return self._poll_rate

    @poll_rate.setter
    def poll_rate(self, value: float) -> None:
        """Set the poll rate."""
        self._poll_rate = max(0.1, value)  # Minimum 0.1 seconds

    @property
    def is_running(self) -> bool:
        """Check if the monitor thread is running."""
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        """Start the monitoring thread."""
        if self.is_running:
            return

        self._stop_event.clear()
        self._thread = threading.Thread(
            target=self._poll_loop,
            daemon=True,
            name="SystemMonitor",
        )
        self._thread.start()
        log.info("monitor_started", poll_rate=self._poll_rate)

    def stop(self, timeout: float | None = 5.0) -> None:
        """
        Stop the monitoring thread.

        Args:
            timeout: How long to wait for thread to stop (seconds).
        """
        self._stop_event.set()
        if self._thread is not None:
            self._thread.join(timeout=timeout)
            self._thread = None
            log.info("monitor_stopped")

    def _poll_loop(self) -> None:
        """Main polling loop running in the background thread."""
        while not self._stop_event.is_set():
            try:
                self._queue.put(self._facade.sample_once())
            except Exception:
                # Keep the loop running; one bad tick must not end sampling
                log.exception("sample_failed")

            self._stop_event.wait(timeout=self._poll_rate)
