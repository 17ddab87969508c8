"""Raw cumulative counter reads from a Linux-style /proc tree."""

import os
import time
from pathlib import Path

import structlog

from hostpulse.errors import ParseAnomaly, SourceUnavailable
from hostpulse.models import CounterSample, NetworkCounters, ProcessSample

log = structlog.get_logger(__name__)

# user, nice, system, idle, iowait, irq, softirq, steal
CPU_FIELD_COUNT = 8
MAX_NAME_BYTES = 255
DEFAULT_TICK_FREQUENCY = 100

# Offsets into the fields that follow "pid (comm)" in /proc/<pid>/stat
_UTIME_OFFSET = 11
_STIME_OFFSET = 12


def parse_cpu_line(line: str, observed_at: float) -> CounterSample:
    """
    Parse one ``cpu``/``cpuN`` line of /proc/stat into a CounterSample.

    Only the first 8 fields are used; guest and guest_nice are already
    folded into user and nice by the kernel.

    Raises:
        ParseAnomaly: If the line has fewer than 8 integer fields.
    """
    parts = line.split()
    values = parts[1 : 1 + CPU_FIELD_COUNT]
    if len(values) < CPU_FIELD_COUNT:
        raise ParseAnomaly(f"expected {CPU_FIELD_COUNT} fields in {parts[:1]}, got {len(values)}")
    try:
        user, nice, system, idle, iowait, irq, softirq, steal = (int(v) for v in values)
    except ValueError as e:
        raise ParseAnomaly(f"non-integer field in cpu line: {line.strip()!r}") from e

    return CounterSample(
        idle_ticks=idle + iowait,
        total_ticks=user + nice + system + idle + iowait + irq + softirq + steal,
        observed_at=observed_at,
    )


def parse_process_stat(pid: int, raw: bytes) -> ProcessSample:
    """
    Parse the contents of /proc/<pid>/stat.

    The command name sits between the first "(" and the last ")" and may
    itself contain spaces and parentheses.

    Raises:
        ParseAnomaly: If the line is truncated or malformed.
    """
    text = raw.decode("utf-8", errors="replace")
    lparen = text.find("(")
    rparen = text.rfind(")")
    if lparen < 0 or rparen < lparen:
        raise ParseAnomaly(f"no command name in stat for pid {pid}")

    name = text[lparen + 1 : rparen]
    name = name.encode("utf-8")[:MAX_NAME_BYTES].decode("utf-8", errors="ignore")

    rest = text[rparen + 1 :].split()
    if len(rest) <= _STIME_OFFSET:
        raise ParseAnomaly(f"truncated stat for pid {pid}")
    try:
        utime = int(rest[_UTIME_OFFSET])
        stime = int(rest[_STIME_OFFSET])
    except ValueError as e:
        raise ParseAnomaly(f"non-integer cpu time in stat for pid {pid}") from e

    return ProcessSample(pid=pid, name=name, cpu_ticks_since_start=utime + stime)


class CounterSource:
    """
    Reads cumulative CPU, process and network counters from a proc tree.

    Every read re-opens the underlying file, so one instance can be shared
    between threads.
    """

    def __init__(self, proc_root: str | os.PathLike[str] = "/proc") -> None:
        """
        Initialize the CounterSource.

        Args:
            proc_root: Root of the proc filesystem. Tests point this at a fake tree.
        """
        self._root = Path(proc_root)

    @property
    def proc_root(self) -> Path:
        return self._root

    def _read_lines(self, path: Path) -> list[str]:
        # Interface and process names may hold bytes that are not valid UTF-8
        try:
            raw = path.read_bytes()
        except OSError as e:
            raise SourceUnavailable(f"cannot read {path}: {e}") from e
        return raw.decode("utf-8", errors="replace").splitlines()

    def _read_stat_lines(self) -> list[str]:
        return self._read_lines(self._root / "stat")

    def _find_cpu_line(self, label: str) -> str:
        for line in self._read_stat_lines():
            if line.split(maxsplit=1)[:1] == [label]:
                return line
        raise ParseAnomaly(f"no {label!r} line in {self._root / 'stat'}")

    def read_aggregate(self) -> CounterSample:
        """Read the machine-wide ``cpu`` line."""
        return parse_cpu_line(self._find_cpu_line("cpu"), time.monotonic())

    def read_core(self, index: int) -> CounterSample:
        """Read the ``cpu<index>`` line."""
        return parse_cpu_line(self._find_cpu_line(f"cpu{index}"), time.monotonic())

    def core_indices(self) -> list[int]:
        """
        Return the indices of the ``cpuN`` lines, in file order.

        Offline cores have no line, so the indices can have gaps.
        """
        indices: list[int] = []
        for line in self._read_stat_lines():
            label = line.split(maxsplit=1)[:1]
            if label and label[0].startswith("cpu") and label[0][3:].isdigit():
                indices.append(int(label[0][3:]))
        return indices

    def count_cores(self) -> int:
        """Count the per-core ``cpuN`` lines."""
        return len(self.core_indices())

    def _pid_entries(self) -> list[int]:
        try:
            entries = list(os.scandir(self._root))
        except OSError as e:
            raise SourceUnavailable(f"cannot scan {self._root}: {e}") from e

        pids: list[int] = []
        for entry in entries:
            if not (entry.name.isascii() and entry.name.isdigit()):
                continue
            try:
                if not entry.is_dir():
                    continue
            except OSError:
                continue
            pids.append(int(entry.name))
        return pids

    def count_processes(self) -> int:
        """Count live process entries."""
        return len(self._pid_entries())

    def list_processes(self) -> list[ProcessSample]:
        """
        Take one point-in-time pass over the process table.

        Processes that exit mid-scan or whose stat line cannot be parsed are
        skipped; process churn is expected.
        """
        samples: list[ProcessSample] = []
        for pid in self._pid_entries():
            try:
                raw = (self._root / str(pid) / "stat").read_bytes()
                samples.append(parse_process_stat(pid, raw))
            except (OSError, ParseAnomaly) as e:
                log.debug("process_skipped", pid=pid, reason=str(e))
                continue
        return samples

    def read_network(self) -> NetworkCounters:
        """Sum received and transmitted bytes over all non-loopback interfaces."""
        path = self._root / "net" / "dev"
        lines = self._read_lines(path)

        rx_total = 0
        tx_total = 0
        # First two lines are column headers
        for line in lines[2:]:
            iface, sep, rest = line.partition(":")
            if not sep:
                continue
            if iface.strip() == "lo":
                continue
            fields = rest.split()
            try:
                rx_total += int(fields[0])
                tx_total += int(fields[8])
            except (IndexError, ValueError) as e:
                raise ParseAnomaly(f"malformed interface line in {path}: {line.strip()!r}") from e

        return NetworkCounters(rx_bytes=rx_total, tx_bytes=tx_total, observed_at=time.monotonic())


def tick_frequency() -> int:
    """Return the kernel clock tick rate (USER_HZ)."""
    try:
        hz = os.sysconf("SC_CLK_TCK")
    except (ValueError, OSError, AttributeError):
        return DEFAULT_TICK_FREQUENCY
    return hz if hz > 0 else DEFAULT_TICK_FREQUENCY
