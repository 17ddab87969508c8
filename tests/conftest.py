"""Shared test fixtures for hostpulse."""

import logging
from pathlib import Path

import pytest
import structlog

NET_DEV_HEADER = (
    "Inter-|   Receive                                                |  Transmit\n"
    " face |bytes    packets errs drop fifo frame compressed multicast|"
    "bytes    packets errs drop fifo colls carrier compressed\n"
)


def cpu_line(label: str, user=0, nice=0, system=0, idle=0, iowait=0, irq=0, softirq=0, steal=0) -> str:
    """Build a /proc/stat cpu line with guest fields appended."""
    return f"{label} {user} {nice} {system} {idle} {iowait} {irq} {softirq} {steal} 0 0"


def process_stat(pid: int, name: str, utime: int, stime: int) -> str:
    """Build a /proc/<pid>/stat line."""
    return f"{pid} ({name}) S 1 1 1 0 -1 4194560 100 0 0 0 {utime} {stime} 0 0 20 0 1 0 100 1000 50\n"


class FakeProc:
    """A writable fake /proc tree rooted in a temp directory."""

    def __init__(self, root: Path) -> None:
        self.root = root
        self.root.mkdir(parents=True, exist_ok=True)

    def set_stat(self, *lines: str) -> None:
        (self.root / "stat").write_text("\n".join([*lines, "intr 0", "ctxt 0", "btime 0"]) + "\n")

    def add_process(self, pid: int, name: str, utime: int, stime: int = 0) -> None:
        proc_dir = self.root / str(pid)
        proc_dir.mkdir(exist_ok=True)
        (proc_dir / "stat").write_text(process_stat(pid, name, utime, stime))

    def add_raw_process(self, pid: int, content: str) -> None:
        proc_dir = self.root / str(pid)
        proc_dir.mkdir(exist_ok=True)
        (proc_dir / "stat").write_text(content)

    def set_net_dev(self, interfaces: dict[str, tuple[int, int]]) -> None:
        lines = [
            f"{name:>6}: {rx} 10 0 0 0 0 0 0 {tx} 10 0 0 0 0 0 0"
            for name, (rx, tx) in interfaces.items()
        ]
        net_dir = self.root / "net"
        net_dir.mkdir(exist_ok=True)
        (net_dir / "dev").write_text(NET_DEV_HEADER + "\n".join(lines) + "\n")


@pytest.fixture
def fake_proc(tmp_path: Path) -> FakeProc:
    """An empty fake proc tree."""
    return FakeProc(tmp_path / "proc")


@pytest.fixture
def populated_proc(fake_proc: FakeProc) -> FakeProc:
    """A fake proc tree with two cores, five processes and two interfaces."""
    fake_proc.set_stat(
        cpu_line("cpu", user=600, system=400, idle=1000),
        cpu_line("cpu0", user=300, system=200, idle=500),
        cpu_line("cpu1", user=300, system=200, idle=500),
    )
    for pid, name, ticks in [
        (101, "alpha", 500),
        (102, "beta", 100),
        (103, "gamma", 900),
        (104, "delta", 50),
        (105, "epsilon", 300),
    ]:
        fake_proc.add_process(pid, name, ticks)
    fake_proc.set_net_dev({"lo": (999, 999), "eth0": (1000, 2000), "wlan0": (500, 250)})
    return fake_proc


@pytest.fixture(autouse=True)
def reset_logging():
    """Undo any structlog/stdlib configuration a test installed."""
    root = logging.getLogger()
    handlers = list(root.handlers)
    level = root.level
    yield
    structlog.reset_defaults()
    root.handlers[:] = handlers
    root.setLevel(level)
