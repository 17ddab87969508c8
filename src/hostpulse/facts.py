"""Stateless host facts: memory, disk, OS, network identity, battery."""

import ipaddress
import platform
import socket
import time

import psutil
import structlog

from hostpulse.models import BatteryStatus, SystemFacts

log = structlog.get_logger(__name__)

_NULL_MAC = "00:00:00:00:00:00"


def _is_loopback(address: str) -> bool:
    try:
        return ipaddress.ip_address(address).is_loopback
    except ValueError:
        return False


class SystemFactsProvider:
    """
    One-shot queries backed by psutil, platform and socket.

    Each query returns None (or a BatteryStatus with ``present=False``)
    instead of raising when the underlying facility is missing.
    """

    def __init__(self, disk_path: str = "/") -> None:
        self._disk_path = disk_path

    def memory(self) -> tuple[int | None, int | None]:
        """Return (total, free) physical memory in bytes."""
        try:
            mem = psutil.virtual_memory()
        except (OSError, RuntimeError) as e:
            log.debug("memory_unavailable", error=str(e))
            return None, None
        return mem.total, mem.free

    def swap(self) -> tuple[int | None, int | None]:
        """Return (total, free) swap in bytes."""
        try:
            swap = psutil.swap_memory()
        except (OSError, RuntimeError) as e:
            log.debug("swap_unavailable", error=str(e))
            return None, None
        return swap.total, swap.free

    def uptime(self) -> float | None:
        """Return seconds since boot."""
        try:
            return max(0.0, time.time() - psutil.boot_time())
        except (OSError, RuntimeError) as e:
            log.debug("uptime_unavailable", error=str(e))
            return None

    def disk(self, path: str | None = None) -> tuple[int | None, int | None]:
        """Return (total, free) bytes on the filesystem holding ``path``."""
        try:
            usage = psutil.disk_usage(path or self._disk_path)
        except OSError as e:
            log.debug("disk_unavailable", path=path or self._disk_path, error=str(e))
            return None, None
        return usage.total, usage.free

    def os_info(self) -> tuple[str | None, str | None, str | None]:
        """Return (name, release, machine), e.g. ("Linux", "6.8.0", "x86_64")."""
        uname = platform.uname()
        return uname.system or None, uname.release or None, uname.machine or None

    def hostname(self) -> str | None:
        try:
            return socket.gethostname() or None
        except OSError:
            return None

    def ip_address(self) -> str | None:
        """Return the first non-loopback IPv4 address."""
        try:
            interfaces = psutil.net_if_addrs()
        except OSError as e:
            log.debug("interfaces_unavailable", error=str(e))
            return None
        for addrs in interfaces.values():
            for addr in addrs:
                if addr.family == socket.AF_INET and not _is_loopback(addr.address):
                    return addr.address
        return None

    def mac_address(self) -> str | None:
        """Return the first non-loopback hardware address."""
        try:
            interfaces = psutil.net_if_addrs()
        except OSError as e:
            log.debug("interfaces_unavailable", error=str(e))
            return None
        for addrs in interfaces.values():
            if any(
                a.family in (socket.AF_INET, socket.AF_INET6) and _is_loopback(a.address)
                for a in addrs
            ):
                continue
            for addr in addrs:
                if addr.family == psutil.AF_LINK and addr.address and addr.address != _NULL_MAC:
                    return addr.address.lower()
        return None

    def battery(self) -> BatteryStatus:
        """Return battery presence, level (percent) and charging state."""
        sensors_battery = getattr(psutil, "sensors_battery", None)
        if sensors_battery is None:
            return BatteryStatus(present=False)
        try:
            battery = sensors_battery()
        except (OSError, RuntimeError) as e:
            log.debug("battery_unavailable", error=str(e))
            return BatteryStatus(present=False)
        if battery is None:
            return BatteryStatus(present=False)
        return BatteryStatus(present=True, level=battery.percent, charging=battery.power_plugged)

    def collect(self) -> SystemFacts:
        """Gather every fact into one SystemFacts."""
        memory_total, memory_free = self.memory()
        swap_total, swap_free = self.swap()
        disk_total, disk_free = self.disk()
        os_name, os_version, os_arch = self.os_info()

        return SystemFacts(
            memory_total=memory_total,
            memory_free=memory_free,
            swap_total=swap_total,
            swap_free=swap_free,
            uptime_seconds=self.uptime(),
            disk_total=disk_total,
            disk_free=disk_free,
            os_name=os_name,
            os_version=os_version,
            os_arch=os_arch,
            hostname=self.hostname(),
            ip_address=self.ip_address(),
            mac_address=self.mac_address(),
            battery=self.battery(),
        )
