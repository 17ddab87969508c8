"""CLI commands for hostpulse."""

import json
import time
from pathlib import Path

import click

from hostpulse.config import Config
from hostpulse.counters import CounterSource
from hostpulse.facts import SystemFactsProvider
from hostpulse.logging import configure
from hostpulse.models import Snapshot, SystemFacts
from hostpulse.monitor import MetricsFacade
from hostpulse.ranking import ProcessRanker


def format_bytes(size: int | float | None) -> str:
    """Format bytes as human-readable string."""
    if size is None:
        return "n/a"
    for unit in ["B", "K", "M", "G", "T"]:
        if size < 1024:
            return f"{size:.1f}{unit}" if unit != "B" else f"{int(size)}{unit}"
        size = size / 1024
    return f"{size:.1f}P"


def format_percent(value: float | None) -> str:
    return "n/a" if value is None else f"{value:5.1f}%"


def format_uptime(seconds: float | None) -> str:
    if seconds is None:
        return "n/a"
    days = int(seconds // 86400)
    hours = int((seconds % 86400) // 3600)
    minutes = int((seconds % 3600) // 60)
    secs = int(seconds % 60)
    if days > 0:
        return f"{days} days, {hours:02d}:{minutes:02d}:{secs:02d}"
    return f"{hours:02d}:{minutes:02d}:{secs:02d}"


def render_facts(facts: SystemFacts) -> list[str]:
    lines = [
        f"Host: {facts.hostname or 'n/a'}  "
        f"OS: {facts.os_name or 'n/a'} {facts.os_version or ''} ({facts.os_arch or 'n/a'})",
        f"IP: {facts.ip_address or 'n/a'}  MAC: {facts.mac_address or 'n/a'}",
        f"Mem: {format_bytes(facts.memory_free)} free / {format_bytes(facts.memory_total)}  "
        f"Swap: {format_bytes(facts.swap_free)} free / {format_bytes(facts.swap_total)}",
        f"Disk: {format_bytes(facts.disk_free)} free / {format_bytes(facts.disk_total)}",
        f"Uptime: {format_uptime(facts.uptime_seconds)}",
    ]
    if facts.battery.present:
        level = "n/a" if facts.battery.level is None else f"{facts.battery.level:.0f}%"
        state = "charging" if facts.battery.charging else "discharging"
        lines.append(f"Battery: {level} ({state})")
    return lines


def render_snapshot(snapshot: Snapshot) -> str:
    """Render a snapshot as plain text lines."""
    lines = [f"CPU: {format_percent(snapshot.cpu_percent)}"]
    labels = snapshot.core_indices or range(len(snapshot.cpu_percent_per_core))
    for index, usage in zip(labels, snapshot.cpu_percent_per_core):
        lines.append(f"  CPU{index:<2} {format_percent(usage)}")

    if snapshot.process_count is not None:
        lines.append(f"Processes: {snapshot.process_count}")
    for proc in snapshot.top_processes:
        lines.append(f"  {proc.pid:>7} {proc.name:<16} {proc.cpu_share_percent:8.1f}%")

    if snapshot.network is not None:
        net = snapshot.network
        rx_rate = "n/a" if net.rx_per_sec is None else f"{format_bytes(net.rx_per_sec)}/s"
        tx_rate = "n/a" if net.tx_per_sec is None else f"{format_bytes(net.tx_per_sec)}/s"
        lines.append(
            f"Net: rx {format_bytes(net.rx_bytes)} ({rx_rate})  tx {format_bytes(net.tx_bytes)} ({tx_rate})"
        )

    if snapshot.facts is not None:
        lines.extend(render_facts(snapshot.facts))
    return "\n".join(lines)


@click.group()
@click.version_option(package_name="hostpulse")
@click.option(
    "--config",
    "config_path",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="Path to a TOML config file.",
)
@click.option("--proc-root", default=None, help="Override the proc filesystem root.")
@click.option("--log-level", default=None, help="debug, info, warning or error.")
@click.pass_context
def main(ctx: click.Context, config_path: Path | None, proc_root: str | None, log_level: str | None) -> None:
    """Sample host CPU, process and network counters."""
    try:
        config = Config.load(config_path)
    except ValueError as e:
        raise click.ClickException(str(e)) from e
    if proc_root is not None:
        config.sampling.proc_root = proc_root
    if log_level is not None:
        config.logging.level = log_level

    try:
        configure(config.logging.level, config.logging.json)
    except ValueError as e:
        raise click.BadParameter(str(e), param_hint="--log-level") from e
    ctx.obj = config


@main.command()
@click.option("--count", "-c", default=2, show_default=True, help="Number of samples to take.")
@click.option("--interval", "-i", type=float, default=None, help="Seconds between samples.")
@click.option("--json", "as_json", is_flag=True, help="Print one JSON object per sample.")
@click.pass_obj
def sample(config: Config, count: int, interval: float | None, as_json: bool) -> None:
    """Print snapshots. The first has no CPU figures: a rate needs two samples."""
    sampling = config.sampling
    facts = SystemFactsProvider(sampling.disk_path) if sampling.include_facts else None
    facade = MetricsFacade(
        source=CounterSource(sampling.proc_root),
        facts=facts,
        top_n=sampling.top_n,
    )
    delay = sampling.poll_rate if interval is None else interval

    for i in range(count):
        if i > 0:
            time.sleep(delay)
        snapshot = facade.sample_once()
        if as_json:
            click.echo(json.dumps(snapshot.to_dict()))
        else:
            if i > 0:
                click.echo("")
            click.echo(render_snapshot(snapshot))


@main.command()
@click.option("-n", "limit", default=3, show_default=True, help="How many processes to list.")
@click.pass_obj
def top(config: Config, limit: int) -> None:
    """List the processes with the most CPU time since they started."""
    ranker = ProcessRanker(CounterSource(config.sampling.proc_root))
    for proc in ranker.top_n(limit):
        click.echo(f"{proc.pid:>7} {proc.name:<16} {proc.cpu_share_percent:8.1f}%")


@main.command()
@click.pass_obj
def facts(config: Config) -> None:
    """Print static host facts."""
    provider = SystemFactsProvider(config.sampling.disk_path)
    click.echo("\n".join(render_facts(provider.collect())))
