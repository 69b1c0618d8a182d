"""
Rendering of scan, trace and monitor results.

Three formats: a rich table for humans, CSV and JSON for tooling.
Schemas are kept stable for tooling integration.
"""

import csv
import io
import json
from enum import Enum

import click
from rich.console import Console
from rich.table import Table

from wirefish.monitor.core import MonitorSeries
from wirefish.scanner.core import PortState, ScanTable
from wirefish.tracer.core import TraceRoute


class OutputFormat(str, Enum):
    TABLE = "table"
    CSV = "csv"
    JSON = "json"


STATE_STYLES = {
    PortState.OPEN: "green",
    PortState.CLOSED: "red",
    PortState.FILTERED: "yellow",
}


def _csv_text(header: list[str], rows: list[list]) -> str:
    buffer = io.StringIO()
    writer = csv.writer(buffer, lineterminator="\n")
    writer.writerow(header)
    writer.writerows(rows)
    return buffer.getvalue()


def scan_table_csv(table: ScanTable) -> str:
    return _csv_text(
        ["port", "state", "latency_ms"],
        [
            [r.port, r.state.value, "" if r.latency_ms is None else r.latency_ms]
            for r in table
        ],
    )


def traceroute_csv(route: TraceRoute) -> str:
    return _csv_text(
        ["hop", "ip", "host", "rtt_ms", "timeout"],
        [
            [
                h.ttl,
                h.ip,
                h.host,
                "-" if h.rtt_ms is None else h.rtt_ms,
                "true" if h.timed_out else "false",
            ]
            for h in route
        ],
    )


def monitor_series_csv(series: MonitorSeries) -> str:
    return _csv_text(
        ["iface", "rx_bytes", "tx_bytes", "rx_bps", "tx_bps", "rx_avg_bps", "tx_avg_bps"],
        [
            [
                s.iface,
                s.rx_bytes,
                s.tx_bytes,
                f"{s.rx_rate_bps:.2f}",
                f"{s.tx_rate_bps:.2f}",
                f"{s.rx_avg_bps:.2f}",
                f"{s.tx_avg_bps:.2f}",
            ]
            for s in series
        ],
    )


def _print_table(table: ScanTable, console: Console) -> None:
    title = f"Port Scan: {table.target}"
    if table.address and table.address != table.target:
        title += f" ({table.address})"

    out = Table(title=title, box=None)
    out.add_column("Port", style="cyan", width=6)
    out.add_column("State", style="white", width=10)
    out.add_column("Latency", style="dim", width=10)

    for row in table:
        style = STATE_STYLES[row.state]
        latency = "-" if row.latency_ms is None else f"{row.latency_ms} ms"
        out.add_row(str(row.port), f"[{style}]{row.state.value}[/{style}]", latency)

    console.print(out)
    console.print(
        f"[green]Open:[/green] {len(table.by_state(PortState.OPEN))}  "
        f"[red]Closed:[/red] {len(table.by_state(PortState.CLOSED))}  "
        f"[yellow]Filtered:[/yellow] {len(table.by_state(PortState.FILTERED))}"
    )


def _print_route(route: TraceRoute, console: Console) -> None:
    title = f"Traceroute: {route.target}"
    if route.address and route.address != route.target:
        title += f" ({route.address})"

    out = Table(title=title, box=None)
    out.add_column("Hop", style="cyan", width=4)
    out.add_column("IP", style="white", width=16)
    out.add_column("Host", style="dim", width=30)
    out.add_column("RTT", style="white", width=10)
    out.add_column("Status", width=8)

    for hop in route:
        if hop.timed_out:
            out.add_row(str(hop.ttl), hop.ip, hop.host, "-", "[yellow]TIMEOUT[/yellow]")
        else:
            out.add_row(str(hop.ttl), hop.ip, hop.host, f"{hop.rtt_ms} ms", "[green]OK[/green]")

    console.print(out)
    if not route.reached:
        console.print(f"[dim]Destination not reached within {len(route)} hops[/dim]")


def _print_series(series: MonitorSeries, console: Console) -> None:
    out = Table(title=f"Interface: {series.iface}", box=None)
    out.add_column("RX Bytes", style="white", justify="right")
    out.add_column("TX Bytes", style="white", justify="right")
    out.add_column("RX bps", style="cyan", justify="right")
    out.add_column("TX bps", style="cyan", justify="right")
    out.add_column("RX avg bps", style="dim", justify="right")
    out.add_column("TX avg bps", style="dim", justify="right")

    for s in series:
        out.add_row(
            str(s.rx_bytes),
            str(s.tx_bytes),
            f"{s.rx_rate_bps:.2f}",
            f"{s.tx_rate_bps:.2f}",
            f"{s.rx_avg_bps:.2f}",
            f"{s.tx_avg_bps:.2f}",
        )

    console.print(out)
    if series.cancelled:
        console.print("[yellow]Monitoring interrupted[/yellow]")


def render_scan_table(table: ScanTable, fmt: OutputFormat, console: Console | None = None) -> None:
    if fmt == OutputFormat.JSON:
        click.echo(json.dumps(table.to_dict(), indent=2))
    elif fmt == OutputFormat.CSV:
        click.echo(scan_table_csv(table), nl=False)
    else:
        _print_table(table, console or Console())


def render_traceroute(route: TraceRoute, fmt: OutputFormat, console: Console | None = None) -> None:
    if fmt == OutputFormat.JSON:
        click.echo(json.dumps(route.to_dict(), indent=2))
    elif fmt == OutputFormat.CSV:
        click.echo(traceroute_csv(route), nl=False)
    else:
        _print_route(route, console or Console())


def render_monitor_series(series: MonitorSeries, fmt: OutputFormat, console: Console | None = None) -> None:
    if fmt == OutputFormat.JSON:
        click.echo(json.dumps(series.to_dict(), indent=2))
    elif fmt == OutputFormat.CSV:
        click.echo(monitor_series_csv(series), nl=False)
    else:
        _print_series(series, console or Console())
