"""
Port scan CLI command.
"""

import sys

import click
from rich.console import Console

from wirefish.config import get_config
from wirefish.errors import WirefishError
from wirefish.output import OutputFormat, render_scan_table
from wirefish.params import PORT_RANGE, output_options, select_format
from wirefish.scanner.core import run_port_scan

console = Console(stderr=True)


@click.command()
@click.argument("target")
@click.option("-p", "--ports", type=PORT_RANGE, help="Port range, e.g. 80-443 (default: 1-1024)")
@click.option("-t", "--timeout-ms", type=click.IntRange(min=1), help="Connect timeout per port in milliseconds")
@output_options
def scan(target: str, ports: tuple[int, int] | None, timeout_ms: int | None, json_out: bool, csv_out: bool):
    """TCP connect scan of a port range on a host.

    Examples:
        wirefish scan 127.0.0.1 -p 1-1024
        wirefish scan example.com -p 80-443 --json
    """
    fmt = select_format(json_out, csv_out)
    config = get_config()
    ports_from, ports_to = ports or (config.ports_from, config.ports_to)
    timeout_ms = timeout_ms or config.connect_timeout_ms

    try:
        if fmt == OutputFormat.TABLE:
            with console.status(f"[cyan]Scanning {target} ports {ports_from}-{ports_to}...[/cyan]"):
                table = run_port_scan(target, ports_from, ports_to, timeout_ms)
        else:
            table = run_port_scan(target, ports_from, ports_to, timeout_ms)
    except WirefishError as e:
        console.print(f"[red]Error:[/red] {e}")
        sys.exit(1)

    render_scan_table(table, fmt, Console())
