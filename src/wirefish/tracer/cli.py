"""
Traceroute CLI command.
"""

import sys

import click
from rich.console import Console

from wirefish.config import get_config
from wirefish.errors import RawSocketPermissionError, WirefishError
from wirefish.output import OutputFormat, render_traceroute
from wirefish.params import TTL_RANGE, output_options, select_format
from wirefish.tracer.core import run_traceroute

console = Console(stderr=True)


@click.command()
@click.argument("target")
@click.option("--ttl", type=TTL_RANGE, help="TTL range, e.g. 1-30 (default: 1-30)")
@click.option("-t", "--timeout-ms", type=click.IntRange(min=1), help="Reply timeout per hop in milliseconds")
@click.option("--no-dns", is_flag=True, help="Don't reverse-resolve hop addresses")
@output_options
def trace(
    target: str,
    ttl: tuple[int, int] | None,
    timeout_ms: int | None,
    no_dns: bool,
    json_out: bool,
    csv_out: bool,
):
    """ICMP traceroute to a host.

    Requires root or CAP_NET_RAW.

    Examples:
        sudo wirefish trace 8.8.8.8
        sudo wirefish trace example.com --ttl 1-20 --csv
    """
    fmt = select_format(json_out, csv_out)
    config = get_config()
    ttl_start, ttl_max = ttl or (config.ttl_start, config.ttl_max)
    timeout_ms = timeout_ms or config.hop_timeout_ms

    try:
        if fmt == OutputFormat.TABLE:
            with console.status(f"[cyan]Tracing route to {target}...[/cyan]"):
                route = run_traceroute(target, ttl_start, ttl_max, timeout_ms, resolve_names=not no_dns)
        else:
            route = run_traceroute(target, ttl_start, ttl_max, timeout_ms, resolve_names=not no_dns)
    except RawSocketPermissionError as e:
        console.print(f"[red]Error:[/red] Permission denied. {e.hint}")
        sys.exit(1)
    except WirefishError as e:
        console.print(f"[red]Error:[/red] {e}")
        sys.exit(1)

    render_traceroute(route, fmt, Console())
