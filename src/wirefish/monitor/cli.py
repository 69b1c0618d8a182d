"""
Interface monitor CLI command.
"""

import signal
import sys
import threading

import click
from rich.console import Console

from wirefish.config import get_config
from wirefish.errors import WirefishError
from wirefish.monitor.core import run_monitor
from wirefish.output import render_monitor_series
from wirefish.params import output_options, select_format

console = Console(stderr=True)


@click.command()
@click.option("-i", "--iface", help="Network interface (default: auto-detect)")
@click.option("--interval", "interval_ms", type=click.IntRange(min=1), help="Sample interval in milliseconds")
@click.option("-n", "--samples", type=click.IntRange(min=1), help="Number of samples to collect")
@output_options
def monitor(iface: str | None, interval_ms: int | None, samples: int | None, json_out: bool, csv_out: bool):
    """Sample interface bandwidth from /proc/net/dev.

    Ctrl+C stops early and prints the samples collected so far.

    Examples:
        wirefish monitor --iface eth0 --interval 500
        wirefish monitor -n 30 --csv
    """
    fmt = select_format(json_out, csv_out)
    config = get_config()
    iface = iface or config.iface
    interval_ms = interval_ms or config.interval_ms
    samples = samples or config.monitor_samples

    stop = threading.Event()

    def request_stop(signum, frame):
        stop.set()

    previous = {
        sig: signal.signal(sig, request_stop)
        for sig in (signal.SIGINT, signal.SIGTERM)
    }
    try:
        series = run_monitor(iface, interval_ms, samples, stop_event=stop)
    except WirefishError as e:
        console.print(f"[red]Error:[/red] {e}")
        sys.exit(1)
    finally:
        for sig, handler in previous.items():
            signal.signal(sig, handler)

    render_monitor_series(series, fmt, Console())
