"""
WireFish command-line entry point.
"""

import click

from wirefish import __version__
from wirefish.config import get_config
from wirefish.errors import ValidationError
from wirefish.logging_config import configure_logging
from wirefish.monitor.cli import monitor
from wirefish.scanner.cli import scan
from wirefish.tracer.cli import trace


@click.group()
@click.version_option(__version__, prog_name="wirefish")
@click.option("--debug", is_flag=True, help="Enable debug logging")
@click.option("--log-file", type=click.Path(dir_okay=False), help="Also write logs to this file")
def main(debug: bool, log_file: str | None):
    """WireFish - Network reconnaissance and monitoring tool.

    \b
    Examples:
        wirefish scan google.com --ports 80-443
        sudo wirefish trace 8.8.8.8 --json
        wirefish monitor --iface eth0 --interval 500
    """
    try:
        config = get_config()
        config.validate()
    except ValidationError as e:
        raise click.UsageError(f"Invalid configuration: {e}")
    configure_logging(debug=debug, log_file=log_file or config.log_file or None, level=config.log_level)


main.add_command(scan)
main.add_command(trace)
main.add_command(monitor)


if __name__ == "__main__":
    main()
