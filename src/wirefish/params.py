"""
Shared click parameter types and options.
"""

from typing import Callable

import click

from wirefish.config import parse_range, validate_port_range, validate_ttl_range
from wirefish.errors import ValidationError
from wirefish.output import OutputFormat


class RangeParamType(click.ParamType):
    """A 'from-to' range checked against protocol bounds."""

    name = "range"

    def __init__(self, validator: Callable[[int, int], None]):
        self.validator = validator

    def convert(self, value, param, ctx):
        if isinstance(value, tuple):
            return value
        try:
            start, end = parse_range(value)
            self.validator(start, end)
        except ValidationError as e:
            self.fail(str(e), param, ctx)
        return start, end


PORT_RANGE = RangeParamType(validate_port_range)
TTL_RANGE = RangeParamType(validate_ttl_range)


def output_options(func):
    """--json / --csv flags."""
    func = click.option("--csv", "csv_out", is_flag=True, help="Output in CSV format")(func)
    func = click.option("--json", "json_out", is_flag=True, help="Output in JSON format")(func)
    return func


def select_format(json_out: bool, csv_out: bool) -> OutputFormat:
    if json_out and csv_out:
        raise click.UsageError("Cannot use both --json and --csv")
    if json_out:
        return OutputFormat.JSON
    if csv_out:
        return OutputFormat.CSV
    return OutputFormat.TABLE
