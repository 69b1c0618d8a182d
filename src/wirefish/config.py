"""
Configuration management for WireFish.

Loads probe defaults from environment variables or a .env file and
provides the range/timeout validation shared by the CLI and the engines.
"""

import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

from wirefish.errors import ValidationError

# Check common locations for .env
env_locations = [
    Path.home() / ".wirefish" / ".env",
    Path.home() / ".config" / "wirefish" / ".env",
    Path.cwd() / ".env",
]
for env_path in env_locations:
    if env_path.exists():
        load_dotenv(env_path)
        break


# Protocol bounds
MIN_PORT = 1
MAX_PORT = 65535
MIN_TTL = 1
MAX_TTL = 255

# Defaults
DEFAULT_PORTS_FROM = 1
DEFAULT_PORTS_TO = 1024
DEFAULT_TTL_START = 1
DEFAULT_TTL_MAX = 30
DEFAULT_TIMEOUT_MS = 1000
DEFAULT_INTERVAL_MS = 100
DEFAULT_MONITOR_SAMPLES = 10


def _env_int(name: str, default: int) -> int:
    value = os.getenv(name)
    if value is None or value.strip() == "":
        return default
    try:
        return int(value)
    except ValueError:
        raise ValidationError(f"{name} must be an integer, got '{value}'")


@dataclass
class ProbeConfig:
    """Default parameters for scan, trace and monitor runs."""

    # Scan
    ports_from: int = DEFAULT_PORTS_FROM
    ports_to: int = DEFAULT_PORTS_TO
    connect_timeout_ms: int = DEFAULT_TIMEOUT_MS

    # Trace
    ttl_start: int = DEFAULT_TTL_START
    ttl_max: int = DEFAULT_TTL_MAX
    hop_timeout_ms: int = DEFAULT_TIMEOUT_MS

    # Monitor
    iface: str = ""
    interval_ms: int = DEFAULT_INTERVAL_MS
    monitor_samples: int = DEFAULT_MONITOR_SAMPLES

    # Logging
    log_level: str = "WARNING"
    log_file: str = ""

    @classmethod
    def from_env(cls) -> "ProbeConfig":
        """Load configuration from environment variables."""
        return cls(
            ports_from=_env_int("WIREFISH_PORTS_FROM", DEFAULT_PORTS_FROM),
            ports_to=_env_int("WIREFISH_PORTS_TO", DEFAULT_PORTS_TO),
            connect_timeout_ms=_env_int("WIREFISH_CONNECT_TIMEOUT_MS", DEFAULT_TIMEOUT_MS),
            ttl_start=_env_int("WIREFISH_TTL_START", DEFAULT_TTL_START),
            ttl_max=_env_int("WIREFISH_TTL_MAX", DEFAULT_TTL_MAX),
            hop_timeout_ms=_env_int("WIREFISH_HOP_TIMEOUT_MS", DEFAULT_TIMEOUT_MS),
            iface=os.getenv("WIREFISH_IFACE", ""),
            interval_ms=_env_int("WIREFISH_INTERVAL_MS", DEFAULT_INTERVAL_MS),
            monitor_samples=_env_int("WIREFISH_MONITOR_SAMPLES", DEFAULT_MONITOR_SAMPLES),
            log_level=os.getenv("WIREFISH_LOG_LEVEL", "WARNING"),
            log_file=os.getenv("WIREFISH_LOG_FILE", ""),
        )

    def validate(self) -> None:
        """Check every field against its protocol bounds."""
        validate_port_range(self.ports_from, self.ports_to)
        validate_ttl_range(self.ttl_start, self.ttl_max)
        validate_positive("connect_timeout_ms", self.connect_timeout_ms)
        validate_positive("hop_timeout_ms", self.hop_timeout_ms)
        validate_positive("interval_ms", self.interval_ms)
        validate_positive("monitor_samples", self.monitor_samples)


# Global config instance
_config: ProbeConfig | None = None


def get_config() -> ProbeConfig:
    """Get the global configuration instance."""
    global _config
    if _config is None:
        _config = ProbeConfig.from_env()
    return _config


def set_config(config: ProbeConfig) -> None:
    """Set the global configuration instance."""
    global _config
    _config = config


def parse_range(text: str) -> tuple[int, int]:
    """
    Parse a 'from-to' range such as '80-443'.

    Args:
        text: Range string

    Returns:
        (from, to) tuple with from <= to

    Raises:
        ValidationError: On a missing dash, non-numeric bounds or from > to
    """
    start_text, dash, end_text = text.strip().partition("-")
    if not dash:
        raise ValidationError("Range must be in format 'from-to' (ex, 80-443)")

    try:
        start = int(start_text)
    except ValueError:
        raise ValidationError(f"Invalid number before '-' in range '{text}'")
    try:
        end = int(end_text)
    except ValueError:
        raise ValidationError(f"Invalid number after '-' in range '{text}'")

    if start > end:
        raise ValidationError(f"Range start ({start}) cannot be greater than end ({end})")

    return start, end


def _validate_bounds(kind: str, start: int, end: int, low: int, high: int) -> None:
    if not (low <= start <= high and low <= end <= high):
        raise ValidationError(f"{kind} values must be in range {low}-{high}, got {start}-{end}")
    if start > end:
        raise ValidationError(f"Invalid {kind.lower()} range {start}-{end}: start is greater than end")


def validate_port_range(ports_from: int, ports_to: int) -> None:
    """Ports must lie in [1, 65535] with ports_from <= ports_to."""
    _validate_bounds("Port", ports_from, ports_to, MIN_PORT, MAX_PORT)


def validate_ttl_range(ttl_start: int, ttl_max: int) -> None:
    """TTLs must lie in [1, 255] with ttl_start <= ttl_max."""
    _validate_bounds("TTL", ttl_start, ttl_max, MIN_TTL, MAX_TTL)


def validate_positive(name: str, value: int) -> None:
    if value <= 0:
        raise ValidationError(f"{name} must be positive, got {value}")


def validate_target(target: str) -> None:
    if not target or not target.strip():
        raise ValidationError("No target specified")
