"""Configuration loading from environment variables."""

from __future__ import annotations

import os
import re
from datetime import UTC, datetime, timedelta

from podtail.models.config import LogConfig, PodTailConfig, TailerConfig
from podtail.observability.logging import LOG_FORMATS

_RE_DURATION = re.compile(r"^([0-9]+)(s|m|h|d)$")
_DURATION_UNITS = {"s": "seconds", "m": "minutes", "h": "hours", "d": "days"}
_OUTPUT_FORMATS = {"text", "json"}


def _env(key: str, default: str = "") -> str:
    return os.environ.get(f"PODTAIL_{key}", default)


def _env_bool(key: str, default: bool = False) -> bool:
    val = _env(key, str(default).lower())
    return val.lower() in ("true", "1", "yes")


def _env_int(key: str, default: int, min_val: int | None = None, max_val: int | None = None) -> int:
    val = int(_env(key, str(default)))
    if min_val is not None:
        val = max(val, min_val)
    if max_val is not None:
        val = min(val, max_val)
    return val


def _env_list(key: str) -> list[str]:
    return [item.strip() for item in _env(key).split(",") if item.strip()]


def parse_since(value: str, now: datetime | None = None) -> datetime:
    """Parse a relative duration (``30s``, ``10m``, ``2h``, ``1d``) or an ISO-8601 instant.

    Relative durations are resolved against *now*. Naive instants are taken
    as UTC.
    """
    value = value.strip()
    match = _RE_DURATION.match(value)
    if match:
        amount, unit = match.groups()
        delta = timedelta(**{_DURATION_UNITS[unit]: int(amount)})
        return (now or datetime.now(tz=UTC)) - delta
    try:
        instant = datetime.fromisoformat(value)
    except ValueError:
        raise ValueError(f"Invalid since value: {value!r}. Use a duration like 10m or an ISO-8601 time") from None
    if instant.tzinfo is None:
        instant = instant.replace(tzinfo=UTC)
    return instant


def _validate_log_level(value: str) -> str:
    valid = {"debug", "info", "warning", "error"}
    if value.lower() not in valid:
        raise ValueError(f"Invalid log level: {value}. Must be one of {valid}")
    return value.lower()


def _validate_log_format(value: str) -> str:
    if value.lower() not in LOG_FORMATS:
        raise ValueError(f"Invalid log format: {value}. Must be one of {set(LOG_FORMATS)}")
    return value.lower()


def _validate_output(value: str) -> str:
    if value.lower() not in _OUTPUT_FORMATS:
        raise ValueError(f"Invalid output format: {value}. Must be one of {_OUTPUT_FORMATS}")
    return value.lower()


def validate_config(config: PodTailConfig) -> PodTailConfig:
    """Check cross-field constraints after environment and CLI values are merged."""
    if config.since_start and config.since is not None:
        raise ValueError("since and since-start are mutually exclusive")
    if not config.all_namespaces and not config.namespaces:
        raise ValueError("At least one namespace is required")
    config.output = _validate_output(config.output)
    config.log.level = _validate_log_level(config.log.level)
    config.log.format = _validate_log_format(config.log.format)
    return config


def load_config() -> PodTailConfig:
    """Load configuration from PODTAIL_* environment variables."""
    since_raw = _env("SINCE", "")
    return PodTailConfig(
        namespaces=_env_list("NAMESPACES") or ["default"],
        all_namespaces=_env_bool("ALL_NAMESPACES", False),
        include=_env_list("INCLUDE"),
        exclude=_env_list("EXCLUDE"),
        container_name=_env("CONTAINER", ""),
        since_start=_env_bool("SINCE_START", False),
        since=parse_since(since_raw) if since_raw else None,
        output=_validate_output(_env("OUTPUT", "text")),
        quiet=_env_bool("QUIET", False),
        metrics_port=_env_int("METRICS_PORT", 0, min_val=0, max_val=65535),
        tailer=TailerConfig(
            max_retries=_env_int("TAILER_MAX_RETRIES", 5, min_val=0, max_val=10),
        ),
        log=LogConfig(
            level=_validate_log_level(_env("LOG_LEVEL", "info")),
            format=_validate_log_format(_env("LOG_FORMAT", "auto")),
        ),
    )
