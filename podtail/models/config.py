"""Configuration data structures."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from podtail.matching import Matcher


@dataclass
class ControllerOptions:
    """Static controller configuration.

    ``since_start`` takes precedence over ``since``; when neither is set the
    controller tails from "now" for containers found at startup.
    """

    namespaces: list[str]
    inclusion_matcher: Matcher
    exclusion_matcher: Matcher
    container_name: str = ""
    since_start: bool = False
    since: datetime | None = None


@dataclass
class TailerConfig:
    """Per-container log stream configuration."""

    max_retries: int = 5
    initial_backoff: float = 1.0
    max_backoff: float = 30.0


@dataclass
class LogConfig:
    """Logging configuration."""

    level: str = "info"
    format: str = "auto"


@dataclass
class PodTailConfig:
    """Top-level podtail configuration."""

    namespaces: list[str] = field(default_factory=lambda: ["default"])
    all_namespaces: bool = False
    include: list[str] = field(default_factory=list)
    exclude: list[str] = field(default_factory=list)
    container_name: str = ""
    since_start: bool = False
    since: datetime | None = None
    output: str = "text"
    quiet: bool = False
    metrics_port: int = 0
    tailer: TailerConfig = field(default_factory=TailerConfig)
    log: LogConfig = field(default_factory=LogConfig)
