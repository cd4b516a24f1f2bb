"""Core data structures for podtail."""

from podtail.models.config import ControllerOptions, LogConfig, PodTailConfig, TailerConfig
from podtail.models.pods import (
    ContainerKey,
    ContainerSpec,
    ContainerState,
    ContainerStatus,
    LogEvent,
    PodPhase,
    PodSnapshot,
)

__all__ = [
    "ContainerKey",
    "ContainerSpec",
    "ContainerState",
    "ContainerStatus",
    "ControllerOptions",
    "LogConfig",
    "LogEvent",
    "PodPhase",
    "PodSnapshot",
    "PodTailConfig",
    "TailerConfig",
]
