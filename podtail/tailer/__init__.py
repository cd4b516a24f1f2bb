"""Per-container log streaming."""

from podtail.tailer.base import ErrorSink, LogEventFunc, Tailer, TailerFactory
from podtail.tailer.container_tailer import ContainerTailer, make_tailer_factory, split_log_line

__all__ = [
    "ContainerTailer",
    "ErrorSink",
    "LogEventFunc",
    "Tailer",
    "TailerFactory",
    "make_tailer_factory",
    "split_log_line",
]
