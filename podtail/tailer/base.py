"""Interface between the controller and a container log stream."""

from __future__ import annotations

from collections.abc import Callable
from datetime import datetime
from typing import Protocol

from podtail.models.pods import ContainerSpec, LogEvent, PodSnapshot

LogEventFunc = Callable[[LogEvent], None]
ErrorSink = Callable[[Exception], None]


class Tailer(Protocol):
    """Owns the log stream of one container."""

    async def run(self, on_error: ErrorSink) -> None:
        """Stream until stopped or the stream ends, reporting failures to *on_error*."""
        ...

    def stop(self) -> None:
        """Stop streaming. Idempotent; safe before ``run`` has started."""
        ...


class TailerFactory(Protocol):
    def __call__(
        self,
        pod: PodSnapshot,
        container: ContainerSpec,
        on_event: LogEventFunc,
        from_timestamp: datetime | None,
    ) -> Tailer: ...
