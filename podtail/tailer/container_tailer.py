"""Log stream of a single container.

Uses the follow API of ``read_namespaced_pod_log`` with timestamps enabled,
so every line carries an RFC 3339 prefix. The prefix is used to drop lines
older than the requested start point (the API only accepts whole seconds)
and to resume without duplicates after a reconnect.
"""

from __future__ import annotations

import asyncio
import math
import re
from datetime import UTC, datetime
from typing import Any

import aiohttp
from kubernetes_asyncio.client.exceptions import ApiException

from podtail.models.config import TailerConfig
from podtail.models.pods import ContainerSpec, LogEvent, PodSnapshot
from podtail.observability.logging import get_logger
from podtail.observability.metrics import log_lines_total
from podtail.tailer.base import ErrorSink, LogEventFunc, TailerFactory

_log = get_logger("tailer")

_RE_TIMESTAMP = re.compile(r"^(\d{4}-\d{2}-\d{2}T\d{2}:\d{2}:\d{2})(?:\.(\d+))?(Z|[+-]\d{2}:\d{2})$")


def parse_log_timestamp(value: str) -> datetime | None:
    """Parse an RFC 3339 timestamp with up to nanosecond precision."""
    match = _RE_TIMESTAMP.match(value)
    if match is None:
        return None
    base, fraction, zone = match.groups()
    micros = (fraction or "")[:6].ljust(6, "0")
    offset = "+00:00" if zone == "Z" else zone
    try:
        return datetime.fromisoformat(f"{base}.{micros}{offset}")
    except ValueError:
        return None


def split_log_line(line: str) -> tuple[datetime | None, str]:
    """Split ``<timestamp> <message>``; lines without a timestamp keep all text."""
    prefix, sep, rest = line.partition(" ")
    timestamp = parse_log_timestamp(prefix)
    if timestamp is None:
        return None, line
    return timestamp, rest if sep else ""


def since_seconds(since: datetime, now: datetime | None = None) -> int:
    """Whole seconds between *since* and now, rounded up, at least 1."""
    delta = ((now or datetime.now(tz=UTC)) - since).total_seconds()
    return max(1, math.ceil(delta))


class ContainerTailer:
    """Streams one container's log lines to *on_event*.

    Args:
        v1:             kubernetes-asyncio ``CoreV1Api``.
        pod:            Snapshot of the owning pod.
        container:      Container to stream.
        on_event:       Receives every emitted LogEvent.
        from_timestamp: Earliest line to emit; None streams everything.
        config:         Retry and back-off settings.
    """

    def __init__(
        self,
        v1: Any,
        pod: PodSnapshot,
        container: ContainerSpec,
        on_event: LogEventFunc,
        from_timestamp: datetime | None,
        config: TailerConfig | None = None,
    ) -> None:
        self._v1 = v1
        self._pod = pod
        self._container = container
        self._on_event = on_event
        self._from = from_timestamp
        self._config = config or TailerConfig()

        self._stop_event = asyncio.Event()
        self._response: Any = None
        self._last_seen: datetime | None = None
        self._resume_after: datetime | None = None
        self._received = 0

    @property
    def stopped(self) -> bool:
        return self._stop_event.is_set()

    def stop(self) -> None:
        if self._stop_event.is_set():
            return
        self._stop_event.set()
        response = self._response
        if response is not None:
            response.close()

    async def run(self, on_error: ErrorSink) -> None:
        """Stream until stopped, the stream ends, or retries are exhausted."""
        failures = 0
        backoff = self._config.initial_backoff

        while not self.stopped:
            self._received = 0
            try:
                await self._stream_once()
                return
            except (ApiException, aiohttp.ClientError, TimeoutError) as exc:
                if self.stopped:
                    return
                on_error(exc)

            if self._received:
                failures = 0
                backoff = self._config.initial_backoff
            failures += 1
            if failures > self._config.max_retries:
                _log.warning(
                    "tailer_giving_up",
                    namespace=self._pod.namespace,
                    pod=self._pod.name,
                    container=self._container.name,
                    attempts=failures,
                )
                return

            self._resume_after = self._last_seen
            if await self._wait_for_stop(backoff):
                return
            backoff = min(backoff * 2, self._config.max_backoff)

    async def _wait_for_stop(self, timeout: float) -> bool:
        try:
            await asyncio.wait_for(self._stop_event.wait(), timeout=timeout)
        except TimeoutError:
            return False
        return True

    async def _stream_once(self) -> None:
        kwargs: dict[str, Any] = {
            "name": self._pod.name,
            "namespace": self._pod.namespace,
            "container": self._container.name,
            "follow": True,
            "timestamps": True,
            "_preload_content": False,
        }
        start = self._resume_after or self._from
        if start is not None:
            kwargs["since_seconds"] = since_seconds(start)

        response = await self._v1.read_namespaced_pod_log(**kwargs)
        self._response = response
        try:
            if self.stopped:
                return
            async for raw in response.content:
                self._handle_line(raw.decode("utf-8", errors="replace").rstrip("\r\n"))
        finally:
            self._response = None
            response.close()

    def _handle_line(self, line: str) -> None:
        timestamp, message = split_log_line(line)
        self._received += 1
        if timestamp is not None:
            if self._resume_after is not None and timestamp <= self._resume_after:
                return
            if self._resume_after is None and self._from is not None and timestamp < self._from:
                return
            self._last_seen = timestamp

        log_lines_total.inc()
        self._on_event(LogEvent(pod=self._pod, container=self._container, message=message, timestamp=timestamp))


def make_tailer_factory(v1: Any, config: TailerConfig | None = None) -> TailerFactory:
    """Bind the API client and retry settings for the controller."""

    def _factory(
        pod: PodSnapshot,
        container: ContainerSpec,
        on_event: LogEventFunc,
        from_timestamp: datetime | None,
    ) -> ContainerTailer:
        return ContainerTailer(v1, pod, container, on_event, from_timestamp, config=config)

    return _factory
