"""Shared fixtures for podtail controller integration tests.

Provides an in-memory watch source, a tailer factory that records every
tailer it builds, and callbacks that record every invocation, so the
controller can be exercised end to end without a cluster.
"""

from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator, Awaitable, Callable
from datetime import datetime

import pytest

from podtail.collector.base import PodEventHandler
from podtail.controller import Callbacks, Controller
from podtail.matching import build_exclusion_matcher, build_inclusion_matcher
from podtail.models.config import ControllerOptions
from podtail.models.pods import ContainerSpec, LogEvent, PodSnapshot
from podtail.tailer.base import ErrorSink, LogEventFunc

# ---------------------------------------------------------------------------
# Fakes
# ---------------------------------------------------------------------------


class FakeTailer:
    """Runs until stopped; optionally reports an error or emits lines first."""

    def __init__(
        self,
        pod: PodSnapshot,
        container: ContainerSpec,
        on_event: LogEventFunc,
        from_timestamp: datetime | None,
        fail_with: Exception | None = None,
        lines: tuple[str, ...] = (),
    ) -> None:
        self.pod = pod
        self.container = container
        self.on_event = on_event
        self.from_timestamp = from_timestamp
        self.fail_with = fail_with
        self.lines = lines
        self.stop_calls = 0
        self.started = asyncio.Event()
        self._stopped = asyncio.Event()

    async def run(self, on_error: ErrorSink) -> None:
        self.started.set()
        for line in self.lines:
            self.on_event(LogEvent(pod=self.pod, container=self.container, message=line))
        if self.fail_with is not None:
            on_error(self.fail_with)
            return
        await self._stopped.wait()

    def stop(self) -> None:
        self.stop_calls += 1
        self._stopped.set()


class FakeTailerFactory:
    def __init__(self) -> None:
        self.tailers: list[FakeTailer] = []
        self.fail_with: dict[str, Exception] = {}
        self.lines: tuple[str, ...] = ()

    def __call__(
        self,
        pod: PodSnapshot,
        container: ContainerSpec,
        on_event: LogEventFunc,
        from_timestamp: datetime | None,
    ) -> FakeTailer:
        tailer = FakeTailer(
            pod,
            container,
            on_event,
            from_timestamp,
            fail_with=self.fail_with.get(container.name),
            lines=self.lines,
        )
        self.tailers.append(tailer)
        return tailer

    def for_container(self, name: str) -> list[FakeTailer]:
        return [t for t in self.tailers if t.container.name == name]


class FakeWatchSource:
    """Serves fixed listings and exposes the handler each namespace watch receives."""

    def __init__(self) -> None:
        self.pods: dict[str, list[PodSnapshot]] = {}
        self.list_errors: dict[str, Exception] = {}
        self.list_override: object | None = None
        self.handlers: dict[str, PodEventHandler] = {}
        self.cancelled: set[str] = set()
        self.watch_errors: dict[str, Exception] = {}

    async def list(self, namespace: str) -> list[PodSnapshot]:
        await asyncio.sleep(0)
        if namespace in self.list_errors:
            raise self.list_errors[namespace]
        if self.list_override is not None:
            return self.list_override  # type: ignore[return-value]
        return list(self.pods.get(namespace, []))

    async def watch(self, namespace: str, handler: PodEventHandler) -> None:
        self.handlers[namespace] = handler
        if namespace in self.watch_errors:
            await asyncio.sleep(0)
            raise self.watch_errors[namespace]
        try:
            await asyncio.Event().wait()
        except asyncio.CancelledError:
            self.cancelled.add(namespace)
            raise


class RecordingCallbacks:
    def __init__(self) -> None:
        self.entered: list[tuple[str, bool]] = []
        self.exited: list[str] = []
        self.errors: list[tuple[str, Exception]] = []
        self.events: list[LogEvent] = []
        self.nothing_discovered = 0
        self.veto: set[str] = set()
        self.raise_on_enter: dict[str, Exception] = {}

    @staticmethod
    def _key(pod: PodSnapshot, container: ContainerSpec) -> str:
        return f"{pod.namespace}/{pod.name}/{container.name}"

    def callbacks(self) -> Callbacks:
        def on_enter(pod: PodSnapshot, container: ContainerSpec, initial_add: bool) -> bool:
            self.entered.append((self._key(pod, container), initial_add))
            if container.name in self.raise_on_enter:
                raise self.raise_on_enter[container.name]
            return container.name not in self.veto

        def on_exit(pod: PodSnapshot, container: ContainerSpec) -> None:
            self.exited.append(self._key(pod, container))

        def on_error(pod: PodSnapshot, container: ContainerSpec, error: Exception) -> None:
            self.errors.append((self._key(pod, container), error))

        def on_nothing_discovered() -> None:
            self.nothing_discovered += 1

        return Callbacks(
            on_event=self.events.append,
            on_enter=on_enter,
            on_exit=on_exit,
            on_error=on_error,
            on_nothing_discovered=on_nothing_discovered,
        )

    @property
    def entered_keys(self) -> list[str]:
        return [key for key, _ in self.entered]


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def source() -> FakeWatchSource:
    return FakeWatchSource()


@pytest.fixture
def tailers() -> FakeTailerFactory:
    return FakeTailerFactory()


@pytest.fixture
def recorder() -> RecordingCallbacks:
    return RecordingCallbacks()


@pytest.fixture
async def make_controller(
    source: FakeWatchSource,
    tailers: FakeTailerFactory,
    recorder: RecordingCallbacks,
) -> AsyncIterator[Callable[..., Controller]]:
    made: list[Controller] = []

    def _make(
        namespaces: tuple[str, ...] = ("ns1",),
        include: tuple[str, ...] = (),
        exclude: tuple[str, ...] = (),
        container_name: str = "",
        since_start: bool = False,
        since: datetime | None = None,
    ) -> Controller:
        options = ControllerOptions(
            namespaces=list(namespaces),
            inclusion_matcher=build_inclusion_matcher(list(include)),
            exclusion_matcher=build_exclusion_matcher(list(exclude)),
            container_name=container_name,
            since_start=since_start,
            since=since,
        )
        controller = Controller(source, options, recorder.callbacks(), tailers)
        made.append(controller)
        return controller

    yield _make

    for controller in made:
        for session in controller.registry.sessions():
            session.tailer.stop()
            if session.task is not None:
                await asyncio.gather(session.task, return_exceptions=True)


@pytest.fixture
async def start_controller() -> AsyncIterator[Callable[[Controller], Awaitable[asyncio.Task[None]]]]:
    """Start ``controller.run()`` and wait until the initial pass is done."""
    started: list[asyncio.Task[None]] = []

    async def _start(controller: Controller) -> asyncio.Task[None]:
        task = asyncio.create_task(controller.run())
        started.append(task)
        synced = asyncio.create_task(controller.synced.wait())
        await asyncio.wait({task, synced}, timeout=2.0, return_when=asyncio.FIRST_COMPLETED)
        synced.cancel()
        return task

    yield _start

    for task in started:
        task.cancel()
        await asyncio.gather(task, return_exceptions=True)
