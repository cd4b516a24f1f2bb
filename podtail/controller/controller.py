"""Reconciliation controller.

Turns the pod event stream of one or more namespaces into container-level
start/stop decisions and keeps at most one tailing session per container.

Lifecycle:
    run() lists every namespace, starts sessions for the containers found
    (the initial-add pass), then spawns one watch task per namespace and
    blocks until cancelled. Cancelling run() stops the watch tasks only;
    sessions already started keep streaming until a pod update or delete
    stops them, or their stream ends. A namespace watch that stops with an
    error ends run() with that error.
"""

from __future__ import annotations

import asyncio
import copy
from collections.abc import Sequence

from podtail.collector.base import WatchSource
from podtail.controller.callbacks import Callbacks
from podtail.controller.policy import should_include_container
from podtail.controller.registry import Session, SessionRegistry
from podtail.controller.timestamps import StartTimestampUnresolved, resolve_start_timestamp
from podtail.errors import ContractViolationError, ListPodsError, WatchError
from podtail.models.config import ControllerOptions
from podtail.models.pods import ContainerKey, ContainerSpec, PodSnapshot
from podtail.observability import metrics
from podtail.observability.logging import get_logger
from podtail.tailer.base import TailerFactory

_log = get_logger("controller")


class Controller:
    """Owns the session registry and drives tailer lifecycle.

    Args:
        source:         Watch source supplying pod listings and events.
        options:        Namespaces, matchers, container filter, since policy.
        callbacks:      Embedder callbacks.
        tailer_factory: Builds a Tailer for one container.
    """

    def __init__(
        self,
        source: WatchSource,
        options: ControllerOptions,
        callbacks: Callbacks,
        tailer_factory: TailerFactory,
    ) -> None:
        self._source = source
        self._options = options
        self._callbacks = callbacks
        self._tailer_factory = tailer_factory
        self._registry = SessionRegistry()
        self._watch_tasks: dict[asyncio.Task[None], str] = {}

        # Set once every namespace has been listed and initially added.
        self.synced = asyncio.Event()

    @property
    def registry(self) -> SessionRegistry:
        return self._registry

    # ------------------------------------------------------------------
    # Run loop
    # ------------------------------------------------------------------

    async def run(self) -> None:
        """List, initially add, watch, then block until cancelled.

        Raises:
            ListPodsError:          the initial listing of a namespace failed.
            ContractViolationError: a listing returned something other than pods.
            WatchError:             a namespace watch stopped with an unexpected error.
            asyncio.CancelledError: on cancellation, after watch tasks are stopped.
        """
        discovered_any = False
        try:
            for namespace in self._options.namespaces:
                pods = await self._list(namespace)
                for pod in pods:
                    if await self._on_initial_add(pod):
                        discovered_any = True

                task = asyncio.create_task(self._source.watch(namespace, self), name=f"watch-{namespace}")
                self._watch_tasks[task] = namespace
                _log.debug("namespace_watch_started", namespace=namespace)

            if not discovered_any:
                _log.info("no_containers_discovered", namespaces=self._options.namespaces)
                self._callbacks.on_nothing_discovered()

            self.synced.set()
            await self._wait_for_watch_failure()
        finally:
            await self._stop_watchers()

    async def _wait_for_watch_failure(self) -> None:
        """Block until cancelled, re-raising the first error a namespace watch stops with."""
        forever = asyncio.get_running_loop().create_future()
        try:
            done, _ = await asyncio.wait({forever, *self._watch_tasks}, return_when=asyncio.FIRST_EXCEPTION)
        finally:
            forever.cancel()

        for task in done:
            if task is forever or task.cancelled() or task.exception() is None:
                continue
            namespace = self._watch_tasks[task]
            exc = task.exception()
            _log.error("namespace_watch_failed", namespace=namespace, error=str(exc))
            if isinstance(exc, ContractViolationError):
                raise exc
            raise WatchError(namespace, exc) from exc

    async def _list(self, namespace: str) -> Sequence[PodSnapshot]:
        try:
            pods = await self._source.list(namespace)
        except ContractViolationError:
            raise
        except Exception as exc:
            _log.error("pod_listing_failed", namespace=namespace, error=str(exc))
            raise ListPodsError(namespace, exc) from exc

        if not isinstance(pods, list | tuple):
            raise ContractViolationError(f"unexpected return type {type(pods).__name__} when listing pods")
        for pod in pods:
            if not isinstance(pod, PodSnapshot):
                raise ContractViolationError(f"unexpected item type {type(pod).__name__} when listing pods")
        return pods

    async def _stop_watchers(self) -> None:
        for task in self._watch_tasks:
            if not task.done():
                task.cancel()
        if self._watch_tasks:
            await asyncio.gather(*self._watch_tasks, return_exceptions=True)
        self._watch_tasks.clear()

    # ------------------------------------------------------------------
    # Event routing
    # ------------------------------------------------------------------

    async def _on_initial_add(self, pod: PodSnapshot) -> bool:
        added = False
        for container in (*pod.init_containers, *pod.containers):
            if should_include_container(self._options, pod, container):
                await self.add_container(pod, container, initial_add=True)
                added = True
        return added

    async def on_add(self, pod: PodSnapshot) -> None:
        for container in (*pod.init_containers, *pod.containers):
            if should_include_container(self._options, pod, container):
                await self.add_container(pod, container, initial_add=False)

    async def on_update(self, pod: PodSnapshot) -> None:
        # Only regular container specs are consulted, so init container
        # statuses never resolve to a spec here.
        for status in pod.all_container_statuses():
            container = pod.container(status.name)
            if container is None:
                continue
            if should_include_container(self._options, pod, container):
                await self.add_container(pod, container, initial_add=False)
            else:
                await self.delete_container(pod, container)

    async def on_delete(self, pod: PodSnapshot) -> None:
        for container in pod.containers:
            await self.delete_container(pod, container)

    # ------------------------------------------------------------------
    # Session lifecycle
    # ------------------------------------------------------------------

    async def add_container(self, pod: PodSnapshot, container: ContainerSpec, initial_add: bool) -> None:
        """Start a session for *container* unless one is already registered."""
        key = ContainerKey.for_container(pod, container)
        async with self._registry.lock:
            if key in self._registry:
                return

            if not self._callbacks.on_enter(pod, container, initial_add):
                _log.debug("session_vetoed", container=str(key))
                return

            try:
                from_timestamp = resolve_start_timestamp(self._options, pod, container, initial_add)
            except StartTimestampUnresolved:
                _log.debug("session_not_ready", container=str(key))
                return

            target_pod = copy.deepcopy(pod)
            target_container = copy.deepcopy(container)

            tailer = self._tailer_factory(target_pod, target_container, self._callbacks.on_event, from_timestamp)
            session = Session(key=key, tailer=tailer)
            self._registry.insert(session)
            session.task = asyncio.create_task(
                self._run_session(session, target_pod, target_container),
                name=f"tail-{key}",
            )

            metrics.sessions_started_total.labels(namespace=key.namespace).inc()
            metrics.active_sessions.set(len(self._registry))
            _log.info(
                "session_started",
                container=str(key),
                initial=initial_add,
                since=from_timestamp.isoformat() if from_timestamp else None,
            )

    async def delete_container(self, pod: PodSnapshot, container: ContainerSpec) -> None:
        """Stop the session for *container*; a no-op if none is registered."""
        key = ContainerKey.for_container(pod, container)
        async with self._registry.lock:
            session = self._registry.remove(key)
            if session is None:
                return
            session.tailer.stop()
            self._callbacks.on_exit(pod, container)

            metrics.sessions_stopped_total.labels(namespace=key.namespace).inc()
            metrics.active_sessions.set(len(self._registry))
            _log.info("session_stopped", container=str(key))

    async def _run_session(self, session: Session, pod: PodSnapshot, container: ContainerSpec) -> None:
        def _on_error(error: Exception) -> None:
            metrics.tailer_errors_total.labels(namespace=pod.namespace).inc()
            self._callbacks.on_error(pod, container, error)

        try:
            await session.tailer.run(_on_error)
        except Exception as exc:
            _on_error(exc)
        _log.debug("session_finished", container=str(session.key))
