"""Pod watch source backed by kubernetes-asyncio.

list()  -- one synchronous listing of a namespace.
watch() -- list, then stream ADDED/MODIFIED/DELETED events from the list's
           resourceVersion. Transport errors reconnect with exponential
           back-off; an expired resourceVersion (410 Gone) triggers a relist
           that is reconciled against the pods already delivered, so the
           handler still sees a delete for every pod that vanished meanwhile.
"""

from __future__ import annotations

import asyncio
from typing import Any

import aiohttp
from kubernetes_asyncio import watch
from kubernetes_asyncio.client import V1PodList
from kubernetes_asyncio.client.exceptions import ApiException

from podtail.collector.base import PodEventHandler
from podtail.collector.convert import pod_snapshot_from_k8s
from podtail.errors import ContractViolationError
from podtail.models.pods import PodSnapshot
from podtail.observability.logging import get_logger
from podtail.observability.metrics import watch_errors_total

_log = get_logger("collector.pod_watcher")

_HTTP_GONE = 410
_WATCH_TIMEOUT_SECONDS = 300


class _ResourceExpired(Exception):
    """The watch resourceVersion is too old; a relist is required."""


class PodWatcher:
    """Lists and watches pods through ``CoreV1Api``.

    Args:
        v1:              kubernetes-asyncio ``CoreV1Api`` instance.
        initial_backoff: Seconds to wait after the first consecutive failure.
        max_backoff:     Upper bound for the doubling back-off.
    """

    def __init__(self, v1: Any, initial_backoff: float = 1.0, max_backoff: float = 30.0) -> None:
        self._v1 = v1
        self._initial_backoff = initial_backoff
        self._max_backoff = max_backoff

    async def list(self, namespace: str) -> list[PodSnapshot]:
        pods, _ = await self._list_with_version(namespace)
        return pods

    async def _list_with_version(self, namespace: str) -> tuple[list[PodSnapshot], str]:
        response = await self._v1.list_namespaced_pod(namespace=namespace)
        if not isinstance(response, V1PodList):
            raise ContractViolationError(f"unexpected return type {type(response).__name__} when listing pods")
        pods = [pod_snapshot_from_k8s(item) for item in response.items or []]
        resource_version = response.metadata.resource_version if response.metadata else ""
        return pods, resource_version or ""

    async def watch(self, namespace: str, handler: PodEventHandler) -> None:
        known: dict[str, PodSnapshot] = {}
        resource_version: str | None = None
        backoff = self._initial_backoff

        while True:
            try:
                if resource_version is None:
                    resource_version = await self._relist(namespace, handler, known)
                resource_version = await self._stream(namespace, handler, known, resource_version)
                backoff = self._initial_backoff
            except _ResourceExpired:
                _log.info("watch_resource_version_expired", namespace=namespace)
                resource_version = None
            except ApiException as exc:
                if exc.status == _HTTP_GONE:
                    _log.info("watch_resource_version_expired", namespace=namespace)
                    resource_version = None
                    continue
                backoff = await self._back_off(namespace, exc, backoff)
            except (aiohttp.ClientError, TimeoutError) as exc:
                backoff = await self._back_off(namespace, exc, backoff)

    async def _back_off(self, namespace: str, exc: Exception, backoff: float) -> float:
        watch_errors_total.labels(namespace=namespace).inc()
        _log.warning("watch_error", namespace=namespace, error=str(exc), retry_in=backoff)
        await asyncio.sleep(backoff)
        return min(backoff * 2, self._max_backoff)

    async def _relist(self, namespace: str, handler: PodEventHandler, known: dict[str, PodSnapshot]) -> str:
        """Reconcile *known* against a fresh listing and emit the differences."""
        pods, resource_version = await self._list_with_version(namespace)
        current = {pod.name: pod for pod in pods}

        for name in [n for n in known if n not in current]:
            await self._deliver(handler.on_delete, known.pop(name))
        for name, pod in current.items():
            if name in known:
                await self._deliver(handler.on_update, pod)
            else:
                await self._deliver(handler.on_add, pod)
            known[name] = pod

        _log.debug("namespace_relisted", namespace=namespace, pods=len(current))
        return resource_version

    async def _stream(
        self,
        namespace: str,
        handler: PodEventHandler,
        known: dict[str, PodSnapshot],
        resource_version: str,
    ) -> str:
        """Consume one watch connection; returns the last resourceVersion seen."""
        async with watch.Watch().stream(
            self._v1.list_namespaced_pod,
            namespace=namespace,
            resource_version=resource_version,
            timeout_seconds=_WATCH_TIMEOUT_SECONDS,
        ) as stream:
            async for event in stream:
                event_type = event["type"]
                if event_type == "ERROR":
                    raw = event.get("raw_object") or {}
                    if raw.get("code") == _HTTP_GONE:
                        raise _ResourceExpired()
                    raise ApiException(status=raw.get("code", 0), reason=raw.get("message", "watch error"))

                obj = event["object"]
                pod = pod_snapshot_from_k8s(obj)
                if obj.metadata and obj.metadata.resource_version:
                    resource_version = obj.metadata.resource_version

                if event_type == "ADDED":
                    known[pod.name] = pod
                    await self._deliver(handler.on_add, pod)
                elif event_type == "MODIFIED":
                    known[pod.name] = pod
                    await self._deliver(handler.on_update, pod)
                elif event_type == "DELETED":
                    known.pop(pod.name, None)
                    await self._deliver(handler.on_delete, pod)
        return resource_version

    async def _deliver(self, fn: Any, pod: PodSnapshot) -> None:
        # A failing handler must not stop event delivery for the namespace.
        try:
            await fn(pod)
        except Exception:
            _log.exception("pod_event_handler_failed", namespace=pod.namespace, pod=pod.name)
