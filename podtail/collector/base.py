"""Interfaces between the controller and the pod watch source."""

from __future__ import annotations

from collections.abc import Sequence
from typing import Protocol

from podtail.models.pods import PodSnapshot


class PodEventHandler(Protocol):
    """Receives pod lifecycle notifications for one namespace, in order."""

    async def on_add(self, pod: PodSnapshot) -> None: ...

    async def on_update(self, pod: PodSnapshot) -> None: ...

    async def on_delete(self, pod: PodSnapshot) -> None: ...


class WatchSource(Protocol):
    """Initial listing plus a live add/update/delete stream per namespace."""

    async def list(self, namespace: str) -> Sequence[PodSnapshot]:
        """List the pods currently in *namespace*."""
        ...

    async def watch(self, namespace: str, handler: PodEventHandler) -> None:
        """Deliver events to *handler* until cancelled.

        Pods that exist when watching starts are delivered as adds; the
        handler is expected to ignore pods it already knows about.
        """
        ...
