"""Pod and status factories shared by unit and integration tests."""

from __future__ import annotations

from collections.abc import Iterable
from datetime import UTC, datetime

from podtail.models.pods import ContainerSpec, ContainerState, ContainerStatus, PodPhase, PodSnapshot

STARTED_AT = datetime(2026, 2, 18, 12, 0, 0, tzinfo=UTC)


def running(name: str, started_at: datetime = STARTED_AT) -> ContainerStatus:
    return ContainerStatus(name=name, state=ContainerState.RUNNING, started_at=started_at)


def waiting(name: str) -> ContainerStatus:
    return ContainerStatus(name=name, state=ContainerState.WAITING)


def terminated(name: str) -> ContainerStatus:
    return ContainerStatus(name=name, state=ContainerState.TERMINATED)


def make_pod(
    name: str = "p1",
    namespace: str = "ns1",
    phase: PodPhase | str = PodPhase.RUNNING,
    containers: Iterable[str] = ("c1",),
    init_containers: Iterable[str] = (),
    statuses: Iterable[ContainerStatus] | None = None,
    init_statuses: Iterable[ContainerStatus] | None = None,
) -> PodSnapshot:
    """Build a PodSnapshot; by default every container has a status.

    Regular containers default to running, init containers to terminated.
    """
    containers = tuple(containers)
    init_containers = tuple(init_containers)
    if statuses is None:
        statuses = [running(c) for c in containers]
    if init_statuses is None:
        init_statuses = [terminated(c) for c in init_containers]
    return PodSnapshot(
        namespace=namespace,
        name=name,
        phase=phase,
        init_containers=tuple(ContainerSpec(name=c, init=True) for c in init_containers),
        containers=tuple(ContainerSpec(name=c) for c in containers),
        init_container_statuses=tuple(init_statuses),
        container_statuses=tuple(statuses),
    )
