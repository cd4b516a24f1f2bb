"""Conversion of kubernetes-asyncio pod models into PodSnapshot."""

from __future__ import annotations

from typing import Any

from podtail.models.pods import ContainerSpec, ContainerState, ContainerStatus, PodPhase, PodSnapshot


def _phase(value: str | None) -> PodPhase | str:
    if not value:
        return PodPhase.UNKNOWN
    try:
        return PodPhase(value)
    except ValueError:
        return value


def _container_status(status: Any) -> ContainerStatus:
    state = status.state
    if state is None:
        return ContainerStatus(name=status.name, restart_count=status.restart_count or 0)
    if state.running is not None:
        return ContainerStatus(
            name=status.name,
            state=ContainerState.RUNNING,
            started_at=state.running.started_at,
            restart_count=status.restart_count or 0,
        )
    if state.terminated is not None:
        kind: ContainerState | None = ContainerState.TERMINATED
    elif state.waiting is not None:
        kind = ContainerState.WAITING
    else:
        kind = None
    return ContainerStatus(name=status.name, state=kind, restart_count=status.restart_count or 0)


def pod_snapshot_from_k8s(pod: Any) -> PodSnapshot:
    """Build a PodSnapshot from a ``V1Pod``."""
    metadata = pod.metadata
    spec = pod.spec
    status = pod.status

    init_containers = tuple(
        ContainerSpec(name=c.name, image=c.image or "", init=True) for c in (spec.init_containers or [])
    )
    containers = tuple(ContainerSpec(name=c.name, image=c.image or "") for c in (spec.containers or []))

    init_statuses: tuple[ContainerStatus, ...] = ()
    statuses: tuple[ContainerStatus, ...] = ()
    phase: PodPhase | str = PodPhase.UNKNOWN
    if status is not None:
        phase = _phase(status.phase)
        init_statuses = tuple(_container_status(s) for s in (status.init_container_statuses or []))
        statuses = tuple(_container_status(s) for s in (status.container_statuses or []))

    return PodSnapshot(
        namespace=metadata.namespace or "",
        name=metadata.name or "",
        phase=phase,
        init_containers=init_containers,
        containers=containers,
        init_container_statuses=init_statuses,
        container_statuses=statuses,
        labels=dict(metadata.labels or {}),
        node_name=spec.node_name or "",
    )
