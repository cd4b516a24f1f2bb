"""Pod and container data structures.

Point-in-time copies of the pod state delivered by the watch source. The
controller only ever reads these; nothing downstream mutates them.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import StrEnum


class PodPhase(StrEnum):
    """Lifecycle phase of a pod."""

    PENDING = "Pending"
    RUNNING = "Running"
    SUCCEEDED = "Succeeded"
    FAILED = "Failed"
    UNKNOWN = "Unknown"


class ContainerState(StrEnum):
    """Lifecycle state reported in a container status entry."""

    WAITING = "waiting"
    RUNNING = "running"
    TERMINATED = "terminated"


@dataclass(frozen=True)
class ContainerSpec:
    """A container declared in a pod spec."""

    name: str
    image: str = ""
    init: bool = False


@dataclass(frozen=True)
class ContainerStatus:
    """A container status entry as reported by the kubelet.

    ``state`` is None when the kubelet has not reported any state yet.
    ``started_at`` is only set for running containers.
    """

    name: str
    state: ContainerState | None = None
    started_at: datetime | None = None
    restart_count: int = 0


@dataclass(frozen=True)
class PodSnapshot:
    """Immutable view of a pod at the moment an event was observed."""

    namespace: str
    name: str
    phase: PodPhase | str = PodPhase.PENDING
    init_containers: tuple[ContainerSpec, ...] = ()
    containers: tuple[ContainerSpec, ...] = ()
    init_container_statuses: tuple[ContainerStatus, ...] = ()
    container_statuses: tuple[ContainerStatus, ...] = ()
    labels: dict[str, str] = field(default_factory=dict, compare=False)
    node_name: str = ""

    def all_container_statuses(self) -> list[ContainerStatus]:
        """Init container statuses followed by regular container statuses."""
        return [*self.init_container_statuses, *self.container_statuses]

    def container(self, name: str) -> ContainerSpec | None:
        """Return the regular container spec named *name*, if any."""
        for spec in self.containers:
            if spec.name == name:
                return spec
        return None


@dataclass(frozen=True)
class ContainerKey:
    """Identity of a tailing session."""

    namespace: str
    pod: str
    container: str

    @classmethod
    def for_container(cls, pod: PodSnapshot, container: ContainerSpec) -> ContainerKey:
        return cls(namespace=pod.namespace, pod=pod.name, container=container.name)

    def __str__(self) -> str:
        return f"{self.namespace}/{self.pod}/{self.container}"


@dataclass(frozen=True)
class LogEvent:
    """One log line read from a container."""

    pod: PodSnapshot
    container: ContainerSpec
    message: str
    timestamp: datetime | None = None
