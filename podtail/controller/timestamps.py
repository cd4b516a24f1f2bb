"""Start-timestamp resolution for new tailing sessions."""

from __future__ import annotations

from datetime import UTC, datetime, timedelta

from podtail.errors import PodtailError
from podtail.models.config import ControllerOptions
from podtail.models.pods import ContainerSpec, ContainerState, PodSnapshot

# Containers found at startup are tailed from slightly before "now" to
# tolerate clock skew between this host and the node.
INITIAL_ADD_SKEW = timedelta(seconds=5)


class StartTimestampUnresolved(PodtailError):
    """No running status exists yet for a container seen after startup."""


def resolve_start_timestamp(
    options: ControllerOptions,
    pod: PodSnapshot,
    container: ContainerSpec,
    initial_add: bool,
    now: datetime | None = None,
) -> datetime | None:
    """Return the instant a new session should stream from.

    None means "everything the node still has". Raises
    StartTimestampUnresolved when a container that appeared after startup has
    no running status; the caller must not start a session for it.
    """
    if options.since_start:
        return None
    if options.since is not None:
        return options.since
    if initial_add:
        return (now or datetime.now(tz=UTC)) - INITIAL_ADD_SKEW

    # Duplicate status entries may report different start times; the earliest wins.
    earliest: datetime | None = None
    for status in pod.all_container_statuses():
        if status.name != container.name or status.state != ContainerState.RUNNING:
            continue
        if status.started_at is None:
            continue
        if earliest is None or status.started_at < earliest:
            earliest = status.started_at
    if earliest is None:
        raise StartTimestampUnresolved(f"no running status for {pod.namespace}/{pod.name}/{container.name}")
    return earliest
