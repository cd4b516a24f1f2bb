"""Inclusion policy: decides whether a container should be tailed.

Evaluated fresh on every add and update. The rule chain short-circuits in
this order:

1. pod phase must be Pending or Running
2. the container must have a status entry in any state
3. a configured container-name filter must equal the container name
4. the exclusion matcher must not match the pod
5. the inclusion matcher must match the pod or the container
6. the exclusion matcher must not match the container
"""

from __future__ import annotations

from podtail.models.config import ControllerOptions
from podtail.models.pods import ContainerSpec, PodPhase, PodSnapshot

_TAILABLE_PHASES = frozenset({PodPhase.PENDING, PodPhase.RUNNING})


def has_status(pod: PodSnapshot, container: ContainerSpec) -> bool:
    """True once the kubelet has reported any state for *container*."""
    return any(s.name == container.name and s.state is not None for s in pod.all_container_statuses())


def should_include_container(options: ControllerOptions, pod: PodSnapshot, container: ContainerSpec) -> bool:
    if pod.phase not in _TAILABLE_PHASES:
        return False
    if not has_status(pod, container):
        return False
    if options.container_name and options.container_name != container.name:
        return False
    if options.exclusion_matcher.match(pod):
        return False
    if not (options.inclusion_matcher.match(pod) or options.inclusion_matcher.match(container)):
        return False
    return not options.exclusion_matcher.match(container)
