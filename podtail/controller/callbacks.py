"""Lifecycle callbacks the controller invokes on its embedder.

Every callback may be invoked concurrently from different tasks: enter, exit
and nothing-discovered from namespace watch tasks, event and error from
tailer tasks.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass

from podtail.models.pods import ContainerSpec, LogEvent, PodSnapshot
from podtail.tailer.base import LogEventFunc

ContainerEnterFunc = Callable[[PodSnapshot, ContainerSpec, bool], bool]
ContainerExitFunc = Callable[[PodSnapshot, ContainerSpec], None]
ContainerErrorFunc = Callable[[PodSnapshot, ContainerSpec, Exception], None]


def _ignore_event(event: LogEvent) -> None:
    return None


def _always_enter(pod: PodSnapshot, container: ContainerSpec, initial_add: bool) -> bool:
    return True


def _ignore_exit(pod: PodSnapshot, container: ContainerSpec) -> None:
    return None


def _ignore_error(pod: PodSnapshot, container: ContainerSpec, error: Exception) -> None:
    return None


def _ignore_nothing_discovered() -> None:
    return None


@dataclass
class Callbacks:
    """Capabilities supplied by the embedding application.

    ``on_enter`` may veto a session by returning False. Unset callbacks are
    no-ops; the default ``on_enter`` admits every container.
    """

    on_event: LogEventFunc = _ignore_event
    on_enter: ContainerEnterFunc = _always_enter
    on_exit: ContainerExitFunc = _ignore_exit
    on_error: ContainerErrorFunc = _ignore_error
    on_nothing_discovered: Callable[[], None] = _ignore_nothing_discovered
