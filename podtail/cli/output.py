"""Terminal output for tailed log lines and session changes.

Log lines go to stdout; session enter/exit notices go to stderr so that
stdout can be piped. Container names are coloured by a stable hash of the
container key.
"""

from __future__ import annotations

import json
import zlib
from typing import TextIO

import click

from podtail.controller.callbacks import Callbacks
from podtail.models.pods import ContainerSpec, LogEvent, PodSnapshot
from podtail.observability.logging import get_logger

_log = get_logger("cli.output")

_COLORS = ("cyan", "green", "yellow", "magenta", "blue", "bright_cyan", "bright_green", "bright_magenta")


def _color_for(namespace: str, pod: str, container: str) -> str:
    return _COLORS[zlib.crc32(f"{namespace}/{pod}/{container}".encode()) % len(_COLORS)]


def format_event(event: LogEvent, output: str = "text") -> str:
    """Render *event* as a single line in the requested format."""
    if output == "json":
        return json.dumps(
            {
                "namespace": event.pod.namespace,
                "pod": event.pod.name,
                "container": event.container.name,
                "timestamp": event.timestamp.isoformat() if event.timestamp else None,
                "message": event.message,
            },
            ensure_ascii=False,
        )
    color = _color_for(event.pod.namespace, event.pod.name, event.container.name)
    prefix = click.style(f"{event.pod.name}:{event.container.name}", fg=color)
    return f"{prefix} {event.message}"


class ConsoleOutput:
    """Callbacks that print to the terminal.

    Args:
        output: ``text`` or ``json``.
        quiet:  Suppress enter/exit notices.
    """

    def __init__(
        self,
        output: str = "text",
        quiet: bool = False,
        stdout: TextIO | None = None,
        stderr: TextIO | None = None,
    ) -> None:
        self._output = output
        self._quiet = quiet
        self._stdout = stdout
        self._stderr = stderr

    def callbacks(self) -> Callbacks:
        return Callbacks(
            on_event=self.on_event,
            on_enter=self.on_enter,
            on_exit=self.on_exit,
            on_error=self.on_error,
            on_nothing_discovered=self.on_nothing_discovered,
        )

    def _notice(self, text: str) -> None:
        if self._stderr is not None:
            click.echo(text, file=self._stderr)
        else:
            click.echo(text, err=True)

    def on_event(self, event: LogEvent) -> None:
        click.echo(format_event(event, self._output), file=self._stdout)

    def on_enter(self, pod: PodSnapshot, container: ContainerSpec, initial_add: bool) -> bool:
        if not self._quiet:
            self._notice(click.style(f"+ {pod.namespace}/{pod.name}:{container.name}", fg="green"))
        return True

    def on_exit(self, pod: PodSnapshot, container: ContainerSpec) -> None:
        if not self._quiet:
            self._notice(click.style(f"- {pod.namespace}/{pod.name}:{container.name}", fg="red"))

    def on_error(self, pod: PodSnapshot, container: ContainerSpec, error: Exception) -> None:
        _log.warning(
            "container_stream_error",
            namespace=pod.namespace,
            pod=pod.name,
            container=container.name,
            error=str(error),
        )

    def on_nothing_discovered(self) -> None:
        self._notice("No matching containers, waiting for new pods")
