"""Command-line entry point.

Flags override the PODTAIL_* environment; positional PATTERNS are inclusion
patterns (globs, or regular expressions written /like this/).
"""

from __future__ import annotations

import asyncio

import click

from podtail import __version__
from podtail.config import load_config, parse_since, validate_config
from podtail.matching import build_exclusion_matcher, build_inclusion_matcher


@click.command(context_settings={"help_option_names": ["-h", "--help"]})
@click.argument("patterns", nargs=-1)
@click.option("-n", "--namespace", "namespaces", multiple=True, help="Namespace to watch (repeatable).")
@click.option("-A", "--all-namespaces", is_flag=True, default=False, help="Watch every namespace.")
@click.option("-x", "--exclude", multiple=True, help="Exclude pods or containers matching this pattern (repeatable).")
@click.option("-c", "--container", "container_name", default=None, help="Only tail containers with this exact name.")
@click.option("-s", "--since", default=None, help="Start from this long ago (10m, 2h) or this ISO-8601 time.")
@click.option("--since-start", is_flag=True, default=False, help="Start from the beginning of each container's log.")
@click.option("-o", "--output", type=click.Choice(["text", "json"]), default=None, help="Output format.")
@click.option("-q", "--quiet", is_flag=True, default=False, help="Do not print container enter/exit notices.")
@click.option("--log-level", type=click.Choice(["debug", "info", "warning", "error"]), default=None)
@click.option(
    "--log-format",
    type=click.Choice(["auto", "console", "json"]),
    default=None,
    help="Diagnostics format on stderr; auto picks console on a terminal.",
)
@click.option("--metrics-port", type=int, default=None, help="Serve Prometheus metrics on this port.")
@click.option("--kubeconfig", default=None, help="Path to a kubeconfig file.")
@click.option("--context", default=None, help="Kubeconfig context to use.")
@click.version_option(__version__, prog_name="podtail")
def cli(
    patterns: tuple[str, ...],
    namespaces: tuple[str, ...],
    all_namespaces: bool,
    exclude: tuple[str, ...],
    container_name: str | None,
    since: str | None,
    since_start: bool,
    output: str | None,
    quiet: bool,
    log_level: str | None,
    log_format: str | None,
    metrics_port: int | None,
    kubeconfig: str | None,
    context: str | None,
) -> None:
    """Tail the logs of every matching container in the cluster."""
    try:
        config = load_config()
    except ValueError as exc:
        raise click.UsageError(str(exc)) from exc

    if patterns:
        config.include = list(patterns)
    if namespaces:
        config.namespaces = list(namespaces)
    if all_namespaces:
        config.all_namespaces = True
    if exclude:
        config.exclude = list(exclude)
    if container_name is not None:
        config.container_name = container_name
    if since is not None:
        try:
            config.since = parse_since(since)
        except ValueError as exc:
            raise click.BadParameter(str(exc), param_hint="--since") from exc
    if since_start:
        config.since_start = True
    if output is not None:
        config.output = output
    if quiet:
        config.quiet = True
    if log_level is not None:
        config.log.level = log_level
    if log_format is not None:
        config.log.format = log_format
    if metrics_port is not None:
        config.metrics_port = metrics_port

    try:
        validate_config(config)
        # Compile once here so that bad patterns are reported as usage errors.
        build_inclusion_matcher(config.include)
        build_exclusion_matcher(config.exclude)
    except ValueError as exc:
        raise click.UsageError(str(exc)) from exc

    from podtail.app import main

    asyncio.run(main(config, kubeconfig=kubeconfig, context=context))
