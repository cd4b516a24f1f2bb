"""Application bootstrap for podtail.

Wires all components in dependency order and manages the asyncio lifecycle.
Startup order: logging → metrics → K8s client → namespaces → watch source
              → controller

SIGINT/SIGTERM cancel the controller. On the way out, sessions the
controller left running are stopped and the API client is closed.
"""

from __future__ import annotations

import asyncio
import signal
from typing import TYPE_CHECKING, Any

from podtail.cli.output import ConsoleOutput
from podtail.errors import ContractViolationError, ListPodsError, WatchError
from podtail.matching import build_exclusion_matcher, build_inclusion_matcher
from podtail.models.config import ControllerOptions, PodTailConfig
from podtail.observability.logging import get_logger, setup_logging
from podtail.observability.metrics import serve_metrics

if TYPE_CHECKING:
    import structlog

    from podtail.controller import Controller

_SHUTDOWN_GRACE_SECONDS = 5
_EXIT_CONTRACT_VIOLATION = 70


class _ComponentError(Exception):
    """Raised when a mandatory component fails to start."""

    def __init__(self, component: str, cause: Exception) -> None:
        super().__init__(f"Component '{component}' failed to start: {cause}")
        self.component = component
        self.cause = cause


class PodTailApp:
    """Application root.  Owns every component and coordinates their lifecycle.

    ``stop()`` is safe to call on an app that was never started or already
    stopped.
    """

    def __init__(self, config: PodTailConfig, kubeconfig: str | None = None, context: str | None = None) -> None:
        self.config = config
        self._kubeconfig = kubeconfig
        self._context = context

        self._api_client: Any = None
        self._v1: Any = None
        self._controller: Controller | None = None
        self._controller_task: asyncio.Task[None] | None = None
        self._shutdown_requested = False
        self._log: structlog.stdlib.BoundLogger | None = None

    # ------------------------------------------------------------------
    # Startup
    # ------------------------------------------------------------------

    async def start(self) -> None:
        """Start all components in dependency order.

        Raises _ComponentError if a mandatory component cannot start.
        """
        setup_logging(self.config.log.level, self.config.log.format)
        self._log = get_logger("app")
        self._log.info("podtail starting", version=_podtail_version())

        if self.config.metrics_port:
            serve_metrics(self.config.metrics_port)
            self._log.info("metrics endpoint started", port=self.config.metrics_port)

        await self._start_k8s_client()
        namespaces = await self._resolve_namespaces()
        self._build_controller(namespaces)

    async def _start_k8s_client(self) -> None:
        """Initialise the kubernetes-asyncio client from in-cluster config or kubeconfig."""
        assert self._log is not None
        self._log.debug("starting k8s client")
        try:
            import kubernetes_asyncio.config as k8s_config  # type: ignore[import-untyped]
            from kubernetes_asyncio import client as k8s_client  # type: ignore[import-untyped]

            if self._kubeconfig is None and self._context is None:
                try:
                    k8s_config.load_incluster_config()
                    self._log.info("k8s client configured from in-cluster service account")
                except k8s_config.ConfigException:
                    await k8s_config.load_kube_config()
                    self._log.info("k8s client configured from kubeconfig")
            else:
                await k8s_config.load_kube_config(config_file=self._kubeconfig, context=self._context)
                self._log.info("k8s client configured from kubeconfig", context=self._context)

            self._api_client = k8s_client.ApiClient()
            self._v1 = k8s_client.CoreV1Api(self._api_client)
        except Exception as exc:
            raise _ComponentError("k8s_client", exc) from exc

    async def _resolve_namespaces(self) -> list[str]:
        assert self._log is not None
        if not self.config.all_namespaces:
            return list(self.config.namespaces)
        try:
            response = await self._v1.list_namespace()
        except Exception as exc:
            raise _ComponentError("namespaces", exc) from exc
        namespaces = sorted(item.metadata.name for item in response.items or [])
        self._log.info("namespaces discovered", count=len(namespaces))
        return namespaces

    def _build_controller(self, namespaces: list[str]) -> None:
        assert self._log is not None
        try:
            from podtail.collector import PodWatcher
            from podtail.controller import Controller
            from podtail.tailer import make_tailer_factory

            options = ControllerOptions(
                namespaces=namespaces,
                inclusion_matcher=build_inclusion_matcher(self.config.include),
                exclusion_matcher=build_exclusion_matcher(self.config.exclude),
                container_name=self.config.container_name,
                since_start=self.config.since_start,
                since=self.config.since,
            )
            output = ConsoleOutput(output=self.config.output, quiet=self.config.quiet)
            self._controller = Controller(
                source=PodWatcher(self._v1),
                options=options,
                callbacks=output.callbacks(),
                tailer_factory=make_tailer_factory(self._v1, self.config.tailer),
            )
            self._log.info("controller ready", namespaces=namespaces)
        except Exception as exc:
            raise _ComponentError("controller", exc) from exc

    # ------------------------------------------------------------------
    # Run / shutdown
    # ------------------------------------------------------------------

    async def run(self) -> None:
        """Run the controller until shutdown is requested."""
        assert self._controller is not None
        self._controller_task = asyncio.create_task(self._controller.run(), name="controller")
        try:
            await self._controller_task
        except asyncio.CancelledError:
            if not self._shutdown_requested:
                raise

    def request_shutdown(self) -> None:
        if self._shutdown_requested:
            return
        self._shutdown_requested = True
        if self._controller_task is not None and not self._controller_task.done():
            self._controller_task.cancel("shutdown requested")

    async def stop(self) -> None:
        """Stop remaining sessions, then close the API client."""
        log = self._log or get_logger("app")

        if self._controller is not None:
            sessions = self._controller.registry.sessions()
            tasks = []
            for session in sessions:
                session.tailer.stop()
                if session.task is not None and not session.task.done():
                    tasks.append(session.task)
            if tasks:
                _, pending = await asyncio.wait(tasks, timeout=_SHUTDOWN_GRACE_SECONDS)
                for task in pending:
                    task.cancel()
            self._controller = None

        if self._api_client is not None:
            try:
                await self._api_client.close()
            except Exception as exc:
                log.debug("k8s client close raised (non-fatal)", error=str(exc))
            self._api_client = None

        log.info("podtail stopped")


def _podtail_version() -> str:
    from podtail import __version__

    return __version__


# ---------------------------------------------------------------------------
# Async entrypoint
# ---------------------------------------------------------------------------


async def main(config: PodTailConfig, kubeconfig: str | None = None, context: str | None = None) -> None:
    """Create the app, register OS signals, run until shutdown is requested."""
    app = PodTailApp(config, kubeconfig=kubeconfig, context=context)
    loop = asyncio.get_running_loop()

    for sig in (signal.SIGTERM, signal.SIGINT):
        loop.add_signal_handler(sig, app.request_shutdown)

    try:
        await app.start()
        await app.run()
    except _ComponentError as exc:
        log = get_logger("app")
        log.critical("fatal startup error", component=exc.component, error=str(exc.cause))
        raise SystemExit(1) from exc
    except ListPodsError as exc:
        log = get_logger("app")
        log.critical("initial pod listing failed", namespace=exc.namespace, error=str(exc.cause))
        raise SystemExit(1) from exc
    except WatchError as exc:
        log = get_logger("app")
        log.critical("pod watch failed", namespace=exc.namespace, error=str(exc.cause))
        raise SystemExit(1) from exc
    except ContractViolationError as exc:
        log = get_logger("app")
        log.critical("unexpected response from kubernetes api", error=str(exc))
        raise SystemExit(_EXIT_CONTRACT_VIOLATION) from exc
    finally:
        await app.stop()
