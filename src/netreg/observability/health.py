"""Health check endpoints for the netreg service.

Endpoints:
- /health: Liveness probe (200 if process is alive)
- /ready: Readiness probe (200 if every registered check passes)
- /metrics: Prometheus metrics endpoint
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING

from aiohttp import web
from prometheus_client import REGISTRY, generate_latest

from .logging import get_logger

if TYPE_CHECKING:
    from netreg.registry.sql import Database

logger = get_logger(__name__)


class HealthStatus(Enum):
    """Health check status values."""

    OK = "ok"
    ERROR = "error"
    NOT_READY = "not_ready"


@dataclass
class CheckResult:
    """Result of a single health check."""

    name: str
    status: HealthStatus
    message: str | None = None


@dataclass
class HealthResult:
    """Combined health check result."""

    status: HealthStatus
    checks: dict[str, str] = field(default_factory=dict)

    def to_dict(self) -> dict:
        """Convert to JSON-serializable dict."""
        result = {"status": self.status.value}
        if self.checks:
            result["checks"] = self.checks
        return result


class HealthCheck(ABC):
    """Abstract base class for readiness checks."""

    @property
    @abstractmethod
    def name(self) -> str:
        """Name of the health check."""
        ...

    @abstractmethod
    async def check(self) -> CheckResult:
        """Perform the health check."""
        ...


class DatabaseHealthCheck(HealthCheck):
    """Readiness check that round-trips a query to the registry database.

    Parameters
    ----------
    database : Database
        The connected registry database.
    """

    def __init__(self, database: "Database"):
        self._database = database

    @property
    def name(self) -> str:
        return "database"

    async def check(self) -> CheckResult:
        if await self._database.ping():
            return CheckResult(name=self.name, status=HealthStatus.OK)
        return CheckResult(
            name=self.name,
            status=HealthStatus.ERROR,
            message="database unreachable",
        )


class HealthServer:
    """HTTP server for health and metrics endpoints.

    Parameters
    ----------
    host : str
        Host to bind to.
    port : int
        Port to bind to.
    """

    # Bound to all interfaces so probes and Prometheus can reach it from
    # outside the container. Pass host="127.0.0.1" for local-only access.
    def __init__(self, host: str = "0.0.0.0", port: int = 8080):  # noqa: S104
        self._host = host
        self._port = port
        self._checks: list[HealthCheck] = []
        self._app: web.Application | None = None
        self._runner: web.AppRunner | None = None
        self._site: web.TCPSite | None = None

    def add_check(self, check: HealthCheck) -> None:
        """Register a readiness check."""
        self._checks.append(check)

    def build_app(self) -> web.Application:
        """Build the aiohttp application serving the probe endpoints."""
        app = web.Application()
        app.router.add_get("/health", self._handle_health)
        app.router.add_get("/ready", self._handle_ready)
        app.router.add_get("/metrics", self._handle_metrics)
        return app

    async def start(self) -> None:
        """Start the health server."""
        self._app = self.build_app()
        self._runner = web.AppRunner(self._app)
        await self._runner.setup()
        self._site = web.TCPSite(self._runner, self._host, self._port)
        await self._site.start()

        logger.info("Health server started", host=self._host, port=self._port)

    async def stop(self) -> None:
        """Stop the health server."""
        if self._runner:
            await self._runner.cleanup()
            self._runner = None
            self._site = None
            logger.info("Health server stopped")

    async def _handle_health(self, _request: web.Request) -> web.Response:
        return web.json_response({"status": "ok"})

    async def _handle_ready(self, _request: web.Request) -> web.Response:
        result = await self._check_readiness()

        status_code = 200 if result.status == HealthStatus.OK else 503
        return web.json_response(result.to_dict(), status=status_code)

    async def _handle_metrics(self, _request: web.Request) -> web.Response:
        metrics = generate_latest(REGISTRY)
        return web.Response(
            body=metrics,
            content_type="text/plain",
            charset="utf-8",
        )

    async def _check_readiness(self) -> HealthResult:
        """Run all readiness checks and combine their results."""
        if not self._checks:
            return HealthResult(status=HealthStatus.OK)

        checks: dict[str, str] = {}
        all_ok = True

        for check in self._checks:
            try:
                result = await check.check()
                if result.status == HealthStatus.OK:
                    checks[result.name] = "ok"
                else:
                    checks[result.name] = result.message or "error"
                    all_ok = False
            except Exception as e:
                logger.exception("Readiness check failed", check=check.name)
                checks[check.name] = f"error: {type(e).__name__}: {e}"
                all_ok = False

        return HealthResult(
            status=HealthStatus.OK if all_ok else HealthStatus.NOT_READY,
            checks=checks,
        )
