"""Tests for health check endpoints."""

from unittest.mock import AsyncMock, MagicMock

import pytest
from aiohttp.test_utils import TestClient, TestServer

from netreg.observability.health import (
    CheckResult,
    DatabaseHealthCheck,
    HealthCheck,
    HealthResult,
    HealthServer,
    HealthStatus,
)


class TestHealthResult:
    """Tests for HealthResult dataclass."""

    def test_health_result_ok(self):
        assert HealthResult(status=HealthStatus.OK).to_dict() == {"status": "ok"}

    def test_health_result_with_checks(self):
        result = HealthResult(
            status=HealthStatus.NOT_READY,
            checks={"database": "database unreachable"},
        )
        assert result.to_dict() == {
            "status": "not_ready",
            "checks": {"database": "database unreachable"},
        }


class MockHealthCheck(HealthCheck):
    """Mock health check for testing."""

    def __init__(self, name: str, status: HealthStatus, message: str | None = None):
        self._name = name
        self._status = status
        self._message = message

    @property
    def name(self) -> str:
        return self._name

    async def check(self) -> CheckResult:
        return CheckResult(name=self._name, status=self._status, message=self._message)


class FailingHealthCheck(HealthCheck):
    """Health check that raises an exception."""

    @property
    def name(self) -> str:
        return "failing"

    async def check(self) -> CheckResult:
        raise RuntimeError("Check failed")


class TestDatabaseHealthCheck:
    """Tests for DatabaseHealthCheck."""

    async def test_ok_when_ping_succeeds(self):
        database = MagicMock()
        database.ping = AsyncMock(return_value=True)

        result = await DatabaseHealthCheck(database).check()

        assert result.name == "database"
        assert result.status == HealthStatus.OK

    async def test_error_when_ping_fails(self):
        database = MagicMock()
        database.ping = AsyncMock(return_value=False)

        result = await DatabaseHealthCheck(database).check()

        assert result.status == HealthStatus.ERROR
        assert result.message == "database unreachable"


class TestHealthServer:
    """Tests for HealthServer endpoints."""

    @pytest.fixture
    async def app_client(self):
        """Create test client with the HealthServer app."""
        health_server = HealthServer()
        client = TestClient(TestServer(health_server.build_app()))
        await client.start_server()
        yield client, health_server
        await client.close()

    async def test_health_endpoint_returns_ok(self, app_client):
        client, _ = app_client
        resp = await client.get("/health")
        assert resp.status == 200
        assert await resp.json() == {"status": "ok"}

    async def test_ready_endpoint_no_checks(self, app_client):
        client, _ = app_client
        resp = await client.get("/ready")
        assert resp.status == 200
        assert await resp.json() == {"status": "ok"}

    async def test_ready_endpoint_all_checks_pass(self, app_client):
        client, server = app_client
        server.add_check(MockHealthCheck("database", HealthStatus.OK))

        resp = await client.get("/ready")
        assert resp.status == 200
        data = await resp.json()
        assert data["checks"]["database"] == "ok"

    async def test_ready_endpoint_check_fails(self, app_client):
        """GET /ready returns 503 when the database is unreachable."""
        client, server = app_client
        database = MagicMock()
        database.ping = AsyncMock(return_value=False)
        server.add_check(DatabaseHealthCheck(database))

        resp = await client.get("/ready")
        assert resp.status == 503
        data = await resp.json()
        assert data["status"] == "not_ready"
        assert data["checks"]["database"] == "database unreachable"

    async def test_ready_endpoint_check_raises(self, app_client):
        client, server = app_client
        server.add_check(FailingHealthCheck())

        resp = await client.get("/ready")
        assert resp.status == 503
        data = await resp.json()
        assert "RuntimeError" in data["checks"]["failing"]
        assert "Check failed" in data["checks"]["failing"]

    async def test_metrics_endpoint(self, app_client):
        """GET /metrics exposes the registry metrics."""
        client, _ = app_client
        resp = await client.get("/metrics")
        assert resp.status == 200
        assert "text/plain" in resp.content_type
        body = await resp.text()
        assert "netreg_operations_total" in body


async def test_health_server_lifecycle():
    """HealthServer start and stop lifecycle."""
    server = HealthServer(host="127.0.0.1", port=18081)

    await server.start()
    assert server._runner is not None
    assert server._site is not None

    await server.stop()

    assert server._runner is None
    assert server._site is None
