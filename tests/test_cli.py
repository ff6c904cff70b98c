"""Tests for CLI subcommands."""

import json
from decimal import Decimal
from unittest.mock import MagicMock, patch

import pytest

from netreg.blockchain.probe import EndpointStatus, ProbeResult
from netreg.cli import (
    CLIContext,
    cmd_networks_create,
    cmd_networks_delete,
    cmd_networks_get,
    cmd_networks_list,
    cmd_networks_patch,
    cmd_networks_probe,
    cmd_networks_update,
    create_parser,
    load_payload,
    run_cli,
)
from netreg.config import NetregConfig
from netreg.registry import NotFoundError, RequestContext, parse_create

from conftest import network_payload


class TestCreateParser:
    """Tests for argument parser creation."""

    def test_db_subcommands(self):
        args = create_parser().parse_args(["db", "init"])
        assert args.command == "db"
        assert args.db_command == "init"

    def test_networks_subcommands(self):
        parser = create_parser()

        args = parser.parse_args(["networks", "list"])
        assert args.networks_command == "list"

        args = parser.parse_args(["networks", "get", "abc"])
        assert args.network_id == "abc"

        args = parser.parse_args(["networks", "create", '{"chainId": 1}'])
        assert args.payload == '{"chainId": 1}'

        args = parser.parse_args(["networks", "patch", "abc", "@patch.json"])
        assert args.network_id == "abc"
        assert args.payload == "@patch.json"

        args = parser.parse_args(["networks", "probe", "abc", "--timeout", "1.5"])
        assert args.timeout == 1.5

    def test_global_flags(self):
        args = create_parser().parse_args(["--json", "--correlation-id", "c-1", "networks", "list"])
        assert args.json is True
        assert args.correlation_id == "c-1"


class TestLoadPayload:
    """Tests for payload loading."""

    def test_inline_json(self):
        assert load_payload('{"name": "Base"}') == {"name": "Base"}

    def test_from_file(self, tmp_path):
        path = tmp_path / "payload.json"
        path.write_text(json.dumps({"chainId": 8453}))
        assert load_payload(f"@{path}") == {"chainId": 8453}

    def test_must_be_object(self):
        with pytest.raises(ValueError, match="JSON object"):
            load_payload("[1, 2]")


class TestCLIContext:
    """Tests for CLIContext."""

    @pytest.fixture
    def config(self):
        return NetregConfig()

    def test_context_stores_options(self, config):
        ctx = CLIContext(config, json_output=True, correlation_id="corr-1")
        assert ctx.config is config
        assert ctx.json_output is True
        assert ctx.request.correlation_id == "corr-1"

    def test_generates_correlation_id(self, config):
        assert CLIContext(config).request.correlation_id

    def test_lazy_components(self, config):
        ctx = CLIContext(config)
        assert ctx._registry is None
        assert ctx.registry is ctx.registry
        assert ctx.publisher.enabled is False

    def test_output_json(self, config, capsys):
        ctx = CLIContext(config, json_output=True)
        ctx.output({"foo": "bar", "num": Decimal("1.5")})

        data = json.loads(capsys.readouterr().out)
        assert data == {"foo": "bar", "num": "1.5"}

    def test_output_text(self, config, capsys):
        ctx = CLIContext(config)
        ctx.output({"name": "Base", "networks": [{"chain_id": 8453}]})

        out = capsys.readouterr().out
        assert "name: Base" in out
        assert "chain_id: 8453" in out

    def test_fail_registry_error(self, config, capsys):
        ctx = CLIContext(config, json_output=True)
        assert ctx.fail(NotFoundError("Network", "abc")) == 1

        data = json.loads(capsys.readouterr().out)
        assert data["error"]["code"] == "NOT_FOUND"
        assert data["error"]["message"] == "Network with identifier 'abc' not found"


class TestNetworkCommands:
    """Tests for networks commands against an in-memory registry."""

    @pytest.fixture
    def cli_ctx(self, registry):
        ctx = CLIContext(NetregConfig(), json_output=True)
        ctx.request = RequestContext(correlation_id="corr-cli", logger=MagicMock())
        ctx._registry = registry
        return ctx

    async def _seed(self, registry, **overrides):
        ctx = RequestContext(correlation_id="seed", logger=MagicMock())
        return await registry.create(ctx, parse_create(network_payload(**overrides)))

    async def test_create(self, cli_ctx, capsys, publisher):
        code = await cmd_networks_create(cli_ctx, json.dumps(network_payload()))

        assert code == 0
        data = json.loads(capsys.readouterr().out)
        assert data["success"] is True
        assert data["network"]["chain_id"] == 1
        assert publisher.events[0].correlation_id == "corr-cli"

    async def test_create_invalid_payload(self, cli_ctx, capsys):
        code = await cmd_networks_create(cli_ctx, json.dumps(network_payload(chainId=0)))

        assert code == 1
        assert json.loads(capsys.readouterr().out)["error"]["code"] == "VALIDATION_ERROR"

    async def test_create_conflict(self, cli_ctx, registry, capsys):
        await self._seed(registry)

        code = await cmd_networks_create(cli_ctx, json.dumps(network_payload(name="Dup")))

        assert code == 1
        assert json.loads(capsys.readouterr().out)["error"]["code"] == "CONFLICT"

    async def test_list(self, cli_ctx, registry, capsys):
        await self._seed(registry)
        await self._seed(registry, chainId=10, name="Optimism")

        assert await cmd_networks_list(cli_ctx) == 0

        data = json.loads(capsys.readouterr().out)
        assert data["count"] == 2

    async def test_get_missing(self, cli_ctx, capsys):
        assert await cmd_networks_get(cli_ctx, "missing") == 1
        assert json.loads(capsys.readouterr().out)["error"]["code"] == "NOT_FOUND"

    async def test_update_requires_all_fields(self, cli_ctx, registry, capsys):
        network = await self._seed(registry)

        code = await cmd_networks_update(cli_ctx, network.id, json.dumps({"name": "Renamed"}))

        assert code == 1
        assert json.loads(capsys.readouterr().out)["error"]["code"] == "VALIDATION_ERROR"

    async def test_update_full_payload(self, cli_ctx, registry, capsys):
        network = await self._seed(registry)
        payload = json.dumps(network_payload(name="Renamed"))

        assert await cmd_networks_update(cli_ctx, network.id, payload) == 0
        assert json.loads(capsys.readouterr().out)["network"]["name"] == "Renamed"

    async def test_patch(self, cli_ctx, registry, capsys):
        network = await self._seed(registry)

        assert await cmd_networks_patch(cli_ctx, network.id, '{"feeMultiplier": 1.5}') == 0
        assert json.loads(capsys.readouterr().out)["network"]["fee_multiplier"] == 1.5

    async def test_delete(self, cli_ctx, registry, capsys):
        network = await self._seed(registry)

        assert await cmd_networks_delete(cli_ctx, network.id) == 0
        data = json.loads(capsys.readouterr().out)
        assert data == {"success": True, "network_id": network.id, "active": False}

    async def test_probe(self, cli_ctx, registry, capsys):
        network = await self._seed(registry)
        result = ProbeResult(
            network_id=network.id,
            expected_chain_id=1,
            endpoints=[EndpointStatus(url=network.rpc_url, reachable=True, chain_id=1)],
        )

        with patch("netreg.cli.RpcProbe") as probe_cls:
            probe_cls.return_value.check.return_value = result
            code = await cmd_networks_probe(cli_ctx, network.id, timeout=1.0)

        assert code == 0
        probe_cls.assert_called_once_with(timeout=1.0)
        assert json.loads(capsys.readouterr().out)["healthy"] is True

    async def test_probe_unhealthy_exit_code(self, cli_ctx, registry, capsys):
        network = await self._seed(registry)
        result = ProbeResult(network_id=network.id, expected_chain_id=1)

        with patch("netreg.cli.RpcProbe") as probe_cls:
            probe_cls.return_value.check.return_value = result
            assert await cmd_networks_probe(cli_ctx, network.id) == 1


class TestRunCli:
    """Tests for run_cli."""

    def test_no_command_signals_help(self):
        args = create_parser().parse_args([])
        assert run_cli(args) == -1

    def test_run_command_not_handled(self):
        args = create_parser().parse_args(["run"])
        assert run_cli(args) == -1

    def test_configuration_error(self, monkeypatch, capsys):
        monkeypatch.setenv("NETREG_METRICS_PORT", "0")
        args = create_parser().parse_args(["--json", "networks", "list"])

        assert run_cli(args) == 1
        assert "Configuration error" in capsys.readouterr().out

    def test_end_to_end_on_sqlite(self, monkeypatch, tmp_path):
        """Commands share one database across invocations."""
        monkeypatch.setenv("NETREG_DATABASE_URL", f"sqlite+aiosqlite:///{tmp_path / 'cli.db'}")
        parser = create_parser()
        payload = json.dumps(network_payload())

        assert run_cli(parser.parse_args(["--json", "db", "init"])) == 0
        assert run_cli(parser.parse_args(["--json", "networks", "create", payload])) == 0
        assert run_cli(parser.parse_args(["--json", "networks", "create", payload])) == 1
        assert run_cli(parser.parse_args(["--json", "networks", "list"])) == 0
        assert run_cli(parser.parse_args(["--json", "networks", "get", "missing"])) == 1
