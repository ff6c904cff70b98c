"""CLI subcommands for netreg operations.

Provides command-line interface for:
- Database operations (init)
- Network registry operations (list, get, create, update, patch, delete)
- RPC endpoint probing (probe)
- Running the long-lived service (run)
"""

import argparse
import asyncio
import json
import sys
from decimal import Decimal
from pathlib import Path
from typing import Any

from netreg.blockchain.probe import RpcProbe
from netreg.config import NetregConfig
from netreg.registry import (
    Database,
    Network,
    NetworkRegistry,
    RedisEventPublisher,
    RegistryError,
    RequestContext,
    SqlNetworkStore,
    parse_create,
    parse_update,
)


def create_parser() -> argparse.ArgumentParser:
    """Create the argument parser with all subcommands."""
    parser = argparse.ArgumentParser(
        prog="netreg",
        description="netreg - registry of blockchain network configurations",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )

    # Global flags
    parser.add_argument(
        "--json",
        action="store_true",
        help="Output in JSON format",
    )
    parser.add_argument(
        "--correlation-id",
        metavar="ID",
        help="Correlation ID attached to logs and events (generated if omitted)",
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # Database subcommand
    db_parser = subparsers.add_parser("db", help="Database operations")
    db_sub = db_parser.add_subparsers(dest="db_command")
    db_sub.add_parser("init", help="Create the registry tables")

    # Networks subcommand
    networks_parser = subparsers.add_parser("networks", help="Network registry operations")
    networks_sub = networks_parser.add_subparsers(dest="networks_command")

    networks_sub.add_parser("list", help="List active networks")

    get_parser = networks_sub.add_parser("get", help="Show a network")
    get_parser.add_argument("network_id", type=str, help="Network ID")

    create_cmd = networks_sub.add_parser("create", help="Register a network")
    create_cmd.add_argument("payload", type=str, help="JSON payload, or @FILE to read it")

    update_parser = networks_sub.add_parser("update", help="Replace a network's fields")
    update_parser.add_argument("network_id", type=str, help="Network ID")
    update_parser.add_argument("payload", type=str, help="JSON payload, or @FILE to read it")

    patch_parser = networks_sub.add_parser("patch", help="Change some of a network's fields")
    patch_parser.add_argument("network_id", type=str, help="Network ID")
    patch_parser.add_argument("payload", type=str, help="JSON payload, or @FILE to read it")

    delete_parser = networks_sub.add_parser("delete", help="Soft delete a network")
    delete_parser.add_argument("network_id", type=str, help="Network ID")

    probe_parser = networks_sub.add_parser("probe", help="Check a network's RPC endpoints")
    probe_parser.add_argument("network_id", type=str, help="Network ID")
    probe_parser.add_argument(
        "--timeout", type=float, default=5.0, help="Per-endpoint timeout in seconds"
    )

    # Run subcommand (start service)
    subparsers.add_parser("run", help="Start the netreg service")

    return parser


def load_payload(value: str) -> dict[str, Any]:
    """Parse a JSON object given inline or as ``@path``."""
    text = Path(value[1:]).read_text() if value.startswith("@") else value
    payload = json.loads(text)
    if not isinstance(payload, dict):
        raise ValueError("Payload must be a JSON object")
    return payload


def network_view(network: Network) -> dict[str, Any]:
    """Render a network for output."""
    return {
        "id": network.id,
        "chain_id": network.chain_id,
        "name": network.name,
        "rpc_url": network.rpc_url,
        "other_rpc_urls": network.other_rpc_urls,
        "test_net": network.test_net,
        "block_explorer_url": network.block_explorer_url,
        "fee_multiplier": network.fee_multiplier,
        "gas_limit_multiplier": network.gas_limit_multiplier,
        "active": network.active,
        "default_signer_address": network.default_signer_address,
        "created_at": network.created_at.isoformat(),
        "updated_at": network.updated_at.isoformat(),
    }


class CLIContext:
    """Shared context for CLI commands."""

    def __init__(
        self,
        config: NetregConfig,
        json_output: bool = False,
        correlation_id: str | None = None,
    ):
        self.config = config
        self.json_output = json_output
        self.request = RequestContext.create(correlation_id=correlation_id)
        self._database: Database | None = None
        self._publisher: RedisEventPublisher | None = None
        self._registry: NetworkRegistry | None = None

    @property
    def database(self) -> Database:
        """Get database handle (lazy created, connected by open())."""
        if self._database is None:
            self._database = Database(
                self.config.database_url.get_secret_value(),
                pool_size=self.config.database_pool_size,
                pool_timeout=self.config.database_pool_timeout,
                echo=self.config.database_echo,
            )
        return self._database

    @property
    def publisher(self) -> RedisEventPublisher:
        """Get event publisher (lazy created)."""
        if self._publisher is None:
            self._publisher = RedisEventPublisher(
                self.config.events_redis_url, channel=self.config.events_channel
            )
        return self._publisher

    @property
    def registry(self) -> NetworkRegistry:
        """Get network registry (lazy created)."""
        if self._registry is None:
            self._registry = NetworkRegistry(SqlNetworkStore(self.database), self.publisher)
        return self._registry

    async def open(self) -> None:
        await self.database.connect()
        await self.publisher.connect()

    async def close(self) -> None:
        if self._publisher is not None:
            await self._publisher.close()
        if self._database is not None:
            await self._database.close()

    def output(self, data: dict) -> None:
        """Output data in the appropriate format."""
        if self.json_output:

            def json_default(obj):
                if isinstance(obj, Decimal):
                    return str(obj)
                raise TypeError(f"Object of type {type(obj)} is not JSON serializable")

            print(json.dumps(data, default=json_default, indent=2))
        else:
            self._print_formatted(data)

    def fail(self, error: Exception) -> int:
        """Report an error and return the failing exit code."""
        if isinstance(error, RegistryError):
            self.output({"error": error.to_dict()})
        else:
            self.output({"error": str(error)})
        return 1

    def _print_formatted(self, data: dict, indent: int = 0) -> None:
        """Print data in human-readable format."""
        prefix = "  " * indent
        for key, value in data.items():
            if isinstance(value, dict):
                print(f"{prefix}{key}:")
                self._print_formatted(value, indent + 1)
            elif isinstance(value, list) and value and isinstance(value[0], dict):
                print(f"{prefix}{key}:")
                for item in value:
                    print(f"{prefix}  -")
                    self._print_formatted(item, indent + 2)
            else:
                print(f"{prefix}{key}: {value}")


# Database commands


async def cmd_db_init(ctx: CLIContext) -> int:
    """Create the registry tables."""
    try:
        await ctx.database.create_schema()
        ctx.output({"success": True, "message": "Registry schema ready"})
        return 0
    except Exception as e:
        return ctx.fail(e)


# Network commands


async def cmd_networks_list(ctx: CLIContext) -> int:
    """List active networks."""
    try:
        networks = await ctx.registry.list_active(ctx.request)
        ctx.output({"count": len(networks), "networks": [network_view(n) for n in networks]})
        return 0
    except Exception as e:
        return ctx.fail(e)


async def cmd_networks_get(ctx: CLIContext, network_id: str) -> int:
    """Show a network."""
    try:
        network = await ctx.registry.get_by_id(ctx.request, network_id)
        ctx.output(network_view(network))
        return 0
    except Exception as e:
        return ctx.fail(e)


async def cmd_networks_create(ctx: CLIContext, payload: str) -> int:
    """Register a network."""
    try:
        data = parse_create(load_payload(payload))
        network = await ctx.registry.create(ctx.request, data)
        ctx.output({"success": True, "network": network_view(network)})
        return 0
    except Exception as e:
        return ctx.fail(e)


async def cmd_networks_update(ctx: CLIContext, network_id: str, payload: str) -> int:
    """Replace a network's fields."""
    try:
        data = parse_update(load_payload(payload))
        network = await ctx.registry.update(ctx.request, network_id, data)
        ctx.output({"success": True, "network": network_view(network)})
        return 0
    except Exception as e:
        return ctx.fail(e)


async def cmd_networks_patch(ctx: CLIContext, network_id: str, payload: str) -> int:
    """Change some of a network's fields."""
    try:
        data = parse_update(load_payload(payload))
        network = await ctx.registry.partial_update(ctx.request, network_id, data)
        ctx.output({"success": True, "network": network_view(network)})
        return 0
    except Exception as e:
        return ctx.fail(e)


async def cmd_networks_delete(ctx: CLIContext, network_id: str) -> int:
    """Soft delete a network."""
    try:
        await ctx.registry.soft_delete(ctx.request, network_id)
        ctx.output({"success": True, "network_id": network_id, "active": False})
        return 0
    except Exception as e:
        return ctx.fail(e)


async def cmd_networks_probe(ctx: CLIContext, network_id: str, timeout: float = 5.0) -> int:
    """Check that a network's RPC endpoints serve its chain id."""
    try:
        network = await ctx.registry.get_by_id(ctx.request, network_id)
        result = await asyncio.to_thread(RpcProbe(timeout=timeout).check, network)
        ctx.output(result.to_dict())
        return 0 if result.healthy else 1
    except Exception as e:
        return ctx.fail(e)


async def dispatch(ctx: CLIContext, args: argparse.Namespace) -> int:
    """Route parsed arguments to a command."""
    if args.command == "db":
        if args.db_command == "init":
            return await cmd_db_init(ctx)
        print("Usage: netreg db [init]", file=sys.stderr)
        return 1

    if args.command == "networks":
        if args.networks_command == "list":
            return await cmd_networks_list(ctx)
        elif args.networks_command == "get":
            return await cmd_networks_get(ctx, args.network_id)
        elif args.networks_command == "create":
            return await cmd_networks_create(ctx, args.payload)
        elif args.networks_command == "update":
            return await cmd_networks_update(ctx, args.network_id, args.payload)
        elif args.networks_command == "patch":
            return await cmd_networks_patch(ctx, args.network_id, args.payload)
        elif args.networks_command == "delete":
            return await cmd_networks_delete(ctx, args.network_id)
        elif args.networks_command == "probe":
            return await cmd_networks_probe(ctx, args.network_id, args.timeout)
        print(
            "Usage: netreg networks [list|get|create|update|patch|delete|probe]",
            file=sys.stderr,
        )
        return 1

    # No subcommand - show help
    return -1


async def _run(ctx: CLIContext, args: argparse.Namespace) -> int:
    try:
        await ctx.open()
    except Exception as e:
        return ctx.fail(e)
    try:
        return await dispatch(ctx, args)
    finally:
        await ctx.close()


def run_cli(args: argparse.Namespace) -> int:
    """Execute CLI command based on parsed arguments.

    Returns
    -------
    int
        Exit code: 0 for success, positive for error, -1 signals caller
        to show help (no CLI command specified).
    """
    if args.command not in ("db", "networks"):
        return -1

    try:
        config = NetregConfig()
    except Exception as e:
        if args.json:
            print(json.dumps({"error": f"Configuration error: {e}"}))
        else:
            print(f"Configuration error: {e}", file=sys.stderr)
        return 1

    ctx = CLIContext(config, json_output=args.json, correlation_id=args.correlation_id)
    return asyncio.run(_run(ctx, args))
