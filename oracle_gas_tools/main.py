"""
Oracle Gas Tools - Command Line Entry

Tenderly fork/simulation commands, oracle calldata helpers and gas profiling.
Results are written to stdout as JSON (calldata as raw hex), logs go to stderr.
"""

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path
from typing import Any, List, Optional

import httpx

from .config import Settings, get_settings, resolve_environment
from .errors import OracleToolsError, ValidationError
from .oracles import coinbase
from .profiling import ProfileScenario, label_head, profile_scenario, recreate_fork, summarize
from .simulation import (
    ForkManager,
    ForkParams,
    SimulationFork,
    SimulationParams,
    SimulationRunner,
    TenderlyClient,
)

logger = logging.getLogger(__name__)


# =============================================================================
# Logging Configuration
# =============================================================================

def setup_logging(level: str = "INFO"):
    """Configure logging"""
    logging.basicConfig(
        level=getattr(logging, level.upper()),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        stream=sys.stderr,
    )


# =============================================================================
# Argument Parsing
# =============================================================================

def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="oracle-gas-tools",
        description="Tenderly fork/simulation and oracle calldata utilities",
    )
    parser.add_argument("--log-level", default=None, help="Override LOG_LEVEL")
    commands = parser.add_subparsers(dest="command", required=True)

    # fork
    fork = commands.add_parser("fork", help="Manage Tenderly forks")
    fork_commands = fork.add_subparsers(dest="fork_command", required=True)

    create = fork_commands.add_parser("create", help="Create a fork")
    create.add_argument("--chain-id", type=int, required=True)
    create.add_argument("--block-number", type=int)
    create.add_argument("--tx-index", type=int)
    create.add_argument("--alias")
    create.add_argument("--description")

    for name in ("get", "share", "unshare", "delete"):
        cmd = fork_commands.add_parser(name, help=f"{name.capitalize()} a fork")
        cmd.add_argument("fork_id")

    find = fork_commands.add_parser("find", help="Find a fork by description")
    find.add_argument("description")

    recreate = fork_commands.add_parser(
        "recreate", help="Replace the generated fork of an alias with a shared one"
    )
    recreate.add_argument("alias")
    recreate.add_argument("--chain-id", type=int, required=True)
    recreate.add_argument("--block-number", type=int)
    recreate.add_argument("--tx-index", type=int)

    timestamp = fork_commands.add_parser("timestamp", help="Read a block timestamp on a fork")
    timestamp.add_argument("fork_id")
    timestamp.add_argument("--block-number", type=int, help="Latest block when unset")

    balance = fork_commands.add_parser("set-balance", help="Set an account balance")
    balance.add_argument("fork_id")
    balance.add_argument("address")
    balance.add_argument("balance_wei")

    label = fork_commands.add_parser("label", help="Label the latest fork transaction")
    label.add_argument("fork_id")
    label.add_argument("description")

    # simulate
    simulate = commands.add_parser("simulate", help="Simulate a transaction")
    simulate.add_argument("--chain-id", type=int, required=True)
    simulate.add_argument("--to")
    simulate.add_argument("--input")
    simulate.add_argument("--value")
    simulate.add_argument("--from", dest="from_address")
    simulate.add_argument("--timestamp", type=int, dest="timestamp_override")
    simulate.add_argument("--fork-id")
    simulate.add_argument("--root", help="Simulation id to build on (requires --fork-id)")
    simulate.add_argument("--description")

    # profile
    profile = commands.add_parser("profile", help="Compare regular and unlocking gas")
    profile.add_argument("scenarios", nargs="+", type=Path, help="Scenario JSON files")

    # coinbase
    cb = commands.add_parser("coinbase", help="Coinbase oracle prices")
    cb_commands = cb.add_subparsers(dest="coinbase_command", required=True)
    fetch = cb_commands.add_parser("fetch", help="Fetch and cache signed prices")
    fetch.add_argument("--cache", type=Path)
    read = cb_commands.add_parser("read", help="Encode a cached ticker as calldata")
    read.add_argument("symbol")
    read.add_argument("--cache", type=Path)

    return parser


# =============================================================================
# Commands
# =============================================================================

async def run_fork_command(args: argparse.Namespace, manager: ForkManager) -> Any:
    command = args.fork_command
    if command == "create":
        fork = await manager.create(
            ForkParams(
                chain_id=args.chain_id,
                block_number=args.block_number,
                tx_index=args.tx_index,
                alias=args.alias,
                description=args.description,
            )
        )
        return fork.model_dump()
    if command == "get":
        return (await manager.get(args.fork_id)).model_dump()
    if command == "share":
        return {"url": await manager.share(args.fork_id)}
    if command == "unshare":
        await manager.unshare(args.fork_id)
        return {"fork_id": args.fork_id, "shared": False}
    if command == "delete":
        await manager.delete(args.fork_id)
        return {"fork_id": args.fork_id, "deleted": True}
    if command == "find":
        fork = await manager.find_by_description(args.description)
        return fork.model_dump() if fork is not None else None
    if command == "recreate":
        fork, url = await recreate_fork(
            manager, args.alias, args.chain_id, args.block_number, args.tx_index
        )
        return {"fork": fork.model_dump(), "url": url}
    if command == "timestamp":
        fork = await manager.get(args.fork_id)
        return {"timestamp": await manager.get_block_timestamp(fork, args.block_number)}
    if command == "set-balance":
        head_id = await manager.set_balance(args.fork_id, args.address, args.balance_wei)
        return {"head_id": head_id}
    if command == "label":
        fork = await label_head(manager, args.fork_id, args.description)
        return {"head_id": fork.head_id}
    raise ValueError(f"Unknown fork command: {command}")


def simulation_params_from_args(args: argparse.Namespace) -> SimulationParams:
    if args.root is not None and args.fork_id is None:
        raise ValidationError("--root requires --fork-id")
    fork = SimulationFork(id=args.fork_id, root=args.root) if args.fork_id else None
    return SimulationParams(
        chain_id=args.chain_id,
        to=args.to,
        input=args.input,
        value=args.value,
        from_address=args.from_address,
        timestamp_override=args.timestamp_override,
        fork=fork,
        description=args.description,
    )


async def run_tenderly_command(args: argparse.Namespace, settings: Settings) -> Any:
    env = resolve_environment(settings)
    async with TenderlyClient(env, settings) as client:
        manager = ForkManager(client)
        runner = SimulationRunner(client)

        if args.command == "fork":
            return await run_fork_command(args, manager)
        if args.command == "simulate":
            result = await runner.simulate(simulation_params_from_args(args))
            return result.model_dump()
        if args.command == "profile":
            comparisons = []
            for path in args.scenarios:
                scenario = ProfileScenario.model_validate_json(path.read_text())
                comparisons.append(await profile_scenario(manager, runner, scenario))
            return summarize(comparisons)
    raise ValueError(f"Unknown command: {args.command}")


async def run_coinbase_command(args: argparse.Namespace, settings: Settings) -> Any:
    cache = args.cache or settings.coinbase_cache_path
    if args.coinbase_command == "fetch":
        credentials = coinbase.CoinbaseCredentials.from_settings(settings)
        async with httpx.AsyncClient(timeout=settings.http_timeout) as http_client:
            prices = await coinbase.fetch_prices(
                credentials, http_client, settings.coinbase_api_url
            )
        coinbase.write_cache(prices, cache)
        return {"cache": str(cache), "tickers": sorted(prices)}
    return coinbase.encode_ticker(coinbase.read_cache(cache), args.symbol)


async def run(args: argparse.Namespace, settings: Settings) -> Any:
    if args.command == "coinbase":
        return await run_coinbase_command(args, settings)
    return await run_tenderly_command(args, settings)


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    settings = get_settings()
    setup_logging(args.log_level or settings.log_level)

    try:
        output = asyncio.run(run(args, settings))
    except (OracleToolsError, OSError, ValueError) as e:
        logger.error(f"{type(e).__name__}: {e}")
        return 1

    if isinstance(output, str):
        sys.stdout.write(output)
    else:
        print(json.dumps(output, indent=2))
    return 0


if __name__ == "__main__":
    sys.exit(main())
