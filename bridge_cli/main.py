"""
CLI Main Entry Point

Parses command-line arguments and dispatches to subcommands.

Usage:
    tendermint-bridge step --trusted H --target H+1 [--json] [--witness-out PATH]
    tendermint-bridge skip --trusted H --target M [--no-trust-overlap] [--json] [--witness-out PATH]
    tendermint-bridge commitment --start S --end E [--capacity N] [--json] [--witness-out PATH]
    tendermint-bridge validator-hash --height H [--json]
    tendermint-bridge config --init | --show

Environment Variables:
    BRIDGE_NETWORK              Network name
    BRIDGE_CHAIN_ID             Chain id every loaded block must carry
    BRIDGE_FIXTURE_PATH         Fixture directory (default: fixtures)
    BRIDGE_COMMITMENT_CAPACITY  Data commitment capacity (default: 256)
    BRIDGE_LOG_LEVEL            Log level (default: INFO)
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
import traceback
from pathlib import Path
from typing import Sequence

import yaml

from bridge_cli import __version__
from bridge_cli.commands import prove, validators
from bridge_cli.commands.prove import EXIT_RUNTIME_ERROR, EXIT_SUCCESS
from bridge_cli.config import get_default_config_template, load_config
from bridge_core.schemas.errors import ConfigException


def setup_logging(level: str = "INFO", log_file: str | None = None) -> None:
    """Configure logging for the CLI."""
    log_level = getattr(logging, level.upper(), logging.INFO)

    handlers: list[logging.Handler] = [logging.StreamHandler(sys.stderr)]

    if log_file:
        handlers.append(logging.FileHandler(log_file))

    logging.basicConfig(
        level=log_level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
        handlers=handlers,
        force=True,
    )


def _add_output_options(parser: argparse.ArgumentParser, witness: bool = True) -> None:
    parser.add_argument(
        "--json",
        action="store_true",
        default=False,
        help="Output machine-readable JSON summary",
    )
    if witness:
        parser.add_argument(
            "--witness-out",
            type=Path,
            default=None,
            help="Write the circuit witness (canonical JSON) to this path",
        )


def create_parser() -> argparse.ArgumentParser:
    """Create the argument parser with all subcommands."""
    parser = argparse.ArgumentParser(
        prog="tendermint-bridge",
        description="Tendermint bridge verification - prove header transitions and data commitments.",
    )
    parser.add_argument(
        "--version", action="version", version=f"%(prog)s {__version__}"
    )
    parser.add_argument(
        "--config", "-c",
        type=Path,
        default=None,
        help="Path to YAML configuration file (default: ./bridge.yaml if present)",
    )
    parser.add_argument(
        "--fixtures",
        type=str,
        default=None,
        help="Fixture directory holding <height>/signed_block.json (overrides config)",
    )
    parser.add_argument(
        "--log-level",
        type=str,
        default=None,
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Log level (overrides config)",
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # --- step command ---
    step_parser = subparsers.add_parser(
        "step",
        help="Prove the block after a trusted block",
        description="Verify target = trusted + 1 against the trusted next_validators_hash.",
    )
    step_parser.add_argument("--trusted", type=int, required=True, help="Trusted height")
    step_parser.add_argument("--target", type=int, required=True, help="Target height")
    _add_output_options(step_parser)
    step_parser.set_defaults(func=prove.step_cmd)

    # --- skip command ---
    skip_parser = subparsers.add_parser(
        "skip",
        help="Prove a later block from a trusted block",
        description="Verify a target above the trusted height by its own commit.",
    )
    skip_parser.add_argument("--trusted", type=int, required=True, help="Trusted height")
    skip_parser.add_argument("--target", type=int, required=True, help="Target height")
    skip_parser.add_argument(
        "--no-trust-overlap",
        action="store_true",
        default=False,
        help="Do not check signer overlap with the trusted validator set",
    )
    _add_output_options(skip_parser)
    skip_parser.set_defaults(func=prove.skip_cmd)

    # --- commitment command ---
    commitment_parser = subparsers.add_parser(
        "commitment",
        help="Build a data commitment over a block range",
        description="Commit to (data_hash, height) for blocks [start, end).",
    )
    commitment_parser.add_argument("--start", type=int, required=True, help="Start height (inclusive)")
    commitment_parser.add_argument("--end", type=int, required=True, help="End height (exclusive)")
    commitment_parser.add_argument(
        "--capacity",
        type=int,
        default=None,
        help="Leaf capacity, a power of two (default: from config)",
    )
    _add_output_options(commitment_parser)
    commitment_parser.set_defaults(func=prove.commitment_cmd)

    # --- validator-hash command ---
    vh_parser = subparsers.add_parser(
        "validator-hash",
        help="Hash the validator set at a height",
        description="Compute the validator set hash and compare it with the header.",
    )
    vh_parser.add_argument("--height", type=int, required=True, help="Block height")
    _add_output_options(vh_parser, witness=False)
    vh_parser.set_defaults(func=validators.validator_hash_cmd)

    # --- config command ---
    config_parser = subparsers.add_parser(
        "config",
        help="Manage configuration",
        description="Initialize or display configuration.",
    )
    config_parser.add_argument(
        "--init",
        action="store_true",
        default=False,
        help="Create a template configuration file",
    )
    config_parser.add_argument(
        "--show",
        action="store_true",
        default=False,
        help="Show current configuration",
    )
    config_parser.add_argument(
        "--path",
        type=str,
        default="bridge.yaml",
        help="Path for config file (default: bridge.yaml)",
    )
    config_parser.set_defaults(func=config_cmd)

    return parser


def config_cmd(args: argparse.Namespace) -> int:
    """Handle config command."""
    if args.init:
        config_path = Path(args.path)
        if config_path.exists():
            print(f"Error: Config file already exists: {config_path}", file=sys.stderr)
            return EXIT_RUNTIME_ERROR
        config_path.write_text(get_default_config_template())
        print(f"Created configuration file: {config_path}")
        return EXIT_SUCCESS

    if args.show:
        print(json.dumps(args.bridge_config.to_dict(), indent=2))
        return EXIT_SUCCESS

    print("Usage: tendermint-bridge config [--init|--show]")
    return EXIT_SUCCESS


def main(argv: Sequence[str] | None = None) -> int:
    """
    Main entry point for the CLI.

    Args:
        argv: Command-line arguments (defaults to sys.argv[1:])

    Returns:
        Exit code (0=success, 1=error, 2=verification failed)
    """
    parser = create_parser()
    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        return EXIT_RUNTIME_ERROR

    try:
        config = load_config(args.config)
    except (FileNotFoundError, ConfigException, yaml.YAMLError) as e:
        print(f"Error loading configuration: {e}", file=sys.stderr)
        return EXIT_RUNTIME_ERROR

    if args.fixtures:
        config.fixtures.path = args.fixtures
    log_level = args.log_level or config.log_level
    setup_logging(level=log_level, log_file=config.log_file)

    args.bridge_config = config

    try:
        return args.func(args)
    except KeyboardInterrupt:
        print("\nInterrupted.", file=sys.stderr)
        return EXIT_RUNTIME_ERROR
    except Exception as e:
        if log_level.upper() == "DEBUG":
            traceback.print_exc()
        else:
            print(f"Error: {e}", file=sys.stderr)
        return EXIT_RUNTIME_ERROR


if __name__ == "__main__":
    sys.exit(main())
