"""
CLI Validator Hash Command

Hash the validator set stored for a height and compare it with the
header's validators_hash.

Usage:
    tendermint-bridge validator-hash --height H [--json]
"""

from __future__ import annotations

from argparse import Namespace

from bridge_cli.commands.prove import build_pipeline, report


def validator_hash_cmd(args: Namespace) -> int:
    pipeline = build_pipeline(args)
    result = pipeline.validator_hash(args.height)
    return report(args, result)
