"""
CLI Prove Commands

Run a bridge request against the fixture directory and report it:
- step: trusted height H to H+1
- skip: trusted height H to any later height
- commitment: data commitment over [start, end)

Usage:
    tendermint-bridge step --trusted H --target H+1 [--json] [--witness-out PATH]
    tendermint-bridge skip --trusted H --target M [--no-trust-overlap]
    tendermint-bridge commitment --start S --end E [--capacity N]
"""

from __future__ import annotations

import json
import logging
from argparse import Namespace

from bridge_core.schemas.errors import ErrorCodes
from orchestrator.inputs import FixtureDataSource
from orchestrator.pipeline import RunResult, VerificationPipeline


logger = logging.getLogger(__name__)


# Exit codes
EXIT_SUCCESS = 0
EXIT_RUNTIME_ERROR = 1
EXIT_VERIFICATION_FAILED = 2

# Failures caused by the environment rather than the chain data
RUNTIME_ERROR_CODES = frozenset({ErrorCodes.DATA_SOURCE_ERROR, ErrorCodes.CONFIG_ERROR})


def build_pipeline(args: Namespace) -> VerificationPipeline:
    config = args.bridge_config
    source = FixtureDataSource(config.fixtures.path)
    return VerificationPipeline(source, config=config)


def exit_code_for(result: RunResult) -> int:
    if result.ok:
        return EXIT_SUCCESS
    error = result.verification.error
    if error is not None and error.code in RUNTIME_ERROR_CODES:
        return EXIT_RUNTIME_ERROR
    return EXIT_VERIFICATION_FAILED


def print_result_human(result: RunResult) -> None:
    """Print result in human-readable format."""
    data = result.to_dict()
    print(f"kind: {result.kind}")
    print(f"heights: {' -> '.join(str(h) for h in result.heights)}")
    print(f"ok: {str(result.ok).lower()}")
    for key in (
        "target_header_hash",
        "validator_set_hash",
        "accumulated_power",
        "total_power",
        "commitment_root",
        "capacity",
        "witness_path",
    ):
        if data.get(key) is not None:
            print(f"{key}: {data[key]}")

    print(f"\nchecks ({result.verification.passed_count}/{len(result.checks)} passed):")
    for check in result.checks:
        status = "✓" if check.ok else "✗"
        marker = " [warn]" if check.is_warning else ""
        print(f"  {status} {check.check_id}{marker}: {check.message}")

    error = result.verification.error
    if error is not None:
        print(f"\nerror: [{error.code}] {error.message}")


def print_result_json(result: RunResult) -> None:
    print(json.dumps(result.to_dict(), indent=2))


def report(args: Namespace, result: RunResult) -> int:
    if args.json:
        print_result_json(result)
    else:
        print_result_human(result)

    if result.ok:
        logger.info("Verification passed")
    else:
        logger.warning("Verification failed")
    return exit_code_for(result)


def step_cmd(args: Namespace) -> int:
    """Execute the step command."""
    pipeline = build_pipeline(args)
    result = pipeline.run_step(args.trusted, args.target, witness_out=args.witness_out)
    return report(args, result)


def skip_cmd(args: Namespace) -> int:
    """Execute the skip command."""
    pipeline = build_pipeline(args)
    result = pipeline.run_skip(
        args.trusted,
        args.target,
        check_trust_overlap=not args.no_trust_overlap,
        witness_out=args.witness_out,
    )
    return report(args, result)


def commitment_cmd(args: Namespace) -> int:
    """Execute the commitment command."""
    pipeline = build_pipeline(args)
    result = pipeline.run_commitment(
        args.start,
        args.end,
        capacity=args.capacity,
        witness_out=args.witness_out,
    )
    return report(args, result)
