"""
Pipeline Integration (In-Process Runtime Wiring)

Loads signed blocks, runs the bridge protocol and reports the outcome as
a VerificationResult.

Public API:
- VerificationPipeline: Runner for step, skip and data commitment requests
- RunResult: Complete result of a pipeline run
- BlockDataSource / FixtureDataSource / InMemoryDataSource: Block inputs
- signed_block_from_json / signed_block_to_json: RPC JSON codec
- SOPExecutor / PipelineState: Step executor and its state
"""

from orchestrator.inputs import (
    BlockDataSource,
    FixtureDataSource,
    InMemoryDataSource,
    load_headers,
    write_fixture,
)
from orchestrator.pipeline import RunResult, VerificationPipeline
from orchestrator.rpc_json import signed_block_from_json, signed_block_to_json
from orchestrator.sop_executor import (
    FunctionStep,
    PipelineState,
    SOPExecutor,
    SOPStep,
    make_step,
)

__all__ = [
    "BlockDataSource",
    "FixtureDataSource",
    "InMemoryDataSource",
    "load_headers",
    "write_fixture",
    "RunResult",
    "VerificationPipeline",
    "signed_block_from_json",
    "signed_block_to_json",
    "FunctionStep",
    "PipelineState",
    "SOPExecutor",
    "SOPStep",
    "make_step",
]
