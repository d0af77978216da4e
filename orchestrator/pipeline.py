"""
Module 13 - Pipeline Integration

Deterministic, in-process runner composing the bridge modules:
load blocks from a data source, prove, re-verify the proof from its own
contents, and optionally export a circuit witness.

Key features:
- One step list per request kind (step, skip, data commitment)
- Verification failures come back as a VerificationResult, not an exception
- The config is passed in; nothing here reads the environment
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Optional

from bridge_core.config.runtime import BridgeConfig
from bridge_core.crypto.hashing import to_hex
from bridge_core.schemas.errors import HashMismatchException, MalformedInputException
from bridge_core.schemas.proof import DataCommitmentProof, SkipProof, StepProof
from bridge_core.schemas.verification import CheckResult, VerificationResult
from bridge_core.tendermint.commitment import (
    prove_data_commitment,
    verify_data_commitment_proof,
)
from bridge_core.tendermint.protocol import prove_skip, prove_step, verify_bridge_proof
from bridge_core.tendermint.validator_set import hash_validator_set
from bridge_core.witness import JsonWitnessBackend, WitnessBackend

from orchestrator.inputs import BlockDataSource, load_headers
from orchestrator.sop_executor import PipelineState, SOPExecutor, SOPStep, make_step


logger = logging.getLogger(__name__)


# =============================================================================
# Run Result
# =============================================================================

@dataclass
class RunResult:
    """Complete result of a pipeline run."""
    kind: str
    heights: tuple[int, ...]
    verification: VerificationResult
    proof: Optional[Any] = None
    witness_path: Optional[str] = None
    details: dict[str, Any] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return self.verification.ok

    @property
    def checks(self) -> list[CheckResult]:
        return self.verification.checks

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "ok": self.ok,
            "kind": self.kind,
            "heights": list(self.heights),
            "checks": [check.model_dump() for check in self.checks],
            "error": self.verification.error.model_dump() if self.verification.error else None,
            "witness_path": self.witness_path,
        }
        if isinstance(self.proof, (StepProof, SkipProof)):
            data["target_header_hash"] = to_hex(self.proof.target_header_hash)
            data["validator_set_hash"] = to_hex(self.proof.validator_set_hash)
            data["accumulated_power"] = self.proof.accumulated_power
            data["total_power"] = self.proof.total_power
        elif isinstance(self.proof, DataCommitmentProof):
            data["commitment_root"] = to_hex(self.proof.commitment_root)
            data["capacity"] = self.proof.capacity
        data.update(self.details)
        return data


# =============================================================================
# Pipeline Class
# =============================================================================

class VerificationPipeline:
    """
    Runs bridge requests against a block data source.

    Example:
        pipeline = VerificationPipeline(FixtureDataSource("fixtures"))
        result = pipeline.run_step(11000, 11001)
        assert result.ok
    """

    def __init__(
        self,
        source: BlockDataSource,
        *,
        config: Optional[BridgeConfig] = None,
        witness_backend: Optional[WitnessBackend] = None,
    ):
        self.source = source
        self.config = config or BridgeConfig()
        self.witness_backend = witness_backend or JsonWitnessBackend()
        self._executor = SOPExecutor(stop_on_error=True)

    @property
    def params(self):
        return self.config.protocol

    # -------------------------------------------------------------------------
    # Shared steps
    # -------------------------------------------------------------------------

    def _check_chain_id(self, chain_id: str, height: int) -> None:
        expected = self.config.network.chain_id
        if chain_id != expected:
            raise MalformedInputException(
                f"Block {height} is on chain {chain_id!r}, expected {expected!r}",
                field_path="header.chain_id",
            )

    def _step_load_blocks(self, state: PipelineState) -> PipelineState:
        trusted, target = state.heights
        state.trusted_block = self.source.signed_block(trusted)
        state.trusted_header = state.trusted_block.header
        state.target_block = self.source.signed_block(target)
        for block in (state.trusted_block, state.target_block):
            self._check_chain_id(block.header.chain_id, block.height)
        state.add_check(CheckResult.passed(
            "load_inputs",
            f"Loaded blocks {trusted} and {target} from {self.source.source_id}",
        ))
        return state

    def _step_verify_bridge_proof(self, state: PipelineState) -> PipelineState:
        verify_bridge_proof(state.proof, self.params)
        state.add_check(CheckResult.passed(
            "verify_proof",
            "Proof re-verified from its own contents",
            details={
                "accumulated_power": state.proof.accumulated_power,
                "total_power": state.proof.total_power,
            },
        ))
        return state

    def _step_export_witness(self, state: PipelineState, path: Path) -> PipelineState:
        written = self.witness_backend.write(state.proof, path)
        state.witness_path = str(written)
        state.add_check(CheckResult.passed("export_witness", f"Witness written to {written}"))
        return state

    def _finish(self, steps: list[SOPStep], state: PipelineState, witness_out: Optional[str | Path]) -> RunResult:
        if witness_out is not None:
            steps.append(make_step("export_witness", lambda s: self._step_export_witness(s, Path(witness_out))))
        state = self._executor.execute(steps, state)
        return self._state_to_result(state)

    # -------------------------------------------------------------------------
    # Step
    # -------------------------------------------------------------------------

    def _step_prove_step(self, state: PipelineState) -> PipelineState:
        state.proof = prove_step(state.trusted_header, state.target_block, self.params)
        state.add_check(CheckResult.passed(
            "prove",
            f"Block {state.target_block.height} follows trusted block {state.trusted_header.height}",
        ))
        return state

    def run_step(self, trusted: int, target: int, *, witness_out: Optional[str | Path] = None) -> RunResult:
        """Prove the block at target follows the trusted block."""
        logger.info(f"Pipeline step {trusted} -> {target}")
        state = PipelineState(kind="step", heights=(trusted, target))
        steps = [
            make_step("load_inputs", self._step_load_blocks),
            make_step("prove", self._step_prove_step),
            make_step("verify_proof", self._step_verify_bridge_proof),
        ]
        return self._finish(steps, state, witness_out)

    # -------------------------------------------------------------------------
    # Skip
    # -------------------------------------------------------------------------

    def _step_prove_skip(self, state: PipelineState, check_trust_overlap: bool) -> PipelineState:
        trusted_validators = state.trusted_block.validator_set if check_trust_overlap else None
        proof = prove_skip(
            state.trusted_header,
            state.target_block,
            self.params,
            trusted_validators=trusted_validators,
        )
        state.proof = proof
        state.add_check(CheckResult.passed(
            "prove",
            f"Block {state.target_block.height} committed by the current validator set",
        ))
        if proof.trust_overlap is None:
            state.add_check(CheckResult.warning(
                "trust_overlap",
                "Trusted validator set not checked for overlap",
            ))
        else:
            state.add_check(CheckResult.passed(
                "trust_overlap",
                "Signers overlap the trusted validator set",
                details={
                    "accumulated": proof.trust_overlap.accumulated,
                    "trusted_total": proof.trust_overlap.trusted_total,
                },
            ))
        return state

    def run_skip(
        self,
        trusted: int,
        target: int,
        *,
        check_trust_overlap: bool = True,
        witness_out: Optional[str | Path] = None,
    ) -> RunResult:
        """Prove the block at target from the trusted block across any gap."""
        logger.info(f"Pipeline skip {trusted} -> {target}")
        state = PipelineState(kind="skip", heights=(trusted, target))
        steps = [
            make_step("load_inputs", self._step_load_blocks),
            make_step("prove", lambda s: self._step_prove_skip(s, check_trust_overlap)),
            make_step("verify_proof", self._step_verify_bridge_proof),
        ]
        return self._finish(steps, state, witness_out)

    # -------------------------------------------------------------------------
    # Data commitment
    # -------------------------------------------------------------------------

    def _step_load_headers(self, state: PipelineState) -> PipelineState:
        start, end = state.heights
        state.headers = load_headers(self.source, start, end)
        for header in state.headers:
            self._check_chain_id(header.chain_id, header.height)
        state.add_check(CheckResult.passed(
            "load_inputs",
            f"Loaded {len(state.headers)} headers from {self.source.source_id}",
        ))
        return state

    def _step_prove_commitment(self, state: PipelineState, capacity: int) -> PipelineState:
        state.proof = prove_data_commitment(state.headers, capacity)
        state.add_check(CheckResult.passed(
            "prove",
            f"Committed {len(state.proof.window.data_hashes)} data hashes",
            details={"commitment_root": to_hex(state.proof.commitment_root)},
        ))
        return state

    def _step_verify_commitment(self, state: PipelineState) -> PipelineState:
        verify_data_commitment_proof(state.proof)
        state.add_check(CheckResult.passed("verify_proof", "Commitment re-verified from its proofs"))
        return state

    def run_commitment(
        self,
        start: int,
        end: int,
        *,
        capacity: Optional[int] = None,
        witness_out: Optional[str | Path] = None,
    ) -> RunResult:
        """Commit to the data hashes of blocks [start, end)."""
        if capacity is None:
            capacity = self.params.commitment_capacity
        logger.info(f"Pipeline commitment [{start}, {end}) capacity {capacity}")
        state = PipelineState(kind="commitment", heights=(start, end))
        steps = [
            make_step("load_inputs", self._step_load_headers),
            make_step("prove", lambda s: self._step_prove_commitment(s, capacity)),
            make_step("verify_proof", self._step_verify_commitment),
        ]
        return self._finish(steps, state, witness_out)

    # -------------------------------------------------------------------------
    # Validator set hash
    # -------------------------------------------------------------------------

    def validator_hash(self, height: int) -> RunResult:
        """Hash the validator set at a height and compare it with the header."""
        state = PipelineState(kind="validator_hash", heights=(height,))
        computed: dict[str, Any] = {}

        def load(s: PipelineState) -> PipelineState:
            s.target_block = self.source.signed_block(height)
            s.add_check(CheckResult.passed("load_inputs", f"Loaded block {height}"))
            return s

        def compare(s: PipelineState) -> PipelineState:
            block = s.target_block
            digest = hash_validator_set(block.validator_set.validators)
            computed["validator_set_hash"] = to_hex(digest)
            computed["validator_count"] = len(block.validator_set)
            if digest != block.header.validators_hash:
                raise HashMismatchException(
                    f"Validator set at {height} does not hash to the header's validators_hash",
                    expected=block.header.validators_hash,
                    actual=digest,
                )
            s.add_check(CheckResult.passed("validators_hash", "Validator set matches header"))
            return s

        state = self._executor.execute(
            [make_step("load_inputs", load), make_step("validators_hash", compare)],
            state,
        )
        result = self._state_to_result(state)
        result.details.update(computed)
        return result

    def _state_to_result(self, state: PipelineState) -> RunResult:
        if state.ok:
            verification = VerificationResult.success(state.checks)
        else:
            verification = VerificationResult.failure(state.checks, state.error)
            logger.warning(
                f"Pipeline {state.kind} {state.heights} failed at "
                f"{self._executor.get_failed_steps()}: {verification.get_error_messages()}"
            )
        return RunResult(
            kind=state.kind,
            heights=state.heights,
            verification=verification,
            proof=state.proof if state.ok else None,
            witness_path=state.witness_path,
        )


__all__ = [
    "RunResult",
    "VerificationPipeline",
]
