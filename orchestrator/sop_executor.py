"""
Pipeline Step Executor

Purpose: Keep pipeline stages composable and testable with minimal abstraction.

Provides:
- SOPStep: Protocol for individual pipeline steps
- PipelineState: Dataclass holding inputs and artifacts incrementally
- SOPExecutor: Runner that executes steps in sequence

Verification failures (BridgeException) are recorded on the state as a
failed check plus a structured error; any other exception is a bug and
propagates to the caller.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Callable, Optional, Protocol

from bridge_core.schemas.commit import SignedBlock
from bridge_core.schemas.errors import BridgeError, BridgeException
from bridge_core.schemas.header import HeaderFields
from bridge_core.schemas.verification import CheckResult


@dataclass
class PipelineState:
    """
    Holds inputs and artifacts as the pipeline progresses.

    Each step may read from and write to this state.
    """

    # Request
    kind: str = ""
    heights: tuple[int, ...] = ()

    # Loaded inputs
    trusted_header: Optional[HeaderFields] = None
    trusted_block: Optional[SignedBlock] = None
    target_block: Optional[SignedBlock] = None
    headers: list[HeaderFields] = field(default_factory=list)

    # Output
    proof: Optional[Any] = None
    witness_path: Optional[str] = None

    # Aggregated results
    checks: list[CheckResult] = field(default_factory=list)
    error: Optional[BridgeError] = None
    ok: bool = True

    def add_check(self, check: CheckResult) -> None:
        self.checks.append(check)
        if not check.ok and check.severity == "error":
            self.ok = False

    def fail(self, step_name: str, exc: BridgeException) -> None:
        """Record a verification failure from a step."""
        self.add_check(
            CheckResult.failed(
                step_name,
                exc.message,
                details={"code": exc.code, **exc.details},
            )
        )
        self.error = exc.to_error_model()


class SOPStep(Protocol):
    """
    Protocol for a single pipeline step.

    Each step has a name and a run method that transforms state.
    """

    @property
    def name(self) -> str:
        ...

    def run(self, state: PipelineState) -> PipelineState:
        ...


@dataclass
class FunctionStep:
    """
    Adapter to create SOPStep from a plain function.

    Example:
        step = FunctionStep("load_inputs", lambda s: load(s))
    """

    _name: str
    _func: Callable[[PipelineState], PipelineState]

    @property
    def name(self) -> str:
        return self._name

    def run(self, state: PipelineState) -> PipelineState:
        return self._func(state)


class SOPExecutor:
    """
    Executor that runs a sequence of SOPSteps.

    A step that raises BridgeException is recorded as failed; a step that
    leaves state.ok False stops the run when stop_on_error is set.
    """

    def __init__(self, *, stop_on_error: bool = True):
        self.stop_on_error = stop_on_error
        self._step_results: list[tuple[str, bool, Optional[str]]] = []

    def execute(
        self,
        steps: list[SOPStep],
        state: PipelineState,
    ) -> PipelineState:
        self._step_results = []

        for step in steps:
            try:
                state = step.run(state)
                self._step_results.append((step.name, True, None))
                if self.stop_on_error and not state.ok:
                    break
            except BridgeException as e:
                state.fail(step.name, e)
                self._step_results.append((step.name, False, e.message))
                if self.stop_on_error:
                    break

        return state

    def get_failed_steps(self) -> list[str]:
        return [name for name, success, _ in self._step_results if not success]


def make_step(name: str, func: Callable[[PipelineState], PipelineState]) -> SOPStep:
    return FunctionStep(name, func)


__all__ = [
    "PipelineState",
    "SOPStep",
    "FunctionStep",
    "SOPExecutor",
    "make_step",
]
