"""Execution of business process definitions.

The runner interprets a validated definition against a backend, applies
the per-step timeout, retry and continue-on-error policy, evaluates the
assertion groups, and returns an immutable run result.
"""

from .assertions import AssertionEvaluator, check_rows, expectation_met
from .results import ActionResult, AssertionOutcome, PhaseResult, RunError, RunResult, StepResult
from .runner import DRY_RUN_OUTPUT, ProcessRunner, run

__all__ = (
    'DRY_RUN_OUTPUT',
    'ActionResult',
    'AssertionEvaluator',
    'AssertionOutcome',
    'PhaseResult',
    'ProcessRunner',
    'RunError',
    'RunResult',
    'StepResult',
    'check_rows',
    'expectation_met',
    'run',
)
