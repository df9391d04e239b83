"""Run result models.

Results are immutable once built. The runner accumulates outcomes while a
run progresses and freezes them into a `RunResult` at the end, so that a
caller always receives a complete result, even after a total failure.
"""

from typing import Any, Literal

from pydantic import Field, computed_field

from hera_testing.models import SchemaModel

type ErrorKind = Literal['configuration', 'setup', 'step', 'timeout', 'cleanup', 'assertion']

type AssertionKind = Literal['ui', 'database', 'business']


class ActionResult(SchemaModel):
    """Outcome of a single action."""

    action_type: str = Field(title='Action kind')
    success: bool = Field(title='Success')
    duration: float = Field(default=0, ge=0, title='Duration (ms)')
    payload: Any = Field(
        default=None,
        title='Resolved payload',
        description='Payload after placeholder resolution, as dispatched.',
    )
    output: Any = Field(default=None, title='Output')
    error: str | None = Field(default=None, title='Error')
    store_as: str | None = Field(default=None, title='Stored variable')


class StepResult(SchemaModel):
    """Outcome of a step, over all its attempts."""

    id: str = Field(title='Step identifier')
    success: bool = Field(title='Success')
    duration: float = Field(default=0, ge=0, title='Duration (ms)')
    attempts: int = Field(default=1, ge=0, title='Attempts')
    actions: list[ActionResult] = Field(
        default_factory=list,
        title='Action results',
        description='Action outcomes of the last attempt.',
    )
    error: str | None = Field(default=None, title='Error')


class PhaseResult(SchemaModel):
    """Outcome of the setup or the cleanup phase."""

    success: bool = Field(title='Success')
    duration: float = Field(default=0, ge=0, title='Duration (ms)')
    actions: list[ActionResult] = Field(default_factory=list, title='Action results')


class AssertionOutcome(SchemaModel):
    """Outcome of a single check of an assertion group."""

    group: int = Field(ge=0, title='Group number')
    check: int = Field(ge=0, title='Check number')
    type: AssertionKind = Field(title='Group kind')
    name: str = Field(
        title='Name',
        description='Oracle name, table name, or selector.',
    )
    passed: bool | None = Field(
        title='Passed',
        description='Whether the check passed; `None` when it was skipped.',
    )
    message: str = Field(default='', title='Message')
    details: dict[str, Any] = Field(default_factory=dict, title='Details')


class RunError(SchemaModel):
    """Error recorded during a run."""

    kind: ErrorKind = Field(title='Error kind')
    message: str = Field(title='Message')
    step_id: str | None = Field(default=None, title='Step identifier')

    def __str__(self) -> str:
        """String representation."""
        if self.step_id is not None:
            return f'[{self.kind}] {self.step_id}: {self.message}'
        return f'[{self.kind}] {self.message}'


class RunResult(SchemaModel):
    """Complete result of a run.

    A run is successful if and only if no error was recorded.
    """

    definition_id: str = Field(title='Definition identifier')
    dry_run: bool = Field(default=False, title='Dry run')
    duration: float = Field(default=0, ge=0, title='Duration (ms)')
    setup: PhaseResult | None = Field(default=None, title='Setup phase')
    steps: list[StepResult] = Field(default_factory=list, title='Step results')
    cleanup: PhaseResult | None = Field(default=None, title='Cleanup phase')
    assertions: list[AssertionOutcome] = Field(default_factory=list, title='Assertion outcomes')
    errors: list[RunError] = Field(default_factory=list, title='Errors')

    @computed_field  # type: ignore[prop-decorator]
    @property
    def success(self) -> bool:
        """Whether the run recorded no error."""
        return not self.errors
