"""Sequential runner of business process definitions.

A run moves through three phases: setup, steps and cleanup, followed by
the evaluation of assertion groups. Steps and actions run one at a time
in declaration order; placeholders of every action are resolved against
the run context immediately before the action is dispatched.

Failures never escape the runner. Every backend or handler exception is
recorded in the run result, which is always complete.
"""

import logging
from concurrent.futures import ThreadPoolExecutor
from functools import partial
from threading import Event
from time import monotonic
from typing import TYPE_CHECKING, Any, NamedTuple

from hera_testing.conditions import evaluate_condition
from hera_testing.context import RunContext, step_output
from hera_testing.errors import DSLError, StepTimeoutError
from hera_testing.resolver import resolve
from hera_testing.settings import RunOptions
from hera_testing.values import normalize

from .assertions import AssertionEvaluator
from .results import ActionResult, PhaseResult, RunError, RunResult, StepResult

if TYPE_CHECKING:
    from collections.abc import Mapping
    from concurrent.futures import Future

if TYPE_CHECKING:
    from hera_testing.backends import Backend
    from hera_testing.schema import Action, BusinessProcessTest, Step
    from hera_testing.values import Value

    from .results import AssertionOutcome, ErrorKind

logger = logging.getLogger(__name__)

#: Output recorded for every action of a dry run.
DRY_RUN_OUTPUT = {'id': 'dry-run'}


class Attempt(NamedTuple):
    """Outcome of a single attempt of a step."""

    success: bool
    actions: list[ActionResult]
    error: str | None = None
    named: dict[str, 'Value'] | None = None
    timed_out: bool = False


def describe(error: BaseException) -> str:
    """Render an exception for a result message."""
    if isinstance(error, DSLError):
        return error.message

    return f'{type(error).__name__}: {error}'


def elapsed(started: float) -> float:
    """Milliseconds elapsed since a monotonic start time."""
    return round((monotonic() - started) * 1000, 3)


class ProcessRunner:
    """Runner of a definition against a backend.

    A runner owns the run context of each run it performs, so separate
    runner instances may run concurrently without sharing state.
    """

    def __init__(self, backend: 'Backend | None' = None,
                 options: RunOptions | None = None) -> None:
        """Initialize the runner.

        Args:
            backend: Backend receiving the actions. Only a dry run may
                omit it.
            options: Run options; resolved from the environment if omitted.
        """
        self.backend = backend
        self.options = options or RunOptions()

    @property
    def dry_run(self) -> bool:
        """Whether backend calls are skipped."""
        return self.options.dry_run

    def conditions(self, expressions: list[str]) -> list[str]:
        """Return the step conditions to check.

        Synthetic dry run outputs carry no business fields, so conditions
        are not checked in a dry run.
        """
        if self.dry_run:
            return []

        return expressions

    def log(self, message: str, *args: Any) -> None:  # noqa: ANN401
        """Log run progress, at INFO level in verbose mode."""
        logger.log(logging.INFO if self.options.verbose else logging.DEBUG, message, *args)

    def run(self, definition: 'BusinessProcessTest') -> RunResult:
        """Run a definition.

        Args:
            definition: Validated definition.

        Returns:
            The complete run result.
        """
        started = monotonic()
        deadline = None
        if self.options.timeout is not None:
            deadline = started + self.options.timeout / 1000

        errors: list[RunError] = []
        result = partial(RunResult, definition_id=definition.id, dry_run=self.dry_run, errors=errors)

        if self.backend is None and not self.dry_run:
            errors.append(RunError(kind='configuration', message='No backend configured'))
            return result(duration=elapsed(started))

        self.log('Running %r%s', definition.id, ' (dry run)' if self.dry_run else '')
        context = RunContext.seed(definition.context)

        setup = None
        if definition.setup:
            setup = self.run_phase('setup', definition.setup, definition, context, errors)

        steps: list[StepResult] = []
        if setup is not None and not setup.success and not self.options.continue_on_error:
            self.log('Setup failed, skipping %d step(s)', len(definition.steps))
        else:
            steps = self.run_steps(definition, context, errors, deadline)

        cleanup = None
        if definition.cleanup:
            if errors and definition.metadata.skip_cleanup_on_failure:
                self.log('Run failed, skipping cleanup')
            else:
                cleanup = self.run_phase('cleanup', definition.cleanup, definition, context, errors)

        assertions = self.run_assertions(definition, context, errors)

        run_result = result(
            duration=elapsed(started),
            setup=setup,
            steps=steps,
            cleanup=cleanup,
            assertions=assertions,
        )
        self.log(
            'Run of %r %s in %.0f ms with %d error(s)',
            definition.id,
            'succeeded' if run_result.success else 'failed',
            run_result.duration,
            len(errors),
        )

        return run_result

    def run_steps(self, definition: 'BusinessProcessTest', context: RunContext,
                  errors: list[RunError], deadline: float | None) -> list[StepResult]:
        """Run the steps in order, applying the failure policy."""
        results: list[StepResult] = []

        for step in definition.steps:
            if deadline is not None and monotonic() >= deadline:
                errors.append(RunError(
                    kind='timeout',
                    message=f'Run exceeded its timeout of {self.options.timeout} ms',
                    step_id=step.id,
                ))
                break

            step_result = self.run_step(step, definition, context, errors, deadline)
            results.append(step_result)

            if not step_result.success and not self.options.continue_on_error:
                self.log('Step %r failed, halting', step.id)
                break

        return results

    def run_step(self, step: 'Step', definition: 'BusinessProcessTest', context: RunContext,
                 errors: list[RunError], deadline: float | None = None) -> StepResult:
        """Run a step with its retries and record its output on success."""
        persona = definition.personas.get(step.persona)
        organization_id = definition.context.organization_id
        if persona is not None and persona.organization_id:
            organization_id = persona.organization_id

        self.log('Step %r: %s', step.id, step.description)
        started = monotonic()

        attempts = 0
        while True:
            attempts += 1

            timeout: float = step.timeout
            if deadline is not None:
                timeout = max(min(timeout, (deadline - monotonic()) * 1000), 0)

            attempt = self.attempt_step(step, context, organization_id, timeout)
            if attempt.success or attempts > step.retry:
                break

            logger.warning(
                'Step %r failed on attempt %d of %d, retrying the whole step: %s',
                step.id, attempts, step.retry + 1, attempt.error,
            )

        if attempt.success:
            try:
                context.record_step(step.id, [action.output for action in attempt.actions], attempt.named)
            except Exception as error:  # noqa: BLE001
                attempt = attempt._replace(success=False, error=describe(error))

        if not attempt.success:
            kind: ErrorKind = 'timeout' if attempt.timed_out else 'step'
            errors.append(RunError(kind=kind, message=attempt.error or 'Step failed', step_id=step.id))

        return StepResult(
            id=step.id,
            success=attempt.success,
            duration=0 if self.dry_run else elapsed(started),
            attempts=attempts,
            actions=attempt.actions,
            error=attempt.error,
        )

    def attempt_step(self, step: 'Step', context: RunContext,
                     organization_id: str, timeout: float) -> Attempt:
        """Run a single attempt of a step within its time limit.

        The attempt runs in a worker thread. When the limit is exceeded
        the in-flight action is not cancelled: its result is discarded
        and a warning is logged once it arrives. Remaining actions of the
        attempt are not started.
        """
        progress: list[ActionResult] = []
        named: dict[str, Value] = {}
        cancelled = Event()

        executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix=f'hera-step-{step.id}')
        future = executor.submit(
            self.perform_step,
            step,
            context,
            organization_id,
            progress,
            named,
            cancelled,
        )
        executor.shutdown(wait=False)

        try:
            error = future.result(timeout=timeout / 1000)

        except TimeoutError:
            cancelled.set()
            future.add_done_callback(partial(self.discard_late_result, step.id))
            return Attempt(
                success=False,
                actions=list(progress),
                error=StepTimeoutError(step.id, timeout).message,
                timed_out=True,
            )

        return Attempt(success=error is None, actions=progress, error=error, named=named)

    def perform_step(self, step: 'Step', context: RunContext, organization_id: str,
                     progress: list[ActionResult], named: dict[str, 'Value'],
                     cancelled: Event) -> str | None:
        """Execute the conditions and actions of a step attempt.

        Returns:
            An error message, or `None` if the attempt succeeded.
        """
        try:
            if not self.dry_run and self.backend is not None:
                self.backend.use_organization(organization_id)

            for expression in self.conditions(step.preconditions):
                if not evaluate_condition(expression, context.scope(named)):
                    return f'Precondition not met: {expression!r}'

            for action_num, action in enumerate(step.actions):
                if cancelled.is_set():
                    return 'Step attempt was abandoned'

                action_result = self.execute_action(action, context.scope(named))
                progress.append(action_result)

                if not action_result.success:
                    return f'Action {action_num + 1} ({action.action_type}) failed: {action_result.error}'

                if action.store_as is not None:
                    named[action.store_as] = action_result.output

            provisional = {
                **named,
                step.id: step_output([item.output for item in progress], named),
            }
            for expression in self.conditions(step.postconditions):
                if not evaluate_condition(expression, context.scope(provisional)):
                    return f'Postcondition not met: {expression!r}'

        except Exception as error:  # noqa: BLE001
            return describe(error)

        return None

    def execute_action(self, action: 'Action', scope: 'Mapping[str, Value]') -> ActionResult:
        """Resolve and dispatch a single action.

        In a dry run the backend is never called: the action records a
        zero-duration success with a synthetic output.
        """
        started = monotonic()
        outcome: dict[str, Any] = {
            'action_type': action.action_type,
            'store_as': action.store_as,
        }

        payload = None

        try:
            payload = resolve(action.payload(), scope)

            if self.dry_run:
                return ActionResult(**outcome, success=True, payload=payload, output=dict(DRY_RUN_OUTPUT))

            output = normalize(action.perform(self.backend, payload))  # type: ignore[arg-type]

        except Exception as error:  # noqa: BLE001
            logger.debug('Action %s failed', action.action_type, exc_info=True)
            return ActionResult(
                **outcome,
                success=False,
                duration=elapsed(started),
                payload=payload,
                error=describe(error),
            )

        return ActionResult(
            **outcome,
            success=True,
            duration=elapsed(started),
            payload=payload,
            output=output,
        )

    def run_phase(self, phase: 'ErrorKind', actions: 'list[Action]', definition: 'BusinessProcessTest',
                  context: RunContext, errors: list[RunError]) -> PhaseResult:
        """Run setup or cleanup actions.

        Setup stops at the first failing action. Cleanup is best effort
        and attempts every action.
        """
        self.log('Running %s (%d action(s))', phase, len(actions))
        started = monotonic()
        results: list[ActionResult] = []

        try:
            if not self.dry_run and self.backend is not None:
                self.backend.use_organization(definition.context.organization_id)
        except Exception as error:  # noqa: BLE001
            errors.append(RunError(kind=phase, message=describe(error)))
            return PhaseResult(success=False, duration=elapsed(started))

        success = True
        for action_num, action in enumerate(actions):
            action_result = self.execute_action(action, context)

            if action_result.success and action.store_as is not None:
                try:
                    context.record(action.store_as, action_result.output)
                except Exception as error:  # noqa: BLE001
                    action_result = action_result.model_copy(update={'success': False, 'error': describe(error)})

            results.append(action_result)

            if not action_result.success:
                success = False
                errors.append(RunError(
                    kind=phase,
                    message=f'Action {action_num + 1} ({action.action_type}) failed: {action_result.error}',
                ))
                if phase == 'setup':
                    break

        return PhaseResult(
            success=success,
            duration=0 if self.dry_run else elapsed(started),
            actions=results,
        )

    def run_assertions(self, definition: 'BusinessProcessTest', context: RunContext,
                       errors: list[RunError]) -> list['AssertionOutcome']:
        """Evaluate assertion groups and record failed checks as errors.

        Assertion groups are skipped in a dry run, where no backend state
        exists to check.
        """
        if not definition.assertions:
            return []

        if self.dry_run:
            self.log('Dry run, skipping %d assertion group(s)', len(definition.assertions))
            return []

        try:
            if self.backend is not None:
                self.backend.use_organization(definition.context.organization_id)
            outcomes = AssertionEvaluator(self.backend, context).evaluate(definition.assertions)

        except Exception as error:  # noqa: BLE001
            errors.append(RunError(kind='assertion', message=describe(error)))
            return []

        for outcome in outcomes:
            if outcome.passed is False:
                errors.append(RunError(
                    kind='assertion',
                    message=f'{outcome.type} check {outcome.name!r} failed: {outcome.message}',
                ))

        return outcomes

    @staticmethod
    def discard_late_result(step_id: str, future: 'Future[str | None]') -> None:
        """Log the arrival of a result of a timed out step attempt."""
        if (error := future.exception()) is not None:
            logger.warning('Timed out step %r finished late with an error, ignored: %s', step_id, error)
        else:
            logger.warning('Timed out step %r finished late, its result is discarded', step_id)


def run(definition: 'BusinessProcessTest', options: RunOptions | None = None, *,
        backend: 'Backend | None' = None) -> RunResult:
    """Run a definition with a fresh runner.

    Args:
        definition: Validated definition.
        options: Run options; resolved from the environment if omitted.
        backend: Backend receiving the actions.

    Returns:
        The complete run result.
    """
    return ProcessRunner(backend, options).run(definition)
