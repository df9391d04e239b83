"""Pytest item executing a business process definition."""

from os import linesep
from typing import TYPE_CHECKING

import pytest

from hera_testing.backends import InMemoryBackend, load_backend
from hera_testing.errors import FORMAT_FILENAME, FORMAT_INDENT, DSLError, ErrorContext
from hera_testing.runtime import ProcessRunner

if TYPE_CHECKING:
    from typing import Any

if TYPE_CHECKING:
    from hera_testing.backends import Backend
    from hera_testing.runtime import RunResult
    from hera_testing.schema import BusinessProcessTest
    from hera_testing.settings import RunOptions


class DefinitionPlan:
    """Executable representation of a collected definition.

    A fresh backend is created for every run, so plans never share
    state. A run that records any error fails with an `AssertionError`
    listing every recorded error.
    """

    __test__ = False

    def __init__(self, definition: 'BusinessProcessTest', options: 'RunOptions', *,
                 backend_reference: str | None = None,
                 parent: pytest.Item | None = None) -> None:
        """Initialize an execution plan.

        Args:
            definition: Validated definition to execute.
            options: Run options.
            backend_reference: Optional `module:factory` backend reference.
            parent: Optional pytest item owning this plan.
        """
        self.definition = definition
        self.options = options
        self.backend_reference = backend_reference

        self.parent = parent
        self.result: RunResult | None = None

    @property
    def filename(self) -> str:
        """Return filename associated with this plan."""
        if not self.parent:
            return FORMAT_FILENAME

        return f'{self.parent.path}'

    def make_backend(self) -> 'Backend':
        """Create the backend of a run.

        Raises:
            PluginError: If the backend reference is broken.
        """
        if self.backend_reference:
            return load_backend(self.backend_reference)

        return InMemoryBackend()

    def run(self) -> 'RunResult':
        """Execute the definition.

        Returns:
            The result of a successful run.

        Raises:
            AssertionError: If the run recorded any error.
        """
        self.result = ProcessRunner(self.make_backend(), self.options).run(self.definition)
        if not self.result.success:
            raise self.fail(self.result)

        return self.result

    def fail(self, result: 'RunResult') -> AssertionError:
        """Create an AssertionError listing the errors of a run.

        The location points at the first failed step, and at its failed
        action with the resolved payload when an action broke.
        """
        message = f'Business process {result.definition_id!r} failed'
        for error in result.errors:
            message += f'{linesep}{' ' * FORMAT_INDENT}{error}'

        error_context = ErrorContext(filename=self.filename)
        if step := next((step for step in result.steps if not step.success), None):
            error_context['step_id'] = step.id
            if step.actions and not (action := step.actions[-1]).success:
                error_context['action_num'] = len(step.actions) - 1
                error_context['element'] = {action.action_type: action.payload}

        return AssertionError(DSLError.format(message, error_context))


class DefinitionItem(pytest.Item):
    """Pytest item running one definition end to end."""

    __test__ = False

    def __init__(self, *,
                 definition: 'BusinessProcessTest',
                 options: 'RunOptions',
                 backend_reference: str | None = None,
                 **kwargs: 'Any') -> None:
        """Initialize a pytest item backed by a definition.

        Args:
            definition: Validated definition to execute.
            options: Run options.
            backend_reference: Optional `module:factory` backend reference.
            **kwargs: Keyword pytest.Item arguments.
        """
        super().__init__(**kwargs)

        self.plan = DefinitionPlan(
            definition,
            options,
            backend_reference=backend_reference,
            parent=self,
        )

    def runtest(self) -> None:
        """Execute the definition."""
        self.plan.run()

    def reportinfo(self) -> tuple[str, int | None, str]:
        """Location reported by pytest for this item."""
        definition = self.plan.definition
        return f'{self.path}', None, f'{definition.id}: {definition.title}'
