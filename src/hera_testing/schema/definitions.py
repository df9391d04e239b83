"""Root definition of a business process test.

A definition ties together the process context, the personas, the three
execution phases (setup, steps, cleanup), the assertion groups and the
metadata used by reports and generators.

Besides structural validation, the definition enforces reference rules
that span several fields: step identifiers are unique, every step names
a declared persona, and stored variable names neither repeat nor shadow
step identifiers or seeded run values.
"""

from typing import TYPE_CHECKING, Literal

from pydantic import Field, ValidationInfo, model_validator

from hera_testing.context import RESERVED_NAMES
from hera_testing.errors import SchemaIssue
from hera_testing.models import SchemaModel
from hera_testing.names import Identifier  # noqa: TC001

from .actions import Action  # noqa: TC001
from .assertions import AssertionGroup  # noqa: TC001
from .contexts import Persona, ProcessContext  # noqa: TC001
from .steps import Step

if TYPE_CHECKING:
    from collections.abc import Iterator
    from typing import Self

type Priority = Literal['low', 'medium', 'high', 'critical']

type Browser = Literal['chromium', 'firefox', 'webkit']


class ProcessMetadata(SchemaModel):
    """Reporting and scheduling metadata of a definition."""

    tags: list[str] = Field(default_factory=list, title='Tags')

    priority: Priority = Field(default='medium', title='Priority')

    estimated_duration: int | None = Field(
        default=None,
        ge=0,
        title='Estimated duration (s)',
    )

    requires_auth: bool = Field(default=True, title='Requires authentication')

    requires_data: bool = Field(default=False, title='Requires seeded data')

    browser_support: list[Browser] = Field(
        default_factory=lambda: ['chromium'],
        title='Supported browsers',
    )

    mobile_support: bool = Field(default=False, title='Mobile support')

    skip_cleanup_on_failure: bool = Field(
        default=False,
        title='Skip cleanup on failure',
        description=(
            'Allow the runner to skip the cleanup phase when the run has '
            'failed, leaving created records in place for inspection.'
        ),
    )


class BusinessProcessTest(SchemaModel):
    """Validated business process test definition.

    This is the intermediate representation consumed by the runner and by
    every generator. Instances are immutable.
    """

    id: Identifier = Field(title='Definition identifier')

    title: str = Field(min_length=1, title='Title')

    description: str | None = Field(default=None, title='Description')

    industry: str | None = Field(default=None, title='Industry tag')

    version: str = Field(default='1.0.0', title='Definition version')

    author: str | None = Field(default=None, title='Author')

    context: ProcessContext = Field(title='Process context')

    personas: dict[Identifier, Persona] = Field(
        default_factory=dict,
        title='Personas',
        description='Persona name to persona definition.',
    )

    setup: list[Action] = Field(
        default_factory=list,
        title='Setup actions',
        description='Actions executed before the first step.',
    )

    steps: list[Step] = Field(min_length=1, title='Steps')

    cleanup: list[Action] = Field(
        default_factory=list,
        title='Cleanup actions',
        description='Actions executed after the steps, best effort.',
    )

    assertions: list[AssertionGroup] = Field(
        default_factory=list,
        title='Assertion groups',
    )

    metadata: ProcessMetadata = Field(
        default_factory=ProcessMetadata,
        title='Metadata',
    )

    def actions(self) -> 'Iterator[tuple[str, Action]]':
        """Iterate every action of the definition with its field path."""
        for num, action in enumerate(self.setup):
            yield f'setup.{num}', action

        for step_num, step in enumerate(self.steps):
            for num, action in enumerate(step.actions):
                yield f'steps.{step_num}.actions.{num}', action

        for num, action in enumerate(self.cleanup):
            yield f'cleanup.{num}', action

    def reference_issues(self) -> list[SchemaIssue]:
        """Collect violations of the cross-field reference rules."""
        issues: list[SchemaIssue] = []

        step_ids: set[str] = set()
        for num, step in enumerate(self.steps):
            if step.id in step_ids:
                issues.append(SchemaIssue(f'steps.{num}.id', f'duplicate step identifier {step.id!r}'))
            elif step.id in RESERVED_NAMES:
                issues.append(SchemaIssue(f'steps.{num}.id', f'step identifier {step.id!r} is reserved'))
            step_ids.add(step.id)

            if step.persona not in self.personas:
                issues.append(SchemaIssue(f'steps.{num}.persona', f'unknown persona {step.persona!r}'))

        stored: set[str] = set()
        for path, action in self.actions():
            name = action.store_as
            if name is None:
                continue

            if name in stored:
                issues.append(SchemaIssue(f'{path}.store_as', f'duplicate stored variable {name!r}'))
            elif name in RESERVED_NAMES:
                issues.append(SchemaIssue(f'{path}.store_as', f'stored variable {name!r} is reserved'))
            elif name in step_ids:
                issues.append(SchemaIssue(
                    f'{path}.store_as',
                    f'stored variable {name!r} collides with a step identifier',
                ))
            stored.add(name)

        return issues

    @model_validator(mode='after')
    def check_references(self, info: ValidationInfo) -> 'Self':
        """Enforce the cross-field reference rules.

        When validation runs with an `issues` list in its context, the
        violations are appended to it so that callers can report them
        next to structural errors. Otherwise the first violations are
        raised as a single validation error.

        Raises:
            ValueError: If a rule is violated and no issue list is given.
        """
        issues = self.reference_issues()
        if not issues:
            return self

        collected = info.context.get('issues') if isinstance(info.context, dict) else None
        if isinstance(collected, list):
            collected.extend(issues)
            return self

        raise ValueError('; '.join(map(str, issues)))
