"""Step definitions.

A step is an ordered group of actions executed on behalf of one persona.
Its consolidated output is recorded in the run context under the step
identifier once every action has succeeded.
"""

from pydantic import Field

from hera_testing.models import SchemaModel
from hera_testing.names import Identifier  # noqa: TC001

from .actions import Action  # noqa: TC001

#: Default time limit of a single step attempt, in milliseconds.
DEFAULT_STEP_TIMEOUT = 30_000

#: Upper bound of additional attempts of a failed step.
MAX_STEP_RETRIES = 10


class Step(SchemaModel):
    """Named unit of work executed by a persona."""

    id: Identifier = Field(
        title='Step identifier',
        description=(
            'Unique identifier of the step. The step output is recorded '
            'in the run context under this name.'
        ),
    )

    description: str = Field(
        min_length=1,
        title='Description',
    )

    persona: str = Field(
        min_length=1,
        title='Persona',
        description='Key of the persona the step is attributed to.',
    )

    actions: list[Action] = Field(
        min_length=1,
        title='Actions',
        description='Ordered actions executed by the step.',
    )

    preconditions: list[str] = Field(
        default_factory=list,
        title='Preconditions',
        description='Conditions that must hold before the step runs.',
    )

    postconditions: list[str] = Field(
        default_factory=list,
        title='Postconditions',
        description='Conditions that must hold after the step completes.',
    )

    timeout: int = Field(
        default=DEFAULT_STEP_TIMEOUT,
        gt=0,
        title='Timeout (ms)',
        description='Time limit of a single step attempt.',
    )

    retry: int = Field(
        default=0,
        ge=0,
        le=MAX_STEP_RETRIES,
        title='Retries',
        description=(
            'Additional attempts after a failure. A retry repeats the '
            'whole step, including actions that already succeeded.'
        ),
    )
