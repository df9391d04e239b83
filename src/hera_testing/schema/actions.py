"""Action definitions for setup, steps and cleanup.

An action is a tagged variant discriminated by `action_type`. Each kind
owns its payload fields and nothing else; unknown fields are rejected,
so an action can never carry the fields of another kind.

Actions are executed by the runner: the payload is dumped, resolved
against the run context immediately before execution, and passed to
`perform` together with the backend. Actions never touch the run context
themselves.
"""

from time import sleep
from typing import TYPE_CHECKING, Annotated, Any, ClassVar, Literal

from pydantic import Field

from hera_testing.conditions import evaluate_condition
from hera_testing.errors import DSLRuntimeError
from hera_testing.models import SchemaModel
from hera_testing.names import Variable  # noqa: TC001

if TYPE_CHECKING:
    from hera_testing.backends import Backend
    from hera_testing.values import RuntimeValue

type Interaction = Literal['click', 'fill', 'select', 'upload', 'wait']

type HTTPMethod = Literal['GET', 'POST', 'PUT', 'DELETE']


class EntityData(SchemaModel):
    """Payload of a `create_entity` action."""

    entity_type: str = Field(min_length=1, title='Entity type')
    entity_name: str = Field(min_length=1, title='Entity name')
    entity_code: str | None = Field(default=None, title='Entity code')
    smart_code: str = Field(min_length=1, title='Smart code')
    metadata: dict[str, Any] | None = Field(default=None, title='Metadata')
    dynamic_fields: dict[str, Any] | None = Field(
        default=None,
        title='Dynamic fields',
        description='Fields stored alongside the entity as dynamic data.',
    )


class LineItem(SchemaModel):
    """Single line of a transaction."""

    line_entity_id: str | None = Field(default=None, title='Line entity')
    line_number: int = Field(ge=1, title='Line number')
    quantity: float | None = Field(default=None, title='Quantity')
    unit_price: float | None = Field(default=None, title='Unit price')
    line_amount: float = Field(title='Line amount')
    smart_code: str = Field(min_length=1, title='Smart code')
    metadata: dict[str, Any] | None = Field(default=None, title='Metadata')


class TransactionData(SchemaModel):
    """Payload of a `create_transaction` action."""

    transaction_type: str = Field(min_length=1, title='Transaction type')
    transaction_code: str | None = Field(default=None, title='Transaction code')
    smart_code: str = Field(min_length=1, title='Smart code')
    total_amount: float | None = Field(default=None, title='Total amount')
    currency: str | None = Field(default=None, title='Currency')
    reference_entity_id: str | None = Field(default=None, title='Reference entity')
    metadata: dict[str, Any] | None = Field(default=None, title='Metadata')
    line_items: list[LineItem] | None = Field(default=None, title='Line items')


class RelationshipData(SchemaModel):
    """Payload of a `create_relationship` action."""

    from_entity_id: str = Field(min_length=1, title='Source entity')
    to_entity_id: str = Field(min_length=1, title='Target entity')
    relationship_type: str = Field(min_length=1, title='Relationship type')
    smart_code: str = Field(min_length=1, title='Smart code')
    relationship_data: dict[str, Any] | None = Field(default=None, title='Relationship data')


class BaseAction(SchemaModel):
    """Base class for executable actions.

    Concrete actions declare a literal `action_type` and implement
    `perform`, which receives the resolved payload.
    """

    #: Human-readable label of the action kind.
    label: ClassVar[str] = 'action'

    action_type: str

    store_as: Variable | None = Field(
        default=None,
        title='Stored variable',
        description=(
            'Name under which the action output is recorded in the run '
            'context once the enclosing step completes.'
        ),
    )

    def payload(self) -> dict[str, Any]:
        """Dump the kind-specific payload of the action.

        Returns:
            A mapping without the discriminator and `store_as`, ready
            for placeholder resolution.
        """
        return self.model_dump(
            exclude={'action_type', 'store_as'},
            exclude_none=True,
        )

    def perform(self, backend: 'Backend', payload: dict[str, Any]) -> 'RuntimeValue':
        """Execute the action against a backend.

        Args:
            backend: Backend port implementation.
            payload: Resolved payload produced by `payload`.

        Returns:
            The record or acknowledgement produced by the backend.
        """
        raise NotImplementedError  # pragma: no cover


class CreateEntityAction(BaseAction):
    """Create a business entity such as a customer or a product."""

    label: ClassVar[str] = 'create entity'

    action_type: Literal['create_entity']
    data: EntityData

    def perform(self, backend: 'Backend', payload: dict[str, Any]) -> 'RuntimeValue':
        """Create the entity."""
        return backend.create_entity(payload['data'])


class CreateTransactionAction(BaseAction):
    """Create a business transaction with optional lines."""

    label: ClassVar[str] = 'create transaction'

    action_type: Literal['create_transaction']
    data: TransactionData

    def perform(self, backend: 'Backend', payload: dict[str, Any]) -> 'RuntimeValue':
        """Create the transaction."""
        return backend.create_transaction(payload['data'])


class CreateRelationshipAction(BaseAction):
    """Link two entities."""

    label: ClassVar[str] = 'create relationship'

    action_type: Literal['create_relationship']
    data: RelationshipData

    def perform(self, backend: 'Backend', payload: dict[str, Any]) -> 'RuntimeValue':
        """Create the relationship."""
        return backend.create_relationship(payload['data'])


class SetDynamicFieldAction(BaseAction):
    """Store a dynamic field value on an existing entity."""

    label: ClassVar[str] = 'set dynamic field'

    action_type: Literal['set_dynamic_field']
    entity_id: str = Field(min_length=1, title='Entity')
    field_name: str = Field(min_length=1, title='Field name')
    field_value: Any = Field(default=None, title='Field value')
    smart_code: str = Field(min_length=1, title='Smart code')

    def perform(self, backend: 'Backend', payload: dict[str, Any]) -> 'RuntimeValue':
        """Set the dynamic field."""
        return backend.set_dynamic_field(
            payload['entity_id'],
            payload['field_name'],
            payload.get('field_value'),
            smart_code=payload['smart_code'],
        )


class UIInteractionAction(BaseAction):
    """Interact with a user interface element."""

    label: ClassVar[str] = 'ui interaction'

    action_type: Literal['ui_interaction']
    selector: str = Field(min_length=1, title='Selector')
    interaction: Interaction = Field(title='Interaction')
    value: str | None = Field(default=None, title='Value')
    timeout: int | None = Field(default=None, gt=0, title='Timeout (ms)')

    def perform(self, backend: 'Backend', payload: dict[str, Any]) -> 'RuntimeValue':
        """Delegate the interaction to the backend."""
        return backend.interact(
            payload['selector'],
            payload['interaction'],
            value=payload.get('value'),
            timeout=payload.get('timeout'),
        )


class APICallAction(BaseAction):
    """Call an HTTP endpoint of the application under test."""

    label: ClassVar[str] = 'api call'

    action_type: Literal['api_call']
    endpoint: str = Field(min_length=1, title='Endpoint')
    method: HTTPMethod = Field(title='HTTP method')
    data: dict[str, Any] | None = Field(default=None, title='Request body')

    def perform(self, backend: 'Backend', payload: dict[str, Any]) -> 'RuntimeValue':
        """Delegate the call to the backend."""
        return backend.call_api(
            payload['method'],
            payload['endpoint'],
            payload.get('data'),
        )


class WaitAction(BaseAction):
    """Pause the step, then optionally check a condition."""

    label: ClassVar[str] = 'wait'

    action_type: Literal['wait']
    duration: int = Field(ge=0, title='Duration (ms)')
    condition: str | None = Field(default=None, title='Condition')

    def perform(self, backend: 'Backend', payload: dict[str, Any]) -> 'RuntimeValue':  # noqa: ARG002
        """Sleep for the configured duration and check the condition.

        Raises:
            DSLRuntimeError: If the condition does not hold afterwards.
        """
        sleep(payload['duration'] / 1000)

        condition = payload.get('condition')
        if condition is not None and not evaluate_condition(condition, {}):
            raise DSLRuntimeError(f'Wait condition not met: {condition!r}')

        return {'waited': payload['duration']}


#: Discriminated union over every action kind.
Action = Annotated[
    CreateEntityAction
    | CreateTransactionAction
    | CreateRelationshipAction
    | SetDynamicFieldAction
    | UIInteractionAction
    | APICallAction
    | WaitAction,
    Field(discriminator='action_type'),
]


def smart_code_of(action: BaseAction) -> str | None:
    """Return the smart code classifying the record an action produces."""
    data = getattr(action, 'data', None)
    if isinstance(data, (EntityData, TransactionData, RelationshipData)):
        return data.smart_code

    if isinstance(action, SetDynamicFieldAction):
        return action.smart_code

    return None
