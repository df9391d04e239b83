"""Typed intermediate representation of business process tests.

Defines immutable Pydantic models for personas, the process context,
actions, steps, assertion groups and the root definition. The models
describe the structural and semantic contract of definition documents and
are consumed uniformly by the runner and every generator.
"""

from .actions import (
    Action,
    APICallAction,
    BaseAction,
    CreateEntityAction,
    CreateRelationshipAction,
    CreateTransactionAction,
    EntityData,
    LineItem,
    RelationshipData,
    SetDynamicFieldAction,
    TransactionData,
    UIInteractionAction,
    WaitAction,
    smart_code_of,
)
from .assertions import (
    AssertionGroup,
    BusinessAssertionGroup,
    BusinessCheck,
    DatabaseAssertionGroup,
    DatabaseCheck,
    UIAssertionGroup,
    UICheck,
)
from .contexts import Persona, ProcessContext
from .definitions import BusinessProcessTest, ProcessMetadata
from .steps import DEFAULT_STEP_TIMEOUT, MAX_STEP_RETRIES, Step

__all__ = (
    'DEFAULT_STEP_TIMEOUT',
    'MAX_STEP_RETRIES',
    'APICallAction',
    'Action',
    'AssertionGroup',
    'BaseAction',
    'BusinessAssertionGroup',
    'BusinessCheck',
    'BusinessProcessTest',
    'CreateEntityAction',
    'CreateRelationshipAction',
    'CreateTransactionAction',
    'DatabaseAssertionGroup',
    'DatabaseCheck',
    'EntityData',
    'LineItem',
    'Persona',
    'ProcessContext',
    'ProcessMetadata',
    'RelationshipData',
    'SetDynamicFieldAction',
    'Step',
    'TransactionData',
    'UIAssertionGroup',
    'UICheck',
    'UIInteractionAction',
    'WaitAction',
    'smart_code_of',
)
