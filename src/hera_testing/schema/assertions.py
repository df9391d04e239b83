"""Assertion group definitions.

Assertion groups are evaluated once the steps and the cleanup phase have
finished. Each group is a tagged variant discriminated by `type`:

- `ui` groups describe element states of the application under test;
- `database` groups describe rows expected in the core tables;
- `business` groups invoke oracles on resolved parameters.
"""

from typing import Annotated, Any, Literal

from pydantic import Field

from hera_testing.models import DescribedMixin, SchemaModel

type UICondition = Literal['visible', 'hidden', 'contains', 'not_contains', 'enabled', 'disabled', 'count']

type Table = Literal[
    'core_organizations',
    'core_entities',
    'core_dynamic_data',
    'core_relationships',
    'universal_transactions',
    'universal_transaction_lines',
]

type RowCondition = Literal['count', 'exists', 'not_exists', 'equals', 'contains']

type OracleName = Literal[
    'accounting_equation',
    'journal_balance',
    'inventory_balance',
    'workflow_status',
    'tax_calculation',
    'smart_code_validation',
]


class UICheck(SchemaModel):
    """Expected state of a user interface element."""

    selector: str | None = Field(default=None, title='Selector')
    condition: UICondition = Field(title='Condition')
    value: Any = Field(default=None, title='Expected value')
    timeout: int | None = Field(default=None, gt=0, title='Timeout (ms)')


class DatabaseCheck(SchemaModel):
    """Expected rows of a core table."""

    table: Table = Field(title='Table')
    condition: RowCondition = Field(title='Condition')
    filters: dict[str, Any] = Field(
        default_factory=dict,
        title='Filters',
        description=(
            'Column values rows must match. Dotted names address keys of '
            'JSON columns, for example `metadata.status`.'
        ),
    )
    expected: Any = Field(
        default=None,
        title='Expected value',
        description=(
            'Row count for `count`, a record or value for `equals` and '
            '`contains`; ignored by `exists` and `not_exists`.'
        ),
    )


class BusinessCheck(SchemaModel):
    """Oracle invocation with resolved parameters."""

    oracle: OracleName = Field(title='Oracle')
    params: dict[str, Any] = Field(
        default_factory=dict,
        title='Parameters',
        description='Oracle arguments; placeholders are resolved at run time.',
    )
    expected: Any = Field(
        default=True,
        title='Expected verdict',
        description=(
            'Expected validity of the verdict, or a mapping of expected '
            'verdict details such as computed totals.'
        ),
    )
    tolerance: float | None = Field(default=None, ge=0, title='Tolerance')


class UIAssertionGroup(DescribedMixin):
    """User interface assertions."""

    type: Literal['ui']
    assertions: list[UICheck] = Field(min_length=1, title='Checks')


class DatabaseAssertionGroup(DescribedMixin):
    """Database state assertions."""

    type: Literal['database']
    assertions: list[DatabaseCheck] = Field(min_length=1, title='Checks')


class BusinessAssertionGroup(DescribedMixin):
    """Business rule assertions evaluated with oracles."""

    type: Literal['business']
    assertions: list[BusinessCheck] = Field(min_length=1, title='Checks')


#: Discriminated union over every assertion group kind.
AssertionGroup = Annotated[
    UIAssertionGroup
    | DatabaseAssertionGroup
    | BusinessAssertionGroup,
    Field(discriminator='type'),
]
