"""Process context and persona definitions.

The process context describes the tenant and organization a definition
runs against, together with locale settings and an optional simulated
clock. Personas name the roles that steps are attributed to.
"""

from datetime import UTC, date, datetime
from typing import Literal

from pydantic import Field, field_validator

from hera_testing.models import SchemaModel
from hera_testing.resolver import format_moment

type Role = Literal['owner', 'admin', 'manager', 'user', 'accountant', 'warehouse', 'sales', 'hr']

type Industry = Literal[
    'restaurant',
    'healthcare',
    'retail',
    'salon',
    'manufacturing',
    'professional_services',
]


class Persona(SchemaModel):
    """Named role an action sequence is attributed to.

    A persona carries permissions and an optional organization override;
    it never executes anything by itself.
    """

    role: Role = Field(
        title='Persona role',
        description='Business role of the persona.',
    )

    organization_id: str | None = Field(
        default=None,
        title='Organization override',
        description=(
            'Organization the persona acts in. Defaults to the '
            'organization of the process context.'
        ),
    )

    entity_id: str | None = Field(
        default=None,
        title='Persona entity',
        description='Identifier of the entity representing the persona.',
    )

    permissions: list[str] = Field(
        default_factory=list,
        title='Permissions',
        description='Permission codes granted to the persona.',
    )


class ProcessContext(SchemaModel):
    """Tenant, organization and locale settings of a definition."""

    tenant: str = Field(
        min_length=1,
        title='Tenant',
        description='Tenant slug the process runs for.',
    )

    organization_id: str = Field(
        min_length=1,
        title='Organization identifier',
        description='Organization all created records are scoped to.',
    )

    currency: str = Field(
        default='USD',
        min_length=3,
        max_length=3,
        title='Currency',
        description='ISO 4217 currency code.',
    )

    timezone: str = Field(
        default='UTC',
        title='Timezone',
    )

    locale: str = Field(
        default='en-US',
        title='Locale',
    )

    fiscal_year: int = Field(
        default_factory=lambda: date.today().year,
        ge=1900,
        le=9999,
        title='Fiscal year',
    )

    clock: str | None = Field(
        default=None,
        title='Simulated clock',
        description=(
            'ISO-8601 moment used as the current time of the run. '
            'Enables `{{clock+N}}` placeholders and a deterministic '
            '`{{timestamp}}`.'
        ),
        examples=['2024-01-01T00:00:00Z'],
    )

    smart_code_prefix: str = Field(
        default='HERA',
        pattern=r'^[A-Z][A-Z0-9]*$',
        title='Smart code prefix',
        description='Leading segment expected in every smart code.',
    )

    industry: Industry | None = Field(
        default=None,
        title='Industry',
    )

    @field_validator('clock', mode='before')
    @classmethod
    def normalize_clock(cls, value: object) -> object:
        """Accept YAML timestamps and validate ISO-8601 strings.

        Moments without a UTC offset are read as UTC.

        Args:
            value: Raw clock value.

        Returns:
            The clock as an ISO-8601 string.

        Raises:
            ValueError: If the clock is not an ISO-8601 moment.
        """
        if isinstance(value, str):
            try:
                value = datetime.fromisoformat(value)
            except ValueError as base:
                raise ValueError(f'{value!r} is not an ISO-8601 moment') from base

        if isinstance(value, datetime):
            if value.tzinfo is None:
                value = value.replace(tzinfo=UTC)
            return format_moment(value)

        return value
