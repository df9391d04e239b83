"""Oracle verdicts and numeric helpers shared by the oracles."""

from decimal import Decimal, InvalidOperation
from typing import Any

from pydantic import Field

from hera_testing.models import SchemaModel

#: Default tolerance of monetary equality checks.
DEFAULT_TOLERANCE = 0.01


class OracleResult(SchemaModel):
    """Structured validity verdict of a single oracle call.

    A failed verdict is a value, not an exception: callers decide whether
    it is fatal.
    """

    valid: bool = Field(title='Valid')

    rule: str = Field(
        title='Rule',
        description='Name of the checked invariant.',
    )

    message: str = Field(default='', title='Message')

    details: dict[str, Any] = Field(
        default_factory=dict,
        title='Details',
        description='Computed totals and intermediate values.',
    )

    issues: list[str] = Field(
        default_factory=list,
        title='Issues',
        description='Named violations; empty for a valid verdict.',
    )

    @property
    def difference(self) -> Any:  # noqa: ANN401
        """Computed difference, for oracles that report one."""
        return self.details.get('difference')

    def __bool__(self) -> bool:
        """Truth value of the verdict."""
        return self.valid


def to_decimal(value: Any) -> Decimal:  # noqa: ANN401
    """Convert a numeric input to `Decimal` without float artifacts.

    Raises:
        TypeError: If the value is not a number or numeric string.
        ValueError: If a string does not hold a number.
    """
    if isinstance(value, bool) or not isinstance(value, (int, float, str, Decimal)):
        raise TypeError(f'{value!r} is not a number')

    try:
        number = Decimal(str(value).strip())
    except InvalidOperation as base:
        raise ValueError(f'{value!r} is not a number') from base

    if not number.is_finite():
        raise ValueError(f'{value!r} is not a finite number')

    return number


def to_number(value: Decimal) -> int | float:
    """Convert a `Decimal` to the plain number reported in details."""
    if value == value.to_integral_value():
        return int(value)

    return float(value)
