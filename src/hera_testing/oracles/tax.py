"""Tax computation oracle.

Rates are fractions (`0.05` is five percent). Amounts are computed with
`Decimal` arithmetic and rounded half up to cents:

- exclusive: the amount is net, tax is rounded, gross is net plus tax;
- inclusive: the amount is gross, net is rounded, tax is the remainder.

The remainder rule keeps `net + tax == gross` exact in both modes.
"""

from decimal import ROUND_HALF_UP, Decimal
from typing import Any

from pydantic import Field

from hera_testing.models import SchemaModel

from .results import DEFAULT_TOLERANCE, OracleResult, to_decimal, to_number

#: Quantum of rounded monetary amounts.
CENTS = Decimal('0.01')


class TaxBreakdown(SchemaModel):
    """Net, tax and gross amounts of a taxed value."""

    net: Decimal = Field(title='Net amount')
    tax: Decimal = Field(title='Tax amount')
    gross: Decimal = Field(title='Gross amount')


def round_money(value: Decimal) -> Decimal:
    """Round a monetary amount half up to cents."""
    return value.quantize(CENTS, rounding=ROUND_HALF_UP)


def calculate_tax(amount: Any, rate: Any, inclusive: bool = False) -> TaxBreakdown:  # noqa: ANN401
    """Split an amount into net, tax and gross parts.

    Args:
        amount: Net amount, or gross amount when `inclusive` is set.
        rate: Tax rate as a fraction.
        inclusive: Whether the amount already includes tax.

    Returns:
        The rounded breakdown.

    Raises:
        ValueError: If the rate is negative.
    """
    value = to_decimal(amount)
    fraction = to_decimal(rate)
    if fraction < 0:
        raise ValueError(f'Tax rate {rate!r} is negative')

    if inclusive:
        gross = round_money(value)
        net = round_money(value / (1 + fraction))
        return TaxBreakdown(net=net, tax=gross - net, gross=gross)

    net = round_money(value)
    tax = round_money(value * fraction)
    return TaxBreakdown(net=net, tax=tax, gross=net + tax)


def check_tax_calculation(amount: Any, rate: Any, inclusive: bool = False, *,  # noqa: ANN401
                          expected_tax: Any = None,  # noqa: ANN401
                          expected_net: Any = None,  # noqa: ANN401
                          expected_gross: Any = None,  # noqa: ANN401
                          tolerance: Any = DEFAULT_TOLERANCE) -> OracleResult:  # noqa: ANN401
    """Compare reported amounts against the computed tax breakdown.

    Only the expected amounts that are given are compared. Without any
    expected amount the verdict is valid and simply reports the
    breakdown.

    Args:
        amount: Net amount, or gross amount when `inclusive` is set.
        rate: Tax rate as a fraction.
        inclusive: Whether the amount already includes tax.
        expected_tax: Reported tax amount.
        expected_net: Reported net amount.
        expected_gross: Reported gross amount.
        tolerance: Largest accepted absolute difference per amount.

    Returns:
        A verdict with the computed breakdown in its details.
    """
    breakdown = calculate_tax(amount, rate, inclusive)
    limit = to_decimal(tolerance)

    details: dict[str, Any] = {
        'net': to_number(breakdown.net),
        'tax': to_number(breakdown.tax),
        'gross': to_number(breakdown.gross),
        'inclusive': inclusive,
    }
    issues = []

    for name, expected in (('tax', expected_tax), ('net', expected_net), ('gross', expected_gross)):
        if expected is None:
            continue

        difference = getattr(breakdown, name) - to_decimal(expected)
        details[f'{name}_difference'] = to_number(difference)
        if abs(difference) > limit:
            issues.append(f'{name} mismatch')

    if expected_tax is not None:
        details['difference'] = details['tax_difference']

    return OracleResult(
        valid=not issues,
        rule='tax_calculation',
        message='Tax amounts match' if not issues else 'Tax amounts do not match',
        details=details,
        issues=issues,
    )
