"""Accounting oracles: balance sheet equation, journals and inventory."""

from decimal import Decimal
from typing import TYPE_CHECKING, Any

from .results import DEFAULT_TOLERANCE, OracleResult, to_decimal, to_number

if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping

DEBIT_SIDES = frozenset({'debit', 'dr', 'd'})
CREDIT_SIDES = frozenset({'credit', 'cr', 'c'})


def check_accounting_equation(assets: Any, liabilities: Any, equity: Any,  # noqa: ANN401
                              tolerance: Any = DEFAULT_TOLERANCE) -> OracleResult:  # noqa: ANN401
    """Check that assets equal liabilities plus equity.

    Args:
        assets: Total assets.
        liabilities: Total liabilities.
        equity: Total equity.
        tolerance: Largest accepted absolute difference.

    Returns:
        A verdict whose `difference` is `assets - liabilities - equity`.
    """
    total_assets = to_decimal(assets)
    total_liabilities = to_decimal(liabilities)
    total_equity = to_decimal(equity)

    difference = total_assets - total_liabilities - total_equity
    valid = abs(difference) <= to_decimal(tolerance)

    return OracleResult(
        valid=valid,
        rule='accounting_equation',
        message=(
            'Assets equal liabilities plus equity'
            if valid else
            f'Assets differ from liabilities plus equity by {difference}'
        ),
        details={
            'assets': to_number(total_assets),
            'liabilities': to_number(total_liabilities),
            'equity': to_number(total_equity),
            'difference': to_number(difference),
        },
        issues=[] if valid else ['equation imbalance'],
    )


def _line_amounts(line: 'Mapping[str, Any]') -> tuple[Decimal, Decimal]:
    """Return the debit and credit amounts of a journal line.

    Raises:
        ValueError: If the line names neither amounts nor a side.
    """
    if 'debit' in line or 'credit' in line:
        return to_decimal(line.get('debit') or 0), to_decimal(line.get('credit') or 0)

    side = line.get('side') or (line.get('metadata') or {}).get('side')
    amount = line.get('amount', line.get('line_amount'))
    if not isinstance(side, str) or amount is None:
        raise ValueError(f'Journal line {dict(line)!r} has no debit or credit amount')

    side = side.strip().lower()
    if side in DEBIT_SIDES:
        return to_decimal(amount), Decimal(0)
    if side in CREDIT_SIDES:
        return Decimal(0), to_decimal(amount)

    raise ValueError(f'Unknown journal line side {side!r}')


def check_journal_balance(lines: 'Iterable[Mapping[str, Any]]',
                          tolerance: Any = DEFAULT_TOLERANCE) -> OracleResult:  # noqa: ANN401
    """Check that debit lines and credit lines sum to the same total.

    Lines either carry `debit` and `credit` amounts or a `side` (also
    accepted under `metadata.side`) with an `amount` or `line_amount`.

    Args:
        lines: Journal lines.
        tolerance: Largest accepted absolute difference.

    Returns:
        A verdict with debit and credit totals.

    Raises:
        ValueError: If a line carries no usable amount.
    """
    debit_total = credit_total = Decimal(0)
    count = 0
    for line in lines:
        debit, credit = _line_amounts(line)
        debit_total += debit
        credit_total += credit
        count += 1

    difference = debit_total - credit_total
    valid = count > 0 and abs(difference) <= to_decimal(tolerance)

    issues = []
    if not count:
        issues.append('no lines')
    elif not valid:
        issues.append('unbalanced journal')

    return OracleResult(
        valid=valid,
        rule='journal_balance',
        message='Journal is balanced' if valid else 'Journal is not balanced',
        details={
            'lines': count,
            'debit_total': to_number(debit_total),
            'credit_total': to_number(credit_total),
            'difference': to_number(difference),
        },
        issues=issues,
    )


def check_inventory_balance(opening: Any, received: Any, issued: Any, closing: Any,  # noqa: ANN401
                            tolerance: Any = 0) -> OracleResult:  # noqa: ANN401
    """Check that stock movements explain the closing quantity.

    Args:
        opening: Opening quantity.
        received: Quantity received during the period.
        issued: Quantity issued during the period.
        closing: Reported closing quantity.
        tolerance: Largest accepted absolute difference.

    Returns:
        A verdict whose `difference` is the expected minus the reported
        closing quantity.
    """
    expected = to_decimal(opening) + to_decimal(received) - to_decimal(issued)
    reported = to_decimal(closing)

    difference = expected - reported
    valid = abs(difference) <= to_decimal(tolerance)

    issues = []
    if reported < 0:
        valid = False
        issues.append('negative stock')
    if abs(difference) > to_decimal(tolerance):
        issues.append('inventory mismatch')

    return OracleResult(
        valid=valid,
        rule='inventory_balance',
        message='Inventory is balanced' if valid else 'Inventory is not balanced',
        details={
            'expected_closing': to_number(expected),
            'closing': to_number(reported),
            'difference': to_number(difference),
        },
        issues=issues,
    )
