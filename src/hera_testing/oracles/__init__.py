"""Business rule oracles.

Oracles are pure, deterministic functions encoding one domain invariant
each: accounting balance, journal balance, inventory movements, tax
computation, status transition legality and smart code conformance.
They never touch a backend and return structured verdicts instead of
raising, so the runner and the generators share them unchanged.
"""

import logging
from decimal import InvalidOperation
from typing import TYPE_CHECKING, Any

from .accounting import check_accounting_equation, check_inventory_balance, check_journal_balance
from .codes import check_smart_code
from .results import DEFAULT_TOLERANCE, OracleResult
from .tax import TaxBreakdown, calculate_tax, check_tax_calculation
from .workflow import check_status_transition

if TYPE_CHECKING:
    from collections.abc import Callable, Mapping

    type OracleAdapter = Callable[[Mapping[str, Any], float | None], OracleResult]

logger = logging.getLogger(__name__)


def _with_tolerance(tolerance: float | None) -> dict[str, Any]:
    """Build the optional tolerance keyword argument."""
    if tolerance is None:
        return {}
    return {'tolerance': tolerance}


def _accounting_equation(params: 'Mapping[str, Any]', tolerance: float | None) -> OracleResult:
    return check_accounting_equation(
        params['assets'],
        params['liabilities'],
        params['equity'],
        **_with_tolerance(tolerance),
    )


def _journal_balance(params: 'Mapping[str, Any]', tolerance: float | None) -> OracleResult:
    return check_journal_balance(params['lines'], **_with_tolerance(tolerance))


def _inventory_balance(params: 'Mapping[str, Any]', tolerance: float | None) -> OracleResult:
    return check_inventory_balance(
        params['opening'],
        params.get('received', 0),
        params.get('issued', 0),
        params['closing'],
        **_with_tolerance(tolerance),
    )


def _tax_calculation(params: 'Mapping[str, Any]', tolerance: float | None) -> OracleResult:
    return check_tax_calculation(
        params['amount'],
        params['rate'],
        bool(params.get('inclusive', False)),
        expected_tax=params.get('expected_tax'),
        expected_net=params.get('expected_net'),
        expected_gross=params.get('expected_gross'),
        **_with_tolerance(tolerance),
    )


def _workflow_status(params: 'Mapping[str, Any]', tolerance: float | None) -> OracleResult:  # noqa: ARG001
    return check_status_transition(
        params['current'],
        params['proposed'],
        params['transitions'],
    )


def _smart_code_validation(params: 'Mapping[str, Any]', tolerance: float | None) -> OracleResult:  # noqa: ARG001
    if 'prefix' in params:
        return check_smart_code(params['code'], params['prefix'])
    return check_smart_code(params['code'])


#: Oracle name to adapter taking assertion parameters and a tolerance.
ORACLES: dict[str, 'OracleAdapter'] = {
    'accounting_equation': _accounting_equation,
    'journal_balance': _journal_balance,
    'inventory_balance': _inventory_balance,
    'tax_calculation': _tax_calculation,
    'workflow_status': _workflow_status,
    'smart_code_validation': _smart_code_validation,
}


def evaluate_oracle(name: str, params: 'Mapping[str, Any]',
                    tolerance: float | None = None) -> OracleResult:
    """Invoke an oracle by name with assertion parameters.

    Malformed parameters, for example a missing argument or a placeholder
    that was never resolved where a number is expected, produce an
    invalid verdict with a `malformed input` issue.

    Args:
        name: Oracle name.
        params: Resolved oracle parameters.
        tolerance: Optional tolerance overriding the oracle default.

    Returns:
        The oracle verdict.
    """
    adapter = ORACLES.get(name)
    if adapter is None:
        return OracleResult(
            valid=False,
            rule=name,
            message=f'Unknown oracle {name!r}',
            issues=['unknown oracle'],
        )

    try:
        return adapter(params, tolerance)

    except (KeyError, TypeError, ValueError, InvalidOperation) as error:
        logger.debug('Oracle %s rejected its input: %s', name, error)
        return OracleResult(
            valid=False,
            rule=name,
            message=f'Malformed input for {name}: {error}',
            details={'params': dict(params)},
            issues=['malformed input'],
        )


__all__ = (
    'DEFAULT_TOLERANCE',
    'ORACLES',
    'OracleResult',
    'TaxBreakdown',
    'calculate_tax',
    'check_accounting_equation',
    'check_inventory_balance',
    'check_journal_balance',
    'check_smart_code',
    'check_status_transition',
    'check_tax_calculation',
    'evaluate_oracle',
)
