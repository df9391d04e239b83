"""Tests for business rule oracles."""

from decimal import Decimal
from typing import Any

import pytest

from hera_testing.oracles import (
    calculate_tax,
    check_accounting_equation,
    check_inventory_balance,
    check_journal_balance,
    check_smart_code,
    check_status_transition,
    check_tax_calculation,
    evaluate_oracle,
)

TRANSITIONS = {
    'draft': ['submitted', 'cancelled'],
    'submitted': ['approved', 'rejected'],
    'approved': [],
}


def test_accounting_equation_balanced() -> None:
    """Assets equal liabilities plus equity."""
    result = check_accounting_equation(100, 40, 60)

    assert result.valid
    assert result.difference == 0
    assert result.issues == []


def test_accounting_equation_imbalance() -> None:
    """The difference of an imbalanced sheet is reported."""
    result = check_accounting_equation(100, 40, 50)

    assert not result.valid
    assert result.difference == 10
    assert result.issues == ['equation imbalance']


@pytest.mark.parametrize('equity, tolerance, expected', (
    pytest.param(59.99, 0.01, True, id='within default tolerance'),
    pytest.param(59.98, 0.01, False, id='outside tolerance'),
    pytest.param(59.5, 1, True, id='custom tolerance'),
))
def test_accounting_equation_tolerance(equity: float, tolerance: float, expected: bool) -> None:
    """Differences up to the tolerance are accepted."""
    assert check_accounting_equation(100, 40, equity, tolerance).valid is expected


def test_accounting_equation_is_exact() -> None:
    """Decimal arithmetic avoids float artifacts."""
    result = check_accounting_equation('0.3', '0.1', '0.2', tolerance=0)

    assert result.valid
    assert result.difference == 0


@pytest.mark.parametrize('lines, valid, issues', (
    pytest.param(
        [{'debit': 100}, {'credit': 60}, {'credit': 40}],
        True, [],
        id='debit and credit columns',
    ),
    pytest.param(
        [{'side': 'DR', 'amount': 50}, {'metadata': {'side': 'credit'}, 'line_amount': 50}],
        True, [],
        id='sides',
    ),
    pytest.param(
        [{'debit': 100}, {'credit': 90}],
        False, ['unbalanced journal'],
        id='unbalanced',
    ),
    pytest.param([], False, ['no lines'], id='empty'),
))
def test_journal_balance(lines: list[dict[str, Any]], valid: bool, issues: list[str]) -> None:
    """Debits and credits must balance."""
    result = check_journal_balance(lines)

    assert result.valid is valid
    assert result.issues == issues


def test_journal_balance_rejects_unknown_side() -> None:
    """A line without a usable side is malformed."""
    with pytest.raises(ValueError, match='Unknown journal line side'):
        check_journal_balance([{'side': 'left', 'amount': 5}])


@pytest.mark.parametrize('closing, valid, issues', (
    pytest.param(70, True, [], id='balanced'),
    pytest.param(65, False, ['inventory mismatch'], id='mismatch'),
    pytest.param(-5, False, ['negative stock', 'inventory mismatch'], id='negative'),
))
def test_inventory_balance(closing: int, valid: bool, issues: list[str]) -> None:
    """Opening plus receipts minus issues gives the closing stock."""
    result = check_inventory_balance(50, 30, 10, closing)

    assert result.valid is valid
    assert result.issues == issues
    assert result.details['expected_closing'] == 70


@pytest.mark.parametrize('amount, rate, inclusive, expected', (
    pytest.param(100, 0.2, False, ('100.00', '20.00', '120.00'), id='exclusive'),
    pytest.param(120, 0.2, True, ('100.00', '20.00', '120.00'), id='inclusive'),
    pytest.param('10.05', '0.075', False, ('10.05', '0.75', '10.80'), id='half up'),
    pytest.param(100, 0, False, ('100.00', '0.00', '100.00'), id='zero rate'),
))
def test_calculate_tax(amount: Any, rate: Any, inclusive: bool,  # noqa: ANN401
                       expected: tuple[str, str, str]) -> None:
    """Tax breakdowns are rounded to cents."""
    breakdown = calculate_tax(amount, rate, inclusive)

    assert (breakdown.net, breakdown.tax, breakdown.gross) == tuple(map(Decimal, expected))


def test_calculate_tax_negative_rate() -> None:
    """Negative rates are rejected."""
    with pytest.raises(ValueError, match='negative'):
        calculate_tax(100, -0.1)


def test_tax_calculation_mismatch() -> None:
    """Reported amounts are compared with the computed breakdown."""
    result = check_tax_calculation(100, 0.2, expected_tax=19, expected_gross=120)

    assert not result.valid
    assert result.issues == ['tax mismatch']
    assert result.difference == 1
    assert result.details['gross_difference'] == 0


def test_tax_calculation_without_expectations() -> None:
    """Without expectations the breakdown is only reported."""
    result = check_tax_calculation(50, 0.1)

    assert result.valid
    assert result.details['tax'] == 5
    assert result.difference is None


@pytest.mark.parametrize('current, proposed, valid, issues', (
    pytest.param('draft', 'submitted', True, [], id='allowed'),
    pytest.param('draft', 'approved', False, ['illegal transition'], id='illegal'),
    pytest.param('approved', 'draft', False, ['illegal transition'], id='terminal'),
    pytest.param('archived', 'draft', False, ['unknown status'], id='unknown'),
))
def test_status_transition(current: str, proposed: str, valid: bool, issues: list[str]) -> None:
    """Transitions must appear in the transition table."""
    result = check_status_transition(current, proposed, TRANSITIONS)

    assert result.valid is valid
    assert result.issues == issues


@pytest.mark.parametrize('code, issues', (
    pytest.param('HERA.CRM.CUST.ENT.PROF.v1', [], id='valid'),
    pytest.param('HERA.FIN.GL.TXN.JOURNAL.POST.v12', [], id='longer'),
    pytest.param('BAD.CODE', ['insufficient segments', 'missing version', 'invalid prefix'], id='bad'),
    pytest.param('HERA.CRM.CUST.ENT.PROF', ['missing version'], id='no version'),
    pytest.param('HERA.CRM..ENT.PROF.v1', ['empty segment'], id='empty'),
    pytest.param('HERA.crm.CUST.ENT.PROF.v1', ['invalid segment'], id='lowercase'),
    pytest.param('ACME.CRM.CUST.ENT.PROF.v1', ['invalid prefix'], id='prefix'),
    pytest.param('HERA.A.B.C.D.E.F.G.H.v1', [], id='longest'),
    pytest.param('HERA.A.B.C.D.E.F.G.H.I.v1', ['too many segments'], id='too many'),
))
def test_smart_code(code: str, issues: list[str]) -> None:
    """Smart codes follow the segment grammar."""
    result = check_smart_code(code)

    assert result.valid is (not issues)
    assert result.issues == issues


def test_smart_code_custom_prefix() -> None:
    """The expected prefix is configurable."""
    assert check_smart_code('ACME.CRM.CUST.ENT.PROF.v1', 'ACME').valid


def test_smart_code_details() -> None:
    """Parsed segments and version are reported."""
    result = check_smart_code('HERA.CRM.CUST.ENT.PROF.v3')

    assert result.details['segments'] == ['HERA', 'CRM', 'CUST', 'ENT', 'PROF']
    assert result.details['version'] == 3


@pytest.mark.parametrize('name, params, valid', (
    pytest.param('accounting_equation', {'assets': 100, 'liabilities': 40, 'equity': 60}, True, id='accounting'),
    pytest.param('journal_balance', {'lines': [{'debit': 1}, {'credit': 1}]}, True, id='journal'),
    pytest.param('inventory_balance', {'opening': 5, 'issued': 5, 'closing': 0}, True, id='inventory'),
    pytest.param('tax_calculation', {'amount': 100, 'rate': 0.1, 'expected_tax': 10}, True, id='tax'),
    pytest.param(
        'workflow_status',
        {'current': 'draft', 'proposed': 'submitted', 'transitions': TRANSITIONS},
        True,
        id='workflow',
    ),
    pytest.param('smart_code_validation', {'code': 'HERA.CRM.CUST.ENT.PROF.v1'}, True, id='smart code'),
))
def test_evaluate_oracle(name: str, params: dict[str, Any], valid: bool) -> None:
    """Oracles are invoked by name with assertion parameters."""
    result = evaluate_oracle(name, params)

    assert result.valid is valid
    assert result.rule == name


@pytest.mark.parametrize('name, params', (
    pytest.param('accounting_equation', {'assets': 100}, id='missing parameter'),
    pytest.param('accounting_equation', {'assets': '{{balance.assets}}', 'liabilities': 0, 'equity': 0}, id='unresolved'),
    pytest.param('accounting_equation', {'assets': True, 'liabilities': 0, 'equity': 0}, id='boolean'),
    pytest.param('workflow_status', {'current': 'a', 'proposed': 'b', 'transitions': ['a']}, id='bad table'),
))
def test_evaluate_oracle_malformed(name: str, params: dict[str, Any]) -> None:
    """Malformed parameters produce an invalid verdict instead of raising."""
    result = evaluate_oracle(name, params)

    assert not result.valid
    assert result.issues == ['malformed input']


def test_evaluate_unknown_oracle() -> None:
    """Unknown oracles produce an invalid verdict."""
    result = evaluate_oracle('fiscal_magic', {})

    assert not result.valid
    assert result.issues == ['unknown oracle']


def test_evaluate_oracle_tolerance() -> None:
    """Check tolerance overrides the oracle default."""
    params = {'assets': 100, 'liabilities': 40, 'equity': 59}

    assert not evaluate_oracle('accounting_equation', params).valid
    assert evaluate_oracle('accounting_equation', params, 1.0).valid
