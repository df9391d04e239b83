"""Tests for condition evaluation."""

from typing import Any

import pytest

from hera_testing.conditions import coerce_operand, evaluate_condition

CONTEXT: dict[str, Any] = {
    'order': {'id': 'ord-1', 'total_amount': 150, 'status': 'approved'},
    'flag': False,
}


@pytest.mark.parametrize('expression, expected', (
    pytest.param('{{order.id}}', True, id='resolved identifier'),
    pytest.param('{{missing.id}}', False, id='unresolved placeholder'),
    pytest.param('{{order.total_amount}} > 100', True, id='greater'),
    pytest.param('{{order.total_amount}} <= 100', False, id='not less or equal'),
    pytest.param('{{order.total_amount}} == 150.0', True, id='int equals float'),
    pytest.param("{{order.status}} == 'approved'", True, id='quoted string'),
    pytest.param('{{order.status}} != approved', False, id='bare string'),
    pytest.param('{{order.status}} > 5', False, id='incomparable'),
    pytest.param('{{flag}}', False, id='typed false'),
    pytest.param('Customer is registered', True, id='descriptive'),
    pytest.param('Stock level >= reorder point', True, id='descriptive comparison'),
    pytest.param('5 > 3', True, id='literal comparison'),
    pytest.param("status == 'approved'", False, id='bare text against literal'),
    pytest.param('false', False, id='falsy literal'),
    pytest.param('  ', False, id='blank'),
))
def test_evaluate_condition(expression: str, expected: bool) -> None:
    """Evaluate conditions after placeholder resolution."""
    assert evaluate_condition(expression, CONTEXT) is expected


@pytest.mark.parametrize('text, expected', (
    pytest.param(' 42 ', 42, id='int'),
    pytest.param('4.5', 4.5, id='float'),
    pytest.param('TRUE', True, id='boolean'),
    pytest.param('"100"', '100', id='quoted'),
    pytest.param('done', 'done', id='text'),
))
def test_coerce_operand(text: str, expected: Any) -> None:  # noqa: ANN401
    """Comparison operands are typed."""
    assert coerce_operand(text) == expected
    assert type(coerce_operand(text)) is type(expected)
