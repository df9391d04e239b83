"""Evaluation of step pre/postconditions and wait conditions.

Conditions are short expressions written by authors, for example
`{{create_customer.id}}`, `{{order.total_amount}} > 100` or
`Customer is registered`. After placeholder resolution:

- a condition that still contains a placeholder does not hold;
- `left <op> right` with `==`, `!=`, `>=`, `<=`, `>` or `<` compares
  numbers, booleans or strings, provided one side is a placeholder or a
  literal (a number, a boolean or a quoted string);
- any other text, `Stock level >= reorder point` included, holds unless
  it is a falsy literal.
"""

from operator import eq, ge, gt, le, lt, ne
from re import compile as regexp
from typing import TYPE_CHECKING

from hera_testing.resolver import has_placeholders, resolve, stringify

if TYPE_CHECKING:
    from collections.abc import Mapping

if TYPE_CHECKING:
    from hera_testing.values import RuntimeValue

COMPARISON_PATTERN = regexp(r'^(?P<left>.+?)\s*(?P<operator>==|!=|>=|<=|>|<)\s*(?P<right>.+)$')

OPERATORS = {
    '==': eq,
    '!=': ne,
    '>=': ge,
    '<=': le,
    '>': gt,
    '<': lt,
}

FALSY_LITERALS = frozenset({'', 'false', 'no', 'off', '0', 'none', 'null'})

QUOTES = '\'"'


def is_quoted(text: str) -> bool:
    """Whether a text is wrapped in matching single or double quotes."""
    return len(text) >= 2 and text[0] == text[-1] and text[0] in QUOTES  # noqa: PLR2004


def coerce_operand(text: str) -> 'RuntimeValue':
    """Convert a comparison operand into a number, boolean, or string."""
    text = text.strip()
    if is_quoted(text):
        return text[1:-1]

    lowered = text.lower()
    if lowered in ('true', 'false'):
        return lowered == 'true'

    for kind in (int, float):
        try:
            return kind(text)
        except ValueError:
            continue

    return text


def is_operand(text: str) -> bool:
    """Whether one side of a comparison is a placeholder or a literal."""
    text = text.strip()
    return has_placeholders(text) or is_quoted(text) or not isinstance(coerce_operand(text), str)


def compare(left: str, operator: str, right: str,
            context: 'Mapping[str, RuntimeValue]') -> bool:
    """Resolve and compare the two sides of a comparison."""
    values = [coerce_operand(stringify(resolve(side.strip(), context))) for side in (left, right)]
    try:
        return bool(OPERATORS[operator](*values))
    except TypeError:
        return False


def evaluate_condition(expression: 'RuntimeValue',
                       context: 'Mapping[str, RuntimeValue]') -> bool:
    """Evaluate a condition expression against a context.

    Args:
        expression: Condition expression, usually a string.
        context: Run context or step scope.

    Returns:
        True if the condition holds.
    """
    resolved = resolve(expression, context)
    if not isinstance(resolved, str):
        return bool(resolved)

    if has_placeholders(resolved):
        return False

    if match := COMPARISON_PATTERN.match(expression.strip()):
        if is_operand(match['left']) or is_operand(match['right']):
            return compare(match['left'], match['operator'], match['right'], context)

    return resolved.strip().lower() not in FALSY_LITERALS
