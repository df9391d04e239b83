"""Template placeholder resolution.

This module rewrites `{{name}}` and `{{name.path}}` placeholders inside
value trees (strings, sequences and mappings) into values taken from a
run context. It supports:

- Dotted path lookup through nested mappings and sequences
- Whole-string placeholders that keep the type of the stored value
- The `timestamp` token seeded by the runner at run start
- Clock arithmetic (`clock+60`, `clock-3600`) on the simulated clock

Resolution is tolerant: a placeholder that can not be resolved is left
verbatim, so forward references and static templates survive untouched.
"""

from collections.abc import Mapping
from copy import deepcopy
from datetime import UTC, datetime, timedelta
from json import dumps
from re import ASCII
from re import compile as regexp
from typing import TYPE_CHECKING, Final

if TYPE_CHECKING:
    from re import Match

if TYPE_CHECKING:
    from hera_testing.values import RuntimeValue, Value

#: Placeholder syntax; the expression is trimmed before lookup.
PLACEHOLDER_PATTERN = regexp(r'\{\{\s*(?P<expression>[^{}]+?)\s*\}\}')

#: Clock arithmetic expression, the offset is expressed in seconds.
CLOCK_PATTERN = regexp(
    r'^(?P<name>clock)\s*(?P<sign>[+-])\s*(?P<offset>\d+(\.\d+)?)$',
    flags=ASCII,
)

CLOCK_NAME = 'clock'
TIMESTAMP_NAME = 'timestamp'


class _Missing:
    """Marker for lookups that found nothing."""

    def __repr__(self) -> str:
        return '<missing>'


MISSING: Final = _Missing()


def lookup(expression: str, context: 'Mapping[str, RuntimeValue]') -> 'RuntimeValue':
    """Resolve a single placeholder expression against a context.

    Args:
        expression: Placeholder body such as `customer.id` or `clock+60`.
        context: Run context or step scope.

    Returns:
        The stored value, or `MISSING` when the expression can not be
        resolved.
    """
    if match := CLOCK_PATTERN.match(expression):
        return shift_clock(
            context.get(CLOCK_NAME),
            float(match['offset']) * (-1 if match['sign'] == '-' else 1),
        )

    head, *path = expression.split('.')
    if head not in context:
        return MISSING

    value = context[head]
    for key in path:
        if isinstance(value, Mapping) and key in value:
            value = value[key]
        elif isinstance(value, (list, tuple)) and key.isdecimal() and int(key) < len(value):
            value = value[int(key)]
        else:
            return MISSING

    return value


def shift_clock(clock: 'RuntimeValue', seconds: float) -> 'RuntimeValue':
    """Shift a simulated clock by a number of seconds.

    Args:
        clock: ISO-8601 string or datetime taken from the context.
        seconds: Signed offset in seconds.

    Returns:
        The shifted moment as an ISO-8601 string (UTC is written with
        a `Z` suffix), or `MISSING` when the clock is absent or invalid.
    """
    if isinstance(clock, str):
        try:
            moment = datetime.fromisoformat(clock)
        except ValueError:
            return MISSING
    elif isinstance(clock, datetime):
        moment = clock
    else:
        return MISSING

    return format_moment(moment + timedelta(seconds=seconds))


def format_moment(moment: datetime) -> str:
    """Format a datetime as ISO-8601, writing UTC as `Z`."""
    text = moment.isoformat()
    if moment.tzinfo is not None and moment.utcoffset() == timedelta(0):
        text = moment.astimezone(UTC).isoformat().removesuffix('+00:00') + 'Z'

    return text


def stringify(value: 'RuntimeValue') -> str:
    """Render a resolved value for embedding inside a larger string."""
    if isinstance(value, str):
        return value

    if isinstance(value, datetime):
        return format_moment(value)

    if value is None or isinstance(value, (bool, dict, list, tuple)):
        return dumps(value, default=str, ensure_ascii=False)

    return f'{value}'


def resolve_string(value: str, context: 'Mapping[str, RuntimeValue]') -> 'Value':
    """Resolve placeholders inside a single string.

    Args:
        value: Source string.
        context: Run context or step scope.

    Returns:
        The stored value itself when the string is exactly one
        placeholder, otherwise the string with every resolvable
        placeholder substituted.
    """
    if '{{' not in value:
        return value

    if match := PLACEHOLDER_PATTERN.fullmatch(value):
        found = lookup(match['expression'], context)
        if found is MISSING:
            return value
        return deepcopy(found)

    def substitute(match: 'Match[str]') -> str:
        found = lookup(match['expression'], context)
        if found is MISSING:
            return match[0]
        return stringify(found)

    return PLACEHOLDER_PATTERN.sub(substitute, value)


def resolve(value: 'RuntimeValue', context: 'Mapping[str, RuntimeValue]') -> 'Value':
    """Resolve every placeholder in a value tree.

    The input is never mutated; containers are rebuilt, and values
    without placeholders come back equal to the input.

    Args:
        value: String, sequence, mapping, or scalar.
        context: Run context or step scope.

    Returns:
        A deep copy of the tree with placeholders substituted.
    """
    if isinstance(value, str):
        return resolve_string(value, context)

    if isinstance(value, Mapping):
        return {
            key: resolve(item, context)
            for key, item in value.items()
        }

    if isinstance(value, (list, tuple)):
        return type(value)(
            resolve(item, context)
            for item in value
        )

    return deepcopy(value)


def has_placeholders(value: 'RuntimeValue') -> bool:
    """Check whether a value tree still contains any placeholder."""
    if isinstance(value, str):
        return PLACEHOLDER_PATTERN.search(value) is not None

    if isinstance(value, Mapping):
        return any(has_placeholders(item) for item in value.values())

    if isinstance(value, (list, tuple)):
        return any(has_placeholders(item) for item in value)

    return False
