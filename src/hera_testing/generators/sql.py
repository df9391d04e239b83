"""Database verification target.

Emits a pgTAP script checking the state left by a run. Every check of the
database assertion groups becomes one pgTAP assertion scoped to the
organization of the process context; the script runs inside a
transaction that is rolled back.

Filters and expectations are resolved against the values known before
the run. Checks that still reference step outputs can not be expressed
statically and are emitted as skipped tests.
"""

from collections.abc import Mapping
from typing import TYPE_CHECKING, Any, ClassVar

from hera_testing.resolver import has_placeholders, resolve
from hera_testing.schema import DatabaseAssertionGroup

from .base import BaseGenerator, one_line, sql_identifier, sql_literal, static_context

if TYPE_CHECKING:
    from hera_testing.schema import BusinessProcessTest, DatabaseCheck

#: Tables holding rows of every organization.
GLOBAL_TABLES = frozenset({'core_organizations'})

TEMPLATE = '''\
-- pgTAP verification for business process {{ id }}
-- {{ title | one_line }}
-- Organization: {{ organization_id | one_line }}
-- Generated by hera-testing; do not edit.

BEGIN;

SELECT plan({{ statements | length }});
{% for statement in statements %}

{% if statement.title %}
-- {{ statement.title | one_line }}
{% endif %}
{{ statement.sql }}
{% endfor %}

SELECT * FROM finish();

ROLLBACK;
'''


def column_expression(column: str) -> str:
    """SQL expression reading a column, following dotted names into JSON."""
    name, *path = column.split('.')
    if not path:
        return sql_identifier(name)

    if len(path) == 1:
        return f'{sql_identifier(name)}->>{sql_literal(path[0])}'

    return f"{sql_identifier(name)}#>>'{{{','.join(path)}}}'"


def comparison(column: str, value: Any) -> str:  # noqa: ANN401
    """SQL predicate comparing a column with an expected value."""
    expression = column_expression(column)
    if value is None:
        return f'{expression} IS NULL'

    if '.' in column and not isinstance(value, (dict, list)):
        # JSON paths read as text
        text = ('true' if value else 'false') if isinstance(value, bool) else f'{value}'
        return f'{expression} = {sql_literal(text)}'

    return f'{expression} = {sql_literal(value)}'


def predicates(values: Mapping[str, Any]) -> list[str]:
    """SQL predicates of a column to value mapping, in key order."""
    return [comparison(column, values[column]) for column in sorted(values)]


def check_statement(check: 'DatabaseCheck', values: Mapping[str, Any]) -> str:
    """pgTAP statement of a database check.

    Args:
        check: Database check of a definition.
        values: Values known before the run.

    Returns:
        A pgTAP assertion, or a skip when the check can not be expressed
        statically.
    """
    description = f'{check.table} {check.condition}'
    filters = resolve(check.filters, values)
    expected = resolve(check.expected, values)

    if has_placeholders(filters) or has_placeholders(expected):
        return f'SELECT skip({sql_literal(f"{description}: depends on run outputs")}, 1);'

    if check.condition == 'count' and (isinstance(expected, bool) or not isinstance(expected, int)):
        return f'SELECT skip({sql_literal(f"{description}: expected count is not an integer")}, 1);'

    if check.condition in ('equals', 'contains') and not isinstance(expected, Mapping):
        return f'SELECT skip({sql_literal(f"{description}: expected row is not a mapping")}, 1);'

    conditions = predicates(filters)
    if check.table not in GLOBAL_TABLES:
        conditions.insert(0, comparison('organization_id', values['organization_id']))

    source = f'FROM {sql_identifier(check.table)}'
    if conditions:
        source = f'{source} WHERE {" AND ".join(conditions)}'

    message = sql_literal(description)

    match check.condition:
        case 'count':
            return f'SELECT is((SELECT count(*) {source})::integer, {expected}, {message});'

        case 'exists':
            return f'SELECT ok(EXISTS (SELECT 1 {source}), {message});'

        case 'not_exists':
            return f'SELECT ok(NOT EXISTS (SELECT 1 {source}), {message});'

        case 'contains':
            joiner = ' AND ' if conditions else ' WHERE '
            wanted = ' AND '.join(predicates(expected)) or 'TRUE'
            return f'SELECT ok(EXISTS (SELECT 1 {source}{joiner}{wanted}), {message});'

        case 'equals':
            # NULL columns count as mismatches
            joiner = ' AND ' if conditions else ' WHERE '
            wanted = ' AND '.join(predicates(expected)) or 'TRUE'
            return (
                f'SELECT ok(EXISTS (SELECT 1 {source}) '
                f'AND NOT EXISTS (SELECT 1 {source}{joiner}NOT COALESCE({wanted}, FALSE)), {message});'
            )

    raise NotImplementedError(check.condition)  # pragma: no cover


class SQLGenerator(BaseGenerator):
    """Generator of pgTAP database verification scripts."""

    name: ClassVar[str] = 'sql'
    extension: ClassVar[str] = '.sql'
    description: ClassVar[str] = 'pgTAP script verifying database state'
    template: ClassVar[str] = TEMPLATE

    def build_context(self, definition: 'BusinessProcessTest') -> dict[str, Any]:
        """Build the script context."""
        values = static_context(definition)

        statements = []
        for group in definition.assertions:
            if not isinstance(group, DatabaseAssertionGroup):
                continue

            for num, check in enumerate(group.assertions):
                statements.append({
                    'title': group.title if num == 0 else None,
                    'sql': check_statement(check, values),
                })

        if not statements:
            statements.append({
                'title': None,
                'sql': "SELECT pass('no database assertions');",
            })

        return {
            'id': one_line(definition.id),
            'title': definition.title,
            'organization_id': definition.context.organization_id,
            'statements': statements,
        }
