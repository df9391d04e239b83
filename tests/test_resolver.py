"""Tests for placeholder resolution."""

from datetime import UTC, datetime
from typing import Any

import pytest

from hera_testing.resolver import MISSING, has_placeholders, lookup, resolve, shift_clock

CONTEXT: dict[str, Any] = {
    'clock': '2024-01-01T00:00:00Z',
    'timestamp': 1704067200000,
    'organization_id': 'org-1',
    'create_customer': {
        'id': 'cust-1',
        'records': [{'id': 'cust-1', 'entity_name': 'Acme'}],
        'total': 125.5,
        'active': True,
    },
}


@pytest.mark.parametrize('value, expected', (
    pytest.param('{{create_customer.id}}', 'cust-1', id='dotted'),
    pytest.param('{{ create_customer.id }}', 'cust-1', id='whitespace'),
    pytest.param('{{create_customer.records.0.entity_name}}', 'Acme', id='list index'),
    pytest.param('{{create_customer.total}}', 125.5, id='typed number'),
    pytest.param('{{create_customer.active}}', True, id='typed boolean'),
    pytest.param('Customer {{create_customer.id}} of {{organization_id}}', 'Customer cust-1 of org-1', id='embedded'),
    pytest.param('Total {{create_customer.total}}', 'Total 125.5', id='embedded number'),
    pytest.param('Active {{create_customer.active}}', 'Active true', id='embedded boolean'),
    pytest.param('{{timestamp}}', 1704067200000, id='timestamp'),
    pytest.param('{{clock+60}}', '2024-01-01T00:01:00Z', id='clock forward'),
    pytest.param('{{clock-3600}}', '2023-12-31T23:00:00Z', id='clock backward'),
    pytest.param('{{unknown}}', '{{unknown}}', id='unknown left verbatim'),
    pytest.param('{{create_customer.missing}}', '{{create_customer.missing}}', id='missing path'),
    pytest.param('plain text', 'plain text', id='no placeholder'),
))
def test_resolve_string(value: str, expected: Any) -> None:  # noqa: ANN401
    """Resolve placeholders in strings."""
    assert resolve(value, CONTEXT) == expected


def test_resolve_tree() -> None:
    """Resolve placeholders in nested containers without mutating them."""
    value = {
        'customer': '{{create_customer.id}}',
        'lines': [{'amount': '{{create_customer.total}}'}, 3],
        'note': None,
    }

    resolved = resolve(value, CONTEXT)

    assert resolved == {
        'customer': 'cust-1',
        'lines': [{'amount': 125.5}, 3],
        'note': None,
    }
    assert value['customer'] == '{{create_customer.id}}'


def test_resolve_returns_copies() -> None:
    """Resolved values do not alias context entries."""
    resolved = resolve('{{create_customer.records}}', CONTEXT)
    resolved.append({'id': 'other'})

    assert len(CONTEXT['create_customer']['records']) == 1


@pytest.mark.parametrize('value', (
    pytest.param('{{create_customer.id}}', id='string'),
    pytest.param({'a': ['{{clock+60}}', '{{unknown}}']}, id='tree'),
    pytest.param('x {{timestamp}} y', id='embedded'),
))
def test_resolve_is_idempotent(value: Any) -> None:  # noqa: ANN401
    """Resolving twice yields the same value as resolving once."""
    once = resolve(value, CONTEXT)

    assert resolve(once, CONTEXT) == once


def test_clock_without_clock() -> None:
    """Clock arithmetic without a clock is left verbatim."""
    assert resolve('{{clock+60}}', {}) == '{{clock+60}}'


@pytest.mark.parametrize('clock, seconds, expected', (
    pytest.param('2024-01-01T00:00:00Z', 90, '2024-01-01T00:01:30Z', id='string'),
    pytest.param(datetime(2024, 1, 1, tzinfo=UTC), -1, '2023-12-31T23:59:59Z', id='datetime'),
    pytest.param('2024-01-01T00:00:00', 1.5, '2024-01-01T00:00:01.500000', id='naive'),
))
def test_shift_clock(clock: Any, seconds: float, expected: str) -> None:  # noqa: ANN401
    """Shift clocks by seconds."""
    assert shift_clock(clock, seconds) == expected


def test_shift_invalid_clock() -> None:
    """An invalid clock can not be shifted."""
    assert shift_clock('not a clock', 60) is MISSING
    assert shift_clock(None, 60) is MISSING


def test_lookup_missing() -> None:
    """Lookups report missing values with a marker."""
    assert lookup('nothing.here', CONTEXT) is MISSING
    assert lookup('create_customer.records.5', CONTEXT) is MISSING


@pytest.mark.parametrize('value, expected', (
    pytest.param('{{a}}', True, id='string'),
    pytest.param({'a': [1, {'b': 'x {{c}}'}]}, True, id='nested'),
    pytest.param({'a': [1, {'b': 'x'}]}, False, id='none'),
    pytest.param(42, False, id='scalar'),
))
def test_has_placeholders(value: Any, expected: bool) -> None:  # noqa: ANN401
    """Detect remaining placeholders."""
    assert has_placeholders(value) is expected
