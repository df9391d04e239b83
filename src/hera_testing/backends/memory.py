"""In-memory reference backend.

Rows live in plain dictionaries grouped by core table. The backend is
used by the command line runner by default, by the generated pytest
suites, and by the test suite of this package.
"""

import logging
from collections.abc import Callable, Mapping
from copy import deepcopy
from threading import RLock
from typing import Any
from uuid import uuid4

from hera_testing.errors import DSLRuntimeError

from .base import Backend

logger = logging.getLogger(__name__)

#: Core tables known to the backend.
TABLES = (
    'core_organizations',
    'core_entities',
    'core_dynamic_data',
    'core_relationships',
    'universal_transactions',
    'universal_transaction_lines',
)

#: Versioned prefix of the universal API routes.
API_PREFIX = '/api/v2.1'

type Handler = Callable[[Mapping[str, Any] | None], Any]


def column_value(row: Mapping[str, Any], column: str) -> Any:  # noqa: ANN401
    """Read a column, following dotted names into JSON columns.

    Returns:
        The column value, or `None` when the column is absent.
    """
    value: Any = row
    for key in column.split('.'):
        if not isinstance(value, Mapping) or key not in value:
            return None
        value = value[key]

    return value


def row_matches(row: Mapping[str, Any], filters: Mapping[str, Any] | None) -> bool:
    """Check that a row has every filtered column value."""
    return all(
        column_value(row, column) == expected
        for column, expected in (filters or {}).items()
    )


class InMemoryBackend(Backend):
    """Thread-safe backend keeping records in memory.

    Records are scoped to the selected organization. Besides the record
    operations it serves the universal API routes, custom endpoints
    added with `register_endpoint`, and records UI interactions.
    """

    def __init__(self) -> None:
        """Initialize empty tables."""
        super().__init__()

        self._lock = RLock()
        self.tables: dict[str, list[dict[str, Any]]] = {name: [] for name in TABLES}
        self.interactions: list[dict[str, Any]] = []
        self.endpoints: dict[tuple[str, str], Handler] = {
            ('POST', f'{API_PREFIX}/entities'): self._post_entity,
            ('POST', f'{API_PREFIX}/transactions'): self._post_transaction,
            ('POST', f'{API_PREFIX}/relationships'): self._post_relationship,
            ('GET', f'{API_PREFIX}/entities'): self._get_entities,
            ('GET', f'{API_PREFIX}/transactions'): self._get_transactions,
        }

    def use_organization(self, organization_id: str) -> None:
        """Select an organization, registering it on first use."""
        with self._lock:
            super().use_organization(organization_id)
            if not any(row['id'] == organization_id for row in self.tables['core_organizations']):
                self.tables['core_organizations'].append({
                    'id': organization_id,
                    'organization_name': organization_id,
                })

    def register_endpoint(self, method: str, endpoint: str, handler: Handler) -> None:
        """Serve an API route with a handler receiving the request body."""
        with self._lock:
            self.endpoints[method.upper(), endpoint] = handler

    def rows(self, table: str) -> list[dict[str, Any]]:
        """Return a copy of every row of a table, across organizations."""
        with self._lock:
            return deepcopy(self._table(table))

    def create_entity(self, payload: Mapping[str, Any]) -> dict[str, Any]:
        """Create an entity and its dynamic fields."""
        with self._lock:
            fields = dict(payload)
            dynamic_fields = fields.pop('dynamic_fields', None) or {}

            entity = self._insert('core_entities', fields)
            for name, value in dynamic_fields.items():
                self._insert('core_dynamic_data', {
                    'entity_id': entity['id'],
                    'field_name': name,
                    'field_value': value,
                    'smart_code': entity.get('smart_code'),
                })

            logger.debug('Created entity %s (%s)', entity['id'], entity.get('entity_type'))

            return deepcopy(entity)

    def create_transaction(self, payload: Mapping[str, Any]) -> dict[str, Any]:
        """Create a transaction and its lines."""
        with self._lock:
            fields = dict(payload)
            lines = fields.pop('line_items', None) or []

            if 'total_amount' not in fields and lines:
                fields['total_amount'] = sum(line.get('line_amount', 0) for line in lines)

            transaction = self._insert('universal_transactions', fields)
            created = [
                self._insert('universal_transaction_lines', {
                    **line,
                    'transaction_id': transaction['id'],
                })
                for line in lines
            ]

            logger.debug('Created transaction %s with %d line(s)', transaction['id'], len(created))

            return deepcopy({**transaction, 'line_items': created})

    def create_relationship(self, payload: Mapping[str, Any]) -> dict[str, Any]:
        """Create a relationship between two existing entities."""
        with self._lock:
            for key in ('from_entity_id', 'to_entity_id'):
                self._require_entity(payload.get(key))

            return deepcopy(self._insert('core_relationships', dict(payload)))

    def set_dynamic_field(self, entity_id: str, name: str, value: Any, *,  # noqa: ANN401
                          smart_code: str | None = None) -> dict[str, Any]:
        """Store a dynamic field value on an existing entity."""
        with self._lock:
            self._require_entity(entity_id)

            row = self._insert('core_dynamic_data', {
                'entity_id': entity_id,
                'field_name': name,
                'field_value': value,
                'smart_code': smart_code,
            })

            return {
                'id': row['id'],
                'entity_id': entity_id,
                'field_name': name,
                'success': True,
            }

    def call_api(self, method: str, endpoint: str,
                 data: Mapping[str, Any] | None = None) -> Any:  # noqa: ANN401
        """Serve a registered API route.

        Raises:
            DSLRuntimeError: If no handler serves the route.
        """
        handler = self.endpoints.get((method.upper(), endpoint))
        if handler is None:
            raise DSLRuntimeError(f'No handler for {method.upper()} {endpoint}')

        return handler(data)

    def interact(self, selector: str, interaction: str, *,
                 value: str | None = None, timeout: int | None = None) -> dict[str, Any]:
        """Record a UI interaction."""
        event = {
            'selector': selector,
            'interaction': interaction,
            'value': value,
            'timeout': timeout,
        }
        with self._lock:
            self.interactions.append(event)

        return dict(event)

    def query(self, table: str, filters: Mapping[str, Any] | None = None) -> list[dict[str, Any]]:
        """Return rows of the selected organization matching the filters."""
        with self._lock:
            rows = self._table(table)
            if table != 'core_organizations' and self.organization_id is not None:
                rows = [row for row in rows if row.get('organization_id') == self.organization_id]

            return deepcopy([row for row in rows if row_matches(row, filters)])

    def _table(self, table: str) -> list[dict[str, Any]]:
        """Return the live rows of a table.

        Raises:
            DSLRuntimeError: If the table is unknown.
        """
        if table not in self.tables:
            raise DSLRuntimeError(f'Unknown table {table!r}')

        return self.tables[table]

    def _insert(self, table: str, fields: Mapping[str, Any]) -> dict[str, Any]:
        """Insert a row scoped to the selected organization.

        Raises:
            DSLRuntimeError: If no organization is selected.
        """
        if self.organization_id is None:
            raise DSLRuntimeError('No organization selected')

        row = {
            'id': str(uuid4()),
            'organization_id': self.organization_id,
            **deepcopy(dict(fields)),
        }
        self._table(table).append(row)

        return row

    def _require_entity(self, entity_id: Any) -> None:  # noqa: ANN401
        """Check that an entity exists in the selected organization.

        Raises:
            DSLRuntimeError: If the entity is unknown.
        """
        if not any(
            row['id'] == entity_id and row.get('organization_id') == self.organization_id
            for row in self.tables['core_entities']
        ):
            raise DSLRuntimeError(f'Unknown entity {entity_id!r}')

    def _post_entity(self, data: Mapping[str, Any] | None) -> dict[str, Any]:
        return self.create_entity(data or {})

    def _post_transaction(self, data: Mapping[str, Any] | None) -> dict[str, Any]:
        return self.create_transaction(data or {})

    def _post_relationship(self, data: Mapping[str, Any] | None) -> dict[str, Any]:
        return self.create_relationship(data or {})

    def _get_entities(self, data: Mapping[str, Any] | None) -> list[dict[str, Any]]:
        return self.query('core_entities', data)

    def _get_transactions(self, data: Mapping[str, Any] | None) -> list[dict[str, Any]]:
        return self.query('universal_transactions', data)
