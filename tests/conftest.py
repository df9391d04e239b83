"""Tests configurations and fixtures."""

from copy import deepcopy
from importlib.metadata import EntryPoint, EntryPoints
from typing import TYPE_CHECKING, Any

import pytest
import yaml

from hera_testing.backends import InMemoryBackend
from hera_testing.core import parse_definition

if TYPE_CHECKING:
    from collections.abc import Callable

if TYPE_CHECKING:
    from pytest_mock import MockerFixture, MockType

if TYPE_CHECKING:
    from hera_testing.schema import BusinessProcessTest

#: Complete definition exercising every phase and assertion kind.
DEFINITION: dict[str, Any] = {
    'id': 'customer_onboarding',
    'title': 'Customer onboarding',
    'description': 'Register a customer, record an order and check the books.',
    'industry': 'retail',
    'context': {
        'tenant': 'acme',
        'organization_id': 'org-acme',
        'currency': 'EUR',
        'fiscal_year': 2025,
        'clock': '2025-01-01T00:00:00Z',
    },
    'personas': {
        'sales_manager': {
            'role': 'manager',
            'permissions': ['entities:write', 'transactions:write'],
        },
    },
    'setup': [
        {
            'action_type': 'create_entity',
            'data': {
                'entity_type': 'product',
                'entity_name': 'Widget',
                'smart_code': 'HERA.RETAIL.PROD.ENT.ITEM.v1',
            },
            'store_as': 'product',
        },
    ],
    'steps': [
        {
            'id': 'create_customer',
            'description': 'Register the customer',
            'persona': 'sales_manager',
            'actions': [
                {
                    'action_type': 'create_entity',
                    'data': {
                        'entity_type': 'customer',
                        'entity_name': 'Acme Corp',
                        'smart_code': 'HERA.CRM.CUST.ENT.PROF.v1',
                        'dynamic_fields': {'credit_limit': 5000},
                    },
                },
            ],
            'postconditions': ['{{create_customer.id}}'],
        },
        {
            'id': 'record_order',
            'description': 'Record the first order',
            'persona': 'sales_manager',
            'preconditions': ['{{create_customer.id}}'],
            'actions': [
                {
                    'action_type': 'create_transaction',
                    'data': {
                        'transaction_type': 'sale',
                        'smart_code': 'HERA.RETAIL.SALE.TXN.ORDER.v1',
                        'reference_entity_id': '{{create_customer.id}}',
                        'line_items': [
                            {
                                'line_number': 1,
                                'line_entity_id': '{{product.id}}',
                                'line_amount': 100,
                                'smart_code': 'HERA.RETAIL.SALE.LINE.ITEM.v1',
                            },
                        ],
                    },
                    'store_as': 'order',
                },
            ],
            'postconditions': ['{{order.total_amount}} == 100'],
        },
    ],
    'cleanup': [
        {
            'action_type': 'set_dynamic_field',
            'entity_id': '{{create_customer.id}}',
            'field_name': 'status',
            'field_value': 'archived',
            'smart_code': 'HERA.CRM.CUST.DYN.STATUS.v1',
        },
    ],
    'assertions': [
        {
            'type': 'business',
            'title': 'Books are balanced',
            'assertions': [
                {
                    'oracle': 'accounting_equation',
                    'params': {'assets': 100, 'liabilities': 40, 'equity': 60},
                },
            ],
        },
        {
            'type': 'database',
            'title': 'Customer is stored',
            'assertions': [
                {
                    'table': 'core_entities',
                    'condition': 'count',
                    'filters': {'entity_type': 'customer'},
                    'expected': 1,
                },
            ],
        },
    ],
    'metadata': {
        'tags': ['crm', 'smoke'],
        'priority': 'high',
    },
}


@pytest.fixture
def loader() -> type[yaml.SafeLoader]:
    """Provide an isolated YAML SafeLoader class for tests.

    Creates a dedicated subclass of `yaml.SafeLoader` so that constructors
    registered during a test do not leak into other tests.
    """
    class Loader(yaml.SafeLoader):
        pass

    return Loader


@pytest.fixture
def raw_definition() -> dict[str, Any]:
    """Provide a fresh copy of the complete raw definition."""
    return deepcopy(DEFINITION)


@pytest.fixture
def definition(raw_definition: dict[str, Any]) -> 'BusinessProcessTest':
    """Provide the validated complete definition."""
    return parse_definition(raw_definition)


@pytest.fixture
def backend() -> InMemoryBackend:
    """Provide an empty in-memory backend."""
    return InMemoryBackend()


@pytest.fixture
def patch_entrypoints(mocker: 'MockerFixture') -> 'Callable[..., MockType]':
    """Provide a factory for mocking `importlib.metadata.entry_points`.

    Returns a callable that patches `entry_points()` to simulate
    discovery of generators in the `hera_testing_generators` group.
    """
    def patch(*generators: Any, raises: Exception | None = None) -> 'MockType':  # noqa: ANN401
        """Patch `entry_points` with a controlled generator configuration.

        Args:
            generators: Objects to be returned by `EntryPoint.load()`.
                If empty, no entry points are registered.
            raises: Exception to raise when `EntryPoint.load()` is called.

        Returns:
            A mock patch object replacing `importlib.metadata.entry_points`.
        """
        entrypoints = []
        for generator in generators:
            ep = mocker.Mock(spec=EntryPoint)
            ep.group = 'hera_testing_generators'
            ep.name = 'tests'
            ep.value = 'tests.generators:test'
            ep.load.return_value = generator
            if raises is not None:
                ep.load.side_effect = raises
            entrypoints.append(ep)

        return mocker.patch(
            'importlib.metadata.entry_points',
            return_value=EntryPoints(entrypoints),
        )

    return patch
