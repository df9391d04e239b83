"""Backend port used by the runner.

The runner depends only on this narrow contract. Concrete backends talk
to a persistence layer, an HTTP API or a browser; the core never does.
"""

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Any

from hera_testing.errors import DSLRuntimeError

if TYPE_CHECKING:
    from collections.abc import Mapping

    from hera_testing.values import RuntimeValue


class Backend(ABC):
    """Abstract backend port.

    Record creation operations receive resolved payloads and return the
    created record, which must carry an `id`. Every operation is scoped
    to the organization selected with `use_organization`.

    Optional capabilities (`call_api`, `interact`, `query`) raise
    `DSLRuntimeError` unless a backend implements them.
    """

    def __init__(self) -> None:
        """Initialize the backend without a selected organization."""
        self.organization_id: str | None = None

    def use_organization(self, organization_id: str) -> None:
        """Select the organization following operations are scoped to."""
        self.organization_id = organization_id

    @abstractmethod
    def create_entity(self, payload: 'Mapping[str, Any]') -> 'RuntimeValue':
        """Create an entity and return the created record."""

    @abstractmethod
    def create_transaction(self, payload: 'Mapping[str, Any]') -> 'RuntimeValue':
        """Create a transaction with its lines and return the created record."""

    @abstractmethod
    def create_relationship(self, payload: 'Mapping[str, Any]') -> 'RuntimeValue':
        """Create a relationship and return the created record."""

    @abstractmethod
    def set_dynamic_field(self, entity_id: str, name: str, value: Any, *,  # noqa: ANN401
                          smart_code: str | None = None) -> 'RuntimeValue':
        """Store a dynamic field value on an entity and return an acknowledgement."""

    def call_api(self, method: str, endpoint: str,
                 data: 'Mapping[str, Any] | None' = None) -> 'RuntimeValue':
        """Call an HTTP endpoint of the application under test."""
        raise DSLRuntimeError(f'{type(self).__name__} does not support API calls')

    def interact(self, selector: str, interaction: str, *,
                 value: str | None = None, timeout: int | None = None) -> 'RuntimeValue':
        """Interact with a user interface element."""
        raise DSLRuntimeError(f'{type(self).__name__} does not support UI interactions')

    def query(self, table: str, filters: 'Mapping[str, Any] | None' = None) -> list[dict[str, Any]]:
        """Return the rows of a core table matching column filters."""
        raise DSLRuntimeError(f'{type(self).__name__} does not support queries')
