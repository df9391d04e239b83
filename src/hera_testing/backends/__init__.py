"""Backend port and backend implementations.

A backend is selected by the caller of the runner. Custom backends are
referenced as `module:factory`, where the factory is a `Backend` subclass
or a callable returning a backend instance.
"""

from pkgutil import resolve_name

from hera_testing.errors import PluginError

from .base import Backend
from .memory import TABLES, InMemoryBackend, column_value, row_matches


def load_backend(reference: str) -> Backend:
    """Instantiate a backend from a `module:factory` reference.

    Args:
        reference: Import reference of a backend class or factory.

    Returns:
        A new backend instance.

    Raises:
        PluginError: If the reference can not be imported or does not
            produce a backend.
    """
    try:
        factory = resolve_name(reference)

    except (ImportError, AttributeError, ValueError) as base:
        raise PluginError(f'Can not import backend {reference!r}') from base

    if not callable(factory):
        raise PluginError(f'Backend reference {reference!r} is not callable')

    backend = factory()
    if not isinstance(backend, Backend):
        raise PluginError(f'Backend reference {reference!r} did not produce a backend')

    return backend


__all__ = (
    'TABLES',
    'Backend',
    'InMemoryBackend',
    'column_value',
    'load_backend',
    'row_matches',
)
