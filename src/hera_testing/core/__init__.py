"""Definition parsing and validation.

This module turns raw documents into validated business process
definitions. It provides:
- `validate`, a non-raising check returning every schema issue;
- `parse_definition`, which returns the typed definition or raises;
- `DefinitionParser`, which reads YAML or JSON sources and validates them.
"""

from .parser import DefinitionParser
from .validator import ValidationReport, parse_definition, validate

__all__ = (
    'DefinitionParser',
    'ValidationReport',
    'parse_definition',
    'validate',
)
