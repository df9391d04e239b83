"""YAML and JSON definition parser.

Definitions are authored as a single YAML document. JSON is a subset of
YAML, so JSON sources are read by the same loader.
"""

import logging
from pathlib import Path
from typing import TYPE_CHECKING

from yaml import SafeLoader, load
from yaml.error import MarkedYAMLError, YAMLError

from hera_testing.errors import DSLSchemaError, ErrorContext, SchemaIssue

from .validator import parse_definition

if TYPE_CHECKING:
    from io import TextIOBase

if TYPE_CHECKING:
    from yaml import BaseLoader

    from hera_testing.schema import BusinessProcessTest

logger = logging.getLogger(__name__)


class DefinitionParser:
    """Parser of definition sources into validated definitions.

    The YAML loader is configurable so that callers can extend it with
    their own constructors. The safe loader is used by default.
    """

    def __init__(self, loader: type['BaseLoader'] = SafeLoader) -> None:
        """Initialize the parser.

        Args:
            loader: YAML loader class used to deserialize sources.
        """
        self.loader = loader

    def parse(self, content: 'TextIOBase | str', *,
              filename: str | None = None) -> 'BusinessProcessTest':
        """Parse a YAML or JSON source into a validated definition.

        Args:
            content: Source as a string or a text stream.
            filename: Optional name of the source, used in error messages.

        Returns:
            The validated definition.

        Raises:
            DSLSchemaError: If the source is not valid YAML or the document
                violates the schema.
        """
        try:
            document = load(content, Loader=self.loader)  # noqa: S506

        except MarkedYAMLError as base:
            raise DSLSchemaError.from_yaml_error(base, filename=filename) from base

        except YAMLError as base:
            raise DSLSchemaError(
                'Invalid YAML',
                issues=[],
                context=ErrorContext(filename=filename, error=base),
            ) from base

        if document is None:
            raise DSLSchemaError(
                'Definition document is empty',
                issues=[SchemaIssue('', 'document is empty')],
                context=ErrorContext(filename=filename) if filename else None,
            )

        return parse_definition(document, filename=filename)

    def parse_file(self, path: 'Path | str') -> 'BusinessProcessTest':
        """Read and parse a definition file.

        Args:
            path: Path to a `.yaml`, `.yml` or `.json` file.

        Returns:
            The validated definition.

        Raises:
            DSLSchemaError: If the file content is not a valid definition.
        """
        path = Path(path)
        logger.debug('Parsing definition file %s', path)

        with path.open('r', encoding='utf-8') as content:
            return self.parse(content, filename=str(path))
