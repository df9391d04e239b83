"""Pytest file collector for business process definitions."""

from typing import TYPE_CHECKING

import pytest

from .case import DefinitionItem

if TYPE_CHECKING:
    from collections.abc import Iterable


class DefinitionFile(pytest.File):
    """Pytest file collector for definition files.

    The file is parsed and validated with the shared parser; a schema
    error surfaces as a collection error of the file.
    """

    __test__ = False

    def collect(self) -> 'Iterable[DefinitionItem]':
        """Collect the definition of the file as a single test item.

        Raises:
            DSLSchemaError: If the file is not a valid definition.
        """
        definition = self.config.hera_parser.parse_file(self.path)  # type: ignore[attr-defined]

        yield DefinitionItem.from_parent(
            self,
            name=definition.id,
            definition=definition,
            options=self.config.hera_options,  # type: ignore[attr-defined]
            backend_reference=self.config.getoption('--hera-backend', default=None),
        )
