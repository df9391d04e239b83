"""Validation of raw definition documents.

Both entry points take a plain value tree, as produced by a YAML or JSON
loader, and never touch the filesystem. Structural errors reported by
Pydantic and violations of the cross-field reference rules are merged
into a single ordered list of field-path and message pairs.
"""

import logging
from typing import TYPE_CHECKING

from pydantic import Field, ValidationError

from hera_testing.errors import DSLSchemaError, ErrorContext, SchemaIssue
from hera_testing.models import SchemaModel
from hera_testing.schema import BusinessProcessTest

if TYPE_CHECKING:
    from hera_testing.values import RuntimeValue

logger = logging.getLogger(__name__)


class ValidationReport(SchemaModel):
    """Outcome of validating a raw document."""

    valid: bool = Field(title='Valid')

    errors: list[SchemaIssue] = Field(
        default_factory=list,
        title='Errors',
        description='Ordered field-path and message pairs.',
    )


def _check(raw: 'RuntimeValue') -> tuple[BusinessProcessTest | None, list[SchemaIssue]]:
    """Validate a document, collecting every issue instead of raising."""
    issues: list[SchemaIssue] = []

    try:
        definition = BusinessProcessTest.model_validate(raw, context={'issues': issues})

    except ValidationError as error:
        return None, DSLSchemaError.issues_from_pydantic_error(error, raw) + issues

    if issues:
        return None, issues

    return definition, []


def validate(raw: 'RuntimeValue') -> ValidationReport:
    """Validate a raw document without raising.

    Args:
        raw: Deserialized document.

    Returns:
        A report that is valid with no errors, or invalid with a
        non-empty ordered list of issues.
    """
    _, issues = _check(raw)
    if issues:
        logger.debug('Definition rejected with %d issue(s)', len(issues))

    return ValidationReport(valid=not issues, errors=issues)


def parse_definition(raw: 'RuntimeValue', *,
                     filename: str | None = None) -> BusinessProcessTest:
    """Validate a raw document into a typed definition.

    Args:
        raw: Deserialized document.
        filename: Optional name of the source, used in error messages.

    Returns:
        The validated definition.

    Raises:
        DSLSchemaError: If the document violates the schema; the error
            carries every issue found and, for structural errors, an
            excerpt of the first offending element.
    """
    issues: list[SchemaIssue] = []

    try:
        definition = BusinessProcessTest.model_validate(raw, context={'issues': issues})

    except ValidationError as base:
        error = DSLSchemaError.from_pydantic_error(base, data=raw, filename=filename)
        error.issues.extend(issues)
        raise error from base

    if issues:
        raise DSLSchemaError(
            'Invalid business process definition',
            issues=issues,
            context=ErrorContext(filename=filename) if filename else None,
        )

    logger.debug('Definition %r validated with %d step(s)', definition.id, len(definition.steps))

    return definition
