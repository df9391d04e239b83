"""Definition names primitive types and validation rules.

This module defines name patterns and strongly-typed aliases used to
validate step identifiers, stored variable names and smart codes.

The rules defined here form part of the public document contract and are
relied upon by the validator, the resolver, the generators and tooling.
"""

from re import ASCII
from re import compile as regexp
from typing import Annotated

from pydantic import Field

#: Base pattern for variable identifiers.
#: Identifiers must start with a letter and may contain letters, digits, or underscores.
_NAME_PATTERN = r'[a-zA-Z][\w]*'

#: Base pattern for step and definition identifiers.
#: Hyphens are allowed so that kebab-case identifiers stay addressable.
_IDENTIFIER_PATTERN = r'[a-zA-Z][\w-]*'

#: Compiled pattern for variable identifiers.
VARIABLE_PATTERN = regexp(
    rf'^(?P<name>{_NAME_PATTERN})$',
    flags=ASCII,
)

#: Compiled pattern for step and definition identifiers.
IDENTIFIER_PATTERN = regexp(
    rf'^(?P<name>{_IDENTIFIER_PATTERN})$',
    flags=ASCII,
)

#: Compiled pattern for a single smart code classifier segment.
SMART_CODE_SEGMENT_PATTERN = regexp(r'^[A-Z0-9][A-Z0-9_]*$', flags=ASCII)

#: Compiled pattern for the trailing smart code version segment.
SMART_CODE_VERSION_PATTERN = regexp(r'^v(?P<version>\d+)$', flags=ASCII)


Identifier = Annotated[
    str, Field(
        pattern=rf'^{_IDENTIFIER_PATTERN}$',
        title='Identifier',
        description=(
            'Identifier of a definition or a step. '
            'Must start with a letter and may contain letters, digits, '
            'underscores and hyphens. Step identifiers are also the names '
            'under which step outputs are recorded in the run context.'
        ),
        examples=[
            'book_appointment',
            'salon-checkout',
        ],
    ),
]

Variable = Annotated[
    str, Field(
        pattern=rf'^{_NAME_PATTERN}$',
        title='Variable identifier',
        description=(
            'Name of a variable used to store or reference values within '
            'a run context. '
            'Variable identifiers must start with a letter and may contain '
            'letters, digits, or underscores. '
            'Names are restricted to ASCII characters.'
        ),
        examples=[
            'customer',
            'sale_order',
        ],
    ),
]
