"""Generator base class and the shared template environment.

Every generator is a stateless transform from a validated definition to
text. A generator builds a plain template context from the definition
and renders its jinja2 template with it; rendering depends on nothing
but the definition, so repeated generation yields identical output.
"""

import re
from functools import cache
from json import dumps
from typing import TYPE_CHECKING, Any, ClassVar

from jinja2 import BaseLoader, Environment, StrictUndefined, TemplateError

from hera_testing.errors import GeneratorError
from hera_testing.oracles import check_smart_code
from hera_testing.resolver import CLOCK_NAME, has_placeholders
from hera_testing.schema import smart_code_of

if TYPE_CHECKING:
    from jinja2 import Template

    from hera_testing.schema import BaseAction, BusinessProcessTest

_NON_IDENTIFIER = re.compile(r'\W+', flags=re.ASCII)
_SQL_IDENTIFIER = re.compile(r'^[a-z_][a-z0-9_]*$')


def python_name(value: str) -> str:
    """Turn an identifier into a Python identifier."""
    name = _NON_IDENTIFIER.sub('_', value).strip('_').lower() or 'unnamed'
    if name[0].isdigit():
        name = f'_{name}'

    return name


def one_line(value: Any) -> str:  # noqa: ANN401
    """Collapse a text into a single line for comments and headings."""
    return ' '.join(f'{value}'.split())


def docstring(value: Any) -> str:  # noqa: ANN401
    """Escape a text for a triple-quoted Python docstring."""
    text = f'{value}'.replace('\\', '\\\\').replace('\x00', '\\x00')
    return text.replace('"""', '\\"\\"\\"')


def sql_identifier(value: str) -> str:
    """Quote a SQL identifier unless it is a plain lowercase name."""
    if _SQL_IDENTIFIER.match(value):
        return value

    escaped = value.replace('"', '""')
    return f'"{escaped}"'


def sql_literal(value: Any) -> str:  # noqa: ANN401
    """Render a value as a SQL literal."""
    if value is None:
        return 'NULL'

    if isinstance(value, bool):
        return 'TRUE' if value else 'FALSE'

    if isinstance(value, (int, float)):
        return f'{value}'

    if isinstance(value, (dict, list)):
        document = dumps(value, sort_keys=True, ensure_ascii=False).replace("'", "''")
        return f"'{document}'::jsonb"

    text = f'{value}'.replace("'", "''")
    return f"'{text}'"


def to_json(value: Any) -> str:  # noqa: ANN401
    """Render a value as compact JSON."""
    return dumps(value, ensure_ascii=False, default=str)


def create_environment() -> Environment:
    """Create the template environment shared by all generators."""
    environment = Environment(
        loader=BaseLoader(),
        undefined=StrictUndefined,
        trim_blocks=True,
        lstrip_blocks=True,
        keep_trailing_newline=True,
        autoescape=False,  # noqa: S701
    )

    environment.filters['pyrepr'] = repr
    environment.filters['pyname'] = python_name
    environment.filters['one_line'] = one_line
    environment.filters['docstring'] = docstring
    environment.filters['sql_identifier'] = sql_identifier
    environment.filters['sql_literal'] = sql_literal
    environment.filters['json'] = to_json

    return environment


ENVIRONMENT = create_environment()


@cache
def compile_template(source: str) -> 'Template':
    """Compile a template source once."""
    return ENVIRONMENT.from_string(source)


def static_context(definition: 'BusinessProcessTest') -> dict[str, Any]:
    """Values of the run context known before the run starts.

    The timestamp is omitted: it depends on the moment of the run and
    would make generated artifacts differ between generations.
    """
    values: dict[str, Any] = {
        'organization_id': definition.context.organization_id,
        'tenant': definition.context.tenant,
        'currency': definition.context.currency,
        'locale': definition.context.locale,
    }
    if definition.context.clock:
        values[CLOCK_NAME] = definition.context.clock

    return values


def smart_code_issues(action: 'BaseAction', prefix: str) -> list[str] | None:
    """Check the static smart code of an action at generation time.

    Returns:
        The issues of the smart code, an empty list for a valid code, or
        `None` when the action has no smart code or it is a placeholder.
    """
    code = smart_code_of(action)
    if code is None or has_placeholders(code):
        return None

    return check_smart_code(code, prefix).issues


class BaseGenerator:
    """Base class of artifact generators.

    Subclasses declare the target `name`, the file `extension` of the
    artifact, the jinja2 `template`, and build the template context.
    """

    #: Target name used to select the generator.
    name: ClassVar[str]

    #: File extension of generated artifacts, with the leading dot.
    extension: ClassVar[str]

    #: Human readable description of the target.
    description: ClassVar[str] = ''

    #: jinja2 template source.
    template: ClassVar[str]

    def build_context(self, definition: 'BusinessProcessTest') -> dict[str, Any]:
        """Build the template context of a definition."""
        raise NotImplementedError  # pragma: no cover

    def render(self, definition: 'BusinessProcessTest') -> str:
        """Render the artifact of a definition.

        Raises:
            GeneratorError: If the template can not be rendered.
        """
        try:
            return compile_template(self.template).render(self.build_context(definition))

        except TemplateError as base:
            raise GeneratorError(f'Can not render {self.name!r} artifact: {base}') from base
