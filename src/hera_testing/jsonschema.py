"""JSON Schema export for definition documents."""

from functools import cache
from json import dumps
from typing import TYPE_CHECKING

from pydantic.json_schema import GenerateJsonSchema, JsonSchemaValue

from hera_testing.schema import BusinessProcessTest

if TYPE_CHECKING:
    from pydantic_core import core_schema as core


class SchemaGenerator(GenerateJsonSchema):
    """Schema generator that documents placeholder-capable free values.

    Dynamic field values, request bodies and oracle parameters are typed
    as `Any`; instead of an empty schema they get a description that
    mentions `{{placeholders}}`.
    """

    @classmethod
    @cache
    def make_schema(cls, indent: int | str | None = 4) -> str:
        """Return the definition schema as sorted, indented JSON."""
        schema = BusinessProcessTest.model_json_schema(schema_generator=cls)
        schema.update({
            '$schema': cls.schema_dialect,
            'title': 'hera-testing',
            'description': 'JSON Schema for HERA business process test definitions',
        })

        return dumps(schema, ensure_ascii=False, sort_keys=True, indent=indent)

    def any_schema(self, schema: 'core.AnySchema') -> JsonSchemaValue:  # noqa: ARG002
        """Describe `Any` fields instead of emitting an empty schema."""
        return {'description': 'Any value; strings may contain {{placeholders}}'}
