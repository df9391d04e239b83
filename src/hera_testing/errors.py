"""Errors and warnings raised by hera-testing.

Each error renders its message followed by where it happened and, when
known, the offending element dumped as YAML.
"""

from collections.abc import Mapping
from os import linesep
from typing import TYPE_CHECKING, Any, NamedTuple, TypedDict

from yaml import dump
from yaml.error import MarkedYAMLError

from hera_testing.values import MAPPINGS, SCALARS, SEQUENCES

if TYPE_CHECKING:
    from importlib.metadata import EntryPoint
    from typing import Self

if TYPE_CHECKING:
    from pydantic_core import ErrorDetails, ValidationError

SNIPPET_ELLIPSIS = f' ...{linesep}'
SNIPPET_INDENT = 2

FORMAT_REPLACER = '<runtime object>'
FORMAT_FILENAME = '<unicode string>'
FORMAT_INDENT = 4

#: Field names used as union discriminators in definition documents.
DISCRIMINATORS = ('action_type', 'type')


class SchemaIssue(NamedTuple):
    """Single schema violation: a dotted field path and a message."""

    path: str
    message: str

    def __str__(self) -> str:
        """String representation."""
        if not self.path:
            return self.message
        return f'{self.path}: {self.message}'


class ErrorContext(TypedDict, total=False):
    """Where and on what an error happened; every key is optional."""

    filename: str | None
    #: Zero-based position in the source document.
    line_num: int | None
    column_num: int | None

    #: Failed step and the zero-based index of its failed action.
    step_id: str | None
    action_num: int | None

    error: Exception | None
    #: Definition fragment or resolved payload shown under the location.
    element: Any


class ErrorFormatter:
    """Render messages as a headline, a location and an optional excerpt.

    The excerpt is either the YAML source around a parse error mark or
    the offending element dumped back to YAML.
    """

    @classmethod
    def format(cls, message: str, context: ErrorContext | None = None) -> str:
        """Append location and excerpt from `context` to `message`."""
        if not context:
            return message

        return (
            message
            + linesep
            + cls.get_location_string(context, indent=FORMAT_INDENT)
            + cls.get_snippet_string(context, indent=FORMAT_INDENT * 2)
        )

    @classmethod
    def get_location_string(cls, context: ErrorContext, *,
                            indent: str | int | None = None) -> str:
        """Describe the file position and, for run failures, the step.

        Positions are stored zero-based and printed one-based.
        """
        prefix = cls._ensure_indent(indent)

        lines = [f'in "{context.get('filename') or FORMAT_FILENAME}"']
        if (line_num := context.get('line_num')) is not None:
            lines[0] += f', line {line_num + 1}'
            if (column_num := context.get('column_num')) is not None:
                lines[0] += f', column {column_num + 1}'

        if (step_id := context.get('step_id')) is not None:
            lines.append(f'on step {step_id!r}')
            if (action_num := context.get('action_num')) is not None:
                lines[-1] += f', action {action_num + 1}'

        return ''.join(f'{prefix}{line}{linesep}' for line in lines)

    @classmethod
    def get_snippet_string(cls, context: ErrorContext, *,
                           indent: str | int | None = None) -> str:
        """Return the excerpt for `context`, or an empty string."""
        prefix = cls._ensure_indent(indent)

        error = context.get('error')
        if isinstance(error, MarkedYAMLError):
            mark = error.problem_mark
            source = mark.get_snippet(indent=0) if mark is not None else None
            return cls._make_indent(source or '', prefix)

        if element := context.get('element'):
            return f'{prefix}{SNIPPET_ELLIPSIS}{cls._make_yaml(element, prefix)}{linesep}'

        return ''

    @classmethod
    def _filter_unsafe(cls, value: Any) -> Any:  # noqa: ANN401
        """Replace anything YAML can not safely dump with a placeholder."""
        if value is None or isinstance(value, SCALARS):
            return value
        if isinstance(value, MAPPINGS):
            return {key: cls._filter_unsafe(item) for key, item in value.items()}
        if isinstance(value, SEQUENCES):
            return [cls._filter_unsafe(item) for item in value]

        return FORMAT_REPLACER

    @classmethod
    def _make_yaml(cls, value: Any, indent: str = '') -> str:  # noqa: ANN401
        """Dump a value as block-style YAML, keeping key order."""
        data = dump(
            cls._filter_unsafe(value),
            indent=SNIPPET_INDENT,
            sort_keys=False,
            allow_unicode=True,
        )

        return cls._make_indent(data, indent)

    @staticmethod
    def _make_indent(value: str, indent: str) -> str:
        """Prefix every non-blank line of `value` with `indent`."""
        if not indent:
            return value

        return linesep.join(f'{indent}{line}' for line in value.splitlines() if line.strip())

    @staticmethod
    def _ensure_indent(indent: str | int | None = None) -> str:
        """Turn a space count into a prefix string; strings pass through."""
        if isinstance(indent, str):
            return indent
        if isinstance(indent, int) and indent > 0:
            return ' ' * indent

        return ''


class PluginWarning(UserWarning):
    """A generator plugin was skipped because it could not be loaded."""


class DSLError(Exception, ErrorFormatter):
    """Root of every error raised by hera-testing.

    `str()` renders the message together with its location, so callers
    can print errors as they are.
    """

    def __init__(self, message: str, *,
                 context: ErrorContext | None = None) -> None:
        """Store the message and its optional location."""
        self.message = message
        self.context = context

        super().__init__(message)

    def __str__(self) -> str:
        """Render the message with its location and excerpt."""
        return self.format(self.message, self.context)


class PluginError(DSLError):
    """A generator plugin is broken and strict mode is on."""

    def __init__(self, message: str, *,
                 entrypoint: 'EntryPoint | None' = None) -> None:
        """Store the message and the entry point that failed to load."""
        self.entrypoint = entrypoint

        super().__init__(message)


class GeneratorError(DSLError):
    """Error raised when an artifact can not be generated.

    Typical causes are an unknown target format or a template that
    fails to render for the given definition.
    """


class DSLSchemaError(DSLError):
    """Error raised when a definition document is invalid.

    Carries the ordered list of schema issues so callers can report
    every violation, not only the first one.
    """

    def __init__(self, message: str, *,
                 issues: 'list[SchemaIssue] | None' = None,
                 context: ErrorContext | None = None) -> None:
        """Initialize a schema error.

        Args:
            message: Human-readable error description.
            issues: Ordered field-path and message pairs.
            context: Error context containing optional location values.
        """
        self.issues = list(issues or ())

        super().__init__(message, context=context)

    def __str__(self) -> str:
        """Render the message followed by one line per issue."""
        message = self.message
        for issue in self.issues:
            message += f'{linesep}{' ' * FORMAT_INDENT}{issue}'

        return self.format(message, self.context)

    @classmethod
    def from_yaml_error(cls, error: MarkedYAMLError, *,
                        filename: str | None = None) -> 'Self':
        """Create a schema error from a YAML parsing failure.

        Args:
            error: Exception raised by the YAML parser.
            filename: Optional name of the parsed source.

        Returns:
            DSLSchemaError representing the YAML parsing failure.
        """
        error_context = ErrorContext(error=error, filename=filename)

        if (mark := error.problem_mark) is not None:
            error_context.update(
                filename=filename or mark.name,
                line_num=mark.line,
                column_num=mark.column,
            )

        message = 'Invalid YAML'
        if error.problem:
            message += f'{linesep}{' ' * FORMAT_INDENT}{error.problem}'

        issue = SchemaIssue('', error.problem or 'invalid YAML')

        return cls(message, issues=[issue], context=error_context)

    @classmethod
    def from_pydantic_error(cls, error: 'ValidationError', *,
                            data: Any = None,  # noqa: ANN401
                            filename: str | None = None) -> 'Self':
        """Create a schema error from a Pydantic validation failure.

        Each Pydantic error is converted into a `SchemaIssue` whose path
        is rebuilt from the validated data, eliding union discriminator
        tags, so that paths mirror the document the author wrote.

        Args:
            error: ValidationError raised by Pydantic.
            data: Validated document data.
            filename: Name of the source file where the error occurred.

        Returns:
            DSLSchemaError representing the validation failure.
        """
        issues = cls.issues_from_pydantic_error(error, data)

        error_context = ErrorContext(filename=filename, error=error)
        for item in error.errors(include_url=False, include_input=False):
            if located := cls._locate_pydantic_context(data, item):
                error_context['element'] = located
                break

        return cls('Invalid business process definition', issues=issues, context=error_context)

    @classmethod
    def issues_from_pydantic_error(cls, error: 'ValidationError',
                                   data: Any = None) -> list[SchemaIssue]:  # noqa: ANN401
        """Convert Pydantic error details into ordered schema issues.

        Args:
            error: ValidationError raised by Pydantic.
            data: Validated document data.

        Returns:
            A list of schema issues in Pydantic error order.
        """
        issues = []
        for item in error.errors(include_url=False, include_input=False):
            message = item.get('msg') or 'Invalid value'
            if message.startswith('Value error, '):
                message = message.removeprefix('Value error, ')
            issues.append(SchemaIssue(format_location(data, item['loc']), message))

        return issues

    @classmethod
    def _locate_pydantic_context(cls, value: Any,  # noqa: ANN401
                                 error: 'ErrorDetails') -> Any:  # noqa: ANN401
        """Return the deepest existing element on the error path.

        The element comes back wrapped in its parent key (or in a one-item
        list for sequences) so the excerpt shows where it sits. Location
        segments missing from the data, such as union tags, are skipped.
        """
        parent: Any = None
        key: int | str | None = None

        for segment in error['loc']:
            if isinstance(value, list | tuple):
                found = isinstance(segment, int) and 0 <= segment < len(value)
            elif isinstance(value, dict):
                found = segment in value
            else:
                return None
            if found:
                parent, key, value = value, segment, value[segment]

        if key is None:
            return None
        if isinstance(parent, list | tuple):
            return [value]

        return {key: value}


class DSLRuntimeError(DSLError):
    """Error raised during definition execution.

    Indicates a failure that occurs while executing actions, evaluating
    conditions, or recording values into the run context.
    """


class StepTimeoutError(DSLRuntimeError):
    """Error raised when a step exceeds its wall-clock time limit.

    The in-flight backend call is not cancelled; only its result is
    discarded by the runner.
    """

    def __init__(self, step_id: str, timeout: float) -> None:
        """Initialize a timeout error.

        Args:
            step_id: Identifier of the timed out step.
            timeout: Time limit in milliseconds that was exceeded.
        """
        self.step_id = step_id
        self.timeout = timeout

        super().__init__(
            f'Step {step_id!r} exceeded its timeout of {timeout:g} ms',
            context=ErrorContext(step_id=step_id),
        )


def format_location(data: Any, location: tuple[int | str, ...]) -> str:  # noqa: ANN401
    """Build a dotted field path from a Pydantic error location.

    Discriminated unions insert the tag value (for example
    `create_entity`) into error locations; such segments are skipped when
    the data at that position carries the tag in a discriminator field.

    Args:
        data: Validated document data.
        location: Pydantic error location tuple.

    Returns:
        A dotted path such as `steps.0.actions.1.data.smart_code`.
    """
    parts: list[str] = []
    current = data

    for key in location:
        if isinstance(current, Mapping):
            if key in current:
                current = current[key]
            elif any(current.get(name) == key for name in DISCRIMINATORS):
                continue
            else:
                current = None
        elif isinstance(current, (list, tuple)) and isinstance(key, int):
            current = current[key] if 0 <= key < len(current) else None
        else:
            current = None
        parts.append(f'{key}')

    return '.'.join(parts)
