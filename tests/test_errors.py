"""Tests for error formatting."""

from os import linesep
from typing import Any

import pytest
import yaml

from hera_testing.errors import DSLError, DSLSchemaError, ErrorContext, SchemaIssue, StepTimeoutError


@pytest.mark.parametrize('context, expected', (
    pytest.param(
        ErrorContext(),
        'boom',
        id='no context',
    ),
    pytest.param(
        ErrorContext(filename='bpt_a.yaml'),
        f'boom{linesep}    in "bpt_a.yaml"{linesep}',
        id='filename',
    ),
    pytest.param(
        ErrorContext(line_num=2, column_num=0),
        f'boom{linesep}    in "<unicode string>", line 3, column 1{linesep}',
        id='position',
    ),
    pytest.param(
        ErrorContext(step_id='pay', action_num=1),
        f'boom{linesep}    in "<unicode string>"{linesep}    on step \'pay\', action 2{linesep}',
        id='step and action',
    ),
))
def test_format_location(context: ErrorContext, expected: str) -> None:
    """Positions are one-based and the step line is optional."""
    assert f'{DSLError('boom', context=context or None)}' == expected


def test_format_element() -> None:
    """Elements are dumped as YAML below the location."""
    element = {'create_entity': {'entity_name': 'Acme', 'handler': object()}}

    message = f'{DSLError('boom', context=ErrorContext(element=element))}'

    assert message.splitlines()[2:] == [
        '         ...',
        '        create_entity:',
        '          entity_name: Acme',
        '          handler: <runtime object>',
    ]


def test_schema_error_lists_issues() -> None:
    """Every issue gets its own line after the message."""
    error = DSLSchemaError('Invalid', issues=[SchemaIssue('title', 'Field required'), SchemaIssue('', 'Bad')])

    assert f'{error}'.splitlines() == ['Invalid', '    title: Field required', '    Bad']


def test_from_yaml_error() -> None:
    """YAML errors keep the problem position and source excerpt."""
    with pytest.raises(yaml.MarkedYAMLError) as raised:
        yaml.safe_load('id: [unclosed\n')

    error = DSLSchemaError.from_yaml_error(raised.value, filename='bpt_a.yaml')

    assert error.context is not None
    assert error.context['filename'] == 'bpt_a.yaml'
    assert 'line_num' in error.context
    assert len(error.issues) == 1
    assert 'in "bpt_a.yaml", line ' in f'{error}'


@pytest.mark.parametrize('data, loc, expected', (
    pytest.param(
        {'steps': [{'id': 'a', 'retry': 42}]},
        ('steps', 0, 'retry'),
        {'retry': 42},
        id='mapping',
    ),
    pytest.param(
        {'steps': ['oops']},
        ('steps', 0),
        ['oops'],
        id='sequence',
    ),
    pytest.param(
        {'steps': [{'id': 'a'}]},
        ('steps', 0, 'create_entity', 'data'),
        [{'id': 'a'}],
        id='tag segment',
    ),
    pytest.param(
        {},
        ('steps', 0),
        None,
        id='missing',
    ),
))
def test_locate_element(data: dict[str, Any], loc: tuple[int | str, ...], expected: Any) -> None:  # noqa: ANN401
    """The deepest existing element on the error path is located."""
    details: Any = {'loc': loc}

    assert DSLSchemaError._locate_pydantic_context(data, details) == expected


def test_step_timeout_error() -> None:
    """Timeouts name the step and the exceeded limit."""
    error = StepTimeoutError('pay', 250.0)

    assert error.message == "Step 'pay' exceeded its timeout of 250 ms"
    assert "on step 'pay'" in f'{error}'
