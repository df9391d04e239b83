"""Tests for definition validation and parsing."""

from io import StringIO
from json import dumps
from typing import TYPE_CHECKING, Any

import pytest
import yaml

from hera_testing.core import DefinitionParser, parse_definition, validate
from hera_testing.errors import DSLSchemaError, SchemaIssue

if TYPE_CHECKING:
    from pyfakefs.fake_filesystem import FakeFilesystem


def test_valid_definition(raw_definition: dict[str, Any]) -> None:
    """A complete definition validates without issues."""
    report = validate(raw_definition)

    assert report.valid
    assert report.errors == []


def test_missing_required_field(raw_definition: dict[str, Any]) -> None:
    """A missing required field is reported with its path."""
    del raw_definition['context']['tenant']

    report = validate(raw_definition)

    assert not report.valid
    assert SchemaIssue('context.tenant', 'Field required') in report.errors


def test_discriminator_is_elided_from_paths(raw_definition: dict[str, Any]) -> None:
    """Paths mirror the document, without the action kind tag."""
    del raw_definition['steps'][0]['actions'][0]['data']['smart_code']

    report = validate(raw_definition)

    assert [issue.path for issue in report.errors] == ['steps.0.actions.0.data.smart_code']


def test_every_issue_is_reported(raw_definition: dict[str, Any]) -> None:
    """Structural issues are all reported, in document order."""
    del raw_definition['title']
    raw_definition['steps'][1]['retry'] = 42
    raw_definition['assertions'][0]['assertions'][0]['oracle'] = 'unknown'

    report = validate(raw_definition)

    assert [issue.path for issue in report.errors] == [
        'title',
        'steps.1.retry',
        'assertions.0.assertions.0.oracle',
    ]


def test_reference_issues_are_reported(raw_definition: dict[str, Any]) -> None:
    """Reference rule violations come with their field paths."""
    raw_definition['steps'][1]['id'] = 'create_customer'
    raw_definition['steps'][1]['persona'] = 'auditor'

    report = validate(raw_definition)

    assert report.errors == [
        SchemaIssue('steps.1.id', "duplicate step identifier 'create_customer'"),
        SchemaIssue('steps.1.persona', "unknown persona 'auditor'"),
    ]


def test_unknown_action_kind(raw_definition: dict[str, Any]) -> None:
    """An unknown action kind is a schema issue."""
    raw_definition['setup'][0]['action_type'] = 'teleport'

    report = validate(raw_definition)

    assert not report.valid
    assert report.errors[0].path.startswith('setup.0')


@pytest.mark.parametrize('raw', (
    pytest.param(None, id='none'),
    pytest.param([], id='list'),
    pytest.param('definition', id='string'),
))
def test_validate_never_raises(raw: Any) -> None:  # noqa: ANN401
    """Validation of arbitrary input returns a report."""
    report = validate(raw)

    assert not report.valid
    assert report.errors


def test_parse_definition_raises(raw_definition: dict[str, Any]) -> None:
    """Parsing an invalid definition raises with every issue."""
    del raw_definition['steps']

    with pytest.raises(DSLSchemaError, match=r'^Invalid business process definition') as error:
        parse_definition(raw_definition, filename='bpt_onboarding.yaml')

    assert error.value.issues == [SchemaIssue('steps', 'Field required')]
    assert 'steps: Field required' in str(error.value)


def test_parse_definition_shows_element(raw_definition: dict[str, Any]) -> None:
    """Structural errors come with an excerpt of the offending element."""
    raw_definition['steps'][1]['retry'] = 42

    with pytest.raises(DSLSchemaError) as error:
        parse_definition(raw_definition, filename='bpt_onboarding.yaml')

    message = str(error.value)
    assert 'in "bpt_onboarding.yaml"' in message
    assert message.splitlines()[-1].strip() == 'retry: 42'
    assert [issue.path for issue in error.value.issues] == ['steps.1.retry']


def test_parse_yaml(raw_definition: dict[str, Any], loader: type[yaml.SafeLoader]) -> None:
    """YAML sources are parsed into definitions."""
    parser = DefinitionParser(loader)
    definition = parser.parse(yaml.safe_dump(raw_definition))

    assert definition.id == 'customer_onboarding'
    assert len(definition.steps) == 2


def test_parse_json_stream(raw_definition: dict[str, Any]) -> None:
    """JSON sources are read by the same loader."""
    definition = DefinitionParser().parse(StringIO(dumps(raw_definition)))

    assert definition.context.organization_id == 'org-acme'


def test_parse_yaml_timestamp_clock(raw_definition: dict[str, Any]) -> None:
    """Unquoted YAML timestamps are accepted as clocks."""
    source = yaml.safe_dump(raw_definition).replace(
        "clock: '2025-01-01T00:00:00Z'",
        'clock: 2025-01-01T00:00:00Z',
    )

    definition = DefinitionParser().parse(source)

    assert definition.context.clock == '2025-01-01T00:00:00Z'


@pytest.mark.parametrize('content, expect_message', (
    pytest.param('', r'^Definition document is empty', id='empty'),
    pytest.param('id: [unclosed', r'^Invalid YAML', id='invalid yaml'),
    pytest.param('id: test\ntitle: Test\n', r'^Invalid business process definition', id='invalid schema'),
))
def test_parse_errors(content: str, expect_message: str) -> None:
    """Unreadable or invalid sources raise schema errors."""
    with pytest.raises(DSLSchemaError, match=expect_message) as error:
        DefinitionParser().parse(content, filename='bpt_broken.yaml')

    assert error.value.issues


def test_parse_file(fs: 'FakeFilesystem', raw_definition: dict[str, Any]) -> None:
    """Definition files are read as UTF-8."""
    raw_definition['title'] = 'Kundenanlage für Händler'
    fs.create_file(
        'bpt_onboarding.yaml',
        contents=yaml.safe_dump(raw_definition, allow_unicode=True),
        encoding='utf-8',
    )

    definition = DefinitionParser().parse_file('bpt_onboarding.yaml')

    assert definition.title == 'Kundenanlage für Händler'


def test_parse_file_reports_filename(fs: 'FakeFilesystem') -> None:
    """Errors of a file name the file."""
    fs.create_file('bpt_broken.yaml', contents='id: [unclosed')

    with pytest.raises(DSLSchemaError, match='bpt_broken.yaml'):
        DefinitionParser().parse_file('bpt_broken.yaml')
