"""Tests for the pytest integration."""

import os
from pathlib import Path
from typing import TYPE_CHECKING, Any

import pytest

from hera_testing.core import DefinitionParser, parse_definition
from hera_testing.errors import PluginError
from hera_testing.plugin import pytest_addoption, pytest_collect_file, pytest_configure
from hera_testing.plugin.case import DefinitionPlan
from hera_testing.settings import RunOptions

if TYPE_CHECKING:
    from pytest_mock import MockerFixture, MockType

if TYPE_CHECKING:
    from hera_testing.schema import BusinessProcessTest


def make_config(mocker: 'MockerFixture', **options: Any) -> 'MockType':  # noqa: ANN401
    """Build a pytest config mock answering `getoption`."""
    config = mocker.Mock()
    config.getoption.side_effect = lambda name, default=None: options.get(name, default)
    return config


def test_plan_runs(definition: 'BusinessProcessTest') -> None:
    """A plan returns the result of a successful run."""
    plan = DefinitionPlan(definition, RunOptions())

    result = plan.run()

    assert result.success
    assert plan.result is result
    assert plan.filename == '<unicode string>'


def test_plan_failure(raw_definition: dict[str, Any]) -> None:
    """A failed run is reported with every recorded error."""
    raw_definition['assertions'][0]['assertions'][0]['params']['equity'] = 50
    plan = DefinitionPlan(parse_definition(raw_definition), RunOptions())

    with pytest.raises(AssertionError, match=r"^Business process 'customer_onboarding' failed") as error:
        plan.run()

    assert '[assertion] business check' in f'{error.value}'
    assert 'in "<unicode string>"' in f'{error.value}'
    assert plan.result is not None and not plan.result.success
    assert 'on step' not in f'{error.value}'


def test_plan_failure_points_at_action(raw_definition: dict[str, Any]) -> None:
    """A broken action is reported with its step, number and payload."""
    raw_definition['steps'][0]['actions'].append({
        'action_type': 'set_dynamic_field',
        'entity_id': 'missing',
        'field_name': 'tier',
        'field_value': 'gold',
        'smart_code': 'HERA.CRM.CUST.DYN.TIER.v1',
    })
    plan = DefinitionPlan(parse_definition(raw_definition), RunOptions())

    with pytest.raises(AssertionError) as error:
        plan.run()

    message = f'{error.value}'
    assert "on step 'create_customer', action 2" in message
    assert 'set_dynamic_field:' in message
    assert 'entity_id: missing' in message


def test_plan_uses_parent_path(definition: 'BusinessProcessTest', mocker: 'MockerFixture') -> None:
    """The filename of a plan is the path of its item."""
    parent = mocker.Mock(path=Path('bpt_onboarding.yaml'))

    assert DefinitionPlan(definition, RunOptions(), parent=parent).filename == 'bpt_onboarding.yaml'


def test_plan_backend_reference(definition: 'BusinessProcessTest') -> None:
    """Plans build the referenced backend."""
    plan = DefinitionPlan(
        definition,
        RunOptions(),
        backend_reference='hera_testing.backends:InMemoryBackend',
    )

    assert plan.run().success

    broken = DefinitionPlan(definition, RunOptions(), backend_reference='hera_testing.missing:Backend')
    with pytest.raises(PluginError, match='Can not import backend'):
        broken.run()


def test_addoption(mocker: 'MockerFixture') -> None:
    """Options are registered in a dedicated group."""
    parser = mocker.Mock()

    pytest_addoption(parser)

    parser.getgroup.assert_called_once_with('hera-testing')
    names = [call.args[0] for call in parser.getgroup.return_value.addoption.call_args_list]
    assert names == ['--hera-dry-run', '--hera-continue-on-error', '--hera-timeout', '--hera-backend']


def test_configure(mocker: 'MockerFixture') -> None:
    """Command line options are turned into run options."""
    config = make_config(mocker, **{'--hera-dry-run': True, '--hera-timeout': 5000})

    pytest_configure(config)

    assert isinstance(config.hera_parser, DefinitionParser)
    assert config.hera_options == RunOptions(dry_run=True, timeout=5000)


def test_configure_reads_environment(mocker: 'MockerFixture') -> None:
    """Options missing on the command line are read from the environment."""
    mocker.patch.dict(os.environ, {'HERA_TESTING_CONTINUE_ON_ERROR': '1'})
    config = make_config(mocker)

    pytest_configure(config)

    assert config.hera_options.continue_on_error
    assert not config.hera_options.dry_run


@pytest.mark.parametrize('name, collected', (
    pytest.param('bpt_onboarding.yaml', True, id='yaml'),
    pytest.param('bpt_onboarding.yml', True, id='yml'),
    pytest.param('onboarding.yaml', False, id='no prefix'),
    pytest.param('bpt_onboarding.json', False, id='json'),
))
def test_collect_file(mocker: 'MockerFixture', name: str, collected: bool) -> None:
    """Only definition files are collected."""
    from_parent = mocker.patch('hera_testing.plugin.DefinitionFile.from_parent')
    parent = mocker.Mock()

    result = pytest_collect_file(parent, Path(name))

    if collected:
        assert result is from_parent.return_value
        from_parent.assert_called_once_with(parent, path=Path(name))
    else:
        assert result is None
        from_parent.assert_not_called()
