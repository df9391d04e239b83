"""Unit test target.

Emits a pytest module with one test function per step. Steps call the
backend port directly through a module-scoped `backend` fixture, which
defaults to the in-memory backend and can be overridden in a conftest to
target a real system. Smart codes and business rules are asserted inline
with the oracle library.
"""

from typing import TYPE_CHECKING, Any, ClassVar

from hera_testing.schema import (
    APICallAction,
    BusinessAssertionGroup,
    CreateEntityAction,
    CreateRelationshipAction,
    CreateTransactionAction,
    DatabaseAssertionGroup,
    SetDynamicFieldAction,
    UIAssertionGroup,
    UIInteractionAction,
    WaitAction,
    smart_code_of,
)

from .base import BaseGenerator, smart_code_issues

if TYPE_CHECKING:
    from hera_testing.schema import BaseAction, BusinessProcessTest

TEMPLATE = '''\
"""Pytest suite for business process {{ id | pyrepr }}.

{{ title | one_line | docstring }}
{% if description %}

{{ description | docstring }}
{% endif %}

Generated by hera-testing; do not edit.
"""

from collections.abc import Iterator
{% if sleeps %}
from time import sleep
{% endif %}
from typing import Any

import pytest

from hera_testing.backends import Backend, InMemoryBackend
from hera_testing.conditions import evaluate_condition
from hera_testing.context import RunContext
from hera_testing.oracles import check_smart_code, evaluate_oracle
from hera_testing.runtime import check_rows, expectation_met
from hera_testing.schema import ProcessContext

PROCESS_CONTEXT = ProcessContext.model_validate({{ process_context | pyrepr }})

SMART_CODE_PREFIX = {{ prefix | pyrepr }}


@pytest.fixture(scope='module')
def backend() -> Backend:
    """Backend receiving the actions."""
    return InMemoryBackend()


@pytest.fixture(scope='module')
def context() -> RunContext:
    """Run context shared by the steps of the module."""
    return RunContext.seed(PROCESS_CONTEXT)


@pytest.fixture(scope='module', autouse=True)
def lifecycle(backend: Backend, context: RunContext) -> Iterator[None]:
    """Run the setup actions before the steps and the cleanup actions after them."""
    backend.use_organization(PROCESS_CONTEXT.organization_id)
    stored: dict[str, Any] = {}
{% for action in setup %}
{% for line in action %}
    {{ line }}
{% endfor %}
{% endfor %}
    context.update(stored)

    yield

{% if cleanup %}
    backend.use_organization(PROCESS_CONTEXT.organization_id)
{% for action in cleanup %}
{% for line in action %}
    {{ line }}
{% endfor %}
{% endfor %}
{% endif %}
{% for step in steps %}


def test_{{ '%02d' | format(loop.index) }}_{{ step.id | pyname }}(backend: Backend, context: RunContext) -> None:
    """{{ step.description | one_line | docstring }}

    Persona: {{ step.persona }} ({{ step.role }}). Timeout: {{ step.timeout }} ms. Retries: {{ step.retry }}.
    """
    backend.use_organization({{ step.organization_id }})
    records: list[Any] = []
    stored: dict[str, Any] = {}
{% for expression in step.preconditions %}
    assert evaluate_condition({{ expression | pyrepr }}, context.scope(stored)), {{ ('Precondition not met: ' ~ expression) | pyrepr }}
{% endfor %}
{% for action in step.actions %}
{% for line in action %}
    {{ line }}
{% endfor %}
{% endfor %}
    context.record_step({{ step.id | pyrepr }}, records, stored)
{% for expression in step.postconditions %}
    assert evaluate_condition({{ expression | pyrepr }}, context), {{ ('Postcondition not met: ' ~ expression) | pyrepr }}
{% endfor %}
{% endfor %}
{% for check in business %}


def test_{{ '%02d' | format(check.number) }}_{{ check.oracle }}(context: RunContext) -> None:
    """Business rule: {{ check.oracle }}{% if check.title %} ({{ check.title | one_line | docstring }}){% endif %}."""
    verdict = evaluate_oracle({{ check.oracle | pyrepr }}, context.resolve({{ check.params | pyrepr }}), {{ check.tolerance | pyrepr }})
    assert expectation_met(verdict, context.resolve({{ check.expected | pyrepr }})), verdict.message
{% endfor %}
{% for check in database %}


def test_{{ '%02d' | format(check.number) }}_{{ check.table }}_{{ check.condition }}(backend: Backend, context: RunContext) -> None:
    """Database state: {{ check.table }} {{ check.condition }}{% if check.title %} ({{ check.title | one_line | docstring }}){% endif %}."""
    backend.use_organization(PROCESS_CONTEXT.organization_id)
    rows = backend.query({{ check.table | pyrepr }}, context.resolve({{ check.filters | pyrepr }}))
    verdict = check_rows({{ check.condition | pyrepr }}, rows, context.resolve({{ check.expected | pyrepr }}))
    assert verdict.valid, verdict.message
{% endfor %}
{% if ui %}


@pytest.mark.skip(reason='UI checks run in the playwright target')
def test_{{ '%02d' | format(ui_number) }}_ui_checks() -> None:
    """{{ ui }} UI check(s) of the definition."""
{% endif %}
'''


def _call(action: 'BaseAction') -> str:
    """Python expression performing an action through the backend port."""
    payload = action.payload()

    match action:
        case CreateEntityAction():
            return f'backend.create_entity(context.resolve({payload["data"]!r}, stored))'

        case CreateTransactionAction():
            return f'backend.create_transaction(context.resolve({payload["data"]!r}, stored))'

        case CreateRelationshipAction():
            return f'backend.create_relationship(context.resolve({payload["data"]!r}, stored))'

        case SetDynamicFieldAction():
            return (
                f'backend.set_dynamic_field('
                f'context.resolve({action.entity_id!r}, stored), '
                f'{action.field_name!r}, '
                f'context.resolve({action.field_value!r}, stored), '
                f'smart_code={action.smart_code!r})'
            )

        case APICallAction():
            return (
                f'backend.call_api({action.method!r}, {action.endpoint!r}, '
                f'context.resolve({action.data!r}, stored))'
            )

        case UIInteractionAction():
            return (
                f'backend.interact(context.resolve({action.selector!r}, stored), '
                f'{action.interaction!r}, '
                f'value=context.resolve({action.value!r}, stored), '
                f'timeout={action.timeout!r})'
            )

        case WaitAction():
            return f'sleep({action.duration / 1000!r})'

    raise NotImplementedError(action.action_type)  # pragma: no cover


def action_lines(action: 'BaseAction', prefix: str, *, record: bool) -> list[str]:
    """Python statements performing an action and asserting its smart code."""
    lines = []

    if isinstance(action, WaitAction):
        lines.append(_call(action))
        if action.condition is not None:
            lines.append(
                f'assert evaluate_condition({action.condition!r}, context.scope(stored)), '
                f'{"Wait condition not met: " + action.condition!r}',
            )
        result = repr({'waited': action.duration})
    else:
        lines.append(f'result = {_call(action)}')
        result = 'result'

    if record:
        lines.append(f'records.append({result})')

    if action.store_as is not None:
        lines.append(f'stored[{action.store_as!r}] = {result}')

    issues = smart_code_issues(action, prefix)
    if issues is not None:
        if issues:
            lines.append(f'# Invalid smart code: {", ".join(issues)}')
        lines.append(f'assert check_smart_code({smart_code_of(action)!r}, SMART_CODE_PREFIX).valid')

    return lines


class PytestGenerator(BaseGenerator):
    """Generator of pytest suites calling the backend port."""

    name: ClassVar[str] = 'pytest'
    extension: ClassVar[str] = '.py'
    description: ClassVar[str] = 'pytest module with one test per step'
    template: ClassVar[str] = TEMPLATE

    def build_context(self, definition: 'BusinessProcessTest') -> dict[str, Any]:
        """Build the suite context."""
        prefix = definition.context.smart_code_prefix

        steps = []
        for step in definition.steps:
            persona = definition.personas[step.persona]
            organization_id = 'PROCESS_CONTEXT.organization_id'
            if persona.organization_id:
                organization_id = repr(persona.organization_id)

            steps.append({
                'id': step.id,
                'description': step.description,
                'persona': step.persona,
                'role': persona.role,
                'organization_id': organization_id,
                'timeout': step.timeout,
                'retry': step.retry,
                'preconditions': step.preconditions,
                'postconditions': step.postconditions,
                'actions': [action_lines(action, prefix, record=True) for action in step.actions],
            })

        number = len(steps)
        business, database, ui = [], [], 0
        for group in definition.assertions:
            for check in group.assertions:
                match group:
                    case BusinessAssertionGroup():
                        number += 1
                        business.append({
                            'number': number,
                            'title': group.title,
                            'oracle': check.oracle,
                            'params': check.params,
                            'expected': check.expected,
                            'tolerance': check.tolerance,
                        })
                    case DatabaseAssertionGroup():
                        number += 1
                        database.append({
                            'number': number,
                            'title': group.title,
                            'table': check.table,
                            'condition': check.condition,
                            'filters': check.filters,
                            'expected': check.expected,
                        })
                    case UIAssertionGroup():
                        ui += 1

        return {
            'id': definition.id,
            'title': definition.title,
            'description': definition.description,
            'prefix': prefix,
            'process_context': definition.context.model_dump(mode='json', exclude_none=True),
            'sleeps': any(
                isinstance(action, WaitAction)
                for _, action in definition.actions()
            ),
            'setup': [action_lines(action, prefix, record=False) for action in definition.setup],
            'steps': steps,
            'cleanup': [action_lines(action, prefix, record=False) for action in definition.cleanup],
            'business': business,
            'database': database,
            'ui': ui,
            'ui_number': number + 1,
        }
