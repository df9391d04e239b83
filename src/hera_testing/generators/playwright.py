"""Browser automation target.

Emits a pytest module driving the application with the Playwright sync
API. UI interactions become page calls, data actions become requests to
the universal API, and UI assertion groups become `expect` blocks.
Placeholders are resolved while the script runs, from a context dict
that accumulates the output of every step.
"""

from typing import TYPE_CHECKING, Any, ClassVar

from hera_testing.resolver import has_placeholders
from hera_testing.schema import (
    APICallAction,
    CreateEntityAction,
    CreateRelationshipAction,
    CreateTransactionAction,
    SetDynamicFieldAction,
    UIAssertionGroup,
    UIInteractionAction,
    WaitAction,
)

from .base import BaseGenerator, one_line, smart_code_issues, static_context

if TYPE_CHECKING:
    from hera_testing.schema import BaseAction, BusinessProcessTest, UICheck

#: Universal API routes receiving data actions.
ROUTES = {
    'create_entity': '/api/v2.1/entities',
    'create_transaction': '/api/v2.1/transactions',
    'create_relationship': '/api/v2.1/relationships',
    'set_dynamic_field': '/api/v2.1/dynamic-data',
}

#: Page methods performing each UI interaction.
INTERACTIONS = {
    'click': 'click',
    'fill': 'fill',
    'select': 'select_option',
    'upload': 'set_input_files',
    'wait': 'wait_for_selector',
}

#: Locator assertions for each UI condition; the flag tells whether the
#: assertion takes the expected value.
EXPECTATIONS = {
    'visible': ('to_be_visible', False),
    'hidden': ('to_be_hidden', False),
    'contains': ('to_contain_text', True),
    'not_contains': ('not_to_contain_text', True),
    'enabled': ('to_be_enabled', False),
    'disabled': ('to_be_disabled', False),
    'count': ('to_have_count', True),
}

TEMPLATE = '''\
"""Playwright test for business process {{ id | pyrepr }}.

{{ title | one_line | docstring }}
{% if description %}

{{ description | docstring }}
{% endif %}

Supported browsers: {{ browsers | join(', ') }}.
Generated by hera-testing; do not edit.
"""

from typing import Any

from playwright.sync_api import Page, expect

from hera_testing.conditions import evaluate_condition
from hera_testing.context import step_output
from hera_testing.resolver import resolve

CONTEXT: dict[str, Any] = {{ context | pyrepr }}


def api(page: Page, context: dict[str, Any], method: str, endpoint: str, data: Any = None) -> Any:
    """Send a request to the application and return its JSON body."""
    response = page.request.fetch(endpoint, method=method, data=resolve(data, context))
    expect(response).to_be_ok()
    return response.json()


def test_{{ id | pyname }}(page: Page) -> None:
    """{{ title | one_line | docstring }}."""
    context: dict[str, Any] = dict(CONTEXT)
{% if setup %}

    # Setup
{% for action in setup %}
{% for line in action %}
    {{ line }}
{% endfor %}
{% endfor %}
{% endif %}
{% for step in steps %}

    # Step {{ loop.index }}: {{ step.id }} ({{ step.persona }}): {{ step.description | one_line }}
    page.set_default_timeout({{ step.timeout }})
    outputs: list[Any] = []
{% for expression in step.preconditions %}
    assert evaluate_condition({{ expression | pyrepr }}, context), {{ ('Precondition not met: ' ~ expression) | pyrepr }}
{% endfor %}
{% for action in step.actions %}
{% for line in action %}
    {{ line }}
{% endfor %}
{% endfor %}
    context[{{ step.id | pyrepr }}] = step_output(outputs, {{ step.named }})
{% for expression in step.postconditions %}
    assert evaluate_condition({{ expression | pyrepr }}, context), {{ ('Postcondition not met: ' ~ expression) | pyrepr }}
{% endfor %}
{% endfor %}
{% if cleanup %}

    # Cleanup
{% for action in cleanup %}
{% for line in action %}
    {{ line }}
{% endfor %}
{% endfor %}
{% endif %}
{% if checks %}

    # UI assertions
{% for line in checks %}
    {{ line }}
{% endfor %}
{% endif %}
{% if skipped %}

    # {{ skipped }} database or business assertion group(s) are covered by the pytest and sql targets.
{% endif %}
'''


def _expression(value: Any) -> str:  # noqa: ANN401
    """Python expression of a value, resolved at run time when needed."""
    if has_placeholders(value):
        return f'resolve({value!r}, context)'

    return repr(value)


def _call(action: 'BaseAction') -> str:
    """Python expression performing an action."""
    payload = action.payload()

    match action:
        case CreateEntityAction() | CreateTransactionAction() | CreateRelationshipAction():
            return f"api(page, context, 'POST', {ROUTES[action.action_type]!r}, {payload['data']!r})"

        case SetDynamicFieldAction():
            return f"api(page, context, 'POST', {ROUTES[action.action_type]!r}, {payload!r})"

        case APICallAction():
            return f'api(page, context, {action.method!r}, {action.endpoint!r}, {action.data!r})'

        case UIInteractionAction():
            arguments = [_expression(action.selector)]
            if action.interaction in ('fill', 'select', 'upload'):
                arguments.append(_expression(action.value or ''))
            if action.timeout is not None:
                arguments.append(f'timeout={action.timeout}')
            return f'page.{INTERACTIONS[action.interaction]}({", ".join(arguments)})'

        case WaitAction():
            return f'page.wait_for_timeout({action.duration})'

    raise NotImplementedError(action.action_type)  # pragma: no cover


def action_lines(action: 'BaseAction', prefix: str, *, record: bool) -> list[str]:
    """Python statements performing an action and recording its output."""
    lines = []
    if issues := smart_code_issues(action, prefix):
        lines.append(f'# Invalid smart code: {", ".join(issues)}')

    lines.append(f'result = {_call(action)}')

    if isinstance(action, WaitAction) and action.condition is not None:
        lines.append(
            f'assert evaluate_condition({action.condition!r}, context), '
            f'{"Wait condition not met: " + action.condition!r}',
        )

    if record:
        lines.append('outputs.append(result)')

    if action.store_as is not None:
        lines.append(f'context[{action.store_as!r}] = result')

    return lines


def named_outputs(actions: 'list[BaseAction]') -> str:
    """Python expression collecting the values stored by a step."""
    names = [action.store_as for action in actions if action.store_as is not None]
    return '{' + ', '.join(f'{name!r}: context[{name!r}]' for name in names) + '}'


def check_line(check: 'UICheck') -> str:
    """Python statement asserting a UI check."""
    method, takes_value = EXPECTATIONS[check.condition]

    arguments = []
    if takes_value:
        arguments.append(_expression(check.value))
    if check.timeout is not None:
        arguments.append(f'timeout={check.timeout}')

    locator = f'page.locator({_expression(check.selector or "body")})'
    return f'expect({locator}).{method}({", ".join(arguments)})'


class PlaywrightGenerator(BaseGenerator):
    """Generator of Playwright browser automation scripts."""

    name: ClassVar[str] = 'playwright'
    extension: ClassVar[str] = '.py'
    description: ClassVar[str] = 'pytest module using the Playwright sync API'
    template: ClassVar[str] = TEMPLATE

    def build_context(self, definition: 'BusinessProcessTest') -> dict[str, Any]:
        """Build the script context."""
        prefix = definition.context.smart_code_prefix

        checks: list[str] = []
        skipped = 0
        for group in definition.assertions:
            if isinstance(group, UIAssertionGroup):
                if group.title:
                    checks.append(f'# {one_line(group.title)}')
                checks.extend(check_line(check) for check in group.assertions)
            else:
                skipped += 1

        return {
            'id': definition.id,
            'title': definition.title,
            'description': definition.description,
            'browsers': definition.metadata.browser_support,
            'context': static_context(definition),
            'setup': [action_lines(action, prefix, record=False) for action in definition.setup],
            'steps': [
                {
                    'id': step.id,
                    'persona': step.persona,
                    'description': step.description,
                    'timeout': step.timeout,
                    'preconditions': step.preconditions,
                    'postconditions': step.postconditions,
                    'named': named_outputs(step.actions),
                    'actions': [action_lines(action, prefix, record=True) for action in step.actions],
                }
                for step in definition.steps
            ],
            'cleanup': [action_lines(action, prefix, record=False) for action in definition.cleanup],
            'checks': checks,
            'skipped': skipped,
        }
