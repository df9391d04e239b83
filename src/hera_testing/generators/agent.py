"""Natural language target.

Emits a Markdown brief an autonomous agent can follow: who acts in each
step, what to do, which conditions to confirm, and what to verify at the
end. Placeholders are kept as written and pointed out, since the agent
fills them from what it observed in earlier steps.
"""

from typing import TYPE_CHECKING, Any, ClassVar

from hera_testing.resolver import PLACEHOLDER_PATTERN
from hera_testing.schema import (
    APICallAction,
    BusinessAssertionGroup,
    CreateEntityAction,
    CreateRelationshipAction,
    CreateTransactionAction,
    DatabaseAssertionGroup,
    SetDynamicFieldAction,
    UIInteractionAction,
    WaitAction,
)

from .base import BaseGenerator, smart_code_issues, to_json

if TYPE_CHECKING:
    from hera_testing.schema import AssertionGroup, BaseAction, BusinessProcessTest

TEMPLATE = '''\
# {{ title | one_line }}

{% if description %}
{{ description }}

{% endif %}
- Process: `{{ id }}` (version {{ version }})
{% if industry %}
- Industry: {{ industry }}
{% endif %}
- Tenant: {{ context.tenant }}
- Organization: `{{ context.organization_id }}`
- Currency: {{ context.currency }}
- Locale: {{ context.locale }}
- Time zone: {{ context.timezone }}
- Fiscal year: {{ context.fiscal_year }}
{% if context.clock %}
- Simulated clock: {{ context.clock }}
{% endif %}

Values written as `{{ '{{name}}' }}` refer to earlier results: use the
value produced by the step or stored value of that name.

## Personas
{% for persona in personas %}

- **{{ persona.name }}**: {{ persona.role }}{% if persona.organization_id %}, acting in organization `{{ persona.organization_id }}`{% endif %}
{% if persona.permissions %}

  Permissions: {{ persona.permissions | join(', ') }}
{% endif %}
{% else %}

No personas are declared.
{% endfor %}
{% if setup %}

## Setup

Before the first step:
{% for line in setup %}

{{ loop.index }}. {{ line }}
{% endfor %}
{% endif %}

## Steps
{% for step in steps %}

### Step {{ loop.index }}: {{ step.description | one_line }}

Acting as **{{ step.persona }}**, within {{ step.seconds }} seconds.
{% if step.retry %}
If the step fails, repeat it from the start up to {{ step.retry }} more time(s).
{% endif %}
{% if step.preconditions %}

Before starting, confirm that:
{% for expression in step.preconditions %}
- `{{ expression }}`
{% endfor %}
{% endif %}

Do the following:
{% for line in step.actions %}
{{ loop.index }}. {{ line }}
{% endfor %}
{% if step.postconditions %}

Afterwards, confirm that:
{% for expression in step.postconditions %}
- `{{ expression }}`
{% endfor %}
{% endif %}

Record the outcome as `{{ step.id }}`.
{% endfor %}
{% if cleanup %}

## Cleanup

Whatever the outcome, finish with:
{% for line in cleanup %}

{{ loop.index }}. {{ line }}
{% endfor %}
{% endif %}
{% if checks %}

## Verification
{% for group in checks %}

### {{ group.title | one_line }}

{% for line in group.lines %}
- {{ line }}
{% endfor %}
{% endfor %}
{% endif %}

## Metadata

- Priority: {{ metadata.priority }}
{% if metadata.tags %}
- Tags: {{ metadata.tags | join(', ') }}
{% endif %}
{% if metadata.estimated_duration is not none %}
- Estimated duration: {{ metadata.estimated_duration }} seconds
{% endif %}
- Browsers: {{ metadata.browser_support | join(', ') }}
- Requires authentication: {{ 'yes' if metadata.requires_auth else 'no' }}
- Requires seeded data: {{ 'yes' if metadata.requires_data else 'no' }}
'''

#: Sentences describing each UI interaction.
INTERACTIONS = {
    'click': 'Click {selector}.',
    'fill': 'Type {value} into {selector}.',
    'select': 'Choose {value} in {selector}.',
    'upload': 'Upload {value} through {selector}.',
    'wait': 'Wait until {selector} appears.',
}

#: Sentences describing each UI check.
UI_CONDITIONS = {
    'visible': '{selector} is visible',
    'hidden': '{selector} is hidden',
    'contains': '{selector} contains {value}',
    'not_contains': '{selector} does not contain {value}',
    'enabled': '{selector} is enabled',
    'disabled': '{selector} is disabled',
    'count': '{selector} matches {value} element(s)',
}

#: Sentences describing each database row condition.
ROW_CONDITIONS = {
    'count': 'exactly {expected} row(s) of `{table}` match {filters}',
    'exists': 'a row of `{table}` matches {filters}',
    'not_exists': 'no row of `{table}` matches {filters}',
    'equals': 'every row of `{table}` matching {filters} has {expected}',
    'contains': 'some row of `{table}` matching {filters} has {expected}',
}


def quote(value: Any) -> str:  # noqa: ANN401
    """Inline code span of a value."""
    if isinstance(value, str):
        return f'`{value}`'

    return f'`{to_json(value)}`'


def sentence(text: str) -> str:
    """Capitalize the first letter of a clause and close it with a period."""
    return f'{text[:1].upper()}{text[1:]}.'


def placeholders_of(value: Any) -> list[str]:  # noqa: ANN401
    """Names referenced by the placeholders of a value tree, in order."""
    found = PLACEHOLDER_PATTERN.findall(to_json(value))
    return list(dict.fromkeys(found))


def describe_action(action: 'BaseAction', prefix: str) -> str:
    """One sentence instruction for an action."""
    payload = action.payload()

    match action:
        case CreateEntityAction():
            text = (
                f'Create a {action.data.entity_type} entity named '
                f'{quote(action.data.entity_name)} with smart code '
                f'{quote(action.data.smart_code)}.'
            )
        case CreateTransactionAction():
            text = (
                f'Record a {action.data.transaction_type} transaction with '
                f'smart code {quote(action.data.smart_code)}'
            )
            if action.data.line_items:
                text = f'{text} and {len(action.data.line_items)} line(s)'
            text = f'{text}.'
        case CreateRelationshipAction():
            text = (
                f'Link {quote(action.data.from_entity_id)} to '
                f'{quote(action.data.to_entity_id)} as '
                f'{action.data.relationship_type}.'
            )
        case SetDynamicFieldAction():
            text = (
                f'Set field {quote(action.field_name)} of entity '
                f'{quote(action.entity_id)} to {quote(action.field_value)}.'
            )
        case APICallAction():
            text = f'Send {action.method} {quote(action.endpoint)}'
            if action.data is not None:
                text = f'{text} with body {quote(action.data)}'
            text = f'{text}.'
        case UIInteractionAction():
            text = INTERACTIONS[action.interaction].format(
                selector=quote(action.selector),
                value=quote(action.value or ''),
            )
        case WaitAction():
            text = f'Wait {action.duration / 1000:g} seconds'
            if action.condition is not None:
                text = f'{text}, then confirm that `{action.condition}`'
            text = f'{text}.'
        case _:  # pragma: no cover
            raise NotImplementedError(action.action_type)

    details = [text]

    if names := placeholders_of(payload):
        details.append(f'It uses {", ".join(f"`{name}`" for name in names)}.')

    if action.store_as is not None:
        details.append(f'Remember the result as `{action.store_as}`.')

    if issues := smart_code_issues(action, prefix):
        details.append(f'Note: the smart code is invalid ({", ".join(issues)}).')

    return ' '.join(details)


def describe_group(group: 'AssertionGroup') -> list[str]:
    """Checklist lines of an assertion group."""
    match group:
        case BusinessAssertionGroup():
            return [
                f'The {check.oracle.replace("_", " ")} rule '
                f'{"holds" if check.expected else "is violated"} for {quote(check.params)}.'
                for check in group.assertions
            ]

        case DatabaseAssertionGroup():
            return [
                sentence(ROW_CONDITIONS[check.condition].format(
                    table=check.table,
                    filters=quote(check.filters),
                    expected=quote(check.expected),
                ))
                for check in group.assertions
            ]

    return [
        sentence(UI_CONDITIONS[check.condition].format(
            selector=quote(check.selector or 'the page'),
            value=quote(check.value),
        ))
        for check in group.assertions
    ]


class AgentGenerator(BaseGenerator):
    """Generator of natural language briefs for agent executors."""

    name: ClassVar[str] = 'agent'
    extension: ClassVar[str] = '.md'
    description: ClassVar[str] = 'Markdown brief for an autonomous agent'
    template: ClassVar[str] = TEMPLATE

    def build_context(self, definition: 'BusinessProcessTest') -> dict[str, Any]:
        """Build the brief context."""
        prefix = definition.context.smart_code_prefix

        return {
            'id': definition.id,
            'title': definition.title,
            'description': definition.description,
            'version': definition.version,
            'industry': definition.industry or definition.context.industry,
            'context': definition.context.model_dump(),
            'personas': [
                {'name': name, **persona.model_dump()}
                for name, persona in definition.personas.items()
            ],
            'setup': [describe_action(action, prefix) for action in definition.setup],
            'steps': [
                {
                    'id': step.id,
                    'description': step.description,
                    'persona': step.persona,
                    'seconds': f'{step.timeout / 1000:g}',
                    'retry': step.retry,
                    'preconditions': step.preconditions,
                    'postconditions': step.postconditions,
                    'actions': [describe_action(action, prefix) for action in step.actions],
                }
                for step in definition.steps
            ],
            'cleanup': [describe_action(action, prefix) for action in definition.cleanup],
            'checks': [
                {
                    'title': group.title or f'{group.type.capitalize()} checks',
                    'lines': describe_group(group),
                }
                for group in definition.assertions
            ],
            'metadata': definition.metadata.model_dump(),
        }
