"""Status transition oracle."""

from collections.abc import Mapping
from typing import TYPE_CHECKING

from .results import OracleResult

if TYPE_CHECKING:
    from collections.abc import Iterable


def check_status_transition(current: str, proposed: str,
                            transitions: 'Mapping[str, Iterable[str]]') -> OracleResult:
    """Check that a status change appears in a transition table.

    Args:
        current: Current status.
        proposed: Requested status.
        transitions: Status to the statuses it may move to.

    Returns:
        A verdict listing the statuses allowed from `current`.

    Raises:
        TypeError: If the transition table is not a mapping.
    """
    if not isinstance(transitions, Mapping):
        raise TypeError(f'{transitions!r} is not a transition table')

    issues = []
    allowed: list[str] = []

    if current not in transitions:
        issues.append('unknown status')
    else:
        allowed = list(transitions[current])
        if proposed not in allowed:
            issues.append('illegal transition')

    return OracleResult(
        valid=not issues,
        rule='workflow_status',
        message=(
            f'Transition {current!r} -> {proposed!r} is allowed'
            if not issues else
            f'Transition {current!r} -> {proposed!r} is not allowed'
        ),
        details={
            'current': current,
            'proposed': proposed,
            'allowed': allowed,
        },
        issues=issues,
    )
