"""Evaluation of assertion groups after a run.

Business checks are delegated to the oracle library, database checks
query the backend and compare the matching rows, and UI checks are
reported as skipped because the core drives no browser.
"""

import logging
from collections.abc import Mapping
from typing import TYPE_CHECKING, Any

from hera_testing.backends import column_value
from hera_testing.oracles import OracleResult, evaluate_oracle
from hera_testing.schema import (
    BusinessAssertionGroup,
    BusinessCheck,
    DatabaseAssertionGroup,
    DatabaseCheck,
    UIAssertionGroup,
)

from .results import AssertionOutcome

if TYPE_CHECKING:
    from hera_testing.backends import Backend
    from hera_testing.context import RunContext
    from hera_testing.schema import AssertionGroup

logger = logging.getLogger(__name__)


def _subset_of(row: Mapping[str, Any], expected: Mapping[str, Any]) -> bool:
    """Check that a row has every expected column value."""
    return all(column_value(row, key) == value for key, value in expected.items())


def check_rows(condition: str, rows: list[dict[str, Any]], expected: Any = None) -> OracleResult:  # noqa: ANN401
    """Compare the rows matching a database check with its expectation.

    - `count`: the number of rows equals `expected`;
    - `exists` / `not_exists`: at least one / no row matched;
    - `equals`: rows matched and every row has the expected columns;
    - `contains`: some row has the expected columns.

    Args:
        condition: Row condition of the check.
        rows: Rows matching the check filters.
        expected: Expected count or column values.

    Returns:
        A verdict with the number of matching rows in its details.

    Raises:
        TypeError: If the expectation does not fit the condition.
        ValueError: If the condition is unknown.
    """
    count = len(rows)
    details: dict[str, Any] = {'count': count}

    match condition:
        case 'count':
            if isinstance(expected, bool) or not isinstance(expected, int):
                raise TypeError(f'Expected row count {expected!r} is not an integer')
            valid = count == expected
            details['difference'] = count - expected
            message = f'{count} row(s) matched, {expected} expected'
        case 'exists':
            valid = count > 0
            message = f'{count} row(s) matched'
        case 'not_exists':
            valid = count == 0
            message = f'{count} row(s) matched, none expected'
        case 'equals' | 'contains':
            if not isinstance(expected, Mapping):
                raise TypeError(f'Expected row {expected!r} is not a mapping')
            matching = sum(1 for row in rows if _subset_of(row, expected))
            details['matching'] = matching
            valid = matching > 0 if condition == 'contains' else 0 < matching == count
            message = f'{matching} of {count} row(s) have the expected values'
        case _:
            raise ValueError(f'Unknown row condition {condition!r}')

    return OracleResult(
        valid=valid,
        rule=f'database_{condition}',
        message=message,
        details=details,
        issues=[] if valid else ['row mismatch'],
    )


def expectation_met(verdict: OracleResult, expected: Any) -> bool:  # noqa: ANN401
    """Check a verdict against the expectation of a check.

    A boolean expectation is compared with the verdict validity, a
    mapping with the verdict details. Anything else requires a valid
    verdict.
    """
    if isinstance(expected, bool):
        return verdict.valid is expected

    if isinstance(expected, Mapping):
        return all(
            verdict.details.get(key) == value
            for key, value in expected.items()
        )

    return verdict.valid


class AssertionEvaluator:
    """Evaluator of the assertion groups of a definition."""

    def __init__(self, backend: 'Backend | None', context: 'RunContext') -> None:
        """Initialize the evaluator.

        Args:
            backend: Backend queried by database checks.
            context: Final run context used to resolve check parameters.
        """
        self.backend = backend
        self.context = context

    def evaluate(self, groups: 'list[AssertionGroup]') -> list[AssertionOutcome]:
        """Evaluate every check of every group, in declaration order."""
        outcomes: list[AssertionOutcome] = []

        for group_num, group in enumerate(groups):
            for check_num, check in enumerate(group.assertions):
                match group:
                    case BusinessAssertionGroup():
                        outcome = self.evaluate_business(check, group_num, check_num)
                    case DatabaseAssertionGroup():
                        outcome = self.evaluate_database(check, group_num, check_num)
                    case UIAssertionGroup():
                        outcome = AssertionOutcome(
                            group=group_num,
                            check=check_num,
                            type='ui',
                            name=check.selector or check.condition,
                            passed=None,
                            message='UI checks need a browser and are skipped',
                        )

                logger.debug('Assertion %d.%d (%s): %s', group_num, check_num, outcome.name, outcome.passed)
                outcomes.append(outcome)

        return outcomes

    def evaluate_business(self, check: BusinessCheck,
                          group_num: int, check_num: int) -> AssertionOutcome:
        """Evaluate a check with its oracle."""
        params = self.context.resolve(check.params)
        expected = self.context.resolve(check.expected)

        verdict = evaluate_oracle(check.oracle, params, check.tolerance)

        return AssertionOutcome(
            group=group_num,
            check=check_num,
            type='business',
            name=check.oracle,
            passed=expectation_met(verdict, expected),
            message=verdict.message,
            details={**verdict.details, 'issues': verdict.issues},
        )

    def evaluate_database(self, check: DatabaseCheck,
                          group_num: int, check_num: int) -> AssertionOutcome:
        """Evaluate a check against the rows returned by the backend."""
        outcome = {
            'group': group_num,
            'check': check_num,
            'type': 'database',
            'name': check.table,
        }

        if self.backend is None:
            return AssertionOutcome(**outcome, passed=None, message='No backend to query')

        filters = self.context.resolve(check.filters)
        expected = self.context.resolve(check.expected)

        try:
            rows = self.backend.query(check.table, filters)
            verdict = check_rows(check.condition, rows, expected)

        except Exception as error:  # noqa: BLE001
            return AssertionOutcome(**outcome, passed=False, message=f'{error}')

        return AssertionOutcome(
            **outcome,
            passed=verdict.valid,
            message=verdict.message,
            details=verdict.details,
        )
