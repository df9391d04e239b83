"""Run context: the append-only variable store of a single run.

The context maps names to values produced so far: the seeded run values
(timestamp, organization, tenant, clock) and the recorded output of every
completed step, addressable as `{{step_id}}` or `{{step_id.field}}`.
"""

from collections import ChainMap
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any

from hera_testing.errors import DSLRuntimeError
from hera_testing.resolver import CLOCK_NAME, TIMESTAMP_NAME, resolve
from hera_testing.values import Value, normalize

if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping

if TYPE_CHECKING:
    from hera_testing.schema import ProcessContext

#: Names seeded at run start; steps and stored values may not reuse them.
RESERVED_NAMES = frozenset({
    TIMESTAMP_NAME,
    CLOCK_NAME,
    'organization_id',
    'tenant',
    'currency',
    'locale',
})

#: Record field used as the identifier of a step output.
ID_FIELD = 'id'


class RunContext(dict[str, Value]):
    """Append-only execution context of one run.

    Entries are added as setup actions and steps complete and are never
    overwritten. A context is owned by exactly one runner instance, so
    concurrent runs never share state.
    """

    def __setitem__(self, key: str, value: Value) -> None:
        """Record a new entry.

        Raises:
            DSLRuntimeError: If the name is already recorded.
        """
        if key in self:
            raise DSLRuntimeError(f'Variable {key!r} is already recorded')

        super().__setitem__(key, value)

    def update(self, *args: Any, **kwargs: Any) -> None:  # noqa: ANN401
        """Record several new entries, refusing to overwrite any."""
        for key, value in dict(*args, **kwargs).items():
            self[key] = value

    def record(self, name: str, value: Any) -> Value:  # noqa: ANN401
        """Normalize and record a value under a new name.

        Args:
            name: Variable name.
            value: Value produced by an action or step.

        Returns:
            The recorded normalized value.
        """
        self[name] = normalize(value)

        return self[name]

    def record_step(self, step_id: str, records: 'Iterable[Value]',
                    named: 'Mapping[str, Value] | None' = None) -> Value:
        """Record the consolidated output of a completed step.

        The step output carries the identifier of the first produced
        record under `id`, the ordered list of action outputs under
        `records`, and every value stored with `store_as`. Each stored
        value is also recorded at the top level under its own name.

        Args:
            step_id: Identifier of the completed step.
            records: Ordered action outputs.
            named: Values stored by actions with `store_as`.

        Returns:
            The recorded step output.
        """
        named = dict(named or {})

        self.record(step_id, step_output(records, named))
        for name, value in named.items():
            self.record(name, value)

        return self[step_id]

    def scope(self, local: 'Mapping[str, Value] | None' = None) -> 'ChainMap[str, Value]':
        """Return a read view layering step-local values over the context."""
        return ChainMap(dict(local or {}), self)

    def resolve(self, value: Any, local: 'Mapping[str, Value] | None' = None) -> Value:  # noqa: ANN401
        """Resolve placeholders against the context and optional local values."""
        if local:
            return resolve(value, self.scope(local))

        return resolve(value, self)

    @classmethod
    def seed(cls, context: 'ProcessContext', *,
             now: datetime | None = None) -> 'RunContext':
        """Create the initial context of a run.

        The `timestamp` entry is the simulated clock in epoch milliseconds
        when a clock is configured, otherwise the current time. A clock
        without a UTC offset is read as UTC.

        Args:
            context: Process context of the definition.
            now: Explicit current time, mainly for tests.

        Returns:
            A new run context.
        """
        moment = now or datetime.now(UTC)
        if context.clock:
            moment = datetime.fromisoformat(context.clock)
            if moment.tzinfo is None:
                moment = moment.replace(tzinfo=UTC)

        values: dict[str, Value] = {
            TIMESTAMP_NAME: int(moment.timestamp() * 1000),
            'organization_id': context.organization_id,
            'tenant': context.tenant,
            'currency': context.currency,
            'locale': context.locale,
        }
        if context.clock:
            values[CLOCK_NAME] = context.clock

        return cls(values)


def first_identifier(records: 'Iterable[Value]') -> Value:
    """Return the identifier of the first record that has one."""
    for record in records:
        if isinstance(record, dict) and record.get(ID_FIELD) is not None:
            return record[ID_FIELD]

    return None


def step_output(records: 'Iterable[Value]',
                named: 'Mapping[str, Value] | None' = None) -> dict[str, Value]:
    """Build the consolidated output of a step from its action outputs."""
    records = [normalize(record) for record in records]

    output: dict[str, Value] = {
        ID_FIELD: first_identifier(records),
        'records': records,
    }
    for name, value in (named or {}).items():
        output.setdefault(name, normalize(value))

    return output
