"""Plain value trees exchanged between the resolver, context and backends.

Definitions are loaded from YAML or JSON, and backends may hand back
arbitrary objects; `normalize` turns the latter into the former.
"""

from collections.abc import Mapping, Sequence
from datetime import date, datetime, timedelta
from decimal import Decimal
from typing import Any

type Scalar = date | datetime | timedelta | str | bytes | int | float | bool | Decimal

#: Scalars nested in lists and string-keyed mappings.
type Value = Scalar | Sequence['Value'] | Mapping[str, 'Value'] | None

#: Anything a backend or loader returned before `normalize`.
type RuntimeValue = Any

MAPPINGS = (dict, Mapping)
SCALARS = (date, datetime, timedelta, str, bytes, int, float, bool, Decimal)
SEQUENCES = (list, tuple, set, frozenset)


def normalize(value: RuntimeValue) -> Value:
    """Copy a runtime value into a fresh tree of dicts, lists and scalars.

    Raises:
        TypeError: On a non-string mapping key or an unsupported type.
    """
    if value is None or isinstance(value, SCALARS):
        return value

    if isinstance(value, MAPPINGS):
        tree = {}
        for key, item in value.items():
            if not isinstance(key, str):
                raise TypeError(f'Can not use {key!r} as mapping key')
            tree[key] = normalize(item)
        return tree

    if isinstance(value, SEQUENCES):
        return [normalize(item) for item in value]

    raise TypeError(f'{value!r} has unsupported type')
