"""
Age frequency helpers.

FrequencyTable is the single age -> count table shared by every contributor of
one top level call. accumulate drains one age sequence into it.
"""

from typing import Any, Dict, Iterable, Mapping, Optional
from collections import Counter
import numbers
import threading

import numpy as np

from ..exceptions import InvalidAge, RegionNotFound


class FrequencyTable:
    """
    Thread safe mapping of age to occurrence count.

    Only observed ages have an entry. Lookups of unseen ages return 0.
    All writes go through an internal lock so concurrent merges never lose
    an increment.
    """

    def __init__(self, counts: Optional[Mapping[int, int]] = None):
        self._counts: Counter = Counter()
        self._lock = threading.Lock()
        if counts:
            self.merge(counts)

    def increment(self, age: int, by: int = 1) -> None:
        with self._lock:
            self._counts[age] += by

    def merge(self, counts: Mapping[int, int]) -> None:
        """Add every count in counts to the table in one locked step."""
        with self._lock:
            for age, n in counts.items():
                if n > 0:
                    self._counts[age] += n

    def snapshot(self) -> Dict[int, int]:
        with self._lock:
            return dict(self._counts)

    def total(self) -> int:
        with self._lock:
            return sum(self._counts.values())

    def __getitem__(self, age: int) -> int:
        with self._lock:
            return self._counts.get(age, 0)

    def __contains__(self, age: object) -> bool:
        with self._lock:
            return age in self._counts

    def __len__(self) -> int:
        with self._lock:
            return len(self._counts)

    def __repr__(self) -> str:
        return f"FrequencyTable({self.snapshot()!r})"


def normalize_age(value: Any) -> int:
    """
    Return value as a plain int or raise InvalidAge.

    numpy integer scalars are unwrapped with item. bool and non integral
    numbers are rejected, as are negative values.
    """
    if isinstance(value, np.generic):
        value = value.item()
    if isinstance(value, bool) or not isinstance(value, numbers.Integral):
        raise InvalidAge(f"Age is not an integer: {value!r}", age=value)
    age = int(value)
    if age < 0:
        raise InvalidAge(f"Age is invalid: {age}", age=age)
    return age


def accumulate(sequence: Iterable[Any], table: FrequencyTable) -> int:
    """
    Consume every age in sequence once and in order, counting into table.

    Counts are gathered in a private Counter and folded into the shared table
    when the sequence ends or fails, so ages seen before an InvalidAge are
    kept. A source that raises RegionNotFound contributes nothing, even if it
    yielded ages first. Returns the number of valid ages consumed.
    """
    local: Counter = Counter()
    found = True
    try:
        for value in sequence:
            local[normalize_age(value)] += 1
    except RegionNotFound:
        found = False
        raise
    finally:
        if found:
            table.merge(local)
    return sum(local.values())
