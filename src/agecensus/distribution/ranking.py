"""
Frequency ranking.

Ranks ages by how often they occur. Ages sharing a count share a rank and the
rank only grows between distinct counts, so a cap of three levels can return
more than three ages when the last level is tied.
"""

from typing import Dict, List, Mapping, NamedTuple, Tuple, Union
from itertools import groupby

import numpy as np

from .age_frequency import FrequencyTable


class RankedAge(NamedTuple):
    rank: int
    age: int
    count: int


def _as_arrays(table: Union[FrequencyTable, Mapping[int, int]]) -> Tuple[np.ndarray, np.ndarray]:
    counts_map: Dict[int, int] = table.snapshot() if isinstance(table, FrequencyTable) else dict(table)
    n = len(counts_map)
    ages = np.fromiter(counts_map.keys(), dtype=np.int64, count=n)
    counts = np.fromiter(counts_map.values(), dtype=np.int64, count=n)
    return ages, counts


def _ordered(table) -> List[Tuple[int, int]]:
    """(age, count) pairs sorted by count descending then age ascending."""
    ages, counts = _as_arrays(table)
    if ages.size == 0:
        return []
    # lexsort uses the last key as the primary one
    order = np.lexsort((ages, -counts))
    return list(zip(ages[order].tolist(), counts[order].tolist()))


def rank_ages(table: Union[FrequencyTable, Mapping[int, int]], levels: int = 3) -> List[RankedAge]:
    """
    Return the ages belonging to the top levels distinct counts.

    Entries come out rank ascending and, inside a rank, age ascending.
    An empty table gives an empty list.
    """
    if isinstance(levels, bool) or not isinstance(levels, int) or levels < 1:
        raise ValueError(f"levels must be a positive integer, got {levels!r}")

    out: List[RankedAge] = []
    rank = 0
    prev_count = None
    for age, count in _ordered(table):
        if count != prev_count:
            rank += 1
            prev_count = count
        if rank > levels:
            break
        out.append(RankedAge(rank, age, count))
    return out


def rank_groups(table: Union[FrequencyTable, Mapping[int, int]]) -> List[Tuple[int, List[int]]]:
    """
    Full rank group view of a table.

    Returns [(count, [ages ascending]), ...] with counts strictly decreasing.
    """
    return [
        (count, [age for age, _ in pairs])
        for count, pairs in groupby(_ordered(table), key=lambda p: p[1])
    ]
