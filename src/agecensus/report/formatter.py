"""
Text rendering for ranked ages.

Each entry renders as rank:age=count, for example 1:34=57.
"""

from typing import Iterable, List

from ..distribution.ranking import RankedAge

OUTPUT_FORMAT = "{rank}:{age}={count}"


def format_entry(entry: RankedAge) -> str:
    return OUTPUT_FORMAT.format(rank=entry.rank, age=entry.age, count=entry.count)


def format_results(entries: Iterable[RankedAge]) -> List[str]:
    return [format_entry(e) for e in entries]
