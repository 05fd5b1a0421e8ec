"""
Top level API for agecensus.

The Census class answers "which ages occur most often" for one region or for
several regions combined:
- opens one age source per region through the caller supplied factory
- counts ages into a single frequency table, concurrently for batches
- ranks the table by distinct counts and renders rank:age=count strings

Census holds no per call state, so one instance can serve many threads.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional, Sequence, Union
import logging

from .config import resolve_config
from .coordinator import count_region, count_regions
from .distribution.age_frequency import FrequencyTable
from .distribution.ranking import RankedAge, rank_ages
from .report.formatter import OUTPUT_FORMAT, format_results
from .sources import AgeSourceFactory

logger = logging.getLogger(__name__)

RegionArg = Union[str, Sequence[str]]


class Census:
    """
    Stateless top ages calculator.

    Example
    -------
    factory = MappingSourceFactory({"north": [34, 34, 21], "south": [21, 40]})
    census = Census(factory)
    census.top3_ages("north")             # ["1:34=2", "2:21=1"]
    census.top3_ages(["north", "south"])  # ["1:21=2", "1:34=2", "2:40=1"]

    Attributes
    ----------
    factory
        Callable taking a region name and returning an AgeSource.
    config
        Resolved configuration, see agecensus.config.
    """

    OUTPUT_FORMAT = OUTPUT_FORMAT

    def __init__(self, factory: AgeSourceFactory, config: Optional[Dict[str, Any]] = None):
        if not callable(factory):
            raise TypeError("factory must be callable")
        self.factory = factory
        self.config = resolve_config(config)

    @property
    def max_workers(self) -> int:
        return self.config["max_workers"]

    def _count(self, regions: RegionArg) -> FrequencyTable:
        table = FrequencyTable()
        if isinstance(regions, str):
            logger.info("Counting ages for region %r", regions)
            count_region(self.factory, regions, table)
        else:
            count_regions(self.factory, regions, table, self.max_workers)
        return table

    def age_counts(self, regions: RegionArg) -> Dict[int, int]:
        """
        Return the merged age -> count table for one region or a list of regions.

        Errors follow the same rules as top3_ages. A missing single region
        gives an empty dict.
        """
        return self._count(regions).snapshot()

    def ranked_ages(self, regions: RegionArg, levels: Optional[int] = None) -> List[RankedAge]:
        levels = self.config["rank_levels"] if levels is None else levels
        return rank_ages(self._count(regions), levels=levels)

    def top_ages(self, regions: RegionArg, levels: Optional[int] = None) -> List[str]:
        """
        Return formatted entries for the top levels distinct counts.

        levels defaults to the configured rank_levels.
        """
        return format_results(self.ranked_ages(regions, levels=levels))

    def top3_ages(self, regions: RegionArg) -> List[str]:
        """
        Return the three most common ages as rank:age=count strings.

        Parameters
        ----------
        regions
            A single region name, or a list of region names whose ages are
            combined into one ranking.

        Returns
        -------
        list of str
            Rank ascending, ties ordered by age. Can hold more than three
            entries when ages tie. Empty when a single region does not exist.

        Raises
        ------
        InvalidAge
            A negative age was read. For a batch this fails the whole call.
        ResourceReleaseFailure
            A region's source could not be closed.
        CensusError
            Any other source failure.
        """
        return self.top_ages(regions, levels=3)

    def top3_ages_for_region(self, region: str) -> List[str]:
        if not isinstance(region, str):
            raise TypeError("region must be a string")
        return self.top3_ages(region)

    def top3_ages_for_regions(self, regions: Sequence[str]) -> List[str]:
        if isinstance(regions, str):
            raise TypeError("regions must be a list of region names, not a string")
        return self.top3_ages(list(regions))
