"""
Merge coordination.

Drives the acquire, iterate and release cycle for each region and folds every
region's ages into one shared FrequencyTable.

- count_region runs one region synchronously on the calling thread
- count_regions runs a batch on a bounded thread pool and waits for every
  region before returning

Batch failure policy
--------------------
A batch fails as a whole. Every region runs to completion, then if any region
raised InvalidAge, ResourceReleaseFailure or another CensusError, the error of
the first failing region in input order is raised. Which region finished
first never changes the outcome. Missing regions contribute nothing and never
fail a batch.
"""

from __future__ import annotations

from typing import Iterable, List, Optional, Union
from concurrent.futures import ThreadPoolExecutor, as_completed
import logging

from .distribution.age_frequency import FrequencyTable, accumulate
from .exceptions import CensusError, RegionNotFound, ResourceReleaseFailure
from .sources import AgeSource, AgeSourceFactory

logger = logging.getLogger(__name__)


def _release(source: AgeSource, region: str) -> Optional[ResourceReleaseFailure]:
    try:
        source.close()
    except Exception as e:
        logger.debug("Closing source for region %r failed", region, exc_info=True)
        return ResourceReleaseFailure(
            f"Error occurred while closing source for region {region!r}: {e}",
            details={"region": region},
            cause=e,
        )
    return None


def _open(factory: AgeSourceFactory, region: str) -> Optional[AgeSource]:
    try:
        return factory(region)
    except RegionNotFound:
        logger.warning("Region %r not found", region)
        return None
    except CensusError as e:
        e.details.setdefault("region", region)
        raise
    except Exception as e:
        raise CensusError(
            f"Opening source for region {region!r} failed: {e}",
            details={"region": region},
            cause=e,
        ) from e


def count_region(factory: AgeSourceFactory, region: str, table: FrequencyTable) -> bool:
    """
    Count every age of one region into table.

    The source is closed on every exit path. Returns False when the region
    does not exist and True otherwise.

    Raises
    ------
    InvalidAge
        A negative or non integer age was read. Ages read before it stay in table.
    ResourceReleaseFailure
        Closing the source failed after a successful read.
    CensusError
        Any other failure, with the original exception as cause.
    """
    source = _open(factory, region)
    if source is None:
        return False

    found = True
    error: Optional[CensusError] = None
    release_error: Optional[ResourceReleaseFailure] = None
    try:
        try:
            consumed = accumulate(source, table)
            logger.debug("Region %r contributed %d ages", region, consumed)
        finally:
            release_error = _release(source, region)
    except RegionNotFound:
        logger.warning("Region %r not found", region)
        found = False
    except CensusError as e:
        e.details.setdefault("region", region)
        error = e
    except Exception as e:
        error = CensusError(
            f"Reading region {region!r} failed: {e}",
            details={"region": region},
            cause=e,
        )

    if error is not None:
        if release_error is not None:
            logger.error("Region %r also failed to release its source: %s", region, release_error.message)
            error.details["release_error"] = release_error.message
        raise error from error.cause
    if release_error is not None:
        raise release_error from release_error.cause
    return found


def count_regions(
    factory: AgeSourceFactory,
    regions: Iterable[str],
    table: FrequencyTable,
    max_workers: int,
) -> List[bool]:
    """
    Count a batch of regions concurrently into one shared table.

    Runs at most max_workers regions at once and returns only after all of
    them have finished. The returned list holds, per input region, whether the
    region was found.
    """
    names = list(regions)
    if not names:
        return []

    workers = max(1, int(max_workers))
    logger.info("Counting %d regions with %d workers", len(names), workers)

    outcomes: List[Union[bool, BaseException, None]] = [None] * len(names)
    with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="agecensus") as exec_:
        future_to_pos = {}
        for pos, name in enumerate(names):
            fut = exec_.submit(count_region, factory, name, table)
            future_to_pos[fut] = pos

        for fut in as_completed(list(future_to_pos.keys())):
            pos = future_to_pos[fut]
            try:
                outcomes[pos] = fut.result()
            except Exception as e:
                logger.exception("Region %r failed", names[pos])
                outcomes[pos] = e

    for outcome in outcomes:
        if isinstance(outcome, BaseException):
            raise outcome
    return [bool(o) for o in outcomes]
