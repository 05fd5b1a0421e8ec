"""
Age source abstraction.

An age source is a one shot iterator of ages for a single region that may hold
an open resource such as a file handle or a database cursor. Sources are
created by a factory, a callable taking a region name:

    factory: Callable[[str], AgeSource]

Contract
- iteration yields ints lazily and cannot be restarted
- close releases the underlying resource, calling it more than once is safe
- a missing region is signalled by raising RegionNotFound, either from the
  factory itself or from the first step of iteration
- a failing close is reported by the engine as ResourceReleaseFailure

The in memory helpers below are thin adapters for embedding and tests. Reading
ages from real storage is left to the caller's own AgeSource subclasses.
"""

from __future__ import annotations

from abc import abstractmethod
from collections.abc import Iterator
from typing import Any, Callable, Dict, Iterable, Mapping, Optional

from .exceptions import RegionNotFound


class AgeSource(Iterator):
    """
    Abstract base for a closable iterator of ages.

    Subclasses implement __next__ and close. Using a source as a context
    manager guarantees close is called on every exit path.
    """

    @abstractmethod
    def __next__(self) -> Any:
        raise StopIteration

    @abstractmethod
    def close(self) -> None:
        """Release any resource held by the source."""

    def __enter__(self) -> "AgeSource":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()


AgeSourceFactory = Callable[[str], AgeSource]


class IterableAgeSource(AgeSource):
    """
    Wrap any iterable of ages, for example a list, a generator or a numpy array.

    If the wrapped object has a close method (generators do) it is closed
    together with the source. close_count records how many times close ran.
    """

    def __init__(self, ages: Iterable[Any], region: Optional[str] = None):
        self.region = region
        self._ages = ages
        self._it = iter(ages)
        self.close_count = 0

    @property
    def closed(self) -> bool:
        return self.close_count > 0

    def __next__(self) -> Any:
        return next(self._it)

    def close(self) -> None:
        self.close_count += 1
        closer = getattr(self._ages, "close", None)
        if callable(closer):
            closer()


class MappingSourceFactory:
    """
    Serve regions from a mapping of region name to iterable of ages.

    Each call opens a fresh IterableAgeSource. Unknown names raise
    RegionNotFound. Every source handed out is kept in opened so callers can
    check that all of them were released.
    """

    def __init__(self, mapping: Mapping[str, Iterable[Any]]):
        self._mapping: Dict[str, Iterable[Any]] = dict(mapping)
        self.opened = []

    def __call__(self, region: str) -> IterableAgeSource:
        if region not in self._mapping:
            raise RegionNotFound(f"Region {region!r} not found", details={"region": region})
        source = IterableAgeSource(self._mapping[region], region=region)
        self.opened.append(source)
        return source

    def regions(self):
        return list(self._mapping.keys())
