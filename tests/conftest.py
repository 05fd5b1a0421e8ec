import threading

import pytest

from agecensus.exceptions import RegionNotFound
from agecensus.sources import AgeSource


class RecordingSource(AgeSource):
    """Fake source that remembers how far it was read and whether it was closed."""

    def __init__(self, ages, fail_close=False, missing=False, missing_after=False, gate=None, on_close=None):
        self._ages = list(ages)
        self._pos = 0
        self.fail_close = fail_close
        self.missing = missing
        self.missing_after = missing_after
        self.gate = gate
        self.on_close = on_close
        self.close_count = 0

    @property
    def consumed(self):
        return self._pos

    def __next__(self):
        if self.missing:
            raise RegionNotFound("no such region")
        if self.gate is not None and self._pos == 0:
            self.gate.wait(timeout=5)
        if self._pos >= len(self._ages):
            if self.missing_after:
                raise RegionNotFound("region vanished")
            raise StopIteration
        age = self._ages[self._pos]
        self._pos += 1
        return age

    def close(self):
        self.close_count += 1
        if self.on_close is not None:
            self.on_close()
        if self.fail_close:
            raise IOError("disk went away")


class RecordingFactory:
    """Factory serving RecordingSource objects built from per region kwargs."""

    def __init__(self, regions):
        self.regions = regions
        self.opened = []
        self._lock = threading.Lock()

    def __call__(self, region):
        if region not in self.regions:
            raise RegionNotFound(f"Region {region!r} not found", details={"region": region})
        entry = self.regions[region]
        if isinstance(entry, dict):
            source = RecordingSource(**entry)
        else:
            source = RecordingSource(entry)
        with self._lock:
            self.opened.append((region, source))
        return source

    def sources(self, region):
        return [s for r, s in self.opened if r == region]


@pytest.fixture
def make_factory():
    return RecordingFactory


@pytest.fixture
def make_source():
    return RecordingSource
