import threading

import pytest

from agecensus.coordinator import count_region, count_regions
from agecensus.distribution.age_frequency import FrequencyTable
from agecensus.exceptions import CensusError, InvalidAge, RegionNotFound, ResourceReleaseFailure


def test_count_region_closes_after_success(make_factory):
    factory = make_factory({"r": [1, 1, 2]})
    table = FrequencyTable()
    assert count_region(factory, "r", table) is True
    assert table.snapshot() == {1: 2, 2: 1}
    assert factory.sources("r")[0].close_count == 1


def test_count_region_closes_after_invalid_age(make_factory):
    factory = make_factory({"r": [1, -4, 2]})
    table = FrequencyTable()
    with pytest.raises(InvalidAge) as info:
        count_region(factory, "r", table)
    assert info.value.region == "r"
    src = factory.sources("r")[0]
    assert src.close_count == 1
    assert src.consumed == 2


def test_release_failure_is_reported(make_factory):
    factory = make_factory({"r": {"ages": [1], "fail_close": True}})
    with pytest.raises(ResourceReleaseFailure) as info:
        count_region(factory, "r", FrequencyTable())
    assert info.value.region == "r"
    assert isinstance(info.value.cause, IOError)


def test_invalid_age_wins_over_release_failure(make_factory):
    factory = make_factory({"r": {"ages": [-1], "fail_close": True}})
    with pytest.raises(InvalidAge) as info:
        count_region(factory, "r", FrequencyTable())
    assert "release_error" in info.value.details
    assert factory.sources("r")[0].close_count == 1


def test_missing_region_from_factory(make_factory):
    factory = make_factory({})
    table = FrequencyTable()
    assert count_region(factory, "nowhere", table) is False
    assert len(table) == 0


def test_missing_region_from_source_is_still_closed(make_factory):
    factory = make_factory({"r": {"ages": [], "missing": True}})
    assert count_region(factory, "r", FrequencyTable()) is False
    assert factory.sources("r")[0].close_count == 1


def test_other_source_errors_are_wrapped():
    class Broken:
        def __iter__(self):
            return self

        def __next__(self):
            raise OSError("cursor died")

        def close(self):
            pass

    with pytest.raises(CensusError) as info:
        count_region(lambda region: Broken(), "r", FrequencyTable())
    assert info.value.region == "r"
    assert isinstance(info.value.cause, OSError)


def test_factory_errors_are_wrapped():
    def factory(region):
        raise ValueError("bad connection string")

    with pytest.raises(CensusError) as info:
        count_region(factory, "r", FrequencyTable())
    assert isinstance(info.value.cause, ValueError)


def test_count_regions_merges_into_one_table(make_factory):
    factory = make_factory({"a": [1, 2], "b": [2, 3], "c": [3, 3]})
    table = FrequencyTable()
    found = count_regions(factory, ["a", "b", "c", "missing"], table, max_workers=4)
    assert found == [True, True, True, False]
    assert table.snapshot() == {1: 1, 2: 2, 3: 3}


def test_count_regions_empty_batch(make_factory):
    table = FrequencyTable()
    assert count_regions(make_factory({}), [], table, max_workers=2) == []
    assert len(table) == 0


def test_duplicate_regions_are_each_counted(make_factory):
    factory = make_factory({"a": [7]})
    table = FrequencyTable()
    count_regions(factory, ["a", "a"], table, max_workers=2)
    assert table[7] == 2
    assert len(factory.sources("a")) == 2


def test_batch_raises_first_failure_in_input_order(make_factory):
    # "late" only starts reading after "early" has failed and closed
    early_done = threading.Event()
    factory = make_factory({
        "late": {"ages": [-1], "gate": early_done},
        "early": {"ages": [-2], "on_close": early_done.set},
        "fine": [5],
    })
    with pytest.raises(InvalidAge) as info:
        count_regions(factory, ["late", "early", "fine"], FrequencyTable(), max_workers=3)
    assert info.value.region == "late"


def test_batch_failure_waits_for_every_region(make_factory):
    factory = make_factory({"bad": [-1], "a": [1] * 50, "b": [2] * 50})
    with pytest.raises(InvalidAge):
        count_regions(factory, ["bad", "a", "b"], FrequencyTable(), max_workers=2)
    for region, src in factory.opened:
        assert src.close_count == 1
    assert factory.sources("a")[0].consumed == 50
    assert factory.sources("b")[0].consumed == 50


def test_batch_release_failure_fails_batch(make_factory):
    factory = make_factory({"a": [1], "b": {"ages": [2], "fail_close": True}})
    with pytest.raises(ResourceReleaseFailure) as info:
        count_regions(factory, ["a", "b"], FrequencyTable(), max_workers=2)
    assert info.value.region == "b"


def test_region_not_found_never_escapes(make_factory):
    factory = make_factory({"a": [1]})
    try:
        count_regions(factory, ["x", "a", "y"], FrequencyTable(), max_workers=2)
    except RegionNotFound:  # pragma: no cover
        pytest.fail("RegionNotFound leaked out of the batch")


def test_region_missing_after_some_ages_contributes_nothing(make_factory):
    factory = make_factory({"r": {"ages": [5, 5], "missing_after": True}})
    table = FrequencyTable()
    assert count_region(factory, "r", table) is False
    assert len(table) == 0
    src = factory.sources("r")[0]
    assert src.consumed == 2
    assert src.close_count == 1


def test_batch_with_sources_reporting_absence(make_factory):
    factory = make_factory({
        "a": [1, 2],
        "gone": {"ages": [], "missing": True},
        "vanished": {"ages": [9, 9, 9], "missing_after": True},
        "b": [2],
    })
    table = FrequencyTable()
    found = count_regions(factory, ["a", "gone", "vanished", "b"], table, max_workers=4)
    assert found == [True, False, False, True]
    assert table.snapshot() == {1: 1, 2: 2}
    for region, src in factory.opened:
        assert src.close_count == 1


def test_factory_census_errors_get_region():
    def factory(region):
        raise InvalidAge("Age is invalid: -3", age=-3)

    with pytest.raises(InvalidAge) as info:
        count_region(factory, "north", FrequencyTable())
    assert info.value.region == "north"
    assert info.value.age == -3
