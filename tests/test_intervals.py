from datetime import timedelta

import pytest

from conftest import utc
from meetwhen.scheduling.intervals import Interval, merge, overlaps, overlaps_any, subtract


def iv(start_hour, end_hour, start_min=0, end_min=0):
    return Interval(utc(2030, 1, 7, start_hour, start_min), utc(2030, 1, 7, end_hour, end_min))


def test_touching_intervals_do_not_overlap():
    assert not overlaps(iv(9, 10), iv(10, 11))
    assert not overlaps(iv(10, 11), iv(9, 10))
    assert overlaps(iv(9, 10, end_min=1), iv(10, 11))


def test_containment_overlaps():
    assert overlaps(iv(9, 17), iv(12, 13))
    assert overlaps(iv(12, 13), iv(9, 17))


def test_zero_length_interval():
    point = iv(10, 10)
    assert point.duration.total_seconds() == 0
    assert not overlaps(point, iv(9, 10))
    assert overlaps(point, iv(9, 11))


def test_inverted_interval_rejected():
    with pytest.raises(ValueError):
        iv(11, 10)


def test_merge_empty_and_single():
    assert merge([]) == []
    assert merge([iv(9, 10)]) == [iv(9, 10)]


def test_merge_folds_adjacent_and_overlapping():
    merged = merge([iv(13, 14), iv(9, 10), iv(10, 11), iv(10, 12, start_min=30), iv(16, 17)])
    assert merged == [iv(9, 12), iv(13, 14), iv(16, 17)]


def test_merge_swallows_contained():
    assert merge([iv(9, 17), iv(10, 11), iv(12, 13)]) == [iv(9, 17)]


def test_subtract_splits_window():
    assert subtract([iv(9, 17)], [iv(10, 11), iv(12, 13)]) == [iv(9, 10), iv(11, 12), iv(13, 17)]


def test_subtract_touching_block_leaves_window_whole():
    assert subtract([iv(9, 12)], [iv(8, 9), iv(12, 13)]) == [iv(9, 12)]


def test_subtract_everything_and_nothing():
    assert subtract([iv(9, 12)], [iv(8, 13)]) == []
    assert subtract([iv(9, 12)], []) == [iv(9, 12)]
    assert subtract([], [iv(8, 13)]) == []


def test_subtract_ignores_zero_length_cut():
    assert subtract([iv(9, 12)], [iv(10, 10)]) == [iv(9, 12)]


def test_overlaps_any_uses_merged_list():
    blocked = merge([iv(9, 10), iv(12, 13), iv(15, 16)])
    assert overlaps_any(iv(12, 14, start_min=30), blocked)
    assert not overlaps_any(iv(10, 12), blocked)
    assert not overlaps_any(iv(16, 17), blocked)
    assert not overlaps_any(iv(7, 8), blocked)
    assert overlaps_any(iv(8, 18), blocked)
    assert not overlaps_any(iv(9, 10), [])


def test_padded():
    padded = iv(10, 11).padded(timedelta(minutes=15), timedelta(minutes=15))
    assert padded == iv(9, 11, start_min=45, end_min=15)
