"""Unit tests for hourly aggregation and QA summary."""

import math

import pytest

from conftest import make_slice, utc
from stwtrack.stw.aggregator import Confidence, HourlyRecord, aggregate_hourly, summarize


def _hour_of_slices(hour: int, minutes, offset_nm: float = 0.0, **overrides):
    return [make_slice(utc(2024, 1, 1, hour, m), offset_nm, **overrides) for m in minutes]


class TestConfidence:
    def test_short_coverage_is_gap(self):
        """Slices spanning only 10 minutes of the hour cannot be averaged."""
        records = aggregate_hourly(_hour_of_slices(0, [10, 15, 20]))
        assert len(records) == 1
        rec = records[0]
        assert rec.confidence == Confidence.GAP
        assert rec.hour == utc(2024, 1, 1, 0)
        assert rec.lat is None
        assert rec.stw_kn is None
        assert rec.max_neighbor_offset_nm is None

    def test_single_slice_is_gap(self):
        assert aggregate_hourly(_hour_of_slices(0, [30]))[0].is_gap

    def test_coverage_threshold_inclusive(self):
        assert aggregate_hourly(_hour_of_slices(0, [0, 20]))[0].confidence == Confidence.HIGH

    def test_near_offset_is_high(self):
        records = aggregate_hourly(_hour_of_slices(0, [0, 15, 30, 45], offset_nm=1.0))
        assert records[0].confidence == Confidence.HIGH
        assert records[0].max_neighbor_offset_nm == 1.0

    def test_far_offset_is_medium(self):
        records = aggregate_hourly(_hour_of_slices(0, [0, 15, 30, 45], offset_nm=5.0))
        assert records[0].confidence == Confidence.MEDIUM
        assert records[0].max_neighbor_offset_nm == 5.0

    def test_offset_threshold_inclusive(self):
        records = aggregate_hourly(_hour_of_slices(0, [0, 45], offset_nm=3.0))
        assert records[0].confidence == Confidence.HIGH

    def test_max_offset_over_slices(self):
        slices = _hour_of_slices(0, [0, 20]) + _hour_of_slices(0, [40], offset_nm=3.5)
        rec = aggregate_hourly(slices)[0]
        assert rec.max_neighbor_offset_nm == 3.5
        assert rec.confidence == Confidence.MEDIUM


class TestAveraging:
    def test_vector_mean_of_directions(self):
        """350 and 10 degrees average to north, not south."""
        slices = [
            make_slice(utc(2024, 1, 1, 0, 0), current_kn=1.0, current_dir_deg=350.0),
            make_slice(utc(2024, 1, 1, 0, 30), current_kn=1.0, current_dir_deg=10.0),
        ]
        rec = aggregate_hourly(slices)[0]
        assert rec.current_dir_deg == pytest.approx(0.0, abs=1e-9) or rec.current_dir_deg == pytest.approx(360.0)
        assert rec.current_kn == pytest.approx(math.cos(math.radians(10.0)))

    def test_opposing_vectors_cancel(self):
        slices = [
            make_slice(utc(2024, 1, 1, 0, 0), stw_kn=4.0, stw_dir_deg=0.0),
            make_slice(utc(2024, 1, 1, 0, 40), stw_kn=4.0, stw_dir_deg=180.0),
        ]
        assert aggregate_hourly(slices)[0].stw_kn == pytest.approx(0.0, abs=1e-9)

    def test_equal_weights_not_time_weighted(self):
        slices = [
            make_slice(utc(2024, 1, 1, 0, 0), sog=2.0),
            make_slice(utc(2024, 1, 1, 0, 1), sog=2.0),
            make_slice(utc(2024, 1, 1, 0, 50), sog=8.0),
        ]
        assert aggregate_hourly(slices)[0].sog_kn == pytest.approx(4.0)

    def test_position_from_last_slice(self):
        slices = [
            make_slice(utc(2024, 1, 1, 0, 40), lat=50.2, lon=-3.8),
            make_slice(utc(2024, 1, 1, 0, 0), lat=50.0, lon=-4.0),
            make_slice(utc(2024, 1, 1, 0, 20), lat=50.1, lon=-3.9),
        ]
        rec = aggregate_hourly(slices)[0]
        assert (rec.lat, rec.lon) == (50.2, -3.8)


class TestBucketing:
    def test_hours_sorted_and_truncated(self):
        slices = _hour_of_slices(3, [0, 30]) + _hour_of_slices(1, [5, 59])
        records = aggregate_hourly(slices)
        assert [r.hour for r in records] == [utc(2024, 1, 1, 1), utc(2024, 1, 1, 3)]

    def test_hour_without_slices_has_no_row(self):
        """An hour with no slices is absent, unlike a GAP hour which has a row."""
        slices = (
            _hour_of_slices(0, [0, 30])
            + _hour_of_slices(2, [50])
            + _hour_of_slices(3, [0, 45])
        )
        records = aggregate_hourly(slices)
        assert [r.hour.hour for r in records] == [0, 2, 3]
        assert [r.confidence for r in records] == [Confidence.HIGH, Confidence.GAP, Confidence.HIGH]

    def test_empty(self):
        assert aggregate_hourly([]) == []


class TestSummarize:
    def test_counts_and_median(self):
        records = [
            HourlyRecord(utc(2024, 1, 1, 0), Confidence.HIGH, current_kn=1.0, max_neighbor_offset_nm=0.0),
            HourlyRecord(utc(2024, 1, 1, 1), Confidence.GAP),
            HourlyRecord(utc(2024, 1, 1, 2), Confidence.MEDIUM, current_kn=3.0, max_neighbor_offset_nm=4.2),
        ]
        summary = summarize(records)
        assert summary.hours_total == 3
        assert summary.hours_gap == 1
        assert summary.median_current_kn == pytest.approx(2.0)
        assert summary.max_neighbor_offset_nm == 4.2

    def test_only_gaps(self):
        summary = summarize([HourlyRecord(utc(2024, 1, 1, 0), Confidence.GAP)])
        assert summary.median_current_kn is None
        assert summary.max_neighbor_offset_nm == 0.0
