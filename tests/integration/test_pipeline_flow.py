"""
Integration tests for the full track -> hourly STW pipeline.

Tests the flow:
    track CSV -> resample -> current lookup -> STW -> hourly CSV + summary
"""

import numpy as np
import pytest

from conftest import make_grid, utc
from stwtrack.data.current_sampler import CurrentFieldSampler
from stwtrack.data.current_sources import GridCurrentSource
from stwtrack.metrics import metrics
from stwtrack.stw.aggregator import Confidence
from stwtrack.stw.pipeline import run_pipeline
from stwtrack.track.loader import TrackLoadError

HOURLY_HEADER = (
    "timestamp_utc,lat,lon,sog_kn,cog_deg,current_kn,current_dir_deg,"
    "stw_kn,stw_dir_deg,confidence,max_neighbor_offset_nm"
)


def _lines(path):
    return path.read_text(encoding="utf-8").splitlines()


class TestExampleTrack:
    def test_single_high_hour(self, example_track, zero_current_source, tmp_path):
        out = tmp_path / "out"
        result = run_pipeline(example_track, CurrentFieldSampler(zero_current_source), out)

        assert result.fix_count == 3
        assert [s.time.minute for s in result.slices] == [0, 10, 20, 30, 40, 59]
        assert _lines(result.paths.hourly) == [
            HOURLY_HEADER,
            "2024-01-01T00:00Z,50.00000,-3.90000,5.00,90,0.00,0,5.00,90,HIGH,0.00",
        ]
        assert not result.paths.slices.exists()
        assert result.slices_written is False

    def test_summary_written(self, example_track, zero_current_source, tmp_path):
        result = run_pipeline(example_track, CurrentFieldSampler(zero_current_source), tmp_path)
        text = result.paths.summary.read_text(encoding="utf-8")

        assert f"Source CSV: {example_track}" in text
        assert "GRIB: zero.grb2" in text
        assert "Hours total: 1" in text
        assert "Hours GAP:   0" in text
        assert "Median current (kn): 0.00" in text

    def test_slices_file(self, example_track, zero_current_source, tmp_path):
        result = run_pipeline(
            example_track, CurrentFieldSampler(zero_current_source), tmp_path, write_slices=True
        )
        lines = _lines(result.paths.slices)
        assert len(lines) == 1 + 6
        assert lines[1].startswith("2024-01-01T00:00:00Z,50.00000,-4.00000,5.00,90,")
        assert lines[-1].startswith("2024-01-01T00:59:00Z,")

    def test_output_names(self, example_track, zero_current_source, tmp_path):
        result = run_pipeline(example_track, CurrentFieldSampler(zero_current_source), tmp_path)
        assert result.paths.hourly.name == "track-hourly.csv"
        assert result.paths.summary.name == "track-summary.txt"

    def test_stage_timings(self, example_track, zero_current_source, tmp_path):
        run_pipeline(example_track, CurrentFieldSampler(zero_current_source), tmp_path)
        for stage in ("pipeline_run", "resample", "resolve", "aggregate"):
            assert metrics.get_timing(stage).count == 1

    def test_run_gauges_and_cache_released(self, example_track, zero_current_source, tmp_path):
        sampler = CurrentFieldSampler(zero_current_source)
        run_pipeline(example_track, sampler, tmp_path)

        assert metrics.get_gauge("slices_per_hour") == 6.0
        assert metrics.get_gauge("current_cache_entries") == 6
        assert sampler.clear_cache() == 0


class TestStartShift:
    def test_shifted_hour(self, example_track, zero_current_source, tmp_path):
        result = run_pipeline(
            example_track,
            CurrentFieldSampler(zero_current_source),
            tmp_path,
            start=utc(2024, 1, 1, 2, 0),
        )
        assert [r.hour for r in result.hourly] == [utc(2024, 1, 1, 2)]
        assert _lines(result.paths.hourly)[1].startswith("2024-01-01T02:00Z,")

    def test_shift_outside_forecast_drops_everything(self, example_track, zero_current_source, tmp_path):
        result = run_pipeline(
            example_track,
            CurrentFieldSampler(zero_current_source),
            tmp_path,
            start=utc(2024, 2, 1, 0, 0),
        )
        assert result.slices == []
        assert _lines(result.paths.hourly) == [HOURLY_HEADER]
        assert result.summary.hours_total == 0
        assert result.summary.median_current_kn is None


class TestCurrentEffects:
    def test_uniform_current(self, example_track, tmp_path):
        """A 0.5 m/s northgoing set while tracking east at 5 kn."""
        lats = np.arange(49.0, 51.0 + 1e-9, 0.25)
        lons = np.arange(355.0, 357.0 + 1e-9, 0.25)
        source = GridCurrentSource(*make_grid(lats, lons, [utc(2024, 1, 1, 0)], u=0.0, v=0.5))
        rec = run_pipeline(example_track, CurrentFieldSampler(source), tmp_path).hourly[0]

        assert rec.current_kn == pytest.approx(0.5 * 1.943844)
        assert rec.current_dir_deg == pytest.approx(0.0, abs=1e-6)
        assert rec.stw_kn == pytest.approx(np.hypot(5.0, 0.5 * 1.943844))
        assert 90.0 < rec.stw_dir_deg < 180.0

    def test_uncovered_hour_dropped(self, write_track, tmp_path):
        """Fixes in an hour with no forecast produce no slices and no row."""
        lats = np.arange(49.0, 51.0 + 1e-9, 0.25)
        lons = np.arange(355.0, 357.0 + 1e-9, 0.25)
        source = GridCurrentSource(*make_grid(lats, lons, [utc(2024, 1, 1, 0)]))
        track = write_track([
            (utc(2024, 1, 1, 0, 0), 50.0, -4.0, 5, 90),
            (utc(2024, 1, 1, 0, 50), 50.0, -3.9, 5, 90),
            (utc(2024, 1, 1, 1, 40), 50.0, -3.8, 5, 90),
        ])
        result = run_pipeline(track, CurrentFieldSampler(source), tmp_path)

        assert [r.hour for r in result.hourly] == [utc(2024, 1, 1, 0)]
        assert metrics.get_counter("slices_dropped") > 0
        assert all(s.time.hour == 0 for s in result.slices)

    def test_coastal_fallback_is_medium(self, write_track, masked_center_source, tmp_path):
        """Current borrowed from half a degree away exceeds the HIGH offset."""
        track = write_track([
            (utc(2024, 1, 1, 0, 0), 50.0, -4.0, 5, 90),
            (utc(2024, 1, 1, 0, 30), 50.0, -4.0, 5, 90),
        ])
        result = run_pipeline(track, CurrentFieldSampler(masked_center_source), tmp_path)
        rec = result.hourly[0]

        assert rec.confidence == Confidence.MEDIUM
        assert rec.max_neighbor_offset_nm > 3.0
        assert result.summary.max_neighbor_offset_nm == rec.max_neighbor_offset_nm


class TestFailures:
    def test_missing_track(self, zero_current_source, tmp_path):
        with pytest.raises(TrackLoadError, match="not found"):
            run_pipeline(tmp_path / "nope.csv", CurrentFieldSampler(zero_current_source), tmp_path)

    def test_bad_row_writes_nothing(self, write_track, zero_current_source, tmp_path):
        track = write_track(["01/01/2024 00:00:00;50.0;-4.0;5;90", "garbage;50;-4;5;90"])
        out = tmp_path / "out"
        with pytest.raises(TrackLoadError, match="line 3"):
            run_pipeline(track, CurrentFieldSampler(zero_current_source), out)
        assert not out.exists()
