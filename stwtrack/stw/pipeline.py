"""
Track -> current/STW reconstruction pipeline.

    load_track -> shift_track (optional) -> resample_track
        -> resolve_track (current sampling + STW) -> aggregate_hourly
        -> CSV and QA summary output

Fatal input and source errors propagate to the caller. Any file already
written by a failed run may be incomplete.
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import List, Optional

from stwtrack.data.current_sampler import CurrentFieldSampler
from stwtrack.metrics import metrics, timed
from stwtrack.stw.aggregator import HourlyRecord, QaSummary, aggregate_hourly, summarize
from stwtrack.stw.report import (
    ReportPaths,
    output_paths,
    write_hourly_csv,
    write_slices_csv,
    write_summary,
)
from stwtrack.stw.resolver import Slice, resolve_track
from stwtrack.track.loader import load_track, shift_track
from stwtrack.track.resampler import resample_track

logger = logging.getLogger(__name__)


@dataclass
class PipelineResult:
    fix_count: int
    slices: List[Slice]
    hourly: List[HourlyRecord]
    summary: QaSummary
    paths: ReportPaths
    slices_written: bool


@timed("pipeline_run")
def run_pipeline(
    track_path,
    sampler: CurrentFieldSampler,
    out_dir,
    write_slices: bool = False,
    start: Optional[datetime] = None,
    source_label: str = "",
) -> PipelineResult:
    """
    Reconstruct hourly current and STW for one track file.

    Args:
        track_path: Semicolon-delimited track CSV
        sampler: Current sampler over the forecast source
        out_dir: Output directory (created if missing)
        write_slices: Also write the per-slice CSV
        start: Shift the track so its first fix is at this UTC time
        source_label: Forecast source named in the QA summary

    Returns:
        PipelineResult with the computed rows and written paths

    Raises:
        TrackLoadError: Bad track input
        CurrentSourceError: Forecast source unavailable
    """
    fixes = load_track(track_path)
    if start is not None:
        fixes = shift_track(fixes, start)

    with metrics.timer("resample"):
        positions = resample_track(fixes)
    with metrics.timer("resolve"):
        slices = resolve_track(positions, sampler)
    with metrics.timer("aggregate"):
        hourly = aggregate_hourly(slices)
    summary = summarize(hourly)
    metrics.set_gauge("slices_per_hour", len(slices) / len(hourly) if hourly else 0.0)
    metrics.set_gauge("current_cache_entries", sampler.clear_cache())

    out_dir = Path(out_dir)
    out_dir.mkdir(parents=True, exist_ok=True)
    paths = output_paths(track_path, out_dir)

    write_hourly_csv(hourly, paths.hourly)
    if write_slices:
        write_slices_csv(slices, paths.slices)
    write_summary(
        summary, paths.summary, track_path, source_label or sampler.source.label
    )

    return PipelineResult(
        fix_count=len(fixes),
        slices=slices,
        hourly=hourly,
        summary=summary,
        paths=paths,
        slices_written=write_slices,
    )
