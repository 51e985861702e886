"""Current/STW reconstruction: resolution, hourly aggregation and reports."""

from .resolver import Slice, resolve_slice, resolve_track
from .aggregator import (
    Confidence,
    HourlyRecord,
    QaSummary,
    aggregate_hourly,
    summarize,
)
from .pipeline import PipelineResult, run_pipeline

__all__ = [
    'Slice',
    'resolve_slice',
    'resolve_track',
    'Confidence',
    'HourlyRecord',
    'QaSummary',
    'aggregate_hourly',
    'summarize',
    'PipelineResult',
    'run_pipeline',
]
