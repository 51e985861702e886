"""Track loading and resampling."""

from .loader import (
    Fix,
    TrackLoadError,
    load_track,
    parse_start_time,
    shift_track,
)
from .resampler import median_gap_minutes, resample_track

__all__ = [
    'Fix',
    'TrackLoadError',
    'load_track',
    'parse_start_time',
    'shift_track',
    'median_gap_minutes',
    'resample_track',
]
