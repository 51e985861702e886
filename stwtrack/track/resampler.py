"""
Track resampling onto a uniform time step.

Dense native tracks are passed through untouched. Sparse tracks get
synthetic fixes every STEP_MIN minutes along the great circle between
consecutive fixes, so that the current lookups downstream see a regular
sampling of the hour.
"""

import logging
from datetime import timedelta
from typing import List

import numpy as np

from stwtrack.geodesy import destination_point, distance_and_bearing
from stwtrack.track.loader import Fix

logger = logging.getLogger(__name__)

NATIVE_OK_MAX_MIN = 15.0
STEP_MIN = 10.0


def median_gap_minutes(fixes: List[Fix]) -> float:
    """Middle of the sorted inter-fix gaps (upper middle for even counts)."""
    if len(fixes) < 2:
        return 0.0
    gaps = np.sort(np.array([
        (b.time - a.time).total_seconds() / 60.0
        for a, b in zip(fixes[:-1], fixes[1:])
    ]))
    return float(gaps[len(gaps) // 2])


def _interpolate_pair(a: Fix, b: Fix, step_min: float) -> List[Fix]:
    """Fixes at a.time + k*step along a->b, excluding b."""
    total_min = (b.time - a.time).total_seconds() / 60.0
    steps = max(1, int(total_min // step_min))
    distance_km, bearing = distance_and_bearing(a.lat, a.lon, b.lat, b.lon)
    km_step = distance_km / steps

    out = [a]
    for k in range(1, steps):
        elapsed = k * step_min
        frac = elapsed / total_min
        lat, lon = destination_point(a.lat, a.lon, bearing, km_step * k)
        out.append(Fix(
            time=a.time + timedelta(minutes=elapsed),
            lat=lat,
            lon=lon,
            sog=a.sog + (b.sog - a.sog) * frac,
            cog=a.cog + (b.cog - a.cog) * frac,
        ))
    return out


def resample_track(
    fixes: List[Fix],
    native_ok_max_min: float = NATIVE_OK_MAX_MIN,
    step_min: float = STEP_MIN,
) -> List[Fix]:
    """
    Resample a track to the slice grid.

    Args:
        fixes: Time-ordered fixes
        native_ok_max_min: Median gap at or below which fixes are kept as-is
        step_min: Spacing of synthetic fixes in minutes

    Returns:
        Slice positions; the first and last original fixes are always kept
        verbatim
    """
    if not fixes:
        return []

    median = median_gap_minutes(fixes)
    if 0 < median <= native_ok_max_min:
        logger.info(
            f"Native sampling kept: {len(fixes)} fixes, median gap {median:.1f} min"
        )
        return list(fixes)

    out: List[Fix] = []
    for a, b in zip(fixes[:-1], fixes[1:]):
        out.extend(_interpolate_pair(a, b, step_min))
    out.append(fixes[-1])

    logger.info(
        f"Resampled {len(fixes)} fixes (median gap {median:.1f} min) "
        f"to {len(out)} slices at {step_min:g} min"
    )
    return out
