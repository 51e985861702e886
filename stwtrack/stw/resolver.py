"""
Speed-through-water resolution.

Velocity over ground is the sum of velocity through the water and the
surface current, so the water-referenced vector is SOG minus current.
Current direction is the direction the water flows TO.
"""

import logging
import math
from dataclasses import dataclass
from datetime import datetime
from typing import List

from stwtrack.data.current_sampler import CurrentFieldSampler, CurrentSample
from stwtrack.geodesy import (
    ms_to_knots,
    normalize_360,
    speed_direction_from_vector,
    vector_from_speed_direction,
)
from stwtrack.metrics import metrics
from stwtrack.track.loader import Fix

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Slice:
    """A track point with its sampled current and derived STW."""
    time: datetime
    lat: float
    lon: float
    sog: float
    cog: float
    current_kn: float
    current_dir_deg: float
    stw_kn: float
    stw_dir_deg: float
    neighbor_offset_nm: float


def resolve_slice(fix: Fix, sample: CurrentSample) -> Slice:
    """Combine a fix with its current sample."""
    current_kn = ms_to_knots(math.hypot(sample.u, sample.v))
    current_dir = normalize_360(math.degrees(math.atan2(sample.u, sample.v)))

    ge, gn = vector_from_speed_direction(fix.sog, fix.cog)
    ce, cn = vector_from_speed_direction(current_kn, current_dir)
    stw_kn, stw_dir = speed_direction_from_vector(ge - ce, gn - cn)

    return Slice(
        time=fix.time,
        lat=fix.lat,
        lon=fix.lon,
        sog=fix.sog,
        cog=fix.cog,
        current_kn=current_kn,
        current_dir_deg=current_dir,
        stw_kn=stw_kn,
        stw_dir_deg=stw_dir,
        neighbor_offset_nm=sample.offset_nm,
    )


def resolve_track(fixes: List[Fix], sampler: CurrentFieldSampler) -> List[Slice]:
    """Sample current for every slice position, dropping those with no data."""
    slices = []
    for fix in fixes:
        sample = sampler.sample(fix.time, fix.lat, fix.lon)
        if sample is None:
            metrics.increment("slices_dropped")
            logger.debug(
                f"No current near ({fix.lat:.4f}, {fix.lon:.4f}) at "
                f"{fix.time.isoformat()}, slice dropped"
            )
            continue
        slices.append(resolve_slice(fix, sample))

    metrics.increment("slices_processed", len(slices))
    dropped = len(fixes) - len(slices)
    if dropped:
        logger.warning(f"{dropped} of {len(fixes)} slices had no current data and were dropped")
    logger.info(f"Resolved STW for {len(slices)} slices")
    return slices
