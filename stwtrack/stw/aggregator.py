"""
Hourly aggregation of resolved slices.

Slices are bucketed by UTC hour (truncated). A bucket whose slices span
less than MIN_COVERAGE_MIN minutes is reported as a GAP with blank metrics.
Otherwise current, STW and SOG/COG vectors are averaged with equal weight,
and the position is taken from the last slice of the hour.
"""

import logging
from collections import defaultdict
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Dict, List, Optional, Sequence

import numpy as np

from stwtrack.data.current_sources import hour_key
from stwtrack.geodesy import speed_direction_from_vector
from stwtrack.stw.resolver import Slice

logger = logging.getLogger(__name__)

MIN_COVERAGE_MIN = 20.0
CONFIDENCE_OFFSET_NM = 3.0


class Confidence(str, Enum):
    """Trust label of an hourly aggregate."""
    HIGH = "HIGH"      # all current data within the offset threshold
    MEDIUM = "MEDIUM"  # some current data came from further neighbors
    GAP = "GAP"        # too little of the hour sampled to average


@dataclass
class HourlyRecord:
    """One row per UTC hour that had at least one slice."""
    hour: datetime
    confidence: Confidence
    lat: Optional[float] = None
    lon: Optional[float] = None
    sog_kn: Optional[float] = None
    cog_deg: Optional[float] = None
    current_kn: Optional[float] = None
    current_dir_deg: Optional[float] = None
    stw_kn: Optional[float] = None
    stw_dir_deg: Optional[float] = None
    max_neighbor_offset_nm: Optional[float] = None

    @property
    def is_gap(self) -> bool:
        return self.confidence == Confidence.GAP


@dataclass
class QaSummary:
    """Data-quality figures for a run."""
    hours_total: int
    hours_gap: int
    median_current_kn: Optional[float]
    max_neighbor_offset_nm: float


def _mean_vector(speeds: Sequence[float], dirs: Sequence[float]):
    """Equal-weight vector mean of speed/direction pairs -> (speed, dir)."""
    theta = np.radians(np.asarray(dirs, dtype=np.float64))
    speeds = np.asarray(speeds, dtype=np.float64)
    east = float(np.mean(speeds * np.sin(theta)))
    north = float(np.mean(speeds * np.cos(theta)))
    return speed_direction_from_vector(east, north)


def _aggregate_bucket(
    hour: datetime,
    bucket: List[Slice],
    min_coverage_min: float,
    offset_threshold_nm: float,
) -> HourlyRecord:
    bucket = sorted(bucket, key=lambda s: s.time)
    coverage_min = (bucket[-1].time - bucket[0].time).total_seconds() / 60.0
    if coverage_min < min_coverage_min:
        logger.debug(
            f"{hour.isoformat()}: {len(bucket)} slices over {coverage_min:.0f} min, GAP"
        )
        return HourlyRecord(hour=hour, confidence=Confidence.GAP)

    current_kn, current_dir = _mean_vector(
        [s.current_kn for s in bucket], [s.current_dir_deg for s in bucket]
    )
    stw_kn, stw_dir = _mean_vector(
        [s.stw_kn for s in bucket], [s.stw_dir_deg for s in bucket]
    )
    sog_kn, cog_deg = _mean_vector([s.sog for s in bucket], [s.cog for s in bucket])
    max_offset = max(s.neighbor_offset_nm for s in bucket)

    last = bucket[-1]
    return HourlyRecord(
        hour=hour,
        confidence=(
            Confidence.HIGH if max_offset <= offset_threshold_nm else Confidence.MEDIUM
        ),
        lat=last.lat,
        lon=last.lon,
        sog_kn=sog_kn,
        cog_deg=cog_deg,
        current_kn=current_kn,
        current_dir_deg=current_dir,
        stw_kn=stw_kn,
        stw_dir_deg=stw_dir,
        max_neighbor_offset_nm=max_offset,
    )


def aggregate_hourly(
    slices: List[Slice],
    min_coverage_min: float = MIN_COVERAGE_MIN,
    offset_threshold_nm: float = CONFIDENCE_OFFSET_NM,
) -> List[HourlyRecord]:
    """
    Bin slices into UTC hours and summarize each bin.

    Args:
        slices: Resolved slices in any order
        min_coverage_min: In-hour time span below which a bin is a GAP
        offset_threshold_nm: Max neighbor offset still rated HIGH

    Returns:
        One record per non-empty hour, ascending by hour
    """
    buckets: Dict[datetime, List[Slice]] = defaultdict(list)
    for s in slices:
        buckets[hour_key(s.time)].append(s)

    records = [
        _aggregate_bucket(hour, buckets[hour], min_coverage_min, offset_threshold_nm)
        for hour in sorted(buckets)
    ]

    counts = {c: sum(1 for r in records if r.confidence == c) for c in Confidence}
    logger.info(
        f"Aggregated {len(slices)} slices into {len(records)} hours "
        f"(HIGH={counts[Confidence.HIGH]}, MEDIUM={counts[Confidence.MEDIUM]}, "
        f"GAP={counts[Confidence.GAP]})"
    )
    return records


def summarize(hourly: List[HourlyRecord]) -> QaSummary:
    """Hour counts, median current over non-GAP hours, and the largest offset."""
    valid = [r for r in hourly if not r.is_gap]
    return QaSummary(
        hours_total=len(hourly),
        hours_gap=len(hourly) - len(valid),
        median_current_kn=(
            float(np.median([r.current_kn for r in valid])) if valid else None
        ),
        max_neighbor_offset_nm=max(
            [0.0] + [r.max_neighbor_offset_nm for r in valid]
        ),
    )
