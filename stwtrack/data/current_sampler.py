"""
Current lookup with coastal fallback.

Ocean-current grids mask coastal cells as undefined. When the cell under a
track point has no data, the sampler searches square rings of neighbor
cells, radius 1..max_steps grid steps, and takes the first defined cell.
The distance to that cell is reported so that aggregates can be demoted
when data had to come from further away.
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Dict, Iterator, Optional, Tuple

from stwtrack.data.current_sources import DEFAULT_GRID_STEP_DEG, CurrentSource, hour_key
from stwtrack.geodesy import distance_and_bearing, from_lon360, km_to_nm, to_lon360
from stwtrack.metrics import metrics

logger = logging.getLogger(__name__)

MAX_NEIGHBOR_STEPS = 2


@dataclass(frozen=True)
class CurrentSample:
    """Current components at a requested point."""
    u: float  # m/s east
    v: float  # m/s north
    offset_nm: float  # 0 for an exact hit
    lat: float  # probe that supplied the data
    lon: float


def ring_offsets(radius: int) -> Iterator[Tuple[int, int]]:
    """Cells on the square ring at Chebyshev distance radius, dy then dx ascending."""
    for dy in range(-radius, radius + 1):
        for dx in range(-radius, radius + 1):
            if max(abs(dx), abs(dy)) == radius:
                yield dy, dx


class CurrentFieldSampler:
    """Exact-cell lookup with a bounded ring search over neighbors."""

    def __init__(
        self,
        source: CurrentSource,
        lat_step: Optional[float] = None,
        lon_step: Optional[float] = None,
        max_steps: int = MAX_NEIGHBOR_STEPS,
    ):
        """
        Args:
            source: Current forecast source
            lat_step, lon_step: Neighbor spacing in degrees; defaults to the
                source grid spacing, else DEFAULT_GRID_STEP_DEG
            max_steps: Largest ring radius searched, in grid steps
        """
        self.source = source
        self.lat_step = lat_step or source.lat_step or DEFAULT_GRID_STEP_DEG
        self.lon_step = lon_step or source.lon_step or DEFAULT_GRID_STEP_DEG
        self.max_steps = max_steps
        self._cache: Dict[Tuple[datetime, float, float], Optional[Tuple[float, float]]] = {}

    def _query(self, valid_time: datetime, lat: float, lon360: float):
        key = (valid_time, round(lat, 6), round(lon360 % 360.0, 6))
        if key in self._cache:
            metrics.increment("current_cache_hits")
            return self._cache[key]
        metrics.increment("current_lookups")
        result = self.source.sample_current(valid_time, lat, lon360 % 360.0)
        self._cache[key] = result
        return result

    def sample(self, time: datetime, lat: float, lon: float) -> Optional[CurrentSample]:
        """
        Current at (lat, lon) for the hour containing time.

        Returns:
            CurrentSample, or None when neither the cell nor any neighbor
            within max_steps has data
        """
        valid_time = hour_key(time)
        lon360 = to_lon360(lon)

        found = self._query(valid_time, lat, lon360)
        if found is not None:
            return CurrentSample(u=found[0], v=found[1], offset_nm=0.0, lat=lat, lon=lon)

        for radius in range(1, self.max_steps + 1):
            for dy, dx in ring_offsets(radius):
                plat = lat + dy * self.lat_step
                plon = lon360 + dx * self.lon_step
                if abs(plat) > 90.0:
                    continue
                found = self._query(valid_time, plat, plon)
                if found is None:
                    continue
                plon180 = from_lon360(plon % 360.0)
                km, _ = distance_and_bearing(lat, lon, plat, plon180)
                metrics.increment("current_fallback_hits")
                logger.debug(
                    f"Fallback current at ({plat:.4f}, {plon180:.4f}) for "
                    f"({lat:.4f}, {lon:.4f}), ring {radius}"
                )
                return CurrentSample(
                    u=found[0], v=found[1], offset_nm=km_to_nm(km), lat=plat, lon=plon180
                )

        metrics.increment("current_misses")
        return None

    def clear_cache(self) -> int:
        """Drop memoized lookups, returning how many were held."""
        count = len(self._cache)
        self._cache.clear()
        return count
