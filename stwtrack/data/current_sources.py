"""
Gridded ocean-current sources.

A source answers one question: what are the east/north current components
(m/s) at a validity hour and a grid location (longitude in the 0-360
convention), or is that cell undefined. Land and coastal cells in current
forecasts carry the GRIB "undefined" sentinel (9.999e20), a masked value
or NaN; all of these read as "no data".

Implementations:
- GridCurrentSource: in-memory numpy grids, nearest-cell lookup
- GribCurrentSource: GridCurrentSource loaded from a GRIB2 file via pygrib
- Wgrib2CurrentSource: per-point queries through the external wgrib2 tool
"""

import logging
import math
import re
import subprocess
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from pathlib import Path
from typing import Dict, List, Optional, Tuple

import numpy as np

logger = logging.getLogger(__name__)

UNDEF = 9.999e20
DEFAULT_GRID_STEP_DEG = 0.027779

# GRIB2 discipline 10 (oceanographic), category 1 (currents)
U_SHORT_NAMES = ("ucurr", "uogrd", "uo", "uoe")
V_SHORT_NAMES = ("vcurr", "vogrd", "vo", "von")
U_NAME_PREFIX = "u-component of current"
V_NAME_PREFIX = "v-component of current"

WGRIB2_U_MATCH = ":UOGRD:"
WGRIB2_V_MATCH = ":VOGRD:"
WGRIB2_VALUE_PATTERN = re.compile(r"val=([0-9.eE+-]+)")


class CurrentSourceError(RuntimeError):
    """The current forecast source cannot be read or queried."""


def is_undefined(value: Optional[float]) -> bool:
    """True for the GRIB sentinel, NaN/inf, masked or missing values."""
    if value is None or value is np.ma.masked:
        return True
    value = float(value)
    return not math.isfinite(value) or abs(value) >= UNDEF * 0.999


def hour_key(t: datetime) -> datetime:
    """Truncate to the UTC hour; naive datetimes are taken as UTC."""
    if t.tzinfo is None:
        t = t.replace(tzinfo=timezone.utc)
    else:
        t = t.astimezone(timezone.utc)
    return t.replace(minute=0, second=0, microsecond=0)


class CurrentSource(ABC):
    """Point query interface over a gridded current forecast."""

    #: Grid spacing in degrees, None when the source does not know it
    lat_step: Optional[float] = None
    lon_step: Optional[float] = None

    @property
    def label(self) -> str:
        """Human-readable origin, used in reports."""
        return self.__class__.__name__

    @abstractmethod
    def sample_current(
        self, valid_time: datetime, lat: float, lon360: float
    ) -> Optional[Tuple[float, float]]:
        """
        Current components at one grid location.

        Args:
            valid_time: Forecast validity time, already truncated to the hour
            lat: Latitude in degrees
            lon360: Longitude in degrees, 0-360 convention

        Returns:
            (u, v) in m/s (east, north), or None when the cell has no data
        """


class GridCurrentSource(CurrentSource):
    """In-memory current grids, one U/V pair per validity hour."""

    def __init__(
        self,
        lats,
        lons,
        fields: Dict[datetime, Tuple[np.ndarray, np.ndarray]],
        label: str = "in-memory grid",
    ):
        """
        Args:
            lats: 1-D latitude axis (either direction)
            lons: 1-D longitude axis (-180..180 or 0..360)
            fields: validity time -> (u, v) arrays shaped [lat, lon] in m/s
            label: Description used in reports
        """
        self.lats = np.asarray(lats, dtype=np.float64)
        self.lons = np.mod(np.asarray(lons, dtype=np.float64), 360.0)
        self._label = label
        self._fields: Dict[datetime, Tuple[np.ndarray, np.ndarray]] = {}

        shape = (len(self.lats), len(self.lons))
        for t, (u, v) in fields.items():
            u = np.ma.filled(np.ma.asarray(u, dtype=np.float64), UNDEF)
            v = np.ma.filled(np.ma.asarray(v, dtype=np.float64), UNDEF)
            if u.shape != shape or v.shape != shape:
                raise ValueError(
                    f"Current grid for {t.isoformat()} has shape {u.shape}/{v.shape}, "
                    f"expected {shape}"
                )
            self._fields[hour_key(t)] = (u, v)

        self.lat_step = self._axis_step(self.lats)
        self.lon_step = self._axis_step(self.lons)

    @staticmethod
    def _axis_step(axis: np.ndarray) -> float:
        if len(axis) < 2:
            return DEFAULT_GRID_STEP_DEG
        # Wrapped so a 359.5 -> 0.0 longitude seam counts as one step
        steps = np.abs((np.diff(axis) + 180.0) % 360.0 - 180.0)
        return float(np.median(steps))

    @property
    def label(self) -> str:
        return self._label

    @property
    def valid_times(self) -> List[datetime]:
        return sorted(self._fields)

    def sample_current(
        self, valid_time: datetime, lat: float, lon360: float
    ) -> Optional[Tuple[float, float]]:
        pair = self._fields.get(hour_key(valid_time))
        if pair is None:
            return None

        lat_dist = np.abs(self.lats - lat)
        i = int(np.argmin(lat_dist))
        if lat_dist[i] > self.lat_step / 2 + 1e-9:
            return None

        lon_dist = np.abs((self.lons - lon360 + 180.0) % 360.0 - 180.0)
        j = int(np.argmin(lon_dist))
        if lon_dist[j] > self.lon_step / 2 + 1e-9:
            return None

        u = float(pair[0][i, j])
        v = float(pair[1][i, j])
        if is_undefined(u) or is_undefined(v):
            return None
        return u, v


class GribCurrentSource(GridCurrentSource):
    """Current grids read from a GRIB2 file (UOGRD/VOGRD messages)."""

    @classmethod
    def open(cls, grib_path) -> "GribCurrentSource":
        """
        Read every U/V current message in a GRIB2 file.

        Only the first message per component and validity time is used
        (the surface level in multi-depth files).

        Raises:
            CurrentSourceError: If pygrib is missing, the file or its messages
                cannot be read, the grid is unsupported, or no matching U/V
                pair is present
        """
        try:
            import pygrib
        except ImportError as e:
            raise CurrentSourceError(
                "pygrib not installed. Run: pip install pygrib, or use the wgrib2 backend"
            ) from e

        grib_path = Path(grib_path)
        u_fields: Dict[datetime, np.ndarray] = {}
        v_fields: Dict[datetime, np.ndarray] = {}
        lats = lons = None

        try:
            grbs = pygrib.open(str(grib_path))
        except (OSError, RuntimeError) as e:
            raise CurrentSourceError(f"Cannot open GRIB file {grib_path}: {e}") from e

        try:
            for grb in grbs:
                short = str(grb.shortName).lower()
                name = str(grb.name).lower()
                if short in U_SHORT_NAMES or name.startswith(U_NAME_PREFIX):
                    target = u_fields
                elif short in V_SHORT_NAMES or name.startswith(V_NAME_PREFIX):
                    target = v_fields
                else:
                    continue

                valid = hour_key(grb.validDate)
                if valid in target:
                    logger.debug(f"Extra {short} message for {valid.isoformat()} ignored")
                    continue

                if lats is None:
                    lats_2d, lons_2d = grb.latlons()
                    lats = lats_2d[:, 0]
                    lons = lons_2d[0, :]
                target[valid] = grb.values
        except (RuntimeError, ValueError, KeyError, OSError) as e:
            raise CurrentSourceError(f"Cannot read GRIB messages in {grib_path}: {e}") from e
        finally:
            grbs.close()

        times = sorted(set(u_fields) & set(v_fields))
        if not times:
            raise CurrentSourceError(f"No UOGRD/VOGRD message pairs in {grib_path}")

        try:
            source = cls(
                lats,
                lons,
                {t: (u_fields[t], v_fields[t]) for t in times},
                label=str(grib_path),
            )
        except ValueError as e:
            raise CurrentSourceError(f"Unsupported current grid in {grib_path}: {e}") from e

        hours = source.valid_times
        logger.info(
            f"GRIB currents loaded: {len(source.lats)}x{len(source.lons)} grid, {len(hours)} hours "
            f"{hours[0].strftime('%Y-%m-%d %H')}Z..{hours[-1].strftime('%Y-%m-%d %H')}Z, "
            f"step {source.lat_step:.4f}x{source.lon_step:.4f} deg"
        )
        return source


class Wgrib2CurrentSource(CurrentSource):
    """Per-point current queries through the wgrib2 command-line tool."""

    def __init__(self, grib_path, wgrib2_path: str = "wgrib2", timeout: float = 60.0):
        self.grib_path = Path(grib_path)
        self.wgrib2_path = wgrib2_path
        self.timeout = timeout

    @property
    def label(self) -> str:
        return str(self.grib_path)

    def sample_current(
        self, valid_time: datetime, lat: float, lon360: float
    ) -> Optional[Tuple[float, float]]:
        vt = hour_key(valid_time).strftime("%Y%m%d%H")
        u = self._query(vt, lat, lon360, WGRIB2_U_MATCH)
        if is_undefined(u):
            return None
        v = self._query(vt, lat, lon360, WGRIB2_V_MATCH)
        if is_undefined(v):
            return None
        return u, v

    def _query(self, vt: str, lat: float, lon360: float, param: str) -> float:
        args = [
            self.wgrib2_path, str(self.grib_path),
            "-match", f"vt={vt}",
            "-match", param,
            "-lon", f"{lon360:.6f}", f"{lat:.6f}",
        ]
        try:
            result = subprocess.run(
                args, capture_output=True, text=True, timeout=self.timeout
            )
        except (OSError, subprocess.TimeoutExpired) as e:
            raise CurrentSourceError(f"wgrib2 failed: {e}") from e

        if result.returncode != 0:
            raise CurrentSourceError(
                f"wgrib2 exit {result.returncode}: {result.stderr.strip()}"
            )

        m = WGRIB2_VALUE_PATTERN.search(result.stdout)
        return float(m.group(1)) if m else UNDEF


def open_current_source(
    backend: str, grib_path, wgrib2_path: str = "wgrib2"
) -> CurrentSource:
    """
    Build the configured current source.

    Args:
        backend: "pygrib" (load the whole file) or "wgrib2" (query per point)
        grib_path: GRIB2 file with UOGRD/VOGRD currents, 0-360 longitudes
        wgrib2_path: wgrib2 executable for the wgrib2 backend

    Raises:
        CurrentSourceError: On an unknown backend or missing GRIB file
    """
    grib_path = Path(grib_path)
    if not grib_path.exists():
        raise CurrentSourceError(f"GRIB file not found: {grib_path}")

    if backend == "pygrib":
        return GribCurrentSource.open(grib_path)
    if backend == "wgrib2":
        logger.info(f"Querying currents with {wgrib2_path} on {grib_path}")
        return Wgrib2CurrentSource(grib_path, wgrib2_path)
    raise CurrentSourceError(f"Unknown current backend '{backend}'")
