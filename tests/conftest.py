"""
Shared pytest fixtures for stwtrack tests.

Track CSVs are written to tmp_path in the export format; current fields are
small in-memory grids so no GRIB file or wgrib2 binary is needed.
"""

from datetime import datetime, timezone

import numpy as np
import pytest

from stwtrack.data.current_sources import UNDEF, GridCurrentSource
from stwtrack.metrics import metrics
from stwtrack.stw.resolver import Slice

TRACK_HEADER = "Date;Latitude(Degree);Longitude(Degree);SOG(Knot);COG(Degree)"


def utc(*args) -> datetime:
    return datetime(*args, tzinfo=timezone.utc)


# ---------------------------------------------------------------------------
# Section 1: Track files
# ---------------------------------------------------------------------------


def track_line(t: datetime, lat: float, lon: float, sog: float, cog: float) -> str:
    return f"{t.strftime('%d/%m/%Y %H:%M:%S')};{lat};{lon};{sog};{cog}"


@pytest.fixture
def write_track(tmp_path):
    """Factory writing a track CSV; rows are raw lines or (t, lat, lon, sog, cog)."""

    def _write(rows, header: str = TRACK_HEADER, name: str = "track.csv"):
        lines = [header]
        for row in rows:
            lines.append(row if isinstance(row, str) else track_line(*row))
        path = tmp_path / name
        path.write_text("\n".join(lines) + "\n", encoding="utf-8")
        return path

    return _write


@pytest.fixture
def example_track(write_track):
    """Three fixes heading east at 5 kn within the first hour of 2024."""
    return write_track([
        (utc(2024, 1, 1, 0, 0), 50.0, -4.0, 5, 90),
        (utc(2024, 1, 1, 0, 30), 50.0, -3.95, 5, 90),
        (utc(2024, 1, 1, 0, 59), 50.0, -3.90, 5, 90),
    ])


# ---------------------------------------------------------------------------
# Section 2: Current fields
# ---------------------------------------------------------------------------


def make_grid(lats, lons, hours, u=0.0, v=0.0):
    """Uniform U/V field for each validity hour; returns (lats, lons, fields)."""
    shape = (len(lats), len(lons))
    fields = {
        h: (np.full(shape, u, dtype=np.float64), np.full(shape, v, dtype=np.float64))
        for h in hours
    }
    return np.asarray(lats, dtype=np.float64), np.asarray(lons, dtype=np.float64), fields


@pytest.fixture
def zero_current_source():
    """Zero current around the western Channel for 2024-01-01 00Z-05Z."""
    lats = np.arange(49.0, 51.0 + 1e-9, 0.25)
    lons = np.arange(355.0, 357.0 + 1e-9, 0.25)
    hours = [utc(2024, 1, 1, h) for h in range(6)]
    return GridCurrentSource(*make_grid(lats, lons, hours), label="zero.grb2")


@pytest.fixture
def masked_center_source():
    """3x3 grid at 0.5 deg, all land except the cell east of the center."""
    lats = [49.5, 50.0, 50.5]
    lons = [355.5, 356.0, 356.5]
    u = np.full((3, 3), UNDEF)
    v = np.full((3, 3), UNDEF)
    u[1, 2] = 0.5
    v[1, 2] = 0.0
    return GridCurrentSource(lats, lons, {utc(2024, 1, 1, 0): (u, v)})


# ---------------------------------------------------------------------------
# Section 3: Slices and metrics
# ---------------------------------------------------------------------------


def make_slice(t: datetime, offset_nm: float = 0.0, **overrides) -> Slice:
    fields = dict(
        time=t, lat=50.0, lon=-4.0, sog=5.0, cog=90.0,
        current_kn=1.0, current_dir_deg=180.0,
        stw_kn=5.1, stw_dir_deg=79.0,
        neighbor_offset_nm=offset_nm,
    )
    fields.update(overrides)
    return Slice(**fields)


@pytest.fixture(autouse=True)
def reset_metrics():
    """Each test starts with empty run counters."""
    metrics.reset()
    yield
    metrics.reset()
