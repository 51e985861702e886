"""
GPS track CSV loader.

Parses semicolon-delimited exports of timestamped fixes (position, SOG,
COG) into a validated, strictly time-ordered list of Fix records.

Required header columns (any order, exact names):
    Date;Latitude(Degree);Longitude(Degree);SOG(Knot);COG(Degree)

Dates are DD/MM/YYYY HH:MM[:SS] and are interpreted as UTC.
"""

import logging
import re
from dataclasses import dataclass, replace
from datetime import datetime, timezone
from pathlib import Path
from typing import List, Optional

import numpy as np
import pandas as pd

logger = logging.getLogger(__name__)

DELIMITER = ";"
DATE_COLUMN = "Date"

# Column name -> Fix attribute
NUMERIC_COLUMNS = {
    "Latitude(Degree)": "lat",
    "Longitude(Degree)": "lon",
    "SOG(Knot)": "sog",
    "COG(Degree)": "cog",
}

REQUIRED_COLUMNS = (DATE_COLUMN,) + tuple(NUMERIC_COLUMNS)

DATE_PATTERN = re.compile(r"^(\d{2})/(\d{2})/(\d{4}) (\d{2}):(\d{2})(?::(\d{2}))?$")
START_PATTERN = re.compile(r"^(\d{4})-(\d{2})-(\d{2})T(\d{2}):(\d{2})Z$")


class TrackLoadError(ValueError):
    """Track input is missing, malformed or out of order."""


@dataclass(frozen=True)
class Fix:
    """One track sample."""
    time: datetime  # tz-aware UTC
    lat: float
    lon: float
    sog: float  # knots
    cog: float  # degrees true


def parse_track_date(text: str) -> Optional[datetime]:
    """Parse DD/MM/YYYY HH:MM[:SS] as UTC, returning None when malformed."""
    m = DATE_PATTERN.match(text.strip())
    if not m:
        return None
    day, month, year, hour, minute, second = m.groups()
    try:
        return datetime(
            int(year), int(month), int(day),
            int(hour), int(minute), int(second or 0),
            tzinfo=timezone.utc,
        )
    except ValueError:
        return None


def parse_start_time(text: str) -> datetime:
    """Parse a YYYY-MM-DDTHH:MMZ override (UTC)."""
    m = START_PATTERN.match(text.strip())
    if not m:
        raise TrackLoadError(f"Start time must be YYYY-MM-DDTHH:MMZ (UTC), got '{text}'")
    try:
        return datetime(*(int(g) for g in m.groups()), tzinfo=timezone.utc)
    except ValueError as e:
        raise TrackLoadError(f"Invalid start time '{text}': {e}") from e


def _read_rows(path: Path) -> pd.DataFrame:
    """Split the file into a frame of raw string cells plus source line numbers."""
    try:
        text = path.read_text(encoding="utf-8-sig").replace("\r", "")
    except UnicodeDecodeError as e:
        raise TrackLoadError(f"Track CSV is not UTF-8: {path}: {e}") from e
    lines = [(n, line) for n, line in enumerate(text.split("\n"), start=1) if line.strip()]
    if len(lines) < 2:
        raise TrackLoadError(f"Track CSV has no data rows: {path}")

    header = [h.strip() for h in lines[0][1].split(DELIMITER)]
    for column in REQUIRED_COLUMNS:
        if column not in header:
            raise TrackLoadError(f"Track CSV missing column '{column}': {path}")

    records = []
    line_numbers = []
    skipped = 0
    for line_no, line in lines[1:]:
        cells = line.split(DELIMITER)
        if len(cells) < len(header):
            logger.warning(
                f"{path.name} line {line_no}: {len(cells)} fields, "
                f"expected {len(header)}, skipped"
            )
            skipped += 1
            continue
        records.append([c.strip() for c in cells[:len(header)]])
        line_numbers.append(line_no)

    if skipped:
        logger.info(f"{path.name}: skipped {skipped} short rows")

    # Duplicate header names keep the first occurrence, as column lookup does
    frame = pd.DataFrame(records, columns=range(len(header)), dtype=object)
    picked = {name: header.index(name) for name in REQUIRED_COLUMNS}
    frame = frame[[picked[name] for name in REQUIRED_COLUMNS]]
    frame.columns = list(REQUIRED_COLUMNS)
    frame.index = pd.Index(line_numbers, name="line")
    return frame


def load_track(path) -> List[Fix]:
    """
    Load and validate a track CSV.

    Args:
        path: Path to the semicolon-delimited track file

    Returns:
        Fixes in file order (strictly increasing time)

    Raises:
        TrackLoadError: On a missing file, missing column, malformed date or
            number, or non-increasing timestamps
    """
    path = Path(path)
    if not path.exists():
        raise TrackLoadError(f"Track CSV not found: {path}")

    frame = _read_rows(path)
    if frame.empty:
        raise TrackLoadError(f"Track CSV has no usable data rows: {path}")

    times = []
    for line_no, raw in frame[DATE_COLUMN].items():
        t = parse_track_date(raw)
        if t is None:
            raise TrackLoadError(f"{path.name} line {line_no}: bad Date '{raw}'")
        times.append(t)

    values = {}
    for column, attr in NUMERIC_COLUMNS.items():
        numbers = pd.to_numeric(frame[column], errors="coerce").astype(float)
        bad = numbers[~np.isfinite(numbers.to_numpy())]
        if not bad.empty:
            line_no = bad.index[0]
            raise TrackLoadError(
                f"{path.name} line {line_no}: non-numeric {column} "
                f"'{frame.at[line_no, column]}'"
            )
        values[attr] = numbers.tolist()

    fixes = [
        Fix(time=t, lat=lat, lon=lon, sog=sog, cog=cog)
        for t, lat, lon, sog, cog in zip(
            times, values["lat"], values["lon"], values["sog"], values["cog"]
        )
    ]

    line_numbers = frame.index.tolist()
    for i in range(1, len(fixes)):
        if fixes[i].time <= fixes[i - 1].time:
            raise TrackLoadError(
                f"{path.name} line {line_numbers[i]}: non-monotonic timestamp "
                f"{fixes[i].time.isoformat()} after {fixes[i - 1].time.isoformat()}"
            )

    logger.info(
        f"Loaded {len(fixes)} fixes from {path.name}: "
        f"{fixes[0].time.isoformat()} .. {fixes[-1].time.isoformat()}"
    )
    return fixes


def shift_track(fixes: List[Fix], start: datetime) -> List[Fix]:
    """Shift all timestamps by a constant so the first fix lands on start."""
    if not fixes:
        return []
    delta = start - fixes[0].time
    logger.info(f"Shifting track by {delta} to start at {start.isoformat()}")
    return [replace(f, time=f.time + delta) for f in fixes]
