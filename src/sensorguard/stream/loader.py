"""CSV dataset loader — delimited text → Readings.

Parsing rules:
    - First non-empty line is the header; column names are trimmed and
      matched case-insensitively
    - Rows whose column count differs from the header are malformed:
      counted and skipped, never fatal
    - Empty or unparseable numeric fields become 0.0; a comma is accepted
      as the decimal separator
    - The sensor identifier comes from the first non-empty of the
      ``sensorid``, ``ip_address`` and ``node_id`` columns, else "unknown"
    - ``is_malicious`` is an optional integer label

Only a missing, unreadable or empty file is a load failure.
"""

import logging
from dataclasses import dataclass, field
from pathlib import Path

import numpy as np
import pandas as pd

from sensorguard.exceptions import DatasetLoadError
from sensorguard.stream.reading import FEATURE_FIELDS, Reading

logger = logging.getLogger(__name__)

SENSOR_ID_ALIASES = ("sensorid", "ip_address", "node_id")
LABEL_COLUMN = "is_malicious"
UNKNOWN_SENSOR_ID = "unknown"


@dataclass
class LoadReport:
    """Result of loading a dataset.

    Attributes:
        readings: Parsed readings in file order
        malformed: Number of rows skipped for a column-count mismatch
        header: Normalized (trimmed, lower-cased) header columns
        path: Source file, if loaded from disk
    """

    readings: list[Reading]
    malformed: int = 0
    header: list[str] = field(default_factory=list)
    path: Path | None = None

    @property
    def total_rows(self) -> int:
        """Number of usable rows."""
        return len(self.readings)


def _numeric_column(frame: pd.DataFrame, column: str) -> pd.Series:
    """Coerce a string column to float, mapping blanks/garbage to 0.0."""
    if column not in frame.columns:
        return pd.Series(0.0, index=frame.index, dtype="float64")
    cleaned = frame[column].str.replace(",", ".", regex=False)
    return pd.to_numeric(cleaned, errors="coerce").fillna(0.0).astype("float64")


def _sensor_ids(frame: pd.DataFrame) -> pd.Series:
    """Resolve the sensor identifier from the first non-empty alias column."""
    ids = pd.Series(np.nan, index=frame.index, dtype="object")
    for alias in SENSOR_ID_ALIASES:
        if alias in frame.columns:
            column = frame[alias].where(frame[alias] != "")
            ids = ids.combine_first(column)
    return ids.fillna(UNKNOWN_SENSOR_ID)


def _labels(frame: pd.DataFrame) -> list[int | None]:
    """Parse the optional integer label column. Non-integers become None."""
    if LABEL_COLUMN not in frame.columns:
        return [None] * len(frame)
    values = pd.to_numeric(frame[LABEL_COLUMN], errors="coerce")
    labels: list[int | None] = []
    for v in values:
        if pd.isna(v) or not float(v).is_integer():
            labels.append(None)
        else:
            labels.append(int(v))
    return labels


def readings_from_frame(frame: pd.DataFrame) -> list[Reading]:
    """Convert a string-valued DataFrame into Readings.

    Column names are normalized here as well, so frames built outside
    ``load_dataset`` (e.g. ``pd.read_csv(..., dtype=str)``) work too.

    Args:
        frame: DataFrame whose cells are strings (NaN allowed)

    Returns:
        Readings in row order
    """
    if frame.empty:
        return []

    frame = frame.copy()
    frame.columns = [str(c).strip().lower() for c in frame.columns]
    # Later duplicates win, matching a name → index lookup built left to right
    frame = frame.loc[:, ~frame.columns.duplicated(keep="last")]
    frame = frame.fillna("").astype(str).apply(lambda col: col.str.strip())

    numeric = pd.DataFrame(
        {attr: _numeric_column(frame, attr) for attr in FEATURE_FIELDS.values()},
        index=frame.index,
    )
    sensor_ids = _sensor_ids(frame)
    labels = _labels(frame)

    readings = []
    for sensor_id, label, values in zip(sensor_ids, labels, numeric.to_dict("records")):
        readings.append(
            Reading(
                sensor_id=str(sensor_id),
                is_malicious=label,
                **{attr: float(v) for attr, v in values.items()},
            )
        )
    return readings


def load_dataset(path: str | Path) -> LoadReport:
    """Load a comma-separated telemetry dataset.

    Args:
        path: CSV file path

    Returns:
        LoadReport with parsed readings and the malformed-row count

    Raises:
        DatasetLoadError: If the file is missing, unreadable, or has no data rows
    """
    path = Path(path)
    if not path.is_file():
        raise DatasetLoadError(f"Dataset not found: {path}", path=str(path))

    try:
        text = path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        raise DatasetLoadError(f"Failed to read dataset {path}: {e}", path=str(path)) from e

    lines = [line for line in text.splitlines() if line]
    if len(lines) < 2:
        raise DatasetLoadError(f"Dataset has no data rows: {path}", path=str(path))

    header = [h.strip().lower() for h in lines[0].split(",")]

    rows: list[list[str]] = []
    malformed = 0
    for line in lines[1:]:
        cols = line.split(",")
        if len(cols) != len(header):
            malformed += 1
            continue
        rows.append(cols)

    frame = pd.DataFrame(rows, columns=header, dtype="object")
    readings = readings_from_frame(frame)

    logger.info(
        "Loaded %s | rows=%d malformed=%d", path.name, len(readings), malformed,
    )
    logger.debug("Header: %s", header)
    if readings:
        logger.debug("Sample sensor ids: %s", [r.sensor_id for r in readings[:5]])

    return LoadReport(readings=readings, malformed=malformed, header=header, path=path)
