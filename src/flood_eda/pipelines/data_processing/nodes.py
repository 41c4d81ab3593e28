"""Raw → cleaned transformation nodes for FEMA declarations and NOAA floods.

Each function is a Kedro node: pure input → output, no side effects.
Together they form the data_processing pipeline that reads the four raw
CSVs (two FEMA tables, two yearly NOAA storm-event tables), restricts
both sides to 2020–2021 floods, joins FEMA declarations to their
assistance summaries, and produces two cleaned, typed tables.
"""

from __future__ import annotations

import logging
import re
from pathlib import Path
from typing import Any

import pandas as pd

logger = logging.getLogger(__name__)

# ── Expected raw headers ─────────────────────────────────────────────
DECLARATION_COLUMNS: list[str] = [
    "disasterNumber",
    "state",
    "declarationType",
    "declarationDate",
    "incidentType",
    "declarationTitle",
    "incidentBeginDate",
    "incidentEndDate",
    "designatedArea",
]

# Everything that goes into total economic loss
LOSS_COLUMNS: list[str] = [
    "totalAmountIhpApproved",
    "totalAmountHaApproved",
    "totalAmountOnaApproved",
    "totalObligatedAmountPa",
    "totalObligatedAmountCatAb",
    "totalObligatedAmountCatC2g",
    "totalObligatedAmountHmgp",
]

# Only these are zero-filled; the IHP/HA/ONA amounts stay missing.
OBLIGATED_COLUMNS: list[str] = [
    "totalObligatedAmountPa",
    "totalObligatedAmountCatAb",
    "totalObligatedAmountCatC2g",
    "totalObligatedAmountHmgp",
]

SUMMARY_COLUMNS: list[str] = ["disasterNumber", *LOSS_COLUMNS]

DATE_COLUMNS: list[str] = [
    "declarationDate",
    "incidentBeginDate",
    "incidentEndDate",
]

# NOAA headers, lower-cased on load
STORM_EVENT_COLUMNS: list[str] = [
    "episode_id",
    "event_id",
    "begin_yearmonth",
    "begin_day",
    "end_yearmonth",
    "end_day",
    "state",
    "event_type",
    "injuries_direct",
    "injuries_indirect",
    "deaths_direct",
    "deaths_indirect",
    "damage_property",
    "damage_crops",
    "flood_cause",
]

CASUALTY_COLUMNS: list[str] = [
    "injuries_direct",
    "injuries_indirect",
    "deaths_direct",
    "deaths_indirect",
]

# ── Multipliers for damage strings like "25.00K", "1.50M" ───────────
_DAMAGE_MULTIPLIERS: dict[str, float] = {
    "K": 1_000,
    "M": 1_000_000,
    "B": 1_000_000_000,
}

_DAMAGE_PATTERN: re.Pattern = re.compile(
    r"^\s*([\d.]+)\s*([KMBkmb])?\s*$"
)


# ── Helpers ──────────────────────────────────────────────────────────
def _read_csv(path: str | Path) -> pd.DataFrame:
    """Read one raw CSV, failing loudly if it is not there."""
    csv_file = Path(path)
    if not csv_file.is_file():
        raise FileNotFoundError(f"Input file not found: {csv_file}")

    df = pd.read_csv(csv_file, low_memory=False)
    logger.info(
        "  Loaded %s: %s rows, %s columns",
        csv_file.name,
        f"{len(df):,}",
        len(df.columns),
    )
    return df


def _require_columns(df: pd.DataFrame, expected: list[str], table: str) -> None:
    missing = [c for c in expected if c not in df.columns]
    if missing:
        raise KeyError(f"Expected columns not found in {table}: {missing}")


def _coerce_numeric(df: pd.DataFrame, columns: list[str]) -> pd.DataFrame:
    """Convert columns to numbers in place, malformed values become NaN."""
    for col in columns:
        parsed = pd.to_numeric(df[col], errors="coerce")
        unparseable = df[col].notna() & parsed.isna()
        if unparseable.any():
            logger.warning(
                "%s: %s values could not be parsed as numbers. Samples: %s",
                col,
                f"{unparseable.sum():,}",
                list(df.loc[unparseable, col].unique()[:10]),
            )
        df[col] = parsed
    return df


def _parse_declaration_date(values: pd.Series) -> pd.Series:
    """OpenFEMA timestamps ("2020-03-13T00:00:00.000Z") → tz-naive dates."""
    parsed = pd.to_datetime(values, format="ISO8601", errors="coerce", utc=True)
    return parsed.dt.tz_convert(None).dt.normalize()


def _compose_date(yearmonth: pd.Series, day: pd.Series) -> pd.Series:
    """Rebuild a calendar date from NOAA's YYYYMM integer plus day of month.

    Example: yearmonth=202006, day=5 → 2020-06-05
    """
    stamp = pd.to_numeric(yearmonth, errors="coerce") * 100 + pd.to_numeric(
        day, errors="coerce"
    )
    text = stamp.map(lambda v: f"{v:.0f}" if pd.notna(v) else None)
    return pd.to_datetime(text, format="%Y%m%d", errors="coerce")


def _parse_single_damage(value: object) -> float | None:
    """Convert a single damage string like '25.00K' to a float.

    Returns None if the value cannot be parsed.
    """
    if pd.isna(value):
        return None

    text = str(value).strip()
    if text == "" or text.lower() == "nan":
        return None

    match = _DAMAGE_PATTERN.match(text)
    if match:
        try:
            number = float(match.group(1))
        except ValueError:
            return None
        suffix = match.group(2)
        if suffix:
            number *= _DAMAGE_MULTIPLIERS[suffix.upper()]
        return number

    try:
        return float(text)
    except (ValueError, TypeError):
        return None


# ── Node 1 ───────────────────────────────────────────────────────────
def load_fema_tables(raw_data: dict[str, Any]) -> tuple[pd.DataFrame, pd.DataFrame]:
    """Read the FEMA declarations and disaster-summary CSVs.

    Args:
        raw_data: ``params:raw_data`` with ``fema_declarations`` and
            ``fema_summaries`` file paths.

    Returns:
        (declarations, summaries) exactly as read.

    Raises:
        FileNotFoundError: if either file is missing.
        KeyError: if either table lacks an expected header.
    """
    logger.info("Loading FEMA tables")
    declarations = _read_csv(raw_data["fema_declarations"])
    summaries = _read_csv(raw_data["fema_summaries"])

    _require_columns(declarations, DECLARATION_COLUMNS, "FEMA declarations")
    _require_columns(summaries, SUMMARY_COLUMNS, "FEMA disaster summaries")
    return declarations, summaries


# ── Node 2 ───────────────────────────────────────────────────────────
def load_storm_events(raw_data: dict[str, Any]) -> pd.DataFrame:
    """Read every yearly NOAA storm-event CSV and concatenate them.

    Adds a ``source_file`` column so every row is traceable to its
    origin file.

    Args:
        raw_data: ``params:raw_data`` with a ``storm_events`` list of paths.

    Returns:
        Combined DataFrame with lower-cased headers.
    """
    paths = raw_data["storm_events"]
    if not paths:
        raise FileNotFoundError("No storm-event files configured in raw_data")

    logger.info("Loading %d NOAA storm-event files", len(paths))

    frames: list[pd.DataFrame] = []
    for path in paths:
        df = _read_csv(path)
        df.columns = df.columns.str.lower()  # BEGIN_YEARMONTH → begin_yearmonth
        _require_columns(df, STORM_EVENT_COLUMNS, Path(path).name)
        df["source_file"] = Path(path).name
        frames.append(df)

    combined = pd.concat(frames, ignore_index=True)
    logger.info(
        "Combined storm events: %s rows, %s columns",
        f"{len(combined):,}",
        len(combined.columns),
    )
    return combined


# ── Node 3 ───────────────────────────────────────────────────────────
def filter_flood_declarations(
    declarations: pd.DataFrame,
    filters: dict[str, Any],
) -> pd.DataFrame:
    """Keep flood declarations made in the configured years.

    The year comes from ``declarationDate``; rows whose date cannot be
    parsed never match. The raw values are left untouched so the filter
    can be re-applied to its own output with no change.

    Args:
        declarations: Raw FEMA declarations.
        filters: ``params:filters`` with ``incident_type`` and
            ``declaration_years``.

    Returns:
        Filtered copy of the declarations.
    """
    total = len(declarations)
    declared = pd.to_datetime(
        declarations["declarationDate"], format="ISO8601", errors="coerce", utc=True
    )
    mask = (declarations["incidentType"] == filters["incident_type"]) & (
        declared.dt.year.isin(filters["declaration_years"])
    )
    floods = declarations[mask].copy()

    logger.info(
        "Declaration filter (%s, %s): kept %s of %s rows",
        filters["incident_type"],
        filters["declaration_years"],
        f"{len(floods):,}",
        f"{total:,}",
    )
    return floods


# ── Node 4 ───────────────────────────────────────────────────────────
def join_disaster_summaries(
    declarations: pd.DataFrame,
    summaries: pd.DataFrame,
) -> pd.DataFrame:
    """Left-join declarations to disaster summaries on ``disasterNumber``.

    Every declaration row is preserved; declarations with no summary get
    null amounts. No deduplication happens on either side, so a repeated
    disaster number yields every matching pair.

    Args:
        declarations: Filtered flood declarations.
        summaries: Raw FEMA disaster summaries.

    Returns:
        Joined DataFrame with the seven monetary columns added.
    """
    amounts = summaries[SUMMARY_COLUMNS]
    joined = declarations.merge(amounts, on="disasterNumber", how="left")

    matched = joined["disasterNumber"].isin(amounts["disasterNumber"]).sum()
    logger.info(
        "Joined summaries: %s rows (%s with a matching summary, %s without)",
        f"{len(joined):,}",
        f"{matched:,}",
        f"{len(joined) - matched:,}",
    )
    return joined


# ── Node 5 ───────────────────────────────────────────────────────────
def clean_declarations(
    df: pd.DataFrame,
    columns: list[str],
) -> pd.DataFrame:
    """Type the joined declarations and derive ``total_economic_loss``.

    - Date columns are parsed to calendar dates (NaT when malformed).
    - Monetary columns are coerced to numbers (NaN when malformed).
    - ``total_economic_loss`` sums all seven monetary columns with NaN
      counted as zero, so a row with no amounts at all is 0.
    - Only the four obligated-amount columns are zero-filled.

    Args:
        df: Joined declarations.
        columns: ``params:fema_columns``, the output projection.

    Returns:
        Cleaned declarations limited to ``columns``.
    """
    df = df.copy()

    for col in DATE_COLUMNS:
        parsed = _parse_declaration_date(df[col])
        n_bad = (df[col].notna() & parsed.isna()).sum()
        if n_bad > 0:
            logger.warning(
                "%s: %s values could not be parsed to dates",
                col,
                f"{n_bad:,}",
            )
        df[col] = parsed

    df = _coerce_numeric(df, LOSS_COLUMNS)
    df["total_economic_loss"] = df[LOSS_COLUMNS].sum(axis=1, skipna=True, min_count=0)
    df[OBLIGATED_COLUMNS] = df[OBLIGATED_COLUMNS].fillna(0.0)

    _require_columns(df, columns, "cleaned declarations")
    cleaned = df[columns].copy()

    logger.info(
        "Cleaned declarations: %s rows, %d columns, total loss $%s",
        f"{len(cleaned):,}",
        len(cleaned.columns),
        f"{df['total_economic_loss'].sum():,.0f}",
    )
    return cleaned


# ── Node 6 ───────────────────────────────────────────────────────────
def filter_flood_events(
    storm_events: pd.DataFrame,
    filters: dict[str, Any],
) -> pd.DataFrame:
    """Keep only storm events whose ``event_type`` is the flood type.

    Args:
        storm_events: Combined yearly storm events.
        filters: ``params:filters`` with ``event_type``.

    Returns:
        Filtered copy; persisted as the intermediate flood CSV.
    """
    total = len(storm_events)
    floods = storm_events[storm_events["event_type"] == filters["event_type"]].copy()

    type_counts = storm_events["event_type"].value_counts().head(10).to_dict()
    logger.info(
        "Top event types: %s",
        {k: f"{v:,}" for k, v in type_counts.items()},
    )
    logger.info(
        "Event filter (%s): kept %s of %s rows",
        filters["event_type"],
        f"{len(floods):,}",
        f"{total:,}",
    )
    return floods


# ── Node 7 ───────────────────────────────────────────────────────────
def clean_storm_events(
    df: pd.DataFrame,
    columns: list[str],
) -> pd.DataFrame:
    """Rebuild event dates, derive duration, and parse damage strings.

    NOAA splits dates into ``begin_yearmonth`` (e.g. 202006) and
    ``begin_day`` (e.g. 5). These become ``begin_date`` / ``end_date``;
    ``duration_days`` is the whole-day difference and stays NaN when
    either date is missing.

    Damage is encoded as "25.00K" / "1.50M" strings and is parsed into
    ``damage_property_dollars`` and ``damage_crops_dollars``.

    Args:
        df: Flood storm events.
        columns: ``params:noaa_columns``, the output projection.

    Returns:
        Cleaned storm events limited to ``columns``.
    """
    df = df.copy()

    df["begin_date"] = _compose_date(df["begin_yearmonth"], df["begin_day"])
    df["end_date"] = _compose_date(df["end_yearmonth"], df["end_day"])
    df["duration_days"] = (df["end_date"] - df["begin_date"]).dt.days

    n_undated = (df["begin_date"].isna() | df["end_date"].isna()).sum()
    if n_undated > 0:
        logger.warning(
            "%s events have no usable begin or end date",
            f"{n_undated:,}",
        )

    for col, new_col in [
        ("damage_property", "damage_property_dollars"),
        ("damage_crops", "damage_crops_dollars"),
    ]:
        parsed = df[col].apply(_parse_single_damage).astype("float64")
        unparseable = df[col].notna() & parsed.isna()
        if unparseable.any():
            logger.warning(
                "%s: %s of %s non-null values could not be parsed. Samples: %s",
                col,
                f"{unparseable.sum():,}",
                f"{df[col].notna().sum():,}",
                list(df.loc[unparseable, col].unique()[:10]),
            )
        df[new_col] = parsed

    df = _coerce_numeric(df, CASUALTY_COLUMNS)

    _require_columns(df, columns, "cleaned storm events")
    cleaned = df[columns].copy()

    logger.info(
        "Cleaned storm events: %s rows, %d columns",
        f"{len(cleaned):,}",
        len(cleaned.columns),
    )
    return cleaned
