"""Cleaned → aggregate nodes for the flood report.

Turns the cleaned FEMA and NOAA tables into per-state ranking tables
and one-row summary tables:

    count  → incidents per state (either source)
    loss   → FEMA total economic loss per state
    duration → NOAA average event duration per state
    summarize → report-wide scalars
"""

from __future__ import annotations

import logging

import pandas as pd

from flood_eda.pipelines.data_processing.nodes import OBLIGATED_COLUMNS

logger = logging.getLogger(__name__)


# ── Node 1 ───────────────────────────────────────────────────────
def count_incidents_by_state(df: pd.DataFrame) -> pd.DataFrame:
    """Count rows per state, most incidents first.

    No deduplication: a FEMA disaster covering three designated areas
    in one state counts three times.

    Args:
        df: Cleaned FEMA declarations or NOAA flood events.

    Returns:
        DataFrame with ``state`` and ``incident_count``.
    """
    counts = (
        df.groupby("state", as_index=False, dropna=False)
        .size()
        .rename(columns={"size": "incident_count"})
        .sort_values(["incident_count", "state"], ascending=[False, True])
        .reset_index(drop=True)
    )
    counts["incident_count"] = counts["incident_count"].astype("int64")

    logger.info(
        "Incident counts: %s states, %s rows (top: %s)",
        f"{len(counts):,}",
        f"{counts['incident_count'].sum():,}",
        counts.head(3).set_index("state")["incident_count"].to_dict(),
    )
    return counts


# ── Node 2 ───────────────────────────────────────────────────────
def total_loss_by_state(declarations: pd.DataFrame) -> pd.DataFrame:
    """Sum ``total_economic_loss`` per state, largest first.

    Args:
        declarations: Cleaned FEMA declarations.

    Returns:
        DataFrame with ``state`` and ``total_economic_loss``.
    """
    losses = (
        declarations.groupby("state", as_index=False, dropna=False)
        .agg(total_economic_loss=("total_economic_loss", "sum"))
        .sort_values(["total_economic_loss", "state"], ascending=[False, True])
        .reset_index(drop=True)
    )
    # No reported amount = $0
    losses["total_economic_loss"] = losses["total_economic_loss"].fillna(0.0)

    logger.info(
        "Total loss by state: %s states, $%s overall",
        f"{len(losses):,}",
        f"{losses['total_economic_loss'].sum():,.0f}",
    )
    return losses


# ── Node 3 ───────────────────────────────────────────────────────
def average_duration_by_state(storm_events: pd.DataFrame) -> pd.DataFrame:
    """Average ``duration_days`` per state over events with both dates.

    States where no event has a computable duration are left out rather
    than reported as zero.

    Args:
        storm_events: Cleaned NOAA flood events.

    Returns:
        DataFrame with ``state`` and ``average_duration_days``.
    """
    dated = storm_events.dropna(subset=["duration_days"])
    n_skipped = len(storm_events) - len(dated)
    if n_skipped > 0:
        logger.warning(
            "Duration: skipped %s events without begin or end date",
            f"{n_skipped:,}",
        )

    durations = (
        dated.groupby("state", as_index=False)
        .agg(average_duration_days=("duration_days", "mean"))
        .sort_values(["average_duration_days", "state"], ascending=[False, True])
        .reset_index(drop=True)
    )

    logger.info(
        "Average duration: %s states, longest %s",
        f"{len(durations):,}",
        durations.head(3).set_index("state")["average_duration_days"].round(2).to_dict(),
    )
    return durations


# ── Node 4 ───────────────────────────────────────────────────────
def summarize_declarations(declarations: pd.DataFrame) -> pd.DataFrame:
    """Compute the headline FEMA figures as a one-row table.

    Financial assistance is the four obligated amounts summed per row;
    the total adds that up over every declaration row and the average
    is its per-row mean.

    Args:
        declarations: Cleaned FEMA declarations.

    Returns:
        One-row DataFrame of report-wide scalars.
    """
    assistance = declarations[OBLIGATED_COLUMNS].sum(axis=1, min_count=0)

    summary = pd.DataFrame(
        [
            {
                "declaration_rows": len(declarations),
                "distinct_disasters": declarations["disasterNumber"].nunique(),
                "distinct_states": declarations["state"].nunique(),
                "earliest_incident_begin": declarations["incidentBeginDate"].min(),
                "latest_incident_end": declarations["incidentEndDate"].max(),
                "total_financial_assistance": float(assistance.sum()),
                "average_financial_assistance": (
                    float(assistance.mean()) if len(assistance) else 0.0
                ),
            }
        ]
    )

    row = summary.iloc[0]
    logger.info(
        "FEMA summary: %s disasters across %s states, %s to %s, "
        "$%s total assistance",
        f"{row['distinct_disasters']:,}",
        row["distinct_states"],
        row["earliest_incident_begin"],
        row["latest_incident_end"],
        f"{row['total_financial_assistance']:,.0f}",
    )
    return summary


# ── Node 5 ───────────────────────────────────────────────────────
def summarize_storm_events(storm_events: pd.DataFrame) -> pd.DataFrame:
    """Compute the headline NOAA flood figures as a one-row table.

    Args:
        storm_events: Cleaned NOAA flood events.

    Returns:
        One-row DataFrame of report-wide scalars.
    """
    summary = pd.DataFrame(
        [
            {
                "flood_events": len(storm_events),
                "flood_episodes": storm_events["episode_id"].nunique(),
                "states_affected": storm_events["state"].nunique(),
                "first_event_date": storm_events["begin_date"].min(),
                "last_event_date": storm_events["end_date"].max(),
                "total_property_damage": float(
                    storm_events["damage_property_dollars"].sum()
                ),
                "total_crop_damage": float(storm_events["damage_crops_dollars"].sum()),
                "total_injuries": int(
                    storm_events[["injuries_direct", "injuries_indirect"]].sum().sum()
                ),
                "total_deaths": int(
                    storm_events[["deaths_direct", "deaths_indirect"]].sum().sum()
                ),
            }
        ]
    )

    row = summary.iloc[0]
    logger.info(
        "NOAA summary: %s flood events in %s states, $%s property damage, "
        "%s deaths",
        f"{row['flood_events']:,}",
        row["states_affected"],
        f"{row['total_property_damage']:,.0f}",
        row["total_deaths"],
    )
    return summary
