"""Tests for the state-level aggregation and summary nodes."""

import numpy as np
import pandas as pd
import pytest

from flood_eda.pipelines.data_processing.nodes import (
    LOSS_COLUMNS,
    clean_declarations,
    filter_flood_declarations,
    join_disaster_summaries,
)
from flood_eda.pipelines.flood_statistics.nodes import (
    average_duration_by_state,
    count_incidents_by_state,
    summarize_declarations,
    summarize_storm_events,
    total_loss_by_state,
)


@pytest.fixture()
def declarations():
    """Cleaned FEMA rows: two TX areas under one disaster, one CA row."""
    frame = pd.DataFrame(
        {
            "disasterNumber": [4001, 4001, 4003],
            "state": ["TX", "TX", "CA"],
            "designatedArea": ["Harris (County)", "Fort Bend (County)", "Sonoma (County)"],
            "incidentBeginDate": pd.to_datetime(["2020-04-20", "2020-04-18", None]),
            "incidentEndDate": pd.to_datetime(["2020-04-25", None, "2021-01-29"]),
        }
    )
    for col in LOSS_COLUMNS:
        frame[col] = 0.0
    frame[["totalAmountIhpApproved", "totalAmountHaApproved", "totalAmountOnaApproved"]] = np.nan
    frame["totalObligatedAmountPa"] = [100.0, 0.0, 50.0]
    frame["totalObligatedAmountHmgp"] = [10.0, 0.0, 0.0]
    frame["total_economic_loss"] = frame[LOSS_COLUMNS].sum(axis=1)
    return frame


@pytest.fixture()
def storm_events():
    return pd.DataFrame(
        {
            "episode_id": [10, 10, 20, 30],
            "event_id": [1, 2, 3, 4],
            "state": ["TEXAS", "TEXAS", "OHIO", "IOWA"],
            "begin_date": pd.to_datetime(["2020-06-05", "2020-06-10", "2021-03-01", "2021-04-01"]),
            "end_date": pd.to_datetime(["2020-06-08", "2020-06-11", "2021-03-05", None]),
            "duration_days": [3.0, 1.0, 4.0, np.nan],
            "injuries_direct": [1, 0, 0, 0],
            "injuries_indirect": [0, 2, 0, 0],
            "deaths_direct": [0, 0, 1, 0],
            "deaths_indirect": [0, 0, 0, np.nan],
            "damage_property_dollars": [25_000.0, np.nan, 1_000.0, 0.0],
            "damage_crops_dollars": [0.0, 0.0, np.nan, 500.0],
        }
    )


# ── Test 1: Incident counts ──────────────────────────────────────
class TestIncidentCounts:
    def test_counts_every_designated_area(self, declarations):
        counts = count_incidents_by_state(declarations)

        assert counts.set_index("state")["incident_count"].to_dict() == {"TX": 2, "CA": 1}

    def test_counts_sum_to_row_count(self, declarations, storm_events):
        for table in (declarations, storm_events):
            counts = count_incidents_by_state(table)
            assert counts["incident_count"].sum() == len(table)

    def test_sorted_most_incidents_first(self, storm_events):
        counts = count_incidents_by_state(storm_events)

        assert counts["state"].tolist() == ["TEXAS", "IOWA", "OHIO"]


# ── Test 2: Economic loss ────────────────────────────────────────
class TestLossByState:
    def test_loss_per_state(self, declarations):
        losses = total_loss_by_state(declarations).set_index("state")["total_economic_loss"]

        assert losses.to_dict() == {"TX": 110.0, "CA": 50.0}

    def test_loss_is_non_negative_and_sums_to_total(self, declarations):
        losses = total_loss_by_state(declarations)

        assert (losses["total_economic_loss"] >= 0).all()
        assert losses["total_economic_loss"].sum() == pytest.approx(
            declarations[LOSS_COLUMNS].fillna(0).to_numpy().sum()
        )

    def test_tx_ca_scenario_end_to_end(self):
        """Two TX floods (100 and nothing) plus one CA flood (50)."""
        raw = pd.DataFrame(
            {
                "disasterNumber": [4001, 4002, 4003],
                "state": ["TX", "TX", "CA"],
                "declarationType": ["DR", "DR", "DR"],
                "declarationDate": [
                    "2020-05-01T00:00:00.000Z",
                    "2020-06-01T00:00:00.000Z",
                    "2021-02-01T00:00:00.000Z",
                ],
                "incidentType": ["Flood", "Flood", "Flood"],
                "declarationTitle": ["FLOODING"] * 3,
                "incidentBeginDate": ["2020-04-20T00:00:00.000Z"] * 3,
                "incidentEndDate": ["2020-04-25T00:00:00.000Z"] * 3,
                "designatedArea": ["Harris (County)", "Fort Bend (County)", "Sonoma (County)"],
            }
        )
        summaries = pd.DataFrame(
            {
                "disasterNumber": [4001, 4002, 4003],
                **{col: [np.nan, np.nan, np.nan] for col in LOSS_COLUMNS},
            }
        )
        summaries["totalObligatedAmountPa"] = [100.0, np.nan, 50.0]
        columns = ["disasterNumber", "state", "incidentBeginDate", "incidentEndDate",
                   *LOSS_COLUMNS, "total_economic_loss"]

        floods = filter_flood_declarations(
            raw, {"incident_type": "Flood", "declaration_years": [2020, 2021]}
        )
        cleaned = clean_declarations(join_disaster_summaries(floods, summaries), columns)

        losses = total_loss_by_state(cleaned).set_index("state")["total_economic_loss"]
        summary = summarize_declarations(cleaned).iloc[0]

        assert losses.to_dict() == {"TX": 100.0, "CA": 50.0}
        assert summary["total_financial_assistance"] == 150.0


# ── Test 3: Duration ─────────────────────────────────────────────
class TestAverageDuration:
    def test_average_ignores_undated_events(self, storm_events):
        durations = average_duration_by_state(storm_events).set_index("state")

        assert durations.loc["TEXAS", "average_duration_days"] == pytest.approx(2.0)
        assert durations.loc["OHIO", "average_duration_days"] == pytest.approx(4.0)

    def test_state_without_any_duration_is_excluded(self, storm_events):
        durations = average_duration_by_state(storm_events)

        assert "IOWA" not in durations["state"].tolist()


# ── Test 4: Summaries ────────────────────────────────────────────
class TestSummaries:
    def test_declaration_summary(self, declarations):
        summary = summarize_declarations(declarations).iloc[0]

        assert summary["declaration_rows"] == 3
        assert summary["distinct_disasters"] == 2
        assert summary["distinct_states"] == 2
        assert summary["earliest_incident_begin"] == pd.Timestamp("2020-04-18")
        assert summary["latest_incident_end"] == pd.Timestamp("2021-01-29")
        assert summary["total_financial_assistance"] == 160.0
        assert summary["average_financial_assistance"] == pytest.approx(160.0 / 3)

    def test_distinct_disasters_never_exceed_rows(self, declarations):
        summary = summarize_declarations(declarations).iloc[0]

        assert summary["distinct_disasters"] <= summary["declaration_rows"]

    def test_empty_declarations(self, declarations):
        summary = summarize_declarations(declarations.iloc[0:0]).iloc[0]

        assert summary["declaration_rows"] == 0
        assert summary["total_financial_assistance"] == 0.0
        assert summary["average_financial_assistance"] == 0.0
        assert pd.isna(summary["earliest_incident_begin"])

    def test_storm_event_summary(self, storm_events):
        summary = summarize_storm_events(storm_events).iloc[0]

        assert summary["flood_events"] == 4
        assert summary["flood_episodes"] == 3
        assert summary["states_affected"] == 3
        assert summary["first_event_date"] == pd.Timestamp("2020-06-05")
        assert summary["last_event_date"] == pd.Timestamp("2021-03-05")
        assert summary["total_property_damage"] == 26_000.0
        assert summary["total_crop_damage"] == 500.0
        assert summary["total_injuries"] == 3
        assert summary["total_deaths"] == 1
