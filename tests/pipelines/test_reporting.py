"""Tests for chart rendering, the HTML report and MLflow tracking."""

import contextlib

import matplotlib.pyplot as plt
import numpy as np
import pandas as pd
import pytest

from flood_eda.pipelines.reporting import nodes
from flood_eda.pipelines.reporting.nodes import (
    plot_state_ranking,
    render_report,
    track_report_metrics,
)


def _chart(value_column, **overrides):
    chart = {
        "value_column": value_column,
        "title": "Flood Declarations by State",
        "xlabel": "State",
        "ylabel": "Count",
        "ascending": False,
    }
    chart.update(overrides)
    return chart


@pytest.fixture()
def counts():
    return pd.DataFrame({"state": ["CA", "TX", "LA"], "incident_count": [1, 5, 3]})


@pytest.fixture()
def fema_summary():
    return pd.DataFrame(
        [
            {
                "declaration_rows": 3,
                "distinct_disasters": 2,
                "distinct_states": 2,
                "earliest_incident_begin": pd.Timestamp("2020-04-18"),
                "latest_incident_end": pd.Timestamp("2021-01-29"),
                "total_financial_assistance": 150.0,
                "average_financial_assistance": 50.0,
            }
        ]
    )


@pytest.fixture()
def noaa_summary():
    return pd.DataFrame(
        [
            {
                "flood_events": 4,
                "flood_episodes": 3,
                "states_affected": 3,
                "first_event_date": pd.Timestamp("2020-06-05"),
                "last_event_date": pd.NaT,
                "total_property_damage": 26_000.0,
                "total_crop_damage": 500.0,
                "total_injuries": 3,
                "total_deaths": 1,
            }
        ]
    )


# ── Test 1: Charts ───────────────────────────────────────────────
class TestPlotStateRanking:
    def test_descending_order(self, counts):
        fig = plot_state_ranking(counts, _chart("incident_count"))
        ax = fig.axes[0]

        assert [bar.get_height() for bar in ax.patches] == [5, 3, 1]
        assert ax.get_title() == "Flood Declarations by State"
        assert ax.get_xlabel() == "State"
        assert ax.get_ylabel() == "Count"
        plt.close(fig)

    def test_ascending_order_and_top_n(self, counts):
        fig = plot_state_ranking(counts, _chart("incident_count", ascending=True, top_n=2))
        ax = fig.axes[0]

        assert [bar.get_height() for bar in ax.patches] == [1, 3]
        plt.close(fig)


# ── Test 2: HTML report ──────────────────────────────────────────
class TestRenderReport:
    @pytest.fixture()
    def charts(self):
        return {
            "fema_incidents": _chart("incident_count", title="FEMA by State"),
            "noaa_incidents": _chart("incident_count", title="NOAA by State"),
            "average_duration": _chart("average_duration_days", title="Duration by State"),
            "total_loss": _chart("total_economic_loss", title="Loss by State"),
        }

    def test_report_embeds_summaries_and_charts(self, counts, fema_summary, noaa_summary, charts):
        document = render_report(
            fema_summary=fema_summary,
            noaa_summary=noaa_summary,
            fema_incidents_by_state=counts,
            noaa_incidents_by_state=counts.assign(state=["OHIO", "TEXAS", "IOWA"]),
            duration_by_state=pd.DataFrame(
                {"state": ["TEXAS"], "average_duration_days": [2.0]}
            ),
            loss_by_state=pd.DataFrame(
                {"state": ["TX", "CA"], "total_economic_loss": [100.0, 50.0]}
            ),
            charts=charts,
            report={"title": "Floods & Losses", "description": "Test run"},
        )

        assert document.startswith("<!DOCTYPE html>")
        assert "<h1>Floods &amp; Losses</h1>" in document
        assert document.count("data:image/png;base64,") == 4
        for title in ("FEMA by State", "NOAA by State", "Duration by State", "Loss by State"):
            assert f"<h2>{title}</h2>" in document
        assert "total financial assistance" in document
        assert "150.00" in document
        assert "2020-04-18" in document
        assert "n/a" in document


# ── Test 3: MLflow tracking ──────────────────────────────────────
class TestTrackReportMetrics:
    @pytest.fixture()
    def fake_mlflow(self, monkeypatch):
        """Record what would be sent to MLflow instead of writing ./mlruns."""
        calls = {}

        def start_run(run_name=None):
            calls["run_name"] = run_name
            return contextlib.nullcontext()

        monkeypatch.setattr(
            nodes.mlflow, "set_experiment", lambda name: calls.update(experiment=name)
        )
        monkeypatch.setattr(nodes.mlflow, "start_run", start_run)
        monkeypatch.setattr(
            nodes.mlflow, "log_metrics", lambda metrics: calls.update(metrics=metrics)
        )
        monkeypatch.setattr(
            nodes.mlflow, "log_params", lambda params: calls.update(params=params)
        )
        return calls

    def test_numbers_become_metrics_and_dates_params(self, fake_mlflow, fema_summary, noaa_summary):
        metrics = track_report_metrics(
            fema_summary,
            noaa_summary,
            {"experiment_name": "flood_eda", "run_name": "test"},
        )

        assert fake_mlflow["experiment"] == "flood_eda"
        assert fake_mlflow["run_name"] == "test"
        assert metrics["fema_total_financial_assistance"] == 150.0
        assert metrics["noaa_flood_events"] == 4.0
        assert fake_mlflow["metrics"] == metrics
        assert fake_mlflow["params"]["fema_earliest_incident_begin"] == "2020-04-18"
        assert fake_mlflow["params"]["noaa_last_event_date"] == "n/a"

    def test_non_finite_values_are_not_logged_as_metrics(
        self, fake_mlflow, fema_summary, noaa_summary
    ):
        fema_summary["average_financial_assistance"] = np.inf

        metrics = track_report_metrics(
            fema_summary,
            noaa_summary,
            {"experiment_name": "flood_eda", "run_name": "test"},
        )

        assert "fema_average_financial_assistance" not in metrics
        assert fake_mlflow["params"]["fema_average_financial_assistance"] == "n/a"
