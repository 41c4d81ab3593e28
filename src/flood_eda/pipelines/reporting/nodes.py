"""Node functions for the reporting pipeline.

Turns the aggregate tables into ranked bar charts, a self-contained HTML
report, and a set of MLflow metrics so successive report runs can be
compared.

Flow:
    state tables → ranked bar charts (PNG)
    summaries + state tables → HTML report (charts inlined)
    summaries → MLflow metrics
"""

from __future__ import annotations

import base64
import html
import io
import logging
import math
from typing import Any

import matplotlib
import matplotlib.pyplot as plt
import mlflow
import pandas as pd

matplotlib.use("Agg")  # non-interactive backend for CI / headless runs

logger = logging.getLogger(__name__)

# Chart key in parameters.yml → report argument holding its table
CHART_TABLES: dict[str, str] = {
    "fema_incidents": "fema_incidents_by_state",
    "noaa_incidents": "noaa_incidents_by_state",
    "average_duration": "duration_by_state",
    "total_loss": "loss_by_state",
}


# ── helpers ─────────────────────────────────────────────────────
def _figure_to_base64(fig: plt.Figure) -> str:
    buffer = io.BytesIO()
    fig.savefig(buffer, format="png", dpi=120)
    return base64.b64encode(buffer.getvalue()).decode("ascii")


def _summary_to_html(summary: pd.DataFrame) -> str:
    """Render a one-row summary as a two-column metric/value table."""
    if summary.empty:
        return "<p>No records.</p>"

    row = summary.iloc[0]
    metrics = pd.DataFrame(
        {
            "metric": [col.replace("_", " ") for col in summary.columns],
            "value": [_format_value(row[col]) for col in summary.columns],
        }
    )
    return metrics.to_html(index=False, border=0, classes="summary")


def _format_value(value: Any) -> str:
    if value is None or (not isinstance(value, str) and pd.isna(value)):
        return "n/a"
    if isinstance(value, pd.Timestamp):
        return value.strftime("%Y-%m-%d")
    if isinstance(value, float):
        return f"{value:,.2f}"
    if isinstance(value, int) or hasattr(value, "dtype"):
        return f"{value:,}"
    return str(value)


# ── Node 1 ──────────────────────────────────────────────────────
def plot_state_ranking(table: pd.DataFrame, chart: dict[str, Any]) -> plt.Figure:
    """Draw a ranked bar chart of one per-state metric.

    Args:
        table: Per-state aggregate with a ``state`` column.
        chart: One entry of ``params:charts``: ``value_column``,
            ``title``, ``xlabel``, ``ylabel``, ``ascending`` and an
            optional ``top_n``.

    Returns:
        The matplotlib Figure, persisted by the catalog as a PNG.
    """
    value_column = chart["value_column"]
    ranked = table.sort_values(
        [value_column, "state"],
        ascending=[chart.get("ascending", False), True],
    )
    top_n = chart.get("top_n")
    if top_n:
        ranked = ranked.head(top_n)

    fig, ax = plt.subplots(figsize=(chart.get("width", 12), chart.get("height", 6)))
    ax.bar(
        ranked["state"].astype(str),
        ranked[value_column],
        color=chart.get("color", "#1a3a5c"),
    )
    ax.set_title(chart["title"])
    ax.set_xlabel(chart["xlabel"])
    ax.set_ylabel(chart["ylabel"])
    ax.tick_params(axis="x", labelrotation=90)
    ax.grid(axis="y", alpha=0.3, linestyle="--")
    fig.tight_layout()

    logger.info(
        "Chart '%s': %d bars, %s",
        chart["title"],
        len(ranked),
        "ascending" if chart.get("ascending", False) else "descending",
    )
    return fig


# ── Node 2 ──────────────────────────────────────────────────────
def render_report(
    fema_summary: pd.DataFrame,
    noaa_summary: pd.DataFrame,
    fema_incidents_by_state: pd.DataFrame,
    noaa_incidents_by_state: pd.DataFrame,
    duration_by_state: pd.DataFrame,
    loss_by_state: pd.DataFrame,
    charts: dict[str, dict[str, Any]],
    report: dict[str, Any],
) -> str:
    """Assemble the HTML report: summary tables followed by the charts.

    Charts are redrawn here and inlined as base64 PNGs so the report is
    a single file that opens anywhere.

    Args:
        fema_summary: One-row FEMA summary.
        noaa_summary: One-row NOAA summary.
        fema_incidents_by_state: FEMA declaration rows per state.
        noaa_incidents_by_state: NOAA flood events per state.
        duration_by_state: Average NOAA event duration per state.
        loss_by_state: FEMA total economic loss per state.
        charts: ``params:charts``.
        report: ``params:report`` with ``title`` and ``description``.

    Returns:
        The HTML document as a string.
    """
    tables = {
        "fema_incidents_by_state": fema_incidents_by_state,
        "noaa_incidents_by_state": noaa_incidents_by_state,
        "duration_by_state": duration_by_state,
        "loss_by_state": loss_by_state,
    }

    sections: list[str] = []
    for key, table_name in CHART_TABLES.items():
        chart = charts[key]
        fig = plot_state_ranking(tables[table_name], chart)
        encoded = _figure_to_base64(fig)
        plt.close(fig)
        sections.append(
            f"<h2>{html.escape(chart['title'])}</h2>\n"
            f'<img alt="{html.escape(chart["title"])}" '
            f'src="data:image/png;base64,{encoded}"/>'
        )

    title = html.escape(report["title"])
    document = "\n".join(
        [
            "<!DOCTYPE html>",
            "<html>",
            "<head>",
            '<meta charset="utf-8"/>',
            f"<title>{title}</title>",
            "</head>",
            "<body>",
            f"<h1>{title}</h1>",
            f"<p>{html.escape(report.get('description', ''))}</p>",
            "<h2>FEMA flood declarations</h2>",
            _summary_to_html(fema_summary),
            "<h2>NOAA flood events</h2>",
            _summary_to_html(noaa_summary),
            *sections,
            "</body>",
            "</html>",
        ]
    )

    logger.info(
        "Report rendered: %d charts, %s characters",
        len(sections),
        f"{len(document):,}",
    )
    return document


# ── Node 3 ──────────────────────────────────────────────────────
def track_report_metrics(
    fema_summary: pd.DataFrame,
    noaa_summary: pd.DataFrame,
    tracking: dict[str, Any],
) -> dict[str, float]:
    """Log the numeric summary figures to MLflow.

    Dates go in as params, everything numeric as metrics. The tracking
    URI comes from ``MLFLOW_TRACKING_URI``; without it MLflow uses its
    own default store (``mlflow.db`` or ``./mlruns`` in the working
    directory, depending on the MLflow version).

    Args:
        fema_summary: One-row FEMA summary.
        noaa_summary: One-row NOAA summary.
        tracking: ``params:tracking`` with ``experiment_name`` and
            ``run_name``.

    Returns:
        The metrics that were logged.
    """
    metrics: dict[str, float] = {}
    params: dict[str, str] = {}
    for prefix, summary in (("fema", fema_summary), ("noaa", noaa_summary)):
        if summary.empty:
            continue
        for col, value in summary.iloc[0].items():
            name = f"{prefix}_{col}"
            if isinstance(value, pd.Timestamp) or pd.isna(value):
                params[name] = _format_value(value)
            elif not math.isfinite(float(value)):
                params[name] = "n/a"
            else:
                metrics[name] = float(value)

    mlflow.set_experiment(tracking["experiment_name"])
    with mlflow.start_run(run_name=tracking.get("run_name")):
        mlflow.log_metrics(metrics)
        mlflow.log_params(params)

    logger.info(
        "Logged %d metrics and %d params to MLflow experiment '%s'",
        len(metrics),
        len(params),
        tracking["experiment_name"],
    )
    return metrics
