"""Reporting pipeline — aggregate tables → charts, HTML report, metrics.

Node dependency graph:
    <state table>, params:charts.<key> → [plot_<key>] → <key>_chart (PNG)
    summaries, state tables, params:charts, params:report
        → [render_report] → flood_report (HTML)
    summaries, params:tracking → [track_report_metrics] → report_metrics
"""

from kedro.pipeline import Pipeline, node, pipeline

from .nodes import CHART_TABLES, plot_state_ranking, render_report, track_report_metrics


def create_pipeline(**kwargs) -> Pipeline:  # noqa: ARG001
    """Create the reporting pipeline."""
    chart_nodes = [
        node(
            func=plot_state_ranking,
            inputs=[table_name, f"params:charts.{key}"],
            outputs=f"{key}_chart",
            name=f"plot_{key}",
        )
        for key, table_name in CHART_TABLES.items()
    ]

    return pipeline(
        [
            *chart_nodes,
            node(
                func=render_report,
                inputs={
                    "fema_summary": "fema_summary",
                    "noaa_summary": "noaa_summary",
                    "fema_incidents_by_state": "fema_incidents_by_state",
                    "noaa_incidents_by_state": "noaa_incidents_by_state",
                    "duration_by_state": "duration_by_state",
                    "loss_by_state": "loss_by_state",
                    "charts": "params:charts",
                    "report": "params:report",
                },
                outputs="flood_report",
                name="render_report",
            ),
            node(
                func=track_report_metrics,
                inputs=["fema_summary", "noaa_summary", "params:tracking"],
                outputs="report_metrics",
                name="track_report_metrics",
            ),
        ]
    )
