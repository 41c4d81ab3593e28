"""Cleaned → aggregate pipeline for the flood report.

Node dependency graph:
    fema_floods_clean → [count_fema_incidents_by_state] → fema_incidents_by_state
    noaa_floods_clean → [count_noaa_incidents_by_state] → noaa_incidents_by_state
    fema_floods_clean → [total_loss_by_state]           → loss_by_state
    noaa_floods_clean → [average_duration_by_state]     → duration_by_state
    fema_floods_clean → [summarize_declarations]        → fema_summary
    noaa_floods_clean → [summarize_storm_events]        → noaa_summary

None of the nodes depend on each other.
"""

from kedro.pipeline import Pipeline, node, pipeline

from .nodes import (
    average_duration_by_state,
    count_incidents_by_state,
    summarize_declarations,
    summarize_storm_events,
    total_loss_by_state,
)


def create_pipeline(**kwargs) -> Pipeline:  # noqa: ARG001
    """Create the flood_statistics pipeline."""
    return pipeline(
        [
            node(
                func=count_incidents_by_state,
                inputs="fema_floods_clean",
                outputs="fema_incidents_by_state",
                name="count_fema_incidents_by_state",
            ),
            node(
                func=count_incidents_by_state,
                inputs="noaa_floods_clean",
                outputs="noaa_incidents_by_state",
                name="count_noaa_incidents_by_state",
            ),
            node(
                func=total_loss_by_state,
                inputs="fema_floods_clean",
                outputs="loss_by_state",
                name="total_loss_by_state",
            ),
            node(
                func=average_duration_by_state,
                inputs="noaa_floods_clean",
                outputs="duration_by_state",
                name="average_duration_by_state",
            ),
            node(
                func=summarize_declarations,
                inputs="fema_floods_clean",
                outputs="fema_summary",
                name="summarize_declarations",
            ),
            node(
                func=summarize_storm_events,
                inputs="noaa_floods_clean",
                outputs="noaa_summary",
                name="summarize_storm_events",
            ),
        ]
    )
