"""Raw → cleaned pipeline for FEMA flood declarations and NOAA flood events.

This pipeline reads the four raw CSVs, restricts both sources to
floods, joins FEMA declarations to their assistance summaries, and
outputs two cleaned tables ready for state-level aggregation.
"""

from kedro.pipeline import Pipeline, node, pipeline

from .nodes import (
    clean_declarations,
    clean_storm_events,
    filter_flood_declarations,
    filter_flood_events,
    join_disaster_summaries,
    load_fema_tables,
    load_storm_events,
)


def create_pipeline(**kwargs) -> Pipeline:  # noqa: ARG001
    """Create the data_processing pipeline.

    Node chain:
        FEMA CSVs → load → filter floods 2020–2021 → join summaries
        → clean → fema_floods_clean
        NOAA CSVs → load → filter floods → storm_floods.csv
        → clean → noaa_floods_clean
    """
    return pipeline(
        [
            node(
                func=load_fema_tables,
                inputs="params:raw_data",
                outputs=["fema_declarations_raw", "fema_summaries_raw"],
                name="load_fema_tables",
            ),
            node(
                func=filter_flood_declarations,
                inputs=["fema_declarations_raw", "params:filters"],
                outputs="fema_flood_declarations",
                name="filter_flood_declarations",
            ),
            node(
                func=join_disaster_summaries,
                inputs=["fema_flood_declarations", "fema_summaries_raw"],
                outputs="fema_floods_joined",
                name="join_disaster_summaries",
            ),
            node(
                func=clean_declarations,
                inputs=["fema_floods_joined", "params:fema_columns"],
                outputs="fema_floods_clean",
                name="clean_declarations",
            ),
            node(
                func=load_storm_events,
                inputs="params:raw_data",
                outputs="storm_events_raw",
                name="load_storm_events",
            ),
            node(
                func=filter_flood_events,
                inputs=["storm_events_raw", "params:filters"],
                outputs="storm_floods",
                name="filter_flood_events",
            ),
            node(
                func=clean_storm_events,
                inputs=["storm_floods", "params:noaa_columns"],
                outputs="noaa_floods_clean",
                name="clean_storm_events",
            ),
        ]
    )
