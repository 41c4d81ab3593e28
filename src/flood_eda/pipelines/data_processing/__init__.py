"""Raw → cleaned data processing pipeline for FEMA and NOAA flood records."""

from .pipeline import create_pipeline

__all__ = ["create_pipeline"]
