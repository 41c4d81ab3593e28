"""State-level flood statistics pipeline."""

from .pipeline import create_pipeline

__all__ = ["create_pipeline"]
