"""Reporting pipeline — charts, HTML report and tracked metrics."""

from .pipeline import create_pipeline

__all__ = ["create_pipeline"]
