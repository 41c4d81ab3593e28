"""Flood EDA: 2020–2021 U.S. floods from FEMA declarations and NOAA storm events."""

__version__ = "0.1.0"
