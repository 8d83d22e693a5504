"""
Core Utilities Package

This package contains utility functions and helpers used throughout the application.

Modules:
    - time: Timestamp conversion and canonical ISO formatting
"""

from core.utils.time import to_utc_datetime, to_iso_string, current_utc_iso

__all__ = ["to_utc_datetime", "to_iso_string", "current_utc_iso"]
