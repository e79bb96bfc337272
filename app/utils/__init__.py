"""
Utilities Module
================

Helper functions and utility classes.
"""

from app.utils.helpers import normalize_identity, now_millis, utc_now

__all__ = ["normalize_identity", "now_millis", "utc_now"]
