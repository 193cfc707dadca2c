"""
errors.py

Exception types raised by the copy-number utilities.
"""

from __future__ import annotations


class CopyNumberError(Exception):
    pass


class ValidationError(CopyNumberError, ValueError):
    """Malformed input intervals or tables (e.g. end < start)."""


class ConfigurationError(CopyNumberError, ValueError):
    """Bad run settings: unknown chromosome, invalid thresholds or bin size."""
