from __future__ import annotations

"""
Diagnostics and error classification utilities.

This package currently provides:
- error_classifier: pick the relevant lines out of a client log and map a
  failed attempt to a stable, human-readable category for the report.

The goal is to keep error handling logic centralized and deterministic.
"""

from .error_classifier import (  # noqa: F401
    classify_attempt_failure,
    classify_error,
    extract_relevant,
)
