"""
Report Schemas Package

Pydantic models for LeakProbe reports.
"""

from shared.schemas.leak_report import (
    ForcedSessionSummary,
    IdentifierMatch,
    LeakReport,
)

__all__ = [
    "ForcedSessionSummary",
    "IdentifierMatch",
    "LeakReport",
]
