"""
Leak Report Schemas

Serializable summary of one LeakProbe run.
"""

from datetime import datetime, timezone
from typing import List, Optional
from pydantic import BaseModel, Field


class IdentifierMatch(BaseModel):
    """One identifier found in one database name"""
    identifier: str
    database: str
    source: str  # Service the database belongs to


class ForcedSessionSummary(BaseModel):
    """Outcome of the last forced-leak attempt"""
    target: str
    status: str  # found, timed_out
    probes: int = 0
    session_opened: bool = False
    identifiers: List[str] = Field(default_factory=list)
    elapsed_ms: Optional[float] = None


class LeakReport(BaseModel):
    """Complete result of a leak test"""
    host_url: str
    identifiers: List[str] = Field(default_factory=list)
    matches: List[IdentifierMatch] = Field(default_factory=list)
    database_count: int = 0
    loading: bool = False
    forced_leak_failed: bool = False
    view_state: str
    forced_session: Optional[ForcedSessionSummary] = None
    generated_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
