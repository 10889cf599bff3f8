"""
LeakProbe Shared Contracts Layer

Single source of truth for:
- Extraction rule table and forced-leak targets
- Timing defaults and user-facing texts
- Report schemas
"""

from shared.constants import (
    BrowserEngines,
    GOOGLE_ID_PATTERNS,
    FORCE_TARGETS,
    DEFAULT_POLL_INTERVAL_MS,
    DEFAULT_FORCE_TIMEOUT_MS,
)

__all__ = [
    "BrowserEngines",
    "GOOGLE_ID_PATTERNS",
    "FORCE_TARGETS",
    "DEFAULT_POLL_INTERVAL_MS",
    "DEFAULT_FORCE_TIMEOUT_MS",
]
