"""
LEAKPROBE - Core Module
Identifier leak detection through browser storage names

Architecture:
┌─────────────────────────────────────────────────────────────┐
│                      RUNNER                                  │
│   LeakScanRunner - config, browser lifecycle, reporting     │
└─────────────────────────────────────────────────────────────┘
                              ↓
┌─────────────────────────────────────────────────────────────┐
│                    CONTROLLER                                │
│   IdentifierController - passive + forced detection         │
└─────────────────────────────────────────────────────────────┘
                              ↓
┌─────────────────────────────────────────────────────────────┐
│                     ENGINE                                   │
│   IdentifierPatternMatcher - rule table extraction          │
│   IdentifierAccumulator - grow-only identifier set          │
│   LeakForcer - popup + poll forced leak                     │
└─────────────────────────────────────────────────────────────┘
"""

__version__ = "1.0.0"

from .pattern_matcher import (
    ExtractionRule,
    IdentifierPatternMatcher,
    GOOGLE_ID_RULES,
    descriptor_names,
    extract_identifiers,
)
from .accumulator import IdentifierAccumulator, merge_identifiers
from .leak_forcer import ForceTarget, LeakForcer, LeakForceSession, GOOGLE_KEEP
from .controller import IdentifierController, ViewState
from .exceptions import LeakProbeError, ConfigError, InvalidStateTransition

__all__ = [
    "ExtractionRule",
    "IdentifierPatternMatcher",
    "GOOGLE_ID_RULES",
    "descriptor_names",
    "extract_identifiers",
    "IdentifierAccumulator",
    "merge_identifiers",
    "ForceTarget",
    "LeakForcer",
    "LeakForceSession",
    "GOOGLE_KEEP",
    "IdentifierController",
    "ViewState",
    "LeakProbeError",
    "ConfigError",
    "InvalidStateTransition",
]
