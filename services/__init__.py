"""
LeakProbe Services Layer

State handling shared by the core engines.

Usage:
    from services.leak_state_machine import LeakStateMachine, LeakForceStatus
"""

from services.leak_state_machine import LeakForceStatus, LeakStateMachine, VALID_TRANSITIONS

__all__ = [
    "LeakForceStatus",
    "LeakStateMachine",
    "VALID_TRANSITIONS",
]
