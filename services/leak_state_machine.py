"""
Forced Leak State Machine
Enforces valid state transitions for a forced-leak session.

Idle -> AwaitingSession -> Polling -> Found | TimedOut
"""

from typing import Tuple
from enum import Enum
import logging

logger = logging.getLogger(__name__)


class LeakForceStatus(str, Enum):
    """Valid forced-leak session statuses"""
    IDLE = "idle"
    AWAITING_SESSION = "awaiting_session"
    POLLING = "polling"
    FOUND = "found"
    TIMED_OUT = "timed_out"


# Valid state transitions - defines what transitions are allowed from each state
VALID_TRANSITIONS = {
    LeakForceStatus.IDLE: [
        LeakForceStatus.AWAITING_SESSION,
    ],
    LeakForceStatus.AWAITING_SESSION: [
        LeakForceStatus.POLLING,
    ],
    LeakForceStatus.POLLING: [
        LeakForceStatus.FOUND,
        LeakForceStatus.TIMED_OUT,
    ],
    LeakForceStatus.FOUND: [],  # Terminal state
    LeakForceStatus.TIMED_OUT: [],  # Terminal state
}


class LeakStateMachine:
    """
    State machine for forced-leak sessions.

    Ensures only valid state transitions occur and logs every change.
    """

    @staticmethod
    def can_transition(current: LeakForceStatus, target: LeakForceStatus) -> bool:
        """Check if transition from current to target is valid"""
        return target in VALID_TRANSITIONS.get(current, [])

    @staticmethod
    def validate_transition(
        current: LeakForceStatus,
        target: LeakForceStatus,
        session_label: str = None
    ) -> Tuple[bool, str]:
        """
        Validate a state transition and return detailed result.

        Args:
            current: Current session status
            target: Target status to transition to
            session_label: Optional label for logging

        Returns:
            Tuple of (is_valid, message)
        """
        if LeakStateMachine.can_transition(current, target):
            msg = f"Valid transition: {current.value} -> {target.value}"
            if session_label:
                logger.debug(f"Forced leak {session_label}: {msg}")
            return True, msg

        valid_targets = [s.value for s in VALID_TRANSITIONS.get(current, [])]
        msg = f"Invalid transition: {current.value} -> {target.value}. Valid targets: {valid_targets}"
        if session_label:
            logger.warning(f"Forced leak {session_label}: {msg}")
        return False, msg

    @staticmethod
    def is_terminal_status(status: LeakForceStatus) -> bool:
        """Check if status is a terminal state (no further transitions)"""
        return len(VALID_TRANSITIONS.get(status, [])) == 0
