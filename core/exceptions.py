"""
LeakProbe exception types.

Runtime failure modes of the detection engine (no match, empty forced
probe, inventory or popup failures) are reported as flags and empty
results, never raised. These exceptions cover programming and setup
errors only.
"""


class LeakProbeError(Exception):
    """Base exception for LeakProbe errors"""
    pass


class InvalidStateTransition(LeakProbeError):
    """Raised when a forced-leak session attempts an invalid state transition"""
    pass


class ConfigError(LeakProbeError):
    """Raised when the configuration file or values are invalid"""
    pass
