"""
Engine error types.

Routes translate these into HTTP responses; services raise them before any
partial output is produced.
"""


class EngineError(Exception):
    """Base class for scheduling/bracket/scoring engine failures"""

    pass


class ValidationError(EngineError):
    """Malformed input (unparseable time, non-positive duration, bad side, ...)"""

    pass


class InvalidTransitionError(ValidationError):
    """Requested match status change is not allowed (e.g. leaving completed)"""

    pass


class PreconditionFailure(EngineError):
    """Generation requested before its preconditions hold"""

    pass


class ConsistencyError(EngineError):
    """Stored state contradicts the requested update (e.g. occupied bracket slot)"""

    def __init__(self, message: str, match_id=None):
        super().__init__(message)
        self.match_id = match_id


class VersionConflictError(ConsistencyError):
    """Match was modified by another client since it was read"""

    def __init__(self, match_id: int, expected_version: int, current_version=None):
        detail = f"Match {match_id} version mismatch: expected {expected_version}"
        if current_version is not None:
            detail += f", found {current_version}"
        super().__init__(detail, match_id=match_id)
        self.expected_version = expected_version
        self.current_version = current_version
