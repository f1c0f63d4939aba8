"""Exceptions raised by the study engine."""


class StudyError(Exception):
    """Base class for all study engine errors."""


class InsufficientData(StudyError):
    """Raised when there are not enough vocabulary items for the requested mode."""

    def __init__(self, message: str, available: int = 0, required: int = 1):
        super().__init__(message)
        self.available = available
        self.required = required


class RepositoryFailure(StudyError):
    """Raised when vocabulary data cannot be loaded."""


class NotFound(RepositoryFailure):
    """Raised when the requested vocabulary set does not exist."""


class NetworkError(RepositoryFailure):
    """Raised when the data store cannot be reached."""


class InvalidSubmission(StudyError):
    """Raised when an answer is rejected before it is evaluated."""


class SessionStateError(StudyError):
    """Raised when an operation is not allowed in the current session state."""
