"""Exception hierarchy for the grade engine.

Lookup misses are never exceptions: unknown labels, systems and canonical
values come back as ``None``. The classes below cover the remaining
failures: rejected user input, an empty registry, and remote store errors.
"""

from typing import Sequence


class GradeEngineError(Exception):
    """Base exception for grade engine errors.

    Attributes:
        message: Human-readable description of the error.
    """

    def __init__(self, message: str) -> None:
        """Initialize GradeEngineError with a message.

        Args:
            message: Description of the error that occurred.
        """
        self.message = message
        super().__init__(self.message)


class GradeSystemValidationError(GradeEngineError):
    """Raised when a custom grade system definition is malformed.

    This exception is raised when:
    - The system name is empty
    - The grade list is empty
    - A grade name is blank or duplicated

    Attributes:
        errors: Every problem found, in input order.

    Example:
        >>> raise GradeSystemValidationError(["Grade 2 has an empty name"])
    """

    def __init__(self, errors: Sequence[str]) -> None:
        """Initialize with the list of validation problems.

        Args:
            errors: Individual validation messages.
        """
        self.errors = list(errors)
        super().__init__("Invalid custom grade system: " + "; ".join(self.errors))


class RegistryEmptyError(GradeEngineError):
    """Raised when a default system is requested from an empty registry."""


class RemoteStoreError(GradeEngineError):
    """Raised when a remote grade system store operation fails."""


class ConfigurationError(GradeEngineError):
    """Raised when application settings are missing or invalid."""
