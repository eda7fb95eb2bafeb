"""Domain error hierarchy for the assessment results service.

Services raise these errors; the API layer translates them into HTTP
status codes. Each error carries a machine-readable ``ErrorCode``.
"""

from enum import Enum


class ErrorCode(str, Enum):
    """Machine-readable error codes returned to API clients."""

    NOT_FOUND = "not_found"
    INVALID_OPERATION = "invalid_operation"
    INVALID_CONFIGURATION = "invalid_configuration"
    RESULTS_UNAVAILABLE = "results_unavailable"


class ServiceError(Exception):
    """Base class for all service-level errors.

    Attributes:
        message: Human-readable description.
        error_code: Machine-readable classification.
    """

    default_code: ErrorCode = ErrorCode.INVALID_OPERATION

    def __init__(self, message: str, error_code: ErrorCode | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.error_code = error_code or self.default_code


class NotFoundError(ServiceError):
    """Raised when an assessment, template, or benchmark does not exist."""

    default_code = ErrorCode.NOT_FOUND


class ConflictError(ServiceError):
    """Raised when an operation is not allowed in the current assessment state."""


class TemplateConfigError(ServiceError):
    """Raised when a template configuration is missing or malformed.

    A computation that fails with this error persists nothing.
    """

    default_code = ErrorCode.INVALID_CONFIGURATION


class ResultsUnavailableError(ServiceError):
    """Raised when results were never computed or the computation failed."""

    default_code = ErrorCode.RESULTS_UNAVAILABLE
