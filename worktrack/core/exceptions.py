"""
core/exceptions.py
------------------
Error hierarchy shared by the store, the identity service and the
signup saga. The HTTP layer renders any WorkTrackError as
{"error": code, "message": ..., "details": {...}} with its status code.
"""

from typing import Any, Dict, List, Optional


class WorkTrackError(Exception):
    """Base exception for all WorkTrack errors."""

    def __init__(
        self,
        message: str,
        code: str = "WORKTRACK_ERROR",
        details: Optional[Dict[str, Any]] = None,
        status_code: int = 500,
    ):
        self.message = message
        self.code = code
        self.details = details or {}
        self.status_code = status_code
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for API responses."""
        return {
            "error": self.code,
            "message": self.message,
            "details": self.details,
        }


#       STORE EXCEPTIONS
# ------------------------------


class StoreError(WorkTrackError):
    """Raised when a record store call fails."""

    def __init__(self, message: str = "Record store request failed", table: str = "", **kwargs):
        kwargs.setdefault("code", "STORE_ERROR")
        kwargs.setdefault("status_code", 502)
        super().__init__(message=message, **kwargs)
        self.table = table
        if table:
            self.details.setdefault("table", table)


class RecordConflictError(StoreError):
    """Raised when an insert or update violates a uniqueness constraint."""

    def __init__(self, message: str = "Record already exists", table: str = "", **kwargs):
        super().__init__(
            message=message,
            table=table,
            code="RECORD_CONFLICT",
            status_code=409,
            **kwargs,
        )


class MultipleRecordsError(StoreError):
    """Raised when a single-record lookup matches more than one row."""

    def __init__(self, message: str = "Multiple records matched", table: str = "", **kwargs):
        super().__init__(
            message=message,
            table=table,
            code="MULTIPLE_RECORDS",
            status_code=500,
            **kwargs,
        )


class NotFoundError(WorkTrackError):
    """Raised when a referenced record does not exist."""

    def __init__(self, message: str = "Record not found", **kwargs):
        super().__init__(
            message=message,
            code="NOT_FOUND",
            status_code=404,
            **kwargs,
        )


#       AUTH EXCEPTIONS
# ------------------------------


class AuthError(WorkTrackError):
    """Base class for identity service failures."""

    def __init__(self, message: str = "Authentication failed", **kwargs):
        kwargs.setdefault("code", "AUTH_ERROR")
        kwargs.setdefault("status_code", 401)
        super().__init__(message=message, **kwargs)


class InvalidCredentialsError(AuthError):
    """Raised when an email/password pair does not match."""

    def __init__(self, message: str = "Invalid login credentials", **kwargs):
        super().__init__(message=message, code="INVALID_CREDENTIALS", **kwargs)


class SessionError(AuthError):
    """Raised when a session token cannot be trusted."""

    def __init__(self, message: str = "Invalid session", **kwargs):
        super().__init__(message=message, code="INVALID_SESSION", **kwargs)


class CredentialExistsError(AuthError):
    """Raised when signing up an email that is already registered."""

    def __init__(self, message: str = "User already registered", **kwargs):
        super().__init__(
            message=message,
            code="CREDENTIAL_EXISTS",
            status_code=409,
            **kwargs,
        )


class PasswordPolicyError(AuthError):
    """Raised when a new password does not satisfy the policy."""

    def __init__(self, message: str = "Password does not meet requirements", **kwargs):
        super().__init__(
            message=message,
            code="WEAK_PASSWORD",
            status_code=422,
            **kwargs,
        )


class PermissionDeniedError(WorkTrackError):
    """Raised when a role lacks the capability for an operation."""

    def __init__(self, message: str = "Insufficient permissions", **kwargs):
        super().__init__(
            message=message,
            code="PERMISSION_DENIED",
            status_code=403,
            **kwargs,
        )


#       SIGNUP EXCEPTIONS
# ------------------------------


class InputValidationError(WorkTrackError):
    """Raised before any remote call when required input is missing."""

    def __init__(self, missing: List[str], message: Optional[str] = None, **kwargs):
        self.missing = list(missing)
        super().__init__(
            message=message or f"Missing required fields: {', '.join(self.missing)}",
            code="VALIDATION_ERROR",
            details={"missing": self.missing},
            status_code=422,
            **kwargs,
        )


class SignupStepError(WorkTrackError):
    """
    Raised when one step of a multi-step creation fails.

    Attributes:
        step:        1-indexed position of the failing step.
        table:       Table the failing step was writing to.
        completed:   Tables whose step committed before the failure.
        compensated: Tables whose compensation ran successfully.
        cause:       The underlying WorkTrackError.
    """

    def __init__(
        self,
        step: int,
        table: str,
        cause: WorkTrackError,
        completed: List[Dict[str, Any]],
        compensated: List[str],
        compensation_failures: List[Dict[str, str]],
    ):
        self.step = step
        self.table = table
        self.cause = cause
        self.completed = completed
        self.compensated = compensated
        self.compensation_failures = compensation_failures
        super().__init__(
            message=cause.message,
            code="SIGNUP_STEP_FAILED",
            details={
                "step": step,
                "table": table,
                "cause": cause.code,
                "completed": completed,
                "compensated": compensated,
                "compensation_failures": compensation_failures,
            },
            status_code=cause.status_code,
        )
