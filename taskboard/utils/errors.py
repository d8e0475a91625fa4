"""Error handling utilities."""

from typing import Optional


class TaskboardError(Exception):
    """Base exception for the task board backend."""
    status_code: int = 500


class TaskValidationError(TaskboardError):
    """One or more user-correctable input problems."""
    status_code = 400

    def __init__(self, errors: list[str]):
        self.errors = list(errors)
        super().__init__("; ".join(self.errors))


class AuthenticationError(TaskboardError):
    """Caller identity missing or could not be verified."""
    status_code = 401


class AuthorizationError(TaskboardError):
    """Role is not allowed to perform the mutation."""
    status_code = 403


class NotFoundError(TaskboardError):
    """Requested record does not exist (or is not visible)."""
    status_code = 404


class ConflictError(TaskboardError):
    """Record changed since it was read."""
    status_code = 409


class StoreError(TaskboardError):
    """Backing store operation error."""

    def __init__(self, message: str, cause: Optional[Exception] = None):
        self.cause = cause
        super().__init__(message)


class SupabaseError(StoreError):
    """Supabase operation error."""
    pass


class ConfigurationError(TaskboardError):
    """Required setting missing from the environment."""
    pass
