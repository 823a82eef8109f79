"""Storage exceptions raised by user repositories."""


class StorageError(Exception):
    """Base exception for store operations (connectivity, timeouts, ...)."""

    pass


class ConstraintViolation(StorageError):
    """Raised when a write breaks a store constraint (NOT NULL, duplicate key, ...)."""

    pass


class UniquenessViolation(ConstraintViolation):
    """Raised when a write reuses a userName owned by another user."""

    def __init__(self, message: str, user_name: str | None = None):
        super().__init__(message)
        self.user_name = user_name
