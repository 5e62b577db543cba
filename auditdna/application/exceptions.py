"""Application-layer exceptions. Do not reuse domain exceptions."""


class ApplicationError(Exception):
    """Base for all application-layer errors."""

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)


class StorageError(ApplicationError):
    """Raised when a repository or tenant storage namespace rejects a write. Partial work is rolled back."""


class NotificationError(ApplicationError):
    """Raised when publishing a notification fails. Callers log and continue."""
