class FsBackupError(Exception):
    """Base class for backup/restore errors."""

    def __init__(self, message: str, *, cause: Exception = None):
        super().__init__(message)
        self.message = message
        self.cause = cause

    def __str__(self):
        if self.cause:
            return f"{self.message} (caused by {repr(self.cause)})"
        return self.message


class ConfigError(FsBackupError):
    """Required run configuration is missing or invalid."""


class AuthError(FsBackupError):
    """The service-account token exchange failed."""


class RemoteError(FsBackupError):
    """A Firestore REST API request failed.

    ``status_code`` is None when no response was received at all.
    """

    def __init__(self, message: str, status_code: int = None, body: str = "", *, cause: Exception = None):
        super().__init__(message, cause=cause)
        self.status_code = status_code
        self.body = body

    def __str__(self):
        if self.status_code is None:
            return super().__str__()
        return f"{super().__str__()} [HTTP {self.status_code}]"


class MalformedRecordError(FsBackupError):
    """An import record cannot be written (e.g. it has no docId)."""

    def __init__(self, message: str, index: int = None):
        super().__init__(message)
        self.index = index


class StorageError(FsBackupError):
    """Reading or writing a backup file failed."""
