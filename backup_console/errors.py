from __future__ import annotations


class BackupConsoleError(Exception):
    """Base for every failure surfaced to console users."""

    code = "backup_error"
    status_code = 400
    default_message = "Backup operation failed."

    def __init__(self, message: str | None = None):
        super().__init__(message or self.default_message)
        self.message = message or self.default_message


class RepositoryUnavailable(BackupConsoleError):
    code = "repository_unavailable"
    status_code = 503
    default_message = "The backup store is unavailable."


class NotFoundError(BackupConsoleError):
    code = "not_found"
    status_code = 404
    default_message = "Backup not found."


class NoDataError(BackupConsoleError):
    code = "no_data"
    status_code = 409
    default_message = "No data available to download for this backup."


class AlreadyExists(BackupConsoleError):
    code = "already_exists"
    status_code = 409
    default_message = "A user with this email already exists."
