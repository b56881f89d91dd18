class TimetrackerError(Exception):
    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)


class NotFoundError(TimetrackerError):
    """Requested resource does not exist."""


class PermissionDeniedError(TimetrackerError):
    """Logged in user may not use this part of the plugin."""
