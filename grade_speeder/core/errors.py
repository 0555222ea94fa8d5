from typing import Optional


class MissingConfigurationError(Exception):
    """Connection settings are incomplete; the user has to visit settings, not retry."""


class RemoteAPIError(Exception):
    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class SessionBusyError(Exception):
    """A fetch or sync is already in flight for the grading session."""
