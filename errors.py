"""
Errors surfaced to users by the shopping assistant.

Every error carries a ready-to-display message (Traditional Chinese) so the
UI layers can show it without further translation.
"""


class AssistantError(Exception):
    """Base class for all user-facing assistant errors."""

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)


class ConfigurationError(AssistantError):
    """Raised when no API credential is configured. No network call is made."""


class EmptyRequestError(AssistantError, ValueError):
    """Raised when a request carries neither a query nor an image."""


class QuotaExceededError(AssistantError):
    """Raised when every model attempt failed and the last error was a rate limit."""


class RequestFailedError(AssistantError):
    """Raised when every model attempt failed for any other reason."""

    def __init__(self, message: str, detail: str = "") -> None:
        super().__init__(message)
        self.detail = detail
