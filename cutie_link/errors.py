"""
Errors raised by the Cuti-E Link client.

Every failure of the link flow surfaces as one of these, so hosts can catch
CutiELinkError broadly or a single kind specifically.
"""


class CutiELinkError(Exception):
    """Base class for all Cuti-E Link failures."""

    message = "Cuti-E Link error"

    def __init__(self, message=None):
        super().__init__(message or self.message)


class NotConfiguredError(CutiELinkError):
    message = "CutiELink not configured. Call configure(app_id) first."


class InvalidCredentialsError(CutiELinkError):
    message = "Invalid app ID or API key"


class InvalidURLError(CutiELinkError):
    message = "Invalid API URL"


class InvalidDeepLinkError(CutiELinkError):
    message = "Failed to create deep link"


class InvalidResponseError(CutiELinkError):
    message = "Invalid server response"


class ServerError(CutiELinkError):
    """Non-200, non-401 answer from the token API."""

    def __init__(self, status_code: int, message=None):
        self.status_code = status_code
        super().__init__(message or f"Server error: {status_code}")


class FeedbackAppNotInstalledError(CutiELinkError):
    message = "Cuti-E Feedback App is not installed"
