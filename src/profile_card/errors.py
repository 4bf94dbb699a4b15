"""
Error taxonomy for profile fetching.

Upstream errors are raised to the caller; remote cache and avatar failures
never leave their call site.
"""


class ProfileCardError(Exception):
    """Base class for all errors raised by the profile service."""


class ConfigurationError(ProfileCardError):
    """A required setting (the GitHub token) is missing."""


class OverloadError(ProfileCardError):
    """The in-flight request ceiling has been reached."""

    def __init__(self, limit: int):
        self.limit = limit
        super().__init__(
            f"Too many concurrent requests ({limit} in flight). Please try again later."
        )


class UpstreamError(ProfileCardError):
    """Base class for failures talking to the GitHub API."""


class UpstreamAuthError(UpstreamError):
    """GitHub rejected the configured token (401)."""


class UpstreamRateLimitError(UpstreamError):
    """GitHub rate limit exceeded or access forbidden (403/429)."""


class UpstreamNotFoundError(UpstreamError):
    """The requested login does not exist."""

    def __init__(self, login: str):
        self.login = login
        super().__init__(f"User not found: {login}")


class UpstreamGenericError(UpstreamError):
    """Any other non-2xx, transport failure or malformed response."""

    def __init__(self, message: str, status_code: int | None = None, detail: str = ""):
        self.status_code = status_code
        self.detail = detail
        super().__init__(message)
