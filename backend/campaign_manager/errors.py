"""Domain exceptions raised by services and rendered by the API layer.

Every exception carries the HTTP status it maps to. Services raise these and
never build response JSON themselves; `main.create_app` registers handlers
that turn them into the `{"success": false, "error": ...}` envelope.
"""


class CampaignManagerError(Exception):
    """Base class for all expected application failures."""

    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(CampaignManagerError):
    """Missing or malformed input (400)."""

    status_code = 400


class ConflictError(ValidationError):
    """Unique value already taken, e.g. a registered email (400)."""


class AuthenticationError(CampaignManagerError):
    """Missing, invalid or expired credential (401)."""

    status_code = 401


class AuthorizationError(CampaignManagerError):
    """Authenticated, but not the owner or lacking the required role (403)."""

    status_code = 403


class NotFoundError(CampaignManagerError):
    """Referenced record does not exist (404)."""

    status_code = 404


class UpstreamPlatformError(CampaignManagerError):
    """An ad-platform API call failed (500).

    The message embeds the upstream reason so the client can show it.
    """

    status_code = 500

    def __init__(self, message: str, platform: str | None = None, upstream_status: int | None = None):
        super().__init__(message)
        self.platform = platform
        self.upstream_status = upstream_status
