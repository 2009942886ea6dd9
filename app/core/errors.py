"""Error taxonomy shared by the adapters and the HTTP layer.

Adapters raise these exceptions; ``app.main`` registers handlers that turn
them into JSON responses with the right status code. Details meant for
operators stay in the logs and never reach the guest.
"""


class RsvpError(Exception):
    """Base class for application errors."""


class ValidationError(RsvpError):
    """Malformed or missing input (HTTP 400)."""


class ConfigurationError(RsvpError):
    """A required setting is missing (HTTP 500)."""


class UpstreamError(RsvpError):
    """An external API answered with a non-success status or was unreachable.

    Attributes:
        service: Which upstream failed ("airtable" or "spotify").
        status_code: HTTP status returned by the upstream, if any.
        detail: Response body or transport error text, for the logs only.
    """

    def __init__(self, service: str, status_code: int | None = None, detail: str = ""):
        self.service = service
        self.status_code = status_code
        self.detail = detail
        super().__init__(f"{service} API error: {status_code or 'no response'} {detail}".strip())


class AuthError(RsvpError):
    """Missing playlist credential or a failed OAuth handshake (HTTP 401)."""

    def __init__(self, message: str, setup_url: str = "/auth/setup"):
        self.setup_url = setup_url
        super().__init__(message)
