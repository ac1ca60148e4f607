from typing import Any, Optional

GENERIC_ERROR_MESSAGE = "Failed to analyze image on the server."


class AnalyzeError(Exception):
    """Base class for failures reported to the caller as ``{"error": message}``.

    Attributes:
        message: human-readable message returned to the client
        http_status: status code used by the exception handler
    """

    http_status = 500
    default_message = GENERIC_ERROR_MESSAGE

    def __init__(self, message: Optional[str] = None):
        self.message = message or self.default_message
        super().__init__(self.message)

    def to_dict(self) -> dict:
        return {"error": self.message}

    def __str__(self) -> str:
        return self.message


class MissingImageError(AnalyzeError):
    """Raised when the request body carries no image payload."""

    http_status = 400
    default_message = "Missing imageBase64 in request body"


class ApiKeyNotConfiguredError(AnalyzeError):
    """Raised when the upstream API key is empty or still the placeholder."""

    default_message = "API Key not configured on the server."


class InvalidModelOutputError(AnalyzeError):
    """Raised when the vision model replies without any usable text."""

    default_message = "Vision model failed to return a valid result."


class UpstreamError(AnalyzeError):
    """Raised for any failed upstream call (transport, timeout, non-2xx, bad body).

    ``detail`` is the full server-side description and is only logged.
    ``message`` is what the caller sees: the upstream's own error message when
    it sent one, otherwise the generic fallback.
    """

    def __init__(
        self,
        detail: str,
        *,
        message: Optional[str] = None,
        status_code: Optional[int] = None,
        body: Any = None,
    ):
        super().__init__(message)
        self.detail = detail
        self.status_code = status_code
        self.body = body
