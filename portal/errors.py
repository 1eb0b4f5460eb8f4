"""Error taxonomy for the admissions gateway.

`NetworkError` means the gateway could not be reached at all; `HttpError`
means it answered with a non-success status. Views catch `PortalError`.
"""
from typing import Any, Optional

GENERIC_MESSAGE = "An unexpected error occurred. Please try again."


class PortalError(Exception):
    """Base class for every gateway failure."""

    def __init__(self, message: str = GENERIC_MESSAGE):
        super().__init__(message)
        self.message = message


class NetworkError(PortalError):
    """Gateway unreachable, connection reset or timed out."""


class HttpError(PortalError):
    """Gateway reachable but it rejected the request."""

    def __init__(self, status: int, message: str, data: Any = None):
        super().__init__(message)
        self.status = status
        self.data = data

    def __str__(self) -> str:
        return f"{self.message} (status {self.status})"


class NotFoundError(HttpError):
    """Record absent on the server (404)."""

    def __init__(self, message: str = "Record not found", data: Any = None):
        super().__init__(404, message, data)


def extract_error_message(body: Any, status: Optional[int] = None) -> str:
    """Pull a human readable message out of an error response body.

    Looks at ``message``, then ``error``, then the first entry of a
    field -> messages ``errors`` mapping. Plain text bodies are truncated
    to 200 characters.
    """
    fallback = f"Request failed with status {status}" if status else GENERIC_MESSAGE

    if isinstance(body, str):
        text = body.strip()
        return text[:200] if text else fallback

    if isinstance(body, dict):
        if body.get("message"):
            return str(body["message"])
        if body.get("error"):
            return str(body["error"])
        errors = body.get("errors")
        if isinstance(errors, dict):
            for messages in errors.values():
                if isinstance(messages, (list, tuple)):
                    if messages:
                        return str(messages[0])
                elif messages:
                    return str(messages)
        if isinstance(errors, (list, tuple)) and errors:
            return str(errors[0])

    return fallback


def format_field_errors(errors: dict) -> str:
    """Render ``{"field": ["msg", ...]}`` validation errors one per line."""
    lines = []
    for field_name, messages in errors.items():
        if isinstance(messages, (list, tuple)):
            lines.append(f"{field_name}: {', '.join(str(m) for m in messages)}")
        else:
            lines.append(f"{field_name}: {messages}")
    return "\n".join(lines)
