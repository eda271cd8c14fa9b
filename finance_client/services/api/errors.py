"""
Normalized API Errors

Every failure of an API call reaches the caller as exactly one ApiError:
a single human-readable message the UI can show as-is, plus the HTTP
status and an ErrorKind for callers that need to branch on the cause.

The server reports errors in several shapes:
    "plain text"                                    (gateways, proxies)
    {"message": "Invalid credentials"}
    {"error": "Not Found"}
    {"message": [{"property": "email",
                  "constraints": {"isEmail": "email must be an email"}}]}
normalize_error_message() turns all of them into one string.
"""

import json
from enum import Enum
from typing import Any, Optional


class ErrorKind(str, Enum):
    """Coarse classification of a failed API call."""
    TRANSPORT = "transport"
    VALIDATION = "validation"
    UNAUTHORIZED = "unauthorized"
    FORBIDDEN = "forbidden"
    NOT_FOUND = "not_found"
    CONFLICT = "conflict"
    RATE_LIMITED = "rate_limited"
    SERVER = "server"
    CLIENT = "client"
    DESERIALIZATION = "deserialization"
    STORAGE = "storage"

    @classmethod
    def from_status(cls, status_code: int) -> "ErrorKind":
        if status_code in (400, 422):
            return cls.VALIDATION
        if status_code == 401:
            return cls.UNAUTHORIZED
        if status_code == 403:
            return cls.FORBIDDEN
        if status_code == 404:
            return cls.NOT_FOUND
        if status_code == 409:
            return cls.CONFLICT
        if status_code == 429:
            return cls.RATE_LIMITED
        if status_code >= 500:
            return cls.SERVER
        return cls.CLIENT


class ApiError(Exception):
    """
    The normalized error of the client.

    str(error) is the message; status_code is None when no response
    was received.
    """

    def __init__(
        self,
        message: str,
        *,
        status_code: Optional[int] = None,
        kind: Optional[ErrorKind] = None,
        payload: Any = None,
    ):
        self.message = message
        self.status_code = status_code
        if kind is None:
            kind = ErrorKind.from_status(status_code) if status_code else ErrorKind.CLIENT
        self.kind = kind
        self.payload = payload
        super().__init__(message)

    @property
    def is_auth_error(self) -> bool:
        return self.kind in (ErrorKind.UNAUTHORIZED, ErrorKind.FORBIDDEN)

    @property
    def is_network_error(self) -> bool:
        """Transport failures and 5xx responses: the backend looks unreachable."""
        return self.kind in (ErrorKind.TRANSPORT, ErrorKind.SERVER)

    def __repr__(self) -> str:
        return (
            f"{type(self).__name__}(message={self.message!r}, "
            f"status_code={self.status_code!r}, kind={self.kind.value!r})"
        )


class TransportError(ApiError):
    """No response was received (DNS, refused connection, timeout)."""

    def __init__(self, message: str, *, cause: Optional[str] = None):
        super().__init__(message, kind=ErrorKind.TRANSPORT)
        self.cause = cause


class UnauthorizedError(ApiError):
    """The server rejected the credentials (HTTP 401)."""

    def __init__(self, message: str, *, payload: Any = None):
        super().__init__(
            message,
            status_code=401,
            kind=ErrorKind.UNAUTHORIZED,
            payload=payload,
        )


class DeserializationError(ApiError):
    """A successful response did not match the expected schema."""

    def __init__(self, message: str, *, status_code: Optional[int] = None, payload: Any = None):
        super().__init__(
            message,
            status_code=status_code,
            kind=ErrorKind.DESERIALIZATION,
            payload=payload,
        )


# =============================================================================
# MESSAGE NORMALIZATION
# =============================================================================

def _render_message_item(item: Any) -> str:
    """Render one element of a `message` array."""
    if isinstance(item, str):
        return item
    if isinstance(item, dict):
        constraints = item.get("constraints")
        if isinstance(constraints, dict) and constraints:
            return ", ".join(str(v) for v in constraints.values())
        if item.get("property"):
            return f"{item['property']}: "
    return json.dumps(item, ensure_ascii=False)


def normalize_error_message(data: Any, status_code: int) -> str:
    """
    Collapse any server error body into one human-readable string.

    Order of preference: a plain string body, the `message` field (an
    array of validation errors is joined with newlines, in input order),
    the `error` field, then a generic message naming the status.
    """
    fallback = f"Request failed with status {status_code}"

    if isinstance(data, str):
        return data.strip() or fallback
    if not isinstance(data, dict):
        return fallback

    message = data.get("message")
    if isinstance(message, list):
        rendered = "\n".join(_render_message_item(item) for item in message)
        return rendered or fallback
    if isinstance(message, str) and message.strip():
        return message

    error = data.get("error")
    if isinstance(error, str) and error.strip():
        return error

    if message:
        return json.dumps(message, ensure_ascii=False)
    return fallback


def build_http_error(status_code: int, data: Any) -> ApiError:
    """Build the ApiError subclass matching a non-2xx response."""
    message = normalize_error_message(data, status_code)
    if status_code == 401:
        return UnauthorizedError(message, payload=data)
    return ApiError(message, status_code=status_code, payload=data)
