"""Authentication and authorization errors for the GitLab bridge.

Every failure raised by the validators belongs to exactly one
:class:`AuthErrorKind`.  The kind carries the stable machine-readable code and
the HTTP status hint so that an HTTP layer can map any :class:`AuthError`
straight onto a response.
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Optional, Sequence


class AuthErrorKind(Enum):
    """Closed set of failure kinds as ``(code, status_code)`` pairs."""

    INVALID_TOKEN = ("INVALID_TOKEN", 401)
    TOKEN_EXPIRED = ("TOKEN_EXPIRED", 401)
    TOKEN_REVOKED = ("TOKEN_REVOKED", 401)
    INSUFFICIENT_SCOPE = ("INSUFFICIENT_SCOPE", 403)
    DANGEROUS_SCOPE = ("DANGEROUS_SCOPE", 403)
    MISSING_TOKEN = ("MISSING_TOKEN", 401)
    INVALID_WEBHOOK_SIGNATURE = ("INVALID_WEBHOOK_SIGNATURE", 401)
    RATE_LIMIT_EXCEEDED = ("RATE_LIMIT_EXCEEDED", 429)
    USER_BLOCKED = ("USER_BLOCKED", 403)

    @property
    def code(self) -> str:
        return self.value[0]

    @property
    def status_code(self) -> int:
        return self.value[1]


class AuthError(Exception):
    """Base class for every authentication and authorization failure."""

    kind: Optional[AuthErrorKind] = None

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        status_code: Optional[int] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.code = code or (self.kind.code if self.kind else "AUTH_ERROR")
        if status_code is not None:
            self.status_code = status_code
        else:
            self.status_code = self.kind.status_code if self.kind else 401

    def to_dict(self) -> dict[str, str]:
        """Return the JSON body an HTTP layer should send for this error."""
        return {"error": self.code, "message": self.message}


class InvalidTokenError(AuthError):
    """Token is empty, malformed, or its remote metadata is unusable."""

    kind = AuthErrorKind.INVALID_TOKEN

    def __init__(self, message: str = "Invalid or malformed token") -> None:
        super().__init__(message)


class TokenExpiredError(AuthError):
    kind = AuthErrorKind.TOKEN_EXPIRED

    def __init__(self, expired_at: datetime) -> None:
        super().__init__(f"Token expired at {expired_at.isoformat()}")
        self.expired_at = expired_at


class TokenRevokedError(AuthError):
    kind = AuthErrorKind.TOKEN_REVOKED

    def __init__(self) -> None:
        super().__init__("Token has been revoked")


class InsufficientScopeError(AuthError):
    """Token lacks the scopes an operation or the bridge needs."""

    kind = AuthErrorKind.INSUFFICIENT_SCOPE

    def __init__(
        self,
        required_scopes: Sequence[str],
        available_scopes: Sequence[str],
        message: Optional[str] = None,
    ) -> None:
        self.required_scopes = list(required_scopes)
        self.available_scopes = list(available_scopes)
        missing = [s for s in self.required_scopes if s not in self.available_scopes]
        super().__init__(message or f"Missing required scopes: {', '.join(missing)}")


class DangerousScopeError(AuthError):
    """Token carries scopes the bridge refuses to accept at all."""

    kind = AuthErrorKind.DANGEROUS_SCOPE

    def __init__(self, dangerous_scopes: Sequence[str]) -> None:
        self.dangerous_scopes = list(dangerous_scopes)
        super().__init__(
            f"Token contains dangerous scopes: {', '.join(self.dangerous_scopes)}. "
            "These scopes are not allowed for security reasons."
        )


class MissingTokenError(AuthError):
    kind = AuthErrorKind.MISSING_TOKEN

    def __init__(self) -> None:
        super().__init__("Authentication required. No token provided.")


class WebhookSignatureError(AuthError):
    kind = AuthErrorKind.INVALID_WEBHOOK_SIGNATURE

    def __init__(self, message: Optional[str] = None) -> None:
        super().__init__(message or "Invalid webhook signature")


class RateLimitError(AuthError):
    """Raised by rate limiters; ``retry_after`` is in seconds."""

    kind = AuthErrorKind.RATE_LIMIT_EXCEEDED

    def __init__(self, retry_after: int) -> None:
        super().__init__(f"Rate limit exceeded. Retry after {retry_after} seconds.")
        self.retry_after = retry_after


class UserBlockedError(AuthError):
    kind = AuthErrorKind.USER_BLOCKED

    def __init__(self, user_id: int, state: str) -> None:
        super().__init__(f"User {user_id} is {state}")
        self.user_id = user_id
        self.state = state


__all__ = [
    "AuthErrorKind",
    "AuthError",
    "InvalidTokenError",
    "TokenExpiredError",
    "TokenRevokedError",
    "InsufficientScopeError",
    "DangerousScopeError",
    "MissingTokenError",
    "WebhookSignatureError",
    "RateLimitError",
    "UserBlockedError",
]
