"""Utilities for validating GitLab tokens.

Format validation is purely local: it classifies a token by prefix, checks
length and charset and produces a masked form for logging.  Remote token
metadata is never fetched here; callers hand in whatever their adapter
returned and it is checked against a strict schema before the expiry,
revocation and dangerous-scope checks run.
"""

from __future__ import annotations

import logging
import math
import re
from datetime import datetime, timezone
from typing import Any, Iterable, List, Mapping, Optional, Protocol

from pydantic import ValidationError

from .errors import (
    DangerousScopeError,
    InvalidTokenError,
    TokenExpiredError,
    TokenRevokedError,
    UserBlockedError,
)
from .models import (
    ALL_SCOPES,
    DANGEROUS_SCOPES,
    TOKEN_PREFIXES,
    ExpirationWarning,
    GitLabTokenInfo,
    GitLabUser,
    TokenInfo,
    ValidatedToken,
)

logger = logging.getLogger(__name__)

MIN_TOKEN_LENGTH = 20
MAX_TOKEN_LENGTH = 256

TOKEN_CHAR_PATTERN = re.compile(r"[A-Za-z0-9_-]+")

MASK_SENTINEL = "***"


class TokenInfoFetcher(Protocol):
    """Adapter that looks up live token metadata from a GitLab API.

    Implementations return the raw response mapping
    (``scopes``, ``created_at``, ``expires_at`` and optionally ``user_id``,
    ``active``, ``revoked``).  Retries and timeouts are the adapter's concern.
    """

    async def __call__(self, token: str) -> Mapping[str, Any]:
        """Return token metadata for ``token``."""


def get_token_type(token: str) -> Optional[str]:
    """Return the token type for ``token``'s prefix or ``None`` if unknown."""
    for token_type, prefix in TOKEN_PREFIXES.items():
        if token.startswith(prefix):
            return token_type
    return None


def mask_token(token: str) -> str:
    """Mask ``token`` so that only its first 8 and last 4 characters remain."""
    if len(token) <= 12:
        return MASK_SENTINEL
    return f"{token[:8]}...{token[-4:]}"


def validate_token_format(token: str) -> TokenInfo:
    """Validate the format of a GitLab token.

    Raises:
        InvalidTokenError: If the token is empty, has an invalid length,
            an unknown prefix or characters outside ``[A-Za-z0-9_-]``.
    """
    if not isinstance(token, str) or not token.strip():
        raise InvalidTokenError("Token cannot be empty")

    trimmed = token.strip()

    if len(trimmed) < MIN_TOKEN_LENGTH:
        raise InvalidTokenError(
            f"Token too short (minimum {MIN_TOKEN_LENGTH} characters)"
        )
    if len(trimmed) > MAX_TOKEN_LENGTH:
        raise InvalidTokenError(
            f"Token too long (maximum {MAX_TOKEN_LENGTH} characters)"
        )

    token_type = get_token_type(trimmed)
    if token_type is None:
        raise InvalidTokenError(
            "Invalid token prefix. Expected glpat-, gldt-, glrt-, glcbt-, "
            "or similar GitLab token prefix."
        )

    remainder = trimmed[len(TOKEN_PREFIXES[token_type]) :]
    if not TOKEN_CHAR_PATTERN.fullmatch(remainder):
        raise InvalidTokenError(
            "Token contains invalid characters. Only alphanumeric characters, "
            "hyphens, and underscores are allowed."
        )

    info = TokenInfo(masked_token=mask_token(trimmed), type=token_type)
    logger.debug(f"Validated {token_type} token format for {info.masked_token}")
    return info


def parse_token_info(response: Any) -> GitLabTokenInfo:
    """Validate a remote token info response against the expected schema."""
    if not isinstance(response, Mapping):
        raise InvalidTokenError(
            f"Invalid token info response: expected an object, got {type(response).__name__}"
        )
    try:
        return GitLabTokenInfo.model_validate(dict(response))
    except ValidationError as e:
        raise InvalidTokenError(f"Invalid token info response: {e}") from e


def parse_timestamp(value: str) -> datetime:
    """Parse an ISO-8601 datetime or date; naive values are taken as UTC."""
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError as e:
        raise InvalidTokenError(f"Invalid timestamp in token info: {value!r}") from e
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def check_token_expiration(
    token_info: GitLabTokenInfo, now: Optional[datetime] = None
) -> None:
    """Raise :class:`TokenExpiredError` if the token expires at or before ``now``."""
    if not token_info.expires_at:
        return
    expires_at = parse_timestamp(token_info.expires_at)
    if expires_at <= (now or datetime.now(timezone.utc)):
        raise TokenExpiredError(expires_at)


def check_token_revocation(token_info: GitLabTokenInfo) -> None:
    """Raise :class:`TokenRevokedError` for revoked or inactive tokens.

    Backends that omit ``active``/``revoked`` are treated as not revoked.
    """
    if token_info.revoked is True or token_info.active is False:
        raise TokenRevokedError()


def check_dangerous_scopes(scopes: Iterable[str]) -> None:
    """Raise :class:`DangerousScopeError` listing every dangerous scope present."""
    dangerous = [s for s in scopes if s in DANGEROUS_SCOPES]
    if dangerous:
        raise DangerousScopeError(dangerous)


def validate_token_info(api_response: Any) -> List[str]:
    """Run the remote metadata checks and return the token's known scopes.

    Checks run in order (schema, expiry, revocation, dangerous scopes) and
    stop at the first failure.  Scopes outside :data:`ALL_SCOPES` are dropped.
    """
    remote = parse_token_info(api_response)
    check_token_expiration(remote)
    check_token_revocation(remote)

    unknown = [s for s in remote.scopes if s not in ALL_SCOPES]
    if unknown:
        logger.debug(f"Ignoring unknown scopes: {unknown}")
    scopes = [s for s in remote.scopes if s in ALL_SCOPES]

    check_dangerous_scopes(scopes)
    return scopes


def validate_token(token: str, api_response: Any = None) -> ValidatedToken:
    """Validate a token's format and, if given, its remote metadata.

    Without ``api_response`` the returned scopes are empty and scope checks
    must happen once scopes are obtained some other way.
    """
    token_info = validate_token_format(token)

    if api_response is None:
        return ValidatedToken(token_info=token_info)

    scopes = validate_token_info(api_response)
    return ValidatedToken(token_info=token_info, scopes=scopes)


def check_expiration_warning(
    expires_at: Optional[str],
    warning_days: int = 7,
    now: Optional[datetime] = None,
) -> ExpirationWarning:
    """Report how many days remain before expiry and whether to warn."""
    if not expires_at:
        return ExpirationWarning()

    remaining = parse_timestamp(expires_at) - (now or datetime.now(timezone.utc))
    days = math.ceil(remaining.total_seconds() / 86400)
    return ExpirationWarning(
        expires_in_days=days,
        should_warn=0 < days <= warning_days,
    )


def check_user_state(user: GitLabUser) -> None:
    """Raise :class:`UserBlockedError` unless ``user`` is active."""
    if user.state != "active":
        raise UserBlockedError(user.id, user.state)


__all__ = [
    "MIN_TOKEN_LENGTH",
    "MAX_TOKEN_LENGTH",
    "TokenInfoFetcher",
    "get_token_type",
    "mask_token",
    "validate_token_format",
    "parse_token_info",
    "parse_timestamp",
    "check_token_expiration",
    "check_token_revocation",
    "check_dangerous_scopes",
    "validate_token_info",
    "validate_token",
    "check_expiration_warning",
    "check_user_state",
]
