"""Pydantic models and static tables describing GitLab tokens and scopes."""

from __future__ import annotations

from datetime import datetime, timezone
from types import MappingProxyType
from typing import List, Literal, Mapping, Optional, Tuple, get_args

from pydantic import BaseModel, ConfigDict, Field

GitLabScope = Literal[
    "api",
    "read_api",
    "read_user",
    "read_repository",
    "write_repository",
    "read_registry",
    "write_registry",
    "sudo",
    "admin_mode",
    "create_runner",
    "manage_runner",
    "ai_features",
    "k8s_proxy",
]

ALL_SCOPES: Tuple[str, ...] = get_args(GitLabScope)

# Never accepted by the bridge, whatever the operation.
DANGEROUS_SCOPES: Tuple[str, ...] = ("sudo", "admin_mode")

# The bridge needs all of these to be considered fully authorized.
REQUIRED_SCOPES: Tuple[str, ...] = ("api", "read_repository", "write_repository")

TokenType = Literal[
    "PERSONAL",
    "PROJECT",
    "GROUP",
    "DEPLOY",
    "RUNNER",
    "JOB",
    "FEATURE_FLAG",
    "EMAIL",
    "AGENT",
    "OAUTH",
    "SCIM",
]

# Ordered; the first matching prefix wins.  PERSONAL, PROJECT and GROUP share
# ``glpat-`` so format alone always yields PERSONAL for them.
TOKEN_PREFIXES: Mapping[str, str] = MappingProxyType(
    {
        "PERSONAL": "glpat-",
        "PROJECT": "glpat-",
        "GROUP": "glpat-",
        "DEPLOY": "gldt-",
        "RUNNER": "glrt-",
        "JOB": "glcbt-",
        "FEATURE_FLAG": "glffct-",
        "EMAIL": "glimt-",
        "AGENT": "glagent-",
        "OAUTH": "gloas-",
        "SCIM": "glsoat-",
    }
)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class TokenInfo(BaseModel):
    """Result of validating a token's format.

    Only the masked form of the token is kept; the raw value never leaves the
    validator.
    """

    masked_token: str = Field(..., description="Token safe for logging")
    type: TokenType = Field(..., description="Token type derived from prefix")
    is_valid: bool = True
    validated_at: datetime = Field(default_factory=_utcnow)


class GitLabTokenInfo(BaseModel):
    """Token metadata as reported by a GitLab-compatible API."""

    model_config = ConfigDict(strict=True)

    scopes: List[str]
    created_at: str
    expires_at: Optional[str]
    user_id: Optional[int] = None
    active: Optional[bool] = None
    revoked: Optional[bool] = None


class ValidatedToken(BaseModel):
    """Outcome of the full token pipeline."""

    token_info: TokenInfo
    scopes: List[str] = Field(default_factory=list)


class ExpirationWarning(BaseModel):
    expires_in_days: Optional[int] = None
    should_warn: bool = False


class GitLabUser(BaseModel):
    """User returned by the GitLab API for an authenticated token."""

    id: int
    username: str
    name: str
    email: Optional[str] = None
    state: Literal["active", "blocked", "deactivated"]
    avatar_url: Optional[str]
    web_url: str
    is_admin: Optional[bool] = None
    bot: Optional[bool] = None


class PermissionResult(BaseModel):
    """Outcome of checking one operation against a set of scopes."""

    allowed: bool
    required_scopes: List[str] = Field(default_factory=list)
    available_scopes: List[str] = Field(default_factory=list)
    missing_scopes: List[str] = Field(default_factory=list)
    reason: Optional[str] = None


class BridgeScopeReport(BaseModel):
    complete: bool
    has_all: bool
    missing: List[str] = Field(default_factory=list)


class WebhookValidationResult(BaseModel):
    valid: bool
    event: Optional[str] = None
    reason: Optional[str] = None


class WebhookMetadata(BaseModel):
    """Non-secret metadata extracted from webhook headers."""

    event: Optional[str] = None
    instance: Optional[str] = None
    request_id: Optional[str] = None


class SecretStrengthReport(BaseModel):
    valid: bool
    issues: List[str] = Field(default_factory=list)


__all__ = [
    "GitLabScope",
    "ALL_SCOPES",
    "DANGEROUS_SCOPES",
    "REQUIRED_SCOPES",
    "TokenType",
    "TOKEN_PREFIXES",
    "TokenInfo",
    "GitLabTokenInfo",
    "ValidatedToken",
    "ExpirationWarning",
    "GitLabUser",
    "PermissionResult",
    "BridgeScopeReport",
    "WebhookValidationResult",
    "WebhookMetadata",
    "SecretStrengthReport",
]
