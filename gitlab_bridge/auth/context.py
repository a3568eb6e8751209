"""Request and authentication context models for the GitLab bridge."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Dict, List, Mapping, Optional, Sequence, Union

from pydantic import BaseModel, Field

from .errors import AuthError, RateLimitError
from .models import GitLabUser, TokenInfo


class IncomingRequest(BaseModel):
    """Framework-neutral view of an HTTP request.

    Adapters for a concrete web framework build one of these from their native
    request object before handing it to the authenticators.
    """

    method: str = "GET"
    path: str = "/"
    headers: Mapping[str, Union[str, Sequence[str]]] = Field(default_factory=dict)
    body: Union[bytes, str] = b""
    client_ip: Optional[str] = None


class AuthContext(BaseModel):
    """Authentication state attached to a request once it has been checked.

    Built once per request and discarded when the request ends.  ``token``
    only ever holds the masked token.
    """

    authenticated: bool
    user: Optional[GitLabUser] = None
    token: Optional[TokenInfo] = None
    scopes: List[str] = Field(default_factory=list)
    gitlab_url: str
    authenticated_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc)
    )


class AuthErrorResponse(BaseModel):
    """Transport-level response for a failed authentication or authorization."""

    status_code: int
    body: Dict[str, Any]
    headers: Dict[str, str] = Field(default_factory=dict)

    @classmethod
    def from_error(cls, error: AuthError) -> "AuthErrorResponse":
        headers: Dict[str, str] = {}
        if isinstance(error, RateLimitError):
            headers["Retry-After"] = str(error.retry_after)
        return cls(status_code=error.status_code, body=error.to_dict(), headers=headers)
