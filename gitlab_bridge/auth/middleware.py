"""Middleware helpers for applying authentication checks to request handlers.

The helpers are framework neutral: a web framework adapter converts its
native request into an :class:`~gitlab_bridge.auth.context.IncomingRequest`,
awaits the wrapped handler and turns an
:class:`~gitlab_bridge.auth.context.AuthErrorResponse` into its own response
type.
"""

from __future__ import annotations

import functools
import logging
import time
from typing import Any, Awaitable, Callable, Optional, Union

from ..config import BridgeAuthConfig, load_config
from .audit import AuditEntry, AuditLog
from .context import AuthContext, AuthErrorResponse, IncomingRequest
from .errors import AuthError, InsufficientScopeError, MissingTokenError
from .models import WebhookMetadata
from .policy import require_permission
from .tokens import (
    TokenInfoFetcher,
    check_expiration_warning,
    validate_token_format,
    validate_token_info,
)
from .webhooks import Headers, extract_webhook_metadata, get_header, require_valid_webhook

logger = logging.getLogger(__name__)

Handler = Callable[..., Awaitable[Any]]
SecretSource = Union[str, Callable[[], Optional[str]], None]

BEARER_PREFIX = "Bearer "


def extract_token(headers: Headers, header_name: str = "X-Gitlab-Token") -> Optional[str]:
    """Return the token from ``header_name``, a Bearer header or ``PRIVATE-TOKEN``."""
    token = get_header(headers, header_name, "X-Gitlab-Token")
    if token:
        return token

    authorization = get_header(headers, "Authorization")
    if authorization and authorization.startswith(BEARER_PREFIX):
        return authorization[len(BEARER_PREFIX) :]

    return get_header(headers, "PRIVATE-TOKEN")


def error_response(error: AuthError) -> AuthErrorResponse:
    """Map an :class:`AuthError` onto a transport response."""
    return AuthErrorResponse.from_error(error)


def _elapsed_ms(start: float) -> int:
    return int((time.monotonic() - start) * 1000)


class Authenticator:
    """Authenticates API requests carrying a GitLab token."""

    def __init__(
        self,
        config: Optional[BridgeAuthConfig] = None,
        fetch_token_info: Optional[TokenInfoFetcher] = None,
        audit_log: Optional[AuditLog] = None,
    ) -> None:
        self.config = config or load_config()
        self.fetch_token_info = fetch_token_info
        self.audit_log = audit_log

    async def authenticate(self, request: IncomingRequest) -> AuthContext:
        """Build the :class:`AuthContext` for ``request``.

        Raises:
            AuthError: If the token is missing, malformed, expired, revoked,
                carries dangerous scopes or lacks a configured required scope.
        """
        start = time.monotonic()
        try:
            token = extract_token(request.headers, self.config.token_header)
            if not token:
                if self.config.allow_anonymous:
                    logger.debug(f"Anonymous request to {request.path}")
                    return AuthContext(authenticated=False, gitlab_url=self.config.gitlab_url)
                raise MissingTokenError()

            token_info = validate_token_format(token)

            scopes = []
            expiry = None
            if self.fetch_token_info is not None:
                try:
                    response = await self.fetch_token_info(token.strip())
                except Exception as e:
                    # Error text can carry the raw token.
                    logger.warning(
                        f"Failed to fetch token info for {token_info.masked_token}: "
                        f"{type(e).__name__}"
                    )
                else:
                    scopes = validate_token_info(response)
                    expiry = check_expiration_warning(
                        response.get("expires_at"), self.config.expiration_warning_days
                    )

            required = list(self.config.required_scopes)
            if any(scope not in scopes for scope in required):
                raise InsufficientScopeError(required, scopes)

            context = AuthContext(
                authenticated=True,
                token=token_info,
                scopes=scopes,
                gitlab_url=self.config.gitlab_url,
            )
        except AuthError as e:
            logger.warning(f"Authentication failed for {request.path}: {e.code}")
            await self._audit(
                AuditEntry(
                    action="auth.failure",
                    actor="unknown",
                    resource=request.path,
                    success=False,
                    metadata={
                        "method": request.method,
                        "error_code": e.code,
                        "error_message": e.message,
                        "duration_ms": _elapsed_ms(start),
                    },
                    ip_address=request.client_ip,
                )
            )
            raise

        logger.info(f"Authenticated {token_info.type} token {token_info.masked_token}")
        metadata = {"method": request.method, "token_type": token_info.type}
        if expiry is not None and expiry.should_warn:
            logger.warning(
                f"Token {token_info.masked_token} expires in {expiry.expires_in_days} days"
            )
            metadata["expires_in_days"] = expiry.expires_in_days
        await self._audit(
            AuditEntry(
                action="auth.success",
                actor=token_info.masked_token,
                resource=request.path,
                success=True,
                metadata={**metadata, "duration_ms": _elapsed_ms(start)},
                ip_address=request.client_ip,
            )
        )
        return context

    async def _audit(self, entry: AuditEntry) -> None:
        if self.audit_log is not None:
            await self.audit_log.record(entry)


class WebhookVerifier:
    """Verifies inbound webhook deliveries against the configured secret."""

    def __init__(self, secret: SecretSource = None, audit_log: Optional[AuditLog] = None) -> None:
        self.secret = secret
        self.audit_log = audit_log

    def _resolve_secret(self) -> Optional[str]:
        if callable(self.secret):
            return self.secret()
        if self.secret is None:
            return load_config().webhook_secret
        return self.secret

    async def verify(self, request: IncomingRequest) -> WebhookMetadata:
        """Validate ``request`` and return its webhook metadata.

        Raises:
            WebhookSignatureError: If the delivery cannot be authenticated.
        """
        start = time.monotonic()
        try:
            require_valid_webhook(request.headers, request.body, self._resolve_secret())
        except AuthError as e:
            await self._audit(
                AuditEntry(
                    action="webhook.rejected",
                    actor="unknown",
                    resource=request.path,
                    success=False,
                    metadata={
                        "error_code": e.code,
                        "error_message": e.message,
                        "duration_ms": _elapsed_ms(start),
                    },
                    ip_address=request.client_ip,
                )
            )
            raise

        metadata = extract_webhook_metadata(request.headers)
        logger.info(f"Accepted webhook {metadata.event} from {metadata.instance or 'gitlab'}")
        await self._audit(
            AuditEntry(
                action="webhook.received",
                actor=metadata.instance or "gitlab",
                resource=request.path,
                success=True,
                metadata={
                    "event": metadata.event,
                    "request_id": metadata.request_id,
                    "duration_ms": _elapsed_ms(start),
                },
                ip_address=request.client_ip,
            )
        )
        return metadata

    async def _audit(self, entry: AuditEntry) -> None:
        if self.audit_log is not None:
            await self.audit_log.record(entry)


def with_authentication(authenticator: Authenticator) -> Callable[[Handler], Handler]:
    """Wrap a handler so it receives ``(request, context)`` after authentication."""

    def decorator(handler: Handler) -> Handler:
        @functools.wraps(handler)
        async def _wrapper(request: IncomingRequest, *args: Any, **kwargs: Any) -> Any:
            try:
                context = await authenticator.authenticate(request)
            except AuthError as e:
                return error_response(e)
            return await handler(request, context, *args, **kwargs)

        return _wrapper

    return decorator


def with_webhook_verification(verifier: WebhookVerifier) -> Callable[[Handler], Handler]:
    """Wrap a handler so it receives ``(request, metadata)`` for verified deliveries."""

    def decorator(handler: Handler) -> Handler:
        @functools.wraps(handler)
        async def _wrapper(request: IncomingRequest, *args: Any, **kwargs: Any) -> Any:
            try:
                metadata = await verifier.verify(request)
            except AuthError as e:
                return error_response(e)
            return await handler(request, metadata, *args, **kwargs)

        return _wrapper

    return decorator


def require_operation(operation: str) -> Callable[[Handler], Handler]:
    """Guard a ``(request, context)`` handler with a permission check."""

    def decorator(handler: Handler) -> Handler:
        @functools.wraps(handler)
        async def _wrapper(
            request: IncomingRequest, context: AuthContext, *args: Any, **kwargs: Any
        ) -> Any:
            try:
                if not context.authenticated:
                    raise MissingTokenError()
                require_permission(operation, context.scopes)
            except AuthError as e:
                return error_response(e)
            return await handler(request, context, *args, **kwargs)

        return _wrapper

    return decorator
