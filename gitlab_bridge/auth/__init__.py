"""Token, scope and webhook validation for the GitLab bridge."""

from .errors import (
    AuthError,
    AuthErrorKind,
    DangerousScopeError,
    InsufficientScopeError,
    InvalidTokenError,
    MissingTokenError,
    RateLimitError,
    TokenExpiredError,
    TokenRevokedError,
    UserBlockedError,
    WebhookSignatureError,
)
from .models import (
    DANGEROUS_SCOPES,
    REQUIRED_SCOPES,
    TOKEN_PREFIXES,
    GitLabTokenInfo,
    GitLabUser,
    PermissionResult,
    TokenInfo,
    WebhookValidationResult,
)
from .tokens import (
    TokenInfoFetcher,
    mask_token,
    validate_token,
    validate_token_format,
)
from .policy import (
    OPERATION_SCOPES,
    PolicyEngine,
    check_bridge_scopes,
    check_multiple_operations,
    check_operation_permission,
    require_permission,
)
from .webhooks import (
    WEBHOOK_EVENTS,
    compute_webhook_signature,
    require_valid_webhook,
    validate_secret_strength,
    validate_webhook_request,
    validate_webhook_signature,
)
from .context import AuthContext, AuthErrorResponse, IncomingRequest
from .audit import AuditEntry, AuditLog, InMemoryAuditLog, LoggingAuditLog
from .middleware import (
    Authenticator,
    WebhookVerifier,
    error_response,
    extract_token,
    require_operation,
    with_authentication,
    with_webhook_verification,
)

__all__ = [
    "AuthError",
    "AuthErrorKind",
    "DangerousScopeError",
    "InsufficientScopeError",
    "InvalidTokenError",
    "MissingTokenError",
    "RateLimitError",
    "TokenExpiredError",
    "TokenRevokedError",
    "UserBlockedError",
    "WebhookSignatureError",
    "DANGEROUS_SCOPES",
    "REQUIRED_SCOPES",
    "TOKEN_PREFIXES",
    "GitLabTokenInfo",
    "GitLabUser",
    "PermissionResult",
    "TokenInfo",
    "WebhookValidationResult",
    "TokenInfoFetcher",
    "mask_token",
    "validate_token",
    "validate_token_format",
    "OPERATION_SCOPES",
    "PolicyEngine",
    "check_bridge_scopes",
    "check_multiple_operations",
    "check_operation_permission",
    "require_permission",
    "WEBHOOK_EVENTS",
    "compute_webhook_signature",
    "require_valid_webhook",
    "validate_secret_strength",
    "validate_webhook_request",
    "validate_webhook_signature",
    "AuthContext",
    "AuthErrorResponse",
    "IncomingRequest",
    "AuditEntry",
    "AuditLog",
    "InMemoryAuditLog",
    "LoggingAuditLog",
    "Authenticator",
    "WebhookVerifier",
    "error_response",
    "extract_token",
    "require_operation",
    "with_authentication",
    "with_webhook_verification",
]
