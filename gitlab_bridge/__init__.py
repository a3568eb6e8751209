"""gitlab-bridge: token and webhook trust validation for GitLab bridges."""

from .auth import (
    Authenticator,
    AuthContext,
    AuthError,
    PolicyEngine,
    WebhookVerifier,
    require_permission,
    validate_token,
    validate_webhook_request,
)
from .config import BridgeAuthConfig, load_config

__version__ = "0.1.0"
__all__ = [
    "Authenticator",
    "AuthContext",
    "AuthError",
    "PolicyEngine",
    "WebhookVerifier",
    "require_permission",
    "validate_token",
    "validate_webhook_request",
    "BridgeAuthConfig",
    "load_config",
]
