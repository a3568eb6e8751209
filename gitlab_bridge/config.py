from __future__ import annotations

import os
from typing import List, Optional

import yaml
from pydantic import BaseModel, Field

from .auth.models import GitLabScope

DEFAULT_CONFIG_PATH = "gitlab-bridge.yaml"


class BridgeAuthConfig(BaseModel):
    """Authentication settings for the bridge."""

    gitlab_url: str = "https://gitlab.com"
    token_header: str = "X-Gitlab-Token"
    allow_anonymous: bool = False
    required_scopes: List[GitLabScope] = Field(default_factory=list)
    webhook_secret: Optional[str] = None
    expiration_warning_days: int = 7


def load_config(path: Optional[str] = None) -> BridgeAuthConfig:
    """Load configuration from YAML file.

    Args:
        path: Optional path to config file. Falls back to GITLAB_BRIDGE_CONFIG
            env variable or 'gitlab-bridge.yaml' in the current directory.
    """

    config_path = path or os.getenv("GITLAB_BRIDGE_CONFIG", DEFAULT_CONFIG_PATH)
    if os.path.exists(config_path):
        with open(config_path) as f:
            data = yaml.safe_load(f) or {}
        config = BridgeAuthConfig(**data)
    else:
        config = BridgeAuthConfig()

    env_url = os.getenv("GITLAB_URL")
    if env_url:
        config.gitlab_url = env_url
    env_secret = os.getenv("GITLAB_WEBHOOK_SECRET")
    if env_secret:
        config.webhook_secret = env_secret
    return config
