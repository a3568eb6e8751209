"""Audit logging utilities for authentication events."""

from __future__ import annotations

import logging
import uuid
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Protocol

from pydantic import BaseModel, Field


class AuditEntry(BaseModel):
    """Security-relevant event such as an accepted or rejected request.

    ``actor`` is a masked token or a non-secret label, never a raw token.
    """

    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    action: str
    actor: str
    resource: str
    success: bool
    metadata: Dict[str, Any] = Field(default_factory=dict)
    ip_address: Optional[str] = None


class AuditLog(Protocol):
    """Protocol for audit sinks."""

    async def record(self, entry: AuditEntry) -> None:
        """Persist an audit log entry."""


class LoggingAuditLog:
    """Writes audit entries to a standard library logger."""

    def __init__(self, logger: Optional[logging.Logger] = None) -> None:
        self.logger = logger or logging.getLogger("gitlab_bridge.audit")

    async def record(self, entry: AuditEntry) -> None:
        level = logging.INFO if entry.success else logging.WARNING
        self.logger.log(level, entry.model_dump_json())


class InMemoryAuditLog:
    """Keeps entries in a list; intended for tests."""

    def __init__(self) -> None:
        self.entries: List[AuditEntry] = []

    async def record(self, entry: AuditEntry) -> None:
        self.entries.append(entry)

    def actions(self) -> List[str]:
        return [entry.action for entry in self.entries]
