"""Scope-based authorization for bridge operations."""

from __future__ import annotations

import logging
from types import MappingProxyType
from typing import Dict, Iterable, List, Mapping, Sequence, Tuple

from .errors import DangerousScopeError, InsufficientScopeError
from .models import REQUIRED_SCOPES, BridgeScopeReport, PermissionResult
from .tokens import check_dangerous_scopes

logger = logging.getLogger(__name__)

# Holding any one of an operation's candidate scopes is enough.
OPERATION_SCOPES: Mapping[str, Tuple[str, ...]] = MappingProxyType(
    {
        # Repository
        "repository:read": ("api", "read_repository"),
        "repository:write": ("api", "write_repository"),
        "repository:clone": ("read_repository",),
        # Issues
        "issue:read": ("api", "read_api"),
        "issue:write": ("api",),
        "issue:create": ("api",),
        "issue:close": ("api",),
        # Merge requests
        "merge_request:read": ("api", "read_api"),
        "merge_request:write": ("api",),
        "merge_request:create": ("api", "write_repository"),
        "merge_request:merge": ("api", "write_repository"),
        "merge_request:approve": ("api",),
        # Users
        "user:read": ("api", "read_api", "read_user"),
        # Projects
        "project:read": ("api", "read_api"),
        "project:admin": ("api",),
        # CI/CD
        "pipeline:read": ("api", "read_api"),
        "pipeline:trigger": ("api",),
        # Branches
        "branch:create": ("api", "write_repository"),
        "branch:delete": ("api", "write_repository"),
        # Commits
        "commit:read": ("api", "read_repository"),
        "commit:create": ("api", "write_repository"),
    }
)


def check_scope_satisfaction(
    available_scopes: Sequence[str], required_scopes: Sequence[str]
) -> PermissionResult:
    """Check ``available_scopes`` against ``required_scopes`` using any-of logic."""
    available = list(available_scopes)
    required = list(required_scopes)

    if not required:
        return PermissionResult(allowed=True, available_scopes=available)

    if any(scope in available for scope in required):
        return PermissionResult(
            allowed=True, required_scopes=required, available_scopes=available
        )

    return PermissionResult(
        allowed=False,
        required_scopes=required,
        available_scopes=available,
        missing_scopes=required,
        reason=f"Missing required scope. Need one of: {', '.join(required)}",
    )


def _check_in_table(
    table: Mapping[str, Sequence[str]], operation: str, available_scopes: Sequence[str]
) -> PermissionResult:
    required = table.get(operation)
    if required is None:
        return PermissionResult(
            allowed=False,
            available_scopes=list(available_scopes),
            reason=f"Unknown operation: {operation}",
        )
    return check_scope_satisfaction(available_scopes, required)


def _require_in_table(
    table: Mapping[str, Sequence[str]], operation: str, available_scopes: Sequence[str]
) -> None:
    validate_no_dangerous_scopes(available_scopes)

    result = _check_in_table(table, operation, available_scopes)
    if not result.allowed:
        logger.warning(f"Permission denied for {operation}: {result.reason}")
        # Unknown operations have no candidate scopes to list.
        message = None if result.required_scopes else result.reason
        raise InsufficientScopeError(
            result.required_scopes, result.available_scopes, message
        )


def check_operation_permission(
    operation: str, available_scopes: Sequence[str]
) -> PermissionResult:
    """Check permission for ``operation``; unknown operations are denied."""
    return _check_in_table(OPERATION_SCOPES, operation, available_scopes)


def validate_required_scopes(scopes: Sequence[str]) -> None:
    """Raise :class:`InsufficientScopeError` unless every bridge scope is present."""
    if any(required not in scopes for required in REQUIRED_SCOPES):
        raise InsufficientScopeError(REQUIRED_SCOPES, scopes)


def validate_no_dangerous_scopes(scopes: Iterable[str]) -> None:
    check_dangerous_scopes(scopes)


def require_permission(operation: str, available_scopes: Sequence[str]) -> None:
    """Ensure ``available_scopes`` permit ``operation``.

    Dangerous scopes are rejected first, regardless of the operation.

    Raises:
        DangerousScopeError: If any dangerous scope is present.
        InsufficientScopeError: If the operation is unknown or not satisfied.
    """
    _require_in_table(OPERATION_SCOPES, operation, available_scopes)


def check_bridge_scopes(scopes: Sequence[str]) -> BridgeScopeReport:
    """Report whether all scopes the bridge needs are present."""
    missing = [s for s in REQUIRED_SCOPES if s not in scopes]
    return BridgeScopeReport(complete=not missing, has_all=not missing, missing=missing)


def get_required_scopes_for_operations(operations: Iterable[str]) -> List[str]:
    """Return the first candidate scope of each known operation, deduplicated."""
    scopes: List[str] = []
    for operation in operations:
        candidates = OPERATION_SCOPES.get(operation)
        if candidates and candidates[0] not in scopes:
            scopes.append(candidates[0])
    return scopes


def check_multiple_operations(
    operations: Iterable[str], available_scopes: Sequence[str]
) -> Dict[str, PermissionResult]:
    """Check each operation independently."""
    return {
        operation: check_operation_permission(operation, available_scopes)
        for operation in operations
    }


class PolicyEngine:
    """Evaluates operation policies against a token's scopes."""

    def __init__(self, operation_scopes: Mapping[str, Tuple[str, ...]] = OPERATION_SCOPES) -> None:
        self.operation_scopes = MappingProxyType(dict(operation_scopes))

    def check(self, scopes: Sequence[str], operation: str) -> PermissionResult:
        return _check_in_table(self.operation_scopes, operation, scopes)

    def evaluate(self, scopes: Sequence[str], operation: str) -> bool:
        """Return ``True`` if ``operation`` is permitted for ``scopes``."""
        try:
            self.require(scopes, operation)
        except (DangerousScopeError, InsufficientScopeError):
            return False
        return True

    def require(self, scopes: Sequence[str], operation: str) -> None:
        """Like :func:`require_permission` but against this engine's table."""
        _require_in_table(self.operation_scopes, operation, scopes)
