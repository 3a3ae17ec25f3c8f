"""Tier based authorization for orchestration operations."""

from enum import Enum
from typing import Optional

from loguru import logger
from pydantic import BaseModel, Field

from ..api.exceptions import OrchestratorPermissionError
from ..models.auth import AuthContext


class ToolTier(str, Enum):
    """Permission tier an operation requires."""

    ANY = 'any'
    SELF_SERVICE = 'self_service'
    ADMIN = 'admin'


TOOL_AUTH_REQUIREMENTS = {
    # Read-only
    'find_pilot_candidates': ToolTier.ANY,
    'analyze_repositories': ToolTier.ANY,
    'get_complexity_breakdown': ToolTier.ANY,
    'check_dependencies': ToolTier.ANY,
    'get_top_complex_repositories': ToolTier.ANY,
    'get_repositories_with_most_dependencies': ToolTier.ANY,
    'get_discovery_status': ToolTier.ANY,
    'get_repository_details': ToolTier.ANY,
    'validate_repository': ToolTier.ANY,
    'list_batches': ToolTier.ANY,
    'get_batch_details': ToolTier.ANY,
    'get_migration_status': ToolTier.ANY,
    'get_migration_progress': ToolTier.ANY,
    'list_teams': ToolTier.ANY,
    'get_team_repositories': ToolTier.ANY,
    'get_team_migration_stats': ToolTier.ANY,
    'list_team_mappings': ToolTier.ANY,
    'get_team_migration_execution_status': ToolTier.ANY,
    'list_mannequins': ToolTier.ANY,
    'list_users': ToolTier.ANY,
    'get_user_stats': ToolTier.ANY,
    'list_user_mappings': ToolTier.ANY,
    'get_analytics_summary': ToolTier.ANY,
    'get_executive_report': ToolTier.ANY,
    'get_permission_audit': ToolTier.ANY,
    'list_organizations': ToolTier.ANY,
    # Self-service
    'create_batch': ToolTier.SELF_SERVICE,
    'configure_batch': ToolTier.SELF_SERVICE,
    'add_repos_to_batch': ToolTier.SELF_SERVICE,
    'remove_repos_from_batch': ToolTier.SELF_SERVICE,
    'schedule_batch': ToolTier.SELF_SERVICE,
    'plan_waves': ToolTier.SELF_SERVICE,
    # Admin
    'start_discovery': ToolTier.ADMIN,
    'cancel_discovery': ToolTier.ADMIN,
    'discover_teams': ToolTier.ADMIN,
    'update_repository_status': ToolTier.ADMIN,
    'start_migration': ToolTier.ADMIN,
    'cancel_migration': ToolTier.ADMIN,
    'retry_batch_failures': ToolTier.ADMIN,
    'migrate_team': ToolTier.ADMIN,
    'suggest_team_mappings': ToolTier.ADMIN,
    'execute_team_migration': ToolTier.ADMIN,
    'send_mannequin_invitations': ToolTier.ADMIN,
    'suggest_user_mappings': ToolTier.ADMIN,
    'update_user_mapping': ToolTier.ADMIN,
    'fetch_mannequins': ToolTier.ADMIN,
}

_logger = logger.bind(component='Authorization')


class AuthorizationDecision(BaseModel):
    """Outcome of an authorization check."""

    allowed: bool = Field(..., description='Operation may proceed')
    required_tier: ToolTier = Field(..., description='Tier the operation requires')
    audit_required: bool = Field(
        default=False, description='Call ran without an auth context'
    )
    reason: Optional[str] = Field(default=None, description='Denial reason')


def required_tier(tool_name: str) -> ToolTier:
    """Tier required by an operation; unknown operations require admin."""
    return TOOL_AUTH_REQUIREMENTS.get(tool_name, ToolTier.ADMIN)


def check_tool_authorization(
    tool_name: str, auth: Optional[AuthContext]
) -> AuthorizationDecision:
    """Decide whether a caller may run an operation.

    Only the permission flags are consulted, never the tier label.

    Args:
        tool_name: Operation name
        auth: Caller context, or None for an unauthenticated internal call

    Returns:
        Authorization decision
    """
    tier = required_tier(tool_name)

    if auth is None:
        _logger.warning(f'Operation {tool_name} executed without auth context')
        return AuthorizationDecision(allowed=True, required_tier=tier, audit_required=True)

    permissions = auth.permissions
    if tier == ToolTier.ANY:
        return AuthorizationDecision(allowed=True, required_tier=tier)

    if tier == ToolTier.SELF_SERVICE:
        if permissions.can_migrate_own or permissions.can_migrate_all:
            return AuthorizationDecision(allowed=True, required_tier=tier)
        reason = f'permission denied: {tool_name} requires self-service or admin access'
    else:
        if permissions.can_migrate_all:
            return AuthorizationDecision(allowed=True, required_tier=tier)
        reason = f'permission denied: {tool_name} requires admin access'

    _logger.info(f'Denied {tool_name} for {auth.user_login or "unknown user"}')
    return AuthorizationDecision(allowed=False, required_tier=tier, reason=reason)


def require_tool_authorization(
    tool_name: str, auth: Optional[AuthContext]
) -> AuthorizationDecision:
    """Check authorization and raise if denied.

    Raises:
        OrchestratorPermissionError: If the caller lacks the required tier
    """
    decision = check_tool_authorization(tool_name, auth)
    if not decision.allowed:
        raise OrchestratorPermissionError(
            tool_name, decision.required_tier.value, decision.reason or ''
        )
    return decision
