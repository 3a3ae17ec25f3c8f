"""Authorization gate and session registry."""

from .authorization import (
    AuthorizationDecision,
    TOOL_AUTH_REQUIREMENTS,
    ToolTier,
    check_tool_authorization,
    require_tool_authorization,
)
from .sessions import Session, SessionRegistry

__all__ = [
    'AuthorizationDecision',
    'TOOL_AUTH_REQUIREMENTS',
    'ToolTier',
    'check_tool_authorization',
    'require_tool_authorization',
    'Session',
    'SessionRegistry',
]
