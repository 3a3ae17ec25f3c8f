"""Authorization context models."""

from typing import Optional
from pydantic import BaseModel, Field


class AuthTier:
    """Informational tier labels carried on an auth context."""

    ADMIN = 'admin'
    SELF_SERVICE = 'self_service'
    READ_ONLY = 'read_only'


class ToolPermissions(BaseModel):
    """Capabilities granted to a caller."""

    can_read: bool = Field(default=True, description='Can use read-only operations')
    can_migrate_own: bool = Field(
        default=False, description='Can migrate repositories they administer'
    )
    can_migrate_all: bool = Field(
        default=False, description='Can migrate any repository'
    )
    can_manage_settings: bool = Field(
        default=False, description='Can modify system settings'
    )


class AuthContext(BaseModel):
    """Identity and permissions of the caller of an operation."""

    user_id: Optional[str] = Field(default=None, description='User ID')
    user_login: Optional[str] = Field(default=None, description='User login')
    tier: str = Field(default=AuthTier.READ_ONLY, description='Tier label')
    permissions: ToolPermissions = Field(
        default_factory=ToolPermissions, description='Granted permissions'
    )

    @classmethod
    def admin(cls, user_login: str, user_id: Optional[str] = None) -> 'AuthContext':
        """Build a context with full migration rights."""
        return cls(
            user_id=user_id,
            user_login=user_login,
            tier=AuthTier.ADMIN,
            permissions=ToolPermissions(
                can_read=True,
                can_migrate_own=True,
                can_migrate_all=True,
                can_manage_settings=True,
            ),
        )

    @classmethod
    def self_service(
        cls, user_login: str, user_id: Optional[str] = None
    ) -> 'AuthContext':
        """Build a context that may only migrate the caller's own repositories."""
        return cls(
            user_id=user_id,
            user_login=user_login,
            tier=AuthTier.SELF_SERVICE,
            permissions=ToolPermissions(can_read=True, can_migrate_own=True),
        )

    @classmethod
    def read_only(cls, user_login: str, user_id: Optional[str] = None) -> 'AuthContext':
        """Build a context limited to read-only operations."""
        return cls(
            user_id=user_id,
            user_login=user_login,
            tier=AuthTier.READ_ONLY,
            permissions=ToolPermissions(can_read=True),
        )
