"""Data models for migration orchestration."""

from .repository import (
    MigrationStatus,
    Repository,
    RepositoryDependency,
    RepositoryFilter,
    RepositoryValidation,
)
from .batch import Batch, BatchStatus, BatchType, MigrationAPI
from .auth import AuthContext, AuthTier, ToolPermissions

__all__ = [
    'MigrationStatus',
    'Repository',
    'RepositoryDependency',
    'RepositoryFilter',
    'RepositoryValidation',
    'Batch',
    'BatchStatus',
    'BatchType',
    'MigrationAPI',
    'AuthContext',
    'AuthTier',
    'ToolPermissions',
]
