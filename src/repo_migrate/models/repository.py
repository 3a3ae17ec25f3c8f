"""Repository entity models."""

from datetime import datetime
from enum import Enum
from typing import Optional, Dict
from pydantic import BaseModel, Field, validator


class MigrationStatus(str, Enum):
    """Lifecycle status of a single repository migration."""

    PENDING = 'pending'
    DRY_RUN_QUEUED = 'dry_run_queued'
    DRY_RUN_IN_PROGRESS = 'dry_run_in_progress'
    DRY_RUN_COMPLETE = 'dry_run_complete'
    DRY_RUN_FAILED = 'dry_run_failed'
    QUEUED_FOR_MIGRATION = 'queued_for_migration'
    PRE_MIGRATION = 'pre_migration'
    ARCHIVE_GENERATING = 'archive_generating'
    MIGRATING_CONTENT = 'migrating_content'
    POST_MIGRATION = 'post_migration'
    MIGRATION_COMPLETE = 'migration_complete'
    COMPLETE = 'complete'
    MIGRATION_FAILED = 'migration_failed'
    ROLLED_BACK = 'rolled_back'
    WONT_MIGRATE = 'wont_migrate'
    REMEDIATION_REQUIRED = 'remediation_required'


class RepositoryValidation(BaseModel):
    """Pre-migration validation findings for a repository."""

    has_blocking_files: bool = Field(
        default=False, description='Repository contains blocking files'
    )
    has_oversized_commits: bool = Field(
        default=False, description='Repository has commits over the size limit'
    )
    has_oversized_repository: bool = Field(
        default=False, description='Repository exceeds the size limit'
    )
    has_long_refs: bool = Field(
        default=False, description='Repository has references over the length limit'
    )
    has_large_file_warnings: bool = Field(
        default=False, description='Repository has large files close to the limit'
    )
    complexity_breakdown: Dict[str, int] = Field(
        default_factory=dict, description='Complexity score per component'
    )


class Repository(BaseModel):
    """Tracked source repository."""

    id: Optional[int] = Field(default=None, description='Store identifier')
    full_name: str = Field(..., description='Full name (organization/name)')
    status: MigrationStatus = Field(
        default=MigrationStatus.PENDING, description='Migration status'
    )

    # Repository flags
    is_archived: bool = Field(default=False, description='Repository is archived')
    is_fork: bool = Field(default=False, description='Repository is a fork')

    # Analysis
    complexity_score: Optional[int] = Field(
        default=None, description='Migration complexity score'
    )
    validation: Optional[RepositoryValidation] = Field(
        default=None, description='Validation findings'
    )
    local_dependency_count: int = Field(
        default=0, description='Number of dependencies on tracked repositories'
    )

    # Batch membership and scheduling
    batch_id: Optional[int] = Field(default=None, description='Owning batch ID')
    priority: int = Field(default=0, description='Queue priority, higher runs first')

    # Repository statistics
    size_bytes: Optional[int] = Field(
        default=None, description='Repository size in bytes'
    )
    default_branch: Optional[str] = Field(
        default=None, description='Default branch name'
    )

    # Timestamps
    discovered_at: Optional[datetime] = Field(
        default=None, description='Discovery timestamp'
    )
    updated_at: Optional[datetime] = Field(
        default=None, description='Last update timestamp'
    )

    class Config:
        """Pydantic configuration."""

        json_encoders = {datetime: lambda v: v.isoformat() if v else None}

    @validator('full_name')
    def validate_full_name(cls, v):
        """Validate the organization/name format."""
        parts = v.split('/')
        if len(parts) != 2 or not parts[0] or not parts[1]:
            raise ValueError('full_name must be in format organization/name')
        return v

    @property
    def organization(self) -> str:
        """Owning organization."""
        return self.full_name.split('/', 1)[0]

    @property
    def name(self) -> str:
        """Repository name without the organization."""
        return self.full_name.split('/', 1)[1]


class RepositoryDependency(BaseModel):
    """Directed dependency edge from a repository to another package or repository."""

    repository_full_name: str = Field(..., description='Dependent repository')
    dependency_full_name: str = Field(..., description='Dependency name')
    dependency_type: str = Field(default='package', description='Dependency type')
    is_local: bool = Field(
        default=False, description='Dependency is another tracked repository'
    )


class RepositoryFilter(BaseModel):
    """Filter predicates for listing repositories."""

    status: Optional[MigrationStatus] = Field(default=None, description='Status')
    organization: Optional[str] = Field(default=None, description='Organization')
    batch_id: Optional[int] = Field(default=None, description='Owning batch ID')
    max_complexity: Optional[int] = Field(
        default=None, description='Maximum complexity score (unscored excluded)'
    )
    limit: Optional[int] = Field(default=None, description='Maximum results')
