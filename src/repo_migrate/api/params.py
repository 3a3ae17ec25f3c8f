"""Typed parameter models for orchestration operations."""

from typing import List, Optional

from pydantic import BaseModel, Field, validator


def _split_names(v):
    """Accept a comma separated string where a list of names is expected."""
    if isinstance(v, str):
        return [part.strip() for part in v.split(',') if part.strip()]
    return v


class ToolParams(BaseModel):
    """Base class for operation parameters."""

    class Config:
        """Pydantic configuration."""

        extra = 'forbid'


class BatchTargetParams(ToolParams):
    """Parameters addressing a batch by name or ID."""

    batch_name: Optional[str] = Field(default=None, description='Batch name')
    batch_id: Optional[int] = Field(default=None, description='Batch ID')

    def has_batch_target(self) -> bool:
        """Whether a batch name or ID was given."""
        return bool(self.batch_name or self.batch_id)


class FindPilotParams(ToolParams):
    max_count: Optional[int] = Field(
        default=None, description='Maximum candidates to return (default 10, max 50)'
    )
    organization: Optional[str] = Field(default=None, description='Organization filter')


class AnalyzeRepositoriesParams(ToolParams):
    organization: Optional[str] = Field(default=None, description='Organization filter')
    status: Optional[str] = Field(default=None, description='Migration status filter')
    max_complexity: Optional[int] = Field(
        default=None, description='Maximum complexity score'
    )
    limit: int = Field(default=20, description='Maximum repositories to return')


class CheckDependenciesParams(ToolParams):
    repository: str = Field(..., description='Repository full name (org/repo)')
    include_reverse: bool = Field(
        default=False, description='Include repositories that depend on this one'
    )


class GetComplexityParams(ToolParams):
    repository: str = Field(..., description='Repository full name (org/repo)')


class GetMigrationStatusParams(ToolParams):
    repositories: List[str] = Field(..., description='Repository full names')

    @validator('repositories', pre=True)
    def split_repositories(cls, v):
        """Accept comma separated names."""
        return _split_names(v)


class GetMigrationProgressParams(BatchTargetParams):
    repository: Optional[str] = Field(default=None, description='Single repository')


class GetRepositoryDetailsParams(ToolParams):
    repository: str = Field(..., description='Repository full name (org/repo)')


class ValidateRepositoryParams(ToolParams):
    repository: str = Field(..., description='Repository full name (org/repo)')


class ListBatchesParams(ToolParams):
    status: Optional[str] = Field(default=None, description='Batch status filter')
    limit: int = Field(default=20, description='Maximum batches (max 100)')


class GetBatchDetailsParams(BatchTargetParams):
    pass


class PlanWavesParams(ToolParams):
    wave_size: Optional[int] = Field(
        default=None, description='Maximum repositories per wave (default 10, max 100)'
    )
    organization: Optional[str] = Field(default=None, description='Organization filter')


class CreateBatchParams(ToolParams):
    name: Optional[str] = Field(default=None, description='Batch name')
    repositories: List[str] = Field(
        default_factory=list, description='Repository full names to include'
    )
    description: Optional[str] = Field(default=None, description='Batch description')
    destination_org: Optional[str] = Field(
        default=None, description='Destination organization'
    )
    batch_type: str = Field(default='custom', description='Batch type (custom or pilot)')

    @validator('repositories', pre=True)
    def split_repositories(cls, v):
        """Accept comma separated names."""
        return _split_names(v)

    @validator('batch_type')
    def validate_batch_type(cls, v):
        """Validate batch type."""
        if v.lower() not in ('custom', 'pilot'):
            raise ValueError("batch_type must be 'custom' or 'pilot'")
        return v.lower()


class ConfigureBatchParams(BatchTargetParams):
    destination_org: Optional[str] = Field(
        default=None, description='Destination organization'
    )
    migration_api: Optional[str] = Field(
        default=None, description='Migration API to use (GEI or ELM)'
    )


class ScheduleBatchParams(BatchTargetParams):
    scheduled_at: Optional[str] = Field(
        default=None, description='ISO 8601 datetime (defaults to now)'
    )
    destination_org: Optional[str] = Field(
        default=None, description='Destination organization'
    )


class BatchMembershipParams(BatchTargetParams):
    repositories: List[str] = Field(
        default_factory=list, description='Repository full names'
    )

    @validator('repositories', pre=True)
    def split_repositories(cls, v):
        """Accept comma separated names."""
        return _split_names(v)


class AddReposToBatchParams(BatchMembershipParams):
    pass


class RemoveReposFromBatchParams(BatchMembershipParams):
    pass


class StartMigrationParams(BatchTargetParams):
    repository: Optional[str] = Field(default=None, description='Single repository')
    dry_run: bool = Field(default=True, description='Perform a dry run')


class CancelMigrationParams(BatchTargetParams):
    repository: Optional[str] = Field(default=None, description='Single repository')


class RetryBatchFailuresParams(BatchTargetParams):
    pass


class UpdateRepositoryStatusParams(ToolParams):
    repository: str = Field(..., description='Repository full name (org/repo)')
    status: str = Field(..., description='New migration status')
    reason: Optional[str] = Field(default=None, description='Reason for the change')
