"""Batch entity models."""

from datetime import datetime
from enum import Enum
from typing import Optional
from pydantic import BaseModel, Field, validator


class BatchStatus(str, Enum):
    """Batch lifecycle status."""

    PENDING = 'pending'
    SCHEDULED = 'scheduled'
    READY = 'ready'
    IN_PROGRESS = 'in_progress'
    COMPLETED = 'completed'
    CANCELLED = 'cancelled'
    FAILED = 'failed'


class BatchType(str, Enum):
    """Batch type."""

    CUSTOM = 'custom'
    PILOT = 'pilot'


class MigrationAPI(str, Enum):
    """Destination migration API."""

    GEI = 'GEI'
    ELM = 'ELM'


class Batch(BaseModel):
    """Group of repositories migrated together."""

    id: Optional[int] = Field(default=None, description='Batch ID')
    name: str = Field(..., description='Batch name')
    description: Optional[str] = Field(default=None, description='Description')
    type: BatchType = Field(default=BatchType.CUSTOM, description='Batch type')
    status: BatchStatus = Field(default=BatchStatus.PENDING, description='Status')

    # Destination settings
    destination_org: Optional[str] = Field(
        default=None, description='Destination organization'
    )
    migration_api: MigrationAPI = Field(
        default=MigrationAPI.GEI, description='Migration API to use'
    )

    repository_count: int = Field(default=0, description='Member repositories')

    # Timestamps
    created_at: Optional[datetime] = Field(
        default=None, description='Creation timestamp'
    )
    scheduled_at: Optional[datetime] = Field(
        default=None, description='Scheduled start'
    )
    started_at: Optional[datetime] = Field(
        default=None, description='Production migration start'
    )
    dry_run_started_at: Optional[datetime] = Field(
        default=None, description='First dry run start'
    )
    last_dry_run_at: Optional[datetime] = Field(
        default=None, description='Most recent dry run start'
    )
    last_migration_attempt_at: Optional[datetime] = Field(
        default=None, description='Most recent production attempt'
    )
    completed_at: Optional[datetime] = Field(
        default=None, description='Completion timestamp'
    )

    class Config:
        """Pydantic configuration."""

        json_encoders = {datetime: lambda v: v.isoformat() if v else None}

    @validator('name')
    def validate_name(cls, v):
        """Batch name must not be blank."""
        if not v or not v.strip():
            raise ValueError('Batch name cannot be empty')
        return v.strip()
