"""Progress aggregation over repository statuses."""

from typing import Iterable

from pydantic import BaseModel, Field

from ..models.repository import MigrationStatus


QUEUED = frozenset({MigrationStatus.DRY_RUN_QUEUED, MigrationStatus.QUEUED_FOR_MIGRATION})
IN_PROGRESS = frozenset(
    {
        MigrationStatus.DRY_RUN_IN_PROGRESS,
        MigrationStatus.MIGRATING_CONTENT,
        MigrationStatus.ARCHIVE_GENERATING,
        MigrationStatus.PRE_MIGRATION,
        MigrationStatus.POST_MIGRATION,
    }
)
COMPLETED = frozenset(
    {
        MigrationStatus.DRY_RUN_COMPLETE,
        MigrationStatus.MIGRATION_COMPLETE,
        MigrationStatus.COMPLETE,
    }
)
FAILED = frozenset({MigrationStatus.DRY_RUN_FAILED, MigrationStatus.MIGRATION_FAILED})


class MigrationProgress(BaseModel):
    """Aggregated status counts."""

    total_count: int = Field(default=0, description='Repositories counted')
    pending_count: int = Field(default=0, description='Pending repositories')
    queued_count: int = Field(default=0, description='Queued repositories')
    in_progress_count: int = Field(default=0, description='Repositories in flight')
    completed_count: int = Field(default=0, description='Completed repositories')
    failed_count: int = Field(default=0, description='Failed repositories')
    skipped_count: int = Field(default=0, description='Repositories not migrated')
    percent_complete: float = Field(default=0.0, description='Completed percentage')


def calculate_progress(statuses: Iterable[str]) -> MigrationProgress:
    """Count statuses into progress buckets.

    Unknown status strings count toward the total only.

    Args:
        statuses: Status values (enum members or raw strings)

    Returns:
        Aggregated progress
    """
    progress = MigrationProgress()
    for raw in statuses:
        progress.total_count += 1
        try:
            status = MigrationStatus(raw)
        except ValueError:
            continue

        if status == MigrationStatus.PENDING:
            progress.pending_count += 1
        elif status in QUEUED:
            progress.queued_count += 1
        elif status in IN_PROGRESS:
            progress.in_progress_count += 1
        elif status in COMPLETED:
            progress.completed_count += 1
        elif status in FAILED:
            progress.failed_count += 1
        elif status == MigrationStatus.WONT_MIGRATE:
            progress.skipped_count += 1

    if progress.total_count:
        progress.percent_complete = (
            progress.completed_count / progress.total_count * 100
        )
    return progress
