"""Repository migration status state machine.

Decides which lifecycle transitions are legal for a repository and derives
an aggregate batch status from the statuses of its members.
"""

from enum import Enum
from typing import Dict, Iterable, Optional, Tuple

from ..models.batch import BatchStatus, BatchType
from ..models.repository import MigrationStatus


QUEUEABLE_STATUSES = frozenset(
    {
        MigrationStatus.PENDING,
        MigrationStatus.DRY_RUN_FAILED,
        MigrationStatus.MIGRATION_FAILED,
        MigrationStatus.ROLLED_BACK,
    }
)

# post_migration is not cancellable
CANCELLABLE_STATUSES = frozenset(
    {
        MigrationStatus.DRY_RUN_QUEUED,
        MigrationStatus.DRY_RUN_IN_PROGRESS,
        MigrationStatus.QUEUED_FOR_MIGRATION,
        MigrationStatus.MIGRATING_CONTENT,
        MigrationStatus.ARCHIVE_GENERATING,
        MigrationStatus.PRE_MIGRATION,
    }
)

RETRYABLE_STATUSES = frozenset(
    {MigrationStatus.MIGRATION_FAILED, MigrationStatus.DRY_RUN_FAILED}
)

ACTIVE_STATUSES = frozenset(
    {
        MigrationStatus.DRY_RUN_QUEUED,
        MigrationStatus.DRY_RUN_IN_PROGRESS,
        MigrationStatus.QUEUED_FOR_MIGRATION,
        MigrationStatus.PRE_MIGRATION,
        MigrationStatus.ARCHIVE_GENERATING,
        MigrationStatus.MIGRATING_CONTENT,
        MigrationStatus.POST_MIGRATION,
        MigrationStatus.MIGRATION_COMPLETE,
    }
)

DONE_STATUSES = frozenset({MigrationStatus.COMPLETE, MigrationStatus.WONT_MIGRATE})


class MigrationIntent(str, Enum):
    """Requested action on a repository."""

    DRY_RUN = 'dry_run'
    PRODUCTION = 'production'
    CANCEL = 'cancel'
    RETRY = 'retry'


def can_queue_for_migration(status: MigrationStatus, dry_run: bool) -> bool:
    """Check whether a repository may be queued.

    Args:
        status: Current repository status
        dry_run: Whether the queue request is a dry run

    Returns:
        True if the repository may be queued
    """
    if status in QUEUEABLE_STATUSES:
        return True
    # A completed dry run can only proceed to production
    return status == MigrationStatus.DRY_RUN_COMPLETE and not dry_run


def is_cancellable(status: MigrationStatus) -> bool:
    """Check whether an in-flight repository may be returned to pending."""
    return status in CANCELLABLE_STATUSES


def is_retryable(status: MigrationStatus) -> bool:
    """Check whether a failed repository may be reset for retry."""
    return status in RETRYABLE_STATUSES


def queue_status(dry_run: bool) -> MigrationStatus:
    """Status a repository enters when queued."""
    if dry_run:
        return MigrationStatus.DRY_RUN_QUEUED
    return MigrationStatus.QUEUED_FOR_MIGRATION


def queue_priority(batch_type: BatchType) -> int:
    """Queue priority applied to members of a batch of the given type."""
    return 1 if batch_type == BatchType.PILOT else 0


def _build_transitions() -> Dict[Tuple[MigrationStatus, MigrationIntent], MigrationStatus]:
    transitions = {}
    for status in MigrationStatus:
        if can_queue_for_migration(status, dry_run=True):
            transitions[(status, MigrationIntent.DRY_RUN)] = queue_status(True)
        if can_queue_for_migration(status, dry_run=False):
            transitions[(status, MigrationIntent.PRODUCTION)] = queue_status(False)
        if is_cancellable(status):
            transitions[(status, MigrationIntent.CANCEL)] = MigrationStatus.PENDING
        if is_retryable(status):
            transitions[(status, MigrationIntent.RETRY)] = MigrationStatus.PENDING
    return transitions


TRANSITIONS = _build_transitions()


def next_status(
    status: MigrationStatus, intent: MigrationIntent
) -> Optional[MigrationStatus]:
    """Resolve the status reached by applying an intent.

    Args:
        status: Current repository status
        intent: Requested action

    Returns:
        New status, or None if the transition is not allowed
    """
    return TRANSITIONS.get((MigrationStatus(status), MigrationIntent(intent)))


def derive_batch_status(statuses: Iterable[MigrationStatus]) -> Optional[BatchStatus]:
    """Derive a batch status from the statuses of its members.

    Args:
        statuses: Member repository statuses

    Returns:
        Derived batch status, or None to leave the batch unchanged
    """
    statuses = [MigrationStatus(s) for s in statuses]
    if not statuses:
        return None

    if any(s in ACTIVE_STATUSES for s in statuses):
        return BatchStatus.IN_PROGRESS

    done = sum(1 for s in statuses if s in DONE_STATUSES)
    failed = sum(1 for s in statuses if s in RETRYABLE_STATUSES)

    if done == len(statuses):
        return BatchStatus.COMPLETED
    if failed == len(statuses):
        return BatchStatus.FAILED
    if failed and done + failed == len(statuses):
        return BatchStatus.FAILED
    return None
