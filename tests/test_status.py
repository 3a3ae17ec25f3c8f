"""Tests for the repository status state machine."""

import pytest

from repo_migrate.migration.status import (
    MigrationIntent,
    TRANSITIONS,
    can_queue_for_migration,
    derive_batch_status,
    is_cancellable,
    is_retryable,
    next_status,
    queue_priority,
    queue_status,
)
from repo_migrate.models.batch import BatchStatus, BatchType
from repo_migrate.models.repository import MigrationStatus as S


NEVER_QUEUEABLE = [
    S.WONT_MIGRATE,
    S.REMEDIATION_REQUIRED,
    S.MIGRATION_COMPLETE,
    S.COMPLETE,
    S.DRY_RUN_QUEUED,
    S.DRY_RUN_IN_PROGRESS,
    S.QUEUED_FOR_MIGRATION,
    S.PRE_MIGRATION,
    S.ARCHIVE_GENERATING,
    S.MIGRATING_CONTENT,
    S.POST_MIGRATION,
]

ALWAYS_QUEUEABLE = [S.PENDING, S.DRY_RUN_FAILED, S.MIGRATION_FAILED, S.ROLLED_BACK]


class TestCanQueueForMigration:
    """Test queue eligibility."""

    @pytest.mark.parametrize('status', NEVER_QUEUEABLE)
    @pytest.mark.parametrize('dry_run', [True, False])
    def test_never_queueable(self, status, dry_run):
        assert can_queue_for_migration(status, dry_run) is False

    @pytest.mark.parametrize('status', ALWAYS_QUEUEABLE)
    @pytest.mark.parametrize('dry_run', [True, False])
    def test_always_queueable(self, status, dry_run):
        assert can_queue_for_migration(status, dry_run) is True

    def test_dry_run_complete_only_for_production(self):
        """A completed dry run can only move on to production."""
        assert can_queue_for_migration(S.DRY_RUN_COMPLETE, dry_run=True) is False
        assert can_queue_for_migration(S.DRY_RUN_COMPLETE, dry_run=False) is True

    def test_every_status_classified(self):
        classified = set(NEVER_QUEUEABLE) | set(ALWAYS_QUEUEABLE) | {S.DRY_RUN_COMPLETE}
        assert classified == set(S)


class TestCancelAndRetry:
    """Test cancellable and retryable predicates."""

    def test_cancellable_statuses(self):
        for status in (
            S.DRY_RUN_QUEUED,
            S.DRY_RUN_IN_PROGRESS,
            S.QUEUED_FOR_MIGRATION,
            S.MIGRATING_CONTENT,
            S.ARCHIVE_GENERATING,
            S.PRE_MIGRATION,
        ):
            assert is_cancellable(status)

    def test_post_migration_not_cancellable(self):
        assert not is_cancellable(S.POST_MIGRATION)

    def test_terminal_statuses_not_cancellable(self):
        for status in (S.PENDING, S.COMPLETE, S.MIGRATION_FAILED, S.WONT_MIGRATE):
            assert not is_cancellable(status)

    def test_retryable_statuses(self):
        assert is_retryable(S.MIGRATION_FAILED)
        assert is_retryable(S.DRY_RUN_FAILED)
        assert not is_retryable(S.ROLLED_BACK)
        assert not is_retryable(S.PENDING)


class TestTransitions:
    """Test the transition table."""

    def test_queue_status(self):
        assert queue_status(True) == S.DRY_RUN_QUEUED
        assert queue_status(False) == S.QUEUED_FOR_MIGRATION

    def test_queue_priority(self):
        assert queue_priority(BatchType.PILOT) == 1
        assert queue_priority(BatchType.CUSTOM) == 0

    def test_next_status_dry_run(self):
        assert next_status(S.PENDING, MigrationIntent.DRY_RUN) == S.DRY_RUN_QUEUED
        assert next_status(S.DRY_RUN_COMPLETE, MigrationIntent.DRY_RUN) is None

    def test_next_status_production(self):
        assert (
            next_status(S.DRY_RUN_COMPLETE, MigrationIntent.PRODUCTION)
            == S.QUEUED_FOR_MIGRATION
        )

    def test_next_status_cancel_and_retry(self):
        assert next_status(S.MIGRATING_CONTENT, MigrationIntent.CANCEL) == S.PENDING
        assert next_status(S.DRY_RUN_FAILED, MigrationIntent.RETRY) == S.PENDING
        assert next_status(S.COMPLETE, MigrationIntent.CANCEL) is None

    def test_next_status_accepts_raw_values(self):
        assert next_status('pending', 'production') == S.QUEUED_FOR_MIGRATION

    def test_table_agrees_with_predicates(self):
        for (status, intent), target in TRANSITIONS.items():
            if intent == MigrationIntent.DRY_RUN:
                assert can_queue_for_migration(status, True)
                assert target == S.DRY_RUN_QUEUED
            elif intent == MigrationIntent.CANCEL:
                assert is_cancellable(status)


class TestDeriveBatchStatus:
    """Test batch status derivation."""

    def test_empty(self):
        assert derive_batch_status([]) is None

    def test_active_member_means_in_progress(self):
        assert derive_batch_status([S.COMPLETE, S.MIGRATING_CONTENT]) == BatchStatus.IN_PROGRESS

    def test_all_done(self):
        assert derive_batch_status([S.COMPLETE, S.WONT_MIGRATE]) == BatchStatus.COMPLETED

    def test_all_failed(self):
        assert (
            derive_batch_status([S.MIGRATION_FAILED, S.DRY_RUN_FAILED]) == BatchStatus.FAILED
        )

    def test_mixed_complete_and_failed(self):
        assert derive_batch_status([S.COMPLETE, S.MIGRATION_FAILED]) == BatchStatus.FAILED

    def test_pending_member_leaves_batch_unchanged(self):
        assert derive_batch_status([S.COMPLETE, S.PENDING]) is None
