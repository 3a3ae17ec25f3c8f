"""Batch lifecycle orchestration over the migration store."""

import threading
from datetime import datetime
from typing import Any, Dict, List, Optional

from loguru import logger

from .planner import (
    complexity_rating,
    dependency_map,
    normalize_wave_size,
    plan_waves,
    pilot_score,
    rank_pilot_candidates,
)
from .progress import calculate_progress
from .status import (
    ACTIVE_STATUSES,
    can_queue_for_migration,
    derive_batch_status,
    is_cancellable,
    is_retryable,
    queue_priority,
    queue_status,
)
from ..api.exceptions import OrchestratorNotFoundError, OrchestratorValidationError
from ..config.config import PlanningConfig
from ..models.batch import Batch, BatchStatus, BatchType, MigrationAPI
from ..models.repository import MigrationStatus, Repository, RepositoryFilter
from ..storage.base import MigrationStore


MIGRATED_STATUSES = (MigrationStatus.COMPLETE, MigrationStatus.MIGRATION_COMPLETE)


def _iso(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None


def parse_schedule_time(value: Optional[str]) -> datetime:
    """Parse a schedule timestamp.

    Accepts ISO 8601 (a trailing ``Z`` is treated as UTC) or ``YYYY-MM-DD``.

    Args:
        value: Timestamp string, or None for now

    Returns:
        Parsed datetime

    Raises:
        OrchestratorValidationError: If the value cannot be parsed
    """
    if not value:
        return datetime.now()
    text = value.strip()
    if text.endswith('Z'):
        text = text[:-1] + '+00:00'
    try:
        return datetime.fromisoformat(text)
    except ValueError:
        pass
    try:
        return datetime.strptime(text, '%Y-%m-%d')
    except ValueError:
        raise OrchestratorValidationError(
            'invalid datetime format. Use ISO 8601 (e.g., 2024-01-15T09:00:00Z)',
            details={'scheduled_at': value},
        )


class BatchOrchestrator:
    """Applies planning and state machine rules to stored batches.

    Every method reads current state from the store, validates it and writes
    the result back. Methods return plain dictionaries carrying a ``summary``
    sentence for the caller.
    """

    def __init__(self, store: MigrationStore, planning: Optional[PlanningConfig] = None):
        """Initialize batch orchestrator.

        Args:
            store: Durable migration store
            planning: Planning settings
        """
        self.store = store
        self.planning = planning or PlanningConfig()
        self._lock = threading.RLock()
        self.logger = logger.bind(component='BatchOrchestrator')

    # Lookups

    def resolve_batch(
        self, batch_id: Optional[int] = None, batch_name: Optional[str] = None
    ) -> Batch:
        """Resolve a batch by ID or name; the ID wins when both are given.

        Raises:
            OrchestratorValidationError: If neither is given
            OrchestratorNotFoundError: If the batch does not exist
        """
        if batch_id:
            batch = self.store.get_batch(batch_id)
            if batch is None:
                raise OrchestratorNotFoundError('batch', batch_id)
            return batch
        if batch_name:
            batch = self.store.get_batch_by_name(batch_name)
            if batch is None:
                raise OrchestratorNotFoundError('batch', batch_name)
            return batch
        raise OrchestratorValidationError('batch_name or batch_id is required')

    def get_repository(self, full_name: str) -> Repository:
        """Get a repository or raise if unknown."""
        if not full_name:
            raise OrchestratorValidationError('repository is required')
        repo = self.store.get_repository(full_name)
        if repo is None:
            raise OrchestratorNotFoundError('repository', full_name)
        return repo

    def _members(self, batch: Batch) -> List[Repository]:
        return self.store.list_repositories(RepositoryFilter(batch_id=batch.id))

    def _settle(
        self, batch: Batch, members: List[Repository], running_only: bool = True
    ) -> Batch:
        """Bring a batch status in line with its members.

        A running batch with nothing left in flight becomes ``ready`` unless
        its members derive a terminal status. With ``running_only`` other
        batches are left alone. Returns the batch as stored.
        """
        if running_only and batch.status != BatchStatus.IN_PROGRESS:
            return batch
        derived = derive_batch_status(r.status for r in members)
        if (
            derived is None
            and batch.status == BatchStatus.IN_PROGRESS
            and not any(r.status in ACTIVE_STATUSES for r in members)
        ):
            derived = BatchStatus.READY
        if derived is None or derived == batch.status:
            return batch

        fields = {}
        if derived == BatchStatus.COMPLETED:
            fields['completed_at'] = datetime.now()
        if self.store.transition_batch(batch.id, [batch.status], derived, **fields):
            self.logger.info(
                f'Batch {batch.name} status {batch.status.value} -> {derived.value}'
            )
        return self.store.get_batch(batch.id) or batch

    # Batch lifecycle

    def create_batch(
        self,
        name: Optional[str],
        repositories: List[str],
        description: Optional[str] = None,
        destination_org: Optional[str] = None,
        batch_type: BatchType = BatchType.CUSTOM,
    ) -> Dict[str, Any]:
        """Create a batch from existing repositories.

        Args:
            name: Batch name; generated when empty
            repositories: Repository full names, all of which must exist
            description: Optional description
            destination_org: Optional destination organization
            batch_type: Batch type

        Returns:
            Batch creation result

        Raises:
            OrchestratorValidationError: If no repositories are given or some
                do not exist
        """
        if not repositories:
            raise OrchestratorValidationError('no repositories specified for batch')

        names = list(dict.fromkeys(repositories))
        found = self.store.get_repositories_by_names(names)
        if len(found) != len(names):
            found_names = {r.full_name for r in found}
            missing = [n for n in names if n not in found_names]
            raise OrchestratorValidationError(
                f'only {len(found)} of {len(names)} repositories found; '
                f'missing: {", ".join(missing)}',
                details={'missing_repositories': missing},
            )

        if not name or not name.strip():
            name = f'batch-{datetime.now().strftime("%Y%m%d-%H%M%S")}'

        batch = self.store.create_batch(
            Batch(
                name=name,
                description=description
                or f'Created with {len(found)} repositories',
                type=batch_type,
                destination_org=destination_org or None,
            )
        )
        self.store.add_repositories_to_batch(batch.id, [r.full_name for r in found])
        batch = self.store.get_batch(batch.id)

        self.logger.info(f'Created batch {batch.name} with {len(found)} repositories')

        result = {
            'batch_id': batch.id,
            'batch_name': batch.name,
            'repository_count': batch.repository_count,
            'status': batch.status.value,
            'repositories': [r.full_name for r in found],
            'summary': f"Created batch '{batch.name}' with {len(found)} repositories",
        }
        if batch.destination_org:
            result['destination_org'] = batch.destination_org
        return result

    def configure_batch(
        self,
        batch_id: Optional[int] = None,
        batch_name: Optional[str] = None,
        destination_org: Optional[str] = None,
        migration_api: Optional[str] = None,
    ) -> Dict[str, Any]:
        """Change destination organization and/or migration API of a batch.

        Raises:
            OrchestratorValidationError: If no setting is given or the
                migration API is not supported
        """
        if not destination_org and not migration_api:
            raise OrchestratorValidationError(
                'at least one setting must be specified (destination_org or migration_api)'
            )

        batch = self.resolve_batch(batch_id, batch_name)

        api = None
        if migration_api:
            normalized = migration_api.strip().upper()
            try:
                api = MigrationAPI(normalized)
            except ValueError:
                raise OrchestratorValidationError(
                    f"invalid migration_api '{migration_api}'. Must be 'GEI' or 'ELM'"
                )

        changes = []
        if destination_org:
            batch.destination_org = destination_org
            changes.append(f"destination organization set to '{destination_org}'")
        if api is not None:
            batch.migration_api = api
            changes.append(f"migration API set to '{api.value}'")

        batch = self.store.update_batch(batch)
        self.logger.info(f'Configured batch {batch.name}: {", ".join(changes)}')

        result = {
            'batch_id': batch.id,
            'batch_name': batch.name,
            'status': batch.status.value,
            'migration_api': batch.migration_api.value,
            'summary': f"Batch '{batch.name}' updated: {', '.join(changes)}",
        }
        if batch.destination_org:
            result['destination_org'] = batch.destination_org
        return result

    def schedule_batch(
        self,
        batch_id: Optional[int] = None,
        batch_name: Optional[str] = None,
        scheduled_at: Optional[str] = None,
        destination_org: Optional[str] = None,
    ) -> Dict[str, Any]:
        """Schedule a batch.

        Args:
            batch_id: Batch ID
            batch_name: Batch name
            scheduled_at: ISO 8601 timestamp or date; defaults to now
            destination_org: Optional destination organization override

        Returns:
            Scheduling result
        """
        when = parse_schedule_time(scheduled_at)
        batch = self.resolve_batch(batch_id, batch_name)

        if destination_org:
            batch.destination_org = destination_org
        batch.scheduled_at = when
        batch.status = BatchStatus.SCHEDULED
        batch = self.store.update_batch(batch)

        self.logger.info(f'Scheduled batch {batch.name} for {when.isoformat()}')

        result = {
            'batch_id': batch.id,
            'batch_name': batch.name,
            'status': batch.status.value,
            'scheduled_at': when.isoformat(),
            'summary': f"Batch '{batch.name}' scheduled for {when.strftime('%Y-%m-%d %H:%M:%S')}",
        }
        if destination_org:
            result['destination_org'] = destination_org
        return result

    def start_batch(
        self,
        batch_id: Optional[int] = None,
        batch_name: Optional[str] = None,
        dry_run: bool = True,
    ) -> Dict[str, Any]:
        """Queue every eligible member of a batch.

        The batch status is first re-derived from its members, so a batch
        whose previous run has finished can be started again. The batch is
        then claimed with a compare-and-set on its status, so two concurrent
        starts cannot both succeed. Members that cannot be queued,
        or whose status changed underneath, are skipped. Store failures on a
        member are logged and counted without aborting the batch.

        Args:
            batch_id: Batch ID
            batch_name: Batch name
            dry_run: Queue a dry run instead of a production migration

        Returns:
            Start result with queued, skipped and failed counts

        Raises:
            OrchestratorValidationError: If the batch is already running or
                has no repositories
        """
        with self._lock:
            batch = self.resolve_batch(batch_id, batch_name)
            members = self._members(batch)
            batch = self._settle(batch, members)
            if batch.status == BatchStatus.IN_PROGRESS:
                raise OrchestratorValidationError(f"batch '{batch.name}' is already running")
            if not members:
                raise OrchestratorValidationError(f"batch '{batch.name}' has no repositories")

            now = datetime.now()
            if dry_run:
                stamps = {
                    'dry_run_started_at': batch.dry_run_started_at or now,
                    'last_dry_run_at': now,
                }
            else:
                stamps = {'started_at': now, 'last_migration_attempt_at': now}

            startable = [s for s in BatchStatus if s != BatchStatus.IN_PROGRESS]
            if not self.store.transition_batch(
                batch.id, startable, BatchStatus.IN_PROGRESS, **stamps
            ):
                raise OrchestratorValidationError(f"batch '{batch.name}' is already running")

            return self._queue_members(batch, members, dry_run)

    def _queue_members(
        self, batch: Batch, members: List[Repository], dry_run: bool
    ) -> Dict[str, Any]:
        target = queue_status(dry_run)
        priority = queue_priority(batch.type)
        queued = []
        skipped = []
        failed = []

        for repo in members:
            if not can_queue_for_migration(repo.status, dry_run):
                skipped.append(repo.full_name)
                continue
            try:
                applied = self.store.transition_repository(
                    repo.full_name, repo.status, target, priority=priority
                )
            except Exception as e:
                self.logger.error(f'Failed to queue repository {repo.full_name}: {e}')
                failed.append(repo.full_name)
                continue
            if applied:
                queued.append({'full_name': repo.full_name, 'status': target.value})
            else:
                self.logger.debug(f'Status of {repo.full_name} changed concurrently, skipping')
                skipped.append(repo.full_name)

        migration_type = 'dry-run' if dry_run else 'production migration'
        self.logger.info(
            f'Started {migration_type} for batch {batch.name}: '
            f'{len(queued)} queued, {len(skipped)} skipped, {len(failed)} failed'
        )

        return {
            'batch_id': batch.id,
            'batch_name': batch.name,
            'dry_run': dry_run,
            'queued_count': len(queued),
            'skipped_count': len(skipped),
            'failed_count': len(failed),
            'repositories': queued,
            'skipped_repositories': skipped,
            'failed_repositories': failed,
            'summary': (
                f"Started {migration_type} for batch '{batch.name}' "
                f'({len(queued)} repositories queued, {len(skipped)} skipped)'
            ),
        }

    def start_repository(self, full_name: str, dry_run: bool = True) -> Dict[str, Any]:
        """Queue a single repository outside of any batch.

        Raises:
            OrchestratorValidationError: If the repository cannot be queued
        """
        repo = self.get_repository(full_name)
        if not can_queue_for_migration(repo.status, dry_run):
            raise OrchestratorValidationError(
                f"repository '{full_name}' cannot be queued for migration "
                f'(status: {repo.status.value})'
            )

        target = queue_status(dry_run)
        if not self.store.transition_repository(full_name, repo.status, target):
            raise OrchestratorValidationError(
                f"repository '{full_name}' changed status concurrently; try again"
            )

        migration_type = 'dry-run' if dry_run else 'production migration'
        self.logger.info(f'Started {migration_type} for repository {full_name}')
        return {
            'repository': full_name,
            'dry_run': dry_run,
            'queued_count': 1,
            'skipped_count': 0,
            'repositories': [{'full_name': full_name, 'status': target.value}],
            'summary': f"Started {migration_type} for repository '{full_name}'",
        }

    def cancel_batch(
        self, batch_id: Optional[int] = None, batch_name: Optional[str] = None
    ) -> Dict[str, Any]:
        """Return every cancellable member to pending and cancel the batch."""
        batch = self.resolve_batch(batch_id, batch_name)

        cancelled = []
        for repo in self._members(batch):
            if not is_cancellable(repo.status):
                continue
            try:
                if self.store.transition_repository(
                    repo.full_name, repo.status, MigrationStatus.PENDING
                ):
                    cancelled.append(repo.full_name)
            except Exception as e:
                self.logger.error(f'Failed to cancel repository {repo.full_name}: {e}')

        self.store.transition_batch(batch.id, list(BatchStatus), BatchStatus.CANCELLED)
        self.logger.info(f'Cancelled batch {batch.name} ({len(cancelled)} repositories)')

        return {
            'batch_id': batch.id,
            'batch_name': batch.name,
            'cancelled_count': len(cancelled),
            'repositories': cancelled,
            'summary': f"Cancelled batch '{batch.name}' ({len(cancelled)} repositories)",
        }

    def cancel_repository(self, full_name: str) -> Dict[str, Any]:
        """Return a single in-flight repository to pending.

        Raises:
            OrchestratorValidationError: If the repository is not cancellable
        """
        repo = self.get_repository(full_name)
        if not is_cancellable(repo.status):
            raise OrchestratorValidationError(
                f"repository '{full_name}' is not in a cancellable state "
                f'(status: {repo.status.value})'
            )
        if not self.store.transition_repository(
            full_name, repo.status, MigrationStatus.PENDING
        ):
            raise OrchestratorValidationError(
                f"repository '{full_name}' changed status concurrently; try again"
            )

        self.logger.info(f'Cancelled migration for repository {full_name}')
        return {
            'repository': full_name,
            'cancelled_count': 1,
            'summary': f"Cancelled migration for repository '{full_name}'",
        }

    def retry_batch_failures(
        self, batch_id: Optional[int] = None, batch_name: Optional[str] = None
    ) -> Dict[str, Any]:
        """Reset failed members of a batch to pending."""
        with self._lock:
            batch = self.resolve_batch(batch_id, batch_name)
            members = self._members(batch)
            batch = self._settle(batch, members)

        reset = []
        for repo in members:
            if not is_retryable(repo.status):
                continue
            try:
                if self.store.transition_repository(
                    repo.full_name, repo.status, MigrationStatus.PENDING
                ):
                    reset.append(repo.full_name)
            except Exception as e:
                self.logger.error(f'Failed to reset repository {repo.full_name}: {e}')

        self.logger.info(f'Reset {len(reset)} failed repositories in batch {batch.name}')
        return {
            'batch_id': batch.id,
            'batch_name': batch.name,
            'reset_count': len(reset),
            'repositories': reset,
            'summary': f"Reset {len(reset)} failed repositories to pending in batch '{batch.name}'",
        }

    def get_progress(
        self,
        batch_id: Optional[int] = None,
        batch_name: Optional[str] = None,
        repository: Optional[str] = None,
    ) -> Dict[str, Any]:
        """Aggregate progress for one repository or for a whole batch."""
        if repository:
            repo = self.get_repository(repository)
            progress = calculate_progress([repo.status])
            return {
                'repository': repo.full_name,
                'status': repo.status.value,
                'progress': progress.dict(),
                'summary': f"Repository '{repo.full_name}' status: {repo.status.value}",
            }

        if not batch_id and not batch_name:
            raise OrchestratorValidationError(
                'at least one of batch_name, batch_id, or repository must be specified'
            )

        with self._lock:
            batch = self.resolve_batch(batch_id, batch_name)
            members = self._members(batch)
            batch = self._settle(batch, members)
        progress = calculate_progress([r.status for r in members])
        return {
            'batch_id': batch.id,
            'batch_name': batch.name,
            'batch_status': batch.status.value,
            'progress': progress.dict(),
            'repositories': [
                {'full_name': r.full_name, 'status': r.status.value} for r in members
            ],
            'summary': (
                f"Batch '{batch.name}': {progress.completed_count}/{progress.total_count} "
                f'complete ({progress.percent_complete:.1f}%)'
            ),
        }

    # Membership and status maintenance

    def add_repositories(
        self,
        repositories: List[str],
        batch_id: Optional[int] = None,
        batch_name: Optional[str] = None,
    ) -> Dict[str, Any]:
        """Link repositories to a batch; unknown names are reported."""
        batch = self.resolve_batch(batch_id, batch_name)
        if not repositories:
            raise OrchestratorValidationError('repositories list is required')

        added = []
        failed = []
        for name in repositories:
            if self.store.get_repository(name) is None:
                failed.append(name)
                continue
            try:
                if self.store.add_repositories_to_batch(batch.id, [name]):
                    added.append(name)
                else:
                    failed.append(name)
            except Exception as e:
                self.logger.error(f'Failed to add {name} to batch {batch.name}: {e}')
                failed.append(name)

        return {
            'batch_id': batch.id,
            'batch_name': batch.name,
            'added_count': len(added),
            'failed_repositories': failed,
            'summary': f"Added {len(added)} repositories to batch '{batch.name}'",
        }

    def remove_repositories(
        self,
        repositories: List[str],
        batch_id: Optional[int] = None,
        batch_name: Optional[str] = None,
    ) -> Dict[str, Any]:
        """Unlink repositories that belong to a batch."""
        batch = self.resolve_batch(batch_id, batch_name)
        if not repositories:
            raise OrchestratorValidationError('repositories list is required')

        removed = []
        failed = []
        for name in repositories:
            repo = self.store.get_repository(name)
            if repo is None:
                failed.append(name)
                continue
            if repo.batch_id != batch.id:
                continue
            if self.store.remove_repositories_from_batch(batch.id, [name]):
                removed.append(name)

        return {
            'batch_id': batch.id,
            'batch_name': batch.name,
            'removed_count': len(removed),
            'failed_repositories': failed,
            'summary': f"Removed {len(removed)} repositories from batch '{batch.name}'",
        }

    def update_repository_status(
        self, full_name: str, status: str, reason: Optional[str] = None
    ) -> Dict[str, Any]:
        """Set a repository status directly, bypassing the state machine."""
        if not status:
            raise OrchestratorValidationError('status is required')
        try:
            new_status = MigrationStatus(status)
        except ValueError:
            raise OrchestratorValidationError(f'invalid status: {status}')

        repo = self.get_repository(full_name)
        old_status = repo.status
        repo.status = new_status
        self.store.update_repository(repo)

        self.logger.warning(
            f'Status of {full_name} set from {old_status.value} to {new_status.value}'
            + (f' ({reason})' if reason else '')
        )
        return {
            'repository': full_name,
            'old_status': old_status.value,
            'new_status': new_status.value,
            'reason': reason,
            'summary': f'Updated {full_name} status from {old_status.value} to {new_status.value}',
        }

    def refresh_batch_status(
        self, batch_id: Optional[int] = None, batch_name: Optional[str] = None
    ) -> Dict[str, Any]:
        """Derive the batch status from its members and store it if it changed."""
        with self._lock:
            batch = self.resolve_batch(batch_id, batch_name)
            settled = self._settle(batch, self._members(batch), running_only=False)

        changed = settled.status != batch.status
        status = settled.status
        return {
            'batch_id': batch.id,
            'batch_name': batch.name,
            'status': status.value,
            'changed': changed,
            'summary': f"Batch '{batch.name}' status: {status.value}",
        }

    # Read-only queries

    def list_batches(self, status: Optional[str] = None, limit: int = 20) -> Dict[str, Any]:
        """List batches, optionally filtered by status."""
        limit = 20 if not limit or limit <= 0 else min(limit, 100)
        results = []
        for batch in self.store.list_batches():
            if status and batch.status.value != status:
                continue
            entry = {
                'id': batch.id,
                'name': batch.name,
                'type': batch.type.value,
                'status': batch.status.value,
                'created_at': _iso(batch.created_at),
                'repo_count': batch.repository_count,
            }
            if batch.destination_org:
                entry['destination_org'] = batch.destination_org
            if batch.scheduled_at:
                entry['scheduled_at'] = _iso(batch.scheduled_at)
            results.append(entry)
            if len(results) >= limit:
                break

        return {
            'batches': results,
            'count': len(results),
            'summary': f'Found {len(results)} batches',
        }

    def batch_details(
        self, batch_id: Optional[int] = None, batch_name: Optional[str] = None
    ) -> Dict[str, Any]:
        """Describe a batch and its members."""
        batch = self.resolve_batch(batch_id, batch_name)
        members = self._members(batch)
        status_counts: Dict[str, int] = {}
        for repo in members:
            status_counts[repo.status.value] = status_counts.get(repo.status.value, 0) + 1

        result = _batch_dict(batch)
        result.update(
            {
                'repositories': [
                    {'full_name': r.full_name, 'status': r.status.value} for r in members
                ],
                'repo_count': len(members),
                'status_counts': status_counts,
                'summary': (
                    f"Batch '{batch.name}': {len(members)} repositories, "
                    f'status={batch.status.value}'
                ),
            }
        )
        return result

    def repository_details(self, full_name: str) -> Dict[str, Any]:
        """Describe a repository, its validation and local dependencies."""
        repo = self.get_repository(full_name)
        result = {
            'full_name': repo.full_name,
            'organization': repo.organization,
            'name': repo.name,
            'status': repo.status.value,
            'discovered_at': _iso(repo.discovered_at),
            'is_archived': repo.is_archived,
            'is_fork': repo.is_fork,
            'batch_id': repo.batch_id,
            'priority': repo.priority,
        }
        if repo.size_bytes is not None:
            result['size_bytes'] = repo.size_bytes
        if repo.default_branch:
            result['default_branch'] = repo.default_branch

        validation: Dict[str, Any] = {}
        if repo.complexity_score is not None:
            validation['complexity_score'] = repo.complexity_score
            validation['complexity_rating'] = complexity_rating(repo.complexity_score)
        if repo.validation is not None:
            validation['has_blocking_files'] = repo.validation.has_blocking_files
            validation['has_oversized_repository'] = repo.validation.has_oversized_repository
        if validation:
            result['validation'] = validation

        local_deps = [
            d.dependency_full_name
            for d in self.store.get_dependencies(full_name)
            if d.is_local
        ]
        if local_deps:
            result['local_dependencies'] = local_deps
            result['dependency_count'] = len(local_deps)

        result['summary'] = f'Repository {repo.full_name}: status={repo.status.value}'
        return result

    def validate_repository(self, full_name: str) -> Dict[str, Any]:
        """Report blockers and warnings for migrating a repository."""
        repo = self.get_repository(full_name)
        blockers = []
        warnings = []
        if repo.validation is not None:
            if repo.validation.has_blocking_files:
                blockers.append('Contains blocking files (e.g., large binaries)')
            if repo.validation.has_oversized_repository:
                blockers.append('Repository exceeds size limits')
        if repo.is_archived:
            warnings.append('Repository is archived')
        if repo.is_fork:
            warnings.append('Repository is a fork')

        can_migrate = not blockers
        if can_migrate:
            summary = f'Repository {full_name} is ready for migration'
        else:
            summary = f'Repository {full_name} has {len(blockers)} blockers preventing migration'
        return {
            'repository': full_name,
            'can_migrate': can_migrate,
            'blockers': blockers,
            'warnings': warnings,
            'summary': summary,
        }

    def complexity_breakdown(self, full_name: str) -> Dict[str, Any]:
        """Break a repository's complexity score into components and findings."""
        repo = self.get_repository(full_name)
        blockers = []
        warnings = []
        components: Dict[str, int] = {}

        validation = repo.validation
        if validation is not None:
            components = dict(validation.complexity_breakdown)
            if validation.has_blocking_files:
                blockers.append('Has blocking files')
            if validation.has_oversized_commits:
                blockers.append('Has oversized commits')
            if validation.has_oversized_repository:
                blockers.append('Repository is oversized')
            if validation.has_long_refs:
                warnings.append('Has long references')
            if validation.has_large_file_warnings:
                warnings.append('Has large file warnings')

        rating = complexity_rating(repo.complexity_score)
        return {
            'repository': full_name,
            'total_score': repo.complexity_score or 0,
            'rating': rating,
            'components': components,
            'blockers': blockers,
            'warnings': warnings,
            'summary': f'{full_name} complexity: {rating}',
        }

    def check_dependencies(self, full_name: str, include_reverse: bool = False) -> Dict[str, Any]:
        """List a repository's dependencies and their migration state."""
        if not full_name:
            raise OrchestratorValidationError('repository name is required')

        dependencies = []
        for dep in self.store.get_dependencies(full_name):
            info = {
                'dependency': dep.dependency_full_name,
                'type': dep.dependency_type,
                'is_local': dep.is_local,
                'is_migrated': False,
            }
            if dep.is_local:
                dep_repo = self.store.get_repository(dep.dependency_full_name)
                if dep_repo is not None:
                    info['status'] = dep_repo.status.value
                    info['is_migrated'] = dep_repo.status in MIGRATED_STATUSES
            dependencies.append(info)

        result = {
            'repository': full_name,
            'dependencies': dependencies,
            'count': len(dependencies),
            'summary': f'Found {len(dependencies)} dependencies for {full_name}',
        }

        if include_reverse:
            names = self.store.get_dependent_repositories(full_name)
            result['reverse_dependencies'] = [
                {
                    'repository': r.full_name,
                    'status': r.status.value,
                    'is_migrated': r.status in MIGRATED_STATUSES,
                }
                for r in self.store.get_repositories_by_names(names)
            ]
        return result

    def analyze_repositories(
        self,
        organization: Optional[str] = None,
        status: Optional[str] = None,
        max_complexity: Optional[int] = None,
        limit: int = 20,
    ) -> Dict[str, Any]:
        """List repositories with their complexity ratings."""
        try:
            status_filter = MigrationStatus(status) if status else None
        except ValueError:
            raise OrchestratorValidationError(f'invalid status: {status}')

        repos = self.store.list_repositories(
            RepositoryFilter(
                organization=organization or None,
                status=status_filter,
                max_complexity=max_complexity if max_complexity and max_complexity > 0 else None,
                limit=limit,
            )
        )
        results = [
            {
                'full_name': r.full_name,
                'status': r.status.value,
                'complexity_score': r.complexity_score or 0,
                'complexity_rating': complexity_rating(r.complexity_score),
                'is_archived': r.is_archived,
                'is_fork': r.is_fork,
            }
            for r in repos
        ]
        return {
            'repositories': results,
            'count': len(results),
            'summary': f'Found {len(results)} repositories (filter: {status or "all"})',
        }

    def migration_status(self, repositories: List[str]) -> Dict[str, Any]:
        """Report the status of the named repositories."""
        if not repositories:
            raise OrchestratorValidationError('at least one repository is required')
        found = self.store.get_repositories_by_names(repositories)
        statuses = [{'full_name': r.full_name, 'status': r.status.value} for r in found]
        return {
            'statuses': statuses,
            'count': len(statuses),
            'summary': f'Found status for {len(statuses)} of {len(repositories)} repositories',
        }

    def find_pilot_candidates(
        self, max_count: Optional[int] = None, organization: Optional[str] = None
    ) -> Dict[str, Any]:
        """Pick low-risk pending repositories for a pilot batch."""
        if not max_count or max_count <= 0:
            max_count = self.planning.default_pilot_count
        max_count = min(max_count, self.planning.max_pilot_count)

        pool = self.store.list_repositories(
            RepositoryFilter(
                status=MigrationStatus.PENDING,
                organization=organization or None,
                max_complexity=self.planning.pilot_max_complexity,
            )
        )
        candidates = [
            {
                'full_name': r.full_name,
                'complexity_score': r.complexity_score or 0,
                'complexity_rating': complexity_rating(r.complexity_score),
                'pilot_score': pilot_score(r),
                'size_kb': (r.size_bytes or 0) // 1024,
                'is_archived': r.is_archived,
                'is_fork': r.is_fork,
            }
            for r in rank_pilot_candidates(pool, max_count)
        ]
        return {
            'candidates': candidates,
            'count': len(candidates),
            'organization': organization,
            'summary': f'Found {len(candidates)} repositories suitable for pilot migration',
        }

    def plan_waves(
        self, wave_size: Optional[int] = None, organization: Optional[str] = None
    ) -> Dict[str, Any]:
        """Plan dependency-ordered waves over pending repositories."""
        wave_size = normalize_wave_size(wave_size or self.planning.default_wave_size)
        wave_size = min(wave_size, self.planning.max_wave_size)

        repos = self.store.list_repositories(
            RepositoryFilter(status=MigrationStatus.PENDING, organization=organization or None)
        )
        if not repos:
            return {'waves': [], 'summary': 'No pending repositories found'}

        edges = []
        for repo in repos:
            edges.extend(self.store.get_dependencies(repo.full_name))

        waves = plan_waves(
            [r.full_name for r in repos],
            dependency_map(edges),
            wave_size=wave_size,
            max_passes=self.planning.max_passes,
        )
        return {
            'waves': [
                {'wave_number': i, 'repositories': wave, 'count': len(wave)}
                for i, wave in enumerate(waves, start=1)
            ],
            'summary': f'Planned {len(waves)} waves for {len(repos)} repositories',
        }


def _batch_dict(batch: Batch) -> Dict[str, Any]:
    """Render a batch as JSON compatible values."""
    return {
        'id': batch.id,
        'name': batch.name,
        'description': batch.description,
        'type': batch.type.value,
        'status': batch.status.value,
        'destination_org': batch.destination_org,
        'migration_api': batch.migration_api.value,
        'created_at': _iso(batch.created_at),
        'scheduled_at': _iso(batch.scheduled_at),
        'started_at': _iso(batch.started_at),
        'dry_run_started_at': _iso(batch.dry_run_started_at),
        'last_dry_run_at': _iso(batch.last_dry_run_at),
        'last_migration_attempt_at': _iso(batch.last_migration_attempt_at),
        'completed_at': _iso(batch.completed_at),
    }
