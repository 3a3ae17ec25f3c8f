"""Tests for the operation executor."""

from unittest.mock import patch

from repo_migrate.api.tools import ToolExecutor
from repo_migrate.migration.orchestrator import BatchOrchestrator
from repo_migrate.models.auth import AuthContext, ToolPermissions
from repo_migrate.models.repository import MigrationStatus, Repository
from repo_migrate.storage.memory import InMemoryStore


class TestToolExecutor:
    """Test dispatch, authorization and error reporting."""

    def setup_method(self):
        self.store = InMemoryStore()
        for name, score in (('org/a', 1), ('org/b', 2), ('org/c', 9)):
            self.store.add_repository(Repository(full_name=name, complexity_score=score))
        self.executor = ToolExecutor(BatchOrchestrator(self.store))
        self.admin = AuthContext.admin('root')

    def test_available_tools(self):
        tools = {t['name']: t for t in self.executor.available_tools()}

        assert len(tools) == 20
        assert tools['start_migration']['tier'] == 'admin'
        assert tools['create_batch']['tier'] == 'self_service'
        assert tools['list_batches']['tier'] == 'any'

    def test_success_result(self):
        result = self.executor.execute(
            'create_batch', {'name': 'wave-1', 'repositories': 'org/a, org/b'}, self.admin
        )

        assert result.success
        assert result.result['repository_count'] == 2
        assert result.summary == "Created batch 'wave-1' with 2 repositories"
        assert result.audit_required is False

    def test_permission_denied(self):
        auth = AuthContext(
            user_login='dev', permissions=ToolPermissions(can_read=True, can_migrate_own=True)
        )
        self.executor.execute('create_batch', {'name': 'b', 'repositories': ['org/a']}, auth)

        result = self.executor.execute('start_migration', {'batch_name': 'b'}, auth)

        assert not result.success
        assert result.error_type == 'permission_denied'
        assert self.store.get_repository('org/a').status == MigrationStatus.PENDING

    def test_unknown_tool(self):
        result = self.executor.execute('summon_repos', {}, self.admin)

        assert not result.success
        assert result.error_type == 'not_found'

    def test_unknown_tool_denied_for_non_admin(self):
        result = self.executor.execute('summon_repos', {}, AuthContext.read_only('viewer'))

        assert result.error_type == 'permission_denied'

    def test_invalid_arguments(self):
        result = self.executor.execute('list_batches', {'colour': 'blue'}, self.admin)

        assert not result.success
        assert result.error_type == 'validation_error'

    def test_invalid_batch_type(self):
        result = self.executor.execute(
            'create_batch',
            {'name': 'x', 'repositories': ['org/a'], 'batch_type': 'urgent'},
            self.admin,
        )

        assert result.error_type == 'validation_error'

    def test_orchestrator_error_reported(self):
        result = self.executor.execute('get_batch_details', {'batch_name': 'ghost'}, self.admin)

        assert not result.success
        assert result.error_type == 'not_found'
        assert 'ghost' in result.error

    def test_unexpected_error_reported(self):
        with patch.object(
            self.executor.orchestrator, 'list_batches', side_effect=RuntimeError('boom')
        ):
            result = self.executor.execute('list_batches', {}, self.admin)

        assert not result.success
        assert result.error_type == 'internal_error'
        assert 'list_batches' in result.error

    def test_no_auth_marks_audit(self):
        result = self.executor.execute('list_batches', {})

        assert result.success
        assert result.audit_required is True

    def test_start_requires_target(self):
        result = self.executor.execute('start_migration', {}, self.admin)

        assert result.error_type == 'validation_error'


class TestFollowUpChaining:
    """Test suggested next operations and argument carry-over."""

    def setup_method(self):
        self.store = InMemoryStore()
        for name, score in (('org/a', 1), ('org/b', 2), ('org/c', 9)):
            self.store.add_repository(Repository(full_name=name, complexity_score=score))
        self.executor = ToolExecutor(BatchOrchestrator(self.store))
        self.admin = AuthContext.admin('root')

    def test_pilot_to_production_chain(self):
        pilots = self.executor.execute(
            'find_pilot_candidates', {'organization': 'org'}, self.admin
        )
        assert pilots.follow_up.action == 'create_batch'
        assert pilots.follow_up.default_name == 'org-pilot'
        assert pilots.follow_up.repositories == ['org/a', 'org/b']

        created = self.executor.execute('create_batch', {}, self.admin, pilots)
        assert created.success
        assert created.result['batch_name'] == 'org-pilot'
        assert self.store.get_batch_by_name('org-pilot').type.value == 'pilot'
        assert created.follow_up.action == 'schedule_batch'

        scheduled = self.executor.execute('schedule_batch', {}, self.admin, created)
        assert scheduled.success
        assert scheduled.follow_up.action == 'start_migration'
        assert scheduled.follow_up.default_args['dry_run'] is True

        started = self.executor.execute('start_migration', {}, self.admin, scheduled)
        assert started.success
        assert started.result['queued_count'] == 2
        assert self.store.get_repository('org/a').status == MigrationStatus.DRY_RUN_QUEUED
        assert self.store.get_repository('org/a').priority == 1
        assert started.follow_up.action == 'get_migration_progress'

        progress = self.executor.execute('get_migration_progress', {}, self.admin, started)
        assert progress.success
        assert progress.result['batch_name'] == 'org-pilot'

    def test_default_pilot_name(self):
        pilots = self.executor.execute('find_pilot_candidates', {}, self.admin)

        assert pilots.follow_up.default_name == 'pilot-wave-1'

    def test_no_candidates_no_follow_up(self):
        pilots = self.executor.execute(
            'find_pilot_candidates', {'organization': 'nobody'}, self.admin
        )

        assert pilots.success
        assert pilots.follow_up is None

    def test_plan_waves_follow_up(self):
        planned = self.executor.execute('plan_waves', {'wave_size': 2}, self.admin)

        assert planned.follow_up.default_name == 'wave-1'
        assert planned.follow_up.repositories == ['org/a', 'org/b']

    def test_explicit_arguments_win(self):
        pilots = self.executor.execute('find_pilot_candidates', {}, self.admin)

        created = self.executor.execute(
            'create_batch', {'name': 'mine', 'repositories': ['org/c']}, self.admin, pilots
        )

        assert created.result['batch_name'] == 'mine'
        assert created.result['repositories'] == ['org/c']

    def test_follow_up_for_other_tool_ignored(self):
        pilots = self.executor.execute('find_pilot_candidates', {}, self.admin)

        result = self.executor.execute('schedule_batch', {}, self.admin, pilots)

        assert result.error_type == 'validation_error'

    def test_repository_target_not_overridden(self):
        self.executor.execute(
            'create_batch', {'name': 'wave-1', 'repositories': ['org/a']}, self.admin
        )
        scheduled = self.executor.execute('schedule_batch', {'batch_name': 'wave-1'}, self.admin)

        started = self.executor.execute(
            'start_migration', {'repository': 'org/c'}, self.admin, scheduled
        )

        assert started.result['repository'] == 'org/c'
        assert self.store.get_repository('org/a').status == MigrationStatus.PENDING

    def test_retry_follow_up(self):
        self.executor.execute(
            'create_batch', {'name': 'wave-1', 'repositories': ['org/a']}, self.admin
        )
        self.executor.execute(
            'update_repository_status',
            {'repository': 'org/a', 'status': 'migration_failed'},
            self.admin,
        )

        retried = self.executor.execute('retry_batch_failures', {'batch_name': 'wave-1'}, self.admin)

        assert retried.result['reset_count'] == 1
        assert retried.follow_up.action == 'start_migration'

    def test_retry_follow_up_restarts_batch(self):
        self.executor.execute(
            'create_batch', {'name': 'wave-1', 'repositories': ['org/a', 'org/b']}, self.admin
        )
        self.executor.execute('start_migration', {'batch_name': 'wave-1'}, self.admin)
        for name in ('org/a', 'org/b'):
            self.executor.execute(
                'update_repository_status',
                {'repository': name, 'status': 'dry_run_failed'},
                self.admin,
            )

        retried = self.executor.execute('retry_batch_failures', {'batch_name': 'wave-1'}, self.admin)
        started = self.executor.execute('start_migration', {}, self.admin, retried)

        assert started.success
        assert started.result['queued_count'] == 2
        assert self.store.get_repository('org/b').status == MigrationStatus.DRY_RUN_QUEUED

    def test_dry_run_then_production(self):
        self.executor.execute(
            'create_batch', {'name': 'wave-1', 'repositories': ['org/a', 'org/b']}, self.admin
        )
        self.executor.execute('start_migration', {'batch_name': 'wave-1'}, self.admin)
        for name in ('org/a', 'org/b'):
            self.executor.execute(
                'update_repository_status',
                {'repository': name, 'status': 'dry_run_complete'},
                self.admin,
            )

        started = self.executor.execute(
            'start_migration', {'batch_name': 'wave-1', 'dry_run': False}, self.admin
        )

        assert started.success
        assert started.result['queued_count'] == 2
        assert (
            self.store.get_repository('org/a').status
            == MigrationStatus.QUEUED_FOR_MIGRATION
        )

    def test_retry_without_failures_has_no_follow_up(self):
        self.executor.execute(
            'create_batch', {'name': 'wave-1', 'repositories': ['org/a']}, self.admin
        )

        retried = self.executor.execute('retry_batch_failures', {'batch_name': 'wave-1'}, self.admin)

        assert retried.follow_up is None
