"""Tests for the migration engine."""

import os
import tempfile
from unittest.mock import patch

from repo_migrate.config.config import Config
from repo_migrate.identity.license import LicenseStatus
from repo_migrate.migration.engine import MigrationEngine
from repo_migrate.models.auth import AuthContext
from repo_migrate.models.repository import MigrationStatus, Repository
from repo_migrate.storage.memory import InMemoryStore


class TestMigrationEngine:
    """Test engine wiring, sessions and concurrent execution."""

    def setup_method(self):
        self.store = InMemoryStore()
        for i in range(6):
            self.store.add_repository(Repository(full_name=f'org/r{i}', complexity_score=i))
        self.config = Config()
        self.engine = MigrationEngine(self.config, store=self.store)

    def test_execute(self):
        result = self.engine.execute('analyze_repositories', {}, AuthContext.read_only('v'))

        assert result.success
        assert len(result.result['repositories']) == 6

    def test_execute_in_session(self):
        session = self.engine.sessions.create('dev', auth=AuthContext.self_service('dev'))

        created = self.engine.execute_in_session(
            session.id, 'create_batch', {'name': 'b', 'repositories': ['org/r0']}
        )
        started = self.engine.execute_in_session(
            session.id, 'start_migration', {'batch_name': 'b'}
        )

        assert created.success
        assert started.error_type == 'permission_denied'

    def test_unknown_session(self):
        result = self.engine.execute_in_session('missing', 'list_batches', {})

        assert not result.success
        assert result.error_type == 'not_found'

    def test_execute_concurrently_preserves_order(self):
        admin = AuthContext.admin('root')
        calls = [
            ('start_migration', {'repository': f'org/r{i}'}) for i in range(6)
        ] + [('start_migration', {'repository': 'org/r0'})]

        results = self.engine.execute_concurrently(calls, admin)

        assert [r.tool for r in results] == ['start_migration'] * 7
        assert sum(1 for r in results if r.success) == 6
        assert all(
            r.status == MigrationStatus.DRY_RUN_QUEUED for r in self.store.list_repositories()
        )

    def test_execute_concurrently_empty(self):
        assert self.engine.execute_concurrently([]) == []

    def test_check_license_delegates(self):
        status = LicenseStatus(valid=True)
        with patch.object(
            self.engine.license_validator, 'check_license', return_value=status
        ) as mock_check:
            assert self.engine.check_license('alice', 'token') is status

        mock_check.assert_called_once_with('alice', 'token')

    def test_default_store_loaded_from_state_file(self):
        with tempfile.TemporaryDirectory() as temp_dir:
            state_file = os.path.join(temp_dir, 'state.yaml')
            self.store.save(state_file)
            config = Config(storage={'state_file': state_file})

            engine = MigrationEngine(config)
            engine.execute('create_batch', {'name': 'b', 'repositories': ['org/r1']})
            engine.save()

            reloaded = InMemoryStore.from_file(state_file)

        assert len(reloaded.list_repositories()) == 6
        assert reloaded.get_batch_by_name('b').repository_count == 1
