"""Tests for the in-memory migration store."""

import os
import tempfile
import threading

import pytest

from repo_migrate.models.batch import Batch, BatchStatus
from repo_migrate.models.repository import (
    MigrationStatus,
    Repository,
    RepositoryDependency,
    RepositoryFilter,
)
from repo_migrate.storage.memory import InMemoryStore


class TestRepositories:
    """Test repository storage."""

    def setup_method(self):
        self.store = InMemoryStore()
        self.store.add_repository(Repository(full_name='org/a', complexity_score=2))
        self.store.add_repository(Repository(full_name='org/b', complexity_score=9))
        self.store.add_repository(Repository(full_name='other/c'))

    def test_ids_assigned(self):
        assert self.store.get_repository('org/a').id == 1
        assert self.store.get_repository('other/c').id == 3

    def test_reads_return_copies(self):
        repo = self.store.get_repository('org/a')
        repo.status = MigrationStatus.COMPLETE

        assert self.store.get_repository('org/a').status == MigrationStatus.PENDING

    def test_list_in_insertion_order(self):
        names = [r.full_name for r in self.store.list_repositories()]

        assert names == ['org/a', 'org/b', 'other/c']

    def test_list_filters(self):
        by_org = self.store.list_repositories(RepositoryFilter(organization='org'))
        assert [r.full_name for r in by_org] == ['org/a', 'org/b']

        simple = self.store.list_repositories(RepositoryFilter(max_complexity=5))
        assert [r.full_name for r in simple] == ['org/a']

        limited = self.store.list_repositories(RepositoryFilter(limit=1))
        assert len(limited) == 1

    def test_get_by_names_skips_unknown(self):
        found = self.store.get_repositories_by_names(['org/b', 'org/missing', 'org/b'])

        assert [r.full_name for r in found] == ['org/b']

    def test_update_unknown_repository(self):
        with pytest.raises(KeyError):
            self.store.update_repository(Repository(full_name='org/missing'))

    def test_unknown_batch_rejected(self):
        with pytest.raises(ValueError):
            self.store.add_repository(Repository(full_name='org/d', batch_id=99))

    def test_transition_is_compare_and_set(self):
        assert self.store.transition_repository(
            'org/a', MigrationStatus.PENDING, MigrationStatus.DRY_RUN_QUEUED, priority=1
        )
        assert not self.store.transition_repository(
            'org/a', MigrationStatus.PENDING, MigrationStatus.DRY_RUN_QUEUED
        )

        repo = self.store.get_repository('org/a')
        assert repo.status == MigrationStatus.DRY_RUN_QUEUED
        assert repo.priority == 1

    def test_transition_race_has_one_winner(self):
        results = []
        barrier = threading.Barrier(8)

        def claim():
            barrier.wait()
            results.append(
                self.store.transition_repository(
                    'org/b', MigrationStatus.PENDING, MigrationStatus.QUEUED_FOR_MIGRATION
                )
            )

        threads = [threading.Thread(target=claim) for _ in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert results.count(True) == 1


class TestDependencies:
    """Test dependency edges."""

    def setup_method(self):
        self.store = InMemoryStore()
        self.store.add_repository(Repository(full_name='org/app'))
        self.store.add_repository(Repository(full_name='org/lib'))

    def test_local_dependency_count_maintained(self):
        self.store.add_dependency(
            RepositoryDependency(
                repository_full_name='org/app', dependency_full_name='org/lib', is_local=True
            )
        )
        self.store.add_dependency(
            RepositoryDependency(
                repository_full_name='org/app', dependency_full_name='pypi/flask'
            )
        )

        assert self.store.get_repository('org/app').local_dependency_count == 1
        assert len(self.store.get_dependencies('org/app')) == 2
        assert self.store.get_dependent_repositories('org/lib') == ['org/app']

    def test_duplicate_edges_ignored(self):
        edge = RepositoryDependency(
            repository_full_name='org/app', dependency_full_name='org/lib', is_local=True
        )
        self.store.add_dependency(edge)
        self.store.add_dependency(edge)

        assert len(self.store.get_dependencies('org/app')) == 1


class TestBatches:
    """Test batch storage and membership."""

    def setup_method(self):
        self.store = InMemoryStore()
        for name in ('org/a', 'org/b', 'org/c'):
            self.store.add_repository(Repository(full_name=name))
        self.batch = self.store.create_batch(Batch(name='wave-1'))

    def test_create_assigns_id_and_timestamp(self):
        assert self.batch.id == 1
        assert self.batch.created_at is not None
        assert self.store.get_batch_by_name('wave-1').id == 1

    def test_membership_updates_count(self):
        linked = self.store.add_repositories_to_batch(self.batch.id, ['org/a', 'org/b', 'x/y'])

        assert linked == 2
        assert self.store.get_batch(self.batch.id).repository_count == 2

        unlinked = self.store.remove_repositories_from_batch(self.batch.id, ['org/a', 'org/c'])

        assert unlinked == 1
        assert self.store.get_batch(self.batch.id).repository_count == 1
        assert self.store.get_repository('org/a').batch_id is None

    def test_add_to_unknown_batch(self):
        with pytest.raises(ValueError):
            self.store.add_repositories_to_batch(42, ['org/a'])

    def test_transition_batch(self):
        assert self.store.transition_batch(
            self.batch.id, [BatchStatus.PENDING], BatchStatus.IN_PROGRESS
        )
        assert not self.store.transition_batch(
            self.batch.id, [BatchStatus.PENDING], BatchStatus.IN_PROGRESS
        )
        assert self.store.get_batch(self.batch.id).status == BatchStatus.IN_PROGRESS

    def test_update_unknown_batch(self):
        with pytest.raises(KeyError):
            self.store.update_batch(Batch(id=99, name='ghost'))


class TestPersistence:
    """Test YAML persistence."""

    def test_missing_file_gives_empty_store(self):
        with tempfile.TemporaryDirectory() as temp_dir:
            store = InMemoryStore.from_file(os.path.join(temp_dir, 'state.yaml'))

            assert store.list_repositories() == []
            assert store.list_batches() == []

    def test_save_and_load(self):
        store = InMemoryStore()
        store.add_repository(Repository(full_name='org/app', complexity_score=4))
        store.add_repository(Repository(full_name='org/lib'))
        store.add_dependency(
            RepositoryDependency(
                repository_full_name='org/app', dependency_full_name='org/lib', is_local=True
            )
        )
        batch = store.create_batch(Batch(name='pilot'))
        store.add_repositories_to_batch(batch.id, ['org/app'])
        store.transition_repository(
            'org/app', MigrationStatus.PENDING, MigrationStatus.DRY_RUN_QUEUED
        )

        with tempfile.TemporaryDirectory() as temp_dir:
            path = os.path.join(temp_dir, 'nested', 'state.yaml')
            store.save(path)
            loaded = InMemoryStore.from_file(path)

        app = loaded.get_repository('org/app')
        assert app.status == MigrationStatus.DRY_RUN_QUEUED
        assert app.complexity_score == 4
        assert app.batch_id == batch.id
        assert app.local_dependency_count == 1
        assert loaded.get_batch_by_name('pilot').repository_count == 1

        new_batch = loaded.create_batch(Batch(name='second'))
        assert new_batch.id == batch.id + 1
