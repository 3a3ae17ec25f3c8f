"""Thread-safe in-memory store with YAML persistence."""

import json
import threading
from datetime import datetime
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Union

import yaml
from loguru import logger

from ..models.batch import Batch, BatchStatus
from ..models.repository import (
    MigrationStatus,
    Repository,
    RepositoryDependency,
    RepositoryFilter,
)
from .base import MigrationStore


class InMemoryStore(MigrationStore):
    """Reference store keeping state in dictionaries.

    Every read returns a deep copy so callers never mutate stored state.
    Repositories are listed in insertion order.
    """

    def __init__(self):
        self._repositories: Dict[str, Repository] = {}
        self._dependencies: Dict[str, List[RepositoryDependency]] = {}
        self._batches: Dict[int, Batch] = {}
        self._next_repository_id = 1
        self._next_batch_id = 1
        self._lock = threading.RLock()
        self.logger = logger.bind(component='InMemoryStore')

    # Repositories

    def get_repository(self, full_name: str) -> Optional[Repository]:
        with self._lock:
            repo = self._repositories.get(full_name)
            return repo.copy(deep=True) if repo else None

    def get_repositories_by_names(self, full_names: Iterable[str]) -> List[Repository]:
        with self._lock:
            result = []
            for name in dict.fromkeys(full_names):
                repo = self._repositories.get(name)
                if repo:
                    result.append(repo.copy(deep=True))
            return result

    def list_repositories(
        self, filters: Optional[RepositoryFilter] = None
    ) -> List[Repository]:
        filters = filters or RepositoryFilter()
        with self._lock:
            result = []
            for repo in self._repositories.values():
                if filters.status is not None and repo.status != filters.status:
                    continue
                if filters.organization and repo.organization != filters.organization:
                    continue
                if filters.batch_id is not None and repo.batch_id != filters.batch_id:
                    continue
                if filters.max_complexity is not None and (
                    repo.complexity_score is None
                    or repo.complexity_score > filters.max_complexity
                ):
                    continue
                result.append(repo.copy(deep=True))
                if filters.limit and len(result) >= filters.limit:
                    break
            return result

    def add_repository(self, repository: Repository) -> Repository:
        with self._lock:
            if repository.batch_id is not None and repository.batch_id not in self._batches:
                raise ValueError(f'Unknown batch ID: {repository.batch_id}')
            repo = repository.copy(deep=True)
            existing = self._repositories.get(repo.full_name)
            if existing:
                repo.id = existing.id
            elif repo.id is None:
                repo.id = self._next_repository_id
            self._next_repository_id = max(self._next_repository_id, repo.id + 1)
            if repo.discovered_at is None:
                repo.discovered_at = datetime.now()
            repo.local_dependency_count = self._local_dependency_count(repo.full_name)
            self._repositories[repo.full_name] = repo
            self._refresh_batch_counts()
            return repo.copy(deep=True)

    def update_repository(self, repository: Repository) -> Repository:
        with self._lock:
            if repository.full_name not in self._repositories:
                raise KeyError(f'Unknown repository: {repository.full_name}')
            if repository.batch_id is not None and repository.batch_id not in self._batches:
                raise ValueError(f'Unknown batch ID: {repository.batch_id}')
            repo = repository.copy(deep=True)
            repo.updated_at = datetime.now()
            repo.local_dependency_count = self._local_dependency_count(repo.full_name)
            self._repositories[repo.full_name] = repo
            self._refresh_batch_counts()
            return repo.copy(deep=True)

    def transition_repository(
        self,
        full_name: str,
        expected_status: MigrationStatus,
        new_status: MigrationStatus,
        priority: Optional[int] = None,
    ) -> bool:
        with self._lock:
            repo = self._repositories.get(full_name)
            if repo is None or repo.status != expected_status:
                return False
            repo.status = new_status
            if priority is not None:
                repo.priority = priority
            repo.updated_at = datetime.now()
            return True

    # Dependencies

    def get_dependencies(self, full_name: str) -> List[RepositoryDependency]:
        with self._lock:
            return [d.copy() for d in self._dependencies.get(full_name, [])]

    def get_dependent_repositories(self, full_name: str) -> List[str]:
        with self._lock:
            return [
                name
                for name, edges in self._dependencies.items()
                if any(e.is_local and e.dependency_full_name == full_name for e in edges)
            ]

    def add_dependency(self, dependency: RepositoryDependency) -> None:
        with self._lock:
            edges = self._dependencies.setdefault(dependency.repository_full_name, [])
            if any(
                e.dependency_full_name == dependency.dependency_full_name
                and e.dependency_type == dependency.dependency_type
                for e in edges
            ):
                return
            edges.append(dependency.copy())
            repo = self._repositories.get(dependency.repository_full_name)
            if repo:
                repo.local_dependency_count = self._local_dependency_count(repo.full_name)

    def _local_dependency_count(self, full_name: str) -> int:
        return sum(1 for e in self._dependencies.get(full_name, []) if e.is_local)

    # Batches

    def get_batch(self, batch_id: int) -> Optional[Batch]:
        with self._lock:
            batch = self._batches.get(batch_id)
            return batch.copy(deep=True) if batch else None

    def get_batch_by_name(self, name: str) -> Optional[Batch]:
        with self._lock:
            for batch in self._batches.values():
                if batch.name == name:
                    return batch.copy(deep=True)
            return None

    def list_batches(self) -> List[Batch]:
        with self._lock:
            return [b.copy(deep=True) for b in self._batches.values()]

    def create_batch(self, batch: Batch) -> Batch:
        with self._lock:
            new_batch = batch.copy(deep=True)
            new_batch.id = self._next_batch_id
            self._next_batch_id += 1
            if new_batch.created_at is None:
                new_batch.created_at = datetime.now()
            new_batch.repository_count = 0
            self._batches[new_batch.id] = new_batch
            return new_batch.copy(deep=True)

    def update_batch(self, batch: Batch) -> Batch:
        with self._lock:
            if batch.id not in self._batches:
                raise KeyError(f'Unknown batch ID: {batch.id}')
            stored = batch.copy(deep=True)
            stored.repository_count = self._batches[batch.id].repository_count
            self._batches[batch.id] = stored
            return stored.copy(deep=True)

    def transition_batch(
        self,
        batch_id: int,
        expected_statuses: Iterable[BatchStatus],
        new_status: BatchStatus,
        **fields,
    ) -> bool:
        with self._lock:
            batch = self._batches.get(batch_id)
            if batch is None or batch.status not in set(expected_statuses):
                return False
            batch.status = new_status
            for key, value in fields.items():
                setattr(batch, key, value)
            return True

    def add_repositories_to_batch(self, batch_id: int, full_names: Iterable[str]) -> int:
        with self._lock:
            if batch_id not in self._batches:
                raise ValueError(f'Unknown batch ID: {batch_id}')
            linked = 0
            for name in full_names:
                repo = self._repositories.get(name)
                if repo is None:
                    continue
                repo.batch_id = batch_id
                repo.updated_at = datetime.now()
                linked += 1
            self._refresh_batch_counts()
            return linked

    def remove_repositories_from_batch(
        self, batch_id: int, full_names: Iterable[str]
    ) -> int:
        with self._lock:
            unlinked = 0
            for name in full_names:
                repo = self._repositories.get(name)
                if repo is None or repo.batch_id != batch_id:
                    continue
                repo.batch_id = None
                repo.updated_at = datetime.now()
                unlinked += 1
            self._refresh_batch_counts()
            return unlinked

    def _refresh_batch_counts(self) -> None:
        counts: Dict[int, int] = {}
        for repo in self._repositories.values():
            if repo.batch_id is not None:
                counts[repo.batch_id] = counts.get(repo.batch_id, 0) + 1
        for batch_id, batch in self._batches.items():
            batch.repository_count = counts.get(batch_id, 0)

    # Persistence

    def to_dict(self) -> dict:
        """Serialize the store to plain data."""
        with self._lock:
            return {
                'repositories': [
                    json.loads(r.json(exclude={'local_dependency_count'}))
                    for r in self._repositories.values()
                ],
                'dependencies': [
                    json.loads(d.json())
                    for edges in self._dependencies.values()
                    for d in edges
                ],
                'batches': [
                    json.loads(b.json(exclude={'repository_count'}))
                    for b in self._batches.values()
                ],
            }

    @classmethod
    def from_dict(cls, data: dict) -> 'InMemoryStore':
        """Build a store from plain data."""
        store = cls()
        for raw in data.get('batches') or []:
            batch = Batch(**raw)
            if batch.id is None:
                batch.id = store._next_batch_id
            store._batches[batch.id] = batch
            store._next_batch_id = max(store._next_batch_id, batch.id + 1)
        for raw in data.get('dependencies') or []:
            store.add_dependency(RepositoryDependency(**raw))
        for raw in data.get('repositories') or []:
            store.add_repository(Repository(**raw))
        return store

    @classmethod
    def from_file(cls, path: Union[str, Path]) -> 'InMemoryStore':
        """Load a store from a YAML state file.

        A missing file yields an empty store.
        """
        path = Path(path)
        if not path.exists():
            return cls()
        with open(path, 'r', encoding='utf-8') as f:
            data = yaml.safe_load(f) or {}
        store = cls.from_dict(data)
        store.logger.debug(
            f'Loaded {len(store._repositories)} repositories and '
            f'{len(store._batches)} batches from {path}'
        )
        return store

    def save(self, path: Union[str, Path]) -> None:
        """Write the store to a YAML state file."""
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, 'w', encoding='utf-8') as f:
            yaml.safe_dump(self.to_dict(), f, default_flow_style=False, sort_keys=False)
        self.logger.debug(f'State saved to {path}')
