"""Durable store interface used by the orchestrator."""

from abc import ABC, abstractmethod
from typing import Iterable, List, Optional

from ..models.batch import Batch, BatchStatus
from ..models.repository import (
    MigrationStatus,
    Repository,
    RepositoryDependency,
    RepositoryFilter,
)


class MigrationStore(ABC):
    """Persistent storage for repositories, dependencies and batches.

    Implementations must make ``transition_repository`` and
    ``transition_batch`` atomic compare-and-set writes. Listing methods
    return repositories in a stable order.
    """

    # Repositories

    @abstractmethod
    def get_repository(self, full_name: str) -> Optional[Repository]:
        """Get a repository by full name."""
        pass

    @abstractmethod
    def get_repositories_by_names(self, full_names: Iterable[str]) -> List[Repository]:
        """Get the repositories that exist among the given names."""
        pass

    @abstractmethod
    def list_repositories(
        self, filters: Optional[RepositoryFilter] = None
    ) -> List[Repository]:
        """List repositories matching a filter."""
        pass

    @abstractmethod
    def add_repository(self, repository: Repository) -> Repository:
        """Insert or replace a repository."""
        pass

    @abstractmethod
    def update_repository(self, repository: Repository) -> Repository:
        """Persist changes to an existing repository."""
        pass

    @abstractmethod
    def transition_repository(
        self,
        full_name: str,
        expected_status: MigrationStatus,
        new_status: MigrationStatus,
        priority: Optional[int] = None,
    ) -> bool:
        """Set the status only if it still equals ``expected_status``.

        Returns:
            True if the write was applied
        """
        pass

    # Dependencies

    @abstractmethod
    def get_dependencies(self, full_name: str) -> List[RepositoryDependency]:
        """Get the dependency edges of a repository."""
        pass

    @abstractmethod
    def get_dependent_repositories(self, full_name: str) -> List[str]:
        """Get the names of repositories with a local dependency on this one."""
        pass

    @abstractmethod
    def add_dependency(self, dependency: RepositoryDependency) -> None:
        """Record a dependency edge."""
        pass

    # Batches

    @abstractmethod
    def get_batch(self, batch_id: int) -> Optional[Batch]:
        """Get a batch by ID."""
        pass

    @abstractmethod
    def get_batch_by_name(self, name: str) -> Optional[Batch]:
        """Get the first batch with the given name."""
        pass

    @abstractmethod
    def list_batches(self) -> List[Batch]:
        """List every batch."""
        pass

    @abstractmethod
    def create_batch(self, batch: Batch) -> Batch:
        """Create a batch and assign its ID."""
        pass

    @abstractmethod
    def update_batch(self, batch: Batch) -> Batch:
        """Persist changes to an existing batch."""
        pass

    @abstractmethod
    def transition_batch(
        self,
        batch_id: int,
        expected_statuses: Iterable[BatchStatus],
        new_status: BatchStatus,
        **fields,
    ) -> bool:
        """Set batch status and fields only if the status is one expected.

        Returns:
            True if the write was applied
        """
        pass

    @abstractmethod
    def add_repositories_to_batch(self, batch_id: int, full_names: Iterable[str]) -> int:
        """Link repositories to a batch.

        Returns:
            Number of repositories linked
        """
        pass

    @abstractmethod
    def remove_repositories_from_batch(
        self, batch_id: int, full_names: Iterable[str]
    ) -> int:
        """Unlink repositories that belong to a batch.

        Returns:
            Number of repositories unlinked
        """
        pass
