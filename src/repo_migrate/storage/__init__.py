"""Store interface and reference implementation."""

from .base import MigrationStore
from .memory import InMemoryStore

__all__ = ['MigrationStore', 'InMemoryStore']
