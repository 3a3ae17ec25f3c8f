"""Migration engine - main entry point for orchestration operations."""

from concurrent.futures import ThreadPoolExecutor
from typing import Any, Dict, Iterable, List, Optional, Tuple

from loguru import logger

from ..api.tools import ToolExecutionResult, ToolExecutor
from ..config.config import Config
from ..identity.license import LicenseStatus, LicenseValidator
from ..auth.sessions import SessionRegistry
from ..models.auth import AuthContext
from ..storage.base import MigrationStore
from ..storage.memory import InMemoryStore
from .orchestrator import BatchOrchestrator


ToolCall = Tuple[str, Dict[str, Any]]


class MigrationEngine:
    """Wires the store, orchestrator, executor and identity services together."""

    def __init__(self, config: Config, store: Optional[MigrationStore] = None):
        """Initialize migration engine.

        Args:
            config: Orchestrator configuration
            store: Store to use; defaults to the configured YAML state file
        """
        self.config = config
        self.logger = logger.bind(component='MigrationEngine')

        self.store = store if store is not None else InMemoryStore.from_file(
            config.storage.state_file
        )
        self.orchestrator = BatchOrchestrator(self.store, config.planning)
        self.executor = ToolExecutor(self.orchestrator)
        self.sessions = SessionRegistry(config.sessions.timeout_minutes)
        self.license_validator = LicenseValidator(config.identity_provider)

    def execute(
        self,
        tool_name: str,
        args: Optional[Dict[str, Any]] = None,
        auth: Optional[AuthContext] = None,
        previous_result: Optional[ToolExecutionResult] = None,
    ) -> ToolExecutionResult:
        """Execute a named operation.

        Args:
            tool_name: Operation name
            args: Argument bag
            auth: Caller context
            previous_result: Previous result for follow-up chaining

        Returns:
            Execution result
        """
        self.logger.debug(f'Executing {tool_name}')
        return self.executor.execute(tool_name, args, auth, previous_result)

    def execute_in_session(
        self,
        session_id: str,
        tool_name: str,
        args: Optional[Dict[str, Any]] = None,
        previous_result: Optional[ToolExecutionResult] = None,
    ) -> ToolExecutionResult:
        """Execute an operation with the auth context of a session.

        Unknown or expired sessions produce a failed result.
        """
        session = self.sessions.get(session_id)
        if session is None:
            return ToolExecutionResult(
                tool=tool_name,
                success=False,
                error=f'session not found or expired: {session_id}',
                error_type='not_found',
                summary='Session not found or expired',
            )
        # The registry hands out copies; the context cannot change mid-call
        return self.execute(tool_name, args, session.auth, previous_result)

    def execute_concurrently(
        self, calls: Iterable[ToolCall], auth: Optional[AuthContext] = None
    ) -> List[ToolExecutionResult]:
        """Execute independent operations on a worker pool.

        Args:
            calls: Pairs of (operation name, argument bag)
            auth: Caller context applied to every call

        Returns:
            Results in the order of ``calls``
        """
        calls = list(calls)
        if not calls:
            return []

        workers = min(self.config.orchestrator.max_workers, len(calls))
        self.logger.info(f'Executing {len(calls)} operations with {workers} workers')

        with ThreadPoolExecutor(max_workers=workers) as pool:
            futures = [
                pool.submit(self.execute, name, args, auth) for name, args in calls
            ]
            return [future.result() for future in futures]

    def check_license(self, user_login: str, token: str) -> LicenseStatus:
        """Check a user's license through the cached validator."""
        return self.license_validator.check_license(user_login, token)

    def save(self, path: Optional[str] = None) -> None:
        """Persist the store when it supports saving."""
        target = path or self.config.storage.state_file
        if isinstance(self.store, InMemoryStore):
            self.store.save(target)
            self.logger.debug(f'Saved state to {target}')
