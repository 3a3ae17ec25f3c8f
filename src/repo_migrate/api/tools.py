"""Named operation catalogue with authorization, parsing and follow-ups."""

from datetime import datetime
from typing import Any, Callable, Dict, List, Optional, Tuple, Type

from loguru import logger
from pydantic import BaseModel, Field, ValidationError

from . import params as p
from .exceptions import (
    OrchestratorError,
    OrchestratorNotFoundError,
    OrchestratorValidationError,
)
from ..auth.authorization import check_tool_authorization, required_tier
from ..migration.orchestrator import BatchOrchestrator
from ..models.auth import AuthContext
from ..models.batch import BatchType


class FollowUpAction(BaseModel):
    """Suggested next operation."""

    action: str = Field(..., description='Operation to run next')
    description: str = Field(..., description='Question to put to the caller')
    repositories: List[str] = Field(
        default_factory=list, description='Repositories carried forward'
    )
    default_name: Optional[str] = Field(
        default=None, description='Batch or repository name carried forward'
    )
    default_args: Dict[str, Any] = Field(
        default_factory=dict, description='Arguments to prefill'
    )


class ToolExecutionResult(BaseModel):
    """Structured outcome of an operation."""

    tool: str = Field(..., description='Operation name')
    success: bool = Field(..., description='Operation succeeded')
    result: Optional[Dict[str, Any]] = Field(default=None, description='Result data')
    error: Optional[str] = Field(default=None, description='Error message')
    error_type: Optional[str] = Field(default=None, description='Error category')
    summary: str = Field(default='', description='Natural language summary')
    suggestions: List[str] = Field(default_factory=list, description='Hints')
    follow_up: Optional[FollowUpAction] = Field(
        default=None, description='Suggested next operation'
    )
    audit_required: bool = Field(
        default=False, description='Executed without an auth context'
    )
    executed_at: datetime = Field(default_factory=datetime.now)

    class Config:
        """Pydantic configuration."""

        json_encoders = {datetime: lambda v: v.isoformat() if v else None}


Handler = Callable[[Any], Dict[str, Any]]

TARGET_KEYS = ('batch_name', 'batch_id', 'repository')


class ToolExecutor:
    """Executes named orchestration operations on behalf of a caller.

    Each call is authorized first, then its argument bag is parsed into the
    operation's parameter model and dispatched to the orchestrator. Errors
    never propagate; they are returned as failed results.
    """

    def __init__(self, orchestrator: BatchOrchestrator):
        """Initialize tool executor.

        Args:
            orchestrator: Batch orchestrator to dispatch to
        """
        self.orchestrator = orchestrator
        self.logger = logger.bind(component='ToolExecutor')

        self._tools: Dict[str, Tuple[Type[p.ToolParams], Handler, str]] = {
            'find_pilot_candidates': (
                p.FindPilotParams,
                self._find_pilot_candidates,
                'Find low-risk repositories for a pilot migration',
            ),
            'analyze_repositories': (
                p.AnalyzeRepositoriesParams,
                self._analyze_repositories,
                'List repositories with complexity ratings',
            ),
            'check_dependencies': (
                p.CheckDependenciesParams,
                self._check_dependencies,
                'Show dependencies of a repository',
            ),
            'get_complexity_breakdown': (
                p.GetComplexityParams,
                self._get_complexity_breakdown,
                'Break down complexity of a repository',
            ),
            'get_migration_status': (
                p.GetMigrationStatusParams,
                self._get_migration_status,
                'Show status of repositories',
            ),
            'get_migration_progress': (
                p.GetMigrationProgressParams,
                self._get_migration_progress,
                'Show progress of a batch or repository',
            ),
            'get_repository_details': (
                p.GetRepositoryDetailsParams,
                self._get_repository_details,
                'Show repository details',
            ),
            'validate_repository': (
                p.ValidateRepositoryParams,
                self._validate_repository,
                'Report migration blockers for a repository',
            ),
            'list_batches': (
                p.ListBatchesParams,
                self._list_batches,
                'List batches',
            ),
            'get_batch_details': (
                p.GetBatchDetailsParams,
                self._get_batch_details,
                'Show batch details',
            ),
            'plan_waves': (
                p.PlanWavesParams,
                self._plan_waves,
                'Plan dependency-ordered migration waves',
            ),
            'create_batch': (
                p.CreateBatchParams,
                self._create_batch,
                'Create a batch of repositories',
            ),
            'configure_batch': (
                p.ConfigureBatchParams,
                self._configure_batch,
                'Set destination organization or migration API of a batch',
            ),
            'schedule_batch': (
                p.ScheduleBatchParams,
                self._schedule_batch,
                'Schedule a batch',
            ),
            'add_repos_to_batch': (
                p.AddReposToBatchParams,
                self._add_repos_to_batch,
                'Add repositories to a batch',
            ),
            'remove_repos_from_batch': (
                p.RemoveReposFromBatchParams,
                self._remove_repos_from_batch,
                'Remove repositories from a batch',
            ),
            'start_migration': (
                p.StartMigrationParams,
                self._start_migration,
                'Queue a batch or repository for migration',
            ),
            'cancel_migration': (
                p.CancelMigrationParams,
                self._cancel_migration,
                'Cancel a queued or running migration',
            ),
            'retry_batch_failures': (
                p.RetryBatchFailuresParams,
                self._retry_batch_failures,
                'Reset failed repositories of a batch',
            ),
            'update_repository_status': (
                p.UpdateRepositoryStatusParams,
                self._update_repository_status,
                'Set a repository status directly',
            ),
        }

    def available_tools(self) -> List[Dict[str, str]]:
        """Describe every registered operation."""
        return [
            {
                'name': name,
                'tier': required_tier(name).value,
                'description': description,
            }
            for name, (_, _, description) in self._tools.items()
        ]

    def execute(
        self,
        tool_name: str,
        args: Optional[Dict[str, Any]] = None,
        auth: Optional[AuthContext] = None,
        previous_result: Optional[ToolExecutionResult] = None,
    ) -> ToolExecutionResult:
        """Execute an operation.

        Args:
            tool_name: Operation name
            args: Argument bag
            auth: Caller context; None marks the call for audit
            previous_result: Result of the previous call, used to fill in
                arguments from its follow-up

        Returns:
            Execution result
        """
        decision = check_tool_authorization(tool_name, auth)
        if not decision.allowed:
            return self._failure(
                tool_name, decision.reason or 'permission denied', 'permission_denied'
            )

        try:
            if tool_name not in self._tools:
                raise OrchestratorNotFoundError(
                    'tool', tool_name, message=f'unknown tool: {tool_name}'
                )
            model, handler, _ = self._tools[tool_name]

            bag = self._apply_follow_up(tool_name, dict(args or {}), previous_result)
            try:
                params = model(**bag)
            except ValidationError as e:
                raise OrchestratorValidationError(
                    f'invalid arguments for {tool_name}: {e}', details={'args': bag}
                )

            result = handler(params)
        except OrchestratorError as e:
            self.logger.info(f'{tool_name} failed: {e.message}')
            return self._failure(
                tool_name, e.message, e.error_type, audit_required=decision.audit_required
            )
        except Exception as e:
            self.logger.exception(f'Unexpected error executing {tool_name}')
            return self._failure(
                tool_name,
                f'internal error executing {tool_name}: {e}',
                'internal_error',
                audit_required=decision.audit_required,
            )

        suggestions, follow_up = self._next_steps(tool_name, params, result)
        return ToolExecutionResult(
            tool=tool_name,
            success=True,
            result=result,
            summary=result.get('summary', ''),
            suggestions=suggestions,
            follow_up=follow_up,
            audit_required=decision.audit_required,
        )

    @staticmethod
    def _failure(
        tool_name: str, message: str, error_type: str, audit_required: bool = False
    ) -> ToolExecutionResult:
        return ToolExecutionResult(
            tool=tool_name,
            success=False,
            error=message,
            error_type=error_type,
            summary=message,
            audit_required=audit_required,
        )

    @staticmethod
    def _apply_follow_up(
        tool_name: str,
        args: Dict[str, Any],
        previous_result: Optional[ToolExecutionResult],
    ) -> Dict[str, Any]:
        """Fill missing arguments from the previous result's follow-up."""
        if previous_result is None or previous_result.follow_up is None:
            return args
        follow_up = previous_result.follow_up
        if follow_up.action != tool_name:
            return args

        if tool_name == 'create_batch':
            if not args.get('name') and follow_up.default_name:
                args['name'] = follow_up.default_name
            if not args.get('repositories') and follow_up.repositories:
                args['repositories'] = list(follow_up.repositories)
        elif not any(args.get(key) for key in TARGET_KEYS):
            target = {
                k: v for k, v in follow_up.default_args.items() if k in TARGET_KEYS
            }
            if target:
                args.update(target)
            elif follow_up.default_name:
                args['batch_name'] = follow_up.default_name

        for key, value in follow_up.default_args.items():
            if key not in TARGET_KEYS:
                args.setdefault(key, value)
        return args

    def _next_steps(
        self, tool_name: str, params, result: Dict[str, Any]
    ) -> Tuple[List[str], Optional[FollowUpAction]]:
        """Build suggestions and the follow-up action for a successful call."""
        if tool_name == 'find_pilot_candidates':
            names = [c['full_name'] for c in result['candidates']]
            if not names:
                return [], None
            default_name = (
                f'{params.organization}-pilot' if params.organization else 'pilot-wave-1'
            )
            return (
                [
                    'These repositories have low complexity and few local dependencies',
                    'They are ideal for testing your migration process',
                ],
                FollowUpAction(
                    action='create_batch',
                    description=f'Create a batch with these {len(names)} pilot repositories?',
                    repositories=names,
                    default_name=default_name,
                    default_args={'batch_type': BatchType.PILOT.value},
                ),
            )

        if tool_name == 'plan_waves':
            waves = result['waves']
            if not waves:
                return [], None
            first = waves[0]['repositories']
            return (
                ['Waves are ordered to respect local dependencies'],
                FollowUpAction(
                    action='create_batch',
                    description=f'Create a batch for wave 1 ({len(first)} repositories)?',
                    repositories=first,
                    default_name='wave-1',
                ),
            )

        if tool_name in ('create_batch', 'configure_batch'):
            name = result['batch_name']
            suggestions = [f"Batch ID: {result['batch_id']}"]
            if result.get('destination_org'):
                suggestions.append(f"Destination organization: {result['destination_org']}")
            return (
                suggestions,
                FollowUpAction(
                    action='schedule_batch',
                    description=f"Would you like to schedule batch '{name}' for migration?",
                    default_name=name,
                    default_args={'batch_name': name},
                ),
            )

        if tool_name == 'schedule_batch':
            name = result['batch_name']
            return (
                ['Run a dry run before the production migration'],
                FollowUpAction(
                    action='start_migration',
                    description=f"Start a dry run for batch '{name}'?",
                    default_name=name,
                    default_args={'batch_name': name, 'dry_run': True},
                ),
            )

        if tool_name == 'start_migration':
            suggestions = ['Monitor progress with get_migration_progress']
            if params.dry_run:
                suggestions.append(
                    'After the dry run completes, start the production migration '
                    'with start_migration(dry_run=false)'
                )
            if result.get('batch_name'):
                target = {'batch_name': result['batch_name']}
                name = result['batch_name']
            else:
                target = {'repository': result['repository']}
                name = result['repository']
            return (
                suggestions,
                FollowUpAction(
                    action='get_migration_progress',
                    description='Check migration progress',
                    default_name=name,
                    default_args=target,
                ),
            )

        if tool_name == 'retry_batch_failures' and result['reset_count']:
            name = result['batch_name']
            return (
                [],
                FollowUpAction(
                    action='start_migration',
                    description=f"Start a dry run for the reset repositories in '{name}'?",
                    repositories=result['repositories'],
                    default_name=name,
                    default_args={'batch_name': name, 'dry_run': True},
                ),
            )

        return [], None

    # Handlers

    def _find_pilot_candidates(self, params: p.FindPilotParams):
        return self.orchestrator.find_pilot_candidates(params.max_count, params.organization)

    def _analyze_repositories(self, params: p.AnalyzeRepositoriesParams):
        return self.orchestrator.analyze_repositories(
            organization=params.organization,
            status=params.status,
            max_complexity=params.max_complexity,
            limit=params.limit,
        )

    def _check_dependencies(self, params: p.CheckDependenciesParams):
        return self.orchestrator.check_dependencies(params.repository, params.include_reverse)

    def _get_complexity_breakdown(self, params: p.GetComplexityParams):
        return self.orchestrator.complexity_breakdown(params.repository)

    def _get_migration_status(self, params: p.GetMigrationStatusParams):
        return self.orchestrator.migration_status(params.repositories)

    def _get_migration_progress(self, params: p.GetMigrationProgressParams):
        return self.orchestrator.get_progress(
            params.batch_id, params.batch_name, params.repository
        )

    def _get_repository_details(self, params: p.GetRepositoryDetailsParams):
        return self.orchestrator.repository_details(params.repository)

    def _validate_repository(self, params: p.ValidateRepositoryParams):
        return self.orchestrator.validate_repository(params.repository)

    def _list_batches(self, params: p.ListBatchesParams):
        return self.orchestrator.list_batches(params.status, params.limit)

    def _get_batch_details(self, params: p.GetBatchDetailsParams):
        return self.orchestrator.batch_details(params.batch_id, params.batch_name)

    def _plan_waves(self, params: p.PlanWavesParams):
        return self.orchestrator.plan_waves(params.wave_size, params.organization)

    def _create_batch(self, params: p.CreateBatchParams):
        return self.orchestrator.create_batch(
            params.name,
            params.repositories,
            description=params.description,
            destination_org=params.destination_org,
            batch_type=BatchType(params.batch_type),
        )

    def _configure_batch(self, params: p.ConfigureBatchParams):
        return self.orchestrator.configure_batch(
            params.batch_id,
            params.batch_name,
            destination_org=params.destination_org,
            migration_api=params.migration_api,
        )

    def _schedule_batch(self, params: p.ScheduleBatchParams):
        return self.orchestrator.schedule_batch(
            params.batch_id,
            params.batch_name,
            scheduled_at=params.scheduled_at,
            destination_org=params.destination_org,
        )

    def _add_repos_to_batch(self, params: p.AddReposToBatchParams):
        return self.orchestrator.add_repositories(
            params.repositories, params.batch_id, params.batch_name
        )

    def _remove_repos_from_batch(self, params: p.RemoveReposFromBatchParams):
        return self.orchestrator.remove_repositories(
            params.repositories, params.batch_id, params.batch_name
        )

    def _start_migration(self, params: p.StartMigrationParams):
        if params.has_batch_target():
            return self.orchestrator.start_batch(
                params.batch_id, params.batch_name, dry_run=params.dry_run
            )
        if params.repository:
            return self.orchestrator.start_repository(params.repository, dry_run=params.dry_run)
        raise OrchestratorValidationError(
            'at least one of batch_name, batch_id, or repository must be specified'
        )

    def _cancel_migration(self, params: p.CancelMigrationParams):
        if params.has_batch_target():
            return self.orchestrator.cancel_batch(params.batch_id, params.batch_name)
        if params.repository:
            return self.orchestrator.cancel_repository(params.repository)
        raise OrchestratorValidationError(
            'at least one of batch_name, batch_id, or repository must be specified'
        )

    def _retry_batch_failures(self, params: p.RetryBatchFailuresParams):
        return self.orchestrator.retry_batch_failures(params.batch_id, params.batch_name)

    def _update_repository_status(self, params: p.UpdateRepositoryStatusParams):
        return self.orchestrator.update_repository_status(
            params.repository, params.status, params.reason
        )
