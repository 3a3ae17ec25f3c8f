"""Migration state machine, planning and orchestration."""

from .status import (
    MigrationIntent,
    TRANSITIONS,
    can_queue_for_migration,
    derive_batch_status,
    is_cancellable,
    is_retryable,
    next_status,
    queue_priority,
)
from .progress import MigrationProgress, calculate_progress
from .planner import complexity_rating, pilot_score, plan_waves, rank_pilot_candidates
from .orchestrator import BatchOrchestrator

__all__ = [
    'MigrationIntent',
    'TRANSITIONS',
    'can_queue_for_migration',
    'derive_batch_status',
    'is_cancellable',
    'is_retryable',
    'next_status',
    'queue_priority',
    'MigrationProgress',
    'calculate_progress',
    'complexity_rating',
    'pilot_score',
    'plan_waves',
    'rank_pilot_candidates',
    'BatchOrchestrator',
]
