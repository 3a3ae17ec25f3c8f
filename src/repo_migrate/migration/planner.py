"""Dependency-aware wave planning and pilot candidate scoring."""

from typing import Dict, Iterable, List, Mapping, Optional

from loguru import logger

from ..models.repository import Repository


DEFAULT_WAVE_SIZE = 10
MAX_WAVE_SIZE = 100
DEFAULT_MAX_PASSES = 100

_logger = logger.bind(component='WavePlanner')


def normalize_wave_size(wave_size: Optional[int]) -> int:
    """Clamp a requested wave size into the supported range."""
    if not wave_size or wave_size <= 0:
        return DEFAULT_WAVE_SIZE
    return min(wave_size, MAX_WAVE_SIZE)


def plan_waves(
    repositories: Iterable[str],
    dependencies: Mapping[str, Iterable[str]],
    wave_size: int = DEFAULT_WAVE_SIZE,
    max_passes: int = DEFAULT_MAX_PASSES,
) -> List[List[str]]:
    """Group repositories into ordered waves that respect local dependencies.

    A repository joins a wave only once every dependency that is part of the
    input has been placed in an earlier wave. Dependencies outside the input
    are treated as satisfied. When a pass cannot place anything (a cycle),
    the next remaining repositories are placed regardless of dependencies.

    Args:
        repositories: Repository full names in priority order
        dependencies: Local dependency names per repository
        wave_size: Maximum repositories per wave
        max_passes: Maximum planning passes before the remainder is chunked

    Returns:
        Waves of repository full names; together they contain every input
        repository exactly once
    """
    wave_size = normalize_wave_size(wave_size)

    remaining = list(dict.fromkeys(repositories))
    in_scope = set(remaining)
    deps = {
        name: [d for d in dependencies.get(name, ()) if d in in_scope and d != name]
        for name in remaining
    }

    placed = set()
    waves = []
    passes = 0

    while remaining and passes < max_passes:
        passes += 1
        wave = []
        for name in remaining:
            if len(wave) >= wave_size:
                break
            if all(d in placed for d in deps[name]):
                wave.append(name)

        if not wave:
            _logger.debug(
                f'No repository ready in pass {passes}, forcing {min(wave_size, len(remaining))}'
            )
            wave = remaining[:wave_size]

        waves.append(wave)
        placed.update(wave)
        admitted = set(wave)
        remaining = [name for name in remaining if name not in admitted]

    if remaining:
        _logger.warning(
            f'Wave planning stopped after {max_passes} passes; '
            f'appending {len(remaining)} repositories without dependency ordering'
        )
        for i in range(0, len(remaining), wave_size):
            waves.append(remaining[i:i + wave_size])

    return waves


def pilot_score(repository: Repository) -> int:
    """Score a repository as a pilot candidate; lower is a better pilot."""
    score = repository.local_dependency_count * 10
    if repository.is_archived:
        score += 5
    if repository.is_fork:
        score += 5
    if repository.complexity_score is not None:
        score += repository.complexity_score
    return score


def complexity_rating(score: Optional[int]) -> str:
    """Map a complexity score to a rating label."""
    if score is None:
        return 'unknown'
    if score <= 5:
        return 'simple'
    if score <= 10:
        return 'medium'
    if score <= 17:
        return 'complex'
    return 'very_complex'


def rank_pilot_candidates(
    repositories: Iterable[Repository], max_count: int
) -> List[Repository]:
    """Return the lowest scoring repositories, preserving input order on ties."""
    if max_count <= 0:
        return []
    ranked = sorted(repositories, key=pilot_score)
    return ranked[:max_count]


def dependency_map(edges) -> Dict[str, List[str]]:
    """Group local dependency edges by dependent repository."""
    result: Dict[str, List[str]] = {}
    for edge in edges:
        if edge.is_local:
            result.setdefault(edge.repository_full_name, []).append(
                edge.dependency_full_name
            )
    return result
