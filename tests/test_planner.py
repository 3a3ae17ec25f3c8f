"""Tests for wave planning and pilot scoring."""

from repo_migrate.migration.planner import (
    complexity_rating,
    dependency_map,
    normalize_wave_size,
    pilot_score,
    plan_waves,
    rank_pilot_candidates,
)
from repo_migrate.models.repository import Repository, RepositoryDependency


def _flatten(waves):
    return [name for wave in waves for name in wave]


def _wave_index(waves):
    return {name: i for i, wave in enumerate(waves) for name in wave}


class TestNormalizeWaveSize:
    """Test wave size clamping."""

    def test_defaults(self):
        assert normalize_wave_size(None) == 10
        assert normalize_wave_size(0) == 10
        assert normalize_wave_size(-3) == 10

    def test_clamped(self):
        assert normalize_wave_size(5) == 5
        assert normalize_wave_size(500) == 100


class TestPlanWaves:
    """Test dependency-aware wave planning."""

    def test_empty(self):
        assert plan_waves([], {}) == []

    def test_independent_repositories_fill_waves(self):
        repos = [f'org/r{i}' for i in range(5)]

        waves = plan_waves(repos, {}, wave_size=2)

        assert waves == [['org/r0', 'org/r1'], ['org/r2', 'org/r3'], ['org/r4']]

    def test_dependency_placed_in_earlier_wave(self):
        repos = ['org/app', 'org/lib', 'org/core']
        deps = {'org/app': ['org/lib'], 'org/lib': ['org/core']}

        waves = plan_waves(repos, deps, wave_size=10)

        index = _wave_index(waves)
        assert index['org/core'] < index['org/lib'] < index['org/app']
        assert sorted(_flatten(waves)) == sorted(repos)

    def test_dependency_not_in_same_wave(self):
        """A repository never shares a wave with a dependency placed in that pass."""
        waves = plan_waves(['org/lib', 'org/app'], {'org/app': ['org/lib']}, wave_size=10)

        assert waves == [['org/lib'], ['org/app']]

    def test_out_of_scope_dependencies_are_satisfied(self):
        waves = plan_waves(['org/app'], {'org/app': ['other/external']})

        assert waves == [['org/app']]

    def test_cycle_is_forced(self):
        repos = ['org/a', 'org/b', 'org/c']
        deps = {'org/a': ['org/b'], 'org/b': ['org/a']}

        waves = plan_waves(repos, deps, wave_size=10)

        assert sorted(_flatten(waves)) == sorted(repos)
        assert len(_flatten(waves)) == len(repos)

    def test_duplicates_removed(self):
        waves = plan_waves(['org/a', 'org/a', 'org/b'], {})

        assert _flatten(waves) == ['org/a', 'org/b']

    def test_pass_limit_chunks_remainder(self):
        repos = ['org/a', 'org/b', 'org/c', 'org/d']
        deps = {'org/b': ['org/a'], 'org/c': ['org/b'], 'org/d': ['org/c']}

        waves = plan_waves(repos, deps, wave_size=2, max_passes=1)

        assert waves[0] == ['org/a']
        assert sorted(_flatten(waves)) == sorted(repos)
        assert all(len(wave) <= 2 for wave in waves)

    def test_acyclic_ordering_holds_for_larger_graph(self):
        repos = [f'org/r{i}' for i in range(12)]
        deps = {f'org/r{i}': [f'org/r{i + 1}'] for i in range(0, 11, 2)}

        waves = plan_waves(repos, deps, wave_size=3)

        index = _wave_index(waves)
        for name, targets in deps.items():
            for target in targets:
                assert index[target] < index[name]
        assert sorted(_flatten(waves)) == sorted(repos)


class TestPilotScoring:
    """Test pilot candidate ranking."""

    def test_pilot_score(self):
        repo = Repository(
            full_name='org/a',
            complexity_score=3,
            local_dependency_count=2,
            is_archived=True,
            is_fork=True,
        )

        assert pilot_score(repo) == 2 * 10 + 5 + 5 + 3

    def test_pilot_score_unknown_complexity(self):
        assert pilot_score(Repository(full_name='org/a')) == 0

    def test_complexity_rating(self):
        assert complexity_rating(None) == 'unknown'
        assert complexity_rating(5) == 'simple'
        assert complexity_rating(10) == 'medium'
        assert complexity_rating(17) == 'complex'
        assert complexity_rating(18) == 'very_complex'

    def test_rank_is_stable(self):
        repos = [
            Repository(full_name='org/b', complexity_score=2),
            Repository(full_name='org/a', complexity_score=1),
            Repository(full_name='org/c', complexity_score=2),
        ]

        ranked = rank_pilot_candidates(repos, 2)

        assert [r.full_name for r in ranked] == ['org/a', 'org/b']

    def test_rank_non_positive_count(self):
        repos = [Repository(full_name='org/a', complexity_score=1)]

        assert rank_pilot_candidates(repos, -1) == []


class TestDependencyMap:
    """Test dependency edge grouping."""

    def test_only_local_edges(self):
        edges = [
            RepositoryDependency(
                repository_full_name='org/app', dependency_full_name='org/lib', is_local=True
            ),
            RepositoryDependency(
                repository_full_name='org/app',
                dependency_full_name='pypi/requests',
                is_local=False,
            ),
        ]

        assert dependency_map(edges) == {'org/app': ['org/lib']}
