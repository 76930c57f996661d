"""Tests for neighbor search, cross mapping and scoring."""
import numpy as np
import pytest

from ccmsystems.ccm.core import (
    compute_xmap,
    compute_xmap_baseline,
    cross_map,
    find_neighbors,
    neighbor_weights,
    score,
)
from ccmsystems.ccm.embedding import embed
from ccmsystems.errors import InsufficientNeighborsError


class TestFindNeighbors:
    def test_distance_ties_resolve_to_smaller_anchor(self):
        vectors = np.array([[0.0], [1.0], [-1.0], [2.0]])
        anchors = np.array([0, 1, 2, 3])
        neighbors, distances, _ = find_neighbors(vectors, anchors, k=2)
        np.testing.assert_array_equal(neighbors[0], [1, 2])
        np.testing.assert_allclose(distances[0], [1.0, 1.0])

    def test_point_never_its_own_neighbor(self):
        m = embed(np.sin(np.linspace(0, 20, 120)), E=3, tau=1)
        neighbors, distances, n_candidates = find_neighbors(m.vectors, m.indices, k=4)
        rows = np.arange(m.n_points)[:, None]
        assert not np.any(neighbors == rows)
        assert np.all(n_candidates == m.n_points - 1)
        assert np.all(np.isfinite(distances))

    def test_exclusion_radius_removes_temporal_neighbors(self):
        m = embed(np.sin(np.linspace(0, 20, 120)), E=3, tau=1)
        neighbors, _, n_candidates = find_neighbors(m.vectors, m.indices, k=4, exclusion_radius=3)
        gaps = np.abs(m.indices[neighbors] - m.indices[:, None])
        assert np.all(gaps > 3)
        assert n_candidates[0] == m.n_points - 4

    def test_library_too_small_returns_no_neighbors(self):
        neighbors, distances, n_candidates = find_neighbors(
            np.zeros((3, 2)), np.array([0, 1, 2]), k=3)
        assert neighbors.shape == (3, 0)
        np.testing.assert_array_equal(n_candidates, [2, 2, 2])


class TestNeighborWeights:
    def test_exponential_weights(self):
        weights = neighbor_weights(np.array([[1.0, 2.0, 3.0]]))
        expected = np.exp(-np.array([1.0, 2.0, 3.0]))
        np.testing.assert_allclose(weights[0], expected / expected.sum())

    def test_zero_nearest_distance(self):
        weights = neighbor_weights(np.array([[0.0, 0.0, 1.0, 2.0]]))
        np.testing.assert_allclose(weights[0], [0.5, 0.5, 0.0, 0.0])

    def test_rows_sum_to_one(self):
        distances = np.sort(np.random.default_rng(3).uniform(0, 5, (20, 4)), axis=1)
        np.testing.assert_allclose(neighbor_weights(distances).sum(axis=1), 1.0)


class TestCrossMap:
    def test_estimate_uses_target_at_neighbor_times(self):
        s = np.arange(20.0)
        target = s ** 2
        m = embed(s, E=2, tau=1)
        library = m.indices.copy()
        estimates = cross_map(m, target, library)

        # Anchor 10: neighbors 9 and 11 (tie, sqrt 2), then 8 (ties with 12)
        t = 10
        w = np.exp(-np.array([1.0, 1.0, 2.0]))
        expected = np.dot(w / w.sum(), target[[t - 1, t + 1, t - 2]])
        pos = int(np.where(library == t)[0][0])
        assert estimates[pos] == pytest.approx(expected)

    def test_full_library_estimates_every_point(self):
        x = np.sin(np.linspace(0, 30, 200))
        m = embed(x, E=3, tau=1)
        estimates = cross_map(m, x, m.indices)
        assert len(estimates) == m.n_points
        assert np.all(np.isfinite(estimates))

    def test_small_library_excludes_points(self):
        x = np.sin(np.linspace(0, 30, 200))
        m = embed(x, E=3, tau=1)
        estimates = cross_map(m, x, m.indices[:4])
        assert np.all(np.isnan(estimates))

    def test_strict_raises_insufficient_neighbors(self):
        x = np.sin(np.linspace(0, 30, 200))
        m = embed(x, E=3, tau=1)
        with pytest.raises(InsufficientNeighborsError) as info:
            cross_map(m, x, m.indices[:4], strict=True)
        assert info.value.n_required == 4
        assert info.value.n_candidates == 3

    def test_exclusion_radius_excludes_only_crowded_points(self):
        x = np.sin(np.linspace(0, 30, 200))
        m = embed(x, E=2, tau=1)
        library = m.indices[:8]  # anchors 1..8

        assert np.all(np.isfinite(cross_map(m, x, library, exclusion_radius=2)))

        estimates = cross_map(m, x, library, exclusion_radius=3)
        # Anchor 4 keeps only anchor 8, the edges keep four candidates
        assert np.isnan(estimates[3])
        assert np.isfinite(estimates[0])
        assert np.isfinite(estimates[-1])

    def test_self_map_skill_near_one(self):
        x = np.sin(0.3 * np.arange(300))
        m = embed(x, E=3, tau=1)
        assert compute_xmap(m, x, m.indices) > 0.99


class TestScore:
    def test_perfect_correlation(self):
        a = np.arange(10.0)
        assert score(a, 2 * a + 1) == pytest.approx(1.0)
        assert score(a, -a) == pytest.approx(-1.0)

    def test_constant_estimates_give_nan(self):
        assert np.isnan(score(np.full(10, 0.1), np.arange(10.0)))
        assert np.isnan(score(np.arange(10.0), np.full(10, 3.0)))

    def test_nan_pairs_dropped(self):
        est = np.array([1.0, np.nan, 3.0, 4.0])
        obs = np.array([2.0, 100.0, 6.0, 8.0])
        assert score(est, obs) == pytest.approx(1.0)

    def test_too_few_points(self):
        assert np.isnan(score([1.0], [2.0]))
        assert np.isnan(score([np.nan, np.nan, 1.0], [1.0, 2.0, 3.0]))

    def test_bounded(self):
        rng = np.random.default_rng(0)
        for _ in range(20):
            r = score(rng.standard_normal(15), rng.standard_normal(15))
            assert -1.0 <= r <= 1.0


class TestBaseline:
    def test_unshifted_baseline_matches_skill(self):
        rng = np.random.default_rng(3)
        x = rng.standard_normal(150)
        m = embed(x, E=3, tau=1)
        library = np.sort(rng.choice(m.indices, 60, replace=False))
        target = np.cumsum(rng.standard_normal(150))
        rho, rho_null = compute_xmap_baseline(m, target, library, shifts=np.array([0, 150]))
        assert rho == pytest.approx(compute_xmap(m, target, library))
        assert rho_null == pytest.approx(rho)

    def test_shifted_white_noise_scores_near_zero(self):
        rng = np.random.default_rng(5)
        x = rng.standard_normal(400)
        m = embed(x, E=3, tau=1)
        library = np.sort(rng.choice(m.indices, 300, replace=False))
        shifts = np.arange(100, 300, 20)
        _, rho_null = compute_xmap_baseline(m, x, library, shifts)
        assert abs(rho_null) < 0.1

    def test_all_points_excluded_gives_nan(self):
        m = embed(np.random.default_rng(0).standard_normal(50), E=3, tau=1)
        rho, rho_null = compute_xmap_baseline(m, np.arange(50.0), m.indices[:3], np.array([10, 20]))
        assert np.isnan(rho)
        assert np.isnan(rho_null)
