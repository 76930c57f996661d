"""Tests for surrogate generation and significance testing."""
import numpy as np
import pytest

from ccmsystems import run_ccm
from ccmsystems.surrogates import (
    empirical_p,
    generate_fourier_surrogates,
    generate_random_surrogates,
    get_surrogate_generator,
)
from ccmsystems.surrogates import testing
from ccmsystems.testdata import make_coupled_logistic


class TestGenerators:
    def test_random_preserves_values(self):
        x = np.random.default_rng(0).standard_normal(100)
        surr = generate_random_surrogates(x, 5, rng=np.random.default_rng(1))
        assert surr.shape == (5, 100)
        for s in surr:
            np.testing.assert_array_equal(np.sort(s), np.sort(x))

    def test_fourier_preserves_spectrum(self):
        x = np.sin(0.2 * np.arange(128)) + np.random.default_rng(0).standard_normal(128)
        surr = generate_fourier_surrogates(x, 3, rng=np.random.default_rng(2))
        assert surr.shape == (3, 128)
        for s in surr:
            np.testing.assert_allclose(np.abs(np.fft.rfft(s)), np.abs(np.fft.rfft(x)), atol=1e-8)
            assert s.mean() == pytest.approx(x.mean())
            assert not np.allclose(s, x)

    def test_fourier_odd_length(self):
        x = np.random.default_rng(0).standard_normal(101)
        surr = generate_fourier_surrogates(x, 2, rng=np.random.default_rng(2))
        assert surr.shape == (2, 101)
        assert np.all(np.isfinite(surr))

    def test_reproducible(self):
        x = np.arange(50.0)
        a = generate_random_surrogates(x, 3, rng=np.random.default_rng(4))
        b = generate_random_surrogates(x, 3, rng=np.random.default_rng(4))
        np.testing.assert_array_equal(a, b)

    def test_lookup(self):
        assert get_surrogate_generator('fourier') is generate_fourier_surrogates
        with pytest.raises(ValueError):
            get_surrogate_generator('twin')


class TestEmpiricalP:
    def test_greater(self):
        surr = np.linspace(0, 1, 99)
        assert empirical_p(2.0, surr) == pytest.approx(1 / 100)
        assert empirical_p(-1.0, surr) == pytest.approx(1.0)

    def test_less(self):
        surr = np.linspace(0, 1, 99)
        assert empirical_p(-1.0, surr, tail='less') == pytest.approx(1 / 100)

    def test_nan_handling(self):
        assert np.isnan(empirical_p(np.nan, np.arange(5.0)))
        assert np.isnan(empirical_p(0.5, np.array([np.nan, np.nan])))
        assert empirical_p(2.0, np.array([np.nan, 0.1, 0.2])) == pytest.approx(1 / 3)

    def test_invalid_tail(self):
        with pytest.raises(ValueError):
            empirical_p(0.5, np.arange(5.0), tail='sideways')

    def test_significance_summary(self):
        result = testing.test_significance(0.9, np.linspace(0, 0.5, 19), alpha=0.1)
        assert result['significant']
        assert result['p_value'] == pytest.approx(1 / 20)
        assert result['n_surrogates'] == 19


class TestSurrogateWorkflow:
    def test_convergent_direction_is_tested(self):
        x, y = make_coupled_logistic(300, beta_xy=0.1)
        result = run_ccm(
            x, y, num_samples=10, library_sizes=[10, 50, 150, 290],
            random_seed=4, n_surrogates=9, surrogate_method='random'
        )
        forced = result.y_causes_x
        assert forced.convergent
        sig = forced.significance
        assert sig is not None
        assert sig['lib_size'] == 290
        assert sig['method'] == 'random'
        assert 0 < sig['p_value'] <= 1
        assert sig['observed'] == pytest.approx(forced.rho)
        assert 'p_rho' in forced.summary()

    def test_non_convergent_direction_not_tested(self):
        x, y = make_coupled_logistic(300, beta_xy=0.1)
        result = run_ccm(
            x, y, num_samples=10, library_sizes=[10, 50, 150, 290],
            random_seed=4, n_surrogates=5,
        )
        for direction in result:
            if not direction.convergent:
                assert direction.significance is None

    def test_surrogates_off_by_default(self):
        x, y = make_coupled_logistic(200, beta_xy=0.1)
        result = run_ccm(x, y, num_samples=5, library_sizes=[10, 100, 190], random_seed=1)
        assert result.y_causes_x.significance is None
