"""Tests for drift_fst.drift — Wright-Fisher simulator and ensemble reductions.

Acceptance criteria:
  - Path length is generations + 1 and starts at the given frequency
  - Every later value is k / N with integer k in [0, N]
  - Frequencies 0 and 1 are absorbing
  - Sample variance across replicates is 0 at generation 0 and approaches,
    without exceeding, the fixation plateau p0 (1 − p0)
  - Invalid arguments fail before anything is drawn
"""

import numpy as np
import pytest

from drift_fst.drift import (
    FixationSummary,
    ensemble_variance,
    expected_heterozygosity,
    expected_variance,
    fixation_plateau,
    fixation_summary,
    simulate,
    simulate_ensemble,
    simulate_runs,
    validate_drift_args,
)
from drift_fst.errors import InvalidArgumentError


# ═══════════════════════════════════════════════════════════════════════
# SINGLE PATHS
# ═══════════════════════════════════════════════════════════════════════

class TestSimulate:
    @pytest.mark.parametrize("n,g,x0", [
        (1, 10, 0.5),
        (10, 0, 0.3),
        (25, 40, 0.1),
        (100, 200, 0.5),
        (7, 15, 0.9),
    ])
    def test_shape_start_and_lattice(self, n, g, x0):
        path = simulate(n, g, x0, rng=123)
        assert path.shape == (g + 1,)
        assert path[0] == x0
        assert np.all(path >= 0.0) and np.all(path <= 1.0)
        counts = path[1:] * n
        np.testing.assert_allclose(counts, np.round(counts), atol=1e-9)
        assert np.all(np.round(counts) >= 0) and np.all(np.round(counts) <= n)

    def test_zero_generations_returns_start_only(self):
        path = simulate(50, 0, 0.37)
        assert path.tolist() == [0.37]

    @pytest.mark.parametrize("x0", [0.0, 1.0])
    def test_absorbing_boundaries(self, x0):
        path = simulate(30, 100, x0, rng=1)
        assert np.all(path == x0)

    def test_population_of_one_fixes_immediately(self):
        path = simulate(1, 5, 0.5, rng=3)
        assert set(path[1:].tolist()) <= {0.0, 1.0}
        assert np.all(path[1:] == path[1])

    def test_same_seed_same_path(self):
        a = simulate(100, 80, 0.4, rng=42)
        b = simulate(100, 80, 0.4, rng=42)
        np.testing.assert_array_equal(a, b)

    def test_injected_generator_is_used(self):
        gen1 = np.random.default_rng(9)
        gen2 = np.random.default_rng(9)
        np.testing.assert_array_equal(
            simulate(60, 30, 0.5, rng=gen1),
            simulate(60, 30, 0.5, rng=gen2),
        )

    def test_numpy_integer_arguments(self):
        path = simulate(np.int64(20), np.int32(5), 0.5, rng=0)
        assert path.shape == (6,)


class TestInvalidArguments:
    def test_population_size_zero(self):
        with pytest.raises(InvalidArgumentError):
            simulate(0, 10, 0.5)

    def test_invalid_argument_is_value_error(self):
        with pytest.raises(ValueError):
            simulate(-5, 10, 0.5)

    @pytest.mark.parametrize("n,g,x0", [
        (10, -1, 0.5),
        (10, 5, -0.01),
        (10, 5, 1.01),
        (10, 5, float('nan')),
        (10.0, 5, 0.5),
        (True, 5, 0.5),
        (10, 2.5, 0.5),
        (10, 5, "half"),
    ])
    def test_rejected(self, n, g, x0):
        with pytest.raises(InvalidArgumentError):
            validate_drift_args(n, g, x0)

    def test_no_entropy_consumed_on_failure(self):
        gen = np.random.default_rng(5)
        state = gen.bit_generator.state
        with pytest.raises(InvalidArgumentError):
            simulate(0, 10, 0.5, rng=gen)
        assert gen.bit_generator.state == state

    def test_ensemble_needs_a_replicate(self):
        with pytest.raises(InvalidArgumentError):
            simulate_ensemble(10, 5, 0.5, n_replicates=0)


# ═══════════════════════════════════════════════════════════════════════
# ENSEMBLES
# ═══════════════════════════════════════════════════════════════════════

class TestEnsemble:
    def test_shape_and_start_column(self):
        ens = simulate_ensemble(40, 25, 0.3, n_replicates=12, rng=7)
        assert ens.shape == (12, 26)
        assert np.all(ens[:, 0] == 0.3)

    def test_rows_on_lattice(self):
        n = 40
        ens = simulate_ensemble(n, 25, 0.3, n_replicates=12, rng=7)
        counts = ens[:, 1:] * n
        np.testing.assert_allclose(counts, np.round(counts), atol=1e-9)

    def test_reproducible(self):
        a = simulate_ensemble(40, 25, 0.3, n_replicates=12, rng=7)
        b = simulate_ensemble(40, 25, 0.3, n_replicates=12, rng=7)
        np.testing.assert_array_equal(a, b)

    def test_replicates_differ(self):
        ens = simulate_ensemble(100, 50, 0.5, n_replicates=20, rng=11)
        assert len({tuple(row) for row in ens}) > 1

    def test_runs_are_individually_reproducible(self):
        """Replicate i depends only on the master seed and i."""
        small = simulate_runs(50, 20, 0.5, n_replicates=3, master_seed=42)
        large = simulate_runs(50, 20, 0.5, n_replicates=8, master_seed=42)
        np.testing.assert_array_equal(small, large[:3])

    def test_runs_match_simulate_lattice(self):
        ens = simulate_runs(30, 10, 0.2, n_replicates=4, master_seed=1)
        assert ens.shape == (4, 11)
        assert np.all(ens[:, 0] == 0.2)


class TestEnsembleVariance:
    def test_generation_zero_is_exactly_zero(self):
        ens = simulate_ensemble(50, 30, 0.1, n_replicates=200, rng=3)
        var = ensemble_variance(ens)
        assert var[0] == 0.0

    def test_unbiased_estimator(self):
        ens = np.array([[0.5, 0.2], [0.5, 0.4], [0.5, 0.9]])
        var = ensemble_variance(ens)
        expected = np.var([0.2, 0.4, 0.9], ddof=1)
        assert var[1] == pytest.approx(expected)

    def test_needs_two_replicates(self):
        with pytest.raises(InvalidArgumentError):
            ensemble_variance(np.array([[0.5, 0.4, 0.3]]))

    def test_rejects_1d(self):
        with pytest.raises(InvalidArgumentError):
            ensemble_variance(np.array([0.5, 0.4, 0.3]))

    def test_matches_wright_fisher_expectation(self):
        n, g, x0 = 50, 25, 0.5
        ens = simulate_ensemble(n, g, x0, n_replicates=4000, rng=2024)
        var = ensemble_variance(ens)
        theory = expected_variance(n, g, x0)
        assert var[-1] == pytest.approx(theory[-1], abs=0.01)

    def test_approaches_fixation_plateau(self):
        """Long runs: variance climbs to, and stays within noise of, p0(1 − p0)."""
        n, g, x0 = 20, 400, 0.3
        ens = simulate_ensemble(n, g, x0, n_replicates=2000, rng=99)
        var = ensemble_variance(ens)
        plateau = fixation_plateau(x0)
        assert var[-1] == pytest.approx(plateau, abs=0.03)
        assert np.max(var) <= plateau + 0.02

    def test_constant_ensemble_at_boundary(self):
        ens = simulate_ensemble(20, 10, 1.0, n_replicates=5, rng=0)
        np.testing.assert_array_equal(ensemble_variance(ens), np.zeros(11))


# ═══════════════════════════════════════════════════════════════════════
# THEORY CURVES
# ═══════════════════════════════════════════════════════════════════════

class TestTheory:
    def test_plateau(self):
        assert fixation_plateau(0.3) == pytest.approx(0.21)
        assert fixation_plateau(0.0) == 0.0

    def test_expected_variance_endpoints(self):
        curve = expected_variance(100, 5000, 0.5)
        assert curve[0] == 0.0
        assert curve[-1] == pytest.approx(0.25, abs=1e-6)
        assert np.all(np.diff(curve) >= 0)

    def test_expected_variance_one_generation(self):
        # Var(Binomial(N, p) / N) = p (1 − p) / N
        curve = expected_variance(40, 1, 0.2)
        assert curve[1] == pytest.approx(0.2 * 0.8 / 40)

    def test_heterozygosity_decay(self):
        het = expected_heterozygosity(10, 3, 0.5)
        np.testing.assert_allclose(het, 0.5 * 0.9 ** np.arange(4))

    def test_variance_plus_half_heterozygosity_is_constant(self):
        n, g, x0 = 30, 50, 0.4
        total = expected_variance(n, g, x0) + expected_heterozygosity(n, g, x0) / 2
        np.testing.assert_allclose(total, fixation_plateau(x0))


# ═══════════════════════════════════════════════════════════════════════
# LOSS / FIXATION
# ═══════════════════════════════════════════════════════════════════════

class TestFixationSummary:
    def test_handmade_ensemble(self):
        ens = np.array([
            [0.5, 0.0, 0.0],
            [0.5, 1.0, 1.0],
            [0.5, 0.5, 0.5],
            [0.5, 0.5, 1.0],
        ])
        s = fixation_summary(ens)
        assert isinstance(s, FixationSummary)
        np.testing.assert_allclose(s.fraction_lost, [0.0, 0.25, 0.25])
        np.testing.assert_allclose(s.fraction_fixed, [0.0, 0.25, 0.5])
        np.testing.assert_allclose(s.fraction_segregating, [1.0, 0.5, 0.25])
        assert s.absorption_generation.tolist() == [1, 1, -1, 2]
        assert s.mean_absorption_time == pytest.approx(4 / 3)

    def test_nothing_absorbed(self):
        ens = np.full((3, 4), 0.5)
        s = fixation_summary(ens)
        assert s.mean_absorption_time is None
        assert np.all(s.absorption_generation == -1)

    def test_fixation_probability_equals_start_frequency(self):
        """Neutral fixation probability is p0."""
        ens = simulate_ensemble(10, 300, 0.3, n_replicates=3000, rng=17)
        s = fixation_summary(ens)
        assert s.fraction_fixed[-1] + s.fraction_lost[-1] == pytest.approx(1.0)
        assert s.fraction_fixed[-1] == pytest.approx(0.3, abs=0.03)
