"""Wright-Fisher genetic drift simulator.

A single bi-allelic locus in a population of N gene copies. Each
generation, every offspring copy independently inherits the allele of a
randomly chosen parental copy (sampling with replacement), so the next
allele count is Binomial(N, p).

Core responsibilities:
  - One sample path of allele frequency over time (``simulate``)
  - Ensembles of independent paths (``simulate_ensemble``)
  - Cross-sectional variance across an ensemble (unbiased, ddof=1)
  - Theoretical variance / heterozygosity curves and the fixation plateau
  - Loss / fixation bookkeeping per generation

Frequencies 0 and 1 are absorbing: a binomial draw with p in {0, 1} is
deterministic, so no special-casing is needed in the update.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Optional

import numpy as np

from drift_fst.errors import InvalidArgumentError
from drift_fst.rng import SeedLike, make_rng, spawn_replicate_rngs


# ═══════════════════════════════════════════════════════════════════════
# ARGUMENT VALIDATION
# ═══════════════════════════════════════════════════════════════════════

def _is_int(value) -> bool:
    return isinstance(value, (int, np.integer)) and not isinstance(value, bool)


def validate_drift_args(
    population_size,
    generations,
    start_frequency,
) -> None:
    """Raise InvalidArgumentError if any simulator argument is out of range."""
    if not _is_int(population_size) or population_size < 1:
        raise InvalidArgumentError(
            f"population_size must be an integer >= 1, got {population_size!r}"
        )
    if not _is_int(generations) or generations < 0:
        raise InvalidArgumentError(
            f"generations must be an integer >= 0, got {generations!r}"
        )
    try:
        x0 = float(start_frequency)
    except (TypeError, ValueError):
        raise InvalidArgumentError(
            f"start_frequency must be a number, got {start_frequency!r}"
        ) from None
    if not math.isfinite(x0) or not (0.0 <= x0 <= 1.0):
        raise InvalidArgumentError(
            f"start_frequency must be in [0, 1], got {start_frequency!r}"
        )


# ═══════════════════════════════════════════════════════════════════════
# SIMULATION
# ═══════════════════════════════════════════════════════════════════════

def simulate(
    population_size: int,
    generations: int,
    start_frequency: float,
    rng: SeedLike = None,
) -> np.ndarray:
    """Simulate one Wright-Fisher allele-frequency path.

    Args:
        population_size: Number of gene copies N (>= 1).
        generations: Number of generations to simulate (>= 0).
        start_frequency: Allele frequency at generation 0, in [0, 1].
        rng: numpy Generator, integer seed, or None.

    Returns:
        (generations + 1,) float64 array. Element 0 is ``start_frequency``;
        every later element is k / N for an integer k in [0, N].

    Raises:
        InvalidArgumentError: On out-of-range arguments (nothing is drawn).
    """
    validate_drift_args(population_size, generations, start_frequency)
    gen = make_rng(rng)

    path = np.empty(generations + 1, dtype=np.float64)
    path[0] = float(start_frequency)
    for i in range(1, generations + 1):
        path[i] = gen.binomial(population_size, path[i - 1]) / population_size
    return path


def simulate_ensemble(
    population_size: int,
    generations: int,
    start_frequency: float,
    n_replicates: int,
    rng: SeedLike = None,
) -> np.ndarray:
    """Simulate ``n_replicates`` independent drift paths.

    Replicates are advanced together: one vectorised binomial draw per
    generation. Rows never interact, so each row is distributed exactly as
    a ``simulate`` path.

    Returns:
        (n_replicates, generations + 1) float64 array.

    Raises:
        InvalidArgumentError: On out-of-range arguments.
    """
    validate_drift_args(population_size, generations, start_frequency)
    if not _is_int(n_replicates) or n_replicates < 1:
        raise InvalidArgumentError(
            f"n_replicates must be an integer >= 1, got {n_replicates!r}"
        )
    gen = make_rng(rng)

    ensemble = np.empty((n_replicates, generations + 1), dtype=np.float64)
    ensemble[:, 0] = float(start_frequency)
    for i in range(1, generations + 1):
        counts = gen.binomial(population_size, ensemble[:, i - 1])
        ensemble[:, i] = counts / population_size
    return ensemble


def simulate_runs(
    population_size: int,
    generations: int,
    start_frequency: float,
    n_replicates: int,
    master_seed: Optional[int] = None,
) -> np.ndarray:
    """Build an ensemble by repeated ``simulate`` calls, one stream per run.

    Slower than ``simulate_ensemble`` but replicate ``i`` is reproducible on
    its own: it depends only on ``master_seed`` and ``i``.

    Returns:
        (n_replicates, generations + 1) float64 array.
    """
    validate_drift_args(population_size, generations, start_frequency)
    if not _is_int(n_replicates) or n_replicates < 1:
        raise InvalidArgumentError(
            f"n_replicates must be an integer >= 1, got {n_replicates!r}"
        )
    streams = spawn_replicate_rngs(master_seed, n_replicates)
    return np.vstack([
        simulate(population_size, generations, start_frequency, rng=s)
        for s in streams
    ])


# ═══════════════════════════════════════════════════════════════════════
# ENSEMBLE SUMMARIES
# ═══════════════════════════════════════════════════════════════════════

def _as_ensemble(ensemble) -> np.ndarray:
    arr = np.asarray(ensemble, dtype=np.float64)
    if arr.ndim != 2:
        raise InvalidArgumentError(
            f"ensemble must be 2-D (replicates, generations), got shape {arr.shape}"
        )
    return arr


def ensemble_variance(ensemble) -> np.ndarray:
    """Per-generation sample variance across replicate paths.

    Uses the unbiased estimator (divides by M − 1).

    Args:
        ensemble: (M, G + 1) array of paths with M >= 2.

    Returns:
        (G + 1,) float64 array. Entry 0 is exactly 0 when all paths share
        a start frequency.
    """
    arr = _as_ensemble(ensemble)
    if arr.shape[0] < 2:
        raise InvalidArgumentError(
            f"sample variance needs at least 2 replicates, got {arr.shape[0]}"
        )
    var = arr.var(axis=0, ddof=1)
    # constant columns (e.g. generation 0) are exactly zero, not rounding noise
    var[(arr == arr[0]).all(axis=0)] = 0.0
    return var


def fixation_plateau(start_frequency: float) -> float:
    """Bernoulli bound p0 (1 − p0): the variance once every path is absorbed."""
    validate_drift_args(1, 0, start_frequency)
    p0 = float(start_frequency)
    return p0 * (1.0 - p0)


def expected_variance(
    population_size: int,
    generations: int,
    start_frequency: float,
) -> np.ndarray:
    """Theoretical Var(p_t) = p0 (1 − p0) [1 − (1 − 1/N)^t], t = 0..G."""
    validate_drift_args(population_size, generations, start_frequency)
    t = np.arange(generations + 1, dtype=np.float64)
    decay = (1.0 - 1.0 / population_size) ** t
    return fixation_plateau(start_frequency) * (1.0 - decay)


def expected_heterozygosity(
    population_size: int,
    generations: int,
    start_frequency: float,
) -> np.ndarray:
    """Expected heterozygosity E[2 p_t (1 − p_t)] = 2 p0 (1 − p0) (1 − 1/N)^t."""
    validate_drift_args(population_size, generations, start_frequency)
    t = np.arange(generations + 1, dtype=np.float64)
    decay = (1.0 - 1.0 / population_size) ** t
    return 2.0 * fixation_plateau(start_frequency) * decay


@dataclass
class FixationSummary:
    """Loss / fixation bookkeeping for an ensemble."""

    fraction_lost: np.ndarray         # (G + 1,) share of paths at 0
    fraction_fixed: np.ndarray        # (G + 1,) share of paths at 1
    absorption_generation: np.ndarray  # (M,) first generation at 0 or 1; -1 if none

    @property
    def fraction_segregating(self) -> np.ndarray:
        return 1.0 - self.fraction_lost - self.fraction_fixed

    @property
    def mean_absorption_time(self) -> Optional[float]:
        """Mean absorption generation over absorbed paths (None if none absorbed)."""
        absorbed = self.absorption_generation[self.absorption_generation >= 0]
        if absorbed.size == 0:
            return None
        return float(absorbed.mean())


def fixation_summary(ensemble) -> FixationSummary:
    """Summarise loss and fixation over generations for an ensemble."""
    arr = _as_ensemble(ensemble)
    lost = arr == 0.0
    fixed = arr == 1.0
    absorbed = lost | fixed

    first = np.argmax(absorbed, axis=1)
    first = np.where(absorbed.any(axis=1), first, -1)

    return FixationSummary(
        fraction_lost=lost.mean(axis=0),
        fraction_fixed=fixed.mean(axis=0),
        absorption_generation=first.astype(np.int64),
    )
