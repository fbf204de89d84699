"""Genetic drift visualizations.

Every function:
  - Takes simulator output (an ensemble array or FixationSummary)
  - Returns a matplotlib Figure
  - Has an optional ``save_path`` parameter (saves PNG when given)

matplotlib backend is forced to Agg (no display) on import.
"""

from __future__ import annotations

import matplotlib
matplotlib.use('Agg')

from typing import Optional

import matplotlib.pyplot as plt
import numpy as np

from drift_fst.drift import (
    FixationSummary,
    ensemble_variance,
    expected_heterozygosity,
    expected_variance,
    fixation_plateau,
)
from drift_fst.viz.style import (
    EMPIRICAL_COLOR,
    FATE_COLORS,
    PATH_COLOR,
    THEORY_COLOR,
    dark_figure,
    save_figure,
    style_legend,
)


# ═══════════════════════════════════════════════════════════════════════
# 1. SAMPLE PATHS
# ═══════════════════════════════════════════════════════════════════════

def plot_drift_paths(
    ensemble: np.ndarray,
    max_paths: int = 50,
    population_size: Optional[int] = None,
    save_path: Optional[str] = None,
) -> plt.Figure:
    """Spaghetti plot of allele-frequency paths with the ensemble mean.

    Args:
        ensemble: (M, G + 1) array from ``simulate_ensemble``.
        max_paths: Draw at most this many replicate paths.
        population_size: Shown in the title when given.
        save_path: Path to save figure.

    Returns:
        matplotlib Figure.
    """
    ensemble = np.atleast_2d(np.asarray(ensemble, dtype=np.float64))
    generations = np.arange(ensemble.shape[1])

    fig, ax = dark_figure()
    for path in ensemble[:max_paths]:
        ax.plot(generations, path, color=PATH_COLOR, alpha=0.25, linewidth=0.8)
    ax.plot(generations, ensemble.mean(axis=0), color=EMPIRICAL_COLOR,
            linewidth=2.2, label=f'Mean of {ensemble.shape[0]} replicates')

    ax.set_ylim(-0.02, 1.02)
    ax.set_xlim(0, max(generations[-1], 1))
    ax.set_xlabel('Generation', fontsize=12)
    ax.set_ylabel('Allele frequency', fontsize=12)
    title = 'Wright-Fisher drift'
    if population_size is not None:
        title += f' (N = {population_size})'
    ax.set_title(title, fontsize=14, fontweight='bold')
    style_legend(ax)

    if save_path:
        save_figure(fig, save_path)
    return fig


# ═══════════════════════════════════════════════════════════════════════
# 2. VARIANCE GROWTH
# ═══════════════════════════════════════════════════════════════════════

def plot_variance_over_time(
    ensemble: np.ndarray,
    population_size: int,
    show_heterozygosity: bool = False,
    save_path: Optional[str] = None,
) -> plt.Figure:
    """Empirical variance across replicates vs. the Wright-Fisher expectation.

    The dashed horizontal line is the fixation plateau p0 (1 − p0): once
    every replicate is lost or fixed, the variance cannot grow further.
    """
    ensemble = np.asarray(ensemble, dtype=np.float64)
    p0 = float(ensemble[0, 0])
    n_gen = ensemble.shape[1] - 1
    generations = np.arange(n_gen + 1)

    empirical = ensemble_variance(ensemble)
    theory = expected_variance(population_size, n_gen, p0)
    plateau = fixation_plateau(p0)

    fig, ax = dark_figure()
    ax.plot(generations, empirical, color=EMPIRICAL_COLOR, linewidth=2,
            label='Sample variance across replicates')
    ax.plot(generations, theory, color=THEORY_COLOR, linewidth=2,
            linestyle='--', label=r'$p_0(1-p_0)[1-(1-1/N)^t]$')
    ax.axhline(plateau, color='#95a5a6', linestyle=':', linewidth=1.5,
               label=f'Fixation plateau = {plateau:.3f}')

    if show_heterozygosity:
        het = expected_heterozygosity(population_size, n_gen, p0)
        ax.plot(generations, het, color='#48c9b0', linewidth=1.5,
                label='Expected heterozygosity')

    ax.set_xlabel('Generation', fontsize=12)
    ax.set_ylabel('Var(allele frequency)', fontsize=12)
    ax.set_title(f'Variance grows under drift (N = {population_size}, '
                 f'p0 = {p0:g})', fontsize=14, fontweight='bold')
    ax.set_xlim(0, max(n_gen, 1))
    style_legend(ax)

    if save_path:
        save_figure(fig, save_path)
    return fig


# ═══════════════════════════════════════════════════════════════════════
# 3. LOSS AND FIXATION
# ═══════════════════════════════════════════════════════════════════════

def plot_fixation_fractions(
    summary: FixationSummary,
    save_path: Optional[str] = None,
) -> plt.Figure:
    """Stacked share of replicates lost, segregating and fixed per generation."""
    generations = np.arange(summary.fraction_lost.size)

    fig, ax = dark_figure()
    ax.stackplot(
        generations,
        summary.fraction_lost,
        summary.fraction_segregating,
        summary.fraction_fixed,
        colors=[FATE_COLORS['lost'], FATE_COLORS['segregating'],
                FATE_COLORS['fixed']],
        labels=['Lost (p = 0)', 'Segregating', 'Fixed (p = 1)'],
        alpha=0.85,
    )
    ax.set_ylim(0, 1)
    ax.set_xlim(0, max(generations[-1], 1))
    ax.set_xlabel('Generation', fontsize=12)
    ax.set_ylabel('Fraction of replicates', fontsize=12)
    ax.set_title('Allele fate under drift', fontsize=14, fontweight='bold')
    style_legend(ax, loc='upper left')

    if save_path:
        save_figure(fig, save_path)
    return fig
