"""End-to-end analyses behind the tutorial figures.

``run_drift_analysis``  simulate an ensemble and reduce it (variance,
                        theory curves, loss / fixation, F_ST among lineages)
``run_table_analysis``  load a pairwise FST/F2 table, pivot, summarise and
                        cluster it

Both return plain dataclasses; ``save_*_figures`` turn them into PNGs and
``*_summary`` into JSON-ready dicts.
"""

from __future__ import annotations

import warnings
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional, Tuple, Union

import numpy as np
import pandas as pd

from drift_fst.config import AnalysisConfig
from drift_fst.drift import (
    FixationSummary,
    ensemble_variance,
    expected_variance,
    fixation_plateau,
    fixation_summary,
    simulate_ensemble,
)
from drift_fst.errors import MissingPairError
from drift_fst.fst import ensemble_fst
from drift_fst.rng import generator_from_state, generator_state, make_rng
from drift_fst.stats_table import (
    ClusterResult,
    EstimateSummary,
    cluster_populations,
    cut_clusters,
    describe_estimates,
    filter_statistic,
    load_stats_table,
    missing_pairs,
    pairwise_matrix,
)


# ═══════════════════════════════════════════════════════════════════════
# DRIFT
# ═══════════════════════════════════════════════════════════════════════

@dataclass
class DriftAnalysis:
    """Simulated ensemble and its per-generation reductions."""

    population_size: int
    start_frequency: float
    seed: int
    ensemble: np.ndarray              # (M, G + 1)
    variance: np.ndarray              # (G + 1,) sample variance, ddof=1
    expected: np.ndarray              # (G + 1,) Wright-Fisher expectation
    plateau: float                    # p0 (1 − p0)
    fixation: FixationSummary
    fst: np.ndarray                   # (G + 1,) F_ST among replicates
    rng_state: dict = field(default_factory=dict)   # generator state before drawing

    @property
    def n_replicates(self) -> int:
        return self.ensemble.shape[0]

    @property
    def generations(self) -> int:
        return self.ensemble.shape[1] - 1


def run_drift_analysis(config: AnalysisConfig) -> DriftAnalysis:
    """Simulate the configured ensemble and compute all drift summaries."""
    sim = config.simulation
    rng = make_rng(sim.seed)
    start_state = generator_state(rng)
    ensemble = simulate_ensemble(
        sim.population_size,
        sim.generations,
        sim.start_frequency,
        sim.n_replicates,
        rng=rng,
    )
    return DriftAnalysis(
        population_size=sim.population_size,
        start_frequency=float(sim.start_frequency),
        seed=sim.seed,
        ensemble=ensemble,
        variance=ensemble_variance(ensemble),
        expected=expected_variance(
            sim.population_size, sim.generations, sim.start_frequency
        ),
        plateau=fixation_plateau(sim.start_frequency),
        fixation=fixation_summary(ensemble),
        fst=ensemble_fst(ensemble),
        rng_state=start_state,
    )


def replay_ensemble(result: DriftAnalysis) -> np.ndarray:
    """Re-draw the ensemble of ``result`` from its recorded generator state.

    Raises:
        ValueError: If ``result`` carries no generator state.
    """
    if not result.rng_state:
        raise ValueError("DriftAnalysis has no recorded generator state")
    return simulate_ensemble(
        result.population_size,
        result.generations,
        result.start_frequency,
        result.n_replicates,
        rng=generator_from_state(result.rng_state),
    )


def drift_summary(result: DriftAnalysis) -> Dict[str, object]:
    """JSON-ready summary of a DriftAnalysis."""
    return {
        'population_size': result.population_size,
        'start_frequency': result.start_frequency,
        'generations': result.generations,
        'n_replicates': result.n_replicates,
        'seed': result.seed,
        'final_variance': float(result.variance[-1]),
        'final_expected_variance': float(result.expected[-1]),
        'plateau': result.plateau,
        'final_fraction_lost': float(result.fixation.fraction_lost[-1]),
        'final_fraction_fixed': float(result.fixation.fraction_fixed[-1]),
        'mean_absorption_time': result.fixation.mean_absorption_time,
        'final_fst': float(result.fst[-1]),
    }


def save_drift_figures(
    result: DriftAnalysis,
    output_dir: Union[str, Path],
    dpi: int = 150,
    n_paths: int = 50,
) -> List[Path]:
    """Write the drift figures to ``output_dir``; returns the paths written."""
    from drift_fst.viz.drift import (
        plot_drift_paths,
        plot_fixation_fractions,
        plot_variance_over_time,
    )
    from drift_fst.viz.style import save_figure

    out = Path(output_dir)
    out.mkdir(parents=True, exist_ok=True)
    written = []

    figures = [
        ('drift_paths.png', plot_drift_paths(
            result.ensemble, max_paths=n_paths,
            population_size=result.population_size)),
        ('drift_variance.png', plot_variance_over_time(
            result.ensemble, result.population_size, show_heterozygosity=True)),
        ('drift_fixation.png', plot_fixation_fractions(result.fixation)),
    ]
    for name, fig in figures:
        path = out / name
        save_figure(fig, path, dpi=dpi)
        written.append(path)
    return written


# ═══════════════════════════════════════════════════════════════════════
# STATISTICS TABLE
# ═══════════════════════════════════════════════════════════════════════

@dataclass
class TableAnalysis:
    """One statistic from an external pairwise table, reshaped."""

    statistic: str
    table: pd.DataFrame                     # rows for this statistic only
    matrix: pd.DataFrame                    # ordered-pair matrix, NaN = absent
    summary: EstimateSummary
    missing: List[Tuple[str, str]] = field(default_factory=list)
    clusters: Optional[ClusterResult] = None
    assignments: Dict[str, int] = field(default_factory=dict)


def analyze_table(
    table: pd.DataFrame,
    statistic: str = 'FST',
    bins: int = 20,
    cluster_method: str = 'ward',
    n_clusters: int = 3,
) -> TableAnalysis:
    """Filter, pivot, summarise and (when possible) cluster a loaded table.

    Clustering needs every pair in at least one direction; otherwise it is
    skipped with a UserWarning and ``clusters`` is None.
    """
    subset = filter_statistic(table, statistic)
    matrix = pairwise_matrix(subset)
    summary = describe_estimates(subset, bins=bins)

    clusters = None
    assignments: Dict[str, int] = {}
    if len(matrix) >= 2:
        try:
            clusters = cluster_populations(matrix, method=cluster_method)
        except MissingPairError as exc:
            warnings.warn(
                f"Skipping {statistic} clustering: {exc}",
                UserWarning,
                stacklevel=2,
            )
        else:
            assignments = cut_clusters(clusters, min(n_clusters, len(matrix)))

    return TableAnalysis(
        statistic=statistic,
        table=subset,
        matrix=matrix,
        summary=summary,
        missing=missing_pairs(matrix),
        clusters=clusters,
        assignments=assignments,
    )


def run_table_analysis(
    config: AnalysisConfig,
    table_path: Optional[Union[str, Path]] = None,
) -> TableAnalysis:
    """Load the configured table (or ``table_path``) and analyse it.

    Raises:
        ValueError: If no table path is configured or given.
    """
    path = table_path if table_path is not None else config.table.path
    if path is None:
        raise ValueError("No statistics table given (table.path is unset)")
    tbl = config.table
    return analyze_table(
        load_stats_table(path),
        statistic=tbl.statistic,
        bins=tbl.histogram_bins,
        cluster_method=tbl.cluster_method,
        n_clusters=tbl.n_clusters,
    )


def table_summary(result: TableAnalysis) -> Dict[str, object]:
    """JSON-ready summary of a TableAnalysis."""
    return {
        'statistic': result.statistic,
        'populations': [str(x) for x in result.matrix.index],
        'estimates': result.summary.to_dict(),
        'missing_pairs': [list(p) for p in result.missing],
        'cluster_method': result.clusters.method if result.clusters else None,
        'leaf_order': result.clusters.leaf_order if result.clusters else None,
        'clusters': result.assignments,
    }


def save_table_figures(
    result: TableAnalysis,
    output_dir: Union[str, Path],
    dpi: int = 150,
) -> List[Path]:
    """Write histogram, heatmap and (if clustered) dendrogram PNGs."""
    from drift_fst.viz.style import save_figure
    from drift_fst.viz.tables import (
        plot_dendrogram,
        plot_estimate_histogram,
        plot_pairwise_heatmap,
    )

    out = Path(output_dir)
    out.mkdir(parents=True, exist_ok=True)
    stat = result.statistic.lower()
    order = result.clusters.leaf_order if result.clusters else None

    figures = [
        (f'{stat}_histogram.png', plot_estimate_histogram(
            result.table, bins=len(result.summary.hist_counts),
            statistic=result.statistic)),
        (f'{stat}_matrix.png', plot_pairwise_heatmap(
            result.matrix, statistic=result.statistic, order=order)),
    ]
    if result.clusters is not None:
        figures.append((f'{stat}_dendrogram.png', plot_dendrogram(
            result.clusters, statistic=result.statistic)))

    written = []
    for name, fig in figures:
        path = out / name
        save_figure(fig, path, dpi=dpi)
        written.append(path)
    return written
