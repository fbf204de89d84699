"""Smoke tests for drift_fst.viz — figures build and save (Agg backend)."""

import matplotlib
matplotlib.use('Agg')

from pathlib import Path

import matplotlib.pyplot as plt
import pytest

from drift_fst.drift import fixation_summary, simulate_ensemble
from drift_fst.stats_table import (
    cluster_populations,
    filter_statistic,
    load_stats_table,
    pairwise_matrix,
)
from drift_fst.viz import (
    dark_figure,
    plot_dendrogram,
    plot_drift_paths,
    plot_estimate_histogram,
    plot_fixation_fractions,
    plot_pairwise_heatmap,
    plot_variance_over_time,
)

EXAMPLE_TABLE = Path(__file__).resolve().parents[1] / "data" / "example_fstats.tsv"


@pytest.fixture(autouse=True)
def _close_figures():
    yield
    plt.close('all')


@pytest.fixture(scope="module")
def ensemble():
    return simulate_ensemble(25, 30, 0.5, n_replicates=40, rng=3)


@pytest.fixture(scope="module")
def fst_table():
    return filter_statistic(load_stats_table(EXAMPLE_TABLE), 'FST')


class TestStyle:
    def test_dark_figure_grid(self):
        fig, axes = dark_figure(nrows=1, ncols=2)
        assert axes.shape == (2,)


class TestDriftPlots:
    def test_paths(self, ensemble):
        fig = plot_drift_paths(ensemble, max_paths=10, population_size=25)
        assert isinstance(fig, plt.Figure)
        # 10 replicate lines + mean
        assert len(fig.axes[0].lines) == 11

    def test_variance(self, ensemble):
        fig = plot_variance_over_time(ensemble, 25, show_heterozygosity=True)
        assert isinstance(fig, plt.Figure)

    def test_fixation(self, ensemble, tmp_path):
        path = tmp_path / "fix.png"
        plot_fixation_fractions(fixation_summary(ensemble), save_path=str(path))
        assert path.exists()


class TestTablePlots:
    def test_histogram(self, fst_table, tmp_path):
        path = tmp_path / "hist.png"
        fig = plot_estimate_histogram(fst_table, bins=5, save_path=str(path))
        assert isinstance(fig, plt.Figure)
        assert path.exists()

    def test_heatmap_with_missing_cells(self, fst_table):
        matrix = pairwise_matrix(fst_table)
        assert matrix.isna().any().any()
        fig = plot_pairwise_heatmap(matrix, annotate=True)
        assert isinstance(fig, plt.Figure)

    def test_heatmap_reordered(self, fst_table):
        matrix = pairwise_matrix(fst_table)
        order = cluster_populations(matrix).leaf_order
        fig = plot_pairwise_heatmap(matrix, order=order)
        labels = [t.get_text() for t in fig.axes[0].get_yticklabels()]
        assert labels == order

    def test_dendrogram(self, fst_table, tmp_path):
        result = cluster_populations(pairwise_matrix(fst_table))
        path = tmp_path / "dendro.png"
        fig = plot_dendrogram(result, save_path=str(path))
        assert isinstance(fig, plt.Figure)
        assert path.exists()
