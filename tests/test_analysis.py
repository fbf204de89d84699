"""Tests for drift_fst.analysis — drift and table pipelines end to end."""

import io
import json
from pathlib import Path

import numpy as np
import pytest

from drift_fst.analysis import (
    DriftAnalysis,
    TableAnalysis,
    analyze_table,
    drift_summary,
    replay_ensemble,
    run_drift_analysis,
    run_table_analysis,
    save_drift_figures,
    save_table_figures,
    table_summary,
)
from drift_fst.config import default_config
from drift_fst.errors import InvalidArgumentError
from drift_fst.stats_table import load_stats_table

EXAMPLE_TABLE = Path(__file__).resolve().parents[1] / "data" / "example_fstats.tsv"


@pytest.fixture
def small_config():
    return default_config({
        'simulation': {'population_size': 30, 'generations': 40,
                       'start_frequency': 0.4, 'n_replicates': 60, 'seed': 5},
    })


# ═══════════════════════════════════════════════════════════════════════
# DRIFT
# ═══════════════════════════════════════════════════════════════════════

class TestDriftAnalysis:
    def test_shapes(self, small_config):
        result = run_drift_analysis(small_config)
        assert isinstance(result, DriftAnalysis)
        assert result.ensemble.shape == (60, 41)
        assert result.n_replicates == 60
        assert result.generations == 40
        for arr in (result.variance, result.expected, result.fst,
                    result.fixation.fraction_lost):
            assert arr.shape == (41,)
        assert result.variance[0] == 0.0
        assert result.plateau == pytest.approx(0.24)

    def test_seeded(self, small_config):
        a = run_drift_analysis(small_config)
        b = run_drift_analysis(small_config)
        np.testing.assert_array_equal(a.ensemble, b.ensemble)

    def test_replay_from_recorded_state(self):
        config = default_config({
            'simulation': {'population_size': 20, 'generations': 15,
                           'n_replicates': 10, 'seed': 11},
        })
        result = run_drift_analysis(config)
        assert result.rng_state['bit_generator'] == 'PCG64'
        np.testing.assert_array_equal(replay_ensemble(result), result.ensemble)

    def test_summary_is_json_ready(self, small_config):
        summary = drift_summary(run_drift_analysis(small_config))
        text = json.dumps(summary)
        assert '"population_size": 30' in text
        assert 0.0 <= summary['final_fraction_fixed'] <= 1.0

    def test_figures_written(self, small_config, tmp_path):
        result = run_drift_analysis(small_config)
        written = save_drift_figures(result, tmp_path / "figs", dpi=40, n_paths=5)
        assert [p.name for p in written] == [
            'drift_paths.png', 'drift_variance.png', 'drift_fixation.png',
        ]
        assert all(p.exists() and p.stat().st_size > 0 for p in written)


# ═══════════════════════════════════════════════════════════════════════
# TABLE
# ═══════════════════════════════════════════════════════════════════════

class TestTableAnalysis:
    def test_example_fst(self):
        config = default_config({'table': {'path': str(EXAMPLE_TABLE)}})
        result = run_table_analysis(config)
        assert isinstance(result, TableAnalysis)
        assert result.statistic == 'FST'
        assert len(result.table) == 10
        assert list(result.matrix.index) == ['Pop1', 'Pop2', 'Pop3', 'Pop4']
        assert len(result.missing) == 3
        assert result.clusters is not None
        assert result.assignments['Pop1'] == result.assignments['Pop2']

    def test_path_argument_wins(self):
        config = default_config({'table': {'statistic': 'F2'}})
        result = run_table_analysis(config, table_path=EXAMPLE_TABLE)
        assert result.statistic == 'F2'
        assert result.missing == [
            ('Pop2', 'Pop1'), ('Pop3', 'Pop1'), ('Pop3', 'Pop2'),
            ('Pop4', 'Pop1'), ('Pop4', 'Pop2'), ('Pop4', 'Pop3'),
        ]

    def test_no_path(self):
        with pytest.raises(ValueError, match="table.path"):
            run_table_analysis(default_config())

    def test_clustering_skipped_with_warning(self):
        table = load_stats_table(io.StringIO(
            "Statistic\ta\tb\tEstimate_Total\n"
            "FST\tA\tB\t0.1\n"
            "FST\tB\tC\t0.2\n"
        ))
        with pytest.warns(UserWarning, match="clustering"):
            result = analyze_table(table, 'FST')
        assert result.clusters is None
        assert result.assignments == {}
        assert ('A', 'C') in result.missing

    def test_n_clusters_capped_by_populations(self):
        table = load_stats_table(EXAMPLE_TABLE)
        result = analyze_table(table, 'F2', n_clusters=10)
        assert sorted(result.assignments.values()) == [1, 2, 3, 4]

    def test_statistic_absent(self):
        table = load_stats_table(EXAMPLE_TABLE)
        with pytest.raises(InvalidArgumentError):
            analyze_table(table, 'D')

    def test_summary_is_json_ready(self):
        result = analyze_table(load_stats_table(EXAMPLE_TABLE), 'FST')
        summary = json.loads(json.dumps(table_summary(result)))
        assert summary['populations'] == ['Pop1', 'Pop2', 'Pop3', 'Pop4']
        assert summary['cluster_method'] == 'ward'
        assert sorted(summary['leaf_order']) == summary['populations']

    def test_figures_written(self, tmp_path):
        result = analyze_table(load_stats_table(EXAMPLE_TABLE), 'FST', bins=5)
        written = save_table_figures(result, tmp_path, dpi=40)
        assert [p.name for p in written] == [
            'fst_histogram.png', 'fst_matrix.png', 'fst_dendrogram.png',
        ]
        assert all(p.exists() for p in written)

    def test_negative_estimate_clusters(self):
        table = load_stats_table(io.StringIO(
            "Statistic\ta\tb\tEstimate_Total\n"
            "F2\tA\tB\t-0.0004\n"
            "F2\tA\tC\t0.05\n"
            "F2\tB\tC\t0.06\n"
        ))
        result = analyze_table(table, 'F2', n_clusters=2)
        assert result.matrix.loc['A', 'B'] == pytest.approx(-0.0004)
        assert result.assignments['A'] == result.assignments['B']
        assert result.assignments['A'] != result.assignments['C']
        assert sorted(result.clusters.leaf_order) == ['A', 'B', 'C']

    def test_single_row_summary_is_strict_json(self):
        table = load_stats_table(io.StringIO(
            "Statistic\ta\tb\tEstimate_Total\nFST\tA\tB\t0.1\n"
        ))
        summary = table_summary(analyze_table(table, 'FST'))
        text = json.dumps(summary, allow_nan=False)
        assert json.loads(text)['estimates']['std'] is None
