"""Visualizations for pairwise FST / F2 tables.

Histogram of estimates, population × population heatmap, and the
hierarchical-clustering dendrogram.

matplotlib backend is forced to Agg (no display) on import.
"""

from __future__ import annotations

import matplotlib
matplotlib.use('Agg')

from typing import Optional

import matplotlib.pyplot as plt
import numpy as np
import pandas as pd
from scipy.cluster.hierarchy import dendrogram

from drift_fst.stats_table import ESTIMATE, ClusterResult, describe_estimates
from drift_fst.viz.style import (
    ACCENT_COLORS,
    DARK_PANEL,
    EMPIRICAL_COLOR,
    MATRIX_CMAP,
    TEXT_COLOR,
    dark_figure,
    save_figure,
    style_legend,
)


def plot_estimate_histogram(
    table: pd.DataFrame,
    bins: int = 20,
    statistic: str = 'FST',
    save_path: Optional[str] = None,
) -> plt.Figure:
    """Histogram of Estimate_Total with the mean marked.

    ``table`` should already be filtered to one statistic; ``statistic``
    is only used for labels.
    """
    summary = describe_estimates(table, bins=bins)

    fig, ax = dark_figure()
    ax.hist(table[ESTIMATE].to_numpy(dtype=np.float64), bins=summary.bin_edges,
            color=ACCENT_COLORS[1], edgecolor=DARK_PANEL, alpha=0.9)
    ax.axvline(summary.mean, color=EMPIRICAL_COLOR, linestyle='--',
               linewidth=2, label=f'Mean = {summary.mean:.4f}')

    ax.set_xlabel(f'{statistic} estimate', fontsize=12)
    ax.set_ylabel('Population pairs', fontsize=12)
    ax.set_title(f'Distribution of pairwise {statistic} '
                 f'({summary.count} rows)', fontsize=14, fontweight='bold')
    style_legend(ax)

    if save_path:
        save_figure(fig, save_path)
    return fig


def plot_pairwise_heatmap(
    matrix: pd.DataFrame,
    statistic: str = 'FST',
    annotate: Optional[bool] = None,
    order: Optional[list] = None,
    save_path: Optional[str] = None,
) -> plt.Figure:
    """Heatmap of a pairwise matrix; missing cells are left blank.

    Args:
        matrix: Square matrix from ``pairwise_matrix``.
        statistic: Label for the colour bar.
        annotate: Print values in cells (default: only for <= 12 populations).
        order: Optional label order (e.g. ``ClusterResult.leaf_order``).
        save_path: Path to save figure.
    """
    if order is not None:
        matrix = matrix.reindex(index=order, columns=order)
    labels = [str(x) for x in matrix.index]
    n = len(labels)
    if annotate is None:
        annotate = n <= 12

    values = np.ma.masked_invalid(matrix.to_numpy(dtype=np.float64))
    cmap = MATRIX_CMAP.copy()
    cmap.set_bad(color=DARK_PANEL)

    size = max(6, 0.5 * n + 3)
    fig, ax = dark_figure(figsize=(size + 1.5, size))
    im = ax.imshow(values, cmap=cmap, interpolation='nearest')
    ax.grid(False)

    ax.set_xticks(range(n))
    ax.set_yticks(range(n))
    ax.set_xticklabels(labels, rotation=90, fontsize=9)
    ax.set_yticklabels(labels, fontsize=9)
    ax.set_xlabel('b', fontsize=12)
    ax.set_ylabel('a', fontsize=12)
    ax.set_title(f'Pairwise {statistic}', fontsize=14, fontweight='bold')

    if annotate and n:
        vmax = values.max() if values.count() else 0.0
        mask = np.ma.getmaskarray(values)
        for i in range(n):
            for j in range(n):
                if mask[i, j]:
                    continue
                v = values[i, j]
                color = 'black' if vmax and v > 0.6 * vmax else TEXT_COLOR
                ax.text(j, i, f'{v:.3f}', ha='center', va='center',
                        fontsize=7, color=color)

    cbar = fig.colorbar(im, ax=ax, fraction=0.046, pad=0.04)
    cbar.set_label(statistic, color=TEXT_COLOR)
    cbar.ax.yaxis.set_tick_params(color=TEXT_COLOR)
    plt.setp(cbar.ax.get_yticklabels(), color=TEXT_COLOR)

    if save_path:
        save_figure(fig, save_path)
    return fig


def plot_dendrogram(
    result: ClusterResult,
    statistic: str = 'FST',
    save_path: Optional[str] = None,
) -> plt.Figure:
    """Dendrogram of a hierarchical clustering of populations."""
    fig, ax = dark_figure()
    dendrogram(
        result.linkage,
        labels=result.labels,
        ax=ax,
        color_threshold=None,
        above_threshold_color=TEXT_COLOR,
        leaf_rotation=90,
    )
    ax.tick_params(axis='x', colors=TEXT_COLOR, labelsize=9)
    ax.set_ylabel(f'Merge height ({statistic} distance)', fontsize=12)
    ax.set_title(f'Population clustering ({result.method} linkage)',
                 fontsize=14, fontweight='bold')

    if save_path:
        save_figure(fig, save_path)
    return fig
