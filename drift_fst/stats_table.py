"""Pairwise FST / F2 statistics tables.

Reads the tab-separated output of an external f-statistics tool and reshapes
it for plotting: filter by statistic, pivot to a population × population
matrix, summarise the estimates, and cluster populations hierarchically.

Expected columns (others are dropped):
  Statistic        e.g. "FST" or "F2"
  a, b             population labels
  Estimate_Total   point estimate over all data
  Estimate_Jackknife, SE_Jackknife   optional block-jackknife estimate / SE

The producer does not deduplicate (A, B) vs (B, A) or drop self pairs
(A, A). Both are kept as-is: the matrix is NOT symmetrised, and absent pairs
are NaN rather than zero.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List, Optional, Sequence, Tuple, Union

import numpy as np
import pandas as pd
from scipy.cluster.hierarchy import fcluster, leaves_list, linkage
from scipy.spatial.distance import squareform

from drift_fst.errors import (
    InvalidArgumentError,
    MalformedRowError,
    MissingColumnError,
    MissingPairError,
)

# ═══════════════════════════════════════════════════════════════════════
# COLUMN NAMES
# ═══════════════════════════════════════════════════════════════════════

STATISTIC = 'Statistic'
POP_A = 'a'
POP_B = 'b'
ESTIMATE = 'Estimate_Total'
JACKKNIFE_ESTIMATE = 'Estimate_Jackknife'
JACKKNIFE_SE = 'SE_Jackknife'

REQUIRED_COLUMNS: Tuple[str, ...] = (STATISTIC, POP_A, POP_B, ESTIMATE)
OPTIONAL_COLUMNS: Tuple[str, ...] = (JACKKNIFE_ESTIMATE, JACKKNIFE_SE)
LABEL_COLUMNS: Tuple[str, ...] = (STATISTIC, POP_A, POP_B)

CLUSTER_METHODS = {'single', 'complete', 'average', 'weighted',
                   'centroid', 'median', 'ward'}


# ═══════════════════════════════════════════════════════════════════════
# LOADING & VALIDATION
# ═══════════════════════════════════════════════════════════════════════

def load_stats_table(
    source: Union[str, Path, object],
    required: Sequence[str] = REQUIRED_COLUMNS,
) -> pd.DataFrame:
    """Load a tab-separated statistics table.

    Every cell is read as text first so unparseable numbers are reported
    instead of silently becoming NaN.

    Args:
        source: Path or readable text buffer.
        required: Columns that must be present.

    Returns:
        DataFrame with the required columns plus any optional jackknife
        columns; label columns as str, estimate columns as float64.

    Raises:
        FileNotFoundError: If a path does not exist.
        MissingColumnError: If a required column is absent.
        MalformedRowError: If a numeric cell cannot be parsed.
    """
    if isinstance(source, (str, Path)) and not Path(source).exists():
        raise FileNotFoundError(f"Statistics table not found: {source}")
    frame = pd.read_csv(source, sep='\t', dtype=str, keep_default_na=False)
    frame.columns = [str(c).strip() for c in frame.columns]
    return read_stats_frame(frame, required=required)


def read_stats_frame(
    frame: pd.DataFrame,
    required: Sequence[str] = REQUIRED_COLUMNS,
) -> pd.DataFrame:
    """Validate and type an in-memory statistics table (see load_stats_table)."""
    missing = [c for c in required if c not in frame.columns]
    if missing:
        raise MissingColumnError(missing, frame.columns)

    keep = list(required) + [
        c for c in OPTIONAL_COLUMNS if c in frame.columns and c not in required
    ]
    out = frame[keep].copy().reset_index(drop=True)

    for col in LABEL_COLUMNS:
        if col not in out.columns:
            continue
        labels = out[col].fillna('').astype(str).str.strip()
        blank = (labels == '').to_numpy()
        if blank.any():
            row = int(np.flatnonzero(blank)[0])
            raise MalformedRowError(f"Row {row + 1}: column '{col}' is empty")
        out[col] = labels

    for col in keep:
        if col in LABEL_COLUMNS:
            continue
        raw = out[col]
        if not pd.api.types.is_numeric_dtype(raw):
            raw = raw.astype(str).str.strip()
        parsed = pd.to_numeric(raw, errors='coerce')
        bad = ~np.isfinite(parsed.to_numpy(dtype=np.float64, na_value=np.nan))
        if bad.any():
            row = int(np.flatnonzero(bad)[0])
            raise MalformedRowError(
                f"Row {row + 1}: column '{col}' is not a finite number "
                f"(value {out[col].iloc[row]!r})"
            )
        out[col] = parsed.astype(np.float64)

    return out


def filter_statistic(table: pd.DataFrame, statistic: str) -> pd.DataFrame:
    """Rows whose Statistic equals ``statistic`` (empty frame if none)."""
    if STATISTIC not in table.columns:
        raise MissingColumnError([STATISTIC], table.columns)
    return table[table[STATISTIC] == statistic].reset_index(drop=True)


def statistics_present(table: pd.DataFrame) -> List[str]:
    """Distinct Statistic values, sorted."""
    return sorted(set(table[STATISTIC]))


# ═══════════════════════════════════════════════════════════════════════
# PAIRWISE MATRIX
# ═══════════════════════════════════════════════════════════════════════

def pairwise_matrix(
    table: pd.DataFrame,
    statistic: Optional[str] = None,
) -> pd.DataFrame:
    """Pivot (a, b, Estimate_Total) rows into a square population matrix.

    Index and columns are the sorted union of labels in ``a`` and ``b``.
    Cell (a, b) comes only from the row (a, b); (b, a) is independent.
    Cells with no row are NaN.

    Raises:
        InvalidArgumentError: If the table mixes statistics and none is chosen.
        MalformedRowError: If a (Statistic, a, b) combination is duplicated.
    """
    if statistic is not None:
        table = filter_statistic(table, statistic)

    kinds = set(table[STATISTIC])
    if len(kinds) > 1:
        raise InvalidArgumentError(
            f"Table mixes statistics {sorted(kinds)}; pass statistic= to choose one"
        )

    dup = table.duplicated(subset=list(LABEL_COLUMNS), keep=False)
    if dup.any():
        first = table[dup].iloc[0]
        raise MalformedRowError(
            f"Duplicate rows for ({first[STATISTIC]}, {first[POP_A]}, {first[POP_B]})"
        )

    labels = sorted(set(table[POP_A]) | set(table[POP_B]))
    if not labels:
        empty = pd.DataFrame(dtype=np.float64)
        empty.index.name = POP_A
        empty.columns.name = POP_B
        return empty

    matrix = (
        table.pivot(index=POP_A, columns=POP_B, values=ESTIMATE)
        .reindex(index=labels, columns=labels)
        .astype(np.float64)
    )
    matrix.index.name = POP_A
    matrix.columns.name = POP_B
    return matrix


def lookup_pair(matrix: pd.DataFrame, a: str, b: str) -> float:
    """Value of cell (a, b).

    Raises:
        MissingPairError: If either label is unknown or the cell is empty.
    """
    if a not in matrix.index or b not in matrix.columns:
        raise MissingPairError(a, b, "population not in table")
    value = matrix.at[a, b]
    if pd.isna(value):
        raise MissingPairError(a, b, "no row for this ordered pair")
    return float(value)


def missing_pairs(matrix: pd.DataFrame) -> List[Tuple[str, str]]:
    """Off-diagonal ordered pairs (a, b) with no estimate."""
    gaps = []
    for a in matrix.index:
        for b in matrix.columns:
            if a != b and pd.isna(matrix.at[a, b]):
                gaps.append((a, b))
    return gaps


# ═══════════════════════════════════════════════════════════════════════
# DESCRIPTIVE STATISTICS
# ═══════════════════════════════════════════════════════════════════════

@dataclass
class EstimateSummary:
    """Descriptive statistics over Estimate_Total."""

    count: int
    mean: float
    std: float
    min: float
    median: float
    max: float
    hist_counts: np.ndarray
    bin_edges: np.ndarray

    def to_dict(self) -> Dict[str, object]:
        """JSON-ready dict; an undefined std (single row) becomes None."""
        return {
            'count': self.count,
            'mean': self.mean,
            'std': None if np.isnan(self.std) else self.std,
            'min': self.min,
            'median': self.median,
            'max': self.max,
            'hist_counts': self.hist_counts.tolist(),
            'bin_edges': self.bin_edges.tolist(),
        }


def describe_estimates(
    table: pd.DataFrame,
    bins: int = 20,
    statistic: Optional[str] = None,
) -> EstimateSummary:
    """Mean, spread and histogram of Estimate_Total.

    ``std`` is the sample standard deviation (ddof=1); NaN for one row.

    Raises:
        InvalidArgumentError: If there are no rows or bins < 1.
    """
    if statistic is not None:
        table = filter_statistic(table, statistic)
    if bins < 1:
        raise InvalidArgumentError(f"bins must be >= 1, got {bins}")

    values = table[ESTIMATE].to_numpy(dtype=np.float64)
    if values.size == 0:
        raise InvalidArgumentError("No estimates to summarise")

    counts, edges = np.histogram(values, bins=bins)
    return EstimateSummary(
        count=int(values.size),
        mean=float(values.mean()),
        std=float(values.std(ddof=1)) if values.size > 1 else float('nan'),
        min=float(values.min()),
        median=float(np.median(values)),
        max=float(values.max()),
        hist_counts=counts,
        bin_edges=edges,
    )


def add_z_scores(table: pd.DataFrame) -> pd.DataFrame:
    """Copy of ``table`` with a ``Z`` column = Estimate_Total / SE_Jackknife."""
    if JACKKNIFE_SE not in table.columns:
        raise MissingColumnError([JACKKNIFE_SE], table.columns)
    out = table.copy()
    out['Z'] = out[ESTIMATE] / out[JACKKNIFE_SE]
    return out


# ═══════════════════════════════════════════════════════════════════════
# HIERARCHICAL CLUSTERING
# ═══════════════════════════════════════════════════════════════════════

def distance_matrix(matrix: pd.DataFrame) -> pd.DataFrame:
    """Symmetric distance matrix for clustering.

    (a, b) and (b, a) are averaged when both exist; a single direction is
    used for both cells; the diagonal is 0. Negative estimates (sampling
    noise around zero differentiation) become distance 0. The input matrix
    is not modified.

    Raises:
        InvalidArgumentError: If the matrix is not square with matching labels.
        MissingPairError: If a pair is absent in both directions.
    """
    if list(matrix.index) != list(matrix.columns):
        raise InvalidArgumentError("pairwise matrix must have identical row and column labels")

    v = matrix.to_numpy(dtype=np.float64)
    vt = v.T
    sym = np.where(np.isnan(v), vt, np.where(np.isnan(vt), v, (v + vt) / 2.0))
    np.fill_diagonal(sym, 0.0)
    sym[sym < 0.0] = 0.0

    gaps = np.argwhere(np.isnan(sym))
    if gaps.size:
        i, j = gaps[0]
        raise MissingPairError(
            matrix.index[i], matrix.columns[j], "absent in both directions"
        )
    return pd.DataFrame(sym, index=matrix.index, columns=matrix.columns)


@dataclass
class ClusterResult:
    """Agglomerative clustering of populations."""

    labels: List[str]
    linkage: np.ndarray
    method: str

    @property
    def leaf_order(self) -> List[str]:
        """Labels in dendrogram leaf order."""
        return [self.labels[i] for i in leaves_list(self.linkage)]


def cluster_populations(
    matrix: pd.DataFrame,
    method: str = 'ward',
) -> ClusterResult:
    """Hierarchical clustering over a pairwise matrix treated as distances.

    Args:
        matrix: Square pairwise matrix (e.g. from ``pairwise_matrix``).
        method: scipy linkage method; Ward's by default.

    Raises:
        InvalidArgumentError: Unknown method or fewer than 2 populations.
        MissingPairError: See ``distance_matrix``.
    """
    if method not in CLUSTER_METHODS:
        raise InvalidArgumentError(
            f"method must be one of {sorted(CLUSTER_METHODS)}, got '{method}'"
        )
    dist = distance_matrix(matrix)
    if len(dist) < 2:
        raise InvalidArgumentError(
            f"clustering needs at least 2 populations, got {len(dist)}"
        )
    condensed = squareform(dist.to_numpy(), checks=False)
    Z = linkage(condensed, method=method)
    return ClusterResult(labels=[str(x) for x in dist.index], linkage=Z, method=method)


def cut_clusters(result: ClusterResult, n_clusters: int) -> Dict[str, int]:
    """Flat cluster id (1-based) per population, cutting into ``n_clusters``."""
    if n_clusters < 1:
        raise InvalidArgumentError(f"n_clusters must be >= 1, got {n_clusters}")
    ids = fcluster(result.linkage, t=n_clusters, criterion='maxclust')
    return {label: int(cid) for label, cid in zip(result.labels, ids)}
