"""F_ST and F2 computed from allele frequencies.

Definitions (single bi-allelic locus, subpopulation frequencies p_i):
  - H_S = mean_i 2 p_i (1 − p_i)         within-subpopulation heterozygosity
  - H_T = 2 p̄ (1 − p̄)                   heterozygosity of the pooled population
  - F_ST = (H_T − H_S) / H_T             Wright / Nei

Because H_T − H_S = 2 Var(p) (population variance), this is also
Var(p) / (p̄ (1 − p̄)), which ties F_ST directly to the variance that drift
builds up between isolated lineages.

Multi-locus values use the ratio of averages (sum of numerators over sum of
denominators), not the average of per-locus ratios.

These are textbook definitions on known frequencies; they are not sample-size
corrected estimators for variant data.
"""

from __future__ import annotations

from typing import Optional

import numpy as np

from drift_fst.errors import InvalidArgumentError

# Denominators below this are treated as monomorphic
_EPS = 1e-12


def _check_freqs(freqs, name: str = "freqs") -> np.ndarray:
    arr = np.asarray(freqs, dtype=np.float64)
    if arr.size == 0:
        raise InvalidArgumentError(f"{name} must not be empty")
    if not np.all(np.isfinite(arr)) or np.any(arr < 0.0) or np.any(arr > 1.0):
        raise InvalidArgumentError(f"{name} must lie in [0, 1]")
    return arr


def heterozygosity(freqs) -> np.ndarray:
    """Expected heterozygosity 2p(1 − p), element-wise."""
    p = _check_freqs(freqs)
    return 2.0 * p * (1.0 - p)


def fst_from_frequencies(freqs, weights=None) -> float:
    """F_ST = (H_T − H_S) / H_T for one locus across subpopulations.

    Args:
        freqs: (n_pops,) allele frequencies.
        weights: Optional (n_pops,) relative subpopulation sizes.

    Returns:
        F_ST in [0, 1]. Returns 0.0 when the pooled population is
        monomorphic (H_T = 0).
    """
    p = _check_freqs(freqs)
    if p.ndim != 1:
        raise InvalidArgumentError(f"freqs must be 1-D, got shape {p.shape}")

    if weights is None:
        w = np.full(p.shape, 1.0 / p.size)
    else:
        w = np.asarray(weights, dtype=np.float64)
        if w.shape != p.shape:
            raise InvalidArgumentError(
                f"weights shape {w.shape} does not match freqs shape {p.shape}"
            )
        if np.any(w < 0.0) or w.sum() <= 0.0:
            raise InvalidArgumentError("weights must be non-negative with a positive sum")
        w = w / w.sum()

    p_bar = float(np.sum(w * p))
    h_t = 2.0 * p_bar * (1.0 - p_bar)
    if h_t < _EPS:
        return 0.0
    h_s = float(np.sum(w * 2.0 * p * (1.0 - p)))
    return max(0.0, (h_t - h_s) / h_t)


def multilocus_fst(freqs) -> float:
    """Ratio-of-averages F_ST over loci.

    Args:
        freqs: (n_pops, n_loci) allele frequencies.

    Returns:
        sum_l (H_T − H_S) / sum_l H_T, or 0.0 if every locus is monomorphic.
    """
    p = _check_freqs(freqs)
    if p.ndim != 2:
        raise InvalidArgumentError(f"freqs must be 2-D (pops, loci), got shape {p.shape}")

    p_bar = p.mean(axis=0)
    h_t = 2.0 * p_bar * (1.0 - p_bar)
    h_s = (2.0 * p * (1.0 - p)).mean(axis=0)
    denom = h_t.sum()
    if denom < _EPS:
        return 0.0
    return float((h_t - h_s).sum() / denom)


def hudson_fst(p1, p2) -> float:
    """Hudson's pairwise F_ST = 1 − H_w / H_b (ratio of averages over loci).

    H_w = p1 (1 − p1) + p2 (1 − p2)   mean within-population diversity × 2
    H_b = p1 (1 − p2) + p2 (1 − p1)   between-population diversity

    Returns 0.0 when H_b is zero (both populations fixed for the same allele).
    """
    a = _check_freqs(p1, "p1")
    b = _check_freqs(p2, "p2")
    if a.shape != b.shape:
        raise InvalidArgumentError(f"p1 shape {a.shape} != p2 shape {b.shape}")

    h_w = a * (1.0 - a) + b * (1.0 - b)
    h_b = a * (1.0 - b) + b * (1.0 - a)
    denom = float(np.sum(h_b))
    if denom < _EPS:
        return 0.0
    return 1.0 - float(np.sum(h_w)) / denom


def f2(p1, p2) -> float:
    """F2: mean squared allele-frequency difference between two populations."""
    a = _check_freqs(p1, "p1")
    b = _check_freqs(p2, "p2")
    if a.shape != b.shape:
        raise InvalidArgumentError(f"p1 shape {a.shape} != p2 shape {b.shape}")
    return float(np.mean((a - b) ** 2))


def ensemble_fst(ensemble, min_het: Optional[float] = None) -> np.ndarray:
    """F_ST among replicate drift lineages, one value per generation.

    Each replicate is treated as an isolated subpopulation descended from a
    common ancestor, so F_ST_t tracks 1 − (1 − 1/N)^t.

    Args:
        ensemble: (M, G + 1) array of paths.
        min_het: Pooled p̄(1 − p̄) below which a generation is reported as 0.

    Returns:
        (G + 1,) float64 array.
    """
    arr = _check_freqs(ensemble, "ensemble")
    if arr.ndim != 2:
        raise InvalidArgumentError(
            f"ensemble must be 2-D (replicates, generations), got shape {arr.shape}"
        )
    threshold = _EPS if min_het is None else float(min_het)

    p_bar = arr.mean(axis=0)
    denom = p_bar * (1.0 - p_bar)
    var = arr.var(axis=0)
    var[(arr == arr[0]).all(axis=0)] = 0.0
    out = np.zeros(arr.shape[1], dtype=np.float64)
    ok = denom > threshold
    out[ok] = var[ok] / denom[ok]
    return out
