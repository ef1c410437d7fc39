"""
Correlated-shock change of variables.

For ε ~ N(μ, Σ) with Σ = Ω Ω^T (Ω lower-triangular),

    E[G(ε)] = π^{-N/2} ∫ exp(-|x|^2) G(Ω √2 x + μ) dx
            ≈ π^{-N/2} Σ_j w_j G(Ω √2 x_j + μ).

So a Gauss-Hermite product rule becomes a rule for N(μ, Σ) by mapping
every node x_j to Ω (s ⊙ x_j) + μ, where s_i = √2 for Hermite dimensions
and 1 otherwise. Weights do not change; the normalization constant is
applied by the evaluator.
"""
from __future__ import annotations

from typing import Optional, Sequence

import numpy as np

from .config import PSD_TOL, SYMMETRY_TOL
from .errors import DimensionMismatchError, NotPositiveSemiDefiniteError
from .product import ProductRule, frozen_rule
from .special import SQRT2


def prescale_factors(families: Sequence[Optional[str]]) -> np.ndarray:
    """Per-dimension factor applied to raw nodes: √2 for hermite, else 1."""
    return np.array([SQRT2 if f == "hermite" else 1.0 for f in families], dtype=np.float64)


def _tolerant_cholesky(S: np.ndarray, tol: float) -> np.ndarray:
    n = S.shape[0]
    L = np.zeros_like(S)
    scale = max(1.0, float(np.max(np.abs(np.diag(S)))))
    for j in range(n):
        pivot = S[j, j] - L[j, :j] @ L[j, :j]
        if pivot < -tol * scale:
            raise NotPositiveSemiDefiniteError(
                f"covariance is not positive semi-definite (pivot {pivot:.3e} at column {j})"
            )
        if pivot <= tol * scale:
            # zero pivot: the column below must vanish too for a PSD matrix
            resid = S[j + 1:, j] - L[j + 1:, :j] @ L[j, :j]
            if np.any(np.abs(resid) > np.sqrt(tol) * scale):
                raise NotPositiveSemiDefiniteError(
                    f"covariance is not positive semi-definite (zero pivot at column {j})"
                )
            continue
        d = np.sqrt(pivot)
        L[j, j] = d
        L[j + 1:, j] = (S[j + 1:, j] - L[j + 1:, :j] @ L[j, :j]) / d
    return L


def cholesky_lower(cov, *, tol: float = PSD_TOL) -> np.ndarray:
    """
    Lower-triangular Ω with Σ = Ω Ω^T.

    Positive-definite Σ goes through `numpy.linalg.cholesky`. Singular PSD
    Σ (zero pivots within `tol`) is factored with zero columns. Anything
    else raises NotPositiveSemiDefiniteError; Σ is never repaired.
    """
    S = np.asarray(cov, dtype=np.float64)
    if S.ndim != 2 or S.shape[0] != S.shape[1]:
        raise DimensionMismatchError(f"covariance must be square (got shape {S.shape})")
    if not np.all(np.isfinite(S)):
        raise NotPositiveSemiDefiniteError("covariance has non-finite entries")
    if np.max(np.abs(S - S.T), initial=0.0) > SYMMETRY_TOL * max(1.0, float(np.max(np.abs(S), initial=0.0))):
        raise NotPositiveSemiDefiniteError("covariance is not symmetric")
    S = 0.5 * (S + S.T)
    try:
        return np.linalg.cholesky(S)
    except np.linalg.LinAlgError:
        return _tolerant_cholesky(S, tol)


def apply_covariance(rule: ProductRule, mean, cov) -> ProductRule:
    """
    Map a standard product rule to N(mean, cov).

    Parameters
    ----------
    rule : ProductRule
        Uncorrelated rule of dimension N (Hermite raw nodes, or standard
        normal draws with family None).
    mean : array-like, shape (N,)
    cov : array-like, shape (N, N)

    Returns
    -------
    ProductRule
        nodes Ω (s ⊙ x_j) + μ, the same weights and families,
        transformed=True. A rule that is already transformed is not
        pre-scaled again.
    """
    rule.check()
    N = rule.dim
    mu = np.asarray(mean, dtype=np.float64)
    S = np.asarray(cov, dtype=np.float64)
    if mu.shape != (N,):
        raise DimensionMismatchError(f"mean must have shape ({N},) (got {mu.shape})")
    if S.shape != (N, N):
        raise DimensionMismatchError(f"covariance must have shape ({N}, {N}) (got {S.shape})")

    L = cholesky_lower(S)
    x = rule.nodes
    if not rule.transformed:
        x = x * prescale_factors(rule.families)
    nodes = x @ L.T + mu
    return frozen_rule(nodes, rule.weights, rule.families, transformed=True)


def standard_normal_rule(rule: ProductRule) -> ProductRule:
    """Pre-scaled copy of `rule` for N(0, I)."""
    N = rule.dim
    return apply_covariance(rule, np.zeros(N), np.eye(N))
