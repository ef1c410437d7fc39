"""
Sampling rules: Monte Carlo and quasi-Monte Carlo alternatives to quadrature.

Both return a ProductRule of standard-normal nodes with uniform weights
1/size and families all None, so they plug into `apply_covariance` (no
pre-scaling) and every evaluator (normalization 1).

Quasi-Monte Carlo points u ∈ (0, 1)^N come from `scipy.stats.qmc` and are
mapped through the normal quantile z = Φ^{-1}(u).
"""
from __future__ import annotations

from typing import Optional

import numpy as np
from scipy.special import ndtri
from scipy.stats import qmc

from .config import QMC_METHOD, QMC_SCRAMBLE
from .errors import QuadratureError
from .product import ProductRule, frozen_rule


def _check_sizes(dim: int, size: int) -> None:
    if dim < 1:
        raise QuadratureError("dim must be >= 1")
    if size < 1:
        raise QuadratureError("size must be >= 1")


def monte_carlo_rule(
    dim: int,
    size: int,
    rng: np.random.Generator,
    *,
    antithetic: bool = False,
) -> ProductRule:
    """
    Pseudo-random standard-normal draws.

    With antithetic=True, `size` draws are followed by their negatives,
    giving 2*size nodes.
    """
    _check_sizes(dim, size)
    z = rng.standard_normal(size=(size, dim))
    if antithetic:
        z = np.concatenate([z, -z], axis=0)
    n = z.shape[0]
    return frozen_rule(z, np.full(n, 1.0 / n), [None] * dim)


def qmc_rule(
    dim: int,
    size: int,
    *,
    method: str = QMC_METHOD,
    scramble: bool = QMC_SCRAMBLE,
    seed: Optional[int] = None,
) -> ProductRule:
    """
    Low-discrepancy standard-normal nodes.

    method: "sobol" or "halton". Unscrambled sequences start at the
    origin, where Φ^{-1} is infinite, so the first point is skipped.
    """
    _check_sizes(dim, size)
    if method == "sobol":
        engine = qmc.Sobol(d=dim, scramble=scramble, seed=seed)
    elif method == "halton":
        engine = qmc.Halton(d=dim, scramble=scramble, seed=seed)
    else:
        raise QuadratureError(f"Unknown QMC method: {method}")
    if not scramble:
        engine.fast_forward(1)
    u = engine.random(size)
    z = ndtri(u)
    return frozen_rule(z, np.full(size, 1.0 / size), [None] * dim)
