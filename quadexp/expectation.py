"""
Expectation evaluation on quadrature (or sampling) rules.

    E[G] ≈ Σ_j c · w_j · G(node_j)

where c is a normalization constant supplied by the caller. The right c
depends on the families and the target density, so the evaluators take
it as an argument (default 1, the raw weighted sum).
`normalization_constant` gives c = ∏_i 1 / (Σ w^{(i)}), e.g. π^{-N/2}
for a Hermite product rule; sampling rules (family None) carry weights
1/size and need c = 1.

Reductions go through `numpy.sum` on contiguous float64 arrays, which
uses pairwise summation.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Optional, Sequence, Union

import numpy as np
import torch

from .config import DEFAULT_ORDER
from .correlated import apply_covariance
from .errors import DimensionMismatchError
from .product import ProductRule, product_rule
from .quadrature import weight_sum
from .special import DEVICE, DTYPE


@dataclass(frozen=True)
class ExpectationResult:
    value: float
    rule: ProductRule
    normalization: float


def normalization_constant(families: Sequence[Optional[str]]) -> float:
    """∏ 1/weight_sum(f) over the Gauss dimensions; 1 for family None."""
    c = 1.0
    for f in families:
        if f is not None:
            c /= weight_sum(f)
    return c


def evaluate(
    rule: ProductRule,
    integrand: Callable[[np.ndarray], float],
    normalization: float = 1.0,
) -> float:
    """
    Σ_j weight_j · normalization · integrand(node_j).

    The integrand is called once per node with a 1D array of length N.
    Exceptions it raises propagate unchanged. The constant is whatever
    the caller passes; it is never inferred from the rule's families.
    """
    rule.check()
    c = float(normalization)
    values = np.empty(rule.size, dtype=np.float64)
    for j in range(rule.size):
        values[j] = integrand(rule.nodes[j])
    return float(c * np.sum(rule.weights * values))


def evaluate_vectorized(
    rule: ProductRule,
    integrand: Callable[[np.ndarray], np.ndarray],
    normalization: float = 1.0,
) -> float:
    """Like `evaluate`, with `integrand` mapping the (J, N) nodes to (J,) values."""
    rule.check()
    c = float(normalization)
    values = np.asarray(integrand(rule.nodes), dtype=np.float64)
    if values.shape != (rule.size,):
        raise DimensionMismatchError(
            f"integrand returned shape {values.shape}, expected ({rule.size},)"
        )
    return float(c * np.sum(rule.weights * values))


@torch.no_grad()
def evaluate_torch(
    rule: ProductRule,
    integrand: Callable[[torch.Tensor], torch.Tensor],
    normalization: float = 1.0,
    device: torch.device = DEVICE,
    batch_size: Optional[int] = None,
) -> float:
    """
    Batched evaluation of a torch integrand on `device`.

    `integrand` maps a (B, N) tensor to (B,) values. All grid points are
    independent; `batch_size` bounds memory for large grids.
    """
    rule.check()
    c = float(normalization)
    X = torch.tensor(np.array(rule.nodes), dtype=DTYPE, device=device)
    W = torch.tensor(np.array(rule.weights), dtype=DTYPE, device=device)
    B = rule.size if batch_size is None else max(1, int(batch_size))

    partial = []
    for start in range(0, rule.size, B):
        vals = integrand(X[start:start + B])
        if vals.shape != (min(B, rule.size - start),):
            raise DimensionMismatchError(
                f"integrand returned shape {tuple(vals.shape)} for a batch of {min(B, rule.size - start)}"
            )
        partial.append(torch.sum(W[start:start + B] * vals.to(DTYPE)))
    total = torch.sum(torch.stack(partial))
    return float(c * total.item())


def weighted_moments(rule: ProductRule, normalization: float = 1.0):
    """
    Mean vector and covariance matrix of the nodes under the rule.

    Returns (mean (N,), cov (N, N)).
    """
    rule.check()
    c = float(normalization)
    w = c * rule.weights
    mean = np.sum(w[:, None] * rule.nodes, axis=0)
    centered = rule.nodes - mean
    cov = (w[:, None] * centered).T @ centered
    return mean, cov


def gaussian_expectation(
    integrand: Callable,
    mean,
    cov,
    order: Union[int, Sequence[int]] = DEFAULT_ORDER,
    *,
    vectorized: bool = False,
) -> ExpectationResult:
    """
    E[integrand(ε)] for ε ~ N(mean, cov) with a Gauss-Hermite product rule.

    Parameters
    ----------
    integrand : callable
        f(x) -> float on a length-N array, or, with vectorized=True,
        f(X) -> (J,) on the (J, N) node array.
    mean : array-like, shape (N,)
    cov : array-like, shape (N, N)
    order : int or sequence of int
        Hermite points per dimension.

    Returns
    -------
    ExpectationResult
        value, the transformed rule (reusable for other integrands) and
        the normalization constant π^{-N/2}.
    """
    mu = np.atleast_1d(np.asarray(mean, dtype=np.float64))
    N = mu.shape[0]
    base = product_rule("hermite", order, dim=N)
    rule = apply_covariance(base, mu, np.atleast_2d(np.asarray(cov, dtype=np.float64)))
    c = normalization_constant(rule.families)
    if vectorized:
        value = evaluate_vectorized(rule, integrand, c)
    else:
        value = evaluate(rule, integrand, c)
    return ExpectationResult(value=value, rule=rule, normalization=c)
