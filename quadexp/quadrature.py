"""
Univariate Gauss quadrature rules.

Each family integrates against its own weight function:

    hermite    ∫_{-∞}^{∞} exp(-x^2) g(x) dx ≈ Σ w_i g(x_i),   Σ w_i = √π
    chebyshev  ∫_{-1}^{1} (1-x^2)^{-1/2} g(x) dx ≈ Σ w_i g(x_i), Σ w_i = π
    legendre   ∫_{-1}^{1} g(x) dx ≈ Σ w_i g(x_i),               Σ w_i = 2
    lobatto    ∫_{-1}^{1} g(x) dx ≈ Σ w_i g(x_i),               Σ w_i = 2
               (endpoints ±1 are nodes)

The weight totals are part of each family's contract; they are not
normalized to 1 here. Hermite weights decay like exp(-x_J^2); past the
order where the outermost weights underflow to 0 `get_rule` raises
InvalidOrderError instead of returning a degenerate rule.
"""
from __future__ import annotations

import math
from dataclasses import dataclass

import numpy as np
from scipy.special import (
    eval_legendre,
    roots_chebyt,
    roots_hermite,
    roots_jacobi,
    roots_legendre,
)

from .errors import InvalidOrderError, QuadratureError, UnsupportedFamilyError

FAMILIES = ("hermite", "chebyshev", "legendre", "lobatto")

_WEIGHT_SUMS = {
    "hermite": math.sqrt(math.pi),
    "chebyshev": math.pi,
    "legendre": 2.0,
    "lobatto": 2.0,
}


@dataclass(frozen=True)
class QuadratureRule:
    """Nodes/weights of a one-dimensional rule."""
    nodes: np.ndarray
    weights: np.ndarray
    family: str

    def check(self) -> None:
        if self.nodes.ndim != 1 or self.weights.ndim != 1:
            raise QuadratureError("nodes and weights must be 1D arrays")
        if self.nodes.shape != self.weights.shape:
            raise QuadratureError("nodes and weights must have the same shape")
        if self.nodes.size < 1:
            raise QuadratureError("a rule needs at least one node")

    @property
    def order(self) -> int:
        return int(self.nodes.size)


def normalize_family(family: str) -> str:
    name = str(family).strip().lower()
    if name not in FAMILIES:
        raise UnsupportedFamilyError(
            f"Unknown quadrature family: {family!r} (expected one of {FAMILIES})"
        )
    return name


def weight_sum(family: str) -> float:
    """Total weight Σ w_i of every rule in `family`."""
    return _WEIGHT_SUMS[normalize_family(family)]


def _check_order(order) -> int:
    if isinstance(order, bool) or not isinstance(order, (int, np.integer)):
        raise InvalidOrderError(f"order must be an integer (got {order!r})")
    if order < 1:
        raise InvalidOrderError(f"order must be >= 1 (got {order})")
    return int(order)


def _lobatto(n: int) -> tuple[np.ndarray, np.ndarray]:
    # Gauss-Lobatto-Legendre: x = ±1 plus the roots of P'_{n-1},
    # w_i = 2 / (n (n-1) P_{n-1}(x_i)^2).
    if n == 1:
        return np.zeros(1), np.full(1, 2.0)
    if n == 2:
        inner = np.empty(0)
    else:
        inner, _ = roots_jacobi(n - 2, 1.0, 1.0)
    x = np.concatenate(([-1.0], inner, [1.0]))
    p = eval_legendre(n - 1, x)
    w = 2.0 / (n * (n - 1) * p * p)
    return x, w


def _compute(family: str, n: int) -> tuple[np.ndarray, np.ndarray]:
    if family == "hermite":
        x, w = roots_hermite(n)
    elif family == "chebyshev":
        x, w = roots_chebyt(n)
    elif family == "legendre":
        x, w = roots_legendre(n)
    elif family == "lobatto":
        x, w = _lobatto(n)
    else:
        raise UnsupportedFamilyError(f"Unknown quadrature family: {family!r}")
    x = np.asarray(x, dtype=np.float64)
    w = np.asarray(w, dtype=np.float64)
    idx = np.argsort(x)
    return x[idx], w[idx]


_RULE_CACHE: dict[tuple[str, int], QuadratureRule] = {}


def get_rule(family: str, order: int) -> QuadratureRule:
    """
    Return the `order`-point rule of a Gauss family.

    Parameters
    ----------
    family : str
        One of FAMILIES (case-insensitive).
    order : int
        Number of nodes J >= 1.

    Returns
    -------
    QuadratureRule
        nodes: strictly increasing, shape (J,)
        weights: positive, shape (J,), summing to `weight_sum(family)`

    Rules are cached and returned with read-only arrays.
    """
    name = normalize_family(family)
    n = _check_order(order)
    key = (name, n)
    if key not in _RULE_CACHE:
        x, w = _compute(name, n)
        if not np.all(w > 0):
            raise InvalidOrderError(
                f"{name} weights underflow at order {n}; use a lower order"
            )
        x.flags.writeable = False
        w.flags.writeable = False
        rule = QuadratureRule(nodes=x, weights=w, family=name)
        rule.check()
        _RULE_CACHE[key] = rule
    return _RULE_CACHE[key]


