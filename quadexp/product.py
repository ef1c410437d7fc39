"""
Tensor-product quadrature rules.

Given N univariate rules with J_1, ..., J_N nodes, the product rule has
J = J_1 ⋯ J_N grid points. Point k is addressed by its mixed-radix digits
(d_1, ..., d_N) in bases (J_1, ..., J_N), last dimension varying fastest:

    node_k   = (x^{(1)}_{d_1}, ..., x^{(N)}_{d_N}),
    weight_k = w^{(1)}_{d_1} ⋯ w^{(N)}_{d_N}.

This is the ordering of `itertools.product` and of
`functools.reduce(np.kron, weights)`. Column i of the node array is

    np.tile(np.repeat(x^{(i)}, inner_i), outer_i),
    inner_i = J_{i+1} ⋯ J_N,   outer_i = J_1 ⋯ J_{i-1}.
"""
from __future__ import annotations

import functools
from dataclasses import dataclass
from typing import Optional, Sequence, Tuple, Union

import numpy as np

from .errors import DimensionMismatchError, EmptyRuleListError, QuadratureError
from .quadrature import QuadratureRule, get_rule


@dataclass(frozen=True)
class ProductRule:
    """N-dimensional rule: nodes (J, N), weights (J,)."""
    nodes: np.ndarray
    weights: np.ndarray
    families: Tuple[Optional[str], ...]
    transformed: bool = False

    def check(self) -> None:
        if self.nodes.ndim != 2 or self.weights.ndim != 1:
            raise QuadratureError("nodes must be 2D (J, N) and weights 1D (J,)")
        if self.nodes.shape[0] != self.weights.shape[0]:
            raise QuadratureError("nodes and weights must have the same length")
        if self.nodes.shape[1] != len(self.families):
            raise DimensionMismatchError("families must have one entry per dimension")

    @property
    def size(self) -> int:
        return int(self.weights.shape[0])

    @property
    def dim(self) -> int:
        return int(self.nodes.shape[1])


def frozen_rule(
    nodes: np.ndarray,
    weights: np.ndarray,
    families: Sequence[Optional[str]],
    transformed: bool = False,
) -> ProductRule:
    """Build a ProductRule with read-only float64 arrays."""
    nodes = np.array(nodes, dtype=np.float64)
    weights = np.array(weights, dtype=np.float64)
    if nodes.ndim == 1:
        nodes = nodes[:, None]
    nodes.flags.writeable = False
    weights.flags.writeable = False
    rule = ProductRule(nodes=nodes, weights=weights, families=tuple(families), transformed=transformed)
    rule.check()
    return rule


def multi_index(k: int, orders: Sequence[int]) -> Tuple[int, ...]:
    """Mixed-radix digits of combined index k, last digit fastest."""
    total = int(np.prod(orders))
    if not 0 <= k < total:
        raise IndexError(f"index {k} out of range for {total} grid points")
    digits = []
    for J in reversed(orders):
        k, d = divmod(k, J)
        digits.append(d)
    return tuple(reversed(digits))


def build_product(rules: Sequence[QuadratureRule]) -> ProductRule:
    """
    Combine univariate rules into their tensor-product rule.

    Parameters
    ----------
    rules : sequence of QuadratureRule
        One rule per dimension; orders may differ.

    Returns
    -------
    ProductRule
        nodes: shape (∏J_i, N)
        weights: shape (∏J_i,), Kronecker product of the input weights
    """
    rules = list(rules)
    if not rules:
        raise EmptyRuleListError("need at least one rule to build a product rule")
    for r in rules:
        r.check()

    orders = [r.order for r in rules]
    total = int(np.prod(orders))
    nodes = np.empty((total, len(rules)), dtype=np.float64)
    for i, r in enumerate(rules):
        inner = int(np.prod(orders[i + 1:]))
        outer = int(np.prod(orders[:i]))
        nodes[:, i] = np.tile(np.repeat(r.nodes, inner), outer)
    weights = functools.reduce(np.kron, [r.weights for r in rules])
    return frozen_rule(nodes, weights, [r.family for r in rules])


def product_rule(
    family: Union[str, Sequence[str]],
    orders: Union[int, Sequence[int]],
    dim: Optional[int] = None,
) -> ProductRule:
    """
    Product rule from family name(s) and order(s).

    `orders` may be a single int, in which case `dim` gives the number of
    dimensions; `family` may be one name for all dimensions or one per
    dimension.
    """
    if isinstance(orders, (int, np.integer)) and not isinstance(orders, bool):
        if dim is None:
            raise DimensionMismatchError("dim is required when orders is a single int")
        orders = [int(orders)] * dim
    orders = list(orders)
    if dim is not None and len(orders) != dim:
        raise DimensionMismatchError(f"got {len(orders)} orders for dim={dim}")
    if isinstance(family, str):
        families = [family] * len(orders)
    else:
        families = list(family)
    if len(families) != len(orders):
        raise DimensionMismatchError(
            f"got {len(families)} families for {len(orders)} dimensions"
        )
    return build_product([get_rule(f, J) for f, J in zip(families, orders)])
