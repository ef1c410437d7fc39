"""
Derivative oracles for building gradient integrands.

Finite differences on f: R^N -> R, with step h_i = h · max(1, |x_i|):

    forward   ∂_i f ≈ (f(x + h_i e_i) - f(x)) / h_i,             error O(h)
    central   ∂_i f ≈ (f(x + h_i e_i) - f(x - h_i e_i)) / (2 h_i), error O(h^2)

Default steps balance truncation against round-off: √eps for forward,
eps^{1/3} for central differences. `autograd_gradient` defers to
`torch.autograd`.
"""
from __future__ import annotations

from typing import Callable

import numpy as np
import torch

from .config import FD_CENTRAL_STEP, FD_FORWARD_STEP, FD_HESSIAN_STEP
from .errors import QuadratureError
from .product import ProductRule
from .special import DTYPE


def _steps(x: np.ndarray, h: float) -> np.ndarray:
    return h * np.maximum(1.0, np.abs(x))


def forward_difference(f: Callable, x, h: float = FD_FORWARD_STEP) -> np.ndarray:
    x = np.asarray(x, dtype=np.float64)
    steps = _steps(x, h)
    f0 = float(f(x))
    grad = np.empty_like(x)
    for i in range(x.size):
        xp = x.copy()
        xp[i] += steps[i]
        grad[i] = (float(f(xp)) - f0) / (xp[i] - x[i])
    return grad


def central_difference(f: Callable, x, h: float = FD_CENTRAL_STEP) -> np.ndarray:
    x = np.asarray(x, dtype=np.float64)
    steps = _steps(x, h)
    grad = np.empty_like(x)
    for i in range(x.size):
        xp = x.copy()
        xm = x.copy()
        xp[i] += steps[i]
        xm[i] -= steps[i]
        grad[i] = (float(f(xp)) - float(f(xm))) / (xp[i] - xm[i])
    return grad


def central_hessian(f: Callable, x, h: float = FD_HESSIAN_STEP) -> np.ndarray:
    """Symmetric Hessian from four-point central differences."""
    x = np.asarray(x, dtype=np.float64)
    n = x.size
    steps = _steps(x, h)
    H = np.empty((n, n), dtype=np.float64)
    for i in range(n):
        for j in range(i, n):
            ei = np.zeros(n)
            ej = np.zeros(n)
            ei[i] = steps[i]
            ej[j] = steps[j]
            fpp = float(f(x + ei + ej))
            fpm = float(f(x + ei - ej))
            fmp = float(f(x - ei + ej))
            fmm = float(f(x - ei - ej))
            H[i, j] = (fpp - fpm - fmp + fmm) / (4.0 * steps[i] * steps[j])
            H[j, i] = H[i, j]
    return H


def autograd_gradient(f: Callable[[torch.Tensor], torch.Tensor], x) -> np.ndarray:
    """Gradient of a torch-differentiable scalar function at x."""
    xt = torch.tensor(np.asarray(x, dtype=np.float64), dtype=DTYPE, requires_grad=True)
    y = f(xt)
    if y.numel() != 1:
        raise QuadratureError("autograd_gradient needs a scalar-valued function")
    (g,) = torch.autograd.grad(y.reshape(()), xt)
    return g.detach().cpu().numpy()


_METHODS = {
    "forward": forward_difference,
    "central": central_difference,
    "autograd": autograd_gradient,
}


def gradient_integrand(f: Callable, method: str = "central") -> Callable[[np.ndarray], np.ndarray]:
    """x -> ∇f(x) using one of "forward", "central", "autograd"."""
    if method not in _METHODS:
        raise QuadratureError(f"Unknown differentiation method: {method}")
    grad = _METHODS[method]

    def integrand(x: np.ndarray) -> np.ndarray:
        return grad(f, x)

    return integrand


def expected_gradient(
    rule: ProductRule,
    f: Callable,
    normalization: float = 1.0,
    *,
    method: str = "central",
) -> np.ndarray:
    """
    E[∇f(ε)] over the rule's nodes, one entry per dimension.

    Same weighting as `expectation.evaluate`, applied to the vector-valued
    gradient integrand.
    """
    rule.check()
    c = float(normalization)
    g = gradient_integrand(f, method)
    values = np.empty((rule.size, rule.dim), dtype=np.float64)
    for j in range(rule.size):
        values[j] = g(rule.nodes[j])
    return c * np.sum(rule.weights[:, None] * values, axis=0)
