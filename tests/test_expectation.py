"""
End-to-end expectation checks.

Run:
    python -m tests.test_expectation
"""
from __future__ import annotations

import math

import numpy as np
import pytest
import torch

from quadexp.correlated import apply_covariance
from quadexp.errors import DimensionMismatchError
from quadexp.expectation import (
    evaluate,
    evaluate_torch,
    evaluate_vectorized,
    gaussian_expectation,
    normalization_constant,
    weighted_moments,
)
from quadexp.product import build_product, product_rule
from quadexp.quadrature import get_rule


def test_constant_integrand_integrates_to_one():
    for J in range(1, 12):
        rule = build_product([get_rule("hermite", J)])
        v = evaluate(rule, lambda x: 1.0, 1.0 / math.sqrt(math.pi))
        assert abs(v - 1.0) < 1e-12, (J, v)


def test_standard_normal_first_two_moments():
    rule = apply_covariance(product_rule("hermite", 5, dim=1), np.zeros(1), np.eye(1))
    c = 1.0 / math.sqrt(math.pi)
    m1 = evaluate(rule, lambda z: z[0], c)
    m2 = evaluate(rule, lambda z: z[0] ** 2, c)
    assert abs(m1) < 1e-6
    assert abs(m2 - 1.0) < 1e-6


def test_three_dimensional_sum_of_squares():
    rule = apply_covariance(product_rule("hermite", 3, dim=3), np.zeros(3), np.eye(3))
    assert rule.size == 27
    v = evaluate(rule, lambda z: float(np.sum(z**2)), math.pi ** -1.5)
    assert abs(v - 3.0) < 1e-10


def test_correlated_moments_recovered():
    mu = np.array([1.0, 2.0])
    S = np.array([[1.0, 0.5], [0.5, 1.0]])
    rule = apply_covariance(product_rule("hermite", 5, dim=2), mu, S)
    mean, cov = weighted_moments(rule, 1.0 / math.pi)
    assert np.allclose(mean, mu, rtol=0, atol=1e-10), mean
    assert np.allclose(cov, S, rtol=0, atol=1e-10), cov


def test_normalization_constants():
    assert abs(normalization_constant(["hermite", "hermite"]) - 1.0 / math.pi) < 1e-15
    assert normalization_constant(["legendre"]) == 0.5
    assert normalization_constant(["lobatto", "legendre"]) == 0.25
    assert abs(normalization_constant(["chebyshev"]) - 1.0 / math.pi) < 1e-15
    assert normalization_constant([None, None]) == 1.0


def test_default_normalization_is_raw_weighted_sum():
    # no constant inferred from the families: Σ w = 2 for Legendre
    assert abs(evaluate(product_rule("legendre", 3, dim=1), lambda x: 1.0) - 2.0) < 1e-12
    rule = product_rule("hermite", 4, dim=2)
    assert abs(evaluate(rule, lambda z: 1.0) - math.pi) < 1e-12
    assert abs(evaluate_vectorized(rule, lambda Z: np.ones(len(Z))) - math.pi) < 1e-12


def test_legendre_uniform_average():
    # average of x^2 y^2 over [-1, 1]^2 is 1/9
    rule = product_rule("legendre", 3, dim=2)
    v = evaluate(rule, lambda x: x[0] ** 2 * x[1] ** 2, 0.25)
    assert abs(v - 1.0 / 9.0) < 1e-14


def test_lognormal_moment():
    mu, s2 = 0.1, 0.04
    res = gaussian_expectation(lambda z: math.exp(z[0]), [mu], [[s2]], order=10)
    assert abs(res.value - math.exp(mu + 0.5 * s2)) < 1e-10
    assert res.rule.size == 10
    assert abs(res.normalization - 1.0 / math.sqrt(math.pi)) < 1e-15


def test_rule_is_reusable_across_integrands():
    mu = np.array([0.5, -0.5])
    S = np.array([[0.5, 0.1], [0.1, 0.2]])
    res = gaussian_expectation(lambda z: z[0] * z[1], mu, S, order=4)
    assert abs(res.value - (S[0, 1] + mu[0] * mu[1])) < 1e-12
    v = evaluate(res.rule, lambda z: z[1] ** 2, res.normalization)
    assert abs(v - (S[1, 1] + mu[1] ** 2)) < 1e-12


def test_vectorized_and_torch_match_loop():
    mu = np.array([0.0, 1.0, -1.0])
    S = np.array([[1.0, 0.2, 0.1], [0.2, 0.5, 0.0], [0.1, 0.0, 0.3]])
    rule = apply_covariance(product_rule("hermite", [3, 4, 5], dim=3), mu, S)

    def f(x):
        return math.cos(x[0]) * x[1] + x[2] ** 2

    def f_vec(X):
        return np.cos(X[:, 0]) * X[:, 1] + X[:, 2] ** 2

    def f_torch(X):
        return torch.cos(X[:, 0]) * X[:, 1] + X[:, 2] ** 2

    c = normalization_constant(rule.families)
    loop = evaluate(rule, f, c)
    vec = evaluate_vectorized(rule, f_vec, c)
    bat = evaluate_torch(rule, f_torch, c, device=torch.device("cpu"), batch_size=7)
    assert abs(loop - (math.exp(-0.5) * 1.0 + 0.3 + 1.0)) < 1e-2
    assert abs(loop - vec) < 1e-12
    assert abs(loop - bat) < 1e-12


def test_torch_density_integrands():
    # E[φ(Z)] = 1/(2√π) and E[Φ(Z)] = 1/2 for Z ~ N(0, 1)
    rule = apply_covariance(product_rule("hermite", 30, dim=1), np.zeros(1), np.eye(1))
    cpu = torch.device("cpu")
    c = 1.0 / math.sqrt(math.pi)
    v_phi = evaluate_torch(rule, lambda Z: torch.exp(-0.5 * Z[:, 0] ** 2) / math.sqrt(2.0 * math.pi), c, device=cpu)
    v_Phi = evaluate_torch(rule, lambda Z: torch.special.ndtr(Z[:, 0]), c, device=cpu)
    assert abs(v_phi - 0.5 / math.sqrt(math.pi)) < 1e-10
    assert abs(v_Phi - 0.5) < 1e-12


def test_vectorized_shape_check():
    rule = product_rule("legendre", 2, dim=2)
    with pytest.raises(DimensionMismatchError):
        evaluate_vectorized(rule, lambda X: X)


def test_integrand_errors_propagate():
    class Boom(Exception):
        pass

    def bad(x):
        raise Boom("integrand failed")

    rule = product_rule("hermite", 3, dim=2)
    with pytest.raises(Boom):
        evaluate(rule, bad)


def test_deterministic():
    rule = apply_covariance(product_rule("hermite", 6, dim=2), np.ones(2), np.eye(2))
    f = lambda z: math.sin(z[0]) * math.exp(-z[1] ** 2)
    c = normalization_constant(rule.families)
    assert evaluate(rule, f, c) == evaluate(rule, f, c)


def main():
    test_constant_integrand_integrates_to_one()
    test_standard_normal_first_two_moments()
    test_three_dimensional_sum_of_squares()
    test_correlated_moments_recovered()
    test_normalization_constants()
    test_default_normalization_is_raw_weighted_sum()
    test_legendre_uniform_average()
    test_lognormal_moment()
    test_rule_is_reusable_across_integrands()
    test_vectorized_and_torch_match_loop()
    test_torch_density_integrands()
    test_vectorized_shape_check()
    test_integrand_errors_propagate()
    test_deterministic()
    print("All expectation checks passed.")


if __name__ == "__main__":
    main()
