"""
Compare Gauss-Hermite product quadrature, Monte Carlo and quasi-Monte Carlo
on the log-normal moment

    E[exp(a^T ε)] = exp(a^T μ + a^T Σ a / 2),    ε ~ N(μ, Σ).

Example:
    python -m experiments.run_convergence_check --dim 3 --rho 0.5 --orders 2 3 4 5 6 \
        --samples 256 1024 4096 --trials 20 --seed 0
"""
from __future__ import annotations

import argparse

import numpy as np
from tqdm import tqdm

from quadexp.config import MC_SAMPLES, QMC_METHOD, SEED
from quadexp.correlated import apply_covariance
from quadexp.expectation import evaluate_vectorized, normalization_constant
from quadexp.product import product_rule
from quadexp.sampling import monte_carlo_rule, qmc_rule


def equicorrelated(dim: int, rho: float, sigma: float) -> np.ndarray:
    S = np.full((dim, dim), rho * sigma * sigma)
    np.fill_diagonal(S, sigma * sigma)
    return S


def main():
    ap = argparse.ArgumentParser()
    ap.add_argument("--dim", type=int, default=2, help="Number of shocks N.")
    ap.add_argument("--rho", type=float, default=0.5, help="Pairwise correlation.")
    ap.add_argument("--sigma", type=float, default=0.2, help="Shock standard deviation.")
    ap.add_argument("--loading", type=float, default=1.0, help="Entries of a in exp(a^T eps).")
    ap.add_argument("--orders", nargs="+", type=int, default=[2, 3, 4, 5, 6],
                    help="Gauss-Hermite points per dimension.")
    ap.add_argument("--samples", nargs="+", type=int, default=[MC_SAMPLES // 16, MC_SAMPLES // 4, MC_SAMPLES],
                    help="Sample sizes for MC and QMC.")
    ap.add_argument("--trials", type=int, default=20, help="Independent MC/QMC repetitions.")
    ap.add_argument("--qmc", type=str, default=QMC_METHOD, choices=["sobol", "halton"])
    ap.add_argument("--seed", type=int, default=SEED)
    args = ap.parse_args()

    rng = np.random.default_rng(args.seed)
    mu = np.zeros(args.dim)
    S = equicorrelated(args.dim, args.rho, args.sigma)
    a = np.full(args.dim, args.loading)
    exact = float(np.exp(a @ mu + 0.5 * a @ S @ a))

    def integrand(X):
        return np.exp(X @ a)

    print(f"exact E[exp(a^T eps)] = {exact:.12f}")

    print("\n=== Gauss-Hermite product rule ===")
    for J in args.orders:
        base = product_rule("hermite", J, dim=args.dim)
        rule = apply_covariance(base, mu, S)
        v = evaluate_vectorized(rule, integrand, normalization_constant(rule.families))
        print(f"J={J:3d}  nodes={rule.size:8d}  value={v:.12f}  abs err={abs(v - exact):.3e}")

    for label in ("Monte Carlo", f"quasi-Monte Carlo ({args.qmc})"):
        print(f"\n=== {label} ===")
        for n in args.samples:
            errs = []
            for t in tqdm(range(args.trials), desc=f"{label} n={n}", leave=False):
                if label == "Monte Carlo":
                    base = monte_carlo_rule(args.dim, n, rng)
                else:
                    seed = int(rng.integers(2**31 - 1))
                    base = qmc_rule(args.dim, n, method=args.qmc, seed=seed)
                rule = apply_covariance(base, mu, S)
                errs.append(evaluate_vectorized(rule, integrand) - exact)
            errs = np.array(errs, dtype=float)
            rmse = float(np.sqrt(np.mean(errs ** 2)))
            print(f"n={n:8d}  mean err={errs.mean():+.3e}  rmse={rmse:.3e}   (over {args.trials} trials)")


if __name__ == "__main__":
    main()
