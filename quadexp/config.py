from __future__ import annotations

DEFAULT_ORDER = 5

SYMMETRY_TOL = 1e-10
PSD_TOL = 1e-12

QMC_METHOD = "sobol"
QMC_SCRAMBLE = True
SEED = 0

MC_SAMPLES = 4096

# Finite-difference steps are scaled by max(1, |x|).
FD_FORWARD_STEP = 1.4901161193847656e-08  # sqrt(eps)
FD_CENTRAL_STEP = 6.055454452393343e-06  # eps ** (1/3)
FD_HESSIAN_STEP = 1.220703125e-04  # eps ** (1/4)
