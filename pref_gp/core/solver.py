"""Box-constrained gradient-based maximization."""

import numpy as np
from scipy.optimize import minimize

from ..config import get_logger

logger = get_logger("solver")

SUPPORTED_METHODS = ("L-BFGS-B", "TNC")


def solve(x_init, lower, upper, objective, max_iterations=500, method="L-BFGS-B"):
    """
    Locally maximize an objective within box bounds.

    No global optimality is implied: whatever point the optimizer stops at
    (converged or out of budget) is returned.

    Args:
        x_init: Initial point (P,)
        lower: Lower bounds (P,)
        upper: Upper bounds (P,)
        objective: Callable (x, compute_grad) -> (value, grad), where x is a
                   numpy array and grad is None when compute_grad is False
        max_iterations: Iteration budget
        method: 'L-BFGS-B' or 'TNC'

    Returns:
        (x_opt, value, n_iterations)
    """
    if method not in SUPPORTED_METHODS:
        raise ValueError(f"Unknown method: {method}")

    lower = np.asarray(lower, dtype=float)
    upper = np.asarray(upper, dtype=float)
    x0 = np.clip(np.asarray(x_init, dtype=float), lower, upper)

    def negated(x):
        value, grad = objective(x, True)
        return -value, -np.asarray(grad, dtype=float)

    if method == "TNC":
        options = {"maxfun": max_iterations}
    else:
        options = {"maxiter": max_iterations}

    logger.debug("Starting %s on %d variables", method, x0.shape[0])
    result = minimize(
        negated, x0, jac=True, method=method,
        bounds=list(zip(lower, upper)), options=options
    )
    n_iterations = int(getattr(result, "nit", 0) or 0)
    if not result.success:
        logger.warning("%s stopped without converging: %s", method, result.message)
    logger.debug("%s finished after %d iterations", method, n_iterations)

    x_opt = np.clip(result.x, lower, upper)
    return x_opt, -float(result.fun), n_iterations
