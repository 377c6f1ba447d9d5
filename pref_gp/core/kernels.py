"""ARD squared-exponential kernel and its hyperparameter derivatives."""

import torch

from .utils import DTYPE


def _scaled_sq_diff(X1, X2, r):
    """Per-dimension squared differences divided by r^2 (N x M x D)."""
    r = torch.as_tensor(r, dtype=DTYPE)
    return (X1.unsqueeze(1) - X2.unsqueeze(0)) ** 2 / r ** 2


def ard_se_kernel(X1, X2, a, r):
    """
    ARD squared-exponential kernel.

    K(x1, x2) = a * exp(-0.5 * Σ((x1_i - x2_i)^2 / r_i^2))

    Args:
        X1: Points (N x D)
        X2: Points (M x D)
        a: Signal variance
        r: Length-scales (D,)

    Returns:
        Kernel matrix (N x M)
    """
    dist = torch.sum(_scaled_sq_diff(X1, X2, r), dim=-1)
    return a * torch.exp(-0.5 * dist)


def calc_C(X, a, b, r):
    """
    Covariance matrix over sampled points.

    C = a * K + b * I, symmetric positive definite for b > 0.

    Args:
        X: Sample points (M x D)
        a: Signal variance
        b: Noise variance, added on the diagonal only
        r: Length-scales (D,)

    Returns:
        Covariance (M x M)
    """
    M = X.shape[0]
    return ard_se_kernel(X, X, a, r) + b * torch.eye(M, dtype=DTYPE)


def calc_C_grad_a(X, a, b, r):
    """∂C/∂a (M x M)."""
    return ard_se_kernel(X, X, 1.0, r)


def calc_C_grad_b(X, a, b, r):
    """∂C/∂b (M x M)."""
    return torch.eye(X.shape[0], dtype=DTYPE)


def calc_C_grad_r(X, a, b, r):
    """
    ∂C/∂r_i for every length-scale.

    ∂C_jk/∂r_i = a * K_jk * (x_ji - x_ki)^2 / r_i^3

    Args:
        X: Sample points (M x D)
        a: Signal variance
        b: Noise variance (unused, C depends on b only through the diagonal)
        r: Length-scales (D,)

    Returns:
        Stacked derivatives (D x M x M)
    """
    r = torch.as_tensor(r, dtype=DTYPE)
    sq = _scaled_sq_diff(X, X, r)
    K = a * torch.exp(-0.5 * torch.sum(sq, dim=-1))
    # sq / r == (x_j - x_k)^2 / r^3
    return (K.unsqueeze(-1) * sq / r).permute(2, 0, 1)


def calc_C_grad_r_i(X, a, b, r, i):
    """∂C/∂r_i (M x M)."""
    return calc_C_grad_r(X, a, b, r)[i]


def calc_k(x, X, a, b, r):
    """
    Cross-covariance between a query point and the samples.

    The noise variance b is not added: the query is a new location, even
    when it coincides with a sample.

    Args:
        x: Query point (D,)
        X: Sample points (M x D)
        a: Signal variance
        b: Noise variance (unused)
        r: Length-scales (D,)

    Returns:
        Vector (M,)
    """
    return ard_se_kernel(x.reshape(1, -1), X, a, r).reshape(-1)
