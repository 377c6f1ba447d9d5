"""Bradley-Terry-Luce preference likelihood and the GP / hyperparameter priors."""

import math

import torch
import torch.nn.functional as F
from gpytorch.priors import LogNormalPrior
from torch.distributions.multivariate_normal import MultivariateNormal

from .errors import CovarianceError
from .utils import DTYPE


def _reverse_logsumexp(z):
    """lse[k] = log Σ_{j>=k} exp(z[j])."""
    return torch.logcumsumexp(z.flip(0), dim=0).flip(0)


def _loser_margins(z):
    """t[k] = log Σ_{j>k} exp(z[j]) - z[k], for k < n-1."""
    return _reverse_logsumexp(z)[1:] - z[:-1]


def log_btl_likelihood(y, s=0.01):
    """
    Log-probability of observing the ordering y[0] > y[1] > ... > y[n-1].

    Bradley-Terry-Luce over a total order: each point is chosen as the best
    among itself and every point ranked below it,

        log P = -Σ_{k<n-1} log(1 + Σ_{j>k} exp((y_j - y_k) / s))

    Each term is taken relative to its own winner, so large utility gaps
    stay strictly negative instead of rounding to zero.

    Args:
        y: Latent utilities in preference order (n,)
        s: BTL scale parameter (smaller = sharper preferences)

    Returns:
        Log-likelihood (scalar tensor)
    """
    t = _loser_margins(y / s)
    return -torch.sum(F.softplus(t))


def log_btl_likelihood_grad(y, s=0.01):
    """
    Gradient of log_btl_likelihood with respect to y.

    Args:
        y: Latent utilities in preference order (n,)
        s: BTL scale parameter

    Returns:
        Gradient (n,)
    """
    n = y.shape[0]
    z = y / s
    lse = _reverse_logsumexp(z)
    # Probability that the k-th winner loses its choice
    lose = torch.sigmoid(lse[1:] - z[:-1])
    # Q[k, i]: share of point i among the points ranked below k
    logits = z.unsqueeze(0) - lse[1:].unsqueeze(1)
    not_below = torch.ones(n - 1, n).tril(diagonal=0).bool()
    Q = torch.exp(logits.masked_fill(not_below, float("-inf")))
    grad = -(lose.unsqueeze(1) * Q).sum(dim=0)
    grad[:-1] += lose
    return grad / s


def btl_likelihood(y, s=0.01):
    """Probability of the ordering y[0] > ... > y[n-1]."""
    return torch.exp(log_btl_likelihood(y, s))


def cholesky(C):
    """
    Lower Cholesky factor of a covariance matrix.

    Raises:
        CovarianceError: C is not numerically positive definite
    """
    L, info = torch.linalg.cholesky_ex(C)
    if int(info) != 0:
        raise CovarianceError(
            f"Covariance matrix of size {C.shape[0]} is not positive definite "
            f"(leading minor {int(info)})"
        )
    return L


def log_gp_prior(y, L):
    """
    Log density of y under N(0, C), with C = L Lᵗ.

    Args:
        y: Latent utilities (M,)
        L: Lower Cholesky factor of C (M x M)

    Returns:
        Log probability (scalar tensor)
    """
    mean = torch.zeros(y.shape[0], dtype=DTYPE)
    return MultivariateNormal(mean, scale_tril=L).log_prob(y)


def log_gp_prior_grad_theta(alpha, C_inv, C_grad):
    """
    Gradient of the GP prior log density with respect to a kernel parameter.

        0.5 * yᵗ C⁻¹ ∂C C⁻¹ y - 0.5 * tr(C⁻¹ ∂C)

    Args:
        alpha: C⁻¹ y (M,)
        C_inv: Inverse covariance (M x M)
        C_grad: ∂C/∂θ (M x M), or a stack of them (P x M x M)

    Returns:
        Scalar tensor, or (P,) for stacked derivatives
    """
    quad = torch.einsum("i,...ij,j->...", alpha, C_grad, alpha)
    trace = torch.einsum("ij,...ji->...", C_inv, C_grad)
    return 0.5 * quad - 0.5 * trace


def make_hyperparameter_prior(default, variance):
    """
    LogNormal prior centred (in log-space) on a default hyperparameter value.

    Args:
        default: Default value; the prior's log-mean is log(default)
        variance: Variance of the log of the hyperparameter

    Returns:
        gpytorch LogNormalPrior
    """
    loc = torch.tensor(math.log(default), dtype=DTYPE)
    scale = torch.tensor(math.sqrt(variance), dtype=DTYPE)
    return LogNormalPrior(loc, scale)


def log_hyperparameter_prior_grad(x, default, variance):
    """
    Derivative of the LogNormal log density at x.

        d/dx log p(x) = (log(default) - variance - log x) / (variance * x)
    """
    mu = torch.log(torch.as_tensor(default, dtype=DTYPE))
    return (mu - variance - torch.log(x)) / (variance * x)
