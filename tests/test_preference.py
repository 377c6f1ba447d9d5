import math

import pytest
import torch

from pref_gp.core import (
    btl_likelihood, cholesky, CovarianceError, log_btl_likelihood,
    log_btl_likelihood_grad, log_gp_prior, log_hyperparameter_prior_grad,
    make_hyperparameter_prior
)

DTYPE = torch.float64


def test_pairwise_btl_is_logistic():
    y = torch.tensor([0.3, 0.1], dtype=DTYPE)
    s = 0.1
    expected = 1.0 / (1.0 + math.exp(-(0.3 - 0.1) / s))
    assert float(btl_likelihood(y, s)) == pytest.approx(expected)


def test_btl_total_order_probability():
    y = torch.tensor([1.0, 0.5, 0.0], dtype=DTYPE)
    s = 0.5
    e = [math.exp(v / s) for v in y.tolist()]
    expected = e[0] / sum(e) * e[1] / (e[1] + e[2])
    assert float(btl_likelihood(y, s)) == pytest.approx(expected)


def test_btl_log_space_survives_large_gaps():
    y = torch.tensor([-10.0, 10.0], dtype=DTYPE)
    value = log_btl_likelihood(y, 0.01)
    assert torch.isfinite(value)
    assert float(value) == pytest.approx(-2000.0)
    assert torch.all(torch.isfinite(log_btl_likelihood_grad(y, 0.01)))


@pytest.mark.parametrize("s", [0.01, 0.1, 1.0])
def test_btl_log_likelihood_increases_with_gap(s):
    gaps = torch.linspace(-1.0, 1.0, 21, dtype=DTYPE)
    values = [float(log_btl_likelihood(torch.stack([g, torch.zeros((), dtype=DTYPE)]), s))
              for g in gaps]
    assert all(v1 < v2 for v1, v2 in zip(values, values[1:]))

    three = [float(log_btl_likelihood(torch.tensor([0.2 + g, 0.2, -0.1], dtype=DTYPE), s))
             for g in (0.0, 0.05, 0.1, 0.2)]
    assert all(v1 < v2 for v1, v2 in zip(three, three[1:]))


@pytest.mark.parametrize("n", [2, 3, 5])
def test_btl_gradient_matches_autograd(n):
    g = torch.Generator().manual_seed(n)
    y = torch.randn(n, generator=g, dtype=DTYPE).requires_grad_(True)
    s = 0.3
    log_btl_likelihood(y, s).backward()
    assert torch.allclose(log_btl_likelihood_grad(y.detach(), s), y.grad)


def test_gp_prior_matches_closed_form():
    C = torch.tensor([[1.0, 0.3], [0.3, 0.5]], dtype=DTYPE)
    y = torch.tensor([0.2, -0.4], dtype=DTYPE)
    expected = (-0.5 * y @ torch.linalg.solve(C, y)
                - 0.5 * torch.logdet(C) - math.log(2 * math.pi))
    assert float(log_gp_prior(y, cholesky(C))) == pytest.approx(float(expected))


def test_cholesky_reports_indefinite_matrix():
    C = torch.tensor([[1.0, 2.0], [2.0, 1.0]], dtype=DTYPE)
    with pytest.raises(CovarianceError):
        cholesky(C)


def test_hyperparameter_prior_peaks_in_log_space():
    default, variance = 0.5, 0.1
    prior = make_hyperparameter_prior(default, variance)
    x = torch.tensor(0.8, dtype=DTYPE)
    expected = (-math.log(0.8) - 0.5 * math.log(2 * math.pi * variance)
                - (math.log(0.8) - math.log(default)) ** 2 / (2 * variance))
    assert float(prior.log_prob(x)) == pytest.approx(expected)


@pytest.mark.parametrize("x", [0.05, 0.5, 2.0])
def test_hyperparameter_prior_gradient(x):
    default, variance = 0.5, 0.1
    prior = make_hyperparameter_prior(default, variance)
    xt = torch.tensor(x, dtype=DTYPE, requires_grad=True)
    prior.log_prob(xt).backward()
    grad = log_hyperparameter_prior_grad(xt.detach(), default, variance)
    assert float(grad) == pytest.approx(float(xt.grad))


def test_btl_log_likelihood_keeps_precision_for_wide_gaps():
    values = [float(log_btl_likelihood(torch.tensor([g, 0.0], dtype=DTYPE), 0.01))
              for g in (0.3, 0.4, 0.5)]
    assert values[0] < values[1] < values[2] < 0.0
    assert values[2] == pytest.approx(-math.exp(-50.0))


def test_btl_gradient_keeps_precision_for_wide_gaps():
    grad = log_btl_likelihood_grad(torch.tensor([0.5, 0.0, -0.5], dtype=DTYPE), 0.01)
    assert float(grad[0]) == pytest.approx(math.exp(-50.0) / 0.01, rel=1e-6)
    assert float(grad[2]) == pytest.approx(-math.exp(-50.0) / 0.01, rel=1e-6)
    assert float(grad.sum()) == pytest.approx(0.0, abs=1e-30)
