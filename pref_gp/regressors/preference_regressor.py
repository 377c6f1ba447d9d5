"""MAP estimation of latent utilities from preference data."""

import logging
import time
from dataclasses import dataclass
from typing import Optional, Sequence, Tuple, Union

import torch

from ..config import (
    HYPERPARAMETER_LOWER, HYPERPARAMETER_UPPER, NOISELESS_B, UTILITY_BOUND,
    get_logger
)
from ..core import (
    DimensionMismatch, FittedState, NotFitted, ObservationStore, Preference,
    calc_C, calc_C_grad_a, calc_C_grad_b, calc_C_grad_r, cholesky,
    export_data, log_btl_likelihood, log_btl_likelihood_grad, log_gp_prior,
    log_gp_prior_grad_theta, log_hyperparameter_prior_grad,
    make_hyperparameter_prior, solve
)
from ..core.utils import DTYPE


@dataclass(frozen=True)
class FitContext:
    """
    Everything the MAP objective reads, captured once per fit.

    Optimization vector layout: the M latent utilities, followed by
    [a, b, r_1..r_D] when hyperparameters are estimated.
    """

    X: torch.Tensor
    preferences: Tuple[Preference, ...]
    weights: torch.Tensor
    use_map_hyperparameters: bool
    noiseless: bool
    default_a: float
    default_b: float
    default_r: torch.Tensor
    variance: float
    btl_scale: float
    a_prior: object
    b_prior: object
    r_priors: Tuple[object, ...]

    @classmethod
    def build(cls, X, preferences, weights=None, use_map_hyperparameters=True,
              noiseless=False, default_a=0.5, default_b=0.005, default_r=0.5,
              variance=0.1, btl_scale=0.01):
        X = torch.as_tensor(X, dtype=DTYPE)
        dim = X.shape[1]
        preferences = tuple(preferences)

        default_r = torch.as_tensor(default_r, dtype=DTYPE)
        if default_r.dim() == 0:
            default_r = default_r.repeat(dim)
        if default_r.shape[0] != dim:
            raise DimensionMismatch(
                f"default_r has {default_r.shape[0]} entries for {dim} dimensions"
            )
        if noiseless:
            default_b = NOISELESS_B

        if weights is None:
            weights = torch.ones(len(preferences), dtype=DTYPE)
        weights = torch.as_tensor(weights, dtype=DTYPE).reshape(-1)
        if weights.shape[0] != len(preferences):
            raise ValueError(
                f"Got {weights.shape[0]} weights for {len(preferences)} preferences"
            )
        if torch.any(weights <= 0):
            raise ValueError("Preference weights must be positive")

        return cls(
            X=X,
            preferences=preferences,
            weights=weights,
            use_map_hyperparameters=use_map_hyperparameters,
            noiseless=noiseless,
            default_a=float(default_a),
            default_b=float(default_b),
            default_r=default_r,
            variance=float(variance),
            btl_scale=float(btl_scale),
            a_prior=make_hyperparameter_prior(default_a, variance),
            b_prior=make_hyperparameter_prior(default_b, variance),
            r_priors=tuple(make_hyperparameter_prior(float(v), variance) for v in default_r),
        )

    @property
    def num_points(self) -> int:
        return self.X.shape[0]

    @property
    def dim(self) -> int:
        return self.X.shape[1]

    @property
    def num_variables(self) -> int:
        if self.use_map_hyperparameters:
            return self.num_points + 2 + self.dim
        return self.num_points

    def unpack(self, x):
        """Split an optimization vector into (y, a, b, r)."""
        M = self.num_points
        y = x[:M]
        if self.use_map_hyperparameters:
            a = x[M]
            b = torch.tensor(NOISELESS_B, dtype=DTYPE) if self.noiseless else x[M + 1]
            r = x[M + 2:]
        else:
            a = torch.tensor(self.default_a, dtype=DTYPE)
            b = torch.tensor(self.default_b, dtype=DTYPE)
            r = self.default_r
        return y, a, b, r

    def bounds(self):
        """Lower and upper bounds of the optimization vector."""
        M = self.num_points
        lower = torch.full((self.num_variables,), -UTILITY_BOUND, dtype=DTYPE)
        upper = torch.full((self.num_variables,), UTILITY_BOUND, dtype=DTYPE)
        if self.use_map_hyperparameters:
            lower[M:] = HYPERPARAMETER_LOWER
            upper[M:] = HYPERPARAMETER_UPPER
            if self.noiseless:
                lower[M + 1] = upper[M + 1] = NOISELESS_B
        return lower, upper

    def initial_point(self, previous: Optional[FittedState] = None):
        """
        Starting vector: zero utilities and default hyperparameters, or the
        previous posterior mean at every sample and the previous
        hyperparameters when warm-starting.
        """
        M = self.num_points
        x = torch.zeros(self.num_variables, dtype=DTYPE)
        if self.use_map_hyperparameters:
            x[M] = self.default_a
            x[M + 1] = self.default_b
            x[M + 2:] = self.default_r

        if previous is None or previous.is_empty:
            return x
        if previous.X.shape[1] != self.dim:
            raise DimensionMismatch(
                f"Previous fit has dimension {previous.X.shape[1]}, data has {self.dim}"
            )

        for i in range(M):
            x[i] = previous.estimate_mean(self.X[i])
        if self.use_map_hyperparameters:
            x[M] = previous.a
            x[M + 1] = NOISELESS_B if self.noiseless else previous.b
            x[M + 2:] = previous.r
        return x


def log_posterior(context: FitContext, x, compute_grad=True):
    """
    Unnormalized log posterior of the MAP problem and its gradient.

    Sum of the BTL log-likelihoods of all preferences, the GP prior log
    density of y, and (when hyperparameters are estimated) the LogNormal
    log priors of a, b and r.

    Args:
        context: FitContext of the current fit
        x: Optimization vector (tensor)
        compute_grad: Also return the analytic gradient

    Returns:
        (value, grad), grad is None when compute_grad is False
    """
    X = context.X
    M = context.num_points
    y, a, b, r = context.unpack(x)

    obj = torch.tensor(0.0, dtype=DTYPE)
    for p, w in zip(context.preferences, context.weights):
        idx = torch.tensor(p.indices)
        obj = obj + log_btl_likelihood(y[idx], context.btl_scale * w)

    C = calc_C(X, a, b, r)
    L = cholesky(C)
    obj = obj + log_gp_prior(y, L)

    if context.use_map_hyperparameters:
        obj = obj + context.a_prior.log_prob(a)
        if not context.noiseless:
            obj = obj + context.b_prior.log_prob(b)
        for r_i, prior in zip(r, context.r_priors):
            obj = obj + prior.log_prob(r_i)

    if not compute_grad:
        return obj, None

    C_inv = torch.cholesky_inverse(L)
    alpha = C_inv @ y

    grad_y = torch.zeros(M, dtype=DTYPE)
    for p, w in zip(context.preferences, context.weights):
        idx = torch.tensor(p.indices)
        grad_y.index_add_(0, idx, log_btl_likelihood_grad(y[idx], context.btl_scale * w))
    grad_y -= alpha

    if not context.use_map_hyperparameters:
        return obj, grad_y

    variance = context.variance
    grad_a = (log_gp_prior_grad_theta(alpha, C_inv, calc_C_grad_a(X, a, b, r))
              + log_hyperparameter_prior_grad(a, context.default_a, variance))
    if context.noiseless:
        grad_b = torch.tensor(0.0, dtype=DTYPE)
    else:
        grad_b = (log_gp_prior_grad_theta(alpha, C_inv, calc_C_grad_b(X, a, b, r))
                  + log_hyperparameter_prior_grad(b, context.default_b, variance))
    grad_r = (log_gp_prior_grad_theta(alpha, C_inv, calc_C_grad_r(X, a, b, r))
              + log_hyperparameter_prior_grad(r, context.default_r, variance))

    grad = torch.cat([grad_y, grad_a.reshape(1), grad_b.reshape(1), grad_r])
    return obj, grad


def fit_preference_model(context: FitContext, previous: Optional[FittedState] = None,
                         max_iterations=500, method="L-BFGS-B"):
    """
    Jointly optimize latent utilities (and hyperparameters) by MAP.

    Args:
        context: FitContext with the data and settings
        previous: Fitted state to warm-start from
        max_iterations: Optimizer iteration budget
        method: Bounded optimizer, 'L-BFGS-B' or 'TNC'

    Returns:
        FittedState
    """
    x_ini = context.initial_point(previous)
    lower, upper = context.bounds()

    def objective(x, compute_grad):
        with torch.no_grad():
            value, grad = log_posterior(context, torch.tensor(x, dtype=DTYPE), compute_grad)
        return float(value), (grad.numpy() if grad is not None else None)

    x_opt, value, n_iterations = solve(
        x_ini.numpy(), lower.numpy(), upper.numpy(), objective,
        max_iterations=max_iterations, method=method
    )

    y, a, b, r = context.unpack(torch.from_numpy(x_opt))
    C = calc_C(context.X, a, b, r)
    C_inv = torch.cholesky_inverse(cholesky(C))
    return FittedState(
        X=context.X,
        y=y.clone(),
        a=float(a),
        b=float(b),
        r=r.clone(),
        C=C,
        C_inv=C_inv,
        log_posterior=value,
        n_iterations=n_iterations,
    )


class PreferenceRegressor:
    """
    Gaussian-process preference regressor with a BTL likelihood.

    Estimates a latent utility per sampled point (and optionally the kernel
    hyperparameters) by maximizing the posterior, then predicts the
    posterior mean and standard deviation at arbitrary points.

    The result is a local optimum of the posterior; no global optimality is
    guaranteed.

    Args:
        use_map_hyperparameters: Estimate a, b and r instead of using defaults
        default_a: Signal variance (prior centre when estimated)
        default_b: Noise variance (prior centre when estimated)
        default_r: Length-scale, scalar or one per dimension
        variance: Variance of the LogNormal hyperparameter priors
        btl_scale: BTL scale parameter (smaller = sharper preferences)
        noiseless: Fix b to a tiny constant
        max_iterations: Optimizer iteration budget
        method: Bounded optimizer, 'L-BFGS-B' or 'TNC'
        verbose: Log timing and learned hyperparameters at INFO level
        logger: Logger to report to, defaults to the package logger
    """

    def __init__(
        self,
        use_map_hyperparameters: bool = True,
        default_a: float = 0.5,
        default_b: float = 0.005,
        default_r: Union[float, Sequence[float]] = 0.5,
        variance: float = 0.1,
        btl_scale: float = 0.01,
        noiseless: bool = False,
        max_iterations: int = 500,
        method: str = 'L-BFGS-B',
        verbose: bool = False,
        logger: Optional[logging.Logger] = None
    ):
        self.use_map_hyperparameters = use_map_hyperparameters
        self.default_a = default_a
        self.default_b = default_b
        self.default_r = default_r
        self.variance = variance
        self.btl_scale = btl_scale
        self.noiseless = noiseless
        self.max_iterations = max_iterations
        self.method = method
        self.verbose = verbose
        self.logger = logger or get_logger("regressor")

        # Fit state
        self.state: Optional[FittedState] = None
        self.preferences: Tuple[Preference, ...] = ()

    def fit(self, store: ObservationStore, weights=None,
            previous: Union["PreferenceRegressor", FittedState, None] = None):
        """
        Fit latent utilities to the store's current data.

        The store is snapshotted first, so it is never read again during
        optimization. A store without points or preferences yields an
        untrained state.

        Warm-starting from ``previous`` never lowers the result below its
        own starting point. It matches a cold start only when the
        hyperparameters are fixed, where the posterior is concave in the
        utilities; with estimated hyperparameters either start may end in a
        different local optimum.

        Args:
            store: ObservationStore
            weights: Optional positive weight per preference; the BTL scale
                     of preference k is btl_scale * weights[k]
            previous: Regressor or FittedState to warm-start from

        Returns:
            self
        """
        X, preferences = store.snapshot()
        self.preferences = preferences
        if isinstance(previous, PreferenceRegressor):
            previous = previous.state

        dim = store.dim or 0
        if X.shape[0] == 0 or len(preferences) == 0:
            r = torch.as_tensor(self.default_r, dtype=DTYPE)
            if r.dim() == 0:
                r = r.repeat(dim)
            b = NOISELESS_B if self.noiseless else self.default_b
            self.state = FittedState.empty(dim, self.default_a, b, r)
            self.logger.debug("No data to fit, regressor left untrained")
            return self

        context = FitContext.build(
            X, preferences, weights,
            use_map_hyperparameters=self.use_map_hyperparameters,
            noiseless=self.noiseless,
            default_a=self.default_a,
            default_b=self.default_b,
            default_r=self.default_r,
            variance=self.variance,
            btl_scale=self.btl_scale,
        )

        start = time.perf_counter()
        self.state = fit_preference_model(
            context, previous,
            max_iterations=self.max_iterations, method=self.method
        )
        elapsed = time.perf_counter() - start

        if self.verbose:
            self.logger.info(
                "Fitted %d points / %d preferences in %.3f s (%d iterations)",
                context.num_points, len(preferences), elapsed, self.state.n_iterations
            )
            if self.use_map_hyperparameters:
                self.logger.info(
                    "Learned hyperparameters ... a: %.6g, b: %.6g, r: %s",
                    self.state.a, self.state.b, self.state.r.tolist()
                )
        return self

    def _fitted(self) -> FittedState:
        if self.state is None or self.state.is_empty:
            raise NotFitted("Call fit() with points and preferences first")
        return self.state

    @property
    def y(self) -> torch.Tensor:
        return self._fitted().y.clone()

    def estimate_mean(self, x) -> float:
        """Posterior mean of the utility at x."""
        return self._fitted().estimate_mean(x)

    def estimate_std(self, x) -> float:
        """Posterior standard deviation of the utility at x."""
        return self._fitted().estimate_std(x)

    def best_sampled_point(self) -> torch.Tensor:
        """Sampled point with the largest fitted utility."""
        return self._fitted().best_sampled_point()

    def export_csv(self, directory):
        """Write the fitted X.csv and D.csv into ``directory``."""
        state = self._fitted()
        return export_data(directory, state.X, [p.indices for p in self.preferences])
