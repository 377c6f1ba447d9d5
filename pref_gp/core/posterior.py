"""Fitted latent utilities and the GP posterior they induce."""

from dataclasses import dataclass, field
from typing import Optional

import torch

from .errors import NotFitted
from .kernels import calc_k
from .utils import DTYPE, as_vector


@dataclass(frozen=True)
class FittedState:
    """
    Result of a MAP fit.

    Attributes:
        X: Sample points the fit was computed on (M x D)
        y: Latent utility per sample (M,)
        a: Signal variance
        b: Noise variance
        r: Length-scales (D,)
        C: Covariance over the samples (M x M)
        C_inv: Inverse of C (M x M)
        log_posterior: Objective value reached by the optimizer
        n_iterations: Optimizer iterations used
    """

    X: torch.Tensor
    y: torch.Tensor
    a: float
    b: float
    r: torch.Tensor
    C: torch.Tensor
    C_inv: torch.Tensor
    log_posterior: Optional[float] = None
    n_iterations: int = 0
    alpha: torch.Tensor = field(init=False, repr=False)

    def __post_init__(self):
        # C⁻¹ y is reused by every mean prediction
        object.__setattr__(self, "alpha", self.C_inv @ self.y)

    @classmethod
    def empty(cls, dim, a, b, r):
        """Untrained state for a store without points or preferences."""
        zeros = torch.zeros((0, 0), dtype=DTYPE)
        return cls(
            X=torch.zeros((0, dim), dtype=DTYPE),
            y=torch.zeros(0, dtype=DTYPE),
            a=a, b=b, r=torch.as_tensor(r, dtype=DTYPE),
            C=zeros, C_inv=zeros,
        )

    @property
    def is_empty(self) -> bool:
        return self.y.shape[0] == 0

    def _require_fitted(self):
        if self.is_empty:
            raise NotFitted("The regressor has no fitted utilities")

    def estimate_mean(self, x) -> float:
        """
        Posterior mean of the utility at x: k(x)ᵗ C⁻¹ y.

        Args:
            x: Query point (D,)
        """
        self._require_fitted()
        k = calc_k(as_vector(x), self.X, self.a, self.b, self.r)
        return float(k @ self.alpha)

    def estimate_std(self, x) -> float:
        """
        Posterior standard deviation of the utility at x.

        sqrt(a + b - k(x)ᵗ C⁻¹ k(x)), clamped at zero against round-off.

        Args:
            x: Query point (D,)
        """
        self._require_fitted()
        k = calc_k(as_vector(x), self.X, self.a, self.b, self.r)
        var = self.a + self.b - k @ self.C_inv @ k
        return float(torch.sqrt(torch.clamp(var, min=0.0)))

    def best_index(self) -> int:
        """Index of the sample with the largest utility (lowest on ties)."""
        self._require_fitted()
        # argmax returns the first maximal index
        return int(torch.argmax(self.y))

    def best_sampled_point(self) -> torch.Tensor:
        """Sample point with the largest fitted utility."""
        return self.X[self.best_index()].clone()
