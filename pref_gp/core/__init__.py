"""Core components for preference regression."""

from .errors import (
    PreferenceError, DimensionMismatch, EmptyOtherSet,
    InconsistentPreference, NotFitted, CovarianceError
)
from .data import Preference, ObservationStore, merge_points
from .kernels import (
    ard_se_kernel, calc_C, calc_C_grad_a, calc_C_grad_b,
    calc_C_grad_r, calc_C_grad_r_i, calc_k
)
from .preference import (
    log_btl_likelihood, log_btl_likelihood_grad, btl_likelihood,
    cholesky, log_gp_prior, log_gp_prior_grad_theta,
    make_hyperparameter_prior, log_hyperparameter_prior_grad
)
from .posterior import FittedState
from .solver import solve
from .utils import generate_random_vector, export_data

__all__ = [
    'PreferenceError',
    'DimensionMismatch',
    'EmptyOtherSet',
    'InconsistentPreference',
    'NotFitted',
    'CovarianceError',
    'Preference',
    'ObservationStore',
    'merge_points',
    'ard_se_kernel',
    'calc_C',
    'calc_C_grad_a',
    'calc_C_grad_b',
    'calc_C_grad_r',
    'calc_C_grad_r_i',
    'calc_k',
    'log_btl_likelihood',
    'log_btl_likelihood_grad',
    'btl_likelihood',
    'cholesky',
    'log_gp_prior',
    'log_gp_prior_grad_theta',
    'make_hyperparameter_prior',
    'log_hyperparameter_prior_grad',
    'FittedState',
    'solve',
    'generate_random_vector',
    'export_data',
]
