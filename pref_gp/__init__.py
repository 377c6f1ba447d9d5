"""pref_gp: Gaussian-process utility estimation from preference judgments"""

__version__ = '1.0.0'

from .core import (
    ObservationStore, Preference, FittedState,
    PreferenceError, DimensionMismatch, EmptyOtherSet,
    InconsistentPreference, NotFitted, CovarianceError
)
from .regressors import PreferenceRegressor

__all__ = [
    'ObservationStore', 'Preference', 'FittedState', 'PreferenceRegressor',
    'PreferenceError', 'DimensionMismatch', 'EmptyOtherSet',
    'InconsistentPreference', 'NotFitted', 'CovarianceError',
]
