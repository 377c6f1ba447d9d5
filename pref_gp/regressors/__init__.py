"""MAP estimators for preference data."""

from .preference_regressor import (
    PreferenceRegressor, FitContext, log_posterior, fit_preference_model
)

__all__ = ['PreferenceRegressor', 'FitContext', 'log_posterior', 'fit_preference_model']
