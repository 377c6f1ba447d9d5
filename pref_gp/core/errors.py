"""Exceptions raised by preference regression."""


class PreferenceError(Exception):
    """Base class for all pref_gp errors."""


class DimensionMismatch(PreferenceError, ValueError):
    """A point does not have the dimensionality of the stored samples."""


class EmptyOtherSet(PreferenceError, ValueError):
    """An observation was submitted without any non-preferred point."""


class InconsistentPreference(PreferenceError, ValueError):
    """A preference is malformed or would reference one point twice."""


class NotFitted(PreferenceError, RuntimeError):
    """A prediction was requested before a successful fit."""


class CovarianceError(PreferenceError, ArithmeticError):
    """The covariance matrix could not be factorized."""
