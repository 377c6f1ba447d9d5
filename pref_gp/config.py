# pref_gp/config.py
import logging

# Box constraints of the MAP problem
UTILITY_BOUND = 10.0
HYPERPARAMETER_LOWER = 1e-05
HYPERPARAMETER_UPPER = 10.0

# Value of b when the noiseless mode is on
NOISELESS_B = 1e-06

DEFAULT_MERGE_EPSILON = 1e-04

_logger = logging.getLogger("pref_gp")
if not _logger.handlers:
    _h = logging.StreamHandler()
    _h.setFormatter(logging.Formatter("[%(levelname)s] %(name)s: %(message)s"))
    _logger.addHandler(_h)
_logger.setLevel(logging.INFO)


def get_logger(name=None):
    """Return the package logger, or one of its children."""
    if name is None:
        return _logger
    return _logger.getChild(name)


def set_log_level(level):
    _logger.setLevel(level)
