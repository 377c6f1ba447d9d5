"""Utility functions."""

import os

import numpy as np
import torch

DTYPE = torch.float64


def as_vector(x):
    """
    Convert a point to a 1-D float64 tensor.

    Args:
        x: Sequence, array or tensor of D coordinates

    Returns:
        Tensor (D,)
    """
    return torch.as_tensor(x, dtype=DTYPE).reshape(-1)


def as_points(X, dim=None):
    """
    Convert a collection of points to a 2-D float64 tensor.

    Args:
        X: Points (N x D), or a list of N points
        dim: Dimensionality used when X is empty

    Returns:
        Tensor (N x D)
    """
    if isinstance(X, (list, tuple)) and len(X) == 0:
        return torch.zeros((0, dim or 0), dtype=DTYPE)
    if isinstance(X, (list, tuple)):
        return torch.stack([as_vector(x) for x in X])
    X = torch.as_tensor(X, dtype=DTYPE)
    if X.numel() == 0:
        return X.reshape(0, dim or (X.shape[-1] if X.dim() == 2 else 0))
    if X.dim() == 1:
        X = X.unsqueeze(0)
    return X


def generate_random_vector(n, generator=None):
    """
    Uniform random point in the unit hypercube.

    Args:
        n: Dimensionality
        generator: Optional torch.Generator for reproducibility

    Returns:
        Tensor (n,) with entries in [0, 1)
    """
    return torch.rand(n, generator=generator, dtype=DTYPE)


def export_matrix_to_csv(path, X):
    """Write one row of comma-separated values per row of X."""
    X = as_points(X).cpu().numpy()
    np.savetxt(path, X, delimiter=",", fmt="%.17g")


def export_preferences_to_csv(path, preferences):
    """Write one row of comma-separated indices per preference."""
    with open(path, "w", encoding="utf-8") as f:
        for p in preferences:
            f.write(",".join(str(i) for i in p) + "\n")


def export_data(directory, X, preferences):
    """
    Dump sampled points and preferences for diagnostics.

    Args:
        directory: Output directory (created if missing)
        X: Sample points (N x D)
        preferences: Iterable of index sequences

    Returns:
        Paths of the written (X.csv, D.csv) files
    """
    os.makedirs(directory, exist_ok=True)
    x_path = os.path.join(directory, "X.csv")
    d_path = os.path.join(directory, "D.csv")
    export_matrix_to_csv(x_path, X)
    export_preferences_to_csv(d_path, preferences)
    return x_path, d_path
