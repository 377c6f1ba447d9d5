"""Sampled points and the preferences recorded among them."""

import operator
from dataclasses import dataclass
from typing import Dict, List, Sequence, Tuple

import torch

from ..config import DEFAULT_MERGE_EPSILON, get_logger
from .errors import DimensionMismatch, EmptyOtherSet, InconsistentPreference
from .utils import DTYPE, as_vector, export_data

logger = get_logger("data")


@dataclass(frozen=True)
class Preference:
    """
    Total order over sampled points, most preferred first.

    ``Preference((2, 0, 1))`` reads "point 2 is preferred over point 0,
    which is preferred over point 1".

    Args:
        indices: Column indices into the sample matrix (length >= 2)
    """

    indices: Tuple[int, ...]

    def __post_init__(self):
        try:
            indices = tuple(operator.index(i) for i in self.indices)
        except TypeError as exc:
            raise InconsistentPreference(
                f"Preference indices must be integers, got {tuple(self.indices)}"
            ) from exc
        if len(indices) < 2:
            raise InconsistentPreference(
                f"A preference needs at least two points, got {indices}"
            )
        if min(indices) < 0:
            raise InconsistentPreference(f"Negative index in {indices}")
        if len(set(indices)) != len(indices):
            raise InconsistentPreference(f"Duplicate index in {indices}")
        object.__setattr__(self, "indices", indices)

    def __len__(self):
        return len(self.indices)

    def __iter__(self):
        return iter(self.indices)

    def __getitem__(self, i):
        return self.indices[i]

    @property
    def preferred(self) -> int:
        return self.indices[0]

    def relabel(self, mapping: Dict[int, int]) -> "Preference":
        """Rewrite every index through ``mapping``, keeping the order."""
        indices = tuple(mapping[i] for i in self.indices)
        if len(set(indices)) != len(indices):
            raise InconsistentPreference(
                f"Merging points would collapse {self.indices} into {indices}"
            )
        return Preference(indices)


def merge_points(X, preferences, epsilon=DEFAULT_MERGE_EPSILON):
    """
    Collapse points closer than ``epsilon`` and renumber the survivors.

    Each point is merged into the lowest-indexed unmerged point within
    ``epsilon`` of it. Survivors keep their relative order and are
    renumbered contiguously; every preference is rewritten through the
    same old-to-new mapping.

    Args:
        X: Sample points (M x D)
        preferences: Sequence of Preference
        epsilon: Euclidean distance threshold

    Returns:
        (X, preferences, mapping) after merging, where mapping sends every
        old index to its new index

    Raises:
        InconsistentPreference: two points of one preference would merge
    """
    M = X.shape[0]
    if M < 2:
        return X, list(preferences), {i: i for i in range(M)}

    dist = torch.cdist(X, X)
    representative = list(range(M))
    for i in range(M):
        if representative[i] != i:
            continue
        for j in range(i + 1, M):
            if representative[j] == j and dist[i, j] < epsilon:
                representative[j] = i

    survivors = [i for i in range(M) if representative[i] == i]
    new_index = {old: new for new, old in enumerate(survivors)}
    mapping = {i: new_index[representative[i]] for i in range(M)}

    merged = [p.relabel(mapping) for p in preferences]
    if len(survivors) < M:
        logger.debug("Merged %d close points (%d -> %d)", M - len(survivors), M, len(survivors))
    return X[survivors], merged, mapping


class ObservationStore:
    """
    Sample matrix and preference list.

    Points are stored as rows of ``X`` (M x D). A point's index is its row
    number; indices change only through a merge pass.

    Args:
        dim: Dimensionality of the design space, fixed by the first point
             when omitted
    """

    def __init__(self, dim: int = None):
        self.dim = dim
        self.X = torch.zeros((0, dim or 0), dtype=DTYPE)
        self.preferences: List[Preference] = []

    def __len__(self):
        return self.X.shape[0]

    @property
    def num_points(self) -> int:
        return self.X.shape[0]

    @property
    def num_preferences(self) -> int:
        return len(self.preferences)

    def _check_point(self, x, dim):
        if dim is not None and x.shape[0] != dim:
            raise DimensionMismatch(
                f"Expected a point of dimension {dim}, got {x.shape[0]}"
            )

    def add_preference(self, indices: Sequence[int]) -> Preference:
        """Record a preference among points already in the store."""
        p = Preference(tuple(indices))
        if max(p) >= self.num_points:
            raise InconsistentPreference(
                f"{p.indices} references a point outside the {self.num_points} samples"
            )
        self.preferences.append(p)
        return p

    def add_new_points(
        self,
        x_preferable,
        xs_other: Sequence,
        merge_close_points: bool = True,
        epsilon: float = DEFAULT_MERGE_EPSILON
    ) -> Preference:
        """
        Append one observation: a preferred point and the points it beat.

        The new preference lists the preferable point first, then the other
        points in the given order. The store is unchanged if any check or
        the merge pass fails.

        Args:
            x_preferable: Preferred point (D,)
            xs_other: Non-empty sequence of other points (D,) each
            merge_close_points: Run a merge pass after appending
            epsilon: Distance threshold of the merge pass

        Returns:
            The recorded preference, with indices after merging
        """
        if len(xs_other) == 0:
            raise EmptyOtherSet("At least one non-preferred point is required")

        points = [as_vector(x_preferable)] + [as_vector(x) for x in xs_other]
        dim = self.dim if self.dim is not None else points[0].shape[0]
        for x in points:
            self._check_point(x, dim)

        M = self.num_points
        X = torch.cat([self.X.reshape(M, dim), torch.stack(points)], dim=0)
        p = Preference(tuple(range(M, M + len(points))))
        preferences = self.preferences + [p]

        if merge_close_points:
            X, preferences, _ = merge_points(X, preferences, epsilon)

        self.dim = dim
        self.X = X
        self.preferences = preferences
        return preferences[-1]

    def merge_close_points(self, epsilon: float = DEFAULT_MERGE_EPSILON) -> Dict[int, int]:
        """Run a merge pass on the stored data; returns the index mapping."""
        X, preferences, mapping = merge_points(self.X, self.preferences, epsilon)
        self.X = X
        self.preferences = preferences
        return mapping

    def snapshot(self):
        """Copy of (X, preferences) safe to read while the store changes."""
        return self.X.clone(), tuple(self.preferences)

    def export_csv(self, directory):
        """Write X.csv and D.csv into ``directory``."""
        return export_data(directory, self.X, [p.indices for p in self.preferences])
