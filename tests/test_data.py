import pytest
import torch

from pref_gp import (
    DimensionMismatch, EmptyOtherSet, InconsistentPreference,
    ObservationStore, Preference
)
from pref_gp.core import merge_points


def test_preference_validation():
    p = Preference((2, 0, 1))
    assert len(p) == 3
    assert p.preferred == 2
    assert list(p) == [2, 0, 1]
    with pytest.raises(InconsistentPreference):
        Preference((1,))
    with pytest.raises(InconsistentPreference):
        Preference((0, 1, 0))
    with pytest.raises(InconsistentPreference):
        Preference((-1, 0))


def test_append_observation_counts_and_indices():
    store = ObservationStore()
    store.add_new_points([0.1, 0.2], [[0.5, 0.5], [0.9, 0.8]])
    assert store.num_points == 3
    assert store.num_preferences == 1
    assert store.dim == 2

    p = store.add_new_points([0.3, 0.3], [[0.7, 0.1]])
    assert store.num_points == 5
    assert store.num_preferences == 2
    assert p.indices == (3, 4)
    assert torch.allclose(store.X[3], torch.tensor([0.3, 0.3], dtype=torch.float64))
    assert torch.allclose(store.X[4], torch.tensor([0.7, 0.1], dtype=torch.float64))


def test_append_observation_errors():
    store = ObservationStore()
    with pytest.raises(EmptyOtherSet):
        store.add_new_points([0.1, 0.2], [])
    store.add_new_points([0.1, 0.2], [[0.5, 0.5]])
    with pytest.raises(DimensionMismatch):
        store.add_new_points([0.1, 0.2, 0.3], [[0.5, 0.5, 0.5]])
    with pytest.raises(DimensionMismatch):
        store.add_new_points([0.1, 0.2], [[0.5, 0.5, 0.5]])
    assert store.num_points == 2
    assert store.num_preferences == 1


def test_declared_dimension_is_enforced():
    store = ObservationStore(dim=3)
    with pytest.raises(DimensionMismatch):
        store.add_new_points([0.1, 0.2], [[0.5, 0.5]])


def test_merge_rewrites_preferences_to_surviving_index():
    store = ObservationStore()
    store.add_new_points([0.1, 0.1], [[0.9, 0.9]])
    p = store.add_new_points([0.5, 0.5], [[0.1, 0.1 + 1e-6]])
    assert store.num_points == 3
    assert p.indices == (2, 0)
    assert store.preferences[0].indices == (0, 1)


def test_merge_compacts_and_renumbers():
    X = torch.tensor([
        [0.0, 0.0],
        [0.5, 0.5],
        [0.5, 0.5 + 1e-6],
        [1.0, 1.0],
    ], dtype=torch.float64)
    prefs = [Preference((0, 2)), Preference((3, 1))]
    X_new, merged, mapping = merge_points(X, prefs, epsilon=1e-4)
    assert X_new.shape == (3, 2)
    assert mapping == {0: 0, 1: 1, 2: 1, 3: 2}
    assert merged[0].indices == (0, 1)
    assert merged[1].indices == (2, 1)


def test_merge_is_idempotent():
    store = ObservationStore()
    store.add_new_points([0.2, 0.2], [[0.6, 0.6]], merge_close_points=False)
    store.add_new_points([0.6, 0.6 + 1e-6], [[0.2 + 1e-6, 0.2]], merge_close_points=False)
    assert store.num_points == 4

    store.merge_close_points(epsilon=1e-4)
    X, prefs = store.X.clone(), list(store.preferences)
    assert store.num_points == 2
    assert [p.indices for p in prefs] == [(0, 1), (1, 0)]

    mapping = store.merge_close_points(epsilon=1e-4)
    assert mapping == {0: 0, 1: 1}
    assert torch.equal(store.X, X)
    assert store.preferences == prefs


def test_merge_inside_one_preference_is_reported():
    store = ObservationStore()
    store.add_new_points([0.1, 0.1], [[0.9, 0.9]])
    with pytest.raises(InconsistentPreference):
        store.add_new_points([0.4, 0.4], [[0.4, 0.4 + 1e-7]])
    # The failed call leaves the store untouched
    assert store.num_points == 2
    assert store.num_preferences == 1


def test_add_preference_between_existing_points():
    store = ObservationStore()
    store.add_new_points([0.1, 0.1], [[0.9, 0.9], [0.5, 0.2]])
    p = store.add_preference([2, 1])
    assert p.indices == (2, 1)
    with pytest.raises(InconsistentPreference):
        store.add_preference([0, 3])


def test_snapshot_is_independent_of_store():
    store = ObservationStore()
    store.add_new_points([0.1, 0.1], [[0.9, 0.9]])
    X, prefs = store.snapshot()
    store.add_new_points([0.3, 0.3], [[0.7, 0.7]])
    assert X.shape[0] == 2
    assert len(prefs) == 1


def test_export_csv(tmp_path):
    store = ObservationStore()
    store.add_new_points([0.25, 0.5], [[0.75, 1.0], [0.0, 0.125]])
    x_path, d_path = store.export_csv(str(tmp_path / "dump"))

    rows = open(x_path).read().strip().splitlines()
    assert len(rows) == 3
    assert [float(v) for v in rows[1].split(",")] == [0.75, 1.0]
    assert open(d_path).read() == "0,1,2\n"


def test_preference_rejects_non_integer_indices():
    with pytest.raises(InconsistentPreference):
        Preference((1.7, 0))
    with pytest.raises(InconsistentPreference):
        Preference(("1", 0))
    assert Preference((torch.tensor(2), 0)).indices == (2, 0)
