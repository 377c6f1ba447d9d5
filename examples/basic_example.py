"""Basic example of preference regression."""

import torch
from pref_gp import ObservationStore, PreferenceRegressor
from pref_gp.core import generate_random_vector


def simple_2d_function(x):
    """
    Simple 2D function standing in for a human judge.
    Global optimum at (0.5, 0.3).
    """
    return -(x[0] - 0.5)**2 - (x[1] - 0.3)**2


def main():
    print("="*60)
    print("Preference Regression Example")
    print("="*60)

    generator = torch.Generator().manual_seed(0)
    store = ObservationStore(dim=2)
    regressor = None

    for it in range(10):
        candidates = [generate_random_vector(2, generator) for _ in range(3)]
        if regressor is not None:
            candidates.append(regressor.best_sampled_point())

        # Simulated judge ranks the candidates best first
        ranked = sorted(candidates, key=simple_2d_function, reverse=True)
        store.add_new_points(ranked[0], ranked[1:])

        regressor = PreferenceRegressor(verbose=(it == 9)).fit(store, previous=regressor)
        best = regressor.best_sampled_point()
        print(f"  Iteration {it+1:2d}: {store.num_points:3d} points, "
              f"best ({best[0]:.4f}, {best[1]:.4f})")

    print("\n" + "="*60)
    print("RESULTS")
    print("="*60)
    best = regressor.best_sampled_point()
    print(f"Best point found: ({best[0]:.4f}, {best[1]:.4f})")
    print(f"Target optimum:   (0.5000, 0.3000)")
    print(f"Posterior mean / std at best: "
          f"{regressor.estimate_mean(best):.4f} / {regressor.estimate_std(best):.4f}")


if __name__ == "__main__":
    main()
