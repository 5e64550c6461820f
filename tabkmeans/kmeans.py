"""
K-means clustering over a NumTable.

Deterministic Lloyd iteration: seed with the first k rows, then repeat
assign -> update -> check until the centroid shift drops below the
tolerance or the iteration budget runs out.
"""

import numpy as np
from typing import Callable, Dict, Union

from numtable import NumTable


class InvalidClusterCountError(ValueError):
    """Requested cluster count is zero or exceeds the number of rows."""


class EmptyInputError(ValueError):
    """The table has no rows or no columns."""


def _first_k_init(X: np.ndarray, k: int) -> np.ndarray:
    """Take rows 0..k-1 verbatim as the initial centroids."""
    return X[:k].copy()


# Seeding strategies selectable by name through KMeans(init=...)
INIT_METHODS: Dict[str, Callable[[np.ndarray, int], np.ndarray]] = {
    'first-k': _first_k_init,
}


def euclidean_distances(X: np.ndarray, centroids: np.ndarray) -> np.ndarray:
    """Distances from every row of X to every centroid, shape (n_samples, n_clusters)."""
    diff = X[:, np.newaxis, :] - centroids[np.newaxis, :, :]
    return np.sqrt(np.sum(diff ** 2, axis=2))


def update_centroids(X: np.ndarray, labels: np.ndarray, centroids: np.ndarray) -> np.ndarray:
    """Mean of each cluster's rows; clusters with no rows keep their entry in ``centroids``."""
    new_centroids = np.array(centroids, dtype=np.float64)
    for k in range(len(new_centroids)):
        mask = labels == k
        if np.any(mask):
            new_centroids[k] = X[mask].mean(axis=0)
    return new_centroids


def calculate_inertia(X: np.ndarray, labels: np.ndarray, centroids: np.ndarray) -> float:
    """Within-cluster sum of squared distances."""
    assigned_centroids = centroids[labels]
    return float(np.sum((X - assigned_centroids) ** 2))


def centroid_shift(old: np.ndarray, new: np.ndarray) -> float:
    """Euclidean norm of all coordinate differences between two centroid sets."""
    return float(np.sqrt(np.sum((np.asarray(old) - np.asarray(new)) ** 2)))


class KMeans:
    """
    K-means clustering on a NumTable.

    Features:
    - Deterministic first-k seeding (pluggable through ``init``)
    - Lowest-index tie-break in the nearest-centroid search
    - Empty clusters keep their previous centroid
    - Reports whether the run converged or exhausted ``max_iters``
    """

    def __init__(
        self,
        n_clusters: int,
        max_iters: int = 300,
        tol: float = 1e-4,
        init: Union[str, Callable[[np.ndarray, int], np.ndarray]] = 'first-k',
        verbose: bool = False
    ):
        """
        Initialize K-means clustering.

        Args:
            n_clusters: Number of clusters
            max_iters: Maximum number of assign/update rounds
            tol: Convergence threshold on the centroid shift norm
            init: Name of a seeding strategy in INIT_METHODS, or a callable
                taking (matrix, k) and returning a (k, n_features) array
            verbose: Whether to print progress information
        """
        self.n_clusters = n_clusters
        self.max_iters = max_iters
        self.tol = tol
        self.init = init
        self.verbose = verbose

        # Results
        self.cluster_centers_ = None
        self.labels_ = None
        self.inertia_ = None
        self.n_iter_ = None
        self.converged_ = None
        self.shift_ = None

    def _validate(self, table: NumTable) -> None:
        if table.row_count == 0 or table.col_count == 0:
            raise EmptyInputError(
                f"Cannot cluster an empty table ({table.row_count} rows, {table.col_count} columns)"
            )
        if self.n_clusters < 1 or self.n_clusters > table.row_count:
            raise InvalidClusterCountError(
                f"n_clusters must be between 1 and {table.row_count}, got {self.n_clusters}"
            )
        if self.max_iters < 1:
            raise ValueError(f"max_iters must be at least 1, got {self.max_iters}")
        if self.tol < 0:
            raise ValueError(f"tol must be non-negative, got {self.tol}")

    def _init_centroids(self, X: np.ndarray) -> np.ndarray:
        """Seed centroids with the configured strategy."""
        if callable(self.init):
            init_func = self.init
        elif self.init in INIT_METHODS:
            init_func = INIT_METHODS[self.init]
        else:
            raise ValueError(f"Unknown initialization method: {self.init}")

        centroids = np.array(init_func(X, self.n_clusters), dtype=np.float64)
        if centroids.shape != (self.n_clusters, X.shape[1]):
            raise ValueError(
                f"Initial centroids have shape {centroids.shape}, "
                f"expected {(self.n_clusters, X.shape[1])}"
            )
        return centroids

    def _assign_clusters(self, X: np.ndarray, centroids: np.ndarray) -> np.ndarray:
        """Assign each row to the nearest centroid; ties go to the lowest index."""
        distances = euclidean_distances(X, centroids)
        # NaN never wins; argmin returns the first minimum
        distances[np.isnan(distances)] = np.inf
        return np.argmin(distances, axis=1)

    def _update_centroids(self, X: np.ndarray, labels: np.ndarray, centroids: np.ndarray) -> np.ndarray:
        """Mean of each cluster's rows; empty clusters keep their old centroid."""
        return update_centroids(X, labels, centroids)

    def _calculate_inertia(self, X: np.ndarray, labels: np.ndarray, centroids: np.ndarray) -> float:
        return calculate_inertia(X, labels, centroids)

    def fit(self, table: NumTable) -> 'KMeans':
        """
        Fit K-means clustering to the rows of a table.

        The table is only read. Fitting stops on the first round whose
        centroid shift is strictly below ``tol``, or after ``max_iters``
        rounds; ``converged_`` records which.

        Args:
            table: Input table

        Returns:
            self
        """
        self._validate(table)
        X = table.matrix

        if self.verbose:
            print(f"Fitting K-means with {self.n_clusters} clusters on "
                  f"{table.row_count} rows x {table.col_count} columns...")

        centroids = self._init_centroids(X)
        labels = None
        converged = False
        shift = None

        for iteration in range(self.max_iters):
            labels = self._assign_clusters(X, centroids)
            new_centroids = self._update_centroids(X, labels, centroids)
            shift = centroid_shift(centroids, new_centroids)
            centroids = new_centroids

            if self.verbose:
                print(f"Iteration {iteration + 1}, centroid shift: {shift:.6g}")

            if shift < self.tol:
                converged = True
                break

        self.cluster_centers_ = centroids
        self.labels_ = labels
        self.n_iter_ = iteration + 1
        self.converged_ = converged
        self.shift_ = shift
        self.inertia_ = self._calculate_inertia(X, labels, centroids)

        if self.verbose:
            if converged:
                print(f"Converged after {self.n_iter_} iterations")
            else:
                print(f"Stopped after {self.n_iter_} iterations without converging")
            print(f"Final inertia: {self.inertia_:.4f}")

        return self

    def predict(self, X: np.ndarray) -> np.ndarray:
        """
        Predict cluster labels for new points.

        Args:
            X: Points of shape (n_samples, n_features), or a NumTable

        Returns:
            Cluster labels
        """
        if self.cluster_centers_ is None:
            raise ValueError("Model must be fitted before prediction")

        if isinstance(X, NumTable):
            X = X.matrix
        X = np.atleast_2d(np.asarray(X, dtype=np.float64))
        if X.shape[1] != self.cluster_centers_.shape[1]:
            raise ValueError(
                f"Expected {self.cluster_centers_.shape[1]} features, got {X.shape[1]}"
            )
        return self._assign_clusters(X, self.cluster_centers_)

    def fit_predict(self, table: NumTable) -> np.ndarray:
        """Fit the model and return the assignment vector."""
        return self.fit(table).labels_

    def get_cluster_info(self) -> dict:
        """Get information about the clustering results."""
        if self.cluster_centers_ is None:
            raise ValueError("Model must be fitted first")

        cluster_sizes = np.bincount(self.labels_, minlength=self.n_clusters)

        return {
            'n_clusters': self.n_clusters,
            'inertia': self.inertia_,
            'n_iterations': self.n_iter_,
            'converged': self.converged_,
            'final_shift': self.shift_,
            'cluster_sizes': {k: int(size) for k, size in enumerate(cluster_sizes)},
            'empty_clusters': [k for k, size in enumerate(cluster_sizes) if size == 0],
            'avg_cluster_size': float(np.mean(cluster_sizes)),
            'min_cluster_size': int(np.min(cluster_sizes)),
            'max_cluster_size': int(np.max(cluster_sizes))
        }


def cluster(
    table: NumTable,
    k: int,
    max_iterations: int = 300,
    tolerance: float = 1e-4,
    verbose: bool = False
) -> np.ndarray:
    """
    Cluster the rows of ``table`` into ``k`` groups.

    Returns:
        Assignment vector of length ``table.row_count`` with entries in [0, k)
    """
    model = KMeans(n_clusters=k, max_iters=max_iterations, tol=tolerance, verbose=verbose)
    return model.fit_predict(table)
