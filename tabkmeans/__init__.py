"""
K-means clustering for rows of a numeric table.
"""

from .kmeans import (
    KMeans,
    cluster,
    euclidean_distances,
    centroid_shift,
    update_centroids,
    calculate_inertia,
    InvalidClusterCountError,
    EmptyInputError,
    INIT_METHODS,
)
from .utils import render_assignments, cluster_sizes, evaluate_clustering
from .version import __version__

__all__ = [
    "KMeans",
    "cluster",
    "euclidean_distances",
    "centroid_shift",
    "update_centroids",
    "calculate_inertia",
    "InvalidClusterCountError",
    "EmptyInputError",
    "INIT_METHODS",
    "render_assignments",
    "cluster_sizes",
    "evaluate_clustering",
]
