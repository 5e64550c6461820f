"""Diagnostics and evaluation helpers for clustering results."""

from typing import Dict, Optional, Sequence

import numpy as np
from sklearn.metrics import silhouette_score

from numtable import NumTable
from .kmeans import calculate_inertia, update_centroids


def render_assignments(labels: Sequence[int], table: Optional[NumTable] = None) -> str:
    """One ``<row label or index>\\t<cluster>`` line per row."""
    labels = np.asarray(labels)
    if table is not None and len(table.row_labels) != len(labels):
        raise ValueError(
            f"Got {len(labels)} assignments for a table with {table.row_count} rows"
        )
    names = table.row_labels if table is not None else range(len(labels))
    return "\n".join(f"{name}\t{int(c)}" for name, c in zip(names, labels))


def cluster_sizes(labels: Sequence[int], k: int) -> Dict[int, int]:
    """Number of rows per cluster index, including clusters with no rows."""
    labels = np.asarray(labels, dtype=np.int64)
    if labels.size and (labels.min() < 0 or labels.max() >= k):
        raise ValueError(f"Cluster labels must lie in [0, {k}), got {labels.min()}..{labels.max()}")
    counts = np.bincount(labels, minlength=k)
    return {c: int(n) for c, n in enumerate(counts)}


def evaluate_clustering(
    table: NumTable,
    labels: Sequence[int],
    centroids: Optional[np.ndarray] = None
) -> dict:
    """
    Summarize a clustering of ``table``.

    Args:
        table: Clustered table
        labels: Assignment vector, one entry per row
        centroids: Cluster centers; computed as per-cluster means if omitted

    Returns:
        Dict with inertia, cluster sizes and silhouette score (None when
        the score is undefined: fewer than 2 or as many clusters as rows)
    """
    X = table.matrix
    labels = np.asarray(labels, dtype=np.int64)
    if labels.shape != (table.row_count,):
        raise ValueError(
            f"Got {labels.size} assignments for a table with {table.row_count} rows"
        )

    k = int(labels.max()) + 1 if labels.size else 0
    if centroids is None:
        centroids = update_centroids(X, labels, np.zeros((k, table.col_count)))
    centroids = np.asarray(centroids, dtype=np.float64)

    inertia = calculate_inertia(X, labels, centroids) if labels.size else 0.0

    n_distinct = len(np.unique(labels))
    silhouette = None
    if 2 <= n_distinct < table.row_count:
        silhouette = float(silhouette_score(X, labels))

    return {
        'inertia': inertia,
        'n_clusters': max(k, len(centroids)),
        'cluster_sizes': cluster_sizes(labels, max(k, len(centroids))),
        'silhouette': silhouette,
    }
