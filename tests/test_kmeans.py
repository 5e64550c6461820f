import os
import sys

import numpy as np
import pytest
from sklearn.cluster import KMeans as SklearnKMeans

sys.path.append(os.path.join(os.path.dirname(__file__), '..'))
from numtable import NumTable
from tabkmeans import (
    KMeans,
    cluster,
    centroid_shift,
    euclidean_distances,
    update_centroids,
    calculate_inertia,
    InvalidClusterCountError,
    EmptyInputError,
)


def _table(rows):
    return NumTable.from_rows([f"r{i}" for i in range(len(rows))], rows)


def _blobs(seed=42):
    """Three separated blobs, interleaved so rows 0..2 come from different blobs."""
    rng = np.random.default_rng(seed)
    centers = np.array([[0.0, 0.0, 0.0], [8.0, 8.0, 0.0], [-6.0, 5.0, 4.0]])
    X = np.vstack([rng.normal(loc=c, scale=0.5, size=(40, 3)) for c in centers])
    order = np.arange(120).reshape(3, 40).T.ravel()
    return X[order]


def test_scenario_two_rows_two_clusters():
    table = _table([[1.1, 2.3], [4.0, 0.2]])
    labels = cluster(table, k=2, max_iterations=10, tolerance=1e-6)
    assert labels.tolist() == [0, 1]


def test_single_cluster_is_global_mean():
    X = _blobs()
    table = _table(X)
    km = KMeans(n_clusters=1, max_iters=10, tol=1e-9).fit(table)
    assert km.labels_.tolist() == [0] * len(X)
    assert km.converged_
    # First update lands on the mean; the next round sees no movement
    assert km.n_iter_ == 2
    np.testing.assert_allclose(km.cluster_centers_[0], X.mean(axis=0))

    one_round = KMeans(n_clusters=1, max_iters=1, tol=1e-9).fit(table)
    assert one_round.labels_.tolist() == [0] * len(X)
    assert not one_round.converged_
    np.testing.assert_allclose(one_round.cluster_centers_[0], X.mean(axis=0))


def test_update_centroids_and_inertia():
    X = np.array([[0.0, 0.0], [2.0, 0.0], [10.0, 4.0]])
    previous = np.array([[1.0, 1.0], [9.0, 9.0], [-3.0, -3.0]])
    labels = np.array([0, 0, 1])
    new = update_centroids(X, labels, previous)
    np.testing.assert_array_equal(new, [[1.0, 0.0], [10.0, 4.0], [-3.0, -3.0]])
    np.testing.assert_array_equal(previous[2], [-3.0, -3.0])
    assert calculate_inertia(X, labels, new) == pytest.approx(2.0)


def test_k_equals_row_count_gives_singletons():
    rng = np.random.default_rng(3)
    X = rng.normal(size=(12, 4))
    km = KMeans(n_clusters=12, max_iters=1, tol=1e-9).fit(_table(X))
    assert km.labels_.tolist() == list(range(12))
    np.testing.assert_array_equal(km.cluster_centers_, X)
    assert km.shift_ == 0.0
    assert km.converged_


def test_tie_goes_to_lowest_index():
    # Row 2 is equidistant from both seeds
    table = _table([[0.0], [2.0], [1.0]])
    km = KMeans(n_clusters=2, max_iters=1, tol=1e-9).fit(table)
    assert km.labels_.tolist() == [0, 1, 0]


def test_empty_cluster_keeps_previous_centroid():
    # Duplicate seeds: every row ties and goes to cluster 0, cluster 1 is empty
    table = _table([[0.0], [0.0], [5.0]])
    km = KMeans(n_clusters=2, max_iters=1, tol=1e-9).fit(table)
    assert km.labels_.tolist() == [0, 0, 0]
    np.testing.assert_allclose(km.cluster_centers_, [[5.0 / 3.0], [0.0]])
    assert not km.converged_
    assert km.get_cluster_info()['empty_clusters'] == [1]

    km = KMeans(n_clusters=2, max_iters=10, tol=1e-9).fit(table)
    assert km.labels_.tolist() == [1, 1, 0]
    assert km.converged_
    assert km.n_iter_ == 3


def test_exhaustion_returns_last_round():
    X = _blobs()
    km = KMeans(n_clusters=3, max_iters=1, tol=0.0).fit(_table(X))
    assert km.n_iter_ == 1
    assert not km.converged_
    seeds = X[:3]
    expected = np.argmin(np.linalg.norm(X[:, None] - seeds[None], axis=2), axis=1)
    np.testing.assert_array_equal(km.labels_, expected)


def test_deterministic():
    table = _table(_blobs(seed=7))
    first = cluster(table, k=3, max_iterations=50, tolerance=1e-6)
    for _ in range(3):
        np.testing.assert_array_equal(cluster(table, k=3, max_iterations=50, tolerance=1e-6), first)


def test_matches_sklearn_with_same_seeds():
    X = _blobs()
    km = KMeans(n_clusters=3, max_iters=100, tol=1e-8).fit(_table(X))
    ref = SklearnKMeans(n_clusters=3, init=X[:3], n_init=1, max_iter=100, tol=1e-8)
    ref.fit(X)
    np.testing.assert_array_equal(km.labels_, ref.labels_)
    np.testing.assert_allclose(km.cluster_centers_, ref.cluster_centers_, atol=1e-8)
    assert km.inertia_ == pytest.approx(ref.inertia_, rel=1e-6)
    assert km.converged_


def test_table_not_mutated():
    X = _blobs()
    table = _table(X)
    before = table.values.copy()
    KMeans(n_clusters=3).fit(table)
    np.testing.assert_array_equal(table.values, before)
    assert not table.values.flags.writeable


def test_centroid_shift():
    rng = np.random.default_rng(1)
    a = rng.normal(size=(4, 3))
    b = rng.normal(size=(4, 3))
    assert centroid_shift(a, a) == 0.0
    assert centroid_shift(a, b) > 0.0
    assert centroid_shift(a, b) == pytest.approx(np.linalg.norm((a - b).ravel()))


def test_euclidean_distances():
    X = np.array([[0.0, 0.0], [3.0, 4.0]])
    C = np.array([[0.0, 0.0], [3.0, 0.0]])
    np.testing.assert_allclose(euclidean_distances(X, C), [[0.0, 3.0], [5.0, 4.0]])


@pytest.mark.parametrize("k", [0, -1, 4])
def test_invalid_cluster_count(k):
    table = _table([[1.0], [2.0], [3.0]])
    with pytest.raises(InvalidClusterCountError):
        KMeans(n_clusters=k).fit(table)


def test_empty_input():
    with pytest.raises(EmptyInputError):
        cluster(NumTable(), k=1)
    no_columns = NumTable.from_rows(["a", "b"], [[], []])
    with pytest.raises(EmptyInputError):
        cluster(no_columns, k=1)


def test_invalid_iteration_settings():
    table = _table([[1.0], [2.0]])
    with pytest.raises(ValueError):
        KMeans(n_clusters=1, max_iters=0).fit(table)
    with pytest.raises(ValueError):
        KMeans(n_clusters=1, tol=-1.0).fit(table)


def test_init_hook():
    table = _table([[0.0], [0.1], [10.0], [10.1]])
    km = KMeans(n_clusters=2, init=lambda X, k: X[-k:]).fit(table)
    assert km.labels_.tolist() == [0, 0, 1, 1]

    with pytest.raises(ValueError):
        KMeans(n_clusters=2, init='k-means++').fit(table)
    with pytest.raises(ValueError):
        KMeans(n_clusters=2, init=lambda X, k: X[:1]).fit(table)


def test_predict():
    table = _table([[0.0, 0.0], [0.2, 0.0], [9.0, 9.0], [9.2, 9.0]])
    km = KMeans(n_clusters=2).fit(table)
    np.testing.assert_array_equal(km.predict([[0.1, 0.1], [8.0, 8.0]]), [0, 1])
    # NaN distances never win
    np.testing.assert_array_equal(km.predict([[np.nan, 0.0]]), [0])
    with pytest.raises(ValueError):
        km.predict([[1.0, 2.0, 3.0]])
    with pytest.raises(ValueError):
        KMeans(n_clusters=2).predict([[0.0, 0.0]])


def test_cluster_info():
    X = _blobs()
    km = KMeans(n_clusters=3).fit(_table(X))
    info = km.get_cluster_info()
    assert info['n_clusters'] == 3
    assert sum(info['cluster_sizes'].values()) == len(X)
    assert info['cluster_sizes'] == {0: 40, 1: 40, 2: 40}
    assert info['converged']


def test_verbose_output(capsys):
    KMeans(n_clusters=2, verbose=True).fit(_table([[0.0], [1.0], [5.0]]))
    out = capsys.readouterr().out
    assert "Fitting K-means with 2 clusters" in out
    assert "Converged after" in out
