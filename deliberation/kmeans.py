"""Lloyd's k-means over opinion-space projections

Initialization is randomized. Repeated runs on identical input may give
different, equally valid partitions (up to label permutation); pass a
seeded random_state for reproducible output.
"""

from typing import Optional

import numpy as np
from sklearn.metrics import silhouette_score
from sklearn.utils import check_random_state

from config import get_logger
from deliberation.models import KMeansResult

logger = get_logger(__name__).bind(component="kmeans")

DEFAULT_CLUSTER_COUNT = 3
DEFAULT_MAX_ITERATIONS = 50


def suggest_cluster_count(n_participants: int, max_k: int = DEFAULT_CLUSTER_COUNT) -> int:
    """Pick a cluster count when the caller does not request one.

    Formula: K = min(max_k, floor(n/2)), at least 1

    Examples:
        - 3 participants -> K = 1
        - 4 participants -> K = 2
        - 6+ participants -> K = 3 (capped)
    """
    return max(1, min(max_k, n_participants // 2))


def _initial_centroids(points: np.ndarray, k: int, rng: np.random.RandomState) -> np.ndarray:
    """Choose k starting centroids from a random permutation of the points.

    Indices whose coordinates repeat an already chosen centroid are skipped
    while distinct points remain, so identical voters do not seed two
    clusters at the same spot.
    """
    order = rng.permutation(len(points))

    chosen = []
    skipped = []
    for idx in order:
        if any(np.allclose(points[idx], points[c]) for c in chosen):
            skipped.append(idx)
            continue
        chosen.append(idx)
        if len(chosen) == k:
            break

    # Fewer distinct points than clusters: fill with duplicates
    chosen.extend(skipped[: k - len(chosen)])

    return points[chosen].astype(float, copy=True)


def assign_clusters(points: np.ndarray, centroids: np.ndarray) -> np.ndarray:
    """Assign each point to its nearest centroid.

    Distance is squared Euclidean. np.argmin returns the first minimum,
    so ties go to the lowest centroid index.

    Args:
        points: (n, d) array
        centroids: (k, d) array

    Returns:
        Integer labels (n,)
    """
    if len(points) == 0 or len(centroids) == 0:
        return np.zeros(len(points), dtype=int)

    distances = np.sum((points[:, np.newaxis, :] - centroids[np.newaxis, :, :]) ** 2, axis=2)
    return np.argmin(distances, axis=1)


def _update_centroids(points: np.ndarray, labels: np.ndarray, centroids: np.ndarray) -> np.ndarray:
    # An empty cluster keeps its previous centroid; it is not reseeded
    updated = centroids.copy()
    for cluster_id in range(len(centroids)):
        mask = labels == cluster_id
        if np.any(mask):
            updated[cluster_id] = points[mask].mean(axis=0)
    return updated


def kmeans(
    points: np.ndarray,
    k: int = DEFAULT_CLUSTER_COUNT,
    max_iterations: int = DEFAULT_MAX_ITERATIONS,
    random_state=None,
) -> KMeansResult:
    """Partition points into at most k clusters.

    Args:
        points: Projections (n, d)
        k: Requested number of clusters (must be >= 1)
        max_iterations: Cap on assign/update rounds
        random_state: None, int seed or numpy RandomState for initialization

    Returns:
        KMeansResult with labels in [0, k') and k' = min(k, n) centroids
    """
    if k < 1:
        raise ValueError(f"Invalid cluster count: {k}. Must be at least 1.")

    points = np.asarray(points, dtype=float)
    n = len(points)

    if n == 0:
        dim = points.shape[1] if points.ndim == 2 else 0
        return KMeansResult(labels=np.zeros(0, dtype=int), centroids=np.zeros((0, dim)))

    k = min(k, n)
    rng = check_random_state(random_state)

    centroids = _initial_centroids(points, k, rng)
    labels = assign_clusters(points, centroids)

    iterations = 1
    while iterations < max_iterations:
        centroids = _update_centroids(points, labels, centroids)
        new_labels = assign_clusters(points, centroids)
        iterations += 1

        if np.array_equal(new_labels, labels):
            break
        labels = new_labels
    else:
        centroids = _update_centroids(points, labels, centroids)

    logger.debug("k-means finished", k=k, n_points=n, iterations=iterations)

    return KMeansResult(labels=labels, centroids=centroids, iterations=iterations)


def cluster_silhouette(points: np.ndarray, labels: np.ndarray) -> Optional[float]:
    """Silhouette score of a partition, or None when it is undefined.

    Undefined for fewer than 2 distinct labels or one label per point.
    """
    n_labels = len(set(np.asarray(labels).tolist()))
    if n_labels < 2 or n_labels > len(points) - 1:
        return None
    return float(silhouette_score(points, labels, metric="euclidean"))
