"""k-means++ clustering over 4D color samples.

Each point is [c0, c1, c2, w]. The fourth component is an ordinary coordinate
in the distance metric, not a sample weight.
"""
import logging
import os
from concurrent.futures import Future, ThreadPoolExecutor
from typing import List, Optional, Tuple

import numpy as np
from scipy.spatial.distance import cdist

from cica.types import (
    EmptyClusterPolicy,
    EmptyPointSetError,
    InvalidClusterCountError,
    KMeansConfig,
    KMeansResult,
    NonFiniteInputError,
    PointArray,
    PointShapeError,
)

logger = logging.getLogger(__name__)

DEFAULT_WEIGHT = 1.0


def as_points(points) -> PointArray:
    """
    Validate input points and return them as a float64 (n, 4) array.

    A 3-column input gets a weight column of 1.0 appended.

    Raises:
        EmptyPointSetError: If there are no points
        PointShapeError: If points are not shaped (n, 3) or (n, 4)
        NonFiniteInputError: If any component is NaN or infinite
    """
    arr = np.asarray(points, dtype=np.float64)

    if arr.size == 0:
        raise EmptyPointSetError("points must not be empty")

    if arr.ndim != 2 or arr.shape[1] not in (3, 4):
        raise PointShapeError(f"points must be shaped (n, 3) or (n, 4), got {arr.shape}")

    if not np.all(np.isfinite(arr)):
        bad_rows = np.flatnonzero(~np.all(np.isfinite(arr), axis=1))
        raise NonFiniteInputError(
            f"points contain NaN or infinite values (first bad row: {bad_rows[0]})"
        )

    if arr.shape[1] == 3:
        weights = np.full((arr.shape[0], 1), DEFAULT_WEIGHT)
        arr = np.hstack([arr, weights])

    return arr


def kmeans_pp(
    points,
    k: int,
    seed: int,
    config: Optional[KMeansConfig] = None
) -> KMeansResult:
    """
    Run k-means++ seeding followed by Lloyd's algorithm.

    Args:
        points: Points shaped (n, 4), or (n, 3) with implicit weight 1.0
        k: Number of clusters, 1 <= k <= n
        seed: Seed for the random generator; equal seeds give equal results
        config: Engine configuration (uses defaults if None)

    Returns:
        KMeansResult with per-cluster points, centroids and labels

    Raises:
        EmptyPointSetError: If points is empty
        InvalidClusterCountError: If k < 1 or k > number of points
        PointShapeError: If points have the wrong shape
        NonFiniteInputError: If points or distances are not finite
    """
    config = config or KMeansConfig()
    points = as_points(points)
    n = len(points)

    if k < 1:
        raise InvalidClusterCountError(f"k must be greater than 0, got {k}")
    if k > n:
        raise InvalidClusterCountError(
            f"k ({k}) cannot exceed the number of points ({n})"
        )

    rng = np.random.default_rng(seed)
    logger.info(f"Clustering {n} points into {k} clusters (seed={seed})")

    centroids = init_centroids_pp(points, k, rng)

    with _Reducer(points, config) as reducer:
        n_iter = 0
        while True:
            n_iter += 1
            _, sums, counts = reducer.assign_and_accumulate(centroids)
            new_centroids = compute_centroids(sums, counts, centroids, config.empty_cluster)

            shift = np.sum((new_centroids - centroids) ** 2, axis=1)
            centroids = new_centroids
            logger.debug(f"Iteration {n_iter}: max centroid shift {shift.max():.3g}")

            if np.all(shift < config.tolerance):
                break

            if config.max_iterations is not None and n_iter >= config.max_iterations:
                logger.warning(
                    f"k-means stopped after {n_iter} iterations without converging "
                    f"(max shift {shift.max():.3g})"
                )
                break

        labels, _, _ = reducer.assign_and_accumulate(centroids)

    clusters = [points[labels == i] for i in range(k)]
    logger.info(f"Converged after {n_iter} iterations, cluster sizes: {[len(c) for c in clusters]}")

    return KMeansResult(
        clusters=clusters,
        centroids=centroids,
        labels=labels,
        n_iter=n_iter
    )


def init_centroids_pp(points: PointArray, k: int, rng: np.random.Generator) -> np.ndarray:
    """
    Choose k initial centroids with probability proportional to D(x)^2.

    When every point already coincides with a chosen centroid the distance
    total is 0, and the next centroid is drawn uniformly instead.
    """
    n = len(points)
    centroids = np.empty((k, points.shape[1]), dtype=np.float64)

    first_idx = int(rng.integers(n))
    centroids[0] = points[first_idx]

    # Squared distance of every point to its nearest chosen centroid
    nearest_sq = _squared_distances(points, centroids[:1])[:, 0]

    for i in range(1, k):
        cumulative = np.cumsum(nearest_sq)
        total = cumulative[-1]

        if total > 0.0:
            threshold = rng.uniform(0.0, total)
            # First point whose running total reaches the threshold
            chosen_idx = int(np.searchsorted(cumulative, threshold, side='left'))
        else:
            logger.debug(f"All points coincide with chosen centroids, drawing centroid {i} uniformly")
            chosen_idx = int(rng.integers(n))

        centroids[i] = points[chosen_idx]
        nearest_sq = np.minimum(nearest_sq, _squared_distances(points, centroids[i:i + 1])[:, 0])

    return centroids


def assign_points(points: PointArray, centroids: np.ndarray) -> np.ndarray:
    """Index of the nearest centroid for each point; ties go to the lowest index."""
    return np.argmin(_squared_distances(points, centroids), axis=1)


def compute_centroids(
    sums: np.ndarray,
    counts: np.ndarray,
    previous: np.ndarray,
    empty_cluster: EmptyClusterPolicy = EmptyClusterPolicy.RETAIN
) -> np.ndarray:
    """Turn per-cluster sums and counts into mean centroids."""
    centroids = np.zeros_like(sums)
    filled = counts > 0
    centroids[filled] = sums[filled] / counts[filled, np.newaxis]

    empty = ~filled
    if np.any(empty):
        logger.debug(f"{int(np.sum(empty))} empty cluster(s), policy {empty_cluster.name}")
        if empty_cluster is EmptyClusterPolicy.RETAIN:
            centroids[empty] = previous[empty]

    return centroids


def submit_kmeans(
    points,
    k: int,
    seed: int,
    config: Optional[KMeansConfig] = None,
    executor: Optional[ThreadPoolExecutor] = None
) -> Future:
    """
    Run kmeans_pp in the background and return a Future for its result.

    Input errors are raised by the Future's result(), not here.
    """
    if executor is not None:
        return executor.submit(kmeans_pp, points, k, seed, config)

    own_executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="cica-kmeans")
    future = own_executor.submit(kmeans_pp, points, k, seed, config)
    own_executor.shutdown(wait=False)
    return future


def _squared_distances(points: np.ndarray, centroids: np.ndarray) -> np.ndarray:
    distances = cdist(points, centroids, metric='sqeuclidean')
    if not np.all(np.isfinite(distances)):
        raise NonFiniteInputError("Squared distances overflowed; coordinates are too large")
    return distances


def _assign_chunk(
    chunk: np.ndarray,
    centroids: np.ndarray
) -> Tuple[np.ndarray, np.ndarray, np.ndarray]:
    """Assign one chunk of points and accumulate its per-cluster sums and counts."""
    k = len(centroids)
    labels = assign_points(chunk, centroids)
    counts = np.bincount(labels, minlength=k)
    sums = np.zeros_like(centroids)
    np.add.at(sums, labels, chunk)
    return labels, sums, counts


class _Reducer:
    """Assignment and accumulation over chunks, optionally on a thread pool."""

    def __init__(self, points: PointArray, config: KMeansConfig):
        self.points = points
        self.chunks: List[np.ndarray] = [points]
        self.executor: Optional[ThreadPoolExecutor] = None

        if config.max_workers == -1:
            workers = os.cpu_count() or 1
        else:
            workers = config.max_workers

        if len(points) >= config.parallel_threshold and workers > 1:
            n_chunks = max(1, -(-len(points) // config.chunk_size))
            self.chunks = np.array_split(points, n_chunks)
            workers = min(workers, len(self.chunks))
            if workers > 1:
                logger.info(f"Using {workers} workers over {len(self.chunks)} chunks")
                self.executor = ThreadPoolExecutor(
                    max_workers=workers,
                    thread_name_prefix="cica-kmeans-worker"
                )

    def __enter__(self) -> "_Reducer":
        return self

    def __exit__(self, *exc_info) -> None:
        if self.executor is not None:
            self.executor.shutdown(wait=True)

    def assign_and_accumulate(
        self,
        centroids: np.ndarray
    ) -> Tuple[np.ndarray, np.ndarray, np.ndarray]:
        if self.executor is not None:
            partials = list(self.executor.map(lambda c: _assign_chunk(c, centroids), self.chunks))
        else:
            partials = [_assign_chunk(c, centroids) for c in self.chunks]

        labels = np.concatenate([p[0] for p in partials])
        sums = np.sum([p[1] for p in partials], axis=0)
        counts = np.sum([p[2] for p in partials], axis=0)
        return labels, sums, counts
