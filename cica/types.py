"""Core types and exceptions for cica."""
from dataclasses import dataclass, field
from enum import Enum, auto
from typing import List, Optional

import numpy as np

# Type aliases
PointArray = np.ndarray  # (n, 4) float64
ColorArray = np.ndarray  # (..., 3) float64


class EmptyClusterPolicy(Enum):
    """What a centroid becomes when no point is assigned to it."""
    RETAIN = auto()  # keep the previous centroid
    ZERO = auto()    # collapse to the zero vector


@dataclass
class KMeansConfig:
    """Configuration for the k-means++ clustering engine."""
    # Convergence
    tolerance: float = 1e-6
    max_iterations: Optional[int] = None  # None = run until converged

    # Update step
    empty_cluster: EmptyClusterPolicy = EmptyClusterPolicy.RETAIN

    # Performance
    max_workers: int = -1  # -1 = auto
    parallel_threshold: int = 50000  # points needed before using the pool
    chunk_size: int = 16384

    def __post_init__(self):
        if self.tolerance <= 0:
            raise ValueError(f"tolerance must be > 0, got {self.tolerance}")
        if self.max_iterations is not None and self.max_iterations < 1:
            raise ValueError(f"max_iterations must be >= 1, got {self.max_iterations}")
        if self.max_workers == 0 or self.max_workers < -1:
            raise ValueError(f"max_workers must be -1 or >= 1, got {self.max_workers}")
        if self.parallel_threshold < 1:
            raise ValueError(f"parallel_threshold must be >= 1, got {self.parallel_threshold}")
        if self.chunk_size < 1:
            raise ValueError(f"chunk_size must be >= 1, got {self.chunk_size}")


@dataclass
class KMeansResult:
    """Result of a k-means++ clustering run."""
    clusters: List[np.ndarray]  # clusters[i] holds the points assigned to cluster i
    centroids: np.ndarray       # (k, 4)
    labels: np.ndarray = field(default_factory=lambda: np.empty(0, dtype=np.intp))
    n_iter: int = 0

    @property
    def k(self) -> int:
        return len(self.centroids)

    @property
    def sizes(self) -> List[int]:
        return [len(c) for c in self.clusters]


class CicaError(Exception):
    """Base exception for cica errors."""
    pass


class NonFiniteInputError(CicaError, ValueError):
    """Raised when NaN or infinity reaches a conversion or clustering boundary."""
    pass


class ColorShapeError(CicaError, ValueError):
    """Raised when a color batch does not have 3 components on its last axis."""
    pass


class KMeansInputError(CicaError, ValueError):
    """Base exception for rejected clustering parameters."""
    pass


class EmptyPointSetError(KMeansInputError):
    """Raised when clustering is requested over no points."""
    pass


class InvalidClusterCountError(KMeansInputError):
    """Raised when k is below 1 or exceeds the number of points."""
    pass


class PointShapeError(KMeansInputError):
    """Raised when points are not shaped (n, 3) or (n, 4)."""
    pass
