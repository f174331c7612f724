"""Representative color extraction from batches of XYZ samples."""
import logging
from dataclasses import dataclass, field
from typing import List, Optional

import numpy as np

from cica import color_arrays
from cica.color_space import Lab, Srgb
from cica.kmeans import DEFAULT_WEIGHT, kmeans_pp
from cica.types import KMeansConfig, KMeansResult, PointShapeError

logger = logging.getLogger(__name__)


@dataclass
class PaletteEntry:
    """One representative color and the share of samples it stands for."""
    lab: Lab
    srgb: Srgb
    count: int
    ratio: float
    weight: float = DEFAULT_WEIGHT  # mean weight channel of the cluster

    @property
    def hex(self) -> str:
        return self.srgb.to_hex()


@dataclass
class Palette:
    """Representative colors ordered by descending sample count."""
    entries: List[PaletteEntry] = field(default_factory=list)
    result: Optional[KMeansResult] = None

    def __len__(self) -> int:
        return len(self.entries)

    def __iter__(self):
        return iter(self.entries)

    @property
    def hex_colors(self) -> List[str]:
        return [entry.hex for entry in self.entries]


def extract_palette(
    xyz,
    k: int,
    seed: int = 42,
    weights=None,
    config: Optional[KMeansConfig] = None
) -> Palette:
    """
    Reduce XYZ samples to k representative colors.

    Samples are clustered in Lab (plus the weight channel), so distances are
    perceptual rather than tristimulus.

    Args:
        xyz: D50 XYZ samples shaped (n, 3)
        k: Number of representative colors
        seed: Random seed for reproducibility
        weights: Optional per-sample weight/alpha values shaped (n,)
        config: Clustering configuration (uses defaults if None)

    Returns:
        Palette sorted by cluster size, largest first

    Raises:
        KMeansInputError: If k or the sample count is invalid
        NonFiniteInputError: If samples or weights are not finite
    """
    xyz = np.asarray(xyz, dtype=np.float64)
    if xyz.size == 0:
        xyz = xyz.reshape(0, 3)
    if xyz.ndim != 2:
        raise PointShapeError(f"xyz samples must be shaped (n, 3), got {xyz.shape}")

    # An empty batch passes through and is rejected by the clustering engine
    lab = color_arrays.clamp_lab(color_arrays.xyz_to_lab(xyz))

    if weights is None:
        w = np.full((len(lab), 1), DEFAULT_WEIGHT)
    else:
        w = np.asarray(weights, dtype=np.float64).reshape(-1, 1)
        if len(w) != len(lab):
            raise PointShapeError(
                f"weights length ({len(w)}) does not match sample count ({len(lab)})"
            )

    points = np.hstack([lab, w])
    result = kmeans_pp(points, k, seed, config)

    total = len(points)
    entries = []
    for centroid, cluster in zip(result.centroids, result.clusters):
        lab_value = Lab(*centroid[:3])
        entries.append(PaletteEntry(
            lab=lab_value,
            srgb=lab_value.to_srgb(),
            count=len(cluster),
            ratio=len(cluster) / total,
            weight=float(centroid[3])
        ))

    # Stable sort keeps cluster order for equal counts
    entries.sort(key=lambda e: e.count, reverse=True)
    logger.info(f"Extracted {len(entries)} representative colors from {total} samples")

    return Palette(entries=entries, result=result)
