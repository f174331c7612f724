"""cica: color space conversion and k-means++ color clustering."""
from cica.color_space import (
    ColorSpace,
    ColorSpaceKind,
    Hsv,
    Lab,
    Srgb,
    Xyz,
    convert,
)
from cica.kmeans import kmeans_pp, submit_kmeans
from cica.palette import Palette, PaletteEntry, extract_palette
from cica.types import (
    CicaError,
    EmptyClusterPolicy,
    EmptyPointSetError,
    InvalidClusterCountError,
    KMeansConfig,
    KMeansInputError,
    KMeansResult,
    NonFiniteInputError,
)

__version__ = "0.1.0"
__all__ = [
    "ColorSpace",
    "ColorSpaceKind",
    "Hsv",
    "Lab",
    "Srgb",
    "Xyz",
    "convert",
    "kmeans_pp",
    "submit_kmeans",
    "Palette",
    "PaletteEntry",
    "extract_palette",
    "CicaError",
    "EmptyClusterPolicy",
    "EmptyPointSetError",
    "InvalidClusterCountError",
    "KMeansConfig",
    "KMeansInputError",
    "KMeansResult",
    "NonFiniteInputError",
]
