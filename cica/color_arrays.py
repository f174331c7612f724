"""Vectorized color conversions over numpy arrays.

Every function takes an array shaped (..., 3) and returns a float64 array of
the same shape. Nothing here clamps; use clamp_srgb, clamp_lab and wrap_hsv
to apply the same domain rules as the value types.
"""
import numpy as np

from cica.color_space import (
    BRADFORD_D50_TO_D65,
    BRADFORD_D65_TO_D50,
    COLOR_EPSILON,
    D50_WHITE,
    LAB_EPSILON,
    LAB_OFFSET,
    LAB_SLOPE,
    LINEAR_SRGB_TO_XYZ_D65,
    XYZ_D65_TO_LINEAR_SRGB,
)
from cica.types import ColorArray, ColorShapeError, NonFiniteInputError

_D50 = np.array(tuple(D50_WHITE), dtype=np.float64)

# Fold adaptation and primaries into a single matrix each way
_XYZ_D50_TO_LINEAR_SRGB = np.array(XYZ_D65_TO_LINEAR_SRGB) @ np.array(BRADFORD_D50_TO_D65)
_LINEAR_SRGB_TO_XYZ_D50 = np.array(BRADFORD_D65_TO_D50) @ np.array(LINEAR_SRGB_TO_XYZ_D65)


def as_color_array(colors) -> ColorArray:
    """
    Validate and convert input to a float64 array shaped (..., 3).

    Raises:
        ColorShapeError: If the last axis does not hold 3 components
        NonFiniteInputError: If any component is NaN or infinite
    """
    arr = np.asarray(colors, dtype=np.float64)
    if arr.ndim == 0 or arr.shape[-1] != 3:
        raise ColorShapeError(f"Expected an array shaped (..., 3), got {arr.shape}")
    if not np.all(np.isfinite(arr)):
        raise NonFiniteInputError("Color array contains NaN or infinite values")
    return arr


def _lab_f(t: np.ndarray) -> np.ndarray:
    # cbrt keeps the unused branch of np.where free of NaN for negative t
    return np.where(t > LAB_EPSILON, np.cbrt(t), LAB_SLOPE * t + LAB_OFFSET)


def _lab_f_inv(t: np.ndarray) -> np.ndarray:
    t3 = t ** 3
    return np.where(t3 > LAB_EPSILON, t3, (t - LAB_OFFSET) / LAB_SLOPE)


def xyz_to_lab(xyz) -> ColorArray:
    """Convert D50 XYZ to CIE Lab."""
    xyz = as_color_array(xyz)
    f = _lab_f(xyz / _D50)

    L = 116.0 * f[..., 1] - 16.0
    a = 500.0 * (f[..., 0] - f[..., 1])
    b = 200.0 * (f[..., 1] - f[..., 2])

    return np.stack([L, a, b], axis=-1)


def lab_to_xyz(lab) -> ColorArray:
    """Convert CIE Lab to D50 XYZ."""
    lab = as_color_array(lab)
    fy = (lab[..., 0] + 16.0) / 116.0
    fx = lab[..., 1] / 500.0 + fy
    fz = fy - lab[..., 2] / 200.0

    f = np.stack([fx, fy, fz], axis=-1)
    return _lab_f_inv(f) * _D50


def xyz_to_linear_srgb(xyz) -> ColorArray:
    """Convert D50 XYZ to linear sRGB via Bradford adaptation to D65."""
    xyz = as_color_array(xyz)
    return xyz @ _XYZ_D50_TO_LINEAR_SRGB.T


def linear_srgb_to_xyz(linear) -> ColorArray:
    """Convert linear sRGB to D50 XYZ via Bradford adaptation from D65."""
    linear = as_color_array(linear)
    return linear @ _LINEAR_SRGB_TO_XYZ_D50.T


def linear_to_gamma(linear) -> np.ndarray:
    """Apply the sRGB encoding curve (OETF)."""
    linear = np.asarray(linear, dtype=np.float64)
    # Negative values never take the power branch
    safe = np.maximum(linear, 0.0031308)
    return np.where(
        linear <= 0.0031308,
        linear * 12.92,
        1.055 * safe ** (1.0 / 2.4) - 0.055
    )


def gamma_to_linear(gamma) -> np.ndarray:
    """Apply the sRGB decoding curve (EOTF)."""
    gamma = np.asarray(gamma, dtype=np.float64)
    safe = np.maximum(gamma, 0.040449936)
    return np.where(
        gamma <= 0.040449936,
        gamma / 12.92,
        ((safe + 0.055) / 1.055) ** 2.4
    )


def xyz_to_srgb(xyz) -> ColorArray:
    """Convert D50 XYZ to gamma-encoded sRGB (unclamped)."""
    return linear_to_gamma(xyz_to_linear_srgb(xyz))


def srgb_to_xyz(srgb) -> ColorArray:
    """Convert gamma-encoded sRGB to D50 XYZ."""
    srgb = as_color_array(srgb)
    return linear_srgb_to_xyz(gamma_to_linear(srgb))


def srgb_to_hsv(srgb) -> ColorArray:
    """
    Convert sRGB to HSV with hue in degrees.

    Hue is forced to 0 where delta or saturation falls below COLOR_EPSILON,
    matching the scalar engine.
    """
    srgb = as_color_array(srgb)
    r, g, b = srgb[..., 0], srgb[..., 1], srgb[..., 2]

    max_c = srgb.max(axis=-1)
    min_c = srgb.min(axis=-1)
    delta = max_c - min_c

    eps = np.finfo(np.float64).eps
    s = np.where(max_c < eps, 0.0, delta / np.where(max_c < eps, 1.0, max_c))
    v = max_c

    achromatic = (delta < COLOR_EPSILON) | (s < COLOR_EPSILON)
    safe_delta = np.where(achromatic, 1.0, delta)

    h_r = (60.0 * ((g - b) / safe_delta) + 360.0) % 360.0
    h_g = (60.0 * ((b - r) / safe_delta) + 120.0 + 360.0) % 360.0
    h_b = (60.0 * ((r - g) / safe_delta) + 240.0 + 360.0) % 360.0

    # Same precedence as the scalar engine: red, then green, then blue
    h = np.where(max_c == r, h_r, np.where(max_c == g, h_g, h_b))
    h = np.where(achromatic, 0.0, h)

    return np.stack([h, s, v], axis=-1)


def hsv_to_srgb(hsv) -> ColorArray:
    """Convert HSV (hue in degrees) to sRGB."""
    hsv = as_color_array(hsv)
    h, s, v = hsv[..., 0], hsv[..., 1], hsv[..., 2]

    c = v * s
    h_prime = h / 60.0
    x = c * (1.0 - np.abs((h_prime % 2.0) - 1.0))
    m = v - c
    zero = np.zeros_like(c)

    sector = np.clip(np.floor(h_prime), 0, 5).astype(np.intp)
    choices_r = np.stack([c, x, zero, zero, x, c])
    choices_g = np.stack([x, c, c, x, zero, zero])
    choices_b = np.stack([zero, zero, x, c, c, x])

    r1 = np.take_along_axis(choices_r, sector[np.newaxis], axis=0)[0]
    g1 = np.take_along_axis(choices_g, sector[np.newaxis], axis=0)[0]
    b1 = np.take_along_axis(choices_b, sector[np.newaxis], axis=0)[0]

    return np.stack([r1 + m, g1 + m, b1 + m], axis=-1)


def clamp_srgb(srgb) -> ColorArray:
    """Clamp every channel to [0, 1]."""
    return np.clip(as_color_array(srgb), 0.0, 1.0)


def clamp_lab(lab) -> ColorArray:
    """Clamp L to [0, 100]; a and b are left alone."""
    lab = as_color_array(lab).copy()
    lab[..., 0] = np.clip(lab[..., 0], 0.0, 100.0)
    return lab


def wrap_hsv(hsv) -> ColorArray:
    """Wrap hue into [0, 360) and clamp s, v to [0, 1]."""
    hsv = as_color_array(hsv).copy()
    h = hsv[..., 0] % 360.0
    hsv[..., 0] = np.where(h >= 360.0, 0.0, h)
    hsv[..., 1:] = np.clip(hsv[..., 1:], 0.0, 1.0)
    return hsv
