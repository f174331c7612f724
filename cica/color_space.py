"""Color space value types and conversions.

All conversions pivot through CIE XYZ referenced to the D50 white point.
sRGB is defined relative to D65, so XYZ <-> sRGB goes through a Bradford
chromatic adaptation before (or after) the sRGB matrices.

Value types clamp their components on construction. The plain-float helpers
below never clamp, so intermediate results may leave a space's legal range.
"""
import math
import sys
from dataclasses import dataclass
from enum import Enum
from typing import Iterator, Tuple, Type, TypeVar, Union

from cica.types import NonFiniteInputError

Triple = Tuple[float, float, float]
Matrix3 = Tuple[Triple, Triple, Triple]

COLOR_EPSILON = 1.0 / 1024.0

# Lab <-> XYZ constants
LAB_EPSILON = (6.0 / 29.0) ** 3
LAB_SLOPE = 841.0 / 108.0
LAB_OFFSET = 16.0 / 116.0

# Bradford chromatic adaptation matrices
# see also: http://www.brucelindbloom.com/index.html?Eqn_ChromAdapt.html
BRADFORD_D50_TO_D65: Matrix3 = (
    (0.9555766, -0.0230393, 0.0631636),
    (-0.0282895, 1.0099416, 0.0210077),
    (0.0122982, -0.0204830, 1.3299098),
)

BRADFORD_D65_TO_D50: Matrix3 = (
    (1.0478112, 0.0228866, -0.0501270),
    (0.0295424, 0.9904844, -0.0170491),
    (-0.0092345, 0.0150436, 0.7521316),
)

# sRGB primaries relative to D65
# see also: http://www.brucelindbloom.com/index.html?Eqn_RGB_XYZ_Matrix.html
XYZ_D65_TO_LINEAR_SRGB: Matrix3 = (
    (3.2404542, -1.5371385, -0.4985314),
    (-0.9692660, 1.8760108, 0.0415560),
    (0.0556434, -0.2040259, 1.0572252),
)

LINEAR_SRGB_TO_XYZ_D65: Matrix3 = (
    (0.4124564, 0.3575761, 0.1804375),
    (0.2126729, 0.7151522, 0.0721750),
    (0.0193339, 0.1191920, 0.9503041),
)


def _clamp(value: float, low: float, high: float) -> float:
    return min(max(value, low), high)


def _check_finite(name: str, *components: float) -> None:
    for component in components:
        if not math.isfinite(component):
            raise NonFiniteInputError(f"{name} components must be finite, got {components}")


# Components beyond this magnitude can overflow a 3x3 product into inf - inf
OVERFLOW_GUARD = 1e300


def _saturate(components: Triple, limit: float = sys.float_info.max) -> Triple:
    """Pull overflowed components back to the largest value of the same sign."""
    return tuple(_clamp(c, -limit, limit) for c in components)


@dataclass(frozen=True)
class Xyz:
    """CIE XYZ tristimulus values, D50-referenced. Unbounded."""
    x: float
    y: float
    z: float

    def __post_init__(self):
        _check_finite("Xyz", self.x, self.y, self.z)
        object.__setattr__(self, "x", float(self.x))
        object.__setattr__(self, "y", float(self.y))
        object.__setattr__(self, "z", float(self.z))

    def __iter__(self) -> Iterator[float]:
        return iter((self.x, self.y, self.z))

    def to_xyz(self) -> "Xyz":
        return self

    @classmethod
    def from_xyz(cls, xyz: "Xyz") -> "Xyz":
        return xyz

    def to_lab(self) -> "Lab":
        return Lab.from_xyz(self)

    def to_srgb(self) -> "Srgb":
        return Srgb.from_xyz(self)

    def to_hsv(self) -> "Hsv":
        return Hsv.from_xyz(self)


D50_WHITE = Xyz(0.964212, 1.0, 0.825188)
D65_WHITE = Xyz(0.95047, 1.0, 1.08883)


@dataclass(frozen=True)
class Lab:
    """CIE L*a*b* under D50.

    - l: Lightness, clamped to [0, 100]
    - a: Green-red axis, unbounded
    - b: Blue-yellow axis, unbounded
    """
    l: float
    a: float
    b: float

    def __post_init__(self):
        _check_finite("Lab", self.l, self.a, self.b)
        # a and b have no theoretical limit
        object.__setattr__(self, "l", _clamp(float(self.l), 0.0, 100.0))
        object.__setattr__(self, "a", float(self.a))
        object.__setattr__(self, "b", float(self.b))

    def __iter__(self) -> Iterator[float]:
        return iter((self.l, self.a, self.b))

    def to_xyz(self) -> Xyz:
        return Xyz(*_saturate(lab_to_xyz(self.l, self.a, self.b)))

    @classmethod
    def from_xyz(cls, xyz: Xyz) -> "Lab":
        return cls(*_saturate(xyz_to_lab(xyz.x, xyz.y, xyz.z)))

    def to_lab(self) -> "Lab":
        return self

    def to_srgb(self) -> "Srgb":
        return Srgb.from_xyz(self.to_xyz())

    def to_hsv(self) -> "Hsv":
        return Hsv.from_xyz(self.to_xyz())


@dataclass(frozen=True)
class Srgb:
    """Gamma-encoded sRGB, each channel clamped to [0, 1]."""
    r: float
    g: float
    b: float

    def __post_init__(self):
        _check_finite("Srgb", self.r, self.g, self.b)
        object.__setattr__(self, "r", _clamp(float(self.r), 0.0, 1.0))
        object.__setattr__(self, "g", _clamp(float(self.g), 0.0, 1.0))
        object.__setattr__(self, "b", _clamp(float(self.b), 0.0, 1.0))

    def __iter__(self) -> Iterator[float]:
        return iter((self.r, self.g, self.b))

    def to_xyz(self) -> Xyz:
        return Xyz(*srgb_to_xyz(self.r, self.g, self.b))

    @classmethod
    def from_xyz(cls, xyz: Xyz) -> "Srgb":
        return cls(*_saturate(xyz_to_srgb(xyz.x, xyz.y, xyz.z)))

    def to_lab(self) -> Lab:
        return Lab.from_xyz(self.to_xyz())

    def to_srgb(self) -> "Srgb":
        return self

    def to_hsv(self) -> "Hsv":
        return Hsv(*srgb_to_hsv(self.r, self.g, self.b))

    def to_hex(self) -> str:
        """Format as ``#RRGGBB`` using 8-bit rounding."""
        r, g, b = (int(round(c * 255.0)) for c in self)
        return f"#{r:02X}{g:02X}{b:02X}"


@dataclass(frozen=True)
class Hsv:
    """HSV.

    - h: Hue, wrapped into [0, 360)
    - s: Saturation, clamped to [0, 1]
    - v: Value, clamped to [0, 1]
    """
    h: float
    s: float
    v: float

    def __post_init__(self):
        _check_finite("Hsv", self.h, self.s, self.v)
        h = float(self.h) % 360.0
        if h >= 360.0:
            # tiny negative hues round up to 360.0 under floor modulo
            h = 0.0
        object.__setattr__(self, "h", h)
        object.__setattr__(self, "s", _clamp(float(self.s), 0.0, 1.0))
        object.__setattr__(self, "v", _clamp(float(self.v), 0.0, 1.0))

    def __iter__(self) -> Iterator[float]:
        return iter((self.h, self.s, self.v))

    def to_xyz(self) -> Xyz:
        r, g, b = hsv_to_srgb(self.h, self.s, self.v)
        return Xyz(*srgb_to_xyz(r, g, b))

    @classmethod
    def from_xyz(cls, xyz: Xyz) -> "Hsv":
        # Bounded channels keep max - min and the hue ratio finite
        r, g, b = _saturate(xyz_to_srgb(xyz.x, xyz.y, xyz.z), OVERFLOW_GUARD)
        return cls(*_saturate(srgb_to_hsv(r, g, b)))

    def to_lab(self) -> Lab:
        return Lab.from_xyz(self.to_xyz())

    def to_srgb(self) -> Srgb:
        return Srgb(*hsv_to_srgb(self.h, self.s, self.v))

    def to_hsv(self) -> "Hsv":
        return self


ColorValue = Union[Xyz, Lab, Srgb, Hsv]
C = TypeVar("C", Xyz, Lab, Srgb, Hsv)


def convert(value: ColorValue, target: Type[C]) -> C:
    """Convert any color value to ``target`` by pivoting through XYZ."""
    if isinstance(value, target):
        return value
    return target.from_xyz(value.to_xyz())


# ---------------------------------------------------------------------------
# Lab <-> XYZ
# ---------------------------------------------------------------------------

def lab_f(t: float) -> float:
    if t > LAB_EPSILON:
        return t ** (1.0 / 3.0)
    return LAB_SLOPE * t + LAB_OFFSET


def lab_f_inv(t: float) -> float:
    # float ** raises OverflowError, multiplication goes to inf
    t3 = t * t * t
    if t3 > LAB_EPSILON:
        return t3
    return (t - LAB_OFFSET) / LAB_SLOPE


def xyz_to_lab(x: float, y: float, z: float) -> Triple:
    fx = lab_f(x / D50_WHITE.x)
    fy = lab_f(y / D50_WHITE.y)
    fz = lab_f(z / D50_WHITE.z)

    l = 116.0 * fy - 16.0
    a = 500.0 * (fx - fy)
    b = 200.0 * (fy - fz)
    return l, a, b


def lab_to_xyz(l: float, a: float, b: float) -> Triple:
    fy = (l + 16.0) / 116.0
    fx = a / 500.0 + fy
    fz = fy - b / 200.0

    x = lab_f_inv(fx) * D50_WHITE.x
    y = lab_f_inv(fy) * D50_WHITE.y
    z = lab_f_inv(fz) * D50_WHITE.z
    return x, y, z


# ---------------------------------------------------------------------------
# XYZ <-> sRGB
# ---------------------------------------------------------------------------

def apply_matrix(m: Matrix3, c0: float, c1: float, c2: float) -> Triple:
    """Multiply a 3x3 matrix by a column vector."""
    return (
        m[0][0] * c0 + m[0][1] * c1 + m[0][2] * c2,
        m[1][0] * c0 + m[1][1] * c1 + m[1][2] * c2,
        m[2][0] * c0 + m[2][1] * c1 + m[2][2] * c2,
    )


def xyz_d50_to_d65(x: float, y: float, z: float) -> Triple:
    return apply_matrix(BRADFORD_D50_TO_D65, x, y, z)


def xyz_d65_to_d50(x: float, y: float, z: float) -> Triple:
    return apply_matrix(BRADFORD_D65_TO_D50, x, y, z)


def apply_matrices(matrices: Tuple[Matrix3, ...], c0: float, c1: float, c2: float) -> Triple:
    """
    Apply a chain of matrices, first to last.

    Huge finite components are scaled down before the products and back up
    after, so an overflow ends as +-inf rather than NaN.
    """
    scale = max(abs(c0), abs(c1), abs(c2))
    if scale > OVERFLOW_GUARD:
        c0, c1, c2 = c0 / scale, c1 / scale, c2 / scale
    else:
        scale = 1.0

    for m in matrices:
        c0, c1, c2 = apply_matrix(m, c0, c1, c2)
    return c0 * scale, c1 * scale, c2 * scale


def xyz_to_linear_srgb(x: float, y: float, z: float) -> Triple:
    """D50 XYZ to linear sRGB, adapting to D65 first."""
    return apply_matrices((BRADFORD_D50_TO_D65, XYZ_D65_TO_LINEAR_SRGB), x, y, z)


def linear_srgb_to_xyz(r: float, g: float, b: float) -> Triple:
    """Linear sRGB to D50 XYZ, adapting from D65 last."""
    return apply_matrices((LINEAR_SRGB_TO_XYZ_D65, BRADFORD_D65_TO_D50), r, g, b)


def linear_to_gamma(linear: float) -> float:
    if linear <= 0.0031308:
        return linear * 12.92
    return 1.055 * linear ** (1.0 / 2.4) - 0.055


def gamma_to_linear(gamma: float) -> float:
    if gamma <= 0.040449936:
        return gamma / 12.92
    return ((gamma + 0.055) / 1.055) ** 2.4


def xyz_to_srgb(x: float, y: float, z: float) -> Triple:
    r, g, b = xyz_to_linear_srgb(x, y, z)
    return linear_to_gamma(r), linear_to_gamma(g), linear_to_gamma(b)


def srgb_to_xyz(r: float, g: float, b: float) -> Triple:
    return linear_srgb_to_xyz(gamma_to_linear(r), gamma_to_linear(g), gamma_to_linear(b))


# ---------------------------------------------------------------------------
# sRGB <-> HSV
# ---------------------------------------------------------------------------

def srgb_to_hsv(r: float, g: float, b: float) -> Triple:
    max_c = max(r, g, b)
    min_c = min(r, g, b)
    delta = max_c - min_c

    s = 0.0 if max_c < sys.float_info.epsilon else delta / max_c
    v = max_c

    # Hue is unstable near the achromatic axis
    if delta < COLOR_EPSILON or s < COLOR_EPSILON:
        h = 0.0
    elif max_c == r:
        h = (60.0 * ((g - b) / delta) + 360.0) % 360.0
    elif max_c == g:
        h = (60.0 * ((b - r) / delta) + 120.0 + 360.0) % 360.0
    else:
        h = (60.0 * ((r - g) / delta) + 240.0 + 360.0) % 360.0
    return h, s, v


def hsv_to_srgb(h: float, s: float, v: float) -> Triple:
    # see also: https://en.wikipedia.org/wiki/HSL_and_HSV#To_RGB
    c = v * s
    h_prime = h / 60.0
    x = c * (1.0 - abs((h_prime % 2.0) - 1.0))
    m = v - c

    if h_prime < 1.0:
        r1, g1, b1 = c, x, 0.0
    elif h_prime < 2.0:
        r1, g1, b1 = x, c, 0.0
    elif h_prime < 3.0:
        r1, g1, b1 = 0.0, c, x
    elif h_prime < 4.0:
        r1, g1, b1 = 0.0, x, c
    elif h_prime < 5.0:
        r1, g1, b1 = x, 0.0, c
    else:
        r1, g1, b1 = c, 0.0, x

    return r1 + m, g1 + m, b1 + m


# ---------------------------------------------------------------------------
# Tagged union
# ---------------------------------------------------------------------------

class ColorSpaceKind(Enum):
    """Discriminant of a ColorSpace value."""
    XYZ = Xyz
    LAB = Lab
    SRGB = Srgb
    HSV = Hsv

    @classmethod
    def parse(cls, name: str) -> "ColorSpaceKind":
        try:
            return cls[name.strip().upper()]
        except KeyError:
            valid = ", ".join(kind.name.lower() for kind in cls)
            raise ValueError(f"Unknown color space '{name}' (expected one of: {valid})") from None


@dataclass(frozen=True)
class ColorSpace:
    """A color whose representation is chosen at runtime.

    Wrapping a value is lossless: ``ColorSpace(c).value is c``.
    """
    value: ColorValue

    def __post_init__(self):
        if not isinstance(self.value, (Xyz, Lab, Srgb, Hsv)):
            raise TypeError(f"ColorSpace payload must be Xyz, Lab, Srgb or Hsv, got {type(self.value).__name__}")

    @property
    def kind(self) -> ColorSpaceKind:
        return ColorSpaceKind(type(self.value))

    @classmethod
    def from_components(cls, kind: ColorSpaceKind, c0: float, c1: float, c2: float) -> "ColorSpace":
        return cls(kind.value(c0, c1, c2))

    def to_xyz(self) -> Xyz:
        return self.value.to_xyz()

    def convert(self, target: Type[C]) -> C:
        return convert(self.value, target)
