"""Tests for color value types and scalar conversions."""

import math
import sys

import pytest

from cica.color_space import (
    COLOR_EPSILON,
    D50_WHITE,
    ColorSpace,
    ColorSpaceKind,
    Hsv,
    Lab,
    Srgb,
    Xyz,
    apply_matrices,
    convert,
    gamma_to_linear,
    hsv_to_srgb,
    lab_f,
    lab_f_inv,
    LAB_EPSILON,
    linear_to_gamma,
    srgb_to_hsv,
)
from cica.types import NonFiniteInputError


def hue_distance(h1: float, h2: float) -> float:
    d = abs(h1 - h2) % 360.0
    return min(d, 360.0 - d)


class TestDomainClamping:
    """Constructors clamp to each space's legal range."""

    def test_lab_lightness_clamped(self):
        """L above 100 is clamped, a and b are untouched."""
        lab = Lab(150.0, 10.0, 10.0)
        assert lab.l == 100.0
        assert lab.a == 10.0
        assert lab.b == 10.0

        assert Lab(-5.0, 300.0, -400.0) == Lab(0.0, 300.0, -400.0)

    def test_srgb_channels_clamped(self):
        """Each sRGB channel is clamped to [0, 1]."""
        srgb = Srgb(-1.0, 2.0, 0.5)
        assert srgb.r == 0.0
        assert srgb.g == 1.0
        assert srgb.b == 0.5

    def test_hsv_wrapped_and_clamped(self):
        """Hue wraps modulo 360, s and v are clamped."""
        hsv = Hsv(400.0, 2.0, -1.0)
        assert hsv.h == 40.0
        assert hsv.s == 1.0
        assert hsv.v == 0.0

    def test_hsv_negative_hue_wraps_positive(self):
        """Negative hues land in [0, 360)."""
        assert Hsv(-30.0, 0.5, 0.5).h == 330.0
        assert Hsv(360.0, 0.5, 0.5).h == 0.0
        assert 0.0 <= Hsv(-1e-20, 0.5, 0.5).h < 360.0

    def test_xyz_is_unbounded(self):
        """XYZ keeps out-of-gamut values."""
        xyz = Xyz(-0.5, 3.0, 12.0)
        assert tuple(xyz) == (-0.5, 3.0, 12.0)

    def test_non_finite_rejected(self):
        """NaN and infinity are rejected at construction."""
        with pytest.raises(NonFiniteInputError):
            Xyz(float('nan'), 0.0, 0.0)
        with pytest.raises(NonFiniteInputError):
            Lab(50.0, float('inf'), 0.0)
        with pytest.raises(NonFiniteInputError):
            Srgb(0.0, 0.0, float('-inf'))
        with pytest.raises(NonFiniteInputError):
            Hsv(float('inf'), 0.5, 0.5)

    def test_values_are_immutable(self):
        """Value objects cannot be mutated in place."""
        srgb = Srgb(0.1, 0.2, 0.3)
        with pytest.raises(AttributeError):
            srgb.r = 0.5


def assert_finite(value):
    assert all(math.isfinite(c) for c in value), tuple(value)


class TestExtremeValues:
    """Finite but huge inputs convert without raising; outputs are clamped."""

    def test_lab_cube_overflow(self):
        xyz = Lab(0.0, 1e106, 0.0).to_xyz()

        assert xyz.x == sys.float_info.max
        assert xyz.y == pytest.approx(0.0, abs=1e-12)
        assert lab_f_inv(1e106) == math.inf

    def test_lab_to_srgb_and_hsv(self):
        lab = Lab(0.0, 1e106, 0.0)
        srgb = lab.to_srgb()
        hsv = lab.to_hsv()

        assert all(0.0 <= c <= 1.0 for c in srgb)
        assert_finite(hsv)
        assert 0.0 <= hsv.h < 360.0

    @pytest.mark.parametrize("xyz", [
        Xyz(1e308, 0.0, 0.0),
        Xyz(-1e308, 0.0, 0.0),
        Xyz(sys.float_info.max, sys.float_info.max, 0.0),
        Xyz(sys.float_info.max, -sys.float_info.max, sys.float_info.max),
    ])
    def test_huge_xyz(self, xyz):
        srgb = Srgb.from_xyz(xyz)
        hsv = Hsv.from_xyz(xyz)
        lab = Lab.from_xyz(xyz)

        assert all(0.0 <= c <= 1.0 for c in srgb)
        assert 0.0 <= hsv.h < 360.0
        assert 0.0 <= hsv.s <= 1.0
        assert 0.0 <= hsv.v <= 1.0
        assert_finite(lab)

    def test_matrix_chain_never_cancels_to_nan(self):
        big = sys.float_info.max
        identity = ((1.0, 0.0, 0.0), (0.0, 1.0, 0.0), (0.0, 0.0, 1.0))
        spread = ((2.0, -2.0, 0.0), (0.0, 2.0, 0.0), (0.0, 0.0, 1.0))

        assert apply_matrices((identity,), 0.25, 0.5, 1.0) == (0.25, 0.5, 1.0)
        result = apply_matrices((spread, spread), big, big, 0.0)
        assert not any(math.isnan(c) for c in result)

    def test_direct_construction_still_rejects_infinity(self):
        with pytest.raises(NonFiniteInputError):
            Xyz(math.inf, 0.0, 0.0)


class TestWhitePoint:
    """The D50 white maps to sRGB white and Lab (100, 0, 0)."""

    def test_xyz_to_srgb(self):
        srgb = Srgb.from_xyz(D50_WHITE)
        for channel in srgb:
            assert 1.0 - COLOR_EPSILON < channel <= 1.0

    def test_xyz_to_lab(self):
        lab = Lab.from_xyz(D50_WHITE)
        assert 100.0 - COLOR_EPSILON < lab.l <= 100.0
        assert abs(lab.a) < COLOR_EPSILON
        assert abs(lab.b) < COLOR_EPSILON

    def test_black(self):
        """XYZ origin is sRGB black and Lab L=0."""
        black = Xyz(0.0, 0.0, 0.0)
        assert tuple(Srgb.from_xyz(black)) == (0.0, 0.0, 0.0)
        assert Lab.from_xyz(black).l == pytest.approx(0.0, abs=1e-9)


class TestAchromaticHsv:
    """Gray colors get hue 0 and saturation 0."""

    def test_white_to_hsv(self):
        hsv = Hsv.from_xyz(Srgb(1.0, 1.0, 1.0).to_xyz())
        assert 0.0 <= hsv.h <= COLOR_EPSILON
        assert 0.0 <= hsv.s <= COLOR_EPSILON
        assert 1.0 - COLOR_EPSILON < hsv.v <= 1.0

    def test_near_gray_hue_suppressed(self):
        """Deltas below 1/1024 give hue 0."""
        h, s, v = srgb_to_hsv(0.5, 0.5004, 0.5)
        assert h == 0.0
        assert v == 0.5004

    def test_black_has_zero_saturation(self):
        assert srgb_to_hsv(0.0, 0.0, 0.0) == (0.0, 0.0, 0.0)


class TestRoundTrip:
    """space -> XYZ -> space is the identity for in-range colors."""

    @pytest.mark.parametrize("rgb", [
        (0.0, 0.0, 0.0),
        (1.0, 1.0, 1.0),
        (1.0, 0.5, 0.0),
        (0.2, 0.4, 0.6),
        (0.02, 0.03, 0.01),
        (0.9, 0.1, 0.75),
    ])
    def test_srgb_round_trip(self, rgb):
        srgb = Srgb(*rgb)
        back = Srgb.from_xyz(srgb.to_xyz())
        for a, b in zip(srgb, back):
            assert a == pytest.approx(b, abs=1e-4)

    @pytest.mark.parametrize("lab_values", [
        (0.0, 0.0, 0.0),
        (100.0, 0.0, 0.0),
        (50.0, 25.0, -10.0),
        (3.0, 5.0, -4.0),
        (75.0, -60.0, 80.0),
    ])
    def test_lab_round_trip(self, lab_values):
        lab = Lab(*lab_values)
        back = Lab.from_xyz(lab.to_xyz())
        for a, b in zip(lab, back):
            assert a == pytest.approx(b, abs=1e-4)

    @pytest.mark.parametrize("hsv_values", [
        (180.0, 0.5, 0.8),
        (30.0, 1.0, 1.0),
        (90.0, 0.25, 0.4),
        (210.0, 0.9, 0.6),
        (300.0, 0.6, 0.9),
    ])
    def test_hsv_round_trip(self, hsv_values):
        hsv = Hsv(*hsv_values)
        back = Hsv.from_xyz(hsv.to_xyz())
        assert hue_distance(hsv.h, back.h) < 1e-3
        assert back.s == pytest.approx(hsv.s, abs=1e-4)
        assert back.v == pytest.approx(hsv.v, abs=1e-4)


class TestScalarHelpers:
    """Piecewise helpers are inverses of each other."""

    @pytest.mark.parametrize("t", [0.0, 0.001, LAB_EPSILON, 0.01, 0.5, 1.0, 1.5])
    def test_lab_f_inverse(self, t):
        assert lab_f_inv(lab_f(t)) == pytest.approx(t, abs=1e-12)

    def test_lab_f_continuous_at_threshold(self):
        """The linear ramp meets the cube root at (6/29)^3."""
        below = lab_f(LAB_EPSILON)
        above = lab_f(LAB_EPSILON * (1 + 1e-12))
        assert below == pytest.approx(6.0 / 29.0, abs=1e-9)
        assert above == pytest.approx(below, abs=1e-9)

    @pytest.mark.parametrize("c", [0.0, 0.002, 0.003, 0.004, 0.2, 0.5, 1.0])
    def test_companding_inverse(self, c):
        assert gamma_to_linear(linear_to_gamma(c)) == pytest.approx(c, abs=1e-7)

    def test_hsv_sectors(self):
        """Primary and secondary colors land at their hue angles."""
        assert srgb_to_hsv(1.0, 0.0, 0.0)[0] == pytest.approx(0.0)
        assert srgb_to_hsv(1.0, 1.0, 0.0)[0] == pytest.approx(60.0)
        assert srgb_to_hsv(0.0, 1.0, 0.0)[0] == pytest.approx(120.0)
        assert srgb_to_hsv(0.0, 1.0, 1.0)[0] == pytest.approx(180.0)
        assert srgb_to_hsv(0.0, 0.0, 1.0)[0] == pytest.approx(240.0)
        assert srgb_to_hsv(1.0, 0.0, 1.0)[0] == pytest.approx(300.0)

    def test_hsv_to_srgb_sectors(self):
        assert hsv_to_srgb(0.0, 1.0, 1.0) == pytest.approx((1.0, 0.0, 0.0))
        assert hsv_to_srgb(120.0, 1.0, 1.0) == pytest.approx((0.0, 1.0, 0.0))
        assert hsv_to_srgb(240.0, 1.0, 1.0) == pytest.approx((0.0, 0.0, 1.0))
        assert hsv_to_srgb(330.0, 1.0, 1.0) == pytest.approx((1.0, 0.0, 0.5))


class TestConvert:
    """Pairwise conversions compose through XYZ."""

    def test_lab_to_hsv_matches_composition(self):
        lab = Lab(60.0, 30.0, 20.0)
        expected = Hsv.from_xyz(lab.to_xyz())
        assert convert(lab, Hsv) == expected
        assert lab.to_hsv() == expected

    def test_same_type_returns_value(self):
        srgb = Srgb(0.1, 0.2, 0.3)
        assert convert(srgb, Srgb) is srgb

    def test_hsv_to_srgb_direct_matches_pivot(self):
        hsv = Hsv(200.0, 0.5, 0.7)
        direct = hsv.to_srgb()
        pivot = Srgb.from_xyz(hsv.to_xyz())
        for a, b in zip(direct, pivot):
            assert a == pytest.approx(b, abs=1e-4)

    def test_hex(self):
        assert Srgb(1.0, 0.5, 0.0).to_hex() == "#FF8000"
        assert Srgb(0.0, 0.0, 0.0).to_hex() == "#000000"


class TestColorSpace:
    """The tagged union is lossless."""

    @pytest.mark.parametrize("value, kind", [
        (Xyz(1.0, 1.0, 1.0), ColorSpaceKind.XYZ),
        (Lab(50.0, 1.0, 2.0), ColorSpaceKind.LAB),
        (Srgb(0.1, 0.2, 0.3), ColorSpaceKind.SRGB),
        (Hsv(10.0, 0.2, 0.3), ColorSpaceKind.HSV),
    ])
    def test_round_trip(self, value, kind):
        cs = ColorSpace(value)
        assert cs.kind is kind
        assert cs.value is value
        assert cs.value == value

    def test_from_components(self):
        cs = ColorSpace.from_components(ColorSpaceKind.LAB, 150.0, 0.0, 0.0)
        assert isinstance(cs.value, Lab)
        assert cs.value.l == 100.0

    def test_to_xyz(self):
        cs = ColorSpace(Srgb(0.3, 0.6, 0.9))
        assert cs.to_xyz() == Srgb(0.3, 0.6, 0.9).to_xyz()
        assert cs.convert(Srgb) == Srgb(0.3, 0.6, 0.9)

    def test_parse_kind(self):
        assert ColorSpaceKind.parse("srgb") is ColorSpaceKind.SRGB
        assert ColorSpaceKind.parse(" Lab ") is ColorSpaceKind.LAB
        with pytest.raises(ValueError, match="Unknown color space"):
            ColorSpaceKind.parse("cmyk")

    def test_rejects_foreign_payload(self):
        with pytest.raises(TypeError):
            ColorSpace((0.1, 0.2, 0.3))

    def test_values_are_hashable(self):
        assert len({Srgb(0.1, 0.2, 0.3), Srgb(0.1, 0.2, 0.3)}) == 1
        assert hash(ColorSpace(Xyz(0.0, 0.0, 0.0))) == hash(ColorSpace(Xyz(0.0, 0.0, 0.0)))
