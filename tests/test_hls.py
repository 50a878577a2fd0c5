import pytest

from stterm.hls import hls_to_rgb


def _components(color):
    return (color >> 16) & 0xFF, (color >> 8) & 0xFF, color & 0xFF


def test_full_lightness_without_saturation_is_white():
    assert hls_to_rgb(0, 100, 0) == 0xFFFFFF


def test_zero_lightness_without_saturation_is_black():
    assert hls_to_rgb(90, 0, 0) == 0


@pytest.mark.parametrize("lum", [0, 13, 50, 77, 100])
def test_unsaturated_colours_are_grey(lum):
    r, g, b = _components(hls_to_rgb(200, lum, 0))
    assert r == g == b


def test_red_sits_at_120_degrees():
    assert hls_to_rgb(120, 50, 100) == 0xFF0000


def test_blue_sits_at_0_degrees():
    r, g, b = _components(hls_to_rgb(0, 50, 100))
    assert b > r and b > g


@pytest.mark.parametrize("hue", [0, 45, 120, 200, 300, 359])
def test_hue_is_periodic(hue):
    assert hls_to_rgb(hue, 40, 80) == hls_to_rgb(hue + 360, 40, 80)


@pytest.mark.parametrize("hue", range(0, 360, 30))
@pytest.mark.parametrize("lum", [0, 25, 50, 75, 100])
@pytest.mark.parametrize("sat", [1, 50, 100])
def test_result_fits_in_24_bits(hue, lum, sat):
    assert 0 <= hls_to_rgb(hue, lum, sat) <= 0xFFFFFF