import pytest

from staged_asset_loader.core.analysis_map import AnalysisMap


# 2x2 map, top row red and green, bottom row blue and white
DATA = bytes((
	255, 0, 0, 255,    0, 255, 0, 255,
	0, 0, 255, 255,    255, 255, 255, 255,
))


@pytest.fixture
def amap():
	return AnalysisMap(2, 2, DATA)


def test_get_pixel(amap):
	assert amap.get_pixel(0, 0) == (255, 0, 0, 255)
	assert amap.get_pixel(1, 1) == (255, 255, 255, 255)


def test_get_pixel_clamps(amap):
	assert amap.get_pixel(-5, 0) == (255, 0, 0, 255)
	assert amap.get_pixel(9, 9) == (255, 255, 255, 255)


def test_get_pixel_f(amap):
	assert amap.get_pixel_f(1, 0) == (0.0, 1.0, 0.0, 1.0)


def test_bilinear(amap):
	assert amap.get_pixel_bilinear(0.0, 0.0) == (255, 0, 0, 255)
	r, g, b, a = amap.get_pixel_bilinear(0.5, 0.5)
	assert (r, g, b, a) == pytest.approx((127.5, 127.5, 127.5, 255.0))
	assert amap.get_pixel_f_bilinear(0.5, 0.0) == pytest.approx((0.5, 0.5, 0.0, 1.0))


@pytest.mark.parametrize("w, h, data", [
	(0, 2, b""),
	(2, 2, DATA[:-1]),
])
def test_bad_dimensions(w, h, data):
	with pytest.raises(ValueError):
		AnalysisMap(w, h, data)
