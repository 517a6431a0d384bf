"""
Analysis maps are images that are never drawn, but queried for their
pixel values, mostly to look up collision or elevation data.
"""

import typing as t

from staged_asset_loader.core.utils import clamp, lerp


Pixel = t.Tuple[int, int, int, int]


class AnalysisMap:
	"""
	An RGBA pixel buffer stored row by row, top row first.
	Coordinates outside of the map are clamped to its edges.
	"""

	__slots__ = ("width", "height", "_data")

	def __init__(self, width: int, height: int, data: bytes) -> None:
		if width <= 0 or height <= 0:
			raise ValueError("Analysis map dimensions must be positive")
		if len(data) != width * height * 4:
			raise ValueError(
				f"Expected {width * height * 4} bytes of RGBA data, got {len(data)}"
			)

		self.width = width
		self.height = height
		self._data = bytes(data)

	def get_pixel(self, x: int, y: int) -> Pixel:
		x = clamp(int(x), 0, self.width - 1)
		y = clamp(int(y), 0, self.height - 1)
		i = (y * self.width + x) * 4
		d = self._data
		return (d[i], d[i + 1], d[i + 2], d[i + 3])

	def get_pixel_f(self, x: int, y: int) -> t.Tuple[float, float, float, float]:
		"""
		Like ``get_pixel``, but with each channel scaled to [0, 1].
		"""
		return tuple(c / 255.0 for c in self.get_pixel(x, y))

	def get_pixel_bilinear(self, fx: float, fy: float) -> t.Tuple[float, float, float, float]:
		"""
		Samples the map at a fractional position, interpolating
		between the four surrounding pixels.
		"""
		x0 = int(fx) if fx >= 0 else int(fx) - 1
		y0 = int(fy) if fy >= 0 else int(fy) - 1
		rx = fx - x0
		ry = fy - y0

		top_left = self.get_pixel(x0, y0)
		top_right = self.get_pixel(x0 + 1, y0)
		bottom_left = self.get_pixel(x0, y0 + 1)
		bottom_right = self.get_pixel(x0 + 1, y0 + 1)

		return tuple(
			lerp(lerp(tl, tr, rx), lerp(bl, br, rx), ry)
			for tl, tr, bl, br in zip(top_left, top_right, bottom_left, bottom_right)
		)

	def get_pixel_f_bilinear(self, fx: float, fy: float) -> t.Tuple[float, float, float, float]:
		return tuple(c / 255.0 for c in self.get_pixel_bilinear(fx, fy))
