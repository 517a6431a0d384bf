"""
Services decoding images and sounds through pyglet.
Requires pyglet to be able to load its image module, so textures and
the like can only be decoded where a GL library is available.
"""

from io import BytesIO
import os
import typing as t
from urllib.parse import urlsplit

from loguru import logger
from pyglet import image
from pyglet import media

from staged_asset_loader.core.analysis_map import AnalysisMap
from staged_asset_loader.core.services import (
	FailureCallback, FetchDecodeService, GeometryService, ResourceService, SuccessCallback
)
from staged_asset_loader.core.sound import SoundBank, SoundHandle
from staged_asset_loader.core.types import CUBEMAP_FACES, ResourceKind, SoundLocator

if t.TYPE_CHECKING:
	from pyglet.clock import Clock
	from pyglet.image import ImageData
	from pyglet.media.codecs.base import Source
	from staged_asset_loader.core.fetch import ResourceFetcher


def _filename_hint(locator: str) -> str:
	"""
	pyglet picks decoders by file extension, so give it the last
	path component of the locator.
	"""
	return os.path.basename(urlsplit(locator).path) or "resource"


def decode_image(data: bytes, locator: str) -> "ImageData":
	return image.load(_filename_hint(locator), file=BytesIO(data)).get_image_data()


class ImageService(FetchDecodeService["ImageData"]):
	def decode(self, data: bytes, locator: str) -> "ImageData":
		return decode_image(data, locator)


class TextureService(FetchDecodeService[t.Any]):
	"""
	Decodes textures on a loader thread. If a clock is given, the
	texture is then created on the thread ticking that clock, which
	should be the one owning the GL context. Otherwise, the decoded
	image data is delivered as-is.
	"""

	def __init__(self, fetcher: "ResourceFetcher", clock: t.Optional["Clock"] = None) -> None:
		super().__init__(fetcher)
		self._clock = clock

	def decode(self, data: bytes, locator: str) -> "ImageData":
		return decode_image(data, locator)

	def deliver(
		self,
		item: "ImageData",
		on_success: SuccessCallback,
		on_failure: FailureCallback,
	) -> None:
		if self._clock is None:
			on_success(item)
			return

		self._clock.schedule_once(self._create_texture, 0.0, item, on_success, on_failure)

	def _create_texture(
		self,
		_dt: float,
		item: "ImageData",
		on_success: SuccessCallback,
		on_failure: FailureCallback,
	) -> None:
		try:
			texture = item.get_texture()
		except Exception as e:
			logger.warning(f"Failed creating texture from {item}: {e}")
			on_failure(e)
			return
		on_success(texture)


class CubeMap:
	"""
	The six decoded faces of a cubemap, keyed by face identifier.
	"""

	__slots__ = ("faces",)

	def __init__(self, faces: t.Dict[str, "ImageData"]) -> None:
		self.faces = faces

	def __getitem__(self, face: str) -> "ImageData":
		return self.faces[face]


class CubemapService(FetchDecodeService[CubeMap]):
	def load(self, locator: t.Tuple[str, ...]) -> CubeMap:
		if len(locator) != len(CUBEMAP_FACES):
			raise ValueError(f"Cubemap needs {len(CUBEMAP_FACES)} face locators, got {len(locator)}")
		return self.decode(tuple(self._fetcher.read(url) for url in locator), locator)

	def decode(self, data: t.Tuple[bytes, ...], locator: t.Tuple[str, ...]) -> CubeMap:
		"""
		Decodes the raw data of all six faces, in the order of
		``CUBEMAP_FACES``.
		"""
		return CubeMap({
			face: decode_image(face_data, url)
			for face, face_data, url in zip(CUBEMAP_FACES, data, locator)
		})


class AnalysisMapService(FetchDecodeService[AnalysisMap]):
	def decode(self, data: bytes, locator: str) -> AnalysisMap:
		img = decode_image(data, locator)
		# Negative pitch makes pyglet return rows top to bottom.
		raw = img.get_data("RGBA", -img.width * 4)
		return AnalysisMap(img.width, img.height, raw)


class SoundService(FetchDecodeService["Source"]):
	"""
	Decodes sounds fully into memory and registers them in a sound
	bank. Delivers a ``SoundHandle``.
	"""

	def __init__(self, fetcher: "ResourceFetcher", bank: SoundBank) -> None:
		super().__init__(fetcher)
		self.bank = bank

	def load(self, locator: SoundLocator) -> t.Tuple[SoundLocator, "Source"]:
		return (locator, self.decode(self._fetcher.read(locator.src), locator))

	def decode(self, data: bytes, locator: SoundLocator) -> "Source":
		return media.load(_filename_hint(locator.src), file=BytesIO(data), streaming=False)

	def deliver(
		self,
		item: t.Tuple[SoundLocator, "Source"],
		on_success: SuccessCallback,
		on_failure: FailureCallback,
	) -> None:
		locator, source = item
		handle: SoundHandle = self.bank.register(locator, source)
		on_success(handle)


def create_default_services(
	fetcher: "ResourceFetcher",
	bank: t.Optional[SoundBank] = None,
	clock: t.Optional["Clock"] = None,
) -> t.Dict[ResourceKind, ResourceService]:
	"""
	Creates the default service for every resource kind, all sharing
	the given fetcher.
	"""
	return {
		ResourceKind.TEXTURE: TextureService(fetcher, clock),
		ResourceKind.CUBEMAP: CubemapService(fetcher),
		ResourceKind.GEOMETRY: GeometryService(fetcher),
		ResourceKind.ANALYSIS_MAP: AnalysisMapService(fetcher),
		ResourceKind.IMAGE: ImageService(fetcher),
		ResourceKind.SOUND: SoundService(fetcher, SoundBank() if bank is None else bank),
	}
