"""
Collaborator services. A service receives a locator and reports the
outcome of loading it through one of two callbacks; it must never block
the caller.
"""

import abc
from concurrent.futures import Future
import json
import typing as t

from loguru import logger

from staged_asset_loader.core.errors import AbortedError

if t.TYPE_CHECKING:
	from staged_asset_loader.core.fetch import ResourceFetcher


T = t.TypeVar("T")

SuccessCallback = t.Callable[[t.Any], None]
FailureCallback = t.Callable[[t.Optional[BaseException]], None]


class ResourceService(abc.ABC):
	@abc.abstractmethod
	def start(
		self,
		locator: t.Any,
		on_success: SuccessCallback,
		on_failure: FailureCallback,
	) -> None:
		"""
		Starts loading the resource at ``locator``.
		Exactly one of ``on_success`` (with the loaded object) or
		``on_failure`` (with the cause, if any) must eventually be
		called, possibly from another thread.
		"""
		raise NotImplementedError()


class FetchDecodeService(ResourceService, t.Generic[T]):
	"""
	A service that reads its resource's bytes and decodes them, both
	on one of the fetcher's loader threads.
	"""

	def __init__(self, fetcher: "ResourceFetcher") -> None:
		self._fetcher = fetcher

	def start(
		self,
		locator: t.Any,
		on_success: SuccessCallback,
		on_failure: FailureCallback,
	) -> None:
		future = self._fetcher.submit(self.load, locator)
		future.add_done_callback(
			lambda future: self._relay(future, on_success, on_failure)
		)

	def _relay(
		self,
		future: Future,
		on_success: SuccessCallback,
		on_failure: FailureCallback,
	) -> None:
		if future.cancelled():
			on_failure(AbortedError())
			return

		if (exc := future.exception()) is not None:
			on_failure(exc)
			return

		try:
			self.deliver(future.result(), on_success, on_failure)
		except Exception as e:
			logger.warning(f"Failed delivering {self.__class__.__name__} result: {e}")
			on_failure(e)

	def deliver(self, item: T, on_success: SuccessCallback, on_failure: FailureCallback) -> None:
		"""
		Hands a decoded item to the success callback. Runs on the
		loader thread that decoded it.
		"""
		on_success(item)

	def load(self, locator: t.Any) -> T:
		return self.decode(self._fetcher.read(locator), locator)

	@abc.abstractmethod
	def decode(self, data: bytes, locator: t.Any) -> T:
		raise NotImplementedError()


class GeometryParseError(ValueError):
	pass


class Geometry:
	"""
	A geometry parsed out of a three.js JSON model (format 3).
	Vertices are scaled down by the model's ``scale`` already.
	"""

	__slots__ = ("vertices", "faces", "normals", "uvs", "materials", "metadata")

	def __init__(
		self,
		vertices: t.List[t.Tuple[float, float, float]],
		faces: t.List[int],
		normals: t.List[float],
		uvs: t.List[t.List[float]],
		materials: t.List[t.Dict[str, t.Any]],
		metadata: t.Dict[str, t.Any],
	) -> None:
		self.vertices = vertices
		self.faces = faces
		self.normals = normals
		self.uvs = uvs
		self.materials = materials
		self.metadata = metadata

	@property
	def vertex_count(self) -> int:
		return len(self.vertices)

	@classmethod
	def from_json(cls, data: t.Dict[str, t.Any]) -> "Geometry":
		"""
		:raises GeometryParseError: If ``data`` is not a model.
		"""
		if not isinstance(data, dict):
			raise GeometryParseError("Geometry json must be an object")

		raw_vertices = data.get("vertices", [])
		if len(raw_vertices) % 3 != 0:
			raise GeometryParseError(
				f"Vertex array length must be a multiple of 3, is {len(raw_vertices)}"
			)

		scale = data.get("scale", 1.0)
		if not scale:
			raise GeometryParseError("Geometry scale may not be zero")
		inv = 1.0 / scale
		vertices = [
			(raw_vertices[i] * inv, raw_vertices[i + 1] * inv, raw_vertices[i + 2] * inv)
			for i in range(0, len(raw_vertices), 3)
		]

		uvs = data.get("uvs", [])
		# Some exporters write a single flat uv layer
		if uvs and not isinstance(uvs[0], list):
			uvs = [uvs]

		return cls(
			vertices,
			data.get("faces", []),
			data.get("normals", []),
			uvs,
			data.get("materials", []),
			data.get("metadata", {}),
		)


class GeometryService(FetchDecodeService[Geometry]):
	def __init__(self, fetcher: "ResourceFetcher", encoding: str = "utf-8") -> None:
		super().__init__(fetcher)
		self._encoding = encoding

	def decode(self, data: bytes, locator: str) -> Geometry:
		try:
			raw = json.loads(data.decode(self._encoding))
		except (UnicodeDecodeError, json.JSONDecodeError) as e:
			raise GeometryParseError(f"Geometry {locator} is not valid json: {e}") from e

		geometry = Geometry.from_json(raw)
		logger.trace(f"Parsed geometry {locator} ({geometry.vertex_count} vertices)")
		return geometry
