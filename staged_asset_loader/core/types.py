"""
Types that are shared between pretty much every part of the loader.
"""

import enum
import typing as t


class ResourceKind(enum.Enum):
	"""
	The fixed set of resource kinds. Member values are the keys used
	in resource manifests.
	"""

	TEXTURE = "textures"
	CUBEMAP = "texturesCube"
	GEOMETRY = "geometries"
	ANALYSIS_MAP = "analysers"
	IMAGE = "images"
	SOUND = "sounds"

	@classmethod
	def lookup(cls, kind: t.Any) -> t.Optional["ResourceKind"]:
		"""
		Returns the member for either a member or a manifest key,
		or ``None`` if ``kind`` is neither.
		"""
		if isinstance(kind, cls):
			return kind
		try:
			return cls(kind)
		except ValueError:
			return None


class Stage(enum.Enum):
	CRITICAL = "critical"
	DEFERRED = "deferred"


CRITICAL_COMPLETE = "critical_complete"
DEFERRED_COMPLETE = "deferred_complete"

CRITICAL_LOAD_ERROR_TAG = "critical_load"
"""
Name the error callback receives when a whole load call failed,
as opposed to a single resource.
"""

CUBEMAP_FACES = ("px", "nx", "py", "ny", "pz", "nz")
CUBEMAP_PLACEHOLDER = "%1"


class SoundLocator(t.NamedTuple):
	src: str
	loop: bool = False
	use_panner: bool = False


Locator = t.Union[str, SoundLocator]
ResourceManifest = t.Mapping[ResourceKind, t.Mapping[str, Locator]]


class ProgressCounter:
	"""
	Tracks how many resources out of a group have loaded.
	``total == remaining + loaded`` holds at all times.
	"""

	__slots__ = ("total", "remaining", "loaded", "finished")

	def __init__(self, total: int = 0) -> None:
		self.total = total
		self.remaining = total
		self.loaded = 0
		self.finished = False

	def add(self, count: int) -> None:
		self.total += count
		self.remaining += count
		self.finished = False

	def advance(self) -> None:
		self.remaining -= 1
		self.loaded += 1

	def is_complete(self) -> bool:
		return self.loaded == self.total

	def copy(self) -> "ProgressCounter":
		c = ProgressCounter()
		c.total = self.total
		c.remaining = self.remaining
		c.loaded = self.loaded
		c.finished = self.finished
		return c

	def __eq__(self, o: object) -> bool:
		if isinstance(o, ProgressCounter):
			return (
				o.total == self.total and
				o.remaining == self.remaining and
				o.loaded == self.loaded and
				o.finished == self.finished
			)
		return NotImplemented

	def __repr__(self) -> str:
		return (
			f"<{self.__class__.__name__} {self.loaded}/{self.total} "
			f"remaining={self.remaining} finished={self.finished}>"
		)


class StageConfig(t.NamedTuple):
	"""
	Staging policy for a single load call.

	`critical`: Whether to run the critical stage.
	`deferred`: Whether to run the deferred stage.
	`parallel_deferred`: Run the deferred stage alongside the critical
		one instead of after it.
	"""
	critical: bool = True
	deferred: bool = True
	parallel_deferred: bool = False

	@classmethod
	def from_dict(cls, data: t.Mapping[str, t.Any]) -> "StageConfig":
		return cls(
			critical = data.get("critical", True) is not False,
			deferred = data.get("deferred", True) is not False,
			parallel_deferred = data.get("parallelDeferred", False) is True,
		)
