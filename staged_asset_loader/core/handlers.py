"""
Resource handlers. Each of them knows how to turn a locator of its
resource kind into a request to the collaborating service responsible
for that kind and reports the outcome through a future.
"""

from concurrent.futures import Future, InvalidStateError
import typing as t

from loguru import logger

from staged_asset_loader.core.errors import ResourceFault
from staged_asset_loader.core.types import (
	CUBEMAP_FACES, CUBEMAP_PLACEHOLDER, Locator, ResourceKind, SoundLocator
)

if t.TYPE_CHECKING:
	from staged_asset_loader.core.services import ResourceService


class ResourceHandler:
	"""
	Base resource handler. Subclasses set ``kind`` and may modify the
	locator before it is passed to the service.
	"""

	kind: t.ClassVar[ResourceKind]

	def __init__(self, service: "ResourceService") -> None:
		self._service = service

	def prepare_locator(self, locator: Locator) -> t.Any:
		if not isinstance(locator, str):
			raise TypeError(f"{self.kind.value} locator must be a string, got {locator!r}")
		return locator

	def fetch(self, name: str, locator: Locator) -> "Future[t.Any]":
		"""
		Starts loading a resource and returns a future that will
		receive either the loaded object or a ``ResourceFault``.
		Exceptions raised while starting the load are raised
		immediately.
		"""
		future: "Future[t.Any]" = Future()
		future.set_running_or_notify_cancel()

		def on_success(item: t.Any = None) -> None:
			self._settle(future, name, item, None)

		def on_failure(exc: t.Optional[BaseException] = None) -> None:
			if isinstance(exc, ResourceFault):
				fault = exc
				if fault.kind is None:
					fault.kind = self.kind
					fault.name = name
			else:
				fault = ResourceFault(f"Failed to load {self.kind.value}: {name}", self.kind, name)
				fault.__cause__ = exc
			self._settle(future, name, None, fault)

		self._service.start(self.prepare_locator(locator), on_success, on_failure)
		return future

	def _settle(
		self,
		future: "Future[t.Any]",
		name: str,
		item: t.Any,
		exc: t.Optional[BaseException],
	) -> None:
		try:
			if exc is None:
				future.set_result(item)
			else:
				future.set_exception(exc)
		except InvalidStateError:
			logger.warning(f"Service reported {self.kind.value}:{name} more than once, ignoring.")


class TextureHandler(ResourceHandler):
	kind = ResourceKind.TEXTURE


class CubemapHandler(ResourceHandler):
	kind = ResourceKind.CUBEMAP

	def prepare_locator(self, locator: Locator) -> t.Tuple[str, ...]:
		template = super().prepare_locator(locator)
		return tuple(template.replace(CUBEMAP_PLACEHOLDER, face) for face in CUBEMAP_FACES)


class GeometryHandler(ResourceHandler):
	kind = ResourceKind.GEOMETRY


class AnalysisMapHandler(ResourceHandler):
	kind = ResourceKind.ANALYSIS_MAP


class ImageHandler(ResourceHandler):
	kind = ResourceKind.IMAGE


class SoundHandler(ResourceHandler):
	kind = ResourceKind.SOUND

	def prepare_locator(self, locator: Locator) -> SoundLocator:
		if isinstance(locator, SoundLocator):
			return locator
		if isinstance(locator, str):
			return SoundLocator(locator)
		raise TypeError(f"Sound locator must be a SoundLocator, got {locator!r}")


HANDLER_TYPES: t.Dict[ResourceKind, t.Type[ResourceHandler]] = {
	ResourceKind.TEXTURE: TextureHandler,
	ResourceKind.CUBEMAP: CubemapHandler,
	ResourceKind.GEOMETRY: GeometryHandler,
	ResourceKind.ANALYSIS_MAP: AnalysisMapHandler,
	ResourceKind.IMAGE: ImageHandler,
	ResourceKind.SOUND: SoundHandler,
}


def create_handlers(
	services: t.Mapping[ResourceKind, "ResourceService"],
) -> t.Dict[ResourceKind, ResourceHandler]:
	"""
	Creates one handler per resource kind, each bound to its service.

	:raises ValueError: If a service is missing for any kind.
	"""
	missing = [kind.value for kind in ResourceKind if kind not in services]
	if missing:
		raise ValueError(f"No service given for resource kinds: {', '.join(missing)}")

	return {kind: handler_type(services[kind]) for kind, handler_type in HANDLER_TYPES.items()}
