import typing as t

if t.TYPE_CHECKING:
	from staged_asset_loader.core.types import ResourceKind


class LoaderError(Exception):
	pass


class StructuralFault(LoaderError):
	"""
	The loading machinery itself could not do its job, for example
	because it was handed a malformed manifest.
	"""


class ResourceFault(LoaderError):
	"""
	A single resource failed to load.
	"""

	def __init__(
		self,
		message: str,
		kind: t.Optional["ResourceKind"] = None,
		name: t.Optional[str] = None,
	) -> None:
		super().__init__(message)
		self.kind = kind
		self.name = name


class AbortedError(ResourceFault):
	"""
	A resource was not loaded because its loader had been aborted
	before the load could start.
	"""

	def __init__(
		self,
		kind: t.Optional["ResourceKind"] = None,
		name: t.Optional[str] = None,
	) -> None:
		super().__init__("Loader aborted", kind, name)
