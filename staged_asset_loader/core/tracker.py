import threading
import typing as t

from loguru import logger

from staged_asset_loader.core.types import ProgressCounter, ResourceKind, Stage


class LoadedInfo:
	"""
	Snapshot of the progress state right after a resource was loaded.
	"""

	__slots__ = ("progress", "fire_on_load")

	def __init__(self, progress: ProgressCounter, fire_on_load: bool) -> None:
		self.progress = progress
		self.fire_on_load = fire_on_load


class StateTracker:
	"""
	Keeps the load state and the loaded objects for each requested
	resource, as well as the aggregate and per-stage progress.

	All of it may be touched from whichever thread a resource finished
	loading on, so every access goes through ``self.lock``.
	"""

	def __init__(self) -> None:
		self.lock = threading.RLock()

		self._states: t.Dict[ResourceKind, t.Dict[str, bool]] = {k: {} for k in ResourceKind}
		"""
		``False`` once requested, ``True`` once loaded. Resources that
		failed loading stay at ``False``.
		"""

		self._store: t.Dict[ResourceKind, t.Dict[str, t.Any]] = {k: {} for k in ResourceKind}

		self._progress = ProgressCounter()
		self._staged_progress = {
			Stage.CRITICAL: ProgressCounter(),
			Stage.DEFERRED: ProgressCounter(),
		}

		self._load_fired = False

	def begin_load(self, critical: int, deferred: int) -> None:
		"""
		Registers the start of a staged load call.
		The aggregate counter grows by the amount of scheduled
		resources, the staged counters are reset.
		"""
		with self.lock:
			self._progress.add(critical + deferred)
			self._staged_progress[Stage.CRITICAL] = ProgressCounter(critical)
			self._staged_progress[Stage.DEFERRED] = ProgressCounter(deferred)
			self._load_fired = False

	def begin_request(self) -> None:
		"""
		Registers a single resource requested outside of any stage.
		"""
		with self.lock:
			self._progress.add(1)
			self._load_fired = False

	def mark_requested(self, kind: ResourceKind, name: str) -> None:
		with self.lock:
			self._states[kind].setdefault(name, False)

	def mark_loaded(
		self,
		kind: ResourceKind,
		name: str,
		item: t.Any,
		stage: t.Optional[Stage],
	) -> LoadedInfo:
		with self.lock:
			self._store[kind][name] = item
			self._states[kind][name] = True

			self._progress.advance()
			if stage is not None:
				self._staged_progress[stage].advance()

			logger.trace(f"Loaded {kind.value}:{name} ({self._progress.loaded}/{self._progress.total})")
			return LoadedInfo(self._progress.copy(), self._check_complete())

	def check_complete(self) -> bool:
		"""
		Returns ``True`` exactly once per load call, as soon as every
		requested resource has been loaded.
		"""
		with self.lock:
			return self._check_complete()

	def _check_complete(self) -> bool:
		if self._load_fired or not self._progress.is_complete():
			return False
		self._progress.finished = True
		self._load_fired = True
		return True

	def finish_stage(self, stage: Stage) -> t.Dict[str, ProgressCounter]:
		"""
		Marks a stage as settled and returns a snapshot of both staged
		counters, keyed by stage name.
		"""
		with self.lock:
			self._staged_progress[stage].finished = True
			return self.get_staged_progress()

	def get_staged_progress(self) -> t.Dict[str, ProgressCounter]:
		with self.lock:
			return {s.value: c.copy() for s, c in self._staged_progress.items()}

	def get_progress(self) -> ProgressCounter:
		with self.lock:
			return self._progress.copy()

	def get_stage_progress(self, stage: Stage) -> ProgressCounter:
		with self.lock:
			return self._staged_progress[stage].copy()

	def _resolve(
		self, kind: t.Any, name: str, table: t.Dict[ResourceKind, t.Dict[str, t.Any]]
	) -> t.Tuple[bool, t.Any]:
		rkind = ResourceKind.lookup(kind)
		if rkind is None:
			logger.warning(f"Unknown loader type {kind!r}.")
			return (False, None)

		with self.lock:
			if name not in self._states[rkind]:
				logger.warning(f"Unknown file {rkind.value}:{name}.")
				return (False, None)
			return (True, table[rkind].get(name))

	def get(self, kind: t.Any, name: str) -> t.Any:
		"""
		Returns the loaded object for the given resource.
		If the kind is unknown, the resource was never requested, or it
		has not loaded (yet), returns ``None``.
		"""
		return self._resolve(kind, name, self._store)[1]

	def is_loaded(self, kind: t.Any, name: str) -> t.Optional[bool]:
		"""
		Returns whether the given resource has loaded.
		If the kind is unknown or the resource was never requested,
		returns ``None``.
		"""
		known, state = self._resolve(kind, name, self._states)
		return state if known else None
