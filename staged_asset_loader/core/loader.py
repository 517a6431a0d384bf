"""
The staged loader. Splits a manifest into the resources needed before
the application can start and the ones that may follow later, then
loads both sets with as much concurrency as the services allow.
"""

from concurrent.futures import Future, wait
import threading
import typing as t

from loguru import logger

from staged_asset_loader.classifier import classify
from staged_asset_loader.core.errors import AbortedError, ResourceFault, StructuralFault
from staged_asset_loader.core.handlers import ResourceHandler, create_handlers
from staged_asset_loader.core.tracker import StateTracker
from staged_asset_loader.core.types import (
	CRITICAL_COMPLETE, CRITICAL_LOAD_ERROR_TAG, DEFERRED_COMPLETE, Locator, ProgressCounter,
	ResourceKind, ResourceManifest, Stage, StageConfig,
)
from staged_asset_loader.manifest import (
	EMPTY_MANIFEST, iter_entries, manifest_size, parse_manifest
)

if t.TYPE_CHECKING:
	from staged_asset_loader.core.fetch import ResourceFetcher
	from staged_asset_loader.core.services import ResourceService


OnLoad = t.Callable[[], t.Any]
OnError = t.Callable[[str], t.Any]
OnProgress = t.Callable[[ProgressCounter, ResourceKind, str], t.Any]
OnStaging = t.Callable[[str, t.Dict[str, ProgressCounter]], t.Any]


def _default_on_load() -> None:
	logger.info("Loaded.")

def _default_on_error(name: str) -> None:
	logger.warning(f"Error while loading {name}.")

def _noop(*_) -> None:
	pass


def _emit(callback: t.Callable[..., t.Any], *args: t.Any) -> None:
	"""
	Calls a user callback. Errors in it are logged, they must not stall
	the completion of the batch or stage that triggered it.
	"""
	try:
		callback(*args)
	except Exception:
		logger.exception(f"Error in loader callback {callback!r}")


def _completed_future(result: t.Any = None) -> Future:
	f = Future()
	f.set_result(result)
	return f

def _failed_future(exc: BaseException) -> Future:
	f = Future()
	f.set_exception(exc)
	return f


class AbortController:
	"""
	One-way cancellation flag of a loader.
	Consulted before each resource load starts; loads that are already
	running are not interrupted.
	"""

	def __init__(self) -> None:
		self._aborted = False
		self._lock = threading.Lock()

		self.signal: t.Optional[threading.Event] = None
		"""
		The cancellation handle given out for the current load calls.
		Set once aborted.
		"""

		self._listeners: t.List[t.Callable[[], t.Any]] = []

	def ensure_signal(self) -> threading.Event:
		with self._lock:
			if self.signal is None:
				self.signal = threading.Event()
				if self._aborted:
					self.signal.set()
			return self.signal

	def add_listener(self, listener: t.Callable[[], t.Any]) -> None:
		"""
		Registers a function to be called on the first ``abort`` call,
		such as one cancelling queued I/O.
		"""
		with self._lock:
			self._listeners.append(listener)

	def abort(self) -> None:
		with self._lock:
			first = not self._aborted
			self._aborted = True
			if self.signal is not None:
				self.signal.set()
			listeners = self._listeners if first else []
			self._listeners = []

		if not first:
			return

		logger.info("Asset loader aborted")
		for listener in listeners:
			listener()

	def is_aborted(self) -> bool:
		return self._aborted


class BatchReport:
	"""
	What happened to each resource of a batch.
	"""

	__slots__ = ("loaded", "failed")

	def __init__(self) -> None:
		self.loaded: t.List[t.Tuple[ResourceKind, str]] = []
		self.failed: t.Dict[t.Tuple[ResourceKind, str], BaseException] = {}

	@property
	def settled(self) -> int:
		return len(self.loaded) + len(self.failed)


class BatchRunner:
	"""
	Starts a load for every resource of a (sub-)manifest at once and
	waits for all of them to either succeed or fail.
	"""

	def __init__(
		self,
		handlers: t.Mapping[ResourceKind, ResourceHandler],
		tracker: StateTracker,
		abort_controller: AbortController,
		on_error: OnError,
		on_progress: OnProgress,
		on_load: OnLoad,
	) -> None:
		self._handlers = handlers
		self._tracker = tracker
		self._abort = abort_controller
		self._on_error = on_error
		self._on_progress = on_progress
		self._on_load = on_load

	def run(
		self,
		manifest: ResourceManifest,
		stage: t.Optional[Stage] = None,
	) -> "Future[BatchReport]":
		"""
		Loads all resources in ``manifest``.
		The returned future never fails because of individual
		resources; it only fails with a ``StructuralFault`` if the
		batch could not be started at all.
		"""
		try:
			entries = self._collect_entries(manifest)
		except StructuralFault as e:
			return _failed_future(e)

		batch: "Future[BatchReport]" = Future()
		batch.set_running_or_notify_cancel()
		report = BatchReport()
		lock = threading.Lock()

		if not entries:
			batch.set_result(report)
			return batch

		def on_settled(kind: ResourceKind, name: str, future: Future) -> None:
			exc = future.exception()
			if exc is None:
				self._resource_loaded(kind, name, future.result(), stage)
			else:
				self._resource_failed(kind, name, exc)

			with lock:
				if exc is None:
					report.loaded.append((kind, name))
				else:
					report.failed[(kind, name)] = exc
				done = report.settled == len(entries)

			if done:
				if report.failed:
					logger.warning(f"{len(report.failed)}/{len(entries)} resources failed loading")
				batch.set_result(report)

		for kind, name, locator in entries:
			future = self._start(kind, name, locator)
			future.add_done_callback(
				lambda future, kind=kind, name=name: on_settled(kind, name, future)
			)

		return batch

	def _collect_entries(
		self, manifest: ResourceManifest
	) -> t.List[t.Tuple[ResourceKind, str, Locator]]:
		if not isinstance(manifest, t.Mapping):
			raise StructuralFault(f"Batch manifest must be a mapping, not {type(manifest).__name__}")

		for kind, table in manifest.items():
			if not isinstance(kind, ResourceKind) or kind not in self._handlers:
				raise StructuralFault(f"No handler for resource kind {kind!r}")
			if not isinstance(table, t.Mapping):
				raise StructuralFault(f"Batch table for {kind.value!r} is not a mapping")
		return list(iter_entries(manifest))

	def _start(self, kind: ResourceKind, name: str, locator: Locator) -> Future:
		self._tracker.mark_requested(kind, name)

		if self._abort.is_aborted():
			return _failed_future(AbortedError(kind, name))

		try:
			return self._handlers[kind].fetch(name, locator)
		except Exception as e:
			fault = ResourceFault(f"Failed starting load of {kind.value}: {name}: {e}", kind, name)
			fault.__cause__ = e
			return _failed_future(fault)

	def _resource_loaded(
		self, kind: ResourceKind, name: str, item: t.Any, stage: t.Optional[Stage]
	) -> None:
		info = self._tracker.mark_loaded(kind, name, item, stage)
		_emit(self._on_progress, info.progress, kind, name)
		if info.fire_on_load:
			_emit(self._on_load)

	def _resource_failed(self, kind: ResourceKind, name: str, exc: BaseException) -> None:
		if isinstance(exc, AbortedError):
			logger.debug(f"Skipped {kind.value}:{name}, loader aborted")
			return

		logger.warning(f"Asset load failed: {kind.value}:{name}: {exc}")
		_emit(self._on_error, name)


class Loader:
	"""
	Loads resource manifests in two stages.

	Callbacks may be called from any thread the services complete on:
	`on_load()`: Every resource requested so far has loaded. Called
		at most once per ``load``/``request`` call.
	`on_error(name)`: The resource ``name`` failed to load, or, with
		``"critical_load"``, a whole ``load`` call failed.
	`on_progress(progress, kind, name)`: A resource loaded.
	`on_staging(stage_event, staged_progress)`: A stage completed, with
		``"critical_complete"`` or ``"deferred_complete"``.
	"""

	def __init__(
		self,
		services: t.Optional[t.Mapping[ResourceKind, "ResourceService"]] = None,
		on_load: t.Optional[OnLoad] = None,
		on_error: t.Optional[OnError] = None,
		on_progress: t.Optional[OnProgress] = None,
		on_staging: t.Optional[OnStaging] = None,
		fetcher: t.Optional["ResourceFetcher"] = None,
	) -> None:
		"""
		If no services are given, pyglet-backed default services
		running on ``fetcher`` (or a new default one) are used.
		"""
		self._on_load = _default_on_load if on_load is None else on_load
		self._on_error = _default_on_error if on_error is None else on_error
		self._on_progress = _noop if on_progress is None else on_progress
		self._on_staging = _noop if on_staging is None else on_staging

		self._abort = AbortController()

		if services is None and fetcher is None:
			from staged_asset_loader.core.fetch import ResourceFetcher
			fetcher = ResourceFetcher()
		self._fetcher = fetcher
		if fetcher is not None:
			self._abort.add_listener(fetcher.cancel_pending)

		if services is None:
			from staged_asset_loader.core.media import create_default_services
			services = create_default_services(fetcher)

		self.tracker = StateTracker()
		self._runner = BatchRunner(
			create_handlers(services),
			self.tracker,
			self._abort,
			self._on_error,
			self._on_progress,
			self._on_load,
		)

		self._background_lock = threading.Lock()
		self._background: t.List[Future] = []

	def load(
		self,
		manifest: t.Mapping[t.Any, t.Any],
		staging: t.Union[StageConfig, t.Mapping[str, t.Any], None] = None,
	) -> "Future[None]":
		"""
		Loads the critical and deferred resources of ``manifest``.

		Returns a future resolving once the critical stage has
		settled. The deferred stage may still be running at that point.
		The future fails if the manifest was malformed, if the critical
		stage could not be started or if the loader was aborted.
		"""
		result: "Future[None]" = Future()
		result.set_running_or_notify_cancel()

		if staging is None:
			staging = StageConfig()
		elif not isinstance(staging, StageConfig):
			staging = StageConfig.from_dict(staging)

		try:
			parsed = parse_manifest(manifest)
		except StructuralFault as e:
			self._fail_load(result, e)
			return result

		self._abort.ensure_signal()

		critical, deferred = classify(parsed)
		if not staging.critical:
			critical = EMPTY_MANIFEST
		if not staging.deferred:
			deferred = EMPTY_MANIFEST

		self.tracker.begin_load(manifest_size(critical), manifest_size(deferred))
		logger.debug(
			f"Loading {manifest_size(critical)} critical and {manifest_size(deferred)} "
			f"deferred resources ({staging})"
		)

		if staging.critical:
			critical_future = self._runner.run(critical, Stage.CRITICAL)
		else:
			critical_future = _completed_future()

		if staging.deferred and staging.parallel_deferred:
			self._start_deferred(deferred)

		critical_future.add_done_callback(
			lambda f: self._on_critical_settled(f, result, staging, deferred)
		)
		return result

	def _on_critical_settled(
		self,
		critical_future: Future,
		result: "Future[None]",
		staging: StageConfig,
		deferred: ResourceManifest,
	) -> None:
		if (exc := critical_future.exception()) is not None:
			self._fail_load(result, exc)
			return

		if staging.critical:
			staged = self.tracker.finish_stage(Stage.CRITICAL)
			logger.info("Critical resources complete")
			_emit(self._on_staging, CRITICAL_COMPLETE, staged)

		if staging.deferred and not staging.parallel_deferred:
			self._start_deferred(deferred)

		if self._abort.is_aborted():
			self._fail_load(result, AbortedError())
			return

		if self.tracker.check_complete():
			_emit(self._on_load)

		result.set_result(None)

	def _fail_load(self, result: Future, exc: BaseException) -> None:
		logger.error(f"Critical asset loading failed: {exc}")
		_emit(self._on_error, CRITICAL_LOAD_ERROR_TAG)
		result.set_exception(exc)

	def _start_deferred(self, deferred: ResourceManifest) -> None:
		# Registered before the batch starts, since it may settle synchronously.
		# `join` waits on this and not on the batch, whose waiters wake
		# before its done callbacks have run.
		stage_done: "Future[None]" = Future()
		stage_done.set_running_or_notify_cancel()
		with self._background_lock:
			self._background.append(stage_done)

		batch = self._runner.run(deferred, Stage.DEFERRED)
		batch.add_done_callback(lambda f: self._on_deferred_settled(f, stage_done))

	def _on_deferred_settled(self, batch: Future, stage_done: "Future[None]") -> None:
		try:
			if (exc := batch.exception()) is not None:
				logger.warning(f"Deferred asset loading error: {exc}")
			else:
				staged = self.tracker.finish_stage(Stage.DEFERRED)
				logger.info("Deferred resources complete")
				_emit(self._on_staging, DEFERRED_COMPLETE, staged)
		finally:
			with self._background_lock:
				if stage_done in self._background:
					self._background.remove(stage_done)
			stage_done.set_result(None)

	def request(self, kind: t.Any, name: str, locator: t.Any) -> "Future[BatchReport]":
		"""
		Loads a single resource, bypassing classification and staging.
		It counts towards the aggregate progress only.
		"""
		rkind = ResourceKind.lookup(kind)
		if rkind is None:
			return _failed_future(StructuralFault(f"Unknown resource kind {kind!r}"))

		try:
			single = parse_manifest({rkind: {name: locator}})
		except StructuralFault as e:
			return _failed_future(e)

		self._abort.ensure_signal()
		self.tracker.begin_request()
		return self._runner.run(single)

	def join(self, timeout: t.Optional[float] = None) -> bool:
		"""
		Waits for all deferred stages that are still running.
		Returns whether all of them completed in time.
		"""
		with self._background_lock:
			pending = list(self._background)
		if not pending:
			return True
		_, not_done = wait(pending, timeout)
		return not not_done

	def abort(self) -> None:
		"""
		Aborts this loader. Loads that did not start yet will fail,
		running ones are not interrupted. There is no way back.
		"""
		self._abort.abort()

	def shutdown(self) -> None:
		"""
		Aborts the loader and stops the fetcher's threads, if the loader
		has one.
		"""
		self.abort()
		if self._fetcher is not None:
			self._fetcher.shutdown(wait=True)

	@property
	def abort_signal(self) -> t.Optional[threading.Event]:
		return self._abort.signal

	def get(self, kind: t.Any, name: str) -> t.Any:
		return self.tracker.get(kind, name)

	def loaded(self, kind: t.Any, name: str) -> t.Optional[bool]:
		return self.tracker.is_loaded(kind, name)

	def get_progress(self) -> ProgressCounter:
		return self.tracker.get_progress()

	def get_critical_progress(self) -> ProgressCounter:
		return self.tracker.get_stage_progress(Stage.CRITICAL)

	def get_deferred_progress(self) -> ProgressCounter:
		return self.tracker.get_stage_progress(Stage.DEFERRED)

	def get_abort_status(self) -> bool:
		return self._abort.is_aborted()
