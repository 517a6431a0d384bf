import threading
from time import perf_counter
import typing as t

import pytest

from staged_asset_loader.core.loader import Loader
from staged_asset_loader.core.services import ResourceService
from staged_asset_loader.core.types import ResourceKind, SoundLocator


class FakeResource:
	def __init__(self, kind: ResourceKind, locator: t.Any) -> None:
		self.kind = kind
		self.locator = locator


def _locator_key(locator: t.Any) -> str:
	if isinstance(locator, SoundLocator):
		return locator.src
	if isinstance(locator, tuple):
		return locator[0]
	return locator


class FakeService(ResourceService):
	"""
	Calls back from a timer thread after a delay, like the collaborators
	of a real loader would from their I/O threads.
	"""

	def __init__(self, kind: ResourceKind, delay: float = 0.01) -> None:
		self.kind = kind
		self.delay = delay
		self.delays: t.Dict[str, float] = {}
		self.failing: t.Set[str] = set()
		self.calls: t.List[t.Tuple[float, t.Any]] = []
		self._lock = threading.Lock()

	@property
	def locators(self) -> t.List[t.Any]:
		with self._lock:
			return [loc for _, loc in self.calls]

	def start(self, locator, on_success, on_failure) -> None:
		with self._lock:
			self.calls.append((perf_counter(), locator))

		key = _locator_key(locator)
		delay = self.delays.get(key, self.delay)

		def fire():
			if key in self.failing:
				on_failure(None)
			else:
				on_success(FakeResource(self.kind, locator))

		if delay <= 0.0:
			fire()
		else:
			timer = threading.Timer(delay, fire)
			timer.daemon = True
			timer.start()


class Recorder:
	"""
	Collects everything a loader reports through its callbacks.
	"""

	def __init__(self) -> None:
		self._lock = threading.Lock()
		self.load_calls: t.List[float] = []
		self.errors: t.List[str] = []
		self.progress: t.List[t.Tuple[t.Any, ResourceKind, str]] = []
		self.staging: t.List[t.Tuple[float, str, t.Dict]] = []

	def on_load(self) -> None:
		with self._lock:
			self.load_calls.append(perf_counter())

	def on_error(self, name: str) -> None:
		with self._lock:
			self.errors.append(name)

	def on_progress(self, progress, kind: ResourceKind, name: str) -> None:
		with self._lock:
			self.progress.append((progress, kind, name))

	def on_staging(self, stage: str, staged: t.Dict) -> None:
		with self._lock:
			self.staging.append((perf_counter(), stage, staged))

	def staging_time(self, stage: str) -> float:
		with self._lock:
			return next(ts for ts, name, _ in self.staging if name == stage)

	@property
	def staging_events(self) -> t.List[str]:
		with self._lock:
			return [name for _, name, _ in self.staging]


@pytest.fixture
def services() -> t.Dict[ResourceKind, FakeService]:
	return {kind: FakeService(kind) for kind in ResourceKind}


@pytest.fixture
def recorder() -> Recorder:
	return Recorder()


@pytest.fixture
def loader(services, recorder) -> Loader:
	return Loader(
		services,
		on_load = recorder.on_load,
		on_error = recorder.on_error,
		on_progress = recorder.on_progress,
		on_staging = recorder.on_staging,
	)


@pytest.fixture
def game_manifest() -> t.Dict[str, t.Dict[str, t.Any]]:
	return {
		"textures": {
			"hex": "textures/hud/hex.jpg",
			"ship.feisar.diffuse": "textures/ships/feisar/diffuse.jpg",
			"ship.feisar.specular": "textures/ships/feisar/specular.jpg",
			"spark": "textures/particles/spark.png",
		},
		"texturesCube": {
			"skybox.dawnclouds": "textures/skybox/dawnclouds/%1.jpg",
		},
		"geometries": {
			"ship.feisar": "geometries/ships/feisar/feisar.js",
			"bonus.base": "geometries/bonus/base/base.js",
		},
		"analysers": {
			"track.cityscape.collision": "textures/tracks/cityscape/collision.png",
		},
		"images": {
			"hud.bg": "textures/hud/hud-bg.png",
		},
		"sounds": {
			"bg": {"src": "audio/bg.ogg", "loop": True},
			"crash": {"src": "audio/crash.ogg", "loop": False, "usePanner": True},
		},
	}
