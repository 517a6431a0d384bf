from staged_asset_loader.core.tracker import StateTracker
from staged_asset_loader.core.types import ProgressCounter, ResourceKind, Stage


def _consistent(c: ProgressCounter) -> bool:
	return c.total == c.remaining + c.loaded


def test_begin_load_grows_total_and_resets_stages():
	tracker = StateTracker()
	tracker.begin_load(2, 3)
	tracker.mark_requested(ResourceKind.TEXTURE, "hex")
	tracker.mark_loaded(ResourceKind.TEXTURE, "hex", object(), Stage.CRITICAL)

	tracker.begin_load(1, 0)

	progress = tracker.get_progress()
	assert progress.total == 6
	assert progress.loaded == 1
	assert _consistent(progress)
	critical = tracker.get_stage_progress(Stage.CRITICAL)
	assert (critical.total, critical.loaded, critical.finished) == (1, 0, False)
	assert tracker.get_stage_progress(Stage.DEFERRED).total == 0


def test_mark_loaded_updates_state_store_and_counters():
	tracker = StateTracker()
	tracker.begin_load(1, 1)
	item = object()
	tracker.mark_requested(ResourceKind.GEOMETRY, "bonus.base")

	assert tracker.is_loaded(ResourceKind.GEOMETRY, "bonus.base") is False
	assert tracker.get(ResourceKind.GEOMETRY, "bonus.base") is None

	info = tracker.mark_loaded(ResourceKind.GEOMETRY, "bonus.base", item, Stage.DEFERRED)

	assert tracker.is_loaded("geometries", "bonus.base") is True
	assert tracker.get(ResourceKind.GEOMETRY, "bonus.base") is item
	assert (info.progress.loaded, info.progress.remaining) == (1, 1)
	assert info.fire_on_load is False
	deferred = tracker.get_stage_progress(Stage.DEFERRED)
	assert (deferred.loaded, deferred.remaining) == (1, 0)
	assert _consistent(deferred)
	assert tracker.get_stage_progress(Stage.CRITICAL).loaded == 0


def test_completion_fires_once_per_load():
	tracker = StateTracker()
	tracker.begin_load(1, 0)
	tracker.mark_requested(ResourceKind.IMAGE, "hud.bg")
	info = tracker.mark_loaded(ResourceKind.IMAGE, "hud.bg", object(), Stage.CRITICAL)

	assert info.fire_on_load is True
	assert tracker.get_progress().finished is True
	assert tracker.check_complete() is False

	tracker.begin_request()
	assert tracker.get_progress().finished is False
	tracker.mark_requested(ResourceKind.IMAGE, "hud.speed")
	info = tracker.mark_loaded(ResourceKind.IMAGE, "hud.speed", object(), None)
	assert info.fire_on_load is True


def test_empty_load_is_complete_immediately():
	tracker = StateTracker()
	tracker.begin_load(0, 0)
	assert tracker.check_complete() is True
	assert tracker.check_complete() is False


def test_finish_stage_returns_snapshots():
	tracker = StateTracker()
	tracker.begin_load(1, 2)
	staged = tracker.finish_stage(Stage.CRITICAL)

	assert staged["critical"].finished is True
	assert staged["deferred"].finished is False
	staged["critical"].loaded = 100
	assert tracker.get_stage_progress(Stage.CRITICAL).loaded == 0


def test_queries_soft_fail():
	tracker = StateTracker()
	tracker.mark_requested(ResourceKind.TEXTURE, "hex")

	assert tracker.get("meshes", "hex") is None
	assert tracker.is_loaded("meshes", "hex") is None
	assert tracker.get(ResourceKind.TEXTURE, "never-requested") is None
	assert tracker.is_loaded(ResourceKind.TEXTURE, "never-requested") is None
	assert tracker.is_loaded(ResourceKind.TEXTURE, "hex") is False


def test_progress_counter_copy_and_eq():
	c = ProgressCounter(3)
	c.advance()
	d = c.copy()

	assert d == c
	assert _consistent(d)
	d.advance()
	assert d != c
	assert not c.is_complete()
