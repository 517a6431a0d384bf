from staged_asset_loader.classifier import (
	CRITICAL_RESOURCES, DEFERRED_RESOURCES, classify, stage_of
)
from staged_asset_loader.core.types import ResourceKind, SoundLocator, Stage
from staged_asset_loader.manifest import parse_manifest


def _entries(manifest):
	return {(kind, name) for kind, table in manifest.items() for name in table}


def test_critical_and_deferred_tables_are_disjoint():
	for kind in ResourceKind:
		assert not (CRITICAL_RESOURCES[kind] & DEFERRED_RESOURCES[kind])


def test_partitions_are_disjoint_subsets(game_manifest):
	manifest = parse_manifest(game_manifest)
	critical, deferred = classify(manifest)

	assert not (_entries(critical) & _entries(deferred))
	assert (_entries(critical) | _entries(deferred)) <= _entries(manifest)


def test_critical_extraction():
	manifest = parse_manifest({
		"textures": {
			"hex": "path/to/hex.jpg",
			"ship.feisar.diffuse": "path/to/ship.jpg",
			"spark": "path/to/spark.png",
		},
		"geometries": {
			"ship.feisar": "path/to/ship.js",
			"bonus.base": "path/to/bonus.js",
		},
		"sounds": {
			"bg": {"src": "audio/bg.ogg", "loop": True},
			"crash": {"src": "audio/crash.ogg", "loop": False},
		},
	})
	critical, _ = classify(manifest)

	assert set(critical[ResourceKind.TEXTURE]) == {"hex", "ship.feisar.diffuse"}
	assert set(critical[ResourceKind.GEOMETRY]) == {"ship.feisar"}
	assert set(critical[ResourceKind.SOUND]) == {"bg"}


def test_deferred_extraction():
	manifest = parse_manifest({
		"textures": {
			"hex": "path/to/hex.jpg",
			"ship.feisar.specular": "path/to/specular.jpg",
			"spark": "path/to/spark.png",
		},
		"texturesCube": {"skybox.dawnclouds": "path/to/skybox/%1.jpg"},
		"geometries": {
			"ship.feisar": "path/to/ship.js",
			"bonus.base": "path/to/bonus.js",
		},
	})
	_, deferred = classify(manifest)

	assert set(deferred[ResourceKind.TEXTURE]) == {"ship.feisar.specular", "spark"}
	assert set(deferred[ResourceKind.CUBEMAP]) == {"skybox.dawnclouds"}
	assert set(deferred[ResourceKind.GEOMETRY]) == {"bonus.base"}


def test_sounds_are_classified_by_name_only():
	# The music is critical even when not looping, effects deferred even when looping.
	manifest = parse_manifest({
		"sounds": {
			"bg": {"src": "audio/bg.ogg", "loop": False},
			"crash": {"src": "audio/crash.ogg", "loop": True},
		},
	})
	critical, deferred = classify(manifest)

	assert dict(critical[ResourceKind.SOUND]) == {"bg": SoundLocator("audio/bg.ogg", False, False)}
	assert dict(deferred[ResourceKind.SOUND]) == {"crash": SoundLocator("audio/crash.ogg", True, False)}


def test_collision_maps_and_hud_are_critical():
	manifest = parse_manifest({
		"analysers": {
			"track.cityscape.collision": "a.png",
			"track.cityscape.height": "b.png",
		},
		"images": {"hud.bg": "c.png", "hud.speed": "d.png", "hud.shield": "e.png"},
	})
	critical, deferred = classify(manifest)

	assert len(critical[ResourceKind.ANALYSIS_MAP]) == 2
	assert len(critical[ResourceKind.IMAGE]) == 3
	assert not _entries(deferred)


def test_unlisted_names_are_dropped():
	manifest = parse_manifest({"textures": {"mystery": "m.png"}, "sounds": {"jingle": "j.ogg"}})
	critical, deferred = classify(manifest)

	assert not _entries(critical)
	assert not _entries(deferred)


def test_classify_leaves_input_untouched(game_manifest):
	manifest = parse_manifest(game_manifest)
	before = {kind: dict(table) for kind, table in manifest.items()}
	classify(manifest)
	assert {kind: dict(table) for kind, table in manifest.items()} == before


def test_missing_kinds_are_skipped():
	critical, deferred = classify({ResourceKind.TEXTURE: {"hex": "hex.png"}})

	assert dict(critical[ResourceKind.TEXTURE]) == {"hex": "hex.png"}
	assert len(critical[ResourceKind.SOUND]) == 0
	assert len(deferred[ResourceKind.CUBEMAP]) == 0


def test_stage_of():
	assert stage_of(ResourceKind.TEXTURE, "hex") is Stage.CRITICAL
	assert stage_of(ResourceKind.CUBEMAP, "skybox.dawnclouds") is Stage.DEFERRED
	assert stage_of(ResourceKind.IMAGE, "spark") is None
