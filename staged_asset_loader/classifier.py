"""
Decides which resources have to be present before the application may
start and which ones can trickle in while it is already running.
"""

import typing as t

from staged_asset_loader.core.types import Locator, ResourceKind, ResourceManifest, Stage
from staged_asset_loader.manifest import freeze


# Resources not found in either table are never loaded.
CRITICAL_RESOURCES: t.Dict[ResourceKind, t.FrozenSet[str]] = {
	ResourceKind.TEXTURE: frozenset((
		"hex", "ship.feisar.diffuse", "booster.diffuse", "booster.sprite",
		"track.cityscape.diffuse", "track.cityscape.scrapers1.diffuse",
		"track.cityscape.scrapers2.diffuse", "track.cityscape.start.diffuse",
		"track.cityscape.start.banner",
	)),
	ResourceKind.CUBEMAP: frozenset(),
	ResourceKind.GEOMETRY: frozenset((
		"ship.feisar", "booster", "track.cityscape",
		"track.cityscape.scrapers1", "track.cityscape.scrapers2",
		"track.cityscape.start", "track.cityscape.start.banner",
	)),
	ResourceKind.ANALYSIS_MAP: frozenset(("track.cityscape.collision", "track.cityscape.height")),
	ResourceKind.IMAGE: frozenset(("hud.bg", "hud.speed", "hud.shield")),
	ResourceKind.SOUND: frozenset(("bg",)),
}

DEFERRED_RESOURCES: t.Dict[ResourceKind, t.FrozenSet[str]] = {
	ResourceKind.TEXTURE: frozenset((
		"spark", "cloud", "ship.feisar.specular", "ship.feisar.normal",
		"track.cityscape.specular", "track.cityscape.normal",
		"track.cityscape.scrapers1.specular", "track.cityscape.scrapers1.normal",
		"track.cityscape.scrapers2.specular", "track.cityscape.scrapers2.normal",
		"track.cityscape.start.specular", "track.cityscape.start.normal",
		"bonus.base.diffuse", "bonus.base.normal", "bonus.base.specular",
	)),
	ResourceKind.CUBEMAP: frozenset(("skybox.dawnclouds",)),
	ResourceKind.GEOMETRY: frozenset(("bonus.base", "track.cityscape.bonus.speed")),
	ResourceKind.ANALYSIS_MAP: frozenset(),
	ResourceKind.IMAGE: frozenset(),
	ResourceKind.SOUND: frozenset(("crash", "destroyed", "boost", "wind")),
}


def stage_of(kind: ResourceKind, name: str) -> t.Optional[Stage]:
	"""
	Returns the stage a resource belongs to, or ``None`` if it belongs
	to neither.
	"""
	if name in CRITICAL_RESOURCES[kind]:
		return Stage.CRITICAL
	if name in DEFERRED_RESOURCES[kind]:
		return Stage.DEFERRED
	return None


def _extract(manifest: ResourceManifest, stage: Stage) -> ResourceManifest:
	res: t.Dict[ResourceKind, t.Dict[str, Locator]] = {}
	for kind in ResourceKind:
		entries = manifest.get(kind)
		if not entries:
			continue
		res[kind] = {name: loc for name, loc in entries.items() if stage_of(kind, name) is stage}
	return freeze(res)


def classify(manifest: ResourceManifest) -> t.Tuple[ResourceManifest, ResourceManifest]:
	"""
	Splits a manifest into its critical and deferred part.
	The input manifest is left untouched.
	"""
	return (
		_extract(manifest, Stage.CRITICAL),
		_extract(manifest, Stage.DEFERRED),
	)
