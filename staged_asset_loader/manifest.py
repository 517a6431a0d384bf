"""
Turns raw, probably json-sourced, resource manifests into the frozen
``ResourceManifest``s the loader works with.
"""

import json
from pathlib import Path
from types import MappingProxyType
import typing as t

from loguru import logger
from schema import Optional, Or, Schema, SchemaError

from staged_asset_loader.core.errors import StructuralFault
from staged_asset_loader.core.types import Locator, ResourceKind, ResourceManifest, SoundLocator


_URL_TABLE_SCHEMA = Schema({Optional(str): str})

_SOUND_TABLE_SCHEMA = Schema(
	{
		Optional(str): Or(
			str,
			SoundLocator,
			{
				Optional("src"): str,
				Optional("url"): str,
				Optional("loop"): bool,
				Optional("usePanner"): bool,
			},
		),
	}
)


EMPTY_MANIFEST: ResourceManifest = MappingProxyType(
	{kind: MappingProxyType({}) for kind in ResourceKind}
)


def _to_sound_locator(name: str, raw: t.Any) -> SoundLocator:
	if isinstance(raw, SoundLocator):
		return raw
	if isinstance(raw, str):
		return SoundLocator(raw)

	src = raw.get("src", raw.get("url"))
	if src is None:
		raise StructuralFault(f"Sound {name!r} has neither 'src' nor 'url'")
	return SoundLocator(src, raw.get("loop", False), raw.get("usePanner", False))


def freeze(tables: t.Mapping[ResourceKind, t.Mapping[str, Locator]]) -> ResourceManifest:
	"""
	Wraps the given tables into read-only mappings. Kinds missing from
	``tables`` end up as empty tables.
	"""
	return MappingProxyType({
		kind: MappingProxyType(dict(tables.get(kind, {}))) for kind in ResourceKind
	})


def parse_manifest(raw: t.Mapping[t.Any, t.Any]) -> ResourceManifest:
	"""
	Validates a raw manifest and converts it into a ``ResourceManifest``.
	Keys may be ``ResourceKind`` members or their manifest key strings.
	A kind mapped to ``None`` is treated as empty.

	:raises StructuralFault: If the manifest does not have the expected
	shape.
	"""
	if not isinstance(raw, t.Mapping):
		raise StructuralFault(f"Manifest must be a mapping, not {type(raw).__name__}")

	tables: t.Dict[ResourceKind, t.Dict[str, Locator]] = {}
	for key, table in raw.items():
		kind = ResourceKind.lookup(key)
		if kind is None:
			raise StructuralFault(f"Unknown resource kind {key!r} in manifest")
		if table is None:
			continue
		if not isinstance(table, t.Mapping):
			raise StructuralFault(f"Manifest table for {kind.value!r} is not a mapping")

		try:
			if kind is ResourceKind.SOUND:
				validated = _SOUND_TABLE_SCHEMA.validate(dict(table))
				tables[kind] = {n: _to_sound_locator(n, v) for n, v in validated.items()}
			else:
				tables[kind] = _URL_TABLE_SCHEMA.validate(dict(table))
		except SchemaError as e:
			raise StructuralFault(f"Bad manifest table for {kind.value!r}: {e}") from e

	manifest = freeze(tables)
	logger.trace(f"Parsed manifest with {manifest_size(manifest)} entries")
	return manifest


def load_manifest_file(path: t.Union[str, Path], encoding: str = "utf-8") -> ResourceManifest:
	"""
	Reads a json manifest file and parses it.

	:raises StructuralFault: If the file is not valid json or the
	manifest has a bad shape.
	:raises OSError: If the file could not be read.
	"""
	with open(path, "r", encoding=encoding) as f:
		try:
			raw = json.load(f)
		except json.JSONDecodeError as e:
			raise StructuralFault(f"Manifest {path} is not valid json: {e}") from e
	return parse_manifest(raw)


def manifest_size(manifest: ResourceManifest) -> int:
	return sum(len(table) for table in manifest.values())


def iter_entries(manifest: ResourceManifest) -> t.Iterator[t.Tuple[ResourceKind, str, Locator]]:
	"""
	Yields each ``(kind, name, locator)`` of a manifest, in
	``ResourceKind`` declaration order.
	"""
	for kind in ResourceKind:
		for name, locator in manifest.get(kind, {}).items():
			yield (kind, name, locator)
