#!/usr/bin/env python3

import argparse
import sys


def main():
	argparser = argparse.ArgumentParser(
		description = "Loads a resource manifest in stages and reports on the progress."
	)
	argparser.add_argument("manifest", help="Path to a json resource manifest.")
	argparser.add_argument(
		"--less-debug",
		"-l",
		action = "count",
		default = 0,
		help = (
			"Lowers the log level. If this flag isn't specified, every single loaded "
			"resource is logged. If specified once, only stage transitions and problems "
			"are. If specified more often than that, only problems are."
		),
	)
	argparser.add_argument(
		"--parallel-deferred",
		"-p",
		action = "store_true",
		default = None,
		help = "Loads deferred resources alongside the critical ones instead of after them.",
	)
	argparser.add_argument(
		"--no-deferred",
		action = "store_false",
		dest = "deferred",
		help = "Skips the deferred stage.",
	)
	argparser.add_argument(
		"--threads",
		"-t",
		type = int,
		default = None,
		help = "Amount of loader threads. Overrides SAL_THREAD_COUNT.",
	)
	argparser.add_argument(
		"--asset-directory",
		"-d",
		default = None,
		help = "Directory relative locators are resolved against.",
	)

	result = argparser.parse_args()

	from loguru import logger

	logger.remove(0)
	_stderr_fmt = (
		"<green>{time:MMM DD HH:mm:ss.SSS}</green> | <level>{level:<8}</level> | "
		"<cyan>{name}</cyan>:<cyan>{function}</cyan>@<cyan>{line}</cyan> - "
		"<level>{message}</level>"
	)
	level = ("TRACE", "INFO", "WARNING")[min(result.less_debug, 2)]
	logger.add(sys.stderr, format=_stderr_fmt, level=level)

	# Decode images without ever opening a window
	import pyglet
	pyglet.options["headless"] = True

	from staged_asset_loader.config import LoaderConfig
	from staged_asset_loader.core.errors import LoaderError
	from staged_asset_loader.core.fetch import ResourceFetcher
	from staged_asset_loader.core.loader import Loader
	from staged_asset_loader.core.types import ProgressCounter, ResourceKind
	from staged_asset_loader.manifest import load_manifest_file

	config = LoaderConfig.from_env()
	if result.threads is not None:
		config.thread_count = result.threads
	if result.asset_directory is not None:
		config.asset_directory = result.asset_directory
	if result.parallel_deferred is not None:
		config.parallel_deferred = result.parallel_deferred

	try:
		manifest = load_manifest_file(result.manifest)
	except (OSError, LoaderError) as e:
		logger.error(f"Could not read manifest: {e}")
		return 1

	def on_progress(p: ProgressCounter, kind: ResourceKind, name: str) -> None:
		logger.info(f"LOADED {kind.value} : {name} ( {p.loaded} / {p.total} ).")

	def on_staging(stage: str, staged) -> None:
		logger.info(
			f"{stage}: critical {staged['critical'].loaded}/{staged['critical'].total}, "
			f"deferred {staged['deferred'].loaded}/{staged['deferred'].total}"
		)

	fetcher = ResourceFetcher(config.thread_count, config.asset_directory, config.http_timeout)
	loader = Loader(
		on_error = lambda s: logger.error(f"Error loading {s}."),
		on_progress = on_progress,
		on_staging = on_staging,
		fetcher = fetcher,
	)

	try:
		loader.load(manifest, config.get_stage_config(deferred=result.deferred)).result()
		loader.join()
	except LoaderError as e:
		logger.error(f"Loading failed: {e}")
		return 1
	except KeyboardInterrupt:
		logger.warning("Interrupted, aborting")
		return 130
	finally:
		loader.shutdown()

	progress = loader.get_progress()
	logger.info(f"Done, {progress.loaded} / {progress.total} resources loaded.")
	return 0 if progress.loaded == progress.total else 2


if __name__ == "__main__":
	sys.exit(main())
