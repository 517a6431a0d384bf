#!/usr/bin/env python3

from setuptools import find_packages, setup


if __name__ == "__main__":
	setup(
		name = "StagedAssetLoader",
		version = "0.3.0",
		packages = find_packages(include=("staged_asset_loader", "staged_asset_loader.*")),
		py_modules = ["run"],
		python_requires = ">=3.8",
		install_requires = [
			"httpx",
			"loguru",
			"pyglet>=2.0",
			"python-dotenv",
			"schema",
		],
		extras_require = {
			"test": ["pytest"],
		},
		entry_points = {
			"console_scripts": ["staged-asset-loader = run:main"],
		},
	)
