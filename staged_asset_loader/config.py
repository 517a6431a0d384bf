import os
import typing as t

from dotenv import load_dotenv
from schema import And, Optional, Schema, Use

from staged_asset_loader.core.types import StageConfig
from staged_asset_loader.core.utils import convert_bool_env_var


ENV_PREFIX = "SAL_"


class LoaderConfig:
	"""
	Stores loader configuration.

	`thread_count`: Amount of threads fetching and decoding resources.
	`http_timeout`: Timeout for remote resources, in seconds.
	`asset_directory`: Directory relative resource locators are
		resolved against.
	`parallel_deferred`: Whether to load deferred resources alongside
		the critical ones by default, instead of after them.
	"""

	SCHEMA = Schema(
		{
			Optional("thread_count", default=4): And(int, lambda n: n >= 1),
			Optional("http_timeout", default=30.0): And(Use(float), lambda v: v > 0.0),
			Optional("asset_directory", default=""): str,
			Optional("parallel_deferred", default=False): bool,
		},
		ignore_extra_keys = True,
	)

	def __init__(
		self,
		thread_count: int,
		http_timeout: float,
		asset_directory: str,
		parallel_deferred: bool,
	) -> None:
		self.thread_count = thread_count
		self.http_timeout = http_timeout
		self.asset_directory = asset_directory
		self.parallel_deferred = parallel_deferred

	@classmethod
	def from_dict(cls, data: t.Dict) -> "LoaderConfig":
		"""
		Creates config from a json dict. Missing keys are filled in with
		defaults.

		:raises SchemaError: When the schema library fails validating
		the dict.
		"""
		data = cls.SCHEMA.validate(data)

		return cls(
			data["thread_count"],
			data["http_timeout"],
			data["asset_directory"],
			data["parallel_deferred"],
		)

	def to_dict(self) -> t.Dict:
		return {
			"thread_count": self.thread_count,
			"http_timeout": self.http_timeout,
			"asset_directory": self.asset_directory,
			"parallel_deferred": self.parallel_deferred,
		}

	@classmethod
	def get_default(cls) -> "LoaderConfig":
		return cls.from_dict({})

	@classmethod
	def from_env(cls, dotenv_path: t.Optional[str] = None) -> "LoaderConfig":
		"""
		Creates config from ``SAL_``-prefixed environment variables,
		after loading a ``.env`` file if there is one.

		:raises SchemaError: If a variable has a bad value.
		"""
		load_dotenv(dotenv_path)

		data: t.Dict[str, t.Any] = {}
		if (v := os.getenv(ENV_PREFIX + "THREAD_COUNT")) is not None:
			try:
				data["thread_count"] = int(v)
			except ValueError:
				data["thread_count"] = v
		if (v := os.getenv(ENV_PREFIX + "HTTP_TIMEOUT")) is not None:
			data["http_timeout"] = v
		if (v := os.getenv(ENV_PREFIX + "ASSET_DIRECTORY")) is not None:
			data["asset_directory"] = v
		if (v := os.getenv(ENV_PREFIX + "PARALLEL_DEFERRED")) is not None:
			data["parallel_deferred"] = convert_bool_env_var(v)

		return cls.from_dict(data)

	def get_stage_config(self, critical: bool = True, deferred: bool = True) -> StageConfig:
		return StageConfig(critical, deferred, self.parallel_deferred)
