"""
Fetches raw resource bytes on a pool of worker threads.
"""

from concurrent.futures import Future, ThreadPoolExecutor
import os
from pathlib import Path
import threading
import typing as t
from urllib.parse import unquote, urlsplit

import httpx
from loguru import logger


T = t.TypeVar("T")


class ResourceFetcher:
	"""
	Reads locators into bytes. Locators may be plain filesystem paths
	(relative ones are joined to ``asset_directory``), ``file://`` URLs
	or ``http(s)://`` URLs.
	"""

	def __init__(
		self,
		thread_count: int = 4,
		asset_directory: t.Union[str, Path] = "",
		http_timeout: float = 30.0,
		client: t.Optional[httpx.Client] = None,
	) -> None:
		if thread_count < 1:
			raise ValueError("Need at least one loader thread!")

		self._dir = str(asset_directory)
		self._http_timeout = http_timeout
		self._client = client
		self._owns_client = client is None
		self._client_lock = threading.Lock()

		self._executor = ThreadPoolExecutor(thread_count, "AssetLoader")
		self._lock = threading.Lock()
		self._pending: t.Set[Future] = set()
		self._shut_down = False

	def submit(self, f: t.Callable[..., T], *args: t.Any) -> "Future[T]":
		"""
		Runs ``f`` on a loader thread.
		If the fetcher was shut down, the returned future is already
		cancelled.
		"""
		with self._lock:
			if self._shut_down:
				future: "Future[T]" = Future()
				future.cancel()
				return future

			future = self._executor.submit(f, *args)
			self._pending.add(future)
		future.add_done_callback(self._on_future_done)
		return future

	def _on_future_done(self, future: Future) -> None:
		with self._lock:
			self._pending.discard(future)

	def cancel_pending(self) -> int:
		"""
		Cancels all jobs that have not started running yet.
		Jobs that are already running are left alone.
		Returns the amount of cancelled jobs.
		"""
		with self._lock:
			pending = list(self._pending)

		cancelled = sum(1 for f in pending if f.cancel())
		if cancelled:
			logger.info(f"Cancelled {cancelled} queued fetch job(s)")
		return cancelled

	def shutdown(self, wait: bool = True) -> None:
		with self._lock:
			self._shut_down = True
		self.cancel_pending()
		self._executor.shutdown(wait=wait)
		if self._owns_client and self._client is not None:
			self._client.close()
			self._client = None

	def _get_client(self) -> httpx.Client:
		with self._client_lock:
			if self._client is None:
				self._client = httpx.Client(timeout=self._http_timeout, follow_redirects=True)
			return self._client

	def resolve_path(self, locator: str) -> str:
		"""
		Returns the filesystem path a non-http locator points to.
		"""
		parts = urlsplit(locator)
		if parts.scheme == "file":
			return unquote(parts.path)
		return os.path.join(self._dir, locator)

	def read(self, locator: str) -> bytes:
		"""
		Reads the resource behind ``locator``. Blocks, so call it from
		a loader thread.
		"""
		scheme = urlsplit(locator).scheme
		if scheme in ("http", "https"):
			response = self._get_client().get(locator)
			response.raise_for_status()
			return response.content

		with open(self.resolve_path(locator), "rb") as f:
			return f.read()
