import threading
import typing as t

from loguru import logger
from pyglet.media import Player

from staged_asset_loader.core.utils import clamp

if t.TYPE_CHECKING:
	from pyglet.media.codecs.base import Source
	from staged_asset_loader.core.types import SoundLocator


class SoundHandle:
	"""
	Playback control for a single registered sound.
	"""

	def __init__(self, bank: "SoundBank", source: "Source", loop: bool, use_panner: bool) -> None:
		self._bank = bank
		self.source = source
		self.loop = loop
		self.use_panner = use_panner
		self._volume = 1.0
		self._position = (0.0, 0.0, 0.0)
		self._player: t.Optional[Player] = None

	@property
	def playing(self) -> bool:
		return self._player is not None and self._player.playing

	def play(self) -> None:
		"""
		Starts playing the sound from its beginning, stopping any
		previous playback of it.
		"""
		self.stop()
		player = Player()
		player.queue(self.source)
		player.loop = self.loop
		player.volume = self._volume * self._bank.volume
		if self.use_panner:
			player.position = self._position
		player.play()
		self._player = player

	def stop(self) -> None:
		if self._player is None:
			return
		self._player.pause()
		self._player.delete()
		self._player = None

	def volume(self, vol: float) -> None:
		self._volume = clamp(vol, 0.0, 1.0)
		self.apply_volume()

	def apply_volume(self) -> None:
		if self._player is not None:
			self._player.volume = self._volume * self._bank.volume

	def set_position(self, x: float, y: float, z: float) -> None:
		if not self.use_panner:
			logger.warning("Tried to position a sound registered without panner, ignoring.")
			return

		self._position = (x, y, z)
		if self._player is not None:
			self._player.position = self._position


class SoundBank:
	"""
	Registry of every loaded sound, so global volume regulation can
	be possible.
	"""

	def __init__(self, volume: float = 1.0) -> None:
		self.volume = clamp(volume, 0.0, 1.0)
		self._handles: t.Dict[str, SoundHandle] = {}
		# Sounds are registered from loader threads
		self._lock = threading.Lock()

	def register(self, locator: "SoundLocator", source: "Source") -> SoundHandle:
		"""
		Registers a decoded sound and returns a handle for it.
		Registering the same source location again replaces the
		previous handle, stopping it.
		"""
		handle = SoundHandle(self, source, locator.loop, locator.use_panner)
		with self._lock:
			old = self._handles.get(locator.src)
			self._handles[locator.src] = handle

		if old is not None:
			logger.warning(f"Sound {locator.src!r} registered twice, replacing.")
			old.stop()
		return handle

	def _all_handles(self) -> t.List[SoundHandle]:
		with self._lock:
			return list(self._handles.values())

	def set_volume_direct(self, new_volume: float) -> None:
		"""
		Sets the master volume, which is multiplied into every
		handle's own volume.
		"""
		self.volume = clamp(new_volume, 0.0, 1.0)
		for handle in self._all_handles():
			handle.apply_volume()

	def stop_all(self) -> None:
		for handle in self._all_handles():
			handle.stop()
