"""
Query cache - last confirmed read per query key, refreshed by invalidation.

Keys are tuples such as ("plan", plan_id) or ("plans", owner_id). Invalidating
a prefix marks every matching entry stale and refetches the ones that have a
registered fetcher. Whichever fetch completes last owns the entry.
"""

import logging
import time
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Optional

logger = logging.getLogger(__name__)

Key = tuple
Fetcher = Callable[[], Awaitable[Any]]
Listener = Callable[["QueryState"], None]


@dataclass
class QueryState:
	"""Cached result of one query."""
	key: Key
	data: Any = None
	error: Optional[BaseException] = None
	stale: bool = True
	fetch_count: int = 0
	updated_at: float = 0.0

	@property
	def has_data(self) -> bool:
		return self.data is not None


class QueryCache:
	"""In-memory cache of confirmed reads with prefix invalidation."""

	def __init__(self):
		self._states: dict[Key, QueryState] = {}
		self._fetchers: dict[Key, Fetcher] = {}
		self._listeners: dict[Key, list[Listener]] = {}

	def register(self, key: Key, fetcher: Fetcher) -> None:
		"""Make a key active: invalidation will refetch it with this fetcher."""
		self._fetchers[key] = fetcher
		self._states.setdefault(key, QueryState(key=key))

	def unregister(self, key: Key) -> None:
		self._fetchers.pop(key, None)
		self._listeners.pop(key, None)

	def subscribe(self, key: Key, listener: Listener) -> Callable[[], None]:
		"""Call listener after every fetch of key. Returns an unsubscribe function."""
		self._listeners.setdefault(key, []).append(listener)

		def unsubscribe() -> None:
			listeners = self._listeners.get(key, [])
			if listener in listeners:
				listeners.remove(listener)

		return unsubscribe

	def state(self, key: Key) -> QueryState:
		return self._states.setdefault(key, QueryState(key=key))

	def get(self, key: Key) -> Any:
		state = self._states.get(key)
		return state.data if state else None

	def set(self, key: Key, data: Any) -> None:
		"""Store a confirmed value directly (e.g. the result of a create)."""
		state = self.state(key)
		state.data = data
		state.error = None
		state.stale = False
		state.updated_at = time.time()
		self._notify(state)

	async def fetch(self, key: Key) -> Any:
		"""
		Run the key's fetcher and store the result.

		The error of a failed fetch is recorded on the state and re-raised;
		previously confirmed data is kept.
		"""
		fetcher = self._fetchers.get(key)
		if fetcher is None:
			raise KeyError(f"No fetcher registered for {key}")

		state = self.state(key)
		state.fetch_count += 1
		try:
			data = await fetcher()
		except Exception as e:
			state.error = e
			self._notify(state)
			raise

		state.data = data
		state.error = None
		state.stale = False
		state.updated_at = time.time()
		self._notify(state)
		return data

	async def invalidate(self, prefix: Key) -> list[Key]:
		"""
		Mark every key starting with prefix stale and refetch the active ones.

		Refetch errors are recorded on each state (and logged), not raised.

		Returns:
			The keys that were invalidated
		"""
		keys = [key for key in list(self._states) if key[:len(prefix)] == prefix]
		for key in keys:
			self._states[key].stale = True

		for key in keys:
			if key not in self._fetchers:
				continue
			try:
				await self.fetch(key)
			except Exception as e:
				logger.warning(f"Refetch of {key} after invalidation failed: {e}")
		return keys

	def _notify(self, state: QueryState) -> None:
		for listener in list(self._listeners.get(state.key, [])):
			listener(state)
