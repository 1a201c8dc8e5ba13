"""
Debounced saves.

A Debouncer delays a coroutine call until no new call has been scheduled for
`delay` seconds. Rescheduling cancels the pending timer; a call that has
already started is never cancelled. Only the last call in an idle window is
guaranteed to run.
"""

import asyncio
import logging
from typing import Any, Awaitable, Callable, Optional

logger = logging.getLogger(__name__)


class Debouncer:
	"""
	Cancel-and-restart timer around an async callback.

	Usage:
		save = Debouncer(store_write, delay=2.0)
		save.schedule(fields)     # from inside a running loop
		await save.flush()        # run now if something is pending
	"""

	def __init__(
		self,
		callback: Callable[..., Awaitable[Any]],
		delay: float,
		on_error: Optional[Callable[[BaseException], Any]] = None,
	):
		self.callback = callback
		self.delay = delay
		self.on_error = on_error
		self.last_error: Optional[BaseException] = None
		self._timer: Optional[asyncio.Task] = None
		self._running: Optional[asyncio.Task] = None
		self._pending_args: Optional[tuple[tuple, dict]] = None

	@property
	def pending(self) -> bool:
		return self._pending_args is not None

	def schedule(self, *args, **kwargs) -> None:
		"""Replace any pending call with this one and restart the timer."""
		if self._timer is not None:
			self._timer.cancel()
		self._pending_args = (args, kwargs)
		self._timer = asyncio.get_running_loop().create_task(self._fire_later())

	def cancel(self) -> None:
		"""Drop the pending call, if any."""
		if self._timer is not None:
			self._timer.cancel()
			self._timer = None
		self._pending_args = None

	async def flush(self) -> Any:
		"""Run the pending call immediately and return its result (None if nothing pending)."""
		if self._timer is not None:
			self._timer.cancel()
			self._timer = None
		if self._pending_args is None:
			return None
		return await self._invoke()

	async def wait(self) -> None:
		"""Wait until no timer is pending and no started call is running."""
		while True:
			task = self._timer or self._running
			if task is None:
				return
			await asyncio.wait({task})

	async def _fire_later(self) -> None:
		await asyncio.sleep(self.delay)
		# Detach from the timer so a later schedule() cannot cancel this call
		self._timer = None
		self._running = asyncio.current_task()
		try:
			await self._invoke()
		except Exception:
			# Reported through last_error and on_error
			return
		finally:
			if self._running is asyncio.current_task():
				self._running = None

	async def _invoke(self) -> Any:
		args, kwargs = self._pending_args or ((), {})
		self._pending_args = None
		try:
			result = await self.callback(*args, **kwargs)
		except Exception as e:
			self.last_error = e
			logger.warning(f"Debounced call failed: {e}")
			if self.on_error is not None:
				self.on_error(e)
			raise
		self.last_error = None
		return result
