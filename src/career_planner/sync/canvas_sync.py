"""
Canvas autosave - debounced section edits with an optimistic draft.

Edits are merged into a local draft and shown at once through `view`. The
draft is written after the debounce window closes; a failed write drops the
draft and refetches the canvas so the view falls back to stored data.
"""

import logging
from typing import Optional

from ..canvas.models import Canvas, compute_completion
from ..canvas.store import CanvasStore
from ..errors import ValidationError
from .cache import QueryCache
from .debounce import Debouncer

logger = logging.getLogger(__name__)


def canvas_key(canvas_id: str) -> tuple:
	return ("canvas", canvas_id)


class CanvasAutosave:
	"""Debounced writer for one canvas."""

	def __init__(
		self,
		canvas_id: str,
		store: CanvasStore,
		delay: Optional[float] = None,
		cache: Optional[QueryCache] = None,
	):
		if delay is None:
			from ..config import get_config
			delay = get_config().debounce_seconds

		self.canvas_id = canvas_id
		self.store = store
		self.cache = cache or QueryCache()
		self.key = canvas_key(canvas_id)
		self.error: Optional[BaseException] = None
		self._draft: dict = {}
		self._saving: dict = {}
		self._debouncer = Debouncer(self._save, delay)
		self.cache.register(self.key, lambda: self.store.get(self.canvas_id))

	@property
	def canvas(self) -> Optional[Canvas]:
		"""Last confirmed read."""
		return self.cache.get(self.key)

	@property
	def view(self) -> Optional[Canvas]:
		"""Confirmed canvas with unsaved edits applied."""
		canvas = self.canvas
		if canvas is None:
			return None
		edits = {**self._saving, **self._draft}
		if not edits:
			return canvas
		merged = canvas.model_copy(update=edits)
		return merged.model_copy(update={"completion_percentage": compute_completion(merged.sections())})

	@property
	def is_saving(self) -> bool:
		return self._debouncer.pending or bool(self._saving)

	async def load(self) -> Canvas:
		return await self.cache.fetch(self.key)

	def edit(self, fields: dict) -> None:
		"""
		Record edits and (re)start the save timer.

		Raises:
			ValidationError: unknown field
		"""
		unknown = set(fields) - CanvasStore.ALLOWED_UPDATE_FIELDS
		if unknown:
			raise ValidationError(f"Invalid canvas fields: {sorted(unknown)}")
		self._draft.update(fields)
		self._debouncer.schedule()

	async def flush(self) -> Optional[Canvas]:
		"""Write pending edits now."""
		return await self._debouncer.flush()

	def discard(self) -> None:
		"""Drop unsaved edits."""
		self._debouncer.cancel()
		self._draft = {}

	async def wait(self) -> None:
		await self._debouncer.wait()

	async def _save(self) -> Optional[Canvas]:
		if not self._draft:
			return None
		self._saving, self._draft = self._draft, {}
		try:
			canvas = await self.store.update(self.canvas_id, self._saving)
		except Exception as e:
			self.error = e
			logger.warning(f"Autosave of canvas {self.canvas_id} failed: {e}")
			self._saving = {}
			await self.cache.invalidate(self.key)
			raise
		self._saving = {}
		self.error = None
		self.cache.set(self.key, canvas)
		return canvas

	def close(self) -> None:
		self.discard()
		self.cache.unregister(self.key)
