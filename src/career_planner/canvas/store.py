"""
Canvas Store - SQLite-backed storage for career canvases.

Each owner may hold up to `max_canvases` canvases, kept in a user-chosen
display order. The plan reference is written only through the linker.
"""

import logging
import uuid
from datetime import datetime
from typing import Optional

from ..database import Database
from ..errors import NotFoundError, ValidationError
from .models import PROFILE_FIELDS, SECTION_FIELDS, Canvas, compute_completion

logger = logging.getLogger(__name__)

DEFAULT_MAX_CANVASES = 3


def _check_text_fields(fields: dict) -> None:
	for key, value in fields.items():
		if value is not None and not isinstance(value, str):
			raise ValidationError(f"{key} must be text, got {type(value).__name__}", field=key)


class CanvasStore:
	"""
	CRUD for canvases.

	Usage:
		store = CanvasStore(db)
		canvas = await store.create("user-1", "Product Manager")
		canvas = await store.update(canvas.id, {"section_6_skills": "Roadmapping"})
	"""

	ALLOWED_UPDATE_FIELDS = PROFILE_FIELDS | frozenset(SECTION_FIELDS)

	def __init__(self, db: Database, max_canvases: int = DEFAULT_MAX_CANVASES):
		self.db = db
		self.max_canvases = max_canvases

	async def create(
		self,
		owner_id: str,
		name: str,
		target_role: Optional[str] = None,
		current_role: Optional[str] = None,
		sections: Optional[dict] = None,
	) -> Canvas:
		"""
		Create a canvas at the end of the owner's display order.

		Raises:
			ValidationError: empty name, unknown or non-text field, or owner
				already at max_canvases
		"""
		sections = dict(sections or {})
		unknown = set(sections) - set(SECTION_FIELDS)
		if unknown:
			raise ValidationError(f"Invalid canvas sections: {sorted(unknown)}")
		_check_text_fields({"name": name, "target_role": target_role, "current_role": current_role, **sections})
		name = (name or "").strip()
		if not name:
			raise ValidationError("Canvas name is required", field="name")
		section_values = {key: sections.get(key) or "" for key in SECTION_FIELDS}

		canvas_id = str(uuid.uuid4())
		now = datetime.now().isoformat()

		async with self.db.transaction() as conn:
			async with conn.execute(
				"SELECT COUNT(*), COALESCE(MAX(display_order), -1) FROM canvases WHERE owner_id = ?",
				(owner_id,),
			) as cursor:
				count, max_order = await cursor.fetchone()
			if count >= self.max_canvases:
				raise ValidationError(f"You can have at most {self.max_canvases} canvases")

			columns = [
				"id", "owner_id", "name", "target_role", "current_role",
				*SECTION_FIELDS,
				"completion_percentage", "display_order", "created_at", "updated_at",
			]
			values = [
				canvas_id, owner_id, name, target_role, current_role,
				*section_values.values(),
				compute_completion(section_values), max_order + 1, now, now,
			]
			await conn.execute(
				f"INSERT INTO canvases ({', '.join(columns)}) VALUES ({', '.join('?' * len(columns))})",
				values,
			)

		logger.info(f"Created canvas {canvas_id} for owner {owner_id}")
		return await self.get(canvas_id)

	async def get(self, canvas_id: str) -> Canvas:
		row = await self.db.fetchone("SELECT * FROM canvases WHERE id = ?", (canvas_id,))
		if not row:
			raise NotFoundError("canvas", canvas_id)
		return Canvas.from_row(row)

	async def list_canvases(self, owner_id: str) -> list[Canvas]:
		rows = await self.db.fetchall(
			"SELECT * FROM canvases WHERE owner_id = ? ORDER BY display_order, created_at",
			(owner_id,),
		)
		return [Canvas.from_row(row) for row in rows]

	async def can_create_more(self, owner_id: str) -> bool:
		row = await self.db.fetchone("SELECT COUNT(*) FROM canvases WHERE owner_id = ?", (owner_id,))
		return row[0] < self.max_canvases

	async def update(self, canvas_id: str, fields: dict) -> Canvas:
		"""
		Update profile fields and/or sections; completion is recomputed from
		the merged sections.

		Raises:
			ValidationError: unknown or non-text field, or an attempt to set
				completion_percentage / plan_id
			NotFoundError: canvas does not exist
		"""
		unknown = set(fields) - self.ALLOWED_UPDATE_FIELDS
		if unknown:
			raise ValidationError(f"Invalid canvas fields: {sorted(unknown)}")
		_check_text_fields(fields)
		if "name" in fields and not (fields["name"] or "").strip():
			raise ValidationError("Canvas name is required", field="name")

		values = {
			key: (value or "") if key in SECTION_FIELDS else value
			for key, value in fields.items()
		}

		async with self.db.transaction() as conn:
			async with conn.execute("SELECT * FROM canvases WHERE id = ?", (canvas_id,)) as cursor:
				row = await cursor.fetchone()
			if not row:
				raise NotFoundError("canvas", canvas_id)

			merged = {key: row[key] for key in SECTION_FIELDS}
			merged.update({k: v for k, v in values.items() if k in SECTION_FIELDS})
			values["completion_percentage"] = compute_completion(merged)
			values["updated_at"] = datetime.now().isoformat()

			set_clause = ", ".join(f"{k} = ?" for k in values.keys())
			await conn.execute(
				f"UPDATE canvases SET {set_clause} WHERE id = ?",
				[*values.values(), canvas_id],
			)

		return await self.get(canvas_id)

	async def delete(self, canvas_id: str) -> None:
		"""
		Delete a canvas. A linked plan is left untouched.

		Raises:
			NotFoundError: canvas does not exist
		"""
		rowcount = await self.db.execute("DELETE FROM canvases WHERE id = ?", (canvas_id,))
		if not rowcount:
			raise NotFoundError("canvas", canvas_id)
		logger.info(f"Deleted canvas {canvas_id}")

	async def reorder(self, owner_id: str, ordered_ids: list[str]) -> list[Canvas]:
		"""Set display_order = position for every canvas of the owner."""
		ordered_ids = list(ordered_ids)
		current = {c.id for c in await self.list_canvases(owner_id)}
		if len(ordered_ids) != len(set(ordered_ids)) or set(ordered_ids) != current:
			raise ValidationError("Reorder list must contain every canvas of the owner exactly once")

		now = datetime.now().isoformat()
		async with self.db.transaction() as conn:
			for position, canvas_id in enumerate(ordered_ids):
				await conn.execute(
					"UPDATE canvases SET display_order = ?, updated_at = ? WHERE id = ? AND owner_id = ?",
					(position, now, canvas_id, owner_id),
				)
		return await self.list_canvases(owner_id)

	async def set_plan_reference(
		self,
		canvas_id: str,
		plan_id: Optional[str],
		only_if_unlinked: bool = False,
	) -> bool:
		"""
		Write the canvas's plan reference.

		With only_if_unlinked the write is conditional on the reference being
		null at write time. Returns False when that condition fails.

		Raises:
			NotFoundError: canvas does not exist
		"""
		sql = "UPDATE canvases SET plan_id = ?, updated_at = ? WHERE id = ?"
		if only_if_unlinked:
			sql += " AND plan_id IS NULL"
		rowcount = await self.db.execute(sql, (plan_id, datetime.now().isoformat(), canvas_id))
		if rowcount == 0:
			# Distinguish "condition failed" from "no such canvas"
			await self.get(canvas_id)
			return False
		return True

	async def find_by_plan(self, plan_id: str) -> list[Canvas]:
		rows = await self.db.fetchall(
			"SELECT * FROM canvases WHERE plan_id = ? ORDER BY display_order",
			(plan_id,),
		)
		return [Canvas.from_row(row) for row in rows]

	async def clear_plan_references(self, plan_id: str) -> int:
		return await self.db.execute(
			"UPDATE canvases SET plan_id = NULL, updated_at = ? WHERE plan_id = ?",
			(datetime.now().isoformat(), plan_id),
		)


# Global store instance
_store: Optional[CanvasStore] = None


async def get_canvas_store(db_path: str = "") -> CanvasStore:
	"""Get or create the global canvas store."""
	global _store
	if _store is None:
		from ..config import get_config
		from ..database import get_database
		db = await get_database(db_path)
		_store = CanvasStore(db, max_canvases=get_config().max_canvases)
	return _store
