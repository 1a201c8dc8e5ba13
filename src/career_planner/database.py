"""SQLite connection and schema shared by the plan, milestone and canvas stores."""

import asyncio
import logging
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Any, AsyncIterator, Iterable, Optional

import aiosqlite

from .errors import TransportError

logger = logging.getLogger(__name__)

SCHEMA = """
CREATE TABLE IF NOT EXISTS plans (
	id TEXT PRIMARY KEY,
	owner_id TEXT NOT NULL,
	title TEXT NOT NULL,
	start_date TEXT NOT NULL,
	end_date TEXT NOT NULL,
	submission_status TEXT NOT NULL DEFAULT 'draft',
	parent_plan_id TEXT REFERENCES plans(id) ON DELETE SET NULL,
	sequence_number INTEGER NOT NULL DEFAULT 1,
	created_at TEXT NOT NULL,
	updated_at TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS milestones (
	id TEXT PRIMARY KEY,
	plan_id TEXT NOT NULL REFERENCES plans(id),
	week_number INTEGER NOT NULL CHECK (week_number BETWEEN 1 AND 12),
	order_index INTEGER NOT NULL CHECK (order_index BETWEEN 0 AND 11),
	goal TEXT NOT NULL DEFAULT '',
	notes TEXT NOT NULL DEFAULT '',
	status TEXT NOT NULL DEFAULT 'not_started',
	updated_at TEXT NOT NULL,
	UNIQUE(plan_id, week_number)
);

CREATE TABLE IF NOT EXISTS canvases (
	id TEXT PRIMARY KEY,
	owner_id TEXT NOT NULL,
	name TEXT NOT NULL,
	target_role TEXT,
	current_role TEXT,
	section_1_helpers TEXT NOT NULL DEFAULT '',
	section_2_activities TEXT NOT NULL DEFAULT '',
	section_3_value TEXT NOT NULL DEFAULT '',
	section_4_interactions TEXT NOT NULL DEFAULT '',
	section_5_convince TEXT NOT NULL DEFAULT '',
	section_6_skills TEXT NOT NULL DEFAULT '',
	section_7_motivation TEXT NOT NULL DEFAULT '',
	section_8_sacrifices TEXT NOT NULL DEFAULT '',
	section_9_outcomes TEXT NOT NULL DEFAULT '',
	completion_percentage INTEGER NOT NULL DEFAULT 0,
	plan_id TEXT,
	display_order INTEGER NOT NULL DEFAULT 0,
	created_at TEXT NOT NULL,
	updated_at TEXT NOT NULL
);

CREATE INDEX IF NOT EXISTS idx_plans_owner ON plans(owner_id);
CREATE INDEX IF NOT EXISTS idx_milestones_plan ON milestones(plan_id);
CREATE INDEX IF NOT EXISTS idx_canvases_owner ON canvases(owner_id);
CREATE INDEX IF NOT EXISTS idx_canvases_plan ON canvases(plan_id);
"""


class Database:
	"""
	A single aiosqlite connection guarded by an asyncio lock.

	Every statement and every transaction takes the lock, so a reader can
	never observe the inside of a multi-statement write.

	Usage:
		db = Database("data/career_planner.db")
		await db.init()

		async with db.transaction() as conn:
			await conn.execute(...)
	"""

	def __init__(self, db_path: str = ""):
		if not db_path:
			from .config import get_config
			db_path = str(get_config().db_path)
		self.db_path = db_path
		if db_path != ":memory:":
			Path(db_path).parent.mkdir(parents=True, exist_ok=True)
		self._conn: Optional[aiosqlite.Connection] = None
		self._lock = asyncio.Lock()

	async def init(self) -> None:
		"""Open the connection and create the schema."""
		if self._conn is not None:
			return
		try:
			# isolation_level=None: autocommit, transactions are explicit
			self._conn = await aiosqlite.connect(self.db_path, isolation_level=None)
			self._conn.row_factory = aiosqlite.Row
			await self._conn.execute("PRAGMA foreign_keys = ON")
			await self._conn.executescript(SCHEMA)
		except aiosqlite.Error as e:
			raise TransportError(f"Could not open database {self.db_path}: {e}") from e
		logger.info(f"Database initialized: {self.db_path}")

	async def close(self) -> None:
		"""Close the database connection."""
		if self._conn:
			await self._conn.close()
			self._conn = None

	async def _connection(self) -> aiosqlite.Connection:
		if self._conn is None:
			await self.init()
		return self._conn

	@asynccontextmanager
	async def transaction(self) -> AsyncIterator[aiosqlite.Connection]:
		"""Run a block of statements atomically. Any exception rolls back."""
		conn = await self._connection()
		async with self._lock:
			try:
				await conn.execute("BEGIN IMMEDIATE")
			except aiosqlite.Error as e:
				raise TransportError(str(e)) from e
			try:
				yield conn
			except aiosqlite.Error as e:
				await conn.execute("ROLLBACK")
				raise TransportError(str(e)) from e
			except BaseException:
				await conn.execute("ROLLBACK")
				raise
			try:
				await conn.execute("COMMIT")
			except aiosqlite.Error as e:
				await conn.execute("ROLLBACK")
				raise TransportError(str(e)) from e

	async def execute(self, sql: str, params: Iterable[Any] = ()) -> int:
		"""Execute a single write statement. Returns the affected row count."""
		conn = await self._connection()
		async with self._lock:
			try:
				cursor = await conn.execute(sql, tuple(params))
				rowcount = cursor.rowcount
				await cursor.close()
				return rowcount
			except aiosqlite.Error as e:
				raise TransportError(str(e)) from e

	async def fetchone(self, sql: str, params: Iterable[Any] = ()) -> Optional[aiosqlite.Row]:
		conn = await self._connection()
		async with self._lock:
			try:
				async with conn.execute(sql, tuple(params)) as cursor:
					return await cursor.fetchone()
			except aiosqlite.Error as e:
				raise TransportError(str(e)) from e

	async def fetchall(self, sql: str, params: Iterable[Any] = ()) -> list[aiosqlite.Row]:
		conn = await self._connection()
		async with self._lock:
			try:
				async with conn.execute(sql, tuple(params)) as cursor:
					return list(await cursor.fetchall())
			except aiosqlite.Error as e:
				raise TransportError(str(e)) from e


# Global database instance
_db: Optional[Database] = None


async def get_database(db_path: str = "") -> Database:
	"""Get or create the global database."""
	global _db
	if _db is None:
		_db = Database(db_path)
		await _db.init()
	return _db
