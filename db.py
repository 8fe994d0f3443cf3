import json
import logging
import math
import sqlite3
from contextlib import contextmanager, asynccontextmanager
from typing import Generic, Iterable, List, Optional, Tuple, Type, TypeVar

import aiosqlite
from pydantic import BaseModel, TypeAdapter

from models import (
    BodyMeasurement,
    Exercise,
    PendingExerciseSelection,
    SelectionMode,
    WorkoutSession,
    WorkoutTemplate,
)

logger = logging.getLogger(__name__)

T = TypeVar("T", bound=BaseModel)

KEYS = {
    "templates": "@workout_templates",
    "sessions": "@workout_sessions",
    "measurements": "@body_measurements",
    "exercises": "@exercises",
    "dark_mode": "@dark_mode",
    "dashboard_limit": "@dashboard_session_limit",
    "pending_selection": "@pending_exercise_selection",
}

DEFAULT_DASHBOARD_SESSION_LIMIT = 5
DASHBOARD_MIN = 1
DASHBOARD_MAX = 10

STORAGE_ERRORS = (sqlite3.Error, OSError, ValueError, TypeError)


class Database:
    """Provides SQLite connection management and schema initialization."""

    _TABLE_DEFINITIONS = {
        "records": (
            """CREATE TABLE records (
                    key TEXT PRIMARY KEY,
                    value TEXT NOT NULL
                );""",
            ["key", "value"],
        ),
    }

    def __init__(self, db_path: str = "fitlog.db") -> None:
        self._db_path = db_path
        self._schema_ready = False

    @property
    def db_path(self) -> str:
        return self._db_path

    @contextmanager
    def _connection(self):
        connection = sqlite3.connect(self._db_path)
        try:
            if not self._schema_ready:
                self._ensure_schema(connection)
            yield connection
            connection.commit()
        finally:
            connection.close()

    def _ensure_schema(self, conn: sqlite3.Connection) -> None:
        for table, (sql, columns) in self._TABLE_DEFINITIONS.items():
            self._ensure_table(conn, table, sql, columns)
        self._schema_ready = True

    def _ensure_table(
        self, conn: sqlite3.Connection, table: str, sql: str, columns: List[str]
    ) -> None:
        cur = conn.execute(
            "SELECT name FROM sqlite_master WHERE type='table' AND name=?;", (table,)
        )
        if cur.fetchone() is None:
            conn.execute(sql)
            return
        cur = conn.execute(f"PRAGMA table_info({table});")
        existing_cols = [row[1] for row in cur.fetchall()]
        if existing_cols != columns:
            raise sqlite3.DatabaseError(
                f"table {table} has unexpected columns {existing_cols}"
            )

    def vacuum(self) -> None:
        """Run SQLite VACUUM to reduce database size."""
        with self._connection() as conn:
            conn.execute("VACUUM;")


class AsyncDatabase(Database):
    """Provides asynchronous connection management."""

    @asynccontextmanager
    async def _async_connection(self):
        conn = await aiosqlite.connect(self._db_path)
        try:
            if not self._schema_ready:
                await self._ensure_schema_async(conn)
            yield conn
            await conn.commit()
        finally:
            await conn.close()

    async def _ensure_schema_async(self, conn: aiosqlite.Connection) -> None:
        for table, (sql, _columns) in self._TABLE_DEFINITIONS.items():
            await conn.execute(sql.replace("CREATE TABLE", "CREATE TABLE IF NOT EXISTS"))
        await conn.commit()
        self._schema_ready = True


class AsyncBaseRepository(AsyncDatabase):
    """Query helpers over an aiosqlite connection."""

    async def execute(self, query: str, params: Tuple = ()) -> int:
        async with self._async_connection() as conn:
            cursor = await conn.execute(query, params)
            await conn.commit()
            return cursor.lastrowid

    async def fetch_all(self, query: str, params: Tuple = ()) -> List[Tuple]:
        async with self._async_connection() as conn:
            cursor = await conn.execute(query, params)
            rows = await cursor.fetchall()
            return list(rows)


class AsyncKeyValueRepository(AsyncBaseRepository):
    """Raw string storage keyed by name. Errors propagate to the caller."""

    async def get_item(self, key: str) -> Optional[str]:
        rows = await self.fetch_all("SELECT value FROM records WHERE key = ?;", (key,))
        return rows[0][0] if rows else None

    async def set_item(self, key: str, value: str) -> None:
        await self.execute(
            "INSERT INTO records (key, value) VALUES (?, ?) "
            "ON CONFLICT(key) DO UPDATE SET value=excluded.value;",
            (key, value),
        )

    async def remove_item(self, key: str) -> None:
        await self.execute("DELETE FROM records WHERE key = ?;", (key,))


class AsyncCollectionRepository(AsyncKeyValueRepository, Generic[T]):
    """Whole-collection snapshot storage of one record type under one key.

    ``save`` replaces the stored collection entirely; ``load`` never raises
    and returns an empty list when the key is missing or unreadable.
    """

    key: str = ""
    model: Type[BaseModel] = BaseModel
    label: str = "records"

    def __init__(self, db_path: str = "fitlog.db") -> None:
        super().__init__(db_path)
        self._adapter = TypeAdapter(List[self.model])

    async def save(self, items: Iterable[T]) -> bool:
        try:
            payload = self._adapter.dump_json(
                list(items), by_alias=True, exclude_none=True
            ).decode("utf-8")
            await self.set_item(self.key, payload)
        except STORAGE_ERRORS:
            logger.exception("Error saving %s", self.label)
            return False
        return True

    async def load(self) -> List[T]:
        try:
            raw = await self.get_item(self.key)
            if raw is None:
                return []
            return self._adapter.validate_json(raw)
        except STORAGE_ERRORS:
            logger.exception("Error loading %s", self.label)
            return []


class TemplateRepository(AsyncCollectionRepository[WorkoutTemplate]):
    """Repository for workout templates."""

    key = KEYS["templates"]
    model = WorkoutTemplate
    label = "workout templates"


class SessionRepository(AsyncCollectionRepository[WorkoutSession]):
    """Repository for completed workout sessions."""

    key = KEYS["sessions"]
    model = WorkoutSession
    label = "workout sessions"


class MeasurementRepository(AsyncCollectionRepository[BodyMeasurement]):
    """Repository for body measurements."""

    key = KEYS["measurements"]
    model = BodyMeasurement
    label = "body measurements"


class ExerciseRepository(AsyncCollectionRepository[Exercise]):
    """Repository for the exercise catalog."""

    key = KEYS["exercises"]
    model = Exercise
    label = "exercises"


def clamp_dashboard_limit(value: int) -> int:
    return max(DASHBOARD_MIN, min(int(value), DASHBOARD_MAX))


class PreferencesRepository(AsyncKeyValueRepository):
    """Scalar user preferences: dark mode and dashboard history size."""

    async def _save_scalar(self, key: str, value, label: str) -> bool:
        try:
            await self.set_item(key, json.dumps(value))
        except STORAGE_ERRORS:
            logger.exception("Error saving %s", label)
            return False
        return True

    async def _load_scalar(self, key: str, label: str):
        try:
            raw = await self.get_item(key)
            return json.loads(raw) if raw is not None else None
        except STORAGE_ERRORS:
            logger.exception("Error loading %s", label)
            return None

    async def save_dark_mode(self, enabled: bool) -> bool:
        return await self._save_scalar(KEYS["dark_mode"], bool(enabled), "dark mode")

    async def load_dark_mode(self) -> bool:
        value = await self._load_scalar(KEYS["dark_mode"], "dark mode")
        return value if isinstance(value, bool) else False

    async def save_dashboard_limit(self, limit: int) -> bool:
        try:
            limit = clamp_dashboard_limit(limit)
        except (TypeError, ValueError, OverflowError):
            logger.exception("Invalid dashboard session limit %r", limit)
            return False
        return await self._save_scalar(
            KEYS["dashboard_limit"], limit, "dashboard session limit"
        )

    async def load_dashboard_limit(self) -> int:
        """Return the stored limit truncated to a whole number.

        Anything that is not a number, or truncates to less than one, resolves
        to the default.
        """
        value = await self._load_scalar(KEYS["dashboard_limit"], "dashboard session limit")
        if (
            isinstance(value, bool)
            or not isinstance(value, (int, float))
            or not math.isfinite(value)
            or int(value) < DASHBOARD_MIN
        ):
            return DEFAULT_DASHBOARD_SESSION_LIMIT
        return clamp_dashboard_limit(value)

    async def adjust_dashboard_limit(self, delta: int) -> int:
        current = await self.load_dashboard_limit()
        updated = clamp_dashboard_limit(current + delta)
        if updated != current:
            await self.save_dashboard_limit(updated)
        return updated


class PendingSelectionRepository(AsyncKeyValueRepository):
    """Single-slot mailbox handing a chosen exercise to a template editor."""

    key = KEYS["pending_selection"]

    async def put(self, selection: PendingExerciseSelection) -> bool:
        try:
            await self.set_item(
                self.key, selection.model_dump_json(by_alias=True, exclude_none=True)
            )
        except STORAGE_ERRORS:
            logger.exception("Error saving pending exercise selection")
            return False
        return True

    async def take(
        self, mode: SelectionMode | str, template_id: str | None = None
    ) -> Optional[Exercise]:
        """Claim the pending exercise if it was addressed to this consumer.

        A mismatching ``mode`` or ``template_id`` leaves the slot untouched.
        """
        try:
            mode = SelectionMode(mode)
            raw = await self.get_item(self.key)
            if raw is None:
                return None
            selection = PendingExerciseSelection.model_validate_json(raw)
            if selection.mode != mode:
                return None
            if mode == SelectionMode.EDIT and selection.template_id != template_id:
                return None
            await self.remove_item(self.key)
        except STORAGE_ERRORS:
            logger.exception("Error consuming pending exercise selection")
            return None
        return selection.exercise


class RecordStore:
    """Bundle of all repositories sharing one database file."""

    def __init__(self, db_path: str = "fitlog.db") -> None:
        self.db_path = db_path
        self.templates = TemplateRepository(db_path)
        self.sessions = SessionRepository(db_path)
        self.measurements = MeasurementRepository(db_path)
        self.exercises = ExerciseRepository(db_path)
        self.preferences = PreferencesRepository(db_path)
        self.pending = PendingSelectionRepository(db_path)
