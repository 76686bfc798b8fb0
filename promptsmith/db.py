from __future__ import annotations

import json
import logging
import sqlite3
from collections.abc import Callable, Iterator, Sequence
from contextlib import contextmanager
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Literal, TypeVar

from .errors import EngineError, ReadOnlyTransactionError, TransactionScopeError

logger = logging.getLogger(__name__)

DEFAULT_DB_PATH = Path.home() / ".promptsmith.sqlite"
MEMORY_DB = ":memory:"
SCHEMA_VERSION = 1

STORE_PROJECTS = "projects"
STORE_SESSIONS = "sessions"
STORE_ARTIFACTS = "artifacts"
STORE_ARTIFACT_SESSIONS = "artifact_sessions"
ALL_STORES = (STORE_PROJECTS, STORE_SESSIONS, STORE_ARTIFACTS, STORE_ARTIFACT_SESSIONS)

Mode = Literal["readonly", "readwrite"]
T = TypeVar("T")


@dataclass(frozen=True)
class StoreSchema:
    name: str
    columns: tuple[str, ...]
    # record field -> JSON column
    json_fields: dict[str, str] = field(default_factory=dict)
    # defaults used when a JSON column is NULL or unreadable
    json_defaults: dict[str, Any] = field(default_factory=dict)
    indexes: tuple[str, ...] = ()


STORE_SCHEMAS: dict[str, StoreSchema] = {
    STORE_PROJECTS: StoreSchema(
        name=STORE_PROJECTS,
        columns=("id", "name", "description", "created_at", "updated_at", "current_session_id"),
    ),
    STORE_SESSIONS: StoreSchema(
        name=STORE_SESSIONS,
        columns=(
            "id",
            "project_id",
            "created_at",
            "updated_at",
            "history_json",
            "state_json",
            "title",
            "last_message",
        ),
        json_fields={"history": "history_json", "state": "state_json"},
        json_defaults={"history": [], "state": None},
        indexes=("project_id",),
    ),
    STORE_ARTIFACTS: StoreSchema(
        name=STORE_ARTIFACTS,
        columns=(
            "id",
            "project_id",
            "title",
            "problem",
            "prompt_content",
            "variables_json",
            "created_at",
            "updated_at",
            "current_session_id",
        ),
        json_fields={"variables": "variables_json"},
        json_defaults={"variables": []},
        indexes=("project_id",),
    ),
    STORE_ARTIFACT_SESSIONS: StoreSchema(
        name=STORE_ARTIFACT_SESSIONS,
        columns=(
            "id",
            "project_id",
            "artifact_id",
            "created_at",
            "updated_at",
            "history_json",
            "title",
            "last_message",
        ),
        json_fields={"history": "history_json"},
        json_defaults={"history": []},
        indexes=("artifact_id", "project_id"),
    ),
}


def connect(
    db_path: Path | str, *, busy_timeout_ms: int = 5000, check_same_thread: bool = True
) -> sqlite3.Connection:
    if str(db_path) == MEMORY_DB:
        conn = sqlite3.connect(MEMORY_DB, check_same_thread=check_same_thread)
    else:
        path = Path(db_path).expanduser()
        path.parent.mkdir(parents=True, exist_ok=True)
        conn = sqlite3.connect(path, check_same_thread=check_same_thread)
    # Transactions are issued explicitly by Database.transaction().
    conn.isolation_level = None
    conn.row_factory = sqlite3.Row
    try:
        conn.execute("PRAGMA journal_mode = WAL")
    except sqlite3.OperationalError:
        conn.execute("PRAGMA journal_mode = DELETE")
    conn.execute("PRAGMA synchronous = NORMAL")
    conn.execute(f"PRAGMA busy_timeout = {int(busy_timeout_ms)}")
    return conn


def _initialize_schema_v1(conn: sqlite3.Connection) -> None:
    # Ownership is enforced by the repositories; no FOREIGN KEY clauses here.
    conn.executescript(
        """
        CREATE TABLE IF NOT EXISTS projects (
            id TEXT PRIMARY KEY,
            name TEXT NOT NULL,
            description TEXT,
            created_at TEXT NOT NULL,
            updated_at TEXT NOT NULL,
            current_session_id TEXT
        );

        CREATE TABLE IF NOT EXISTS sessions (
            id TEXT PRIMARY KEY,
            project_id TEXT NOT NULL,
            created_at TEXT NOT NULL,
            updated_at TEXT NOT NULL,
            history_json TEXT NOT NULL DEFAULT '[]',
            state_json TEXT,
            title TEXT,
            last_message TEXT
        );
        CREATE INDEX IF NOT EXISTS idx_sessions_project_id ON sessions(project_id);

        CREATE TABLE IF NOT EXISTS artifacts (
            id TEXT PRIMARY KEY,
            project_id TEXT NOT NULL,
            title TEXT NOT NULL,
            problem TEXT NOT NULL,
            prompt_content TEXT NOT NULL,
            variables_json TEXT NOT NULL DEFAULT '[]',
            created_at TEXT NOT NULL,
            updated_at TEXT NOT NULL,
            current_session_id TEXT
        );
        CREATE INDEX IF NOT EXISTS idx_artifacts_project_id ON artifacts(project_id);

        CREATE TABLE IF NOT EXISTS artifact_sessions (
            id TEXT PRIMARY KEY,
            project_id TEXT NOT NULL,
            artifact_id TEXT NOT NULL,
            created_at TEXT NOT NULL,
            updated_at TEXT NOT NULL,
            history_json TEXT NOT NULL DEFAULT '[]',
            title TEXT,
            last_message TEXT
        );
        CREATE INDEX IF NOT EXISTS idx_artifact_sessions_artifact_id ON artifact_sessions(artifact_id);
        CREATE INDEX IF NOT EXISTS idx_artifact_sessions_project_id ON artifact_sessions(project_id);
        """
    )


def initialize_schema(conn: sqlite3.Connection) -> None:
    row = conn.execute("PRAGMA user_version").fetchone()
    version = int(row[0]) if row else 0
    if version >= SCHEMA_VERSION:
        return
    _initialize_schema_v1(conn)
    conn.execute(f"PRAGMA user_version = {SCHEMA_VERSION}")


def to_json(data: Any) -> str:
    return json.dumps(data, ensure_ascii=False)


def from_json(text: str | None, default: Any = None) -> Any:
    if not text:
        return default
    try:
        return json.loads(text)
    except json.JSONDecodeError:
        return default


class StoreIndex:
    def __init__(self, store: ObjectStore, column: str) -> None:
        self._store = store
        self.column = column

    def get_all(self, key: str) -> list[dict[str, Any]]:
        rows = self._store._conn.execute(
            f"SELECT * FROM {self._store.name} WHERE {self.column} = ? ORDER BY rowid",
            (key,),
        ).fetchall()
        return [self._store._decode(row) for row in rows]

    def get_all_keys(self, key: str) -> list[str]:
        rows = self._store._conn.execute(
            f"SELECT id FROM {self._store.name} WHERE {self.column} = ? ORDER BY rowid",
            (key,),
        ).fetchall()
        return [str(row["id"]) for row in rows]


class ObjectStore:
    """Key/value view of one table inside a transaction.

    Records are plain dicts keyed by ``id``. JSON-backed fields are encoded on
    ``put`` and decoded on read.
    """

    def __init__(self, conn: sqlite3.Connection, schema: StoreSchema, mode: Mode) -> None:
        self._conn = conn
        self._schema = schema
        self._mode = mode

    @property
    def name(self) -> str:
        return self._schema.name

    def _decode(self, row: sqlite3.Row) -> dict[str, Any]:
        record = dict(row)
        for field_name, column in self._schema.json_fields.items():
            default = self._schema.json_defaults.get(field_name)
            if isinstance(default, list):
                default = list(default)
            record[field_name] = from_json(record.pop(column, None), default)
        return record

    def _encode(self, record: dict[str, Any]) -> list[Any]:
        values: list[Any] = []
        reverse = {column: name for name, column in self._schema.json_fields.items()}
        for column in self._schema.columns:
            if column in reverse:
                value = record.get(reverse[column])
                if value is None:
                    default = self._schema.json_defaults.get(reverse[column])
                    values.append(None if default is None else to_json(default))
                else:
                    values.append(to_json(value))
            else:
                values.append(record.get(column))
        return values

    def _require_write(self) -> None:
        if self._mode != "readwrite":
            raise ReadOnlyTransactionError(f"store {self.name} opened readonly")

    def get(self, key: str) -> dict[str, Any] | None:
        row = self._conn.execute(f"SELECT * FROM {self.name} WHERE id = ?", (key,)).fetchone()
        return self._decode(row) if row is not None else None

    def get_all(self) -> list[dict[str, Any]]:
        rows = self._conn.execute(f"SELECT * FROM {self.name} ORDER BY rowid").fetchall()
        return [self._decode(row) for row in rows]

    def put(self, record: dict[str, Any]) -> str:
        self._require_write()
        key = record.get("id")
        if not isinstance(key, str) or not key:
            raise ValueError(f"{self.name} record requires a string id")
        columns = self._schema.columns
        placeholders = ", ".join("?" for _ in columns)
        updates = ", ".join(f"{c} = excluded.{c}" for c in columns if c != "id")
        self._conn.execute(
            f"INSERT INTO {self.name}({', '.join(columns)}) VALUES ({placeholders}) "
            f"ON CONFLICT(id) DO UPDATE SET {updates}",
            self._encode(record),
        )
        return key

    def delete(self, key: str) -> None:
        self._require_write()
        self._conn.execute(f"DELETE FROM {self.name} WHERE id = ?", (key,))

    def index(self, column: str) -> StoreIndex:
        if column not in self._schema.indexes:
            raise TransactionScopeError(f"store {self.name} has no index {column}")
        return StoreIndex(self, column)


class Transaction:
    def __init__(self, conn: sqlite3.Connection, stores: frozenset[str], mode: Mode) -> None:
        self._conn = conn
        self.stores = stores
        self.mode = mode

    def store(self, name: str) -> ObjectStore:
        if name not in self.stores:
            raise TransactionScopeError(f"store {name} is not part of this transaction")
        return ObjectStore(self._conn, STORE_SCHEMAS[name], self.mode)


def _normalize_stores(stores: str | Sequence[str]) -> frozenset[str]:
    names = frozenset([stores] if isinstance(stores, str) else stores)
    if not names:
        raise TransactionScopeError("transaction requires at least one store")
    unknown = names - STORE_SCHEMAS.keys()
    if unknown:
        raise TransactionScopeError(f"unknown stores: {', '.join(sorted(unknown))}")
    return names


class Database:
    """Owns the SQLite connection and hands out scoped transactions.

    The connection opens lazily on first use and is reused until ``close()``.
    Use ``Database(":memory:")`` for an isolated throwaway instance.
    """

    def __init__(
        self,
        db_path: Path | str = DEFAULT_DB_PATH,
        *,
        busy_timeout_ms: int = 5000,
        check_same_thread: bool = True,
    ) -> None:
        self.db_path = db_path if str(db_path) == MEMORY_DB else Path(db_path).expanduser()
        self.busy_timeout_ms = busy_timeout_ms
        self._check_same_thread = check_same_thread
        self._conn: sqlite3.Connection | None = None
        self._active: Transaction | None = None

    def open(self) -> sqlite3.Connection:
        if self._conn is None:
            try:
                conn = connect(
                    self.db_path,
                    busy_timeout_ms=self.busy_timeout_ms,
                    check_same_thread=self._check_same_thread,
                )
                initialize_schema(conn)
            except sqlite3.Error as exc:
                logger.exception("failed to open database %s", self.db_path)
                raise EngineError(f"failed to open database: {exc}") from exc
            self._conn = conn
            logger.debug("opened database %s", self.db_path)
        return self._conn

    @property
    def conn(self) -> sqlite3.Connection:
        return self.open()

    @property
    def is_open(self) -> bool:
        return self._conn is not None

    def close(self) -> None:
        if self._conn is None:
            return
        self._conn.close()
        self._conn = None
        self._active = None

    def __enter__(self) -> Database:
        self.open()
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    @contextmanager
    def transaction(
        self, stores: str | Sequence[str], mode: Mode = "readonly"
    ) -> Iterator[Transaction]:
        """Run a block atomically over ``stores``.

        Commits when the block exits normally; rolls back and re-raises on
        any exception. SQLite errors surface as ``EngineError``. A nested call
        joins the enclosing transaction and must stay within its scope.
        """

        if mode not in ("readonly", "readwrite"):
            raise ValueError(f"invalid transaction mode: {mode!r}")
        names = _normalize_stores(stores)
        conn = self.open()

        outer = self._active
        if outer is not None:
            if not names <= outer.stores:
                raise TransactionScopeError(
                    "nested transaction widens scope: " + ", ".join(sorted(names - outer.stores))
                )
            if mode == "readwrite" and outer.mode != "readwrite":
                raise ReadOnlyTransactionError("nested readwrite inside readonly transaction")
            yield Transaction(conn, names, mode)
            return

        try:
            conn.execute("BEGIN IMMEDIATE" if mode == "readwrite" else "BEGIN")
        except sqlite3.Error as exc:
            logger.exception("failed to begin %s transaction", mode)
            raise EngineError(f"failed to begin transaction: {exc}") from exc

        tx = Transaction(conn, names, mode)
        self._active = tx
        try:
            yield tx
        except sqlite3.Error as exc:
            self._rollback(conn)
            logger.exception("transaction over %s aborted", ", ".join(sorted(names)))
            raise EngineError(str(exc)) from exc
        except BaseException:
            self._rollback(conn)
            raise
        else:
            try:
                conn.execute("COMMIT")
            except sqlite3.Error as exc:
                self._rollback(conn)
                logger.exception("commit over %s failed", ", ".join(sorted(names)))
                raise EngineError(f"commit failed: {exc}") from exc
        finally:
            self._active = None

    @staticmethod
    def _rollback(conn: sqlite3.Connection) -> None:
        if not conn.in_transaction:
            return
        try:
            conn.execute("ROLLBACK")
        except sqlite3.Error:
            logger.exception("rollback failed")

    def with_store(self, store: str, mode: Mode, fn: Callable[[ObjectStore], T]) -> T:
        with self.transaction(store, mode) as tx:
            result = fn(tx.store(store))
        return result

    def with_stores(
        self, stores: Sequence[str], mode: Mode, fn: Callable[[Transaction], T]
    ) -> T:
        with self.transaction(stores, mode) as tx:
            result = fn(tx)
        return result
