"""
Bastion - SQLite Connection
===========================

Shared connection, locked query helpers and immediate transactions for
the SQLite storage mixins.

DESIGN:
    One connection is shared by every mixin behind a threading.Lock, with
    WAL journaling so reads never wait on the writer's fsync. sqlite3
    errors leave this module as StorageError; callers never see the
    driver's exception types except IntegrityError inside transaction(),
    which the case table turns into InvariantViolation.
"""

import json
import sqlite3
import threading
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Iterator, List, Optional, Tuple

from bastion.core.constants import DB_CONNECTION_TIMEOUT, SQLITE_BUSY_TIMEOUT
from bastion.core.errors import StorageError
from bastion.core.logger import logger


PRAGMAS = (
    "PRAGMA journal_mode=WAL",
    "PRAGMA synchronous=NORMAL",
    "PRAGMA foreign_keys=ON",
    f"PRAGMA busy_timeout={SQLITE_BUSY_TIMEOUT}",
)


# =============================================================================
# Column Helpers
# =============================================================================

def _safe_json_loads(value: Optional[str], default: Any = None) -> Any:
    """Decode a JSON column such as a role id list; bad data yields the default."""
    fallback = [] if default is None else default
    if not value:
        return fallback
    try:
        return json.loads(value)
    except ValueError:
        logger.warning("Unreadable JSON Column", [("Value", value[:50])])
        return fallback


# =============================================================================
# Connection Owner
# =============================================================================

class DatabaseBase:
    """Mixin root: owns the connection every table mixin queries through."""

    def _init_base(self, db_path: Path) -> None:
        self._db_path = Path(db_path)
        self._db_lock = threading.Lock()
        self._conn: Optional[sqlite3.Connection] = None

        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        self._open()

    def _open(self) -> sqlite3.Connection:
        try:
            conn = sqlite3.connect(
                str(self._db_path),
                timeout=DB_CONNECTION_TIMEOUT,
                check_same_thread=False,
            )
            for pragma in PRAGMAS:
                conn.execute(pragma)
        except sqlite3.Error as e:
            logger.error("Database Connection Failed", [
                ("Path", str(self._db_path)),
                ("Error", str(e)),
            ])
            raise StorageError(f"Cannot open database: {e}") from e

        conn.row_factory = sqlite3.Row
        self._conn = conn
        return conn

    def _connection(self) -> sqlite3.Connection:
        """Current connection; reopened if close() already ran."""
        return self._conn if self._conn is not None else self._open()

    # =========================================================================
    # Queries
    # =========================================================================

    def execute(self, query: str, params: Tuple = (), commit: bool = True) -> sqlite3.Cursor:
        with self._db_lock:
            conn = self._connection()
            try:
                cursor = conn.execute(query, params)
                if commit:
                    conn.commit()
            except sqlite3.Error as e:
                if conn.in_transaction:
                    conn.rollback()
                raise StorageError(str(e)) from e
            return cursor

    def fetchone(self, query: str, params: Tuple = ()) -> Optional[sqlite3.Row]:
        return self._read(query, params, many=False)

    def fetchall(self, query: str, params: Tuple = ()) -> List[sqlite3.Row]:
        return self._read(query, params, many=True)

    def _read(self, query: str, params: Tuple, many: bool):
        with self._db_lock:
            try:
                cursor = self._connection().execute(query, params)
                return cursor.fetchall() if many else cursor.fetchone()
            except sqlite3.Error as e:
                raise StorageError(str(e)) from e

    def close(self) -> None:
        with self._db_lock:
            if self._conn is None:
                return
            self._conn.close()
            self._conn = None
        logger.info("Database Connection Closed", [("Path", str(self._db_path))])

    # =========================================================================
    # Immediate Transactions
    # =========================================================================

    @contextmanager
    def transaction(self) -> Iterator[sqlite3.Cursor]:
        """
        Yield a cursor inside BEGIN IMMEDIATE, holding the connection lock.

        The write lock is taken up front, so a read-then-insert inside the
        block is one atomic step for threads in this process and for other
        processes opening the same file. Commits on clean exit, rolls back
        and re-raises otherwise.

        Usage:
            with self.transaction() as tx:
                tx.execute("SELECT ...", params)
                row = tx.fetchone()
        """
        with self._db_lock:
            conn = self._connection()
            conn.execute("BEGIN IMMEDIATE")
            try:
                yield conn.cursor()
            except BaseException as e:
                conn.rollback()
                logger.warning("Database Transaction Rolled Back", [
                    ("Error Type", type(e).__name__),
                    ("Error", str(e)[:100]),
                ])
                raise
            conn.commit()
