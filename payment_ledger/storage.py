"""
Storage Backend Module

Provides the abstract keyed-slot store the ledger persists into, with
in-memory (testing) and SQLite (persistence) implementations. Every slot
carries a version number for compare-and-swap writes and an optional
expiry that callers must keep extending to retain the data.
"""

from abc import ABC, abstractmethod
from typing import Any, Dict, Optional, Union
from datetime import datetime, timezone
from dataclasses import dataclass
from pathlib import Path
import sqlite3
import json
import threading

from .clock import Clock, SystemClock
from .errors import StoreError, VersionConflictError


@dataclass
class StoredValue:
    """A slot's decoded value together with its version and expiry"""
    value: Any
    version: int
    expires_at: Optional[int] = None


class PersistentStore(ABC):
    """Abstract interface for keyed single-slot storage backends"""

    @abstractmethod
    def get(self, key: str) -> Optional[StoredValue]:
        """Load a slot, or None if it was never written or has expired"""
        pass

    @abstractmethod
    def put(self, key: str, value: Any, expected_version: int) -> int:
        """
        Write a slot if its current version equals expected_version

        An absent slot has version 0. Returns the new version. Raises
        VersionConflictError when the slot has moved on.
        """
        pass

    @abstractmethod
    def extend_ttl(self, key: str, threshold: int, extend_to: int) -> None:
        """Push expiry out to extend_to seconds if fewer than threshold remain"""
        pass

    @abstractmethod
    def ttl(self, key: str) -> Optional[int]:
        """Remaining lifetime in seconds, or None for missing or non-expiring slots"""
        pass

    @abstractmethod
    def close(self) -> None:
        """Close storage connection"""
        pass


def _encode(key: str, value: Any) -> str:
    try:
        return json.dumps(value)
    except (TypeError, ValueError) as e:
        raise StoreError(f"Value for '{key}' is not serializable: {e}") from e


def _decode(key: str, data: str) -> Any:
    try:
        return json.loads(data)
    except ValueError as e:
        raise StoreError(f"Slot '{key}' holds undecodable data: {e}") from e


class InMemoryStore(PersistentStore):
    """In-memory store implementation for testing"""

    def __init__(self, clock: Optional[Clock] = None, default_ttl: Optional[int] = None):
        self.clock = clock or SystemClock()
        self.default_ttl = default_ttl
        self._slots: Dict[str, Dict[str, Any]] = {}
        self._lock = threading.RLock()
        self._closed = False

    def _live_slot(self, key: str) -> Optional[Dict[str, Any]]:
        if self._closed:
            raise StoreError("Store is closed")
        slot = self._slots.get(key)
        if slot is None:
            return None
        if slot["expires_at"] is not None and slot["expires_at"] <= self.clock.now():
            # Expired slots are garbage-collected on access
            del self._slots[key]
            return None
        return slot

    def get(self, key: str) -> Optional[StoredValue]:
        with self._lock:
            slot = self._live_slot(key)
            if slot is None:
                return None
            # Decode a fresh copy to prevent external mutation
            return StoredValue(
                value=_decode(key, slot["data"]),
                version=slot["version"],
                expires_at=slot["expires_at"]
            )

    def put(self, key: str, value: Any, expected_version: int) -> int:
        data = _encode(key, value)
        with self._lock:
            slot = self._live_slot(key)
            actual = slot["version"] if slot else 0
            if actual != expected_version:
                raise VersionConflictError(key, expected_version, actual)

            if slot is None:
                expires_at = None
                if self.default_ttl is not None:
                    expires_at = self.clock.now() + self.default_ttl
                slot = {"expires_at": expires_at}
                self._slots[key] = slot

            slot["data"] = data
            slot["version"] = actual + 1
            return slot["version"]

    def extend_ttl(self, key: str, threshold: int, extend_to: int) -> None:
        with self._lock:
            slot = self._live_slot(key)
            if slot is None:
                raise StoreError(f"Cannot extend retention of missing slot '{key}'")
            if slot["expires_at"] is None:
                return
            now = self.clock.now()
            if slot["expires_at"] - now < threshold:
                slot["expires_at"] = now + extend_to

    def ttl(self, key: str) -> Optional[int]:
        with self._lock:
            slot = self._live_slot(key)
            if slot is None or slot["expires_at"] is None:
                return None
            return slot["expires_at"] - self.clock.now()

    def close(self) -> None:
        """Close storage (no further access allowed)"""
        with self._lock:
            self._closed = True


class SQLiteStore(PersistentStore):
    """SQLite store implementation for persistence"""

    def __init__(self, db_path: Union[str, Path] = ":memory:",
                 clock: Optional[Clock] = None, default_ttl: Optional[int] = None):
        self.db_path = str(db_path)
        self.clock = clock or SystemClock()
        self.default_ttl = default_ttl
        self._lock = threading.RLock()
        try:
            self._connection = sqlite3.connect(self.db_path, check_same_thread=False)
            self._connection.row_factory = sqlite3.Row

            # Enable WAL mode for better concurrent access
            if self.db_path != ":memory:":
                self._connection.execute("PRAGMA journal_mode = WAL")
                self._connection.execute("PRAGMA synchronous = NORMAL")
            self._ensure_table()
        except sqlite3.Error as e:
            raise StoreError(f"Cannot open SQLite store at {self.db_path}: {e}") from e

    def _ensure_table(self) -> None:
        """Ensure the slot table exists"""
        self._connection.execute("""
            CREATE TABLE IF NOT EXISTS kv_slots (
                key TEXT PRIMARY KEY,
                data TEXT NOT NULL,
                version INTEGER NOT NULL,
                expires_at INTEGER,
                updated_at TEXT NOT NULL
            )
        """)
        self._connection.commit()

    def _conn(self) -> sqlite3.Connection:
        if self._connection is None:
            raise StoreError("Store is closed")
        return self._connection

    def _live_row(self, key: str) -> Optional[sqlite3.Row]:
        conn = self._conn()
        row = conn.execute(
            "SELECT data, version, expires_at FROM kv_slots WHERE key = ?", (key,)
        ).fetchone()
        if row is None:
            return None
        if row["expires_at"] is not None and row["expires_at"] <= self.clock.now():
            conn.execute("DELETE FROM kv_slots WHERE key = ?", (key,))
            conn.commit()
            return None
        return row

    def get(self, key: str) -> Optional[StoredValue]:
        with self._lock:
            try:
                row = self._live_row(key)
            except sqlite3.Error as e:
                raise StoreError(f"Failed to read '{key}': {e}") from e
            if row is None:
                return None
            return StoredValue(
                value=_decode(key, row["data"]),
                version=row["version"],
                expires_at=row["expires_at"]
            )

    def put(self, key: str, value: Any, expected_version: int) -> int:
        data = _encode(key, value)
        now = datetime.now(timezone.utc).isoformat()
        with self._lock:
            conn = self._conn()
            try:
                row = self._live_row(key)
                actual = row["version"] if row else 0
                if actual != expected_version:
                    raise VersionConflictError(key, expected_version, actual)

                if row is None:
                    expires_at = None
                    if self.default_ttl is not None:
                        expires_at = self.clock.now() + self.default_ttl
                    try:
                        conn.execute("""
                            INSERT INTO kv_slots (key, data, version, expires_at, updated_at)
                            VALUES (?, ?, 1, ?, ?)
                        """, (key, data, expires_at, now))
                    except sqlite3.IntegrityError:
                        # Another connection created the slot first
                        conn.rollback()
                        raise VersionConflictError(key, expected_version, expected_version + 1)
                else:
                    cursor = conn.execute("""
                        UPDATE kv_slots SET data = ?, version = version + 1, updated_at = ?
                        WHERE key = ? AND version = ?
                    """, (data, now, key, expected_version))
                    if cursor.rowcount == 0:
                        conn.rollback()
                        raise VersionConflictError(key, expected_version, expected_version + 1)

                conn.commit()
                return expected_version + 1
            except sqlite3.Error as e:
                conn.rollback()
                raise StoreError(f"Failed to write '{key}': {e}") from e

    def extend_ttl(self, key: str, threshold: int, extend_to: int) -> None:
        with self._lock:
            conn = self._conn()
            try:
                row = self._live_row(key)
                if row is None:
                    raise StoreError(f"Cannot extend retention of missing slot '{key}'")
                if row["expires_at"] is None:
                    return
                now = self.clock.now()
                if row["expires_at"] - now < threshold:
                    conn.execute(
                        "UPDATE kv_slots SET expires_at = ? WHERE key = ?",
                        (now + extend_to, key)
                    )
                    conn.commit()
            except sqlite3.Error as e:
                conn.rollback()
                raise StoreError(f"Failed to extend retention of '{key}': {e}") from e

    def ttl(self, key: str) -> Optional[int]:
        with self._lock:
            try:
                row = self._live_row(key)
            except sqlite3.Error as e:
                raise StoreError(f"Failed to read '{key}': {e}") from e
            if row is None or row["expires_at"] is None:
                return None
            return row["expires_at"] - self.clock.now()

    def close(self) -> None:
        """Close SQLite connection"""
        with self._lock:
            if self._connection:
                self._connection.close()
                self._connection = None
