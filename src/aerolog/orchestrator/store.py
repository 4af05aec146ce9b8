"""Durable local key/value storage for the report collection and sync endpoint."""

from __future__ import annotations

import json
import os
import sqlite3
from typing import List, Optional

from ..domain.models import FlightReport, reports_from_wire, reports_to_wire
from ..logging import get_logger
from ..paths import state_path

LOG = get_logger("orchestrator-store")


DB_FILENAME = "aerolog.sqlite3"
DB_FOLDERNAME = "aerolog_db"
TABLE_NAME = "kv_entries"

COLLECTION_KEY = "aerolog_data_v1"
SERVER_URL_KEY = "aerolog_server_url"


class PersistenceError(Exception):
    pass


class LocalStore:
    """SQLite-backed key/value store.

    Two independent entries are kept: the full collection as a JSON array and
    the remote endpoint URL as a plain string. Reads never raise; a corrupt
    collection reads as empty.
    """

    def __init__(self, root_dir: Optional[str] = None, *, db_path: Optional[str] = None) -> None:
        if db_path:
            self.db_path = os.path.abspath(db_path)
        else:
            self.db_path = state_path(root_dir, DB_FOLDERNAME, DB_FILENAME)
        os.makedirs(os.path.dirname(self.db_path), exist_ok=True)
        try:
            self._ensure_schema()
        except sqlite3.Error as exc:
            # Reads will come back empty and writes will report failure.
            LOG.error(f"Local store at {self.db_path} is unusable: {exc}")
            return
        LOG.info(f"Local store ready at {self.db_path}")

    def _connect(self) -> sqlite3.Connection:
        return sqlite3.connect(self.db_path)

    def _ensure_schema(self) -> None:
        conn = self._connect()
        try:
            cur = conn.cursor()
            try:
                cur.execute("PRAGMA journal_mode=WAL;")
                cur.execute("PRAGMA synchronous=NORMAL;")
            except sqlite3.DatabaseError:
                pass
            cur.execute(
                f"""
                CREATE TABLE IF NOT EXISTS {TABLE_NAME} (
                    key TEXT PRIMARY KEY,
                    value TEXT NOT NULL,
                    updated_at TEXT DEFAULT (datetime('now'))
                );
                """
            )
            conn.commit()
        finally:
            conn.close()

    # ---------------- raw key/value ----------------
    def get_item(self, key: str) -> Optional[str]:
        try:
            conn = self._connect()
            try:
                cur = conn.cursor()
                cur.execute(f"SELECT value FROM {TABLE_NAME} WHERE key=?", (key,))
                row = cur.fetchone()
                return row[0] if row else None
            finally:
                conn.close()
        except sqlite3.Error as exc:
            raise PersistenceError(f"read {key!r} failed: {exc}") from exc

    def set_item(self, key: str, value: str) -> None:
        try:
            conn = self._connect()
            try:
                cur = conn.cursor()
                cur.execute(
                    f"""
                    INSERT INTO {TABLE_NAME} (key, value) VALUES (?, ?)
                    ON CONFLICT(key) DO UPDATE SET
                        value=excluded.value,
                        updated_at=datetime('now');
                    """,
                    (key, value),
                )
                conn.commit()
            finally:
                conn.close()
        except sqlite3.Error as exc:
            raise PersistenceError(f"write {key!r} failed: {exc}") from exc

    def remove_item(self, key: str) -> None:
        try:
            conn = self._connect()
            try:
                cur = conn.cursor()
                cur.execute(f"DELETE FROM {TABLE_NAME} WHERE key=?", (key,))
                conn.commit()
            finally:
                conn.close()
        except sqlite3.Error as exc:
            raise PersistenceError(f"delete {key!r} failed: {exc}") from exc

    # ---------------- collection ----------------
    def load_collection(self) -> List[FlightReport]:
        try:
            raw = self.get_item(COLLECTION_KEY)
        except PersistenceError as exc:
            LOG.error(f"Failed to load local data: {exc}")
            return []
        if not raw:
            return []
        try:
            reports = reports_from_wire(json.loads(raw))
        except ValueError as exc:
            LOG.error(f"Failed to load local data; treating as empty: {exc}")
            return []
        LOG.info(f"Loaded {len(reports)} report(s) from local store")
        return reports

    def save_collection(self, reports: List[FlightReport]) -> bool:
        try:
            self.set_item(COLLECTION_KEY, json.dumps(reports_to_wire(reports), ensure_ascii=False))
        except PersistenceError as exc:
            LOG.error(f"Failed to save local data: {exc}")
            return False
        LOG.debug(f"Saved {len(reports)} report(s) to local store")
        return True

    def clear_collection(self) -> bool:
        try:
            self.remove_item(COLLECTION_KEY)
        except PersistenceError as exc:
            LOG.error(f"Failed to clear local data: {exc}")
            return False
        LOG.info("Local collection entry removed")
        return True

    # ---------------- sync endpoint ----------------
    def load_sync_url(self) -> Optional[str]:
        try:
            raw = self.get_item(SERVER_URL_KEY)
        except PersistenceError as exc:
            LOG.error(f"Failed to load sync endpoint: {exc}")
            return None
        url = (raw or "").strip()
        return url or None

    def save_sync_url(self, url: Optional[str]) -> bool:
        try:
            self.set_item(SERVER_URL_KEY, (url or "").strip())
        except PersistenceError as exc:
            LOG.error(f"Failed to save sync endpoint: {exc}")
            return False
        return True
