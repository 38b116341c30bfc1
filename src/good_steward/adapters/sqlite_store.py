"""SQLite repositories for the on-device store."""

import json
import logging
import sqlite3
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path

from good_steward.adapters.rows import (
    consumption_from_row,
    consumption_to_row,
    format_timestamp,
    scan_from_row,
    scan_to_row,
)
from good_steward.domain.scans import ConsumptionRecord, ScanResult
from good_steward.errors import StorageError
from good_steward.services.ledger import ConsumptionRepository
from good_steward.services.profile import ProfileRepository
from good_steward.services.scans import ScanRepository

_logger = logging.getLogger(__name__)

_SCHEMA = (
    """
    CREATE TABLE IF NOT EXISTS scans (
        barcode TEXT PRIMARY KEY,
        name TEXT NOT NULL,
        brand TEXT,
        ingredients TEXT NOT NULL DEFAULT '',
        summary TEXT NOT NULL DEFAULT '',
        nutrition TEXT,
        allergens TEXT,
        traces TEXT,
        data_source TEXT,
        source TEXT NOT NULL DEFAULT 'barcode',
        photo_uri TEXT,
        scanned_at TEXT NOT NULL
    );
    """,
    """
    CREATE TABLE IF NOT EXISTS consumptions (
        id TEXT PRIMARY KEY,
        barcode TEXT NOT NULL,
        consumed_at TEXT NOT NULL,
        portion_grams REAL NOT NULL CHECK (portion_grams > 0),
        portion_nutrition TEXT NOT NULL DEFAULT '{}'
    );
    """,
    "CREATE INDEX IF NOT EXISTS idx_consumptions_barcode ON consumptions (barcode);",
    "CREATE INDEX IF NOT EXISTS idx_consumptions_at ON consumptions (consumed_at);",
    """
    CREATE TABLE IF NOT EXISTS user_profile (
        id INTEGER PRIMARY KEY CHECK (id = 1),
        payload TEXT NOT NULL
    );
    """,
)


@dataclass
class SqliteDatabase:
    """Opens short-lived connections to one database file."""

    path: Path

    def init_schema(self) -> None:
        """Create tables if they don't exist."""
        if self.path.parent != Path():
            self.path.parent.mkdir(parents=True, exist_ok=True)
        with self.connect() as conn:
            for statement in _SCHEMA:
                conn.execute(statement)
        _logger.info("SQLite store ready: path=%s", self.path)

    @contextmanager
    def connect(self) -> Iterator[sqlite3.Connection]:
        """Yield a connection that commits on success and rolls back on error."""
        try:
            conn = sqlite3.connect(self.path)
        except sqlite3.Error as exc:
            raise StorageError(f"Cannot open database {self.path}") from exc
        conn.row_factory = sqlite3.Row
        try:
            yield conn
            conn.commit()
        except sqlite3.Error as exc:
            conn.rollback()
            raise StorageError(str(exc)) from exc
        finally:
            conn.close()


@dataclass
class SqliteScanRepository(ScanRepository):
    """SQLite implementation for product facts."""

    database: SqliteDatabase

    def get_scan(self, barcode: str) -> ScanResult | None:
        """Return a scan row by barcode."""
        with self.database.connect() as conn:
            row = conn.execute(
                "SELECT * FROM scans WHERE barcode = ?", (barcode,)
            ).fetchone()
        return scan_from_row(_decode_scan_row(row)) if row else None

    def upsert_scan(self, scan: ScanResult) -> None:
        """Insert or replace a scan row."""
        row = _encode_json_columns(scan_to_row(scan))
        columns = ", ".join(row)
        placeholders = ", ".join(f":{column}" for column in row)
        updates = ", ".join(
            f"{column} = excluded.{column}" for column in row if column != "barcode"
        )
        with self.database.connect() as conn:
            conn.execute(
                f"INSERT INTO scans ({columns}) VALUES ({placeholders}) "  # noqa: S608
                f"ON CONFLICT(barcode) DO UPDATE SET {updates}",
                row,
            )

    def list_scans(self) -> list[ScanResult]:
        """Return scans, most recently scanned first."""
        with self.database.connect() as conn:
            rows = conn.execute(
                "SELECT * FROM scans ORDER BY scanned_at DESC"
            ).fetchall()
        return [scan_from_row(_decode_scan_row(row)) for row in rows]

    def delete_scan(self, barcode: str) -> None:
        """Delete a scan row."""
        with self.database.connect() as conn:
            conn.execute("DELETE FROM scans WHERE barcode = ?", (barcode,))

    def clear(self) -> None:
        """Delete all scan rows."""
        with self.database.connect() as conn:
            conn.execute("DELETE FROM scans")

    def count(self) -> int:
        """Return the number of scan rows."""
        with self.database.connect() as conn:
            row = conn.execute("SELECT COUNT(*) AS count FROM scans").fetchone()
        return int(row["count"]) if row else 0


@dataclass
class SqliteConsumptionRepository(ConsumptionRepository):
    """SQLite implementation for the consumption ledger."""

    database: SqliteDatabase

    def append(self, record: ConsumptionRecord) -> None:
        """Insert a consumption row."""
        row = consumption_to_row(record)
        row["portion_nutrition"] = json.dumps(row["portion_nutrition"])
        with self.database.connect() as conn:
            conn.execute(
                "INSERT INTO consumptions "
                "(id, barcode, consumed_at, portion_grams, portion_nutrition) "
                "VALUES (:id, :barcode, :consumed_at, :portion_grams, "
                ":portion_nutrition)",
                row,
            )

    def exists(self, record_id: str) -> bool:
        """Return True when a row with this id exists."""
        with self.database.connect() as conn:
            row = conn.execute(
                "SELECT 1 FROM consumptions WHERE id = ?", (record_id,)
            ).fetchone()
        return row is not None

    def list_for_barcode(self, barcode: str) -> list[ConsumptionRecord]:
        """Return a product's rows, most recent first."""
        return self._select(
            "SELECT * FROM consumptions WHERE barcode = ? ORDER BY consumed_at DESC",
            (barcode,),
        )

    def list_between(self, start: datetime, end: datetime) -> list[ConsumptionRecord]:
        """Return rows in ``[start, end)``; bounds are compared as UTC text."""
        return self._select(
            "SELECT * FROM consumptions WHERE consumed_at >= ? AND consumed_at < ? "
            "ORDER BY consumed_at ASC",
            (format_timestamp(start), format_timestamp(end)),
        )

    def list_all(self) -> list[ConsumptionRecord]:
        """Return every row, most recent first."""
        return self._select(
            "SELECT * FROM consumptions ORDER BY consumed_at DESC", ()
        )

    def clear(self) -> None:
        """Delete all consumption rows."""
        with self.database.connect() as conn:
            conn.execute("DELETE FROM consumptions")

    def _select(
        self, query: str, params: tuple[object, ...]
    ) -> list[ConsumptionRecord]:
        with self.database.connect() as conn:
            rows = conn.execute(query, params).fetchall()
        try:
            return [
                consumption_from_row(
                    {
                        **dict(row),
                        "portion_nutrition": json.loads(row["portion_nutrition"]),
                    }
                )
                for row in rows
            ]
        except (ValueError, TypeError) as exc:
            raise StorageError("Corrupt consumption row") from exc


@dataclass
class SqliteProfileRepository(ProfileRepository):
    """SQLite implementation for the single profile row."""

    database: SqliteDatabase

    def load_profile(self) -> dict[str, object] | None:
        """Return the stored profile payload."""
        with self.database.connect() as conn:
            row = conn.execute(
                "SELECT payload FROM user_profile WHERE id = 1"
            ).fetchone()
        if row is None:
            return None
        try:
            return json.loads(row["payload"])
        except ValueError as exc:
            raise StorageError("Corrupt profile row") from exc

    def save_profile(self, payload: dict[str, object]) -> None:
        """Replace the stored profile payload."""
        with self.database.connect() as conn:
            conn.execute(
                "INSERT INTO user_profile (id, payload) VALUES (1, ?) "
                "ON CONFLICT(id) DO UPDATE SET payload = excluded.payload",
                (json.dumps(payload),),
            )

    def delete_profile(self) -> None:
        """Remove the stored profile."""
        with self.database.connect() as conn:
            conn.execute("DELETE FROM user_profile")


def _encode_json_columns(row: dict[str, object]) -> dict[str, object]:
    encoded = dict(row)
    for column in ("nutrition", "allergens", "traces"):
        value = encoded.get(column)
        encoded[column] = json.dumps(value) if value is not None else None
    return encoded


def _decode_scan_row(row: sqlite3.Row) -> dict[str, object]:
    decoded = dict(row)
    try:
        for column in ("nutrition", "allergens", "traces"):
            raw = decoded.get(column)
            decoded[column] = json.loads(raw) if raw else None
    except ValueError as exc:
        barcode = decoded.get("barcode")
        raise StorageError(f"Corrupt scan row: barcode={barcode}") from exc
    return decoded
