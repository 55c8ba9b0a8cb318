"""SQLite result store keyed by result id, with time-based expiry."""

from __future__ import annotations

import json
import sqlite3
import time
import uuid
from pathlib import Path
from typing import Optional

from .integrity import canonical_bytes
from .models import ExtractionResult, ExtractionStats, IntegrityDigest, NormalizedRecord


def _dict_factory(cursor: sqlite3.Cursor, row: tuple) -> dict:
    return {col[0]: row[i] for i, col in enumerate(cursor.description)}


class Storage:
    """
    SQLite-backed store for extraction results. The stored artifact is the exact byte
    sequence that was stamped, so verification recomputes over what is on disk.
    Rows past expires_at are invisible to readers and removed by evict_expired().
    """

    def __init__(self, db_path: str | Path = "fitevidence.db", ttl_seconds: int = 86_400):
        self.db_path = Path(db_path)
        self.ttl_seconds = ttl_seconds
        self._conn: Optional[sqlite3.Connection] = None

    def connect(self) -> sqlite3.Connection:
        if self._conn is None:
            self._conn = sqlite3.connect(str(self.db_path), check_same_thread=False)
            self._conn.row_factory = _dict_factory
            self._ensure_schema()
        return self._conn

    def close(self) -> None:
        if self._conn:
            self._conn.close()
            self._conn = None

    def _ensure_schema(self) -> None:
        conn = self.connect()
        conn.executescript("""
            CREATE TABLE IF NOT EXISTS results (
                result_id TEXT PRIMARY KEY,
                artifact BLOB NOT NULL,
                digest TEXT NOT NULL,
                algorithm TEXT NOT NULL DEFAULT 'sha256',
                captured_at TEXT NOT NULL,
                record_count INTEGER NOT NULL,
                metrics_json TEXT NOT NULL,
                devices_json TEXT NOT NULL,
                stats_json TEXT NOT NULL,
                created_at REAL NOT NULL,
                expires_at REAL NOT NULL
            );
            CREATE INDEX IF NOT EXISTS idx_results_digest ON results(digest);
            CREATE INDEX IF NOT EXISTS idx_results_expires_at ON results(expires_at);
        """)
        conn.commit()

    def store_result(
        self,
        result_id: str,
        result: ExtractionResult,
        digest: IntegrityDigest,
        now: float | None = None,
    ) -> None:
        conn = self.connect()
        created = time.time() if now is None else now
        conn.execute(
            """
            INSERT INTO results (
                result_id, artifact, digest, algorithm, captured_at, record_count,
                metrics_json, devices_json, stats_json, created_at, expires_at
            )
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                result_id,
                canonical_bytes(result),
                digest.digest,
                digest.algorithm,
                digest.captured_at,
                digest.record_count,
                json.dumps(list(result.metrics)),
                json.dumps(list(result.devices)),
                result.stats.model_dump_json(),
                created,
                created + self.ttl_seconds,
            ),
        )
        conn.commit()

    def _row(self, result_id: str, now: float | None = None) -> Optional[dict]:
        conn = self.connect()
        current = time.time() if now is None else now
        return conn.execute(
            "SELECT * FROM results WHERE result_id = ? AND expires_at > ?",
            (result_id, current),
        ).fetchone()

    def get_artifact(self, result_id: str, now: float | None = None) -> Optional[bytes]:
        row = self._row(result_id, now)
        return bytes(row["artifact"]) if row else None

    def get_digest(self, result_id: str, now: float | None = None) -> Optional[IntegrityDigest]:
        row = self._row(result_id, now)
        if not row:
            return None
        return IntegrityDigest(
            digest=row["digest"],
            algorithm=row["algorithm"],
            captured_at=row["captured_at"],
            record_count=row["record_count"],
        )

    def get_result(self, result_id: str, now: float | None = None) -> Optional[ExtractionResult]:
        """Rebuild the result from the stored artifact; None when missing or expired."""
        row = self._row(result_id, now)
        if not row:
            return None
        records = [NormalizedRecord(**r) for r in json.loads(bytes(row["artifact"]).decode("utf-8"))]
        return ExtractionResult(
            records=tuple(records),
            metrics=tuple(json.loads(row["metrics_json"])),
            devices=tuple(json.loads(row["devices_json"])),
            stats=ExtractionStats.model_validate_json(row["stats_json"]),
        )

    def get_metadata(self, result_id: str, now: float | None = None) -> Optional[dict]:
        """digest, captured_at, metrics and devices without decoding the artifact."""
        row = self._row(result_id, now)
        if not row:
            return None
        return {
            "result_id": row["result_id"],
            "digest": row["digest"],
            "captured_at": row["captured_at"],
            "record_count": row["record_count"],
            "metrics": json.loads(row["metrics_json"]),
            "devices": json.loads(row["devices_json"]),
        }

    def delete_result(self, result_id: str) -> bool:
        conn = self.connect()
        cur = conn.execute("DELETE FROM results WHERE result_id = ?", (result_id,))
        conn.commit()
        return cur.rowcount > 0

    def evict_expired(self, now: float | None = None) -> int:
        """Delete expired rows; returns how many were removed."""
        conn = self.connect()
        current = time.time() if now is None else now
        cur = conn.execute("DELETE FROM results WHERE expires_at <= ?", (current,))
        conn.commit()
        return cur.rowcount


def generate_id(prefix: str) -> str:
    return f"{prefix}_{uuid.uuid4().hex[:12]}"
