import sqlite3
import json
import os
from typing import Any, Dict, List
from app.core.config import settings

DATABASE_PATH = settings.DATABASE_PATH

RECORD_FIELDS = (
    "id", "url", "final_url", "content", "content_kind",
    "status_code", "headers", "strategy", "fetched_at", "created_at",
)

def _connect() -> sqlite3.Connection:
    conn = sqlite3.connect(DATABASE_PATH)
    conn.row_factory = sqlite3.Row
    return conn

def _to_record(row: sqlite3.Row) -> Dict[str, Any]:
    record = {name: row[name] for name in RECORD_FIELDS}
    record["headers"] = json.loads(record["headers"] or "{}")
    return record

def init_db():
    """Initialize SQLite database with the acquired jobs table"""
    directory = os.path.dirname(DATABASE_PATH)
    if directory:
        os.makedirs(directory, exist_ok=True)

    with _connect() as conn:
        conn.execute("""
            CREATE TABLE IF NOT EXISTS jobs (
                id TEXT PRIMARY KEY,
                url TEXT NOT NULL,
                final_url TEXT,
                content TEXT NOT NULL,
                content_kind TEXT NOT NULL DEFAULT 'html',
                status_code INTEGER,
                headers TEXT,
                strategy TEXT,
                fetched_at TEXT,
                created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
            )
        """)
        conn.commit()

def find_by_ids(ids: List[str]) -> List[Dict[str, Any]]:
    """Get stored records whose identity hash is in ids"""
    if not ids:
        return []
    placeholders = ",".join("?" for _ in ids)
    with _connect() as conn:
        cursor = conn.execute(f"SELECT * FROM jobs WHERE id IN ({placeholders})", list(ids))
        return [_to_record(row) for row in cursor.fetchall()]

def save(record: Dict[str, Any]) -> str:
    """Store a record keyed by its identity hash. Re-saving overwrites."""
    with _connect() as conn:
        conn.execute(
            """
            INSERT OR REPLACE INTO jobs
                (id, url, final_url, content, content_kind, status_code, headers, strategy, fetched_at)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                record["id"],
                record["url"],
                record.get("final_url"),
                record["content"],
                record.get("content_kind", "html"),
                record.get("status_code"),
                json.dumps(record.get("headers") or {}),
                record.get("strategy"),
                record.get("fetched_at"),
            ),
        )
        conn.commit()
    return record["id"]

def delete(record_id: str) -> bool:
    """Remove a single record"""
    with _connect() as conn:
        cursor = conn.execute("DELETE FROM jobs WHERE id = ?", (record_id,))
        conn.commit()
        return cursor.rowcount > 0

def clear_all():
    """Clear all records (for testing)"""
    with _connect() as conn:
        conn.execute("DELETE FROM jobs")
        conn.commit()

def get_stats() -> dict:
    """Get repository statistics"""
    with _connect() as conn:
        total_entries = conn.execute("SELECT COUNT(*) FROM jobs").fetchone()[0]
        by_strategy = {
            row[0] or "unknown": row[1]
            for row in conn.execute("SELECT strategy, COUNT(*) FROM jobs GROUP BY strategy")
        }

        return {
            "total_entries": total_entries,
            "by_strategy": by_strategy,
            "database_path": DATABASE_PATH
        }
