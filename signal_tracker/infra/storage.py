"""Storage collaborator: companies, emitted candidates and dedup keys."""

from __future__ import annotations

import json
import sqlite3
import uuid
from datetime import datetime
from pathlib import Path
from threading import Lock
from typing import Iterable, Protocol

from ..models import Candidate, Company, DedupKey, DetectionType, utcnow


class CandidateStore(Protocol):
    """What the scan pipeline needs from persistent storage."""

    def list_companies(self) -> list[Company]: ...

    def save_candidate(self, candidate: Candidate) -> str: ...

    def load_dedup_keys(self) -> set[DedupKey]: ...

    def append_dedup_key(self, key: DedupKey) -> None: ...


_SCHEMA = (
    """
    CREATE TABLE IF NOT EXISTS companies (
        id TEXT PRIMARY KEY,
        name TEXT NOT NULL UNIQUE,
        website TEXT,
        linkedin_url TEXT,
        career_page_url TEXT,
        is_active INTEGER NOT NULL DEFAULT 1,
        last_scanned_at TEXT
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS candidates (
        id TEXT PRIMARY KEY,
        kind TEXT NOT NULL,
        company TEXT NOT NULL,
        dedup_key TEXT NOT NULL,
        confidence INTEGER NOT NULL,
        source_tag TEXT NOT NULL,
        strategy TEXT NOT NULL,
        payload TEXT NOT NULL,
        discovered_at TEXT NOT NULL
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS dedup_keys (
        key TEXT PRIMARY KEY,
        committed_at TEXT NOT NULL
    )
    """,
)


class SQLiteStore:
    """SQLite-backed store shared by every worker thread."""

    def __init__(self, path: Path) -> None:
        self.path = path
        self._lock = Lock()
        self._conn = self._connect()

    def _connect(self) -> sqlite3.Connection:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        conn = sqlite3.connect(self.path, check_same_thread=False)
        conn.row_factory = sqlite3.Row
        for statement in _SCHEMA:
            conn.execute(statement)
        conn.commit()
        return conn

    # ------------------------------------------------------------------
    # Companies
    # ------------------------------------------------------------------
    def list_companies(self, active_only: bool = False) -> list[Company]:
        query = "SELECT * FROM companies"
        if active_only:
            query += " WHERE is_active = 1"
        query += " ORDER BY name"
        with self._lock:
            rows = self._conn.execute(query).fetchall()
        return [self._row_to_company(row) for row in rows]

    def upsert_company(self, company: Company) -> str:
        company_id = company.id or uuid.uuid4().hex
        with self._lock:
            existing = self._conn.execute(
                "SELECT id FROM companies WHERE name = ?", (company.name,)
            ).fetchone()
            if existing:
                company_id = existing["id"]
            self._conn.execute(
                """
                INSERT INTO companies(id, name, website, linkedin_url, career_page_url, is_active)
                VALUES (?, ?, ?, ?, ?, ?)
                ON CONFLICT(id) DO UPDATE SET
                    name = excluded.name,
                    website = excluded.website,
                    linkedin_url = excluded.linkedin_url,
                    career_page_url = excluded.career_page_url,
                    is_active = excluded.is_active
                """,
                (
                    company_id,
                    company.name,
                    company.website,
                    company.linkedin_url,
                    company.career_page_url,
                    int(company.is_active),
                ),
            )
            self._conn.commit()
        return company_id

    def import_companies(self, companies: Iterable[Company]) -> int:
        count = 0
        for company in companies:
            self.upsert_company(company)
            count += 1
        return count

    def mark_scanned(self, company: Company, when: datetime | None = None) -> None:
        stamp = (when or utcnow()).isoformat()
        with self._lock:
            self._conn.execute(
                "UPDATE companies SET last_scanned_at = ? WHERE name = ?", (stamp, company.name)
            )
            self._conn.commit()

    @staticmethod
    def _row_to_company(row: sqlite3.Row) -> Company:
        scanned = row["last_scanned_at"]
        return Company(
            id=row["id"],
            name=row["name"],
            website=row["website"],
            linkedin_url=row["linkedin_url"],
            career_page_url=row["career_page_url"],
            is_active=bool(row["is_active"]),
            last_scanned_at=datetime.fromisoformat(scanned) if scanned else None,
        )

    # ------------------------------------------------------------------
    # Candidates
    # ------------------------------------------------------------------
    def save_candidate(self, candidate: Candidate) -> str:
        candidate_id = uuid.uuid4().hex
        record = candidate.to_record()
        with self._lock:
            self._conn.execute(
                """
                INSERT INTO candidates(
                    id, kind, company, dedup_key, confidence, source_tag, strategy, payload, discovered_at
                ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    candidate_id,
                    candidate.kind.value,
                    candidate.company,
                    str(candidate.dedup_key),
                    candidate.confidence,
                    candidate.source_tag.value,
                    candidate.strategy,
                    json.dumps(record, ensure_ascii=False),
                    record["discovered_at"],
                ),
            )
            self._conn.commit()
        return candidate_id

    def list_candidates(self, kind: DetectionType, limit: int = 50) -> list[dict]:
        with self._lock:
            rows = self._conn.execute(
                "SELECT payload FROM candidates WHERE kind = ? ORDER BY discovered_at DESC LIMIT ?",
                (kind.value, limit),
            ).fetchall()
        return [json.loads(row["payload"]) for row in rows]

    # ------------------------------------------------------------------
    # Dedup keys
    # ------------------------------------------------------------------
    def load_dedup_keys(self) -> set[DedupKey]:
        with self._lock:
            rows = self._conn.execute("SELECT key FROM dedup_keys").fetchall()
        return {DedupKey(row["key"]) for row in rows}

    def append_dedup_key(self, key: DedupKey) -> None:
        with self._lock:
            self._conn.execute(
                "INSERT OR IGNORE INTO dedup_keys(key, committed_at) VALUES (?, ?)",
                (str(key), utcnow().isoformat()),
            )
            self._conn.commit()

    def reset_dedup_keys(self) -> None:
        with self._lock:
            self._conn.execute("DELETE FROM dedup_keys")
            self._conn.commit()

    def close(self) -> None:
        with self._lock:
            self._conn.close()


__all__ = ["CandidateStore", "SQLiteStore"]
