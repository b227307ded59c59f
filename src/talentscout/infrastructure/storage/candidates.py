"""Candidate storage keyed by platform identity.

Profiles are upserted by their source references: a profile that shares
any (platform, platform_id) with a stored candidate updates that row.
"""

import json
import sqlite3
from pathlib import Path
from typing import Any

from talentscout.core.models import CanonicalProfile
from talentscout.utils.datetime import ensure_isoformat

CANDIDATE_SCHEMA = """
CREATE TABLE IF NOT EXISTS candidates (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    profile_id TEXT NOT NULL,
    name TEXT,
    title TEXT,
    location TEXT,
    email TEXT,
    email_confidence TEXT,
    summary TEXT,
    avatar_url TEXT,
    skills_json TEXT,
    experience_years REAL,
    final_score REAL,
    score_json TEXT,
    last_active TEXT,
    created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
    updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
);

CREATE INDEX IF NOT EXISTS idx_candidates_score ON candidates(final_score);

CREATE TABLE IF NOT EXISTS candidate_sources (
    platform TEXT NOT NULL,
    platform_id TEXT NOT NULL,
    candidate_id INTEGER NOT NULL REFERENCES candidates(id),
    url TEXT,
    PRIMARY KEY (platform, platform_id)
);

CREATE INDEX IF NOT EXISTS idx_candidate_sources_candidate ON candidate_sources(candidate_id);
"""


class CandidateStorage:
    """SQLite storage for canonical candidate profiles."""

    def __init__(self, path: Path | str):
        self.path = Path(path)
        self._conn: sqlite3.Connection | None = None

    def connect(self) -> sqlite3.Connection:
        """Get or create database connection."""
        if self._conn is None:
            if str(self.path) != ":memory:":
                self.path.parent.mkdir(parents=True, exist_ok=True)
            self._conn = sqlite3.connect(str(self.path))
            self._conn.row_factory = sqlite3.Row
        return self._conn

    def initialize(self) -> None:
        """Create tables and indexes."""
        conn = self.connect()
        conn.executescript(CANDIDATE_SCHEMA)
        conn.commit()

    def close(self) -> None:
        """Close database connection."""
        if self._conn:
            self._conn.close()
            self._conn = None

    def __enter__(self):
        self.initialize()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()

    def _find_candidate_id(self, conn: sqlite3.Connection, profile: CanonicalProfile) -> int | None:
        for ref in profile.sources:
            row = conn.execute(
                "SELECT candidate_id FROM candidate_sources WHERE platform = ? AND platform_id = ?",
                (ref.platform, ref.platform_id),
            ).fetchone()
            if row:
                return row["candidate_id"]
        return None

    @staticmethod
    def _row_values(profile: CanonicalProfile) -> tuple:
        score = profile.score
        return (
            profile.id,
            profile.name,
            profile.title,
            profile.location,
            profile.email,
            profile.email_confidence.level if profile.email_confidence else None,
            profile.summary,
            profile.avatar_url,
            json.dumps(profile.skills, ensure_ascii=False),
            profile.experience_years,
            score.final_score if score else None,
            score.model_dump_json() if score else None,
            ensure_isoformat(profile.last_active),
        )

    def upsert_profiles(self, profiles: list[CanonicalProfile]) -> tuple[int, int]:
        """Insert new candidates and update known ones.

        Args:
            profiles: Canonical profiles to persist.

        Returns:
            Tuple of (inserted, updated) counts.
        """
        if not profiles:
            return 0, 0

        conn = self.connect()
        inserted = updated = 0
        for profile in profiles:
            values = self._row_values(profile)
            candidate_id = self._find_candidate_id(conn, profile)
            if candidate_id is None:
                cursor = conn.execute(
                    """
                    INSERT INTO candidates (
                        profile_id, name, title, location, email, email_confidence,
                        summary, avatar_url, skills_json, experience_years,
                        final_score, score_json, last_active
                    ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                    """,
                    values,
                )
                candidate_id = cursor.lastrowid
                inserted += 1
            else:
                conn.execute(
                    """
                    UPDATE candidates SET
                        profile_id = ?, name = ?, title = ?, location = ?, email = ?,
                        email_confidence = ?, summary = ?, avatar_url = ?, skills_json = ?,
                        experience_years = ?, final_score = ?, score_json = ?, last_active = ?,
                        updated_at = CURRENT_TIMESTAMP
                    WHERE id = ?
                    """,
                    (*values, candidate_id),
                )
                updated += 1

            conn.executemany(
                """
                INSERT OR REPLACE INTO candidate_sources (platform, platform_id, candidate_id, url)
                VALUES (?, ?, ?, ?)
                """,
                [(ref.platform, ref.platform_id, candidate_id, ref.url) for ref in profile.sources],
            )
        conn.commit()
        return inserted, updated

    def get_by_source(self, platform: str, platform_id: str) -> dict[str, Any] | None:
        """Stored candidate row reachable from one platform identity."""
        conn = self.connect()
        row = conn.execute(
            """
            SELECT c.* FROM candidates c
            JOIN candidate_sources s ON s.candidate_id = c.id
            WHERE s.platform = ? AND s.platform_id = ?
            """,
            (platform, platform_id),
        ).fetchone()
        if row is None:
            return None
        data = dict(row)
        data["skills"] = json.loads(data.pop("skills_json") or "[]")
        return data

    def count_candidates(self) -> int:
        conn = self.connect()
        return conn.execute("SELECT COUNT(*) FROM candidates").fetchone()[0]


__all__ = ["CandidateStorage"]
