"""SQLite-backed consent flags."""

from __future__ import annotations

import logging
import sqlite3
import threading
from pathlib import Path
from typing import Dict, Optional

from .errors import PersistenceError
from .schemas import ConsentKind, ConsentStatus, ConsentUpdate

logger = logging.getLogger(__name__)


class SQLiteConsentStore:
    """Persists the two consent flags with granted/denied/unset semantics.

    A missing row means the user was never asked. Storage failures never
    escape: reads degrade to ``UNSET`` and failed writes leave the previous
    state in place, so callers should re-read rather than assume success.
    """

    def __init__(self, db_path: str):
        self.db_path = db_path
        self._lock = threading.Lock()
        self.conn: Optional[sqlite3.Connection] = None
        try:
            if db_path != ":memory:":
                Path(db_path).parent.mkdir(parents=True, exist_ok=True)
            self.conn = sqlite3.connect(db_path, check_same_thread=False)
            self.conn.row_factory = sqlite3.Row
            self._init_schema()
        except (OSError, sqlite3.Error):
            logger.exception("Consent storage unavailable at %s; treating consent as unset", db_path)
            self.conn = None

    def _init_schema(self) -> None:
        assert self.conn is not None
        self.conn.execute(
            """
            CREATE TABLE IF NOT EXISTS consent (
                kind TEXT PRIMARY KEY,
                granted INTEGER NOT NULL,
                updated_at TEXT NOT NULL DEFAULT (datetime('now'))
            )
            """
        )
        self.conn.commit()

    def _read_all(self) -> Dict[ConsentKind, ConsentStatus]:
        state = {kind: ConsentStatus.UNSET for kind in ConsentKind}
        if self.conn is None:
            return state
        rows = self.conn.execute("SELECT kind, granted FROM consent").fetchall()
        for row in rows:
            try:
                kind = ConsentKind(row["kind"])
            except ValueError:
                continue
            state[kind] = ConsentStatus.GRANTED if row["granted"] else ConsentStatus.DENIED
        return state

    def get(self, kind: ConsentKind) -> ConsentStatus:
        try:
            return self._read_all()[ConsentKind(kind)]
        except sqlite3.Error:
            logger.warning("Could not read %s consent; treating as unset", kind, exc_info=True)
            return ConsentStatus.UNSET

    def snapshot(self) -> Dict[ConsentKind, ConsentStatus]:
        try:
            return self._read_all()
        except sqlite3.Error:
            logger.warning("Could not read consent state; treating as unset", exc_info=True)
            return {kind: ConsentStatus.UNSET for kind in ConsentKind}

    def _write(self, values: Dict[ConsentKind, bool]) -> None:
        if self.conn is None:
            raise PersistenceError("consent storage is not available")
        try:
            with self.conn:
                self.conn.executemany(
                    """
                    INSERT INTO consent (kind, granted, updated_at) VALUES (?, ?, datetime('now'))
                    ON CONFLICT(kind) DO UPDATE SET
                        granted=excluded.granted,
                        updated_at=excluded.updated_at
                    """,
                    [(kind.value, int(granted)) for kind, granted in values.items()],
                )
        except sqlite3.Error as exc:
            raise PersistenceError(str(exc)) from exc

    def set(self, kind: ConsentKind, granted: bool) -> ConsentUpdate:
        """Record an explicit user choice.

        Granting AI improvement implies text-analysis consent; denying text
        analysis withdraws AI improvement. Both flags are written in one
        transaction and the implied grant is reported back.
        """
        kind = ConsentKind(kind)
        with self._lock:
            current = self.snapshot()
            values: Dict[ConsentKind, bool] = {kind: bool(granted)}
            implied = False
            if kind is ConsentKind.AI_IMPROVEMENT and granted:
                if current[ConsentKind.TEXT_ANALYSIS] is not ConsentStatus.GRANTED:
                    values[ConsentKind.TEXT_ANALYSIS] = True
                    implied = True
            elif kind is ConsentKind.TEXT_ANALYSIS and not granted:
                if current[ConsentKind.AI_IMPROVEMENT] is ConsentStatus.GRANTED:
                    values[ConsentKind.AI_IMPROVEMENT] = False

            try:
                self._write(values)
            except PersistenceError:
                logger.warning("Consent write for %s failed; state unchanged", kind.value, exc_info=True)
                return ConsentUpdate(kind=kind, status=current[kind])

        if implied:
            logger.info("Text-analysis consent granted implicitly by AI-improvement consent")
        return ConsentUpdate(
            kind=kind,
            status=ConsentStatus.GRANTED if granted else ConsentStatus.DENIED,
            implied_text_analysis=implied,
        )

    def reset(self) -> None:
        """Clear both flags back to unset."""
        with self._lock:
            if self.conn is None:
                logger.warning("Consent reset skipped; storage is not available")
                return
            try:
                with self.conn:
                    self.conn.execute("DELETE FROM consent")
            except sqlite3.Error:
                logger.warning("Consent reset failed; state unchanged", exc_info=True)

    def close(self) -> None:
        if self.conn is not None:
            self.conn.close()
            self.conn = None
