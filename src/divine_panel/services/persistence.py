"""Durable document storage for the in-memory aggregates.

The store knows nothing about what it holds: callers hand it a JSON-able
mapping under a key and get the same mapping back on the next start. Every
save overwrites the whole document.
"""

from __future__ import annotations

import json
import logging
from typing import Any

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from divine_panel.db.time import Clock, now_ms
from divine_panel.models import StoredDocument

SITE_STATE_KEY = "site_state"
ACCESS_KEY = "access"

logger = logging.getLogger(__name__)


class DocumentStore:
    """Load and save whole JSON documents through SQLAlchemy.

    Storage failures are logged and swallowed. The in-memory aggregates stay
    authoritative for the rest of the process lifetime, and nothing is retried.
    """

    def __init__(self, session_factory: sessionmaker[Session], clock: Clock = now_ms) -> None:
        self._session_factory = session_factory
        self._clock = clock

    def load(self, key: str) -> dict[str, Any] | None:
        """Return the stored document for `key`.

        Returns None when nothing is stored, when the body is not a JSON
        object, or when the database cannot be read.
        """
        try:
            with self._session_factory() as db:
                row = db.get(StoredDocument, key)
                body = row.body if row is not None else None
        except SQLAlchemyError as e:
            logger.warning("Failed to load document %s: %s", key, e)
            return None

        if body is None:
            return None
        try:
            parsed = json.loads(body)
        except ValueError as e:
            logger.warning("Stored document %s is not valid JSON: %s", key, e)
            return None
        if not isinstance(parsed, dict):
            logger.warning("Stored document %s is not a JSON object; ignoring it", key)
            return None
        return parsed

    def save(self, key: str, document: dict[str, Any]) -> bool:
        """Overwrite the document stored under `key`.

        Returns:
            True if the write was committed, False if it failed and was logged.
        """
        body = json.dumps(document, separators=(",", ":"), sort_keys=True)
        with self._session_factory() as db:
            try:
                db.merge(StoredDocument(key=key, body=body, updated_at=self._clock()))
                db.commit()
            except SQLAlchemyError as e:
                db.rollback()
                logger.warning("Failed to save document %s: %s", key, e)
                return False
        return True
