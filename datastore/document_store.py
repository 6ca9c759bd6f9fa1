from __future__ import annotations
import json
import logging
import os
from datetime import datetime, timezone
from functools import lru_cache
from pathlib import Path
from threading import Lock
from typing import Dict, Optional

from app.schemas import SpaceDocument
from services.errors import ConflictError, StoreError
from settings import get_settings

logger = logging.getLogger(__name__)


class DocumentStore:
    """Whole-document store for spaces with a version compare-and-swap."""

    def __init__(self, name: str, persistence_path: Optional[Path] = None) -> None:
        self.name = name
        self._documents: Dict[str, SpaceDocument] = {}
        self.persistence_path = persistence_path
        self._lock = Lock()
        if persistence_path:
            persistence_path.parent.mkdir(parents=True, exist_ok=True)
            self._load_from_disk()

    def get_document(self, space_id: str) -> Optional[SpaceDocument]:
        with self._lock:
            document = self._documents.get(space_id)
            if document is None:
                return None
            return document.model_copy(deep=True)

    def put_document(
        self,
        document: SpaceDocument,
        expected_version: Optional[int] = None,
    ) -> SpaceDocument:
        """Replace the stored document and return the stored copy.

        When ``expected_version`` is given the write only succeeds if the
        stored version still matches it; a missing document has version 0.
        """
        with self._lock:
            current = self._documents.get(document.space_id)
            current_version = current.version if current is not None else 0
            if expected_version is not None and expected_version != current_version:
                raise ConflictError(
                    f"Document {document.space_id!r} is at version {current_version}, "
                    f"expected {expected_version}.",
                    expected_version=expected_version,
                    actual_version=current_version,
                )

            stored = document.model_copy(
                deep=True,
                update={
                    "version": current_version + 1,
                    "updated_at": datetime.now(timezone.utc),
                },
            )
            self._documents[document.space_id] = stored
            try:
                self._persist()
            except (OSError, TypeError, ValueError) as exc:
                if current is None:
                    self._documents.pop(document.space_id, None)
                else:
                    self._documents[document.space_id] = current
                raise StoreError(
                    f"Failed to persist document {document.space_id!r}: {exc}"
                ) from exc
            return stored.model_copy(deep=True)

    def delete_document(self, space_id: str) -> bool:
        with self._lock:
            removed = self._documents.pop(space_id, None)
            if removed is None:
                return False
            try:
                self._persist()
            except (OSError, TypeError, ValueError) as exc:
                self._documents[space_id] = removed
                raise StoreError(f"Failed to delete document {space_id!r}: {exc}") from exc
            return True

    def scan(self) -> list[SpaceDocument]:
        """Return deep copies of all stored documents."""

        with self._lock:
            return [document.model_copy(deep=True) for document in self._documents.values()]

    def _persist(self) -> None:
        if not self.persistence_path:
            return
        payload = {
            space_id: document.model_dump(mode="json")
            for space_id, document in self._documents.items()
        }
        # The store file is only ever replaced whole, never rewritten in place.
        staging = self.persistence_path.with_name(self.persistence_path.name + ".tmp")
        try:
            staging.write_text(json.dumps(payload, indent=2, sort_keys=True))
            os.replace(staging, self.persistence_path)
        finally:
            staging.unlink(missing_ok=True)

    def _load_from_disk(self) -> None:
        if not self.persistence_path or not self.persistence_path.exists():
            return

        try:
            raw = self.persistence_path.read_text() or "{}"
            data = json.loads(raw)
        except (OSError, json.JSONDecodeError):
            logger.warning(
                "Ignoring unreadable store file %s", self.persistence_path,
                extra={"reason": "unreadable"},
            )
            data = {}

        for space_id, payload in data.items():
            self._documents[space_id] = SpaceDocument.model_validate(payload)


@lru_cache
def build_default_store(
    name: Optional[str] = None,
    path: Optional[str] = None,
) -> DocumentStore:
    settings = get_settings()
    table_name = settings.table_name if name is None else name
    table_path = settings.table_persistence_path if path is None else path
    persistence = Path(table_path) if table_path else None
    return DocumentStore(name=table_name, persistence_path=persistence)
