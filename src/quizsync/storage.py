"""Persistence for the shared sync snapshot.

Two backends store the single document addressed by the configured
document id (normally "main"):

- sqlite: a row in the sync_documents table, through the process-wide
  SQLAlchemy handle in models.database
- flatfile: <DATA_DIR>/quizsync/<document_id>.json, written atomically

Absence of the document is a normal result (load returns None). Any failure
to read or write raises StorageError.
"""

# Standard library imports
import json
import os
from typing import Any, Dict, Optional

# Third-party imports
from sqlalchemy.exc import SQLAlchemyError

# Local application imports
import constants
from common.atomic_file import (
    AtomicWriteError,
    FileLockError,
    atomic_write_json,
    read_json_with_lock,
    recover_from_backup,
)
from common.base.logging_config import get_logger
from common.config.sync_config import BACKEND_FLATFILE, BACKEND_SQLITE, SyncConfig
from models.database import DatabaseError, db
from models.models import SyncDocument, apply_snapshot, document_to_snapshot

logger = get_logger(__name__)


class StorageError(Exception):
    """Raised when the snapshot cannot be read from or written to storage."""
    pass


class SnapshotStore:
    """Read/write access to the single sync document."""

    backend_name = ""

    def __init__(self, document_id: str = "main"):
        self.document_id = document_id

    def load_snapshot(self) -> Optional[Dict[str, Any]]:
        raise NotImplementedError

    def save_snapshot(self, snapshot: Dict[str, Any]) -> None:
        raise NotImplementedError


class SqliteSnapshotStore(SnapshotStore):
    """Snapshot stored as one SyncDocument row."""

    backend_name = BACKEND_SQLITE

    def __init__(self, document_id: str = "main", db_url: Optional[str] = None):
        super().__init__(document_id)
        if db_url:
            db.configure(db_url)

    def load_snapshot(self) -> Optional[Dict[str, Any]]:
        try:
            with db.session() as session:
                document = session.get(SyncDocument, self.document_id)
                if document is None:
                    return None
                return document_to_snapshot(document)
        except (SQLAlchemyError, DatabaseError, ValueError) as e:
            logger.error(f"Error loading sync document {self.document_id}: {str(e)}")
            raise StorageError(f"Failed to load sync document: {e}") from e

    def save_snapshot(self, snapshot: Dict[str, Any]) -> None:
        """Upsert: create the row on first save, otherwise update its fields."""
        try:
            with db.session() as session:
                document = session.get(SyncDocument, self.document_id)
                if document is None:
                    document = SyncDocument(id=self.document_id)
                    session.add(document)
                apply_snapshot(document, snapshot)
        except (SQLAlchemyError, DatabaseError, TypeError, ValueError) as e:
            logger.error(f"Error saving sync document {self.document_id}: {str(e)}")
            raise StorageError(f"Failed to save sync document: {e}") from e


class FlatFileSnapshotStore(SnapshotStore):
    """Snapshot stored as a JSON file written with atomic_write_json."""

    backend_name = BACKEND_FLATFILE

    def __init__(self, document_id: str = "main", data_dir: Optional[str] = None):
        super().__init__(document_id)
        self.data_dir = data_dir

    @property
    def file_path(self) -> str:
        base_dir = self.data_dir or constants.DATA_DIR
        return os.path.join(base_dir, "quizsync", f"{self.document_id}.json")

    def load_snapshot(self) -> Optional[Dict[str, Any]]:
        file_path = self.file_path
        try:
            return read_json_with_lock(file_path)
        except json.JSONDecodeError as e:
            logger.warning(f"Corrupt sync document at {file_path}: {e}. Trying backup.")
            if recover_from_backup(file_path):
                try:
                    return read_json_with_lock(file_path)
                except (json.JSONDecodeError, FileLockError, OSError) as retry_error:
                    raise StorageError(f"Recovered sync document is unreadable: {retry_error}") from retry_error
            raise StorageError(f"Sync document is corrupt and has no usable backup: {e}") from e
        except (FileLockError, OSError) as e:
            logger.error(f"Error reading sync document {file_path}: {str(e)}")
            raise StorageError(f"Failed to load sync document: {e}") from e

    def save_snapshot(self, snapshot: Dict[str, Any]) -> None:
        """Update the stored document's fields with ``snapshot`` and rewrite the file."""
        file_path = self.file_path
        existing = self.load_snapshot() or {}
        existing.update(snapshot)
        existing["_id"] = self.document_id
        try:
            saved = atomic_write_json(file_path, existing)
        except AtomicWriteError as e:
            raise StorageError(str(e)) from e
        if not saved:
            raise StorageError(f"Failed to write sync document to {file_path}")


def get_snapshot_store(config: SyncConfig) -> SnapshotStore:
    """Factory returning the store for the configured backend."""
    if config.storage_backend == BACKEND_FLATFILE:
        return FlatFileSnapshotStore(config.document_id)
    return SqliteSnapshotStore(config.document_id, config.get_database_url())
