"""Tests for the snapshot storage backends."""

import json
import os
import shutil
import tempfile
import unittest
from unittest.mock import patch

from sqlalchemy.exc import OperationalError

import constants
from common.config.sync_config import BACKEND_FLATFILE, BACKEND_SQLITE, SyncConfig
from models.database import db
from models.models import SyncDocument
from quizsync.merge import merge_snapshots
from quizsync.storage import (
    FlatFileSnapshotStore,
    SqliteSnapshotStore,
    StorageError,
    get_snapshot_store,
)

IN_MEMORY_URL = "sqlite:///:memory:"


class SqliteSnapshotStoreTests(unittest.TestCase):
    """Test the SQLAlchemy-backed store."""

    def setUp(self):
        constants.init_testing(test_db_path=IN_MEMORY_URL)
        db.cleanup()
        self.store = SqliteSnapshotStore("main", IN_MEMORY_URL)

    def tearDown(self):
        db.cleanup()
        constants.reset()

    def test_load_missing_document_returns_none(self):
        self.assertIsNone(self.store.load_snapshot())

    def test_save_then_load_round_trip(self):
        merged, _ = merge_snapshots(None, {
            "questionSets": {"s1": {"name": "Šešiai"}},
            "reportedQuestions": [{"reportId": "r1"}],
        })
        self.store.save_snapshot(merged)

        loaded = self.store.load_snapshot()
        self.assertEqual(loaded, merged)

    def test_save_upserts_single_row(self):
        self.store.save_snapshot({"questionSets": {"s1": {}}, "lastUpdated": "t1"})
        self.store.save_snapshot({"playerProfiles": {"a": {"totalXP": 1}}, "lastUpdated": "t2"})

        with db.session() as session:
            self.assertEqual(session.query(SyncDocument).count(), 1)

        loaded = self.store.load_snapshot()
        self.assertEqual(loaded["questionSets"], {"s1": {}})
        self.assertEqual(loaded["playerProfiles"], {"a": {"totalXP": 1}})
        self.assertEqual(loaded["lastUpdated"], "t2")

    def test_document_id_is_respected(self):
        other = SqliteSnapshotStore("staging", IN_MEMORY_URL)
        other.save_snapshot({"questionSets": {"s9": {}}})

        self.assertIsNone(self.store.load_snapshot())
        self.assertEqual(other.load_snapshot()["questionSets"], {"s9": {}})

    def test_database_failure_raises_storage_error(self):
        with patch.object(db, "session", side_effect=OperationalError("SELECT", {}, Exception("down"))):
            with self.assertRaises(StorageError):
                self.store.load_snapshot()
            with self.assertRaises(StorageError):
                self.store.save_snapshot({"questionSets": {}})


class FlatFileSnapshotStoreTests(unittest.TestCase):
    """Test the JSON flat file store."""

    def setUp(self):
        self.test_data_dir = tempfile.mkdtemp()
        self.store = FlatFileSnapshotStore("main", data_dir=self.test_data_dir)

    def tearDown(self):
        shutil.rmtree(self.test_data_dir, ignore_errors=True)

    def test_file_path_uses_document_id(self):
        self.assertEqual(
            self.store.file_path,
            os.path.join(self.test_data_dir, "quizsync", "main.json"),
        )

    def test_load_missing_document_returns_none(self):
        self.assertIsNone(self.store.load_snapshot())

    def test_save_writes_document_with_id(self):
        self.store.save_snapshot({"questionSets": {"s1": {}}})

        with open(self.store.file_path, "r", encoding="utf-8") as f:
            saved = json.load(f)
        self.assertEqual(saved["_id"], "main")
        self.assertEqual(saved["questionSets"], {"s1": {}})

    def test_save_updates_fields_of_existing_document(self):
        self.store.save_snapshot({"questionSets": {"s1": {}}})
        self.store.save_snapshot({"playerProfiles": {"a": {"totalXP": 3}}})

        loaded = self.store.load_snapshot()
        self.assertEqual(loaded["questionSets"], {"s1": {}})
        self.assertEqual(loaded["playerProfiles"], {"a": {"totalXP": 3}})

    def test_corrupt_file_is_recovered_from_backup(self):
        self.store.save_snapshot({"questionSets": {"s1": {}}})
        self.store.save_snapshot({"questionSets": {"s2": {}}})  # first version now in .bak

        with open(self.store.file_path, "w", encoding="utf-8") as f:
            f.write("{not json")

        loaded = self.store.load_snapshot()
        self.assertEqual(loaded["questionSets"], {"s1": {}})
        self.assertTrue(os.path.exists(self.store.file_path + ".corrupted"))

    def test_corrupt_file_without_backup_raises(self):
        os.makedirs(os.path.dirname(self.store.file_path), exist_ok=True)
        with open(self.store.file_path, "w", encoding="utf-8") as f:
            f.write("{not json")

        with self.assertRaises(StorageError):
            self.store.load_snapshot()

    def test_failed_write_raises_storage_error(self):
        with patch("quizsync.storage.atomic_write_json", return_value=False):
            with self.assertRaises(StorageError):
                self.store.save_snapshot({"questionSets": {}})

    def test_default_data_dir_comes_from_constants(self):
        store = FlatFileSnapshotStore("main")
        with patch("constants.DATA_DIR", self.test_data_dir):
            store.save_snapshot({"questionSets": {}})
            self.assertTrue(
                os.path.exists(os.path.join(self.test_data_dir, "quizsync", "main.json"))
            )


class SnapshotStoreFactoryTests(unittest.TestCase):
    """Test backend selection."""

    def tearDown(self):
        db.cleanup()

    def test_flatfile_backend_selected(self):
        store = get_snapshot_store(SyncConfig(storage_backend=BACKEND_FLATFILE, document_id="doc"))
        self.assertIsInstance(store, FlatFileSnapshotStore)
        self.assertEqual(store.document_id, "doc")

    def test_sqlite_backend_selected(self):
        store = get_snapshot_store(
            SyncConfig(storage_backend=BACKEND_SQLITE, database_url=IN_MEMORY_URL)
        )
        self.assertIsInstance(store, SqliteSnapshotStore)
        self.assertEqual(store.document_id, "main")


if __name__ == "__main__":
    unittest.main()
