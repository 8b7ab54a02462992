"""Tests for the Flask application factory and JSON error handlers."""

import os
import shutil
import tempfile
import unittest

import constants
from models.database import db
from quizsync.blueprints.shared import STORE_CONFIG_KEY, STRICT_VALIDATION_CONFIG_KEY
from quizsync.storage import FlatFileSnapshotStore, SqliteSnapshotStore
from web.server import create_app


class CreateAppTests(unittest.TestCase):
    """Test create_app wiring."""

    def setUp(self):
        self.temp_dir = tempfile.mkdtemp()
        self.config_path = os.path.join(self.temp_dir, "sync.toml")

    def tearDown(self):
        db.cleanup()
        shutil.rmtree(self.temp_dir, ignore_errors=True)
        constants.reset()

    def _write_config(self, text: str) -> None:
        with open(self.config_path, "w", encoding="utf-8") as f:
            f.write(text)

    def test_requires_system_initialization(self):
        constants.reset()
        with self.assertRaises(RuntimeError):
            create_app(testing=False, config_path=self.config_path)

    def test_sqlite_store_is_default(self):
        app = create_app(testing=True, config_path=self.config_path)

        self.assertIsInstance(app.config[STORE_CONFIG_KEY], SqliteSnapshotStore)
        self.assertTrue(app.config[STRICT_VALIDATION_CONFIG_KEY])

    def test_configured_backend_and_validation(self):
        self._write_config('[storage]\nbackend = "flatfile"\n\n[validation]\nstrict = false\n')

        app = create_app(testing=True, config_path=self.config_path)

        self.assertIsInstance(app.config[STORE_CONFIG_KEY], FlatFileSnapshotStore)
        self.assertFalse(app.config[STRICT_VALIDATION_CONFIG_KEY])

    def test_sync_routes_registered(self):
        app = create_app(testing=True, config_path=self.config_path)

        rules = {rule.rule for rule in app.url_map.iter_rules()}
        self.assertIn("/api/sync", rules)
        self.assertIn("/.netlify/functions/sync", rules)

    def test_unknown_path_returns_json_404(self):
        app = create_app(testing=True, config_path=self.config_path)

        response = app.test_client().get("/nope")

        self.assertEqual(response.status_code, 404)
        self.assertEqual(response.get_json(), {"error": "Not found"})


if __name__ == "__main__":
    unittest.main()
