"""Pytest configuration for all tests."""

import os

# Storage overrides from the developer's shell must not leak into tests
for _env_var in ("SYNC_STORAGE_BACKEND", "SYNC_DATABASE_URL"):
    os.environ.pop(_env_var, None)
