"""Common configuration management for quizsync."""

# Sync service configuration
from .sync_config import (
    BACKEND_FLATFILE,
    BACKEND_SQLITE,
    SyncConfig,
    SyncConfigManager,
    init_sync_config,
    get_sync_config
)

__all__ = [
    'BACKEND_FLATFILE', 'BACKEND_SQLITE', 'SyncConfig', 'SyncConfigManager',
    'init_sync_config', 'get_sync_config'
]
