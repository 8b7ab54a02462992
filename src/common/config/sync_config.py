"""Sync service configuration management."""

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional

import tomli

import constants
from common.base.logging_config import get_logger

logger = get_logger(__name__)

BACKEND_SQLITE = "sqlite"
BACKEND_FLATFILE = "flatfile"
VALID_BACKENDS = (BACKEND_SQLITE, BACKEND_FLATFILE)

DEFAULT_DOCUMENT_ID = "main"

@dataclass
class SyncConfig:
    """Sync service configuration data structure."""
    storage_backend: str = BACKEND_SQLITE
    document_id: str = DEFAULT_DOCUMENT_ID
    database_url: str = ""
    cors_origins: List[str] = field(default_factory=lambda: ["*"])
    strict_validation: bool = True

    def get_database_url(self) -> str:
        """
        Get the SQLAlchemy URL used by the sqlite backend.

        :return: Configured URL, or the mode default from constants
        """
        return self.database_url or constants.get_database_url()

class SyncConfigManager:
    """Loads and validates the sync service configuration."""

    def __init__(self, config_path: str):
        """
        Initialize config manager with configuration file.

        :param config_path: Path to TOML configuration file (may not exist)
        """
        self.config_path = config_path
        self.config = SyncConfig()
        self._load_config()

    def _load_config(self) -> None:
        """Load configuration from TOML, then apply environment overrides."""
        if os.path.exists(self.config_path):
            try:
                logger.info(f"Loading sync configuration from {self.config_path}")
                with open(self.config_path, 'rb') as f:
                    raw = tomli.load(f)
            except Exception as e:
                logger.error(f"Error loading sync configuration: {str(e)}")
                raise

            storage = raw.get('storage', {})
            cors = raw.get('cors', {})
            validation = raw.get('validation', {})

            self.config = SyncConfig(
                storage_backend=storage.get('backend', BACKEND_SQLITE),
                document_id=storage.get('document_id', DEFAULT_DOCUMENT_ID),
                database_url=storage.get('database_url', ''),
                cors_origins=cors.get('origins', ["*"]),
                strict_validation=validation.get('strict', True),
            )
        else:
            logger.info(f"No sync configuration at {self.config_path}, using defaults")

        if env_backend := os.getenv('SYNC_STORAGE_BACKEND'):
            self.config.storage_backend = env_backend
        if env_url := os.getenv('SYNC_DATABASE_URL'):
            self.config.database_url = env_url

        self._validate_config()
        logger.info(
            f"Sync configuration loaded: backend={self.config.storage_backend}, "
            f"document_id={self.config.document_id}"
        )

    def _validate_config(self) -> None:
        """Validate configuration for consistency."""
        if self.config.storage_backend not in VALID_BACKENDS:
            raise ValueError(
                f"Unknown storage backend '{self.config.storage_backend}'. "
                f"Expected one of: {', '.join(VALID_BACKENDS)}"
            )
        if not self.config.document_id:
            raise ValueError("document_id must not be empty")
        if isinstance(self.config.cors_origins, str):
            self.config.cors_origins = [self.config.cors_origins]

# Default configuration file path
DEFAULT_CONFIG_PATH = Path(constants.CONFIG_DIR) / "sync.toml"

# Global config manager instance
_sync_config_manager = None

def init_sync_config(config_path: Optional[str] = None) -> SyncConfig:
    """
    Initialize global sync configuration.

    :param config_path: Path to configuration file
    :return: Loaded configuration
    """
    global _sync_config_manager
    config_path = config_path or DEFAULT_CONFIG_PATH
    _sync_config_manager = SyncConfigManager(str(config_path))
    return _sync_config_manager.config

def get_sync_config() -> SyncConfig:
    """
    Get global sync configuration, loading defaults on first use.

    :return: Sync configuration
    """
    global _sync_config_manager
    if _sync_config_manager is None:
        logger.info("Sync configuration not initialized, initializing with default config")
        _sync_config_manager = SyncConfigManager(str(DEFAULT_CONFIG_PATH))
    return _sync_config_manager.config
