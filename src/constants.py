import os
from typing import Optional

# System state
TESTING: bool = False
INITIALIZED: bool = False

def is_development_mode() -> bool:
    """
    Check if the application is running in development mode.

    :return: True if FLASK_ENV is set to 'development', False otherwise
    """
    flask_env = os.getenv('FLASK_ENV', 'production').lower()
    return flask_env == 'development'

# Get the src directory
SRC_DIR = os.path.dirname(os.path.abspath(__file__))
PROJECT_ROOT = os.path.dirname(SRC_DIR)

LOG_DIR = os.path.join(PROJECT_ROOT, "logs")
CONFIG_DIR = os.path.join(PROJECT_ROOT, "config")
DATA_DIR = os.path.join(PROJECT_ROOT, "data")

# Database URL - will be updated when testing mode is set
_PROD_DB_PATH = os.path.join(DATA_DIR, "quizsync.db")
_TEST_DB_PATH: Optional[str] = "sqlite:///:memory:"
DB_PATH = _PROD_DB_PATH

def get_database_url() -> str:
    """
    Get the SQLAlchemy URL for the current mode.

    :return: In-memory URL when testing, otherwise a file URL under DATA_DIR
    """
    if TESTING and _TEST_DB_PATH:
        return _TEST_DB_PATH
    return f'sqlite:///{DB_PATH}'

def init_testing(test_db_path: Optional[str] = None) -> None:
    """
    Initialize system for testing mode.

    :param test_db_path: Optional explicit test database URL, defaults to in-memory SQLite
    """
    global TESTING, INITIALIZED, DB_PATH, _TEST_DB_PATH
    TESTING = True
    INITIALIZED = True
    if test_db_path:
        _TEST_DB_PATH = test_db_path
    DB_PATH = _TEST_DB_PATH

def init_production() -> None:
    """Initialize system for production mode."""
    global TESTING, INITIALIZED, DB_PATH
    TESTING = False
    INITIALIZED = True
    DB_PATH = _PROD_DB_PATH
    os.makedirs(DATA_DIR, exist_ok=True)

def reset() -> None:
    """Reset to uninitialized state (primarily for testing)."""
    global TESTING, INITIALIZED, DB_PATH, _TEST_DB_PATH
    TESTING = False
    INITIALIZED = False
    DB_PATH = _PROD_DB_PATH
    _TEST_DB_PATH = "sqlite:///:memory:"
