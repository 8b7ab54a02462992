"""Database connection and session management."""

from contextlib import contextmanager
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, Session
from sqlalchemy.pool import StaticPool
from typing import Optional, Generator

import constants
from common.base.logging_config import get_logger
logger = get_logger(__name__)

class DatabaseError(Exception):
    """Custom exception for database-related errors."""
    pass

class Database:
    """Process-wide database handle: the engine is created on first use and reused."""

    def __init__(self):
        """Initialize database connection state."""
        self._engine = None
        self._session_factory = None
        self._db_url: Optional[str] = None
        self.initialized = False

    def configure(self, db_url: Optional[str]) -> None:
        """
        Set the SQLAlchemy URL to use on the next initialization.

        :param db_url: Database URL, or None for the constants default
        """
        if self.initialized and db_url != self._db_url:
            self.cleanup()
        self._db_url = db_url

    def initialize(self) -> bool:
        """
        Initialize database engine and create tables.

        :return: True if initialization successful, False otherwise
        :raises: DatabaseError if system not initialized
        """
        if not constants.INITIALIZED:
            raise DatabaseError(
                "Cannot initialize database before system initialization. "
                "Call either constants.init_testing() or constants.init_production()"
            )

        if self.initialized:
            return True

        try:
            db_url = self._db_url or constants.get_database_url()
            if db_url.endswith(':memory:'):
                # Share the single in-memory database across threads
                self._engine = create_engine(
                    db_url,
                    connect_args={'check_same_thread': False},
                    poolclass=StaticPool,
                )
            else:
                self._engine = create_engine(db_url)

            # Import here to avoid circular imports
            from models.models import Base
            Base.metadata.create_all(self._engine)

            self._session_factory = sessionmaker(bind=self._engine)
            self.initialized = True
            logger.info(f"Database initialized at {db_url}")
            return True

        except Exception as e:
            logger.error(f"Database initialization failed: {str(e)}")
            return False

    @contextmanager
    def session(self) -> Generator[Session, None, None]:
        """
        Provide a transactional scope around a series of operations.

        Usage:
            with db.session() as session:
                session.get(...)

        :yield: SQLAlchemy session
        :raises: DatabaseError if database not initialized
        :raises: SQLAlchemyError if database operations fail
        """
        if not constants.INITIALIZED:
            raise DatabaseError(
                "Cannot create database session before system initialization. "
                "Call either constants.init_testing() or constants.init_production()"
            )

        if not self.initialized and not self.initialize():
            raise DatabaseError("Database initialization failed")

        session = self._session_factory()
        try:
            yield session
            session.commit()
        except Exception as e:
            session.rollback()
            logger.error(f"Session error: {str(e)}")
            raise
        finally:
            session.close()

    def cleanup(self) -> None:
        """Clean up database connections and reset state."""
        if self._engine:
            self._engine.dispose()
        self._engine = None
        self._session_factory = None
        self.initialized = False

# Global database instance
db = Database()
