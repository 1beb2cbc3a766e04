"""
Database management and connection handling.
"""

import logging
import sqlite3
import threading
from abc import ABC, abstractmethod
from contextlib import contextmanager
from typing import Any, Dict, List, Optional, Tuple

from ..core.enums import ErrorCode
from ..core.exceptions import ConfigurationError, DuplicateEntityError, LyceumException, PersistenceError


logger = logging.getLogger(__name__)

Query = Tuple[str, Optional[tuple]]

# Document fields that must be unique per entity type, keyed by index name.
UNIQUE_INDEXES = {
    "ux_student_email": ("student", "email", ErrorCode.DUPLICATE_EMAIL),
    "ux_course_code": ("course", "code", ErrorCode.DUPLICATE_COURSE_CODE),
}


class DatabaseManager(ABC):
    """Abstract base class for database management."""

    @abstractmethod
    def execute_query(self, query: str, params: Optional[tuple] = None) -> List[Dict[str, Any]]:
        """Execute a query and return results."""
        pass

    @abstractmethod
    def execute_transaction(self, queries: List[Query]) -> bool:
        """Execute multiple queries in a transaction."""
        pass

    @abstractmethod
    def table_exists(self, table_name: str) -> bool:
        """Check if a table exists."""
        pass


class SQLiteDatabase(DatabaseManager):
    """SQLite database implementation.

    A new connection is opened for every call, so ``database_path`` must name
    a file; an in-memory database would be discarded after each statement.
    """

    def __init__(self, database_path: str = "lyceum.db"):
        self._database_path = database_path
        self._lock = threading.RLock()
        self._initialize_database()

    @property
    def database_path(self) -> str:
        return self._database_path

    def _initialize_database(self) -> None:
        """Initialize the database with the document schema."""
        with self._get_connection() as conn:
            cursor = conn.cursor()

            cursor.execute("""
                CREATE TABLE IF NOT EXISTS entities (
                    id TEXT PRIMARY KEY,
                    type TEXT NOT NULL,
                    data TEXT NOT NULL,
                    created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
                    updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
                    version INTEGER DEFAULT 1,
                    status TEXT DEFAULT 'active'
                )
            """)
            cursor.execute("CREATE INDEX IF NOT EXISTS idx_entities_type ON entities (type)")
            for index_name, (entity_type, field, _) in UNIQUE_INDEXES.items():
                cursor.execute(
                    f"CREATE UNIQUE INDEX IF NOT EXISTS {index_name} "
                    f"ON entities (json_extract(data, '$.{field}')) WHERE type = '{entity_type}'"
                )

            conn.commit()
        logger.debug("Initialized SQLite database at %s", self._database_path)

    @contextmanager
    def _get_connection(self):
        """Get database connection with proper cleanup."""
        conn = None
        try:
            conn = sqlite3.connect(self._database_path, check_same_thread=False)
            conn.row_factory = sqlite3.Row
            yield conn
        except LyceumException:
            raise
        except Exception as e:
            if conn:
                conn.rollback()
            raise PersistenceError(f"Database connection error: {str(e)}") from e
        finally:
            if conn:
                conn.close()

    def execute_query(self, query: str, params: Optional[tuple] = None) -> List[Dict[str, Any]]:
        """Execute a query and return results."""
        with self._get_connection() as conn:
            cursor = conn.cursor()
            if params:
                cursor.execute(query, params)
            else:
                cursor.execute(query)

            columns = [description[0] for description in cursor.description]
            return [dict(zip(columns, row)) for row in cursor.fetchall()]

    def execute_transaction(self, queries: List[Query]) -> bool:
        """Execute multiple queries in a transaction."""
        with self._lock, self._get_connection() as conn:
            try:
                cursor = conn.cursor()
                for query, params in queries:
                    if params:
                        cursor.execute(query, params)
                    else:
                        cursor.execute(query)
                conn.commit()
                return True
            except sqlite3.IntegrityError as e:
                conn.rollback()
                raise self._integrity_error(e) from e
            except sqlite3.Error as e:
                conn.rollback()
                raise PersistenceError(f"Transaction failed: {str(e)}") from e

    @staticmethod
    def _integrity_error(error: sqlite3.IntegrityError) -> LyceumException:
        """Translate a unique index violation into a duplicate error."""
        message = str(error)
        for index_name, (entity_type, field, error_code) in UNIQUE_INDEXES.items():
            if index_name in message:
                return DuplicateEntityError(
                    f"A {entity_type} with this {field} already exists",
                    error_code=error_code,
                    details={"entity_type": entity_type, "field": field},
                )
        return PersistenceError(f"Transaction failed: {message}")

    def table_exists(self, table_name: str) -> bool:
        """Check if a table exists."""
        query = "SELECT name FROM sqlite_master WHERE type='table' AND name=?"
        results = self.execute_query(query, (table_name,))
        return len(results) > 0


class DatabaseFactory:
    """Factory for creating database instances."""

    @staticmethod
    def create_database(database_type: str, **kwargs) -> DatabaseManager:
        """Create a database instance based on type."""
        if database_type.lower() == "sqlite":
            try:
                return SQLiteDatabase(**kwargs)
            except TypeError as e:
                raise ConfigurationError(
                    f"Invalid sqlite database configuration: {e}",
                    details={"database_type": database_type, "options": sorted(kwargs)},
                ) from e
        raise ConfigurationError(
            f"Unsupported database type: {database_type}",
            details={"database_type": database_type},
        )
