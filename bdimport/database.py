"""
Read-only handle over a browser's SQLite bookmark database.

Browsers keep their databases locked while running, so by default the file
is copied to a temporary location first and the copy is opened read-only
through SQLAlchemy. A database in WAL mode is read as of its last checkpoint
when copied.
"""
import os
import shutil
import sqlite3
import logging
import tempfile
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

from sqlalchemy import create_engine, text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError

from bdimport.errors import QueryFailed, SourceUnavailable

logger = logging.getLogger(__name__)


class BookmarkDatabase:
    """
    Relational collaborator used by the SQL-backed adapters.

    Usage:
        >>> with BookmarkDatabase("places.sqlite") as db:
        ...     rows = db.execute("SELECT url FROM moz_places")
    """

    def __init__(self, path: Union[str, Path], copy: bool = True,
                 temp_dir: Optional[str] = None):
        self.path = Path(path)
        self.copy = copy
        self.temp_dir = temp_dir
        self._temp_path: Optional[Path] = None
        self._engine: Optional[Engine] = None

    def open(self) -> "BookmarkDatabase":
        """
        Prepare the database for querying.

        Raises:
            SourceUnavailable: if the file does not exist or cannot be copied
        """
        if not self.path.is_file():
            raise SourceUnavailable("Database not found", path=str(self.path))

        target = self.path
        if self.copy:
            target = self._copy_database()

        uri = f"{target.resolve().as_uri()}?mode=ro"
        self._engine = create_engine(
            "sqlite://",
            creator=lambda: sqlite3.connect(uri, uri=True, check_same_thread=False),
        )
        logger.debug(f"Opened bookmark database {self.path} (copy={self.copy})")
        return self

    def execute(self, query: str) -> List[Dict[str, Any]]:
        """
        Run a read-only query and return every row as a column-name mapping.

        Raises:
            QueryFailed: if the database cannot be opened or the query fails
        """
        if self._engine is None:
            self.open()
        try:
            with self._engine.connect() as conn:
                result = conn.execute(text(query))
                return [dict(row) for row in result.mappings()]
        except SQLAlchemyError as e:
            reason = getattr(e, "orig", None) or e
            raise QueryFailed(f"Query failed: {reason}", path=str(self.path)) from e

    def close(self):
        if self._engine is not None:
            self._engine.dispose()
            self._engine = None
        if self._temp_path is not None:
            try:
                self._temp_path.unlink()
            except FileNotFoundError:
                pass
            self._temp_path = None

    def __enter__(self) -> "BookmarkDatabase":
        return self.open()

    def __exit__(self, exc_type, exc, tb):
        self.close()

    def _copy_database(self) -> Path:
        """Copy the database to a temporary file."""
        temp_fd, temp_name = tempfile.mkstemp(suffix=".db", dir=self.temp_dir)
        os.close(temp_fd)
        temp_path = Path(temp_name)
        try:
            shutil.copy2(self.path, temp_path)
        except OSError as e:
            temp_path.unlink(missing_ok=True)
            raise SourceUnavailable(f"Cannot copy database: {e}", path=str(self.path)) from e
        self._temp_path = temp_path
        return temp_path
