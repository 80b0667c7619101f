"""
Bookmark extraction from SQL-backed browser stores.

One fixed, read-only query per browser. Rows are mapped to bookmarks
fail-closed: a row with a missing or unusable title, URL or timestamp is
skipped, never fatal. Only a failing query aborts the source.
"""
import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Callable, Dict, List, Mapping, Optional

from bdimport.constants import FIREFOX_FOLDER_LABELS
from bdimport.database import BookmarkDatabase
from bdimport.errors import ImportCancelled, MalformedRecord
from bdimport.models import Bookmark, BrowserSource
from bdimport.timestamps import firefox_timestamp_to_datetime, posix_seconds_to_datetime

logger = logging.getLogger(__name__)


# Safari Bookmarks.db: child rows joined to their parent folder
SAFARI_BOOKMARKS_QUERY = """
    SELECT
        b.title AS title,
        b.url AS url,
        b.date_added AS date_added,
        parent.title AS folder
    FROM bookmarks b
    LEFT JOIN bookmarks parent ON b.parent = parent.id
    WHERE b.url IS NOT NULL
        AND b.url != ''
    ORDER BY b.date_added DESC
"""

# Firefox places.sqlite: type 1 rows are URL bookmarks
FIREFOX_BOOKMARKS_QUERY = """
    SELECT
        b.title AS title,
        p.url AS url,
        b.dateAdded AS date_added,
        parent.title AS folder
    FROM moz_bookmarks b
    JOIN moz_places p ON b.fk = p.id
    LEFT JOIN moz_bookmarks parent ON b.parent = parent.id
    WHERE b.type = 1
        AND p.url IS NOT NULL
    ORDER BY b.dateAdded DESC
"""


@dataclass(frozen=True)
class QuerySpec:
    """A browser's bookmark query and how to read its rows."""
    name: str
    query: str
    parse_date: Callable[[Any], Optional[datetime]]
    folder_labels: Mapping[str, str] = field(default_factory=dict)


SAFARI_QUERY_SPEC = QuerySpec(
    name="safari",
    query=SAFARI_BOOKMARKS_QUERY,
    parse_date=posix_seconds_to_datetime,
)

FIREFOX_QUERY_SPEC = QuerySpec(
    name="firefox",
    query=FIREFOX_BOOKMARKS_QUERY,
    parse_date=firefox_timestamp_to_datetime,
    folder_labels=FIREFOX_FOLDER_LABELS,
)

QUERY_SPECS: Dict[BrowserSource, QuerySpec] = {
    BrowserSource.SAFARI: SAFARI_QUERY_SPEC,
    BrowserSource.FIREFOX: FIREFOX_QUERY_SPEC,
}


class RelationalBookmarkExtractor:
    """Run a browser's bookmark query and map the rows."""

    def __init__(self, spec: QuerySpec, should_stop: Optional[Callable[[], bool]] = None):
        self.spec = spec
        self.should_stop = should_stop

    @classmethod
    def for_source(cls, source: BrowserSource,
                   should_stop: Optional[Callable[[], bool]] = None) -> "RelationalBookmarkExtractor":
        return cls(QUERY_SPECS[source], should_stop=should_stop)

    def extract(self, database: BookmarkDatabase, source: BrowserSource) -> List[Bookmark]:
        """
        Query the database and convert rows to bookmarks.

        Raises:
            QueryFailed: if the query cannot be executed
            ImportCancelled: if ``should_stop`` fires between rows
        """
        rows = database.execute(self.spec.query)

        bookmarks: List[Bookmark] = []
        skipped = 0
        for index, row in enumerate(rows):
            if self.should_stop and self.should_stop():
                raise ImportCancelled(f"Cancelled after {index} of {len(rows)} {self.spec.name} rows")
            try:
                bookmarks.append(self.map_row(row, source))
            except MalformedRecord as e:
                skipped += 1
                logger.debug(f"Skipping {self.spec.name} row {index}: {e}")

        if skipped:
            logger.debug(f"Skipped {skipped} unusable {self.spec.name} rows")
        return bookmarks

    def map_row(self, row: Mapping[str, Any], source: BrowserSource) -> Bookmark:
        """
        Convert one row; raises MalformedRecord for anything unusable.
        """
        title = row.get("title")
        url = row.get("url")
        if not isinstance(title, str) or not isinstance(url, str):
            raise MalformedRecord(f"Row without text title/url: {url!r}")

        date_added = self.spec.parse_date(row.get("date_added"))
        if date_added is None:
            raise MalformedRecord(f"Row without usable timestamp: {url!r}")

        folder = row.get("folder")
        if isinstance(folder, str) and folder:
            folder = self.spec.folder_labels.get(folder, folder)
        else:
            folder = None

        return Bookmark.create(title, url, date_added, source, folder=folder)
