"""
Per-browser source adapters.

Each adapter owns one input file, picks the decoder that understands it
(binary cookie decoder, tree walker or relational extractor) and supplies the
browser-specific knowledge: field names, root folders and timestamp units.
Adapters receive their path and configuration explicitly; nothing is looked
up from process-wide state.
"""
import json
import logging
import plistlib
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from functools import partial
from pathlib import Path
from typing import Callable, Dict, List, Optional, Type, Union
from xml.parsers.expat import ExpatError

from bdimport.config import ImporterConfig
from bdimport.constants import CHROMIUM_ROOT_LABELS, SAFARI_FOLDER_LABELS
from bdimport.cookies import SafariCookieDecoder
from bdimport.database import BookmarkDatabase
from bdimport.errors import DocumentParseError, SourceUnavailable, UnsupportedBrowser
from bdimport.models import Bookmark, BrowserSource, Cookie
from bdimport.relational import RelationalBookmarkExtractor
from bdimport.timestamps import chrome_timestamp_to_datetime
from bdimport.tree import BookmarkTreeWalker, TreeSchema, decode_folder

logger = logging.getLogger(__name__)

StopCheck = Optional[Callable[[], bool]]


def chromium_schema(epoch_shift: bool = True) -> TreeSchema:
    """Field table for Chrome-family ``Bookmarks`` JSON files."""
    return TreeSchema(
        name="chromium",
        type_field="type",
        url_type="url",
        folder_type="folder",
        title_field="name",
        folder_name_field="name",
        url_field="url",
        children_field="children",
        date_field="date_added",
        parse_date=partial(chrome_timestamp_to_datetime, epoch_shift=epoch_shift),
        root_labels=CHROMIUM_ROOT_LABELS,
    )


# Safari Bookmarks.plist: leaves keep their title inside URIDictionary
SAFARI_PLIST_SCHEMA = TreeSchema(
    name="safari-plist",
    type_field="WebBookmarkType",
    url_type="WebBookmarkTypeLeaf",
    folder_type="WebBookmarkTypeList",
    title_field=("URIDictionary", "title"),
    folder_name_field="Title",
    url_field="URLString",
    children_field="Children",
    folder_labels=SAFARI_FOLDER_LABELS,
)


@dataclass
class AdapterOutput:
    """Records decoded from one source."""
    bookmarks: List[Bookmark] = field(default_factory=list)
    cookies: List[Cookie] = field(default_factory=list)


class SourceAdapter(ABC):
    """Base class for source adapters."""

    kind: str = ""
    source: BrowserSource = BrowserSource.SAFARI

    def __init__(self, path: Union[str, Path], config: Optional[ImporterConfig] = None):
        self.path = Path(path)
        self.config = config or ImporterConfig()

    def __repr__(self) -> str:
        return f"{type(self).__name__}({str(self.path)!r})"

    @abstractmethod
    def run(self, should_stop: StopCheck = None) -> AdapterOutput:
        """
        Decode the source.

        Raises:
            BrowserImportError: for failures fatal to this source
        """
        raise NotImplementedError

    def _read_bytes(self) -> bytes:
        if not self.path.is_file():
            raise SourceUnavailable("File not found", path=str(self.path))
        try:
            return self.path.read_bytes()
        except OSError as e:
            raise SourceUnavailable(f"Cannot read file: {e.strerror or e}", path=str(self.path)) from e

    def _read_text(self) -> str:
        data = self._read_bytes()
        try:
            return data.decode("utf-8")
        except UnicodeDecodeError as e:
            raise DocumentParseError(f"File is not UTF-8: {e}", path=str(self.path)) from e


class SafariCookiesAdapter(SourceAdapter):
    """Safari ``Cookies.binarycookies``."""

    kind = "safari-cookies"
    source = BrowserSource.SAFARI

    def run(self, should_stop: StopCheck = None) -> AdapterOutput:
        data = self._read_bytes()
        decoder = SafariCookieDecoder(source=self.source, should_stop=should_stop)
        cookies = decoder.decode(data)
        logger.debug(f"Decoded {len(cookies)} cookies from {self.path}")
        return AdapterOutput(cookies=cookies)


class ChromiumBookmarksAdapter(SourceAdapter):
    """Chrome-family ``Bookmarks`` JSON (Chrome, Edge)."""

    kind = "chrome"
    source = BrowserSource.CHROME

    def __init__(self, path: Union[str, Path], config: Optional[ImporterConfig] = None,
                 source: Optional[BrowserSource] = None):
        super().__init__(path, config)
        if source is not None:
            self.source = source
            self.kind = source.name.lower()

    def run(self, should_stop: StopCheck = None) -> AdapterOutput:
        text = self._read_text()
        try:
            document = json.loads(text)
        except json.JSONDecodeError as e:
            raise DocumentParseError(f"Invalid bookmarks JSON: {e}", path=str(self.path)) from e
        except RecursionError as e:
            raise DocumentParseError("Bookmarks JSON nested too deeply", path=str(self.path)) from e

        if not isinstance(document, dict):
            raise DocumentParseError("Bookmarks JSON is not an object", path=str(self.path))

        # Older exports and test fixtures sometimes hold the roots directly
        roots = document.get("roots", document)
        if not isinstance(roots, dict):
            raise DocumentParseError("Bookmarks JSON 'roots' is not an object", path=str(self.path))

        walker = BookmarkTreeWalker(chromium_schema(self.config.chrome_epoch_shift),
                                    should_stop=should_stop)
        try:
            bookmarks = walker.walk_roots(roots, self.source)
        except RecursionError as e:
            raise DocumentParseError("Bookmark tree nested too deeply", path=str(self.path)) from e
        return AdapterOutput(bookmarks=bookmarks)


class SafariPlistBookmarksAdapter(SourceAdapter):
    """Safari ``Bookmarks.plist`` (binary or XML property list)."""

    kind = "safari-plist"
    source = BrowserSource.SAFARI

    def run(self, should_stop: StopCheck = None) -> AdapterOutput:
        data = self._read_bytes()
        try:
            document = plistlib.loads(data)
        except (plistlib.InvalidFileException, ExpatError, ValueError) as e:
            raise DocumentParseError(f"Invalid bookmarks property list: {e}", path=str(self.path)) from e
        except RecursionError as e:
            raise DocumentParseError("Bookmarks property list nested too deeply", path=str(self.path)) from e

        if not isinstance(document, dict):
            raise DocumentParseError("Bookmarks property list is not a dictionary", path=str(self.path))

        walker = BookmarkTreeWalker(SAFARI_PLIST_SCHEMA, should_stop=should_stop)
        try:
            root = decode_folder(document, SAFARI_PLIST_SCHEMA)
            bookmarks = walker.walk(root, self.source)
        except RecursionError as e:
            raise DocumentParseError("Bookmark tree nested too deeply", path=str(self.path)) from e
        return AdapterOutput(bookmarks=bookmarks)


class _DatabaseBookmarksAdapter(SourceAdapter):

    def run(self, should_stop: StopCheck = None) -> AdapterOutput:
        extractor = RelationalBookmarkExtractor.for_source(self.source, should_stop=should_stop)
        with BookmarkDatabase(self.path, copy=self.config.copy_databases,
                              temp_dir=self.config.temp_dir) as database:
            bookmarks = extractor.extract(database, self.source)
        return AdapterOutput(bookmarks=bookmarks)


class SafariBookmarksAdapter(_DatabaseBookmarksAdapter):
    """Safari ``Bookmarks.db``."""

    kind = "safari-bookmarks"
    source = BrowserSource.SAFARI


class FirefoxBookmarksAdapter(_DatabaseBookmarksAdapter):
    """Firefox ``places.sqlite``."""

    kind = "firefox"
    source = BrowserSource.FIREFOX


ADAPTER_TYPES: Dict[str, Type[SourceAdapter]] = {
    SafariCookiesAdapter.kind: SafariCookiesAdapter,
    SafariBookmarksAdapter.kind: SafariBookmarksAdapter,
    SafariPlistBookmarksAdapter.kind: SafariPlistBookmarksAdapter,
    "chrome": ChromiumBookmarksAdapter,
    "edge": ChromiumBookmarksAdapter,
    FirefoxBookmarksAdapter.kind: FirefoxBookmarksAdapter,
}

SOURCE_KINDS = tuple(ADAPTER_TYPES)


def build_adapter(kind: str, path: Union[str, Path],
                  config: Optional[ImporterConfig] = None) -> SourceAdapter:
    """
    Create the adapter for a source kind.

    Args:
        kind: One of SOURCE_KINDS (case-insensitive)
        path: Input file for the source
        config: Importer configuration (defaults if omitted)

    Raises:
        UnsupportedBrowser: for unknown kinds
    """
    key = kind.strip().lower()
    adapter_type = ADAPTER_TYPES.get(key)
    if adapter_type is None:
        raise UnsupportedBrowser(f"Unknown source kind: {kind}", path=str(path))
    if adapter_type is ChromiumBookmarksAdapter:
        return ChromiumBookmarksAdapter(path, config, source=BrowserSource.parse(key))
    return adapter_type(path, config)
