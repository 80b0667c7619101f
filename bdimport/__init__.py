"""
bdimport - Browser Data Importer

Reads bookmarks and cookies out of browser storage files and normalizes
them into one record model.

Supported sources:
- Safari Cookies.binarycookies (binary cookie pages)
- Safari Bookmarks.db and Bookmarks.plist
- Chrome and Edge Bookmarks JSON
- Firefox places.sqlite

Example Usage:
    >>> from bdimport import import_sources
    >>> result = import_sources([
    ...     ("chrome", "~/.config/google-chrome/Default/Bookmarks"),
    ...     ("safari-cookies", "Cookies.binarycookies"),
    ... ])
    >>> result.bookmarks[0].folder
    'Bookmark Bar'
    >>> result.errors
    []
"""

__version__ = "0.3.0"
__author__ = "bdimport Contributors"

# Coordination
from bdimport.coordinator import ImportCoordinator, import_sources

# Adapters
from bdimport.browser_import import SOURCE_KINDS, SourceAdapter, build_adapter

# Decoders
from bdimport.cookies import SafariCookieDecoder, decode_binary_cookies
from bdimport.tree import BookmarkTreeWalker, TreeSchema
from bdimport.relational import RelationalBookmarkExtractor

# Configuration
from bdimport.config import ImporterConfig, get_config, init_config

# Models
from bdimport.models import Bookmark, BrowserSource, Cookie, ImportResult, SourceError

# Errors
from bdimport.errors import BrowserImportError

__all__ = [
    # Coordination
    "ImportCoordinator",
    "import_sources",
    # Adapters
    "SOURCE_KINDS",
    "SourceAdapter",
    "build_adapter",
    # Decoders
    "SafariCookieDecoder",
    "decode_binary_cookies",
    "BookmarkTreeWalker",
    "TreeSchema",
    "RelationalBookmarkExtractor",
    # Config
    "ImporterConfig",
    "get_config",
    "init_config",
    # Models
    "Bookmark",
    "BrowserSource",
    "Cookie",
    "ImportResult",
    "SourceError",
    # Errors
    "BrowserImportError",
]
