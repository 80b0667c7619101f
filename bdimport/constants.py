"""
Constants for bdimport.

Binary layout values, epoch offsets and built-in folder labels shared by
the decoders and adapters. Defaults that callers may want to tune live in
the config system instead.
"""

# Binary cookie container (all integers big-endian)
COOKIE_FILE_SIGNATURE = 0x636F6F6B  # b"cook"
COOKIE_PAGE_SIGNATURE = 0x00000100
COOKIE_FLAG_SECURE = 0x01
COOKIE_FLAG_HTTP_ONLY = 0x02
COOKIE_RECORD_HEADER_SIZE = 20  # flags + four string offsets

# Timestamp conversion
MICROSECONDS_PER_SECOND = 1_000_000
# Seconds between 1601-01-01 (Windows/Chrome epoch) and 1970-01-01
WINDOWS_EPOCH_OFFSET_SECONDS = 11_644_473_600

# Chrome-family bookmark roots, in walk order
CHROMIUM_ROOT_LABELS = {
    "bookmark_bar": "Bookmark Bar",
    "other": "Other Bookmarks",
    "synced": "Mobile Bookmarks",
}

# Firefox built-in root folders (moz_bookmarks titles)
FIREFOX_FOLDER_LABELS = {
    "menu": "Bookmarks Menu",
    "toolbar": "Bookmarks Toolbar",
    "unfiled": "Other Bookmarks",
    "mobile": "Mobile Bookmarks",
}

# Safari Bookmarks.plist built-in folders
SAFARI_FOLDER_LABELS = {
    "BookmarksBar": "Favorites",
    "BookmarksMenu": "Bookmarks Menu",
    "com.apple.ReadingList": "Reading List",
}

# Concurrency
DEFAULT_MAX_WORKERS = 4
