import os
import json
import shutil
import sqlite3
import struct
import plistlib
import tempfile
from pathlib import Path

import pytest

from bdimport import config as config_module
from bdimport.constants import COOKIE_PAGE_SIGNATURE, COOKIE_RECORD_HEADER_SIZE


def build_cookie_record(url: str, name: str, path: str = "/", value: str = "",
                        flags: int = 0) -> bytes:
    """One cookie record: header of flags and four offsets, then the strings."""
    encoded = [s.encode("utf-8") if isinstance(s, str) else s for s in (url, name, path, value)]
    offsets = []
    body = b""
    for raw in encoded:
        offsets.append(COOKIE_RECORD_HEADER_SIZE + len(body))
        body += struct.pack(">I", len(raw)) + raw
    return struct.pack(">5I", flags, *offsets) + body


def build_cookie_page(records, signature: int = COOKIE_PAGE_SIGNATURE) -> bytes:
    """A page holding the given records; entry offsets are page-relative."""
    header_size = 8 + 8 * len(records)
    entries = b""
    data = b""
    for record in records:
        entries += struct.pack(">II", header_size + len(data), len(record))
        data += record
    return struct.pack(">II", signature, len(records)) + entries + data


def build_cookie_file(pages, declared_pages=None, magic: bytes = b"cook") -> bytes:
    """A whole container; ``declared_pages`` may lie about the page count."""
    count = len(pages) if declared_pages is None else declared_pages
    out = magic + struct.pack(">I", count)
    for page in pages:
        out += struct.pack(">I", len(page)) + page
    return out


@pytest.fixture
def temp_dir():
    """Create a temporary directory for testing."""
    temp_dir = tempfile.mkdtemp(prefix="bdimport_test_")
    yield temp_dir
    shutil.rmtree(temp_dir, ignore_errors=True)


@pytest.fixture
def cookie_builders():
    """Builders for binary cookie records, pages and files."""
    class Builders:
        record = staticmethod(build_cookie_record)
        page = staticmethod(build_cookie_page)
        file = staticmethod(build_cookie_file)
    return Builders


@pytest.fixture
def sample_cookie_bytes():
    """Two pages of cookies with mixed flags."""
    page1 = build_cookie_page([
        build_cookie_record(".example.com", "session", "/", "abc123", flags=0x01 | 0x02),
        build_cookie_record("https://shop.example.org/", "cart", "/shop", "3", flags=0x01),
    ])
    page2 = build_cookie_page([
        build_cookie_record("news.example.net", "theme", "", "dark"),
    ])
    return build_cookie_file([page1, page2])


@pytest.fixture
def safari_cookies_file(temp_dir, sample_cookie_bytes):
    path = Path(temp_dir) / "Cookies.binarycookies"
    path.write_bytes(sample_cookie_bytes)
    return path


@pytest.fixture
def chrome_bookmarks_data():
    """Chrome Bookmarks document with nested folders."""
    return {
        "checksum": "0123456789abcdef",
        "roots": {
            "bookmark_bar": {
                "type": "folder",
                "name": "Bookmarks bar",
                "children": [
                    {
                        "type": "url",
                        "name": "Example",
                        "url": "https://example.com",
                        "date_added": "13300000000000000"
                    },
                    {
                        "type": "folder",
                        "name": "Work",
                        "children": [
                            {
                                "type": "url",
                                "name": "GitHub",
                                "url": "https://github.com",
                                "date_added": "13310000000000000"
                            },
                            {
                                "type": "folder",
                                "name": "Empty",
                                "children": []
                            }
                        ]
                    }
                ]
            },
            "other": {
                "type": "folder",
                "name": "Other bookmarks",
                "children": [
                    {
                        "type": "url",
                        "name": "Python",
                        "url": "https://www.python.org/",
                        "date_added": "0"
                    },
                    {
                        "type": "url",
                        "name": "Broken",
                        "url": "not a url"
                    }
                ]
            },
            "synced": {
                "type": "folder",
                "name": "Mobile bookmarks",
                "children": []
            }
        },
        "version": 1
    }


@pytest.fixture
def chrome_bookmarks_file(temp_dir, chrome_bookmarks_data):
    path = Path(temp_dir) / "Bookmarks"
    path.write_text(json.dumps(chrome_bookmarks_data), encoding="utf-8")
    return path


@pytest.fixture
def safari_plist_file(temp_dir):
    """Safari Bookmarks.plist with Favorites, Reading List and a top-level leaf."""
    document = {
        "WebBookmarkType": "WebBookmarkTypeList",
        "Title": "",
        "Children": [
            {
                "WebBookmarkType": "WebBookmarkTypeList",
                "Title": "BookmarksBar",
                "Children": [
                    {
                        "WebBookmarkType": "WebBookmarkTypeLeaf",
                        "URLString": "https://www.apple.com/",
                        "URIDictionary": {"title": "Apple"},
                    },
                ],
            },
            {
                "WebBookmarkType": "WebBookmarkTypeList",
                "Title": "com.apple.ReadingList",
                "Children": [
                    {
                        "WebBookmarkType": "WebBookmarkTypeLeaf",
                        "URLString": "https://webkit.org/",
                        "URIDictionary": {"title": "WebKit"},
                    },
                ],
            },
            {
                "WebBookmarkType": "WebBookmarkTypeProxy",
                "Title": "History",
            },
            {
                "WebBookmarkType": "WebBookmarkTypeLeaf",
                "URLString": "https://swift.org/",
                "URIDictionary": {"title": "Swift"},
            },
        ],
    }
    path = Path(temp_dir) / "Bookmarks.plist"
    with open(path, "wb") as f:
        plistlib.dump(document, f, fmt=plistlib.FMT_BINARY)
    return path


@pytest.fixture
def safari_bookmarks_db(temp_dir):
    """Safari Bookmarks.db with one folder and a few rows."""
    path = Path(temp_dir) / "Bookmarks.db"
    conn = sqlite3.connect(path)
    conn.execute("""
        CREATE TABLE bookmarks (
            id INTEGER PRIMARY KEY,
            parent INTEGER,
            title TEXT,
            url TEXT,
            date_added REAL
        )
    """)
    conn.executemany(
        "INSERT INTO bookmarks (id, parent, title, url, date_added) VALUES (?, ?, ?, ?, ?)",
        [
            (1, None, "Favorites", None, None),
            (2, 1, "Apple", "https://www.apple.com/", 1_600_000_000),
            (3, None, "Loose", "https://example.org/", 1_650_000_000),
            (4, 1, "Bad", "not a url", 1_640_000_000),
            (5, 1, "No date", "https://nodate.example/", None),
        ],
    )
    conn.commit()
    conn.close()
    return path


@pytest.fixture
def firefox_places_db(temp_dir):
    """Firefox places.sqlite with toolbar root, a subfolder and a separator."""
    path = Path(temp_dir) / "places.sqlite"
    conn = sqlite3.connect(path)
    conn.execute("""
        CREATE TABLE moz_places (
            id INTEGER PRIMARY KEY,
            url TEXT
        )
    """)
    conn.execute("""
        CREATE TABLE moz_bookmarks (
            id INTEGER PRIMARY KEY,
            type INTEGER,
            fk INTEGER,
            parent INTEGER,
            title TEXT,
            dateAdded INTEGER
        )
    """)
    conn.executemany(
        "INSERT INTO moz_places (id, url) VALUES (?, ?)",
        [
            (1, "https://www.mozilla.org/"),
            (2, "https://www.python.org/"),
            (3, "https://untitled.example/"),
        ],
    )
    conn.executemany(
        "INSERT INTO moz_bookmarks (id, type, fk, parent, title, dateAdded) VALUES (?, ?, ?, ?, ?, ?)",
        [
            (1, 2, None, 0, "", 1_500_000_000_000_000),
            (2, 2, None, 1, "toolbar", 1_500_000_000_000_000),
            (3, 2, None, 2, "Dev", 1_600_000_000_000_000),
            (4, 1, 1, 2, "Mozilla", 1_700_000_000_000_000),
            (5, 1, 2, 3, "Python", 1_690_000_000_000_000),
            (6, 1, 3, 2, None, 1_695_000_000_000_000),
            (7, 3, None, 2, "", 1_650_000_000_000_000),
        ],
    )
    conn.commit()
    conn.close()
    return path


@pytest.fixture
def isolated_config(temp_dir, monkeypatch):
    """Keep config loading away from the real home directory and environment."""
    home = Path(temp_dir) / "home"
    home.mkdir()
    monkeypatch.setenv("HOME", str(home))
    monkeypatch.chdir(temp_dir)
    for key in list(os.environ):
        if key.startswith("BDI_"):
            monkeypatch.delenv(key)
    monkeypatch.setattr(config_module, "_config", None)
    yield home
