"""Tests for per-browser source adapters."""

import json
import plistlib
from pathlib import Path
from unittest.mock import patch

import pytest

from bdimport.browser_import import (
    SOURCE_KINDS,
    ChromiumBookmarksAdapter,
    FirefoxBookmarksAdapter,
    SafariBookmarksAdapter,
    SafariCookiesAdapter,
    SafariPlistBookmarksAdapter,
    build_adapter,
)
from bdimport.config import ImporterConfig
from bdimport.errors import (
    DocumentParseError,
    InvalidSignature,
    SourceUnavailable,
    UnsupportedBrowser,
)
from bdimport.models import BrowserSource


class TestBuildAdapter:
    """Test adapter selection by source kind."""

    def test_known_kinds(self):
        assert set(SOURCE_KINDS) == {
            "safari-cookies", "safari-bookmarks", "safari-plist", "chrome", "edge", "firefox"
        }

    @pytest.mark.parametrize("kind,adapter_type", [
        ("safari-cookies", SafariCookiesAdapter),
        ("safari-bookmarks", SafariBookmarksAdapter),
        ("safari-plist", SafariPlistBookmarksAdapter),
        ("chrome", ChromiumBookmarksAdapter),
        ("firefox", FirefoxBookmarksAdapter),
    ])
    def test_adapter_types(self, kind, adapter_type):
        adapter = build_adapter(kind, "/tmp/whatever")
        assert type(adapter) is adapter_type
        assert adapter.kind == kind

    def test_edge_uses_chromium_adapter(self):
        adapter = build_adapter("Edge", "/tmp/Bookmarks")
        assert isinstance(adapter, ChromiumBookmarksAdapter)
        assert adapter.source == BrowserSource.EDGE
        assert adapter.kind == "edge"

    def test_unknown_kind(self):
        with pytest.raises(UnsupportedBrowser):
            build_adapter("opera", "/tmp/Bookmarks")


class TestSafariCookiesAdapter:
    """Test the binary cookies adapter."""

    def test_run(self, safari_cookies_file):
        output = SafariCookiesAdapter(safari_cookies_file).run()
        assert len(output.cookies) == 3
        assert output.bookmarks == []

    def test_missing_file(self, temp_dir):
        with pytest.raises(SourceUnavailable):
            SafariCookiesAdapter(Path(temp_dir) / "missing").run()

    def test_not_a_cookie_file(self, temp_dir):
        path = Path(temp_dir) / "Cookies.binarycookies"
        path.write_bytes(b"PK\x03\x04 zip file")
        with pytest.raises(InvalidSignature):
            SafariCookiesAdapter(path).run()


class TestChromiumBookmarksAdapter:
    """Test Chrome and Edge Bookmarks JSON."""

    def test_chrome(self, chrome_bookmarks_file):
        output = ChromiumBookmarksAdapter(chrome_bookmarks_file).run()

        titles = [b.title for b in output.bookmarks]
        assert titles == ["Example", "GitHub", "Python"]
        assert output.bookmarks[0].folder == "Bookmark Bar"
        assert all(b.source == BrowserSource.CHROME for b in output.bookmarks)

    def test_dates(self, chrome_bookmarks_file):
        example, github, python = ChromiumBookmarksAdapter(chrome_bookmarks_file).run().bookmarks
        assert example.date_added.timestamp() == 13_300_000_000 - 11_644_473_600
        assert python.date_added is None

    def test_legacy_epoch(self, chrome_bookmarks_file):
        config = ImporterConfig(chrome_epoch_shift=False)
        example = ChromiumBookmarksAdapter(chrome_bookmarks_file, config).run().bookmarks[0]
        assert example.date_added.timestamp() == 13_300_000_000

    def test_edge_source(self, chrome_bookmarks_file):
        output = build_adapter("edge", chrome_bookmarks_file).run()
        assert all(b.source == BrowserSource.EDGE for b in output.bookmarks)

    def test_document_without_roots_key(self, temp_dir):
        path = Path(temp_dir) / "Bookmarks"
        path.write_text(json.dumps({"bookmark_bar": {"children": [
            {"type": "url", "name": "Example", "url": "https://example.com"},
        ]}}))
        output = ChromiumBookmarksAdapter(path).run()
        assert [(b.folder, b.title) for b in output.bookmarks] == [("Bookmark Bar", "Example")]

    def test_unconvertible_date_keeps_the_rest(self, temp_dir):
        path = Path(temp_dir) / "Bookmarks"
        path.write_text(json.dumps({"roots": {"bookmark_bar": {"children": [
            {"type": "url", "name": "Good", "url": "https://good.example/",
             "date_added": "13300000000000000"},
            {"type": "url", "name": "NaN string", "url": "https://a.example/", "date_added": "nan"},
            {"type": "url", "name": "NaN number", "url": "https://b.example/",
             "date_added": float("nan")},
            {"type": "url", "name": "Huge", "url": "https://c.example/", "date_added": "1e400"},
        ]}}}))

        bookmarks = ChromiumBookmarksAdapter(path).run().bookmarks

        assert [b.title for b in bookmarks] == ["Good", "NaN string", "NaN number", "Huge"]
        assert bookmarks[0].date_added is not None
        assert all(b.date_added is None for b in bookmarks[1:])

    def test_deeply_nested_json(self, temp_dir):
        path = Path(temp_dir) / "Bookmarks"
        depth = 200_000
        path.write_text('{"roots": ' + '{"a": ' * depth + "1" + "}" * depth + "}")
        with pytest.raises(DocumentParseError):
            ChromiumBookmarksAdapter(path).run()

    def test_invalid_json(self, temp_dir):
        path = Path(temp_dir) / "Bookmarks"
        path.write_text("{not json")
        with pytest.raises(DocumentParseError):
            ChromiumBookmarksAdapter(path).run()

    def test_json_array(self, temp_dir):
        path = Path(temp_dir) / "Bookmarks"
        path.write_text("[]")
        with pytest.raises(DocumentParseError):
            ChromiumBookmarksAdapter(path).run()

    def test_not_utf8(self, temp_dir):
        path = Path(temp_dir) / "Bookmarks"
        path.write_bytes(b"\xff\xfe{}")
        with pytest.raises(DocumentParseError):
            ChromiumBookmarksAdapter(path).run()

    def test_missing_file(self, temp_dir):
        with pytest.raises(SourceUnavailable):
            ChromiumBookmarksAdapter(Path(temp_dir) / "Bookmarks").run()


class TestSafariPlistBookmarksAdapter:
    """Test Safari Bookmarks.plist."""

    def test_run(self, safari_plist_file):
        output = SafariPlistBookmarksAdapter(safari_plist_file).run()
        assert [(b.title, b.folder) for b in output.bookmarks] == [
            ("Apple", "Favorites"),
            ("WebKit", "Reading List"),
            ("Swift", None),
        ]

    def test_xml_plist(self, temp_dir):
        path = Path(temp_dir) / "Bookmarks.plist"
        path.write_bytes(plistlib.dumps({
            "WebBookmarkType": "WebBookmarkTypeList",
            "Children": [{
                "WebBookmarkType": "WebBookmarkTypeLeaf",
                "URLString": "https://example.com/",
                "URIDictionary": {"title": "Example"},
            }],
        }))
        output = SafariPlistBookmarksAdapter(path).run()
        assert [b.url for b in output.bookmarks] == ["https://example.com/"]

    def test_invalid_plist(self, temp_dir):
        path = Path(temp_dir) / "Bookmarks.plist"
        path.write_bytes(b"definitely not a plist")
        with pytest.raises(DocumentParseError):
            SafariPlistBookmarksAdapter(path).run()

    def test_parser_recursion_limit(self, safari_plist_file):
        with patch("bdimport.browser_import.plistlib.loads", side_effect=RecursionError):
            with pytest.raises(DocumentParseError):
                SafariPlistBookmarksAdapter(safari_plist_file).run()


class TestDatabaseAdapters:
    """Test SQL-backed adapters."""

    def test_firefox(self, firefox_places_db):
        output = FirefoxBookmarksAdapter(firefox_places_db).run()
        assert [b.title for b in output.bookmarks] == ["Mozilla", "Python"]

    def test_safari(self, safari_bookmarks_db):
        output = SafariBookmarksAdapter(safari_bookmarks_db).run()
        assert [b.title for b in output.bookmarks] == ["Loose", "Apple"]

    def test_source_left_untouched(self, firefox_places_db):
        before = Path(firefox_places_db).read_bytes()
        FirefoxBookmarksAdapter(firefox_places_db).run()
        assert Path(firefox_places_db).read_bytes() == before

    def test_missing_database(self, temp_dir):
        with pytest.raises(SourceUnavailable):
            FirefoxBookmarksAdapter(Path(temp_dir) / "places.sqlite").run()

    def test_without_copy(self, firefox_places_db):
        config = ImporterConfig(copy_databases=False)
        output = FirefoxBookmarksAdapter(firefox_places_db, config).run()
        assert len(output.bookmarks) == 2
