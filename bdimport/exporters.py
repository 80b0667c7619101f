"""
Exporters for imported records.

Writes canonical bookmarks and cookies to plain files: JSON, CSV, Netscape
bookmark HTML and Netscape cookies.txt.
"""
import csv
import json
import html
import http.cookiejar
from pathlib import Path
from typing import Dict, List, Optional

from bdimport.models import Bookmark, Cookie


def export_bookmarks(bookmarks: List[Bookmark], path: Path, format: str,
                     pretty: bool = True) -> None:
    """
    Export bookmarks to a file.

    Args:
        bookmarks: Bookmarks to export
        path: Output file path
        format: Export format (json, csv, html)
        pretty: Indent JSON output
    """
    exporters = {
        "json": lambda items, target: _write_json([b.to_dict() for b in items], target, pretty),
        "csv": export_bookmarks_csv,
        "html": export_bookmarks_html,
    }

    exporter = exporters.get(format)
    if not exporter:
        raise ValueError(f"Unknown bookmark export format: {format}")

    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)

    exporter(bookmarks, path)


def export_cookies(cookies: List[Cookie], path: Path, format: str,
                   pretty: bool = True) -> None:
    """
    Export cookies to a file.

    Args:
        cookies: Cookies to export
        path: Output file path
        format: Export format (json, csv, netscape)
        pretty: Indent JSON output
    """
    exporters = {
        "json": lambda items, target: _write_json([c.to_dict() for c in items], target, pretty),
        "csv": export_cookies_csv,
        "netscape": export_cookies_netscape,
    }

    exporter = exporters.get(format)
    if not exporter:
        raise ValueError(f"Unknown cookie export format: {format}")

    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)

    exporter(cookies, path)


def _write_json(data, path: Path, pretty: bool) -> None:
    with open(path, "w", encoding="utf-8") as f:
        json.dump(data, f, indent=2 if pretty else None, ensure_ascii=False)


def export_bookmarks_csv(bookmarks: List[Bookmark], path: Path) -> None:
    """Export bookmarks to CSV."""
    with open(path, "w", encoding="utf-8", newline="") as f:
        writer = csv.writer(f)
        writer.writerow(["title", "url", "date_added", "source", "folder"])

        for b in bookmarks:
            writer.writerow([
                b.title,
                b.url,
                b.date_added.isoformat() if b.date_added else "",
                b.source.display_name,
                b.folder or "",
            ])


def export_bookmarks_html(bookmarks: List[Bookmark], path: Path) -> None:
    """Export bookmarks to Netscape HTML format, one folder per source folder."""
    lines = [
        '<!DOCTYPE NETSCAPE-Bookmark-file-1>',
        '<META HTTP-EQUIV="Content-Type" CONTENT="text/html; charset=UTF-8">',
        '<TITLE>Bookmarks</TITLE>',
        '<H1>Bookmarks</H1>',
        '<DL><p>'
    ]

    folders: Dict[Optional[str], List[Bookmark]] = {}
    for b in bookmarks:
        folders.setdefault(b.folder, []).append(b)

    def write_bookmark(b: Bookmark, indent_str: str):
        add_date = int(b.date_added.timestamp()) if b.date_added else ""
        lines.append(
            f'{indent_str}<DT><A HREF="{html.escape(b.url)}" ADD_DATE="{add_date}">'
            f'{html.escape(b.title)}</A>'
        )

    for folder_name in sorted(name for name in folders if name):
        lines.append(f'    <DT><H3>{html.escape(folder_name)}</H3>')
        lines.append('    <DL><p>')
        for b in folders[folder_name]:
            write_bookmark(b, '        ')
        lines.append('    </DL><p>')

    # Bookmarks without a folder sit at the top level
    for b in folders.get(None, []):
        write_bookmark(b, '    ')

    lines.append('</DL><p>')

    with open(path, "w", encoding="utf-8") as f:
        f.write('\n'.join(lines))


def export_cookies_csv(cookies: List[Cookie], path: Path) -> None:
    """Export cookies to CSV."""
    with open(path, "w", encoding="utf-8", newline="") as f:
        writer = csv.writer(f)
        writer.writerow(["name", "value", "domain", "path", "expires", "secure", "http_only", "source"])

        for c in cookies:
            writer.writerow([
                c.name,
                c.value,
                c.domain,
                c.path,
                c.expires.isoformat() if c.expires else "",
                c.is_secure,
                c.is_http_only,
                c.source.display_name,
            ])


def export_cookies_netscape(cookies: List[Cookie], path: Path) -> None:
    """Export cookies to a Netscape cookies.txt file."""
    jar = http.cookiejar.MozillaCookieJar(str(path))
    for c in cookies:
        jar.set_cookie(c.to_cookiejar())
    # Session cookies (no expiry) are the norm for this source, keep them
    jar.save(ignore_discard=True, ignore_expires=True)
