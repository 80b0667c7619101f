"""
Canonical records produced by the browser data importer.

Every adapter converges on these shapes. Records are immutable and hold no
reference back to the document, buffer or database they were decoded from.
"""
import re
import http.cookiejar
from collections import Counter
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Optional, List, Dict, Any
from urllib.parse import urlparse

from bdimport.errors import BrowserImportError, MalformedRecord, UnsupportedBrowser


_SCHEME_RE = re.compile(r"^[A-Za-z][A-Za-z0-9+.\-]*$")
_HIERARCHICAL_SCHEMES = ("http", "https", "ftp", "ws", "wss")


class BrowserSource(Enum):
    """Browser a record was imported from."""
    SAFARI = "Safari"
    CHROME = "Chrome"
    FIREFOX = "Firefox"
    EDGE = "Edge"

    @property
    def display_name(self) -> str:
        return self.value

    @classmethod
    def parse(cls, name: str) -> "BrowserSource":
        """Look up a source by name, case-insensitively."""
        if isinstance(name, cls):
            return name
        for member in cls:
            if str(name).strip().lower() in (member.name.lower(), member.value.lower()):
                return member
        raise UnsupportedBrowser(f"Unknown browser: {name}")


def is_absolute_url(url: Any) -> bool:
    """Check that a string is an absolute URI (scheme plus a non-empty rest)."""
    if not isinstance(url, str) or not url:
        return False
    if any(ch.isspace() for ch in url):
        return False
    try:
        parsed = urlparse(url)
    except ValueError:
        return False
    if not parsed.scheme or not _SCHEME_RE.match(parsed.scheme):
        return False
    if parsed.scheme in _HIERARCHICAL_SCHEMES and not parsed.netloc:
        return False
    return bool(url[len(parsed.scheme) + 1:])


def extract_host(url: str) -> str:
    """
    Host component of a cookie URL.

    Cookie stores usually record a bare domain (``.example.com``) or
    ``host:port`` rather than a full URL, so a value without a web scheme
    is read as a network location.
    Returns an empty string when nothing usable can be parsed.
    """
    if not url:
        return ""
    try:
        parsed = urlparse(url)
        if not parsed.netloc and parsed.scheme not in _HIERARCHICAL_SCHEMES:
            parsed = urlparse("//" + url.lstrip("."))
        return parsed.hostname or ""
    except ValueError:
        return ""


@dataclass(frozen=True)
class Bookmark:
    """A bookmark in canonical form."""
    title: str
    url: str
    date_added: Optional[datetime]
    source: BrowserSource
    folder: Optional[str] = None

    @classmethod
    def create(cls, title: Any, url: Any, date_added: Optional[datetime],
               source: BrowserSource, folder: Optional[str] = None) -> "Bookmark":
        """
        Build a validated bookmark.

        Raises:
            MalformedRecord: if the title is empty or the URL is not absolute
        """
        if not isinstance(title, str) or not title.strip():
            raise MalformedRecord(f"Bookmark without title: {url!r}")
        if not is_absolute_url(url):
            raise MalformedRecord(f"Bookmark URL is not absolute: {url!r}")
        return cls(title=title, url=url, date_added=date_added,
                   source=source, folder=folder or None)

    @property
    def domain(self) -> str:
        return urlparse(self.url).netloc

    def to_dict(self) -> Dict[str, Any]:
        return {
            "title": self.title,
            "url": self.url,
            "date_added": self.date_added.isoformat() if self.date_added else None,
            "source": self.source.display_name,
            "folder": self.folder,
        }


@dataclass(frozen=True)
class Cookie:
    """A cookie in canonical form. Flags are surfaced, never enforced."""
    name: str
    value: str
    domain: str
    path: str
    expires: Optional[datetime]
    is_secure: bool
    is_http_only: bool
    source: BrowserSource
    include_subdomains: bool = False

    @classmethod
    def create(cls, name: str, value: str, domain: str, path: str,
               expires: Optional[datetime], is_secure: bool, is_http_only: bool,
               source: BrowserSource, include_subdomains: bool = False) -> "Cookie":
        """
        Build a validated cookie.

        ``domain`` is a bare host. ``include_subdomains`` records whether the
        store scoped the cookie to the whole domain (a leading dot).

        Raises:
            MalformedRecord: if the name or domain is empty
        """
        if not name:
            raise MalformedRecord("Cookie without name")
        if not domain:
            raise MalformedRecord(f"Cookie without domain: {name!r}")
        return cls(name=name, value=value or "", domain=domain, path=path or "/",
                   expires=expires, is_secure=bool(is_secure),
                   is_http_only=bool(is_http_only), source=source,
                   include_subdomains=bool(include_subdomains))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "value": self.value,
            "domain": self.domain,
            "path": self.path,
            "expires": self.expires.isoformat() if self.expires else None,
            "secure": self.is_secure,
            "http_only": self.is_http_only,
            "source": self.source.display_name,
            "include_subdomains": self.include_subdomains,
        }

    def to_cookiejar(self) -> http.cookiejar.Cookie:
        """Convert to a standard library cookie, e.g. for a CookieJar."""
        # HttpOnly has no dedicated slot, it travels in the nonstandard attributes
        rest = {"HttpOnly": ""} if self.is_http_only else {}
        expires = int(self.expires.timestamp()) if self.expires else None
        # cookiejar marks domain-wide cookies with a leading dot
        domain = "." + self.domain if self.include_subdomains else self.domain
        return http.cookiejar.Cookie(
            version=0,
            name=self.name,
            value=self.value,
            port=None,
            port_specified=False,
            domain=domain,
            domain_specified=self.include_subdomains,
            domain_initial_dot=self.include_subdomains,
            path=self.path,
            path_specified=bool(self.path),
            secure=self.is_secure,
            expires=expires,
            discard=expires is None,
            comment=None,
            comment_url=None,
            rest=rest,
        )


@dataclass(frozen=True)
class SourceError:
    """A failure that aborted one source."""
    source: str
    kind: str
    message: str
    path: Optional[str] = None

    @classmethod
    def from_exception(cls, source: str, exc: BaseException,
                       path: Optional[str] = None) -> "SourceError":
        if isinstance(exc, BrowserImportError):
            return cls(source=source, kind=type(exc).__name__,
                       message=exc.message, path=exc.path or path)
        return cls(source=source, kind=type(exc).__name__, message=str(exc), path=path)

    def to_dict(self) -> Dict[str, Any]:
        return {"source": self.source, "kind": self.kind,
                "message": self.message, "path": self.path}


@dataclass
class ImportResult:
    """Aggregated output of an import run."""
    bookmarks: List[Bookmark] = field(default_factory=list)
    cookies: List[Cookie] = field(default_factory=list)
    errors: List[SourceError] = field(default_factory=list)
    cancelled: bool = False

    @property
    def ok(self) -> bool:
        """Whether every requested source succeeded."""
        return not self.errors

    def summary(self) -> Dict[str, Dict[str, int]]:
        """Record counts per browser source."""
        bookmark_counts = Counter(b.source.display_name for b in self.bookmarks)
        cookie_counts = Counter(c.source.display_name for c in self.cookies)
        names = sorted(set(bookmark_counts) | set(cookie_counts))
        return {
            name: {"bookmarks": bookmark_counts[name], "cookies": cookie_counts[name]}
            for name in names
        }

    def to_dict(self) -> Dict[str, Any]:
        return {
            "bookmarks": [b.to_dict() for b in self.bookmarks],
            "cookies": [c.to_dict() for c in self.cookies],
            "errors": [e.to_dict() for e in self.errors],
            "cancelled": self.cancelled,
        }
