"""
Safari binary cookie container decoder.

Layout (every integer is a big-endian u32)::

    file    "cook" | page count P | P x (page size | page bytes)
    page    0x00000100 | cookie count C | C x (offset, size) | cookie data
    cookie  flags | url offset | name offset | path offset | value offset | strings

Page-level offsets are relative to the start of the page, string offsets are
relative to the start of the cookie slice. Strings are length-prefixed UTF-8.

Decoding is a single linear pass. A bad file signature is fatal; truncation
stops the current loop and keeps what was decoded so far; a corrupt page or
record is skipped.
"""
import logging
from dataclasses import dataclass
from typing import Callable, List, Optional

from bdimport.binary import BinaryCursor
from bdimport.constants import (
    COOKIE_FILE_SIGNATURE,
    COOKIE_PAGE_SIGNATURE,
    COOKIE_FLAG_SECURE,
    COOKIE_FLAG_HTTP_ONLY,
)
from bdimport.errors import (
    ImportCancelled,
    InvalidSignature,
    MalformedRecord,
    TruncatedInput,
)
from bdimport.models import BrowserSource, Cookie, extract_host

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RawBinaryRecord:
    """Fixed-size header of one cookie record; offsets are slice-relative."""
    flags: int
    url_offset: int
    name_offset: int
    path_offset: int
    value_offset: int

    @property
    def is_secure(self) -> bool:
        return bool(self.flags & COOKIE_FLAG_SECURE)

    @property
    def is_http_only(self) -> bool:
        return bool(self.flags & COOKIE_FLAG_HTTP_ONLY)

    @classmethod
    def read(cls, cursor: BinaryCursor) -> "RawBinaryRecord":
        return cls(
            flags=cursor.read_u32_be(),
            url_offset=cursor.read_u32_be(),
            name_offset=cursor.read_u32_be(),
            path_offset=cursor.read_u32_be(),
            value_offset=cursor.read_u32_be(),
        )


class SafariCookieDecoder:
    """Decode a binary cookie buffer into canonical cookies."""

    def __init__(self, source: BrowserSource = BrowserSource.SAFARI,
                 should_stop: Optional[Callable[[], bool]] = None):
        self.source = source
        self.should_stop = should_stop

    def decode(self, data: bytes) -> List[Cookie]:
        """
        Decode a whole cookie file.

        Args:
            data: Raw file contents

        Returns:
            Cookies in file order

        Raises:
            InvalidSignature: if the buffer does not start with ``cook``
            ImportCancelled: if ``should_stop`` fires between pages
        """
        cursor = BinaryCursor(data)
        self._read_signature(cursor)

        try:
            page_count = cursor.read_u32_be()
        except TruncatedInput:
            logger.debug("Cookie file ends before the page count")
            return []

        cookies: List[Cookie] = []
        for index in range(page_count):
            if self.should_stop and self.should_stop():
                raise ImportCancelled(f"Cancelled after {index} of {page_count} cookie pages")

            try:
                page_size = cursor.read_u32_be()
                page = cursor.slice(cursor.position, page_size)
                cursor.skip(page_size)
            except TruncatedInput as e:
                logger.debug(f"Cookie file truncated at page {index} of {page_count}: {e}")
                break

            cookies.extend(self._decode_page(page, index))

        return cookies

    def _read_signature(self, cursor: BinaryCursor):
        try:
            signature = cursor.read_u32_be()
        except TruncatedInput:
            raise InvalidSignature("Buffer too short for a cookie file signature")
        if signature != COOKIE_FILE_SIGNATURE:
            raise InvalidSignature(f"Not a binary cookie file (signature 0x{signature:08X})")

    def _decode_page(self, page: BinaryCursor, index: int) -> List[Cookie]:
        try:
            signature = page.read_u32_be()
            cookie_count = page.read_u32_be()
        except TruncatedInput:
            logger.debug(f"Cookie page {index} too short for its header")
            return []

        if signature != COOKIE_PAGE_SIGNATURE:
            logger.debug(f"Skipping cookie page {index}: bad signature 0x{signature:08X}")
            return []

        cookies: List[Cookie] = []
        for position in range(cookie_count):
            try:
                offset = page.read_u32_be()
                size = page.read_u32_be()
                record = page.slice(offset, size)
            except TruncatedInput as e:
                logger.debug(f"Cookie page {index} truncated at entry {position}: {e}")
                break

            try:
                cookies.append(self._decode_cookie(record))
            except (TruncatedInput, MalformedRecord) as e:
                logger.debug(f"Skipping cookie {position} on page {index}: {e}")

        return cookies

    def _decode_cookie(self, record: BinaryCursor) -> Cookie:
        raw = RawBinaryRecord.read(record)
        url = record.read_length_prefixed_utf8(raw.url_offset)
        name = record.read_length_prefixed_utf8(raw.name_offset)
        path = record.read_length_prefixed_utf8(raw.path_offset)
        value = record.read_length_prefixed_utf8(raw.value_offset)

        return Cookie.create(
            name=name,
            value=value,
            domain=extract_host(url),
            path=path,
            expires=None,  # not stored by this format
            is_secure=raw.is_secure,
            is_http_only=raw.is_http_only,
            source=self.source,
            include_subdomains=url.startswith("."),
        )


def decode_binary_cookies(data: bytes,
                          should_stop: Optional[Callable[[], bool]] = None) -> List[Cookie]:
    """Decode a Safari binary cookie buffer."""
    return SafariCookieDecoder(should_stop=should_stop).decode(data)
