"""
Bounds-checked reader over an immutable byte buffer.

All multi-byte integers are big-endian. No read goes past the end of the
buffer: every failure is raised as ``TruncatedInput``.
"""
import struct

from bdimport.errors import TruncatedInput

_U32_BE = struct.Struct(">I")


class BinaryCursor:
    """Sequential reader with a mutable position over a fixed byte buffer."""

    def __init__(self, data: bytes, position: int = 0):
        if not isinstance(data, memoryview):
            data = memoryview(bytes(data))
        self._data = data
        self._position = 0
        self.seek(position)

    def __len__(self) -> int:
        return len(self._data)

    @property
    def position(self) -> int:
        return self._position

    @property
    def remaining(self) -> int:
        return len(self._data) - self._position

    def seek(self, offset: int):
        if offset < 0 or offset > len(self._data):
            raise TruncatedInput(f"Seek to {offset} outside buffer of {len(self._data)} bytes")
        self._position = offset

    def skip(self, count: int):
        self.seek(self._position + count)

    def read_u32_be(self) -> int:
        """Read a big-endian unsigned 32-bit integer and advance by 4."""
        value = self.peek_u32_be(self._position)
        self._position += 4
        return value

    def peek_u32_be(self, offset: int) -> int:
        """Read a big-endian u32 at an absolute offset without moving."""
        self._check(offset, 4)
        return _U32_BE.unpack_from(self._data, offset)[0]

    def read_bytes(self, count: int) -> bytes:
        """Read ``count`` bytes and advance past them."""
        self._check(self._position, count)
        chunk = bytes(self._data[self._position:self._position + count])
        self._position += count
        return chunk

    def read_length_prefixed_utf8(self, offset: int) -> str:
        """
        Read a u32 length at ``offset`` followed by that many UTF-8 bytes.

        Invalid UTF-8 decodes to an empty string instead of failing; cookie
        stores in the wild contain such values and they must not abort the
        surrounding record. The cursor position is left unchanged.
        """
        length = self.peek_u32_be(offset)
        start = offset + 4
        self._check(start, length)
        raw = bytes(self._data[start:start + length])
        try:
            return raw.decode("utf-8")
        except UnicodeDecodeError:
            return ""

    def slice(self, offset: int, size: int) -> "BinaryCursor":
        """Return a new cursor over ``[offset, offset + size)`` of this buffer."""
        self._check(offset, size)
        return BinaryCursor(self._data[offset:offset + size])

    def _check(self, offset: int, count: int):
        if count < 0 or offset < 0 or offset + count > len(self._data):
            raise TruncatedInput(
                f"Read of {count} bytes at {offset} exceeds buffer of {len(self._data)} bytes"
            )
