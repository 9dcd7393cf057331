"""
Bounds-checked forward reader over an in-memory byte buffer.

All FLV parsing layers read through a ByteCursor. A read either returns the
requested bytes and advances the position, or raises TruncatedError and
leaves the position untouched.
"""

from flv_inspector.demuxer.errors import TruncatedError


class ByteCursor:
    """
    Forward-only reader over an immutable byte buffer.

    Usage:
        cursor = ByteCursor(data)
        version = cursor.read_u8()
        size = cursor.read_u24_be()
    """

    __slots__ = ("_data", "_pos")

    def __init__(self, data: bytes | bytearray | memoryview, offset: int = 0) -> None:
        self._data = bytes(data)
        if offset < 0 or offset > len(self._data):
            raise ValueError(f"Cursor offset {offset} outside buffer of {len(self._data)} bytes")
        self._pos = offset

    @property
    def position(self) -> int:
        """Absolute offset of the next byte to be read."""
        return self._pos

    def __len__(self) -> int:
        return len(self._data)

    def remaining(self) -> int:
        """Number of unread bytes."""
        return len(self._data) - self._pos

    def _require(self, size: int, what: str) -> None:
        if size < 0:
            raise ValueError(f"Cannot read a negative number of bytes ({size})")
        available = self.remaining()
        if size > available:
            raise TruncatedError(size, available, self._pos, what=what)

    def peek(self, size: int) -> bytes:
        """Return up to size bytes without consuming them."""
        if size <= 0:
            return b""
        return self._data[self._pos : self._pos + size]

    def read_bytes(self, size: int, what: str = "field") -> bytes:
        """Consume exactly size bytes."""
        self._require(size, what)
        start = self._pos
        self._pos += size
        return self._data[start : self._pos]

    def skip(self, size: int, what: str = "field") -> None:
        """Discard exactly size bytes."""
        self._require(size, what)
        self._pos += size

    def read_u8(self, what: str = "u8") -> int:
        self._require(1, what)
        value = self._data[self._pos]
        self._pos += 1
        return value

    def read_u24_be(self, what: str = "u24") -> int:
        """Read a 24-bit big-endian unsigned integer."""
        return int.from_bytes(self.read_bytes(3, what), "big")

    def read_u32_be(self, what: str = "u32") -> int:
        """Read a 32-bit big-endian unsigned integer."""
        return int.from_bytes(self.read_bytes(4, what), "big")
