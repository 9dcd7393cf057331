"""
Pytest configuration and FLV buffer builders.

Tests build their FLV inputs byte by byte with FLVBuilder. An optional real
capture can be pointed to with TEST_FLV_FILE in the environment or the .env
file at the project root; tests that need it are skipped when it is unset.
"""

import os
import struct
from pathlib import Path

import pytest
from dotenv import load_dotenv

# Load .env file from project root
project_root = Path(__file__).parent.parent
load_dotenv(project_root / ".env")


def pytest_configure(config):
    """Configure pytest-asyncio mode."""
    config.addinivalue_line("markers", "asyncio: mark test as async")


class FLVBuilder:
    """Assembles FLV byte streams for tests."""

    @staticmethod
    def header(version: int = 1, flags: int = 0x05, data_offset: int = 9, signature: bytes = b"FLV") -> bytes:
        return signature + bytes([version, flags]) + struct.pack(">I", data_offset)

    @staticmethod
    def tag_frame(tag_type: int, data_size: int, timestamp: int = 0, stream_id: int = 0) -> bytes:
        return (
            bytes([tag_type])
            + data_size.to_bytes(3, "big")
            + (timestamp & 0xFFFFFF).to_bytes(3, "big")
            + bytes([(timestamp >> 24) & 0xFF])
            + stream_id.to_bytes(3, "big")
        )

    @staticmethod
    def size_marker(value: int) -> bytes:
        return struct.pack(">I", value)

    @classmethod
    def tag(cls, tag_type: int, body: bytes, timestamp: int = 0, stream_id: int = 0, prev_size: int | None = None):
        """A tag followed by its PreviousTagSize (11 + len(body) unless overridden)."""
        if prev_size is None:
            prev_size = 11 + len(body)
        return cls.tag_frame(tag_type, len(body), timestamp, stream_id) + body + cls.size_marker(prev_size)

    @classmethod
    def file(cls, *tags: bytes, flags: int = 0x05, data_offset: int = 9) -> bytes:
        return cls.header(flags=flags, data_offset=data_offset) + cls.size_marker(0) + b"".join(tags)


@pytest.fixture
def flv() -> type[FLVBuilder]:
    return FLVBuilder


@pytest.fixture
def script_flv(flv) -> bytes:
    """Header + PreviousTagSize0 + one Script tag (body AA BB) + PreviousTagSize1 = 13."""
    return flv.file(flv.tag(18, b"\xaa\xbb"))


@pytest.fixture
def av_flv(flv) -> bytes:
    """Script, AAC audio, AVC key frame, then an unknown tag type 7."""
    return flv.file(
        flv.tag(18, b"\x02\x00\x0aonMetaData"),
        flv.tag(8, b"\xaf\x00\x12\x10", timestamp=0),
        flv.tag(9, b"\x17\x00\x00\x00\x00\x01\x64", timestamp=40),
        flv.tag(7, b"\x01\x02\x03", timestamp=0x01000005),
    )


@pytest.fixture
def real_flv_file() -> Path:
    value = os.environ.get("TEST_FLV_FILE")
    if not value or not Path(value).is_file():
        pytest.skip("TEST_FLV_FILE not set")
    return Path(value)
