"""
FLV demux driver.

Walks an in-memory FLV buffer and produces the ordered record sequence of
its structure:

  FileHeader [DataOffsetRecord] SizeMarkerRecord(0)
  (TagRecord(n) SizeMarkerRecord(n))*

Architecture:
  bytes -> ByteCursor -> parse_header -> (parse_tag_frame -> decode_body
  -> read_size_marker)* -> records

Parsing stops cleanly when the buffer is exhausted at a tag boundary. Any
structural error ends the walk early: every record parsed before it is still
delivered, then the error is raised (FLVDemuxer.records) or captured
(demux).
"""

import logging
from collections.abc import Iterator
from dataclasses import dataclass, field
from enum import Enum

from flv_inspector.demuxer.byte_cursor import ByteCursor
from flv_inspector.demuxer.errors import FLVParseError
from flv_inspector.demuxer.flv_parser import (
    DataOffsetRecord,
    FileHeader,
    SizeMarkerRecord,
    TagRecord,
    decode_body,
    parse_header,
    parse_tag_frame,
    read_size_marker,
)

logger = logging.getLogger(__name__)

Record = FileHeader | DataOffsetRecord | SizeMarkerRecord | TagRecord


class DemuxState(Enum):
    START = "start"
    HEADER_PARSED = "header_parsed"
    READING_SIZE_MARKER = "reading_size_marker"
    READING_TAG = "reading_tag"
    DONE = "done"
    FAILED = "failed"


class FLVDemuxer:
    """
    Single-pass FLV demuxer over a byte buffer.

    Usage:
        demuxer = FLVDemuxer(data)
        try:
            for record in demuxer.records():
                handle(record)
        except FLVParseError as e:
            report(e)  # everything before the error was already yielded
    """

    def __init__(self, data: bytes | bytearray | memoryview) -> None:
        self._cursor = ByteCursor(data)
        self._state = DemuxState.START
        self._header: FileHeader | None = None
        self._tag_count = 0
        self._started = False

    @property
    def state(self) -> DemuxState:
        return self._state

    @property
    def header(self) -> FileHeader | None:
        return self._header

    @property
    def tag_count(self) -> int:
        return self._tag_count

    @property
    def file_size(self) -> int:
        return len(self._cursor)

    def records(self) -> Iterator[Record]:
        """
        Yield structural records in file order.

        Can only be called once. If the iterator ends by raising
        FLVParseError, the state is FAILED and all earlier records have been
        yielded. A tag is yielded once its body is decoded, so a missing
        trailing PreviousTagSize still leaves the tag in the output; a tag cut
        off inside its frame or body yields nothing.
        """
        if self._started:
            raise RuntimeError("FLVDemuxer.records() can only be iterated once")
        self._started = True
        return self._run()

    def _run(self) -> Iterator[Record]:
        try:
            yield from self._walk()
        except FLVParseError as e:
            self._state = DemuxState.FAILED
            logger.warning(
                "[flv_demuxer] Stopped after %d tags at offset %s: %s",
                self._tag_count,
                e.offset,
                e.message,
            )
            raise

    def _walk(self) -> Iterator[Record]:
        cursor = self._cursor

        self._header = parse_header(cursor)
        self._state = DemuxState.HEADER_PARSED
        logger.debug(
            "[flv_demuxer] FLV v%d audio=%s video=%s data_offset=%d",
            self._header.version,
            self._header.has_audio,
            self._header.has_video,
            self._header.data_offset,
        )
        yield self._header

        if not self._header.is_standard_offset:
            logger.warning(
                "[flv_demuxer] Header declares data_offset=%d, first size marker read at %d",
                self._header.data_offset,
                cursor.position,
            )
            yield DataOffsetRecord(declared=self._header.data_offset, actual=cursor.position)

        if cursor.remaining() == 0:
            self._state = DemuxState.DONE
            return

        self._state = DemuxState.READING_SIZE_MARKER
        yield read_size_marker(cursor, index=0, expected=0)

        while cursor.remaining() > 0:
            self._state = DemuxState.READING_TAG
            tag_offset = cursor.position
            index = self._tag_count + 1
            frame = parse_tag_frame(cursor)
            body = decode_body(cursor, frame, index)

            self._tag_count = index
            logger.debug(
                "[flv_demuxer] Tag #%d %s size=%d ts=%d at offset %d",
                index,
                frame.tag_type.name,
                frame.data_size,
                frame.timestamp,
                tag_offset,
            )
            yield TagRecord(index=index, frame=frame, body=body, offset=tag_offset)

            self._state = DemuxState.READING_SIZE_MARKER
            yield read_size_marker(cursor, index=index, expected=frame.tag_size)

        self._state = DemuxState.DONE


@dataclass
class DemuxResult:
    """Collected demux output: the records plus the error that ended the walk, if any."""

    header: FileHeader | None = None
    records: list[Record] = field(default_factory=list)
    error: FLVParseError | None = None
    file_size: int = 0

    @property
    def complete(self) -> bool:
        """True when the buffer was consumed to a clean tag boundary."""
        return self.error is None

    @property
    def tags(self) -> list[TagRecord]:
        return [r for r in self.records if isinstance(r, TagRecord)]

    @property
    def size_markers(self) -> list[SizeMarkerRecord]:
        return [r for r in self.records if isinstance(r, SizeMarkerRecord)]

    @property
    def mismatches(self) -> list[SizeMarkerRecord]:
        return [r for r in self.size_markers if r.mismatch]

    @property
    def data_offset_anomaly(self) -> DataOffsetRecord | None:
        for record in self.records:
            if isinstance(record, DataOffsetRecord):
                return record
        return None


def iter_records(data: bytes | bytearray | memoryview) -> Iterator[Record]:
    """Yield the records of an FLV buffer, raising FLVParseError after the last good one."""
    return FLVDemuxer(data).records()


def demux(data: bytes | bytearray | memoryview) -> DemuxResult:
    """
    Parse a whole FLV buffer, capturing the terminal error instead of raising.

    A bad header yields a result with no records and the error set.
    """
    demuxer = FLVDemuxer(data)
    result = DemuxResult(file_size=demuxer.file_size)
    try:
        for record in demuxer.records():
            result.records.append(record)
    except FLVParseError as e:
        result.error = e
    result.header = demuxer.header
    if result.header is None:
        result.records.clear()
    return result
