"""
Pure Python FLV structure parser.

Provides the building blocks the demux driver strings together:

- parse_header: the 9-byte file header ("FLV", version, flags, data offset)
- parse_tag_frame: the 11-byte header preceding every tag body
- decode_body: per-type body decoders (script, audio, video, unknown)
- read_size_marker: the 4-byte PreviousTagSize trailing every tag

Media payloads are never decoded. Audio and video bodies expose the fields
packed into their leading descriptor byte and keep the rest verbatim;
script bodies (AMF metadata) are kept verbatim as a whole.
"""

import logging
from dataclasses import dataclass
from enum import IntEnum

from flv_inspector.demuxer.byte_cursor import ByteCursor
from flv_inspector.demuxer.errors import (
    BadSignatureError,
    EmptyAudioBodyError,
    EmptyVideoBodyError,
    TruncatedBodyError,
    TruncatedError,
)

logger = logging.getLogger(__name__)

# =============================================================================
# Layout constants
# =============================================================================

FLV_SIGNATURE = b"FLV"
FLV_HEADER_SIZE = 9
TAG_HEADER_SIZE = 11
SIZE_MARKER_SIZE = 4

# Header flags byte
FLAG_VIDEO = 0x01
FLAG_AUDIO = 0x04

# Audio descriptor byte: SoundFormat(4) SoundRate(2) SoundSize(1) SoundType(1)
SOUND_FORMAT_MASK = 0xF0
SOUND_FORMAT_SHIFT = 4
SOUND_RATE_MASK = 0x0C
SOUND_RATE_SHIFT = 2
SOUND_SIZE_MASK = 0x02
SOUND_SIZE_SHIFT = 1
SOUND_TYPE_MASK = 0x01

# Video descriptor byte: FrameType(4) CodecID(4)
FRAME_TYPE_MASK = 0xF0
FRAME_TYPE_SHIFT = 4
CODEC_ID_MASK = 0x0F

SOUND_FORMAT_NAMES = {
    0: "Linear PCM, platform endian",
    1: "ADPCM",
    2: "MP3",
    3: "Linear PCM, little endian",
    4: "Nellymoser 16 kHz mono",
    5: "Nellymoser 8 kHz mono",
    6: "Nellymoser",
    7: "G.711 A-law logarithmic PCM",
    8: "G.711 mu-law logarithmic PCM",
    9: "reserved",
    10: "AAC",
    11: "Speex",
    14: "MP3 8 kHz",
    15: "Device-specific sound",
}

SOUND_RATE_NAMES = {0: "5.5 kHz", 1: "11 kHz", 2: "22 kHz", 3: "44 kHz"}
SOUND_SIZE_NAMES = {0: "8-bit samples", 1: "16-bit samples"}
SOUND_TYPE_NAMES = {0: "Mono", 1: "Stereo"}


# =============================================================================
# Open code sets
# =============================================================================


class _OpenIntEnum(IntEnum):
    """
    IntEnum whose unrecognised values become UNKNOWN_<code> pseudo-members.

    The numeric code of an unknown value survives lossless, so a dump of a
    file using undocumented codes still shows exactly what was on disk.
    """

    @classmethod
    def _missing_(cls, value):
        if not isinstance(value, int) or isinstance(value, bool):
            return None
        pseudo_member = int.__new__(cls, value)
        pseudo_member._name_ = f"UNKNOWN_{value}"
        pseudo_member._value_ = value
        return pseudo_member

    @property
    def is_known(self) -> bool:
        return self._name_ in type(self)._member_map_


class TagType(_OpenIntEnum):
    AUDIO = 8
    VIDEO = 9
    SCRIPT = 18


class FrameType(_OpenIntEnum):
    KEY_FRAME = 1
    INTER_FRAME = 2
    DISPOSABLE_INTER_FRAME = 3
    GENERATED_KEY_FRAME = 4
    VIDEO_INFO_OR_COMMAND_FRAME = 5


class CodecId(_OpenIntEnum):
    JPEG = 1
    H263 = 2
    SCREEN_VIDEO = 3
    VP6 = 4
    VP6_ALPHA = 5
    SCREEN_VIDEO_2 = 6
    AVC = 7


# =============================================================================
# Records
# =============================================================================


@dataclass(frozen=True, slots=True)
class FileHeader:
    """Decoded 9-byte FLV file header."""

    version: int
    flags: int
    has_audio: bool
    has_video: bool
    data_offset: int

    @property
    def is_standard_offset(self) -> bool:
        return self.data_offset == FLV_HEADER_SIZE


@dataclass(frozen=True, slots=True)
class DataOffsetRecord:
    """Header data_offset disagrees with where the first size marker is read."""

    declared: int
    actual: int


@dataclass(frozen=True, slots=True)
class TagFrame:
    """Fixed 11-byte tag header."""

    tag_type: TagType
    data_size: int
    timestamp: int  # milliseconds, extension byte is the high 8 bits
    stream_id: int

    @property
    def tag_size(self) -> int:
        """Total encoded tag size as PreviousTagSize should declare it."""
        return TAG_HEADER_SIZE + self.data_size


@dataclass(frozen=True, slots=True)
class ScriptBody:
    raw: bytes


@dataclass(frozen=True, slots=True)
class AudioBody:
    sound_format: int
    sound_rate: int
    sound_size: int
    sound_type: int
    raw: bytes

    @property
    def descriptor(self) -> int:
        """The leading byte re-packed from the decoded fields."""
        return encode_audio_descriptor(self.sound_format, self.sound_rate, self.sound_size, self.sound_type)


@dataclass(frozen=True, slots=True)
class VideoBody:
    frame_type: FrameType
    codec_id: CodecId
    raw: bytes

    @property
    def descriptor(self) -> int:
        """The leading byte re-packed from the decoded fields."""
        return encode_video_descriptor(self.frame_type, self.codec_id)


@dataclass(frozen=True, slots=True)
class RawBody:
    """Body of a tag with an unrecognised type code, kept verbatim."""

    raw: bytes


TagBody = ScriptBody | AudioBody | VideoBody | RawBody


@dataclass(frozen=True, slots=True)
class TagRecord:
    index: int  # 1-based
    frame: TagFrame
    body: TagBody
    offset: int  # absolute offset of the tag header


@dataclass(frozen=True, slots=True)
class SizeMarkerRecord:
    index: int  # 0 for the marker before the first tag, else the preceding tag's index
    declared: int
    expected: int
    offset: int = 0

    @property
    def mismatch(self) -> bool:
        return self.declared != self.expected


# =============================================================================
# Descriptor byte helpers
# =============================================================================


def encode_audio_descriptor(sound_format: int, sound_rate: int, sound_size: int, sound_type: int) -> int:
    return (
        ((sound_format << SOUND_FORMAT_SHIFT) & SOUND_FORMAT_MASK)
        | ((sound_rate << SOUND_RATE_SHIFT) & SOUND_RATE_MASK)
        | ((sound_size << SOUND_SIZE_SHIFT) & SOUND_SIZE_MASK)
        | (sound_type & SOUND_TYPE_MASK)
    )


def encode_video_descriptor(frame_type: int, codec_id: int) -> int:
    return ((frame_type << FRAME_TYPE_SHIFT) & FRAME_TYPE_MASK) | (codec_id & CODEC_ID_MASK)


# =============================================================================
# Parsers
# =============================================================================


def parse_header(cursor: ByteCursor) -> FileHeader:
    """
    Parse the FLV file header.

    Layout: "FLV"(3) + version(1) + flags(1) + data_offset(4)

    The cursor is left right after the 9 header bytes whatever data_offset
    says; the declared offset is only reported, never followed.

    Raises:
        TruncatedError: fewer than 9 bytes available.
        BadSignatureError: the first 3 bytes are not b"FLV".
    """
    start = cursor.position
    available = cursor.remaining()
    if available < FLV_HEADER_SIZE:
        raise TruncatedError(FLV_HEADER_SIZE, available, start, what="FLV header")

    signature = cursor.peek(len(FLV_SIGNATURE))
    if signature != FLV_SIGNATURE:
        raise BadSignatureError(signature, start)
    cursor.skip(len(FLV_SIGNATURE))

    version = cursor.read_u8()
    flags = cursor.read_u8()
    data_offset = cursor.read_u32_be()

    return FileHeader(
        version=version,
        flags=flags,
        has_audio=bool(flags & FLAG_AUDIO),
        has_video=bool(flags & FLAG_VIDEO),
        data_offset=data_offset,
    )


def parse_tag_frame(cursor: ByteCursor) -> TagFrame:
    """
    Parse an 11-byte tag header.

    Layout: type(1) + data_size(3) + timestamp(3) + timestamp_ext(1) + stream_id(3)

    Raises:
        TruncatedError: fewer than 11 bytes remain (nothing is consumed).
    """
    available = cursor.remaining()
    if available < TAG_HEADER_SIZE:
        raise TruncatedError(TAG_HEADER_SIZE, available, cursor.position, what="tag header")

    type_code = cursor.read_u8()
    data_size = cursor.read_u24_be()
    ts_low = cursor.read_u24_be()
    ts_ext = cursor.read_u8()
    stream_id = cursor.read_u24_be()

    return TagFrame(
        tag_type=TagType(type_code),
        data_size=data_size,
        timestamp=(ts_ext << 24) | ts_low,
        stream_id=stream_id,
    )


def _read_payload(cursor: ByteCursor, frame: TagFrame, tag_index: int) -> bytes:
    available = cursor.remaining()
    if frame.data_size > available:
        raise TruncatedBodyError(tag_index, frame.data_size, available, cursor.position)
    return cursor.read_bytes(frame.data_size)


def decode_script_body(cursor: ByteCursor, frame: TagFrame, tag_index: int) -> ScriptBody:
    return ScriptBody(raw=_read_payload(cursor, frame, tag_index))


def decode_audio_body(cursor: ByteCursor, frame: TagFrame, tag_index: int) -> AudioBody:
    if frame.data_size == 0:
        raise EmptyAudioBodyError(tag_index, cursor.position)
    payload = _read_payload(cursor, frame, tag_index)
    descriptor = payload[0]
    return AudioBody(
        sound_format=(descriptor & SOUND_FORMAT_MASK) >> SOUND_FORMAT_SHIFT,
        sound_rate=(descriptor & SOUND_RATE_MASK) >> SOUND_RATE_SHIFT,
        sound_size=(descriptor & SOUND_SIZE_MASK) >> SOUND_SIZE_SHIFT,
        sound_type=descriptor & SOUND_TYPE_MASK,
        raw=payload[1:],
    )


def decode_video_body(cursor: ByteCursor, frame: TagFrame, tag_index: int) -> VideoBody:
    if frame.data_size == 0:
        raise EmptyVideoBodyError(tag_index, cursor.position)
    payload = _read_payload(cursor, frame, tag_index)
    descriptor = payload[0]
    return VideoBody(
        frame_type=FrameType((descriptor & FRAME_TYPE_MASK) >> FRAME_TYPE_SHIFT),
        codec_id=CodecId(descriptor & CODEC_ID_MASK),
        raw=payload[1:],
    )


def decode_raw_body(cursor: ByteCursor, frame: TagFrame, tag_index: int) -> RawBody:
    return RawBody(raw=_read_payload(cursor, frame, tag_index))


_BODY_DECODERS = {
    TagType.AUDIO: decode_audio_body,
    TagType.VIDEO: decode_video_body,
    TagType.SCRIPT: decode_script_body,
}


def decode_body(cursor: ByteCursor, frame: TagFrame, tag_index: int) -> TagBody:
    """
    Decode the body following a tag frame, dispatching on its tag type.

    Unknown tag types are kept as a RawBody.

    Raises:
        TruncatedBodyError: fewer than frame.data_size bytes remain.
        EmptyAudioBodyError / EmptyVideoBodyError: zero-length media body.
    """
    decoder = _BODY_DECODERS.get(frame.tag_type, decode_raw_body)
    return decoder(cursor, frame, tag_index)


def read_size_marker(cursor: ByteCursor, index: int, expected: int) -> SizeMarkerRecord:
    """
    Read a PreviousTagSize marker and compare it with the expected tag size.

    A mismatch is recorded on the returned record and logged; it never raises.

    Raises:
        TruncatedError: fewer than 4 bytes remain.
    """
    offset = cursor.position
    declared = cursor.read_u32_be(what=f"PreviousTagSize{index}")
    record = SizeMarkerRecord(index=index, declared=declared, expected=expected, offset=offset)
    if record.mismatch:
        logger.warning(
            "[flv_parser] PreviousTagSize%d at offset %d declares %d, expected %d",
            index,
            offset,
            declared,
            expected,
        )
    return record
