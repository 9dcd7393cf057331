"""
Text rendering of a demux result.

Produces the classic FLV dump layout: a separator line between blocks, one
"Name: value" line per field, the header block first, then every
PreviousTagSize marker and tag in file order.
"""

from collections.abc import Iterator

from flv_inspector.demuxer.flv_demuxer import DemuxResult
from flv_inspector.demuxer.flv_parser import (
    SOUND_FORMAT_NAMES,
    SOUND_RATE_NAMES,
    SOUND_SIZE_NAMES,
    SOUND_TYPE_NAMES,
    AudioBody,
    CodecId,
    DataOffsetRecord,
    FileHeader,
    FrameType,
    RawBody,
    ScriptBody,
    SizeMarkerRecord,
    TagRecord,
    TagType,
    VideoBody,
)

SEPARATOR = "=" * 37

_TAG_TYPE_LABELS = {TagType.AUDIO: "Audio", TagType.VIDEO: "Video", TagType.SCRIPT: "Script"}

_FRAME_TYPE_LABELS = {
    FrameType.KEY_FRAME: "KeyFrame",
    FrameType.INTER_FRAME: "InterFrame",
    FrameType.DISPOSABLE_INTER_FRAME: "DisposableInterFrame",
    FrameType.GENERATED_KEY_FRAME: "GeneratedKeyFrame",
    FrameType.VIDEO_INFO_OR_COMMAND_FRAME: "VideoInfoOrCommandFrame",
}

_CODEC_ID_LABELS = {
    CodecId.JPEG: "JPEG",
    CodecId.H263: "SorensonH263",
    CodecId.SCREEN_VIDEO: "ScreenVideo",
    CodecId.VP6: "On2VP6",
    CodecId.VP6_ALPHA: "On2VP6WithAlpha",
    CodecId.SCREEN_VIDEO_2: "ScreenVideoVersion2",
    CodecId.AVC: "AVC",
}


def _label(labels: dict, code: int) -> str:
    label = labels.get(code)
    return label if label is not None else f"Unknown({int(code)})"


def _named(names: dict[int, str], code: int) -> str:
    name = names.get(code)
    return f"{code} ({name})" if name is not None else str(code)


def format_payload(data: bytes, preview_bytes: int = 16) -> str:
    """Hex preview of a payload; preview_bytes <= 0 shows everything."""
    if preview_bytes > 0 and len(data) > preview_bytes:
        return f"[{data[:preview_bytes].hex(' ')} ...] ({len(data)} bytes)"
    return f"[{data.hex(' ')}] ({len(data)} bytes)"


def _header_lines(header: FileHeader, source: str | None, file_size: int) -> list[str]:
    lines = [SEPARATOR]
    if source is not None:
        lines.append(f"File: {source}")
    lines.extend(
        [
            f"FileSize: {file_size}",
            f"Version: {header.version}",
            f"Type: {header.flags}",
            f"HasAudio: {header.has_audio}",
            f"HasVideo: {header.has_video}",
            f"DataOffset: {header.data_offset}",
        ]
    )
    return lines


def _tag_lines(record: TagRecord, preview_bytes: int) -> list[str]:
    frame = record.frame
    lines = [
        SEPARATOR,
        f"TagIndex: {record.index}",
        f"TagType: {_label(_TAG_TYPE_LABELS, frame.tag_type)}",
        f"DataSize: {frame.data_size}",
        f"Timestamp: {frame.timestamp}",
        f"StreamId: {frame.stream_id}",
    ]
    body = record.body
    if isinstance(body, AudioBody):
        lines.extend(
            [
                f"SoundFormat: {_named(SOUND_FORMAT_NAMES, body.sound_format)}",
                f"SoundRate: {_named(SOUND_RATE_NAMES, body.sound_rate)}",
                f"SoundSize: {_named(SOUND_SIZE_NAMES, body.sound_size)}",
                f"SoundType: {_named(SOUND_TYPE_NAMES, body.sound_type)}",
                f"Data: {format_payload(body.raw, preview_bytes)}",
            ]
        )
    elif isinstance(body, VideoBody):
        lines.extend(
            [
                f"FrameType: {_label(_FRAME_TYPE_LABELS, body.frame_type)}",
                f"CodecId: {_label(_CODEC_ID_LABELS, body.codec_id)}",
                f"Data: {format_payload(body.raw, preview_bytes)}",
            ]
        )
    elif isinstance(body, ScriptBody):
        lines.append(f"RawScriptData: {format_payload(body.raw, preview_bytes)}")
    elif isinstance(body, RawBody):
        lines.append(f"Data: {format_payload(body.raw, preview_bytes)}")
    return lines


def _size_marker_lines(record: SizeMarkerRecord) -> list[str]:
    line = f"PreviousTagSize{record.index}: {record.declared}"
    if record.mismatch:
        line += f" (expected {record.expected})"
    return [SEPARATOR, line]


def iter_report_lines(
    result: DemuxResult,
    source: str | None = None,
    preview_bytes: int = 16,
) -> Iterator[str]:
    """Yield the report line by line."""
    for record in result.records:
        if isinstance(record, FileHeader):
            yield from _header_lines(record, source, result.file_size)
        elif isinstance(record, DataOffsetRecord):
            yield f"DataOffsetMismatch: declared {record.declared}, first size marker at {record.actual}"
        elif isinstance(record, SizeMarkerRecord):
            yield from _size_marker_lines(record)
        elif isinstance(record, TagRecord):
            yield from _tag_lines(record, preview_bytes)

    yield SEPARATOR
    if result.error is not None:
        yield f"Error: {result.error.message}"


def render_report(result: DemuxResult, source: str | None = None, preview_bytes: int = 16) -> str:
    return "\n".join(iter_report_lines(result, source, preview_bytes)) + "\n"
