from typing import Annotated, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

from flv_inspector.demuxer.errors import FLVParseError, TruncatedBodyError, EmptyBodyError
from flv_inspector.demuxer.flv_demuxer import DemuxResult, Record
from flv_inspector.demuxer.flv_parser import (
    AudioBody,
    DataOffsetRecord,
    FileHeader,
    RawBody,
    ScriptBody,
    SizeMarkerRecord,
    TagRecord,
    VideoBody,
)


class GenericParams(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class DumpParams(GenericParams):
    destination: str = Field(..., description="The URL of the FLV file to dump.", alias="d")
    format: Literal["json", "text"] = Field("json", description="Response format: structured JSON or the text report.")


class FileHeaderModel(BaseModel):
    kind: Literal["header"] = "header"
    version: int
    flags: int
    has_audio: bool
    has_video: bool
    data_offset: int


class DataOffsetModel(BaseModel):
    kind: Literal["data_offset"] = "data_offset"
    declared: int = Field(..., description="data_offset declared by the file header.")
    actual: int = Field(..., description="Offset at which the first PreviousTagSize was read.")


class SizeMarkerModel(BaseModel):
    kind: Literal["size_marker"] = "size_marker"
    index: int
    offset: int
    declared: int
    expected: int
    mismatch: bool


class TagModel(BaseModel):
    kind: Literal["tag"] = "tag"
    index: int
    offset: int
    tag_type: str = Field(..., description="AUDIO, VIDEO, SCRIPT or UNKNOWN_<code>.")
    tag_type_code: int
    data_size: int
    timestamp: int
    stream_id: int
    body_kind: Literal["script", "audio", "video", "raw"]
    sound_format: Optional[int] = None
    sound_rate: Optional[int] = None
    sound_size: Optional[int] = None
    sound_type: Optional[int] = None
    frame_type: Optional[str] = None
    frame_type_code: Optional[int] = None
    codec_id: Optional[str] = None
    codec_id_code: Optional[int] = None
    payload_size: int = Field(..., description="Length of the payload kept after the parsed leading fields.")
    payload_hex: str


RecordModel = Annotated[
    Union[FileHeaderModel, DataOffsetModel, SizeMarkerModel, TagModel],
    Field(discriminator="kind"),
]


class ErrorModel(BaseModel):
    type: str = Field(..., description="Exception class name, e.g. TruncatedBodyError.")
    message: str
    offset: Optional[int] = None
    tag_index: Optional[int] = None


class DumpResponse(BaseModel):
    source: Optional[str] = None
    file_size: int
    complete: bool
    tag_count: int
    mismatch_count: int
    header: Optional[FileHeaderModel] = None
    records: list[RecordModel] = Field(default_factory=list)
    error: Optional[ErrorModel] = None

    @classmethod
    def from_result(cls, result: DemuxResult, source: str | None = None) -> "DumpResponse":
        return cls(
            source=source,
            file_size=result.file_size,
            complete=result.complete,
            tag_count=len(result.tags),
            mismatch_count=len(result.mismatches),
            header=_header_model(result.header) if result.header is not None else None,
            records=[record_to_model(r) for r in result.records],
            error=error_to_model(result.error) if result.error is not None else None,
        )


def _header_model(header: FileHeader) -> FileHeaderModel:
    return FileHeaderModel(
        version=header.version,
        flags=header.flags,
        has_audio=header.has_audio,
        has_video=header.has_video,
        data_offset=header.data_offset,
    )


def _tag_model(record: TagRecord) -> TagModel:
    frame = record.frame
    body = record.body
    fields = {}
    if isinstance(body, AudioBody):
        fields = dict(
            body_kind="audio",
            sound_format=body.sound_format,
            sound_rate=body.sound_rate,
            sound_size=body.sound_size,
            sound_type=body.sound_type,
        )
    elif isinstance(body, VideoBody):
        fields = dict(
            body_kind="video",
            frame_type=body.frame_type.name,
            frame_type_code=int(body.frame_type),
            codec_id=body.codec_id.name,
            codec_id_code=int(body.codec_id),
        )
    elif isinstance(body, ScriptBody):
        fields = dict(body_kind="script")
    elif isinstance(body, RawBody):
        fields = dict(body_kind="raw")

    return TagModel(
        index=record.index,
        offset=record.offset,
        tag_type=frame.tag_type.name,
        tag_type_code=int(frame.tag_type),
        data_size=frame.data_size,
        timestamp=frame.timestamp,
        stream_id=frame.stream_id,
        payload_size=len(body.raw),
        payload_hex=body.raw.hex(),
        **fields,
    )


def record_to_model(record: Record) -> FileHeaderModel | DataOffsetModel | SizeMarkerModel | TagModel:
    if isinstance(record, FileHeader):
        return _header_model(record)
    if isinstance(record, DataOffsetRecord):
        return DataOffsetModel(declared=record.declared, actual=record.actual)
    if isinstance(record, SizeMarkerRecord):
        return SizeMarkerModel(
            index=record.index,
            offset=record.offset,
            declared=record.declared,
            expected=record.expected,
            mismatch=record.mismatch,
        )
    if isinstance(record, TagRecord):
        return _tag_model(record)
    raise TypeError(f"Unsupported record type: {type(record).__name__}")


def error_to_model(error: FLVParseError) -> ErrorModel:
    tag_index = error.tag_index if isinstance(error, (TruncatedBodyError, EmptyBodyError)) else None
    return ErrorModel(type=type(error).__name__, message=error.message, offset=error.offset, tag_index=tag_index)
