"""
Exceptions raised by the FLV parsing layers.

Every error that ends a dump early derives from FLVParseError. The demux
driver lets records parsed before the failure reach the caller and then
surfaces the error itself, so callers can always tell a clean end of file
from a cut-short one.
"""


class FLVParseError(Exception):
    """Base class for structural FLV errors."""

    def __init__(self, message: str, offset: int | None = None):
        self.message = message
        self.offset = offset
        super().__init__(message)


class BadSignatureError(FLVParseError):
    """The buffer does not start with the 'FLV' signature."""

    def __init__(self, signature: bytes, offset: int = 0):
        self.signature = signature
        super().__init__(f"Not an FLV file: expected signature b'FLV', got {signature!r}", offset)


class TruncatedError(FLVParseError):
    """Fewer bytes remain than a fixed-size field requires."""

    def __init__(self, needed: int, available: int, offset: int | None = None, what: str = "field"):
        self.needed = needed
        self.available = available
        self.what = what
        super().__init__(
            f"Truncated {what} at offset {offset}: need {needed} bytes, only {available} available", offset
        )


class TruncatedBodyError(TruncatedError):
    """Fewer bytes remain than the tag's declared data size."""

    def __init__(self, tag_index: int, data_size: int, available: int, offset: int | None = None):
        self.tag_index = tag_index
        self.data_size = data_size
        super().__init__(data_size, available, offset, what=f"body of tag {tag_index}")


class EmptyBodyError(FLVParseError):
    """A tag type that needs a leading descriptor byte declared a zero-length body."""

    kind = "media"

    def __init__(self, tag_index: int, offset: int | None = None):
        self.tag_index = tag_index
        super().__init__(f"Tag {tag_index} is an empty {self.kind} body (data size 0)", offset)


class EmptyAudioBodyError(EmptyBodyError):
    kind = "audio"


class EmptyVideoBodyError(EmptyBodyError):
    kind = "video"
