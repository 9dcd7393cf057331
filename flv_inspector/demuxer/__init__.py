"""
FLV demuxer package.

Provides pure Python parsing of the FLV container structure:

- byte_cursor: Bounds-checked forward reader over an in-memory buffer
- errors: FLVParseError hierarchy (bad signature, truncation, empty bodies)
- flv_parser: File header, tag frame, body decoders and PreviousTagSize checks
- flv_demuxer: Demux driver producing the ordered record sequence
- flv_report: Text rendering of a demux result
"""
