"""
Command-line FLV dumper.

    flv-inspector capture.flv
    flv-inspector capture.flv --format json --preview-bytes 0

Exit status is 0 when the whole file was walked, 1 when a structural error
cut the dump short (everything parsed before it is still printed) and 2 when
the file cannot be read at all.
"""

import argparse
import logging
import sys
from pathlib import Path

from flv_inspector.configs import settings
from flv_inspector.demuxer.flv_demuxer import demux
from flv_inspector.demuxer.flv_report import iter_report_lines
from flv_inspector.schemas import DumpResponse

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    arg_parser = argparse.ArgumentParser(
        prog="flv-inspector", description="Dump the header, tags and PreviousTagSize markers of an FLV file."
    )
    arg_parser.add_argument("path", help="Path to the FLV file")
    arg_parser.add_argument(
        "--format", choices=("text", "json"), default="text", help="Output format (default: text)"
    )
    arg_parser.add_argument(
        "--preview-bytes",
        type=int,
        default=settings.report_preview_bytes,
        help="Payload bytes shown per tag in text output; 0 shows everything",
    )
    arg_parser.add_argument("--log-level", default=settings.log_level, help="Logging level (default: %(default)s)")
    return arg_parser


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(level=args.log_level.upper(), format="%(asctime)s - %(name)s - %(levelname)s - %(message)s")

    path = Path(args.path)
    try:
        size = path.stat().st_size
        if size > settings.max_input_size:
            print(f"{path}: {size} bytes exceeds the {settings.max_input_size} byte limit", file=sys.stderr)
            return 2
        data = path.read_bytes()
    except OSError as e:
        print(f"{path}: {e.strerror or e}", file=sys.stderr)
        return 2

    result = demux(data)

    if args.format == "json":
        print(DumpResponse.from_result(result, str(path)).model_dump_json(indent=2))
    else:
        for line in iter_report_lines(result, str(path), preview_bytes=args.preview_bytes):
            print(line)

    if result.error is not None:
        logger.debug("Dump of %s ended with %s", path, type(result.error).__name__)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
