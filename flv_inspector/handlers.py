import logging

import httpx
import tenacity
from fastapi import HTTPException, Request, Response
from fastapi.responses import JSONResponse, PlainTextResponse
from starlette.concurrency import run_in_threadpool

from .configs import settings
from .const import FLV_CONTENT_TYPES
from .demuxer.flv_demuxer import demux
from .demuxer.flv_report import render_report
from .schemas import DumpParams, DumpResponse
from .utils.http_utils import (
    DownloadError,
    InputTooLargeError,
    create_httpx_client,
    fetch_with_retry,
    get_request_headers,
)

logger = logging.getLogger(__name__)


def handle_exceptions(exception: Exception) -> Response:
    """
    Handle exceptions and return appropriate HTTP responses.

    Args:
        exception (Exception): The exception that was raised.

    Returns:
        Response: An HTTP response corresponding to the exception type.
    """
    if isinstance(exception, httpx.HTTPStatusError):
        logger.error(f"Upstream service error while handling request: {exception}")
        return Response(status_code=exception.response.status_code, content=f"Upstream service error: {exception}")
    elif isinstance(exception, DownloadError):
        logger.error(f"Error downloading content: {exception}")
        return Response(status_code=exception.status_code, content=str(exception))
    elif isinstance(exception, tenacity.RetryError):
        return Response(status_code=502, content="Max retries exceeded while downloading content")
    elif isinstance(exception, InputTooLargeError):
        return Response(status_code=413, content=str(exception))
    else:
        logger.exception(f"Internal server error while handling request: {exception}")
        return Response(status_code=502, content=f"Internal server error: {exception}")


async def dump_flv_bytes(data: bytes, source: str | None, output_format: str = "json") -> Response:
    """
    Demux a loaded FLV buffer and render it.

    A dump cut short by a structural error is still a successful response: the
    partial records are the payload and the error is reported alongside them.
    Only a buffer that is not FLV at all is rejected: a bad signature, or
    input too short to hold the 9-byte header, is a 422.

    Args:
        data (bytes): The whole FLV file.
        source (str | None): Name or URL of the input, echoed in the output.
        output_format (str): "json" or "text".

    Returns:
        Response: JSON DumpResponse or the plain text report.
    """
    result = await run_in_threadpool(demux, data)

    if result.header is None and result.error is not None:
        raise HTTPException(status_code=422, detail=result.error.message)

    logger.info(
        "Dumped %s: %d bytes, %d tags, %d size mismatches%s",
        source or "upload",
        result.file_size,
        len(result.tags),
        len(result.mismatches),
        "" if result.complete else f", stopped early ({type(result.error).__name__})",
    )

    if output_format == "text":
        return PlainTextResponse(render_report(result, source, preview_bytes=settings.report_preview_bytes))
    return JSONResponse(DumpResponse.from_result(result, source).model_dump())


async def read_request_body(request: Request, max_size: int) -> bytes:
    """
    Read an uploaded request body, refusing anything larger than max_size.

    Raises:
        HTTPException: 413 when the body is too large.
    """
    declared = request.headers.get("content-length")
    if declared and declared.isdigit() and int(declared) > max_size:
        raise HTTPException(status_code=413, detail=f"Body of {declared} bytes exceeds the {max_size} byte limit")

    body = bytearray()
    async for chunk in request.stream():
        body.extend(chunk)
        if len(body) > max_size:
            raise HTTPException(status_code=413, detail=f"Body exceeds the {max_size} byte limit")
    return bytes(body)


async def handle_dump_upload(request: Request, output_format: str, filename: str | None = None) -> Response:
    """Dump an FLV file sent as the raw request body."""
    data = await read_request_body(request, settings.max_input_size)
    if not data:
        raise HTTPException(status_code=400, detail="Request body is empty")
    return await dump_flv_bytes(data, filename, output_format)


async def handle_dump_url(request: Request, dump_params: DumpParams) -> Response:
    """Download an FLV file from a URL and dump it."""
    headers = get_request_headers(dict(request.headers))
    try:
        async with create_httpx_client() as client:
            data, content_type = await fetch_with_retry(
                client, dump_params.destination, headers, max_size=settings.max_input_size
            )
    except Exception as e:
        return handle_exceptions(e)

    if content_type and content_type.split(";")[0].strip().lower() not in FLV_CONTENT_TYPES:
        logger.warning(f"Unexpected content type {content_type} for {dump_params.destination}")

    return await dump_flv_bytes(data, dump_params.destination, dump_params.format)
