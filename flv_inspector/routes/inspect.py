from typing import Annotated, Literal

from fastapi import APIRouter, Query, Request

from flv_inspector.handlers import handle_dump_upload, handle_dump_url
from flv_inspector.schemas import DumpParams

inspect_router = APIRouter()


@inspect_router.get("/dump", summary="Dump the structure of a remote FLV file")
async def dump_remote_flv(
    request: Request,
    dump_params: Annotated[DumpParams, Query()],
):
    """
    Download the FLV file at the destination URL and dump its structure.

    Args:
        request (Request): The incoming HTTP request.
        dump_params (DumpParams): Destination URL and output format.

    Returns:
        Response: DumpResponse JSON or the text report.
    """
    return await handle_dump_url(request, dump_params)


@inspect_router.post("/dump", summary="Dump the structure of an uploaded FLV file")
async def dump_uploaded_flv(
    request: Request,
    format: Annotated[Literal["json", "text"], Query(description="Response format.")] = "json",
    filename: Annotated[str | None, Query(description="Name echoed as the dump source.")] = None,
):
    """
    Dump the structure of an FLV file sent as the raw request body.

    Args:
        request (Request): The incoming HTTP request carrying the file.
        format (str): "json" or "text".
        filename (str | None): Optional name of the uploaded file.

    Returns:
        Response: DumpResponse JSON or the text report.
    """
    return await handle_dump_upload(request, format, filename)
