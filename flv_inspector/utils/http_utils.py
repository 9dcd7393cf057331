import logging

import httpx
from tenacity import retry, stop_after_attempt, wait_exponential, retry_if_exception_type

from flv_inspector.configs import settings
from flv_inspector.const import SUPPORTED_REQUEST_HEADERS

logger = logging.getLogger(__name__)


class DownloadError(Exception):
    def __init__(self, status_code, message):
        self.status_code = status_code
        self.message = message
        super().__init__(message)


class InputTooLargeError(Exception):
    def __init__(self, size: int, limit: int):
        self.size = size
        self.limit = limit
        super().__init__(f"Input of {size} bytes exceeds the {limit} byte limit")


def create_httpx_client(follow_redirects: bool = True, **kwargs) -> httpx.AsyncClient:
    """
    Create an HTTPX AsyncClient honouring the transport configuration.

    Args:
        follow_redirects (bool): Whether to follow 3xx redirects automatically.
        **kwargs: Additional AsyncClient keyword arguments.

    Returns:
        httpx.AsyncClient: Configured client.
    """
    kwargs.setdefault("mounts", settings.transport_config.get_mounts())
    kwargs.setdefault("timeout", settings.transport_config.timeout)
    return httpx.AsyncClient(follow_redirects=follow_redirects, **kwargs)


def get_request_headers(incoming: dict[str, str]) -> dict[str, str]:
    """
    Pick the headers of an incoming request that are forwarded upstream.

    Args:
        incoming (dict): Incoming request headers.

    Returns:
        dict: Headers to send with the upstream request.
    """
    headers = {k.lower(): v for k, v in incoming.items() if k.lower() in SUPPORTED_REQUEST_HEADERS}
    # A partial range would cut the file short and show up as truncation.
    headers.pop("range", None)
    headers.setdefault("user-agent", settings.user_agent)
    return headers


@retry(
    stop=stop_after_attempt(3),
    wait=wait_exponential(multiplier=1, min=4, max=10),
    retry=retry_if_exception_type(DownloadError),
)
async def fetch_with_retry(client, url, headers, max_size: int | None = None):
    """
    Download a URL into memory with retry logic.

    Args:
        client (httpx.AsyncClient): HTTP client to use for the request.
        url (str): Target URL.
        headers (dict): Request headers.
        max_size (int | None): Abort once the body grows past this many bytes.

    Returns:
        tuple[bytes, str | None]: The body and the response content type.

    Raises:
        DownloadError: If the request fails after retries.
        InputTooLargeError: If the body exceeds max_size.
    """
    try:
        async with client.stream("GET", url, headers=headers) as response:
            response.raise_for_status()
            declared = response.headers.get("content-length")
            if max_size is not None and declared and declared.isdigit() and int(declared) > max_size:
                raise InputTooLargeError(int(declared), max_size)

            body = bytearray()
            async for chunk in response.aiter_bytes():
                body.extend(chunk)
                if max_size is not None and len(body) > max_size:
                    raise InputTooLargeError(len(body), max_size)
            return bytes(body), response.headers.get("content-type")
    except httpx.TimeoutException:
        logger.warning(f"Timeout while downloading {url}")
        raise DownloadError(409, f"Timeout while downloading {url}")
    except httpx.HTTPStatusError as e:
        logger.error(f"HTTP error {e.response.status_code} while downloading {url}")
        if e.response.status_code == 404:
            raise e
        raise DownloadError(e.response.status_code, f"HTTP error {e.response.status_code} while downloading {url}")
    except httpx.RequestError as e:
        logger.error(f"Error downloading {url}: {e}")
        raise DownloadError(502, f"Error downloading {url}: {e}")
