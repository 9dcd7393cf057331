FLV_CONTENT_TYPES = [
    "video/x-flv",
    "video/flv",
    "application/octet-stream",
]

SUPPORTED_REQUEST_HEADERS = [
    "accept",
    "accept-encoding",
    "accept-language",
    "connection",
    "range",
    "user-agent",
    "referer",
    "origin",
]
