import httpx
import pytest
from fastapi.testclient import TestClient

from flv_inspector.configs import settings
from flv_inspector.main import app
from flv_inspector.utils.http_utils import fetch_with_retry, get_request_headers


@pytest.fixture
def client(monkeypatch):
    monkeypatch.setattr(settings, "api_password", None)
    return TestClient(app)


def test_health(client):
    assert client.get("/health").json() == {"status": "healthy"}


def test_dump_upload_json(client, script_flv):
    response = client.post("/inspect/dump", content=script_flv, params={"filename": "capture.flv"})
    assert response.status_code == 200

    payload = response.json()
    assert payload["source"] == "capture.flv"
    assert payload["complete"] is True
    assert payload["tag_count"] == 1
    assert payload["mismatch_count"] == 0
    assert payload["header"]["has_audio"] is True
    assert [r["kind"] for r in payload["records"]] == ["header", "size_marker", "tag", "size_marker"]

    tag = payload["records"][2]
    assert tag["tag_type"] == "SCRIPT"
    assert tag["body_kind"] == "script"
    assert tag["payload_hex"] == "aabb"
    assert payload["records"][3]["declared"] == 13


def test_dump_upload_text(client, script_flv):
    response = client.post("/inspect/dump", content=script_flv, params={"format": "text"})
    assert response.status_code == 200
    assert response.headers["content-type"].startswith("text/plain")
    assert "RawScriptData: [aa bb] (2 bytes)" in response.text


def test_partial_dump_reports_error(client, flv):
    data = flv.file(flv.tag(9, b"\x17\x00"), flv.tag_frame(8, 8) + b"\xaf\x01")
    payload = client.post("/inspect/dump", content=data).json()
    assert payload["complete"] is False
    assert payload["tag_count"] == 1
    assert payload["error"]["type"] == "TruncatedBodyError"
    assert payload["error"]["tag_index"] == 2


def test_unknown_codes_in_json(client, av_flv):
    records = client.post("/inspect/dump", content=av_flv).json()["records"]
    tags = [r for r in records if r["kind"] == "tag"]
    assert tags[1]["sound_format"] == 10
    assert tags[2]["frame_type"] == "KEY_FRAME"
    assert tags[2]["codec_id"] == "AVC"
    assert tags[3]["tag_type"] == "UNKNOWN_7"
    assert tags[3]["tag_type_code"] == 7
    assert tags[3]["body_kind"] == "raw"


def test_not_flv_is_rejected(client):
    response = client.post("/inspect/dump", content=b"\x89PNG\r\n\x1a\n\x00\x00")
    assert response.status_code == 422


@pytest.mark.parametrize("body", [b"hello", b"FLV\x01\x05"])
def test_input_shorter_than_header_is_rejected(client, body):
    response = client.post("/inspect/dump", content=body)
    assert response.status_code == 422
    assert response.json()["detail"].startswith("Truncated FLV header")


def test_missing_final_size_marker_still_dumps_the_tag(client, flv):
    data = flv.file(flv.tag(18, b"\x01"))[:-4]
    payload = client.post("/inspect/dump", content=data).json()
    assert payload["complete"] is False
    assert payload["tag_count"] == 1
    assert payload["records"][-1]["kind"] == "tag"
    assert payload["error"]["type"] == "TruncatedError"


def test_run_serves_on_the_documented_port(monkeypatch):
    import uvicorn

    from flv_inspector.main import run

    calls = {}
    monkeypatch.setattr(uvicorn, "run", lambda app, **kwargs: calls.update(kwargs))
    run()
    assert calls["port"] == 7860


def test_empty_body_is_rejected(client):
    assert client.post("/inspect/dump", content=b"").status_code == 400


def test_oversized_body_is_rejected(client, monkeypatch, script_flv):
    monkeypatch.setattr(settings, "max_input_size", 8)
    assert client.post("/inspect/dump", content=script_flv).status_code == 413


def test_api_password_is_enforced(client, monkeypatch, script_flv):
    monkeypatch.setattr(settings, "api_password", "secret")
    assert client.post("/inspect/dump", content=script_flv).status_code == 403
    response = client.post("/inspect/dump", content=script_flv, params={"api_password": "secret"})
    assert response.status_code == 200


def test_request_headers_are_filtered():
    headers = get_request_headers({"Referer": "https://example.com/", "Range": "bytes=0-10", "Cookie": "a=b"})
    assert headers["referer"] == "https://example.com/"
    assert "range" not in headers
    assert "cookie" not in headers
    assert headers["user-agent"] == settings.user_agent


@pytest.mark.asyncio
async def test_fetch_with_retry_downloads_body(script_flv):
    def handler(request: httpx.Request) -> httpx.Response:
        assert request.url.path == "/capture.flv"
        return httpx.Response(200, content=script_flv, headers={"content-type": "video/x-flv"})

    async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
        data, content_type = await fetch_with_retry(client, "https://cdn.example.com/capture.flv", {})

    assert data == script_flv
    assert content_type == "video/x-flv"


@pytest.mark.asyncio
async def test_fetch_with_retry_passes_404_through():
    async with httpx.AsyncClient(transport=httpx.MockTransport(lambda request: httpx.Response(404))) as client:
        with pytest.raises(httpx.HTTPStatusError):
            await fetch_with_retry(client, "https://cdn.example.com/missing.flv", {})


def test_dump_remote_url(client, monkeypatch, av_flv):
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, content=av_flv, headers={"content-type": "video/x-flv"})

    monkeypatch.setattr(
        "flv_inspector.handlers.create_httpx_client",
        lambda: httpx.AsyncClient(transport=httpx.MockTransport(handler)),
    )
    response = client.get("/inspect/dump", params={"d": "https://cdn.example.com/capture.flv"})
    assert response.status_code == 200
    payload = response.json()
    assert payload["source"] == "https://cdn.example.com/capture.flv"
    assert payload["tag_count"] == 4


def test_dump_remote_url_not_found(client, monkeypatch):
    monkeypatch.setattr(
        "flv_inspector.handlers.create_httpx_client",
        lambda: httpx.AsyncClient(transport=httpx.MockTransport(lambda request: httpx.Response(404))),
    )
    response = client.get("/inspect/dump", params={"d": "https://cdn.example.com/missing.flv"})
    assert response.status_code == 404


def test_docs_can_be_disabled(client, monkeypatch):
    assert client.get("/docs").status_code == 200
    monkeypatch.setattr(settings, "disable_docs", True)
    assert client.get("/docs").status_code == 404
    assert client.get("/openapi.json").status_code == 404
