from __future__ import annotations

from io import BytesIO

import pytest
from fastapi.testclient import TestClient
from PIL import Image

from conftest import make_image_bytes
from visioncraft.api.app import create_app
from visioncraft.config import Settings
from visioncraft.providers.base import BackgroundRemovalError, ImagePayload


@pytest.fixture
def client(provider):
    cfg = Settings(gemini_api_key=None, log_level="WARNING")
    app = create_app(cfg, provider_factory=lambda: provider)
    with TestClient(app) as c:
        yield c


def _state(client) -> dict:
    resp = client.get("/api/state")
    assert resp.status_code == 200
    return resp.json()


def _upload(client, data: bytes | None = None, name: str = "shoe.png", mime: str = "image/png"):
    data = data if data is not None else make_image_bytes("PNG")
    return client.post("/upload", files={"file": (name, data, mime)})


def test_index_renders_three_panels(client):
    resp = client.get("/")
    assert resp.status_code == 200
    html = resp.text
    assert 'data-theme="default"' in html
    assert "VisionCraft AI" in html
    assert "Your Vision Awaits" in html
    assert "AI Creative Advisor" in html
    assert "visioncraft_session" in resp.headers.get("set-cookie", "")


def test_sessions_are_isolated(provider):
    app = create_app(Settings(log_level="WARNING"), provider_factory=lambda: provider)
    with TestClient(app) as first, TestClient(app) as second:
        _upload(first)
        assert _state(first)["product_image"] is not None
        assert _state(second)["product_image"] is None


def test_upload_describes_and_serves_preview(client, provider):
    png = make_image_bytes("PNG")
    resp = _upload(client, png)
    assert resp.status_code == 200

    state = _state(client)
    assert state["product_image"]["description"] == "a red sneaker"
    assert state["product_image"]["mime_type"] == "image/png"
    assert client.get("/images/product").content == png
    assert client.get("/images/poster").status_code == 404


def test_upload_rejects_non_images(client, provider):
    resp = _upload(client, b"plain text", name="notes.txt", mime="text/plain")
    assert resp.status_code == 400
    assert provider.describe_calls == []
    assert _state(client)["product_image"] is None


def test_upload_rejects_oversized_images(client, provider, monkeypatch):
    monkeypatch.setattr(Image, "MAX_IMAGE_PIXELS", 10)
    assert _upload(client).status_code == 400
    assert provider.describe_calls == []
    assert _state(client)["product_image"] is None


def test_upload_mime_comes_from_content(client):
    _upload(client, make_image_bytes("JPEG"), name="shoe.png", mime="image/png")
    assert _state(client)["product_image"]["mime_type"] == "image/jpeg"


def test_generate_download_and_view_toggle(client, provider):
    _upload(client)
    resp = client.post("/generate", data={"prompt": "on a beach", "creativity": "0.5", "aspect_ratio": "16:9"})
    assert resp.status_code == 200

    state = _state(client)
    assert state["generated_image"]["prompt"] == "on a beach"
    assert state["settings"]["creativity"] == 0.5
    assert state["settings"]["aspect_ratio"] == "16:9"

    download = client.get("/download")
    assert download.status_code == 200
    assert download.headers["content-type"] == "image/png"
    assert 'filename="visioncraft-poster.png"' in download.headers["content-disposition"]
    with Image.open(BytesIO(download.content)) as img:
        assert img.format == "PNG"

    before = _state(client)
    client.post("/canvas/view", data={"view": "original"})
    after = _state(client)
    assert after["show_original"] is True
    assert after["generated_image"] == before["generated_image"]
    assert after["product_image"] == before["product_image"]
    assert "Original Product" in client.get("/").text


def test_download_reencodes_jpeg_posters(client, provider):
    provider.poster_payload = ImagePayload(make_image_bytes("JPEG"), "image/jpeg")
    _upload(client)
    client.post("/generate")
    with Image.open(BytesIO(client.get("/download").content)) as img:
        assert img.format == "PNG"


def test_download_without_poster_is_404(client):
    assert client.get("/download").status_code == 404


def test_generate_without_image_is_noop(client, provider):
    client.post("/generate")
    assert provider.generate_calls == []
    assert _state(client)["error"] is None


def test_generate_failure_is_rendered(client, provider):
    provider.poster_payload = None
    _upload(client)
    client.post("/generate")

    state = _state(client)
    assert state["error"] == "The AI model did not return an image. Please try adjusting your prompt."
    html = client.get("/").text
    assert "Generation Failed" in html
    assert "did not return an image" in html


def test_background_removal_toggle(client, provider):
    _upload(client)
    client.post("/background-removal", data={"enabled": "on"})
    state = _state(client)
    assert state["background_removal_enabled"] is True
    assert state["background_removed_image"] is not None
    assert state["active_image_id"] == state["background_removed_image"]["image_id"]
    assert client.get("/images/product-nobg").status_code == 200

    client.post("/background-removal", data={"enabled": "off"})
    state = _state(client)
    assert state["background_removed_image"] is None
    assert state["active_image_id"] == state["product_image"]["image_id"]
    assert client.get("/images/product-nobg").status_code == 404


def test_advice_flow(client, provider):
    client.post("/advice")
    assert provider.advice_calls == []

    _upload(client)
    client.post("/generate")
    client.post("/advice")
    state = _state(client)
    assert [a["advice"] for a in state["advice"]] == provider.advice
    assert "Tighten the crop." in client.get("/").text


def test_settings_and_theme_validation(client):
    assert client.post("/settings", data={"aspect_ratio": "2:1"}).status_code == 400
    assert client.post("/settings", data={"prompt_mode": "yaml"}).status_code == 400
    assert client.post("/theme", data={"theme": "neon"}).status_code == 400
    assert client.post("/canvas/view", data={"view": "sideways"}).status_code == 400

    client.post("/settings", data={"prompt_mode": "json", "json_prompt": '{"concept": "retro"}'})
    client.post("/theme", data={"theme": "mariana"})
    state = _state(client)
    assert state["settings"]["prompt_mode"] == "json"
    assert state["settings"]["json_prompt"] == '{"concept": "retro"}'
    assert state["theme"] == "mariana"
    assert 'data-theme="mariana"' in client.get("/").text


def test_unknown_image_kind_is_404(client):
    assert client.get("/images/thumbnail").status_code == 404


def test_removal_failure_is_rendered_beside_the_toggle(client, provider):
    provider.remove_error = BackgroundRemovalError("Failed to remove the background.")
    _upload(client)
    client.post("/background-removal", data={"enabled": "on"})

    state = _state(client)
    assert state["removal_error"] == "Failed to remove the background."
    assert state["error"] is None
    assert state["busy"]["removing_background"] is False
    html = client.get("/").text
    assert "Failed to remove the background." in html
    assert "Generation Failed" not in html
