from __future__ import annotations

import asyncio
from io import BytesIO

import pytest
from PIL import Image

from visioncraft.models import AppSettings, ProductImage
from visioncraft.providers.base import ImagePayload


def make_image_bytes(fmt: str = "PNG", color: tuple[int, int, int] = (200, 30, 30), size=(8, 8)) -> bytes:
    buf = BytesIO()
    Image.new("RGB", size, color).save(buf, format=fmt)
    return buf.getvalue()


@pytest.fixture
def anyio_backend():
    return "asyncio"


@pytest.fixture
def png_bytes() -> bytes:
    return make_image_bytes("PNG")


@pytest.fixture
def jpeg_bytes() -> bytes:
    return make_image_bytes("JPEG", color=(10, 120, 240))


class FakeProvider:
    """Records every call; results are set per test. Gates let a test hold a call open."""

    name = "fake"

    def __init__(self) -> None:
        self.description = "a red sneaker"
        self.background_payload: ImagePayload | None = ImagePayload(make_image_bytes("PNG", (0, 0, 0)), "image/png")
        self.poster_payload: ImagePayload | None = ImagePayload(make_image_bytes("PNG", (0, 255, 0)), "image/png")
        self.advice = ["Use warmer light.", "Tighten the crop.", "Add a tagline.", "Try a darker backdrop."]
        self.remove_error: Exception | None = None
        self.generate_error: Exception | None = None
        self.advice_error: Exception | None = None

        self.describe_calls: list[tuple[bytes, str]] = []
        self.remove_calls: list[ProductImage] = []
        self.generate_calls: list[tuple[ProductImage, AppSettings]] = []
        self.advice_calls: list[tuple[str, str]] = []

        self.describe_gate: asyncio.Event | None = None
        self.remove_gate: asyncio.Event | None = None
        self.generate_gate: asyncio.Event | None = None

    async def describe_image(self, data: bytes, mime_type: str) -> str:
        self.describe_calls.append((data, mime_type))
        if self.describe_gate is not None:
            await self.describe_gate.wait()
        return self.description

    async def remove_background(self, image: ProductImage) -> ImagePayload | None:
        self.remove_calls.append(image)
        if self.remove_gate is not None:
            await self.remove_gate.wait()
        if self.remove_error is not None:
            raise self.remove_error
        return self.background_payload

    async def generate_poster(self, image: ProductImage, settings: AppSettings) -> ImagePayload | None:
        self.generate_calls.append((image, settings))
        if self.generate_gate is not None:
            await self.generate_gate.wait()
        if self.generate_error is not None:
            raise self.generate_error
        return self.poster_payload

    async def get_creative_advice(self, poster_prompt: str, product_description: str) -> list[str]:
        self.advice_calls.append((poster_prompt, product_description))
        if self.advice_error is not None:
            raise self.advice_error
        return list(self.advice)


@pytest.fixture
def provider() -> FakeProvider:
    return FakeProvider()


