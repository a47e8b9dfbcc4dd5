from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol

from visioncraft.models import AppSettings, ProductImage


class GatewayError(RuntimeError):
    """A call to the hosted model failed."""


class ProviderNotConfiguredError(GatewayError):
    pass


class BackgroundRemovalError(GatewayError):
    pass


class PosterGenerationError(GatewayError):
    pass


class AdviceError(GatewayError):
    pass


@dataclass(frozen=True)
class ImagePayload:
    data: bytes
    mime_type: str


class PosterProvider(Protocol):
    name: str

    async def describe_image(self, data: bytes, mime_type: str) -> str: ...

    async def remove_background(self, image: ProductImage) -> ImagePayload | None: ...

    async def generate_poster(self, image: ProductImage, settings: AppSettings) -> ImagePayload | None: ...

    async def get_creative_advice(self, poster_prompt: str, product_description: str) -> list[str]: ...


class AdviceProvider(Protocol):
    name: str

    async def get_creative_advice(self, poster_prompt: str, product_description: str) -> list[str]: ...


class CompositeProvider:
    """Routes image work to one provider and advice to another."""

    def __init__(self, images: PosterProvider, advice: AdviceProvider) -> None:
        self.images = images
        self.advice = advice
        self.name = f"{images.name}+{advice.name}"

    async def describe_image(self, data: bytes, mime_type: str) -> str:
        return await self.images.describe_image(data, mime_type)

    async def remove_background(self, image: ProductImage) -> ImagePayload | None:
        return await self.images.remove_background(image)

    async def generate_poster(self, image: ProductImage, settings: AppSettings) -> ImagePayload | None:
        return await self.images.generate_poster(image, settings)

    async def get_creative_advice(self, poster_prompt: str, product_description: str) -> list[str]:
        return await self.advice.get_creative_advice(poster_prompt, product_description)
