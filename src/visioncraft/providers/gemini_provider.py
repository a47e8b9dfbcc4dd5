from __future__ import annotations

import base64
import json
import logging
from typing import Any

from visioncraft.config import Settings, settings as app_config
from visioncraft.imaging import detect_mime
from visioncraft.models import FALLBACK_DESCRIPTION, AppSettings, ProductImage, PromptMode
from visioncraft.providers.base import (
    AdviceError,
    BackgroundRemovalError,
    ImagePayload,
    PosterGenerationError,
    ProviderNotConfiguredError,
)

logger = logging.getLogger(__name__)

DESCRIBE_PROMPT = (
    "Describe the primary subject of this image in a concise phrase, suitable for a product marketing "
    "context. For example: 'a red sports car' or 'a pair of white sneakers'."
)

REMOVE_BACKGROUND_PROMPT = (
    "Remove the background of this image, leaving only the main product. "
    "The new background should be transparent. Do not alter the product itself."
)


def build_poster_prompt(description: str, settings: AppSettings) -> str:
    if settings.prompt_mode is PromptMode.JSON:
        prompt_text = f"Using this JSON for creative direction, create a poster: {settings.json_prompt}"
    else:
        prompt_text = settings.prompt
    return (
        f'Generate a poster for the following product: "{description}". '
        f'Creative instructions: "{prompt_text}". '
        f"The poster's aspect ratio must be {settings.aspect_ratio.value}. "
        f"Creativity level: {settings.creativity * 100:.0f}%. "
        "Adhere strictly to the creative instructions and aspect ratio."
    )


def build_advice_prompt(poster_prompt: str, product_description: str, count: int) -> str:
    return (
        f'The user wants to create a poster for a product described as: "{product_description}". '
        f'Their current creative prompt is: "{poster_prompt}". '
        f"Provide {count} actionable, specific, and creative suggestions to improve their poster concept. "
        "Format the response as a JSON array of strings."
    )


class GeminiProvider:
    name = "gemini"

    def __init__(self, api_key: str | None, client: Any | None = None, cfg: Settings | None = None) -> None:
        self._api_key = api_key
        self._client = client
        self.cfg = cfg or app_config

    @property
    def client(self) -> Any:
        if self._client is None:
            if not self._api_key:
                raise ProviderNotConfiguredError("GEMINI_API_KEY is not set")
            # Imported lazily so the app can start without a key.
            from google import genai  # type: ignore

            self._client = genai.Client(api_key=self._api_key)
        return self._client

    async def describe_image(self, data: bytes, mime_type: str) -> str:
        from google.genai import types  # type: ignore

        try:
            resp = await self.client.aio.models.generate_content(
                model=self.cfg.gemini_vision_model,
                contents=[types.Part.from_bytes(data=data, mime_type=mime_type), DESCRIBE_PROMPT],
            )
            text = (getattr(resp, "text", None) or "").strip()
        except Exception as exc:
            logger.error("Error describing image with Gemini API: %s", exc)
            return FALLBACK_DESCRIPTION
        return text or FALLBACK_DESCRIPTION

    async def remove_background(self, image: ProductImage) -> ImagePayload | None:
        from google.genai import types  # type: ignore

        try:
            resp = await self.client.aio.models.generate_content(
                model=self.cfg.gemini_image_model,
                contents=[types.Part.from_bytes(data=image.data, mime_type=image.mime_type), REMOVE_BACKGROUND_PROMPT],
                config=types.GenerateContentConfig(response_modalities=["image", "text"]),
            )
        except Exception as exc:
            logger.error("Error removing background with Gemini API: %s", exc)
            raise BackgroundRemovalError(
                "Failed to remove the background. Please check your API key and network connection."
            ) from exc

        extracted = _extract_images_from_generate_content(resp)
        return extracted[0] if extracted else None

    async def generate_poster(self, image: ProductImage, settings: AppSettings) -> ImagePayload | None:
        from google.genai import types  # type: ignore

        full_prompt = build_poster_prompt(image.description, settings)
        try:
            resp = await self.client.aio.models.generate_content(
                model=self.cfg.gemini_image_model,
                contents=[types.Part.from_bytes(data=image.data, mime_type=image.mime_type), full_prompt],
                config=types.GenerateContentConfig(
                    response_modalities=["image", "text"],
                    temperature=settings.creativity,
                    image_config=types.ImageConfig(aspect_ratio=settings.aspect_ratio.value),
                ),
            )
        except Exception as exc:
            logger.error("Error generating poster with Gemini API: %s", exc)
            raise PosterGenerationError(
                "Failed to generate poster. Please check your API key and network connection."
            ) from exc

        extracted = _extract_images_from_generate_content(resp)
        return extracted[0] if extracted else None

    async def get_creative_advice(self, poster_prompt: str, product_description: str) -> list[str]:
        from google.genai import types  # type: ignore

        count = self.cfg.advice_count
        try:
            resp = await self.client.aio.models.generate_content(
                model=self.cfg.gemini_vision_model,
                contents=build_advice_prompt(poster_prompt, product_description, count),
                config=types.GenerateContentConfig(
                    response_mime_type="application/json",
                    response_schema=types.Schema(
                        type=types.Type.ARRAY,
                        items=types.Schema(type=types.Type.STRING),
                    ),
                    temperature=self.cfg.advice_temperature,
                ),
            )
        except Exception as exc:
            logger.error("Error getting creative advice from Gemini API: %s", exc)
            raise AdviceError(
                "Failed to get creative advice. Please check your API key and network connection."
            ) from exc

        advice = parse_advice_list(getattr(resp, "text", None))
        if advice is None:
            raise AdviceError("Creative advice response was not a JSON array of strings")
        return advice[:count]


def _strip_code_fences(text: str) -> str:
    s = text.strip()
    if s.startswith("```"):
        # Remove leading fence line
        first_nl = s.find("\n")
        if first_nl != -1:
            s = s[first_nl + 1 :]
        # Remove trailing fence
        if s.rstrip().endswith("```"):
            s = s.rstrip()[:-3]
    return s.strip()


def parse_advice_list(raw_text: str | None) -> list[str] | None:
    if not raw_text:
        return None
    try:
        data = json.loads(_strip_code_fences(raw_text))
    except ValueError:
        return None
    if not isinstance(data, list):
        return None
    out = [str(item).strip() for item in data if isinstance(item, (str, int, float)) and str(item).strip()]
    return out or None


def _extract_images_from_generate_content(resp: Any) -> list[ImagePayload]:
    out: list[ImagePayload] = []
    for cand in getattr(resp, "candidates", []) or []:
        content = getattr(cand, "content", None)
        parts = getattr(content, "parts", None) or []
        for part in parts:
            inline = getattr(part, "inline_data", None)
            if not inline:
                continue
            mime = getattr(inline, "mime_type", None) or ""
            data = getattr(inline, "data", None)
            if not data:
                continue
            if mime and not mime.startswith("image/"):
                continue
            if isinstance(data, str):
                data = base64.b64decode(data)
            detected = detect_mime(data)
            if detected is None:
                continue
            out.append(ImagePayload(data=data, mime_type=detected))
    return out
