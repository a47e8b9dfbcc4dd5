from __future__ import annotations

import json
import logging
import time
from dataclasses import dataclass, replace
from typing import Any

from visioncraft.models import (
    FALLBACK_DESCRIPTION,
    NO_IMAGE_ERROR,
    PLACEHOLDER_DESCRIPTION,
    AdviceItem,
    AppSettings,
    GeneratedImage,
    ProductImage,
    PromptMode,
    StudioState,
)
from visioncraft.providers.base import PosterProvider
from visioncraft.themes import ThemeId

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ProductUpload:
    """A decoded file from the upload field, before it has a description."""

    data: bytes
    mime_type: str
    filename: str = "upload"


class PosterStudio:
    """
    Owns one session's state and sequences the gateway calls.

    Results are keyed by the artifact that triggered them: a description or
    background-removal result for an image that has since been replaced, or a
    generation/advice result superseded by a newer request, is dropped.
    """

    def __init__(self, provider: PosterProvider, settings: AppSettings | None = None) -> None:
        self.provider = provider
        self.state = StudioState(settings=settings or AppSettings())
        self._generation_seq = 0
        self._advice_seq = 0

    # Settings / display

    def update_settings(self, **changes: Any) -> AppSettings:
        self.state.settings = replace(self.state.settings, **changes)
        return self.state.settings

    def set_theme(self, theme: ThemeId) -> None:
        self.state.theme = ThemeId(theme)

    def set_canvas_view(self, show_original: bool) -> None:
        self.state.show_original = show_original

    # Product image

    def _is_current(self, image: ProductImage) -> bool:
        current = self.state.product_image
        return current is not None and current.image_id == image.image_id

    async def upload_image(self, upload: ProductUpload | None) -> None:
        state = self.state
        state.generated_image = None
        state.background_removed_image = None
        state.removing_background = False
        state.error = None
        state.removal_error = None

        if upload is None:
            state.product_image = None
            state.describing = False
            return

        product = ProductImage(
            data=upload.data,
            mime_type=upload.mime_type,
            filename=upload.filename,
            description=PLACEHOLDER_DESCRIPTION,
        )
        state.product_image = product
        state.describing = True
        logger.info("Describing product image %s (%s)", product.image_id, product.mime_type)

        try:
            description = await self.provider.describe_image(product.data, product.mime_type)
        except Exception as exc:
            logger.error("Failed to describe image: %s", exc)
            description = FALLBACK_DESCRIPTION

        if not self._is_current(product):
            logger.debug("Dropping description for replaced image %s", product.image_id)
            return

        product = product.with_description(description)
        state.product_image = product
        state.describing = False

        if state.background_removal_enabled and state.background_removed_image is None:
            await self._remove_background(product)

    async def set_background_removal(self, enabled: bool) -> None:
        state = self.state
        state.background_removal_enabled = enabled
        if not enabled:
            state.background_removed_image = None
            state.removal_error = None
            return

        product = state.product_image
        if product is None or state.describing or state.removing_background:
            return
        if state.background_removed_image is None:
            await self._remove_background(product)

    async def _remove_background(self, product: ProductImage) -> None:
        state = self.state
        state.removing_background = True
        state.removal_error = None
        logger.info("Removing background from %s", product.image_id)
        try:
            payload = await self.provider.remove_background(product)
        except Exception as exc:
            logger.error("Background removal failed: %s", exc)
            if self._is_current(product):
                state.removal_error = str(exc) or "Background removal failed."
                state.removing_background = False
            return

        if not self._is_current(product):
            logger.debug("Dropping background removal for replaced image %s", product.image_id)
            return
        state.removing_background = False

        if payload is None:
            logger.warning("Background removal returned no image for %s", product.image_id)
            return
        if not state.background_removal_enabled:
            logger.debug("Background removal was switched off; discarding result for %s", product.image_id)
            return

        current = state.product_image or product
        state.background_removed_image = current.derive(payload.data, payload.mime_type)

    # Poster

    def _check_structured_prompt(self) -> str | None:
        settings = self.state.settings
        if settings.prompt_mode is not PromptMode.JSON:
            return None
        try:
            json.loads(settings.json_prompt)
        except ValueError as exc:
            return f"The JSON prompt is not valid JSON: {exc}"
        return None

    async def generate(self) -> None:
        state = self.state
        image = state.active_product_image
        if image is None:
            return

        self._generation_seq += 1
        seq = self._generation_seq
        source_id = state.product_image.image_id if state.product_image else None

        state.generating = True
        state.error = None
        state.generated_image = None

        invalid = self._check_structured_prompt()
        if invalid:
            state.error = invalid
            state.generating = False
            return

        settings = state.settings
        prompt_used = settings.effective_prompt
        error: str | None = None
        result: GeneratedImage | None = None
        try:
            payload = await self.provider.generate_poster(image, settings)
            if payload is None:
                error = NO_IMAGE_ERROR
            else:
                result = GeneratedImage(data=payload.data, mime_type=payload.mime_type, prompt=prompt_used)
        except Exception as exc:
            logger.error("Poster generation failed: %s", exc)
            error = str(exc) or "An unknown error occurred."

        if seq != self._generation_seq:
            logger.debug("Dropping superseded poster generation #%d", seq)
            return
        state.generating = False

        current_source = state.product_image.image_id if state.product_image else None
        if current_source != source_id:
            logger.debug("Dropping poster generation #%d for a replaced product image", seq)
            return

        state.generated_image = result
        state.error = error

    # Advice

    async def get_advice(self) -> None:
        state = self.state
        generated = state.generated_image
        image = state.active_product_image
        if generated is None or image is None:
            return

        self._advice_seq += 1
        seq = self._advice_seq
        state.fetching_advice = True
        try:
            advice = await self.provider.get_creative_advice(generated.prompt, image.description)
        except Exception as exc:
            logger.error("Failed to get new advice: %s", exc)
            if seq == self._advice_seq:
                state.fetching_advice = False
            return

        if seq != self._advice_seq:
            logger.debug("Dropping stale advice #%d", seq)
            return
        base_id = int(time.time() * 1000)
        state.advice = [AdviceItem(id=base_id + i, advice=a) for i, a in enumerate(advice)]
        state.fetching_advice = False
