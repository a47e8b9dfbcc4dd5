from __future__ import annotations

import json
import logging
import re
from typing import Any

from visioncraft.config import Settings, settings as app_config
from visioncraft.providers.base import AdviceError, ProviderNotConfiguredError
from visioncraft.providers.gemini_provider import build_advice_prompt

logger = logging.getLogger(__name__)


class OpenAITextProvider:
    name = "openai"

    def __init__(self, api_key: str | None, client: Any | None = None, cfg: Settings | None = None) -> None:
        self._api_key = api_key
        self._client = client
        self.cfg = cfg or app_config

    @property
    def client(self) -> Any:
        if self._client is None:
            if not self._api_key:
                raise ProviderNotConfiguredError("OPENAI_API_KEY is not set")
            from openai import AsyncOpenAI  # type: ignore

            self._client = AsyncOpenAI(api_key=self._api_key)
        return self._client

    async def get_creative_advice(self, poster_prompt: str, product_description: str) -> list[str]:
        """
        Same request as the Gemini advisor, over the Responses API.
        Output is a JSON array of strings; anything else is an error.
        """
        count = self.cfg.advice_count
        prompt = (
            build_advice_prompt(poster_prompt, product_description, count)
            + f"\nReturn EXACTLY {count} items as a JSON array, and nothing else. No numbering, no markdown."
        )

        try:
            resp = await self.client.responses.create(
                model=self.cfg.openai_text_model,
                input=prompt,
                temperature=self.cfg.advice_temperature,
            )
            text = resp.output_text
        except Exception as exc:
            logger.error("Error getting creative advice from OpenAI API: %s", exc)
            raise AdviceError(
                "Failed to get creative advice. Please check your API key and network connection."
            ) from exc

        raw = (text or "").strip()

        # Best-effort JSON extraction (handles accidental pre/post text).
        m = re.search(r"```(?:json)?\s*(\[.*?\])\s*```", raw, re.DOTALL | re.IGNORECASE)
        if m:
            raw = m.group(1).strip()
        else:
            start = raw.find("[")
            end = raw.rfind("]")
            if start != -1 and end != -1 and end > start:
                raw = raw[start : end + 1].strip()

        try:
            data = json.loads(raw)
        except ValueError as exc:
            raise AdviceError("Creative advice response was not a JSON array of strings") from exc

        if not isinstance(data, list):
            raise AdviceError("Creative advice response was not a JSON array of strings")
        out = [str(item).strip() for item in data if isinstance(item, str) and item.strip()]
        if not out:
            raise AdviceError("Creative advice response was empty")
        return out[:count]
