from __future__ import annotations

import base64
import json
import uuid
from dataclasses import dataclass, field, replace
from enum import Enum

from visioncraft.themes import DEFAULT_THEME, ThemeId


class AspectRatio(str, Enum):
    PORTRAIT_9_16 = "9:16"
    SQUARE = "1:1"
    LANDSCAPE_16_9 = "16:9"
    PORTRAIT_3_4 = "3:4"
    LANDSCAPE_4_3 = "4:3"


class PromptMode(str, Enum):
    TEXT = "plain_text"
    JSON = "json"


ASPECT_RATIOS: tuple[AspectRatio, ...] = tuple(AspectRatio)

DEFAULT_PROMPT = (
    "A photorealistic shot of the product on a marble slab, with dramatic studio lighting "
    "and a lush green plant in the background."
)

DEFAULT_JSON_PROMPT = json.dumps(
    {
        "concept": "futuristic luxury theme",
        "style": "cinematic lighting, deep contrast",
        "color_palette": ["#0D0D0D", "#FFB300", "#00B3FF"],
        "composition": "center product with diagonal light beams",
        "text_overlay": {
            "headline": "LIMITED DROP",
            "font": "Poppins Bold",
            "color": "#FFD700",
        },
    },
    indent=2,
)

PLACEHOLDER_ADVICE = (
    "Try adding a cinematic rim light to the product edges.",
    "Reduce saturation for a more premium, sophisticated tone.",
    "Emphasize the product reflection to enhance realism.",
    "Add subtle motion blur to the background for focus depth.",
)

PLACEHOLDER_DESCRIPTION = "Analyzing product..."
FALLBACK_DESCRIPTION = "the user's uploaded product"
NO_IMAGE_ERROR = "The AI model did not return an image. Please try adjusting your prompt."


@dataclass(frozen=True)
class AppSettings:
    aspect_ratio: AspectRatio = AspectRatio.SQUARE
    prompt_mode: PromptMode = PromptMode.TEXT
    prompt: str = DEFAULT_PROMPT
    json_prompt: str = DEFAULT_JSON_PROMPT
    creativity: float = 1.0  # 0.0 to 1.0

    def __post_init__(self) -> None:
        object.__setattr__(self, "aspect_ratio", AspectRatio(self.aspect_ratio))
        object.__setattr__(self, "prompt_mode", PromptMode(self.prompt_mode))
        object.__setattr__(self, "creativity", min(1.0, max(0.0, float(self.creativity))))

    @property
    def effective_prompt(self) -> str:
        return self.json_prompt if self.prompt_mode is PromptMode.JSON else self.prompt


@dataclass(frozen=True)
class ProductImage:
    data: bytes
    mime_type: str
    filename: str = "upload"
    description: str = PLACEHOLDER_DESCRIPTION
    image_id: str = field(default_factory=lambda: uuid.uuid4().hex[:12])

    @property
    def base64(self) -> str:
        return base64.b64encode(self.data).decode("ascii")

    def with_description(self, description: str) -> ProductImage:
        return replace(self, description=description)

    def derive(self, data: bytes, mime_type: str) -> ProductImage:
        """A new variant (own id, own payload) that keeps this image's description."""
        return ProductImage(data=data, mime_type=mime_type, filename=self.filename, description=self.description)


@dataclass(frozen=True)
class GeneratedImage:
    data: bytes
    mime_type: str
    prompt: str
    image_id: str = field(default_factory=lambda: uuid.uuid4().hex[:12])

    @property
    def base64(self) -> str:
        return base64.b64encode(self.data).decode("ascii")


@dataclass(frozen=True)
class AdviceItem:
    id: int
    advice: str


def placeholder_advice() -> list[AdviceItem]:
    return [AdviceItem(id=i, advice=a) for i, a in enumerate(PLACEHOLDER_ADVICE)]


@dataclass
class StudioState:
    settings: AppSettings = field(default_factory=AppSettings)
    product_image: ProductImage | None = None
    background_removed_image: ProductImage | None = None
    background_removal_enabled: bool = False
    generated_image: GeneratedImage | None = None
    advice: list[AdviceItem] = field(default_factory=placeholder_advice)
    error: str | None = None
    removal_error: str | None = None
    theme: ThemeId = DEFAULT_THEME
    show_original: bool = False

    describing: bool = False
    removing_background: bool = False
    generating: bool = False
    fetching_advice: bool = False

    @property
    def active_product_image(self) -> ProductImage | None:
        if self.background_removal_enabled and self.background_removed_image is not None:
            return self.background_removed_image
        return self.product_image

    @property
    def busy(self) -> bool:
        return self.describing or self.removing_background or self.generating or self.fetching_advice
