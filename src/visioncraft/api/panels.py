from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from visioncraft.imaging import ACCEPTED_MIME_TYPES
from visioncraft.models import ASPECT_RATIOS, AdviceItem, AppSettings, AspectRatio, PromptMode, StudioState
from visioncraft.themes import THEMES, Theme, ThemeId

DOWNLOAD_FILENAME = "visioncraft-poster.png"


def image_url(kind: str, image_id: str) -> str:
    # The id only busts the browser cache; the route serves whatever the session holds now.
    return f"/images/{kind}?v={image_id}"


@dataclass(frozen=True)
class ControlPanel:
    themes: tuple[Theme, ...]
    theme: ThemeId
    settings: AppSettings
    aspect_ratios: tuple[AspectRatio, ...]
    accept: str
    preview_url: str | None
    checkerboard: bool
    description: str | None
    describing: bool
    removing_background: bool
    background_removal_enabled: bool
    removal_error: str | None
    inputs_locked: bool
    generate_disabled: bool
    generate_label: str

    @property
    def json_mode(self) -> bool:
        return self.settings.prompt_mode is PromptMode.JSON


@dataclass(frozen=True)
class CanvasPanel:
    title: str
    display_url: str | None
    display_label: str
    has_generated: bool
    show_original: bool
    loading: bool
    error: str | None
    download_url: str | None


@dataclass(frozen=True)
class AdvisorPanel:
    advice: list[AdviceItem]
    button_disabled: bool
    button_label: str
    show_empty_hint: bool


def control_panel(state: StudioState) -> ControlPanel:
    active = state.active_product_image
    processing = state.describing or state.removing_background
    if state.generating:
        label = "Crafting Vision..."
    elif processing:
        label = "Processing..."
    else:
        label = "Generate Poster"

    preview_url = None
    if active is not None:
        kind = "product-nobg" if active is state.background_removed_image else "product"
        preview_url = image_url(kind, active.image_id)

    return ControlPanel(
        themes=THEMES,
        theme=state.theme,
        settings=state.settings,
        aspect_ratios=ASPECT_RATIOS,
        accept=", ".join(ACCEPTED_MIME_TYPES),
        preview_url=preview_url,
        checkerboard=active is not None and active.mime_type == "image/png",
        description=active.description if active is not None else None,
        describing=state.describing,
        removing_background=state.removing_background,
        background_removal_enabled=state.background_removal_enabled,
        removal_error=state.removal_error,
        inputs_locked=processing,
        generate_disabled=state.generating or active is None or processing,
        generate_label=label,
    )


def canvas_panel(state: StudioState) -> CanvasPanel:
    """Which image the canvas shows is derived here; the toggle never changes the images themselves."""
    product = state.product_image
    generated = state.generated_image

    if state.show_original and product is not None:
        display_url = image_url("product", product.image_id)
    elif generated is not None:
        display_url = image_url("poster", generated.image_id)
    elif product is not None:
        display_url = image_url("product", product.image_id)
    else:
        display_url = None

    label = "Original Product" if state.show_original else "AI Generated Poster"
    return CanvasPanel(
        title=label if generated is not None else "Canvas",
        display_url=display_url,
        display_label=label,
        has_generated=generated is not None,
        show_original=state.show_original,
        loading=state.generating,
        error=state.error,
        download_url="/download" if generated is not None else None,
    )


def advisor_panel(state: StudioState) -> AdvisorPanel:
    return AdvisorPanel(
        advice=list(state.advice),
        button_disabled=state.fetching_advice or state.generated_image is None,
        button_label="Analyzing..." if state.fetching_advice else "Get New Suggestions",
        show_empty_hint=not state.advice and not state.fetching_advice,
    )


def state_snapshot(state: StudioState) -> dict[str, Any]:
    product = state.product_image
    nobg = state.background_removed_image
    generated = state.generated_image
    active = state.active_product_image
    return {
        "settings": {
            "aspect_ratio": state.settings.aspect_ratio.value,
            "prompt_mode": state.settings.prompt_mode.value,
            "prompt": state.settings.prompt,
            "json_prompt": state.settings.json_prompt,
            "creativity": state.settings.creativity,
        },
        "theme": state.theme.value,
        "product_image": (
            {"image_id": product.image_id, "mime_type": product.mime_type, "description": product.description}
            if product
            else None
        ),
        "background_removed_image": (
            {"image_id": nobg.image_id, "mime_type": nobg.mime_type} if nobg else None
        ),
        "active_image_id": active.image_id if active else None,
        "background_removal_enabled": state.background_removal_enabled,
        "generated_image": (
            {"image_id": generated.image_id, "mime_type": generated.mime_type, "prompt": generated.prompt}
            if generated
            else None
        ),
        "advice": [{"id": a.id, "advice": a.advice} for a in state.advice],
        "error": state.error,
        "removal_error": state.removal_error,
        "show_original": state.show_original,
        "busy": {
            "describing": state.describing,
            "removing_background": state.removing_background,
            "generating": state.generating,
            "fetching_advice": state.fetching_advice,
        },
    }
