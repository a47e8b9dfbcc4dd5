from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class ThemeId(str, Enum):
    DEFAULT = "default"
    DARK = "dark"
    MARIANA = "mariana"


@dataclass(frozen=True)
class Theme:
    id: ThemeId
    name: str


THEMES: tuple[Theme, ...] = (
    Theme(ThemeId.DEFAULT, "Default"),
    Theme(ThemeId.DARK, "Dark"),
    Theme(ThemeId.MARIANA, "Mariana"),
)

DEFAULT_THEME = THEMES[0].id


def parse_theme(value: str) -> ThemeId:
    """Raises ValueError for anything outside the registry."""
    return ThemeId((value or "").strip().lower())
