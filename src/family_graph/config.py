from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path

from dotenv import load_dotenv


def _f(name: str, default: float) -> float:
    try:
        return float(os.getenv(name, default))
    except ValueError:
        return default


def _s(name: str, default: str) -> str:
    return os.getenv(name) or default


@dataclass(frozen=True)
class LayoutConfig:
    """Spacing used by the generational layout, in canvas units."""

    generation_height: float = 180.0
    horizontal_spacing: float = 200.0
    # Room for the add-parent / add-child affordances drawn around nodes
    padding_x: float = 100.0
    padding_y: float = 100.0


@dataclass(frozen=True)
class Settings:
    storage_dir: Path = field(default_factory=lambda: Path(_s("FAMILY_GRAPH_STORAGE_DIR", "./data")))
    log_level: str = field(default_factory=lambda: _s("FAMILY_GRAPH_LOG_LEVEL", "INFO").upper())

    # Layout spacing
    generation_height: float = field(default_factory=lambda: _f("FAMILY_GRAPH_GENERATION_HEIGHT", 180.0))
    horizontal_spacing: float = field(default_factory=lambda: _f("FAMILY_GRAPH_HORIZONTAL_SPACING", 200.0))
    padding_x: float = field(default_factory=lambda: _f("FAMILY_GRAPH_PADDING_X", 100.0))
    padding_y: float = field(default_factory=lambda: _f("FAMILY_GRAPH_PADDING_Y", 100.0))

    def layout_config(self) -> LayoutConfig:
        return LayoutConfig(
            generation_height=self.generation_height,
            horizontal_spacing=self.horizontal_spacing,
            padding_x=self.padding_x,
            padding_y=self.padding_y,
        )


def load_settings() -> Settings:
    """Load settings from the environment, reading a local .env first."""
    load_dotenv()
    return Settings()
