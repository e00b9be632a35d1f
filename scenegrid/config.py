from __future__ import annotations

from dataclasses import dataclass, fields, replace
import logging
from pathlib import Path
import tomllib
from typing import Any, Literal

from .box_model import Auto, Relative, SizingPolicy


LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True)
class LayoutConfig:
    scene_width: int = 1280
    scene_height: int = 720
    padding: float = 0.0
    row_gap: float = 16.0
    col_gap: float = 16.0
    default_track: Literal["auto", "relative"] = "auto"
    text_padding: float = 4.0
    font_size_px: float = 12.0
    legend_visible: bool = True

    def __post_init__(self) -> None:
        if self.scene_width <= 0 or self.scene_height <= 0:
            raise ValueError("scene_width and scene_height must be > 0")
        if self.padding < 0:
            raise ValueError("padding must be >= 0")
        if self.row_gap < 0 or self.col_gap < 0:
            raise ValueError("row_gap/col_gap must be >= 0")
        if self.default_track not in {"auto", "relative"}:
            raise ValueError(f"unsupported default_track: {self.default_track}")
        if self.text_padding < 0:
            raise ValueError("text_padding must be >= 0")
        if self.font_size_px <= 0:
            raise ValueError("font_size_px must be > 0")

    def new_track(self) -> SizingPolicy:
        if self.default_track == "relative":
            return Relative()
        return Auto()


DEFAULT_CONFIG = LayoutConfig()


def load_config(path: str | Path) -> LayoutConfig:
    config_path = Path(path)
    if not config_path.exists():
        raise FileNotFoundError(f"layout config not found: {config_path}")
    with config_path.open("rb") as f:
        raw = tomllib.load(f)
    table = raw.get("layout", raw)
    if not isinstance(table, dict):
        raise ValueError("[layout] must be a table")
    return config_from_mapping(table)


def config_from_mapping(raw: dict[str, Any], *, base: LayoutConfig = DEFAULT_CONFIG) -> LayoutConfig:
    known = {f.name: f for f in fields(LayoutConfig)}
    updates: dict[str, Any] = {}
    for key, value in raw.items():
        if key not in known:
            LOGGER.warning("ignoring unknown layout config key: %s", key)
            continue
        updates[key] = _coerce_field(key, value, getattr(base, key))
    return replace(base, **updates)


def _coerce_field(key: str, value: Any, current: Any) -> Any:
    if isinstance(current, bool):
        if not isinstance(value, bool):
            raise ValueError(f"{key} must be a boolean")
        return value
    if isinstance(current, int):
        if isinstance(value, bool) or not isinstance(value, int):
            raise ValueError(f"{key} must be an integer")
        return value
    if isinstance(current, float):
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            raise ValueError(f"{key} must be a number")
        return float(value)
    if not isinstance(value, str):
        raise ValueError(f"{key} must be a string")
    return value
