"""
Domain models for the coloring core.

Persisted settings are parsed with Pydantic v2 (they come from a store other
code writes to, so every field is validated and junk is dropped). Runtime
records that carry host-view references are plain frozen dataclasses.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field, replace
from enum import Enum
from types import MappingProxyType
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from tasktint.coloring.colors import color_to_rgba, is_transparent
from tasktint.coloring.fingerprint import parse_chip_label
from tasktint.observability.logging import get_logger
from tasktint.storage import keys

logger = get_logger(__name__)

_EMPTY: Mapping[str, Any] = MappingProxyType({})


class ColorSource(str, Enum):
    """Which rule produced a bundle. Exactly one source per bundle."""

    OCCURRENCE = "occurrence"
    PATTERN = "pattern"
    GROUP = "group"


class CompletedMode(str, Enum):
    GOOGLE = "google"
    INHERIT = "inherit"
    CUSTOM = "custom"


class ColorBundle(BaseModel):
    """Resolved styling for one occurrence."""

    model_config = ConfigDict(frozen=True)

    background_color: str
    text_color: str
    background_opacity: float = Field(default=1.0, ge=0.0, le=1.0)
    text_opacity: float = Field(default=1.0, ge=0.0, le=1.0)
    source: ColorSource

    def css(self) -> dict[str, str]:
        """Inline style declarations. Transparent colors leave the host's own color alone."""
        declarations: dict[str, str] = {}
        if not is_transparent(self.background_color):
            declarations["background-color"] = color_to_rgba(
                self.background_color, self.background_opacity
            )
        if not is_transparent(self.text_color):
            declarations["color"] = color_to_rgba(self.text_color, self.text_opacity)
        return declarations


class CompletedStyling(BaseModel):
    """Per-group styling for completed occurrences, as persisted in settings."""

    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")

    enabled: bool | None = None
    mode: CompletedMode | None = None
    bg_color: str | None = Field(default=None, alias="bgColor")
    text_color: str | None = Field(default=None, alias="textColor")
    bg_opacity: float | None = Field(default=None, alias="bgOpacity")
    text_opacity: float | None = Field(default=None, alias="textOpacity")

    @field_validator("mode", mode="before")
    @classmethod
    def _known_mode(cls, value: Any) -> Any:
        if isinstance(value, CompletedMode):
            return value
        if isinstance(value, str) and value in {mode.value for mode in CompletedMode}:
            return value
        return None

    @field_validator("bg_color", "text_color", mode="before")
    @classmethod
    def _non_empty_color(cls, value: Any) -> Any:
        return value if isinstance(value, str) and value.strip() else None

    @field_validator("bg_opacity", "text_opacity", mode="before")
    @classmethod
    def _numeric_opacity(cls, value: Any) -> Any:
        if isinstance(value, bool) or not isinstance(value, int | float) or value != value:
            return None
        return value

    @property
    def has_opacity(self) -> bool:
        return self.bg_opacity is not None or self.text_opacity is not None

    @property
    def is_configured(self) -> bool:
        return bool(self.mode or self.bg_color or self.text_color or self.has_opacity)


@dataclass(frozen=True)
class StyleConfig:
    quick_pick_enabled: bool = True
    list_coloring_enabled: bool = False
    completed_styling: Mapping[str, CompletedStyling] = field(
        default_factory=lambda: MappingProxyType({})
    )

    @property
    def coloring_enabled(self) -> bool:
        return self.quick_pick_enabled or self.list_coloring_enabled

    @classmethod
    def from_settings(cls, settings: Any) -> StyleConfig:
        if not isinstance(settings, Mapping):
            return cls()

        quick_pick = _as_mapping(settings.get("taskColoring"))
        list_coloring = _as_mapping(settings.get("taskListColoring"))

        completed: dict[str, CompletedStyling] = {}
        for group_id, raw in _as_mapping(list_coloring.get("completedStyling")).items():
            if not isinstance(raw, Mapping):
                continue
            try:
                completed[str(group_id)] = CompletedStyling.model_validate(dict(raw))
            except ValidationError as e:
                logger.warning("Ignoring invalid completed styling for group %s: %s", group_id, e)

        return cls(
            quick_pick_enabled=quick_pick.get("enabled") is not False,
            list_coloring_enabled=list_coloring.get("enabled") is True,
            completed_styling=MappingProxyType(completed),
        )


@dataclass(frozen=True)
class Occurrence:
    """One rendered instance of a task. ``target`` is owned by the host view."""

    title: str | None = None
    time_label: str | None = None
    completed: bool = False
    identity: str | None = None
    target: Any = field(default=None, compare=False, repr=False)
    excluded: bool = False

    @classmethod
    def from_label(
        cls,
        label: str | None,
        *,
        target: Any = None,
        identity: str | None = None,
        completed: bool | None = None,
        excluded: bool = False,
    ) -> Occurrence:
        """Build an occurrence from a chip label like ``task: Standup, Not completed, ..., 9am``."""
        title, time_label = parse_chip_label(label)
        if completed is None:
            lowered = (label or "").lower()
            completed = "completed" in lowered and "not completed" not in lowered
        return cls(
            title=title,
            time_label=time_label,
            completed=completed,
            identity=identity,
            target=target,
            excluded=excluded,
        )

    def with_identity(self, identity: str | None) -> Occurrence:
        return replace(self, identity=identity)


@dataclass(frozen=True)
class ResolveOptions:
    # Replaces the stored single-occurrence override for this call only
    override_color: str | None = None
    override_text_color: str | None = None


@dataclass(frozen=True)
class CacheSnapshot:
    """
    Immutable point-in-time merge of the persisted color maps.

    Maps are read-only views over private copies, so a snapshot returned by
    ``CacheManager.acquire()`` can never change underneath a caller.
    """

    identity_groups: Mapping[str, str]
    occurrence_overrides: Mapping[str, str]
    pattern_overrides: Mapping[str, str]
    group_colors: Mapping[str, str]
    group_text_colors: Mapping[str, str]
    style: StyleConfig
    fetched_at: float
    degraded: bool = False

    @classmethod
    def empty(cls, fetched_at: float, *, degraded: bool = False) -> CacheSnapshot:
        return cls(
            identity_groups=_EMPTY,
            occurrence_overrides=_EMPTY,
            pattern_overrides=_EMPTY,
            group_colors=_EMPTY,
            group_text_colors=_EMPTY,
            style=StyleConfig(),
            fetched_at=fetched_at,
            degraded=degraded,
        )

    @classmethod
    def from_storage(
        cls, local: Mapping[str, Any], synced: Mapping[str, Any], fetched_at: float
    ) -> CacheSnapshot:
        settings = _as_mapping(synced.get(keys.SETTINGS))
        list_coloring = _as_mapping(settings.get("taskListColoring"))

        # Legacy settings-embedded text colors, overlaid by the dedicated key
        text_colors = _string_map(
            list_coloring.get("pendingTextColors") or list_coloring.get("textColors")
        )
        text_colors.update(_string_map(synced.get(keys.GROUP_TEXT_COLORS)))

        return cls(
            identity_groups=MappingProxyType(_string_map(local.get(keys.IDENTITY_GROUPS))),
            occurrence_overrides=MappingProxyType(_string_map(synced.get(keys.OCCURRENCE_COLORS))),
            pattern_overrides=MappingProxyType(_string_map(synced.get(keys.PATTERN_COLORS))),
            group_colors=MappingProxyType(_string_map(synced.get(keys.GROUP_COLORS))),
            group_text_colors=MappingProxyType(text_colors),
            style=StyleConfig.from_settings(settings),
            fetched_at=fetched_at,
        )

    def counts(self) -> dict[str, int]:
        return {
            "identity_groups": len(self.identity_groups),
            "occurrence_overrides": len(self.occurrence_overrides),
            "pattern_overrides": len(self.pattern_overrides),
            "group_colors": len(self.group_colors),
            "group_text_colors": len(self.group_text_colors),
        }


def _as_mapping(value: Any) -> Mapping[str, Any]:
    return value if isinstance(value, Mapping) else _EMPTY


def _string_map(value: Any) -> dict[str, str]:
    """Copy a persisted ``str -> str`` map, dropping entries of any other shape."""
    if not isinstance(value, Mapping):
        return {}
    return {
        str(key): item for key, item in value.items() if isinstance(item, str) and item.strip()
    }
