"""Pydantic request/response models for the tasktint API."""

from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field

from tasktint.coloring.models import ColorBundle, ColorSource, Occurrence, ResolveOptions
from tasktint.config import API_RESOLVE_BATCH_MAX

MAX_STRING_LENGTH = 1_000


class OccurrenceIn(BaseModel):
    """
    One rendered occurrence as described by a host view.

    Either ``title``/``time_label`` or the raw chip ``label`` may be given;
    explicit fields win over values parsed from the label. ``override_color``
    and ``override_text_color`` apply to this occurrence only.
    """

    identity: str | None = Field(default=None, max_length=MAX_STRING_LENGTH)
    title: str | None = Field(default=None, max_length=MAX_STRING_LENGTH)
    time_label: str | None = Field(default=None, max_length=64)
    label: str | None = Field(default=None, max_length=MAX_STRING_LENGTH)
    completed: bool | None = None
    override_color: str | None = Field(default=None, max_length=64)
    override_text_color: str | None = Field(default=None, max_length=64)

    def to_occurrence(self) -> Occurrence:
        parsed = Occurrence.from_label(self.label, identity=self.identity, completed=self.completed)
        return Occurrence(
            title=self.title or parsed.title,
            time_label=self.time_label or parsed.time_label,
            completed=parsed.completed,
            identity=self.identity or None,
        )

    def to_options(self) -> ResolveOptions:
        return ResolveOptions(
            override_color=self.override_color, override_text_color=self.override_text_color
        )


class ResolveRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    occurrences: list[OccurrenceIn] = Field(min_length=1, max_length=API_RESOLVE_BATCH_MAX)


class BundleOut(BaseModel):
    background_color: str
    text_color: str
    background_opacity: float
    text_opacity: float
    source: ColorSource
    css: dict[str, str]

    @classmethod
    def from_bundle(cls, bundle: ColorBundle) -> BundleOut:
        return cls(**bundle.model_dump(), css=bundle.css())


class ResolveResponse(BaseModel):
    results: list[BundleOut | None]
    degraded: bool = False


class RepaintRequest(BaseModel):
    bypass_throttle: bool = False


class StorageChangeIn(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    old_value: Any = Field(default=None, alias="oldValue")
    new_value: Any = Field(default=None, alias="newValue")


class StorageChangesRequest(BaseModel):
    area: Literal["local", "sync"]
    changes: dict[str, StorageChangeIn] = Field(max_length=100)
