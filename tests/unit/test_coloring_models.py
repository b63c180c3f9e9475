"""Unit tests for coloring domain models"""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from tasktint.coloring.models import (
    CacheSnapshot,
    ColorBundle,
    ColorSource,
    CompletedMode,
    CompletedStyling,
    Occurrence,
    StyleConfig,
)
from tasktint.storage import keys


class TestColorBundle:
    def test_css_renders_rgba(self):
        bundle = ColorBundle(
            background_color="#ff0000",
            text_color="#fff",
            background_opacity=0.3,
            text_opacity=1.0,
            source=ColorSource.OCCURRENCE,
        )
        assert bundle.css() == {
            "background-color": "rgba(255, 0, 0, 0.3)",
            "color": "rgba(255, 255, 255, 1.0)",
        }

    def test_css_skips_transparent_colors(self):
        bundle = ColorBundle(
            background_color="rgba(255, 255, 255, 0)",
            text_color="#202124",
            background_opacity=0.0,
            source=ColorSource.GROUP,
        )
        assert "background-color" not in bundle.css()

    def test_opacity_bounds_validated(self):
        with pytest.raises(ValidationError):
            ColorBundle(
                background_color="#000",
                text_color="#fff",
                background_opacity=1.5,
                source=ColorSource.GROUP,
            )

    def test_frozen(self):
        bundle = ColorBundle(background_color="#000", text_color="#fff", source=ColorSource.GROUP)
        with pytest.raises(ValidationError):
            bundle.text_color = "#111"


class TestCompletedStyling:
    def test_parses_persisted_aliases(self):
        styling = CompletedStyling.model_validate(
            {"mode": "custom", "bgColor": "#eee", "textColor": "#333", "bgOpacity": 60}
        )
        assert styling.mode is CompletedMode.CUSTOM
        assert styling.bg_color == "#eee"
        assert styling.text_color == "#333"
        assert styling.bg_opacity == 60
        assert styling.has_opacity
        assert styling.is_configured

    def test_junk_values_dropped(self):
        styling = CompletedStyling.model_validate(
            {"mode": "sparkly", "bgColor": "  ", "bgOpacity": "high", "textOpacity": True}
        )
        assert styling.mode is None
        assert styling.bg_color is None
        assert styling.bg_opacity is None
        assert styling.text_opacity is None
        assert not styling.is_configured


class TestStyleConfig:
    def test_defaults(self):
        config = StyleConfig.from_settings(None)
        assert config.quick_pick_enabled is True
        assert config.list_coloring_enabled is False
        assert config.coloring_enabled

    def test_both_features_disabled(self):
        config = StyleConfig.from_settings(
            {"taskColoring": {"enabled": False}, "taskListColoring": {"enabled": False}}
        )
        assert not config.coloring_enabled

    def test_completed_styling_per_group(self):
        config = StyleConfig.from_settings(
            {
                "taskListColoring": {
                    "enabled": True,
                    "completedStyling": {"G1": {"mode": "inherit"}, "G2": "junk"},
                }
            }
        )
        assert config.list_coloring_enabled
        assert set(config.completed_styling) == {"G1"}
        assert config.completed_styling["G1"].mode is CompletedMode.INHERIT


class TestOccurrence:
    def test_from_label_pending(self):
        occurrence = Occurrence.from_label("task: Standup, Not completed, December 7, 2025, 9am")
        assert occurrence.title == "Standup"
        assert occurrence.time_label == "9am"
        assert occurrence.completed is False

    def test_from_label_completed(self):
        occurrence = Occurrence.from_label("task: Standup, Completed, December 7, 2025, 9am")
        assert occurrence.completed is True

    def test_explicit_completed_wins(self):
        occurrence = Occurrence.from_label("task: Standup, Completed, 9am", completed=False)
        assert occurrence.completed is False

    def test_with_identity_keeps_target(self):
        target = object()
        occurrence = Occurrence(title="Standup", target=target)
        updated = occurrence.with_identity("A")
        assert updated.identity == "A"
        assert updated.target is target
        assert occurrence.identity is None


class TestCacheSnapshot:
    def test_from_storage_merges_maps(self):
        snapshot = CacheSnapshot.from_storage(
            {keys.IDENTITY_GROUPS: {"A": "G1"}},
            {
                keys.OCCURRENCE_COLORS: {"A": "#ea4335", "B": 7},
                keys.PATTERN_COLORS: {"Standup|9am": "#34a853"},
                keys.GROUP_COLORS: {"G1": "#ff6d01"},
                keys.GROUP_TEXT_COLORS: {"G1": "#000"},
                keys.SETTINGS: {"taskListColoring": {"pendingTextColors": {"G1": "#fff", "G2": "#111"}}},
            },
            fetched_at=5.0,
        )
        assert snapshot.identity_groups == {"A": "G1"}
        assert snapshot.occurrence_overrides == {"A": "#ea4335"}
        assert snapshot.pattern_overrides == {"Standup|9am": "#34a853"}
        assert snapshot.group_colors == {"G1": "#ff6d01"}
        assert snapshot.group_text_colors == {"G1": "#000", "G2": "#111"}
        assert snapshot.fetched_at == 5.0
        assert not snapshot.degraded

    def test_non_mapping_payloads_are_empty(self):
        snapshot = CacheSnapshot.from_storage(
            {keys.IDENTITY_GROUPS: ["bad"]}, {keys.GROUP_COLORS: "bad"}, fetched_at=0.0
        )
        assert snapshot.counts() == {
            "identity_groups": 0,
            "occurrence_overrides": 0,
            "pattern_overrides": 0,
            "group_colors": 0,
            "group_text_colors": 0,
        }

    def test_maps_are_read_only(self):
        snapshot = CacheSnapshot.from_storage({}, {keys.GROUP_COLORS: {"G1": "#fff"}}, fetched_at=0.0)
        with pytest.raises(TypeError):
            snapshot.group_colors["G2"] = "#000"

    def test_empty_degraded(self):
        snapshot = CacheSnapshot.empty(3.0, degraded=True)
        assert snapshot.degraded
        assert snapshot.group_colors == {}
