"""
Color Resolver: occurrence + snapshot + fingerprint index -> ColorBundle | None.

Priority (first match wins, never blended):
    1. Single-occurrence override, keyed by authoritative identity
    2. Pattern override, keyed by fingerprint (covers every occurrence of a series)
    3. Group default, with the group found by identity or, failing that, by the
       Fingerprint Index. Resolving a group default teaches the index
       ``fingerprint -> group`` so occurrences without identity can follow.
    4. None (no styling)

Given an unchanged snapshot and index, resolving the same occurrence twice
returns equal bundles; the teaching side effect is an idempotent upsert.
"""

from __future__ import annotations

import base64
import binascii
from collections.abc import Mapping

from tasktint.coloring.cache import CacheManager
from tasktint.coloring.colors import normalize_opacity, pick_contrasting_text
from tasktint.coloring.fingerprint import FingerprintIndex, extract_fingerprint
from tasktint.coloring.models import (
    CacheSnapshot,
    ColorBundle,
    ColorSource,
    CompletedMode,
    CompletedStyling,
    Occurrence,
    ResolveOptions,
)
from tasktint.config import (
    COMPLETED_OPACITY_DEFAULT,
    COMPLETED_TEXT_ON_TRANSPARENT,
    PENDING_TEXT_ON_TRANSPARENT,
    TRANSPARENT_BACKGROUND,
    TRANSPARENT_TEXT,
)
from tasktint.observability.logging import get_logger
from tasktint.observability.telemetry import counter

logger = get_logger(__name__)

_DEFAULT_OPTIONS = ResolveOptions()


def lookup_identity(mapping: Mapping[str, str], identity: str | None) -> str | None:
    """
    Look up an identity as given, then base64-decoded, then base64-encoded.

    The host view and the backing API disagree on whether task ids are
    base64-encoded, so persisted maps may hold either form.
    """
    if not mapping or not identity:
        return None

    direct = mapping.get(identity)
    if direct:
        return direct

    try:
        decoded = base64.b64decode(identity, validate=True).decode("utf-8")
    except (binascii.Error, UnicodeDecodeError, ValueError):
        decoded = None
    if decoded and decoded != identity and mapping.get(decoded):
        return mapping[decoded]

    encoded = base64.b64encode(identity.encode("utf-8")).decode("ascii")
    if encoded != identity and mapping.get(encoded):
        return mapping[encoded]

    return None


class ColorResolver:
    """Applies the priority chain; owns the Fingerprint Index it teaches."""

    def __init__(self, cache: CacheManager, index: FingerprintIndex | None = None) -> None:
        self.cache = cache
        self.index = index if index is not None else FingerprintIndex()

    async def resolve(
        self, occurrence: Occurrence, options: ResolveOptions | None = None
    ) -> ColorBundle | None:
        snapshot = await self.cache.acquire()
        return self.resolve_with(snapshot, occurrence, options)

    def resolve_with(
        self,
        snapshot: CacheSnapshot,
        occurrence: Occurrence,
        options: ResolveOptions | None = None,
    ) -> ColorBundle | None:
        options = options or _DEFAULT_OPTIONS
        identity = occurrence.identity or None
        fingerprint = extract_fingerprint(occurrence)
        key = fingerprint.key if fingerprint else None

        group_id = lookup_identity(snapshot.identity_groups, identity)
        if group_id is None and key:
            group_id = self.index.resolve(key)

        completed_styling = snapshot.style.completed_styling.get(group_id) if group_id else None

        # 1. Single-occurrence override
        if identity:
            overrides = (
                {identity: options.override_color}
                if options.override_color
                else snapshot.occurrence_overrides
            )
            manual_color = lookup_identity(overrides, identity)
            if manual_color:
                counter("resolver.occurrence_override")
                return self._manual_bundle(
                    manual_color, ColorSource.OCCURRENCE, occurrence, options, snapshot, completed_styling
                )

        # 2. Pattern override for every occurrence sharing the fingerprint
        if key:
            pattern_color = snapshot.pattern_overrides.get(key)
            if pattern_color:
                counter("resolver.pattern_override")
                return self._manual_bundle(
                    pattern_color, ColorSource.PATTERN, occurrence, options, snapshot, completed_styling
                )

        # 3. Group default
        if group_id:
            base_color = snapshot.group_colors.get(group_id)
            pending_text = snapshot.group_text_colors.get(group_id)
            has_completed_styling = bool(
                occurrence.completed and completed_styling and completed_styling.is_configured
            )
            if base_color or pending_text or has_completed_styling:
                self.index.record_association(key, group_id)
                counter("resolver.group_default")
                return build_group_bundle(
                    base_color=base_color,
                    pending_text_color=pending_text,
                    override_text_color=options.override_text_color,
                    completed=occurrence.completed,
                    completed_styling=completed_styling,
                )

        counter("resolver.no_color")
        return None

    def _manual_bundle(
        self,
        color: str,
        source: ColorSource,
        occurrence: Occurrence,
        options: ResolveOptions,
        snapshot: CacheSnapshot,
        completed_styling: CompletedStyling | None,
    ) -> ColorBundle:
        # Manual colors are kept for completed occurrences; only the opacity fades
        text_color = options.override_text_color or pick_contrasting_text(color)
        if occurrence.completed:
            bg_opacity, text_opacity = completed_opacities(completed_styling, snapshot)
        else:
            bg_opacity, text_opacity = 1.0, 1.0
        return ColorBundle(
            background_color=color,
            text_color=text_color,
            background_opacity=bg_opacity,
            text_opacity=text_opacity,
            source=source,
        )


def completed_opacities(
    completed_styling: CompletedStyling | None, snapshot: CacheSnapshot
) -> tuple[float, float]:
    """
    Opacities for a completed occurrence colored by an override.

    Uses the occurrence's own group settings when it has a group; otherwise the
    highest opacity configured across all groups, never below the default.
    """
    bg_opacity = text_opacity = COMPLETED_OPACITY_DEFAULT

    if completed_styling is not None:
        if completed_styling.bg_opacity is not None:
            bg_opacity = normalize_opacity(completed_styling.bg_opacity, COMPLETED_OPACITY_DEFAULT)
        if completed_styling.text_opacity is not None:
            text_opacity = normalize_opacity(
                completed_styling.text_opacity, COMPLETED_OPACITY_DEFAULT
            )
        return bg_opacity, text_opacity

    for styling in snapshot.style.completed_styling.values():
        if styling.bg_opacity is not None:
            bg_opacity = max(
                bg_opacity, normalize_opacity(styling.bg_opacity, COMPLETED_OPACITY_DEFAULT)
            )
        if styling.text_opacity is not None:
            text_opacity = max(
                text_opacity, normalize_opacity(styling.text_opacity, COMPLETED_OPACITY_DEFAULT)
            )
    return bg_opacity, text_opacity


def build_group_bundle(
    *,
    base_color: str | None,
    pending_text_color: str | None,
    override_text_color: str | None,
    completed: bool,
    completed_styling: CompletedStyling | None,
) -> ColorBundle | None:
    """
    Bundle for a group default color.

    Completed occurrences follow the group's completed mode:
        google  -> host colors, only faded when opacities are configured
        inherit -> pending colors at completed opacities
        custom  -> completed colors, falling back to pending ones
    """
    if completed:
        return _completed_group_bundle(
            base_color, pending_text_color, override_text_color, completed_styling
        )

    if not (base_color or pending_text_color or override_text_color):
        return None

    background = base_color or TRANSPARENT_BACKGROUND
    text_color = (
        override_text_color
        or pending_text_color
        or (PENDING_TEXT_ON_TRANSPARENT if not base_color else pick_contrasting_text(base_color))
    )
    return ColorBundle(
        background_color=background,
        text_color=text_color,
        background_opacity=1.0 if base_color else 0.0,
        text_opacity=1.0,
        source=ColorSource.GROUP,
    )


def _completed_group_bundle(
    base_color: str | None,
    pending_text_color: str | None,
    override_text_color: str | None,
    styling: CompletedStyling | None,
) -> ColorBundle | None:
    mode = styling.mode if styling and styling.mode else CompletedMode.GOOGLE
    bg_opacity = normalize_opacity(styling.bg_opacity if styling else None, COMPLETED_OPACITY_DEFAULT)
    text_opacity = normalize_opacity(
        styling.text_opacity if styling else None, COMPLETED_OPACITY_DEFAULT
    )

    if mode is CompletedMode.GOOGLE:
        if styling is None or not styling.has_opacity:
            return None
        return ColorBundle(
            background_color=TRANSPARENT_BACKGROUND,
            text_color=TRANSPARENT_TEXT,
            background_opacity=bg_opacity,
            text_opacity=text_opacity,
            source=ColorSource.GROUP,
        )

    if styling is not None and mode is CompletedMode.INHERIT:
        if not (base_color or pending_text_color or override_text_color):
            return None
        text_color = (
            override_text_color
            or pending_text_color
            or (pick_contrasting_text(base_color) if base_color else TRANSPARENT_TEXT)
        )
        return ColorBundle(
            background_color=base_color or TRANSPARENT_BACKGROUND,
            text_color=text_color,
            background_opacity=bg_opacity,
            text_opacity=text_opacity,
            source=ColorSource.GROUP,
        )

    if styling is not None and mode is CompletedMode.CUSTOM:
        background = styling.bg_color or base_color or TRANSPARENT_BACKGROUND
        text_color = (
            override_text_color
            or styling.text_color
            or pending_text_color
            or (
                COMPLETED_TEXT_ON_TRANSPARENT
                if background == TRANSPARENT_BACKGROUND
                else pick_contrasting_text(background)
            )
        )
        return ColorBundle(
            background_color=background,
            text_color=text_color,
            background_opacity=bg_opacity,
            text_opacity=text_opacity,
            source=ColorSource.GROUP,
        )

    return None
