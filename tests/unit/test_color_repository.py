"""Unit tests for ColorRepository"""

from __future__ import annotations

import asyncio

import pytest

from tasktint.storage import keys
from tasktint.storage.repository import ColorRepository


async def read(partition, key):
    return (await partition.get([key])).get(key)


def test_occurrence_color_set_and_clear(make_store):
    store = make_store(occurrence_colors={"B": "#000000"})
    repository = ColorRepository(store)

    async def scenario():
        await repository.set_occurrence_color("A", "#ea4335")
        after_set = await read(store.sync, keys.OCCURRENCE_COLORS)
        await repository.clear_occurrence_color("A")
        after_clear = await read(store.sync, keys.OCCURRENCE_COLORS)
        return after_set, after_clear

    after_set, after_clear = asyncio.run(scenario())
    assert after_set == {"A": "#ea4335", "B": "#000000"}
    assert after_clear == {"B": "#000000"}


def test_concurrent_writes_are_not_lost(make_store):
    store = make_store()
    repository = ColorRepository(store)

    async def scenario():
        await asyncio.gather(
            *(repository.set_group_color(f"G{i}", f"#00000{i}") for i in range(10))
        )
        return await read(store.sync, keys.GROUP_COLORS)

    colors = asyncio.run(scenario())
    assert len(colors) == 10


def test_pattern_text_and_identity_maps(make_store):
    store = make_store()
    repository = ColorRepository(store)

    async def scenario():
        await repository.set_pattern_color("Standup|9am", "#34a853")
        await repository.set_group_text_color("G1", "#ffffff")
        await repository.set_identity_group("A", "G1")
        await repository.set_calendar_event_mapping("evt1", "api-1", task_fragment="frag-1")
        return (
            await read(store.sync, keys.PATTERN_COLORS),
            await read(store.sync, keys.GROUP_TEXT_COLORS),
            await read(store.local, keys.IDENTITY_GROUPS),
            await read(store.local, keys.CALENDAR_EVENT_MAPPING),
        )

    patterns, text_colors, identity_groups, mapping = asyncio.run(scenario())
    assert patterns == {"Standup|9am": "#34a853"}
    assert text_colors == {"G1": "#ffffff"}
    assert identity_groups == {"A": "G1"}
    assert mapping["evt1"]["taskApiId"] == "api-1"
    assert mapping["evt1"]["taskFragment"] == "frag-1"


def test_completed_styling_merges_and_normalizes(make_store):
    store = make_store(settings={"taskListColoring": {"enabled": True}})
    repository = ColorRepository(store)

    async def scenario():
        await repository.set_completed_styling("G1", mode="custom", bg_color="#eeeeee")
        await repository.set_completed_styling("G1", bg_opacity=60)
        return await read(store.sync, keys.SETTINGS)

    settings = asyncio.run(scenario())
    assert settings["taskListColoring"]["enabled"] is True
    assert settings["taskListColoring"]["completedStyling"]["G1"] == {
        "mode": "custom",
        "bgColor": "#eeeeee",
        "bgOpacity": 0.6,
    }


def test_clear_completed_styling(make_store):
    store = make_store(
        settings={"taskListColoring": {"completedStyling": {"G1": {"mode": "inherit"}, "G2": {}}}}
    )
    repository = ColorRepository(store)

    async def scenario():
        await repository.clear_completed_styling("G1")
        return await read(store.sync, keys.SETTINGS)

    settings = asyncio.run(scenario())
    assert settings["taskListColoring"]["completedStyling"] == {"G2": {}}


def test_set_coloring_enabled(make_store):
    store = make_store()
    repository = ColorRepository(store)

    settings = asyncio.run(repository.set_coloring_enabled(quick_pick=False, list_coloring=True))
    assert settings == {"taskColoring": {"enabled": False}, "taskListColoring": {"enabled": True}}


@pytest.mark.parametrize(
    "call",
    [
        lambda repo: repo.set_occurrence_color("", "#fff"),
        lambda repo: repo.set_group_color("G1", " "),
        lambda repo: repo.set_completed_styling("G1", sparkle=True),
        lambda repo: repo.set_completed_styling("G1", mode="rainbow"),
    ],
)
def test_invalid_input_rejected(make_store, call):
    repository = ColorRepository(make_store())
    with pytest.raises(ValueError):
        asyncio.run(call(repository))


def test_writes_notify_listeners(make_store):
    store = make_store()
    seen: list[tuple[str, str]] = []
    store.on_change(lambda changes, area: seen.extend((area, key) for key in changes))

    asyncio.run(ColorRepository(store).set_group_color("G1", "#ff6d01"))
    assert seen == [(keys.SYNC, keys.GROUP_COLORS)]
