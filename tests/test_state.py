"""Tests for the cached State."""

import asyncio

from sony.audiocontrol import Domain
from sony.audiocontrol.state import State


def test_unknown_values_are_none():
    state = State()
    assert state.get_power() is None
    assert state.get_volume() is None
    assert state.get_mute() is None
    assert state.get_input() is None
    assert state.get_sound_field() is None
    assert not state.known(Domain.POWER)


def test_set_reports_changes():
    state = State()
    assert state.set(Domain.VOLUME, 20)
    assert not state.set(Domain.VOLUME, 20)
    assert state.set(Domain.VOLUME, 21)
    assert state.get_volume() == 21


def test_set_false_is_a_change_from_unknown():
    state = State()
    assert state.set(Domain.POWER, False)
    assert state.get_power() is False
    assert state.known(Domain.POWER)


def test_to_dict_and_clear():
    state = State("extOutput:zone?zone=2")
    state.set(Domain.INPUT, "extInput:tv")
    state.set(Domain.MUTE, True)
    assert state.to_dict() == {
        "POWER": None,
        "VOLUME": None,
        "MUTE": True,
        "INPUT": "extInput:tv",
        "SOUND_FIELD": None,
    }
    assert "extInput:tv" in repr(state)
    state.clear()
    assert state.get_input() is None


async def test_wait_changed():
    state = State()

    async def change():
        await asyncio.sleep(0.01)
        state.set(Domain.SOUND_FIELD, "direct")

    task = asyncio.create_task(change())
    async with asyncio.timeout(1):
        await state.wait_changed()
    await task
    assert state.get_sound_field() == "direct"
