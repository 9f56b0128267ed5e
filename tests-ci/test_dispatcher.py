"""
Tests for core/dispatcher.py
Registration, ordering, suppression and failure isolation
"""
import logging
from unittest.mock import AsyncMock, Mock

import pytest

from conftest import raw_media, raw_user
from core.dispatcher import EventDispatcher
from core.event_types import GrabEvent
from core.types import Event


@pytest.fixture
def ready_dispatcher():
    dispatcher = EventDispatcher(context="ctx")
    dispatcher.mark_ready()
    return dispatcher


@pytest.mark.unit
class TestRegistration:
    """on() / on_state()"""

    def test_non_callable_raises(self, ready_dispatcher):
        with pytest.raises(TypeError):
            ready_dispatcher.on(Event.CHAT, "not a function")

    def test_unknown_event_is_ignored(self, ready_dispatcher, caplog):
        with caplog.at_level(logging.WARNING, logger="core.dispatcher"):
            assert ready_dispatcher.on("fooBar", lambda e, c: None) is False
        record = next(r for r in caplog.records if "unknown event called 'fooBar'" in r.getMessage())
        assert record.levelno == logging.WARNING
        assert ready_dispatcher.get_stats()["listeners"] == 0

    def test_accepts_names_and_members(self, ready_dispatcher):
        assert ready_dispatcher.on("grab", lambda e, c: None)
        assert ready_dispatcher.on("GRAB", lambda e, c: None)
        assert ready_dispatcher.on(Event.GRAB, lambda e, c: None)
        assert len(ready_dispatcher.listeners(Event.GRAB)) == 3

    def test_state_listeners_listed_first(self, ready_dispatcher):
        regular = Mock()
        state = Mock()
        ready_dispatcher.on(Event.GRAB, regular)
        ready_dispatcher.on_state(Event.GRAB, state)
        assert ready_dispatcher.listeners(Event.GRAB) == [state, regular]


@pytest.mark.unit
class TestDispatch:
    """dispatch()"""

    @pytest.mark.asyncio
    async def test_listener_gets_event_and_context(self, ready_dispatcher):
        listener = Mock()
        ready_dispatcher.on(Event.GRAB, listener)

        event = await ready_dispatcher.dispatch("grab", 42)

        assert isinstance(event, GrabEvent)
        listener.assert_called_once_with(event, "ctx")

    @pytest.mark.asyncio
    async def test_receiver_is_passed_first(self, ready_dispatcher):
        listener = Mock()
        receiver = object()
        ready_dispatcher.on(Event.GRAB, listener, receiver=receiver)

        event = await ready_dispatcher.dispatch(Event.GRAB, 42)

        listener.assert_called_once_with(receiver, event, "ctx")

    @pytest.mark.asyncio
    async def test_coroutine_listeners_are_awaited(self, ready_dispatcher):
        listener = AsyncMock()
        ready_dispatcher.on(Event.GRAB, listener)
        await ready_dispatcher.dispatch(Event.GRAB, 1)
        listener.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_registration_order(self, ready_dispatcher):
        calls = []
        ready_dispatcher.on(Event.GRAB, lambda e, c: calls.append("first"))
        ready_dispatcher.on(Event.GRAB, lambda e, c: calls.append("second"))
        ready_dispatcher.on_state(Event.GRAB, lambda e, c: calls.append("state"))

        await ready_dispatcher.dispatch(Event.GRAB, 1)

        assert calls == ["state", "first", "second"]

    @pytest.mark.asyncio
    async def test_null_translation_invokes_nobody(self, ready_dispatcher):
        """An advance without a current performer reaches no listener"""
        listener = Mock()
        state_listener = Mock()
        ready_dispatcher.on(Event.ADVANCE, listener)
        ready_dispatcher.on_state(Event.ADVANCE, state_listener)

        result = await ready_dispatcher.dispatch(Event.ADVANCE, {"media": raw_media()})

        assert result is None
        listener.assert_not_called()
        state_listener.assert_not_called()

    @pytest.mark.asyncio
    async def test_unknown_upstream_event(self, ready_dispatcher):
        assert await ready_dispatcher.dispatch("somethingNew", {}) is None

    @pytest.mark.asyncio
    async def test_failing_listener_does_not_stop_others(self, ready_dispatcher, caplog):
        after = Mock()

        def broken(event, context):
            raise RuntimeError("boom")

        ready_dispatcher.on(Event.GRAB, broken)
        ready_dispatcher.on(Event.GRAB, after)

        with caplog.at_level(logging.ERROR, logger="core.dispatcher"):
            await ready_dispatcher.dispatch(Event.GRAB, 1)

        after.assert_called_once()
        assert "boom" in caplog.text

    @pytest.mark.asyncio
    async def test_events_before_ready_are_dropped(self):
        dispatcher = EventDispatcher()
        listener = Mock()
        dispatcher.on(Event.USER_JOIN, listener)

        assert await dispatcher.dispatch(Event.USER_JOIN, raw_user(1)) is None
        listener.assert_not_called()
        assert dispatcher.get_stats()["dropped"] == 1

        dispatcher.mark_ready()
        await dispatcher.dispatch(Event.USER_JOIN, raw_user(1))
        listener.assert_called_once()

    @pytest.mark.asyncio
    async def test_custom_translators(self):
        dispatcher = EventDispatcher(translators={e: (lambda raw, s: raw) for e in Event})
        dispatcher.mark_ready()
        listener = Mock()
        dispatcher.on(Event.EARN, listener)

        await dispatcher.dispatch(Event.EARN, "payload")

        listener.assert_called_once_with("payload", None)
