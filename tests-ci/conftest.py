"""
Pytest configuration for CI tests
Provides common fixtures, a fake upstream client and raw payload builders
"""
from unittest.mock import Mock

import pytest

from core.dispatcher import EventDispatcher
from core.state_tracker import StateTracker


class FakeRoomClient:
    """
    In-memory RoomClient double.

    Records every outbound call, exposes a settable room snapshot, and lets
    tests push raw upstream events with `emit`.
    """

    def __init__(self, roster=None, wait_list=None, dj=None, media=None, elapsed=None, history=None):
        self.handlers = {}
        self.connected_to = None
        self.sent_messages = []
        self.actions = []
        self.accept_actions = True          # returned by every action method
        self.action_result = True           # passed to the callback
        self.defer_history = False

        self.roster = roster or []
        self.wait_list = wait_list or []
        self.dj = dj
        self.media = media
        self.elapsed = elapsed
        self.history = history or []
        self._history_callback = None

    # --- inbound ---

    def on(self, event_name, handler):
        self.handlers[event_name] = handler

    async def emit(self, event_name, raw=None):
        await self.handlers[event_name](raw)

    def connect(self, room_name):
        self.connected_to = room_name

    # --- outbound ---

    def send_chat(self, message):
        self.sent_messages.append(message)

    def _action(self, name, callback, *args):
        self.actions.append((name,) + args)
        if not self.accept_actions:
            return False
        callback(self.action_result)
        return True

    def moderate_ban_user(self, user_id, reason, duration, callback):
        return self._action("ban", callback, user_id, reason, duration)

    def moderate_force_skip(self, callback):
        return self._action("skip", callback)

    def grab(self, callback):
        return self._action("grab", callback)

    def join_booth(self, callback):
        return self._action("join_booth", callback)

    def leave_booth(self, callback):
        return self._action("leave_booth", callback)

    def woot(self, callback):
        return self._action("woot", callback)

    def meh(self, callback):
        return self._action("meh", callback)

    # --- snapshot ---

    def get_media(self):
        return self.media

    def get_dj(self):
        return self.dj

    def get_users(self):
        return self.roster

    def get_waitlist(self):
        return self.wait_list

    def get_time_elapsed(self):
        return self.elapsed

    def get_history(self, callback):
        if self.defer_history:
            self._history_callback = callback
        else:
            callback(self.history)

    def finish_history(self):
        self._history_callback(self.history)


def raw_user(user_id, username=None, role=0, **extra):
    user = {"id": user_id, "username": username or f"user{user_id}", "role": role}
    user.update(extra)
    return user


def raw_media(author="A", title="T", cid="abc123", duration=200):
    return {"author": author, "title": title, "cid": cid, "duration": duration}


def raw_chat(chat_id, user_id, message="hello", msg_type="message", username=None):
    return {
        "from": {"id": user_id, "username": username or f"user{user_id}"},
        "message": message,
        "type": msg_type,
        "raw": {"cid": chat_id},
    }


@pytest.fixture
def mock_config():
    """Minimal bot configuration (mutable plain dicts)"""
    return {
        'room': {'name': 'test-room'},
        'commands': {'prefix': '!', 'case_sensitive': False},
        'state': {'max_chat_history': 0},
        'translation': {
            'default_ban_duration': 'hour',
            'default_mute_reason': 'violating_community_rules',
            'default_mute_duration_seconds': 1800,
        },
        'plugins': {'command_dirs': [], 'listener_dirs': [], 'abort_on_error': False},
        'logging': {'level': 'DEBUG', 'file': None, 'chat_file': None, 'log_all_events': False},
    }


@pytest.fixture
def fake_client():
    return FakeRoomClient()


@pytest.fixture
def tracker():
    return StateTracker()


@pytest.fixture
def dispatcher(tracker):
    """Ready dispatcher with the tracker connected"""
    dispatcher = EventDispatcher(context=Mock())
    tracker.connect(dispatcher)
    dispatcher.mark_ready()
    return dispatcher
