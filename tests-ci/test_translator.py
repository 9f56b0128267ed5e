"""
Tests for core/translator.py
Raw upstream payloads -> internal events, null-safety and fallbacks
"""
import logging
from datetime import datetime, timezone
from types import SimpleNamespace

import pytest

from conftest import raw_chat, raw_media, raw_user
from core import translator
from core.translator import (
    TranslatorSettings,
    translate,
    translate_advance_event,
    translate_chat_event,
    translate_command_event,
    translate_date_string,
    translate_dj_list_update_event,
    translate_media,
    translate_mod_ban_event,
    translate_mod_mute_event,
    translate_role,
    translate_user,
    translate_vote_event,
)
from core.types import BanDuration, ChatType, Event, MuteReason, UserRole


@pytest.mark.unit
class TestSharedObjects:
    """Dates, roles, users, media"""

    def test_date_round_trip(self):
        """A 26-char date string is parsed as UTC"""
        expected = datetime(2015, 3, 14, 21, 41, 2, 553870, tzinfo=timezone.utc).timestamp()
        assert translate_date_string("2015-03-14 21:41:02.553870") == expected

    @pytest.mark.parametrize("value", ["2015-03-14 21:41:02", "2015-03-14 21:41:02.5538701", "", None, 42])
    def test_date_bad_length_returns_none(self, value, caplog):
        with caplog.at_level(logging.ERROR, logger="core.translator"):
            assert translate_date_string(value) is None
        assert any(r.levelno == logging.ERROR for r in caplog.records)

    def test_date_right_length_but_garbage(self, caplog):
        assert translate_date_string("xxxx-xx-xx xx:xx:xx.xxxxxx") is None
        assert "Unable to parse" in caplog.text

    @pytest.mark.parametrize("code,role", [
        (0, UserRole.NONE),
        (1, UserRole.RESIDENT_DJ),
        (2, UserRole.BOUNCER),
        (3, UserRole.MANAGER),
        (4, UserRole.COHOST),
        (5, UserRole.HOST),
    ])
    def test_role_codes(self, code, role):
        assert translate_role(code) is role

    @pytest.mark.parametrize("code", [6, -1, 99, "host", True, False])
    def test_role_fallback_warns(self, code, caplog):
        """Unknown role codes become NONE with a warning, never an exception"""
        with caplog.at_level(logging.WARNING, logger="core.translator"):
            assert translate_role(code) is UserRole.NONE
        assert any(r.levelno == logging.WARNING for r in caplog.records)

    def test_missing_role_is_none_silently(self, caplog):
        assert translate_role(None) is UserRole.NONE
        assert caplog.records == []

    def test_role_ranking(self):
        assert UserRole.HOST.at_least(UserRole.BOUNCER)
        assert not UserRole.RESIDENT_DJ.at_least(UserRole.BOUNCER)
        assert UserRole.from_level(3) is UserRole.MANAGER

    def test_user_from_mapping(self):
        user = translate_user(raw_user(7, "dj_seven", role=2, avatarID="base01", level=4,
                                       joined="2015-03-14 21:41:02.553870"))
        assert user.user_id == 7
        assert user.username == "dj_seven"
        assert user.role is UserRole.BOUNCER
        assert user.avatar_id == "base01"
        assert user.level == 4
        assert user.join_date is not None

    def test_user_from_object(self):
        """Upstream may hand plain objects instead of dicts"""
        user = translate_user(SimpleNamespace(id=3, username="obj", role=None))
        assert user.user_id == 3
        assert user.role is UserRole.NONE

    def test_user_without_id(self):
        assert translate_user({"username": "ghost"}) is None
        assert translate_user(None) is None

    def test_media_full_title(self):
        media = translate_media(raw_media(author="Daft Punk", title="One More Time"))
        assert media.full_title == "Daft Punk - One More Time"
        assert media.content_id == "abc123"
        assert media.duration_in_seconds == 200

    def test_media_full_title_without_author(self):
        media = translate_media({"title": "Untitled", "author": ""})
        assert media.full_title == "Untitled"


@pytest.mark.unit
class TestAdvance:
    """advance payloads"""

    def test_advance_without_performer_is_suppressed(self):
        assert translate_advance_event({"media": raw_media()}) is None

    def test_advance_without_media_is_suppressed(self):
        assert translate_advance_event({"currentDJ": raw_user(1)}) is None

    def test_advance_null_payload(self):
        assert translate_advance_event(None) is None

    def test_advance_full(self):
        event = translate_advance_event({
            "currentDJ": raw_user(1),
            "media": raw_media(),
            "djs": [raw_user(2), raw_user(3), {"username": "no-id"}],
            "startTime": "2015-03-14 21:41:02.553870",
            "lastPlay": {
                "dj": raw_user(9),
                "media": raw_media(title="Old"),
                "score": {"positive": 4, "negative": 1, "grabs": 2, "listeners": 10, "skipped": 1},
            },
        })
        assert event.incoming_dj.user_id == 1
        assert [u.user_id for u in event.waitlisted_djs] == [2, 3]
        assert event.start_date is not None
        assert event.previous_play.dj.user_id == 9
        assert event.previous_play.score.woots == 4
        assert event.previous_play.score.mehs == 1
        assert event.previous_play.score.was_skipped is True

    def test_advance_without_complete_last_play(self):
        event = translate_advance_event({
            "currentDJ": raw_user(1),
            "media": raw_media(),
            "lastPlay": {"dj": raw_user(9)},
        })
        assert event.previous_play is None
        assert event.waitlisted_djs == []


@pytest.mark.unit
class TestChat:
    """chat and command payloads"""

    def test_chat_message(self):
        event = translate_chat_event(raw_chat("c1", 5, "hello there"))
        assert event.chat_id == "c1"
        assert event.user_id == 5
        assert event.type is ChatType.MESSAGE
        assert event.is_muted is False
        assert event.timestamp > 0

    def test_chat_emote_and_mention(self):
        assert translate_chat_event(raw_chat("c1", 5, "dances", "emote")).type is ChatType.EMOTE
        assert translate_chat_event(raw_chat("c2", 5, "@bob hi", "mention")).type is ChatType.MESSAGE

    def test_chat_prefix_makes_command(self):
        assert translate_chat_event(raw_chat("c1", 5, "!skip")).type is ChatType.COMMAND

    def test_chat_unknown_type_defaults(self, caplog):
        assert translate_chat_event(raw_chat("c1", 5, "x", "shout")).type is ChatType.MESSAGE
        assert "Unable to identify chat type" in caplog.text

    def test_chat_missing_sender(self):
        assert translate_chat_event({"message": "orphan"}) is None

    def test_command_keyword_and_args(self):
        raw = raw_chat("c1", 5, "!ban troll 1h")
        raw["from"]["role"] = 3
        event = translate_command_event(raw)
        assert event.command == "ban"
        assert event.args == ["troll", "1h"]
        assert event.user_role is UserRole.MANAGER
        assert event.chat_id == "c1"

    def test_command_field_wins(self):
        raw = raw_chat("c1", 5, "!Skip now")
        raw["command"] = "skip"
        assert translate_command_event(raw).command == "skip"

    def test_command_custom_prefix(self):
        settings = TranslatorSettings(command_prefix="/")
        assert translate_command_event(raw_chat("c1", 5, "/help"), settings).command == "help"

    def test_command_empty_message(self):
        assert translate_command_event(raw_chat("c1", 5, "   ")) is None


@pytest.mark.unit
class TestModeration:
    """Ban/mute code tables and configurable fallbacks"""

    def test_ban_codes(self):
        assert translate_mod_ban_event({"d": "h", "t": "x"}).duration is BanDuration.HOUR
        assert translate_mod_ban_event({"d": "d", "t": "x"}).duration is BanDuration.DAY
        assert translate_mod_ban_event({"d": "f", "t": "x"}).duration is BanDuration.FOREVER

    def test_ban_unknown_duration_uses_default(self, caplog):
        event = translate_mod_ban_event({"d": "w", "m": "mod", "mi": 1, "t": "troll"})
        assert event.duration is BanDuration.HOUR
        assert event.username == "troll"
        assert "Unable to translate ban duration" in caplog.text

    def test_ban_fallback_is_configurable(self):
        settings = TranslatorSettings(default_ban_duration=BanDuration.FOREVER)
        assert translate_mod_ban_event({"d": "?"}, settings).duration is BanDuration.FOREVER

    def test_mute_codes(self):
        event = translate_mod_mute_event({"r": 3, "d": "l", "i": 4, "t": "loud", "m": "mod", "mi": 1})
        assert event.reason is MuteReason.SPAMMING_OR_TROLLING
        assert event.mute_duration_in_seconds == 45 * 60
        assert event.muted_user_id == 4

    def test_mute_defaults(self):
        event = translate_mod_mute_event({"r": 42, "d": "forever"})
        assert event.reason is MuteReason.VIOLATING_COMMUNITY_RULES
        assert event.mute_duration_in_seconds == 1800

    def test_mute_fallbacks_are_configurable(self):
        settings = TranslatorSettings(
            default_mute_reason=MuteReason.NEGATIVE_ATTITUDE,
            default_mute_duration_seconds=60,
        )
        event = translate_mod_mute_event({"r": None, "d": None}, settings)
        assert event.reason is MuteReason.NEGATIVE_ATTITUDE
        assert event.mute_duration_in_seconds == 60

    def test_settings_from_config(self, mock_config):
        mock_config["translation"]["default_ban_duration"] = "day"
        mock_config["commands"]["prefix"] = "?"
        settings = TranslatorSettings.from_config(mock_config)
        assert settings.default_ban_duration is BanDuration.DAY
        assert settings.command_prefix == "?"

    def test_settings_unknown_enum_name(self, mock_config):
        mock_config["translation"]["default_mute_reason"] = "being_rude"
        with pytest.raises(ValueError):
            TranslatorSettings.from_config(mock_config)


@pytest.mark.unit
class TestMisc:
    """Votes, wait list updates, dispatch table"""

    def test_vote(self):
        assert translate_vote_event({"i": 1, "v": 1}).is_woot
        assert not translate_vote_event({"i": 1, "v": -1}).is_woot

    def test_vote_invalid(self):
        assert translate_vote_event({"i": 1, "v": 0}) is None
        assert translate_vote_event({"v": 1}) is None

    def test_dj_list_update_mixed_entries(self):
        event = translate_dj_list_update_event([1, raw_user(2), None, {"username": "no-id"}])
        assert event.user_ids == [1, 2]
        assert set(event.users) == {2}

    def test_dj_list_update_not_a_list(self):
        assert translate_dj_list_update_event({"id": 1}) is None

    def test_every_event_has_a_translator(self):
        assert set(translator.TRANSLATORS) == set(Event)

    @pytest.mark.parametrize("event", list(Event))
    def test_null_payload_never_raises(self, event):
        """Every translator tolerates a null payload"""
        translate(event, None)

    def test_event_from_string(self):
        assert Event.from_string("modBan") is Event.MODERATE_BAN
        assert Event.from_string("MODERATE_BAN") is Event.MODERATE_BAN
        assert Event.from_string("nope") is None
        assert Event.from_string(None) is None
