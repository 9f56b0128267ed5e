"""
Event translator - upstream payloads to internal event objects.

One pure function per event kind. Upstream payloads are loosely typed
(mappings or plain objects, sometimes a bare scalar) and use terse keys;
every access here tolerates a missing or null field.

A translator returns None to tell the dispatcher to suppress the event.
Malformed values are logged and replaced with a safe default, never raised.
"""
import logging
import time
from collections.abc import Mapping
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional

from core.event_types import (
    AdvanceEvent,
    ChatDeleteEvent,
    ChatEvent,
    CommandEvent,
    DjListCycleEvent,
    DjListLockedEvent,
    DjListUpdateEvent,
    EarnEvent,
    GrabEvent,
    ModAddDjEvent,
    ModBanEvent,
    ModMoveDjEvent,
    ModMuteEvent,
    ModRemoveDjEvent,
    ModSkipEvent,
    ModStaffEvent,
    PreviousPlay,
    RoomDescriptionUpdateEvent,
    RoomJoinEvent,
    RoomMinChatLevelUpdateEvent,
    RoomNameUpdateEvent,
    RoomWelcomeUpdateEvent,
    Score,
    SkipEvent,
    StaffChange,
    UserJoinEvent,
    UserLeaveEvent,
    UserUpdateEvent,
    VoteEvent,
)
from core.models import Media, User
from core.types import BanDuration, ChatType, Event, MuteReason, UserRole

LOGGER = logging.getLogger(__name__)

# Upstream dates look like "2015-03-14 21:41:02.553870" (UTC, no zone suffix)
DATE_STRING_LENGTH = 26
DATE_FORMAT = "%Y-%m-%d %H:%M:%S.%f"

ROLE_CODES = {
    0: UserRole.NONE,
    1: UserRole.RESIDENT_DJ,
    2: UserRole.BOUNCER,
    3: UserRole.MANAGER,
    4: UserRole.COHOST,
    5: UserRole.HOST,
}

BAN_DURATION_CODES = {
    "h": BanDuration.HOUR,
    "d": BanDuration.DAY,
    "f": BanDuration.FOREVER,
}

MUTE_REASON_CODES = {
    1: MuteReason.VIOLATING_COMMUNITY_RULES,
    2: MuteReason.VERBAL_ABUSE_OR_HARASSMENT,
    3: MuteReason.SPAMMING_OR_TROLLING,
    4: MuteReason.OFFENSIVE_LANGUAGE,
    5: MuteReason.NEGATIVE_ATTITUDE,
}

MUTE_DURATION_CODES = {
    "s": 15 * 60,
    "m": 30 * 60,
    "l": 45 * 60,
}

CHAT_TYPES = {
    "message": ChatType.MESSAGE,
    "emote": ChatType.EMOTE,
    "mention": ChatType.MESSAGE,    # no separate internal type for mentions
    "command": ChatType.COMMAND,
}


@dataclass(frozen=True)
class TranslatorSettings:
    """Fallbacks and knobs used by the translators (section `translation:` in config)."""
    command_prefix: str = "!"
    default_ban_duration: BanDuration = BanDuration.HOUR
    default_mute_reason: MuteReason = MuteReason.VIOLATING_COMMUNITY_RULES
    default_mute_duration_seconds: int = 30 * 60

    @classmethod
    def from_config(cls, config: Optional[Mapping]) -> "TranslatorSettings":
        """
        Build settings from the bot configuration.

        Raises:
            ValueError: if an enum name in the config is not recognised
        """
        config = config or {}
        commands = config.get("commands") or {}
        translation = config.get("translation") or {}
        defaults = cls()

        return cls(
            command_prefix=commands.get("prefix") or defaults.command_prefix,
            default_ban_duration=_enum_from_config(
                BanDuration, translation.get("default_ban_duration"), defaults.default_ban_duration
            ),
            default_mute_reason=_enum_from_config(
                MuteReason, translation.get("default_mute_reason"), defaults.default_mute_reason
            ),
            default_mute_duration_seconds=int(
                translation.get("default_mute_duration_seconds", defaults.default_mute_duration_seconds)
            ),
        )


def _enum_from_config(enum_cls, name, default):
    if name is None:
        return default
    try:
        return enum_cls[str(name).upper()]
    except KeyError:
        raise ValueError(f"Unknown {enum_cls.__name__} '{name}' in translation config") from None


DEFAULT_SETTINGS = TranslatorSettings()


# ============================================================================
# HELPERS
# ============================================================================

def _field(obj: Any, key: str, default: Any = None) -> Any:
    """Read `key` from a mapping or an object; None counts as missing."""
    if obj is None:
        return default
    if isinstance(obj, Mapping):
        value = obj.get(key)
    else:
        value = getattr(obj, key, None)
    return default if value is None else value


def _dig(obj: Any, *keys: str) -> Any:
    for key in keys:
        obj = _field(obj, key)
        if obj is None:
            return None
    return obj


def _is_record(obj: Any) -> bool:
    """True for user-like payloads (mapping or object), False for bare scalars."""
    if obj is None or isinstance(obj, (str, bytes, int, float, bool)):
        return False
    return True


def _as_list(value: Any) -> List[Any]:
    if isinstance(value, (list, tuple)):
        return list(value)
    return []


def _repair_title(author: Optional[str], title: Optional[str]) -> str:
    return (f"{author} - " if author else "") + (title or "")


# ============================================================================
# SHARED OBJECTS
# ============================================================================

def translate_date_string(value: Any) -> Optional[float]:
    """
    Translate an upstream date string (yyyy-mm-dd HH:MM:SS.ffffff, UTC)
    into a UNIX timestamp.

    Returns:
        Timestamp in seconds, or None if the string is malformed
    """
    if not isinstance(value, str) or len(value) != DATE_STRING_LENGTH:
        LOGGER.error(f"Received an invalid date string to translate: {value!r}")
        return None

    try:
        parsed = datetime.strptime(value, DATE_FORMAT)
    except ValueError:
        LOGGER.error(f"Unable to parse date string: {value!r}")
        return None

    return parsed.replace(tzinfo=timezone.utc).timestamp()


def translate_role(code: Any) -> UserRole:
    """
    Translate an upstream role integer (0-5) into UserRole.
    Missing roles are NONE; unknown codes are logged and also NONE.
    """
    if code is None:
        return UserRole.NONE

    role = ROLE_CODES.get(code) if isinstance(code, int) and not isinstance(code, bool) else None
    if role is None:
        LOGGER.warning(f"Failed to translate role {code!r} into UserRole. Defaulting to NONE.")
        return UserRole.NONE
    return role


def translate_user(raw: Any) -> Optional[User]:
    if not raw:
        return None

    user_id = _field(raw, "id")
    if user_id is None:
        LOGGER.warning("Received a user object without an ID, ignoring it")
        return None

    joined = _field(raw, "joined")
    return User(
        user_id=user_id,
        username=_field(raw, "username"),
        avatar_id=_field(raw, "avatarID"),
        join_date=translate_date_string(joined) if joined is not None else None,
        level=_field(raw, "level"),
        role=translate_role(_field(raw, "role")),
    )


def translate_media(raw: Any) -> Optional[Media]:
    if not raw:
        return None

    author = _field(raw, "author")
    title = _field(raw, "title")
    return Media(
        author=author,                                  # upstream's guess of the author
        content_id=_field(raw, "cid"),
        duration_in_seconds=_field(raw, "duration"),
        title=title,
        full_title=_repair_title(author, title),        # our guess of the original title
    )


def translate_score(raw: Any) -> Optional[Score]:
    if not raw:
        return None

    skipped = _field(raw, "skipped", 0)
    return Score(
        grabs=_field(raw, "grabs"),
        listeners=_field(raw, "listeners"),
        mehs=_field(raw, "negative"),
        woots=_field(raw, "positive"),
        was_skipped=isinstance(skipped, (int, float)) and skipped > 0,
    )


def translate_chat_type(raw: Any, settings: TranslatorSettings = DEFAULT_SETTINGS) -> ChatType:
    message = _field(raw, "message", "")
    if isinstance(message, str) and message.startswith(settings.command_prefix):
        return ChatType.COMMAND

    upstream_type = _field(raw, "type")
    chat_type = CHAT_TYPES.get(upstream_type)
    if chat_type is None:
        LOGGER.error(f"Unable to identify chat type {upstream_type!r}. Defaulting to {ChatType.MESSAGE.value}.")
        return ChatType.MESSAGE
    return chat_type


# ============================================================================
# EVENTS
# ============================================================================

def translate_advance_event(raw, settings=DEFAULT_SETTINGS) -> Optional[AdvanceEvent]:
    incoming_dj = translate_user(_field(raw, "currentDJ"))
    media = translate_media(_field(raw, "media"))
    if incoming_dj is None or media is None:
        LOGGER.debug("Advance event without a current DJ or media, suppressing it")
        return None

    waitlist = []
    for dj in _as_list(_field(raw, "djs")):
        user = translate_user(dj)
        if user is not None:
            waitlist.append(user)

    previous_play = None
    last_play = _field(raw, "lastPlay")
    if _field(last_play, "dj") and _field(last_play, "media") and _field(last_play, "score"):
        previous_play = PreviousPlay(
            dj=translate_user(_field(last_play, "dj")),
            media=translate_media(_field(last_play, "media")),
            score=translate_score(_field(last_play, "score")),
        )

    start_time = _field(raw, "startTime")
    return AdvanceEvent(
        incoming_dj=incoming_dj,
        media=media,
        start_date=translate_date_string(start_time) if start_time is not None else None,
        waitlisted_djs=waitlist,
        previous_play=previous_play,
    )


def translate_chat_event(raw, settings=DEFAULT_SETTINGS) -> Optional[ChatEvent]:
    sender = _field(raw, "from")
    message = _field(raw, "message")
    if sender is None or message is None:
        LOGGER.warning("Chat event without a sender or message, suppressing it")
        return None

    chat_id = _dig(raw, "raw", "cid")
    if chat_id is None:
        chat_id = _field(raw, "cid")

    return ChatEvent(
        chat_id=chat_id,
        user_id=_field(sender, "id"),
        username=_field(sender, "username"),
        message=str(message),
        type=translate_chat_type(raw, settings),
        is_muted=bool(_field(raw, "muted", False)),
        timestamp=time.time(),
    )


def translate_command_event(raw, settings=DEFAULT_SETTINGS) -> Optional[CommandEvent]:
    sender = _field(raw, "from")
    if sender is None:
        LOGGER.warning("Command event without a sender, suppressing it")
        return None

    message = str(_field(raw, "message", ""))
    parts = message.strip().split()

    command = _field(raw, "command")
    if not command and parts:
        command = parts[0]
    if not command:
        LOGGER.warning(f"Unable to find a command keyword in {message!r}, suppressing it")
        return None

    command = str(command)
    if command.startswith(settings.command_prefix):
        command = command[len(settings.command_prefix):]

    chat_id = _dig(raw, "raw", "cid")
    if chat_id is None:
        chat_id = _field(raw, "cid")

    return CommandEvent(
        command=command,
        args=parts[1:],                 # drop the keyword itself
        message=message,
        user_id=_field(sender, "id"),
        username=_field(sender, "username"),
        user_role=translate_role(_field(sender, "role")),
        is_muted=bool(_field(raw, "muted", False)),
        chat_id=chat_id,
    )


def translate_chat_delete_event(raw, settings=DEFAULT_SETTINGS) -> Optional[ChatDeleteEvent]:
    chat_id = _field(raw, "c")
    if chat_id is None:
        LOGGER.warning("Chat delete event without a chat ID, suppressing it")
        return None
    return ChatDeleteEvent(chat_id=chat_id, mod_user_id=_field(raw, "mi"))


def translate_dj_list_cycle_event(raw, settings=DEFAULT_SETTINGS) -> Optional[DjListCycleEvent]:
    if raw is None:
        return None
    return DjListCycleEvent(
        is_dj_cycle_on=bool(_field(raw, "f", False)),
        mod_username=_field(raw, "m"),
        mod_user_id=_field(raw, "mi"),
    )


def translate_dj_list_update_event(raw, settings=DEFAULT_SETTINGS) -> Optional[DjListUpdateEvent]:
    if not isinstance(raw, (list, tuple)):
        LOGGER.error(f"Wait list update is not a list: {raw!r}, suppressing it")
        return None

    user_ids = []
    users = {}
    for entry in raw:
        if _is_record(entry):
            user = translate_user(entry)
            if user is None:
                continue
            user_ids.append(user.user_id)
            users[user.user_id] = user
        elif entry is not None:
            user_ids.append(entry)

    return DjListUpdateEvent(user_ids=user_ids, users=users)


def translate_dj_list_locked_event(raw, settings=DEFAULT_SETTINGS) -> Optional[DjListLockedEvent]:
    if raw is None:
        return None
    return DjListLockedEvent(
        is_wait_list_open=not _field(raw, "f", False),
        was_wait_list_cleared=bool(_field(raw, "c", False)),
        mod_username=_field(raw, "m"),
        mod_user_id=_field(raw, "mi"),
    )


def translate_earn_event(raw, settings=DEFAULT_SETTINGS) -> Optional[EarnEvent]:
    if raw is None:
        return None
    return EarnEvent(level=_field(raw, "level"), total_exp=_field(raw, "exp"))


def translate_grab_event(raw, settings=DEFAULT_SETTINGS) -> Optional[GrabEvent]:
    # payload is the bare user ID
    if raw is None:
        return None
    return GrabEvent(user_id=raw)


def translate_mod_add_dj_event(raw, settings=DEFAULT_SETTINGS) -> Optional[ModAddDjEvent]:
    if raw is None:
        return None
    return ModAddDjEvent(
        mod_username=_field(raw, "m"),
        mod_user_id=_field(raw, "mi"),
        username=_field(raw, "t"),
    )


def translate_mod_ban_event(raw, settings=DEFAULT_SETTINGS) -> Optional[ModBanEvent]:
    if raw is None:
        return None

    code = _field(raw, "d")
    duration = BAN_DURATION_CODES.get(code)
    if duration is None:
        duration = settings.default_ban_duration
        LOGGER.error(f"Unable to translate ban duration {code!r}. Defaulting to {duration.value}.")

    return ModBanEvent(
        duration=duration,
        mod_username=_field(raw, "m"),
        mod_user_id=_field(raw, "mi"),
        username=_field(raw, "t"),
    )


def translate_mod_move_dj_event(raw, settings=DEFAULT_SETTINGS) -> Optional[ModMoveDjEvent]:
    if raw is None:
        return None
    return ModMoveDjEvent(
        mod_username=_field(raw, "m"),
        mod_user_id=_field(raw, "mi"),
        moved_username=_field(raw, "u"),
        new_position=_field(raw, "n"),
        old_position=_field(raw, "o"),
    )


def translate_mod_mute_event(raw, settings=DEFAULT_SETTINGS) -> Optional[ModMuteEvent]:
    if raw is None:
        return None

    reason_code = _field(raw, "r")
    reason = MUTE_REASON_CODES.get(reason_code)
    if reason is None:
        reason = settings.default_mute_reason
        LOGGER.error(f"Unable to translate mute reason {reason_code!r}. Defaulting to {reason.value}.")

    duration_code = _field(raw, "d")
    duration = MUTE_DURATION_CODES.get(duration_code)
    if duration is None:
        duration = settings.default_mute_duration_seconds
        LOGGER.error(f"Unable to translate mute duration {duration_code!r}. Defaulting to {duration} seconds.")

    return ModMuteEvent(
        mute_duration_in_seconds=duration,
        muted_user_id=_field(raw, "i"),
        muted_username=_field(raw, "t"),
        mod_username=_field(raw, "m"),
        mod_user_id=_field(raw, "mi"),
        reason=reason,
    )


def translate_mod_remove_dj_event(raw, settings=DEFAULT_SETTINGS) -> Optional[ModRemoveDjEvent]:
    if raw is None:
        return None
    return ModRemoveDjEvent(
        mod_username=_field(raw, "m"),
        mod_user_id=_field(raw, "mi"),
        removed_username=_field(raw, "t"),
    )


def translate_mod_skip_event(raw, settings=DEFAULT_SETTINGS) -> Optional[ModSkipEvent]:
    if raw is None:
        return None
    return ModSkipEvent(mod_username=_field(raw, "m"), mod_user_id=_field(raw, "mi"))


def translate_mod_staff_event(raw, settings=DEFAULT_SETTINGS) -> Optional[ModStaffEvent]:
    if raw is None:
        return None

    changes = []
    for user in _as_list(_field(raw, "u")):
        user_id = _field(user, "i")
        if user_id is None:
            continue
        changes.append(StaffChange(
            user_id=user_id,
            username=_field(user, "n"),
            role=translate_role(_field(user, "p")),
        ))

    return ModStaffEvent(mod_username=_field(raw, "m"), mod_user_id=_field(raw, "mi"), users=changes)


def translate_room_description_update_event(raw, settings=DEFAULT_SETTINGS) -> Optional[RoomDescriptionUpdateEvent]:
    if raw is None:
        return None
    return RoomDescriptionUpdateEvent(new_description=_field(raw, "d"), user_id=_field(raw, "u"))


def translate_room_join_event(raw, settings=DEFAULT_SETTINGS) -> Optional[RoomJoinEvent]:
    # payload is the bare room name
    if raw is None:
        return None
    return RoomJoinEvent(room_name=str(raw))


def translate_room_min_chat_level_update_event(raw, settings=DEFAULT_SETTINGS) -> Optional[RoomMinChatLevelUpdateEvent]:
    if raw is None:
        return None
    return RoomMinChatLevelUpdateEvent(min_level=_field(raw, "m"), user_id=_field(raw, "u"))


def translate_room_name_update_event(raw, settings=DEFAULT_SETTINGS) -> Optional[RoomNameUpdateEvent]:
    if raw is None:
        return None
    return RoomNameUpdateEvent(new_name=_field(raw, "n"), user_id=_field(raw, "u"))


def translate_room_welcome_update_event(raw, settings=DEFAULT_SETTINGS) -> Optional[RoomWelcomeUpdateEvent]:
    if raw is None:
        return None
    return RoomWelcomeUpdateEvent(new_welcome_message=_field(raw, "w"), user_id=_field(raw, "u"))


def translate_skip_event(raw, settings=DEFAULT_SETTINGS) -> Optional[SkipEvent]:
    # payload is the bare user ID
    if raw is None:
        return None
    return SkipEvent(user_id=raw)


def translate_user_join_event(raw, settings=DEFAULT_SETTINGS) -> Optional[UserJoinEvent]:
    user = translate_user(raw)
    return UserJoinEvent(user=user) if user else None


def translate_user_leave_event(raw, settings=DEFAULT_SETTINGS) -> Optional[UserLeaveEvent]:
    user = translate_user(raw)
    return UserLeaveEvent(user=user) if user else None


def translate_user_update_event(raw, settings=DEFAULT_SETTINGS) -> Optional[UserUpdateEvent]:
    user_id = _field(raw, "id")
    if user_id is None:
        LOGGER.warning("User update without a user ID, suppressing it")
        return None

    changes = {}
    for upstream_key, key in (("username", "username"), ("level", "level"), ("avatarID", "avatar_id")):
        value = _field(raw, upstream_key)
        if value is not None:
            changes[key] = value

    role = _field(raw, "role")
    if role is not None:
        changes["role"] = translate_role(role)

    return UserUpdateEvent(user_id=user_id, changes=changes)


def translate_vote_event(raw, settings=DEFAULT_SETTINGS) -> Optional[VoteEvent]:
    user_id = _field(raw, "i")
    vote = _field(raw, "v")
    if user_id is None or vote not in (1, -1):
        LOGGER.error(f"Unable to translate vote event {raw!r}, suppressing it")
        return None
    return VoteEvent(user_id=user_id, vote=vote)


Translator = Callable[[Any, TranslatorSettings], Optional[Any]]

TRANSLATORS: Dict[Event, Translator] = {
    Event.ADVANCE: translate_advance_event,
    Event.CHAT: translate_chat_event,
    Event.CHAT_COMMAND: translate_command_event,
    Event.CHAT_DELETE: translate_chat_delete_event,
    Event.DJ_LIST_CYCLE: translate_dj_list_cycle_event,
    Event.DJ_LIST_UPDATE: translate_dj_list_update_event,
    Event.DJ_LIST_LOCKED: translate_dj_list_locked_event,
    Event.EARN: translate_earn_event,
    Event.GRAB: translate_grab_event,
    Event.MODERATE_ADD_DJ: translate_mod_add_dj_event,
    Event.MODERATE_BAN: translate_mod_ban_event,
    Event.MODERATE_MOVE_DJ: translate_mod_move_dj_event,
    Event.MODERATE_MUTE: translate_mod_mute_event,
    Event.MODERATE_REMOVE_DJ: translate_mod_remove_dj_event,
    Event.MODERATE_SKIP: translate_mod_skip_event,
    Event.MODERATE_STAFF: translate_mod_staff_event,
    Event.ROOM_DESCRIPTION_UPDATE: translate_room_description_update_event,
    Event.ROOM_JOIN: translate_room_join_event,
    Event.ROOM_MIN_CHAT_LEVEL_UPDATE: translate_room_min_chat_level_update_event,
    Event.ROOM_NAME_UPDATE: translate_room_name_update_event,
    Event.ROOM_WELCOME_UPDATE: translate_room_welcome_update_event,
    Event.SKIP: translate_skip_event,
    Event.USER_JOIN: translate_user_join_event,
    Event.USER_LEAVE: translate_user_leave_event,
    Event.USER_UPDATE: translate_user_update_event,
    Event.VOTE: translate_vote_event,
}


def translate(event: Event, raw: Any, settings: TranslatorSettings = DEFAULT_SETTINGS) -> Optional[Any]:
    """Translate one raw payload of kind `event`. None means: do not dispatch."""
    return TRANSLATORS[event](raw, settings)
