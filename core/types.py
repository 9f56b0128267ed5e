"""
Core enums shared by the translator, the state tracker and plugins.

Values are the stable internal names; upstream codes never leak past
core/translator.py (inbound) and roomapi/bot.py (outbound).
"""

from enum import Enum
from typing import Optional


class Event(str, Enum):
    """Internal event kinds. Values match the upstream event names."""

    ADVANCE = "advance"                                     # next media is up for play
    CHAT = "chat"                                           # someone sends a chat message
    CHAT_COMMAND = "command"                                # chat message prefixed with "!"
    CHAT_DELETE = "chatDelete"                              # a mod deletes a chat message
    DJ_LIST_CYCLE = "djListCycle"                           # a mod enables/disables DJ cycle
    DJ_LIST_UPDATE = "djListUpdate"                         # wait list joined/left/reordered
    DJ_LIST_LOCKED = "djListLocked"                         # a mod locks/unlocks the wait list
    EARN = "earn"                                           # the bot gains exp
    GRAB = "grab"                                           # someone grabs the current media
    MODERATE_ADD_DJ = "modAddDJ"                            # a mod adds a DJ to the wait list
    MODERATE_BAN = "modBan"                                 # a mod bans a user from the room
    MODERATE_MOVE_DJ = "modMoveDJ"                          # a mod reorders a DJ in the wait list
    MODERATE_MUTE = "modMute"                               # a mod mutes a user temporarily
    MODERATE_REMOVE_DJ = "modRemoveDJ"                      # a mod removes a DJ from the wait list
    MODERATE_SKIP = "modSkip"                               # a mod skips the current DJ
    MODERATE_STAFF = "modStaff"                             # a mod changes somebody's staff level
    ROOM_DESCRIPTION_UPDATE = "roomDescriptionUpdate"
    ROOM_JOIN = "roomJoin"                                  # the bot joins a room
    ROOM_MIN_CHAT_LEVEL_UPDATE = "roomMinChatLevelUpdate"
    ROOM_NAME_UPDATE = "roomNameUpdate"
    ROOM_WELCOME_UPDATE = "roomWelcomeUpdate"
    SKIP = "skip"                                           # the current DJ skips their own play
    USER_JOIN = "userJoin"
    USER_LEAVE = "userLeave"
    USER_UPDATE = "userUpdate"                              # name, avatar, level... changed
    VOTE = "vote"                                           # a user woots or mehs

    @classmethod
    def from_string(cls, name) -> Optional["Event"]:
        """
        Resolve an event from its value ("modBan") or member name ("MODERATE_BAN").

        Returns:
            Event or None if the name is unknown
        """
        if isinstance(name, cls):
            return name
        if not isinstance(name, str):
            return None
        try:
            return cls(name)
        except ValueError:
            pass
        try:
            return cls[name.upper()]
        except KeyError:
            return None


class UserRole(Enum):
    """Room roles. `level` gives the rank used for permission checks."""

    NONE = "none"
    RESIDENT_DJ = "residentDj"
    BOUNCER = "bouncer"
    MANAGER = "manager"
    COHOST = "cohost"
    HOST = "host"

    @property
    def level(self) -> int:
        return _ROLE_LEVELS[self]

    def at_least(self, other: "UserRole") -> bool:
        """True if this role ranks equal to or above `other`."""
        return self.level >= other.level

    @classmethod
    def from_level(cls, level: int) -> Optional["UserRole"]:
        for role, role_level in _ROLE_LEVELS.items():
            if role_level == level:
                return role
        return None


_ROLE_LEVELS = {
    UserRole.NONE: 0,
    UserRole.RESIDENT_DJ: 1,
    UserRole.BOUNCER: 2,
    UserRole.MANAGER: 3,
    UserRole.COHOST: 4,
    UserRole.HOST: 5,
}


class ChatType(Enum):
    COMMAND = "command"
    EMOTE = "emote"
    MESSAGE = "message"


class BanDuration(Enum):
    HOUR = "1 hour"
    DAY = "1 day"
    FOREVER = "Forever"


class BanReason(Enum):
    SPAMMING_OR_TROLLING = "Spamming or trolling"
    VERBAL_ABUSE_OR_OFFENSIVE_LANGUAGE = "Verbal abuse or offensive language"
    PLAYING_OFFENSIVE_MEDIA = "Playing offensive videos/songs"
    REPEATEDLY_PLAYING_INAPPROPRIATE_GENRES = "Repeatedly playing inappropriate genre(s)"
    NEGATIVE_ATTITUDE = "Negative attitude"


class MuteReason(Enum):
    VIOLATING_COMMUNITY_RULES = "Violating community rules"
    VERBAL_ABUSE_OR_HARASSMENT = "Verbal abuse or harassment"
    SPAMMING_OR_TROLLING = "Spamming or trolling"
    OFFENSIVE_LANGUAGE = "Offensive language"
    NEGATIVE_ATTITUDE = "Negative attitude"
