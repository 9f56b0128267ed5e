"""
📦 Event Types - translated event DTOs

One dataclass per internal event kind. Listeners only ever see these,
never the upstream payloads. `kind` tells which Event the object belongs to.
"""
from dataclasses import dataclass, field
from typing import Any, ClassVar, Dict, List, Optional

from core.models import Media, User
from core.types import BanDuration, ChatType, Event, MuteReason, UserRole


@dataclass
class Score:
    """Final tally of a finished play."""
    grabs: Optional[int]
    listeners: Optional[int]
    mehs: Optional[int]
    woots: Optional[int]
    was_skipped: bool = False


@dataclass
class PreviousPlay:
    dj: Optional[User]
    media: Optional[Media]
    score: Optional[Score]


@dataclass
class AdvanceEvent:
    kind: ClassVar[Event] = Event.ADVANCE
    incoming_dj: User                       # the user who is DJing following this event
    media: Media
    start_date: Optional[float]             # when the media begins playing
    waitlisted_djs: List[User] = field(default_factory=list)
    previous_play: Optional[PreviousPlay] = None


@dataclass
class ChatEvent:
    kind: ClassVar[Event] = Event.CHAT
    chat_id: Any
    user_id: Any
    username: Optional[str]
    message: str
    type: ChatType
    is_muted: bool
    timestamp: float                        # receipt time


@dataclass
class CommandEvent:
    kind: ClassVar[Event] = Event.CHAT_COMMAND
    command: str                            # keyword without prefix
    args: List[str]
    message: str
    user_id: Any
    username: Optional[str]
    user_role: UserRole
    is_muted: bool = False
    chat_id: Any = None


@dataclass
class ChatDeleteEvent:
    kind: ClassVar[Event] = Event.CHAT_DELETE
    chat_id: Any
    mod_user_id: Any


@dataclass
class DjListCycleEvent:
    kind: ClassVar[Event] = Event.DJ_LIST_CYCLE
    is_dj_cycle_on: bool
    mod_username: Optional[str]
    mod_user_id: Any


@dataclass
class DjListUpdateEvent:
    """
    New wait list ordering. Upstream sends either bare IDs or user objects;
    `users` holds the translated records for entries that came as objects.
    """
    kind: ClassVar[Event] = Event.DJ_LIST_UPDATE
    user_ids: List[Any]
    users: Dict[Any, User] = field(default_factory=dict)


@dataclass
class DjListLockedEvent:
    kind: ClassVar[Event] = Event.DJ_LIST_LOCKED
    is_wait_list_open: bool
    was_wait_list_cleared: bool
    mod_username: Optional[str]
    mod_user_id: Any


@dataclass
class EarnEvent:
    kind: ClassVar[Event] = Event.EARN
    level: Optional[int]
    total_exp: Optional[int]


@dataclass
class GrabEvent:
    kind: ClassVar[Event] = Event.GRAB
    user_id: Any


@dataclass
class ModAddDjEvent:
    kind: ClassVar[Event] = Event.MODERATE_ADD_DJ
    mod_username: Optional[str]
    mod_user_id: Any
    username: Optional[str]


@dataclass
class ModBanEvent:
    kind: ClassVar[Event] = Event.MODERATE_BAN
    duration: BanDuration
    mod_username: Optional[str]
    mod_user_id: Any
    username: Optional[str]


@dataclass
class ModMoveDjEvent:
    kind: ClassVar[Event] = Event.MODERATE_MOVE_DJ
    mod_username: Optional[str]
    mod_user_id: Any
    moved_username: Optional[str]
    new_position: Optional[int]
    old_position: Optional[int]


@dataclass
class ModMuteEvent:
    kind: ClassVar[Event] = Event.MODERATE_MUTE
    mute_duration_in_seconds: int
    muted_user_id: Any
    muted_username: Optional[str]
    mod_username: Optional[str]
    mod_user_id: Any
    reason: MuteReason


@dataclass
class ModRemoveDjEvent:
    kind: ClassVar[Event] = Event.MODERATE_REMOVE_DJ
    mod_username: Optional[str]
    mod_user_id: Any
    removed_username: Optional[str]


@dataclass
class ModSkipEvent:
    kind: ClassVar[Event] = Event.MODERATE_SKIP
    mod_username: Optional[str]
    mod_user_id: Any


@dataclass
class StaffChange:
    user_id: Any
    username: Optional[str]
    role: UserRole


@dataclass
class ModStaffEvent:
    kind: ClassVar[Event] = Event.MODERATE_STAFF
    mod_username: Optional[str]
    mod_user_id: Any
    users: List[StaffChange] = field(default_factory=list)


@dataclass
class RoomDescriptionUpdateEvent:
    kind: ClassVar[Event] = Event.ROOM_DESCRIPTION_UPDATE
    new_description: Optional[str]
    user_id: Any


@dataclass
class RoomJoinEvent:
    kind: ClassVar[Event] = Event.ROOM_JOIN
    room_name: str


@dataclass
class RoomMinChatLevelUpdateEvent:
    kind: ClassVar[Event] = Event.ROOM_MIN_CHAT_LEVEL_UPDATE
    min_level: Optional[int]
    user_id: Any


@dataclass
class RoomNameUpdateEvent:
    kind: ClassVar[Event] = Event.ROOM_NAME_UPDATE
    new_name: Optional[str]
    user_id: Any


@dataclass
class RoomWelcomeUpdateEvent:
    kind: ClassVar[Event] = Event.ROOM_WELCOME_UPDATE
    new_welcome_message: Optional[str]
    user_id: Any


@dataclass
class SkipEvent:
    kind: ClassVar[Event] = Event.SKIP
    user_id: Any


@dataclass
class UserJoinEvent:
    kind: ClassVar[Event] = Event.USER_JOIN
    user: User


@dataclass
class UserLeaveEvent:
    kind: ClassVar[Event] = Event.USER_LEAVE
    user: User


@dataclass
class UserUpdateEvent:
    """Only the fields upstream actually sent are present in `changes`."""
    kind: ClassVar[Event] = Event.USER_UPDATE
    user_id: Any
    changes: Dict[str, Any] = field(default_factory=dict)


@dataclass
class VoteEvent:
    kind: ClassVar[Event] = Event.VOTE
    user_id: Any
    vote: int                               # 1 for a woot, -1 for a meh

    @property
    def is_woot(self) -> bool:
        return self.vote > 0
