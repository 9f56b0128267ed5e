"""
📦 Room State - data model tracked from the event stream

Owned by core.state_tracker.StateTracker: every mutation goes through its
handlers, everything else only reads.
"""
from dataclasses import dataclass, field
from typing import Any, List, Optional, Set

from core.types import ChatType, UserRole


@dataclass
class User:
    """A room member. Identity is `user_id`; the rest is mutable metadata."""
    user_id: Any
    username: Optional[str] = None
    avatar_id: Optional[str] = None
    join_date: Optional[float] = None       # UNIX timestamp (seconds)
    level: Optional[int] = None
    role: UserRole = UserRole.NONE

    def __repr__(self) -> str:
        return f"User(id={self.user_id}, name={self.username}, role={self.role.value})"


@dataclass
class Media:
    author: Optional[str]
    content_id: Optional[str]               # YouTube / SoundCloud ID
    duration_in_seconds: Optional[int]
    title: Optional[str]
    full_title: Optional[str]               # "author - title", or the bare title


@dataclass
class Votes:
    """Vote sets (user IDs) of one play."""
    woots: Set[Any] = field(default_factory=set)
    mehs: Set[Any] = field(default_factory=set)
    grabs: Set[Any] = field(default_factory=set)


@dataclass
class PlayEntry:
    media: Media
    user: Optional[User]                    # the performer
    start_date: Optional[float]
    votes: Optional[Votes] = None           # None for history recovered at startup


@dataclass
class ChatEntry:
    chat_id: Any
    user_id: Any
    username: Optional[str]
    message: str
    type: ChatType
    timestamp: float                        # receipt time, not upstream-provided
    is_deleted: bool = False
    deleted_by_user_id: Any = None
    deletion_time: Optional[float] = None


@dataclass
class RoomState:
    """
    What is currently true about the room.

    Sequences are newest-first: chat_history[0] is the last message,
    play_history[0] is the current play once synchronized.
    users_in_wait_list[0] is the active performer while a play is running.
    """
    chat_history: List[ChatEntry] = field(default_factory=list)
    play_history: List[PlayEntry] = field(default_factory=list)
    users_in_room: List[User] = field(default_factory=list)
    users_in_wait_list: List[User] = field(default_factory=list)

    @property
    def current_play(self) -> Optional[PlayEntry]:
        return self.play_history[0] if self.play_history else None

    def find_user_in_room(self, user_id) -> Optional[User]:
        for user in self.users_in_room:
            if user.user_id == user_id:
                return user
        return None

    def find_user_in_wait_list(self, user_id) -> Optional[User]:
        for user in self.users_in_wait_list:
            if user.user_id == user_id:
                return user
        return None

    def find_chat(self, chat_id) -> Optional[int]:
        """Index of a chat entry in chat_history, or None."""
        for index, entry in enumerate(self.chat_history):
            if entry.chat_id == chat_id:
                return index
        return None

    def __repr__(self) -> str:
        return (
            f"RoomState(chat={len(self.chat_history)}, plays={len(self.play_history)}, "
            f"room={len(self.users_in_room)}, waitlist={len(self.users_in_wait_list)})"
        )
