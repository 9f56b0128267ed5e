"""
Core - event translation, dispatch and room state tracking
"""

from core.command_router import CommandDefinition, CommandRouter
from core.context import BotContext
from core.dispatcher import EventDispatcher
from core.models import ChatEntry, Media, PlayEntry, RoomState, User, Votes
from core.state_tracker import StateTracker
from core.types import BanDuration, BanReason, ChatType, Event, MuteReason, UserRole

__all__ = [
    "BanDuration",
    "BanReason",
    "BotContext",
    "ChatEntry",
    "ChatType",
    "CommandDefinition",
    "CommandRouter",
    "Event",
    "EventDispatcher",
    "Media",
    "MuteReason",
    "PlayEntry",
    "RoomState",
    "StateTracker",
    "User",
    "UserRole",
    "Votes",
]
