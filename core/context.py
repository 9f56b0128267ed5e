"""
Context passed to every listener and plugin.

One instance per bot, handed explicitly to each handler call:
    handler(event, context)
"""

from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Mapping

from core.models import RoomState


@dataclass
class BotContext:
    """
    Everything a listener may need.

    Attributes:
        config: Configuration (read-only after startup)
        room_state: Tracked room state, read-only for everyone but the StateTracker
        bot: Handle for outbound actions (roomapi.bot.Bot)
        on: Subscribe to an event kind: on(event, callback)
        register_command: Register a CommandDefinition
        data: Free space for plugins to share values
    """
    config: Mapping[str, Any]
    room_state: RoomState
    bot: Any
    on: Callable
    register_command: Callable
    data: Dict[str, Any] = field(default_factory=dict)

    def __repr__(self) -> str:
        return f"BotContext(room_state={self.room_state!r})"
