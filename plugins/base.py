"""
Base plugin types for room bots.

A plugin is a plain Python file. Command modules export COMMANDS (a list of
CommandDefinition), listener modules export LISTENERS (a list of
EventListener). Either kind may also define init(context) for setup.

Example (listeners/greeter.py):
    from core.types import Event
    from plugins.base import EventListener

    async def greet(event, context):
        context.bot.send_chat(f"Welcome {event.user.username}!")

    LISTENERS = [EventListener(Event.USER_JOIN, greet)]
"""

from dataclasses import dataclass
from typing import Any, Callable

from core.command_router import CommandDefinition


@dataclass
class EventListener:
    """
    One subscription declared by a listener module.

    Handlers are called as handler(event, context) and may be coroutines.
    """
    event: Any          # Event or upstream name ("userJoin")
    handler: Callable

    def __post_init__(self):
        if not callable(self.handler):
            raise TypeError(f"Listener handler for '{self.event}' must be callable")

    def register(self, context) -> bool:
        return context.on(self.event, self.handler)


__all__ = ["CommandDefinition", "EventListener"]
