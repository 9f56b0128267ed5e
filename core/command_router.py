"""
Command router.

Demultiplexes chat command events to the registered command definitions.
Every definition whose triggers contain the keyword fires, in registration
order (not first-match-wins); definitions whose minimum role is above the
invoking user's role get their insufficient-permissions callback instead.
"""

import inspect
import logging
from dataclasses import dataclass, field
from typing import Callable, List, Optional, Sequence

from core.event_types import CommandEvent
from core.types import UserRole

logger = logging.getLogger(__name__)


@dataclass
class CommandDefinition:
    """
    A chat command.

    Handlers are called as handler(event, context) and may be coroutines.

    Example:
        CommandDefinition(triggers=["skip"], handler=do_skip, min_role=UserRole.BOUNCER)
    """
    triggers: Sequence[str]
    handler: Callable
    min_role: UserRole = UserRole.NONE
    on_insufficient_permissions: Optional[Callable] = None
    description: str = ""
    name: str = field(default="")

    def __post_init__(self):
        if isinstance(self.triggers, str):
            self.triggers = [self.triggers]
        self.triggers = [str(t) for t in (self.triggers or []) if t]
        if not self.triggers:
            raise ValueError("A command needs at least one trigger")
        if not callable(self.handler):
            raise TypeError(f"Command handler for {self.triggers} must be callable")
        if self.on_insufficient_permissions is not None and not callable(self.on_insufficient_permissions):
            raise TypeError(f"Insufficient-permissions callback for {self.triggers} must be callable")
        if not isinstance(self.min_role, UserRole):
            raise TypeError(f"min_role must be a UserRole, got {self.min_role!r}")
        if not self.name:
            self.name = self.triggers[0]


class CommandRouter:
    """Routes CommandEvents to command definitions."""

    def __init__(self, case_sensitive: bool = False):
        """
        Args:
            case_sensitive: If False, keywords and triggers are compared lowercased
        """
        self.case_sensitive = case_sensitive
        self.commands: List[CommandDefinition] = []

    def _normalize(self, keyword: str) -> str:
        return keyword if self.case_sensitive else keyword.lower()

    def register(self, command: CommandDefinition) -> None:
        """
        Register a command definition.

        Raises:
            TypeError: if `command` is not a CommandDefinition
        """
        if not isinstance(command, CommandDefinition):
            raise TypeError(f"Expected a CommandDefinition, got {type(command).__name__}")
        self.commands.append(command)
        logger.info(f"Registered command: !{command.name} (triggers={list(command.triggers)}, min_role={command.min_role.value})")

    def find(self, keyword: str) -> List[CommandDefinition]:
        """All definitions matching a keyword, in registration order."""
        keyword = self._normalize(keyword)
        return [
            command for command in self.commands
            if keyword in (self._normalize(t) for t in command.triggers)
        ]

    async def route(self, event: CommandEvent, context=None) -> int:
        """
        Dispatcher listener for CHAT_COMMAND events.

        Returns:
            Number of command handlers that ran
        """
        matches = self.find(event.command)
        if not matches:
            logger.debug(f"No handler for command: !{event.command}")
            return 0

        handled = 0
        for command in matches:
            if not event.user_role.at_least(command.min_role):
                logger.info(
                    f"{event.username} ({event.user_role.value}) lacks {command.min_role.value} for !{command.name}"
                )
                if command.on_insufficient_permissions is not None:
                    await self._call(command.on_insufficient_permissions, command, event, context)
                continue

            logger.info(f"Routing !{event.command} from {event.username} to {command.name}")
            if await self._call(command.handler, command, event, context):
                handled += 1

        return handled

    @staticmethod
    async def _call(callback: Callable, command: CommandDefinition, event: CommandEvent, context) -> bool:
        try:
            result = callback(event, context)
            if inspect.isawaitable(result):
                await result
            return True
        except Exception as e:
            logger.error(f"❌ Command {command.name} failed: {e}", exc_info=True)
            return False
