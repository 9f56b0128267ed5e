"""
Bot - wires an upstream RoomClient to the core.

Insulates bot code from the upstream client: raw events go through the
EventDispatcher (translation + state tracking), outbound actions take
internal enums and are converted to upstream codes here.
"""

import asyncio
import inspect
import logging
from typing import Any, Callable, Mapping, Optional

from core.chat_logger import ChatLogger
from core.command_router import CommandDefinition, CommandRouter
from core.config import get_key
from core.context import BotContext
from core.dispatcher import EventDispatcher
from core.models import RoomState
from core.state_tracker import StateTracker
from core.translator import TranslatorSettings
from core.types import BanDuration, BanReason, Event
from plugins.loader import PluginReport, load_plugins
from roomapi.client import RoomClient

LOGGER = logging.getLogger(__name__)

BAN_REASON_CODES = {
    BanReason.SPAMMING_OR_TROLLING: 1,
    BanReason.VERBAL_ABUSE_OR_OFFENSIVE_LANGUAGE: 2,
    BanReason.PLAYING_OFFENSIVE_MEDIA: 3,
    BanReason.REPEATEDLY_PLAYING_INAPPROPRIATE_GENRES: 4,
    BanReason.NEGATIVE_ATTITUDE: 5,
}

BAN_DURATION_CODES = {
    BanDuration.HOUR: "h",
    BanDuration.DAY: "d",
    BanDuration.FOREVER: "f",
}


class Bot:
    """
    The one concrete bot.

    Usage:
        bot = Bot(client, config)
        bot.on(Event.ADVANCE, announce_song)
        await bot.run()
    """

    def __init__(self, client: RoomClient, config: Optional[Mapping[str, Any]] = None):
        """
        Args:
            client: Upstream client (see roomapi/client.py)
            config: Configuration mapping (core.config.load_config)
        """
        self.client = client
        self.config = config if config is not None else {}
        self.room_state = RoomState()
        self.commands = CommandRouter(case_sensitive=bool(get_key(self.config, "commands.case_sensitive", False)))
        self.context = BotContext(
            config=self.config,
            room_state=self.room_state,
            bot=self,
            on=self.on,
            register_command=self.register_command,
        )
        self.dispatcher = EventDispatcher(self.context, settings=TranslatorSettings.from_config(self.config))

        # State listeners first, always
        self.state_tracker = StateTracker(
            self.room_state,
            max_chat_history=int(get_key(self.config, "state.max_chat_history", 0) or 0),
        )
        self.state_tracker.connect(self.dispatcher)
        self.dispatcher.on(Event.CHAT_COMMAND, self.commands.route)

        self.chat_logger: Optional[ChatLogger] = None
        chat_file = get_key(self.config, "logging.chat_file")
        if chat_file:
            self.chat_logger = ChatLogger(chat_file)
            self.chat_logger.connect(self.on)

        self._log_all_events = bool(get_key(self.config, "logging.log_all_events", False))
        if self._log_all_events:
            LOGGER.info("Logging of all raw events is enabled")

        for event in Event:
            self.client.on(event.value, self._make_relay(event))

        self._stopped: Optional[asyncio.Event] = None
        LOGGER.info("Bot initialized")

    # ========================================================================
    # EVENTS
    # ========================================================================

    def _make_relay(self, event: Event) -> Callable:
        async def relay(raw: Any = None) -> None:
            if self._log_all_events:
                LOGGER.info(f"event '{event.value}' has payload: {raw!r}")
            await self.dispatcher.dispatch(event, raw)
        relay.__name__ = f"relay_{event.value}"
        return relay

    def on(self, event_name, callback: Callable, receiver: Any = None) -> bool:
        """Subscribe to an internal event. See EventDispatcher.on"""
        return self.dispatcher.on(event_name, callback, receiver)

    def register_command(self, command: CommandDefinition) -> None:
        self.commands.register(command)

    async def load_plugins(self) -> PluginReport:
        """Load the command and listener directories named in config (plugins.*)"""
        return await load_plugins(
            self.context,
            command_dirs=get_key(self.config, "plugins.command_dirs", ()) or (),
            listener_dirs=get_key(self.config, "plugins.listener_dirs", ()) or (),
            abort_on_error=bool(get_key(self.config, "plugins.abort_on_error", False)),
        )

    # ========================================================================
    # LIFECYCLE
    # ========================================================================

    async def connect(self, room_name: str) -> None:
        LOGGER.info(f"Attempting to connect to room {room_name}")
        result = self.client.connect(room_name)
        if inspect.isawaitable(result):
            await result
        LOGGER.info(f"Connected to room {room_name}")

    async def start(self, room_name: Optional[str] = None, on_complete: Optional[Callable] = None) -> RoomState:
        """
        Connect, synchronize the room state, then open event delivery.

        Args:
            room_name: Room to join (config room.name if omitted)
            on_complete: Called with the RoomState once synchronized
        """
        room_name = room_name or get_key(self.config, "room.name")
        if not room_name:
            raise ValueError("No room name given and none configured (room.name)")

        await self.connect(room_name)
        # delivery opens before on_complete runs, so nothing is lost while it awaits
        room_state = await self.state_tracker.synchronize(
            self.client, on_complete, on_loaded=self.dispatcher.mark_ready
        )
        LOGGER.info(f"🚀 Bot running in room {room_name}")
        return room_state

    async def run(self, room_name: Optional[str] = None) -> None:
        """start(), then wait until stop() is called or the task is cancelled"""
        self._stopped = asyncio.Event()
        try:
            await self.start(room_name)
            await self._stopped.wait()
        finally:
            self.close()

    def stop(self) -> None:
        if self._stopped is not None:
            self._stopped.set()

    def close(self) -> None:
        if self.chat_logger is not None:
            self.chat_logger.close()
            self.chat_logger = None
        LOGGER.info("🛑 Bot stopped")

    # ========================================================================
    # OUTBOUND ACTIONS
    # ========================================================================

    def send_chat(self, message: str) -> None:
        if not isinstance(message, str) or not message.strip():
            raise ValueError("Cannot send an empty chat message")
        self.client.send_chat(message)

    def ban_user(
        self,
        user_id: Any,
        reason: BanReason,
        duration: BanDuration,
        callback: Optional[Callable[[bool], Any]] = None,
    ) -> bool:
        """
        Ban a user from the room.

        Raises:
            ValueError: unknown reason or duration (bot-author error)
        """
        if reason not in BAN_REASON_CODES:
            raise ValueError(f"Unrecognized ban reason: {reason!r}")
        if duration not in BAN_DURATION_CODES:
            raise ValueError(f"Unrecognized ban duration: {duration!r}")
        if user_id is None:
            raise ValueError("Cannot ban without a user ID")

        LOGGER.info(f"Banning user {user_id} ({reason.value}, {duration.value})")
        return self._request(
            "ban",
            lambda done: self.client.moderate_ban_user(
                user_id, BAN_REASON_CODES[reason], BAN_DURATION_CODES[duration], done
            ),
            callback,
        )

    def force_skip(self, callback: Optional[Callable[[bool], Any]] = None) -> bool:
        return self._request("force skip", self.client.moderate_force_skip, callback)

    def grab(self, callback: Optional[Callable[[bool], Any]] = None) -> bool:
        return self._request("grab", self.client.grab, callback)

    def join_wait_list(self, callback: Optional[Callable[[bool], Any]] = None) -> bool:
        return self._request("join wait list", self.client.join_booth, callback)

    def leave_wait_list(self, callback: Optional[Callable[[bool], Any]] = None) -> bool:
        return self._request("leave wait list", self.client.leave_booth, callback)

    def woot(self, callback: Optional[Callable[[bool], Any]] = None) -> bool:
        return self._request("woot", self.client.woot, callback)

    def meh(self, callback: Optional[Callable[[bool], Any]] = None) -> bool:
        return self._request("meh", self.client.meh, callback)

    def _request(self, action: str, send: Callable, callback: Optional[Callable[[bool], Any]]) -> bool:
        """
        Send one fire-once action.

        The callback always fires exactly once: from upstream when the request
        was queued, from here with False when it was not.
        """
        if callback is not None and not callable(callback):
            raise TypeError(f"Callback for {action} must be callable")

        def done(success: Any = True, *_: Any) -> None:
            ok = bool(success)
            if not ok:
                LOGGER.warning(f"⚠️ Upstream rejected {action}")
            if callback is not None:
                callback(ok)

        queued = bool(send(done))
        if not queued:
            LOGGER.warning(f"⚠️ Could not queue {action} request")
            if callback is not None:
                callback(False)
        return queued

    def __repr__(self) -> str:
        return f"Bot(ready={self.dispatcher.ready}, state={self.room_state!r})"
