"""
🚌 EventDispatcher - per-event listener registry

Receives raw upstream payloads, translates them, and hands the translated
event plus the shared context to every listener of that kind.

Delivery is ordered: state listeners first, then the others in registration
order, and one raw event is fully handled before the next one starts.
"""
import asyncio
import inspect
import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional

from core.translator import DEFAULT_SETTINGS, TRANSLATORS, TranslatorSettings
from core.types import Event

LOGGER = logging.getLogger(__name__)


@dataclass
class Registration:
    callback: Callable
    receiver: Any = None            # when set, callback is called as callback(receiver, event, context)

    @property
    def name(self) -> str:
        return getattr(self.callback, "__qualname__", repr(self.callback))


class EventDispatcher:
    """Ordered, synchronous-per-event dispatcher"""

    def __init__(
        self,
        context: Any = None,
        settings: TranslatorSettings = DEFAULT_SETTINGS,
        translators: Optional[Dict[Event, Callable]] = None,
    ):
        """
        Args:
            context: Shared context handed to every listener
            settings: Translator settings (command prefix, fallback codes)
            translators: Override of the translator map (tests)
        """
        self.context = context
        self.settings = settings
        self._translators = translators or TRANSLATORS
        self._state_handlers: Dict[Event, List[Registration]] = {event: [] for event in Event}
        self._handlers: Dict[Event, List[Registration]] = {event: [] for event in Event}
        self._lock = asyncio.Lock()
        self._ready = False
        self._dropped = 0

    # ========================================================================
    # REGISTRATION
    # ========================================================================

    def on(self, event_name, callback: Callable, receiver: Any = None) -> bool:
        """
        Subscribe `callback` to an event kind.

        Unknown kinds are logged and ignored so that listener modules keep
        working against older or newer event sets.

        Returns:
            True if registered, False if the event kind is unknown

        Raises:
            TypeError: if callback is not callable
        """
        return self._register(self._handlers, event_name, callback, receiver)

    def on_state(self, event_name, callback: Callable) -> bool:
        """Subscribe a state listener. State listeners always run before regular ones."""
        return self._register(self._state_handlers, event_name, callback, None)

    def _register(self, table, event_name, callback, receiver) -> bool:
        if not callable(callback):
            raise TypeError(f"Listener for '{event_name}' must be callable, got {type(callback).__name__}")

        event = Event.from_string(event_name)
        if event is None:
            LOGGER.warning(f"Received a request to hook into an unknown event called '{event_name}'. Request will be ignored.")
            return False

        registration = Registration(callback=callback, receiver=receiver)
        table[event].append(registration)
        LOGGER.debug(f"📌 Listener added: {event.value} -> {registration.name}")
        return True

    def listeners(self, event_name) -> List[Callable]:
        """Callbacks for an event kind in invocation order."""
        event = Event.from_string(event_name)
        if event is None:
            return []
        return [r.callback for r in self._state_handlers[event] + self._handlers[event]]

    # ========================================================================
    # LIFECYCLE
    # ========================================================================

    @property
    def ready(self) -> bool:
        return self._ready

    def mark_ready(self) -> None:
        """Open delivery. Called once the startup synchronization is done."""
        self._ready = True
        if self._dropped:
            LOGGER.info(f"Dispatcher ready ({self._dropped} events dropped during synchronization)")
        else:
            LOGGER.info("Dispatcher ready")

    # ========================================================================
    # DISPATCH
    # ========================================================================

    async def dispatch(self, event_name, raw: Any) -> Optional[Any]:
        """
        Translate one raw payload and deliver it.

        Returns:
            The translated event, or None if nothing was delivered
        """
        event = Event.from_string(event_name)
        if event is None:
            LOGGER.debug(f"No translator for upstream event '{event_name}'")
            return None

        async with self._lock:
            if not self._ready:
                self._dropped += 1
                LOGGER.debug(f"Dropping '{event.value}' received before synchronization")
                return None

            translated = self._translators[event](raw, self.settings)
            if translated is None:
                return None

            for registration in self._state_handlers[event] + self._handlers[event]:
                await self._safe_handle(registration, translated, event)

            return translated

    async def _safe_handle(self, registration: Registration, translated: Any, event: Event) -> None:
        """Run one listener; a failure is logged and does not stop the others"""
        try:
            if registration.receiver is not None:
                result = registration.callback(registration.receiver, translated, self.context)
            else:
                result = registration.callback(translated, self.context)
            if inspect.isawaitable(result):
                await result
        except Exception as e:
            LOGGER.error(f"❌ Listener {registration.name} failed on '{event.value}': {e}", exc_info=True)

    def get_stats(self) -> Dict[str, int]:
        return {
            "events": sum(1 for e in Event if self._handlers[e] or self._state_handlers[e]),
            "state_listeners": sum(len(h) for h in self._state_handlers.values()),
            "listeners": sum(len(h) for h in self._handlers.values()),
            "dropped": self._dropped,
        }
