"""
RoomClient - boundary with the upstream real-time client

The framework never talks to the service directly: it consumes raw events
from a RoomClient and sends actions through it. Any object with these
methods works (typing.Protocol, no inheritance needed).
"""

from typing import Any, Callable, List, Optional, Protocol, runtime_checkable

# callback(success: bool); a falsy value means upstream rejected the action
ActionCallback = Callable[[bool], Any]


@runtime_checkable
class RoomClient(Protocol):
    """
    Upstream client contract.

    Inbound:
        on(event_name, handler) registers a handler for one upstream event
        name ("advance", "chat", "modBan"...). Handlers may be coroutine
        functions; the client must await them in arrival order.

    Outbound:
        Each callback-taking action returns True if the request was queued.
        When it returns False the callback will never be called by the client.

    Snapshot accessors are only used once, during startup synchronization.
    """

    def on(self, event_name: str, handler: Callable[[Any], Any]) -> None: ...

    def connect(self, room_name: str) -> Any: ...

    # --- outbound actions ---

    def send_chat(self, message: str) -> None: ...

    def moderate_ban_user(self, user_id: Any, reason: int, duration: str, callback: ActionCallback) -> bool: ...

    def moderate_force_skip(self, callback: ActionCallback) -> bool: ...

    def grab(self, callback: ActionCallback) -> bool: ...

    def join_booth(self, callback: ActionCallback) -> bool: ...

    def leave_booth(self, callback: ActionCallback) -> bool: ...

    def woot(self, callback: ActionCallback) -> bool: ...

    def meh(self, callback: ActionCallback) -> bool: ...

    # --- startup snapshot ---

    def get_media(self) -> Optional[Any]: ...

    def get_dj(self) -> Optional[Any]: ...

    def get_users(self) -> List[Any]: ...

    def get_waitlist(self) -> List[Any]: ...

    def get_time_elapsed(self) -> Optional[float]: ...

    def get_history(self, callback: Callable[[List[Any]], Any]) -> None: ...
