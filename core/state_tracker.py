"""
🗂️ StateTracker - folds translated events into the RoomState

Its listeners are registered as state listeners on the dispatcher, so they
run before any other listener of the same event: downstream code always
reads a RoomState that already reflects the event it is handling.

Startup: one asynchronous history query, then synchronous reads of the
current performer, media, roster and wait list (see synchronize()).
"""
import asyncio
import inspect
import logging
import time
from collections.abc import Mapping
from typing import Any, Callable, Dict, Iterable, List, Optional

from core.event_types import (
    AdvanceEvent,
    ChatDeleteEvent,
    ChatEvent,
    DjListUpdateEvent,
    GrabEvent,
    ModRemoveDjEvent,
    ModStaffEvent,
    UserJoinEvent,
    UserLeaveEvent,
    UserUpdateEvent,
    VoteEvent,
)
from core.models import ChatEntry, PlayEntry, RoomState, User, Votes
from core.translator import translate_date_string, translate_media, translate_user
from core.types import Event

LOGGER = logging.getLogger(__name__)


def _unique_users(users: Iterable[Optional[User]]) -> List[User]:
    """Drop None and repeated user IDs, first occurrence wins."""
    seen = set()
    result = []
    for user in users:
        if user is None or user.user_id in seen:
            continue
        seen.add(user.user_id)
        result.append(user)
    return result


def _as_list(value: Any) -> List[Any]:
    if isinstance(value, (list, tuple)):
        return list(value)
    return []


def _flag(obj: Any, key: str) -> Any:
    if isinstance(obj, Mapping):
        return obj.get(key)
    return getattr(obj, key, None)


class StateTracker:
    """Owner of the RoomState aggregate"""

    def __init__(self, room_state: Optional[RoomState] = None, max_chat_history: int = 0):
        """
        Args:
            room_state: State to maintain (a fresh one if omitted)
            max_chat_history: Keep at most this many chat entries (0 = unbounded)
        """
        self.room_state = room_state if room_state is not None else RoomState()
        self.max_chat_history = max_chat_history or 0
        self.synchronized = False

    def connect(self, dispatcher) -> None:
        """Register every state listener. Must run before any other listener is added."""
        for event, handler in self.handlers().items():
            dispatcher.on_state(event, handler)
        LOGGER.info(f"StateTracker connected ({len(self.handlers())} events)")

    def handlers(self) -> Dict[Event, Callable]:
        return {
            Event.ADVANCE: self.on_advance,
            Event.CHAT: self.on_chat,
            Event.CHAT_DELETE: self.on_chat_delete,
            Event.DJ_LIST_UPDATE: self.on_dj_list_update,
            Event.GRAB: self.on_grab,
            Event.MODERATE_REMOVE_DJ: self.on_mod_remove_dj,
            Event.MODERATE_STAFF: self.on_mod_staff,
            Event.USER_JOIN: self.on_user_join,
            Event.USER_LEAVE: self.on_user_leave,
            Event.USER_UPDATE: self.on_user_update,
            Event.VOTE: self.on_vote,
        }

    # ========================================================================
    # STARTUP SYNCHRONIZATION
    # ========================================================================

    async def synchronize(
        self,
        client,
        on_complete: Optional[Callable] = None,
        on_loaded: Optional[Callable[[], Any]] = None,
    ) -> RoomState:
        """
        Build the initial RoomState from the upstream client.

        The history query is the only asynchronous call; every other read
        happens when it returns, so all snapshots come from about the same
        instant.

        Args:
            client: RoomClient (see roomapi/client.py)
            on_complete: Called with the RoomState once synchronization is done
            on_loaded: Called right after the snapshot is loaded, before
                on_complete (the dispatcher opens event delivery here)

        Returns:
            The synchronized RoomState
        """
        LOGGER.info("⏳ Synchronizing room state...")
        loop = asyncio.get_running_loop()
        future = loop.create_future()

        def _resolve(history):
            if not future.done():
                future.set_result(history)

        def _on_history(history):
            loop.call_soon_threadsafe(_resolve, history)

        client.get_history(_on_history)
        history = await future

        self._load_snapshot(
            history=history,
            roster=client.get_users(),
            wait_list=client.get_waitlist(),
            performer=client.get_dj(),
            media=client.get_media(),
            elapsed_seconds=client.get_time_elapsed(),
        )
        self.synchronized = True
        LOGGER.info(f"✅ Room state synchronized: {self.room_state!r}")

        if on_loaded is not None:
            on_loaded()

        if on_complete is not None:
            result = on_complete(self.room_state)
            if inspect.isawaitable(result):
                await result

        return self.room_state

    def _load_snapshot(self, history, roster, wait_list, performer, media, elapsed_seconds) -> None:
        state = self.room_state
        roster = _as_list(roster)

        state.users_in_room[:] = _unique_users(translate_user(user) for user in roster)

        # the performer is tracked apart from the wait list upstream
        current_dj = translate_user(performer)
        state.users_in_wait_list[:] = _unique_users(
            [current_dj] + [translate_user(user) for user in _as_list(wait_list)]
        )

        if history is None:
            LOGGER.warning("History query returned nothing, starting with an empty play history")

        plays = []
        for record in _as_list(history):
            record_media = translate_media(_flag(record, "media"))
            if record_media is None:
                continue
            timestamp = _flag(record, "timestamp")
            plays.append(PlayEntry(
                media=record_media,
                user=translate_user(_flag(record, "user")),
                start_date=translate_date_string(timestamp) if timestamp is not None else None,
                votes=None,                 # not recoverable after the fact
            ))

        current_media = translate_media(media)
        if current_dj is not None and current_media is not None:
            start_date = None
            if isinstance(elapsed_seconds, (int, float)):
                start_date = time.time() - elapsed_seconds
            plays.insert(0, PlayEntry(
                media=current_media,
                user=current_dj,
                start_date=start_date,
                votes=self._votes_from_roster(roster),
            ))

        state.play_history[:] = plays
        state.chat_history.clear()

    @staticmethod
    def _votes_from_roster(roster: List[Any]) -> Votes:
        votes = Votes()
        for user in roster:
            user_id = _flag(user, "id")
            if user_id is None:
                continue
            vote = _flag(user, "vote")
            if vote == 1:
                votes.woots.add(user_id)
            elif vote == -1:
                votes.mehs.add(user_id)
            if _flag(user, "grab"):
                votes.grabs.add(user_id)
        return votes

    # ========================================================================
    # EVENT HANDLERS
    # ========================================================================

    def on_advance(self, event: AdvanceEvent, context=None) -> None:
        state = self.room_state
        state.users_in_wait_list[:] = _unique_users([event.incoming_dj] + list(event.waitlisted_djs))
        state.play_history.insert(0, PlayEntry(
            media=event.media,
            user=event.incoming_dj,
            start_date=event.start_date if event.start_date is not None else time.time(),
            votes=Votes(),
        ))

    def on_chat(self, event: ChatEvent, context=None) -> None:
        history = self.room_state.chat_history
        history.insert(0, ChatEntry(
            chat_id=event.chat_id,
            user_id=event.user_id,
            username=event.username,
            message=event.message,
            type=event.type,
            timestamp=event.timestamp,
        ))
        if self.max_chat_history and len(history) > self.max_chat_history:
            del history[self.max_chat_history:]

    def on_chat_delete(self, event: ChatDeleteEvent, context=None) -> None:
        """
        Soft-delete a chat entry and the unbroken run of newer entries from
        the same user (upstream removes the whole run).
        """
        history = self.room_state.chat_history
        index = self.room_state.find_chat(event.chat_id)
        if index is None:
            LOGGER.warning(f"Chat message {event.chat_id} was deleted but is not in the chat history")
            return

        now = time.time()
        target = history[index]
        self._soft_delete(target, event.mod_user_id, now)

        # newer entries sit at lower indexes
        for entry in reversed(history[:index]):
            if entry.user_id != target.user_id:
                break
            self._soft_delete(entry, event.mod_user_id, now)

    @staticmethod
    def _soft_delete(entry: ChatEntry, mod_user_id, when: float) -> None:
        if entry.is_deleted:
            return
        entry.is_deleted = True
        entry.deleted_by_user_id = mod_user_id
        entry.deletion_time = when

    def on_dj_list_update(self, event: DjListUpdateEvent, context=None) -> None:
        state = self.room_state
        users = []
        for user_id in event.user_ids:
            user = (
                event.users.get(user_id)
                or state.find_user_in_wait_list(user_id)
                or state.find_user_in_room(user_id)
            )
            if user is None:
                LOGGER.debug(f"Wait list contains unknown user {user_id}, tracking it by ID only")
                user = User(user_id=user_id)
            users.append(user)

        current = state.current_play
        if current is not None and current.user is not None:
            users.insert(0, current.user)

        state.users_in_wait_list[:] = _unique_users(users)

    def on_grab(self, event: GrabEvent, context=None) -> None:
        votes = self._current_votes("grab")
        if votes is not None:
            votes.grabs.add(event.user_id)

    def on_mod_remove_dj(self, event: ModRemoveDjEvent, context=None) -> None:
        # the event only carries the username
        wait_list = self.room_state.users_in_wait_list
        for index, user in enumerate(wait_list):
            if user.username == event.removed_username:
                del wait_list[index]
                return
        LOGGER.warning(f"{event.removed_username} was removed from the wait list but was not in it")

    def on_mod_staff(self, event: ModStaffEvent, context=None) -> None:
        for change in event.users:
            for user in self._records_of(change.user_id):
                user.role = change.role
                if change.username:
                    user.username = change.username

    def on_user_join(self, event: UserJoinEvent, context=None) -> None:
        state = self.room_state
        if state.find_user_in_room(event.user.user_id) is not None:
            LOGGER.warning(f"User {event.user.user_id} joined but is already in the room, ignoring")
            return
        state.users_in_room.append(event.user)

    def on_user_leave(self, event: UserLeaveEvent, context=None) -> None:
        state = self.room_state
        user_id = event.user.user_id
        state.users_in_room[:] = [u for u in state.users_in_room if u.user_id != user_id]
        state.users_in_wait_list[:] = [u for u in state.users_in_wait_list if u.user_id != user_id]

    def on_user_update(self, event: UserUpdateEvent, context=None) -> None:
        for user in self._records_of(event.user_id):
            for key, value in event.changes.items():
                setattr(user, key, value)

    def on_vote(self, event: VoteEvent, context=None) -> None:
        votes = self._current_votes("vote")
        if votes is None:
            return
        if event.is_woot:
            votes.mehs.discard(event.user_id)
            votes.woots.add(event.user_id)
        else:
            votes.woots.discard(event.user_id)
            votes.mehs.add(event.user_id)

    # ========================================================================
    # HELPERS
    # ========================================================================

    def _current_votes(self, action: str) -> Optional[Votes]:
        current = self.room_state.current_play
        if current is None or current.votes is None:
            LOGGER.warning(f"Received a {action} with no live play to attach it to")
            return None
        return current.votes

    def _records_of(self, user_id) -> List[User]:
        """Every tracked record of a user (room and wait list may hold distinct objects)."""
        records = []
        for user in (self.room_state.find_user_in_room(user_id),
                     self.room_state.find_user_in_wait_list(user_id)):
            if user is not None and all(user is not r for r in records):
                records.append(user)
        return records
