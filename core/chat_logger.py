#!/usr/bin/env python3
"""
Chat Logger
Logs every chat message of the room to a dedicated chat log file
"""

import logging

from core.event_types import ChatEvent
from core.types import ChatType, Event

LOGGER = logging.getLogger(__name__)


class ChatLogger:
    """
    Listener writing chat events to a dedicated, non-propagating logger.
    Separate from the main log for easier chat analysis.
    """

    def __init__(self, chat_log_file, logger_name: str = "chat_messages"):
        """
        Args:
            chat_log_file: Path of the chat log file
            logger_name: Name of the dedicated logger
        """
        self.message_count = 0

        self.chat_file_logger = logging.getLogger(logger_name)
        self.chat_file_logger.setLevel(logging.INFO)
        self.chat_file_logger.propagate = False  # Don't send to root logger

        self.handler = logging.FileHandler(chat_log_file, encoding="utf-8")
        self.handler.setFormatter(logging.Formatter('%(asctime)s %(message)s'))
        self.chat_file_logger.addHandler(self.handler)

        LOGGER.info(f"📝 Chat logging to: {chat_log_file}")

    def connect(self, on) -> None:
        """Subscribe through the dispatcher's (or context's) `on`"""
        on(Event.CHAT, self.on_chat)

    def on_chat(self, event: ChatEvent, context=None) -> None:
        self.message_count += 1

        marker = ""
        if event.type == ChatType.EMOTE:
            marker = "* "
        elif event.type == ChatType.COMMAND:
            marker = "> "
        muted = " (muted)" if event.is_muted else ""

        self.chat_file_logger.info(f"[{event.chat_id}] {marker}{event.username}{muted}: {event.message}")

    def close(self) -> None:
        self.chat_file_logger.removeHandler(self.handler)
        self.handler.close()

    def get_message_count(self) -> int:
        """Number of chat messages logged"""
        return self.message_count
