"""
Room API - upstream client boundary and the Bot wrapper
"""

from roomapi.bot import BAN_DURATION_CODES, BAN_REASON_CODES, Bot
from roomapi.client import RoomClient

__all__ = ["BAN_DURATION_CODES", "BAN_REASON_CODES", "Bot", "RoomClient"]
