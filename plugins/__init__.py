"""
Plugins - command and listener modules loaded from directories
"""

from plugins.base import CommandDefinition, EventListener
from plugins.loader import PluginError, PluginReport, load_plugins

__all__ = ["CommandDefinition", "EventListener", "PluginError", "PluginReport", "load_plugins"]
