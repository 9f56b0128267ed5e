"""
Plugin discovery.

Loads every `*.py` file (not starting with "_") of the configured command and
listener directories, in sorted order, and registers what they export:

    COMMANDS   list of CommandDefinition   (command directories)
    LISTENERS  list of EventListener       (listener directories)
    init(context)                          (optional, called before registration)

A module that fails to import or register is logged and skipped, unless
abort_on_error is set, in which case PluginError is raised.
"""

import importlib.util
import inspect
import logging
import pathlib
from dataclasses import dataclass, field
from typing import Iterable, List, Tuple

from core.command_router import CommandDefinition
from plugins.base import EventListener

LOGGER = logging.getLogger(__name__)


class PluginError(Exception):
    """Raised when a plugin module cannot be loaded and errors are fatal."""


@dataclass
class PluginReport:
    loaded: List[str] = field(default_factory=list)
    failed: List[Tuple[str, str]] = field(default_factory=list)   # (path, error)
    commands: int = 0
    listeners: int = 0

    def __str__(self) -> str:
        return (
            f"{len(self.loaded)} plugin(s) loaded, {len(self.failed)} failed "
            f"({self.commands} commands, {self.listeners} listeners)"
        )


def discover(directory) -> List[pathlib.Path]:
    """Plugin files of a directory, sorted by name"""
    path = pathlib.Path(directory)
    if not path.is_dir():
        LOGGER.warning(f"⚠️ Plugin directory {directory} not found, skipping")
        return []
    return sorted(p for p in path.glob("*.py") if not p.name.startswith("_"))


def import_plugin(path: pathlib.Path, kind: str):
    module_name = f"roombot_{kind}_{path.stem}"
    spec = importlib.util.spec_from_file_location(module_name, path)
    if spec is None or spec.loader is None:
        raise ImportError(f"Cannot load plugin from {path}")
    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)
    return module


async def _run_init(module, context) -> None:
    init = getattr(module, "init", None)
    if init is None:
        return
    if not callable(init):
        raise TypeError("init must be callable")
    result = init(context)
    if inspect.isawaitable(result):
        await result


def _export(module, name: str) -> list:
    if not hasattr(module, name):
        raise AttributeError(f"module does not export {name}")
    value = getattr(module, name)
    if not isinstance(value, (list, tuple)):
        raise TypeError(f"{name} must be a list, got {type(value).__name__}")
    return list(value)


def _register_commands(module, context) -> int:
    commands = _export(module, "COMMANDS")
    for command in commands:
        if not isinstance(command, CommandDefinition):
            raise TypeError(f"COMMANDS entries must be CommandDefinition, got {type(command).__name__}")
    # all entries are checked before any is registered
    for command in commands:
        context.register_command(command)
    return len(commands)


def _register_listeners(module, context) -> int:
    listeners = _export(module, "LISTENERS")
    for listener in listeners:
        if not isinstance(listener, EventListener):
            raise TypeError(f"LISTENERS entries must be EventListener, got {type(listener).__name__}")
    for listener in listeners:
        listener.register(context)
    return len(listeners)


async def load_plugins(
    context,
    command_dirs: Iterable = (),
    listener_dirs: Iterable = (),
    abort_on_error: bool = False,
) -> PluginReport:
    """
    Load command and listener plugins into a bot context.

    Args:
        context: BotContext (provides register_command and on)
        command_dirs: Directories holding command modules
        listener_dirs: Directories holding listener modules
        abort_on_error: Raise PluginError on the first failing module

    Returns:
        PluginReport
    """
    report = PluginReport()
    sources = [(d, "commands") for d in command_dirs] + [(d, "listeners") for d in listener_dirs]

    for directory, kind in sources:
        for path in discover(directory):
            try:
                module = import_plugin(path, kind)
                await _run_init(module, context)
                if kind == "commands":
                    report.commands += _register_commands(module, context)
                else:
                    report.listeners += _register_listeners(module, context)
            except Exception as e:
                if abort_on_error:
                    raise PluginError(f"Failed to load plugin {path}: {e}") from e
                LOGGER.error(f"❌ Failed to load plugin {path}: {e}", exc_info=True)
                report.failed.append((str(path), str(e)))
                continue

            report.loaded.append(str(path))
            LOGGER.info(f"✅ Loaded {kind} plugin: {path.name}")

    LOGGER.info(f"🔌 {report}")
    return report
