"""Command parsing for the bot.

Messages starting with ``/`` are matched against a fixed table of commands.
Text that is not a known command is ignored (``parse_command`` returns
``None``); a known command with the wrong number of arguments raises
:class:`CommandUsageError` so the user can be told how to call it.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Dict, Optional, Tuple


class CommandKind(str, Enum):
    HELP = "help"
    START = "start"
    ADD = "add"
    REMOVE = "remove"
    LIST = "list"
    NEW = "new"


@dataclass(frozen=True)
class CommandSpec:
    kind: CommandKind
    description: str
    args: Tuple[str, ...] = ()

    @property
    def usage(self) -> str:
        parts = [f"/{self.kind.value}"] + [f"<{a}>" for a in self.args]
        return " ".join(parts)


@dataclass(frozen=True)
class Command:
    kind: CommandKind
    rattle_id: Optional[str] = None


HEADER = "These commands are supported:"

COMMANDS: Dict[str, CommandSpec] = {
    spec.kind.value: spec
    for spec in (
        CommandSpec(CommandKind.HELP, "display this text."),
        CommandSpec(CommandKind.START, "Starting bot use"),
        CommandSpec(CommandKind.ADD, "Adding existing ID.", ("rattle_id",)),
        CommandSpec(CommandKind.REMOVE, "Removing ID.", ("rattle_id",)),
        CommandSpec(CommandKind.LIST, "List of all your connected IDs."),
        CommandSpec(CommandKind.NEW, "Adding new ID."),
    )
}


class CommandUsageError(ValueError):
    def __init__(self, spec: CommandSpec, got: int):
        self.spec = spec
        self.got = got
        super().__init__(f"/{spec.kind.value} expects {len(spec.args)} argument(s), got {got}")

    @property
    def reply(self) -> str:
        return f"Usage: {self.spec.usage}\n{self.spec.description}"


def descriptions() -> str:
    lines = [HEADER, ""]
    lines += [f"/{name} - {spec.description}" for name, spec in COMMANDS.items()]
    return "\n".join(lines)


def parse_command(text: str, bot_name: Optional[str] = None) -> Optional[Command]:
    """Parse ``text`` into a :class:`Command`.

    ``/cmd@name`` is accepted when ``name`` matches ``bot_name``; commands
    addressed to another bot return ``None``.  Commands without arguments
    ignore whatever follows them.
    """

    stripped = (text or "").strip()
    if not stripped.startswith("/"):
        return None
    head, *tail = stripped.split(maxsplit=1)
    rest = tail[0] if tail else ""
    name, _, mention = head[1:].partition("@")
    if mention and bot_name and mention.lower() != bot_name.lower():
        return None

    spec = COMMANDS.get(name)
    if spec is None:
        return None
    if not spec.args:
        return Command(spec.kind)

    args = rest.split()
    if len(args) != len(spec.args):
        raise CommandUsageError(spec, len(args))
    return Command(spec.kind, rattle_id=args[0])


__all__ = [
    "COMMANDS",
    "Command",
    "CommandKind",
    "CommandSpec",
    "CommandUsageError",
    "descriptions",
    "parse_command",
]
