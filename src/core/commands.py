"""Command-text parsing for the bot's command surface.

Splits "/cmd@botname arg1 arg2" into ("cmd", ["arg1", "arg2"]) and decides
how /set_date should proceed from its arguments:

    /set_date                                 -> ask for a name
    /set_date meeting [description...]        -> interactive picker
    /set_date 2025-09-07 meeting [desc...]    -> direct creation
    /set_date 2025-09-07 14:30 meeting [...]  -> direct creation with time
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Union

from src.core.dates import TIME_TOKEN_RE

SYSTEM_COMMANDS = frozenset(
    {"set_date", "list", "all", "active", "outdated", "help", "start", "cancel"}
)


def normalize_command(text: str) -> tuple[str, list[str]]:
    """Return (command, args) for a "/command" message; ("", []) otherwise."""
    parts = (text or "").split()
    if not parts or not parts[0].startswith("/"):
        return "", []
    command = parts[0][1:].split("@", 1)[0]
    return command, parts[1:]


@dataclass(frozen=True)
class AwaitName:
    pass


@dataclass(frozen=True)
class Interactive:
    name: str
    description: str = ""


@dataclass(frozen=True)
class Direct:
    date_text: str
    name: str
    description: str = ""


@dataclass(frozen=True)
class Usage:
    pass


SetDatePlan = Union[AwaitName, Interactive, Direct, Usage]


def plan_set_date(args: list[str]) -> SetDatePlan:
    """Decide how /set_date proceeds from its arguments."""
    if not args:
        return AwaitName()

    if not args[0][:1].isdigit():
        return Interactive(name=args[0], description=" ".join(args[1:]))

    if len(args) < 2:
        return Usage()

    if len(args) >= 3 and TIME_TOKEN_RE.match(args[1]):
        return Direct(
            date_text=f"{args[0]} {args[1]}",
            name=args[2],
            description=" ".join(args[3:]),
        )

    return Direct(date_text=args[0], name=args[1], description=" ".join(args[2:]))
