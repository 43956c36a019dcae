"""
Argtree faults (errors) and rendering.

Scope
- FaultCode: canonical, stable numeric identifiers for all user-facing issues.
  Codes are grouped by domain to keep copy consistent and make logs/searches predictable.
- CommandException: base type that carries message + options and knows how to render
  itself in a friendly, lowercased, and actionable way (rich __rich__ protocol).
- CommandExit: the aggregate of every validation fault found during one parse, rendered
  as two tables (arguments and unrecognized tokens) so users see every problem at once.

Propagation
- InvalidCommandTextError is a programmer error and is raised eagerly at registration/lookup.
- CommandNotFoundError is raised only when the parse options ask for it.
- The remaining faults are collected during validation, never raised by the parser.
"""
from collections import defaultdict
from enum import IntEnum
from types import MappingProxyType

from rich.console import Group
from rich.table import Table
from rich.text import Text

from .utils import Unset

STYLES = {
    # header parts
    "prog-name": "bold #E6E6F0",  # near-white program name
    "code": "bold #00E5FF",  # neon cyan fault code
    "error-title": "bold #FF4DA6",  # friendly pinky title

    # body
    "error-message": "#C8C8D0",  # soft light gray message
    "hint-arrow": "#9CE19C dim",  # gentle green arrow
    "hint": "italic #9CE19C",  # gentle green hint text

    # tables
    "table-title": "bold #FF4DA6",
    "argument": "bold #FFD600",
    "token": "bold #FFD600",
    "reason": "#C8C8D0",
    "required": "#FFD600",
}


class FaultCode(IntEnum):
    """
    canonical fault codes used across the cli (stable identifiers).

    grouping (by high-level domain)
    - routing (1110x)
      • COMMAND_NOT_FOUND, INVALID_COMMAND_TEXT
    - arguments (1111x)
      • ARGUMENT_PARSE, REQUIRED_ARGUMENT
    - tokens (1112x)
      • UNKNOWN_TOKEN, UNEXPECTED_POSITIONAL
    """
    # --- routing errors (11xxx) ---
    COMMAND_NOT_FOUND       = 11101
    INVALID_COMMAND_TEXT    = 11102

    # --- argument errors (11xxx) ---
    ARGUMENT_PARSE          = 11111
    REQUIRED_ARGUMENT       = 11112

    # --- token errors (11xxx) ---
    UNKNOWN_TOKEN           = 11121
    UNEXPECTED_POSITIONAL   = 11122

    def normalize(self):
        """
        return a host-normalized string for this code.

        the host application can provide a __codes__ mapping in __main__
        to override numeric ids with friendlier labels. when no mapping
        is present, the numeric value is returned as a string.
        """
        return str(getattr(__import__("__main__"), "__codes__", {}).get(self, self.value))


def _painter(colorful):
    styles = defaultdict(str, STYLES | getattr(__import__("__main__"), "__styles__", {}))

    def text(fragment, style=""):
        if not fragment:
            return Text("")
        if isinstance(fragment, Text):
            return fragment if colorful else Text(fragment.plain)
        return Text(str(fragment), styles[style] if colorful else "")

    return text


class CommandException(Exception):
    code = Unset
    title = "command error"

    def __init__(self, message, /, **options):
        assert isinstance(message, str)
        super().__init__(message)
        self.message = message
        self.options = MappingProxyType({
            "code": type(self).code,
            "title": type(self).title,
            "hint": None,
            "prog": "",
            "colorful": True,
        } | options)

    def __str__(self):
        return self.message

    def __rich__(self):
        text = _painter(self.options["colorful"])

        parts = ["[ "]
        if self.options["prog"]:
            parts += [text(self.options["prog"], "prog-name"), " — "]
        if self.options["code"]:
            parts += [text(self.options["code"].normalize(), "code"), " | "]
        parts += [text(self.options["title"].title(), "error-title"), " ]"]

        renders = [Text.assemble(*parts), text(self.message, "error-message")]
        if self.options["hint"]:
            renders.append(Text.assemble(text(" → ", "hint-arrow"), text(self.options["hint"], "hint")))
        return Group(*renders)

    def replace(self, **overrides):
        return type(self)(self.message, **{**self.options, **overrides})


class CommandNotFoundError(CommandException):
    code = FaultCode.COMMAND_NOT_FOUND
    title = "command not found"


class InvalidCommandTextError(CommandException, ValueError):
    code = FaultCode.INVALID_COMMAND_TEXT
    title = "invalid command text"


class ArgumentParseError(CommandException):
    code = FaultCode.ARGUMENT_PARSE
    title = "invalid argument value"


class RequiredArgumentError(CommandException):
    code = FaultCode.REQUIRED_ARGUMENT
    title = "missing required argument"


class UnknownTokenError(CommandException):
    code = FaultCode.UNKNOWN_TOKEN
    title = "unknown flag or argument"


class UnexpectedPositionalError(CommandException):
    code = FaultCode.UNEXPECTED_POSITIONAL
    title = "unexpected positional value"


class CommandExit(ExceptionGroup):
    """
    every validation fault of one parse, grouped.

    options
    - prog: program/command label for the header.
    - colorful: when False, styling is suppressed.
    - exit_code: the code the caller should exit with (None when exiting is disabled).
    """

    def __new__(cls, exceptions, **options):
        return super().__new__(cls, "bad exit", tuple(exceptions))

    def __init__(self, exceptions, **options):
        super().__init__("bad exit", tuple(exceptions))
        self.options = MappingProxyType({"prog": "", "colorful": True, "exit_code": None} | options)

    @property
    def arguments(self):
        """faults attached to a specific argument (parse errors and missing required values)."""
        return tuple(x for x in self.exceptions if isinstance(x, ArgumentParseError | RequiredArgumentError))

    @property
    def tokens(self):
        """faults attached to raw tokens (unknown names and unexpected positionals)."""
        return tuple(x for x in self.exceptions if isinstance(x, UnknownTokenError | UnexpectedPositionalError))

    def argument_table(self):
        text = _painter(self.options["colorful"])
        table = Table(
            title=text("invalid or missing arguments", "table-title"),
            title_justify="left",
            show_header=False,
            box=None,
            padding=(0, 2),
        )
        for fault in self.arguments:
            argument = fault.options["argument"]
            if isinstance(fault, ArgumentParseError):
                reason = text(str(fault.options["exception"]) or type(fault.options["exception"]).__name__, "reason")
            else:
                reason = text("required", "required")
            table.add_row(text(" | ".join(argument.notations()), "argument"), reason)
        return table

    def token_table(self):
        text = _painter(self.options["colorful"])
        table = Table(
            title=text("unrecognized command sequence", "table-title"),
            title_justify="left",
            show_header=False,
            box=None,
            padding=(0, 2),
        )
        for fault in self.tokens:
            reason = "unexpected positional value" if isinstance(fault, UnexpectedPositionalError) else "unknown flag or argument"
            table.add_row(text(fault.options["token"], "token"), text(reason, "reason"))
        return table

    def __rich__(self):
        renders = []
        if self.arguments:
            renders.append(self.argument_table())
        if self.arguments and self.tokens:
            renders.append(Text(""))
        if self.tokens:
            renders.append(self.token_table())
        return Group(*renders)

    def replace(self, **overrides):
        return type(self)(self.exceptions, **{**self.options, **overrides})


__all__ = (
    "FaultCode",
    "CommandException",
    "CommandNotFoundError",
    "InvalidCommandTextError",
    "ArgumentParseError",
    "RequiredArgumentError",
    "UnknownTokenError",
    "UnexpectedPositionalError",
    "CommandExit",
)
