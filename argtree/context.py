"""
Argtree command table, command resolver and suggestion engine.

Overview
- Context holds the ordered mapping normalized path → Command, the lifecycle hooks and the
  presentation switches (colors, help formatter, built-in marker catching).
- Context.find(argv) resolves a token stream to the longest registered command path.
- Context.find_suggestions(text) ranks registered paths by edit distance ("did you mean").

Paths
- Words are separated by single spaces; whitespace is collapsed and trimmed on the way in.
- Allowed characters: letters, digits, '_', '-' and spaces. Anything else raises InvalidCommandTextError.
- The root command is the empty path "".
- Ancestry is the word-boundary prefix relation: "do some" is an ancestor of "do some thing",
  "do" is not an ancestor of "done".
"""
import logging
import os
import re
import sys
from collections import defaultdict, namedtuple

from .commands import *
from .faults import *
from .tokens import *
from .utils import *

Resolution = namedtuple("Resolution", ("path", "words", "command", "ancestors", "unmatched", "argv"))
Resolution.__doc__ = """
The outcome of Context.find().

- path: the selected normalized path ("" for the root).
- words: the path split into words.
- command: the registered Command (the template, never a working copy).
- ancestors: [(path, Command)] for every registered strict prefix, root first.
- unmatched: the tokens left once the path words are removed, in order.
- argv: the full token list that was resolved.
"""

HOOKS = ("pre_parse", "parsed", "invoke", "command_added", "help")

COLORS = {
    # argument kinds
    "named": "bold #FFD600",
    "flag": "bold #FFD600",
    "positional": "bold #00E5FF",
    "env": "bold #9CE19C",
    "overflow": "bold #00E5FF",
    "transfer": "bold #00E5FF",

    # help topics
    "prog": "bold #E6E6F0",
    "command": "bold #FF4DA6",
    "menu": "#C8C8D0",
    "section": "bold #FF4DA6",
    "description": "#C8C8D0",
    "required": "#FFD600",
    "value": "italic #9CE19C",
    "example": "italic #C8C8D0",
    "env-read": "bold #9CE19C",
    "env-unset": "dim",
}

_COMMAND_TEXT = re.compile(r"[a-zA-Z0-9 _-]*")


def _words(path):
    return path.split(" ") if path else []


def _is_ancestor(ancestor, path):
    ancestor, path = _words(ancestor), _words(path)
    return len(ancestor) < len(path) and path[:len(ancestor)] == ancestor


class Context:
    """
    The command table plus everything parsing needs to know about presentation.

    Options
    - name: program name for help/usage lines (defaults to the script name).
    - logger: logger used for resolution traces (defaults to this module's logger).
    - catch_help_markers: append the built-in --help/-h and --help-all flags to every command.
    - catch_no_color_marker: append the built-in --no-color flag to every command.
    - hide_parent_command_options_on_help: hide inherited options in help unless --help-all is given.
    - colors: style overrides merged over COLORS (keys are argument kinds and help topics).
    - help_formatter: callable(path, command, cli) → rich renderable; None uses argtree.help.render_help.
    """

    def __init__(
            self,
            name=None,
            /,
            *,
            logger=None,
            catch_help_markers=True,
            catch_no_color_marker=True,
            hide_parent_command_options_on_help=True,
            colors=None,
            help_formatter=None,
    ):
        if help_formatter is not None and not callable(help_formatter):
            raise TypeError("context 'help_formatter' must be callable")
        self.name = name or os.path.basename(sys.argv[0]) or "cli"
        self.logger = logger or logging.getLogger(__name__)
        self.catch_help_markers = catch_help_markers
        self.catch_no_color_marker = catch_no_color_marker
        self.hide_parent_command_options_on_help = hide_parent_command_options_on_help
        self.colors = COLORS | dict(colors or {})
        self.help_formatter = help_formatter
        self.commands = {}
        self.hooks = defaultdict(list)

    @staticmethod
    def clean_command(text, /):
        """Collapse whitespace runs to single spaces and trim."""
        if not isinstance(text, str):
            raise TypeError("command text must be a string")
        return " ".join(text.split())

    @staticmethod
    def is_valid_command_text(text, /):
        return isinstance(text, str) and _COMMAND_TEXT.fullmatch(text) is not None

    @classmethod
    def assert_command_text(cls, text, /):
        """
        Normalize text and return it, or raise InvalidCommandTextError.
        """
        if not cls.is_valid_command_text(text):
            raise InvalidCommandTextError(
                f"invalid command text {text!r}",
                hint="command paths may only contain letters, digits, '_', '-' and spaces",
            )
        return cls.clean_command(text)

    # --- table ---

    def set(self, path, command, /):
        """Register (or replace) the command stored at path."""
        if not isinstance(command, Command):
            raise TypeError("context.set() command must be a Command")
        path = self.assert_command_text(path)
        self.commands[path] = command
        self.logger.debug("registered command %r", path)
        for handler in self.hooks.get("command_added", ()):
            handler(path, command)
        return command

    def get(self, path, /):
        return self.commands.get(self.assert_command_text(path))

    def delete(self, path, /):
        """Remove the command stored at path; True when something was removed."""
        return self.commands.pop(self.assert_command_text(path), None) is not None

    def __contains__(self, path):
        return self.is_valid_command_text(path) and self.clean_command(path) in self.commands

    def __iter__(self):
        return iter(self.commands)

    def __len__(self):
        return len(self.commands)

    def get_sub_commands(self, path="", /):
        """
        The direct children of path ([(path, Command)] in registration order).
        """
        words = _words(self.assert_command_text(path))
        return [
            (key, command) for key, command in self.commands.items()
            if len(_words(key)) == len(words) + 1 and _words(key)[:len(words)] == words
        ]

    def get_ancestors(self, path, /):
        """
        Registered strict word-boundary prefixes of path ([(path, Command)], root first).
        """
        path = self.assert_command_text(path)
        ancestors = [(key, command) for key, command in self.commands.items() if _is_ancestor(key, path)]
        return sorted(ancestors, key=lambda x: len(_words(x[0])))

    def get_all_arguments(self):
        """Every argument template of every command, in table order."""
        return [argument for command in self.commands.values() for argument in command.arguments]

    # --- resolution ---

    def find(self, argv=Unset, /):
        """
        Resolve a token stream to the longest registered command path.

        Returns
        - Resolution, or None when no candidate is registered (only possible without a root command).
        """
        tokens = split_argv(argv)
        candidates = set(possible_commands(tokens))

        path = None
        for key in self.commands:
            if key in candidates and (path is None or len(_words(key)) > len(_words(path))):
                path = key
        if path is None:
            self.logger.debug("no command matches %r", tokens)
            return None

        words = _words(path)
        pending = list(words)
        unmatched = []
        for token in tokens:
            if pending and token == pending[0]:
                pending.pop(0)
            else:
                unmatched.append(token)

        self.logger.debug("resolved %r to command %r (unmatched %r)", tokens, path, unmatched)
        return Resolution(path, words, self.commands[path], self.get_ancestors(path), unmatched, tokens)

    def find_suggestions(self, text, /, max_distance=5):
        """
        Registered paths close to text, nearest first.

        - An exact match yields [] (nothing to suggest).
        - Only paths with distance < max_distance are kept; ties keep registration order.
        - The root path is never suggested.
        """
        text = self.clean_command(text)
        if text in self.commands:
            return []
        distances = {key: levenshtein(text, key) for key in self.commands if key}
        suggestions = [key for key, distance in distances.items() if distance < max_distance]
        return sorted(suggestions, key=distances.__getitem__)

    # --- hooks ---

    def on(self, event, handler, /):
        """
        Subscribe handler (sync or async) to a lifecycle event.

        Events
        - pre_parse(argv), parsed(path, args), invoke(path, args), help(path, command).
        - command_added(path, command) is called synchronously at registration (async handlers are not awaited).
        """
        if event not in HOOKS:
            raise ValueError(f"unknown event {event!r}, expected one of {', '.join(HOOKS)}")
        if not callable(handler):
            raise TypeError("event handler must be callable")
        self.hooks[event].append(handler)
        return handler

    async def emit(self, event, /, *args):
        for handler in self.hooks.get(event, ()):
            await maybe_await(handler(*args))

    def style(self, topic, /):
        """The style configured for an argument kind or help topic ("" when none)."""
        return self.colors.get(str(topic), "")


__all__ = (
    "HOOKS",
    "COLORS",
    "Resolution",
    "Context",
)
