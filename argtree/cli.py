"""
Argtree registration API and parse orchestrator.

Overview
- Cli: register commands (set/command/default/on/arguments/remove), parse token streams, render help.
- ParseOptions: per-call behavior switches (invocation, help/error reporting, strictness, exit code).
- ParseResult / ParseStatus: what a parse produced.

Parse flow
- resolving: emit pre_parse, resolve the longest registered path, clone its command, append inherited
  parent named options and the built-in flags (--help/-h, --help-all, --no-color).
- resetting: reset the working arguments, then working copies of environment-bound arguments of
  other commands (defaults and environment values are mirrored for the whole table).
- assigning: assign_tokens() over the unmatched tokens, each assignment awaited in order.
- validating: parse errors, missing required arguments and (when strict) unknown names and stray
  positionals are collected into a CommandExit. Nothing is raised.
- then one of: help, error report, or emit parsed/invoke and await the action.

Quick example:
    >>> cli = Cli("tool")
    >>> cli.on("build", lambda args: print(args["target"]), {"target": {"kind": "positional"}})
    >>> cli.run(["build", "docs"])
"""
import asyncio
import dataclasses
import io
import logging
import sys
from enum import StrEnum

from rich.console import Console

from .arguments import *
from .assignment import *
from .commands import *
from .context import *
from .faults import *
from .help import render_help
from .tokens import *
from .utils import *

logger = logging.getLogger(__name__)


class ParseStatus(StrEnum):
    INVOKED = "invoked"
    PARSED = "parsed"
    HELP = "help"
    FAILED = "failed"
    NOT_FOUND = "not_found"


@dataclasses.dataclass(frozen=True)
class ParseOptions:
    """
    Behavior switches for one parse.

    - invoke: await the command action after a successful parse.
    - show_help: allow help rendering (help flag or menu command).
    - show_errors: print faults to the error console.
    - show_errors_on_help: also print faults when help is shown instead.
    - show_help_on_error: print help before the faults.
    - show_help_on_menu: show help when the resolved command has no action.
    - show_did_you_mean: add suggestions to the command-not-found report.
    - throw_command_not_found_error: raise CommandNotFoundError instead of returning a result.
    - strict: unknown names and unconsumed positionals are faults.
    - exit_code_on_error: the exit code reported on failure (-1: none).
    """
    invoke: bool = True
    show_help: bool = True
    show_errors: bool = True
    show_errors_on_help: bool = False
    show_help_on_error: bool = False
    show_help_on_menu: bool = True
    show_did_you_mean: bool = True
    throw_command_not_found_error: bool = False
    strict: bool = True
    exit_code_on_error: int = 2

    def replace(self, **overrides):
        return dataclasses.replace(self, **overrides)

    @property
    def exit_code(self):
        return None if self.exit_code_on_error == -1 else self.exit_code_on_error


@dataclasses.dataclass
class ParseResult:
    status: ParseStatus
    command: Command | None = None
    path: str | None = None
    args: dict = dataclasses.field(default_factory=dict)
    faults: CommandException | CommandExit | None = None
    exit_code: int | None = None
    overflow: list = dataclasses.field(default_factory=list)
    transfer: list = dataclasses.field(default_factory=list)
    unknown_names: list = dataclasses.field(default_factory=list)

    @property
    def ok(self):
        return self.status not in (ParseStatus.FAILED, ParseStatus.NOT_FOUND)


def builtin_arguments(context, /):
    """The built-in flags the context is configured to catch, as fresh arguments."""
    arguments = []
    if context.catch_help_markers:
        arguments += [
            Argument("help", "flag", aliases=["h"], description="show this help"),
            Argument("help_all", "flag", description="show help including inherited options"),
        ]
    if context.catch_no_color_marker:
        arguments.append(Argument("no_color", "flag", description="disable colored output"))
    return arguments


class CommandHandle:
    """
    A registration handle scoped to one command path.

        >>> remote = cli.command("remote", options={"description": "manage remotes"})
        >>> remote.command("add", {"name": {"kind": "positional"}}).on(add_remote)
    """

    def __init__(self, cli, path):
        self.cli = cli
        self.path = path

    def get(self):
        return self.cli.get(self.path)

    def on(self, action, args=None, options=None):
        """Set (or replace) the action of this command, optionally adding arguments."""
        self.get().update(action=action, **dict(options or {}))
        if args is not None:
            self.cli.arguments(args, self.path)
        return self

    def arguments(self, args):
        self.cli.arguments(args, self.path)
        return self

    def command(self, path, args=None, options=None):
        return self.cli.command(f"{self.path} {path}", args, options)

    def __repr__(self):
        return f"command_handle({self.path!r})"


class Cli:
    """
    The command tree and its parser.

    Parameters
    - name: program name (defaults to the script name).
    - context: a prepared Context (name and context_options are then ignored).
    - console / error_console: rich consoles for help and faults (stdout / stderr by default).
    - parse_options: default ParseOptions for every parse.
    - context_options: forwarded to Context (logger, colors, help_formatter, catch_* switches, ...).
    """

    def __init__(self, name=None, /, *, context=None, console=None, error_console=None, parse_options=None,
                 **context_options):
        self.context = context or Context(name, **context_options)
        self.console = console or Console()
        self.error_console = error_console or Console(stderr=True)
        self.parse_options = parse_options or ParseOptions()

    @property
    def name(self):
        return self.context.name

    # --- registration ---

    def set(self, path, args=None, options=None):
        """Register (or replace) the command at path; returns the cli for chaining."""
        options = dict(options or {})
        command = Command(
            (),
            options.pop("action", None),
            **options,
        )
        command.load_from_object(args)
        self.context.set(path, command)
        return self

    def command(self, path, args=None, options=None):
        """Register the command at path and return a handle scoped to it."""
        self.set(path, args, options)
        return CommandHandle(self, self.context.clean_command(path))

    def get(self, path=""):
        return self.context.get(path)

    def default(self, action, args=None, options=None):
        """Register the root command ("") with an action."""
        return self.on("", action, args, options)

    def on(self, path, action, args=None, options=None):
        """Register the command at path with an action."""
        if not callable(action):
            raise TypeError("command action must be callable")
        return self.set(path, args, {**dict(options or {}), "action": action})

    def arguments(self, args, path=""):
        """Append arguments to the command at path (a menu command is created when missing)."""
        if (command := self.get(path)) is None:
            self.set(path)
            command = self.get(path)
        command.load_from_object(args)
        return self

    def remove(self, path):
        """Unregister the command at path; True when it existed."""
        return self.context.delete(path)

    def hook(self, event, handler):
        """Subscribe to a lifecycle event (see Context.on)."""
        return self.context.on(event, handler)

    # --- help ---

    def working_command(self, path, template, ancestors=None, builtins=None):
        """
        Build the per-invocation copy of a command: cloned arguments, inherited parent named options
        (nearest parent first, stopping at the first parent that does not inherit) and the built-in flags.
        """
        command = template.clone()
        if command.inherit_parent_named_options:
            if ancestors is None:
                ancestors = self.context.get_ancestors(path)
            for _, ancestor in reversed(ancestors):
                command.inherit([
                    argument.clone() for argument in ancestor.arguments
                    if argument.kind is ArgumentKind.NAMED
                ])
                if not ancestor.inherit_parent_named_options:
                    break
        command.arguments.extend(builtins if builtins is not None else builtin_arguments(self.context))
        return command

    def render_help(self, path="", command=None, *, show_all=False, colorful=True):
        path = self.context.assert_command_text(path)
        if command is None:
            command = self.working_command(path, self.get(path) or Command())
        formatter = self.context.help_formatter or render_help
        return formatter(path, command, self, show_all=show_all, colorful=colorful)

    def get_help_text(self, path="", *, show_all=False, width=100):
        """Render the help of a registered command as plain text."""
        console = Console(file=io.StringIO(), color_system=None, width=width)
        console.print(self.render_help(path, show_all=show_all, colorful=False))
        return console.file.getvalue()

    async def show_help(self, path="", command=None, *, show_all=False, colorful=True):
        """Print the help of a command to the console and emit the help event."""
        path = self.context.assert_command_text(path)
        if command is None:
            command = self.working_command(path, self.get(path) or Command())
        self.console.print(self.render_help(path, command, show_all=show_all, colorful=colorful))
        await self.context.emit("help", path, command)

    # --- parsing ---

    async def parse(self, argv=Unset, options=None, **overrides):
        """
        Resolve, bind, validate and (optionally) invoke.

        Parameters
        - argv: Unset (sys.argv[1:]), a shell-like string, or an iterable of strings.
        - options: ParseOptions (defaults to Cli.parse_options).
        - overrides: ParseOptions fields to override for this call.

        Returns
        - ParseResult

        Raises
        - CommandNotFoundError: only when throw_command_not_found_error is set.
        - anything the command action raises.
        """
        options = options or self.parse_options
        if overrides:
            options = options.replace(**overrides)

        tokens = split_argv(argv)
        await self.context.emit("pre_parse", tokens)

        resolution = self.context.find(tokens)
        if resolution is None:
            return await self._not_found(tokens, options)

        template = resolution.command
        flags = builtin_arguments(self.context)
        command = self.working_command(resolution.path, template, resolution.ancestors, flags)
        builtins = {argument.field_name: argument for argument in flags}

        active = {id(argument) for argument in template.arguments}
        external = [
            argument.clone() for argument in self.context.get_all_arguments()
            if id(argument) not in active and isinstance(argument.environment_variable, str)
        ]

        for argument in command.arguments:
            await argument.reset()
        for argument in external:
            await argument.reset()

        assignments = assign_tokens(resolution.unmatched, command.arguments)
        for argument, value in assignments.assignments:
            logger.debug("assigning %r to %r", value, argument.field_name)
            await argument.assign(value)

        colorful = not ("no_color" in builtins and builtins["no_color"].value)
        failure = self._validate(resolution.path, command, external, assignments, options, colorful)

        args = {}
        for argument in command.arguments:
            args.setdefault(argument.field_name, argument.value)

        result = ParseResult(
            ParseStatus.PARSED,
            command,
            resolution.path,
            args,
            failure,
            None,
            assignments.overflow,
            assignments.transfer,
            assignments.unknown_names,
        )

        asked = "help" in builtins and (builtins["help"].value or builtins["help_all"].value)
        menu = command.action is None and options.show_help_on_menu and failure is None
        if options.show_help and (asked or menu):
            if failure is not None and options.show_errors_on_help:
                self.error_console.print(failure)
            show_all = bool("help_all" in builtins and builtins["help_all"].value)
            await self.show_help(resolution.path, command, show_all=show_all, colorful=colorful)
            result.status = ParseStatus.HELP
            return result

        if failure is not None:
            if options.show_help_on_error:
                await self.show_help(resolution.path, command, colorful=colorful)
            if options.show_errors:
                self.error_console.print(failure)
            result.status = ParseStatus.FAILED
            result.exit_code = options.exit_code
            return result

        await self.context.emit("parsed", resolution.path, args)
        if options.invoke and command.action is not None:
            await self.context.emit("invoke", resolution.path, args)
            logger.debug("invoking command %r", resolution.path)
            await maybe_await(command.action(args))
            result.status = ParseStatus.INVOKED
        return result

    def _validate(self, path, command, external, assignments, options, colorful):
        prog = " ".join(filter(None, (self.name, path)))
        faults = []
        for argument in [*command.arguments, *external]:
            if argument.errored:
                faults.append(ArgumentParseError(
                    f"invalid value for {argument.notation()}: {argument.error}",
                    argument=argument,
                    exception=argument.error,
                    prog=prog,
                    colorful=colorful,
                ))
        for argument in [*command.arguments, *external]:
            if argument.require and not argument.assigned and not argument.errored:
                faults.append(RequiredArgumentError(
                    f"missing required argument {argument.notation()}",
                    argument=argument,
                    prog=prog,
                    colorful=colorful,
                ))

        if options.strict:
            for name in assignments.unknown_names:
                token = ("--" if len(name) > 1 else "-") + name
                faults.append(UnknownTokenError(f"unknown flag or argument {token}", token=token, prog=prog, colorful=colorful))
            if not command.by_kind(ArgumentKind.OVERFLOW):
                for token in assignments.overflow:
                    faults.append(UnexpectedPositionalError(
                        f"unexpected positional value {token!r}",
                        token=token,
                        prog=prog,
                        colorful=colorful,
                    ))

        if not faults:
            return None
        logger.debug("command %r failed validation with %d fault(s)", path, len(faults))
        return CommandExit(faults, prog=prog, colorful=colorful, exit_code=options.exit_code)

    async def _not_found(self, tokens, options):
        colorful = not (self.context.catch_no_color_marker and "--no-color" in tokens)
        words = [token for token in tokens if is_command_word(token)]
        text = " ".join(words)

        hint = None
        if options.show_did_you_mean and (suggestions := self.context.find_suggestions(text)):
            hint = "did you mean: " + ", ".join(suggestions)
        fault = CommandNotFoundError(f"command {text!r} not found", hint=hint, prog=self.name, colorful=colorful)

        if options.show_help_on_error:
            await self.show_help("", colorful=colorful)
        if options.show_errors:
            self.error_console.print(fault)
        if options.throw_command_not_found_error:
            raise fault
        return ParseResult(ParseStatus.NOT_FOUND, faults=fault, exit_code=options.exit_code)

    def run(self, argv=Unset, **overrides):
        """
        Parse on a fresh event loop and exit the process when the result carries an exit code.
        """
        result = asyncio.run(self.parse(argv, **overrides))
        if result.exit_code is not None:
            sys.exit(result.exit_code)
        return result


__all__ = (
    "ParseStatus",
    "ParseOptions",
    "ParseResult",
    "CommandHandle",
    "Cli",
    "builtin_arguments",
)
