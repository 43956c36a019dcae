"""
Argtree default help formatter (rich renderables).

Layout
- help_prefix
- Usage: "<prog> <path> <positional> [optional] {...overflow} -- {...transfer}"
- description
- Commands: direct sub-commands (actions and menus styled apart) with descriptions.
- Input / Args / Flags: one row per argument: notations, required marker, description, current value.
- Envs: every bound environment variable; "+" when the variable was read from the process.
- Example, help_suffix

Custom formatters replace render_help through Context.help_formatter and receive the same
arguments (path, command, cli, **options).
"""
from rich.console import Group
from rich.table import Table
from rich.text import Text

from .arguments import *


def _painter(cli, colorful):
    colors = cli.context.colors

    def text(fragment, topic="", style=None):
        if fragment is None or fragment == "":
            return Text("")
        if not colorful:
            return Text(str(fragment))
        return Text(str(fragment), style or colors.get(topic, ""))

    return text


def _section(text, title):
    table = Table(
        title=text(title.title(), "section"),
        title_justify="left",
        show_header=False,
        box=None,
        padding=(0, 2),
    )
    return table


def usage(path, command, cli, /, *, colorful=True):
    """The usage line for a command as a Text."""
    text = _painter(cli, colorful)
    parts = [text("Usage", "section"), " ", text(cli.context.name, "prog")]
    if path:
        parts += [" ", text(path, "command")]
    for argument in command.by_kind(ArgumentKind.POSITIONAL):
        parts += [" ", text(argument.notation(), argument.kind, argument.color)]
    if overflow := command.by_kind(ArgumentKind.OVERFLOW):
        parts += [" ", text(overflow[0].notation(), "overflow", overflow[0].color)]
    if transfer := command.by_kind(ArgumentKind.TRANSFER):
        parts += [" -- ", text(transfer[0].notation(), "transfer", transfer[0].color)]
    return Text.assemble(*parts)


def _current_value(argument):
    value = argument.value if argument.value is not None else argument.default
    if value is None or value is False or value == []:
        return None
    if isinstance(value, list | tuple):
        value = ",".join(map(str, value))
    return f"[{value}]"


def render_help(path, command, cli, /, *, show_all=False, colorful=True):
    """
    Render the help of one command.

    Parameters
    - path: normalized command path ("" for the root).
    - command: the command (usually the working copy, so current values are shown).
    - cli: the owning Cli (program name, colors, sub-commands).
    - show_all: include inherited parent options even when the context hides them.
    - colorful: when False, no styles are applied.
    """
    text = _painter(cli, colorful)
    hide = cli.context.hide_parent_command_options_on_help and not show_all
    arguments = command.own_arguments() if hide else list(command.arguments)

    renders = []
    if command.help_prefix:
        renders += [text(command.help_prefix, "description"), Text("")]

    renders.append(usage(path, command, cli, colorful=colorful))
    if command.description:
        renders.append(Text.assemble("  ", text(command.description, "description")))
    renders.append(Text(""))

    if children := cli.context.get_sub_commands(path):
        table = _section(text, "commands")
        for key, child in children:
            name = key.split(" ")[-1]
            table.add_row(text(name, "command" if child.action else "menu"), text(child.description, "description"))
        renders += [table, Text("")]

    def argument_rows(title, arguments):
        table = _section(text, title)
        for argument in arguments:
            table.add_row(
                text(" | ".join(argument.notations()), argument.kind, argument.color),
                text("*" if argument.require else "", "required"),
                text(argument.description, "description"),
                text(_current_value(argument), "value"),
            )
        return table

    inputs = [
        *(argument for argument in arguments if argument.kind in (ArgumentKind.OVERFLOW, ArgumentKind.TRANSFER)),
        *(argument for argument in arguments if argument.kind is ArgumentKind.POSITIONAL),
    ]
    for title, group in (
            ("input", inputs),
            ("args", [argument for argument in arguments if argument.kind is ArgumentKind.NAMED]),
            ("flags", [argument for argument in arguments if argument.kind is ArgumentKind.FLAG]),
    ):
        if group:
            renders += [argument_rows(title, group), Text("")]

    environment = {}
    for argument in arguments:
        if isinstance(argument.environment_variable, str):
            environment.setdefault(argument.environment_variable, []).append(argument)
    if environment:
        table = _section(text, "envs")
        for variable in sorted(environment):
            bound = environment[variable]
            read = any(argument.read_env_from_process for argument in bound)
            others = [argument for argument in bound if argument.kind is not ArgumentKind.ENV]
            if others:
                detail = text(" | ".join(argument.notation() for argument in others), "description")
            else:
                detail = text(" and ".join(x.description for x in bound if x.description), "description")
            table.add_row(
                text(variable, "env"),
                text("+" if read else "-", "env-read" if read else "env-unset"),
                detail,
            )
        renders += [table, Text("")]

    if command.example:
        renders += [text("Example", "section"), Text.assemble("  ", text(command.example, "example")), Text("")]

    if command.help_suffix:
        renders.append(text(command.help_suffix, "description"))

    while renders and isinstance(renders[-1], Text) and not renders[-1].plain:
        renders.pop()
    return Group(*renders)


__all__ = (
    "usage",
    "render_help",
)
