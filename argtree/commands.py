"""
Argtree command descriptors.

A Command is the value stored in the command table under a normalized path: the ordered argument
templates, the optional action and the help metadata. The table never parses with the templates
themselves: every invocation works on clone().
"""
from collections.abc import Iterable, Mapping

from .arguments import *


OPTIONS = ("action", "description", "example", "help_prefix", "help_suffix", "inherit_parent_named_options")


def _as_arguments(args, owner=None):
    if args is None:
        return []
    if isinstance(args, Argument):
        return [args]
    if isinstance(args, Iterable) and not isinstance(args, str | Mapping):
        arguments = list(args)
        for argument in arguments:
            if not isinstance(argument, Argument):
                raise TypeError("command arguments must be argument instances")
        return arguments
    arguments = arguments_from_object(args)
    if owner is not None:
        arguments = [argument.bind(owner=owner) for argument in arguments]
    return arguments


class Command:
    """
    A registered command.

    Attributes
    - arguments: ordered argument templates (declaration order drives positional consumption).
    - action: callable (sync or async) receiving the parsed args mapping; None for menu commands.
    - description, example, help_prefix, help_suffix: help metadata.
    - inherit_parent_named_options: when True (default), named arguments and flags of ancestors are
      appended to this command's working copy at parse time.
    """

    def __init__(
            self,
            arguments=(),
            action=None,
            /,
            *,
            description=None,
            example=None,
            help_prefix=None,
            help_suffix=None,
            inherit_parent_named_options=True,
    ):
        if action is not None and not callable(action):
            raise TypeError("command action must be callable")
        self.arguments = _as_arguments(arguments)
        self.action = action
        self.description = description
        self.example = example
        self.help_prefix = help_prefix
        self.help_suffix = help_suffix
        self.inherit_parent_named_options = inherit_parent_named_options
        self.inherited = []

    def load_from_object(self, object, owner=None, /):
        """
        Append the arguments derived from an object (mapping, Argument list, or marked object).

        When owner is given the derived arguments write their values to it instead of to object.
        """
        self.arguments.extend(_as_arguments(object, owner))
        return self

    def update(self, **options):
        """Overwrite metadata (action, description, example, help_prefix, help_suffix, inheritance)."""
        for key, value in options.items():
            if key not in OPTIONS:
                raise TypeError(f"unknown command option {key!r}")
            if key == "action" and value is not None and not callable(value):
                raise TypeError("command action must be callable")
            setattr(self, key, value)
        return self

    def clone(self):
        """Return a working copy whose arguments are fresh clones of the templates."""
        clone = Command(
            [argument.clone() for argument in self.arguments],
            self.action,
            description=self.description,
            example=self.example,
            help_prefix=self.help_prefix,
            help_suffix=self.help_suffix,
            inherit_parent_named_options=self.inherit_parent_named_options,
        )
        return clone

    def inherit(self, arguments, /):
        """Append inherited (already cloned) arguments and remember which ones they are."""
        self.inherited.extend(arguments)
        self.arguments.extend(arguments)

    def own_arguments(self):
        return [argument for argument in self.arguments if not any(argument is x for x in self.inherited)]

    def by_kind(self, *kinds):
        return [argument for argument in self.arguments if argument.kind in kinds]

    def __repr__(self):
        return "command(%s)" % ", ".join("%s=%r" % pair for pair in self.__rich_repr__())

    def __rich_repr__(self):
        yield "arguments", [argument.field_name for argument in self.arguments]
        if self.action is not None:
            yield "action", getattr(self.action, "__qualname__", self.action)
        if self.description:
            yield "description", self.description


__all__ = (
    "Command",
)
