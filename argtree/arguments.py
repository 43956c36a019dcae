r"""
Argtree argument specifications and the per-argument binding state machine.

Overview
- ArgumentKind: named, flag, positional, env, transfer, overflow.
- Argument: one bindable value: names/aliases, default, environment binding, parse transform,
  and the reset/assign state machine reconciling default, environment and command-line values.
- arguments_from_object(obj): derive arguments from a mapping or an arbitrary object.

Binding sources (highest precedence first)
- command-line tokens (assign() calls produced by the token assignment algorithm),
- the bound environment variable (read at reset()),
- the declared default.

State machine
- reset() → state None (unset). If an effective default exists it is assigned right away.
- assign(value) → state True, or the exception raised by the parse transform (the previous value
  is kept in that case).
- False (skipped) is reserved for callers that want to mark an argument as deliberately ignored.

Templates and working copies
- Arguments registered on a command are templates. Each parse works on clone()s so values and
  states never leak between invocations.

Quick example:
    >>> threads = Argument("threads", "named", aliases=["t"], parse=int, environment_variable="THREADS")
    >>> verbose = Argument("verbose", "flag", aliases=["v"])
    >>> files = Argument("files", "overflow")
"""
import copy
import logging
import os
import re
from collections.abc import Iterable, Mapping, MutableMapping
from enum import StrEnum

from .utils import *

logger = logging.getLogger(__name__)

MARKER = "__$"
"""Prefix that marks argument metadata fields in objects passed to arguments_from_object()."""


class ArgumentKind(StrEnum):
    NAMED = "named"
    FLAG = "flag"
    POSITIONAL = "positional"
    ENV = "env"
    TRANSFER = "transfer"
    OVERFLOW = "overflow"


def _to_env_string(value):
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, list | tuple):
        return ",".join(map(str, value))
    return str(value)


def _is_true(value):
    if value is True:
        return True
    if isinstance(value, int) and not isinstance(value, bool):
        return value == 1
    if isinstance(value, str):
        return value in ("1", "true")
    return False


class Argument:
    """
    A single bindable command-line value.

    Attributes
    - kind: ArgumentKind.
    - field_name: key the value is written to on the owner (and in the parsed args mapping).
    - name: normalized identifier (field_name with non-alphanumerics replaced by '-').
    - aliases: tuple of literal names, glob/"re::" patterns or compiled regexes.
    - default, value: declared default and current bound value.
    - environment_variable: variable read at reset() and mirrored on assign(); defaults to
      field_name for kind "env".
    - require: True by default only for positionals.
    - parse: optional value transform (sync or async); exceptions mark the argument errored.
    - collect_multiple: named arguments only; the value becomes a list.
    - description, color: help metadata.
    - owner: object or mapping receiving the value (None: nothing is written back).
    - do_not_assign_to_parent / do_not_assign_to_env: suppress the write-backs.
    """

    def __init__(
            self,
            field_name=None,
            kind=ArgumentKind.NAMED,
            /,
            *,
            name=Unset,
            aliases=(),
            default=None,
            environment_variable=Unset,
            require=Unset,
            parse=None,
            collect_multiple=False,
            description=None,
            color=None,
            owner=None,
            do_not_assign_to_parent=False,
            do_not_assign_to_env=False,
    ):
        if field_name is not None and (not isinstance(field_name, str) or not field_name.strip()):
            raise TypeError("argument 'field_name' must be a non-empty string")
        try:
            self.kind = ArgumentKind(kind)
        except ValueError:
            raise ValueError(f"argument 'kind' must be one of {', '.join(ArgumentKind)}") from None

        if isinstance(aliases, str | re.Pattern):
            aliases = (aliases,)
        elif not isinstance(aliases, Iterable):
            raise TypeError("argument 'aliases' must be a string, a regex or an iterable of them")
        self.aliases = tuple(aliases)
        for alias in self.aliases:
            if not isinstance(alias, str | re.Pattern):
                raise TypeError("argument 'aliases' must be a string, a regex or an iterable of them")

        if parse is not None and not callable(parse):
            raise TypeError("argument 'parse' must be callable")
        if not isinstance(require, bool | UnsetType):
            raise TypeError("argument 'require' must be a boolean")
        if environment_variable is not Unset and not isinstance(environment_variable, str | None):
            raise TypeError("argument 'environment_variable' must be a string")

        self.field_name = field_name
        self._name = name
        self.default = default
        self.value = None
        self._environment_variable = environment_variable
        self._require = require
        self.parse = parse
        self.collect_multiple = bool(collect_multiple)
        self.description = description
        self.color = color
        self.owner = owner
        self.do_not_assign_to_parent = do_not_assign_to_parent
        self.do_not_assign_to_env = do_not_assign_to_env
        self.env_has_been_updated = False
        self._read_env_from_process = False
        self._mirror = {}
        self._state = None

    @classmethod
    def from_descriptor(cls, field_name, descriptor, /, owner=None):
        """
        Build an argument from a mapping descriptor.

        Keys
        - kind (or type), name, aliases, default, environment_variable (or env), require, parse,
          collect_multiple, description, color, do_not_assign_to_parent, do_not_assign_to_env.

        Raises
        - TypeError: on unknown keys or when descriptor is not a mapping.
        """
        if not isinstance(descriptor, Mapping):
            raise TypeError(f"argument {field_name!r} descriptor must be a mapping")
        options = dict(descriptor)
        kind = options.pop("kind", options.pop("type", ArgumentKind.NAMED))
        if "env" in options:
            options["environment_variable"] = options.pop("env")
        try:
            return cls(field_name, kind, owner=owner, **options)
        except TypeError as exception:
            raise TypeError(f"argument {field_name!r} descriptor is invalid: {exception}") from None

    @property
    def name(self):
        if self._name is not Unset:
            return self._name
        if self.field_name is None:
            return None
        return re.sub(r"[^a-zA-Z0-9]", "-", self.field_name)

    @name.setter
    def name(self, name):
        self._name = name

    @property
    def environment_variable(self):
        if self._environment_variable is not Unset:
            return self._environment_variable
        return self.field_name if self.kind is ArgumentKind.ENV else None

    @environment_variable.setter
    def environment_variable(self, name):
        self._environment_variable = name

    @property
    def require(self):
        """True when the argument must be assigned; defaults to True only for positionals."""
        return coalesce(self._require, self.kind is ArgumentKind.POSITIONAL)

    @require.setter
    def require(self, require):
        self._require = require

    @property
    def names(self):
        """The name plus every literal (non-pattern) alias."""
        names = [self.name] if self.name is not None else []
        for alias in self.aliases:
            if isinstance(alias, str) and re.fullmatch(r"[\w-]+", alias) and alias not in names:
                names.append(alias)
        return names

    @property
    def is_collectable(self):
        """True when the value is a list of every assigned value rather than a scalar."""
        match self.kind:
            case ArgumentKind.OVERFLOW | ArgumentKind.TRANSFER:
                return True
            case ArgumentKind.NAMED:
                return self.collect_multiple
            case _:
                return False

    @property
    def env_value(self):
        """The current value of the bound environment variable, or None."""
        if isinstance(self.environment_variable, str):
            return os.environ.get(self.environment_variable)
        return None

    @property
    def read_env_from_process(self):
        """True when the last reset() found the environment variable set."""
        return self._read_env_from_process

    @property
    def state(self):
        """None (unset), True (assigned), False (skipped) or the parse exception (errored)."""
        return self._state

    @property
    def assigned(self):
        return self._state is True

    @property
    def errored(self):
        return isinstance(self._state, Exception)

    @property
    def error(self):
        return self._state if self.errored else None

    def skip(self):
        """Mark the argument as deliberately not assigned for this parse."""
        self._state = False

    def bind(self, field_name=Unset, owner=Unset):
        """
        Return a copy of this template attached to a field and/or an owner.
        """
        bound = copy.copy(self)
        bound.field_name = coalesce(field_name, self.field_name)
        bound.owner = coalesce(owner, self.owner)
        return bound

    def clone(self):
        """
        Return a fresh working copy: same declaration, no value, no state.
        """
        clone = copy.copy(self)
        clone.value = None
        clone.env_has_been_updated = False
        clone._read_env_from_process = False
        clone._state = None
        return clone

    def matches(self, name, /):
        """True when name equals the argument name or satisfies one of its aliases."""
        if self.name == name:
            return True
        return any(matches(alias, name) for alias in self.aliases)

    def notation(self, name=Unset, /):
        """
        Render a name the way users type it.

        - named/flag: "-x" for single letters, "--name" otherwise.
        - positional: "<name>" when required, "[name]" otherwise.
        - overflow/transfer: "{...name}".
        - env: the variable name.
        """
        name = coalesce(name, self.name) or ""
        match self.kind:
            case ArgumentKind.POSITIONAL:
                return f"<{name}>" if self.require else f"[{name}]"
            case ArgumentKind.NAMED | ArgumentKind.FLAG:
                return ("--" if len(name) > 1 else "-") + name
            case ArgumentKind.OVERFLOW | ArgumentKind.TRANSFER:
                return "{...%s}" % name
            case _:
                return self.environment_variable or name

    def notations(self):
        return [self.notation(name) for name in self.names] or [self.notation()]

    def set_value_to_env(self):
        """
        Mirror the effective value (value, or default when value is None) into the environment.
        None deletes the variable.
        """
        if self.do_not_assign_to_env or not isinstance(self.environment_variable, str):
            return
        value = self.value if self.value is not None else self.default
        if value is None:
            os.environ.pop(self.environment_variable, None)
            self._mirror.pop("written", None)
        else:
            os.environ[self.environment_variable] = self._mirror["written"] = _to_env_string(value)
        self.env_has_been_updated = True

    def _process_env_value(self):
        # the last write-back (shared with clones) stands for the value found before it
        env_value = self.env_value
        if env_value is not None and env_value == self._mirror.get("written"):
            env_value = self._mirror.get("origin")
        self._mirror["origin"] = env_value
        return env_value

    def _store(self):
        if not self.do_not_assign_to_parent and self.owner is not None:
            if isinstance(self.owner, MutableMapping):
                self.owner[self.field_name] = self.value
            else:
                setattr(self.owner, self.field_name, self.value)
        self.set_value_to_env()

    async def _parse_value(self, value):
        try:
            result = await maybe_await(self.parse(value))
        except Exception as exception:
            logger.debug("argument %r failed to parse %r: %s", self.field_name, value, exception)
            self._state = exception
            return self.value
        return result

    async def reset(self):
        """
        Clear the assignment state and re-derive the value from environment or default.

        The environment value wins over the declared default. A value this argument mirrored
        into the environment itself is not read back, so resetting twice gives the same result.
        Collectable arguments split environment values on ",". When neither exists the argument
        stays unset (a required argument will then be reported as missing).
        """
        self.env_has_been_updated = False
        self._state = None
        self.value = None
        env_value = self._process_env_value()
        self._read_env_from_process = env_value is not None

        if env_value is not None and self.is_collectable:
            await self.assign([])
            for item in env_value.split(","):
                await self.assign(item)
            return

        default = env_value if env_value is not None else self.default

        if default is not None:
            await self.assign(default)
            return

        if self.kind is ArgumentKind.FLAG:
            self.value = False
        if not self.do_not_assign_to_parent and self.owner is not None:
            self._store()

    async def assign(self, value):
        """
        Assign a value (parsing it first when a transform is configured).

        - flag: without a transform, True for True/1/"1"/"true", False otherwise.
        - collectable: a list/tuple replaces the value; None is ignored; anything else is appended.
        - others: the scalar value is replaced.
        The value is then written to the owner and mirrored to the environment. An item that
        failed to parse keeps a collectable argument errored until a list replaces its value.
        """
        if not (self.is_collectable and self.errored) or isinstance(value, list | tuple):
            self._state = None
        if self.kind is ArgumentKind.FLAG:
            self.value = await self._parse_value(value) if self.parse else _is_true(value)
        elif self.is_collectable:
            if isinstance(value, list | tuple):
                self.value = list(value)
            elif value is not None:
                parsed = await self._parse_value(value) if self.parse else value
                if not self.errored:
                    if not isinstance(self.value, list):
                        self.value = []
                    self.value.append(parsed)
        else:
            self.value = await self._parse_value(value) if self.parse else value

        self._store()
        if not self.errored:
            self._state = True

    def __repr__(self):
        return "argument(%s)" % ", ".join("%s=%r" % pair for pair in self.__rich_repr__())

    def __rich_repr__(self):
        yield "field_name", self.field_name
        yield "kind", str(self.kind)
        if self.aliases:
            yield "aliases", self.aliases
        if self.environment_variable:
            yield "environment_variable", self.environment_variable
        yield "value", self.value


def _object_items(object):
    if isinstance(object, Mapping):
        return list(object.items())
    try:
        attributes = vars(object)
    except TypeError:
        raise TypeError("cannot retrieve arguments from a non object type") from None
    declared = {}
    for klass in reversed(type(object).__mro__):
        for key, value in vars(klass).items():
            if isinstance(value, Argument):
                declared[key] = value
    return list((declared | attributes).items())


def arguments_from_object(object, /):
    """
    Derive argument templates from a mapping or an arbitrary object.

    Rules
    - Callables are never arguments.
    - When any key/attribute starts with MARKER ("__$"), only marked entries are arguments; the field
      name is the key without the marker and its current value (if not None) becomes the default.
    - Objects (non-mappings) always use the marker rule, and also contribute attributes (instance or
      class level) holding Argument instances.
    - Plain mappings without markers: every entry is an argument.
    - Entry values: Argument → bound copy; mapping → descriptor; anything else → named argument default.

    Objects and marked mappings own the derived arguments, so parsed values are written back onto them.
    Arguments derived from a plain descriptor mapping have no owner.
    """
    if object is None:
        return []

    items = [(key, value) for key, value in _object_items(object) if isinstance(value, Argument) or not callable(value)]
    marked = any(isinstance(key, str) and key.startswith(MARKER) for key, _ in items)
    if not isinstance(object, Mapping):
        items = [(key, value) for key, value in items if key.startswith(MARKER) or isinstance(value, Argument)]
    elif marked:
        items = [(key, value) for key, value in items if key.startswith(MARKER)]
    owner = object if marked or not isinstance(object, Mapping) else None

    def current(field_name):
        if isinstance(object, Mapping):
            return object.get(field_name)
        return getattr(object, field_name, None)

    arguments = []
    for key, value in items:
        if not isinstance(key, str):
            raise TypeError("argument field names must be strings")
        is_marked = key.startswith(MARKER)
        field_name = key[len(MARKER):] if is_marked else key
        if not field_name:
            raise ValueError(f"marked argument properties must have a name, i.e. {MARKER}my_prop")

        if isinstance(value, Argument):
            argument = value.bind(field_name, owner if owner is not None else Unset)
        elif isinstance(value, Mapping):
            argument = Argument.from_descriptor(field_name, value, owner=owner)
        elif is_marked:
            raise TypeError(f"marked argument {key!r} must hold a descriptor mapping or an argument")
        else:
            argument = Argument(field_name, ArgumentKind.NAMED, default=value, owner=owner)

        if is_marked and (default := current(field_name)) is not None and not isinstance(default, Argument):
            argument.default = default
        arguments.append(argument)

    return arguments


__all__ = (
    "MARKER",
    "ArgumentKind",
    "Argument",
    "arguments_from_object",
)
