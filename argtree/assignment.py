"""
Argtree token assignment: map the residual tokens of a resolved command onto its arguments.

Behavior
- Compound short flags are expanded first ("-ab" → "-a", "-b"), never after "--".
- Everything after the first "--" is captured verbatim for transfer arguments.
- A flag-shaped token closes any pending named match (which then receives None), then:
  • flags matching the stripped name get True,
  • named arguments matching it become pending and take the next non-flag token,
  • "--name=value" is tried when nothing matches the full name,
  • otherwise the stripped name is reported as unknown.
- A non-flag token goes to the pending named arguments, else to the next positional (declaration
  order), else to the overflow.
- After the scan every overflow argument collects the overflow tokens and every transfer argument
  the transfer tokens, one assignment per token so each one is parsed on its own.

Nothing is assigned here: the result lists (argument, value) pairs so the caller can await each
assignment in order.
"""
import logging
from collections import namedtuple

from .arguments import *
from .tokens import *
from .utils import *

logger = logging.getLogger(__name__)

Assignments = namedtuple("Assignments", ("assignments", "overflow", "transfer", "unknown_names"))
Assignments.__doc__ = """
The outcome of assign_tokens().

- assignments: [(Argument, value)] in the order they must be applied.
- overflow: non-flag tokens no positional or named argument consumed.
- transfer: tokens following "--".
- unknown_names: stripped flag names no argument matched.
"""


def assign_tokens(tokens, arguments, /):
    """
    Compute the (argument, value) assignments for a token list.

    Parameters
    - tokens: residual tokens (command path words already removed).
    - arguments: the working arguments of the command, in declaration order.

    Returns
    - Assignments(assignments, overflow, transfer, unknown_names)
    """
    arguments = list(arguments)
    positionals = [argument for argument in arguments if argument.kind is ArgumentKind.POSITIONAL]
    named = [argument for argument in arguments if argument.kind is ArgumentKind.NAMED]
    flags = [argument for argument in arguments if argument.kind is ArgumentKind.FLAG]

    assignments = []
    overflow = []
    transfer = []
    unknown_names = []
    pending = []

    def finalize(value=None):
        assignments.extend((argument, value) for argument in pending)
        pending.clear()

    def match(name, value=Unset):
        matched = False
        for argument in flags:
            if argument.matches(name):
                assignments.append((argument, coalesce(value, True)))
                matched = True
        for argument in named:
            if argument.matches(name):
                if value is Unset:
                    pending.append(argument)
                else:
                    assignments.append((argument, value))
                matched = True
        return matched

    transferring = False
    for token in expand_compound_flags(tokens):
        if transferring:
            transfer.append(token)
            continue
        if token == TRANSFER_MARKER:
            finalize()
            transferring = True
            continue

        # a lone "-" is a value (stdin by convention), not a flag
        if is_flag(token) and token != "-":
            finalize()
            name = strip_flag(token)
            if match(name):
                continue
            if "=" in name:
                key, value = name.split("=", 1)
                if key and match(key, value):
                    continue
            logger.debug("no argument matches %r", token)
            unknown_names.append(name)
        elif pending:
            finalize(token)
        elif positionals:
            assignments.append((positionals.pop(0), token))
        else:
            overflow.append(token)

    finalize()

    for sink, kind in ((overflow, ArgumentKind.OVERFLOW), (transfer, ArgumentKind.TRANSFER)):
        if not sink:
            continue
        for argument in arguments:
            if argument.kind is kind:
                # start from an empty collection, then one assignment per token
                assignments.append((argument, []))
                assignments.extend((argument, token) for token in sink)

    return Assignments(assignments, overflow, transfer, unknown_names)


__all__ = (
    "Assignments",
    "assign_tokens",
)
