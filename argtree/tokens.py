"""
Argtree token helpers: argv splitting, token classification and command-path enumeration.

Overview
- split_argv(prompt): normalize a prompt (Unset, string or iterable of strings) into a list of tokens.
  Strings are split shell-style, honoring single and double quoted spans.
- is_flag(token) / is_command_word(token): the two token classes the resolver cares about.
- possible_commands(argv): every command path the token stream could be addressing.
- expand_compound_flags(tokens): "-abc" → "-a", "-b", "-c".

Why enumeration
- There is no delimiter between "this token continues the command path" and "this token is an
  argument value". A word following a flag may be the flag's value (so it is not part of the path)
  or the next path word; both interpretations are kept and the resolver picks the longest path
  that is actually registered.
"""
import logging
import re
import shlex
import sys
from collections.abc import Iterable

from .utils import Unset

logger = logging.getLogger(__name__)

MAX_COMMAND_VARIANTS = 512

TRANSFER_MARKER = "--"

_COMMAND_WORD = re.compile(r"[a-zA-Z0-9_-]+")
_COMPOUND_FLAG = re.compile(r"-[a-zA-Z0-9]{2,}")


def split_argv(prompt=Unset, /):
    """
    Normalize a prompt into a list of string tokens.

    Parameters
    - prompt:
      • Unset: read tokens from sys.argv[1:].
      • str: shell-like string; split with shlex.split (quotes group words, e.g. 'a "b c" d').
      • Iterable[str]: pre-tokenized sequence; each element is trimmed, empty ones dropped.

    Raises
    - TypeError: when prompt is not Unset/str/Iterable[str], or when an iterable
      contains a non-string element.
    """
    if prompt is Unset:
        return sys.argv[1:]
    if isinstance(prompt, str):
        return shlex.split(prompt)
    if not isinstance(prompt, Iterable):
        raise TypeError("split_argv() argument must be a string or an iterable of strings")

    tokens = []
    for item in prompt:
        if not isinstance(item, str):
            raise TypeError("split_argv() argument must be a string or an iterable of strings")
        if item := item.strip():
            tokens.append(item)
    return tokens


def is_flag(token, /):
    """
    True for flag-shaped tokens ("-x", "--name", and the bare "-"/"--").
    """
    return token.startswith("-")


def is_command_word(token, /):
    """
    True for tokens that may be part of a command path (letters, digits, '_' and '-').
    """
    return not is_flag(token) and _COMMAND_WORD.fullmatch(token) is not None


def strip_flag(token, /):
    """
    Remove the leading '--' or '-' from a flag-shaped token.
    """
    return token[2:] if token.startswith("--") else token[1:]


def possible_commands(argv, /, *, limit=MAX_COMMAND_VARIANTS):
    """
    Enumerate every command path the token stream may address.

    Behavior
    - Candidate words are appended to every variant in order.
    - A candidate word right after a flag-shaped token branches: the variants are duplicated, one copy
      keeps the word as a path word, the other treats it as the flag's value.
    - Tokens that are neither flags nor candidate words are skipped.
    - When branching would exceed `limit` variants, branching stops (words are kept) and a warning is logged.

    Returns
    - list[str]: unique candidate paths (every prefix of every variant, including the root ""),
      longest first; equal lengths keep discovery order.
    """
    variants = [[]]
    after_flag = False
    capped = False

    for token in split_argv(argv) if isinstance(argv, str) else argv:
        if is_flag(token):
            after_flag = True
            continue
        if not is_command_word(token):
            after_flag = False
            continue

        duplicated = None
        if after_flag:
            if len(variants) * 2 <= limit:
                duplicated = [list(variant) for variant in variants]
            elif not capped:
                capped = True
                logger.warning("command path enumeration capped at %d variants", limit)

        for variant in variants:
            variant.append(token.strip())

        if duplicated is not None:
            variants.extend(duplicated)
        after_flag = False

    # dict keeps first-seen order and drops duplicates
    possibles = {"": None}
    for variant in variants:
        for index in range(len(variant)):
            possibles.setdefault(" ".join(variant[:index + 1]), None)

    return sorted(possibles, key=lambda x: len(x.split()) if x else 0, reverse=True)


def expand_compound_flags(tokens, /):
    """
    Expand compounded short flags into single-letter flags.

    - "-abc" → "-a", "-b", "-c" (single dash, two or more alphanumerics, nothing else).
    - Long forms ("--name"), tokens with other symbols ("-a=1", "-x.y") and single flags pass unchanged.
    - Nothing after the transfer marker "--" is expanded.
    """
    expanded = []
    transfer = False
    for token in tokens:
        if transfer or not _COMPOUND_FLAG.fullmatch(token):
            expanded.append(token)
        else:
            expanded.extend("-" + char for char in token[1:])
        if token == TRANSFER_MARKER:
            transfer = True
    return expanded


__all__ = (
    "MAX_COMMAND_VARIANTS",
    "TRANSFER_MARKER",
    "split_argv",
    "is_flag",
    "is_command_word",
    "strip_flag",
    "possible_commands",
    "expand_compound_flags",
)
