"""
Argtree utilities (internal helpers, carefully exposed)

Scope
- Core building blocks used across the package for consistent semantics.
- Public-but-internal leaning: stable enough for consumers, designed primarily
  to support the arguments/context/cli layers.

Overview
- UnsetType / Unset
  • Singleton sentinel to represent “value not provided” without conflating with None.
  • Falsey (bool(Unset) is False), printable as "Unset", and non-subclassable.

- coalesce(value, default=None)
  • Replace Unset with a concrete default, but preserve legitimate falsey values like None/0/""/[].

- compile_pattern(pattern) / matches(pattern, value)
  • The pattern matcher used by argument aliases and suggestion filters.
  • Literal strings compare by equality; glob strings ('*', '?', '[...]') must match the whole
    value; "re::<regex>" strings and compiled re.Pattern objects are searched.

- levenshtein(a, b)
  • Plain edit distance (insert/delete/substitute) used to rank command suggestions.

Quick examples
    >>> coalesce(Unset, "fallback")
    'fallback'
    >>> matches("v*", "verbose")
    True
    >>> matches("re::^no-", "no-color")
    True
    >>> levenshtein("int", "init")
    1
"""
import functools
import inspect
import re
from typing import final


@final
class UnsetType:
    """
    Internal sentinel type representing a value that was not provided.

    This is used when None is a legitimate user value, but the API needs a way
    to distinguish “not provided” from “provided as None”. A single instance,
    Unset, is exposed for use as the default in internal parameters.

    Characteristics
    - Boolean-false: bool(Unset) is False, but it is distinct from None and 0.
    - Printable: repr(Unset) -> "Unset" for friendly diagnostics.
    - Non-subclassable: this type is sealed; do not subclass.
    - Singleton per process: UnsetType() always yields the same instance.
    """

    def __or__(self, other, /):
        """
        Support PEP 604 unions in annotations (e.g., str | UnsetType).
        """
        try:
            return other | type(self)
        except TypeError:
            return NotImplemented

    def __ror__(self, other, /):
        """
        Support reversed PEP 604 unions when UnsetType appears on the right.
        """
        try:
            return other | type(self)
        except TypeError:
            return NotImplemented

    @functools.cache
    def __new__(cls):
        return super().__new__(cls)

    def __bool__(self):
        return False

    def __repr__(self):
        return "Unset"

    def __copy__(self):
        return self

    def __deepcopy__(self, memo, /):
        return self

    def __reduce__(self):
        return "Unset"

    def __init_subclass__(cls, **options):
        raise TypeError("type 'UnsetType' is not an acceptable base type")


def coalesce(object, default=None, /):
    """
    Resolve an internal Unset sentinel to a concrete default.

    This returns the given object unless it is the Unset sentinel, in which case
    the provided default is returned. Importantly, falsey values like None, 0, "",
    or [] are preserved as-is. They are not treated as "unset".

    Examples
    - coalesce("name", "fallback") -> "name"
    - coalesce(Unset, "fallback")  -> "fallback"
    - coalesce(None, "fallback")   -> None   # None is preserved, not replaced
    """
    return object if object is not Unset else default


REGEX_PREFIX = "re::"


@functools.cache
def _resolve_glob(pattern):
    """
    translate a glob pattern into a regex snippet.
    supported metacharacters:
      *       → zero or more chars
      ?       → exactly one char
      [...]   → character class
      [!...]  → negated character class
      \\x      → escape x literally
    """
    length = len(pattern)
    index = 0
    parts = []
    while index < length:
        char = pattern[index]
        next = index + 1
        if char == '\\' and next < length:
            parts.append(re.escape(pattern[next]))
            index += 2
            continue
        if char == '*':
            parts.append(r'.*')
        elif char == '?':
            parts.append(r'.')
        elif char == '[':
            start = index + 1
            negated = ''
            if start < length and pattern[start] in ('!', '^'):
                negated = '^'
                start += 1

            pivot = start
            while pivot < length and pattern[pivot] != ']':
                if pattern[pivot] == '\\' and pivot + 1 < length:
                    pivot += 2
                else:
                    pivot += 1

            if pivot >= length:
                parts.append(r'\[')
            else:
                parts.append(f'[{negated}{pattern[start:pivot]}]')
                index = pivot
        else:
            parts.append(re.escape(char))
        index += 1
    return ''.join(parts)


def is_pattern(text, /):
    """
    Return True when a string alias is a pattern rather than a literal name.
    """
    return text.startswith(REGEX_PREFIX) or any(char in text for char in "*?[")


@functools.cache
def compile_pattern(pattern, /):
    """
    Compile a string pattern into a (regex, full) pair.

    - "re::<regex>" → the regex as written, searched anywhere in the value (full=False).
    - glob strings → translated with _resolve_glob and matched against the whole value (full=True).
    """
    if not isinstance(pattern, str):
        raise TypeError("compile_pattern() argument must be a string")
    if pattern.startswith(REGEX_PREFIX):
        return re.compile(pattern[len(REGEX_PREFIX):]), False
    return re.compile(_resolve_glob(pattern)), True


def matches(pattern, value, /):
    """
    Test a value against a literal name, a glob/"re::" string, or a compiled regex.

    Returns
    - bool: True when the value satisfies the pattern.
    """
    if isinstance(pattern, re.Pattern):
        return pattern.search(value) is not None
    if not isinstance(pattern, str):
        raise TypeError("matches() pattern must be a string or a compiled regex")
    if not is_pattern(pattern):
        return pattern == value
    regex, full = compile_pattern(pattern)
    if full:
        return regex.fullmatch(value) is not None
    return regex.search(value) is not None


async def maybe_await(value, /):
    """
    Await value when it is awaitable, return it unchanged otherwise.

    Lets hooks, actions and parse transforms be either plain functions or coroutine functions.
    """
    if inspect.isawaitable(value):
        return await value
    return value


def levenshtein(a, b, /):
    """
    Edit distance between two strings (single-char inserts, deletes and substitutions).
    """
    if len(a) < len(b):
        a, b = b, a
    previous = list(range(len(b) + 1))
    for i, left in enumerate(a, 1):
        current = [i]
        for j, right in enumerate(b, 1):
            current.append(min(
                # Delete from `a`:
                previous[j] + 1,
                # Insert into `a`:
                current[j - 1] + 1,
                # Replace:
                previous[j - 1] + (left != right),
            ))
        previous = current
    return previous[-1]


Unset = UnsetType()
"""
Internal sentinel for “not provided”.

Use Unset as a default when None is a valid, user-meaningful value but you still
need to distinguish “no input” from “explicitly passed None”.
"""


__all__ = (
    # Functions
    "coalesce",
    "compile_pattern",
    "is_pattern",
    "matches",
    "levenshtein",
    "maybe_await",

    # Types
    "UnsetType",

    # Constants
    "Unset",
    "REGEX_PREFIX",
)
