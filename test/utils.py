"""
Utils module behavioral tests (sentinel, pattern matcher, edit distance).

Conventions
- Test method names follow CamelCase per project convention.
"""

from __future__ import annotations

import copy
import re
import unittest
from unittest import IsolatedAsyncioTestCase, TestCase

from argtree.utils import Unset, UnsetType, coalesce, levenshtein, matches, maybe_await


class TestUnset(TestCase):
    """Sentinel semantics."""

    def testUnsetIsFalsyAndSingleton(self):
        self.assertFalse(Unset)
        self.assertIs(UnsetType(), Unset)
        self.assertIs(copy.deepcopy(Unset), Unset)
        self.assertEqual(repr(Unset), "Unset")

    def testUnsetCannotBeSubclassed(self):
        with self.assertRaises(TypeError):
            type("Derived", (UnsetType,), {})

    def testCoalescePreservesFalseyValues(self):
        self.assertEqual(coalesce(Unset, "fallback"), "fallback")
        self.assertIsNone(coalesce(None, "fallback"))
        self.assertEqual(coalesce(0, 5), 0)


class TestMatches(TestCase):
    """Literal, glob, re:: and compiled patterns."""

    def testLiteralComparesByEquality(self):
        self.assertTrue(matches("verbose", "verbose"))
        self.assertFalse(matches("verbose", "verbos"))

    def testGlobMustMatchWholeValue(self):
        self.assertTrue(matches("v*", "verbose"))
        self.assertTrue(matches("th?eads", "threads"))
        self.assertFalse(matches("v*", "no-verbose"))
        self.assertTrue(matches("[abc]x", "bx"))

    def testRegexPrefixSearches(self):
        self.assertTrue(matches("re::^no-", "no-color"))
        self.assertTrue(matches("re::col", "no-color"))
        self.assertFalse(matches("re::^col", "no-color"))

    def testCompiledRegexSearches(self):
        self.assertTrue(matches(re.compile(r"\d+"), "level2"))
        self.assertFalse(matches(re.compile(r"^\d+$"), "level2"))

    def testInvalidPatternTypeRejected(self):
        with self.assertRaises(TypeError):
            matches(42, "x")


class TestLevenshtein(TestCase):

    def testKnownDistances(self):
        self.assertEqual(levenshtein("int", "init"), 1)
        self.assertEqual(levenshtein("int", "info"), 2)
        self.assertEqual(levenshtein("kitten", "sitting"), 3)
        self.assertEqual(levenshtein("", "abc"), 3)
        self.assertEqual(levenshtein("same", "same"), 0)

    def testSymmetric(self):
        self.assertEqual(levenshtein("status", "int"), levenshtein("int", "status"))


class TestMaybeAwait(IsolatedAsyncioTestCase):

    async def testPlainValuesPassThrough(self):
        self.assertEqual(await maybe_await(3), 3)

    async def testAwaitablesAreAwaited(self):
        async def compute():
            return "done"

        self.assertEqual(await maybe_await(compute()), "done")


if __name__ == "__main__":
    unittest.main()
