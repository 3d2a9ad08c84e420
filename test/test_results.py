"""
Parse result behavioral tests.

Scope
- Validate value lookup by argument identity (bound, default, empty fallbacks).
- Validate lookup by name/label, membership and immutability of the stored views.
- Validate the nested trace and leaf helpers.

Conventions
- Test method names follow CamelCase per project convention.
"""

from __future__ import annotations

import unittest
from unittest import TestCase

from cordage import UNMATCHED, CommandSpec, Match, OptionSpec, ParseResult, PositionalSpec, parse


class TestLookup(TestCase):
    """Values keyed by argument identity."""

    def setUp(self):
        self.verbose = OptionSpec("-v", type=bool)
        self.tags = OptionSpec("-t", type=list[str])
        self.name = OptionSpec("--name")
        self.file = PositionalSpec("FILE", arity="0..1")
        self.command = CommandSpec("tool", options=(self.verbose, self.tags, self.name), positionals=(self.file,))

    def testEmptyFallbacks(self):
        result = ParseResult(self.command)
        self.assertIs(result[self.verbose], False)
        self.assertEqual(result[self.tags], [])
        self.assertIsNone(result[self.name])
        self.assertIsNone(result[self.file])

    def testBoundBeatsDefault(self):
        result = ParseResult(self.command, values={self.name: "a"}, defaults={self.name: "b"})
        self.assertEqual(result[self.name], "a")

    def testForeignArgumentIsAKeyError(self):
        result = ParseResult(self.command)
        with self.assertRaises(KeyError):
            result[OptionSpec("--other")]

    def testGetWithDefault(self):
        result = ParseResult(self.command, defaults={self.name: "b"})
        self.assertEqual(result.get(self.name), "b")
        self.assertEqual(result.get(self.verbose, "none"), "none")

    def testMembershipMeansBound(self):
        result = ParseResult(self.command, values={self.verbose: True}, defaults={self.name: "b"})
        self.assertIn(self.verbose, result)
        self.assertNotIn(self.name, result)
        self.assertNotIn("garbage", result)

    def testValueByName(self):
        result = parse(self.command, ["--name", "x", "f.txt"])
        self.assertEqual(result.value("--name"), "x")
        self.assertEqual(result.value("FILE"), "f.txt")
        with self.assertRaises(KeyError):
            result.value("--nope")

    def testStoredViewsAreReadOnly(self):
        result = ParseResult(self.command, matches=[Match(0, self.verbose)], values={self.verbose: True})
        self.assertIsInstance(result.matches, tuple)
        with self.assertRaises(TypeError):
            result.values[self.name] = "x"  # type: ignore[index]

    def testRepr(self):
        result = ParseResult(self.command, values={self.name: "a"})
        self.assertEqual(repr(result), "parse-result(command='tool', values={'--name': 'a'})")


class TestNesting(TestCase):
    """Subcommand results."""

    def testTraceAndLeaf(self):
        child = CommandSpec("child")
        root = CommandSpec("root", subcommands=(child,))
        inner = ParseResult(child, matches=[Match(2, UNMATCHED)])
        outer = ParseResult(root, matches=[Match(0, child)], subcommand=inner)
        self.assertEqual(outer.trace, (Match(0, child), Match(2, UNMATCHED)))
        self.assertIs(outer.leaf, inner)
        self.assertIs(inner.leaf, inner)

    def testUnmatchedIsASingleton(self):
        self.assertIs(type(UNMATCHED)(), UNMATCHED)
        self.assertEqual(repr(UNMATCHED), "UNMATCHED")


if __name__ == "__main__":
    unittest.main()
