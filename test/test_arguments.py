"""
Argument specification behavioral tests.

Scope
- Validate OptionSpec/PositionalSpec construction, normalization and defaults
  (arity from type, required, labels, containers and element types).
- Validate metadata constraints (names, defaults, split patterns, scalar arity).
- Validate ownership (an argument belongs to exactly one command).

Conventions
- Test method names follow CamelCase per project convention.
- Never pass explicit None for any parameter; omit instead.
"""

from __future__ import annotations

import re
import unittest
from unittest import TestCase

from cordage import CommandSpec, OptionSpec, PositionalSpec, Range


class TestOptionSpec(TestCase):
    """Behavioral tests for named options."""

    def testNamesAreKeptInOrder(self):
        o = OptionSpec("-o", "--output")
        self.assertEqual(o.names, ("-o", "--output"))
        self.assertEqual(o.name, "--output")

    def testAtLeastOneNameRequired(self):
        with self.assertRaises(TypeError):
            OptionSpec()

    def testNamesMustBeStrings(self):
        with self.assertRaises(TypeError):
            OptionSpec(5)  # type: ignore[arg-type]

    def testNamesCannotContainWhitespace(self):
        with self.assertRaises(ValueError):
            OptionSpec("--out put")

    def testEndOfOptionsMarkerIsReserved(self):
        with self.assertRaises(ValueError):
            OptionSpec("--")

    def testDuplicateNamesRejected(self):
        with self.assertRaises(ValueError):
            OptionSpec("-o", "-o")

    def testStringScalarDefaults(self):
        o = OptionSpec("--name")
        self.assertIs(o.type, str)
        self.assertEqual(o.arity, Range(1))
        self.assertFalse(o.required)
        self.assertFalse(o.multi)
        self.assertIsNone(o.container)
        self.assertIsNone(o.default)
        self.assertEqual(o.label, "<str>")

    def testBooleanOptionIsAFlag(self):
        o = OptionSpec("-v", "--verbose", type=bool)
        self.assertEqual(o.arity, Range(0))
        self.assertTrue(o.boolean)

    def testBooleanOptionWithOptionalValue(self):
        o = OptionSpec("--color", type=bool, arity="0..1")
        self.assertEqual(o.arity, Range(0, 1))
        self.assertTrue(o.boolean)

    def testScalarArityCannotExceedOne(self):
        with self.assertRaises(ValueError):
            OptionSpec("--x", arity="1..*")
        with self.assertRaises(ValueError):
            OptionSpec("--x", arity=2)

    def testListTypeIsMultiValued(self):
        o = OptionSpec("-I", type=list[int])
        self.assertTrue(o.multi)
        self.assertIs(o.container, list)
        self.assertIs(o.element, int)
        self.assertEqual(o.arity, Range(1))
        self.assertEqual(o.label, "<int>")
        self.assertFalse(o.boolean)

    def testBareContainerDefaultsToStrings(self):
        o = OptionSpec("--tag", type=set)
        self.assertIs(o.container, set)
        self.assertIs(o.element, str)

    def testExplicitElementType(self):
        o = OptionSpec("--n", type=tuple, element=float)
        self.assertIs(o.container, tuple)
        self.assertIs(o.element, float)

    def testDictTypeCarriesKeyValuePair(self):
        o = OptionSpec("-D", type=dict[str, int])
        self.assertIs(o.container, dict)
        self.assertEqual(o.element, (str, int))
        self.assertEqual(o.label, "<str=int>")

    def testElementOnScalarRejected(self):
        with self.assertRaises(TypeError):
            OptionSpec("--x", type=int, element=int)

    def testNonCallableTypeRejected(self):
        with self.assertRaises(TypeError):
            OptionSpec("--x", type=5)  # type: ignore[arg-type]

    def testDefaultMustBeAString(self):
        with self.assertRaises(TypeError):
            OptionSpec("--x", type=int, default=3)  # type: ignore[arg-type]

    def testDefaultAndFallbackKept(self):
        o = OptionSpec("--level", type=int, arity="0..1", default="1", fallback="5")
        self.assertEqual(o.default, "1")
        self.assertEqual(o.fallback, "5")

    def testSplitIsCompiled(self):
        o = OptionSpec("--ids", type=list[int], split=",")
        self.assertIsInstance(o.split, re.Pattern)
        self.assertEqual(o.split.pattern, ",")

    def testEmptySplitRejected(self):
        with self.assertRaises(ValueError):
            OptionSpec("--ids", type=list[int], split="")

    def testEmptyLabelRejected(self):
        with self.assertRaises(ValueError):
            OptionSpec("--x", label="  ")

    def testDescrDefaultsToNone(self):
        self.assertIsNone(OptionSpec("--x").descr)

    def testDescrExplicitNoneRejected(self):
        with self.assertRaises(TypeError):
            OptionSpec("--x", descr=None)  # type: ignore[arg-type]

    def testDescribe(self):
        self.assertEqual(OptionSpec("-f", "--file").describe(), "option '--file'")

    def testReprUsesTypename(self):
        self.assertTrue(repr(OptionSpec("-f")).startswith("option-spec("))

    def testSpecsAreReadOnly(self):
        o = OptionSpec("-f")
        with self.assertRaises(AttributeError):
            o.names = ("-g",)  # type: ignore[misc]


class TestPositionalSpec(TestCase):
    """Behavioral tests for positional parameters."""

    def testScalarPositionalIsRequired(self):
        p = PositionalSpec("FILE")
        self.assertEqual(p.arity, Range(1))
        self.assertTrue(p.required)
        self.assertEqual(p.label, "FILE")

    def testOptionalScalarPositional(self):
        p = PositionalSpec("FILE", arity="0..1")
        self.assertFalse(p.required)

    def testMultiPositionalDefaultsToAnyNumber(self):
        p = PositionalSpec(type=list[str])
        self.assertEqual(p.arity, Range(0, None))
        self.assertFalse(p.required)
        self.assertEqual(p.label, "<str>")

    def testRequiredOverride(self):
        p = PositionalSpec("FILES", type=list[str], required=True)
        self.assertTrue(p.required)

    def testIndexParsed(self):
        self.assertEqual(PositionalSpec(index="1..*", type=list[str]).index, Range(1, None))
        self.assertEqual(PositionalSpec(index=2).index, Range(2))

    def testIndexAssignedByOwner(self):
        p = PositionalSpec("SRC")
        q = PositionalSpec("DST")
        CommandSpec("cp", positionals=(p, q))
        self.assertEqual(p.index, Range(0))
        self.assertEqual(q.index, Range(1))

    def testDescribe(self):
        self.assertEqual(PositionalSpec("FILE", index=0).describe(), "positional parameter at index 0 (FILE)")

    def testPositionalBooleanIsNotAFlag(self):
        p = PositionalSpec(type=bool)
        self.assertEqual(p.arity, Range(1))


class TestOwnership(TestCase):
    """An argument belongs to exactly one command."""

    def testOwnerIsSetOnBuild(self):
        o = OptionSpec("-v", type=bool)
        command = CommandSpec("tool", options=(o,))
        self.assertIs(o.owner, command)

    def testUnattachedOwnerIsNone(self):
        self.assertIsNone(OptionSpec("-v").owner)

    def testSecondOwnerRejected(self):
        o = OptionSpec("-v", type=bool)
        first = CommandSpec("first", options=(o,))
        with self.assertRaises(ValueError):
            CommandSpec("second", options=(o,))
        self.assertIs(o.owner, first)


if __name__ == "__main__":
    unittest.main()
