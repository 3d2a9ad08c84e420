"""
Command specification and builder behavioral tests.

Scope
- Validate CommandSpec construction: names/aliases, separator, option lookup tables.
- Validate construction-time faults (duplicate options/commands, index gaps, help uniqueness).
- Validate positional index assignment and the subcommand tree (parent, root, path, route).
- Validate the fluent, single-use CommandBuilder.

Conventions
- Test method names follow CamelCase per project convention.
- Never pass explicit None for any parameter; omit instead.
"""

from __future__ import annotations

import unittest
from unittest import TestCase

from cordage import (
    CommandBuilder,
    CommandSpec,
    DefinitionError,
    DuplicateCommandError,
    DuplicateOptionError,
    IndexGapError,
    OptionSpec,
    PositionalSpec,
    Range,
)


class TestCommandSpec(TestCase):
    """Construction, metadata and lookups."""

    def testNamesAndAliases(self):
        command = CommandSpec("remove", "rm", "del")
        self.assertEqual(command.name, "remove")
        self.assertEqual(command.aliases, ("rm", "del"))
        self.assertEqual(command.names, ("remove", "rm", "del"))

    def testNameWithWhitespaceRejected(self):
        with self.assertRaises(ValueError):
            CommandSpec("two words")

    def testAliasRepeatingNameRejected(self):
        with self.assertRaises(ValueError):
            CommandSpec("rm", "rm")

    def testSeparatorDefault(self):
        self.assertEqual(CommandSpec("tool").separator, "=")
        self.assertEqual(CommandSpec("tool", separator=":").separator, ":")

    def testEmptySeparatorRejected(self):
        with self.assertRaises(ValueError):
            CommandSpec("tool", separator="")

    def testLookupByEveryName(self):
        output = OptionSpec("-o", "--output")
        command = CommandSpec("tool", options=(output,))
        self.assertIs(command.lookup("-o"), output)
        self.assertIs(command.lookup("--output"), output)
        self.assertIsNone(command.lookup("--input"))

    def testCaseInsensitiveLookup(self):
        output = OptionSpec("--Output")
        command = CommandSpec("tool", options=(output,))
        self.assertIsNone(command.lookup("--output"))
        self.assertIs(command.lookup("--output", case_insensitive=True), output)

    def testSwitchesAndShorts(self):
        verbose = OptionSpec("-v", "--verbose", type=bool)
        command = CommandSpec("tool", options=(verbose,))
        self.assertEqual(set(command.switches), {"-v", "--verbose"})
        self.assertEqual(command.shorts, {"v": verbose})

    def testArgumentsKeepDeclarationOrder(self):
        a, b = OptionSpec("-a"), OptionSpec("-b")
        p = PositionalSpec("P")
        command = CommandSpec("tool", options=(b, a), positionals=(p,))
        self.assertEqual(command.options, (b, a))
        self.assertEqual(command.arguments, (b, a, p))

    def testReprUsesTypename(self):
        self.assertTrue(repr(CommandSpec("tool")).startswith("command-spec(name='tool'"))


class TestDefinitionFaults(TestCase):
    """Faults raised eagerly while a command is built."""

    def testDuplicateOptionName(self):
        with self.assertRaises(DuplicateOptionError) as context:
            CommandSpec("tool", options=(OptionSpec("-f", "--file"), OptionSpec("-f", "--force")))
        self.assertEqual(context.exception.options["name"], "-f")
        self.assertEqual(context.exception.status, 1)
        self.assertIsInstance(context.exception, DefinitionError)

    def testSameOptionTwice(self):
        option = OptionSpec("-f")
        with self.assertRaises(DuplicateOptionError):
            CommandSpec("tool", options=(option, option))

    def testDuplicateSubcommandName(self):
        with self.assertRaises(DuplicateCommandError):
            CommandSpec("tool", subcommands=(CommandSpec("run"), CommandSpec("start", "run")))

    def testIndexGap(self):
        with self.assertRaises(IndexGapError) as context:
            CommandSpec("tool", positionals=(PositionalSpec("A", index=0), PositionalSpec("C", index=2)))
        self.assertEqual(context.exception.options["index"], 1)

    def testGapAtZero(self):
        with self.assertRaises(IndexGapError):
            CommandSpec("tool", positionals=(PositionalSpec("B", index=1),))

    def testSingleHelpArgument(self):
        with self.assertRaises(ValueError):
            CommandSpec("tool", options=(
                OptionSpec("-h", type=bool, help=True),
                OptionSpec("-?", type=bool, help=True),
            ))

    def testNonSpecOptionRejected(self):
        with self.assertRaises(TypeError):
            CommandSpec("tool", options=(PositionalSpec("X"),))  # type: ignore[arg-type]


class TestPositionalIndices(TestCase):
    """Automatic slot assignment."""

    def testScalarsTakeConsecutiveSlots(self):
        a, b = PositionalSpec("A"), PositionalSpec("B")
        CommandSpec("tool", positionals=(a, b))
        self.assertEqual((a.index, b.index), (Range(0), Range(1)))

    def testVariableListTakesTheRest(self):
        a, rest = PositionalSpec("A"), PositionalSpec("REST", type=list[str])
        CommandSpec("tool", positionals=(a, rest))
        self.assertEqual(rest.index, Range(1, None))

    def testBoundedListTakesItsArity(self):
        pair, last = PositionalSpec("PAIR", type=list[int], arity=2), PositionalSpec("LAST")
        CommandSpec("tool", positionals=(pair, last))
        self.assertEqual(pair.index, Range(0, 1))
        self.assertEqual(last.index, Range(2))

    def testNothingAfterAVariableList(self):
        with self.assertRaises(ValueError):
            CommandSpec("tool", positionals=(PositionalSpec("REST", type=list[str]), PositionalSpec("X")))

    def testExplicitIndicesMayOverlap(self):
        everything = PositionalSpec("ALL", index="0..*", type=list[str])
        first = PositionalSpec("FIRST", index=0)
        command = CommandSpec("tool", positionals=(everything, first))
        self.assertEqual(len(command.positionals), 2)


class TestTree(TestCase):
    """Parent links and routes."""

    def setUp(self):
        self.add = CommandSpec("add")
        self.remote = CommandSpec("remote", subcommands=(self.add,))
        self.git = CommandSpec("git", subcommands=(self.remote,))

    def testParentAndRoot(self):
        self.assertIs(self.add.parent, self.remote)
        self.assertIs(self.add.root, self.git)
        self.assertIsNone(self.git.parent)

    def testPathAndRoute(self):
        self.assertEqual(self.add.path, (self.git, self.remote, self.add))
        self.assertEqual(self.add.route, "git remote add")

    def testAliasesShareTheNode(self):
        stash = CommandSpec("stash", "st")
        tool = CommandSpec("tool", subcommands=(stash,))
        self.assertIs(tool.subcommands["st"], stash)
        self.assertEqual(tool.children, (stash,))

    def testSubcommandHasOneParent(self):
        with self.assertRaises(ValueError):
            CommandSpec("other", subcommands=(self.remote,))


class TestCommandBuilder(TestCase):
    """Fluent construction."""

    def testBuildsTheSameModel(self):
        command = (
            CommandBuilder("tool", "t")
            .option("-v", "--verbose", type=bool)
            .positional("FILE")
            .subcommand(CommandBuilder("run"))
            .build()
        )
        self.assertIsInstance(command, CommandSpec)
        self.assertEqual(command.aliases, ("t",))
        self.assertIsNotNone(command.lookup("--verbose"))
        self.assertEqual(command.positionals[0].label, "FILE")
        self.assertIs(command.subcommands["run"].parent, command)

    def testAddDispatchesOnKind(self):
        builder = CommandBuilder("tool").add(OptionSpec("-a")).add(PositionalSpec("P"))
        command = builder.build()
        self.assertEqual(len(command.options), 1)
        self.assertEqual(len(command.positionals), 1)

    def testAddRejectsOtherObjects(self):
        with self.assertRaises(TypeError):
            CommandBuilder("tool").add("-a")  # type: ignore[arg-type]

    def testAliasAfterTheFact(self):
        command = CommandBuilder("remove").alias("rm").build()
        self.assertEqual(command.names, ("remove", "rm"))

    def testBuilderIsSingleUse(self):
        builder = CommandBuilder("tool")
        builder.build()
        with self.assertRaises(RuntimeError):
            builder.build()
        with self.assertRaises(RuntimeError):
            builder.option("-x")

    def testDuplicatesStillDetected(self):
        with self.assertRaises(DuplicateOptionError):
            CommandBuilder("tool").option("-x").option("-x").build()


if __name__ == "__main__":
    unittest.main()
