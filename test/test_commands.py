"""
Builder tests (tree construction, registration invariants, caching).

Scope
- Validate declaration faults raised through the builder, with usage attached.
- Validate sub-command creation, aliases, paths and re-entry.
- Validate option shadowing and result-name collisions across the tree.
- Validate freezing and cache invalidation.

Conventions
- Test method names follow CamelCase per project convention.
- Tests use the public API (OptArgs and the fault classes).
"""

import unittest
from unittest import TestCase

from optargs import OptArgs, Isa
from optargs.faults import (
    DuplicateNameError,
    InvalidParameterError,
    GreedyArgumentError,
    MissingSubCmdArgumentError,
    FrozenTreeError,
    MissingNameError,
    UnknownTypeError,
    FaultCode,
)


def _tree():
    cli = OptArgs("app", "an example application", colorful=False)
    cli.opt("dry_run", isa="Bool", alias="n", comment="do nothing")
    cli.arg("command", isa="SubCmd", required=True, comment="command to run")
    cli.subcmd("init", comment="create a workspace")
    cli.opt("force", isa="Bool", alias="f", comment="overwrite files")
    cli.arg("path", isa="Str", comment="where to create it")
    cli.enter()
    cli.subcmd({"remove", "rm"}, comment="remove things")
    cli.arg("what", isa="SubCmd", comment="what to remove")
    cli.subcmd(["rm", "cache"], comment="remove the cache")
    return cli


class TestBuilderDeclarations(TestCase):
    """Registration-time invariants."""

    def testDuplicateOptionName(self):
        cli = OptArgs("app", "x", colorful=False)
        cli.opt("name", isa="Str", comment="a name")
        with self.assertRaises(DuplicateNameError) as context:
            cli.opt("name", isa="Int", comment="another name")
        self.assertEqual(context.exception.code, FaultCode.DUPLICATE_NAME)
        self.assertTrue(context.exception.usage.startswith("name 'name' is already used"))
        self.assertIn("usage: app [options]", context.exception.usage)

    def testDuplicateArgumentName(self):
        cli = OptArgs("app", "x")
        cli.arg("file", isa="Str", comment="a file")
        with self.assertRaises(DuplicateNameError):
            cli.arg("file", isa="Str", comment="another file")

    def testOptionAndArgumentShareTheResult(self):
        cli = OptArgs("app", "x")
        cli.opt("file", isa="Str", comment="a file")
        with self.assertRaises(DuplicateNameError):
            cli.arg("file", isa="Str", comment="a file")

    def testAliasClashesWithAnotherOption(self):
        cli = OptArgs("app", "x")
        cli.opt("dry_run", isa="Bool", alias="n", comment="do nothing")
        with self.assertRaises(DuplicateNameError):
            cli.opt("number", isa="Int", alias="n", comment="a number")
        with self.assertRaises(DuplicateNameError):
            cli.opt("other", isa="Int", alias="dry-run", comment="a number")

    def testChildCannotShadowParentOption(self):
        cli = _tree()
        cli.enter("init")
        with self.assertRaises(DuplicateNameError):
            cli.opt("dry_run", isa="Bool", comment="do nothing again")
        with self.assertRaises(DuplicateNameError):
            cli.opt("quiet", isa="Bool", alias="n", comment="say less")

    def testParentCannotShadowChildOption(self):
        cli = _tree()
        cli.enter()
        with self.assertRaises(DuplicateNameError):
            cli.opt("force", isa="Bool", comment="force it")
        with self.assertRaises(DuplicateNameError):
            cli.opt("fast", isa="Bool", alias="f", comment="go fast")

    def testSiblingsMayReuseNames(self):
        cli = _tree()
        cli.enter("rm")
        cli.opt("force", isa="Bool", alias="f", comment="remove without asking")
        self.assertEqual([option.name for option in cli.current.options], ["force"])

    def testUnknownParameter(self):
        cli = OptArgs("app", "x")
        with self.assertRaises(InvalidParameterError):
            cli.opt("name", isa="Str", comment="x", greedy=True)
        with self.assertRaises(InvalidParameterError):
            cli.arg("name", isa="Str", comment="x", alias="n")
        with self.assertRaises(UnknownTypeError):
            cli.arg("name", isa="Path", comment="x")

    def testNothingAfterGreedyArgument(self):
        cli = OptArgs("app", "x")
        cli.arg("rest", isa="ArrayRef", greedy=True, comment="everything else")
        with self.assertRaises(GreedyArgumentError) as context:
            cli.arg("more", isa="Str", comment="never reached")
        self.assertEqual(context.exception.code, FaultCode.GREEDY_ARGUMENT)

    def testNothingAfterSubCmdArgument(self):
        cli = OptArgs("app", "x")
        cli.arg("command", isa="SubCmd", comment="command")
        with self.assertRaises(InvalidParameterError):
            cli.arg("other", isa="SubCmd", comment="a second command")

    def testFallbackNameJoinsTheResult(self):
        cli = OptArgs("app", "x")
        cli.opt("script", isa="Str", comment="a script")
        with self.assertRaises(DuplicateNameError):
            cli.arg("command", isa="SubCmd", comment="command", fallback={"name": "script", "isa": "Str", "comment": "s"})

    def testDeclarationsKeepOrder(self):
        cli = OptArgs("app", "x")
        cli.opt("b", isa="Str", comment="b")
        cli.arg("z", isa="Str", comment="z")
        cli.opt("a", isa="Str", comment="a")
        cli.arg("y", isa="Str", comment="y")
        self.assertEqual([option.name for option in cli.root.options], ["b", "a"])
        self.assertEqual([argument.name for argument in cli.root.arguments], ["z", "y"])

    def testPublicViewsAreCopies(self):
        cli = _tree()
        cli.root.options.clear()
        cli.root.children.clear()
        self.assertEqual(len(cli.root.options), 1)
        self.assertEqual(len(cli.root.subcommands), 2)


class TestBuilderSubCommands(TestCase):
    """Sub-command creation and navigation."""

    def testSubCmdRequiresSubCmdArgument(self):
        cli = OptArgs("app", "x")
        with self.assertRaises(MissingSubCmdArgumentError) as context:
            cli.subcmd("init", comment="create")
        self.assertEqual(context.exception.code, FaultCode.MISSING_SUBCMD_ARGUMENT)

    def testSubCmdRequiresComment(self):
        cli = OptArgs("app", "x")
        cli.arg("command", isa="SubCmd", comment="command")
        with self.assertRaises(InvalidParameterError):
            cli.subcmd("init")

    def testSubCmdRejectsBadNames(self):
        cli = OptArgs("app", "x")
        cli.arg("command", isa="SubCmd", comment="command")
        for cmd in ("", "-init", "a b", set(), [], 5):
            with self.subTest(cmd=cmd), self.assertRaises(InvalidParameterError):
                cli.subcmd(cmd, comment="x")

    def testSubCmdBecomesCurrent(self):
        cli = _tree()
        self.assertEqual(cli.current.route, "app remove cache")
        self.assertEqual(cli.current.name, "cache")

    def testAliasesSelectOneNode(self):
        cli = _tree()
        node = cli.root.lookup("rm")
        self.assertIs(node, cli.root.lookup("remove"))
        self.assertEqual(node.names, ("remove", "rm"))
        self.assertEqual(node.name, "remove")
        self.assertEqual([child.name for child in cli.root.subcommands], ["init", "remove"])

    def testPathsResolveFromTheRoot(self):
        cli = _tree()
        cli.enter()
        node = cli.subcmd(["rm", "logs"], comment="remove the logs")
        self.assertIs(node.parent, cli.root.lookup("remove"))
        self.assertEqual(node.route, "app remove logs")
        with self.assertRaises(InvalidParameterError):
            cli.subcmd(["nope", "logs"], comment="x")

    def testReEntryReturnsTheSameNode(self):
        cli = _tree()
        cli.enter()
        first = cli.root.lookup("init")
        self.assertIs(cli.subcmd("init"), first)
        self.assertIs(cli.current, first)
        self.assertIs(cli.subcmd("rm"), cli.root.lookup("remove"))

    def testOverlappingAliasesRejected(self):
        cli = _tree()
        cli.enter()
        with self.assertRaises(DuplicateNameError):
            cli.subcmd({"init", "rm"}, comment="ambiguous")
        with self.assertRaises(DuplicateNameError):
            cli.subcmd({"init", "create"}, comment="grows an existing node")

    def testEnterPaths(self):
        cli = _tree()
        self.assertIs(cli.enter(), cli.root)
        self.assertIs(cli.enter("init"), cli.root.lookup("init"))
        self.assertIs(cli.enter(("rm", "cache")), cli.root.lookup("rm").lookup("cache"))
        with self.assertRaises(InvalidParameterError):
            cli.enter("missing")

    def testTreeIntrospection(self):
        cli = _tree()
        cache = cli.root.lookup("rm").lookup("cache")
        self.assertEqual([node.name for node in cache.path], ["app", "remove", "cache"])
        self.assertIs(cache.root, cli.root)
        self.assertEqual([option.name for option in cli.root.lookup("init").inherited], ["dry_run", "force"])
        self.assertIs(cli.root.subcmd.isa, Isa.SUBCMD)
        self.assertIsNone(cache.subcmd)
        self.assertEqual([node.name for node in cli.root.descendants()], ["init", "remove", "cache"])

    def testHandlersRegisterOnTheCurrentOrGivenNode(self):
        cli = _tree()

        @cli.handler("run")
        def cache(result):
            return "cache"

        @cli.handler("run", path="init")
        def init(result):
            return "init"

        self.assertIs(cli.root.lookup("rm").lookup("cache").handlers["run"], cache)
        self.assertIs(cli.root.lookup("init").handlers["run"], init)
        self.assertEqual(cli.current.route, "app remove cache")


class TestBuilderLifecycle(TestCase):
    """Freezing and cache invalidation."""

    def testFrozenTreeRejectsDeclarations(self):
        cli = _tree().freeze()
        self.assertTrue(cli.frozen)
        with self.assertRaises(FrozenTreeError) as context:
            cli.opt("late", isa="Bool", comment="too late")
        self.assertEqual(context.exception.code, FaultCode.FROZEN_TREE)
        with self.assertRaises(FrozenTreeError):
            cli.subcmd("late")
        self.assertEqual(cli.parse_all("init"), {"command": "init"})

    def testDeclarationsInvalidateTheCache(self):
        cli = OptArgs("app", "x")
        cli.opt("name", isa="Str", comment="a name")
        first = cli.resolve(["--name", "a"])
        self.assertIs(cli.resolve(["--name", "a"]), first)

        cli.opt("level", isa="Int", default=3, comment="a level")
        second = cli.resolve(["--name", "a"])
        self.assertIsNot(second, first)
        self.assertEqual(second.options, {"name": "a", "level": 3})

    def testEnterInvalidatesTheCache(self):
        cli = _tree()
        first = cli.resolve("init")
        cli.enter()
        self.assertIsNot(cli.resolve("init"), first)

    def testProgramNameIsRequired(self):
        with self.assertRaises(MissingNameError):
            OptArgs("  ")


if __name__ == "__main__":
    unittest.main()
