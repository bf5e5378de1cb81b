"""
Tests for the internal helpers.

This module verifies:
- The Unset sentinel (singleton identity, falsy, repr, unions, finality).
- coalesce() replacing only Unset.
- rename() in its direct and decorator forms.
- mirror() handing out detached copies.
- ordinal() labels.
"""
import copy
import unittest
from unittest import TestCase

from optargs.utils import *


class UnsetTest(TestCase):
    """The `Unset` singleton."""

    def testSingleton(self):
        self.assertIs(UnsetType(), Unset)
        self.assertIs(copy.copy(Unset), Unset)
        self.assertIs(copy.deepcopy(Unset), Unset)

    def testFalsyButNotNone(self):
        self.assertFalse(Unset)
        self.assertIsNot(Unset, None)
        self.assertEqual(repr(Unset), "Unset")

    def testUnions(self):
        self.assertIsInstance(Unset, str | Unset)
        self.assertIsInstance("x", Unset | str)
        self.assertNotIsInstance(1, str | Unset)

    def testExportedFromThePackage(self):
        import optargs
        self.assertIs(optargs.Unset, Unset)
        self.assertIn("Unset", optargs.__all__)
        self.assertIn("coalesce", optargs.__all__)

    def testFinal(self):
        with self.assertRaises(TypeError):
            type("Subclass", (UnsetType,), {})


class HelpersTest(TestCase):
    """coalesce(), rename(), mirror() and ordinal()."""

    def testCoalesce(self):
        self.assertEqual(coalesce("name", "fallback"), "name")
        self.assertEqual(coalesce(Unset, "fallback"), "fallback")
        self.assertIsNone(coalesce(None, "fallback"))
        self.assertEqual(coalesce(0, 1), 0)
        self.assertIsNone(coalesce(Unset))

    def testRenameDirect(self):
        function = rename(lambda: None, "named")
        self.assertEqual(function.__name__, "named")
        self.assertEqual(function.__qualname__, "named")

    def testRenameDecorator(self):
        @rename("decorated")
        def function():
            pass

        self.assertEqual(function.__name__, "decorated")

    def testRenameRejectsBadArguments(self):
        with self.assertRaises(TypeError):
            rename(1, "x")
        with self.assertRaises(TypeError):
            rename(len, "x")
        with self.assertRaises(TypeError):
            rename(1)
        with self.assertRaises(TypeError):
            rename()

    def testMirrorDetachesContainers(self):
        class Holder:
            items = mirror("items")

            def __init__(self):
                self._items = {"a": [1, 2], "b": ({"c"},)}

        holder = Holder()
        items = holder.items
        items["a"].append(3)
        items["b"][0].add("d")
        self.assertEqual(holder.items, {"a": [1, 2], "b": ({"c"},)})
        self.assertIsInstance(holder.items["b"], tuple)
        self.assertIsNot(holder.items, holder.items)

        with self.assertRaises(AttributeError):
            holder.items = {}

    def testOrdinal(self):
        self.assertEqual(ordinal(1), "first")
        self.assertEqual(ordinal(10), "tenth")
        self.assertEqual(ordinal(11), "11th")
        self.assertEqual(ordinal(13), "13th")
        self.assertEqual(ordinal(21), "21st")
        self.assertEqual(ordinal(22), "22nd")
        self.assertEqual(ordinal(103), "103rd")
        self.assertEqual(ordinal(112), "112th")


if __name__ == "__main__":
    unittest.main()
