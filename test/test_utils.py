"""
Utility tests (Unset sentinel, coalesce, mirror, message helpers).

Scope
- Validate the Unset sentinel contract (singleton, falsey, sealed).
- Validate coalesce(), mirror() views and the message helpers.

Conventions
- Test method names follow CamelCase per project convention.
"""

from __future__ import annotations

import pickle
import unittest
from types import MappingProxyType
from unittest import TestCase

from shipwright.model import NumericRange
from shipwright.utils import Unset, UnsetType, coalesce, mirror, ordinal, pluralize, sanitize


class TestUnset(TestCase):
    """Behavioral tests for the sentinel."""

    def testSingletonFalseyAndPrintable(self):
        self.assertIs(UnsetType(), Unset)
        self.assertFalse(Unset)
        self.assertEqual(repr(Unset), "Unset")
        self.assertIs(pickle.loads(pickle.dumps(Unset)), Unset)

    def testSentinelIsNotATypeOperand(self):
        with self.assertRaises(TypeError):
            str | Unset
        self.assertIsInstance(Unset, str | UnsetType)

    def testSentinelCannotBeSubclassed(self):
        with self.assertRaises(TypeError):
            type("Other", (UnsetType,), {})

    def testCoalesceOnlyReplacesUnset(self):
        self.assertEqual(coalesce(Unset, "fallback"), "fallback")
        self.assertIsNone(coalesce(None, "fallback"))
        self.assertEqual(coalesce(0, 5), 0)


class TestMirror(TestCase):
    """Behavioral tests for read-only mirrored properties."""

    def testContainersAreFrozen(self):
        class Record:
            items = mirror("items")
            options = mirror("options")
            bounds = mirror("bounds")

            def __init__(self):
                self._items = [1, [2, 3]]
                self._options = {"a": 1}
                self._bounds = NumericRange(0, 255)

        record = Record()
        self.assertEqual(record.items, (1, (2, 3)))
        self.assertIsInstance(record.options, MappingProxyType)
        self.assertIsInstance(record.bounds, NumericRange)


class TestMessages(TestCase):
    """Behavioral tests for message helpers."""

    def testPluralize(self):
        self.assertEqual(pluralize(1, "error"), "1 error")
        self.assertEqual(pluralize(2, "error"), "2 errors")
        self.assertEqual(pluralize(0, "match"), "0 matches")
        self.assertEqual(pluralize(3, "entry"), "3 entries")

    def testOrdinal(self):
        self.assertEqual(ordinal(3), "third")
        self.assertEqual(ordinal(11), "11th")
        self.assertEqual(ordinal(22), "22nd")

    def testSanitize(self):
        self.assertEqual(sanitize("my-service.v2"), "my_service_v2")
        self.assertEqual(sanitize("2fa"), "_2fa")


if __name__ == "__main__":
    unittest.main()
