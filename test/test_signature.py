"""
Signature analyzer tests (inference table, bounds, defaults, faults).

Scope
- Validate kind/strategy inference for every supported type shape.
- Validate bit-width bounds and domain scalars.
- Validate literal default handling and rejected signatures.

Conventions
- Test method names follow CamelCase per project convention.
- Declarations are parsed from inline source; nothing is imported.
"""

from __future__ import annotations

import textwrap
import unittest
from unittest import TestCase

from shipwright import signature, source
from shipwright.faults import FaultCode, SignatureTypeError
from shipwright.model import Hint, Kind, NumericRange, Strategy

HEADER = """\
from ipaddress import IPv4Address, IPv6Address
from pathlib import Path
from typing import List, Literal, Optional, Sequence, Union

from shipwright import command
from shipwright.scalars import Count, IPAddress, i8, u8, u16
"""


def analyze(parameters, body="pass"):
    text = HEADER + textwrap.dedent(f"""
        @command
        def sample({parameters}) -> dict:
            {body}
    """)
    declaration, = source.parse(text, filename="sample.py", module="app.sample")
    return signature.analyze(declaration)


def specs(parameters):
    return {spec.name: spec for spec in analyze(parameters)}


class TestInference(TestCase):
    """Behavioral tests for the inference table."""

    def testStatusScenario(self):
        service, lines, follow = analyze("service: str, lines: Optional[int], follow: bool")
        self.assertEqual((service.name, service.kind, service.required), ("service", Kind.REQUIRED, True))
        self.assertEqual((lines.name, lines.kind, lines.required), ("lines", Kind.OPTIONAL, False))
        self.assertIs(lines.strategy, Strategy.INTEGER)
        self.assertEqual((follow.name, follow.kind, follow.required), ("follow", Kind.FLAG, False))
        self.assertIs(follow.strategy, Strategy.BOOLEAN)

    def testOptionalSpellings(self):
        found = specs("a: Optional[str], b: str | None, c: Union[int, None], d: None | float")
        self.assertTrue(all(spec.kind is Kind.OPTIONAL for spec in found.values()))
        self.assertIs(found["c"].strategy, Strategy.INTEGER)
        self.assertIs(found["d"].strategy, Strategy.FLOAT)

    def testCounter(self):
        verbose, = analyze("verbose: Count")
        self.assertIs(verbose.kind, Kind.COUNTER)
        self.assertEqual(verbose.value_bounds, NumericRange(0, 255))
        self.assertFalse(verbose.required)

    def testMultiValueSpellings(self):
        found = specs("a: list[str], b: List[int], c: Sequence[str], d: tuple[int, ...], e: set[str], f: Optional[list[str]]")
        self.assertTrue(all(spec.kind is Kind.MULTI_VALUE for spec in found.values()))
        self.assertFalse(any(spec.required for spec in found.values()))
        self.assertIs(found["b"].strategy, Strategy.INTEGER)

    def testPositionalOnlyParameters(self):
        source_, target, force = analyze("source: str, target: Optional[Path] = None, /, force: bool = False")
        self.assertEqual((source_.kind, source_.index, source_.required), (Kind.POSITIONAL, 0, True))
        self.assertEqual((target.kind, target.index, target.required), (Kind.POSITIONAL, 1, False))
        self.assertIs(target.strategy, Strategy.PATH)
        self.assertIs(force.kind, Kind.FLAG)
        self.assertEqual(force.switch, "--force")
        self.assertIsNone(source_.switch)

    def testParameterOrderIsKept(self):
        names = [spec.name for spec in analyze("z: int, a: bool, m: list[str], *, k: str")]
        self.assertEqual(names, ["z", "a", "m", "k"])


class TestScalars(TestCase):
    """Behavioral tests for bounded and domain scalars."""

    def testUnsignedByteBounds(self):
        port, = analyze("port: u8")
        self.assertEqual(port.value_bounds, NumericRange(0, 255))
        self.assertIs(port.strategy, Strategy.INTEGER)

    def testOtherWidths(self):
        found = specs("a: u16, b: i8, c: int, d: float")
        self.assertEqual(found["a"].value_bounds, NumericRange(0, 65535))
        self.assertEqual(found["b"].value_bounds, NumericRange(-128, 127))
        self.assertIsNone(found["c"].value_bounds)
        self.assertIsNone(found["d"].value_bounds)

    def testDomainScalars(self):
        found = specs("a: Path, b: IPv4Address, c: IPv6Address, d: IPAddress, e: IPv4Address | IPv6Address")
        self.assertEqual((found["a"].strategy, found["a"].completion_hint), (Strategy.PATH, Hint.ANY_PATH))
        self.assertIs(found["b"].strategy, Strategy.IPV4)
        self.assertIs(found["c"].strategy, Strategy.IPV6)
        self.assertEqual((found["d"].strategy, found["d"].completion_hint), (Strategy.IP_ADDRESS, Hint.HOSTNAME))
        self.assertIs(found["e"].strategy, Strategy.IP_ADDRESS)

    def testLiteralChoices(self):
        level, = analyze('level: Literal["debug", "info"]')
        self.assertIs(level.strategy, Strategy.CHOICE)
        self.assertEqual(level.choices, ("debug", "info"))

    def testForwardReferences(self):
        port, = analyze('port: "u8"')
        self.assertEqual(port.value_bounds, NumericRange(0, 255))


class TestDefaults(TestCase):
    """Behavioral tests for literal defaults."""

    def testLiteralDefaultMakesArgumentOptional(self):
        lines, = analyze("lines: int = 10")
        self.assertEqual(lines.default_value, "10")
        self.assertFalse(lines.required)
        self.assertIs(lines.kind, Kind.REQUIRED)

    def testListDefaultIsCommaJoined(self):
        tags, = analyze('tags: list[str] = ["a", "b"]')
        self.assertEqual(tags.default_value, "a,b")

    def testFlagDefaultMustBeFalse(self):
        with self.assertRaises(SignatureTypeError) as context:
            analyze("follow: bool = True")
        self.assertEqual(context.exception.code, FaultCode.INVALID_DEFAULT)

    def testNonLiteralDefaultRaises(self):
        with self.assertRaises(SignatureTypeError) as context:
            analyze("lines: int = compute()")
        self.assertIn("non-literal", context.exception.message)

    def testDefaultOutsideBoundsRaises(self):
        with self.assertRaises(SignatureTypeError):
            analyze("port: u8 = 300")

    def testNoneDefaultRequiresOptional(self):
        with self.assertRaises(SignatureTypeError):
            analyze("lines: int = None")


class TestRejectedSignatures(TestCase):
    """Behavioral tests for unmappable signatures."""

    def testMissingAnnotation(self):
        with self.assertRaises(SignatureTypeError) as context:
            analyze("service")
        self.assertEqual(context.exception.code, FaultCode.MISSING_ANNOTATION)

    def testVariadicParameters(self):
        for parameters in ("*names: str", "**options: str"):
            with self.subTest(parameters=parameters):
                with self.assertRaises(SignatureTypeError) as context:
                    analyze(parameters)
                self.assertEqual(context.exception.code, FaultCode.VARIADIC_PARAMETER)

    def testUnsupportedTypeNamesTheTypeAndListsShapes(self):
        with self.assertRaises(SignatureTypeError) as context:
            analyze("payload: dict[str, int]")
        self.assertIn("dict[str, int]", context.exception.message)
        self.assertIn("supported types", context.exception.hint)

    def testAsyncFunctionsAreRejected(self):
        text = HEADER + textwrap.dedent("""
            @command
            async def sample(service: str) -> dict:
                pass
        """)
        declaration, = source.parse(text, filename="sample.py", module="app.sample")
        with self.assertRaises(SignatureTypeError) as context:
            signature.analyze(declaration)
        self.assertEqual(context.exception.code, FaultCode.ASYNC_FUNCTION)

    def testPositionalFlagsAreRejected(self):
        with self.assertRaises(SignatureTypeError):
            analyze("force: bool, /")

    def testNestedMultiValuesAreRejected(self):
        with self.assertRaises(SignatureTypeError):
            analyze("matrix: list[list[int]]")

    def testBlankChoicesAreRejected(self):
        for annotation in ('Literal["", "fast"]', 'Literal["  ", "fast"]', 'Literal[" fast", "fast"]', 'list[Literal["", "a"]]'):
            with self.subTest(annotation=annotation):
                with self.assertRaises(SignatureTypeError) as context:
                    analyze(f"mode: {annotation}")
                self.assertEqual(context.exception.code, FaultCode.UNSUPPORTED_TYPE)
                self.assertIn("non-empty choices", context.exception.message)


if __name__ == "__main__":
    unittest.main()
