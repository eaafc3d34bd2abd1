"""
Validation engine tests (each guard in isolation, then the ordered pipeline).

Scope
- Validate return-type, annotation, duplicate, complexity, layering and
  relationship guards.
- Validate the build-wide symbol table.

Conventions
- Test method names follow CamelCase per project convention.
- Declarations are parsed from inline source; nothing is imported.
"""

from __future__ import annotations

import textwrap
import unittest
from unittest import TestCase

from shipwright import annotation, emitter, guards, signature, source
from shipwright.faults import (
    AnnotationSyntaxError,
    ComplexityError,
    DuplicateArgumentError,
    DuplicateRegistrationError,
    FaultCode,
    LayeringError,
    RelationshipError,
    ReturnTypeError,
    UndocumentedDescriptionWarning,
)
from shipwright.model import AnnotationConfig, ArgumentSpec, Location


def declare(text, module="app.services"):
    declaration, = source.parse(textwrap.dedent(text), filename="services.py", module=module)
    return declaration


def declare_returning(returns, imports=""):
    return declare(f"""
        {imports}
        @command
        def status(service: str) -> {returns}:
            \"\"\"Show the status.\"\"\"
    """)


class TestReturnGuard(TestCase):
    """Behavioral tests for the return-type guard."""

    def testSerializableReturnsPass(self):
        for returns in ("dict", "list[str]", "Optional[int]", "str | None", "Report"):
            with self.subTest(returns=returns):
                guards.check_return(declare_returning(returns, "from typing import Optional"))

    def testMissingReturnAnnotation(self):
        declaration = declare("""
            @command
            def status(service: str):
                pass
        """)
        with self.assertRaises(ReturnTypeError) as context:
            guards.check_return(declaration)
        self.assertEqual(context.exception.code, FaultCode.MISSING_RETURN_TYPE)

    def testUnserializableReturnsAreRejected(self):
        cases = {
            "None": "",
            "NoReturn": "from typing import NoReturn",
            "Iterator[int]": "from typing import Iterator",
            "Callable[[], int]": "from collections.abc import Callable",
            "Optional[bytes]": "from typing import Optional",
            "object": "",
        }
        for returns, imports in cases.items():
            with self.subTest(returns=returns):
                with self.assertRaises(ReturnTypeError) as context:
                    guards.check_return(declare_returning(returns, imports))
                self.assertEqual(context.exception.code, FaultCode.UNSERIALIZABLE_RETURN)


class TestAnnotationGuard(TestCase):
    """Behavioral tests for the annotation-syntax guard."""

    def setUp(self):
        self.declaration = declare_returning("dict")

    def testValidNamesPass(self):
        warnings = guards.check_annotation(AnnotationConfig("status", "services", "Show it."), self.declaration)
        self.assertEqual(warnings, [])

    def testInvalidNamesRaiseWithCorrectedExample(self):
        for command, category in (("1st", "services"), ("status", "my services"), ("", "services")):
            with self.subTest(command=command, category=category):
                with self.assertRaises(AnnotationSyntaxError) as context:
                    guards.check_annotation(AnnotationConfig(command, category, "Show it."), self.declaration)
                self.assertEqual(context.exception.code, FaultCode.ANNOTATION_NAME)
                self.assertTrue(context.exception.hint.startswith("@command("))

    def testEmptyDescriptionWarns(self):
        warning, = guards.check_annotation(AnnotationConfig("status", "services", ""), self.declaration)
        self.assertIsInstance(warning, UndocumentedDescriptionWarning)


class TestDuplicateGuard(TestCase):
    """Behavioral tests for duplicate registrations and arguments."""

    def testSymbolFolding(self):
        self.assertEqual(guards.symbol("net-tools", "ip.show"), "__SHIPWRIGHT_NET_TOOLS_IP_SHOW")

    def testSecondClaimNamesBothLocations(self):
        table = guards.SymbolTable()
        table.claim("services", "status", Location("a.py", 3))
        with self.assertRaises(DuplicateRegistrationError) as context:
            table.claim("services", "status", Location("b.py", 7))
        self.assertIn("a.py:3", context.exception.message)
        self.assertIn("b.py:7", context.exception.message)
        self.assertEqual(len(table), 1)

    def testPairsSharingAFoldedSymbolCoexist(self):
        table = guards.SymbolTable()
        table.claim("user_admin", "list")
        table.claim("user", "admin_list")
        self.assertEqual(guards.symbol("user_admin", "list"), guards.symbol("user", "admin_list"))
        self.assertEqual(list(table), [("user", "admin_list"), ("user_admin", "list")])

    def testPairsSharingAModuleCollide(self):
        cases = (
            (("net-tools", "show"), ("net_tools", "show")),
            (("a", "b__c"), ("a__b", "c")),
            (("services", "Status"), ("services", "status")),
        )
        for first, second in cases:
            with self.subTest(first=first, second=second):
                table = guards.SymbolTable()
                table.claim(*first, Location("a.py", 3))
                with self.assertRaises(DuplicateRegistrationError) as context:
                    table.claim(*second, Location("b.py", 7))
                self.assertIn("a.py:3", context.exception.message)
                self.assertIn(f"{emitter.module_name(*second)}.py", context.exception.message)
                self.assertEqual(context.exception.location, Location("b.py", 7))
                self.assertNotIn(second, table)

    def testDistinctPairsCoexist(self):
        table = guards.SymbolTable()
        table.claim("services", "status")
        table.claim("services", "restart")
        table.claim("logs", "status")
        self.assertIn(("logs", "status"), table)
        self.assertEqual(len(table), 3)

    def testArgumentsFoldingToOneSwitchCollide(self):
        declaration = declare_returning("dict")
        specs = [ArgumentSpec("dry_run", required=True), ArgumentSpec("dry_run_", required=True)]
        with self.assertRaises(DuplicateArgumentError):
            guards.check_duplicates(AnnotationConfig("status", "services"), specs, declaration, guards.SymbolTable())

    def testShortSwitchesAndAliasesCollide(self):
        declaration = declare_returning("dict")
        cases = (
            [ArgumentSpec("verbose", required=True, short="v"), ArgumentSpec("version", required=True, short="v")],
            [ArgumentSpec("verbose", required=True), ArgumentSpec("chatty", required=True, aliases=("verbose",))],
        )
        for specs in cases:
            with self.subTest(specs=[spec.switches for spec in specs]):
                with self.assertRaises(DuplicateArgumentError) as context:
                    guards.check_duplicates(AnnotationConfig("status", "services"), specs, declaration, guards.SymbolTable())
                self.assertIn(repr(specs[0].name), context.exception.message)
                self.assertIn("[short]", context.exception.hint)


class TestComplexityGuard(TestCase):
    """Behavioral tests for the complexity guard."""

    def testStraightLineBodyScoresOne(self):
        declaration = declare("""
            @command
            def status(service: str) -> dict:
                result = lookup(service)
                return result
        """)
        self.assertEqual(guards.complexity(declaration.node), 1)

    def testDecisionPointsAreCounted(self):
        declaration = declare("""
            @command
            def status(service: str) -> dict:
                if service and ready:
                    pass
                for item in [x for x in range(3) if x]:
                    pass
                try:
                    pass
                except ValueError:
                    pass
                return {} if service else {"x": 1}
        """)
        # 1 + if + and + for + comprehension (1 loop, 1 filter) + except + ternary
        self.assertEqual(guards.complexity(declaration.node), 8)

    def testNestedFunctionsCount(self):
        declaration = declare("""
            @command
            def status(service: str) -> dict:
                def inner():
                    while True:
                        break
                return inner()
        """)
        self.assertEqual(guards.complexity(declaration.node), 2)

    def testAboveThresholdRaises(self):
        declaration = declare("""
            @command
            def status(service: str) -> dict:
                if a:
                    pass
                if b:
                    pass
                if c:
                    pass
                if d:
                    pass
                if e:
                    pass
                return {}
        """)
        with self.assertRaises(ComplexityError) as context:
            guards.check_complexity(declaration)
        self.assertIn("delegate to plain logic functions", context.exception.message)
        guards.check_complexity(declaration, threshold=6)


class TestLayeringGuard(TestCase):
    """Behavioral tests for the layering guard."""

    def testCommandLayerTypesAreRejected(self):
        cases = (
            ("import argparse", "namespace: argparse.Namespace", "dict"),
            ("from click import Context", "context: Context", "dict"),
            ("from shipwright.runtime import ArgumentBag", "bag: ArgumentBag", "dict"),
            ("from shipwright import OutputEnvelope", "service: str", "OutputEnvelope"),
        )
        for imports, parameters, returns in cases:
            with self.subTest(parameters=parameters, returns=returns):
                declaration = declare(f"""
                    {imports}

                    @command
                    def status({parameters}) -> {returns}:
                        pass
                """)
                with self.assertRaises(LayeringError):
                    guards.check_layering(declaration)

    def testScalarsAreAllowed(self):
        declaration = declare("""
            from shipwright.scalars import u8

            @command
            def status(level: u8) -> dict:
                pass
        """)
        guards.check_layering(declaration)

    def testConfiguredLayers(self):
        declaration = declare("""
            from app.cli import Options

            @command
            def status(options: Options) -> dict:
                pass
        """)
        guards.check_layering(declaration)
        with self.assertRaises(LayeringError):
            guards.check_layering(declaration, layers=("app.cli",))


class TestRelationshipGuard(TestCase):
    """Behavioral tests for requires/conflicts references."""

    def setUp(self):
        self.declaration = declare_returning("dict")

    def testKnownTargetsPass(self):
        specs = [ArgumentSpec("quiet"), ArgumentSpec("verbose", conflicts_with=("quiet",))]
        guards.check_relationships(specs, self.declaration)

    def testUnknownTargetSuggests(self):
        specs = [ArgumentSpec("quiet"), ArgumentSpec("verbose", conflicts_with=("quite",))]
        with self.assertRaises(RelationshipError) as context:
            guards.check_relationships(specs, self.declaration)
        self.assertIn("'quiet'", context.exception.hint)

    def testSelfReferenceRaises(self):
        with self.assertRaises(RelationshipError):
            guards.check_relationships([ArgumentSpec("verbose", requires=("verbose",))], self.declaration)

    def testRequiresAndConflictsOverlapRaises(self):
        specs = [ArgumentSpec("a"), ArgumentSpec("b", requires=("a",), conflicts_with=("a",))]
        with self.assertRaises(RelationshipError):
            guards.check_relationships(specs, self.declaration)


class TestValidate(TestCase):
    """Behavioral tests for the ordered guard pipeline."""

    def testFirstFailingGuardWins(self):
        declaration = declare("""
            import argparse

            @command("bad name")
            def status(namespace: argparse.Namespace):
                pass
        """)
        config = annotation.resolve(annotation.parse(declaration), declaration)
        with self.assertRaises(ReturnTypeError):
            guards.validate(declaration, config, (), table=guards.SymbolTable())

    def testPassingDeclarationReturnsWarnings(self):
        declaration = declare("""
            @command
            def status(service: str) -> dict:
                return {}
        """)
        config = annotation.resolve(annotation.parse(declaration), declaration)
        table = guards.SymbolTable()
        warnings = guards.validate(declaration, config, signature.analyze(declaration), table=table)
        self.assertEqual([type(warning) for warning in warnings], [UndocumentedDescriptionWarning])
        self.assertIn(("services", "status"), table)


if __name__ == "__main__":
    unittest.main()
