"""
Annotation parser tests (decorator shapes, inference, docstring summary).

Scope
- Validate the three accepted decorator shapes and name inference.
- Validate AnnotationSyntaxError codes and corrected-example hints.
- Validate docstring summary extraction.

Conventions
- Test method names follow CamelCase per project convention.
- Declarations are parsed from inline source; nothing is imported.
"""

from __future__ import annotations

import textwrap
import unittest
from unittest import TestCase

from shipwright import annotation, source
from shipwright.faults import AnnotationSyntaxError, FaultCode


def declare(text, module="app.services"):
    declaration, = source.parse(textwrap.dedent(text), filename="services.py", module=module)
    return declaration


def configure(text, module="app.services"):
    declaration = declare(text, module)
    return annotation.resolve(annotation.parse(declaration), declaration)


class TestDecoratorShapes(TestCase):
    """Behavioral tests for the accepted decorator shapes."""

    def testBareDecoratorInfersBothNames(self):
        config = configure('''
            @command
            def show_status(service: str) -> dict:
                """Show the status of a service."""
        ''')
        self.assertEqual(config.command, "status")
        self.assertEqual(config.category, "services")
        self.assertEqual(config.description, "Show the status of a service.")

    def testEmptyCallInfersBothNames(self):
        config = configure('''
            @command()
            def restart(service: str) -> dict:
                pass
        ''')
        self.assertEqual((config.command, config.category), ("restart", "services"))
        self.assertEqual(config.description, "")

    def testSingleArgumentIsTheCommand(self):
        config = configure('''
            from shipwright import command

            @command("status")
            def anything(service: str) -> dict:
                pass
        ''', module="app.collector")
        self.assertEqual((config.command, config.category), ("status", "collector"))

    def testTwoArgumentsAreCommandAndCategory(self):
        config = configure('''
            import shipwright as sw

            @sw.command("tail", "logs")
            def tail_logs(lines: int) -> list:
                pass
        ''')
        self.assertEqual((config.command, config.category), ("tail", "logs"))

    def testCategoryPrefixIsStrippedFromInferredCommands(self):
        config = configure('''
            @command
            def collector_status() -> dict:
                pass
        ''', module="app.collector")
        self.assertEqual(config.command, "status")

    def testExplicitCommandIsKeptVerbatim(self):
        config = configure('''
            @command("collector_status")
            def status() -> dict:
                pass
        ''', module="app.collector")
        self.assertEqual(config.command, "collector_status")


class TestDecoratorFaults(TestCase):
    """Behavioral tests for malformed decorators."""

    def parse(self, text):
        return annotation.parse(declare(text))

    def testIdentifierArgumentSuggestsQuotes(self):
        with self.assertRaises(AnnotationSyntaxError) as context:
            self.parse('''
                @command(status)
                def show(service: str) -> dict:
                    pass
            ''')
        self.assertEqual(context.exception.code, FaultCode.ANNOTATION_IDENTIFIER)
        self.assertIn('@command("status")', context.exception.hint)

    def testKeywordArgumentRaises(self):
        with self.assertRaises(AnnotationSyntaxError) as context:
            self.parse('''
                @command(name="status")
                def show(service: str) -> dict:
                    pass
            ''')
        self.assertEqual(context.exception.code, FaultCode.ANNOTATION_ARGUMENTS)
        self.assertIn('@command("status")', context.exception.hint)

    def testTooManyArgumentsRaise(self):
        with self.assertRaises(AnnotationSyntaxError) as context:
            self.parse('''
                @command("a", "b", "c")
                def show(service: str) -> dict:
                    pass
            ''')
        self.assertIn("at most 2 arguments", context.exception.message)

    def testNonStringLiteralRaises(self):
        with self.assertRaises(AnnotationSyntaxError) as context:
            self.parse('''
                @command(42)
                def show(service: str) -> dict:
                    pass
            ''')
        self.assertEqual(context.exception.code, FaultCode.ANNOTATION_ARGUMENTS)
        self.assertIsNotNone(context.exception.location)

    def testFaultLocationPointsAtTheDecorator(self):
        with self.assertRaises(AnnotationSyntaxError) as context:
            self.parse('''
                @command(status)
                def show(service: str) -> dict:
                    pass
            ''')
        self.assertEqual(context.exception.location.file, "services.py")
        self.assertEqual(context.exception.location.line, 2)


class TestSummary(TestCase):
    """Behavioral tests for the docstring summary."""

    def testFirstParagraphIsCollapsed(self):
        text = "Show the status\n  of a   service.\n\nLonger explanation."
        self.assertEqual(annotation.summary(text), "Show the status of a service.")

    def testSummaryStopsAtSectionHeading(self):
        text = "Tail the log\nArgs:\n    lines: how many"
        self.assertEqual(annotation.summary(text), "Tail the log")

    def testSummaryStopsAtTag(self):
        self.assertEqual(annotation.summary("Restart it [hide]"), "Restart it")

    def testMissingDocstringIsEmpty(self):
        self.assertEqual(annotation.summary(None), "")

    def testSummaryKeepsSentencesWithColonsInside(self):
        self.assertEqual(annotation.summary("Returns the status: up or down."), "Returns the status: up or down.")

    def testSummaryEndingInAColonIsKept(self):
        self.assertEqual(annotation.summary("Restart services:"), "Restart services:")
        self.assertEqual(annotation.summary("Restart services:\n\nArgs:\n    name: unit"), "Restart services:")
        self.assertEqual(annotation.summary("Restart services:\nall of them at once."), "Restart services: all of them at once.")

    def testLabelIntroducingAnIndentedBlockIsAHeading(self):
        self.assertEqual(annotation.summary("Sync the mirror\nUsage:\n    sync --all"), "Sync the mirror")

    def testKnownSectionsAndUnderlinedHeadingsStopTheSummary(self):
        self.assertEqual(annotation.summary("Sync the mirror\nReturns:"), "Sync the mirror")
        self.assertEqual(annotation.summary("Sync the mirror\nParameters\n----------\nname : str"), "Sync the mirror")


class TestInference(TestCase):
    """Behavioral tests for command name inference."""

    def testFirstVerbPrefixIsStripped(self):
        self.assertEqual(annotation.infer_command("list_users"), "users")
        self.assertEqual(annotation.infer_command("get_set_value"), "set_value")

    def testBareVerbIsKept(self):
        self.assertEqual(annotation.infer_command("run"), "run")
        self.assertEqual(annotation.infer_command("show_"), "show_")

    def testCustomPrefixes(self):
        self.assertEqual(annotation.infer_command("do_backup", ("do_",)), "backup")


if __name__ == "__main__":
    unittest.main()
