"""
Faults module tests (codes, diagnostics, rendering, triggering).

Scope
- Validate code normalization and fault-to-diagnostic conversion.
- Validate Diagnostics accumulation and the strict mode.
- Validate Rich rendering and shell/non-shell triggering.

Conventions
- Test method names follow CamelCase per project convention.
- Rendering is captured with a recording Rich console.
"""

from __future__ import annotations

import io
import unittest
import warnings
from unittest import TestCase, mock

from rich.console import Console

from shipwright import faults
from shipwright.faults import (
    CompileError,
    CompileExit,
    ComplexityError,
    Diagnostics,
    DuplicateRegistrationError,
    FaultCode,
    Severity,
    UnknownTagWarning,
    trigger,
)
from shipwright.model import Location


def render(renderable):
    console = Console(file=io.StringIO(), record=True, width=120, color_system=None)
    console.print(renderable)
    return console.export_text()


class TestCodes(TestCase):
    """Behavioral tests for fault codes."""

    def testCodesAreGroupedByDomain(self):
        self.assertEqual(FaultCode.ANNOTATION_IDENTIFIER // 1000, 21)
        self.assertEqual(FaultCode.UNSUPPORTED_TYPE // 1000, 22)
        self.assertEqual(FaultCode.COMPLEXITY // 1000, 23)
        self.assertEqual(FaultCode.MISSING_ARGUMENT // 1000, 24)
        self.assertEqual(FaultCode.UNKNOWN_TAG // 1000, 25)

    def testCodesAreUnique(self):
        self.assertEqual(len({code.value for code in FaultCode}), len(FaultCode))


class TestDiagnostic(TestCase):
    """Behavioral tests for fault-to-diagnostic conversion."""

    def testErrorDiagnostic(self):
        error = ComplexityError("too complex", hint="delegate", location=Location("app.py", 4, 0))
        diagnostic = error.diagnostic
        self.assertIs(diagnostic.severity, Severity.ERROR)
        self.assertEqual(diagnostic.code, FaultCode.COMPLEXITY)
        self.assertEqual(diagnostic.suggestion, "delegate")
        self.assertEqual(diagnostic.title, "complex command")
        self.assertTrue(str(diagnostic).startswith("app.py:4:0: error["))
        self.assertTrue(str(diagnostic).endswith("too complex (hint: delegate)"))

    def testWarningDiagnostic(self):
        diagnostic = UnknownTagWarning("unknown tag [x] is ignored").diagnostic
        self.assertIs(diagnostic.severity, Severity.WARNING)
        self.assertIsNone(diagnostic.location)

    def testOptionsOverrideClassDefaults(self):
        error = CompileError("bad", code=FaultCode.SOURCE_SYNTAX, title="source syntax")
        self.assertEqual((error.code, error.title), (FaultCode.SOURCE_SYNTAX, "source syntax"))

    def testReplaceKeepsMessageAndOptions(self):
        error = ComplexityError("too complex", hint="delegate").__replace__(shell=True)
        self.assertIsInstance(error, ComplexityError)
        self.assertEqual((error.message, error.hint, error.options["shell"]), ("too complex", "delegate", True))


class TestDiagnostics(TestCase):
    """Behavioral tests for the build accumulator."""

    def testErrorsFailTheBuild(self):
        diagnostics = Diagnostics()
        diagnostics.report(UnknownTagWarning("w"))
        self.assertFalse(diagnostics.failed)
        diagnostics.conclude()
        diagnostics.report(DuplicateRegistrationError("dup"))
        self.assertTrue(diagnostics.failed)
        with self.assertRaises(CompileExit) as context:
            diagnostics.conclude()
        self.assertEqual(len(context.exception.exceptions), 1)
        self.assertEqual([diagnostic.severity for diagnostic in diagnostics], [Severity.WARNING, Severity.ERROR])

    def testStrictTurnsWarningsIntoErrors(self):
        diagnostics = Diagnostics(strict=True)
        diagnostics.report(UnknownTagWarning("w", hint="h"))
        self.assertTrue(diagnostics.failed)
        with self.assertRaises(CompileExit) as context:
            diagnostics.conclude()
        error, = context.exception.exceptions
        self.assertIsInstance(error, CompileError)
        self.assertEqual(error.code, FaultCode.UNKNOWN_TAG)

    def testOnlyFaultsAreAccepted(self):
        with self.assertRaises(TypeError):
            Diagnostics().report(ValueError("nope"))

    def testExitCarriesEveryDiagnostic(self):
        exit_ = CompileExit([DuplicateRegistrationError("a"), ComplexityError("b")])
        self.assertEqual([diagnostic.message for diagnostic in exit_.diagnostics], ["a", "b"])
        self.assertEqual(exit_.message, "bad build")


class TestRendering(TestCase):
    """Behavioral tests for Rich rendering."""

    def testPlainRendering(self):
        error = ComplexityError("too complex", hint="delegate", location=Location("app.py", 4, 0))
        text = render(error)
        self.assertIn(f"[ shipwright — {FaultCode.COMPLEXITY.normalize()} | Complex Command ]", text)
        self.assertIn("too complex", text)
        self.assertIn("at app.py:4:0", text)
        self.assertIn("→ delegate", text)

    def testFancyRenderingUsesPanels(self):
        text = render(ComplexityError("too complex").__replace__(fancy=True))
        self.assertIn("╭", text)

    def testExitRenderingCountsErrors(self):
        text = render(CompileExit([DuplicateRegistrationError("a"), ComplexityError("b")]))
        self.assertIn("Bad Build: 2 errors", text)


class TestTrigger(TestCase):
    """Behavioral tests for trigger()."""

    def testErrorsRaiseOutsideShell(self):
        with self.assertRaises(ComplexityError):
            trigger(ComplexityError("too complex"))

    def testErrorsExitInShell(self):
        with mock.patch.object(faults, "console") as console:
            with self.assertRaises(SystemExit) as context:
                trigger(ComplexityError("too complex"), shell=True)
        self.assertEqual(context.exception.code, 1)
        console.print.assert_called_once()

    def testDeferredErrorsOnlyPrint(self):
        with mock.patch.object(faults, "console") as console:
            trigger(ComplexityError("too complex"), shell=True, deferred=True)
        console.print.assert_called_once()

    def testWarningsUseTheWarningsModule(self):
        with warnings.catch_warnings(record=True) as caught:
            warnings.simplefilter("always")
            trigger(UnknownTagWarning("unknown tag [x] is ignored"))
        self.assertEqual(len(caught), 1)
        self.assertIsInstance(caught[0].message, UnknownTagWarning)

    def testExitExitsInShell(self):
        with mock.patch.object(faults, "console"):
            with self.assertRaises(SystemExit):
                trigger(CompileExit([ComplexityError("b")]), shell=True)

    def testTriggerRejectsPlainObjects(self):
        with self.assertRaises(TypeError):
            trigger(object())


if __name__ == "__main__":
    unittest.main()
