"""
shipwright faults (errors, warnings, diagnostics) and rendering.

Scope
- FaultCode: canonical, stable numeric identifiers for every build-time and
  run-time issue, grouped by domain so logs and searches stay predictable.
- CompileError / CompileWarning: base types that carry message + options and
  know how to render themselves in a friendly, lowercased, actionable way, and
  how to turn themselves into a plain Diagnostic.
- Diagnostics: accumulator for one build; any error aborts the build with
  CompileExit (an ExceptionGroup of every error reported).
- DispatchError: the only run-time failure kind raised by generated wrappers.
- trigger(): central entry point to surface any fault (respecting shell/deferred/fancy/colorful).

UX goals
- Location-first messages: every build-time fault knows the file/line/column of
  the declaration, parameter or docstring line it is about.
- Soft but technical language: short titles, one-sentence bodies, a single clear
  hint (usually the corrected example).
- Lowercased tone with readable styling (configurable via __styles__ in __main__).

Integration
- compiler stages raise faults; the compiler reports them into Diagnostics and
  keeps going with the next declaration.
- In non-shell mode, triggered errors are raised; in shell mode, they are rendered via rich.
"""
import enum
import inspect
import logging
import sys
import warnings
from abc import ABC
from collections import defaultdict
from enum import IntEnum
from types import MappingProxyType
from typing import NamedTuple

from rich.console import Console, Group
from rich.panel import Panel
from rich.text import Text

from .model import Location
from .utils import *

console = Console(stderr=True)

log = logging.getLogger(__name__)


class FaultCode(IntEnum):
    """
    canonical fault codes used across the compiler (stable identifiers).

    grouping (by high-level domain)
    - syntax (21xxx)
      • SOURCE_SYNTAX, MODULE_NAME, ANNOTATION_ARGUMENTS, ANNOTATION_IDENTIFIER,
        ANNOTATION_NAME, MALFORMED_TAG
    - types (22xxx)
      • MISSING_ANNOTATION, UNSUPPORTED_TYPE, VARIADIC_PARAMETER,
        ASYNC_FUNCTION, INVALID_DEFAULT, MISSING_RETURN_TYPE, UNSERIALIZABLE_RETURN
    - invariants (23xxx)
      • DUPLICATE_REGISTRATION, DUPLICATE_ARGUMENT, COMPLEXITY, LAYERING,
        RELATIONSHIP
    - dispatch, at run time (24xxx)
      • MISSING_ARGUMENT, INVALID_VALUE
    - warnings (25xxx)
      • UNKNOWN_TAG, ORPHAN_TAG, UNDOCUMENTED_DESCRIPTION

    rationale
    - codes are discoverable (searchable in logs and docs) and normalized to a string
      via normalize() so hosts can remap them if desired (e.g., to shorter labels).
    """
    # --- syntax errors (21xxx) ---
    SOURCE_SYNTAX               = 21101
    MODULE_NAME                 = 21102
    ANNOTATION_ARGUMENTS        = 21111
    ANNOTATION_IDENTIFIER       = 21112
    ANNOTATION_NAME             = 21113
    MALFORMED_TAG               = 21121

    # --- type errors (22xxx) ---
    MISSING_ANNOTATION          = 22101
    UNSUPPORTED_TYPE            = 22102
    VARIADIC_PARAMETER          = 22103
    ASYNC_FUNCTION              = 22104
    INVALID_DEFAULT             = 22105
    MISSING_RETURN_TYPE         = 22111
    UNSERIALIZABLE_RETURN       = 22112

    # --- invariant errors (23xxx) ---
    DUPLICATE_REGISTRATION      = 23101
    DUPLICATE_ARGUMENT          = 23102
    COMPLEXITY                  = 23111
    LAYERING                    = 23121
    RELATIONSHIP                = 23131

    # --- dispatch errors (24xxx) ---
    MISSING_ARGUMENT            = 24101
    INVALID_VALUE               = 24102

    # --- warnings (25xxx) ---
    UNKNOWN_TAG                 = 25101
    ORPHAN_TAG                  = 25102
    UNDOCUMENTED_DESCRIPTION    = 25111

    def normalize(self):
        """
        return a host-normalized string for this code.

        the host application can provide a __codes__ mapping in __main__
        to override numeric ids with friendlier labels. when no mapping
        is present, the numeric value is returned as a string.
        """
        return str(getattr(__import__("__main__"), "__codes__", {}).get(self, self.value))


class Severity(enum.Enum):
    ERROR = "error"
    WARNING = "warning"


class Diagnostic(NamedTuple):
    """
    plain, renderer-independent view of one reported fault.

    str() renders the classic compiler line:
        app/services.py:12:0: error[22101] parameter 'lines' has no type annotation (hint: ...)
    """
    severity: Severity
    message: str
    location: Location | None = None
    suggestion: str | None = None
    code: FaultCode | None = None
    title: str | None = None

    def __str__(self):
        prefix = f"{self.location}: " if self.location is not None else ""
        code = f"[{self.code.normalize()}]" if self.code is not None else ""
        suffix = f" (hint: {self.suggestion})" if self.suggestion else ""
        return f"{prefix}{self.severity.value}{code} {self.message}{suffix}"


def _styles(defaults, /):
    return defaultdict(str, defaults | getattr(__import__("__main__"), "__styles__", {}))


def _render(fault, styles, kind, /):
    """
    Internal: shared rich renderer for errors and warnings.

    layout
    - plain:  "[ prog — code | Title ]", message, location, "→ hint"
    - fancy:  the same body inside a Panel titled with the header.
    """
    options = fault.options
    colorful = options.get("colorful", False)
    fancy = options.get("fancy", False)

    def styler(style):
        return styles[style] if colorful else ""

    def text(fragment, style=""):
        if not fragment:
            return Text("")
        if not colorful:
            return Text(str(fragment))
        if isinstance(fragment, Text):
            return fragment
        return Text(str(fragment), style)

    main = __import__("__main__")
    prog = text(getattr(main, "__prog__", options.get("prog", "shipwright")), styler("prog-name"))

    header = Text.assemble(
        "[ ",
        prog,
        " — ",
        text(fault.code.normalize(), styler("code")),
        " | ",
        text(fault.title.title(), styler(f"{kind}-title")),
        " ]"
    )
    body = [text(fault.message, styler(f"{kind}-message"))]
    if fault.location is not None:
        body.append(Text.assemble(text(" at ", styler("hint-arrow")), text(str(fault.location), styler("location"))))
    if fault.hint:
        body.append(Text.assemble(text(" → ", styler("hint-arrow")), text(fault.hint, styler("hint"))))

    if fancy:
        width = console.width - 4
        try:
            width = int(width * options["ratio"])
        except KeyError:
            width = None
        return Panel(Group(*body), title=header, title_align="left", width=width)

    return Group(header, *body)


class _Fault:
    """
    Internal: behavior shared by CompileError and CompileWarning.

    Class attributes __code__ / __title__ provide defaults; "code", "title",
    "hint" and "location" options override them per instance.
    """
    __code__ = Unset
    __title__ = Unset
    __severity__ = Unset

    def __init__(self, message=Unset, /, **options):
        assert isinstance(message, str | UnsetType)
        self.message = coalesce(message, "")
        self.options = MappingProxyType(options)
        super().__init__(self.message)

    @property
    def code(self):
        return self.options.get("code", type(self).__code__)

    @property
    def title(self):
        return self.options.get("title", type(self).__title__)

    @property
    def hint(self):
        return self.options.get("hint")

    @property
    def location(self):
        return self.options.get("location")

    @property
    def diagnostic(self):
        """this fault as a renderer-independent Diagnostic."""
        return Diagnostic(
            type(self).__severity__,
            self.message,
            self.location,
            self.hint,
            self.code,
            self.title,
        )

    def __str__(self):
        return str(self.diagnostic)

    def __replace__(self, *unused, **overrides):
        assert not unused, "positional arguments are not allowed"
        return type(self)(self.message, **{**self.options, **overrides})


class CompileError(_Fault, Exception):
    __code__ = FaultCode.SOURCE_SYNTAX
    __title__ = "compile error"
    __severity__ = Severity.ERROR

    def __rich__(self):
        return _render(self, _styles({
            # header parts
            "prog-name": "bold #E6E6F0",  # near-white program name
            "code": "bold #00E5FF",  # neon cyan fault code
            "error-title": "bold #FF4DA6",  # friendly pinky title

            # body
            "error-message": "#C8C8D0",  # soft light gray message
            "location": "#8A8FA3",  # muted location
            "hint-arrow": "#9CE19C dim",  # gentle green arrow
            "hint": "italic #9CE19C",  # gentle green hint text
        }), "error")

    def __trigger__(self) -> None:
        if not self.options.get("shell", False):
            raise self from None
        console.print(self)
        if self.options.get("deferred", False):
            return
        sys.exit(1)


class AnnotationSyntaxError(CompileError):
    __code__ = FaultCode.ANNOTATION_ARGUMENTS
    __title__ = "annotation syntax"


class SignatureTypeError(CompileError):
    __code__ = FaultCode.UNSUPPORTED_TYPE
    __title__ = "signature type"


class ReturnTypeError(SignatureTypeError):
    __code__ = FaultCode.UNSERIALIZABLE_RETURN
    __title__ = "return type"


class InvariantError(CompileError):
    __code__ = FaultCode.DUPLICATE_REGISTRATION
    __title__ = "invariant violation"


class DuplicateRegistrationError(InvariantError):
    __code__ = FaultCode.DUPLICATE_REGISTRATION
    __title__ = "duplicate command"


class DuplicateArgumentError(InvariantError):
    __code__ = FaultCode.DUPLICATE_ARGUMENT
    __title__ = "duplicate argument"


class ComplexityError(InvariantError):
    __code__ = FaultCode.COMPLEXITY
    __title__ = "complex command"


class LayeringError(InvariantError):
    __code__ = FaultCode.LAYERING
    __title__ = "layering violation"


class RelationshipError(InvariantError):
    __code__ = FaultCode.RELATIONSHIP
    __title__ = "broken relationship"


class CompileWarning(_Fault, ABC, Warning):
    __code__ = FaultCode.UNKNOWN_TAG
    __title__ = "compile warning"
    __severity__ = Severity.WARNING

    def __rich__(self):
        return _render(self, _styles({
            # header parts
            "prog-name": "bold #E6E6F0",  # near-white program name
            "code": "bold #FFB400",  # amber fault code for warnings
            "warning-title": "bold #FFC2E0",  # softer pinky title for warnings

            # body
            "warning-message": "#D6D6DE",  # slightly lighter gray body
            "location": "#8A8FA3",  # muted location
            "hint-arrow": "#B8EFAF dim",  # softer green arrow
            "hint": "italic #B8EFAF",  # softer green hint text
        }), "warning")

    def __trigger__(self) -> None:
        if not self.options.get("shell", False):
            return warnings.warn(self, stacklevel=len(inspect.stack()))
        console.print(self)


class UnknownTagWarning(CompileWarning):
    __code__ = FaultCode.UNKNOWN_TAG
    __title__ = "unknown tag"


class OrphanTagWarning(CompileWarning):
    __code__ = FaultCode.ORPHAN_TAG
    __title__ = "orphan tag"


class UndocumentedDescriptionWarning(CompileWarning):
    __code__ = FaultCode.UNDOCUMENTED_DESCRIPTION
    __title__ = "undocumented command"


class CompileExit(ExceptionGroup[CompileError]):
    def __new__(cls, exceptions, **options):
        return super().__new__(cls, "bad build", exceptions)

    def __init__(self, exceptions, **options):
        super().__init__("bad build", tuple(exceptions))
        self.options = MappingProxyType(options)

    @property
    def diagnostics(self):
        return tuple(exception.diagnostic for exception in self.exceptions)

    def __rich__(self):
        styles = _styles({
            # header
            "prog-name": "bold #E6E6F0",  # near-white program name
            "title": "bold #FF4DA6",  # friendly pinky group title (Bad Build)
        })
        colorful = self.options.get("colorful", False)

        def text(fragment, style=""):
            return Text(str(fragment), styles[style] if colorful else "")

        prog = text(getattr(__import__("__main__"), "__prog__", self.options.get("prog", "shipwright")), "prog-name")
        summary = f"{self.message.title()}: {pluralize(len(self.exceptions), 'error')}"
        header = Text.assemble("[ ", prog, " — ", text(summary, "title"), " ]")

        renders = [exception.__replace__(
            ratio=2/3,
            fancy=self.options.get("fancy", False),
            colorful=colorful,
        ) for exception in self.exceptions]

        if self.options.get("fancy", False):
            return Panel(Group(*renders), title=header, title_align="left")

        return Group(header, *renders)

    def __trigger__(self) -> None:
        if not self.options.get("shell", False):
            raise self from None
        console.print(self)
        sys.exit(1)

    def __replace__(self, *unused, **overrides):
        assert not unused, "positional arguments are not allowed"
        return type(self)(self.exceptions, **{**self.options, **overrides})


class Diagnostics:
    """
    Accumulator of every fault reported during one build.

    Behavior
    - report(fault) records errors and warnings in reporting order and logs them.
    - failed is True when any error was reported, or, with strict=True, when any
      warning was reported.
    - conclude(**options) raises CompileExit with every error (warnings included
      as errors under strict) when the build failed; it is a no-op otherwise.
    """

    def __init__(self, *, strict=False):
        if not isinstance(strict, bool):
            raise TypeError("Diagnostics() 'strict' must be a boolean")
        self.strict = strict
        self._faults = []

    def report(self, fault, /):
        if not isinstance(fault, CompileError | CompileWarning):
            raise TypeError("report() argument must be a compile error or warning")
        log.debug("reported %s", fault.diagnostic)
        self._faults.append(fault)
        return fault

    def extend(self, faults, /):
        for fault in faults:
            self.report(fault)

    @property
    def errors(self):
        return tuple(fault for fault in self._faults if isinstance(fault, CompileError))

    @property
    def warnings(self):
        return tuple(fault for fault in self._faults if isinstance(fault, CompileWarning))

    @property
    def failed(self):
        return bool(self.errors) or (self.strict and bool(self.warnings))

    def __iter__(self):
        return (fault.diagnostic for fault in self._faults)

    def __len__(self):
        return len(self._faults)

    def __bool__(self):
        return bool(self._faults)

    def __repr__(self):
        return f"Diagnostics({pluralize(len(self.errors), 'error')}, {pluralize(len(self.warnings), 'warning')})"

    def conclude(self, **options):
        if not self.failed:
            return
        errors = list(self.errors)
        if self.strict:
            errors += [CompileError(
                warning.message,
                code=warning.code,
                title=warning.title,
                hint=warning.hint,
                location=warning.location,
            ) for warning in self.warnings]
        raise CompileExit(errors, **options)


class DispatchError(Exception):
    """
    Run-time failure raised by a generated wrapper while extracting or converting
    one argument from the argument bag.

    Attributes
    - argument: name of the offending argument.
    - message: one-sentence description.
    - code: FaultCode (24xxx).
    """
    __code__ = FaultCode.INVALID_VALUE

    def __init__(self, argument, message, /, **options):
        if not isinstance(argument, str):
            raise TypeError("DispatchError() 'argument' must be a string")
        if not isinstance(message, str):
            raise TypeError("DispatchError() 'message' must be a string")
        self.argument = argument
        self.message = message
        self.options = MappingProxyType(options)
        super().__init__(f"argument {argument!r}: {message}")

    @property
    def code(self):
        return self.options.get("code", type(self).__code__)

    def to_dict(self):
        return {
            "kind": type(self).__name__,
            "code": self.code.value,
            "argument": self.argument,
            "message": self.message,
        }

    def __replace__(self, *unused, **overrides):
        assert not unused, "positional arguments are not allowed"
        return type(self)(self.argument, self.message, **{**self.options, **overrides})


class MissingArgumentError(DispatchError):
    __code__ = FaultCode.MISSING_ARGUMENT


class InvalidValueError(DispatchError):
    __code__ = FaultCode.INVALID_VALUE


def trigger(fault, /, **options):
    """
    surface a fault with the given runtime options.

    contract
    - fault must provide __trigger__ and __replace__ methods (see base classes).
    - options are merged into the fault via __replace__(**options) before triggering.
    - in shell mode, rendering happens via rich console; otherwise, errors are raised
      and warnings go through the warnings module.

    typical options
    - shell, fancy, colorful, deferred, prog, and any per-fault override
      (title, code, hint, location).
    """
    if (
        not hasattr(fault, "__trigger__") or
        not callable(fault.__trigger__) or
        not hasattr(fault, "__replace__") or
        not callable(fault.__replace__)
    ):
        raise TypeError("trigger() argument must have a __trigger__ and __replace__ methods")
    fault.__replace__(**options).__trigger__()


__all__ = (
    # Codes and diagnostics
    "FaultCode",
    "Severity",
    "Diagnostic",
    "Diagnostics",

    # Build-time errors
    "CompileError",
    "AnnotationSyntaxError",
    "SignatureTypeError",
    "ReturnTypeError",
    "InvariantError",
    "DuplicateRegistrationError",
    "DuplicateArgumentError",
    "ComplexityError",
    "LayeringError",
    "RelationshipError",
    "CompileExit",

    # Build-time warnings
    "CompileWarning",
    "UnknownTagWarning",
    "OrphanTagWarning",
    "UndocumentedDescriptionWarning",

    # Run-time errors
    "DispatchError",
    "MissingArgumentError",
    "InvalidValueError",

    # Functions
    "trigger",
)
