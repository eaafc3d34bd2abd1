"""
Signature analyzer: infer one ArgumentSpec per parameter from its declared type.

Inference table (first match wins)
- Optional[T] / T | None / Union[T, None]   → OPTIONAL (T picks the strategy);
  Optional[list[T]] stays MULTI_VALUE
- bool                                       → FLAG
- shipwright.scalars.Count                   → COUNTER, bounds 0..=255
- list/List/Sequence/set/frozenset[T], tuple[T, ...] → MULTI_VALUE
- positional-only parameters (before "/")   → POSITIONAL(index)
- anything else scalar                       → REQUIRED

Scalars
- str → STRING; int → INTEGER; float, f32, f64 → FLOAT
- u8..u64, usize, i8..i64, isize → INTEGER bounded by bit width
- pathlib.Path and friends → PATH (hint any-path)
- ipaddress.IPv4Address → IPV4; IPv6Address → IPV6
- IPv4Address | IPv6Address, shipwright.scalars.IPAddress → IP_ADDRESS (hint hostname)
- Literal["a", "b"] → CHOICE

Literal defaults are recorded as raw strings and make the argument optional.
"""
import logging
from inspect import Parameter

from .faults import FaultCode, SignatureTypeError
from .model import ArgumentSpec, Hint, Kind, NumericRange, Strategy, TypeRef
from .scalars import BOUNDS
from .utils import *

log = logging.getLogger(__name__)

SCALARS = "shipwright.scalars"

STRINGS = frozenset({"builtins.str"})
INTEGERS = frozenset({"builtins.int"})
FLOATS = frozenset({"builtins.float", f"{SCALARS}.f32", f"{SCALARS}.f64"})
BOOLEANS = frozenset({"builtins.bool"})
COUNTERS = frozenset({f"{SCALARS}.Count"})
PATHS = frozenset({
    "pathlib.Path",
    "pathlib.PurePath",
    "pathlib.PosixPath",
    "pathlib.WindowsPath",
    "pathlib.PurePosixPath",
    "pathlib.PureWindowsPath",
    "os.PathLike",
})
IPV4 = frozenset({"ipaddress.IPv4Address"})
IPV6 = frozenset({"ipaddress.IPv6Address"})
ADDRESSES = frozenset({f"{SCALARS}.IPAddress"})
OPTIONALS = frozenset({"typing.Optional", "typing_extensions.Optional"})
UNIONS = frozenset({"typing.Union", "typing_extensions.Union"})
LITERALS = frozenset({"typing.Literal", "typing_extensions.Literal"})
SEQUENCES = frozenset({
    "builtins.list",
    "builtins.set",
    "builtins.frozenset",
    "typing.List",
    "typing.Set",
    "typing.FrozenSet",
    "typing.Sequence",
    "typing.MutableSequence",
    "typing.AbstractSet",
    "collections.abc.Sequence",
    "collections.abc.MutableSequence",
    "collections.abc.Set",
})
TUPLES = frozenset({"builtins.tuple", "typing.Tuple"})

SUPPORTED = (
    "str, int, float, bool, u8..u64, usize, i8..i64, isize, f32, f64, Count, Path, "
    "IPv4Address, IPv6Address, IPAddress, Literal[...], Optional[T], T | None, "
    "list[T], set[T], frozenset[T], Sequence[T] or tuple[T, ...]"
)


class _Shape:
    """
    Internal: result of classifying one type.
    """
    __slots__ = ("kind", "strategy", "bounds", "hint", "choices")

    def __init__(self, kind, strategy=Strategy.STRING, bounds=None, hint=None, choices=()):
        self.kind = kind
        self.strategy = strategy
        self.bounds = bounds
        self.hint = hint
        self.choices = choices


def _unsupported(parameter, declared, /, reason=Unset):
    return SignatureTypeError(
        coalesce(reason, f"parameter {parameter.identifier!r} has an unsupported type {str(declared)!r}"),
        code=FaultCode.UNSUPPORTED_TYPE,
        hint=f"supported types: {SUPPORTED}",
        location=parameter.location,
    )


def _optional(declared):
    """inner type of an optional annotation, or None when it is not optional."""
    if declared.name in OPTIONALS and len(declared.arguments) == 1:
        return declared.arguments[0]
    if declared.name in UNIONS or declared.name == "<union>":
        members = [member for member in declared.arguments if member.name != "<none>"]
        if len(members) == len(declared.arguments) - 1 == 1:
            return members[0]
    return None


def _scalar(declared, parameter):
    """classify a scalar type (REQUIRED shape) or raise SignatureTypeError."""
    name = declared.name
    if declared.arguments and name not in LITERALS | UNIONS and name != "<union>":
        raise _unsupported(parameter, declared)
    if name in STRINGS:
        return _Shape(Kind.REQUIRED)
    if name in INTEGERS:
        return _Shape(Kind.REQUIRED, Strategy.INTEGER)
    if name in FLOATS:
        return _Shape(Kind.REQUIRED, Strategy.FLOAT)
    if name.startswith(SCALARS + ".") and (short := declared.short) in BOUNDS and name not in COUNTERS:
        return _Shape(Kind.REQUIRED, Strategy.INTEGER, NumericRange(*BOUNDS[short]))
    if name in BOOLEANS:
        return _Shape(Kind.REQUIRED, Strategy.BOOLEAN)
    if name in PATHS:
        return _Shape(Kind.REQUIRED, Strategy.PATH, hint=Hint.ANY_PATH)
    if name in IPV4:
        return _Shape(Kind.REQUIRED, Strategy.IPV4)
    if name in IPV6:
        return _Shape(Kind.REQUIRED, Strategy.IPV6)
    if name in ADDRESSES or (
        (name in UNIONS or name == "<union>") and
        sorted(member.name for member in declared.arguments) == sorted(IPV4 | IPV6)
    ):
        return _Shape(Kind.REQUIRED, Strategy.IP_ADDRESS, hint=Hint.HOSTNAME)
    if name in LITERALS:
        values = [argument.value for argument in declared.arguments]
        if not values or not all(argument.name == "<literal>" and isinstance(argument.value, str) for argument in declared.arguments):
            raise _unsupported(
                parameter,
                declared,
                f"parameter {parameter.identifier!r} must use string choices, got {str(declared)!r}",
            )
        if not all(value and value == value.strip() for value in values):
            raise _unsupported(
                parameter,
                declared,
                f"parameter {parameter.identifier!r} must use non-empty choices without surrounding spaces, got {str(declared)!r}",
            )
        return _Shape(Kind.REQUIRED, Strategy.CHOICE, choices=tuple(dict.fromkeys(values)))
    raise _unsupported(parameter, declared)


def _element(declared):
    """element type of a multi-value annotation, or None when it is not one."""
    if declared.name in SEQUENCES:
        if not declared.arguments:
            return TypeRef("builtins.str")
        if len(declared.arguments) == 1:
            return declared.arguments[0]
    if declared.name in TUPLES:
        if not declared.arguments:
            return TypeRef("builtins.str")
        if len(declared.arguments) == 2 and declared.arguments[1].name == "<ellipsis>":
            return declared.arguments[0]
    return None


def classify(parameter, /):
    """
    Kind/strategy/bounds/hint/choices of one parameter's declared type.

    Raises SignatureTypeError for unmappable types (the message names the type,
    the hint lists the supported shapes).
    """
    declared = parameter.declared_type
    optional = False
    if (inner := _optional(declared)) is not None:
        declared, optional = inner, True

    if (element := _element(declared)) is not None:
        if _optional(element) is not None or _element(element) is not None or element.name in BOOLEANS | COUNTERS:
            raise _unsupported(
                parameter,
                parameter.declared_type,
                f"parameter {parameter.identifier!r} must collect plain values, got {str(parameter.declared_type)!r}",
            )
        shape = _scalar(element, parameter)
        shape.kind = Kind.MULTI_VALUE
        return shape
    if declared.name in SEQUENCES | TUPLES:
        raise _unsupported(parameter, parameter.declared_type)

    if optional:
        if declared.name in COUNTERS:
            return _Shape(Kind.OPTIONAL, Strategy.INTEGER, NumericRange(*BOUNDS["Count"]))
        shape = _scalar(declared, parameter)
        shape.kind = Kind.OPTIONAL
        return shape
    if declared.name in BOOLEANS:
        return _Shape(Kind.FLAG, Strategy.BOOLEAN)
    if declared.name in COUNTERS:
        return _Shape(Kind.COUNTER, Strategy.INTEGER, NumericRange(*BOUNDS["Count"]))
    return _scalar(declared, parameter)


def _render(value):
    """a literal default as the raw string a caller would have supplied."""
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def _default(parameter, shape):
    """
    validate a literal default against the inferred shape.

    returns the raw default_value string (None when there is nothing to record).
    """
    literal = parameter.literal

    def invalid(reason, hint):
        return SignatureTypeError(
            f"parameter {parameter.identifier!r} {reason}",
            code=FaultCode.INVALID_DEFAULT,
            hint=hint,
            location=parameter.location,
        )

    if literal is Unset:
        raise invalid(
            f"has a non-literal default {parameter.default!r}",
            "use a literal default (number, string, boolean, None or a list of those)",
        )
    match shape.kind:
        case Kind.FLAG:
            if literal is not False:
                raise invalid("is a flag and can only default to False", f"{parameter.identifier}: bool = False")
            return None
        case Kind.COUNTER:
            if literal != 0 or isinstance(literal, bool):
                raise invalid("is a counter and can only default to 0", f"{parameter.identifier}: Count = 0")
            return None
        case Kind.MULTI_VALUE:
            if literal is None:
                return None
            if not isinstance(literal, list | tuple | set | frozenset):
                raise invalid("collects values and must default to a list", f"{parameter.identifier}: list[...] = []")
            values = [_render(value) for value in literal]
            if any("," in value for value in values):
                raise invalid("default values cannot contain commas", f"{parameter.identifier}: list[...] = []")
            return ",".join(values) or None

    if literal is None:
        if shape.kind is Kind.OPTIONAL:
            return None
        raise invalid(
            "defaults to None but is not optional",
            f"{parameter.identifier}: Optional[{parameter.declared_type}] = None",
        )
    if isinstance(literal, list | tuple | set | frozenset | dict | bytes):
        raise invalid(f"has an unsupported default {parameter.default!r}", "use a scalar literal default")
    if shape.strategy is Strategy.INTEGER and (not isinstance(literal, int) or isinstance(literal, bool)):
        raise invalid(f"must default to an integer, got {parameter.default!r}", f"{parameter.identifier}: int = 0")
    if shape.strategy is Strategy.FLOAT and (not isinstance(literal, int | float) or isinstance(literal, bool)):
        raise invalid(f"must default to a number, got {parameter.default!r}", f"{parameter.identifier}: float = 0.0")
    if shape.bounds is not None and literal not in shape.bounds:
        raise invalid(f"default {literal!r} is outside {shape.bounds}", f"use a default within {shape.bounds}")
    if shape.choices and str(literal) not in shape.choices:
        raise invalid(
            f"default {literal!r} is not one of {', '.join(map(repr, shape.choices))}",
            f"use one of {', '.join(map(repr, shape.choices))}",
        )
    return _render(literal)


def analyze(declaration, /):
    """
    Infer the ArgumentSpec of every parameter of a declaration, in order.

    Raises SignatureTypeError for async functions, variadic parameters, missing
    annotations, unmappable types and invalid defaults.
    """
    if declaration.asynchronous:
        raise SignatureTypeError(
            f"command {declaration.name!r} is declared with async def",
            code=FaultCode.ASYNC_FUNCTION,
            hint="declare command functions with a plain def and run async work inside",
            location=declaration.location,
        )
    specs = []
    positional = 0
    for parameter in declaration.parameters:
        if parameter.kind in (Parameter.VAR_POSITIONAL, Parameter.VAR_KEYWORD):
            star = "*" if parameter.kind is Parameter.VAR_POSITIONAL else "**"
            raise SignatureTypeError(
                f"parameter {star}{parameter.identifier} cannot be mapped to command arguments",
                code=FaultCode.VARIADIC_PARAMETER,
                hint=f"declare a list parameter instead, e.g. {parameter.identifier}: list[str]",
                location=parameter.location,
            )
        if parameter.declared_type is None:
            raise SignatureTypeError(
                f"parameter {parameter.identifier!r} has no type annotation",
                code=FaultCode.MISSING_ANNOTATION,
                hint=f"annotate it, e.g. {parameter.identifier}: str (supported types: {SUPPORTED})",
                location=parameter.location,
            )

        shape = classify(parameter)
        default_value = None
        required = shape.kind is Kind.REQUIRED
        if parameter.default is not None:
            default_value = _default(parameter, shape)
            required = False

        index = None
        if parameter.kind is Parameter.POSITIONAL_ONLY:
            if shape.kind in (Kind.FLAG, Kind.COUNTER, Kind.MULTI_VALUE):
                raise _unsupported(
                    parameter,
                    parameter.declared_type,
                    f"positional-only parameter {parameter.identifier!r} must take a single value, "
                    f"got {str(parameter.declared_type)!r}",
                )
            required = shape.kind is Kind.REQUIRED and parameter.default is None
            shape.kind, index = Kind.POSITIONAL, positional
            positional += 1

        specs.append(ArgumentSpec(
            parameter.identifier,
            required=required,
            kind=shape.kind,
            index=index,
            strategy=shape.strategy,
            value_bounds=shape.bounds,
            choices=shape.choices,
            default_value=default_value,
            completion_hint=shape.hint,
        ))
        log.debug("%s.%s: %s inferred as %s", declaration.module, declaration.name, parameter.identifier, shape.kind.value)
    return tuple(specs)


__all__ = (
    # Functions
    "analyze",
    "classify",
)
