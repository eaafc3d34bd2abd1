r"""
shipwright data model: the records that flow through the compiler pipeline.

Overview
- Enumerations
  • Kind: inferred argument shape (required, optional, flag, counter, multi-value, positional).
  • Strategy: value-parsing strategy of a single raw value (string, integer, path, ...).
  • Hint: completion hint forwarded to the downstream argument parser.

- Value types (plain named tuples)
  • NumericRange: inclusive numeric bounds, either side optional (rendered "0..=255").
  • Location: file/line/column of a declaration, parameter or docstring line.
  • TypeRef: canonical, import-resolved view of a type annotation.

- Records (immutable, introspectable)
  • ParameterDescriptor: one per function parameter (read-only view of the declaration).
  • AnnotationConfig: what the @command(...) decorator and the docstring summary say.
  • ArgumentSpec: the merged, authoritative description of one argument.
  • RegistrationRecord: the metadata describing one command for the registry.
  • EmittedArtifact: generated wrapper source plus its registration record.

Records
- RecordType metaclass provides stable __repr__/__rich_repr__, equality/hashing over
  the introspectable fields, and exposes every field listed in __introspectable__
  as a read-only property via mirror().
- Every record sanitizes its metadata on construction; wrong types raise TypeError,
  wrong values raise ValueError, both naming the record and the field.
- __replace__(**overrides) derives an updated copy (copy.replace() compatible); this
  is how relationship tags override inferred values without mutating anything.

Quick example:
    >>> spec = ArgumentSpec("port", required=True, kind=Kind.REQUIRED, strategy=Strategy.INTEGER)
    >>> spec.__replace__(default_value="8080", required=False).required
    False
"""
import enum
import functools
import operator
import re
from collections.abc import Iterable
from inspect import Parameter
from typing import NamedTuple

from .utils import *


class Kind(enum.Enum):
    """
    inferred argument shape.

    - REQUIRED: a value that must be supplied (unless defaulted).
    - OPTIONAL: an optional value (Optional[T] / T | None).
    - FLAG: presence-only boolean switch.
    - COUNTER: number of repetitions of a switch (e.g., -vvv).
    - MULTI_VALUE: zero or more values collected into a list.
    - POSITIONAL: value taken by position; the index lives in ArgumentSpec.index.
    """
    REQUIRED = "required"
    OPTIONAL = "optional"
    FLAG = "flag"
    COUNTER = "counter"
    MULTI_VALUE = "multi-value"
    POSITIONAL = "positional"


class Strategy(enum.Enum):
    """
    value-parsing strategy applied to one raw string value.
    """
    STRING = "string"
    INTEGER = "integer"
    FLOAT = "float"
    BOOLEAN = "boolean"
    PATH = "path"
    IPV4 = "ipv4"
    IPV6 = "ipv6"
    IP_ADDRESS = "ip-address"
    CHOICE = "choice"


class Hint(enum.Enum):
    """
    completion hint consumed by the downstream argument parser.
    """
    ANY_PATH = "any-path"
    FILE_PATH = "file-path"
    DIR_PATH = "dir-path"
    EXECUTABLE_PATH = "executable-path"
    COMMAND_NAME = "command-name"
    COMMAND_STRING = "command-string"
    COMMAND_WITH_ARGUMENTS = "command-with-arguments"
    USERNAME = "username"
    HOSTNAME = "hostname"
    URL = "url"
    EMAIL_ADDRESS = "email-address"
    OTHER = "other"

    @classmethod
    def parse(cls, text, /):
        """
        resolve a hint from snake_case, kebab-case or CamelCase spelling.

        raises ValueError for unknown names (the message lists valid ones).
        """
        if not isinstance(text, str):
            raise TypeError("Hint.parse() argument must be a string")
        folded = re.sub(r"(?<=[a-z0-9])(?=[A-Z])", "-", text.strip()).lower().replace("_", "-")
        try:
            return cls(folded)
        except ValueError:
            raise ValueError(
                "unknown value hint %r (expected one of: %s)" % (text, ", ".join(hint.value for hint in cls))
            ) from None


class NumericRange(NamedTuple):
    """
    inclusive numeric bounds; None on either side means unbounded.
    """
    minimum: int | float | None = None
    maximum: int | float | None = None

    def __contains__(self, value):
        if self.minimum is not None and value < self.minimum:
            return False
        if self.maximum is not None and value > self.maximum:
            return False
        return True

    def __str__(self):
        return f"{'' if self.minimum is None else self.minimum}..={'' if self.maximum is None else self.maximum}"


class Location(NamedTuple):
    """
    source position (1-based line, 0-based column as reported by ast).
    """
    file: str
    line: int = 0
    column: int = 0

    def __str__(self):
        return f"{self.file}:{self.line}:{self.column}" if self.line else self.file


class TypeRef(NamedTuple):
    """
    canonical, import-resolved view of an annotation expression.

    - name: dotted name resolved through the module imports ("builtins.int",
      "typing.Optional", "shipwright.scalars.u8"), or one of the markers
      "<union>", "<literal>", "<ellipsis>", "<none>", "<unknown>".
    - arguments: subscript arguments (Optional[int] → (TypeRef("builtins.int"),)).
    - value: literal payload for "<literal>" entries.
    """
    name: str
    arguments: tuple = ()
    value: object = None

    @property
    def short(self):
        """last dotted segment of the name (markers are returned as-is)."""
        return self.name if self.name.startswith("<") else self.name.rpartition(".")[2]

    def walk(self):
        """yield this reference and every nested argument, depth first."""
        yield self
        for argument in self.arguments:
            yield from argument.walk()

    def __str__(self):
        match self.name:
            case "<none>":
                return "None"
            case "<ellipsis>":
                return "..."
            case "<literal>":
                return repr(self.value)
            case "<union>":
                return " | ".join(map(str, self.arguments))
        if not self.arguments:
            return self.short
        return f"{self.short}[{', '.join(map(str, self.arguments))}]"


class RecordType(type):
    """
    Metaclass that turns record classes into immutable, introspectable values.

    Responsibilities
    - Expose every name listed in __introspectable__ as a read-only property
      mirroring the private "_<name>" backing field.
    - Provide stable __repr__/__rich_repr__ for diagnostics and `inspect` output.
    - Provide value semantics: equality and hashing over the introspectable fields.
    - Provide __replace__(**overrides) to derive an updated copy.

    Conventions
    - __typename__ is derived from the class name (camel-case split with hyphens)
      and used in messages ("argument-spec 'name' must be a string").
    - __displayable__ (if set) narrows which properties are shown by __rich_repr__.
    """
    __introspectable__ = ()
    __displayable__ = Unset

    def __new__(cls, name, bases, namespace, **options):
        self = super().__new__(
            cls,
            name,
            bases,
            namespace | {
                "__typename__": re.sub(r"(?<!^)(?=[A-Z])", r"-", name).lower(),
            } | {
                name: mirror(name) for name in namespace.get("__introspectable__", ())
            },
        )

        @rename("__repr__")
        def __repr__(self):
            return f"{type(self).__typename__}({
                ", ".join(map(functools.partial(operator.mod, "%s=%r"), self.__rich_repr__()))
            })"
        self.__repr__ = __repr__

        @rename("__rich_repr__")
        def __rich_repr__(self):
            for name in coalesce(type(self).__displayable__, type(self).__introspectable__):
                yield name, getattr(self, name)
        self.__rich_repr__ = __rich_repr__

        @rename("__eq__")
        def __eq__(self, other):
            if type(other) is not type(self):
                return NotImplemented
            return all(getattr(self, name) == getattr(other, name) for name in type(self).__introspectable__)
        self.__eq__ = __eq__

        @rename("__hash__")
        def __hash__(self):
            return hash((type(self).__name__, *(
                _hashable(getattr(self, name)) for name in type(self).__introspectable__
            )))
        self.__hash__ = __hash__

        @rename("__replace__")
        def __replace__(self, *unused, **overrides):
            assert not unused, "positional arguments are not allowed"
            for name in overrides:
                if name not in type(self).__introspectable__:
                    raise TypeError(f"{type(self).__typename__} has no field {name!r}")
            return type(self)(**{
                name: getattr(self, name) for name in type(self).__introspectable__
            } | overrides)
        self.__replace__ = __replace__

        return self


def _hashable(object):
    """best-effort hashable projection used by record hashing."""
    try:
        hash(object)
    except TypeError:
        return repr(object)
    return object


def _sanitize_string(cls, metadata, name, /, *, optional=True, empty=False):
    """
    Internal: validate a scalar string field in place.

    - optional: None (or Unset) is accepted and normalized to None.
    - empty: when False, strings are trimmed and empty strings are rejected.
    """
    object = coalesce(metadata[name])
    if object is None:
        if not optional:
            raise TypeError(f"{cls.__typename__} {name!r} must be a string")
        metadata[name] = None
        return
    if not isinstance(object, str):
        raise TypeError(f"{cls.__typename__} {name!r} must be a string")
    if not empty and not (object := object.strip()):
        raise ValueError(f"{cls.__typename__} {name!r} cannot be empty")
    metadata[name] = object


def _sanitize_strings(cls, metadata, name, /):
    """
    Internal: validate an iterable-of-strings field in place.

    Strings are trimmed, empty items and duplicates are rejected, and the
    original order is preserved in a tuple. A plain string is rejected.
    """
    if not isinstance(object := metadata[name], Iterable) or isinstance(object, str):
        raise TypeError(f"{cls.__typename__} {name!r} must be an iterable of strings")
    items = []
    for item in object:
        if not isinstance(item, str):
            raise TypeError(f"{cls.__typename__} {name!r} must be an iterable of strings")
        elif not (item := item.strip()):
            raise ValueError(f"{cls.__typename__} {name!r} cannot contain empty strings")
        elif item in items:
            raise ValueError(f"{cls.__typename__} {name!r} cannot contain duplicates")
        items.append(item)
    metadata[name] = tuple(items)


def _sanitize_instance(cls, metadata, name, types, /, *, optional=False):
    """
    Internal: validate that a field is an instance of the given type(s).
    """
    object = metadata[name]
    if optional and object is None:
        return
    if not isinstance(object, types):
        raise TypeError(f"{cls.__typename__} {name!r} must be {_describe(types)}")


def _describe(types):
    if isinstance(types, tuple):
        return " or ".join(map(_describe, types))
    return {"str": "a string", "int": "an integer", "bool": "a boolean"}.get(
        types.__name__, "a " + re.sub(r"(?<!^)(?=[A-Z])", r"-", types.__name__).lower()
    )


class ParameterDescriptor(metaclass=RecordType):
    """
    Read-only view of one parameter of a declared command function.

    Fields
    - identifier: the parameter name.
    - declared_type: TypeRef of the annotation, or None when unannotated.
    - position: 0-based position in the parameter list.
    - kind: inspect.Parameter kind (POSITIONAL_ONLY, POSITIONAL_OR_KEYWORD, ...).
    - default: source text of the default expression, or None.
    - literal: evaluated literal default (Unset when absent or not a literal).
    - location: where the parameter is declared.
    """

    __introspectable__ = (
        "identifier",
        "declared_type",
        "position",
        "kind",
        "default",
        "literal",
        "location",
    )

    __displayable__ = (
        "identifier",
        "declared_type",
        "position",
    )

    def __new__(
            cls,
            identifier,
            declared_type=None,
            position=0,
            kind=Parameter.POSITIONAL_OR_KEYWORD,
            default=None,
            literal=Unset,
            location=None,
    ):
        metadata = {
            "identifier": identifier,
            "declared_type": declared_type,
            "position": position,
            "kind": kind,
            "default": default,
            "literal": literal,
            "location": location,
        }
        _sanitize_string(cls, metadata, "identifier", optional=False)
        _sanitize_instance(cls, metadata, "declared_type", TypeRef, optional=True)
        _sanitize_instance(cls, metadata, "position", int)
        if metadata["position"] < 0:
            raise ValueError(f"{cls.__typename__} 'position' cannot be negative")
        if not isinstance(metadata["kind"], type(Parameter.POSITIONAL_ONLY)):
            raise TypeError(f"{cls.__typename__} 'kind' must be a parameter kind")
        _sanitize_string(cls, metadata, "default", empty=True)
        _sanitize_instance(cls, metadata, "location", Location, optional=True)

        self = super().__new__(cls)
        for name, object in metadata.items():
            setattr(self, "_" + name, object)
        return self


class AnnotationConfig(metaclass=RecordType):
    """
    Canonical configuration read from the @command(...) decorator.

    Fields
    - command: explicit command name, or None when it must be inferred.
    - category: explicit category (group) name, or None when it must be inferred.
    - description: docstring summary line ("" when undocumented).

    Emptiness of command/category is not rejected here: the annotation-syntax
    guard re-validates the final configuration and reports it with a corrected
    example.
    """

    __introspectable__ = (
        "command",
        "category",
        "description",
    )

    def __new__(cls, command=None, category=None, description=""):
        metadata = {
            "command": command,
            "category": category,
            "description": description,
        }
        _sanitize_string(cls, metadata, "command", empty=True)
        _sanitize_string(cls, metadata, "category", empty=True)
        _sanitize_string(cls, metadata, "description", optional=False, empty=True)
        metadata["description"] = metadata["description"].strip()

        self = super().__new__(cls)
        for name, object in metadata.items():
            setattr(self, "_" + name, object)
        return self


def _sanitize_argument_shape(cls, metadata, /):
    """
    Internal: validate kind/index/strategy/bounds/choices coherence.

    Rules
    - kind must be a Kind; index is required for POSITIONAL and forbidden otherwise.
    - strategy must be a Strategy; FLAG implies BOOLEAN, COUNTER implies INTEGER.
    - value_bounds must be a NumericRange (or None) with minimum <= maximum.
    - choices must be strings, non-empty exactly when strategy is CHOICE.
    """
    _sanitize_instance(cls, metadata, "kind", Kind)
    kind = metadata["kind"]

    if kind is Kind.POSITIONAL:
        if not isinstance(metadata["index"], int) or isinstance(metadata["index"], bool):
            raise TypeError(f"{cls.__typename__} positional 'index' must be an integer")
        if metadata["index"] < 0:
            raise ValueError(f"{cls.__typename__} positional 'index' cannot be negative")
    elif metadata["index"] is not None:
        raise ValueError(f"{cls.__typename__} 'index' is only allowed for positional arguments")

    _sanitize_instance(cls, metadata, "strategy", Strategy)
    if kind is Kind.FLAG and metadata["strategy"] is not Strategy.BOOLEAN:
        raise ValueError(f"{cls.__typename__} flag 'strategy' must be boolean")
    if kind is Kind.COUNTER and metadata["strategy"] is not Strategy.INTEGER:
        raise ValueError(f"{cls.__typename__} counter 'strategy' must be integer")

    if (bounds := metadata["value_bounds"]) is not None:
        if not isinstance(bounds, NumericRange):
            raise TypeError(f"{cls.__typename__} 'value_bounds' must be a numeric-range")
        if None not in bounds and bounds.minimum > bounds.maximum:
            raise ValueError(f"{cls.__typename__} 'value_bounds' minimum cannot exceed maximum")

    _sanitize_strings(cls, metadata, "choices")
    if bool(metadata["choices"]) != (metadata["strategy"] is Strategy.CHOICE):
        raise ValueError(f"{cls.__typename__} 'choices' must be given exactly for the choice strategy")


def _sanitize_argument_relations(cls, metadata, /):
    """
    Internal: validate relationship metadata (tags) in place.

    - env_fallback: a conventional environment variable name.
    - group/help_heading/help/default_value: strings (group/heading non-empty).
    - requires/conflicts_with: iterables of argument names.
    - completion_hint: a Hint or None.
    """
    _sanitize_string(cls, metadata, "default_value", empty=True)
    _sanitize_string(cls, metadata, "env_fallback")
    if metadata["env_fallback"] is not None and not re.fullmatch(r"[A-Za-z_][A-Za-z0-9_]*", metadata["env_fallback"]):
        raise ValueError(f"{cls.__typename__} 'env_fallback' must be a valid environment variable name")
    _sanitize_string(cls, metadata, "group")
    _sanitize_strings(cls, metadata, "requires")
    _sanitize_strings(cls, metadata, "conflicts_with")
    _sanitize_instance(cls, metadata, "completion_hint", Hint, optional=True)
    _sanitize_string(cls, metadata, "help_heading")
    _sanitize_string(cls, metadata, "help")


def _sanitize_argument_overrides(cls, metadata, /):
    """
    Internal: validate per-argument switch and length overrides in place.

    - short: one ASCII letter or digit ("v" for -v); options only.
    - aliases: extra long switch names ("verbose" for --verbose); options only.
    - value_name: placeholder shown in help ("PORT").
    - multiple: values come from repeated occurrences only; multi-values only.
    - min_length / max_length: bounds on the raw value length; not for flags
      or counters.
    """
    kind = metadata["kind"]
    _sanitize_string(cls, metadata, "short")
    if (short := metadata["short"]) is not None:
        if not re.fullmatch(r"[A-Za-z0-9]", short):
            raise ValueError(f"{cls.__typename__} 'short' must be a single letter or digit")
        if kind is Kind.POSITIONAL:
            raise ValueError(f"{cls.__typename__} 'short' is not allowed for positional arguments")
    _sanitize_strings(cls, metadata, "aliases")
    if metadata["aliases"]:
        if kind is Kind.POSITIONAL:
            raise ValueError(f"{cls.__typename__} 'aliases' are not allowed for positional arguments")
        for alias in metadata["aliases"]:
            if not re.fullmatch(r"[A-Za-z][A-Za-z0-9_-]*", alias):
                raise ValueError(f"{cls.__typename__} alias {alias!r} must start with a letter and use letters, digits, '_' or '-'")
            if alias == metadata["name"].strip("_").replace("_", "-"):
                raise ValueError(f"{cls.__typename__} alias {alias!r} repeats the argument's own switch")
    _sanitize_string(cls, metadata, "value_name")
    _sanitize_instance(cls, metadata, "multiple", bool)
    if metadata["multiple"] and kind is not Kind.MULTI_VALUE:
        raise ValueError(f"{cls.__typename__} 'multiple' is only allowed for multi-value arguments")
    for name in ("min_length", "max_length"):
        if (length := metadata[name]) is None:
            continue
        if not isinstance(length, int) or isinstance(length, bool):
            raise TypeError(f"{cls.__typename__} {name!r} must be an integer")
        if length < 0:
            raise ValueError(f"{cls.__typename__} {name!r} cannot be negative")
        if kind in (Kind.FLAG, Kind.COUNTER):
            raise ValueError(f"{cls.__typename__} {name!r} is not allowed for {kind.value} arguments")
    if None not in (metadata["min_length"], metadata["max_length"]) and metadata["min_length"] > metadata["max_length"]:
        raise ValueError(f"{cls.__typename__} 'min_length' cannot exceed 'max_length'")


class ArgumentSpec(metaclass=RecordType):
    """
    Merged, authoritative description of one command argument.

    Built by the signature analyzer and updated by relationship tags (tags win).
    One ArgumentSpec exists per parameter for the lifetime of a pipeline run; the
    emitted registration record carries them to the runtime registry.

    Fields
    - name: the parameter identifier (unique within one command).
    - required: whether the downstream parser must demand a value.
    - kind: inferred Kind; index is the 0-based position for Kind.POSITIONAL.
    - strategy: value-parsing Strategy; value_bounds / choices constrain values.
    - default_value: default as a raw string (converted like a supplied value).
    - env_fallback: environment variable consulted by the downstream parser.
    - group / requires / conflicts_with / exclusive: relationship metadata.
    - hidden / help_heading / completion_hint / help: help and completion metadata.
    - global_: propagate the argument to nested commands.
    - short / aliases / value_name: extra switch spellings and the help placeholder.
    - multiple: collect repeated occurrences without splitting on commas.
    - min_length / max_length: raw value length bounds checked on conversion.
    """

    __introspectable__ = (
        "name",
        "required",
        "kind",
        "index",
        "strategy",
        "value_bounds",
        "choices",
        "default_value",
        "env_fallback",
        "group",
        "requires",
        "conflicts_with",
        "hidden",
        "completion_hint",
        "global_",
        "exclusive",
        "help_heading",
        "help",
        "short",
        "aliases",
        "value_name",
        "multiple",
        "min_length",
        "max_length",
    )

    __displayable__ = (
        "name",
        "required",
        "kind",
        "index",
        "strategy",
        "value_bounds",
        "default_value",
        "group",
    )

    def __new__(
            cls,
            name,
            *,
            required=False,
            kind=Kind.REQUIRED,
            index=None,
            strategy=Strategy.STRING,
            value_bounds=None,
            choices=(),
            default_value=None,
            env_fallback=None,
            group=None,
            requires=(),
            conflicts_with=(),
            hidden=False,
            completion_hint=None,
            global_=False,
            exclusive=False,
            help_heading=None,
            help=None,
            short=None,
            aliases=(),
            value_name=None,
            multiple=False,
            min_length=None,
            max_length=None,
    ):
        metadata = {
            "name": name,
            "required": required,
            "kind": kind,
            "index": index,
            "strategy": strategy,
            "value_bounds": value_bounds,
            "choices": choices,
            "default_value": default_value,
            "env_fallback": env_fallback,
            "group": group,
            "requires": requires,
            "conflicts_with": conflicts_with,
            "hidden": hidden,
            "completion_hint": completion_hint,
            "global_": global_,
            "exclusive": exclusive,
            "help_heading": help_heading,
            "help": help,
            "short": short,
            "aliases": aliases,
            "value_name": value_name,
            "multiple": multiple,
            "min_length": min_length,
            "max_length": max_length,
        }
        _sanitize_string(cls, metadata, "name", optional=False)
        if not metadata["name"].isidentifier():
            raise ValueError(f"{cls.__typename__} 'name' must be an identifier")
        for flag in ("required", "hidden", "global_", "exclusive"):
            _sanitize_instance(cls, metadata, flag, bool)
        _sanitize_argument_shape(cls, metadata)
        _sanitize_argument_relations(cls, metadata)
        _sanitize_argument_overrides(cls, metadata)

        self = super().__new__(cls)
        for name, object in metadata.items():
            setattr(self, "_" + name, object)
        return self

    @property
    def switch(self):
        """
        command-line spelling suggested to the downstream parser (None for positionals).
        """
        if self.kind is Kind.POSITIONAL:
            return None
        return "--" + self.name.strip("_").replace("_", "-")

    @property
    def switches(self):
        """
        every command-line spelling of the argument: the long switch, "-<short>" and
        "--<alias>" per alias (empty for positionals).
        """
        if self.kind is Kind.POSITIONAL:
            return ()
        short = () if self.short is None else ("-" + self.short,)
        return (self.switch, *short, *("--" + alias for alias in self.aliases))


class RegistrationRecord(metaclass=RecordType):
    """
    Metadata describing one command for the registry.

    Iterating a record yields (category, command, description, arguments, handler),
    the exact argument order of the registration contract, so a manifest can call
    registry.register(*record).

    handler is the generated wrapper (a callable) at run time, or its dotted
    reference ("package.module:wrapper") in build-time artifacts.
    """

    __introspectable__ = (
        "category",
        "command",
        "description",
        "arguments",
        "handler",
    )

    def __new__(cls, category, command, description="", arguments=(), handler=None):
        metadata = {
            "category": category,
            "command": command,
            "description": description,
            "arguments": arguments,
            "handler": handler,
        }
        _sanitize_string(cls, metadata, "category", optional=False)
        _sanitize_string(cls, metadata, "command", optional=False)
        _sanitize_string(cls, metadata, "description", optional=False, empty=True)
        if not isinstance(metadata["arguments"], Iterable):
            raise TypeError(f"{cls.__typename__} 'arguments' must be an iterable of argument specs")
        metadata["arguments"] = tuple(metadata["arguments"])
        names = set()
        for argument in metadata["arguments"]:
            if not isinstance(argument, ArgumentSpec):
                raise TypeError(f"{cls.__typename__} 'arguments' must be an iterable of argument specs")
            if argument.name in names:
                raise ValueError(f"{cls.__typename__} argument {argument.name!r} is declared twice")
            names.add(argument.name)
        if not (metadata["handler"] is None or isinstance(metadata["handler"], str) or callable(metadata["handler"])):
            raise TypeError(f"{cls.__typename__} 'handler' must be callable or a dotted reference")

        self = super().__new__(cls)
        for name, object in metadata.items():
            setattr(self, "_" + name, object)
        return self

    def __iter__(self):
        yield self.category
        yield self.command
        yield self.description
        yield self.arguments
        yield self.handler


class EmittedArtifact(metaclass=RecordType):
    """
    Sole output of a successful pipeline run for one declaration.

    Fields
    - module: generated module name (without ".py").
    - wrapper_source: full source text of the generated module.
    - record: the RegistrationRecord (handler is the dotted wrapper reference).
    - location: location of the originating declaration.
    """

    __introspectable__ = (
        "module",
        "wrapper_source",
        "record",
        "location",
    )

    __displayable__ = (
        "module",
        "record",
        "location",
    )

    def __new__(cls, module, wrapper_source, record, location=None):
        metadata = {
            "module": module,
            "wrapper_source": wrapper_source,
            "record": record,
            "location": location,
        }
        _sanitize_string(cls, metadata, "module", optional=False)
        if not metadata["module"].isidentifier():
            raise ValueError(f"{cls.__typename__} 'module' must be an identifier")
        _sanitize_string(cls, metadata, "wrapper_source", optional=False, empty=True)
        _sanitize_instance(cls, metadata, "record", RegistrationRecord)
        _sanitize_instance(cls, metadata, "location", Location, optional=True)

        self = super().__new__(cls)
        for name, object in metadata.items():
            setattr(self, "_" + name, object)
        return self


__all__ = (
    # Enumerations
    "Kind",
    "Strategy",
    "Hint",

    # Value types
    "NumericRange",
    "Location",
    "TypeRef",

    # Records
    "ParameterDescriptor",
    "AnnotationConfig",
    "ArgumentSpec",
    "RegistrationRecord",
    "EmittedArtifact",
)

# Remove the internal metaclass from the module namespace to avoid accidental
# exposure in docs, autocompletion, or star-imports. Not part of the public API.
del RecordType
