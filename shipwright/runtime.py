"""
shipwright runtime: what generated wrappers and manifests run against.

Overview
- command: no-op decorator, so annotated modules import and run unchanged.
- ArgumentBag: untyped, string-keyed bag of raw values handed to a wrapper.
- convert(spec, raw): apply a spec's value-parsing strategy (bounds, choices).
- required/optional/positional/flag/count/multiple: per-kind extraction helpers
  called by generated wrappers; they raise DispatchError naming the argument.
- OutputEnvelope: ok/data/error result of a wrapper, serializable to JSON.
- Registry: concrete registration target (register/dispatch), rejecting
  duplicate (category, command) pairs.

Raw values
- single values are strings;
- multi-values are lists of strings or one comma-joined string;
- flags are booleans (or boolean words);
- counters are integers (or their decimal string).

Nothing here parses argv; ArgumentBag.from_namespace() adapts the result of a
downstream parser such as argparse.
"""
import dataclasses
import datetime
import enum
import ipaddress
import json
import logging
import math
import pathlib
from collections.abc import Mapping, Set, Iterable

from .faults import DispatchError, InvalidValueError, MissingArgumentError
from .model import ArgumentSpec, Kind, RegistrationRecord, Strategy
from .utils import *

log = logging.getLogger(__name__)

BOOLEANS = {
    "true": True, "yes": True, "on": True, "1": True,
    "false": False, "no": False, "off": False, "0": False,
}


def command(*arguments):
    """
    Mark a function as a command; returns it unchanged.

    Forms
    - @command
    - @command() / @command("name") / @command("name", "category")

    The compiler reads the decorator from source; at run time this only checks
    the argument shape so mistakes surface even without a build.
    """
    if len(arguments) == 1 and callable(arguments[0]):
        return arguments[0]
    if len(arguments) > 2:
        raise TypeError("command() takes at most 2 arguments (command, category) but %d were given" % len(arguments))
    for position, argument in enumerate(arguments, start=1):
        if not isinstance(argument, str):
            raise TypeError(f"command() {ordinal(position)} argument must be a string")

    def decorator(function):
        if not callable(function):
            raise TypeError("@command() must be applied to a callable")
        return function

    return rename(decorator, "command")


class ArgumentBag(Mapping):
    """
    Read-only mapping of argument names to raw values.

    Missing names and None values are both "absent". The bag never converts
    anything itself; conversion belongs to the generated wrapper.
    """

    def __init__(self, values=None, /, **keywords):
        if values is not None and not isinstance(values, Mapping):
            raise TypeError("ArgumentBag() argument must be a mapping")
        self._values = {}
        for name, value in {**(values or {}), **keywords}.items():
            if not isinstance(name, str):
                raise TypeError("ArgumentBag() keys must be strings")
            if value is not None:
                self._values[name] = value

    @classmethod
    def from_namespace(cls, namespace, /):
        """bag from an argparse.Namespace (or any object with attributes)."""
        return cls(vars(namespace))

    def __getitem__(self, name):
        return self._values[name]

    def __iter__(self):
        return iter(self._values)

    def __len__(self):
        return len(self._values)

    def __repr__(self):
        return f"ArgumentBag({self._values!r})"


def _invalid(spec, message):
    return InvalidValueError(spec.name, message)


def convert(spec, raw, /):
    """
    Convert one raw string according to spec.strategy.

    Raises InvalidValueError when the raw string is shorter than
    spec.min_length or longer than spec.max_length, does not parse, is outside
    spec.value_bounds, or is not one of spec.choices.
    """
    if not isinstance(raw, str):
        raise _invalid(spec, f"expects a string value, got {type(raw).__name__}")
    if spec.min_length is not None and len(raw) < spec.min_length:
        raise _invalid(spec, f"expects at least {pluralize(spec.min_length, 'character')}, got {raw!r}")
    if spec.max_length is not None and len(raw) > spec.max_length:
        raise _invalid(spec, f"expects at most {pluralize(spec.max_length, 'character')}, got {raw!r}")
    match spec.strategy:
        case Strategy.STRING:
            value = raw
        case Strategy.INTEGER:
            try:
                value = int(raw.strip())
            except ValueError:
                raise _invalid(spec, f"expects an integer, got {raw!r}") from None
        case Strategy.FLOAT:
            try:
                value = float(raw.strip())
            except ValueError:
                raise _invalid(spec, f"expects a number, got {raw!r}") from None
            if not math.isfinite(value):
                raise _invalid(spec, f"expects a finite number, got {raw!r}")
        case Strategy.BOOLEAN:
            try:
                value = BOOLEANS[raw.strip().lower()]
            except KeyError:
                raise _invalid(spec, f"expects a boolean (true/false), got {raw!r}") from None
        case Strategy.PATH:
            if not raw:
                raise _invalid(spec, "expects a path, got an empty string")
            value = pathlib.Path(raw)
        case Strategy.IPV4:
            try:
                value = ipaddress.IPv4Address(raw.strip())
            except ValueError:
                raise _invalid(spec, f"expects an IPv4 address, got {raw!r}") from None
        case Strategy.IPV6:
            try:
                value = ipaddress.IPv6Address(raw.strip())
            except ValueError:
                raise _invalid(spec, f"expects an IPv6 address, got {raw!r}") from None
        case Strategy.IP_ADDRESS:
            try:
                value = ipaddress.ip_address(raw.strip())
            except ValueError:
                raise _invalid(spec, f"expects an IP address, got {raw!r}") from None
        case Strategy.CHOICE:
            if raw not in spec.choices:
                raise _invalid(spec, f"expects one of {', '.join(map(repr, spec.choices))}, got {raw!r}")
            value = raw
        case _:
            raise _invalid(spec, f"has an unknown strategy {spec.strategy!r}")
    if spec.value_bounds is not None and value not in spec.value_bounds:
        raise _invalid(spec, f"expects a value within {spec.value_bounds}, got {raw!r}")
    return value


def _single(bag, spec):
    """raw single value of an argument, or None when absent."""
    raw = bag.get(spec.name)
    if isinstance(raw, list | tuple):
        if len(raw) != 1:
            raise _invalid(spec, f"expects a single value, got {pluralize(len(raw), 'value')}")
        raw, = raw
    if isinstance(raw, bool):
        if spec.strategy is not Strategy.BOOLEAN:
            raise _invalid(spec, "expects a value, got a bare switch")
        raw = "true" if raw else "false"
    if isinstance(raw, int | float | pathlib.PurePath):
        raw = str(raw)
    return raw


def required(bag, spec, /):
    """converted value of a required argument (falling back to its default)."""
    if (raw := _single(bag, spec)) is None:
        if spec.default_value is None:
            raise MissingArgumentError(spec.name, "is required but was not supplied")
        raw = spec.default_value
    return convert(spec, raw)


def optional(bag, spec, /):
    """converted value of an optional argument, its default, or None."""
    if (raw := _single(bag, spec)) is None:
        if spec.default_value is None:
            return None
        raw = spec.default_value
    return convert(spec, raw)


def positional(bag, spec, /):
    """converted value of a positional argument (required unless optional)."""
    if spec.required:
        return required(bag, spec)
    return optional(bag, spec)


def flag(bag, spec, /):
    """True when the switch is present."""
    match raw := bag.get(spec.name):
        case None:
            return False
        case bool():
            return raw
        case str():
            return convert(spec, raw)
    raise _invalid(spec, f"expects a switch, got {type(raw).__name__}")


def count(bag, spec, /):
    """number of times the switch was repeated (0 when absent)."""
    match raw := bag.get(spec.name):
        case None:
            value = 0
        case bool():
            value = int(raw)
        case int():
            value = raw
        case str():
            try:
                value = int(raw.strip())
            except ValueError:
                raise _invalid(spec, f"expects a repeat count, got {raw!r}") from None
        case _:
            raise _invalid(spec, f"expects a repeat count, got {type(raw).__name__}")
    if spec.value_bounds is not None and value not in spec.value_bounds:
        raise _invalid(spec, f"expects a repeat count within {spec.value_bounds}, got {value}")
    return value


def _split(raw):
    return [item.strip() for item in raw.split(",") if item.strip()]


def multiple(bag, spec, /):
    """
    converted values of a multi-value argument.

    strings are split on commas; lists collect repeated values (each entry may
    itself be comma-joined). with spec.multiple set, values are never split: a
    string is one value and each list entry is one value. absent arguments
    yield the (comma-joined) default or [].
    """
    split = (lambda item: [item]) if spec.multiple else _split
    match raw := bag.get(spec.name):
        case None:
            items = _split(spec.default_value) if spec.default_value is not None else []
        case str():
            items = split(raw)
        case list() | tuple():
            items = []
            for item in raw:
                if not isinstance(item, str):
                    item = str(item)
                items += split(item)
        case _:
            raise _invalid(spec, f"expects a list of values, got {type(raw).__name__}")
    return [convert(spec, item) for item in items]


def extract(bag, spec, /):
    """converted value of any argument, dispatching on its kind."""
    match spec.kind:
        case Kind.REQUIRED:
            return required(bag, spec)
        case Kind.OPTIONAL:
            return optional(bag, spec)
        case Kind.POSITIONAL:
            return positional(bag, spec)
        case Kind.FLAG:
            return flag(bag, spec)
        case Kind.COUNTER:
            return count(bag, spec)
        case Kind.MULTI_VALUE:
            return multiple(bag, spec)
    raise _invalid(spec, f"has an unknown kind {spec.kind!r}")


def serialize(object, /):
    """
    JSON-compatible projection of a command result.

    Supports primitives, mappings, sequences, sets (sorted when possible),
    dataclasses, named tuples, enums, paths, IP addresses, dates and objects
    exposing to_dict(); other objects fall back to their public attributes.
    """
    match object:
        case enum.Enum():
            return serialize(object.value)
        case None | bool() | int() | str():
            return object
        case float():
            return object if math.isfinite(object) else str(object)
        case pathlib.PurePath() | ipaddress.IPv4Address() | ipaddress.IPv6Address():
            return str(object)
        case datetime.date() | datetime.time():
            return object.isoformat()
        case datetime.timedelta():
            return object.total_seconds()
        case Mapping():
            return {str(serialize(key)): serialize(value) for key, value in object.items()}
        case tuple() if hasattr(object, "_asdict"):
            return serialize(object._asdict())
        case Set():
            items = [serialize(item) for item in object]
            try:
                return sorted(items)
            except TypeError:
                return items
        case list() | tuple():
            return [serialize(item) for item in object]
    if dataclasses.is_dataclass(object) and not isinstance(object, type):
        return serialize({field.name: getattr(object, field.name) for field in dataclasses.fields(object)})
    if callable(getattr(object, "to_dict", None)):
        return serialize(object.to_dict())
    if isinstance(object, Iterable) and not isinstance(object, bytes | bytearray):
        return [serialize(item) for item in object]
    if hasattr(object, "__dict__"):
        return serialize({key: value for key, value in vars(object).items() if not key.startswith("_")})
    return str(object)


class OutputEnvelope:
    """
    Result of one wrapper call.

    - ok: True when the command function returned normally.
    - data: the returned value (None on failure).
    - error: structured error ({"kind", "message"}) on failure, None otherwise.
    """

    __slots__ = ("_ok", "_data", "_error")

    def __init__(self, ok, data=None, error=None):
        if not isinstance(ok, bool):
            raise TypeError("OutputEnvelope() 'ok' must be a boolean")
        if error is not None and not isinstance(error, Mapping):
            raise TypeError("OutputEnvelope() 'error' must be a mapping")
        if ok and error is not None:
            raise ValueError("OutputEnvelope() successful envelopes cannot carry an error")
        self._ok = ok
        self._data = data
        self._error = None if error is None else dict(error)

    ok = property(lambda self: self._ok)
    data = property(lambda self: self._data)
    error = property(lambda self: self._error)

    @classmethod
    def success(cls, data=None, /):
        return cls(True, data)

    @classmethod
    def failure(cls, error, /):
        """failure envelope from an exception (or a ready-made error mapping)."""
        if isinstance(error, Mapping):
            return cls(False, error=error)
        if isinstance(error, DispatchError):
            return cls(False, error=error.to_dict())
        if not isinstance(error, BaseException):
            raise TypeError("failure() argument must be an exception or a mapping")
        return cls(False, error={"kind": type(error).__name__, "message": str(error)})

    def to_dict(self):
        return {"ok": self.ok, "data": serialize(self.data), "error": self.error}

    def to_json(self, **options):
        return json.dumps(self.to_dict(), **{"ensure_ascii": False} | options)

    def __eq__(self, other):
        if not isinstance(other, OutputEnvelope):
            return NotImplemented
        return (self.ok, self.data, self.error) == (other.ok, other.data, other.error)

    __hash__ = None

    def __repr__(self):
        if self.ok:
            return f"OutputEnvelope(ok=True, data={self.data!r})"
        return f"OutputEnvelope(ok=False, error={self.error!r})"


class Registry:
    """
    In-process command registry: the target of generated manifests.

    register(category, command, description, arguments, handler) stores one
    RegistrationRecord and rejects a second registration of the same
    (category, command) pair with ValueError. dispatch() looks a command up and
    calls its handler with an ArgumentBag.
    """

    def __init__(self):
        self._records = {}

    def register(self, category, command, description, arguments, handler, /):
        if not callable(handler):
            raise TypeError("register() 'handler' must be callable")
        record = RegistrationRecord(category, command, description, arguments, handler)
        if (key := (record.category, record.command)) in self._records:
            raise ValueError(f"command {record.category} {record.command} is already registered")
        self._records[key] = record
        log.debug("registered %s %s (%s)", record.category, record.command, pluralize(len(record.arguments), "argument"))
        return record

    def get(self, category, command, /):
        try:
            return self._records[category, command]
        except KeyError:
            raise LookupError(f"unknown command: {category} {command}") from None

    def dispatch(self, category, command, bag=None, /):
        """call a registered command; raw mappings are wrapped in an ArgumentBag."""
        record = self.get(category, command)
        if not isinstance(bag, ArgumentBag):
            bag = ArgumentBag(bag)
        log.debug("dispatching %s %s", category, command)
        return record.handler(bag)

    def categories(self):
        return sorted({category for category, _ in self._records})

    def commands(self, category, /):
        return sorted(command for owner, command in self._records if owner == category)

    def __contains__(self, key):
        return key in self._records

    def __iter__(self):
        return iter(sorted(self._records.values(), key=lambda record: (record.category, record.command)))

    def __len__(self):
        return len(self._records)

    def __repr__(self):
        return f"Registry({pluralize(len(self), 'command')})"


__all__ = (
    # Decorator
    "command",

    # Types
    "ArgumentBag",
    "OutputEnvelope",
    "Registry",

    # Extraction
    "convert",
    "extract",
    "required",
    "optional",
    "positional",
    "flag",
    "count",
    "multiple",
    "serialize",

    # Re-exported errors and records
    "ArgumentSpec",
    "DispatchError",
    "InvalidValueError",
    "MissingArgumentError",
)
