"""
Relationship tags: bracketed metadata in per-parameter docstring lines.

Docstring shape
    Args:
        port (u16): listening port [default: 8080] [env: APP_PORT]
        verbose: chatty output [conflicts: quiet]
            continuation lines belong to the previous parameter.

The arguments section may be titled "Args:", "Arguments:", "Parameters" or
"# Arguments"; parameter lines may read "name: text", "name (type): text",
"- name: text", "* name - text" or "* `name` - text".

Tags
- [group: name]            argument group
- [requires: a, b]         arguments that must accompany this one
- [conflicts: a, b]        arguments that cannot accompany this one
- [env: NAME]              environment variable fallback (metadata only)
- [hide] / [hide: false]   hide from help
- [default: value]         raw default (also makes the argument optional)
- [value_hint: file-path]  completion hint
- [global]                 propagate to nested commands
- [exclusive]              must be used alone
- [help_heading: text]     help section heading
- [short: v]              extra short switch (-v)
- [alias: name] / [aliases: a, b]  extra long switches (--name)
- [value_name: PORT]       value placeholder shown in help
- [multiple]               collect repeated occurrences, never split on commas
- [min: 1] / [max: 10]     numeric bounds (replace the inferred side)
- [min_length: 1] / [max_length: 64]  raw value length bounds

"-" is accepted for "_" in keywords. Unknown keywords are warnings with a
did-you-mean suggestion; malformed values are AnnotationSyntaxError. A tag
combination the argument cannot carry ([min] on a path, [multiple] on a single
value, bounds that cross) is AnnotationSyntaxError as well.
"""
import difflib
import logging
import math
import re
from typing import NamedTuple

from .faults import AnnotationSyntaxError, FaultCode, OrphanTagWarning, UnknownTagWarning, DispatchError
from .model import Hint, Kind, Location, NumericRange, Strategy
from .runtime import convert
from .utils import *

log = logging.getLogger(__name__)

KEYWORDS = (
    "group",
    "requires",
    "conflicts",
    "env",
    "hide",
    "default",
    "value_hint",
    "global",
    "exclusive",
    "help_heading",
    "short",
    "alias",
    "aliases",
    "value_name",
    "multiple",
    "min",
    "max",
    "min_length",
    "max_length",
)

SWITCHES = frozenset({"hide", "global", "exclusive", "multiple"})

BOOLEANS = {
    "true": True, "yes": True, "on": True, "1": True,
    "false": False, "no": False, "off": False, "0": False,
}

_SECTION = re.compile(r"(?i)(?:#+\s*)?(?:args|arguments|parameters|params)\s*:?")
_RULE = re.compile(r"-{3,}|={3,}")
_PARAMETER = re.compile(
    r"(?:[-*+]\s+)?"
    r"(?P<quote>`?)(?P<name>[A-Za-z_]\w*)(?P=quote)"
    r"\s*(?:\((?P<type>[^)]*)\))?"
    r"\s*(?::|\s-\s|-\s)\s*(?P<text>.*)"
)
_TAG = re.compile(r"\[\s*(?P<keyword>[A-Za-z][\w-]*)\s*(?::\s*(?P<value>[^\]]*))?\]")


class RelationshipTag(NamedTuple):
    """
    one parsed tag; value is already typed (tuple for lists, bool for switches,
    Hint for value_hint, str otherwise).
    """
    keyword: str
    value: object
    location: Location | None = None


class ParameterDoc(NamedTuple):
    """
    one documented parameter line (plus continuations).
    """
    name: str
    help: str
    tags: tuple
    location: Location | None = None


def _indent(line):
    return len(line) - len(line.lstrip())


def _value(keyword, value, location):
    """
    Internal: type one tag value or raise AnnotationSyntaxError.
    """
    def malformed(reason, example):
        return AnnotationSyntaxError(
            f"tag [{keyword}] {reason}",
            code=FaultCode.MALFORMED_TAG,
            title="malformed tag",
            hint=f"write it as {example}",
            location=location,
        )

    if keyword in SWITCHES:
        if value is None:
            return True
        try:
            return BOOLEANS[value.strip().lower()]
        except KeyError:
            raise malformed(f"takes no value or a boolean, got {value.strip()!r}", f"[{keyword}] or [{keyword}: false]") from None
    if value is None or not (value := value.strip()):
        raise malformed("requires a value", f"[{keyword}: ...]")
    match keyword:
        case "requires" | "conflicts":
            names = tuple(name.strip() for name in value.split(","))
            if not all(name.isidentifier() for name in names):
                raise malformed(f"takes a comma-separated list of argument names, got {value!r}", f"[{keyword}: first, second]")
            return tuple(dict.fromkeys(names))
        case "env":
            if not re.fullmatch(r"[A-Za-z_][A-Za-z0-9_]*", value):
                raise malformed(f"must name a valid environment variable, got {value!r}", "[env: APP_PORT]")
            return value
        case "value_hint":
            try:
                return Hint.parse(value)
            except ValueError:
                raise malformed(
                    f"must name a completion hint, got {value!r}",
                    "[value_hint: %s]" % " | ".join(hint.value for hint in Hint),
                ) from None
        case "short":
            if not re.fullmatch(r"-?[A-Za-z0-9]", value):
                raise malformed(f"takes one letter or digit, got {value!r}", "[short: v]")
            return value.lstrip("-")
        case "alias" | "aliases":
            names = tuple(name.strip().removeprefix("--") for name in value.split(","))
            if not all(re.fullmatch(r"[A-Za-z][A-Za-z0-9_-]*", name) for name in names):
                raise malformed(f"takes a comma-separated list of switch names, got {value!r}", f"[{keyword}: verbose]")
            return tuple(dict.fromkeys(names))
        case "min" | "max":
            for number in (int, float):
                try:
                    parsed = number(value)
                except ValueError:
                    continue
                if math.isfinite(parsed):
                    return parsed
            raise malformed(f"takes a number, got {value!r}", f"[{keyword}: 10]")
        case "min_length" | "max_length":
            if not value.isdigit():
                raise malformed(f"takes a non-negative integer, got {value!r}", f"[{keyword}: 8]")
            return int(value)
    return value


def _tags(text, location, warnings):
    """
    Internal: extract typed tags from one line; returns (tags, remaining text).
    """
    tags = []
    for match in _TAG.finditer(text):
        keyword = match["keyword"].lower().replace("-", "_")
        if keyword not in KEYWORDS:
            suggestion = difflib.get_close_matches(keyword, KEYWORDS, n=1)
            warnings.append(UnknownTagWarning(
                f"unknown tag [{match['keyword']}] is ignored",
                hint=f"did you mean [{suggestion[0]}]?" if suggestion else f"known tags: {', '.join(KEYWORDS)}",
                location=location,
            ))
            continue
        tags.append(RelationshipTag(keyword, _value(keyword, match["value"], location), location))
    return tags, " ".join(_TAG.sub(" ", text).split())


def parse(docstring, /, *, docline=0, filename="<unknown>"):
    """
    Parse the arguments section of a cleaned docstring.

    Parameters
    - docstring: cleaned docstring text (None/"" yields nothing).
    - docline: 1-based source line of the first docstring line (locations).
    - filename: source file name (locations).

    Returns (documented, warnings): one ParameterDoc per documented parameter in
    docstring order, and the UnknownTagWarning list.
    """
    if not docstring:
        return [], []
    documented = []
    warnings = []
    current = None
    section = depth = None

    def flush():
        if current is None:
            return
        name, text, location, _ = current
        tags, help = [], []
        for line in text:
            found, remaining = _tags(line, location, warnings)
            tags += found
            if remaining:
                help.append(remaining)
        documented.append(ParameterDoc(name, " ".join(help), tuple(tags), location))

    for offset, line in enumerate(docstring.expandtabs().splitlines()):
        stripped = line.strip()
        indent = _indent(line)
        if section is None:
            if _SECTION.fullmatch(stripped):
                section, depth = indent, None
            continue
        if not stripped or _RULE.fullmatch(stripped):
            continue
        if current is not None and indent > current[3]:
            current[1].append(stripped)
            continue
        match = _PARAMETER.fullmatch(stripped)
        if depth is None and match is not None and indent >= section:
            depth = indent
        if match is None or indent != depth:
            flush()
            current = section = None
            if _SECTION.fullmatch(stripped):
                section, depth = indent, None
            continue
        flush()
        location = Location(filename, docline + offset if docline else 0, indent)
        current = (match["name"], [match["text"]], location, indent)
    flush()
    log.debug("documented %s", pluralize(len(documented), "parameter"))
    return documented, warnings


def _validate_default(spec, value, location):
    """a tagged default must convert like a supplied value."""
    if spec.kind in (Kind.FLAG, Kind.COUNTER):
        raise AnnotationSyntaxError(
            f"tag [default] cannot be used on {spec.kind.value} argument {spec.name!r}",
            code=FaultCode.MALFORMED_TAG,
            title="malformed tag",
            hint="remove the tag; flags and counters default to off",
            location=location,
        )
    values = value.split(",") if spec.kind is Kind.MULTI_VALUE else [value]
    try:
        for item in values:
            convert(spec, item.strip())
    except DispatchError as error:
        raise AnnotationSyntaxError(
            f"tag [default: {value}] does not fit argument {spec.name!r}: {error.message}",
            code=FaultCode.MALFORMED_TAG,
            title="malformed tag",
            hint="use a default the argument accepts",
            location=location,
        ) from None


def _malformed(entry, reason, hint):
    return AnnotationSyntaxError(
        f"tags on {entry.name!r} {reason}",
        code=FaultCode.MALFORMED_TAG,
        title="malformed tag",
        hint=hint,
        location=entry.location,
    )


def _bound(spec, overrides, tag):
    """[min] / [max] replace one side of the inferred numeric range."""
    if spec.strategy not in (Strategy.INTEGER, Strategy.FLOAT):
        raise AnnotationSyntaxError(
            f"tag [{tag.keyword}] cannot be used on {spec.strategy.value} argument {spec.name!r}",
            code=FaultCode.MALFORMED_TAG,
            title="malformed tag",
            hint="numeric bounds apply to int and float parameters only",
            location=tag.location,
        )
    if spec.strategy is Strategy.INTEGER and not isinstance(tag.value, int):
        raise AnnotationSyntaxError(
            f"tag [{tag.keyword}: {tag.value}] must be an integer for argument {spec.name!r}",
            code=FaultCode.MALFORMED_TAG,
            title="malformed tag",
            hint=f"write it as [{tag.keyword}: {int(tag.value)}]",
            location=tag.location,
        )
    bounds = overrides.get("value_bounds", spec.value_bounds) or NumericRange()
    side = "minimum" if tag.keyword == "min" else "maximum"
    overrides["value_bounds"] = bounds._replace(**{side: tag.value})


def merge(specs, documented, /):
    """
    Merge documented parameters into inferred ArgumentSpecs (tags win).

    - every tag replaces the inferred value; [default] also clears required.
    - [alias] / [aliases] accumulate; [min] / [max] replace one side of the
      inferred bounds.
    - a [default] is checked against the fully merged argument.
    - the documented text minus its tags becomes ArgumentSpec.help.
    - tags on a name that is not a parameter are OrphanTagWarning.

    Returns (specs, warnings).
    """
    specs = {spec.name: spec for spec in specs}
    warnings = []
    for entry in documented:
        if entry.name not in specs:
            if entry.tags:
                suggestion = difflib.get_close_matches(entry.name, specs, n=1)
                warnings.append(OrphanTagWarning(
                    f"tags on {entry.name!r} are ignored: the command has no such parameter",
                    hint=f"did you mean {suggestion[0]!r}?" if suggestion else "document tags next to a parameter",
                    location=entry.location,
                ))
            continue
        spec = specs[entry.name]
        overrides = {}
        default = None
        if entry.help:
            overrides["help"] = entry.help
        for tag in entry.tags:
            match tag.keyword:
                case "group":
                    overrides["group"] = tag.value
                case "requires":
                    overrides["requires"] = tuple(dict.fromkeys(overrides.get("requires", ()) + tag.value))
                case "conflicts":
                    overrides["conflicts_with"] = tuple(dict.fromkeys(overrides.get("conflicts_with", ()) + tag.value))
                case "env":
                    overrides["env_fallback"] = tag.value
                case "hide":
                    overrides["hidden"] = tag.value
                case "default":
                    default = tag
                    overrides["default_value"] = tag.value
                    overrides["required"] = False
                case "value_hint":
                    overrides["completion_hint"] = tag.value
                case "global":
                    overrides["global_"] = tag.value
                case "exclusive" | "help_heading" | "short" | "value_name" | "multiple" | "min_length" | "max_length":
                    overrides[tag.keyword] = tag.value
                case "alias" | "aliases":
                    overrides["aliases"] = tuple(dict.fromkeys(overrides.get("aliases", ()) + tag.value))
                case "min" | "max":
                    _bound(spec, overrides, tag)
        if not overrides:
            continue
        try:
            merged = spec.__replace__(**overrides)
        except (TypeError, ValueError) as error:
            raise _malformed(entry, f"cannot be combined: {error}", "check the tags against the parameter's type") from None
        if default is not None:
            _validate_default(merged, default.value, default.location)
        specs[entry.name] = merged
        log.debug("%s: merged %s", entry.name, ", ".join(overrides))
    return tuple(specs.values()), warnings


__all__ = (
    # Types
    "RelationshipTag",
    "ParameterDoc",

    # Functions
    "parse",
    "merge",

    # Constants
    "KEYWORDS",
)
