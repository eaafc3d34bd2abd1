"""
Annotation parser: the @command(...) decorator and the docstring summary.

Accepted shapes
- @command / @command()                 → command and category inferred
- @command("status")                    → explicit command, category inferred
- @command("status", "services")        → explicit command and category

Anything else (keyword arguments, non-string arguments, a third argument) is an
AnnotationSyntaxError whose hint is the corrected decorator.

Inference
- command: the function name minus the first matching verb prefix
  ("show_status" → "status").
- category: the file stem ("services.py" → "services"); an inferred command that
  starts with "<category>_" loses that prefix ("collector_status" in
  collector.py → "status").
"""
import ast
import re

from .faults import AnnotationSyntaxError, FaultCode
from .model import AnnotationConfig
from .utils import *

VERB_PREFIXES = (
    "show_", "get_", "list_", "create_", "delete_", "update_", "fetch_", "display_", "print_",
    "run_", "execute_", "check_", "verify_", "start_", "stop_", "restart_", "add_", "remove_",
    "set_", "unset_",
)

SECTIONS = frozenset({
    "args", "arguments", "parameters", "params", "keyword args", "keyword arguments",
    "returns", "return", "yields", "yield", "raises", "exceptions", "examples", "example",
    "notes", "note", "see also", "warnings", "warning", "attributes", "todo",
})

_HEADING = re.compile(r"#+\s*\S.*|-{3,}")
_RULE = re.compile(r"-{3,}|={3,}")
_LABEL = re.compile(r"(?P<name>[A-Za-z][A-Za-z ]*):")
_TAG = re.compile(r"\[[A-Za-z][A-Za-z_-]*(?::[^\]]*)?\]")


def _heading(lines, index):
    """
    a line opens a section when it is "# Title", a rule, underlined by a rule, or
    "Label:" where the label is a known section name or the next line is
    indented deeper.
    """
    line = lines[index].strip()
    following = lines[index + 1] if index + 1 < len(lines) else ""
    if _HEADING.fullmatch(line) or _RULE.fullmatch(following.strip()):
        return True
    if (match := _LABEL.fullmatch(line)) is None:
        return False
    if match["name"].strip().lower() in SECTIONS:
        return True
    return bool(following.strip()) and len(following) - len(following.lstrip()) > len(lines[index]) - len(lines[index].lstrip())


def summary(docstring, /):
    """
    docstring summary: the first paragraph, whitespace-collapsed, stopping at the
    first section heading or relationship tag. Returns "" for no docstring.

    A line such as "Restart services:" is part of the summary unless it names a
    known section ("Args:", "Returns:", ...) or introduces an indented block.
    """
    if not docstring:
        return ""
    lines = []
    raw = docstring.strip().expandtabs().splitlines()
    for index, line in enumerate(raw):
        if not (line := line.strip()) or _heading(raw, index):
            break
        lines.append(line)
    text = " ".join(" ".join(lines).split())
    if match := _TAG.search(text):
        text = text[:match.start()].rstrip()
    return text


def infer_command(function, /, prefixes=VERB_PREFIXES):
    """function name minus the first matching verb prefix."""
    for prefix in prefixes:
        if function.startswith(prefix) and len(function) > len(prefix):
            return function[len(prefix):]
    return function


def _example(arguments):
    return "@command(%s)" % ", ".join(f'"{argument}"' for argument in arguments)


def _spelling(node):
    """best-effort name used to build a corrected example."""
    match node:
        case ast.Constant(value=str() as value):
            return value
        case ast.Name(id=name):
            return name
        case ast.Attribute(attr=name):
            return name
        case ast.Constant(value=value):
            return str(value)
    return "name"


def parse(declaration, /):
    """
    Parse the decorator arguments and docstring summary of a declaration.

    Returns an AnnotationConfig whose command/category are None when they are to
    be inferred; see resolve() for inference.
    """
    decorator = declaration.decorator
    description = summary(declaration.docstring)
    if not isinstance(decorator, ast.Call):
        return AnnotationConfig(None, None, description)

    location = declaration.locate(decorator)
    arguments = decorator.args
    if decorator.keywords:
        keyword = decorator.keywords[0]
        spellings = [_spelling(argument) for argument in arguments[:2]]
        if keyword.arg is not None and len(spellings) < 2:
            spellings.append(_spelling(keyword.value))
        raise AnnotationSyntaxError(
            f"@command does not accept keyword arguments (got {keyword.arg or '**'}=...)",
            code=FaultCode.ANNOTATION_ARGUMENTS,
            hint=f"pass the names positionally, e.g. {_example(spellings or ['status'])}",
            location=location,
        )
    if len(arguments) > 2:
        raise AnnotationSyntaxError(
            f"@command takes at most 2 arguments (command, category) but {len(arguments)} were given",
            code=FaultCode.ANNOTATION_ARGUMENTS,
            hint=f"use {_example(_spelling(argument) for argument in arguments[:2])}",
            location=location,
        )
    for position, argument in enumerate(arguments, start=1):
        if isinstance(argument, ast.Constant) and isinstance(argument.value, str):
            continue
        corrected = [_spelling(argument) for argument in arguments]
        if isinstance(argument, ast.Name):
            raise AnnotationSyntaxError(
                f"the {ordinal(position)} @command argument must be a string literal, not the identifier {argument.id!r}",
                code=FaultCode.ANNOTATION_IDENTIFIER,
                hint=f"add double quotes: {_example(corrected)}",
                location=declaration.locate(argument),
            )
        raise AnnotationSyntaxError(
            f"the {ordinal(position)} @command argument must be a string literal, got {ast.unparse(argument)!r}",
            code=FaultCode.ANNOTATION_ARGUMENTS,
            hint=f"expected @command(), @command(\"name\") or @command(\"name\", \"category\"), e.g. {_example(corrected)}",
            location=declaration.locate(argument),
        )

    values = [argument.value for argument in arguments]
    return AnnotationConfig(
        values[0] if len(values) > 0 else None,
        values[1] if len(values) > 1 else None,
        description,
    )


def resolve(config, declaration, /, prefixes=VERB_PREFIXES):
    """
    Fill in inferred command/category names.

    The category prefix is only stripped from inferred commands; explicit names
    are kept verbatim (the annotation-syntax guard validates them afterwards).
    """
    category = config.category
    if category is None:
        category = declaration.stem
    command = config.command
    if command is None:
        command = infer_command(declaration.name, prefixes)
        if command.startswith(category + "_") and len(command) > len(category) + 1:
            command = command[len(category) + 1:]
    return config.__replace__(command=command, category=category)


__all__ = (
    # Constants
    "VERB_PREFIXES",

    # Functions
    "parse",
    "resolve",
    "summary",
    "infer_command",
)
