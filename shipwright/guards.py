"""
Validation engine: fixed, ordered guards run after the tag merge.

Order
1. return type      the return annotation exists and is serializable
2. annotation       command/category names are well-formed (empty description warns)
3. duplicates       (category, command) is claimed once per build; argument names are unique
4. complexity       the body stays under the complexity threshold
5. layering         signatures keep command-layer types out
6. relationships    requires/conflicts targets name sibling arguments

Each guard raises on failure, which aborts the declaration; validate() returns
the warnings of the guards that passed.
"""
import ast
import difflib
import logging
import re

from .emitter import module_name
from .faults import *
from .utils import *

log = logging.getLogger(__name__)

NAME = re.compile(r"[A-Za-z][A-Za-z0-9_-]*")

THRESHOLD = 5

LAYERS = ("shipwright", "argparse", "click", "typer", "docopt")

ALLOWED = ("shipwright.scalars",)

UNSERIALIZABLE = frozenset({
    "typing.NoReturn",
    "typing.Never",
    "typing_extensions.NoReturn",
    "typing_extensions.Never",
    "builtins.object",
    "builtins.bytes",
    "builtins.bytearray",
    "builtins.memoryview",
    "typing.ByteString",
    "collections.abc.Buffer",
    "typing.Callable",
    "collections.abc.Callable",
    "typing.Iterator",
    "typing.Iterable",
    "typing.AsyncIterator",
    "typing.AsyncIterable",
    "collections.abc.Iterator",
    "collections.abc.Iterable",
    "collections.abc.AsyncIterator",
    "collections.abc.AsyncIterable",
    "typing.Generator",
    "typing.AsyncGenerator",
    "collections.abc.Generator",
    "collections.abc.AsyncGenerator",
    "typing.Coroutine",
    "typing.Awaitable",
    "collections.abc.Coroutine",
    "collections.abc.Awaitable",
    "asyncio.Future",
    "asyncio.Task",
})


def symbol(category, command, /):
    """rendered registration symbol of a (category, command) pair (display only)."""
    return f"__SHIPWRIGHT_{sanitize(category).upper()}_{sanitize(command).upper()}"


class SymbolTable:
    """
    Build-wide, set-based table of claimed registrations.

    claim() records the first claimant of an exact (category, command) pair and
    of the generated module the pair maps to; any later claim of either raises
    DuplicateRegistrationError naming both locations, so a duplicate fails the
    build whichever declaration is processed first.

    Module names fold "-" into "_" and lower-case everything, so distinct pairs
    such as ("net-tools", "show") and ("net_tools", "show") collide on the
    module and are reported here rather than overwriting each other's file.
    """

    def __init__(self):
        self._claims = {}
        self._modules = {}

    def claim(self, category, command, location=None, /):
        """claim a pair and its module; returns the rendered symbol."""
        pair = (category, command)
        if pair in self._claims:
            raise DuplicateRegistrationError(
                f"command '{category} {command}' is registered twice: "
                f"at {self._claims[pair] or '<unknown>'} and at {location or '<unknown>'}",
                hint="rename one of them, e.g. @command(\"%s-2\", \"%s\")" % (command, category),
                location=location,
            )
        module = module_name(category, command)
        if module in self._modules:
            first, where = self._modules[module]
            raise DuplicateRegistrationError(
                f"commands '{' '.join(first)}' (at {where or '<unknown>'}) and '{category} {command}' "
                f"(at {location or '<unknown>'}) both generate module {module}.py",
                hint="rename one of them so the names differ by more than '-', '_' or case",
                location=location,
            )
        self._claims[pair] = location
        self._modules[module] = (pair, location)
        return symbol(category, command)

    def __contains__(self, pair):
        return pair in self._claims

    def __iter__(self):
        return iter(sorted(self._claims))

    def __len__(self):
        return len(self._claims)

    def __repr__(self):
        return f"SymbolTable({pluralize(len(self), 'claim')})"


def check_return(declaration, /):
    """guard 1: the return annotation exists and is serializable."""
    returns = declaration.returns
    if returns is None:
        raise ReturnTypeError(
            f"command {declaration.name!r} has no return annotation",
            code=FaultCode.MISSING_RETURN_TYPE,
            hint="annotate the returned data, e.g. -> dict",
            location=declaration.location,
        )
    if returns.name == "<none>":
        raise ReturnTypeError(
            f"command {declaration.name!r} must return a serializable value, got None",
            hint="return the data to print instead, e.g. -> dict",
            location=declaration.location,
        )
    for reference in returns.walk():
        if reference.name in UNSERIALIZABLE or reference.name == "<unknown>":
            raise ReturnTypeError(
                f"command {declaration.name!r} must return a serializable value, got {str(returns)!r}",
                hint="return plain data (dict, list, str, numbers, a dataclass or a named tuple)",
                location=declaration.location,
            )


def _suggest(name):
    suggestion = re.sub(r"[^A-Za-z0-9_-]+", "-", name).strip("-_")
    suggestion = re.sub(r"^[^A-Za-z]+", "", suggestion)
    return suggestion or "name"


def check_annotation(config, declaration, /):
    """guard 2: command and category match [A-Za-z][A-Za-z0-9_-]*."""
    for field in ("command", "category"):
        value = getattr(config, field) or ""
        if not NAME.fullmatch(value):
            raise AnnotationSyntaxError(
                f"{field} name {value!r} is invalid: names start with a letter and use letters, digits, '_' or '-'",
                code=FaultCode.ANNOTATION_NAME,
                hint='@command("%s", "%s")' % (_suggest(config.command or declaration.name), _suggest(config.category or declaration.stem)),
                location=declaration.location,
            )
    if not config.description:
        return [UndocumentedDescriptionWarning(
            f"command '{config.category} {config.command}' has no description",
            hint='start the docstring with a summary, e.g. """Show the service status."""',
            location=declaration.location,
        )]
    return []


def check_duplicates(config, specs, declaration, table, /):
    """guard 3: claim the registration; argument names and switch spellings (long, short, aliases) are unique."""
    table.claim(config.category, config.command, declaration.location)
    seen = {}
    for spec in specs:
        for key in (spec.name, *spec.switches):
            if key in seen and seen[key] != spec.name:
                raise DuplicateArgumentError(
                    f"arguments {seen[key]!r} and {spec.name!r} both map to {key}",
                    hint="rename one of the parameters or change its [short] or [alias] tag",
                    location=declaration.location,
                )
            if key in seen:
                raise DuplicateArgumentError(
                    f"argument {spec.name!r} is declared twice",
                    hint="rename one of the parameters",
                    location=declaration.location,
                )
        seen.update({key: spec.name for key in (spec.name, *spec.switches)})


class _Complexity(ast.NodeVisitor):
    """
    Internal: McCabe-style decision point counter.
    """

    def __init__(self):
        self.score = 1

    def generic_visit(self, node):
        match node:
            case ast.If() | ast.IfExp() | ast.For() | ast.AsyncFor() | ast.While() | ast.ExceptHandler() | ast.Assert():
                self.score += 1
            case ast.match_case():
                self.score += 1
            case ast.BoolOp(values=values):
                self.score += len(values) - 1
            case ast.comprehension(ifs=conditions):
                self.score += 1 + len(conditions)
        super().generic_visit(node)


def complexity(function, /):
    """McCabe-style score of a function body: 1 + decision points."""
    visitor = _Complexity()
    for statement in function.body:
        visitor.visit(statement)
    return visitor.score


def check_complexity(declaration, /, threshold=THRESHOLD):
    """guard 4: the body must score at most threshold."""
    score = complexity(declaration.node)
    log.debug("%s.%s: complexity %d", declaration.module, declaration.name, score)
    if score > threshold:
        raise ComplexityError(
            f"command {declaration.name!r} has complexity {score} (threshold {threshold}): "
            "command functions must delegate to plain logic functions",
            hint="move the branching into a plain function and call it from the command",
            location=declaration.location,
        )


def _layered(name, layers, allowed):
    def within(prefixes):
        return any(name == prefix or name.startswith(prefix + ".") for prefix in prefixes)
    return within(layers) and not within(allowed)


def check_layering(declaration, /, layers=LAYERS, allowed=ALLOWED):
    """guard 5: no parameter or return annotation resolves into the command layer."""
    annotated = [(parameter.identifier, parameter.declared_type, parameter.location) for parameter in declaration.parameters]
    annotated.append(("return", declaration.returns, declaration.location))
    for owner, declared, location in annotated:
        if declared is None:
            continue
        for reference in declared.walk():
            if not reference.name.startswith("<") and _layered(reference.name, layers, allowed):
                subject = "the return type" if owner == "return" else f"parameter {owner!r}"
                raise LayeringError(
                    f"{subject} of {declaration.name!r} uses {reference.name} from the command layer",
                    hint=f"accept plain values and keep {reference.name.partition('.')[0]} types out of command signatures",
                    location=location,
                )


def check_relationships(specs, declaration, /):
    """guard 6: requires/conflicts targets name other arguments of the same command."""
    names = [spec.name for spec in specs]
    for spec in specs:
        for relation, targets in (("requires", spec.requires), ("conflicts", spec.conflicts_with)):
            for target in targets:
                if target == spec.name:
                    raise RelationshipError(
                        f"argument {spec.name!r} cannot {relation.removesuffix('s')} itself",
                        hint=f"remove {target!r} from [{relation}: ...]",
                        location=declaration.location,
                    )
                if target not in names:
                    suggestion = difflib.get_close_matches(target, names, n=1)
                    raise RelationshipError(
                        f"argument {spec.name!r} {relation} {target!r}, which is not an argument of {declaration.name!r}",
                        hint=f"did you mean {suggestion[0]!r}?" if suggestion else f"known arguments: {', '.join(names)}",
                        location=declaration.location,
                    )
        if overlap := [target for target in spec.requires if target in spec.conflicts_with]:
            raise RelationshipError(
                f"argument {spec.name!r} both requires and conflicts with {overlap[0]!r}",
                hint=f"keep {overlap[0]!r} in only one of [requires] and [conflicts]",
                location=declaration.location,
            )


def validate(declaration, config, specs, /, *, table, threshold=THRESHOLD, layers=LAYERS, allowed=ALLOWED):
    """
    Run every guard in order; the first failing guard raises.

    Returns the warnings raised by passing guards.
    """
    check_return(declaration)
    warnings = check_annotation(config, declaration)
    check_duplicates(config, specs, declaration, table)
    check_complexity(declaration, threshold)
    check_layering(declaration, layers, allowed)
    check_relationships(specs, declaration)
    return warnings


__all__ = (
    # Constants
    "THRESHOLD",
    "LAYERS",
    "ALLOWED",

    # Types
    "SymbolTable",

    # Functions
    "symbol",
    "complexity",
    "check_return",
    "check_annotation",
    "check_duplicates",
    "check_complexity",
    "check_layering",
    "check_relationships",
    "validate",
)
