"""
Code emitter: synthesize wrapper modules, the manifest and the package initializer.

Generated layout (default package "_commands")
    _commands/__init__.py             re-exports RECORDS and register
    _commands/manifest.py             imports every command module; register(registry)
    _commands/<category>__<command>.py one module per command:
        ARGUMENTS  tuple of ArgumentSpec literals
        wrapper    ArgumentBag -> OutputEnvelope adapter
        RECORD     RegistrationRecord(category, command, description, ARGUMENTS, wrapper)

Wrapper contract
- one extraction call per argument, chosen by kind (required/optional/positional/
  flag/count/multiple); extraction failures raise DispatchError naming the argument;
- the command function is called in declaration order (keyword-only parameters
  by keyword);
- an exception raised by the command function becomes a failure envelope.

Every generated file is compiled once before it is returned, and output is
deterministic: commands are ordered by category, then command.
"""
import enum
import logging
import re
import textwrap
from inspect import Parameter

from .model import ArgumentSpec, EmittedArtifact, Kind, NumericRange, RegistrationRecord, Strategy
from .utils import *

log = logging.getLogger(__name__)

PACKAGE = "_commands"

HEADER = "# Generated by shipwright from {source}. Do not edit."

_EXTRACTORS = {
    Kind.REQUIRED: "required",
    Kind.OPTIONAL: "optional",
    Kind.POSITIONAL: "positional",
    Kind.FLAG: "flag",
    Kind.COUNTER: "count",
    Kind.MULTI_VALUE: "multiple",
}

_DEFAULTS = {
    "index": None,
    "strategy": Strategy.STRING,
    "value_bounds": None,
    "choices": (),
    "default_value": None,
    "env_fallback": None,
    "group": None,
    "requires": (),
    "conflicts_with": (),
    "hidden": False,
    "completion_hint": None,
    "global_": False,
    "exclusive": False,
    "help_heading": None,
    "help": None,
    "short": None,
    "aliases": (),
    "value_name": None,
    "multiple": False,
    "min_length": None,
    "max_length": None,
}


def module_name(category, command, /):
    """generated module name of a (category, command) pair."""
    return f"{sanitize(category)}__{sanitize(command)}".lower()


def literal(object, /):
    """
    Python source of a record field value.

    enums render as "Kind.REQUIRED", numeric ranges as "NumericRange(0, 255)",
    tuples element-wise; everything else through repr().
    """
    match object:
        case enum.Enum():
            return f"{type(object).__name__}.{object.name}"
        case NumericRange(minimum=minimum, maximum=maximum):
            return f"NumericRange({minimum!r}, {maximum!r})"
        case tuple():
            items = ", ".join(map(literal, object))
            return f"({items},)" if len(object) == 1 else f"({items})"
    return repr(object)


def _names(arguments):
    """model names the ARGUMENTS literal refers to, plus RegistrationRecord."""
    names = {"RegistrationRecord"} | set(re.findall(r"\b(ArgumentSpec|NumericRange|Kind|Strategy|Hint)\b", arguments))
    return sorted(names)


def _docstring(text):
    return text.replace("\\", "\\\\").replace('"', '\\"')


def spec_source(spec, /):
    """ArgumentSpec(...) constructor source, listing non-default fields only."""
    fields = [repr(spec.name), f"required={literal(spec.required)}", f"kind={literal(spec.kind)}"]
    for field, default in _DEFAULTS.items():
        if (value := getattr(spec, field)) != default:
            fields.append(f"{field}={literal(value)}")
    return "ArgumentSpec(\n%s,\n)" % ",\n".join(textwrap.indent(field, " " * 4) for field in fields)


def _call(declaration, specs):
    arguments = []
    for position, (parameter, spec) in enumerate(zip(declaration.parameters, specs)):
        if parameter.kind is Parameter.KEYWORD_ONLY:
            arguments.append(f"{spec.name}=arguments[{position}]")
        else:
            arguments.append(f"arguments[{position}]")
    return f"_command({', '.join(arguments)})"


def wrapper_source(declaration, config, specs, /):
    """
    Full source of the generated module of one command.

    Parameters
    - declaration: the scanned Declaration (module, function, parameter kinds).
    - config: the resolved AnnotationConfig (category, command, description).
    - specs: the merged, validated ArgumentSpecs in declaration order.
    """
    if specs:
        extraction = "arguments = (\n%s\n)" % "\n".join(
            f"    _runtime.{_EXTRACTORS[spec.kind]}(bag, ARGUMENTS[{position}]),  # {spec.name}"
            for position, spec in enumerate(specs)
        )
        arguments = "ARGUMENTS = (\n%s\n)" % "\n".join(
            textwrap.indent(spec_source(spec), " " * 4) + "," for spec in specs
        )
    else:
        extraction = "arguments = ()"
        arguments = "ARGUMENTS = ()"

    source = textwrap.dedent(f"""\
        {HEADER.format(source=declaration.location)}
        \"\"\"
        {_docstring(f"{config.category} {config.command}: {config.description}".rstrip(": "))}
        \"\"\"
        from shipwright import runtime as _runtime
        from shipwright.model import {", ".join(_names(arguments))}

        from {declaration.module} import {declaration.name} as _command

        __all__ = ("ARGUMENTS", "RECORD", "wrapper")

        <ARGUMENTS>


        def wrapper(bag, /):
            \"\"\"Adapter for {declaration.module}.{declaration.name}: ArgumentBag in, OutputEnvelope out.\"\"\"
            <EXTRACTION>
            try:
                result = {_call(declaration, specs)}
            except Exception as error:
                return _runtime.OutputEnvelope.failure(error)
            return _runtime.OutputEnvelope.success(result)


        RECORD = RegistrationRecord(
            {config.category!r},
            {config.command!r},
            {config.description!r},
            ARGUMENTS,
            wrapper,
        )
    """)
    source = source.replace("<ARGUMENTS>", arguments)
    source = source.replace("<EXTRACTION>", textwrap.indent(extraction, " " * 4).lstrip())
    compile(source, f"<{module_name(config.category, config.command)}>", "exec", dont_inherit=True)
    return source


def emit(declaration, config, specs, /, *, package=PACKAGE):
    """
    Synthesize the artifact of one validated declaration.

    The artifact's record handler is the dotted reference "<package>.<module>:wrapper".
    """
    module = module_name(config.category, config.command)
    artifact = EmittedArtifact(
        module,
        wrapper_source(declaration, config, specs),
        RegistrationRecord(
            config.category,
            config.command,
            config.description,
            specs,
            f"{package}.{module}:wrapper",
        ),
        declaration.location,
    )
    log.debug("emitted %s for %s.%s", module, declaration.module, declaration.name)
    return artifact


def _ordered(artifacts):
    return sorted(artifacts, key=lambda artifact: (artifact.record.category, artifact.record.command))


def manifest_source(artifacts, /):
    """
    Source of the manifest module: explicit imports of every command module and
    register(registry), which calls registry.register(category, command,
    description, arguments, handler) once per record.
    """
    artifacts = _ordered(artifacts)
    imports = "\n".join(f"from . import {artifact.module}" for artifact in artifacts)
    records = "\n".join(f"    {artifact.module}.RECORD," for artifact in artifacts)
    source = textwrap.dedent(f"""\
        {HEADER.format(source=pluralize(len(artifacts), "declaration"))}
        \"\"\"
        Manifest of {pluralize(len(artifacts), "command")}: imports every generated command module and registers it.
        \"\"\"
        <IMPORTS>

        __all__ = ("RECORDS", "register")

        RECORDS = (
        <RECORDS>
        )


        def register(registry, /):
            \"\"\"Register every command with registry.register(category, command, description, arguments, handler).\"\"\"
            for record in RECORDS:
                registry.register(record.category, record.command, record.description, record.arguments, record.handler)
            return registry
    """)
    source = source.replace("<IMPORTS>", imports).replace("<RECORDS>\n", records + "\n" if records else "")
    compile(source, "<manifest>", "exec", dont_inherit=True)
    return source


def package_source(artifacts, /):
    """Source of the generated package initializer."""
    source = textwrap.dedent(f"""\
        {HEADER.format(source=pluralize(len(artifacts), "declaration"))}
        \"\"\"
        Generated command package ({pluralize(len(artifacts), "command")}).
        \"\"\"
        from .manifest import RECORDS, register

        __all__ = ("RECORDS", "register")
    """)
    compile(source, "<package>", "exec", dont_inherit=True)
    return source


def sources(artifacts, /):
    """
    Every file of the generated package as {relative file name: source}, in
    deterministic order.
    """
    artifacts = _ordered(artifacts)
    files = {"__init__.py": package_source(artifacts), "manifest.py": manifest_source(artifacts)}
    files.update({f"{artifact.module}.py": artifact.wrapper_source for artifact in artifacts})
    return files


__all__ = (
    # Constants
    "PACKAGE",

    # Functions
    "emit",
    "sources",
    "literal",
    "module_name",
    "spec_source",
    "wrapper_source",
    "manifest_source",
    "package_source",
)
