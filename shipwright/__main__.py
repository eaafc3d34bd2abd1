"""
Command line of the compiler: python -m shipwright.

Subcommands
- build SOURCES...    compile and write the generated package (exit 1 on any error)
- inspect SOURCES...  compile without writing and print every registration record

Settings come from [tool.shipwright] in the nearest pyproject.toml (or --config)
and are overridden by the options given here.
"""
import argparse
import logging
import sys

from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from . import __title__, __version__
from .compiler import Build
from .config import load
from .faults import CompileExit, trigger
from .utils import *

log = logging.getLogger(__package__)

LEVELS = (logging.WARNING, logging.INFO, logging.DEBUG)


def _parser():
    parser = argparse.ArgumentParser(prog=__title__, description="compile @command declarations into wrappers and registration records")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    subparsers = parser.add_subparsers(dest="action", required=True)

    common = argparse.ArgumentParser(add_help=False)
    common.add_argument("sources", nargs="+", metavar="SOURCES", help="python files or directories (searched recursively)")
    common.add_argument("--config", metavar="PYPROJECT", default=Unset, help="pyproject.toml to read settings from")
    common.add_argument("--root", dest="source_root", metavar="DIR", help="directory module names are derived from")
    common.add_argument("-o", "--output", metavar="DIR", help="generated package directory")
    common.add_argument("--threshold", type=int, metavar="N", help="complexity threshold of command bodies")
    common.add_argument("--strict", action="store_true", default=None, help="treat warnings as errors")
    common.add_argument("--fancy", action="store_true", default=None, help="paneled diagnostics")
    common.add_argument("--colorful", action="store_true", default=None, help="colored diagnostics")
    common.add_argument("-v", "--verbose", action="count", default=0, help="log more (repeat for debug)")

    build = subparsers.add_parser("build", parents=[common], help="compile and write the generated package")
    build.add_argument("--check", action="store_true", help="compile without writing")
    subparsers.add_parser("inspect", parents=[common], help="print the registration records of a build")
    return parser


def _logging(verbosity):
    if not any(isinstance(handler, RichHandler) for handler in log.handlers):
        log.addHandler(RichHandler(console=Console(stderr=True), show_path=False))
    log.setLevel(LEVELS[min(verbosity, len(LEVELS) - 1)])


def _table(artifacts):
    table = Table(title="registration records", title_justify="left")
    for column in ("category", "command", "description", "arguments", "handler"):
        table.add_column(column)
    for artifact in artifacts:
        category, command, description, arguments, handler = artifact.record
        table.add_row(
            category,
            command,
            description,
            "\n".join(f"{spec.name} ({spec.kind.value}) {' '.join(spec.switches)}".rstrip() for spec in arguments),
            handler,
        )
    return table


def main(argv=None):
    """run the command line; returns the exit status (errors exit through sys.exit(1))."""
    options = _parser().parse_args(argv)
    _logging(options.verbose)
    settings = load(
        options.config,
        source_root=options.source_root,
        output=options.output,
        threshold=options.threshold,
        strict=options.strict,
        fancy=options.fancy,
        colorful=options.colorful,
    )
    log.debug("settings: %r", settings)
    rendering = {"shell": True, "fancy": settings.fancy, "colorful": settings.colorful}

    build = Build(settings)
    artifacts = build.run(*options.sources)
    for warning in build.diagnostics.warnings:
        trigger(warning, **rendering)
    try:
        if options.action == "build" and not options.check:
            build.write()
        else:
            build.conclude()
    except CompileExit as error:
        trigger(error, **rendering)
    if options.action == "inspect":
        Console().print(_table(artifacts))
    return 0


if __name__ == "__main__":
    sys.exit(main())
