"""
Compiler orchestration: drive the pipeline per declaration and write the build.

Pipeline (one run per declaration)
    annotation.parse → annotation.resolve → signature.analyze → tags.parse →
    tags.merge → guards.validate → emitter.emit

Build
- collects every error and warning in one Diagnostics accumulator, so a single
  run reports all broken declarations instead of stopping at the first;
- owns the build-wide SymbolTable used by the duplicate-registration guard;
- writes the generated package only when the build has no errors (and, under
  strict settings, no warnings).

Quick example:
    >>> build = Build(Settings(source_root="src"))
    >>> build.run("src/app")
    >>> build.write()          # raises CompileExit when anything failed
"""
import logging
from pathlib import Path

from . import annotation, emitter, guards, signature, source, tags
from .config import Settings
from .faults import CompileError, Diagnostics
from .utils import *

log = logging.getLogger(__name__)


def compile_declaration(declaration, /, *, table=None, settings=None, warnings=None):
    """
    Run the whole pipeline on one declaration.

    Parameters
    - declaration: a scanned Declaration.
    - table: build-wide SymbolTable (a fresh one when omitted).
    - settings: Settings (defaults when omitted).
    - warnings: list receiving warnings as soon as they are found.

    Returns the EmittedArtifact; raises the first CompileError of the pipeline.
    """
    settings = settings if settings is not None else Settings()
    table = table if table is not None else guards.SymbolTable()
    warnings = warnings if warnings is not None else []

    config = annotation.resolve(annotation.parse(declaration), declaration, settings.prefixes)
    specs = signature.analyze(declaration)
    documented, found = tags.parse(
        declaration.docstring,
        docline=declaration.docline,
        filename=declaration.location.file,
    )
    warnings += found
    specs, found = tags.merge(specs, documented)
    warnings += found
    warnings += guards.validate(
        declaration,
        config,
        specs,
        table=table,
        threshold=settings.threshold,
        layers=settings.layers,
        allowed=settings.allowed,
    )
    return emitter.emit(declaration, config, specs, package=settings.package)


class Build:
    """
    One compiler run over any number of source files.

    Attributes
    - settings: the Settings of the run.
    - diagnostics: every error and warning reported so far.
    - table: the build-wide SymbolTable.
    - artifacts: EmittedArtifacts of the declarations that passed every guard.
    """

    def __init__(self, settings=None, /, **overrides):
        settings = settings if settings is not None else Settings()
        if not isinstance(settings, Settings):
            raise TypeError("Build() argument must be a settings object")
        self.settings = settings.__replace__(**overrides) if overrides else settings
        self.diagnostics = Diagnostics(strict=self.settings.strict)
        self.table = guards.SymbolTable()
        self.artifacts = []

    @property
    def failed(self):
        return self.diagnostics.failed

    def scan(self, path, /):
        """declarations of one file; a file that does not parse is reported and yields none."""
        try:
            return source.scan(path, root=self.settings.source_root, decorator=self.settings.decorator)
        except CompileError as error:
            self.diagnostics.report(error)
            return []

    def compile(self, declaration, /):
        """artifact of one declaration, or None when it was rejected (and reported)."""
        warnings = []
        try:
            artifact = compile_declaration(declaration, table=self.table, settings=self.settings, warnings=warnings)
        except CompileError as error:
            self.diagnostics.extend(warnings)
            self.diagnostics.report(error)
            log.debug("rejected %s.%s: %s", declaration.module, declaration.name, error.message)
            return None
        self.diagnostics.extend(warnings)
        self.artifacts.append(artifact)
        return artifact

    def run(self, *sources, exclude=()):
        """
        Scan and compile every Python file found in sources.

        The output directory is never scanned. Returns the artifacts compiled by
        this call, ordered by category, then command.
        """
        artifacts = []
        for path in source.discover(*sources, exclude=(self.settings.output, *exclude)):
            for declaration in self.scan(path):
                if (artifact := self.compile(declaration)) is not None:
                    artifacts.append(artifact)
        log.info(
            "compiled %s (%s, %s)",
            pluralize(len(artifacts), "command"),
            pluralize(len(self.diagnostics.errors), "error"),
            pluralize(len(self.diagnostics.warnings), "warning"),
        )
        return sorted(artifacts, key=lambda artifact: (artifact.record.category, artifact.record.command))

    def conclude(self, **options):
        """raise CompileExit when the build failed (see Diagnostics.conclude)."""
        self.diagnostics.conclude(**options)

    def write(self, directory=None, /, **options):
        """
        Write the generated package and return the written paths.

        Nothing is written when the build failed: CompileExit is raised instead.
        Generated modules left over from earlier builds are removed.
        """
        self.conclude(**options)
        directory = Path(directory if directory is not None else self.settings.output)
        directory.mkdir(parents=True, exist_ok=True)
        files = emitter.sources(self.artifacts)
        for stale in sorted(directory.glob("*.py")):
            if stale.name not in files and _generated(stale):
                log.debug("removing stale %s", stale)
                stale.unlink()
        written = []
        for name, text in files.items():
            path = directory / name
            path.write_text(text, encoding="utf-8")
            written.append(path)
        log.info("wrote %s to %s", pluralize(len(written), "file"), directory)
        return written


def _generated(path):
    with path.open(encoding="utf-8") as stream:
        return stream.readline().startswith(emitter.HEADER.partition("{")[0])


def compile_sources(*sources, settings=None, write=True, **options):
    """
    Compile sources in one Build; write the package when write is true.

    Raises CompileExit (carrying every error) when the build failed; the
    returned Build exposes the artifacts and warnings otherwise.
    """
    build = Build(settings)
    build.run(*sources)
    if write:
        build.write(**options)
    else:
        build.conclude(**options)
    return build


__all__ = (
    # Types
    "Build",

    # Functions
    "compile_declaration",
    "compile_sources",
)
