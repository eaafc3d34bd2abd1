"""
Build settings, loaded from [tool.shipwright] in pyproject.toml.

Keys (snake_case or kebab-case)
- source_root   directory module names are derived from (default: the pyproject directory)
- output        generated package directory (default: "_commands" under the source root)
- decorator     bare decorator name recognized besides shipwright.command (default: "command")
- threshold     complexity threshold of command bodies (default: 5)
- layers        module prefixes forbidden in command signatures
- allowed       prefixes exempt from layers (default: ["shipwright.scalars"])
- prefixes      verb prefixes stripped from inferred command names
- strict        treat warnings as errors (default: false)
- fancy         paneled diagnostics (default: false)
- colorful      colored diagnostics (default: false)

Example
    [tool.shipwright]
    source-root = "src"
    output = "src/app/_commands"
    threshold = 6
"""
import logging
import tomllib
from pathlib import Path

from .annotation import VERB_PREFIXES
from .guards import ALLOWED, LAYERS, THRESHOLD
from .utils import *

log = logging.getLogger(__name__)

SECTION = ("tool", "shipwright")


def _sanitize_path(cls, metadata, name, /):
    if not isinstance(object := metadata[name], str | Path):
        raise TypeError(f"{cls.__typename__} {name!r} must be a path")
    if not str(object).strip():
        raise ValueError(f"{cls.__typename__} {name!r} cannot be empty")
    metadata[name] = Path(object)


def _sanitize_prefixes(cls, metadata, name, /):
    if isinstance(object := metadata[name], str) or not hasattr(object, "__iter__"):
        raise TypeError(f"{cls.__typename__} {name!r} must be a list of strings")
    items = []
    for item in object:
        if not isinstance(item, str):
            raise TypeError(f"{cls.__typename__} {name!r} must be a list of strings")
        if not (item := item.strip()):
            raise ValueError(f"{cls.__typename__} {name!r} cannot contain empty strings")
        if item not in items:
            items.append(item)
    metadata[name] = tuple(items)


def _sanitize_switch(cls, metadata, name, /):
    if not isinstance(metadata[name], bool):
        raise TypeError(f"{cls.__typename__} {name!r} must be a boolean")


class Settings:
    """
    Immutable, sanitized settings of one build.

    Settings(**options) validates every option; wrong types raise TypeError and
    wrong values raise ValueError, both naming the setting. __replace__(**options)
    derives updated settings (command-line overrides).
    """

    __typename__ = "settings"

    __introspectable__ = (
        "source_root",
        "output",
        "decorator",
        "threshold",
        "layers",
        "allowed",
        "prefixes",
        "strict",
        "fancy",
        "colorful",
    )

    def __init__(
            self,
            *,
            source_root=".",
            output=Unset,
            decorator="command",
            threshold=THRESHOLD,
            layers=LAYERS,
            allowed=ALLOWED,
            prefixes=VERB_PREFIXES,
            strict=False,
            fancy=False,
            colorful=False,
    ):
        metadata = {
            "source_root": source_root,
            "output": output,
            "decorator": decorator,
            "threshold": threshold,
            "layers": layers,
            "allowed": allowed,
            "prefixes": prefixes,
            "strict": strict,
            "fancy": fancy,
            "colorful": colorful,
        }
        cls = type(self)
        _sanitize_path(cls, metadata, "source_root")
        if metadata["output"] is Unset:
            metadata["output"] = metadata["source_root"] / "_commands"
        _sanitize_path(cls, metadata, "output")
        if not metadata["output"].name.isidentifier():
            raise ValueError(f"{cls.__typename__} 'output' must end in a valid package name")

        if not isinstance(metadata["decorator"], str):
            raise TypeError(f"{cls.__typename__} 'decorator' must be a string")
        if not all(part.isidentifier() for part in metadata["decorator"].split(".")):
            raise ValueError(f"{cls.__typename__} 'decorator' must be a (dotted) identifier")

        if not isinstance(metadata["threshold"], int) or isinstance(metadata["threshold"], bool):
            raise TypeError(f"{cls.__typename__} 'threshold' must be an integer")
        if metadata["threshold"] < 1:
            raise ValueError(f"{cls.__typename__} 'threshold' must be at least 1")

        for name in ("layers", "allowed", "prefixes"):
            _sanitize_prefixes(cls, metadata, name)
        for name in ("strict", "fancy", "colorful"):
            _sanitize_switch(cls, metadata, name)

        for name, object in metadata.items():
            setattr(self, "_" + name, object)

    @property
    def package(self):
        """dotted name the generated package is imported as."""
        try:
            parts = self.output.resolve().relative_to(self.source_root.resolve()).parts
        except ValueError:
            parts = (self.output.name,)
        return ".".join(parts) or self.output.name

    def __replace__(self, *unused, **overrides):
        assert not unused, "positional arguments are not allowed"
        return type(self)(**{name: getattr(self, name) for name in type(self).__introspectable__} | overrides)

    def __eq__(self, other):
        if not isinstance(other, Settings):
            return NotImplemented
        return all(getattr(self, name) == getattr(other, name) for name in type(self).__introspectable__)

    __hash__ = None

    def __rich_repr__(self):
        for name in type(self).__introspectable__:
            yield name, getattr(self, name)

    def __repr__(self):
        return "settings(%s)" % ", ".join(f"{name}={value!r}" for name, value in self.__rich_repr__())


for _name in Settings.__introspectable__:
    setattr(Settings, _name, mirror(_name))
del _name


def find(start=None, /):
    """nearest pyproject.toml at or above start (default: the working directory), or None."""
    directory = Path(start or Path.cwd()).resolve()
    for candidate in (directory, *directory.parents):
        if (path := candidate / "pyproject.toml").is_file():
            return path
    return None


def read(path, /):
    """
    [tool.shipwright] options of a pyproject.toml, keys normalized to snake_case
    and relative paths resolved against the file's directory.
    """
    path = Path(path)
    with path.open("rb") as stream:
        document = tomllib.load(stream)
    table = document
    for key in SECTION:
        table = table.get(key, {})
        if not isinstance(table, dict):
            raise TypeError(f"[{'.'.join(SECTION)}] in {path} must be a table")
    options = {}
    for key, value in table.items():
        name = key.replace("-", "_")
        if name not in Settings.__introspectable__:
            raise ValueError(f"unknown setting {key!r} in [{'.'.join(SECTION)}] of {path}")
        if name in ("source_root", "output") and isinstance(value, str):
            value = path.parent / value
        options[name] = value
    options.setdefault("source_root", path.parent)
    log.debug("loaded %d settings from %s", len(options), path)
    return options


def load(pyproject=Unset, /, **overrides):
    """
    Settings from a pyproject.toml (found upwards from the working directory
    when not given; None skips the lookup) with keyword overrides applied last.
    Overrides set to None are ignored.
    """
    if pyproject is Unset:
        pyproject = find()
    options = read(pyproject) if pyproject is not None else {}
    options |= {name: value for name, value in overrides.items() if value is not None}
    return Settings(**options)


__all__ = (
    # Types
    "Settings",

    # Functions
    "find",
    "read",
    "load",
)
