"""
Source scanner: read Python files into command declarations without importing them.

Overview
- parse(text, filename=..., module=..., decorator=...) parses one source text with the
  standard library ast module and returns one Declaration per decorated,
  module-level function.
- scan(path, root=..., decorator=...) reads a file and derives its dotted module
  name from the source root before delegating to parse().
- discover(*sources) expands files and directories into the sorted list of
  Python files to scan.

Resolution
- A per-module import table maps local names to dotted names
  ("Opt" → "typing.Optional", "sw" → "shipwright"); relative imports are
  resolved against the module's package.
- Annotations become TypeRef trees whose names are resolved through that table;
  builtins resolve to "builtins.<name>", names defined in the module resolve to
  "<module>.<name>", and string annotations are parsed first.

Nothing in the scanned file is executed: defaults are read with
ast.literal_eval and everything else stays a syntax tree.
"""
import ast
import builtins
import keyword
import logging
from inspect import Parameter
from pathlib import Path

from .faults import CompileError, FaultCode
from .model import Location, ParameterDescriptor, TypeRef
from .utils import *

log = logging.getLogger(__name__)

PACKAGE = "shipwright"


class Declaration:
    """
    Intermediate representation of one annotated function.

    Fields
    - name: the function name.
    - module: dotted module name of the defining file.
    - location: location of the "def" line.
    - decorator: the decorator expression (ast.Call for @command(...)).
    - docstring: cleaned docstring, or None.
    - docline: 1-based line of the first cleaned docstring line (0 when absent).
    - parameters: ParameterDescriptor per parameter, in declaration order.
    - returns: TypeRef of the return annotation, or None.
    - node: the ast function node (body and decision points live here).
    - imports: import table of the defining module.
    - asynchronous: True for "async def".
    """

    __introspectable__ = (
        "name",
        "module",
        "location",
        "decorator",
        "docstring",
        "docline",
        "parameters",
        "returns",
        "node",
        "imports",
        "asynchronous",
    )

    def __init__(self, name, module, location, decorator, docstring, docline, parameters, returns, node, imports):
        self._name = name
        self._module = module
        self._location = location
        self._decorator = decorator
        self._docstring = docstring
        self._docline = docline
        self._parameters = tuple(parameters)
        self._returns = returns
        self._node = node
        self._imports = dict(imports)
        self._asynchronous = isinstance(node, ast.AsyncFunctionDef)

    @property
    def stem(self):
        """last segment of the module name: the file-scope category convention."""
        return self.module.rpartition(".")[2]

    def locate(self, node, /):
        """location of any node of this declaration's file."""
        return Location(self.location.file, getattr(node, "lineno", 0), getattr(node, "col_offset", 0))

    def __repr__(self):
        return f"declaration(name={self.name!r}, module={self.module!r}, location={str(self.location)!r})"


for _name in Declaration.__introspectable__:
    setattr(Declaration, _name, mirror(_name))
del _name


def module_name(path, root=None, /):
    """
    dotted module name of a file relative to a source root.

    - app/services.py → "app.services"
    - app/__init__.py → "app"
    - files outside the root fall back to their stem.
    """
    path = Path(path)
    parts = None
    if root is not None:
        try:
            parts = list(path.resolve().relative_to(Path(root).resolve()).with_suffix("").parts)
        except ValueError:
            parts = None
    if parts is None:
        parts = [path.stem]
    if len(parts) > 1 and parts[-1] == "__init__":
        parts.pop()
    return ".".join(parts)


class _Resolver:
    """
    Internal: import table and name resolution of one module.
    """

    def __init__(self, tree, module, package):
        self.module = module
        self.imports = {}
        self.defined = set()
        for node in tree.body:
            match node:
                case ast.ClassDef(name=name) | ast.FunctionDef(name=name) | ast.AsyncFunctionDef(name=name):
                    self.defined.add(name)
                case ast.TypeAlias(name=ast.Name(id=name)) | ast.AnnAssign(target=ast.Name(id=name)):
                    self.defined.add(name)
                case ast.Assign(targets=targets):
                    self.defined.update(target.id for target in targets if isinstance(target, ast.Name))
        for node in ast.walk(tree):
            match node:
                case ast.Import(names=names):
                    for alias in names:
                        if alias.asname:
                            self.imports[alias.asname] = alias.name
                        else:
                            head = alias.name.partition(".")[0]
                            self.imports[head] = head
                case ast.ImportFrom(module=origin, names=names, level=level):
                    base = self._absolute(origin, level, package)
                    for alias in names:
                        if alias.name == "*":
                            continue
                        self.imports[alias.asname or alias.name] = f"{base}.{alias.name}" if base else alias.name

    def _absolute(self, origin, level, package):
        if not level:
            return origin or ""
        parts = package.split(".") if package else []
        if level > 1:
            parts = parts[:len(parts) - (level - 1)]
        if origin:
            parts.append(origin)
        return ".".join(parts)

    def resolve(self, node, /):
        """dotted name of a Name/Attribute chain, or None for other expressions."""
        match node:
            case ast.Name(id=name):
                if name in self.imports:
                    return self.imports[name]
                if name in self.defined:
                    return f"{self.module}.{name}"
                if hasattr(builtins, name):
                    return f"builtins.{name}"
                return name
            case ast.Attribute(value=value, attr=attr):
                if (base := self.resolve(value)) is None:
                    return None
                return f"{base}.{attr}"
        return None

    def typeref(self, node, /):
        """convert an annotation expression into a TypeRef tree."""
        match node:
            case None:
                return None
            case ast.Constant(value=None):
                return TypeRef("<none>")
            case ast.Constant(value=builtins.Ellipsis):
                return TypeRef("<ellipsis>")
            case ast.Constant(value=str() as text):
                try:
                    expression = ast.parse(text.strip(), mode="eval").body
                except SyntaxError:
                    return TypeRef("<unknown>", value=text)
                return self.typeref(expression)
            case ast.Name() | ast.Attribute():
                return TypeRef(self.resolve(node) or "<unknown>")
            case ast.BinOp(op=ast.BitOr(), left=left, right=right):
                members = []
                for side in (self.typeref(left), self.typeref(right)):
                    members.extend(side.arguments if side.name == "<union>" else (side,))
                return TypeRef("<union>", tuple(members))
            case ast.Subscript(value=value, slice=index):
                name = self.resolve(value) or "<unknown>"
                elements = index.elts if isinstance(index, ast.Tuple) else [index]
                if name.rpartition(".")[2] == "Literal":
                    return TypeRef(name, tuple(self._literal(element) for element in elements))
                if name.rpartition(".")[2] == "Annotated":
                    return self.typeref(elements[0])
                return TypeRef(name, tuple(self.typeref(element) for element in elements))
            case ast.List(elts=elements):
                return TypeRef("<list>", tuple(self.typeref(element) for element in elements))
        return TypeRef("<unknown>", value=ast.unparse(node))

    def _literal(self, node):
        try:
            return TypeRef("<literal>", value=ast.literal_eval(node))
        except (ValueError, TypeError):
            return TypeRef("<unknown>", value=ast.unparse(node))


def _is_command(decorator, resolver, name):
    """whether a decorator expression is the configured command decorator."""
    target = decorator.func if isinstance(decorator, ast.Call) else decorator
    resolved = resolver.resolve(target)
    if resolved is None:
        return False
    if resolved in (f"{PACKAGE}.command", name):
        return True
    return isinstance(target, ast.Name) and target.id == name and name not in resolver.imports


def _docline(node):
    """1-based line of the first line kept by inspect.cleandoc()."""
    if not (node.body and isinstance(first := node.body[0], ast.Expr) and isinstance(first.value, ast.Constant)):
        return 0
    if not isinstance(raw := first.value.value, str):
        return 0
    lines = raw.expandtabs().split("\n")
    skipped = 0
    while skipped < len(lines) - 1 and not lines[skipped].strip():
        skipped += 1
    return first.value.lineno + skipped


def _parameters(function, resolver, filename):
    """ParameterDescriptor per parameter, in declaration order."""
    arguments = function.args
    ordered = [(argument, Parameter.POSITIONAL_ONLY) for argument in arguments.posonlyargs]
    ordered += [(argument, Parameter.POSITIONAL_OR_KEYWORD) for argument in arguments.args]
    defaults = [None] * (len(ordered) - len(arguments.defaults)) + list(arguments.defaults)
    if arguments.vararg:
        ordered.append((arguments.vararg, Parameter.VAR_POSITIONAL))
        defaults.append(None)
    ordered += [(argument, Parameter.KEYWORD_ONLY) for argument in arguments.kwonlyargs]
    defaults += list(arguments.kw_defaults)
    if arguments.kwarg:
        ordered.append((arguments.kwarg, Parameter.VAR_KEYWORD))
        defaults.append(None)

    for position, ((argument, kind), default) in enumerate(zip(ordered, defaults)):
        literal = Unset
        if default is not None:
            try:
                literal = ast.literal_eval(default)
            except (ValueError, TypeError):
                literal = Unset
        yield ParameterDescriptor(
            argument.arg,
            resolver.typeref(argument.annotation),
            position,
            kind,
            None if default is None else ast.unparse(default),
            literal,
            Location(filename, argument.lineno, argument.col_offset),
        )


def _importable(module):
    return all(part.isidentifier() and not keyword.iskeyword(part) for part in module.split("."))


def parse(text, /, *, filename="<unknown>", module="__main__", decorator="command", package=Unset):
    """
    Parse one source text into its command declarations.

    Parameters
    - text: Python source.
    - filename: used for locations only.
    - module: dotted module name (category inference and name resolution).
    - decorator: bare name of the command decorator (shipwright.command always matches).
    - package: package used for relative imports (defaults to the module's parent).

    Raises
    - CompileError (FaultCode.SOURCE_SYNTAX) when the text is not valid Python,
      located at the offending line.
    - CompileError (FaultCode.MODULE_NAME) when the text declares commands but
      module is not a dotted identifier ("service-tools"), located at the first
      declaration.
    """
    if not isinstance(text, str):
        raise TypeError("parse() argument must be a string")
    try:
        tree = ast.parse(text, filename=filename)
    except SyntaxError as error:
        raise CompileError(
            f"cannot parse source: {error.msg}",
            code=FaultCode.SOURCE_SYNTAX,
            title="source syntax",
            hint="fix the syntax error before building commands",
            location=Location(filename, error.lineno or 0, max((error.offset or 1) - 1, 0)),
        ) from None

    resolver = _Resolver(tree, module, coalesce(package, module.rpartition(".")[0]))
    declarations = []
    for node in tree.body:
        if not isinstance(node, ast.FunctionDef | ast.AsyncFunctionDef):
            continue
        for expression in node.decorator_list:
            if _is_command(expression, resolver, decorator):
                break
        else:
            continue
        declarations.append(Declaration(
            node.name,
            module,
            Location(filename, node.lineno, node.col_offset),
            expression,
            ast.get_docstring(node, clean=True),
            _docline(node),
            _parameters(node, resolver, filename),
            resolver.typeref(node.returns),
            node,
            resolver.imports,
        ))
    if declarations and not _importable(module):
        raise CompileError(
            f"module {module!r} declares commands but cannot be imported by generated code",
            code=FaultCode.MODULE_NAME,
            title="module name",
            hint="rename the file or package so every part is a Python identifier, e.g. %s"
                 % ".".join(sanitize(part) for part in module.split(".")),
            location=declarations[0].location,
        )
    log.debug("parsed %s: %s", filename, pluralize(len(declarations), "declaration"))
    return declarations


def scan(path, /, *, root=None, decorator="command"):
    """
    Read and parse one file.

    The module name is derived from the path relative to root; a package's
    __init__.py resolves relative imports against the package itself.
    A file that is not valid UTF-8 raises CompileError (FaultCode.SOURCE_SYNTAX)
    located at the offending byte.
    """
    path = Path(path)
    module = module_name(path, root)
    package = module if path.name == "__init__.py" else module.rpartition(".")[0]
    log.debug("scanning %s as %s", path, module)
    data = path.read_bytes()
    try:
        text = data.decode("utf-8")
    except UnicodeDecodeError as error:
        line = data[:error.start].count(b"\n") + 1
        raise CompileError(
            f"cannot decode source: byte {data[error.start]:#04x} at offset {error.start} is not valid UTF-8",
            code=FaultCode.SOURCE_SYNTAX,
            title="source syntax",
            hint="save the file as UTF-8",
            location=Location(str(path), line, error.start - (data.rfind(b"\n", 0, error.start) + 1)),
        ) from None
    return parse(
        text,
        filename=str(path),
        module=module,
        decorator=decorator,
        package=package,
    )


def discover(*sources, exclude=()):
    """
    Expand files and directories into a sorted, duplicate-free list of Python files.

    Directories are searched recursively; hidden directories, __pycache__ and
    any directory listed in exclude are skipped.
    """
    found = set()
    excluded = {Path(entry).resolve() for entry in exclude}
    for source in map(Path, sources):
        if source.is_dir():
            for path in source.rglob("*.py"):
                if any(part.startswith(".") or part == "__pycache__" for part in path.relative_to(source).parts[:-1]):
                    continue
                if any(parent in excluded for parent in path.resolve().parents):
                    continue
                found.add(path)
        elif source.is_file():
            found.add(source)
        else:
            raise FileNotFoundError(f"no such file or directory: '{source}'")
    return sorted(found)


__all__ = (
    # Types
    "Declaration",

    # Functions
    "parse",
    "scan",
    "discover",
    "module_name",
)
