"""Go package inspector.

Reads the header of every ``.go`` file in a directory (build constraints,
doc comment, package clause, import declarations) and assembles a package
description the way the Go toolchain's directory import does for a fixed
linux/amd64 gc build context.
"""

import logging
import re
from dataclasses import dataclass, field
from pathlib import Path

logger = logging.getLogger(__name__)

KNOWN_OS = {
    "aix", "android", "darwin", "dragonfly", "freebsd", "hurd", "illumos",
    "ios", "js", "linux", "nacl", "netbsd", "openbsd", "plan9", "solaris",
    "wasip1", "windows", "zos",
}

KNOWN_ARCH = {
    "386", "amd64", "amd64p32", "arm", "armbe", "arm64", "arm64be",
    "loong64", "mips", "mipsle", "mips64", "mips64le", "mips64p32",
    "mips64p32le", "ppc", "ppc64", "ppc64le", "riscv", "riscv64", "s390",
    "s390x", "sparc", "sparc64", "wasm",
}

UNIX_OS = {
    "aix", "android", "darwin", "dragonfly", "freebsd", "hurd", "illumos",
    "ios", "linux", "netbsd", "openbsd", "solaris",
}

# Files in this package are documentation only and never built.
DOCUMENTATION_PACKAGE = "documentation"


class NoGoError(Exception):
    """The directory holds no buildable Go files."""

    def __init__(self, directory: Path, ignored: list[str] | None = None):
        self.directory = directory
        self.ignored = ignored or []
        if self.ignored:
            message = f"build constraints exclude all Go files in {directory}"
        else:
            message = f"no buildable Go source files in {directory}"
        super().__init__(message)


class BuildError(Exception):
    """The directory holds Go files that do not form a valid package."""


@dataclass
class BuildContext:
    """Target platform used to evaluate build constraints."""
    goos: str = "linux"
    goarch: str = "amd64"
    compiler: str = "gc"
    cgo_enabled: bool = True
    release: int = 23  # go1.1 .. go1.<release> are satisfied

    def matches(self, tag: str) -> bool:
        """Report whether a single build tag is satisfied."""
        if tag in (self.goos, self.goarch, self.compiler):
            return True
        if tag == "cgo":
            return self.cgo_enabled
        if tag == "unix":
            return self.goos in UNIX_OS
        if tag == "linux" and self.goos == "android":
            return True
        if tag == "solaris" and self.goos == "illumos":
            return True
        if tag == "darwin" and self.goos == "ios":
            return True
        m = re.fullmatch(r"go1\.(\d+)", tag)
        if m:
            return int(m.group(1)) <= self.release
        return False


@dataclass
class GoPackage:
    """What the inspector learned about one directory."""
    dir: Path
    name: str = ""
    doc: str = ""
    go_files: list[str] = field(default_factory=list)
    cgo_files: list[str] = field(default_factory=list)
    ignored_go_files: list[str] = field(default_factory=list)
    test_go_files: list[str] = field(default_factory=list)
    xtest_go_files: list[str] = field(default_factory=list)
    imports: list[str] = field(default_factory=list)
    test_imports: list[str] = field(default_factory=list)
    xtest_imports: list[str] = field(default_factory=list)

    @property
    def is_command(self) -> bool:
        return self.name == "main"


@dataclass
class _Comment:
    text: str
    start_line: int
    end_line: int


@dataclass
class _FileHeader:
    package: str
    doc: str
    constraints: list[str]
    plus_build: list[str]
    imports: list[str]


class GoPackageInspector:
    """Resolve a directory of Go files into a GoPackage."""

    extensions = [".go"]
    language = "go"

    TOKEN_PATTERN = re.compile(
        r"""
          (?P<ws>[ \t\r\n\ufeff]+)
        | (?P<line_comment>//[^\n]*)
        | (?P<block_comment>/\*.*?\*/)
        | (?P<string>"(?:[^"\\\n]|\\.)*")
        | (?P<raw_string>`[^`]*`)
        | (?P<ident>[^\W\d]\w*)
        | (?P<other>.)
        """,
        re.VERBOSE | re.DOTALL,
    )

    GO_BUILD_PATTERN = re.compile(r"^//go:build\s+(.+?)\s*$")
    PLUS_BUILD_PATTERN = re.compile(r"^//\s*\+build\s+(.+?)\s*$")
    CONSTRAINT_TOKEN_PATTERN = re.compile(r"\s*(\(|\)|&&|\|\||!|[\w.]+)")

    def __init__(self, context: BuildContext | None = None):
        self.context = context or BuildContext()

    def is_source_file(self, name: str) -> bool:
        return Path(name).suffix in self.extensions

    def inspect(self, directory: Path | str) -> GoPackage:
        """Inspect the Go files directly inside `directory`.

        Raises NoGoError when nothing is buildable and BuildError when the
        files do not form a single valid package. OSError from reading the
        directory propagates.
        """
        directory = Path(directory)
        pkg = GoPackage(dir=directory)

        imports: set[str] = set()
        test_imports: set[str] = set()
        xtest_imports: set[str] = set()
        first_file = ""
        conflict: str | None = None
        bad_file: str | None = None

        for entry in sorted(directory.iterdir(), key=lambda p: p.name):
            name = entry.name
            if not entry.is_file() or not self.is_source_file(name):
                continue
            if name.startswith(("_", ".")):
                pkg.ignored_go_files.append(name)
                continue
            if not self._good_os_arch_file(name):
                pkg.ignored_go_files.append(name)
                continue

            content = entry.read_text(encoding="utf-8", errors="replace")
            try:
                header = self._parse_header(content)
            except BuildError as e:
                bad_file = bad_file or f"{entry}: {e}"
                continue

            if not self._should_build(header):
                pkg.ignored_go_files.append(name)
                continue

            if header.package == DOCUMENTATION_PACKAGE:
                pkg.ignored_go_files.append(name)
                continue

            is_test = name.endswith("_test.go")
            is_xtest = is_test and header.package.endswith("_test")
            package_name = header.package
            if is_xtest:
                package_name = package_name.removesuffix("_test")

            if not pkg.name:
                pkg.name = package_name
                first_file = name
            elif package_name != pkg.name and conflict is None:
                conflict = (
                    f"found packages {pkg.name} ({first_file}) and "
                    f"{package_name} ({name}) in {directory}"
                )

            if header.doc and not pkg.doc and not is_test:
                pkg.doc = synopsis(header.doc)

            if is_xtest:
                pkg.xtest_go_files.append(name)
                xtest_imports.update(header.imports)
            elif is_test:
                pkg.test_go_files.append(name)
                test_imports.update(header.imports)
            else:
                if "C" in header.imports:
                    pkg.cgo_files.append(name)
                else:
                    pkg.go_files.append(name)
                imports.update(header.imports)

        if bad_file:
            raise BuildError(bad_file)
        if conflict:
            raise BuildError(conflict)

        if not (pkg.go_files or pkg.cgo_files or pkg.test_go_files or pkg.xtest_go_files):
            raise NoGoError(directory, pkg.ignored_go_files)

        pkg.imports = sorted(imports)
        pkg.test_imports = sorted(test_imports)
        pkg.xtest_imports = sorted(xtest_imports)
        logger.debug("%s: package %s, %d files", directory, pkg.name, len(pkg.go_files))
        return pkg

    def _tokens(self, content: str):
        """Yield (kind, text, start_line, end_line), skipping whitespace."""
        line = 1
        for match in self.TOKEN_PATTERN.finditer(content):
            kind = match.lastgroup
            text = match.group()
            end_line = line + text.count("\n")
            if kind != "ws":
                yield kind, text, line, end_line
            line = end_line

    def _parse_header(self, content: str) -> _FileHeader:
        """Parse everything up to the end of the import declarations."""
        tokens = self._tokens(content)
        comments: list[_Comment] = []

        kind, text, line = "eof", "EOF", 0
        for kind, text, line, end_line in tokens:
            if kind not in ("line_comment", "block_comment"):
                break
            comments.append(_Comment(text, line, end_line))
        else:
            kind, text = "eof", "EOF"

        if kind != "ident" or text != "package":
            raise BuildError(f"expected 'package', found {text!r}")
        package_line = line

        kind, text, _, _ = next(tokens, ("eof", "EOF", 0, 0))
        if kind != "ident" or text == "_":
            raise BuildError(f"invalid package name {text!r}")
        package = text

        doc_group = _doc_group(comments, package_line)
        doc = _comment_text(doc_group)

        constraints = []
        plus_build = []
        for comment in comments:
            if comment in doc_group:
                continue
            m = self.GO_BUILD_PATTERN.match(comment.text)
            if m:
                constraints.append(m.group(1))
                continue
            m = self.PLUS_BUILD_PATTERN.match(comment.text)
            if m:
                plus_build.append(m.group(1))

        return _FileHeader(
            package=package,
            doc=doc,
            constraints=constraints,
            plus_build=plus_build,
            imports=self._parse_imports(tokens),
        )

    def _parse_imports(self, tokens) -> list[str]:
        imports = []
        kind, text = self._next_code(tokens)
        while kind == "ident" and text == "import":
            kind, text = self._next_code(tokens)
            if text == "(":
                kind, text = self._next_code(tokens)
                while text not in (")", "EOF"):
                    if kind in ("string", "raw_string"):
                        imports.append(_unquote(text))
                    kind, text = self._next_code(tokens)
            else:
                if kind not in ("string", "raw_string"):
                    kind, text = self._next_code(tokens)
                if kind in ("string", "raw_string"):
                    imports.append(_unquote(text))
            kind, text = self._next_code(tokens)
        return imports

    @staticmethod
    def _next_code(tokens) -> tuple[str, str]:
        """Next token that is neither a comment nor a semicolon."""
        for kind, text, _, _ in tokens:
            if kind in ("line_comment", "block_comment") or text == ";":
                continue
            return kind, text
        return "eof", "EOF"

    def _good_os_arch_file(self, name: str) -> bool:
        """Apply the _GOOS, _GOARCH and _GOOS_GOARCH filename suffixes."""
        stem = name.removesuffix(".go")
        i = stem.find("_")
        if i < 0:
            return True
        parts = stem[i:].split("_")
        if parts and parts[-1] == "test":
            parts = parts[:-1]
        if len(parts) >= 2 and parts[-2] in KNOWN_OS and parts[-1] in KNOWN_ARCH:
            return self.context.matches(parts[-2]) and self.context.matches(parts[-1])
        if parts and (parts[-1] in KNOWN_OS or parts[-1] in KNOWN_ARCH):
            return self.context.matches(parts[-1])
        return True

    def _should_build(self, header: _FileHeader) -> bool:
        # //go:build wins over // +build when both are present
        if header.constraints:
            return all(self._eval_go_build(expr) for expr in header.constraints)
        return all(self._eval_plus_build(line) for line in header.plus_build)

    def _eval_plus_build(self, line: str) -> bool:
        """Space separated options are OR'd, comma separated terms AND'd."""
        for option in line.split():
            if all(self._eval_term(term) for term in option.split(",")):
                return True
        return False

    def _eval_term(self, term: str) -> bool:
        if term.startswith("!!") or not term.strip("!"):
            return False
        if term.startswith("!"):
            return not self.context.matches(term[1:])
        return self.context.matches(term)

    def _eval_go_build(self, expr: str) -> bool:
        tokens = []
        pos = 0
        while pos < len(expr):
            m = self.CONSTRAINT_TOKEN_PATTERN.match(expr, pos)
            if not m:
                if expr[pos:].strip():
                    raise BuildError(f"invalid //go:build line: {expr}")
                break
            tokens.append(m.group(1))
            pos = m.end()
        parser = _ConstraintParser(tokens, self.context)
        value = parser.parse_or()
        if parser.pos != len(tokens):
            raise BuildError(f"invalid //go:build line: {expr}")
        return value


class _ConstraintParser:
    """Recursive descent over ``||``, ``&&``, ``!`` and parentheses."""

    def __init__(self, tokens: list[str], context: BuildContext):
        self.tokens = tokens
        self.pos = 0
        self.context = context

    def _peek(self) -> str | None:
        return self.tokens[self.pos] if self.pos < len(self.tokens) else None

    def _take(self) -> str:
        token = self._peek()
        if token is None:
            raise BuildError("unexpected end of //go:build expression")
        self.pos += 1
        return token

    def parse_or(self) -> bool:
        value = self.parse_and()
        while self._peek() == "||":
            self._take()
            rhs = self.parse_and()
            value = value or rhs
        return value

    def parse_and(self) -> bool:
        value = self.parse_not()
        while self._peek() == "&&":
            self._take()
            rhs = self.parse_not()
            value = value and rhs
        return value

    def parse_not(self) -> bool:
        token = self._take()
        if token == "!":
            return not self.parse_not()
        if token == "(":
            value = self.parse_or()
            if self._take() != ")":
                raise BuildError("missing ) in //go:build expression")
            return value
        if token in (")", "&&", "||"):
            raise BuildError(f"unexpected {token} in //go:build expression")
        return self.context.matches(token)


def _doc_group(comments: list[_Comment], package_line: int) -> list[_Comment]:
    """The comment group ending on the line right above the package clause."""
    group: list[_Comment] = []
    next_line = package_line
    for comment in reversed(comments):
        if comment.end_line != next_line - 1:
            break
        group.insert(0, comment)
        next_line = comment.start_line
    return group


def _comment_text(group: list[_Comment]) -> str:
    lines = []
    for comment in group:
        text = comment.text
        if text.startswith("//"):
            body = text[2:]
            if body.startswith("go:") or body.lstrip().startswith("+build"):
                continue
            lines.append(body[1:] if body.startswith(" ") else body)
        else:
            lines.extend(text[2:-2].splitlines())
    return "\n".join(lines).strip()


def synopsis(text: str) -> str:
    """First sentence of a doc comment, whitespace collapsed.

    A sentence ends at a period followed by whitespace, unless the period
    follows a lone capital letter (an initial), or at the first blank line.
    """
    paragraph = re.split(r"\n\s*\n", text.strip(), maxsplit=1)[0]
    flat = " ".join(paragraph.split())

    for m in re.finditer(r"\. ", flat):
        i = m.start()
        if i >= 1 and flat[i - 1].isupper() and not (i >= 2 and flat[i - 2].isupper()):
            continue
        flat = flat[: i + 1]
        break

    lowered = flat.lower()
    if lowered.startswith(("copyright", "all rights", "author")):
        return ""
    return flat.rstrip(" \t\n\r")


def _unquote(literal: str) -> str:
    body = literal[1:-1]
    if literal.startswith("`") or "\\" not in body:
        return body
    try:
        return body.encode("latin-1", "backslashreplace").decode("unicode_escape")
    except UnicodeDecodeError as e:
        raise BuildError(f"invalid import path {literal}: {e}") from e
