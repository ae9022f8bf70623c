import os
import re
from pathlib import Path
from typing import Callable, Iterable

import pathspec

# Characters that may appear inside a TypeScript identifier.
_IDENT_CHARS = r"[A-Za-z0-9_$]"

_TS_SUFFIXES = (".d.ts", ".d.mts", ".d.cts", ".ts", ".tsx", ".mts", ".cts", ".js", ".jsx", ".mjs", ".cjs")


def normalize_path(path: str | Path) -> str:
    """Absolute, normalised form used for every file key inside the bundler."""
    return os.path.normpath(os.path.abspath(str(path)))


def file_stem(path: str) -> str:
    """
    Return the file name of *path* without its TypeScript / JavaScript suffix.

    ``src/user.d.ts`` -> ``user``, ``a/b/api-types.ts`` -> ``api-types``.
    """
    name = os.path.basename(path)
    for suffix in _TS_SUFFIXES:
        if name.endswith(suffix) and len(name) > len(suffix):
            return name[: -len(suffix)]
    return os.path.splitext(name)[0]


def pascal_case(text: str) -> str:
    """
    Convert *text* to PascalCase, splitting on every non-alphanumeric character.

    >>> pascal_case("user-profile.types")
    'UserProfileTypes'
    """
    parts = [p for p in re.split(r"[^A-Za-z0-9]+", text) if p]
    return "".join(p[0].upper() + p[1:] for p in parts)


def sanitize_file_name(name: str) -> str:
    """Make *name* safe to use as a file name (keeps letters, digits, ``_``, ``-`` and ``.``)."""
    cleaned = re.sub(r"[^A-Za-z0-9_.-]", "_", name.strip())
    cleaned = cleaned.strip(".")
    return cleaned or "bundle"


def identifier_pattern(names: Iterable[str]) -> re.Pattern[str] | None:
    """
    Build a regex matching any of *names* as a whole identifier.

    Dotted names (``ns.Foo``) are matched literally. A match is never preceded by
    an identifier character or a member-access ``.`` so ``T`` does not hit ``T1``
    or ``x.T`` (a spread ``...T`` still matches). Longer names win over their
    prefixes.
    """
    unique = sorted(set(names), key=lambda n: (-len(n), n))
    if not unique:
        return None
    alternatives = "|".join(re.escape(n) for n in unique)
    return re.compile(
        rf"(?:(?<=\.\.\.)|(?<![A-Za-z0-9_$.]))(?:{alternatives})(?!{_IDENT_CHARS})"
    )


def replace_identifiers(text: str, mapping: dict[str, str]) -> str:
    """
    Replace every whole-identifier occurrence of a key of *mapping* in *text*
    with its value. All replacements happen in a single pass, so renames never
    chain into each other.
    """
    changed = {k: v for k, v in mapping.items() if k != v}
    pattern = identifier_pattern(changed)
    if pattern is None:
        return text
    replace: Callable[[re.Match[str]], str] = lambda m: changed[m.group(0)]
    return pattern.sub(replace, text)


def strip_json_comments(data: str) -> str:
    """
    Remove ``//`` and ``/* */`` comments plus trailing commas from a JSON-ish
    document (``tsconfig.json`` style). String literals are left untouched.
    """
    out: list[str] = []
    i, n = 0, len(data)
    in_string = False
    while i < n:
        ch = data[i]
        if in_string:
            out.append(ch)
            if ch == "\\" and i + 1 < n:
                out.append(data[i + 1])
                i += 2
                continue
            if ch == '"':
                in_string = False
            i += 1
            continue
        if ch == '"':
            in_string = True
            out.append(ch)
            i += 1
        elif data.startswith("//", i):
            end = data.find("\n", i)
            i = n if end == -1 else end
        elif data.startswith("/*", i):
            end = data.find("*/", i + 2)
            i = n if end == -1 else end + 2
        else:
            out.append(ch)
            i += 1
    return re.sub(r",(\s*[}\]])", r"\1", "".join(out))


def parse_gitignore(root_path: str | Path) -> "pathspec.PathSpec":
    """
    Parse <root_path>/.gitignore and return a *pathspec.PathSpec* built
    with the 'gitwildmatch' syntax (exactly what Git uses).

    Blank lines and comment lines (starting with '#') are ignored.
    """
    root_path = Path(root_path)
    gitignore_file = root_path / ".gitignore"

    if not gitignore_file.exists():
        return pathspec.PathSpec.from_lines("gitwildmatch", [])

    valid_lines: list[str] = []
    for raw in gitignore_file.read_text().splitlines():
        raw = raw.rstrip()
        if not raw or raw.lstrip().startswith("#"):
            continue
        valid_lines.append(raw)

    return pathspec.PathSpec.from_lines("gitwildmatch", valid_lines)


def matches_gitignore(path: str | Path, spec: "pathspec.PathSpec") -> bool:
    """
    Return True if *path* (relative to project root) is ignored by *spec*.
    """
    return spec.match_file(str(path))
