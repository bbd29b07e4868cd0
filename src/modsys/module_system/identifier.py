"""
Module Identifier Algebra

Pure functions over CommonJS-style module identifiers:
- "./a", "../lib/b" are relative to the referring module
- "dep", "dep/lib/x", "@scope/dep/x" are absolute: head names a package,
  tail is the id within that package

These functions are stateless and never touch the filesystem.
"""

from pathlib import Path
from typing import List, Optional, Union

SEPARATOR = "/"


def is_relative(id: str) -> bool:
    """True for ids that start with "." (./x, ../x, . and ..)"""
    return id.startswith(".")


def is_absolute(id: str) -> bool:
    """True for ids that name another package (anything not relative)"""
    return not is_relative(id)


def _head_length(id: str) -> int:
    # Scoped package names span two segments: @scope/name
    parts = id.split(SEPARATOR)
    return 2 if parts[0].startswith("@") and len(parts) > 1 else 1


def head(id: str) -> str:
    """Package name of an absolute id: head("dep/lib/x") == "dep" """
    parts = id.split(SEPARATOR)
    return SEPARATOR.join(parts[:_head_length(id)])


def tail(id: str) -> str:
    """Id within the package of an absolute id: tail("dep/lib/x") == "lib/x" """
    parts = id.split(SEPARATOR)
    return SEPARATOR.join(parts[_head_length(id):])


def dirname(id: str) -> str:
    """Directory part of an id: dirname("a/b/c.py") == "a/b", dirname("c.py") == "" """
    index = id.rfind(SEPARATOR)
    return id[:index] if index >= 0 else ""


def basename(id: str) -> str:
    return id[id.rfind(SEPARATOR) + 1:]


def extension(id: str) -> str:
    """Extension without the dot: extension("lib/a.json") == "json", extension("a") == "" """
    name = basename(id)
    index = name.rfind(".")
    return name[index + 1:] if index >= 0 else ""


def resolve(rel: str, base: Optional[str] = None) -> str:
    """
    Resolve an id against the id of the referring module.

    Relative ids are joined onto dirname(base); top-level ids are only
    normalized. ".." segments that would climb above the package root are
    dropped.

    Examples:
        resolve("./b", "lib/a.py") == "lib/b"
        resolve("../c", "lib/a.py") == "c"
        resolve("lib/./x") == "lib/x"
    """
    parts: List[str] = []
    if is_relative(rel) and base:
        parts = [p for p in dirname(base).split(SEPARATOR) if p]
    for segment in rel.split(SEPARATOR):
        if segment in ("", "."):
            continue
        if segment == "..":
            if parts:
                parts.pop()
            continue
        parts.append(segment)
    return SEPARATOR.join(parts)


def resolve_location(base: Union[Path, str], id: str) -> Path:
    """Location of a package-relative id under a package location"""
    location = Path(base)
    for segment in id.split(SEPARATOR):
        if segment:
            location = location / segment
    return location
