"""Path addressing for document tree leaves."""

from __future__ import annotations

import re
from typing import List, Optional

from .errors import StructuralInvariantError
from .structures import Index, Key, Node, NodeKind, Path, PathSegment

PATH_PART_PATTERN = re.compile(r"([^.\[\]]+)|\[(\d+)\]")


def format_path(path: Path) -> str:
    """Render a path as ``a.b[2].c``."""

    parts: List[str] = []
    for segment in path:
        if isinstance(segment, Index):
            parts.append(f"[{segment.position}]")
        elif parts:
            parts.append(f".{segment.name}")
        else:
            parts.append(segment.name)
    return "".join(parts)


def parse_path(text: str) -> Path:
    """Parse the ``a.b[2].c`` syntax back into segments."""

    segments: List[PathSegment] = []
    for match in PATH_PART_PATTERN.finditer(text):
        name, position = match.group(1), match.group(2)
        if name is not None:
            segments.append(Key(name))
        else:
            segments.append(Index(int(position)))
    return tuple(segments)


def resolve(tree: Node, path: Path) -> Optional[Node]:
    """Walk ``path`` from ``tree`` and return the node found, or ``None``."""

    current = tree
    for segment in path:
        if isinstance(segment, Key):
            if current.kind is not NodeKind.OBJECT:
                return None
            child = current.value.get(segment.name)
            if child is None:
                return None
            current = child
        elif isinstance(segment, Index):
            if current.kind is not NodeKind.ARRAY:
                return None
            if not 0 <= segment.position < len(current.value):
                return None
            current = current.value[segment.position]
        else:
            raise TypeError(f"Unknown path segment {segment!r}.")
    return current


def write_at(tree: Node, path: Path, value: str) -> None:
    """Replace the string leaf at ``path`` in place."""

    target = resolve(tree, path)
    if target is None:
        raise StructuralInvariantError(f"Path not found: {format_path(path) or '<root>'}")
    if target.kind is not NodeKind.STRING:
        raise StructuralInvariantError(
            f"Path {format_path(path) or '<root>'} no longer points at a string."
        )
    target.value = value
