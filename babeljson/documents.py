"""Document loading, leaf extraction and reinsertion utilities."""

from __future__ import annotations

import json
import os
import pathlib
import tempfile
from typing import Any, List, Tuple

from .errors import CountMismatchError, DocumentParseError, UnsupportedFileTypeError
from .paths import write_at
from .structures import Index, Key, Node, NodeKind, NumberLiteral, Path, StringLeaf

MAX_NESTING_DEPTH = 256
_INDENT = "  "


def _reject_constant(name: str) -> Any:
    raise ValueError(f"{name} is not valid JSON")


def from_plain(data: Any) -> Node:
    """Convert decoded JSON values into a document tree."""

    return _build(data, 0)


def _build(data: Any, depth: int) -> Node:
    if depth > MAX_NESTING_DEPTH:
        raise DocumentParseError(
            f"Input nests deeper than {MAX_NESTING_DEPTH} levels."
        )
    if isinstance(data, dict):
        return Node.object({key: _build(value, depth + 1) for key, value in data.items()})
    if isinstance(data, list):
        return Node.array([_build(item, depth + 1) for item in data])
    if isinstance(data, str):
        return Node.string(data)
    return Node.scalar(data)


def to_plain(node: Node) -> Any:
    """Convert a document tree back into JSON-serialisable values."""

    if node.kind is NodeKind.OBJECT:
        return {key: to_plain(child) for key, child in node.value.items()}
    if node.kind is NodeKind.ARRAY:
        return [to_plain(child) for child in node.value]
    if node.kind is NodeKind.STRING:
        return node.value
    if node.kind is NodeKind.SCALAR:
        if isinstance(node.value, NumberLiteral):
            return node.value.as_number()
        return node.value
    raise TypeError(f"Unknown node kind {node.kind!r}.")


def clone_tree(node: Node) -> Node:
    """Deep copy a tree, keeping member order."""

    if node.kind is NodeKind.OBJECT:
        return Node.object({key: clone_tree(child) for key, child in node.value.items()})
    if node.kind is NodeKind.ARRAY:
        return Node.array([clone_tree(child) for child in node.value])
    if node.kind is NodeKind.STRING or node.kind is NodeKind.SCALAR:
        return Node(node.kind, node.value)
    raise TypeError(f"Unknown node kind {node.kind!r}.")


def parse_document(text: str) -> Node:
    """Parse JSON text into a document tree.

    Numbers keep their source spelling so ``1e5`` or ``1.10`` are written back
    unchanged.
    """

    try:
        data = json.loads(
            text,
            parse_constant=_reject_constant,
            parse_float=NumberLiteral,
            parse_int=NumberLiteral,
        )
        return from_plain(data)
    except ValueError as exc:
        raise DocumentParseError(f"Input is not valid JSON: {exc}") from exc
    except RecursionError as exc:
        raise DocumentParseError("Input nests too deeply to be parsed.") from exc


def serialize_document(node: Node) -> str:
    """Serialise a tree as indented JSON."""

    parts: List[str] = []
    _emit(node, 0, parts)
    return "".join(parts)


def _emit(node: Node, level: int, out: List[str]) -> None:
    inner = _INDENT * (level + 1)
    if node.kind is NodeKind.OBJECT:
        if not node.value:
            out.append("{}")
            return
        out.append("{")
        for position, (key, child) in enumerate(node.value.items()):
            out.append(f"{',' if position else ''}\n{inner}{_quote(key)}: ")
            _emit(child, level + 1, out)
        out.append(f"\n{_INDENT * level}}}")
    elif node.kind is NodeKind.ARRAY:
        if not node.value:
            out.append("[]")
            return
        out.append("[")
        for position, child in enumerate(node.value):
            out.append(f"{',' if position else ''}\n{inner}")
            _emit(child, level + 1, out)
        out.append(f"\n{_INDENT * level}]")
    elif node.kind is NodeKind.STRING:
        out.append(_quote(node.value))
    elif node.kind is NodeKind.SCALAR:
        if isinstance(node.value, NumberLiteral):
            out.append(node.value.text)
        else:
            out.append(json.dumps(node.value, allow_nan=False))
    else:
        raise TypeError(f"Unknown node kind {node.kind!r}.")


def _quote(text: str) -> str:
    return json.dumps(text, ensure_ascii=False)


def collect_leaves(node: Node) -> List[StringLeaf]:
    """Collect string leaves depth-first in document order."""

    leaves: List[StringLeaf] = []
    _collect(node, (), leaves)
    return leaves


def _collect(node: Node, path: Path, acc: List[StringLeaf]) -> None:
    if node.kind is NodeKind.OBJECT:
        for key, child in node.value.items():
            _collect(child, path + (Key(key),), acc)
    elif node.kind is NodeKind.ARRAY:
        for idx, child in enumerate(node.value):
            _collect(child, path + (Index(idx),), acc)
    elif node.kind is NodeKind.STRING:
        acc.append(StringLeaf(path=path, text=node.value))
    elif node.kind is NodeKind.SCALAR:
        return
    else:
        raise TypeError(f"Unknown node kind {node.kind!r}.")


def apply_leaves(node: Node, leaves: List[StringLeaf], texts: List[str]) -> Node:
    """Return a clone of ``node`` with each leaf replaced by its new text."""

    if len(leaves) != len(texts):
        raise CountMismatchError(
            f"Expected {len(leaves)} translated strings, got {len(texts)}."
        )
    output = clone_tree(node)
    for leaf, text in zip(leaves, texts):
        write_at(output, leaf.path, text)
    return output


class JsonDocumentHandler:
    """Reads a JSON document and writes its translated copy."""

    def __init__(self, source_path: pathlib.Path):
        self.source_path = source_path
        try:
            raw = source_path.read_text(encoding="utf-8-sig")
        except UnicodeDecodeError as exc:
            raise DocumentParseError(f"Input is not valid UTF-8: {exc}") from exc
        self.tree = parse_document(raw)
        self.leaves: List[StringLeaf] = []

    def extract_leaves(self) -> List[StringLeaf]:
        self.leaves = collect_leaves(self.tree)
        return self.leaves

    def save(self, tree: Node, destination: pathlib.Path) -> None:
        """Write ``tree`` to ``destination``, replacing it only once fully written."""

        text = serialize_document(tree)
        destination.parent.mkdir(parents=True, exist_ok=True)
        handle = tempfile.NamedTemporaryFile(
            mode="w",
            encoding="utf-8",
            dir=destination.parent,
            prefix=f".{destination.name}.",
            suffix=".tmp",
            delete=False,
        )
        temp_path = pathlib.Path(handle.name)
        try:
            with handle:
                handle.write(text)
            os.replace(temp_path, destination)
        except BaseException:
            temp_path.unlink(missing_ok=True)
            raise


def detect_handler(path: pathlib.Path) -> Tuple[str, JsonDocumentHandler]:
    """Select an appropriate handler for the provided file."""

    suffix = path.suffix.lower()
    if suffix == ".json":
        return "json", JsonDocumentHandler(path)
    raise UnsupportedFileTypeError(
        "This file type isn’t supported. Please use a .json file."
    )
