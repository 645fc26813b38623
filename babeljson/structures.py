"""Core data structures for the babeljson translator."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum, auto
from typing import Any, Dict, List, Tuple, Union


class NodeKind(Enum):
    """Tag of a document tree node."""

    OBJECT = auto()
    ARRAY = auto()
    STRING = auto()
    SCALAR = auto()


@dataclass(frozen=True)
class NumberLiteral:
    """A JSON number kept exactly as it was written in the source."""

    text: str

    def as_number(self) -> Union[int, float]:
        if any(marker in self.text for marker in ".eE"):
            return float(self.text)
        return int(self.text)


@dataclass
class Node:
    """A document tree node.

    ``value`` depends on ``kind``: an insertion ordered ``dict`` of child nodes
    for objects, a ``list`` of child nodes for arrays, a ``str`` for strings and
    a :class:`NumberLiteral` (or a plain number when built from Python
    values), bool or ``None`` for scalars.
    """

    kind: NodeKind
    value: Any

    @classmethod
    def object(cls, members: Dict[str, "Node"]) -> "Node":
        return cls(NodeKind.OBJECT, members)

    @classmethod
    def array(cls, items: List["Node"]) -> "Node":
        return cls(NodeKind.ARRAY, items)

    @classmethod
    def string(cls, text: str) -> "Node":
        return cls(NodeKind.STRING, text)

    @classmethod
    def scalar(cls, value: Any) -> "Node":
        return cls(NodeKind.SCALAR, value)


@dataclass(frozen=True)
class Key:
    """Object member segment of a path."""

    name: str


@dataclass(frozen=True)
class Index:
    """Array element segment of a path."""

    position: int


PathSegment = Union[Key, Index]
Path = Tuple[PathSegment, ...]


@dataclass
class StringLeaf:
    """A string value and the route from the root to it."""

    path: Path
    text: str


@dataclass
class TokenizedText:
    """A string with protected substrings swapped for tokens."""

    text: str
    token_map: Dict[str, str] = field(default_factory=dict)


@dataclass
class Batch:
    """A contiguous slice of the global list of tokenized strings."""

    batch_id: int
    start: int
    texts: List[str]

    def __len__(self) -> int:
        return len(self.texts)
