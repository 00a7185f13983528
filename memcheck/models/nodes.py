"""
The closed node model the analyzer walks.

The front end (libclang) hands us cursors of a few hundred kinds. The checker only
cares about a handful of them, so the converter folds every cursor into one of the
kinds below and the traversal engine dispatches on this closed set.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Iterator, List, Optional


class NodeKind(Enum):
    DECLARATION = "Declaration"   # VAR_DECL / PARM_DECL
    CALL = "Call"
    BINARY_OP = "BinaryOp"
    UNARY_OP = "UnaryOp"
    SUBSCRIPT = "Subscript"
    RETURN = "Return"
    VAR_REF = "VarRef"            # DECL_REF_EXPR naming a variable
    WRAPPER = "Wrapper"           # parens, implicit conversions
    CAST = "Cast"                 # explicit C-style casts
    OTHER = "Other"


@dataclass(frozen=True)
class SourceLocation:
    file: str
    line: int
    column: int

    def __str__(self) -> str:
        return f"{self.file}:{self.line}:{self.column}"


@dataclass
class Node:
    """
    One syntactic construct.

    spelling: callee name for direct calls, variable name for declarations and references.
    operator: operator token for unary and binary operators.
    var: arena handle for declarations and variable references.
    """
    kind: NodeKind
    children: List["Node"] = field(default_factory=list)
    location: Optional[SourceLocation] = None
    spelling: str = ""
    operator: str = ""
    var: Optional[int] = None
    has_init: bool = False

    @property
    def init(self) -> Optional["Node"]:
        if self.kind != NodeKind.DECLARATION or not self.has_init or not self.children:
            return None
        return self.children[-1]

    def walk(self) -> Iterator["Node"]:
        # preorder
        yield self
        for child in self.children:
            yield from child.walk()


@dataclass
class TranslationUnit:
    """
    A converted translation unit: the root node plus the arena that owns
    every variable handle appearing in it.
    """
    path: str
    root: Node
    arena: Any
