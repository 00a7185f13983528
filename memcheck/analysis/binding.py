from typing import Optional

from memcheck.models import Node, NodeKind


def strip_wrappers(node: Node) -> Node:
    """Peel parentheses and implicit conversions. Explicit casts are kept."""
    while node.kind == NodeKind.WRAPPER and node.children:
        node = node.children[0]
    return node


def strip_casts(node: Node) -> Node:
    """Like strip_wrappers, but also looks through explicit casts."""
    while node.kind in (NodeKind.WRAPPER, NodeKind.CAST) and node.children:
        node = node.children[0]
    return node


def resolve(node: Optional[Node]) -> Optional[int]:
    """
    Return the handle of the single variable `node` denotes, or None when it is any
    other shape (cast, member access, arithmetic, call result, literal). None means
    untracked.
    """
    if node is None:
        return None
    node = strip_wrappers(node)
    if node.kind == NodeKind.VAR_REF:
        return node.var
    return None


def is_call_to(node: Optional[Node], names) -> bool:
    # `(int *)realloc(p, n)` is still a realloc
    if node is None:
        return False
    node = strip_casts(node)
    return node.kind == NodeKind.CALL and node.spelling in names
