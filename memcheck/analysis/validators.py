"""
State-machine checks applied at allocator calls, assignments, write-through-pointer
sites and returns.

Every check reports its own diagnostics and answers with a Signal telling the
traversal engine whether to descend into the node's subtree. Emitting a diagnostic
and skipping the subtree are independent: a return of an owned pointer is reported
but its subtree is still walked.
"""

from enum import Enum
from typing import Optional, Tuple

from memcheck.analysis.binding import is_call_to, resolve, strip_wrappers
from memcheck.errors import MemoryStateError
from memcheck.memory_managing.memory import PointerState, PointerStateStore, VariableArena
from memcheck.models import Node, NodeKind
from memcheck.utils.report import Reporter

ALLOCATORS = ("malloc", "calloc")
REALLOCATORS = ("realloc",)
DEALLOCATORS = ("free",)


class Signal(Enum):
    CONTINUE = "Continue"
    SKIP_SUBTREE = "SkipSubtree"


class Validators:

    def __init__(self, store: PointerStateStore, arena: VariableArena, reporter: Reporter):
        self.store = store
        self.arena = arena
        self.reporter = reporter

    def _report(self, node: Node, message: str, handle: Optional[int] = None) -> None:
        name = self.arena.name_of(handle) if handle is not None else None
        if name:
            message = f"{message} '{name}'"
        self.reporter.error(node.location, message, name)

    def _reject(self, node: Node, exc: MemoryStateError) -> Signal:
        message = f"{exc.message} '{exc.variable}'" if exc.variable else exc.message
        self.reporter.error(node.location, message, exc.variable)
        return Signal.SKIP_SUBTREE

    # ------------------------------------------------------------------
    # calls
    # ------------------------------------------------------------------

    def handle_call(self, node: Node, target: Optional[int]) -> Signal:
        """
        Apply allocator semantics to a direct call. `target` is the variable whose
        initializer or assignment this call is the value of, if any.
        """
        name = node.spelling
        if not name:
            return Signal.CONTINUE

        if name in ALLOCATORS:
            if target is None:
                self._report(node, "allocated memory is not assigned to a variable")
                return Signal.SKIP_SUBTREE
            self.store.allocate(target)
            return Signal.CONTINUE

        if name in REALLOCATORS:
            return self._handle_realloc(node, target)

        if name in DEALLOCATORS:
            return self._handle_free(node)

        return Signal.CONTINUE

    def _handle_realloc(self, node: Node, target: Optional[int]) -> Signal:
        if target is None:
            self._report(node, "reallocated memory is not assigned to a variable")
            return Signal.SKIP_SUBTREE

        source = resolve(node.children[0]) if node.children else None
        if source is None:
            self._report(node, "realloc was not called with a variable")
            return Signal.SKIP_SUBTREE

        try:
            self.store.reallocate(target, source)
        except MemoryStateError as exc:
            return self._reject(node, exc)
        return Signal.CONTINUE

    def _handle_free(self, node: Node) -> Signal:
        handle = resolve(node.children[0]) if node.children else None
        if handle is None:
            self._report(node, "free was not called with a variable")
            return Signal.SKIP_SUBTREE

        try:
            self.store.release(handle)
        except MemoryStateError as exc:
            return self._reject(node, exc)
        return Signal.CONTINUE

    # ------------------------------------------------------------------
    # assignments
    # ------------------------------------------------------------------

    def check_assignment(self, node: Node) -> Tuple[Signal, Optional[int]]:
        """
        Check `lhs = rhs`. Returns the signal and the variable the right-hand side
        is assigned to, which becomes the target of an allocation found there.
        """
        lhs, rhs = node.children[0], node.children[1]
        base = strip_wrappers(lhs)

        if base.kind == NodeKind.UNARY_OP and base.operator == "*":
            return self.check_deref(base), None
        if base.kind == NodeKind.SUBSCRIPT:
            return self.check_index(base), None

        lhs_var = resolve(lhs)
        if lhs_var is None:
            return Signal.CONTINUE, None

        if self._check_alias(node, lhs_var, rhs) == Signal.SKIP_SUBTREE:
            return Signal.SKIP_SUBTREE, None

        # realloc applies its own rules to the target
        if is_call_to(rhs, REALLOCATORS):
            return Signal.CONTINUE, lhs_var

        signal = self._check_overwrite(node, lhs_var)
        return signal, (lhs_var if signal == Signal.CONTINUE else None)

    def _check_alias(self, node: Node, lhs_var: int, rhs: Node) -> Signal:
        rhs_var = resolve(rhs)
        if rhs_var is None:
            return Signal.CONTINUE
        if not self.arena.get(lhs_var).same_type_as(self.arena.get(rhs_var)):
            return Signal.CONTINUE

        if self.store.lookup(rhs_var) == PointerState.OWNED:
            self._report(node, "aliasing a pointer that still owns heap memory", rhs_var)
            return Signal.SKIP_SUBTREE
        return Signal.CONTINUE

    def _check_overwrite(self, node: Node, lhs_var: int) -> Signal:
        state = self.store.lookup(lhs_var)
        if state is None or state == PointerState.FREE:
            return Signal.CONTINUE

        if state == PointerState.OWNED:
            self._report(node, "overwriting a variable without freeing its memory first", lhs_var)
        else:
            self._report(node, "state unknown before overwrite of", lhs_var)
        return Signal.SKIP_SUBTREE

    # ------------------------------------------------------------------
    # writes through pointers
    # ------------------------------------------------------------------

    def check_deref(self, node: Node) -> Signal:
        handle = resolve(node.children[0]) if node.children else None
        return self._check_write_through(node, handle, "dereference")

    def check_index(self, node: Node) -> Signal:
        handle = resolve(node.children[0]) if node.children else None
        return self._check_write_through(node, handle, "index")

    def _check_write_through(self, node: Node, handle: Optional[int], action: str) -> Signal:
        if handle is None:
            return Signal.CONTINUE

        state = self.store.lookup(handle)
        if state is None:
            self._report(node, f"{action} of variable with no tracked allocation", handle)
            return Signal.SKIP_SUBTREE

        if state == PointerState.FREE:
            self._report(node, f"{action} of freed memory", handle)
            return Signal.SKIP_SUBTREE
        if state == PointerState.UNKNOWN:
            self._report(node, f"state unknown at {action} of", handle)
            return Signal.SKIP_SUBTREE
        return Signal.CONTINUE

    # ------------------------------------------------------------------
    # returns
    # ------------------------------------------------------------------

    def check_return(self, node: Node) -> Signal:
        handle = resolve(node.children[0]) if node.children else None
        if handle is None:
            return Signal.CONTINUE

        state = self.store.lookup(handle)
        if state is None:
            return Signal.CONTINUE

        if state == PointerState.OWNED:
            self._report(node, "returning a pointer that still owns heap memory", handle)
            return Signal.CONTINUE
        if state == PointerState.FREE:
            self._report(node, "returning a dangling pointer to already-freed memory", handle)
            return Signal.CONTINUE
        # only the unknown case stops descent
        self._report(node, "state unknown at return of", handle)
        return Signal.SKIP_SUBTREE
