from typing import Optional, Tuple

from memcheck.analysis.leaks import LeakChecker
from memcheck.analysis.validators import Signal, Validators
from memcheck.memory_managing.memory import PointerStateStore, VariableArena
from memcheck.models import AnalysisResult, AnalyzerConfig, Node, NodeKind, TranslationUnit
from memcheck.utils.debug import Debug
from memcheck.utils.report import Reporter


class MemoryAnalyzer:
    """
    Walks one translation unit in source order and applies the lifecycle rules.

    The store is emptied at the start of every run, so running twice on the same
    unit gives the same diagnostics. Variables of all functions share one flat
    keyspace; they are keyed by declaration, not by name.
    """

    _DISPATCH = {
        NodeKind.DECLARATION: "_visit_declaration",
        NodeKind.CALL: "_visit_call",
        NodeKind.BINARY_OP: "_visit_binary_op",
        NodeKind.UNARY_OP: "_visit_passive",
        NodeKind.SUBSCRIPT: "_visit_passive",
        NodeKind.RETURN: "_visit_return",
        NodeKind.VAR_REF: "_visit_passive",
        NodeKind.WRAPPER: "_visit_wrapper",
        NodeKind.CAST: "_visit_wrapper",
        NodeKind.OTHER: "_visit_passive",
    }

    def __init__(self, config: Optional[AnalyzerConfig] = None, reporter: Optional[Reporter] = None):
        self.config = config or AnalyzerConfig()
        self.reporter = reporter or Reporter()
        self.store = PointerStateStore(VariableArena())
        self.validators: Optional[Validators] = None

    def run(self, unit: TranslationUnit) -> AnalysisResult:
        self.reporter.begin()
        self.store.reset(unit.arena)
        self.validators = Validators(self.store, unit.arena, self.reporter)
        if self.config.verbose:
            self.reporter.info(f"analyzing {unit.path}")

        self._walk(unit.root, None)
        walk_ok = self.reporter.error_count == 0

        checker = LeakChecker(self.store, unit.arena, self.reporter, report_all=self.config.report_all_leaks)
        leaks_ok = checker.check()

        if self.config.verbose:
            self.reporter.info(f"{len(self.store.items())} of {len(unit.arena)} variables tracked")

        ok = walk_ok and leaks_ok
        self.reporter.verdict(ok)
        return AnalysisResult(
            path=unit.path,
            ok=ok,
            diagnostics=list(self.reporter.diagnostics),
            states=self.store.snapshot(),
            variables=self.store.describe(),
        )

    def _walk(self, node: Node, target: Optional[int]) -> None:
        visit = getattr(self, self._DISPATCH[node.kind])
        signal, inner_target = visit(node, target)
        if signal == Signal.SKIP_SUBTREE:
            Debug.log(f"skipping subtree at {node.location}")
            return

        for i, child in enumerate(node.children):
            self._walk(child, inner_target if self._carries_target(node, i) else None)

    def _carries_target(self, node: Node, index: int) -> bool:
        # The target only flows into the value position, through wrappers and casts.
        if node.kind in (NodeKind.DECLARATION, NodeKind.WRAPPER, NodeKind.CAST):
            return True
        if node.kind == NodeKind.BINARY_OP:
            return index == 1
        return False

    def _visit_declaration(self, node: Node, target: Optional[int]) -> Tuple[Signal, Optional[int]]:
        # no checks here, the declared variable only becomes the target of its initializer
        return Signal.CONTINUE, (node.var if node.has_init else None)

    def _visit_call(self, node: Node, target: Optional[int]) -> Tuple[Signal, Optional[int]]:
        return self.validators.handle_call(node, target), None

    def _visit_binary_op(self, node: Node, target: Optional[int]) -> Tuple[Signal, Optional[int]]:
        if node.operator != "=" or len(node.children) != 2:
            return Signal.CONTINUE, None
        return self.validators.check_assignment(node)

    def _visit_return(self, node: Node, target: Optional[int]) -> Tuple[Signal, Optional[int]]:
        return self.validators.check_return(node), None

    def _visit_wrapper(self, node: Node, target: Optional[int]) -> Tuple[Signal, Optional[int]]:
        return Signal.CONTINUE, target

    def _visit_passive(self, node: Node, target: Optional[int]) -> Tuple[Signal, Optional[int]]:
        return Signal.CONTINUE, None


_missing = set(NodeKind) - set(MemoryAnalyzer._DISPATCH)
if _missing:
    raise RuntimeError(f"MemoryAnalyzer has no visitor for {sorted(k.name for k in _missing)}")
