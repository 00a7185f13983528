import io
import os

import pytest

from memcheck.analysis.traversal import MemoryAnalyzer
from memcheck.memory_managing.memory import VariableArena
from memcheck.models import (
    VARIABLE_DOMAIN,
    VARIABLE_KIND,
    AnalyzerConfig,
    Node,
    NodeKind,
    SourceLocation,
    TranslationUnit,
)
from memcheck.utils.report import Reporter

DATA_DIR = os.path.join(os.path.dirname(os.path.abspath(__file__)), "data")

PRELUDE = """\
typedef __SIZE_TYPE__ size_t;
void *malloc(size_t size);
void *calloc(size_t count, size_t size);
void *realloc(void *ptr, size_t size);
void free(void *ptr);
#define NULL ((void *)0)
"""


class TreeBuilder:
    """
    Builds node-model trees by hand, the way the converter would produce them
    from libclang, so the analyzer can be tested without the native library.
    """

    def __init__(self, path: str = "test.c"):
        self.path = path
        self.arena = VariableArena()
        self._line = 0

    def _loc(self) -> SourceLocation:
        self._line += 1
        return SourceLocation(self.path, self._line, 3)

    def var(self, name: str, raw_type: str = "int *", kind: VARIABLE_KIND = VARIABLE_KIND.POINTER) -> int:
        key = (name, len(self.arena) + 1)
        return self.arena.register(key, name, raw_type, kind, VARIABLE_DOMAIN.LOCAL, self._loc())

    def decl(self, handle: int, init: Node = None) -> Node:
        children = [init] if init is not None else []
        return Node(
            NodeKind.DECLARATION,
            children=children,
            location=self._loc(),
            spelling=self.arena.name_of(handle),
            var=handle,
            has_init=init is not None,
        )

    def ref(self, handle: int) -> Node:
        # rvalue uses come wrapped in an implicit conversion
        inner = Node(NodeKind.VAR_REF, location=self._loc(), spelling=self.arena.name_of(handle), var=handle)
        return self.cast(inner)

    def lvalue(self, handle: int) -> Node:
        return Node(NodeKind.VAR_REF, location=self._loc(), spelling=self.arena.name_of(handle), var=handle)

    def lit(self, value: str = "10") -> Node:
        return Node(NodeKind.OTHER, location=self._loc(), spelling=value)

    def cast(self, node: Node) -> Node:
        return Node(NodeKind.WRAPPER, children=[node], location=node.location)

    def explicit_cast(self, node: Node) -> Node:
        return Node(NodeKind.CAST, children=[node], location=node.location)

    def call(self, name: str, *args: Node) -> Node:
        return Node(NodeKind.CALL, children=list(args), location=self._loc(), spelling=name)

    def indirect_call(self, *args: Node) -> Node:
        return Node(NodeKind.CALL, children=list(args), location=self._loc(), spelling="")

    def malloc(self) -> Node:
        return self.cast(self.call("malloc", self.lit()))

    def calloc(self) -> Node:
        return self.cast(self.call("calloc", self.lit("1"), self.lit()))

    def realloc(self, arg: Node) -> Node:
        return self.cast(self.call("realloc", arg, self.lit("20")))

    def free(self, arg: Node) -> Node:
        return self.call("free", arg)

    def assign(self, lhs: Node, rhs: Node, operator: str = "=") -> Node:
        return Node(NodeKind.BINARY_OP, children=[lhs, rhs], location=self._loc(), operator=operator)

    def deref(self, handle: int) -> Node:
        return Node(NodeKind.UNARY_OP, children=[self.ref(handle)], location=self._loc(), operator="*")

    def index(self, handle: int) -> Node:
        return Node(NodeKind.SUBSCRIPT, children=[self.ref(handle), self.lit("0")], location=self._loc())

    def ret(self, node: Node = None) -> Node:
        return Node(NodeKind.RETURN, children=[node] if node is not None else [], location=self._loc())

    def func(self, name: str, *stmts: Node) -> Node:
        body = Node(NodeKind.OTHER, children=list(stmts), location=self._loc())
        return Node(NodeKind.OTHER, children=[body], location=self._loc(), spelling=name)

    def unit(self, *funcs: Node) -> TranslationUnit:
        return TranslationUnit(self.path, Node(NodeKind.OTHER, children=list(funcs)), self.arena)


class Run:
    def __init__(self, result, out: str, err: str):
        self.result = result
        self.out = out
        self.err = err

    @property
    def messages(self):
        return [d.message for d in self.result.errors]

    @property
    def okay(self) -> bool:
        return "Memory okay!" in self.out


def run_unit(unit: TranslationUnit, config: AnalyzerConfig = None, analyzer: MemoryAnalyzer = None) -> Run:
    out, err = io.StringIO(), io.StringIO()
    if analyzer is None:
        analyzer = MemoryAnalyzer(config or AnalyzerConfig(), Reporter(out=out, err=err))
    else:
        analyzer.reporter = Reporter(out=out, err=err)
    result = analyzer.run(unit)
    return Run(result, out.getvalue(), err.getvalue())


@pytest.fixture
def tree():
    return TreeBuilder()


@pytest.fixture(scope="session")
def clang_index():
    cindex = pytest.importorskip("clang.cindex")
    try:
        return cindex.Index.create()
    except cindex.LibclangError as exc:
        pytest.skip(f"libclang shared library unavailable: {exc}")


@pytest.fixture
def parse_c(clang_index, tmp_path):
    """
    Write C code (prefixed with allocator prototypes) to a temp file and
    parse it into a TranslationUnit.
    """
    from memcheck.parsing.parser import Parser

    def _parse(code: str, name: str = "input.c", config: AnalyzerConfig = None):
        path = tmp_path / name
        path.write_text(PRELUDE + code, encoding="utf-8")
        return Parser(config or AnalyzerConfig(), index=clang_index).parse(str(path))

    return _parse


@pytest.fixture
def run():
    return run_unit
