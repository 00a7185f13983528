# tests/test_frontend.py
"""
End-to-end checks through libclang: real C sources are parsed, converted into the
node model and analyzed. Skipped when the libclang shared library cannot be loaded.
"""

import os

import pytest

from memcheck.analysis.binding import resolve, strip_casts, strip_wrappers
from memcheck.errors import FrontendError
from memcheck.models import VARIABLE_DOMAIN, VARIABLE_KIND, AnalyzerConfig, NodeKind

from conftest import DATA_DIR, run_unit


@pytest.fixture
def parse_data(clang_index):
    from memcheck.parsing.parser import Parser

    def _parse(name: str, config: AnalyzerConfig = None):
        return Parser(config or AnalyzerConfig(), index=clang_index).parse(os.path.join(DATA_DIR, name))

    return _parse


def _lines(run):
    return [d.location.line for d in run.result.errors]


class TestDataFiles:

    def test_leak(self, parse_data):
        r = run_unit(parse_data("leak.c"))
        assert r.messages == ["potentially unfreed memory held by 'ptr'"]
        assert _lines(r) == [4]
        assert not r.okay

    def test_reallocate(self, parse_data):
        r = run_unit(parse_data("reallocate.c"))
        assert r.messages == ["cannot reallocate to same variable 'buf'"]
        assert _lines(r) == [15]

    def test_return_pointer(self, parse_data):
        r = run_unit(parse_data("ret_ptr.c"))
        assert r.messages == [
            "returning a pointer that still owns heap memory 'ptr'",
            "returning a dangling pointer to already-freed memory 'ptr'",
            "potentially unfreed memory held by 'ptr'",
        ]
        assert _lines(r) == [5, 11, 4]

    def test_clean(self, parse_data):
        r = run_unit(parse_data("clean.c"))
        assert r.messages == []
        assert r.out == "Memory okay!\n"

    def test_header_declarations_are_dropped(self, parse_data):
        unit = parse_data("leak.c")
        names = sorted(v.name for v in unit.arena.iter_variables())
        assert names == ["ptr", "ptr"]

    def test_include_headers(self, parse_data):
        unit = parse_data("leak.c", AnalyzerConfig(include_headers=True))
        names = {v.name for v in unit.arena.iter_variables()}
        assert {"size", "count"} <= names
        assert run_unit(unit).messages == ["potentially unfreed memory held by 'ptr'"]

    def test_repeated_runs(self, parse_data):
        unit = parse_data("ret_ptr.c")
        first, second = run_unit(unit), run_unit(unit)
        assert first.err == second.err
        assert first.result.states == second.result.states


class TestConversion:

    def test_declaration_with_allocation(self, parse_c):
        unit = parse_c("void f(void) { int *buf = malloc(8); free(buf); }\n")
        decls = [n for n in unit.root.walk() if n.kind == NodeKind.DECLARATION and n.spelling == "buf"]
        assert len(decls) == 1
        assert decls[0].has_init
        init = strip_wrappers(decls[0].init)
        assert init.kind == NodeKind.CALL
        assert init.spelling == "malloc"

    def test_operators(self, parse_c):
        unit = parse_c("void f(void) { int *buf = malloc(8); *buf = 1; buf[0] += 2; free(buf); }\n")
        binops = [n for n in unit.root.walk() if n.kind == NodeKind.BINARY_OP]
        assert [b.operator for b in binops] == ["=", "+="]
        lhs = strip_wrappers(binops[0].children[0])
        assert lhs.kind == NodeKind.UNARY_OP
        assert lhs.operator == "*"
        assert strip_wrappers(binops[1].children[0]).kind == NodeKind.SUBSCRIPT

    def test_explicit_cast_is_kept(self, parse_c):
        unit = parse_c("void f(void) { char *buf = (char *)malloc(8); free((void *)buf); }\n")
        call = next(n for n in unit.root.walk() if n.kind == NodeKind.CALL and n.spelling == "free")
        arg = strip_wrappers(call.children[0])
        assert arg.kind == NodeKind.CAST
        assert resolve(arg) is None
        assert resolve(strip_casts(arg)) is not None

    def test_variable_kinds_and_domains(self, parse_c):
        unit = parse_c(
            "int *g;\n"
            "void f(int *param) { int local[3]; struct s { int x; } rec; }\n"
        )
        by_name = {v.name: v for v in unit.arena.iter_variables()}
        assert (by_name["g"].kind, by_name["g"].domain) == (VARIABLE_KIND.POINTER, VARIABLE_DOMAIN.GLOBAL)
        assert (by_name["param"].kind, by_name["param"].domain) == (VARIABLE_KIND.POINTER, VARIABLE_DOMAIN.PARAM)
        assert (by_name["local"].kind, by_name["local"].domain) == (VARIABLE_KIND.ARRAY, VARIABLE_DOMAIN.LOCAL)
        assert by_name["rec"].kind == VARIABLE_KIND.RECORD
        assert by_name["g"].raw_type == "int *"

    def test_array_bound_is_not_an_initializer(self, parse_c):
        unit = parse_c("void f(void) { int local[3]; }\n")
        decl = next(n for n in unit.root.walk() if n.kind == NodeKind.DECLARATION and n.spelling == "local")
        assert not decl.has_init
        assert decl.children == []

    def test_references_share_the_declaration_handle(self, parse_c):
        unit = parse_c("void f(void) { int *buf = malloc(8); free(buf); }\n")
        decl = next(n for n in unit.root.walk() if n.kind == NodeKind.DECLARATION and n.spelling == "buf")
        refs = [n for n in unit.root.walk() if n.kind == NodeKind.VAR_REF and n.spelling == "buf"]
        assert refs and all(r.var == decl.var for r in refs)

    def test_parse_failure(self, parse_c):
        with pytest.raises(FrontendError) as info:
            parse_c("int main( {\n")
        assert info.value.messages


class TestAnalysis:

    def test_nested_allocation_is_not_assigned(self, parse_c):
        r = run_unit(parse_c("void use(int *q);\nvoid f(void) { use(malloc(4)); }\n"))
        assert r.messages == ["allocated memory is not assigned to a variable"]

    def test_calls_through_function_pointers_are_ignored(self, parse_c):
        r = run_unit(parse_c(
            "void f(void) {\n"
            "  void *(*alloc_fn)(size_t) = malloc;\n"
            "  int *buf = alloc_fn(4);\n"
            "}\n"
        ))
        assert r.messages == []
        assert r.result.states == {}
        assert r.okay

    def test_global_pointer(self, parse_c):
        r = run_unit(parse_c("int *g;\nvoid f(void) { g = malloc(8); g[1] = 3; free(g); }\n"))
        assert r.okay

    def test_use_after_free_write(self, parse_c):
        r = run_unit(parse_c("void f(void) {\n  int *buf = malloc(8);\n  free(buf);\n  *buf = 1;\n}\n"))
        assert r.messages == ["dereference of freed memory 'buf'"]

    def test_cast_allocation_is_bound(self, parse_c):
        r = run_unit(parse_c("void f(void) { char *buf = (char *)malloc(8); free(buf); }\n"))
        assert r.okay

    def test_cast_argument_to_free(self, parse_c):
        r = run_unit(parse_c("void f(void) { char *buf = (char *)malloc(8); free((void *)buf); }\n"))
        assert r.messages == [
            "free was not called with a variable",
            "potentially unfreed memory held by 'buf'",
        ]
        assert not r.okay

    def test_index_into_local_array(self, parse_c):
        r = run_unit(parse_c("void f(void) { int a[4]; a[0] = 1; }\n"))
        assert r.messages == ["index of variable with no tracked allocation 'a'"]
        assert not r.okay

    def test_declaration_copy_of_owner(self, parse_c):
        r = run_unit(parse_c("void f(void) { int *p = malloc(8); int *q = p; free(p); }\n"))
        assert r.messages == []
        assert r.okay

    def test_aliasing(self, parse_c):
        r = run_unit(parse_c(
            "void f(void) {\n"
            "  int *a = malloc(8);\n"
            "  int *b;\n"
            "  b = a;\n"
            "  free(a);\n"
            "}\n"
        ))
        assert r.messages == ["aliasing a pointer that still owns heap memory 'a'"]
        assert _lines(r) == [10]
