import os
from typing import Hashable, List, Optional

from clang.cindex import CursorKind, TypeKind

from memcheck.memory_managing.memory import VariableArena
from memcheck.models import VARIABLE_DOMAIN, VARIABLE_KIND, Node, NodeKind, SourceLocation


class NodeConverter:
	"""
	Folds a libclang cursor tree into the analyzer's node model.

	Every variable declaration met on the way (directly, or through a reference) is
	interned in the arena, so the resulting tree only carries integer handles.
	"""

	UNWRAP_KINDS = (
		CursorKind.UNEXPOSED_EXPR,
		CursorKind.PAREN_EXPR,
	)

	VAR_KINDS = (
		CursorKind.VAR_DECL,
		CursorKind.PARM_DECL,
	)

	ARRAY_KINDS = (
		TypeKind.CONSTANTARRAY,
		TypeKind.INCOMPLETEARRAY,
		TypeKind.VARIABLEARRAY,
		TypeKind.DEPENDENTSIZEDARRAY,
	)

	def __init__(self, arena: VariableArena, main_file: Optional[str] = None, include_headers: bool = False):
		self.arena = arena
		self.main_file = os.path.abspath(main_file) if main_file else None
		self.include_headers = include_headers

	def convert_unit(self, tu_cursor) -> Node:
		"""
		Convert the translation unit cursor. Top-level declarations from other files
		(headers) are dropped unless include_headers is set.
		"""
		children = [
			self.convert(child)
			for child in tu_cursor.get_children()
			if self.include_headers or self._in_main_file(child)
		]
		return Node(NodeKind.OTHER, children=children, spelling=tu_cursor.spelling or "")

	def convert(self, cursor) -> Node:
		kind = cursor.kind
		location = self._location(cursor)

		if kind in self.VAR_KINDS:
			return self._convert_declaration(cursor, location)

		if kind == CursorKind.DECL_REF_EXPR:
			ref = cursor.referenced
			if ref is not None and ref.kind in self.VAR_KINDS:
				return Node(NodeKind.VAR_REF, location=location, spelling=cursor.spelling, var=self._intern(ref))
			return Node(NodeKind.OTHER, location=location, spelling=cursor.spelling or "")

		if kind == CursorKind.CALL_EXPR:
			args = [self.convert(arg) for arg in cursor.get_arguments()]
			return Node(NodeKind.CALL, children=args, location=location, spelling=self._direct_callee(cursor))

		if kind in (CursorKind.BINARY_OPERATOR, CursorKind.COMPOUND_ASSIGNMENT_OPERATOR):
			children = list(cursor.get_children())
			if len(children) == 2:
				lhs, rhs = children
				return Node(
					NodeKind.BINARY_OP,
					children=[self.convert(lhs), self.convert(rhs)],
					location=location,
					operator=self._binary_operator(cursor, lhs),
				)

		if kind == CursorKind.UNARY_OPERATOR:
			operand = next(cursor.get_children(), None)
			if operand is not None:
				return Node(
					NodeKind.UNARY_OP,
					children=[self.convert(operand)],
					location=location,
					operator=self._unary_operator(cursor, operand),
				)

		if kind == CursorKind.ARRAY_SUBSCRIPT_EXPR:
			return Node(NodeKind.SUBSCRIPT, children=self._convert_children(cursor), location=location)

		if kind == CursorKind.RETURN_STMT:
			return Node(NodeKind.RETURN, children=self._convert_children(cursor), location=location)

		if kind in self.UNWRAP_KINDS or kind == CursorKind.CSTYLE_CAST_EXPR:
			# casts may carry a TYPE_REF child next to the operand
			exprs = [c for c in cursor.get_children() if c.kind.is_expression()]
			if len(exprs) == 1:
				node_kind = NodeKind.CAST if kind == CursorKind.CSTYLE_CAST_EXPR else NodeKind.WRAPPER
				return Node(node_kind, children=[self.convert(exprs[0])], location=location)

		return Node(
			NodeKind.OTHER,
			children=self._convert_children(cursor),
			location=location,
			spelling=cursor.spelling or "",
		)

	def _convert_children(self, cursor) -> List[Node]:
		return [self.convert(child) for child in cursor.get_children()]

	def _convert_declaration(self, cursor, location: Optional[SourceLocation]) -> Node:
		handle = self._intern(cursor)
		exprs = [c for c in cursor.get_children() if c.kind.is_expression()]

		# The initializer is the last expression child; array bounds come before it.
		has_init = (
			cursor.kind == CursorKind.VAR_DECL
			and bool(exprs)
			and any(t.spelling == "=" for t in cursor.get_tokens())
		)
		children = [self.convert(exprs[-1])] if has_init else []
		return Node(
			NodeKind.DECLARATION,
			children=children,
			location=location,
			spelling=cursor.spelling,
			var=handle,
			has_init=has_init,
		)

	def _intern(self, decl) -> int:
		canonical = decl.canonical
		return self.arena.register(
			self._declaration_key(canonical),
			canonical.spelling,
			canonical.type.spelling,
			kind=self._variable_kind(canonical),
			domain=self._variable_domain(canonical),
			location=self._location(canonical),
		)

	def _declaration_key(self, decl) -> Hashable:
		loc = decl.location
		file_name = os.path.abspath(loc.file.name) if loc.file else ""
		return (file_name, loc.offset, decl.spelling)

	def _variable_kind(self, decl) -> VARIABLE_KIND:
		# Use canonical type to determine the underlying structure (e.g. resolve typedefs)
		canonical_type = decl.type.get_canonical()
		if canonical_type.kind == TypeKind.POINTER:
			return VARIABLE_KIND.POINTER
		if canonical_type.kind == TypeKind.RECORD:
			return VARIABLE_KIND.RECORD
		if canonical_type.kind in self.ARRAY_KINDS:
			return VARIABLE_KIND.ARRAY
		return VARIABLE_KIND.BUILTIN

	def _variable_domain(self, decl) -> VARIABLE_DOMAIN:
		if decl.kind == CursorKind.PARM_DECL:
			return VARIABLE_DOMAIN.PARAM
		parent = decl.semantic_parent
		if parent is None or parent.kind in (CursorKind.TRANSLATION_UNIT, CursorKind.UNEXPOSED_DECL):
			return VARIABLE_DOMAIN.GLOBAL
		return VARIABLE_DOMAIN.LOCAL

	def _direct_callee(self, cursor) -> str:
		# Calls through function pointers are never tracked.
		ref = cursor.referenced
		if ref is not None and ref.kind == CursorKind.FUNCTION_DECL:
			return ref.spelling or ""
		return ""

	def _binary_operator(self, cursor, lhs) -> str:
		# The operator is the first token after the left operand.
		tokens = [t.spelling for t in cursor.get_tokens()]
		lhs_count = len(list(lhs.get_tokens()))
		if lhs_count < len(tokens):
			return tokens[lhs_count]
		return ""

	def _unary_operator(self, cursor, operand) -> str:
		tokens = list(cursor.get_tokens())
		if not tokens:
			return ""
		operand_tokens = list(operand.get_tokens())
		if not operand_tokens or tokens[0].extent.start.offset != operand_tokens[0].extent.start.offset:
			return tokens[0].spelling  # prefix
		return tokens[-1].spelling

	def _location(self, cursor) -> Optional[SourceLocation]:
		start = cursor.extent.start
		if start is None or not start.file:
			return None
		return SourceLocation(start.file.name, start.line, start.column)

	def _in_main_file(self, cursor) -> bool:
		location = cursor.location
		if not location.file:
			return False
		if self.main_file is None:
			return True
		return os.path.abspath(location.file.name) == self.main_file
