"""
This module owns the two pieces of per-unit state: the variable arena that hands out
stable handles for declarations, and the pointer state store keyed by those handles.
"""

from enum import Enum
from typing import Dict, Hashable, Iterable, List, Optional, Tuple

from memcheck.errors import DoubleFreeError, MemoryStateError, OwnedOverwriteError, UnknownStateError
from memcheck.models import VARIABLE_DOMAIN, VARIABLE_KIND, SourceLocation, VariableInfo
from memcheck.utils.debug import Debug


class VariableArena:
	"""
	Interns declarations into integer handles.

	Handles start from 1 and are never reused; index 0 is unused so that a handle
	is always truthy.
	"""

	def __init__(self) -> None:
		self._next_handle: int = 1
		self._vars: List[Optional[VariableInfo]] = [None]  # index 0 unused
		self._map: Dict[Hashable, int] = dict()  # declaration key -> handle

	def register(
		self,
		key: Hashable,
		name: str,
		raw_type: str,
		kind: VARIABLE_KIND = VARIABLE_KIND.POINTER,
		domain: VARIABLE_DOMAIN = VARIABLE_DOMAIN.LOCAL,
		location: Optional[SourceLocation] = None,
	) -> int:
		"""
		Return the handle of the declaration identified by `key`, allocating one on
		first sight. Later registrations of the same key keep the first record.
		"""
		handle = self._map.get(key)
		if handle is not None:
			return handle

		handle = self._next_handle
		self._vars.append(VariableInfo(handle, name, raw_type, kind, domain, location))
		self._map[key] = handle
		self._next_handle += 1
		return handle

	def get(self, handle: int) -> VariableInfo:
		if handle <= 0 or handle >= len(self._vars):
			raise IndexError(f"Invalid variable handle: {handle}, max handle is {len(self._vars)-1}")
		return self._vars[handle]

	def name_of(self, handle: int) -> str:
		return self.get(handle).name

	def iter_variables(self) -> Iterable[VariableInfo]:
		for var in self._vars:
			if var is not None:
				yield var

	def __len__(self) -> int:
		return len(self._vars) - 1


class PointerState(Enum):
	UNKNOWN = "Unknown"
	FREE = "Free"
	OWNED = "Owned"


class PointerStateStore:
	"""
	Mapping from variable handle to pointer state for one traversal.

	A handle absent from the store is implicitly UNKNOWN. Rejected transitions raise
	a MemoryStateError and leave the store unchanged.
	"""

	def __init__(self, arena: VariableArena) -> None:
		self._arena = arena
		self._states: Dict[int, PointerState] = dict()

	def reset(self, arena: Optional[VariableArena] = None) -> None:
		if arena is not None:
			self._arena = arena
		self._states.clear()

	def lookup(self, handle: int) -> Optional[PointerState]:
		"""
		Return the stored state, or None when the variable was never tracked.
		"""
		return self._states.get(handle, None)

	def state_of(self, handle: int) -> PointerState:
		return self._states.get(handle, PointerState.UNKNOWN)

	def is_tracked(self, handle: int) -> bool:
		return handle in self._states

	def items(self) -> List[Tuple[int, PointerState]]:
		# declaration order
		return sorted(self._states.items())

	def _name(self, handle: int) -> str:
		return self._arena.name_of(handle)

	def _set(self, handle: int, state: PointerState) -> None:
		old = self._states.get(handle)
		self._states[handle] = state
		Debug.log_transition(self._name(handle), old.value if old else '-', state.value)

	# what: malloc / calloc bound to `target`
	def allocate(self, target: int) -> None:
		self._set(target, PointerState.OWNED)

	# what: `target = realloc(source, ...)`; `source` keeps its state
	def reallocate(self, target: int, source: int) -> None:
		name = self._name(target)
		if target == source:
			raise MemoryStateError("cannot reallocate to same variable", name)

		state = self.state_of(target)
		if state == PointerState.OWNED:
			raise OwnedOverwriteError(
				"cannot reallocate into a variable already owning heap memory", name)
		self._set(target, PointerState.OWNED)

	# what: free(handle)
	def release(self, handle: int) -> None:
		name = self._name(handle)
		state = self.state_of(handle)
		if state == PointerState.FREE:
			raise DoubleFreeError("double free of memory", name)
		if state == PointerState.UNKNOWN:
			raise UnknownStateError("free of pointer in unknown state", name)
		self._set(handle, PointerState.FREE)

	def _key(self, var: VariableInfo) -> str:
		return f"{var.name}@{var.location}" if var.location else f"{var.name}#{var.handle}"

	def snapshot(self) -> Dict[str, str]:
		"""
		Final states keyed by `name@location` so that same-named variables stay distinct.
		"""
		result: Dict[str, str] = {}
		for handle, state in self.items():
			result[self._key(self._arena.get(handle))] = state.value
		return result

	def describe(self) -> List[Dict[str, str]]:
		# one record per tracked variable, for --states and the json output
		records = []
		for handle, state in self.items():
			var = self._arena.get(handle)
			records.append({
				"key": self._key(var),
				"name": var.name,
				"type": var.raw_type,
				"kind": var.kind.value,
				"domain": var.domain.value,
				"state": state.value,
			})
		return records
