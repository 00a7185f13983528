from enum import Enum
from typing import Optional

from memcheck.models.nodes import SourceLocation

class VARIABLE_DOMAIN(Enum):
    GLOBAL = "Global"
    PARAM = "Param"
    LOCAL = "Local"

class VARIABLE_KIND(Enum):
    POINTER = "Pointer"
    RECORD = "Record"
    ARRAY = "Array"
    BUILTIN = "Builtin"

class VariableInfo:

    def __init__(
        self,
        handle: int,
        name: str,
        raw_type: str,
        kind: VARIABLE_KIND,
        domain: VARIABLE_DOMAIN,
        location: Optional[SourceLocation] = None,
    ):
        self.handle = handle     # Arena index, the only key used by the state store
        self.name = name
        self.raw_type = raw_type # The type spelling given by clang, used for the aliasing check
        self.kind = kind         # Type kind, such as `Pointer`, `Record`, `Array`, `Builtin` etc.
        self.domain = domain
        self.location = location

    def same_type_as(self, other: "VariableInfo") -> bool:
        return self.raw_type == other.raw_type

    def __repr__(self) -> str:
        return (
            f"VariableInfo(handle={self.handle}, name='{self.name}', "
            f"type='{self.raw_type}', kind={self.kind.name}, domain={self.domain.name})"
        )
