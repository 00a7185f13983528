from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional

from memcheck.models.nodes import SourceLocation

'''
In summarize.py, we define classes used for outputting the result of one analysis run.
AnalysisResult is what the analyzer returns for every translation unit.
'''

class SEVERITY(Enum):
    ERROR = "error"
    INFO = "info"

@dataclass
class Diagnostic:
    severity: SEVERITY
    message: str
    location: Optional[SourceLocation] = None
    variable: Optional[str] = None

    def format(self) -> str:
        if self.location is not None:
            return f"{self.location}: {self.severity.value}: {self.message}"
        return f"{self.severity.value}: {self.message}"

    def to_dict(self) -> dict:
        return {
            "severity": self.severity.value,
            "message": self.message,
            "file": self.location.file if self.location else None,
            "line": self.location.line if self.location else None,
            "column": self.location.column if self.location else None,
            "variable": self.variable,
        }

@dataclass
class AnalysisResult:
    path: str
    ok: bool
    diagnostics: List[Diagnostic] = field(default_factory=list)
    states: Dict[str, str] = field(default_factory=dict)  # "name@location" -> state name
    variables: List[Dict[str, str]] = field(default_factory=list)  # tracked variables with kind and domain

    @property
    def errors(self) -> List[Diagnostic]:
        return [d for d in self.diagnostics if d.severity == SEVERITY.ERROR]

    def to_dict(self) -> dict:
        return {
            "path": self.path,
            "ok": self.ok,
            "diagnostics": [d.to_dict() for d in self.diagnostics],
            "states": dict(self.states),
            "variables": [dict(v) for v in self.variables],
        }
