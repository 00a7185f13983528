from .variables import VARIABLE_DOMAIN, VARIABLE_KIND, VariableInfo
from .nodes import NodeKind, Node, SourceLocation, TranslationUnit
from .configs import AnalyzerConfig
from .summarize import Diagnostic, SEVERITY, AnalysisResult

__all__ = [
    "VARIABLE_DOMAIN",
    "VARIABLE_KIND",
    "VariableInfo",
    "NodeKind",
    "Node",
    "SourceLocation",
    "TranslationUnit",
    "AnalyzerConfig",
    "Diagnostic",
    "SEVERITY",
    "AnalysisResult",
]
