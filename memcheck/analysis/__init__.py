from .binding import resolve, strip_casts, strip_wrappers
from .validators import Signal, Validators
from .leaks import LeakChecker
from .traversal import MemoryAnalyzer

__all__ = [
    "resolve",
    "strip_casts",
    "strip_wrappers",
    "Signal",
    "Validators",
    "LeakChecker",
    "MemoryAnalyzer",
]
