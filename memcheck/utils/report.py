import sys
from typing import List, Optional, TextIO

from memcheck.models import SEVERITY, Diagnostic, SourceLocation

OKAY_LINE = "Memory okay!"


class Reporter:
    """
    Collects diagnostics for one run and prints them in compiler style.

    Errors go to `err` (stderr by default), info lines and the verdict to `out`.
    """

    def __init__(self, out: Optional[TextIO] = None, err: Optional[TextIO] = None, quiet: bool = False):
        self._out = out
        self._err = err
        self.quiet = quiet
        self.diagnostics: List[Diagnostic] = []

    @property
    def out(self) -> TextIO:
        return self._out if self._out is not None else sys.stdout

    @property
    def err(self) -> TextIO:
        return self._err if self._err is not None else sys.stderr

    @property
    def error_count(self) -> int:
        return sum(1 for d in self.diagnostics if d.severity == SEVERITY.ERROR)

    def begin(self) -> None:
        self.diagnostics = []

    def error(self, location: Optional[SourceLocation], message: str, variable: Optional[str] = None) -> Diagnostic:
        diag = Diagnostic(SEVERITY.ERROR, message, location, variable)
        self.diagnostics.append(diag)
        if not self.quiet:
            print(diag.format(), file=self.err)
        return diag

    def info(self, message: str) -> Diagnostic:
        diag = Diagnostic(SEVERITY.INFO, message)
        self.diagnostics.append(diag)
        if not self.quiet:
            print(diag.format(), file=self.out)
        return diag

    def verdict(self, ok: bool) -> None:
        if ok and not self.quiet:
            print(OKAY_LINE, file=self.out)
