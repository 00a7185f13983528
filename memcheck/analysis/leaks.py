from memcheck.memory_managing.memory import PointerState, PointerStateStore, VariableArena
from memcheck.utils.report import Reporter


class LeakChecker:
    """
    Runs once after the walk over the final store contents.

    Entries are scanned in declaration order. By default only the first entry still
    OWNED or UNKNOWN is reported; `report_all` reports every one of them.
    """

    def __init__(self, store: PointerStateStore, arena: VariableArena, reporter: Reporter, report_all: bool = False):
        self.store = store
        self.arena = arena
        self.reporter = reporter
        self.report_all = report_all

    def check(self) -> bool:
        ok = True
        for handle, state in self.store.items():
            var = self.arena.get(handle)
            if state == PointerState.OWNED:
                message = f"potentially unfreed memory held by '{var.name}'"
            elif state == PointerState.UNKNOWN:
                message = f"memory state of '{var.name}' is unknown"
            else:
                continue

            self.reporter.error(var.location, message, var.name)
            ok = False
            if not self.report_all:
                break
        return ok
