import sys


class Debug:
    """
    Trace output for --debug. Goes to stderr so stdout keeps only info lines and
    the verdict.
    """
    ENABLED = False

    _YELLOW = "\033[33m"
    _RED = "\033[31m"
    _CYAN = "\033[36m"
    _RESET = "\033[0m"

    @classmethod
    def set_enabled(cls, enabled: bool) -> None:
        cls.ENABLED = bool(enabled)

    @classmethod
    def log(cls, message: str) -> None:
        if not cls.ENABLED:
            return
        print(message, file=sys.stderr)

    @classmethod
    def log_transition(cls, variable: str, old: str, new: str) -> None:
        if not cls.ENABLED:
            return
        print(f"{cls._CYAN}STATE{cls._RESET} {variable}: {old} -> {new}", file=sys.stderr)

    @classmethod
    def log_warning(cls, message: str) -> None:
        if not cls.ENABLED:
            return
        prefix = f"{cls._YELLOW}WARNING{cls._RESET} "
        print(prefix + message, file=sys.stderr)

    @classmethod
    def log_error(cls, message: str) -> None:
        if not cls.ENABLED:
            return
        prefix = f"{cls._RED}ERROR{cls._RESET} "
        print(prefix + message, file=sys.stderr)
