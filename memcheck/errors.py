"""
Exceptions raised inside memcheck.

MemoryStateError and its subclasses describe rejected lifecycle transitions. They
are raised by the state store and always caught by the analyzer, which turns them
into diagnostics. FrontendError and ConfigError surface to the driver.
"""

from typing import Optional


class MemcheckError(Exception):
    pass


class MemoryStateError(MemcheckError):
    """A transition the lifecycle state machine does not allow."""

    def __init__(self, message: str, variable: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.variable = variable


class DoubleFreeError(MemoryStateError):
    pass


class UnknownStateError(MemoryStateError):
    pass


class OwnedOverwriteError(MemoryStateError):
    pass


class FrontendError(MemcheckError):
    """libclang could not produce a usable translation unit."""

    def __init__(self, path: str, messages=None):
        self.path = path
        self.messages = list(messages or [])
        super().__init__(f"failed to parse {path}")


class ConfigError(MemcheckError):
    pass
