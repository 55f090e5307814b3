"""
Fault types raised by the KELP reader, evaluator and effect primitives.

Every failure inside KELP is reported as exactly one Fault subclass. Faults
propagate unchanged through the evaluator until ScriptRunner turns them into
an error ExecutionResult.
"""

from typing import Any, Optional


class Fault(Exception):
    """Base class for all classified KELP failures."""
    kind = "Fault"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def __str__(self) -> str:
        return self.message

    def describe(self) -> str:
        return f"{self.kind}: {self.message}"


class TypeMismatch(Fault):
    """A primitive or special form received a value of the wrong shape."""
    kind = "TypeMismatch"

    def __init__(self, expected: str, value: Any):
        self.expected = expected
        self.value = value
        # Printer imports this module; resolve lazily.
        from kelp.kelp_printer import Printer
        super().__init__(f"expected {expected}, got {Printer().describe(value)}")


class IOFailure(Fault):
    """A file or network resource could not be read, written or probed."""
    kind = "IOFailure"

    def __init__(self, message: str, resource: Optional[str] = None, reason: str = "os"):
        super().__init__(message)
        self.resource = resource
        self.reason = reason


class ParseFailure(Fault):
    """Text could not be read back into a value."""
    kind = "ParseFailure"

    def __init__(self, message: str, line: Optional[int] = None, col: Optional[int] = None):
        if line is not None and col is not None:
            message = f"{message} (line {line}, col {col})"
        super().__init__(message)
        self.line = line
        self.col = col


class UnboundSymbol(Fault):
    kind = "UnboundSymbol"

    def __init__(self, name: str):
        super().__init__(f"'{name}' is not bound")
        self.name = name


class ArityMismatch(Fault):
    kind = "ArityMismatch"

    def __init__(self, name: str, expected: str, got: int):
        super().__init__(f"({name}) expects {expected} argument(s), got {got}")
        self.name = name
        self.expected = expected
        self.got = got


class EvalFailure(Fault):
    """Malformed special forms and other pure evaluation failures."""
    kind = "EvalFailure"


__all__ = [
    "Fault",
    "TypeMismatch",
    "IOFailure",
    "ParseFailure",
    "UnboundSymbol",
    "ArityMismatch",
    "EvalFailure",
]
