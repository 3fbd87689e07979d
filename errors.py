"""
Runtime error family raised while evaluating a program.

Every error is fatal to the current execution: the language has no
in-language exception handling, so the host is the only place these are
caught. Errors raised without a position (e.g. from the Environment) get
one attached by the interpreter from the node being evaluated.
"""
from typing import Any


class InterpreterError(Exception):
    """Base class of all runtime errors."""

    def __init__(self, message: str, line: int = 0, column: int = 0, value: Any = None):
        super().__init__(message)
        self.message = message
        self.line = line
        self.column = column
        self.value = value

    @property
    def has_position(self) -> bool:
        return self.line > 0

    def with_position(self, line: int, column: int) -> 'InterpreterError':
        """Attach a source position unless one is already set."""
        if not self.has_position and line > 0:
            self.line = line
            self.column = column
        return self

    def __str__(self):
        if self.has_position:
            return f"line {self.line}:{self.column}: {self.message}"
        return self.message


class DuplicateBinding(InterpreterError):
    pass


class ImmutableAssignment(InterpreterError):
    pass


class DivisionByZero(InterpreterError):
    pass


class TypeMismatch(InterpreterError):
    pass


class IndexOutOfRange(InterpreterError):
    pass


class NotCallable(InterpreterError):
    pass


class UndefinedIdentifier(InterpreterError):
    pass


class InvalidAssignmentTarget(InterpreterError):
    pass


class ArityMismatch(InterpreterError):
    pass


class StepLimitExceeded(InterpreterError):
    pass


class CallDepthExceeded(InterpreterError):
    pass
