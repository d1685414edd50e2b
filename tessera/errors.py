"""
Error taxonomy for TESSERA.

Every failure of parsing or evaluation is reported as one of the structured
exceptions below. Each carries the fields needed to explain the failure
without re-parsing the message, and the evaluation errors also derive from
the closest built-in exception so callers may catch them either way.
"""

from typing import Any, Iterable, Optional


class TesseraError(Exception):
    """Base class for all TESSERA errors."""


# ============================================================
# Parse Errors
# ============================================================

class ParseError(TesseraError):
    """
    Malformed input text.

    Attributes:
        position: 0-based character offset where parsing stopped
        expected: Description of the token class that was expected there
        text: The text being parsed (may be None)
    """

    def __init__(self, position: int, expected: str, text: Optional[str] = None):
        self.position = position
        self.expected = expected
        self.text = text
        super().__init__(f"at position {position}: expected {expected}")

    def pointer(self) -> str:
        """Return the input with a caret under the failing position."""
        if self.text is None:
            return ""
        return f"{self.text}\n{' ' * self.position}^"


class NestingTooDeep(ParseError):
    """Brackets, parentheses or prefix operators nested past the parser's ceiling."""

    def __init__(self, position: int, limit: int, text: Optional[str] = None):
        self.limit = limit
        super().__init__(position, f"nesting depth of at most {limit}", text)


# ============================================================
# Evaluation Errors
# ============================================================

class EvaluationError(TesseraError):
    """Base class for errors raised while evaluating an expression."""


class ExpressionTypeError(EvaluationError, TypeError):
    """An operator or function was applied to an incompatible kind of expression."""

    def __init__(self, operation: str, expected: Iterable[str], actual: str,
                 parameter: Optional[int] = None):
        self.operation = operation
        self.expected = tuple(expected)
        self.actual = actual
        self.parameter = parameter
        where = f" (argument {parameter})" if parameter is not None else ""
        super().__init__(
            f"{operation}{where}: expected {' or '.join(self.expected)}, got {actual}"
        )


class ShapeError(EvaluationError):
    """Vector or matrix dimensions do not fit the operation."""

    def __init__(self, expected: Any, actual: Any, operation: Optional[str] = None):
        self.expected = expected
        self.actual = actual
        self.operation = operation
        prefix = f"{operation}: " if operation else ""
        super().__init__(f"{prefix}expected shape {expected}, got {actual}")


class DivisionByZero(EvaluationError, ZeroDivisionError):
    """An exact zero divisor in division, remainder or a reciprocal power."""

    def __init__(self, operation: str = "/"):
        self.operation = operation
        super().__init__(f"division by zero in '{operation}'")


class ExpressionIndexError(EvaluationError, IndexError):
    """An index that is not a non-negative integer within bounds."""

    def __init__(self, index: Any, bound: Optional[int]):
        self.index = index
        self.bound = bound
        if bound is None:
            message = f"invalid index {index}"
        else:
            message = f"index {index} out of range for length {bound}"
        super().__init__(message)


class ArityError(EvaluationError):
    """Wrong number of arguments for a function."""

    def __init__(self, name: str, expected: int, actual: int):
        self.name = name
        self.expected = expected
        self.actual = actual
        super().__init__(f"{name} takes {expected} argument(s), {actual} given")


class DomainError(EvaluationError, ValueError):
    """A numeric argument outside the domain of a function."""

    def __init__(self, value: Any, operation: Optional[str] = None, reason: str = ""):
        self.value = value
        self.operation = operation
        prefix = f"{operation}: " if operation else ""
        suffix = f" ({reason})" if reason else ""
        super().__init__(f"{prefix}{value} is outside the domain{suffix}")


class RecursionLimit(EvaluationError):
    """Evaluation went deeper than the evaluator's depth budget."""

    def __init__(self, limit: int):
        self.limit = limit
        super().__init__(f"maximum evaluation depth of {limit} exceeded")
