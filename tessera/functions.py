"""
Built-in function registry for TESSERA.

FUNCTIONS is a fixed table built when this module is imported. Each entry
records the function's parameter kinds next to its implementation, so
dispatch is a lookup followed by validation:

    1. the argument count must equal the number of parameters (ArityError)
    2. an unresolved symbolic argument for a parameter that is not
       EXPRESSION leaves the call unevaluated
    3. each argument must be of an accepted kind (ExpressionTypeError naming
       the 1-based argument position)

Implementations receive the evaluator first (for its numeric tower and its
operator reduction), then the checked arguments.
"""

import logging
import math
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional, Tuple

from . import linalg, primes
from .errors import ArityError, DomainError, ExpressionTypeError, ShapeError
from .expression import (
    Boolean, Call, Complex, Expression, Integer, Matrix, Rational, Real, Vector,
    ONE, ZERO, is_exact_zero, is_symbolic,
)

logger = logging.getLogger(__name__)

# Parameter kinds
EXPRESSION = "expression"
INTEGER = "integer"
RATIONAL = "rational"
REAL = "real"
NUMBER = "number"
BOOLEAN = "boolean"
VECTOR = "vector"
MATRIX = "matrix"
SQUARE_MATRIX = "square matrix"

_ACCEPTED = {
    EXPRESSION: (Expression,),
    INTEGER: (Integer, Boolean),
    RATIONAL: (Integer, Rational, Boolean),
    REAL: (Integer, Rational, Real, Boolean),
    NUMBER: (Integer, Rational, Real, Complex, Boolean),
    BOOLEAN: (Boolean,),
    VECTOR: (Vector,),
    MATRIX: (Matrix, Vector),
    SQUARE_MATRIX: (Matrix, Vector),
}

_NUMERIC_KINDS = (INTEGER, RATIONAL, REAL, NUMBER)


@dataclass(frozen=True)
class Function:
    """A built-in function and its metadata."""

    name: str
    parameters: Tuple[str, ...]
    implementation: Callable[..., Expression]
    description: str
    examples: Tuple[Tuple[str, str], ...] = ()
    categories: Tuple[str, ...] = ()

    @property
    def arity(self) -> int:
        return len(self.parameters)

    def signature(self) -> str:
        return f"{self.name}({', '.join(self.parameters)})"


FUNCTIONS: Dict[str, Function] = {}


def _builtin(name: str, parameters: Tuple[str, ...], description: str,
             examples: Tuple[Tuple[str, str], ...] = (),
             categories: Tuple[str, ...] = ()):
    """Add the decorated implementation to FUNCTIONS."""
    def decorate(implementation):
        FUNCTIONS[name] = Function(
            name, tuple(parameters), implementation, description,
            tuple(examples), tuple(categories),
        )
        return implementation
    return decorate


# ============================================================
# Dispatch
# ============================================================

def _coerce(kind: str, value: Expression) -> Expression:
    """Convert an accepted argument to the form the implementation expects."""
    if kind in _NUMERIC_KINDS and isinstance(value, Boolean):
        return Integer(int(value.value))
    if kind in (MATRIX, SQUARE_MATRIX):
        return linalg.as_matrix(value)
    return value


def check_arguments(function: Function, args: Tuple[Expression, ...]) -> Optional[List[Expression]]:
    """
    Validate and coerce arguments.

    Returns:
        The coerced arguments, or None if a symbolic argument means the call
        cannot be evaluated yet

    Raises:
        ArityError: On a wrong argument count
        ExpressionTypeError: On an argument of the wrong kind
        ShapeError: On a non-square argument to a square-matrix parameter
    """
    if len(args) != function.arity:
        raise ArityError(function.name, function.arity, len(args))
    checked = []
    for position, (kind, value) in enumerate(zip(function.parameters, args), start=1):
        if kind != EXPRESSION and is_symbolic(value):
            return None
        if not isinstance(value, _ACCEPTED[kind]):
            raise ExpressionTypeError(function.name, (kind,), value.kind, parameter=position)
        value = _coerce(kind, value)
        if kind == SQUARE_MATRIX and not value.is_square():
            raise ShapeError((value.nrows, value.nrows), value.shape, function.name)
        checked.append(value)
    return checked


def dispatch(function: Function, args: Tuple[Expression, ...], evaluator: Any) -> Expression:
    """Check the arguments and run a built-in, or return the call unevaluated."""
    checked = check_arguments(function, args)
    if checked is None:
        return Call(function.name, args)
    logger.debug("dispatch %s%s", function.name, tuple(str(a) for a in checked))
    return function.implementation(evaluator, *checked)


# ============================================================
# Arithmetic
# ============================================================

@_builtin("abs", (NUMBER,), "absolute value (modulus for complex numbers)",
          (("abs(-3)", "3"), ("abs(-3/4)", "3/4"), ("abs(3 + 4*i)", "5")),
          ("arithmetic",))
def _abs(ev, x):
    return ev.tower.absolute(x)


@_builtin("sqrt", (NUMBER,), "principal square root",
          (("sqrt(16)", "4"), ("sqrt(1/4)", "1/2"), ("sqrt(-4)", "2*i")),
          ("arithmetic",))
def _sqrt(ev, x):
    return ev.tower.power(x, Rational(1, 2))


@_builtin("exp", (NUMBER,), "exponential function",
          (("exp(0)", "1"),), ("arithmetic", "transcendental"))
def _exp(ev, x):
    if is_exact_zero(x):
        return ONE
    return ev.tower.apply("exp", x)


@_builtin("ln", (NUMBER,), "natural logarithm (principal branch)",
          (("ln(1)", "0"),), ("arithmetic", "transcendental"))
def _ln(ev, x):
    if ev.tower.is_zero(x):
        raise DomainError(x, "ln", "logarithm of zero")
    if x == ONE:
        return ZERO
    return ev.tower.apply("log", x)


@_builtin("sin", (NUMBER,), "sine (radians)",
          (("sin(0)", "0"),), ("trigonometry", "transcendental"))
def _sin(ev, x):
    return ZERO if is_exact_zero(x) else ev.tower.apply("sin", x)


@_builtin("cos", (NUMBER,), "cosine (radians)",
          (("cos(0)", "1"),), ("trigonometry", "transcendental"))
def _cos(ev, x):
    return ONE if is_exact_zero(x) else ev.tower.apply("cos", x)


@_builtin("tan", (NUMBER,), "tangent (radians)",
          (("tan(0)", "0"),), ("trigonometry", "transcendental"))
def _tan(ev, x):
    return ZERO if is_exact_zero(x) else ev.tower.apply("tan", x)


@_builtin("floor", (REAL,), "largest integer not greater than the argument",
          (("floor(5/2)", "2"), ("floor(-2.5)", "-3")), ("arithmetic",))
def _floor(ev, x):
    return ev.tower.floor(x)


@_builtin("ceil", (REAL,), "smallest integer not less than the argument",
          (("ceil(5/2)", "3"), ("ceil(-2.5)", "-2")), ("arithmetic",))
def _ceil(ev, x):
    return ev.tower.ceil(x)


@_builtin("re", (NUMBER,), "real part of a complex number",
          (("re(3 + 4*i)", "3"), ("re(7)", "7")), ("complex numbers",))
def _re(ev, x):
    return x.real if isinstance(x, Complex) else x


@_builtin("im", (NUMBER,), "imaginary part of a complex number",
          (("im(3 + 4*i)", "4"), ("im(7)", "0")), ("complex numbers",))
def _im(ev, x):
    return x.imag if isinstance(x, Complex) else ZERO


@_builtin("conj", (NUMBER,), "complex conjugate",
          (("conj(3 + 4*i)", "3 - 4*i"), ("conj(i)", "-i")), ("complex numbers",))
def _conj(ev, x):
    if isinstance(x, Complex):
        return Complex(x.real, ev.tower.neg(x.imag))
    return x


# ============================================================
# Number Theory
# ============================================================

@_builtin("gcd", (INTEGER, INTEGER), "greatest common divisor",
          (("gcd(12, 18)", "6"), ("gcd(0, 5)", "5")), ("number theory",))
def _gcd(ev, a, b):
    return Integer(math.gcd(a.value, b.value))


@_builtin("lcm", (INTEGER, INTEGER), "least common multiple",
          (("lcm(4, 6)", "12"), ("lcm(0, 5)", "0")), ("number theory",))
def _lcm(ev, a, b):
    if a.value == 0 or b.value == 0:
        return ZERO
    return Integer(abs(a.value * b.value) // math.gcd(a.value, b.value))


@_builtin("factorial", (INTEGER,), "product of the integers from 1 to n",
          (("factorial(5)", "120"), ("factorial(0)", "1")), ("number theory",))
def _factorial(ev, n):
    if n.value < 0:
        raise DomainError(n.value, "factorial", "negative")
    return Integer(math.factorial(n.value))


@_builtin("is_prime", (INTEGER,), "whether n is a prime number",
          (("is_prime(97)", "true"), ("is_prime(1)", "false")),
          ("number theory", "primes"))
def _is_prime(ev, n):
    return Boolean(primes.is_prime(n.value))


@_builtin("nth_prime", (INTEGER,), "the n-th prime number, starting from nth_prime(1) = 2",
          (("nth_prime(1)", "2"), ("nth_prime(10)", "29")),
          ("number theory", "primes"))
def _nth_prime(ev, n):
    return Integer(primes.nth_prime(n.value))


@_builtin("prime_pi", (INTEGER,), "number of primes less than or equal to n",
          (("prime_pi(100)", "25"), ("prime_pi(2)", "1")),
          ("number theory", "primes"))
def _prime_pi(ev, n):
    return Integer(primes.prime_pi(n.value))


# ============================================================
# Linear Algebra
# ============================================================

@_builtin("det", (SQUARE_MATRIX,), "determinant of a square matrix",
          (("det([[1, 2], [3, 4]])", "-2"),
           ("det([[a, b], [c, d]])", "a * d - b * c"),
           ("det([])", "1")),
          ("linear algebra",))
def _det(ev, matrix):
    return linalg.determinant(matrix, ev.reduce)


@_builtin("transpose", (MATRIX,), "transpose of a matrix",
          (("transpose([[1, 2], [3, 4]])", "[[1, 3], [2, 4]]"),
           ("transpose([1, 2])", "[[1, 2]]")),
          ("linear algebra",))
def _transpose(ev, matrix):
    return linalg.transpose(matrix)


@_builtin("trace", (SQUARE_MATRIX,), "trace of a square matrix",
          (("trace([[1, 2], [3, a]])", "1 + a"),), ("linear algebra",))
def _trace(ev, matrix):
    return linalg.trace(matrix, ev.reduce)


@_builtin("dot", (VECTOR, VECTOR), "dot product of two vectors",
          (("dot([1, 2, 3], [4, 5, 6])", "32"), ("dot([a, b], [1, 1])", "a + b")),
          ("linear algebra",))
def _dot(ev, a, b):
    return linalg.dot(a, b, ev.reduce)


# ============================================================
# Logic
# ============================================================

@_builtin("and", (BOOLEAN, BOOLEAN), "logical conjunction",
          (("and(true, false)", "false"), ("and(true, true)", "true")), ("logic",))
def _and(ev, a, b):
    return Boolean(a.value and b.value)


@_builtin("or", (BOOLEAN, BOOLEAN), "logical disjunction",
          (("or(true, false)", "true"), ("or(false, false)", "false")), ("logic",))
def _or(ev, a, b):
    return Boolean(a.value or b.value)


@_builtin("not", (BOOLEAN,), "logical negation",
          (("not(true)", "false"),), ("logic",))
def _not(ev, a):
    return Boolean(not a.value)


def categories() -> Dict[str, List[str]]:
    """Function names grouped by category, in table order."""
    grouped: Dict[str, List[str]] = {}
    for function in FUNCTIONS.values():
        for category in function.categories:
            grouped.setdefault(category, []).append(function.name)
    return grouped
