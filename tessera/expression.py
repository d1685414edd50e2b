"""
Expression model for TESSERA.

Expressions are immutable trees of frozen dataclasses. Equality is
structural: two trees are equal iff they have the same shape and the same
leaves, which is what the simplifier relies on when it compares a
subexpression with its negation.

Scalars:
    Integer(n)                 arbitrary-precision integer
    Rational(p, q)             reduced, q > 0, never q == 1
    Real(value)                mpmath mpf, only for inexact results
    Complex(re, im)            re/im are scalar expressions, im never exact 0
    Boolean(b)

Structure:
    Variable(name), Vector(elements), Matrix(rows),
    UnaryOp(op, operand), BinaryOp(op, left, right),
    Call(name, args), Index(target, indices)

Pattern-only:
    Wildcard(name)             ?name in simplifier rules
"""

from dataclasses import dataclass, field
from fractions import Fraction
from math import gcd
from typing import Any, Callable, Dict, Iterator, Tuple, Union

from .config import DEFAULT_PRECISION
from .errors import DivisionByZero, ShapeError

# Operator symbols
UNARY_OPERATORS = ("-", "!")
BINARY_OPERATORS = (
    "+", "-", "*", "/", "%", "^",
    "&&", "||",
    "==", "!=", "<", "<=", ">", ">=",
)
COMPARISON_OPERATORS = ("==", "!=", "<", "<=", ">", ">=")
LOGICAL_OPERATORS = ("&&", "||")


class Expression:
    """Base class of every expression node."""

    __slots__ = ()

    kind = "expression"

    def __str__(self) -> str:
        from .printer import format_expr
        return format_expr(self)


# ============================================================
# Scalars
# ============================================================

@dataclass(frozen=True)
class Integer(Expression):
    value: int

    kind = "integer"


@dataclass(frozen=True)
class Rational(Expression):
    """
    Exact fraction p/q in lowest terms with q > 0.

    Constructing a Rational whose reduced denominator is 1 yields an Integer.
    The decimal flag records that the value came from a decimal literal so it
    is rendered as 1.5 rather than 3/2; it does not take part in equality.
    """

    numerator: int
    denominator: int
    decimal: bool = field(default=False, compare=False)

    kind = "rational"

    def __new__(cls, numerator: int, denominator: int = 1, decimal: bool = False):
        if denominator == 0:
            raise DivisionByZero("/")
        if numerator % denominator == 0:
            return Integer(numerator // denominator)
        return super().__new__(cls)

    def __post_init__(self):
        p, q = self.numerator, self.denominator
        if q < 0:
            p, q = -p, -q
        g = gcd(p, q)
        object.__setattr__(self, "numerator", p // g)
        object.__setattr__(self, "denominator", q // g)

    def __reduce__(self):
        return (Rational, (self.numerator, self.denominator, self.decimal))

    @property
    def fraction(self) -> Fraction:
        return Fraction(self.numerator, self.denominator)


@dataclass(frozen=True)
class Real(Expression):
    """
    An approximate value held as an mpmath mpf.

    precision is the number of significant digits it was computed with and
    only affects rendering.
    """

    value: Any
    precision: int = field(default=DEFAULT_PRECISION, compare=False)

    kind = "real"


@dataclass(frozen=True)
class Complex(Expression):
    """
    Complex number with scalar parts.

    A Complex whose imaginary part is the exact zero collapses to its real part.
    """

    real: Expression
    imag: Expression

    kind = "complex"

    def __new__(cls, real: Expression, imag: Expression):
        if is_exact_zero(imag):
            return real
        return super().__new__(cls)

    def __reduce__(self):
        return (Complex, (self.real, self.imag))

    def __post_init__(self):
        for part in (self.real, self.imag):
            if not isinstance(part, (Integer, Rational, Real)):
                raise TypeError(f"complex parts must be real scalars, got {part!r}")


@dataclass(frozen=True)
class Boolean(Expression):
    value: bool

    kind = "boolean"


# ============================================================
# Symbols and Collections
# ============================================================

@dataclass(frozen=True)
class Variable(Expression):
    name: str

    kind = "variable"


@dataclass(frozen=True)
class Wildcard(Expression):
    """Pattern variable; matches any subexpression and binds it to name."""

    name: str

    kind = "wildcard"


@dataclass(frozen=True)
class Vector(Expression):
    elements: Tuple[Expression, ...]

    kind = "vector"

    def __post_init__(self):
        object.__setattr__(self, "elements", tuple(self.elements))

    def __len__(self) -> int:
        return len(self.elements)

    def __iter__(self) -> Iterator[Expression]:
        return iter(self.elements)

    @property
    def shape(self) -> Tuple[int]:
        return (len(self.elements),)


@dataclass(frozen=True)
class Matrix(Expression):
    """Rectangular matrix stored as a tuple of equal-length rows."""

    rows: Tuple[Tuple[Expression, ...], ...]

    kind = "matrix"

    def __post_init__(self):
        rows = tuple(tuple(row) for row in self.rows)
        if rows:
            width = len(rows[0])
            for row in rows:
                if len(row) != width:
                    raise ShapeError((len(rows), width), (len(rows), len(row)), "matrix")
        object.__setattr__(self, "rows", rows)

    @property
    def nrows(self) -> int:
        return len(self.rows)

    @property
    def ncols(self) -> int:
        return len(self.rows[0]) if self.rows else 0

    @property
    def shape(self) -> Tuple[int, int]:
        return (self.nrows, self.ncols)

    def is_square(self) -> bool:
        return self.nrows == self.ncols

    def columns(self) -> Tuple[Tuple[Expression, ...], ...]:
        return tuple(zip(*self.rows)) if self.rows else ()


# ============================================================
# Operations
# ============================================================

@dataclass(frozen=True)
class UnaryOp(Expression):
    op: str
    operand: Expression

    kind = "operation"


@dataclass(frozen=True)
class BinaryOp(Expression):
    op: str
    left: Expression
    right: Expression

    kind = "operation"


@dataclass(frozen=True)
class Call(Expression):
    name: str
    args: Tuple[Expression, ...] = ()

    kind = "call"

    def __post_init__(self):
        object.__setattr__(self, "args", tuple(self.args))


@dataclass(frozen=True)
class Index(Expression):
    target: Expression
    indices: Tuple[Expression, ...]

    kind = "index"

    def __post_init__(self):
        object.__setattr__(self, "indices", tuple(self.indices))


# ============================================================
# Statements
# ============================================================

@dataclass(frozen=True)
class Assignment:
    """name = value"""

    name: str
    value: Expression


@dataclass(frozen=True)
class FunctionDefinition:
    """name(p1, ..., pn) = body"""

    name: str
    parameters: Tuple[str, ...]
    body: Expression

    def __post_init__(self):
        object.__setattr__(self, "parameters", tuple(self.parameters))


Statement = Union[Expression, Assignment, FunctionDefinition]


# ============================================================
# Constants and Predicates
# ============================================================

def rational(p: int, q: int = 1, decimal: bool = False) -> Expression:
    """Build the canonical exact value p/q (an Integer when q divides p)."""
    return Rational(p, q, decimal)


def from_fraction(value: Fraction, decimal: bool = False) -> Expression:
    """Convert a Fraction to its canonical Integer or Rational expression."""
    return Rational(value.numerator, value.denominator, decimal)


def complex_number(real: Expression, imag: Expression) -> Expression:
    """Build a Complex, collapsing to the real part when imag is the exact zero."""
    return Complex(real, imag)


def is_exact_zero(expr: Expression) -> bool:
    return isinstance(expr, Integer) and expr.value == 0


def is_number(expr: Expression) -> bool:
    """Integer, Rational, Real or Complex."""
    return isinstance(expr, (Integer, Rational, Real, Complex))


def is_scalar(expr: Expression) -> bool:
    """A number or a Boolean."""
    return is_number(expr) or isinstance(expr, Boolean)


def is_exact(expr: Expression) -> bool:
    """Scalar whose value is known exactly (no Real anywhere in it)."""
    if isinstance(expr, (Integer, Rational, Boolean)):
        return True
    if isinstance(expr, Complex):
        return is_exact(expr.real) and is_exact(expr.imag)
    return False


def is_array(expr: Expression) -> bool:
    return isinstance(expr, (Vector, Matrix))


def is_symbolic(expr: Expression) -> bool:
    """True if the expression's value is not yet known (contains unresolved parts)."""
    return not (is_scalar(expr) or is_array(expr))


ZERO = Integer(0)
ONE = Integer(1)
TRUE = Boolean(True)
FALSE = Boolean(False)
IMAGINARY_UNIT = Complex(ZERO, ONE)


# ============================================================
# Traversal
# ============================================================

def children(expr: Expression) -> Tuple[Expression, ...]:
    """Return the direct subexpressions of a node."""
    if isinstance(expr, Vector):
        return expr.elements
    if isinstance(expr, Matrix):
        return tuple(entry for row in expr.rows for entry in row)
    if isinstance(expr, UnaryOp):
        return (expr.operand,)
    if isinstance(expr, BinaryOp):
        return (expr.left, expr.right)
    if isinstance(expr, Call):
        return expr.args
    if isinstance(expr, Index):
        return (expr.target,) + expr.indices
    return ()


def map_children(expr: Expression, f: Callable[[Expression], Expression]) -> Expression:
    """Rebuild a node with f applied to each direct subexpression."""
    if isinstance(expr, Vector):
        return Vector(tuple(f(e) for e in expr.elements))
    if isinstance(expr, Matrix):
        return Matrix(tuple(tuple(f(e) for e in row) for row in expr.rows))
    if isinstance(expr, UnaryOp):
        return UnaryOp(expr.op, f(expr.operand))
    if isinstance(expr, BinaryOp):
        return BinaryOp(expr.op, f(expr.left), f(expr.right))
    if isinstance(expr, Call):
        return Call(expr.name, tuple(f(a) for a in expr.args))
    if isinstance(expr, Index):
        return Index(f(expr.target), tuple(f(i) for i in expr.indices))
    return expr


def free_in(name: str, expr: Expression) -> bool:
    """
    Check if a variable appears in an expression.

    Args:
        name: Variable name to check for
        expr: Expression to search in

    Returns:
        True if a Variable with that name occurs anywhere in expr
    """
    if isinstance(expr, Variable):
        return expr.name == name
    return any(free_in(name, sub) for sub in children(expr))


def substitute(expr: Expression, mapping: Dict[str, Expression]) -> Expression:
    """
    Replace every Variable named in mapping by its expression.

    Substitution is purely syntactic: the replacement expressions are not
    themselves searched again.
    """
    if isinstance(expr, Variable):
        return mapping.get(expr.name, expr)
    if not children(expr):
        return expr
    return map_children(expr, lambda sub: substitute(sub, mapping))


def size(expr: Expression) -> int:
    """Number of nodes in the tree."""
    return 1 + sum(size(sub) for sub in children(expr))
