"""
Numeric tower for TESSERA.

Scalars are ordered Boolean < Integer < Rational < Real < Complex. A binary
operation promotes both operands to the higher of their two ranks, computes,
and returns the simplest expression that still holds the exact result:

    Integer/Rational    exact, via fractions.Fraction
    Complex (exact)     exact, pairs of Fractions
    Real                mpmath mpf at the tower's working precision
    Complex (inexact)   mpmath mpc, demoted to Real when the imaginary part is 0

Real values are never demoted to exact types, even when they happen to be
integral. Every tower owns a private mpmath context so that evaluations
running in different threads never share precision state.
"""

import math
import operator
from fractions import Fraction
from typing import Callable, Dict, Optional, Tuple

import mpmath

from .config import DEFAULT_PRECISION, GUARD_DIGITS, MIN_PRECISION
from .errors import DivisionByZero, DomainError, ExpressionTypeError
from .expression import (
    Boolean, Complex, Expression, Integer, Rational, Real,
    ONE, ZERO, from_fraction, is_exact,
)

# Promotion ranks
BOOLEAN, INTEGER, RATIONAL, REAL, COMPLEX = range(5)

_RANKS = {
    Boolean: BOOLEAN,
    Integer: INTEGER,
    Rational: RATIONAL,
    Real: REAL,
    Complex: COMPLEX,
}

_FRACTION_OPS: Dict[str, Callable[[Fraction, Fraction], Fraction]] = {
    "+": operator.add,
    "-": operator.sub,
    "*": operator.mul,
    "/": operator.truediv,
}

_ORDERINGS = {
    "<": operator.lt,
    "<=": operator.le,
    ">": operator.gt,
    ">=": operator.ge,
}

ExactComplex = Tuple[Fraction, Fraction]


def rank(expr: Expression) -> int:
    """Return the promotion rank of a scalar expression."""
    try:
        return _RANKS[type(expr)]
    except KeyError:
        raise ExpressionTypeError("arithmetic", ("number", "boolean"), expr.kind) from None


def is_decimal(expr: Expression) -> bool:
    """True if the value prefers decimal rendering."""
    if isinstance(expr, Rational):
        return expr.decimal
    if isinstance(expr, Complex):
        return is_decimal(expr.real) or is_decimal(expr.imag)
    return False


def to_fraction(expr: Expression) -> Fraction:
    """Convert an exact real scalar (Boolean, Integer, Rational) to a Fraction."""
    if isinstance(expr, Boolean):
        return Fraction(int(expr.value))
    if isinstance(expr, Integer):
        return Fraction(expr.value)
    if isinstance(expr, Rational):
        return expr.fraction
    raise ExpressionTypeError("exact arithmetic", ("integer", "rational"), expr.kind)


def exact_parts(expr: Expression) -> ExactComplex:
    """Split an exact scalar into (real, imaginary) Fractions."""
    if isinstance(expr, Complex):
        return to_fraction(expr.real), to_fraction(expr.imag)
    return to_fraction(expr), Fraction(0)


def integer_root(n: int, k: int) -> Optional[int]:
    """
    Return the exact k-th root of n >= 0, or None if n is not a perfect k-th power.

    Integer Newton iteration from an over-estimate, so it stays exact for
    integers of any size.
    """
    if n < 2:
        return n
    x = 1 << ((n.bit_length() + k - 1) // k)
    while True:
        y = ((k - 1) * x + n // x ** (k - 1)) // k
        if y >= x:
            break
        x = y
    return x if x ** k == n else None


def fraction_root(value: Fraction, k: int) -> Optional[Fraction]:
    """Exact k-th root of a non-negative Fraction, or None."""
    num = integer_root(value.numerator, k)
    if num is None:
        return None
    den = integer_root(value.denominator, k)
    if den is None:
        return None
    return Fraction(num, den)


def _exact_complex_mul(a: ExactComplex, b: ExactComplex) -> ExactComplex:
    return (a[0] * b[0] - a[1] * b[1], a[0] * b[1] + a[1] * b[0])


def _exact_complex_pow(base: ExactComplex, n: int) -> ExactComplex:
    """Non-negative integer power by repeated squaring."""
    result = (Fraction(1), Fraction(0))
    while n:
        if n & 1:
            result = _exact_complex_mul(result, base)
        base = _exact_complex_mul(base, base)
        n >>= 1
    return result


def _exact_complex_div(a: ExactComplex, b: ExactComplex) -> ExactComplex:
    denominator = b[0] * b[0] + b[1] * b[1]
    return (
        (a[0] * b[0] + a[1] * b[1]) / denominator,
        (a[1] * b[0] - a[0] * b[1]) / denominator,
    )


class NumericTower:
    """
    Scalar arithmetic at a fixed working precision.

    Examples:
        tower = NumericTower(precision=30)
        tower.add(Integer(1), Rational(1, 2))     # => Rational(3, 2)
        tower.power(Integer(2), Rational(1, 2))   # => Real(1.41421356...)
        tower.power(Integer(4), Rational(1, 2))   # => Integer(2)
    """

    def __init__(self, precision: int = DEFAULT_PRECISION):
        if precision < MIN_PRECISION:
            raise ValueError(f"precision must be at least {MIN_PRECISION} digits")
        self.precision = precision
        self.ctx = mpmath.MPContext()
        self.ctx.dps = precision
        self._tolerance = self.ctx.mpf(10) ** (-(precision - GUARD_DIGITS))

    def __repr__(self) -> str:
        return f"NumericTower(precision={self.precision})"

    # ============================================================
    # Conversions
    # ============================================================

    def to_mpf(self, expr: Expression):
        """Convert a real scalar to an mpf of this tower's context."""
        if isinstance(expr, Real):
            return self.ctx.convert(expr.value)
        value = to_fraction(expr)
        return self.ctx.fdiv(value.numerator, value.denominator)

    def to_mpc(self, expr: Expression):
        """Convert any scalar to an mpc of this tower's context."""
        if isinstance(expr, Complex):
            return self.ctx.mpc(self.to_mpf(expr.real), self.to_mpf(expr.imag))
        return self.ctx.mpc(self.to_mpf(expr), 0)

    def real(self, value) -> Expression:
        """Wrap an mpf result, rejecting infinities and NaN."""
        value = self.ctx.convert(value)
        if not self.ctx.isfinite(value):
            raise DomainError(value, reason="result is not finite")
        return Real(value, self.precision)

    def from_mp(self, value) -> Expression:
        """Wrap an mpf or mpc result, demoting complex values with zero imaginary part."""
        if isinstance(value, self.ctx.mpc):
            if value.imag == 0:
                return self.real(value.real)
            return Complex(self.real(value.real), self.real(value.imag))
        return self.real(value)

    def from_exact_complex(self, parts: ExactComplex, decimal: bool = False) -> Expression:
        return Complex(from_fraction(parts[0], decimal), from_fraction(parts[1], decimal))

    # ============================================================
    # Predicates
    # ============================================================

    def is_zero(self, expr: Expression) -> bool:
        """True for the zero value of any scalar kind (false counts as 0)."""
        if isinstance(expr, Real):
            return expr.value == 0
        if isinstance(expr, Complex):
            return False
        return to_fraction(expr) == 0

    def is_negative(self, expr: Expression) -> bool:
        if isinstance(expr, Real):
            return expr.value < 0
        return to_fraction(expr) < 0

    # ============================================================
    # Arithmetic
    # ============================================================

    def add(self, a: Expression, b: Expression) -> Expression:
        return self._arithmetic("+", a, b)

    def sub(self, a: Expression, b: Expression) -> Expression:
        return self._arithmetic("-", a, b)

    def mul(self, a: Expression, b: Expression) -> Expression:
        return self._arithmetic("*", a, b)

    def div(self, a: Expression, b: Expression) -> Expression:
        if self.is_zero(b):
            raise DivisionByZero("/")
        return self._arithmetic("/", a, b)

    def _arithmetic(self, op: str, a: Expression, b: Expression) -> Expression:
        level = max(rank(a), rank(b))
        if level <= RATIONAL:
            result = _FRACTION_OPS[op](to_fraction(a), to_fraction(b))
            return from_fraction(result, is_decimal(a) or is_decimal(b))
        if level == REAL:
            x, y = self.to_mpf(a), self.to_mpf(b)
            return self.real(_FRACTION_OPS[op](x, y))
        if is_exact(a) and is_exact(b):
            x, y = exact_parts(a), exact_parts(b)
            if op == "+":
                parts = (x[0] + y[0], x[1] + y[1])
            elif op == "-":
                parts = (x[0] - y[0], x[1] - y[1])
            elif op == "*":
                parts = _exact_complex_mul(x, y)
            else:
                parts = _exact_complex_div(x, y)
            return self.from_exact_complex(parts, is_decimal(a) or is_decimal(b))
        return self.from_mp(_FRACTION_OPS[op](self.to_mpc(a), self.to_mpc(b)))

    def neg(self, a: Expression) -> Expression:
        if isinstance(a, Boolean):
            return Integer(-int(a.value))
        if isinstance(a, Integer):
            return Integer(-a.value)
        if isinstance(a, Rational):
            return Rational(-a.numerator, a.denominator, a.decimal)
        if isinstance(a, Real):
            return Real(-a.value, a.precision)
        if isinstance(a, Complex):
            return Complex(self.neg(a.real), self.neg(a.imag))
        raise ExpressionTypeError("-", ("number",), a.kind)

    def rem(self, a: Expression, b: Expression) -> Expression:
        """Euclidean remainder: 0 <= a % b < |b|."""
        for operand in (a, b):
            if not isinstance(operand, (Integer, Rational)):
                raise ExpressionTypeError("%", ("integer", "rational"), operand.kind)
        divisor = to_fraction(b)
        if divisor == 0:
            raise DivisionByZero("%")
        result = to_fraction(a) % abs(divisor)
        return from_fraction(result, is_decimal(a) or is_decimal(b))

    def power(self, base: Expression, exponent: Expression) -> Expression:
        """
        Raise base to exponent.

        Integer exponents on exact bases stay exact. Rational exponents stay
        exact when the root is exact; otherwise the principal value is
        computed as a Real or Complex.
        """
        if isinstance(base, Boolean):
            base = Integer(int(base.value))
        if isinstance(exponent, Boolean):
            exponent = Integer(int(exponent.value))

        if self.is_zero(exponent):
            return ONE if is_exact(base) and is_exact(exponent) else self.real(1)
        if self.is_zero(base):
            return self._zero_power(base, exponent)

        if isinstance(exponent, Integer):
            n = exponent.value
            if is_exact(base):
                return self._exact_integer_power(base, n)
            if isinstance(base, Real):
                return self.real(self.ctx.power(self.to_mpf(base), n))
            return self.from_mp(self.ctx.power(self.to_mpc(base), n))

        if isinstance(exponent, Rational) and isinstance(base, (Integer, Rational)):
            exact = self._exact_rational_power(base, exponent)
            if exact is not None:
                return exact

        if not isinstance(exponent, Complex) and not isinstance(base, Complex):
            x = self.to_mpf(base)
            if x > 0:
                return self.real(self.ctx.power(x, self.to_mpf(exponent)))
        return self.from_mp(self.ctx.power(self.to_mpc(base), self.to_mpc(exponent)))

    def _zero_power(self, base: Expression, exponent: Expression) -> Expression:
        if isinstance(exponent, Complex):
            positive = self.to_mpf(exponent.real) > 0
        else:
            positive = not self.is_negative(exponent)
        if not positive:
            raise DivisionByZero("^")
        if isinstance(base, Real) or not is_exact(exponent):
            return self.real(0)
        return ZERO

    def _exact_integer_power(self, base: Expression, n: int) -> Expression:
        decimal = is_decimal(base)
        if isinstance(base, Complex):
            parts = exact_parts(base)
            result = _exact_complex_pow(parts, abs(n))
            if n < 0:
                result = _exact_complex_div((Fraction(1), Fraction(0)), result)
            return self.from_exact_complex(result, decimal)
        return from_fraction(to_fraction(base) ** n, decimal)

    def _exact_rational_power(self, base: Expression, exponent: Rational) -> Optional[Expression]:
        """b^(p/q) when |b|^(1/q) is exact; negative bases only for square roots."""
        value = to_fraction(base)
        p, q = exponent.numerator, exponent.denominator
        root = fraction_root(abs(value), q)
        if root is None:
            return None
        decimal = is_decimal(base)
        if value > 0:
            return from_fraction(root ** p, decimal)
        if q != 2:
            return None
        # (-b)^(p/2) = (b^(1/2))^p * i^p
        unit = _exact_complex_pow((Fraction(0), Fraction(1)), p % 4)
        magnitude = root ** p
        return self.from_exact_complex((unit[0] * magnitude, unit[1] * magnitude), decimal)

    # ============================================================
    # Comparison
    # ============================================================

    def equal(self, a: Expression, b: Expression) -> bool:
        """Value equality after promotion; Real comparisons allow rounding noise."""
        if isinstance(a, Boolean) and isinstance(b, Boolean):
            return a.value == b.value
        if is_exact(a) and is_exact(b):
            return exact_parts(a) == exact_parts(b)
        if isinstance(a, Complex) or isinstance(b, Complex):
            x, y = self.to_mpc(a), self.to_mpc(b)
        else:
            x, y = self.to_mpf(a), self.to_mpf(b)
        return bool(self.ctx.almosteq(x, y, rel_eps=self._tolerance, abs_eps=self._tolerance))

    def compare(self, op: str, a: Expression, b: Expression) -> Expression:
        """Evaluate a comparison operator to a Boolean."""
        if op == "==":
            return Boolean(self.equal(a, b))
        if op == "!=":
            return Boolean(not self.equal(a, b))
        for operand in (a, b):
            if isinstance(operand, Complex):
                raise ExpressionTypeError(op, ("integer", "rational", "real", "boolean"), operand.kind)
        if is_exact(a) and is_exact(b):
            return Boolean(_ORDERINGS[op](to_fraction(a), to_fraction(b)))
        return Boolean(bool(_ORDERINGS[op](self.to_mpf(a), self.to_mpf(b))))

    # ============================================================
    # Functions used by the registry
    # ============================================================

    def apply(self, name: str, x: Expression) -> Expression:
        """Apply an mpmath function (exp, log, sin, ...) and wrap the result."""
        func = getattr(self.ctx, name)
        argument = self.to_mpc(x) if isinstance(x, Complex) else self.to_mpf(x)
        return self.from_mp(func(argument))

    def absolute(self, x: Expression) -> Expression:
        if isinstance(x, Complex):
            squared = self.add(self.mul(x.real, x.real), self.mul(x.imag, x.imag))
            return self.power(squared, Rational(1, 2))
        if isinstance(x, Real):
            return Real(abs(x.value), x.precision)
        return from_fraction(abs(to_fraction(x)), is_decimal(x))

    def floor(self, x: Expression) -> Expression:
        if isinstance(x, Real):
            return Integer(int(self.ctx.floor(self.to_mpf(x))))
        return Integer(math.floor(to_fraction(x)))

    def ceil(self, x: Expression) -> Expression:
        if isinstance(x, Real):
            return Integer(int(self.ctx.ceil(self.to_mpf(x))))
        return Integer(math.ceil(to_fraction(x)))
