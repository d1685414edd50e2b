"""
Canonical text rendering of expressions.

Operators are printed infix with the minimal parentheses needed for the
text to parse back into the same tree. Rationals print as p/q, or as a
decimal when they came from a decimal literal and have a finite decimal
expansion. Real values always contain a decimal point.
"""

from typing import Optional

import mpmath

from .expression import (
    BinaryOp, Boolean, Call, Complex, Expression, Index, Integer, Matrix,
    Rational, Real, UnaryOp, Variable, Vector, Wildcard,
)

# Binding strength, lowest to highest
PRECEDENCE = {
    "||": 1,
    "&&": 2,
    "==": 3, "!=": 3, "<": 3, "<=": 3, ">": 3, ">=": 3,
    "+": 4, "-": 4,
    "*": 5, "/": 5, "%": 5,
    "^": 7,
}
UNARY_PRECEDENCE = 6
ATOM_PRECEDENCE = 8
RIGHT_ASSOCIATIVE = {"^"}


def decimal_string(numerator: int, denominator: int) -> Optional[str]:
    """
    Render p/q as a finite decimal, or return None if it has no finite expansion.

    Examples:
        decimal_string(3, 2)     -> "1.5"
        decimal_string(-123, 40) -> "-3.075"
        decimal_string(1, 3)     -> None
    """
    rest = denominator
    twos = fives = 0
    while rest % 2 == 0:
        rest //= 2
        twos += 1
    while rest % 5 == 0:
        rest //= 5
        fives += 1
    if rest != 1:
        return None
    places = max(twos, fives)
    mantissa = abs(numerator) * 10 ** places // denominator
    digits = str(mantissa).rjust(places + 1, "0")
    if places:
        digits = digits[:-places] + "." + digits[-places:]
    return ("-" if numerator < 0 else "") + digits


def _sign(expr: Expression) -> int:
    if isinstance(expr, Integer):
        value = expr.value
    elif isinstance(expr, Rational):
        value = expr.numerator
    elif isinstance(expr, Real):
        value = expr.value
    else:
        return 1
    return (value > 0) - (value < 0)


def _is_unit(expr: Expression) -> bool:
    return isinstance(expr, Integer) and abs(expr.value) == 1


def _negate_part(expr: Expression) -> Expression:
    if isinstance(expr, Integer):
        return Integer(-expr.value)
    if isinstance(expr, Rational):
        return Rational(-expr.numerator, expr.denominator, expr.decimal)
    return Real(-expr.value, expr.precision)


def _format_rational(expr: Rational) -> str:
    if expr.decimal:
        text = decimal_string(expr.numerator, expr.denominator)
        if text is not None:
            return text
    return f"{expr.numerator}/{expr.denominator}"


def _format_complex(z: Complex) -> str:
    re, im = z.real, z.imag
    if _sign(re) == 0:
        if _is_unit(im):
            return "i" if _sign(im) > 0 else "-i"
        return f"{format_expr(im)}*i"
    if _sign(re) < 0 and _sign(im) > 0:
        if _is_unit(im):
            return f"i - {format_expr(_negate_part(re))}"
        return f"{format_expr(im)}*i - {format_expr(_negate_part(re))}"
    op = "-" if _sign(im) < 0 else "+"
    magnitude = _negate_part(im) if _sign(im) < 0 else im
    if _is_unit(magnitude):
        return f"{format_expr(re)} {op} i"
    return f"{format_expr(re)} {op} {format_expr(magnitude)}*i"


def precedence(expr: Expression) -> int:
    """Binding strength of the text an expression renders to."""
    if isinstance(expr, BinaryOp):
        return PRECEDENCE[expr.op]
    if isinstance(expr, UnaryOp):
        return UNARY_PRECEDENCE
    if isinstance(expr, (Integer, Real)):
        return UNARY_PRECEDENCE if _sign(expr) < 0 else ATOM_PRECEDENCE
    if isinstance(expr, Rational):
        if "/" in _format_rational(expr):
            return PRECEDENCE["/"]
        return UNARY_PRECEDENCE if _sign(expr) < 0 else ATOM_PRECEDENCE
    if isinstance(expr, Complex):
        if _sign(expr.real) != 0:
            return PRECEDENCE["+"]
        if _is_unit(expr.imag):
            return UNARY_PRECEDENCE if _sign(expr.imag) < 0 else ATOM_PRECEDENCE
        return PRECEDENCE["*"]
    return ATOM_PRECEDENCE


def _wrap(expr: Expression, parenthesize: bool) -> str:
    text = format_expr(expr)
    return f"({text})" if parenthesize else text


def _format_binary(expr: BinaryOp) -> str:
    own = PRECEDENCE[expr.op]
    left, right = precedence(expr.left), precedence(expr.right)
    right_assoc = expr.op in RIGHT_ASSOCIATIVE
    left_parens = left < own or (left == own and right_assoc)
    right_parens = right < own or (right == own and not right_assoc)
    return f"{_wrap(expr.left, left_parens)} {expr.op} {_wrap(expr.right, right_parens)}"


def _format_unary(expr: UnaryOp) -> str:
    operand = expr.operand
    inner = precedence(operand)
    parens = inner < UNARY_PRECEDENCE or (
        inner == UNARY_PRECEDENCE and not isinstance(operand, UnaryOp)
    )
    return f"{expr.op}{_wrap(operand, parens)}"


def format_expr(expr: Expression) -> str:
    """
    Format an expression as canonical infix text.

    Examples:
        BinaryOp("+", Integer(1), Variable("x"))  -> "1 + x"
        Rational(1, 2)                            -> "1/2"
        Rational(3, 2, decimal=True)              -> "1.5"
        Matrix(((Integer(1), Integer(2)),))       -> "[[1, 2]]"
    """
    if isinstance(expr, Integer):
        return str(expr.value)
    if isinstance(expr, Rational):
        return _format_rational(expr)
    if isinstance(expr, Real):
        return mpmath.nstr(expr.value, expr.precision)
    if isinstance(expr, Complex):
        return _format_complex(expr)
    if isinstance(expr, Boolean):
        return "true" if expr.value else "false"
    if isinstance(expr, Variable):
        return expr.name
    if isinstance(expr, Wildcard):
        return f"?{expr.name}"
    if isinstance(expr, Vector):
        return "[" + ", ".join(format_expr(e) for e in expr.elements) + "]"
    if isinstance(expr, Matrix):
        rows = ("[" + ", ".join(format_expr(e) for e in row) + "]" for row in expr.rows)
        return "[" + ", ".join(rows) + "]"
    if isinstance(expr, UnaryOp):
        return _format_unary(expr)
    if isinstance(expr, BinaryOp):
        return _format_binary(expr)
    if isinstance(expr, Call):
        return f"{expr.name}(" + ", ".join(format_expr(a) for a in expr.args) + ")"
    if isinstance(expr, Index):
        target = _wrap(expr.target, precedence(expr.target) < ATOM_PRECEDENCE)
        return f"{target}[" + ", ".join(format_expr(i) for i in expr.indices) + "]"
    return repr(expr)
