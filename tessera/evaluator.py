"""
Evaluator for TESSERA.

Evaluation is a post-order reduction: the children of a node are reduced
first, then the node itself is reduced against them, then the simplifier's
rule table gets one chance to rewrite the result. Nothing is iterated to
saturation, so evaluation always terminates on a finite tree.

Unknown names are not errors. An unbound Variable, or a Call to a name that
is neither a user function nor a built-in, stays in the result as a
symbolic subtree:

    >>> evaluate(parse("a && true"))
    Variable(name='a')
    >>> evaluate(parse("det([[a, 2], [3, a]])"))     # a ^ 2 - 6
    BinaryOp(op='-', left=BinaryOp(op='^', ...), right=Integer(value=6))
"""

import logging
from typing import Mapping, Optional, Union

from . import linalg
from .config import DEFAULT_MAX_DEPTH, DEFAULT_PRECISION
from .context import EMPTY_CONTEXT, Binding, Context
from .errors import ArityError, DivisionByZero, ExpressionTypeError, RecursionLimit, ShapeError
from .expression import (
    BinaryOp, Boolean, Call, Expression, Index, Matrix, UnaryOp, Variable, Vector,
    COMPARISON_OPERATORS, LOGICAL_OPERATORS,
    is_array, is_scalar, is_symbolic, substitute,
)
from .functions import FUNCTIONS, dispatch
from .numeric import NumericTower
from .parser import bracket_literal
from .simplifier import Simplifier

logger = logging.getLogger(__name__)

ContextLike = Union[Context, Mapping[str, Binding], None]


def as_context(context: ContextLike) -> Context:
    """Accept a Context, a plain mapping, or None."""
    if context is None:
        return EMPTY_CONTEXT
    if isinstance(context, Context):
        return context
    return Context(context)


class Evaluator:
    """
    Reduces expressions under a context.

    An Evaluator owns a NumericTower (and with it a private mpmath context)
    plus a depth counter, so use one Evaluator per thread.

    Examples:
        ev = Evaluator({"v": parse("[1, 2, 3]")})
        ev.evaluate(parse("v[1]"))        # => Integer(2)
        ev.evaluate(parse("6/5 * 3"))     # => Rational(18, 5)

    Args:
        context: Bindings visible to evaluation
        precision: Significant digits for Real arithmetic
        max_depth: Nesting budget; deeper evaluation raises RecursionLimit
        simplifier: Rule table applied after each node (default rules if None)
    """

    def __init__(self, context: ContextLike = None, precision: int = DEFAULT_PRECISION,
                 max_depth: int = DEFAULT_MAX_DEPTH, simplifier: Optional[Simplifier] = None):
        self.context = as_context(context)
        self.tower = NumericTower(precision)
        self.max_depth = max_depth
        self.simplifier = simplifier if simplifier is not None else Simplifier()
        self._depth = 0

    def __repr__(self) -> str:
        return (f"Evaluator({len(self.context)} bindings, precision={self.tower.precision}, "
                f"max_depth={self.max_depth})")

    def evaluate(self, expr: Expression, context: ContextLike = None) -> Expression:
        """
        Reduce expr to normal form.

        Raises:
            EvaluationError: The first failure met; nothing is replaced by a default
        """
        ctx = self.context if context is None else as_context(context)
        self._depth = 0
        return self._eval(expr, ctx)

    # ============================================================
    # Tree walk
    # ============================================================

    def _eval(self, expr: Expression, ctx: Context) -> Expression:
        self._depth += 1
        try:
            if self._depth > self.max_depth:
                raise RecursionLimit(self.max_depth)

            if is_scalar(expr):
                return expr

            if isinstance(expr, Variable):
                value = ctx.value(expr.name)
                if value is None:
                    return expr
                return self._eval(value, ctx.without(expr.name))

            if isinstance(expr, Vector):
                return bracket_literal([self._eval(e, ctx) for e in expr.elements])

            if isinstance(expr, Matrix):
                return Matrix(tuple(
                    tuple(self._eval(e, ctx) for e in row) for row in expr.rows
                ))

            if isinstance(expr, UnaryOp):
                return self.reduce_unary(expr.op, self._eval(expr.operand, ctx))

            if isinstance(expr, BinaryOp):
                return self._eval_chain(expr, ctx)

            if isinstance(expr, Call):
                args = tuple(self._eval(a, ctx) for a in expr.args)
                return self._call(expr.name, args, ctx)

            if isinstance(expr, Index):
                target = self._eval(expr.target, ctx)
                indices = tuple(self._eval(i, ctx) for i in expr.indices)
                if is_symbolic(target) or any(is_symbolic(i) for i in indices):
                    return self.simplifier.rewrite(Index(target, indices))
                return linalg.element(target, indices)

            return expr
        finally:
            self._depth -= 1

    def _eval_chain(self, expr: BinaryOp, ctx: Context) -> Expression:
        """
        Reduce a left-nested operator chain such as a + b + c + d in a loop.

        The parser builds flat chains as left spines of any length, so only
        the right operands are charged against the depth budget.
        """
        spine = [expr]
        while isinstance(spine[-1].left, BinaryOp):
            spine.append(spine[-1].left)
        result = self._eval(spine[-1].left, ctx)
        for node in reversed(spine):
            result = self.reduce(node.op, result, self._eval(node.right, ctx))
        return result

    def _call(self, name: str, args, ctx: Context) -> Expression:
        function = ctx.function(name)
        if function is not None:
            if function.arity != len(args):
                raise ArityError(name, function.arity, len(args))
            logger.debug("expanding %s with %d argument(s)", name, len(args))
            body = substitute(function.body, dict(zip(function.parameters, args)))
            return self._eval(body, ctx)
        builtin = FUNCTIONS.get(name)
        if builtin is not None:
            return self.simplifier.rewrite(dispatch(builtin, args, self))
        return self.simplifier.rewrite(Call(name, args))

    # ============================================================
    # Operator reduction on evaluated operands
    # ============================================================

    def reduce(self, op: str, left: Expression, right: Expression) -> Expression:
        """
        Apply a binary operator to already-reduced operands.

        Numbers fold through the numeric tower, arrays through the linear
        algebra routines; anything involving an unresolved symbol becomes a
        BinaryOp that the simplifier gets one chance to rewrite.
        """
        if is_array(left) or is_array(right):
            return self._reduce_arrays(op, left, right)
        if is_scalar(left) and is_scalar(right):
            return self._reduce_scalars(op, left, right)
        return self.simplifier.rewrite(BinaryOp(op, left, right))

    def reduce_unary(self, op: str, operand: Expression) -> Expression:
        if is_symbolic(operand):
            return self.simplifier.rewrite(UnaryOp(op, operand))
        if op == "-":
            if is_array(operand):
                return linalg.map_entries(operand, lambda e: self.reduce_unary("-", e))
            return self.tower.neg(operand)
        if not isinstance(operand, Boolean):
            raise ExpressionTypeError("!", ("boolean",), operand.kind)
        return Boolean(not operand.value)

    def _reduce_scalars(self, op: str, a: Expression, b: Expression) -> Expression:
        tower = self.tower
        if op in LOGICAL_OPERATORS:
            for operand in (a, b):
                if not isinstance(operand, Boolean):
                    raise ExpressionTypeError(op, ("boolean",), operand.kind)
            if op == "&&":
                return Boolean(a.value and b.value)
            return Boolean(a.value or b.value)
        if op in COMPARISON_OPERATORS:
            return tower.compare(op, a, b)
        if op == "+":
            return tower.add(a, b)
        if op == "-":
            return tower.sub(a, b)
        if op == "*":
            return tower.mul(a, b)
        if op == "/":
            return tower.div(a, b)
        if op == "%":
            return tower.rem(a, b)
        if op == "^":
            return tower.power(a, b)
        raise ValueError(f"Unknown operator: {op}")

    def _reduce_arrays(self, op: str, a: Expression, b: Expression) -> Expression:
        both = is_array(a) and is_array(b)
        if op in ("==", "!="):
            if both:
                return linalg.equal(op, a, b, self.reduce)
            if is_symbolic(a) or is_symbolic(b):
                return self.simplifier.rewrite(BinaryOp(op, a, b))
            return Boolean(op == "!=")
        if is_symbolic(a) or is_symbolic(b):
            return self.simplifier.rewrite(BinaryOp(op, a, b))

        if op in ("+", "-"):
            if not both:
                raise ShapeError(linalg.shape(a), linalg.shape(b), op)
            return linalg.elementwise(op, a, b, self.reduce)
        if op == "*":
            if both:
                return linalg.matmul(a, b, self.reduce)
            return linalg.scale(a, b, self.reduce)
        if op == "/":
            if not is_array(a) or not is_scalar(b):
                raise ExpressionTypeError("/", ("scalar divisor",), b.kind, parameter=2)
            if self.tower.is_zero(b):
                raise DivisionByZero("/")
            return linalg.map_entries(a, lambda entry: self.reduce("/", entry, b))
        if op == "^":
            return linalg.matrix_power(a, b, self.reduce)
        offender = a if is_array(a) else b
        raise ExpressionTypeError(op, ("scalar",), offender.kind)


def evaluate(expr: Expression, context: ContextLike = None,
             precision: int = DEFAULT_PRECISION,
             max_depth: int = DEFAULT_MAX_DEPTH) -> Expression:
    """
    Evaluate an expression with a fresh Evaluator.

    Examples:
        evaluate(parse("1 + 1"))                          # => Integer(2)
        evaluate(parse("v[1]"), {"v": parse("[1, 2, 3]")})  # => Integer(2)
        evaluate(parse("a || !a"))                        # => Boolean(True)
    """
    return Evaluator(context, precision, max_depth).evaluate(expr)
