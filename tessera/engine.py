"""
Embedding facade for TESSERA.

The Engine keeps what a session needs between statements: the Context of
assignments and function definitions, and the list of previous results,
which is visible to expressions as the vector `out`.

    engine = Engine()
    engine.execute("v = [1, 2, 3]")
    engine.execute("f(x) = x ^ 2")
    engine.execute("f(v[2])")            # => "out[0]: 9"
    engine.evaluate("out[0] + 1")        # => Integer(10)

E builds expression trees without writing node classes by hand:

    E("1 + x")                           # parse
    E.op("+", 1, "x")                    # BinaryOp("+", Integer(1), Variable("x"))
    E.call("det", E.matrix([1, 2], [3, 4]))
"""

import logging
from typing import Iterable, List, Optional, Tuple, Union

from .config import DEFAULT_MAX_DEPTH, DEFAULT_MAX_NESTING, DEFAULT_PRECISION
from .context import Context
from .errors import ParseError, TesseraError
from .evaluator import ContextLike, Evaluator, as_context
from .expression import (
    Assignment, BinaryOp, Boolean, Call, Expression, FunctionDefinition,
    Integer, Matrix, UnaryOp, Variable, Vector, rational,
)
from .functions import FUNCTIONS, categories
from .parser import parse, parse_statement

logger = logging.getLogger(__name__)

OUT = "out"

Operand = Union[Expression, int, bool, str]


# ============================================================
# Expression Builder
# ============================================================

def _lift(value: Operand) -> Expression:
    """Turn Python values into expressions: ints, bools, names."""
    if isinstance(value, Expression):
        return value
    if isinstance(value, bool):
        return Boolean(value)
    if isinstance(value, int):
        return Integer(value)
    if isinstance(value, str):
        return Variable(value)
    raise TypeError(f"Cannot build an expression from {value!r}")


class _ExprBuilder:
    """
    Expression builder for TESSERA.

    Examples:
        from tessera import E

        expr = E("2 * (x + 1)")
        expr = E.op("*", 2, E.op("+", "x", 1))
        x, y = E.vars("x", "y")
        E.op("-", x)                     # unary minus
        E.rat(3, 4)                      # Rational(3, 4)
    """

    def __call__(self, s: str) -> Expression:
        """Parse an infix expression string."""
        return parse(s)

    def rat(self, p: int, q: int = 1) -> Expression:
        """Reduced p/q (an Integer when q divides p)."""
        return rational(p, q)

    def var(self, name: str) -> Variable:
        return Variable(name)

    def vars(self, *names: str) -> Tuple[Variable, ...]:
        """
        Create multiple variables for unpacking.

        Example:
            x, y, z = E.vars("x", "y", "z")
        """
        return tuple(Variable(name) for name in names)

    def op(self, op: str, *args: Operand) -> Expression:
        """
        Build an operator node: one operand for a prefix operator, two for an infix one.

        Examples:
            E.op("+", "x", 1)   -> BinaryOp("+", Variable("x"), Integer(1))
            E.op("!", "p")      -> UnaryOp("!", Variable("p"))
        """
        if len(args) == 1:
            return UnaryOp(op, _lift(args[0]))
        if len(args) == 2:
            return BinaryOp(op, _lift(args[0]), _lift(args[1]))
        raise ValueError(f"Operator {op} takes one or two operands, got {len(args)}")

    def call(self, name: str, *args: Operand) -> Call:
        return Call(name, tuple(_lift(a) for a in args))

    def vector(self, *elements: Operand) -> Vector:
        return Vector(tuple(_lift(e) for e in elements))

    def matrix(self, *rows: Iterable[Operand]) -> Matrix:
        return Matrix(tuple(tuple(_lift(e) for e in row) for row in rows))

    # Defined last: inside the class body these names shadow the builtins.
    def int(self, n: int) -> Expression:
        return Integer(n)

    def bool(self, b: bool) -> Expression:
        return Boolean(b)

    def __repr__(self) -> str:
        return "E (expression builder)"


# Singleton instance
E = _ExprBuilder()


# ============================================================
# Engine
# ============================================================

class Engine:
    """
    A session: context, settings and result history.

    Args:
        context: Initial bindings (a Context or a plain mapping)
        precision: Significant digits for Real arithmetic
        max_depth: Evaluation depth budget
        max_nesting: Parser nesting ceiling
    """

    def __init__(self, context: ContextLike = None, precision: int = DEFAULT_PRECISION,
                 max_depth: int = DEFAULT_MAX_DEPTH, max_nesting: int = DEFAULT_MAX_NESTING):
        self._context = as_context(context)
        self.precision = precision
        self.max_depth = max_depth
        self.max_nesting = max_nesting
        self.outputs: List[Expression] = []

    @property
    def context(self) -> Context:
        """The session's bindings, including `out`."""
        return self._context.bind(OUT, self.out)

    @property
    def out(self) -> Vector:
        """Previous results, oldest first."""
        return Vector(tuple(self.outputs))

    def parse(self, text: str) -> Expression:
        return parse(text, self.max_nesting)

    def evaluate(self, expr: Union[str, Expression]) -> Expression:
        """Evaluate text or an expression in the session's context (does not record it in `out`)."""
        if isinstance(expr, str):
            expr = self.parse(expr)
        evaluator = Evaluator(self.context, self.precision, self.max_depth)
        return evaluator.evaluate(expr)

    def bind(self, name: str, value: Union[str, Expression]) -> 'Engine':
        """Bind a name to an (unevaluated) expression. Returns self for chaining."""
        if isinstance(value, str):
            value = self.parse(value)
        self._context = self._context.bind(name, value)
        return self

    def define(self, name: str, parameters: Iterable[str], body: Union[str, Expression]) -> 'Engine':
        """Define a function name(parameters) = body. Returns self for chaining."""
        if isinstance(body, str):
            body = self.parse(body)
        self._context = self._context.define(name, parameters, body)
        return self

    def run(self, line: str) -> Optional[Expression]:
        """
        Run one statement.

        Assignments and definitions update the context and return None;
        expressions are evaluated, recorded in `out` and returned.

        Raises:
            TesseraError: On a parse or evaluation failure
        """
        statement = parse_statement(line, self.max_nesting)
        if isinstance(statement, Assignment):
            self.bind(statement.name, statement.value)
            logger.debug("bound %s", statement.name)
            return None
        if isinstance(statement, FunctionDefinition):
            self.define(statement.name, statement.parameters, statement.body)
            logger.debug("defined %s/%d", statement.name, len(statement.parameters))
            return None
        result = self.evaluate(statement)
        self.outputs.append(result)
        return result

    def execute(self, line: str) -> Optional[str]:
        """
        Run one line and render the outcome as text.

        Returns:
            "out[n]: result" for an expression, help text for ? lines,
            "Error: ..." on failure, None for blank lines and statements
        """
        line = line.strip()
        if not line:
            return None
        if line.startswith("?"):
            return self.help(line[1:].strip() or None)
        try:
            result = self.run(line)
        except ParseError as e:
            pointer = e.pointer()
            return f"Error: {e}" + (f"\n{pointer}" if pointer else "")
        except TesseraError as e:
            return f"Error: {e}"
        if result is None:
            return None
        return f"out[{len(self.outputs) - 1}]: {result}"

    def help(self, name: Optional[str] = None) -> str:
        """Overview of all functions, or the description and examples of one."""
        if name is None:
            lines = [
                "Enter an expression, name = expr, or name(x, ...) = expr.",
                "Previous results are available as out[0], out[1], ...",
                "Type ?name for help on a function.",
                "",
            ]
            for category, names in categories().items():
                lines.append(f"{category}: {', '.join(names)}")
            return "\n".join(lines)
        function = FUNCTIONS.get(name)
        if function is None:
            return f"No function named '{name}'"
        lines = [f"{function.signature()} - {function.description}"]
        for given, expected in function.examples:
            lines.append(f"  in: {given}")
            lines.append(f"  out: {expected}")
        if function.categories:
            lines.append(f"Categories: {', '.join(function.categories)}")
        return "\n".join(lines)

    def clear(self) -> 'Engine':
        """Forget all bindings and results."""
        self._context = Context()
        self.outputs = []
        return self

    def __repr__(self) -> str:
        return f"Engine({len(self._context)} bindings, {len(self.outputs)} results)"
