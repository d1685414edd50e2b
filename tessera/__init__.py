"""
TESSERA - exact and symbolic expression evaluation

Parses infix mathematical text into immutable expression trees and reduces
them under a context of bindings. Results are exact (integers, rationals,
exact complex numbers) wherever possible; unknown names stay symbolic.

Quick Start:
    from tessera import parse, evaluate

    evaluate(parse("6/5 * 3"))                      # => Rational(18, 5)
    evaluate(parse("a || !a"))                      # => Boolean(True)
    evaluate(parse("det([[a, 2], [3, a]])"))        # a ^ 2 - 6
    evaluate(parse("v[1]"), {"v": parse("[1, 2, 3]")})   # => Integer(2)

Sessions:
    from tessera import Engine

    engine = Engine()
    engine.execute("f(x) = x ^ 2 + 1")
    engine.execute("f(3)")                          # => "out[0]: 10"

Grammar (lowest to highest precedence):
    ||   &&   == != < <= > >=   + -   * / %   -x !x   ^   f(..) v[..]
"""

__version__ = "0.1.0"

# Expression model
from .expression import (
    Expression,
    Integer,
    Rational,
    Real,
    Complex,
    Boolean,
    Variable,
    Wildcard,
    Vector,
    Matrix,
    UnaryOp,
    BinaryOp,
    Call,
    Index,
    Assignment,
    FunctionDefinition,
    Statement,
    rational,
    complex_number,
    substitute,
)
from .context import Context, UserFunction, EMPTY_CONTEXT

# Errors
from .errors import (
    TesseraError,
    ParseError,
    NestingTooDeep,
    EvaluationError,
    ExpressionTypeError,
    ShapeError,
    DivisionByZero,
    ExpressionIndexError,
    ArityError,
    DomainError,
    RecursionLimit,
)

# Parsing, printing, evaluation
from .parser import parse, parse_statement, Parser
from .printer import format_expr
from .numeric import NumericTower
from .simplifier import Simplifier, Rule, match, instantiate
from .evaluator import Evaluator, evaluate
from .functions import FUNCTIONS, Function
from .engine import Engine, E

# Public API
__all__ = [
    # Version
    "__version__",
    # Expressions
    "Expression",
    "Integer",
    "Rational",
    "Real",
    "Complex",
    "Boolean",
    "Variable",
    "Wildcard",
    "Vector",
    "Matrix",
    "UnaryOp",
    "BinaryOp",
    "Call",
    "Index",
    "Assignment",
    "FunctionDefinition",
    "Statement",
    "rational",
    "complex_number",
    "substitute",
    # Context
    "Context",
    "UserFunction",
    "EMPTY_CONTEXT",
    # Errors
    "TesseraError",
    "ParseError",
    "NestingTooDeep",
    "EvaluationError",
    "ExpressionTypeError",
    "ShapeError",
    "DivisionByZero",
    "ExpressionIndexError",
    "ArityError",
    "DomainError",
    "RecursionLimit",
    # Core
    "parse",
    "parse_statement",
    "Parser",
    "format_expr",
    "NumericTower",
    "Simplifier",
    "Rule",
    "match",
    "instantiate",
    "Evaluator",
    "evaluate",
    "FUNCTIONS",
    "Function",
    # Sessions
    "Engine",
    "E",
]
