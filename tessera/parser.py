"""
Infix parser for TESSERA.

Grammar, lowest to highest precedence:

    disjunction   a || b              left-associative
    conjunction   a && b              left-associative
    comparison    a == b, a < b, ...  left-associative
    sum           a + b, a - b        left-associative
    product       a * b, a / b, a % b left-associative
    prefix        -a, !a
    power         a ^ b               right-associative
    postfix       f(args), v[i], m[i, j]

Primaries are numbers (12, 3.075, 2i, 1.5i), identifiers, true/false, the
imaginary unit i, parenthesized expressions and bracketed vector/matrix
literals. A bracket list whose elements are all bracket lists of the same
non-zero length is a Matrix; anything else is a Vector.

Exact values that need an operator to be written are read back as values
when they are written without spaces, the way format_expr prints them:
"1/2" is the Rational 1/2 (in lowest terms) while "1 / 2" stays a division,
"2*i" and "1/2*i" are imaginary, and a real literal plus or minus an
imaginary one ("3 + 4*i", "2*i - 3") is a Complex. The value is the same
either way; only the tree differs.

Statements extend the grammar with two forms that are recognized by
lookahead before the expression parser runs:

    name = expr                 -> Assignment
    name(p1, ..., pn) = expr    -> FunctionDefinition

Binary levels are parsed by precedence climbing in a loop, so long flat
chains cost no stack. Everything that recurses (brackets, parentheses,
calls, prefix operators, exponents) counts against a nesting ceiling, which
bounds both the stack depth and the running time on pathological input.
"""

import re
from math import gcd
from typing import List, NamedTuple, Optional

from .config import DEFAULT_MAX_NESTING
from .errors import NestingTooDeep, ParseError
from .expression import (
    Assignment, BinaryOp, Boolean, Call, Complex, Expression, FunctionDefinition,
    IMAGINARY_UNIT, Index, Integer, Matrix, Rational, Statement, UnaryOp, Variable,
    Vector, Wildcard, ZERO, is_exact, is_exact_zero, rational,
)

RESERVED = {"true", "false", "i"}

# Binary operator -> precedence level (higher binds tighter)
BINARY_PRECEDENCE = {
    "||": 1,
    "&&": 2,
    "==": 3, "!=": 3, "<": 3, "<=": 3, ">": 3, ">=": 3,
    "+": 4, "-": 4,
    "*": 5, "/": 5, "%": 5,
}

_TOKEN_SPEC = [
    ("NUMBER", r"\d+(?:\.\d+)?(?:i(?![A-Za-z0-9_]))?"),
    ("WILDCARD", r"\?[A-Za-z_][A-Za-z0-9_]*"),
    ("IDENT", r"[A-Za-z_][A-Za-z0-9_]*"),
    ("OP", r"\|\||&&|==|!=|<=|>=|[-+*/%^!<>=]"),
    ("PUNCT", r"[()\[\],]"),
    ("SKIP", r"\s+"),
    ("MISMATCH", r"."),
]
_TOKEN_RE = re.compile("|".join(f"(?P<{name}>{pattern})" for name, pattern in _TOKEN_SPEC))


class Token(NamedTuple):
    kind: str
    text: str
    position: int


def tokenize(text: str, patterns: bool = False) -> List[Token]:
    """
    Split text into tokens, ending with an END token.

    Args:
        text: Source text
        patterns: Accept ?name wildcards (simplifier rule patterns only)

    Raises:
        ParseError: On a character that starts no token
    """
    tokens = []
    for m in _TOKEN_RE.finditer(text):
        kind = m.lastgroup
        if kind == "SKIP":
            continue
        if kind == "MISMATCH" or (kind == "WILDCARD" and not patterns):
            raise ParseError(m.start(), "a number, identifier, operator or bracket", text)
        tokens.append(Token(kind, m.group(), m.start()))
    tokens.append(Token("END", "", len(text)))
    return tokens


def number_literal(text: str) -> Expression:
    """Convert a NUMBER token to an exact expression ("3.075" -> 123/40, "2i" -> 2*i)."""
    imaginary = text.endswith("i")
    if imaginary:
        text = text[:-1]
    if "." in text:
        whole, fractional = text.split(".")
        value = rational(int(whole + fractional), 10 ** len(fractional), decimal=True)
    else:
        value = rational(int(text))
    return Complex(ZERO, value) if imaginary else value


def _negated(value: Expression) -> Expression:
    if isinstance(value, Integer):
        return Integer(-value.value)
    return Rational(-value.numerator, value.denominator, value.decimal)


def real_literal(expr: Expression) -> Optional[Expression]:
    """The exact real value of a literal, seeing through one leading minus."""
    if isinstance(expr, (Integer, Rational)):
        return expr
    if (isinstance(expr, UnaryOp) and expr.op == "-"
            and isinstance(expr.operand, (Integer, Rational))):
        return _negated(expr.operand)
    return None


def is_imaginary_literal(expr: Expression) -> bool:
    return isinstance(expr, Complex) and is_exact_zero(expr.real) and is_exact(expr)


class Parser:
    """
    Recursive-descent parser over a token list.

    Examples:
        Parser("1 + 2 * x").parse_expression()
        Parser("f(x) = x ^ 2").parse_statement()
    """

    def __init__(self, text: str, max_nesting: int = DEFAULT_MAX_NESTING,
                 patterns: bool = False):
        self.text = text
        self.max_nesting = max_nesting
        self.tokens = tokenize(text, patterns)
        self.index = 0
        self.depth = 0

    # ============================================================
    # Token helpers
    # ============================================================

    def _peek(self, offset: int = 0) -> Token:
        return self.tokens[min(self.index + offset, len(self.tokens) - 1)]

    def _advance(self) -> Token:
        token = self.tokens[self.index]
        if token.kind != "END":
            self.index += 1
        return token

    def _at(self, text: str) -> bool:
        token = self._peek()
        return token.kind in ("OP", "PUNCT") and token.text == text

    def _expect(self, text: str) -> Token:
        if not self._at(text):
            raise self._error(f"'{text}'")
        return self._advance()

    def _error(self, expected: str) -> ParseError:
        return ParseError(self._peek().position, expected, self.text)

    def _enter(self):
        self.depth += 1
        if self.depth > self.max_nesting:
            raise NestingTooDeep(self._peek().position, self.max_nesting, self.text)

    def _leave(self):
        self.depth -= 1

    def _expect_end(self):
        if self._peek().kind != "END":
            raise self._error("an operator or end of input")

    # ============================================================
    # Entry points
    # ============================================================

    def parse_expression(self) -> Expression:
        expr = self._expression()
        self._expect_end()
        return expr

    def parse_statement(self) -> Statement:
        first = self._peek()
        if first.kind == "IDENT" and first.text not in RESERVED:
            following = self._peek(1)
            if following.kind == "OP" and following.text == "=":
                self.index += 2
                return Assignment(first.text, self.parse_expression())
            parameters = self._definition_head()
            if parameters is not None:
                return FunctionDefinition(first.text, parameters, self.parse_expression())
        return self.parse_expression()

    def _definition_head(self) -> Optional[List[str]]:
        """
        Recognize name(p1, ..., pn) = and consume it, returning the parameter names.

        Leaves the position untouched and returns None if the tokens do not
        form a definition head.
        """
        start = self.index
        self.index += 1
        parameters: List[str] = []
        if self._at("("):
            self._advance()
            if self._at(")"):
                self._advance()
            else:
                while True:
                    token = self._peek()
                    if token.kind != "IDENT" or token.text in RESERVED:
                        break
                    parameters.append(self._advance().text)
                    if self._at(","):
                        self._advance()
                        continue
                    if self._at(")"):
                        self._advance()
                        if self._at("="):
                            self._advance()
                            return parameters
                    break
                self.index = start
                return None
            if self._at("="):
                self._advance()
                return parameters
        self.index = start
        return None

    # ============================================================
    # Expressions
    # ============================================================

    def _expression(self) -> Expression:
        return self._climb(1)

    def _climb(self, min_level: int) -> Expression:
        start = self.index
        left = self._prefix()
        while True:
            token = self._peek()
            level = BINARY_PRECEDENCE.get(token.text) if token.kind == "OP" else None
            if level is None or level < min_level:
                return left
            self._advance()
            right = self._climb(level + 1)
            value = self._literal(token.text, left, right, start)
            left = BinaryOp(token.text, left, right) if value is None else value

    def _contiguous(self, start: int) -> bool:
        """True if the tokens from start up to the current one have no gaps."""
        for before, after in zip(self.tokens[start:self.index], self.tokens[start + 1:self.index]):
            if before.position + len(before.text) != after.position:
                return False
        return True

    def _literal(self, op: str, left: Expression, right: Expression,
                 start: int) -> Optional[Expression]:
        """Read p/q, b*i, a + b*i and b*i - a back as values, or return None."""
        if op in ("/", "*"):
            value = real_literal(left)
            if (op == "/" and isinstance(value, Integer) and isinstance(right, Integer)
                    and right.value > 1 and gcd(value.value, right.value) == 1
                    and self._contiguous(start)):
                return rational(value.value, right.value)
            if (op == "*" and value is not None and right == IMAGINARY_UNIT
                    and self._contiguous(start)):
                return Complex(ZERO, value)
            return None
        if op in ("+", "-"):
            value = real_literal(left)
            if value is not None and is_imaginary_literal(right):
                imag = right.imag if op == "+" else _negated(right.imag)
                return Complex(value, imag)
            if is_imaginary_literal(left) and isinstance(right, (Integer, Rational)):
                return Complex(right if op == "+" else _negated(right), left.imag)
        return None

    def _prefix(self) -> Expression:
        token = self._peek()
        if token.kind == "OP" and token.text in ("-", "!"):
            self._advance()
            self._enter()
            operand = self._prefix()
            self._leave()
            return UnaryOp(token.text, operand)
        return self._power()

    def _power(self) -> Expression:
        base = self._postfix()
        if self._at("^"):
            self._advance()
            self._enter()
            exponent = self._prefix()
            self._leave()
            return BinaryOp("^", base, exponent)
        return base

    def _postfix(self) -> Expression:
        token = self._peek()
        expr = self._primary()
        callable_name = token.kind == "IDENT" and isinstance(expr, Variable)
        while True:
            if self._at("("):
                if not callable_name:
                    raise self._error("an operator (only names can be called)")
                self._advance()
                expr = Call(expr.name, self._arguments(")", allow_empty=True))
                callable_name = False
            elif self._at("["):
                self._advance()
                expr = Index(expr, self._arguments("]", allow_empty=False))
                callable_name = False
            else:
                return expr

    def _arguments(self, closing: str, allow_empty: bool) -> List[Expression]:
        """Parse a comma-separated list up to and including the closing bracket."""
        self._enter()
        items: List[Expression] = []
        if self._at(closing) and allow_empty:
            self._advance()
        else:
            items.append(self._expression())
            while self._at(","):
                self._advance()
                items.append(self._expression())
            self._expect(closing)
        self._leave()
        return items

    def _primary(self) -> Expression:
        token = self._peek()
        if token.kind == "NUMBER":
            self._advance()
            return number_literal(token.text)
        if token.kind == "IDENT":
            self._advance()
            if token.text == "true":
                return Boolean(True)
            if token.text == "false":
                return Boolean(False)
            if token.text == "i":
                return IMAGINARY_UNIT
            return Variable(token.text)
        if token.kind == "WILDCARD":
            self._advance()
            return Wildcard(token.text[1:])
        if self._at("("):
            self._advance()
            self._enter()
            expr = self._expression()
            self._expect(")")
            self._leave()
            return expr
        if self._at("["):
            self._advance()
            return bracket_literal(self._arguments("]", allow_empty=True))
        raise self._error("an expression")


def bracket_literal(elements: List[Expression]) -> Expression:
    """A list of equal-length, non-empty vectors is a Matrix; anything else is a Vector."""
    if elements and all(isinstance(e, Vector) for e in elements):
        width = len(elements[0])
        if width and all(len(e) == width for e in elements):
            return Matrix(tuple(e.elements for e in elements))
    return Vector(tuple(elements))


# ============================================================
# Convenience functions
# ============================================================

def parse(text: str, max_nesting: int = DEFAULT_MAX_NESTING) -> Expression:
    """
    Parse an expression.

    Examples:
        parse("1 + 1")             -> BinaryOp("+", Integer(1), Integer(1))
        parse("[[1, 2], [3, 4]]")  -> Matrix(...)

    Raises:
        ParseError: On malformed input, with the offending position
    """
    return Parser(text, max_nesting).parse_expression()


def parse_statement(text: str, max_nesting: int = DEFAULT_MAX_NESTING) -> Statement:
    """Parse an expression, an assignment (x = ...) or a function definition (f(x) = ...)."""
    return Parser(text, max_nesting).parse_statement()


def parse_pattern(text: str) -> Expression:
    """Parse a simplifier pattern, where ?name denotes a wildcard."""
    return Parser(text, patterns=True).parse_expression()
