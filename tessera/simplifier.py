"""
Rewrite rules for TESSERA.

The simplifier is a fixed, ordered table of algebraic identities. The
evaluator hands it each symbolic node after the node's children have been
reduced; the first rule whose pattern matches fires once and its result is
final. Every rule either shrinks the tree or produces a node no rule
matches, so a single bottom-up pass reaches a fixed point.

Rule DSL (one rule per line, # starts a comment):
    @rule-name: pattern => replacement
    @rule-name "Description": pattern => replacement
    @rule-name: pattern => replacement when guard(?x)

Patterns and replacements are ordinary infix expressions in which ?x is a
wildcard. A wildcard used twice in a pattern only matches when both
subtrees are structurally equal:

    @or-excluded-middle "x || !x = true": ?x || !?x => true

A guard names a predicate from GUARDS applied to the bound subtrees; the
rule fires only if it holds. Rules that replace an operand by a scalar
constant are guarded with scalar(?x) so that k * [1, 2] * 0 keeps its shape.
"""

import logging
import re
from typing import Callable, Dict, Iterator, List, Optional

from .expression import (
    Call, Expression, Wildcard, children, is_array, map_children,
)
from .parser import parse_pattern

logger = logging.getLogger(__name__)

BindingsType = Dict[str, Expression]


# ============================================================
# Pattern Matching
# ============================================================

def extend_bindings(name: str, expr: Expression, bindings: BindingsType) -> Optional[BindingsType]:
    """
    Extend bindings with name -> expr.

    Returns:
        Extended bindings, or None if name is already bound to a different tree
    """
    if name in bindings:
        return bindings if bindings[name] == expr else None
    extended = dict(bindings)
    extended[name] = expr
    return extended


def _same_node(pattern: Expression, expr: Expression) -> bool:
    """Compare everything about two nodes except their children."""
    if type(pattern) is not type(expr):
        return False
    if not children(pattern) and not children(expr):
        return pattern == expr
    for attribute in ("op", "name"):
        if getattr(pattern, attribute, None) != getattr(expr, attribute, None):
            return False
    if getattr(pattern, "shape", None) != getattr(expr, "shape", None):
        return False
    return len(children(pattern)) == len(children(expr))


def match(pattern: Expression, expr: Expression,
          bindings: Optional[BindingsType] = None) -> Optional[BindingsType]:
    """
    Match a pattern against an expression.

    Args:
        pattern: Expression tree that may contain Wildcards
        expr: Expression to match against
        bindings: Bindings from an enclosing match

    Returns:
        Bindings on success, None on failure
    """
    if bindings is None:
        bindings = {}
    if isinstance(pattern, Wildcard):
        return extend_bindings(pattern.name, expr, bindings)
    if not _same_node(pattern, expr):
        return None
    for sub_pattern, sub_expr in zip(children(pattern), children(expr)):
        bindings = match(sub_pattern, sub_expr, bindings)
        if bindings is None:
            return None
    return bindings


def instantiate(template: Expression, bindings: BindingsType) -> Expression:
    """Replace each Wildcard in template by its bound expression."""
    if isinstance(template, Wildcard):
        return bindings[template.name]
    if not children(template):
        return template
    return map_children(template, lambda sub: instantiate(sub, bindings))


# ============================================================
# Guards
# ============================================================

def scalar_valued(expr: Expression) -> bool:
    """False if a vector or matrix literal appears anywhere in the tree."""
    pending = [expr]
    while pending:
        node = pending.pop()
        if is_array(node):
            return False
        pending.extend(children(node))
    return True


GUARDS: Dict[str, Callable[..., bool]] = {
    "scalar": scalar_valued,
}


def check_condition(condition: Optional[Expression], bindings: BindingsType) -> bool:
    """Apply a rule's guard to its bindings; a rule without one always passes."""
    if condition is None:
        return True
    args = [instantiate(arg, bindings) for arg in condition.args]
    return GUARDS[condition.name](*args)


# ============================================================
# Rules
# ============================================================

class Rule:
    """A named rewrite rule: pattern => replacement, with an optional guard."""

    def __init__(self, name: str, pattern: Expression, replacement: Expression,
                 description: Optional[str] = None, condition: Optional[Call] = None):
        self.name = name
        self.pattern = pattern
        self.replacement = replacement
        self.description = description
        self.condition = condition

    def bind(self, expr: Expression) -> Optional[BindingsType]:
        """Match the pattern and check the guard; None if the rule does not apply."""
        bindings = match(self.pattern, expr)
        if bindings is None or not check_condition(self.condition, bindings):
            return None
        return bindings

    def apply(self, expr: Expression) -> Optional[Expression]:
        """Return the rewritten expression, or None if the rule does not apply."""
        bindings = self.bind(expr)
        if bindings is None:
            return None
        return instantiate(self.replacement, bindings)

    def __repr__(self) -> str:
        base = f"@{self.name}"
        if self.description:
            base += f" \"{self.description}\""
        base = f"{base}: {self.pattern} => {self.replacement}"
        if self.condition is not None:
            base += f" when {self.condition}"
        return base


def parse_rule_line(line: str) -> Optional[Rule]:
    """
    Parse a single rule line.

    Formats:
        @name: pattern => replacement
        @name "description": pattern => replacement
        @name: pattern => replacement when guard(?x)

    Returns: Rule, or None for blank and comment lines

    Raises:
        ValueError: If the line is not a rule or names an unknown guard
    """
    line = line.strip()
    if not line or line.startswith('#'):
        return None

    match_obj = re.match(r'@([\w-]+)\s+"([^"]+)":\s*(.+)', line)
    if match_obj:
        name, description, body = match_obj.groups()
    else:
        match_obj = re.match(r'@([\w-]+):\s*(.+)', line)
        if not match_obj:
            raise ValueError(f"Not a rule: {line}")
        name, body = match_obj.groups()
        description = None

    if '=>' not in body:
        raise ValueError(f"Rule {name} has no '=>'")
    pattern_text, replacement_text = body.split('=>', 1)

    condition = None
    parts = re.split(r'\s+when\s+', replacement_text, maxsplit=1)
    if len(parts) == 2:
        replacement_text = parts[0]
        condition = parse_pattern(parts[1])
        if not isinstance(condition, Call) or condition.name not in GUARDS:
            raise ValueError(f"Rule {name} has an unknown guard: {parts[1].strip()}")

    return Rule(name, parse_pattern(pattern_text), parse_pattern(replacement_text),
                description, condition)


def load_rules(text: str) -> List[Rule]:
    """Parse every rule in a block of DSL text."""
    rules = []
    for line in text.splitlines():
        rule = parse_rule_line(line)
        if rule is not None:
            rules.append(rule)
    return rules


RULES_DSL = '''
# Arithmetic identities
@add-zero "x + 0 = x": ?x + 0 => ?x
@add-zero-left "0 + x = x": 0 + ?x => ?x
@add-self "x + x = 2 * x": ?x + ?x => 2 * ?x
@sub-zero "x - 0 = x": ?x - 0 => ?x
@sub-self "x - x = 0": ?x - ?x => 0 when scalar(?x)
@mul-zero "x * 0 = 0": ?x * 0 => 0 when scalar(?x)
@mul-zero-left "0 * x = 0": 0 * ?x => 0 when scalar(?x)
@mul-one "x * 1 = x": ?x * 1 => ?x
@mul-one-left "1 * x = x": 1 * ?x => ?x
@mul-self "x * x = x ^ 2": ?x * ?x => ?x ^ 2
@div-one "x / 1 = x": ?x / 1 => ?x
@pow-zero "x ^ 0 = 1": ?x ^ 0 => 1 when scalar(?x)
@pow-one "x ^ 1 = x": ?x ^ 1 => ?x
@neg-neg "--x = x": --?x => ?x

# Boolean algebra
@not-not "!!x = x": !!?x => ?x
@and-true "x && true = x": ?x && true => ?x
@and-true-left "true && x = x": true && ?x => ?x
@and-false "x && false = false": ?x && false => false
@and-false-left "false && x = false": false && ?x => false
@or-true "x || true = true": ?x || true => true
@or-true-left "true || x = true": true || ?x => true
@or-false "x || false = x": ?x || false => ?x
@or-false-left "false || x = x": false || ?x => ?x
@or-excluded-middle "x || !x = true": ?x || !?x => true
@or-excluded-middle-left "!x || x = true": !?x || ?x => true
@and-contradiction "x && !x = false": ?x && !?x => false
@and-contradiction-left "!x && x = false": !?x && ?x => false
@and-idempotent "x && x = x": ?x && ?x => ?x
@or-idempotent "x || x = x": ?x || ?x => ?x

# Reflexive comparisons
@eq-self "x == x": ?x == ?x => true
@ne-self "x != x": ?x != ?x => false
@lt-self "x < x": ?x < ?x => false
@le-self "x <= x": ?x <= ?x => true
@gt-self "x > x": ?x > ?x => false
@ge-self "x >= x": ?x >= ?x => true
'''

DEFAULT_RULES: List[Rule] = load_rules(RULES_DSL)


class Simplifier:
    """
    Ordered rule table applied once per node.

    Examples:
        simplifier = Simplifier()
        simplifier.rewrite(parse("a && true"))   # => Variable("a")
        simplifier.rules_matching(parse("a * 1"))
    """

    def __init__(self, rules: Optional[List[Rule]] = None):
        self._rules: List[Rule] = list(DEFAULT_RULES if rules is None else rules)

    def rewrite(self, expr: Expression) -> Expression:
        """Apply the first matching rule to this node only."""
        for rule in self._rules:
            result = rule.apply(expr)
            if result is not None:
                logger.debug("rule %s: %s => %s", rule.name, expr, result)
                return result
        return expr

    def simplify(self, expr: Expression) -> Expression:
        """One bottom-up pass over a whole tree."""
        if children(expr):
            expr = map_children(expr, self.simplify)
        return self.rewrite(expr)

    def rules_matching(self, expr: Expression) -> List[Rule]:
        """Return every rule that applies to this node, in table order."""
        return [rule for rule in self._rules if rule.bind(expr) is not None]

    def list_rules(self) -> List[str]:
        return [repr(rule) for rule in self._rules]

    def __len__(self) -> int:
        return len(self._rules)

    def __iter__(self) -> Iterator[Rule]:
        return iter(self._rules)

    def __repr__(self) -> str:
        return f"Simplifier({len(self._rules)} rules)"
