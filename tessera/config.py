"""Default settings shared by the parser, evaluator, engine and CLI."""

# Significant decimal digits carried by Real values.
DEFAULT_PRECISION = 30

# Digits dropped when comparing Real values for equality.
GUARD_DIGITS = 5

# Smallest precision the numeric tower accepts.
MIN_PRECISION = 10

# Evaluation depth budget (nested nodes, bound variables, user function calls).
DEFAULT_MAX_DEPTH = 256

# Nesting ceiling for parentheses, brackets, calls and prefix operators.
DEFAULT_MAX_NESTING = 64
