"""
Evaluation context for TESSERA.

A Context maps names to either a bound value (an Expression) or a
user-defined function (a UserFunction). Contexts are never mutated:
bind() and define() return a new Context, so an evaluation can never
observe a change made by another one.
"""

from dataclasses import dataclass
from typing import Dict, Iterable, Iterator, Mapping, Optional, Tuple, Union

from .expression import Expression


@dataclass(frozen=True)
class UserFunction:
    """A function defined as name(p1, ..., pn) = body."""

    parameters: Tuple[str, ...]
    body: Expression

    def __post_init__(self):
        object.__setattr__(self, "parameters", tuple(self.parameters))

    @property
    def arity(self) -> int:
        return len(self.parameters)


Binding = Union[Expression, UserFunction]


class Context:
    """
    Immutable, dict-like mapping from names to bindings.

        ctx = Context().bind("v", Vector((Integer(1), Integer(2))))
        ctx = ctx.define("f", ["x"], parse("x ^ 2"))
        ctx["v"]          # => Vector(...)
        ctx.get("w")      # => None
        "f" in ctx        # => True
        ctx.function("f") # => UserFunction(("x",), ...)

    Absence of a name is a normal outcome: unbound names evaluate to
    themselves.
    """

    __slots__ = ('_dict',)

    def __init__(self, bindings: Optional[Union[Mapping[str, Binding], Iterable[Tuple[str, Binding]]]] = None):
        """Initialize from a mapping or from (name, binding) pairs."""
        self._dict: Dict[str, Binding] = dict(bindings or {})

    def bind(self, name: str, value: Expression) -> 'Context':
        """Return a new Context with name bound to value."""
        updated = dict(self._dict)
        updated[name] = value
        return Context(updated)

    def define(self, name: str, parameters: Iterable[str], body: Expression) -> 'Context':
        """Return a new Context with a user-defined function."""
        updated = dict(self._dict)
        updated[name] = UserFunction(tuple(parameters), body)
        return Context(updated)

    def without(self, *names: str) -> 'Context':
        """Return a new Context with the given names removed."""
        if not any(name in self._dict for name in names):
            return self
        return Context({k: v for k, v in self._dict.items() if k not in names})

    def value(self, name: str) -> Optional[Expression]:
        """Return the value bound to name, or None if unbound or a function."""
        binding = self._dict.get(name)
        return None if isinstance(binding, UserFunction) else binding

    def function(self, name: str) -> Optional[UserFunction]:
        """Return the user function defined as name, or None."""
        binding = self._dict.get(name)
        return binding if isinstance(binding, UserFunction) else None

    def __getitem__(self, key: str) -> Binding:
        return self._dict[key]

    def get(self, key: str, default=None):
        return self._dict.get(key, default)

    def __contains__(self, key: str) -> bool:
        return key in self._dict

    def keys(self):
        return self._dict.keys()

    def values(self):
        return self._dict.values()

    def items(self):
        return self._dict.items()

    def __iter__(self) -> Iterator[str]:
        return iter(self._dict)

    def __len__(self) -> int:
        return len(self._dict)

    def __repr__(self) -> str:
        return f"Context({self._dict})"

    def __eq__(self, other):
        if isinstance(other, Context):
            return self._dict == other._dict
        return False

    def __hash__(self):
        return hash(tuple(sorted(self._dict.items(), key=lambda item: item[0])))

    def to_dict(self) -> Dict[str, Binding]:
        """Convert to a plain dictionary."""
        return self._dict.copy()


EMPTY_CONTEXT = Context()
