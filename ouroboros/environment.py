"""
Compile-time environment.

Owned by the compiler being bootstrapped, but the pipeline needs to read it
once at the end of the target phase, so its shape is fixed here: ordered
bindings plus three monotonic name counters.
"""
import copy
from dataclasses import dataclass, field
from typing import Any, Dict, Iterator, Optional

from ouroboros.errors import EnvironmentFrozenError

BINDING_KINDS = ("value", "function", "macro")


@dataclass
class Binding:
    kind: str
    payload: Any = None

    def __post_init__(self):
        if self.kind not in BINDING_KINDS:
            raise ValueError(f"Unknown binding kind: {self.kind!r}")


@dataclass
class Counters:
    """Variable, gensym and literal counters. Each only ever goes up."""

    variable: int = 0
    gensym: int = 0
    literal: int = 0
    frozen: bool = field(default=False, repr=False, compare=False)

    def _advance(self, name: str) -> int:
        if self.frozen:
            raise EnvironmentFrozenError(f"Cannot allocate a {name} name: environment is frozen")
        value = getattr(self, name) + 1
        setattr(self, name, value)
        return value

    def next_variable(self) -> int:
        return self._advance("variable")

    def next_gensym(self) -> int:
        return self._advance("gensym")

    def next_literal(self) -> int:
        return self._advance("literal")

    def as_dict(self) -> Dict[str, int]:
        return {"variable": self.variable, "gensym": self.gensym, "literal": self.literal}


@dataclass
class Environment:
    bindings: Dict[str, Binding] = field(default_factory=dict)
    counters: Counters = field(default_factory=Counters)
    frozen: bool = False

    def _check_mutable(self, action: str):
        if self.frozen:
            raise EnvironmentFrozenError(f"Cannot {action}: environment is frozen")

    def bind(self, name: str, kind: str, payload: Any = None) -> Binding:
        """Create or replace the global binding for ``name``."""
        self._check_mutable(f"bind {name!r}")
        binding = Binding(kind, payload)
        # Rebinding keeps the original position; order is definition order.
        self.bindings[name] = binding
        return binding

    def lookup(self, name: str) -> Optional[Binding]:
        return self.bindings.get(name)

    def is_macro(self, name: str) -> bool:
        binding = self.bindings.get(name)
        return binding is not None and binding.kind == "macro"

    def __iter__(self) -> Iterator[str]:
        return iter(self.bindings)

    def __len__(self) -> int:
        return len(self.bindings)

    def freeze(self):
        self.frozen = True
        self.counters.frozen = True

    def snapshot(self) -> "Environment":
        """Unfrozen deep copy, for compiling more code without touching this one."""
        clone = Environment(copy.deepcopy(self.bindings), copy.deepcopy(self.counters))
        clone.counters.frozen = False
        return clone
