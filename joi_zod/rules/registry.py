"""Registry mapping (type, rule name) pairs to rule emitters."""

from dataclasses import dataclass
from typing import Callable

from ..core.types import NodeType
from ..describe.ast import Rule
from ..emit.fragment import Fragment
from ..errors import UnsupportedFeatureError


@dataclass(frozen=True)
class RuleContext:
    """What a rule emitter may know about the rule being compiled."""
    node_type: NodeType
    path: str
    refinements: bool = True

    def require_refinements(self, rule: Rule) -> None:
        if not self.refinements:
            raise UnsupportedFeatureError(
                "refinement", self.path, f"rule '{rule.name}' needs a custom refinement"
            )


RuleEmitter = Callable[[Fragment, Rule, RuleContext], Fragment]


class RuleTable:
    """An explicit table of supported rules.

    Every compiler owns its own copy, so registering a rule on one compiler
    never changes another.
    """

    def __init__(self, rules: dict[tuple[NodeType, str], RuleEmitter] | None = None):
        self._rules: dict[tuple[NodeType, str], RuleEmitter] = dict(rules or {})

    def get(self, node_type: NodeType, name: str) -> RuleEmitter | None:
        """Get the emitter for a rule, or None if it is not supported."""
        return self._rules.get((node_type, name))

    def register(self, node_type: NodeType, name: str, emitter: RuleEmitter) -> None:
        """Register (or replace) the emitter for a rule."""
        self._rules[(node_type, name)] = emitter

    def list_rules(self, node_type: NodeType | None = None) -> list[tuple[NodeType, str]]:
        """List supported (type, rule) pairs in registration order."""
        return [key for key in self._rules if node_type is None or key[0] == node_type]

    def copy(self) -> "RuleTable":
        return RuleTable(self._rules)

    def __contains__(self, key: tuple[NodeType, str]) -> bool:
        return key in self._rules

    def __len__(self) -> int:
        return len(self._rules)


def default_rule_table() -> RuleTable:
    """A fresh table holding the built-in rules."""
    from .builtins import BUILTIN_RULES
    return RuleTable(BUILTIN_RULES)
