"""Code fragments and the formatting helpers that combine them."""

import json
from collections.abc import Mapping
from dataclasses import dataclass
from decimal import Decimal
from enum import IntEnum
from typing import Any

from ..describe.ast import is_identifier


INDENT = "  "


class Precedence(IntEnum):
    CONDITIONAL = 1
    CALL = 2
    ATOM = 3


@dataclass(frozen=True)
class Fragment:
    """Immutable piece of generated code for one schema node."""
    text: str
    precedence: Precedence = Precedence.CALL

    def chain(self, method: str, *args: str) -> "Fragment":
        """Append ``.method(args)``, parenthesizing loose expressions."""
        target = self.text if self.precedence >= Precedence.CALL else f"({self.text})"
        return Fragment(f"{target}.{method}({', '.join(args)})")

    @property
    def multiline(self) -> bool:
        return "\n" in self.text


def indent(text: str) -> str:
    """Indent every continuation line of ``text`` one level."""
    return text.replace("\n", "\n" + INDENT)


def call(callee: str, *args: str) -> Fragment:
    return Fragment(f"{callee}({', '.join(args)})")


def reference(name: str) -> Fragment:
    return Fragment(name, Precedence.ATOM)


def property_name(name: str) -> str:
    return name if is_identifier(name) else json.dumps(name)


def array_literal(items: list[str]) -> str:
    """Single line unless an item spans lines."""
    if not any("\n" in item for item in items):
        return "[" + ", ".join(items) + "]"
    body = "".join(f"{INDENT}{indent(item)},\n" for item in items)
    return "[\n" + body + "]"


def object_literal(entries: list[tuple[str, str]]) -> str:
    """One property per line, in the given order."""
    if not entries:
        return "{}"
    body = "".join(f"{INDENT}{property_name(key)}: {indent(text)},\n" for key, text in entries)
    return "{\n" + body + "}"


def conditional(cases: list[tuple[str, str]], otherwise: str) -> Fragment:
    """``c1 ? a : c2 ? b : otherwise``."""
    text = otherwise
    for condition, then in reversed(cases):
        text = f"{condition} ? {then} : {text}"
    return Fragment(text, Precedence.CONDITIONAL)


def literal(value: Any) -> str:
    """Serialize a literal exactly as JavaScript source."""
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, int):
        return str(value)
    if isinstance(value, float):
        return repr(value)
    if isinstance(value, Decimal):
        return str(value)
    if isinstance(value, str):
        return json.dumps(value)
    if isinstance(value, (list, tuple)):
        return "[" + ", ".join(literal(v) for v in value) + "]"
    if isinstance(value, Mapping):
        if not value:
            return "{}"
        return "{ " + ", ".join(f"{property_name(k)}: {literal(v)}" for k, v in value.items()) + " }"
    raise ValueError(f"Cannot serialize {type(value).__name__} as a literal")
