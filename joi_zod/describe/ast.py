"""AST node definitions for normalized descriptions."""

import re
from dataclasses import dataclass, field
from typing import Any

from ..core.types import NodeType, Presence, RefScope


IDENTIFIER_RE = re.compile(r"^[A-Za-z_$][A-Za-z0-9_$]*$")


def is_identifier(name: str) -> bool:
    return bool(IDENTIFIER_RE.match(name))


def join_path(base: str, *parts: str | int) -> str:
    """Extend a dot/bracket path, e.g. ``keys.user["first name"].rules[0]``."""
    path = base
    for part in parts:
        if isinstance(part, int):
            path = f"{path}[{part}]"
        elif is_identifier(part):
            path = f"{path}.{part}" if path else part
        else:
            escaped = part.replace("\\", "\\\\").replace('"', '\\"')
            path = f'{path}["{escaped}"]'
    return path


@dataclass(frozen=True)
class Rule:
    """A named constraint, e.g. ``min(10)``."""
    name: str
    args: tuple = ()


@dataclass(frozen=True)
class Flags:
    """Node flags. ``None`` means the flag was not set."""
    presence: Presence | None = None
    has_default: bool = False
    default: Any = None
    label: str | None = None
    description: str | None = None
    strip: bool | None = None
    unknown: bool | None = None


@dataclass(frozen=True)
class Meta:
    """Metadata the compiler understands."""
    class_name: str | None = None


@dataclass(frozen=True)
class Reference:
    """A reference to another value, as used by conditionals."""
    path: tuple[str, ...]
    ancestor: int = 1
    scope: RefScope = RefScope.VALUE

    def display(self) -> str:
        prefixes = {RefScope.GLOBAL: "$", RefScope.ROOT: "/", RefScope.LOCAL: "#"}
        prefix = prefixes.get(self.scope)
        if prefix is None:
            prefix = "" if self.ancestor == 1 else "." * (self.ancestor + 1)
        return prefix + ".".join(self.path)


@dataclass(frozen=True)
class Case:
    """One ``is``/``not`` test and the schema selected when it holds."""
    condition: "DescriptionNode"
    negate: bool = False
    then: "DescriptionNode | None" = None


@dataclass(frozen=True)
class Guard:
    """A field-dependent conditional: ``when()`` or ``conditional()``."""
    reference: Reference
    cases: tuple[Case, ...]
    otherwise: "DescriptionNode | None" = None
    path: str = ""


@dataclass(frozen=True)
class DescriptionNode:
    """A normalized schema node."""
    type: NodeType
    flags: Flags = field(default_factory=Flags)
    rules: tuple[Rule, ...] = ()
    valids: tuple = ()
    allow: tuple = ()
    invalids: tuple = ()
    keys: tuple[tuple[str, "DescriptionNode"], ...] | None = None
    items: tuple["DescriptionNode", ...] = ()
    matches: tuple["DescriptionNode", ...] = ()
    guards: tuple[Guard, ...] = ()
    meta: Meta = field(default_factory=Meta)
    path: str = ""

    @property
    def presence(self) -> Presence | None:
        return self.flags.presence

    @property
    def is_forbidden(self) -> bool:
        return self.type == NodeType.FORBIDDEN or self.flags.presence == Presence.FORBIDDEN

    @property
    def class_name(self) -> str | None:
        return self.meta.class_name

    def get_key(self, name: str) -> "DescriptionNode | None":
        for key, child in self.keys or ():
            if key == name:
                return child
        return None
