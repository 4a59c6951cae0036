"""Parser for Joi reference keys using a Lark grammar."""

from pathlib import Path
from lark import Lark, Transformer
from lark.exceptions import LarkError

from ..core.types import RefScope
from ..errors import MalformedDescriptionError
from .ast import Reference


GRAMMAR_PATH = Path(__file__).parent / "reference.lark"

REF_PREFIX = "ref:"


class ReferenceTransformer(Transformer):
    """Transform a parsed reference key into a Reference."""

    def global_prefix(self, _):
        return (RefScope.GLOBAL, 0)

    def root_prefix(self, _):
        return (RefScope.ROOT, 0)

    def local_prefix(self, _):
        return (RefScope.LOCAL, 0)

    def ancestor_prefix(self, dots):
        return (RefScope.VALUE, len(dots) - 1)

    def path(self, tokens):
        return tuple(str(t) for t in tokens if t.type == "SEGMENT")

    def start(self, items):
        if len(items) == 2:
            (scope, ancestor), path = items
        else:
            scope, ancestor = RefScope.VALUE, 1
            path = items[0]
        return Reference(path=path, ancestor=ancestor, scope=scope)


class ReferenceParser:
    """Parser for reference keys such as ``condVal`` or ``...a.b``."""

    def __init__(self):
        with open(GRAMMAR_PATH) as f:
            grammar = f.read()
        self.parser = Lark(grammar, parser="lalr", transformer=ReferenceTransformer())

    def parse(self, key: str, path: str = "") -> Reference:
        """Parse a reference key, optionally prefixed with ``ref:``."""
        if key.startswith(REF_PREFIX):
            key = key[len(REF_PREFIX):]
        try:
            return self.parser.parse(key)
        except LarkError as e:
            raise MalformedDescriptionError(f"Invalid reference '{key}': {e}", path) from e
