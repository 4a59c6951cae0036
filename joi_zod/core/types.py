"""Core type definitions for the Joi to Zod compiler."""

from enum import Enum
from pydantic import BaseModel, Field


class NodeType(str, Enum):
    STRING = "string"
    NUMBER = "number"
    BOOLEAN = "boolean"
    DATE = "date"
    BINARY = "binary"
    OBJECT = "object"
    ARRAY = "array"
    ALTERNATIVES = "alternatives"
    ANY = "any"
    FORBIDDEN = "forbidden"


class Presence(str, Enum):
    REQUIRED = "required"
    OPTIONAL = "optional"
    FORBIDDEN = "forbidden"


class RefScope(str, Enum):
    VALUE = "value"
    GLOBAL = "global"
    ROOT = "root"
    LOCAL = "local"


class DiagnosticLevel(str, Enum):
    INFO = "info"
    WARNING = "warning"


PRIMITIVE_TYPES = frozenset({
    NodeType.STRING,
    NodeType.NUMBER,
    NodeType.BOOLEAN,
    NodeType.DATE,
    NodeType.BINARY,
    NodeType.ANY,
})

# Joi types that exist but have nothing to compile to
UNSUPPORTED_JOI_TYPES = frozenset({"function", "link", "symbol"})


class CompilerOptions(BaseModel):
    """Settings for one compiler instance."""
    default_presence: Presence = Presence.OPTIONAL
    refinements: bool = True
    strip: bool = True
    strict_objects: bool = False
    max_depth: int = Field(default=64, ge=1)
    type_aliases: bool = False
    module: bool = False


class Diagnostic(BaseModel):
    """A note about an approximation made while compiling."""
    level: DiagnosticLevel
    path: str
    message: str

    def render(self) -> str:
        return f"[{self.level.value}] {self.path or '<root>'}: {self.message}"


class CompileResult(BaseModel):
    """Generated code plus everything learned while producing it."""
    code: str
    declarations: list[str] = Field(default_factory=list)
    diagnostics: list[Diagnostic] = Field(default_factory=list)

    def get_warnings(self) -> list[Diagnostic]:
        return [d for d in self.diagnostics if d.level == DiagnosticLevel.WARNING]
