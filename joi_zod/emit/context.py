"""Per-compilation state shared by the emitters."""

from dataclasses import dataclass, field, replace

from ..core.types import CompilerOptions, Diagnostic, DiagnosticLevel
from ..errors import RecursionLimitExceeded
from ..rules.registry import RuleTable
from .assembler import DeclarationRegistry


@dataclass
class EmitContext:
    """Lives for exactly one compile call."""
    options: CompilerOptions
    rules: RuleTable
    declarations: DeclarationRegistry = field(default_factory=DeclarationRegistry)
    diagnostics: list[Diagnostic] = field(default_factory=list)
    depth: int = 0

    def descend(self, path: str) -> "EmitContext":
        if self.depth >= self.options.max_depth:
            raise RecursionLimitExceeded(self.options.max_depth, path)
        return replace(self, depth=self.depth + 1)

    def note(self, path: str, message: str, level: DiagnosticLevel = DiagnosticLevel.INFO) -> None:
        self.diagnostics.append(Diagnostic(level=level, path=path, message=message))

    def warn(self, path: str, message: str) -> None:
        self.note(path, message, DiagnosticLevel.WARNING)
