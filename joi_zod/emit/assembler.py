"""Assembles fragments and named declarations into final code text."""

from ..core.types import CompilerOptions
from ..errors import DeclarationConflictError
from .fragment import Fragment, reference


ZOD_IMPORT = 'import { z } from "zod";'

DEFAULT_EXPORT_NAME = "schema"


class DeclarationRegistry:
    """Named declarations produced during one compilation, in completion order."""

    def __init__(self):
        self._bodies: dict[str, str] = {}
        self._paths: dict[str, str] = {}

    def declare(self, name: str, body: Fragment, path: str = "") -> Fragment:
        """Record ``name`` once and return a reference to it."""
        existing = self._bodies.get(name)
        if existing is None:
            self._bodies[name] = body.text
            self._paths[name] = path
        elif existing != body.text:
            raise DeclarationConflictError(
                f"className '{name}' is already declared at {self._paths[name] or '<root>'} "
                "with a different schema",
                path,
            )
        return reference(name)

    def names(self) -> list[str]:
        return list(self._bodies)

    def items(self) -> list[tuple[str, str]]:
        return list(self._bodies.items())

    def __contains__(self, name: str) -> bool:
        return name in self._bodies

    def __len__(self) -> int:
        return len(self._bodies)


class CodeAssembler:
    """Joins declarations and the top-level expression deterministically."""

    def __init__(self, options: CompilerOptions):
        self.options = options

    def _declaration(self, name: str, body: str) -> str:
        lines = [f"export const {name} = {body};"]
        if self.options.type_aliases:
            lines.append(f"export type {name} = z.infer<typeof {name}>;")
        return "\n".join(lines)

    def assemble(
        self,
        top: Fragment,
        declarations: DeclarationRegistry,
        top_name: str | None = None,
    ) -> str:
        """
        Render declarations first, then the top-level expression.

        The expression is left out when the top-level node is itself a
        named declaration.
        """
        blocks = []
        if self.options.module:
            blocks.append(ZOD_IMPORT)

        for name, body in declarations.items():
            blocks.append(self._declaration(name, body))

        if top_name is None:
            if self.options.module:
                blocks.append(self._declaration(DEFAULT_EXPORT_NAME, top.text))
            else:
                blocks.append(top.text)

        return "\n\n".join(blocks)
