"""Compiler that turns Joi descriptions into Zod source code."""

import json
import logging
from decimal import Decimal
from pathlib import Path
from typing import Any

from .core.types import CompileResult, CompilerOptions
from .describe.normalizer import DescriptionNormalizer
from .emit.assembler import CodeAssembler
from .emit.context import EmitContext
from .emit.emitter import FragmentEmitter
from .rules.registry import RuleTable, default_rule_table


logger = logging.getLogger(__name__)


class SchemaCompiler:
    """Compiles a Joi ``describe()`` tree to Zod builder code."""

    def __init__(self, options: CompilerOptions | None = None, rules: RuleTable | None = None):
        self.options = options or CompilerOptions()
        self.rules = rules.copy() if rules is not None else default_rule_table()
        self.normalizer = DescriptionNormalizer(max_depth=self.options.max_depth)
        self.emitter = FragmentEmitter()
        self.assembler = CodeAssembler(self.options)

    def compile_result(self, description: Any) -> CompileResult:
        """Compile and keep the declarations and diagnostics."""
        node = self.normalizer.normalize(description)
        ctx = EmitContext(options=self.options, rules=self.rules)

        top = self.emitter.emit(node, ctx)
        # a named root is written as its declaration unless modifiers were chained on
        top_name = None
        if node.class_name in ctx.declarations and top.text == node.class_name:
            top_name = node.class_name
        code = self.assembler.assemble(top, ctx.declarations, top_name)

        logger.debug(
            "Compiled %s schema: %d declaration(s), %d diagnostic(s)",
            node.type.value,
            len(ctx.declarations),
            len(ctx.diagnostics),
        )
        return CompileResult(
            code=code,
            declarations=ctx.declarations.names(),
            diagnostics=ctx.diagnostics,
        )

    def compile(self, description: Any) -> str:
        """Compile a description (raw tree, schema object or node) to code."""
        return self.compile_result(description).code

    def compile_string(self, content: str) -> str:
        """Compile JSON text; numbers keep their exact spelling."""
        return self.compile(parse_description(content))

    def compile_file(self, path: Path) -> str:
        """Read and compile a JSON file holding ``describe()`` output."""
        return self.compile(load_description(path))


def parse_description(content: str) -> Any:
    """Parse JSON, reading floats as Decimal so literals stay exact."""
    return json.loads(content, parse_float=Decimal)


def load_description(path: Path) -> Any:
    with open(path) as f:
        content = f.read()
    return parse_description(content)


def to_zod(description: Any, options: CompilerOptions | None = None) -> str:
    """Compile ``description`` with a fresh compiler."""
    return SchemaCompiler(options).compile(description)
