"""Recursive emitter dispatching on node type."""

import logging

from ..core.types import NodeType, Presence
from ..describe.ast import DescriptionNode
from ..errors import UnsupportedFeatureError
from . import conditional
from .context import EmitContext
from .fragment import Fragment, call, object_literal
from .primitive import apply_modifiers, emit_primitive, emit_rules, finish, never_present, require_defined, union


logger = logging.getLogger(__name__)


class FragmentEmitter:
    """Turns DescriptionNode trees into fragments, bottom-up."""

    def emit(self, node: DescriptionNode, ctx: EmitContext) -> Fragment:
        """Emit a node on its own: implicit presence adds nothing.

        A named node is declared once with its structural body; presence,
        default and strip are chained onto the reference at each use.
        """
        ctx = ctx.descend(node.path)
        if node.is_forbidden:
            return never_present()
        fragment = self._emit_node(node, ctx)
        if node.class_name:
            fragment = ctx.declarations.declare(node.class_name, fragment, node.path)
        return apply_modifiers(fragment, node, ctx)

    def emit_field(self, node: DescriptionNode, ctx: EmitContext) -> Fragment:
        """Emit an object property, resolving implicit presence."""
        fragment = self.emit(node, ctx)
        if node.presence is not None or node.is_forbidden or node.flags.has_default:
            return fragment
        if ctx.options.default_presence == Presence.OPTIONAL:
            return fragment.chain("optional")
        if node.type == NodeType.ANY and not node.valids:
            return require_defined(fragment, ctx, node.path)
        return fragment

    def _emit_node(self, node: DescriptionNode, ctx: EmitContext) -> Fragment:
        if node.guards:
            raise UnsupportedFeatureError(
                "conditional", node.guards[0].path, "conditionals are only supported on object properties"
            )

        if node.type == NodeType.OBJECT:
            fragment = self._emit_object(node, ctx)
        elif node.type == NodeType.ARRAY:
            fragment = self._emit_array(node, ctx)
        elif node.type == NodeType.ALTERNATIVES:
            fragment = self._emit_alternatives(node, ctx)
        else:
            return emit_primitive(node, ctx)

        if node.valids or node.invalids:
            raise UnsupportedFeatureError(
                "value list", node.path, f"allowed or invalid values on {node.type.value}"
            )
        return finish(fragment, node, ctx)

    def _emit_object(self, node: DescriptionNode, ctx: EmitContext) -> Fragment:
        entries = []
        checks = []
        for name, child in node.keys or ():
            if child.guards:
                slot, check = conditional.emit_guarded_field(self, name, child, ctx)
                checks.append(check)
            else:
                slot = self.emit_field(child, ctx)
            entries.append((name, slot.text))

        fragment = call("z.object", object_literal(entries))
        if node.keys is None or node.flags.unknown:
            fragment = fragment.chain("passthrough")
        elif not node.keys or ctx.options.strict_objects:
            fragment = fragment.chain("strict")

        fragment = emit_rules(fragment, node, ctx)
        if checks:
            fragment = conditional.attach_checks(fragment, checks)
        return fragment

    def _emit_array(self, node: DescriptionNode, ctx: EmitContext) -> Fragment:
        items = [self.emit(item, ctx) for item in node.items]
        element = union(items).text if items else "z.any()"
        return emit_rules(call("z.array", element), node, ctx)

    def _emit_alternatives(self, node: DescriptionNode, ctx: EmitContext) -> Fragment:
        branches = [self.emit(branch, ctx) for branch in node.matches]
        logger.debug("Alternatives at %s with %d branches", node.path or "<root>", len(branches))
        return emit_rules(union(branches), node, ctx)
