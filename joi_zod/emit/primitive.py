"""Emitters for primitive types and the modifiers shared by every node."""

import logging
from decimal import Decimal

from ..core.types import NodeType, Presence
from ..describe.ast import DescriptionNode, join_path
from ..errors import UnsupportedFeatureError, UnsupportedRuleError
from ..rules.registry import RuleContext
from .context import EmitContext
from .fragment import Fragment, array_literal, call, literal


logger = logging.getLogger(__name__)

BASE_CONSTRUCTORS = {
    NodeType.STRING: "z.string",
    NodeType.NUMBER: "z.number",
    NodeType.BOOLEAN: "z.boolean",
    NodeType.DATE: "z.date",
    NodeType.ANY: "z.any",
}

LITERAL_TYPES = frozenset({NodeType.STRING, NodeType.NUMBER, NodeType.BOOLEAN, NodeType.ANY})

NEVER_PRESENT = Fragment("z.undefined()")


def never_present() -> Fragment:
    """Fragment accepting only an absent value."""
    return NEVER_PRESENT


def base_fragment(node_type: NodeType) -> Fragment:
    if node_type == NodeType.BINARY:
        return call("z.instanceof", "Buffer")
    return call(BASE_CONSTRUCTORS[node_type])


def union(fragments: list[Fragment]) -> Fragment:
    """``z.union([...])``; a single member is returned as is."""
    if len(fragments) == 1:
        return fragments[0]
    return call("z.union", array_literal([f.text for f in fragments]))


def literal_fragment(value) -> Fragment:
    if value is None:
        return call("z.null")
    return call("z.literal", literal(value))


def emit_rules(fragment: Fragment, node: DescriptionNode, ctx: EmitContext) -> Fragment:
    """Chain every rule in order; unknown rules abort compilation."""
    for i, rule in enumerate(node.rules):
        rule_path = join_path(node.path, "rules", i)
        emitter = ctx.rules.get(node.type, rule.name)
        if emitter is None:
            raise UnsupportedRuleError(node.type.value, rule.name, rule_path)
        rule_ctx = RuleContext(
            node_type=node.type,
            path=rule_path,
            refinements=ctx.options.refinements,
        )
        fragment = emitter(fragment, rule, rule_ctx)
    return fragment


def refine(fragment: Fragment, predicate: str, message: str, ctx: EmitContext, path: str, feature: str) -> Fragment:
    if not ctx.options.refinements:
        raise UnsupportedFeatureError(feature, path, "the target has no refinement escape hatch")
    return fragment.chain("refine", predicate, f"{{ message: {literal(message)} }}")


def require_defined(fragment: Fragment, ctx: EmitContext, path: str) -> Fragment:
    """``z.any()`` accepts undefined, so a required any needs a check."""
    return refine(fragment, "(value) => value !== undefined", "Required", ctx, path, "required any")


def emit_valids(node: DescriptionNode, ctx: EmitContext) -> Fragment:
    if node.type not in LITERAL_TYPES:
        raise UnsupportedFeatureError(
            "value list", join_path(node.path, "valids"), f"allowed values on {node.type.value}"
        )
    if node.rules:
        ctx.warn(node.path, "rules are not applied because the value is restricted to a literal set")
    return union([literal_fragment(v) for v in node.valids])


def emit_invalids(fragment: Fragment, node: DescriptionNode, ctx: EmitContext) -> Fragment:
    values = array_literal([literal(v) for v in node.invalids])
    return refine(
        fragment,
        f"(value) => !{values}.includes(value)",
        "Value is not allowed",
        ctx,
        join_path(node.path, "invalids"),
        "invalid values",
    )


def emit_allow(fragment: Fragment, node: DescriptionNode) -> Fragment:
    """Extra accepted literals next to the base type (Joi ``allow``)."""
    extras = [v for v in node.allow if v is not None]
    if extras:
        fragment = union([fragment] + [literal_fragment(v) for v in extras])
    if any(v is None for v in node.allow):
        fragment = fragment.chain("nullable")
    return fragment


def default_literal(node: DescriptionNode) -> str:
    value = node.flags.default
    if node.type == NodeType.DATE and isinstance(value, (str, int, float, Decimal)) and not isinstance(value, bool):
        return f"new Date({literal(value)})"
    return literal(value)


def finish(fragment: Fragment, node: DescriptionNode, ctx: EmitContext) -> Fragment:
    """Apply allow and description; these belong to a named declaration's body."""
    flags = node.flags
    if node.allow:
        fragment = emit_allow(fragment, node)

    if flags.label:
        ctx.note(node.path, f"label '{flags.label}' has no Zod counterpart and is dropped")
    if flags.description:
        fragment = fragment.chain("describe", literal(flags.description))
    return fragment


def apply_modifiers(fragment: Fragment, node: DescriptionNode, ctx: EmitContext) -> Fragment:
    """Apply presence, default and strip, in that order, at the use site."""
    flags = node.flags
    if flags.presence == Presence.OPTIONAL:
        fragment = fragment.chain("optional")
    elif flags.presence == Presence.REQUIRED and node.type == NodeType.ANY and not node.valids:
        fragment = require_defined(fragment, ctx, node.path)

    if flags.has_default:
        fragment = fragment.chain("default", default_literal(node))

    if flags.strip:
        if not ctx.options.strip:
            raise UnsupportedFeatureError("strip", join_path(node.path, "flags", "strip"))
        fragment = fragment.chain("transform", "() => undefined")
    return fragment


def emit_primitive(node: DescriptionNode, ctx: EmitContext) -> Fragment:
    """Base constructor, rules, literal sets, allow and description."""
    fragment = emit_rules(base_fragment(node.type), node, ctx)
    if node.valids:
        fragment = emit_valids(node, ctx)
    if node.invalids:
        fragment = emit_invalids(fragment, node, ctx)

    logger.debug("Emitted %s at %s", node.type.value, node.path or "<root>")
    return finish(fragment, node, ctx)
