"""Conditional (``when``/``conditional``) compilation.

Zod has no field-dependent schemas, so a guarded property becomes:

- a slot accepting any of its branch schemas, and
- one entry in a ``superRefine`` on the enclosing object that re-validates
  the property against the branch the guard selects.

This approximates Joi, which evaluates the guard before validating the
property; every compiled guard is reported as a warning diagnostic.
"""

import json
from dataclasses import replace

from ..core.types import NodeType, RefScope
from ..describe.ast import DescriptionNode, Flags, Guard, Meta, Reference, is_identifier
from ..errors import MalformedDescriptionError, UnsupportedFeatureError
from .context import EmitContext
from .fragment import INDENT, Fragment, conditional, indent
from .primitive import never_present, union


CHECK_HELPER = [
    "const check = (key, schema) => {",
    "  const result = schema.safeParse(value[key]);",
    "  if (!result.success) {",
    "    for (const issue of result.error.issues) {",
    "      ctx.addIssue({ ...issue, path: [key, ...issue.path] });",
    "    }",
    "  }",
    "};",
]


def _overlay(base: Flags, branch: Flags) -> Flags:
    return Flags(
        presence=branch.presence or base.presence,
        has_default=branch.has_default or base.has_default,
        default=branch.default if branch.has_default else base.default,
        label=branch.label or base.label,
        description=branch.description or base.description,
        strip=branch.strip if branch.strip is not None else base.strip,
        unknown=branch.unknown if branch.unknown is not None else base.unknown,
    )


def merge(base: DescriptionNode, branch: DescriptionNode) -> DescriptionNode:
    """Apply a ``when`` branch to the schema it guards, like Joi's concat."""
    if branch.is_forbidden:
        return DescriptionNode(type=NodeType.FORBIDDEN, flags=Flags(presence=branch.presence), path=branch.path)
    if branch.guards:
        raise UnsupportedFeatureError("conditional", branch.guards[0].path, "nested conditionals")
    if branch.type not in (NodeType.ANY, base.type) and base.type != NodeType.ANY:
        raise MalformedDescriptionError(
            f"Cannot apply a {branch.type.value} branch to a {base.type.value} schema", branch.path
        )

    node_type = base.type if branch.type == NodeType.ANY else branch.type
    keys = base.keys
    if branch.keys is not None:
        merged = dict(base.keys or ())
        merged.update(branch.keys)
        keys = tuple(merged.items())

    return DescriptionNode(
        type=node_type,
        flags=_overlay(base.flags, branch.flags),
        rules=base.rules + branch.rules,
        valids=branch.valids or base.valids,
        allow=base.allow + branch.allow,
        invalids=base.invalids + branch.invalids,
        keys=keys,
        items=base.items + branch.items,
        matches=base.matches + branch.matches,
        meta=Meta(),
        path=branch.path,
    )


def reference_access(reference: Reference, field: str, path: str) -> str:
    """JavaScript expression reading the referenced value inside the refinement."""
    if reference.scope != RefScope.VALUE or reference.ancestor not in (0, 1):
        raise UnsupportedFeatureError(
            "conditional", path, f"reference '{reference.display()}' points outside the enclosing object"
        )
    segments = list(reference.path)
    if reference.ancestor == 0:
        segments.insert(0, field)

    expression = "value"
    for i, segment in enumerate(segments):
        if is_identifier(segment):
            access = f".{segment}"
        else:
            access = f"[{json.dumps(segment)}]"
        if i > 0:
            access = "?." + access.lstrip(".")
        expression += access
    return expression


def _branch(emitter, base: DescriptionNode | None, branch: DescriptionNode | None, ctx: EmitContext) -> Fragment:
    if branch is None:
        return never_present() if base is None else emitter.emit_field(base, ctx)
    node = branch if base is None else merge(base, branch)
    return emitter.emit_field(node, ctx)


def _predicate(emitter, guard: Guard, access: str, ctx: EmitContext) -> list[str]:
    predicates = []
    for case in guard.cases:
        condition = emitter.emit(case.condition, ctx)
        # like Joi, a condition without explicit presence matches an absent value
        if case.condition.presence is None:
            condition = condition.chain("optional")
        test = condition.chain("safeParse", access).text + ".success"
        predicates.append(f"!{test}" if case.negate else test)
    return predicates


def emit_guarded_field(emitter, name: str, node: DescriptionNode, ctx: EmitContext) -> tuple[Fragment, str]:
    """Return the property slot and the statement checking it."""
    if not ctx.options.refinements:
        raise UnsupportedFeatureError(
            "conditional", node.guards[0].path, "the target has no refinement escape hatch"
        )

    if node.type == NodeType.ALTERNATIVES and not node.matches:
        base = None
    else:
        base = replace(node, guards=(), meta=Meta())

    slots: list[Fragment] = []
    checks = []
    for guard in node.guards:
        access = reference_access(guard.reference, name, guard.path)
        predicates = _predicate(emitter, guard, access, ctx)
        branches = [_branch(emitter, base, case.then, ctx) for case in guard.cases]
        otherwise = _branch(emitter, base, guard.otherwise, ctx)

        for fragment in branches + [otherwise]:
            if fragment not in slots:
                slots.append(fragment)

        selected = conditional(
            [(p, b.text) for p, b in zip(predicates, branches)], otherwise.text
        )
        checks.append(f"check({json.dumps(name)}, {selected.text});")
        ctx.warn(
            guard.path,
            f"conditional on '{guard.reference.display()}' for '{name}' is enforced by a superRefine "
            "check; Joi's short-circuit evaluation is approximated",
        )

    return union(slots), "\n".join(checks)


def attach_checks(fragment: Fragment, checks: list[str]) -> Fragment:
    """Chain a single ``superRefine`` running every conditional check."""
    lines = CHECK_HELPER + checks
    body = "".join(f"{INDENT}{indent(line)}\n" for line in lines)
    return fragment.chain("superRefine", "(value, ctx) => {\n" + body + "}")
