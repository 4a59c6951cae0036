"""Built-in rule emitters for the primitive types."""

import json
import math
import re
from collections.abc import Mapping
from decimal import Decimal

from ..core.types import NodeType
from ..describe.ast import Rule
from ..emit.fragment import Fragment, literal
from ..errors import MalformedDescriptionError, UnsupportedFeatureError
from .registry import RuleContext, RuleEmitter


REGEX_LITERAL_RE = re.compile(r"^/(.*)/([dgimsuy]*)$", re.DOTALL)

NUMBER_TYPES = (int, float, Decimal)


def _number_arg(rule: Rule, ctx: RuleContext, index: int = 0):
    if len(rule.args) <= index:
        raise MalformedDescriptionError(f"Rule '{rule.name}' expects a numeric argument", ctx.path)
    value = rule.args[index]
    if isinstance(value, bool) or not isinstance(value, NUMBER_TYPES):
        raise MalformedDescriptionError(f"Rule '{rule.name}' argument {value!r} is not a number", ctx.path)
    if not _is_finite(value):
        raise MalformedDescriptionError(f"Rule '{rule.name}' argument {value} cannot be written as a literal", ctx.path)
    return value


def _is_finite(value) -> bool:
    if isinstance(value, float):
        return math.isfinite(value)
    if isinstance(value, Decimal):
        return value.is_finite()
    return True


def _no_extra_args(rule: Rule, ctx: RuleContext, arity: int) -> None:
    if any(arg is not None for arg in rule.args[arity:]):
        raise MalformedDescriptionError(f"Rule '{rule.name}' takes {arity} argument(s)", ctx.path)


def method(name: str, arity: int = 0) -> RuleEmitter:
    """Rule that maps to ``.name(<numeric args>)``."""
    def emit(fragment: Fragment, rule: Rule, ctx: RuleContext) -> Fragment:
        args = [literal(_number_arg(rule, ctx, i)) for i in range(arity)]
        _no_extra_args(rule, ctx, arity)
        return fragment.chain(name, *args)
    return emit


def format_method(name: str) -> RuleEmitter:
    """String format check; Joi's format options have no Zod counterpart."""
    def emit(fragment: Fragment, rule: Rule, ctx: RuleContext) -> Fragment:
        return fragment.chain(name)
    return emit


def regex(pattern: str) -> RuleEmitter:
    def emit(fragment: Fragment, rule: Rule, ctx: RuleContext) -> Fragment:
        _no_extra_args(rule, ctx, 0)
        return fragment.chain("regex", pattern)
    return emit


def emit_pattern(fragment: Fragment, rule: Rule, ctx: RuleContext) -> Fragment:
    if not rule.args or not isinstance(rule.args[0], str):
        raise MalformedDescriptionError("Rule 'pattern' expects a regex string", ctx.path)
    options = rule.args[1] if len(rule.args) > 1 else None
    if isinstance(options, Mapping) and options.get("invert"):
        raise UnsupportedFeatureError("inverted pattern", ctx.path)
    source = rule.args[0]
    if REGEX_LITERAL_RE.match(source):
        return fragment.chain("regex", source)
    return fragment.chain("regex", f"new RegExp({json.dumps(source)})")


def emit_hex(fragment: Fragment, rule: Rule, ctx: RuleContext) -> Fragment:
    options = rule.args[0] if rule.args else None
    if isinstance(options, Mapping) and options.get("byteAligned"):
        return fragment.chain("regex", "/^(?:[a-f0-9]{2})+$/i")
    return fragment.chain("regex", "/^[a-f0-9]+$/i")


def emit_trim(fragment: Fragment, rule: Rule, ctx: RuleContext) -> Fragment:
    if rule.args and rule.args[0] is False:
        return fragment
    return fragment.chain("trim")


def emit_case(fragment: Fragment, rule: Rule, ctx: RuleContext) -> Fragment:
    direction = rule.args[0] if rule.args else None
    if direction == "lower":
        return fragment.chain("toLowerCase")
    if direction == "upper":
        return fragment.chain("toUpperCase")
    raise MalformedDescriptionError(f"Rule 'case' direction {direction!r} is not 'lower' or 'upper'", ctx.path)


def emit_ip(fragment: Fragment, rule: Rule, ctx: RuleContext) -> Fragment:
    options = rule.args[0] if rule.args else None
    versions = options.get("version") if isinstance(options, Mapping) else None
    if isinstance(versions, str):
        versions = [versions]
    if versions and len(versions) == 1 and versions[0] in ("ipv4", "ipv6"):
        return fragment.chain("ip", f"{{ version: {json.dumps(versions[0][2:])} }}")
    return fragment.chain("ip")


def emit_sign(fragment: Fragment, rule: Rule, ctx: RuleContext) -> Fragment:
    sign = rule.args[0] if rule.args else None
    if sign not in ("positive", "negative"):
        raise MalformedDescriptionError(f"Rule 'sign' value {sign!r} is not 'positive' or 'negative'", ctx.path)
    return fragment.chain(sign)


def emit_port(fragment: Fragment, rule: Rule, ctx: RuleContext) -> Fragment:
    return fragment.chain("int").chain("min", "0").chain("max", "65535")


def date_bound(name: str) -> RuleEmitter:
    def emit(fragment: Fragment, rule: Rule, ctx: RuleContext) -> Fragment:
        if not rule.args:
            raise MalformedDescriptionError(f"Rule '{name}' expects a date", ctx.path)
        value = rule.args[0]
        if value == "now":
            raise UnsupportedFeatureError("relative date", ctx.path, f"'{name}' compared with 'now'")
        if isinstance(value, bool) or not isinstance(value, (str,) + NUMBER_TYPES) or not _is_finite(value):
            raise MalformedDescriptionError(f"Rule '{name}' argument {value!r} is not a date", ctx.path)
        return fragment.chain(name, f"new Date({literal(value)})")
    return emit


def refinement(predicate: str, message: str, arity: int = 0) -> RuleEmitter:
    """Rule with no native method, written as ``.refine()``.

    ``predicate`` is formatted with the numeric arguments as ``{0}``, ``{1}``.
    """
    def emit(fragment: Fragment, rule: Rule, ctx: RuleContext) -> Fragment:
        ctx.require_refinements(rule)
        args = [literal(_number_arg(rule, ctx, i)) for i in range(arity)]
        _no_extra_args(rule, ctx, arity)
        return fragment.chain(
            "refine",
            predicate.format(*args),
            f"{{ message: {json.dumps(message.format(*args))} }}",
        )
    return emit


BUILTIN_RULES: dict[tuple[NodeType, str], RuleEmitter] = {
    (NodeType.STRING, "min"): method("min", 1),
    (NodeType.STRING, "max"): method("max", 1),
    (NodeType.STRING, "length"): method("length", 1),
    (NodeType.STRING, "email"): format_method("email"),
    (NodeType.STRING, "uri"): format_method("url"),
    (NodeType.STRING, "guid"): format_method("uuid"),
    (NodeType.STRING, "uuid"): format_method("uuid"),
    (NodeType.STRING, "isoDate"): format_method("datetime"),
    (NodeType.STRING, "base64"): format_method("base64"),
    (NodeType.STRING, "pattern"): emit_pattern,
    (NodeType.STRING, "alphanum"): regex("/^[a-zA-Z0-9]+$/"),
    (NodeType.STRING, "token"): regex("/^\\w+$/"),
    (NodeType.STRING, "hex"): emit_hex,
    (NodeType.STRING, "trim"): emit_trim,
    (NodeType.STRING, "case"): emit_case,
    (NodeType.STRING, "ip"): emit_ip,
    (NodeType.NUMBER, "integer"): method("int"),
    (NodeType.NUMBER, "min"): method("min", 1),
    (NodeType.NUMBER, "max"): method("max", 1),
    (NodeType.NUMBER, "greater"): method("gt", 1),
    (NodeType.NUMBER, "less"): method("lt", 1),
    (NodeType.NUMBER, "multiple"): method("multipleOf", 1),
    (NodeType.NUMBER, "positive"): method("positive"),
    (NodeType.NUMBER, "negative"): method("negative"),
    (NodeType.NUMBER, "sign"): emit_sign,
    (NodeType.NUMBER, "port"): emit_port,
    (NodeType.DATE, "min"): date_bound("min"),
    (NodeType.DATE, "max"): date_bound("max"),
    (NodeType.ARRAY, "min"): method("min", 1),
    (NodeType.ARRAY, "max"): method("max", 1),
    (NodeType.ARRAY, "length"): method("length", 1),
    (NodeType.ARRAY, "unique"): refinement(
        "(items) => new Set(items).size === items.length", "Array items must be unique"
    ),
    (NodeType.BINARY, "min"): refinement(
        "(value) => value.length >= {0}", "Must be at least {0} bytes", 1
    ),
    (NodeType.BINARY, "max"): refinement(
        "(value) => value.length <= {0}", "Must be at most {0} bytes", 1
    ),
    (NodeType.BINARY, "length"): refinement(
        "(value) => value.length === {0}", "Must be exactly {0} bytes", 1
    ),
}
