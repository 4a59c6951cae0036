"""Tests for the rule table and the built-in rule emitters."""

import pytest
from joi_zod.compiler import SchemaCompiler
from joi_zod.core.types import CompilerOptions, NodeType
from joi_zod.errors import (
    MalformedDescriptionError,
    UnsupportedFeatureError,
    UnsupportedRuleError,
)
from joi_zod.rules.registry import RuleTable, default_rule_table


def compile_node(raw, **options):
    return SchemaCompiler(CompilerOptions(**options)).compile(raw)


def test_default_table_contents():
    """Test that built-in rules are registered per type."""
    table = default_rule_table()

    assert (NodeType.STRING, "email") in table
    assert (NodeType.NUMBER, "email") not in table
    assert table.list_rules(NodeType.DATE) == [(NodeType.DATE, "min"), (NodeType.DATE, "max")]


def test_default_tables_are_independent():
    """Test that each call returns a fresh table."""
    first = default_rule_table()
    first.register(NodeType.STRING, "creditCard", lambda fragment, rule, ctx: fragment)

    assert (NodeType.STRING, "creditCard") not in default_rule_table()


def test_custom_rule_on_one_compiler():
    """Test that a rule registered on one compiler is invisible to others."""
    raw = {"type": "string", "rules": [{"name": "creditCard"}]}
    table = default_rule_table()
    table.register(
        NodeType.STRING, "creditCard", lambda fragment, rule, ctx: fragment.chain("regex", "/^[0-9]{12,19}$/")
    )

    assert SchemaCompiler(rules=table).compile(raw) == "z.string().regex(/^[0-9]{12,19}$/)"
    with pytest.raises(UnsupportedRuleError):
        SchemaCompiler().compile(raw)


def test_compiler_copies_given_table():
    """Test that registering after construction does not leak into the compiler."""
    table = RuleTable()
    compiler = SchemaCompiler(rules=table)
    table.register(NodeType.STRING, "min", lambda fragment, rule, ctx: fragment)

    assert len(compiler.rules) == 0


def test_unsupported_rule():
    """Test that an unknown rule aborts with type, rule and path."""
    with pytest.raises(UnsupportedRuleError) as exc_info:
        compile_node({
            "type": "object",
            "keys": {"card": {"type": "string", "rules": [{"name": "creditCard"}]}},
        })

    assert exc_info.value.node_type == "string"
    assert exc_info.value.rule_name == "creditCard"
    assert exc_info.value.path == "keys.card.rules[0]"


def test_rule_known_for_other_type():
    """Test that rules are looked up by type as well as name."""
    with pytest.raises(UnsupportedRuleError):
        compile_node({"type": "boolean", "rules": [{"name": "min", "args": {"limit": 1}}]})


def test_string_length_rules():
    """Test min/max with Joi's named arguments."""
    raw = {
        "type": "string",
        "rules": [
            {"name": "min", "args": {"limit": 2}},
            {"name": "max", "args": {"limit": 10}},
        ],
    }

    assert compile_node(raw) == "z.string().min(2).max(10)"


def test_numeric_argument_required():
    """Test that a bound must be a number."""
    with pytest.raises(MalformedDescriptionError):
        compile_node({"type": "string", "rules": [{"name": "min", "args": {"limit": "two"}}]})


def test_string_formats():
    """Test that format options are accepted and ignored."""
    raw = {
        "type": "string",
        "rules": [
            {"name": "email", "args": {"options": {"tlds": {"allow": True}}}},
            {"name": "trim", "args": {"enabled": True}},
            {"name": "case", "args": {"direction": "lower"}},
        ],
    }

    assert compile_node(raw) == "z.string().email().trim().toLowerCase()"


def test_disabled_trim():
    """Test that trim(false) adds nothing."""
    raw = {"type": "string", "rules": [{"name": "trim", "args": {"enabled": False}}]}

    assert compile_node(raw) == "z.string()"


def test_pattern():
    """Test regex literals and plain pattern sources."""
    literal_raw = {"type": "string", "rules": [{"name": "pattern", "args": {"regex": "/^abc$/i"}}]}
    source_raw = {"type": "string", "rules": [{"name": "pattern", "args": {"regex": "^a+$"}}]}

    assert compile_node(literal_raw) == "z.string().regex(/^abc$/i)"
    assert compile_node(source_raw) == 'z.string().regex(new RegExp("^a+$"))'


def test_inverted_pattern():
    """Test that an inverted pattern is unsupported."""
    raw = {
        "type": "string",
        "rules": [{"name": "pattern", "args": {"regex": "/x/", "options": {"invert": True}}}],
    }

    with pytest.raises(UnsupportedFeatureError):
        compile_node(raw)


def test_hex_and_ip():
    """Test rules expressed through regex and ip options."""
    hex_raw = {"type": "string", "rules": [{"name": "hex", "args": {"options": {"byteAligned": True}}}]}
    ip_raw = {"type": "string", "rules": [{"name": "ip", "args": {"options": {"version": ["ipv4"]}}}]}

    assert compile_node(hex_raw) == "z.string().regex(/^(?:[a-f0-9]{2})+$/i)"
    assert compile_node(ip_raw) == 'z.string().ip({ version: "v4" })'


def test_number_rules():
    """Test comparison and sign rules."""
    raw = {
        "type": "number",
        "rules": [
            {"name": "greater", "args": {"limit": 0}},
            {"name": "less", "args": {"limit": 100}},
            {"name": "sign", "args": {"sign": "positive"}},
        ],
    }

    assert compile_node(raw) == "z.number().gt(0).lt(100).positive()"


def test_port():
    """Test that port expands to an integer range."""
    raw = {"type": "number", "rules": [{"name": "port"}]}

    assert compile_node(raw) == "z.number().int().min(0).max(65535)"


def test_date_bounds():
    """Test that date bounds become Date objects."""
    raw = {"type": "date", "rules": [{"name": "min", "args": {"date": "2020-01-01"}}]}

    assert compile_node(raw) == 'z.date().min(new Date("2020-01-01"))'


def test_relative_date_bound():
    """Test that a bound relative to now is unsupported."""
    raw = {"type": "date", "rules": [{"name": "max", "args": {"date": "now"}}]}

    with pytest.raises(UnsupportedFeatureError):
        compile_node(raw)


def test_unique_refinement():
    """Test that unique becomes a refinement."""
    raw = {"type": "array", "items": [{"type": "string"}], "rules": [{"name": "unique"}]}

    assert compile_node(raw) == (
        "z.array(z.string()).refine((items) => new Set(items).size === items.length, "
        '{ message: "Array items must be unique" })'
    )


def test_refinement_rules_need_refinements():
    """Test that refinement-only rules fail when refinements are off."""
    raw = {"type": "binary", "rules": [{"name": "min", "args": {"limit": 2}}]}

    assert compile_node(raw) == (
        'z.instanceof(Buffer).refine((value) => value.length >= 2, { message: "Must be at least 2 bytes" })'
    )
    with pytest.raises(UnsupportedFeatureError) as exc_info:
        compile_node(raw, refinements=False)

    assert exc_info.value.feature == "refinement"


@pytest.mark.parametrize("content", [
    '{"type": "number", "rules": [{"name": "min", "args": [NaN]}]}',
    '{"type": "string", "rules": [{"name": "max", "args": {"limit": Infinity}}]}',
    '{"type": "date", "rules": [{"name": "min", "args": {"date": -Infinity}}]}',
])
def test_non_finite_rule_argument(content):
    """Test that NaN and infinities are rejected as rule arguments."""
    with pytest.raises(MalformedDescriptionError) as exc_info:
        SchemaCompiler().compile_string(content)

    assert exc_info.value.path == "rules[0]"
