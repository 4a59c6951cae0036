"""Tests for end-to-end compilation."""

import pytest
from pathlib import Path
from joi_zod.compiler import SchemaCompiler, load_description, parse_description, to_zod
from joi_zod.core.types import CompilerOptions
from joi_zod.errors import RecursionLimitExceeded, SchemaCompileError


FIXTURES_PATH = Path(__file__).parent / "fixtures"

TEST_SCHEMA_CODE = """\
export const Thing = z.object({
  thing: z.string(),
});

export const Other = z.object({
  other: z.string().optional(),
});

export const Basic = z.union([z.number(), z.string()]).describe("a description for basic");

export const Test = z.object({
  name: z.string().optional(),
  value: z.union([Thing, Other]).optional(),
  basic: Basic.optional(),
}).describe("a test schema definition");"""

BASIC_OBJECT_CODE = """\
z.object({
  name: z.string().describe("Test Schema Name").optional(),
  propertyName1: z.boolean(),
  dateCreated: z.date().optional(),
  count: z.number().optional(),
  int: z.number().int().optional(),
  obj: z.object({}).passthrough().optional(),
})"""


@pytest.fixture
def compiler():
    return SchemaCompiler()


def test_compile_test_schema(compiler):
    """Test that nested named schemas are declared before use."""
    result = compiler.compile_result(load_description(FIXTURES_PATH / "test_schema.json"))

    assert result.code == TEST_SCHEMA_CODE
    assert result.declarations == ["Thing", "Other", "Basic", "Test"]


def test_compile_basic_object(compiler):
    """Test presence handling across primitive properties."""
    assert compiler.compile_file(FIXTURES_PATH / "basic_object.json") == BASIC_OBJECT_CODE


def test_compile_test_list(compiler):
    """Test an array of alternatives with a dropped label."""
    result = compiler.compile_result(load_description(FIXTURES_PATH / "test_list.json"))

    assert result.code == (
        "export const TestList = z.array(z.union([z.boolean(), z.string()]))"
        '.describe("A list of Test object");'
    )
    assert len(result.diagnostics) == 1
    assert result.get_warnings() == []


def test_number_value_set():
    """Test compiling a number restricted to two values."""
    assert to_zod({"type": "number", "valids": [3, 4]}) == "z.union([z.literal(3), z.literal(4)])"


def test_rule_order():
    """Test that rules chain in order after the integer flag."""
    raw = {
        "type": "number",
        "flags": {"integer": True},
        "rules": [
            {"name": "min", "args": [10]},
            {"name": "max", "args": [200]},
            {"name": "multiple", "args": [4]},
        ],
    }

    assert to_zod(raw) == "z.number().int().min(10).max(200).multipleOf(4)"


def test_strip_and_required():
    """Test an optional stripped property next to a required one."""
    raw = {
        "type": "object",
        "keys": {
            "username": {"type": "string", "flags": {"presence": "optional", "result": "strip"}},
            "password": {"type": "string", "flags": {"presence": "required"}},
        },
    }

    assert to_zod(raw) == (
        "z.object({\n"
        "  username: z.string().optional().transform(() => undefined),\n"
        "  password: z.string(),\n"
        "})"
    )


def test_plain_number():
    """Test the smallest possible schema."""
    assert to_zod({"type": "number"}) == "z.number()"


def test_deterministic(compiler):
    """Test that repeated compilation gives identical text."""
    raw = load_description(FIXTURES_PATH / "objet_with_when.json")

    first = compiler.compile(raw)

    assert compiler.compile(raw) == first
    assert SchemaCompiler().compile(raw) == first


def test_declarations_do_not_persist(compiler):
    """Test that named declarations are scoped to one compile call."""
    raw = load_description(FIXTURES_PATH / "test_schema.json")

    compiler.compile(raw)
    result = compiler.compile_result(raw)

    assert result.declarations == ["Thing", "Other", "Basic", "Test"]


def test_compile_string_keeps_decimals(compiler):
    """Test that decimal literals keep their spelling."""
    content = '{"type": "number", "flags": {"default": 0.10}, "valids": [1.50, 2]}'

    assert compiler.compile_string(content) == (
        "z.union([z.literal(1.50), z.literal(2)]).default(0.10)"
    )
    assert parse_description("[1.0]") == [parse_description("1.0")]


def test_recursion_limit():
    """Test that the depth limit is enforced."""
    raw = {"type": "string"}
    for _ in range(10):
        raw = {"type": "array", "items": [raw]}

    assert SchemaCompiler().compile(raw).startswith("z.array(z.array(")
    with pytest.raises(RecursionLimitExceeded):
        SchemaCompiler(CompilerOptions(max_depth=5)).compile(raw)


def test_errors_share_base(compiler):
    """Test that every compile failure derives from SchemaCompileError."""
    with pytest.raises(SchemaCompileError) as exc_info:
        compiler.compile({"type": "object", "keys": {"a": {"type": "widget"}}})

    assert str(exc_info.value) == "Unknown type 'widget' (at keys.a)"


def test_forbidden_named_root(compiler):
    """Test that a forbidden root with a className still produces code."""
    raw = {"type": "string", "flags": {"presence": "forbidden"}, "metas": [{"className": "Gone"}]}

    result = compiler.compile_result(raw)

    assert result.code == "z.undefined()"
    assert result.declarations == []


def test_optional_named_root():
    """Test that modifiers on a named root are kept in the top expression."""
    raw = {"type": "string", "flags": {"presence": "optional"}, "metas": [{"className": "Name"}]}

    assert to_zod(raw) == "export const Name = z.string();\n\nName.optional()"
    assert to_zod(raw, CompilerOptions(module=True)) == (
        'import { z } from "zod";\n'
        "\n"
        "export const Name = z.string();\n"
        "\n"
        "export const schema = Name.optional();"
    )


def test_depth_limit_matches_emission():
    """Test that a tree exactly at the limit compiles and one deeper fails early."""
    at_limit = {"type": "array", "items": [{"type": "array", "items": [{"type": "string"}]}]}
    compiler = SchemaCompiler(CompilerOptions(max_depth=3))

    assert compiler.compile(at_limit) == "z.array(z.array(z.string()))"
    with pytest.raises(RecursionLimitExceeded) as exc_info:
        compiler.compile({"type": "array", "items": [at_limit]})

    assert exc_info.value.path == "items[0].items[0].items[0]"
