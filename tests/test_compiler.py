from __future__ import annotations

import json

import pytest

from html_extractor.compiler import compile_schema
from html_extractor.exceptions import SchemaError
from html_extractor.schemas import (
    CollectorPolicy,
    ElementTarget,
    FieldSpec,
    PresenceTarget,
    Schema,
    SubField,
    TypeDescriptor,
    ValueKind,
)


def _schema(*fields: dict) -> dict:
    return {"name": "Page", "fields": list(fields)}


def test_compiles_plans_in_declaration_order() -> None:
    compiled = compile_schema(_schema(
        {"name": "title", "selector": "h1"},
        {"name": "count", "selector": "#count", "value_type": "integer"},
        {"name": "tags", "selector": ".tag", "collector": "collect"},
    ))

    assert compiled.name == "Page"
    assert compiled.field_names == ["title", "count", "tags"]
    assert [p.index for p in compiled.top_level()] == [0, 1, 2]
    assert compiled.plans[1].value_type == TypeDescriptor(kind=ValueKind.INTEGER)
    # value type derived from the collector when left out
    assert compiled.plans[2].value_type.many is True


def test_accepts_model_dict_and_json_sources() -> None:
    fields = [{"name": "title", "selector": "h1"}]
    from_model = compile_schema(Schema(name="Page", fields=[FieldSpec(name="title", selector="h1")]))
    from_dict = compile_schema({"name": "Page", "fields": fields})
    from_json = compile_schema(json.dumps({"name": "Page", "fields": fields}))

    assert from_model.field_names == from_dict.field_names == from_json.field_names == ["title"]


def test_nested_schemas_form_an_indexed_arena() -> None:
    inner = {"name": "Price", "fields": [
        {"name": "amount", "selector": ".amount", "value_type": "float"},
        {"name": "currency", "selector": ".currency"},
    ]}
    compiled = compile_schema(_schema(
        {"name": "price", "selector": ".price", "target": "element",
         "value_type": {"kind": "schema", "nested": inner}},
        {"name": "title", "selector": "h1"},
    ))

    assert compiled.roots == (0, 3)
    outer = compiled.plans[0]
    assert outer.children == (1, 2)
    assert [p.name for p in compiled.children_of(outer)] == ["amount", "currency"]
    assert all(compiled.plans[i].parent == 0 for i in outer.children)
    assert compiled.plans[2].path == "price.currency"
    assert compiled.plans[3].parent is None


def test_typed_model_mirrors_schema_shape() -> None:
    compiled = compile_schema(_schema(
        {"name": "count", "selector": "#c", "value_type": "integer"},
        {"name": "note", "selector": "#n", "collector": "optional"},
        {"name": "scores", "selector": ".s", "collector": "collect", "value_type": "list[float]"},
    ))

    instance = compiled.model(count=1, note=None, scores=[1.5])
    assert instance.count == 1
    assert instance.note is None
    assert instance.scores == [1.5]
    assert set(compiled.model.model_fields) == {"count", "note", "scores"}


def test_invalid_selector_names_the_field() -> None:
    with pytest.raises(SchemaError) as excinfo:
        compile_schema(_schema({"name": "broken", "selector": "a["}))

    assert excinfo.value.field == "broken"
    assert "selector" in excinfo.value.message


def test_invalid_regex_names_the_field() -> None:
    with pytest.raises(SchemaError) as excinfo:
        compile_schema(_schema({
            "name": "pair", "selector": "#p", "capture": "(unclosed",
            "sub_fields": [{"name": "a"}],
        }))

    assert excinfo.value.field == "pair"
    assert "regex" in excinfo.value.message


def test_capture_group_count_must_match_sub_fields() -> None:
    with pytest.raises(SchemaError) as excinfo:
        compile_schema(_schema({
            "name": "triple", "selector": "#t", "capture": r"(\d+)-(\d+)",
            "sub_fields": {"a": "integer", "b": "integer", "c": "integer"},
        }))

    assert excinfo.value.field == "triple"
    assert "2 capture group(s)" in excinfo.value.message
    assert "3 sub-field(s)" in excinfo.value.message


def test_collect_requires_sequence_type() -> None:
    with pytest.raises(SchemaError, match="sequence"):
        compile_schema(_schema({
            "name": "items", "selector": "li", "collector": "collect", "value_type": "integer",
        }))


@pytest.mark.parametrize("collector", ["single", "optional"])
def test_single_and_optional_reject_sequence_type(collector: str) -> None:
    with pytest.raises(SchemaError, match="non-sequence"):
        compile_schema(_schema({
            "name": "item", "selector": "li", "collector": collector, "value_type": "list[integer]",
        }))


def test_element_target_requires_nested_schema() -> None:
    with pytest.raises(SchemaError, match="nested schema"):
        compile_schema(_schema({"name": "box", "selector": "#box", "target": "element"}))

    with pytest.raises(SchemaError, match="nested schema"):
        compile_schema(_schema({
            "name": "box", "selector": "#box", "target": "element", "value_type": "integer",
        }))


def test_nested_schema_requires_element_target() -> None:
    inner = Schema(fields=[FieldSpec(name="a", selector="a")])
    with pytest.raises(SchemaError, match="element"):
        compile_schema(Schema(fields=[FieldSpec(name="box", selector="#box", value_type=inner)]))


def test_errors_in_nested_schemas_carry_the_full_path() -> None:
    inner = {"fields": [{"name": "bad", "selector": "p[", }]}
    with pytest.raises(SchemaError) as excinfo:
        compile_schema(_schema({
            "name": "outer", "selector": "#o", "target": "element",
            "value_type": {"kind": "schema", "nested": inner},
        }))

    assert excinfo.value.field == "outer.bad"


def test_duplicate_field_names_are_rejected() -> None:
    with pytest.raises(SchemaError, match="duplicate"):
        compile_schema(_schema(
            {"name": "title", "selector": "h1"},
            {"name": "title", "selector": "h2"},
        ))


@pytest.mark.parametrize("name", ["not-an-id", "class", "_hidden", "schema"])
def test_field_names_must_be_usable_identifiers(name: str) -> None:
    with pytest.raises(SchemaError):
        compile_schema(_schema({"name": name, "selector": "h1"}))


def test_sub_fields_without_capture_are_rejected() -> None:
    with pytest.raises(SchemaError, match="no capture"):
        compile_schema(_schema({"name": "x", "selector": "#x", "sub_fields": {"a": "integer"}}))


def test_sub_fields_must_be_scalar() -> None:
    with pytest.raises(SchemaError, match="scalar"):
        compile_schema(_schema({
            "name": "x", "selector": "#x", "capture": "(.*)",
            "sub_fields": [{"name": "a", "value_type": "list[integer]"}],
        }))


def test_capture_cannot_be_combined_with_element_target() -> None:
    inner = {"fields": [{"name": "a", "selector": "a"}]}
    with pytest.raises(SchemaError):
        compile_schema(_schema({
            "name": "x", "selector": "#x", "target": "element", "capture": "(.*)",
            "sub_fields": {"a": "string"}, "value_type": {"kind": "schema", "nested": inner},
        }))


def test_presence_rejects_other_specifiers() -> None:
    with pytest.raises(SchemaError, match="presence"):
        compile_schema(_schema({
            "name": "flag", "selector": "#f", "target": "presence", "collector": "optional",
        }))

    with pytest.raises(SchemaError, match="presence"):
        compile_schema(_schema({
            "name": "flag", "selector": "#f", "target": "presence", "value_type": "integer",
        }))


def test_presence_field_is_boolean() -> None:
    compiled = compile_schema(Schema(fields=[
        FieldSpec(name="flag", selector="#f", target=PresenceTarget()),
    ]))

    assert compiled.plans[0].value_type.kind == ValueKind.BOOLEAN
    assert compiled.plans[0].collector == CollectorPolicy.SINGLE


def test_named_parsers_resolve_through_registry() -> None:
    def thousands(raw: str) -> int:
        return int(raw.replace(",", ""))

    compiled = compile_schema(
        _schema({"name": "n", "selector": "#n", "value_type": "integer", "parser": "thousands"}),
        parsers={"thousands": thousands},
    )

    assert compiled.plans[0].parser is thousands


def test_unknown_parser_name_is_rejected() -> None:
    with pytest.raises(SchemaError, match="unknown parser"):
        compile_schema(_schema({"name": "n", "selector": "#n", "parser": "nope"}))


def test_capture_fields_take_parsers_per_sub_field() -> None:
    schema = Schema(fields=[FieldSpec(
        name="pair", selector="#p", capture="(.*)-(.*)",
        sub_fields=[SubField(name="a", parser=int), SubField(name="b")],
    )])
    compiled = compile_schema(schema)

    assert compiled.plans[0].record is None
    assert compiled.field_names == ["a", "b"]
    assert compiled.plans[0].sub_fields[0].parser is int

    with pytest.raises(SchemaError, match="per sub-field"):
        compile_schema(Schema(fields=[FieldSpec(
            name="pair", selector="#p", capture="(.*)", parser=int, sub_fields=[SubField(name="a")],
        )]))


def test_malformed_source_is_a_schema_error() -> None:
    with pytest.raises(SchemaError, match="invalid schema"):
        compile_schema({"fields": [{"name": "x", "selector": "#x", "target": "sideways"}]})

    with pytest.raises(SchemaError, match="invalid schema"):
        compile_schema('{"fields": [{"name": "x"}]}')


def test_compiled_schema_is_immutable() -> None:
    compiled = compile_schema(_schema({"name": "title", "selector": "h1"}))

    with pytest.raises(Exception):
        compiled.name = "Other"
    with pytest.raises(Exception):
        compiled.plans[0].selector_text = "h2"


def test_collected_captures_get_a_record_type() -> None:
    compiled = compile_schema(_schema({
        "name": "pairs", "selector": ".p", "capture": "(.*)-(.*)", "collector": "collect",
        "sub_fields": {"left": "integer", "right": "string"},
    }))

    record = compiled.plans[0].record
    assert record.__name__ == "Pairs"
    assert record._fields == ("left", "right")
    assert compiled.field_names == ["pairs"]


def test_spread_sub_fields_cannot_shadow_siblings() -> None:
    with pytest.raises(SchemaError, match="already defined") as excinfo:
        compile_schema(_schema(
            {"name": "title", "selector": "h1"},
            {"name": "heading", "selector": "h2", "capture": r"(\d+) (.*)",
             "sub_fields": {"rank": "integer", "title": "string"}},
        ))

    assert excinfo.value.field == "heading"

    # a capture field may reuse its own name for its only sub-field
    compiled = compile_schema(_schema(
        {"name": "foo", "selector": "#foo", "capture": "^foo=(.*)$", "sub_fields": {"foo": "integer"}},
    ))
    assert compiled.field_names == ["foo"]


def test_self_nesting_schema_is_rejected() -> None:
    node_type = TypeDescriptor(
        kind=ValueKind.SCHEMA, nested=Schema(fields=[FieldSpec(name="label", selector="span")])
    )
    tree = Schema(name="Node", fields=[
        FieldSpec(name="label", selector="span"),
        FieldSpec(name="child", selector="div", target=ElementTarget(), value_type=node_type),
    ])
    # close the loop: Node.child is a Node
    object.__setattr__(tree.fields[1].value_type, "nested", tree)

    with pytest.raises(SchemaError, match="nests itself") as excinfo:
        compile_schema(tree)

    assert excinfo.value.field == "child"
