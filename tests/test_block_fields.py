"""Tests for hash, array and nested-array block fields."""

from types import SimpleNamespace

import pytest

from apistem.dsl.block_field import ArrayBlockField, BlockField, HashBlockField, NestedArrayField
from apistem.dsl.blocks import FieldsBlock
from apistem.dsl.configuration import Configuration
from apistem.errors import ConfigurationError
from apistem.render import RenderContext


def render(block_field, model, **context_options):
    context = RenderContext(models=[model], **context_options)
    return block_field.run_on(model, context, context.helper_instance)


def test_for_type_picks_the_block_class():
    """Test that hash, array and array-of-arrays map to their block classes."""
    assert isinstance(BlockField.for_type("a", "hash"), HashBlockField)
    assert isinstance(BlockField.for_type("a", "array"), ArrayBlockField)
    assert isinstance(BlockField.for_type("a", "array", {"item_type": "array"}), NestedArrayField)
    with pytest.raises(ConfigurationError):
        BlockField.for_type("a", "string")


def test_hash_block_without_source_groups_fields_of_the_same_model():
    """Test that a non-executable hash block renders sub-fields from the model itself."""
    model = SimpleNamespace(id=1, title="Roadmap", description="Next quarter")
    builder = FieldsBlock(Configuration())
    with builder.fields("summary") as summary:
        summary.field("title", "string")
        summary.field("description", "string")
    block = builder.configuration["summary"]

    assert block.executable(model) is False
    assert render(block, model) == {"title": "Roadmap", "description": "Next quarter"}


def test_hash_block_evaluates_an_intermediate_model():
    """Test that a hash block with dynamic renders sub-fields from the evaluated value."""
    owner = SimpleNamespace(name="bob")
    model = SimpleNamespace(id=1, title="Roadmap", owner=owner)
    builder = FieldsBlock(Configuration())
    with builder.fields("owner_info", dynamic=lambda helper, model: model.owner) as owner_info:
        owner_info.field("name", "string")
        owner_info.field("title", "string", use_parent_value=False)
    block = builder.configuration["owner_info"]

    assert render(block, model) == {"name": "bob", "title": "Roadmap"}


def test_hash_block_uses_a_same_named_attribute():
    """Test that a hash block named like a model attribute evaluates it."""
    model = SimpleNamespace(id=1, settings=SimpleNamespace(theme="dark"))
    builder = FieldsBlock(Configuration())
    with builder.fields("settings") as settings:
        settings.field("theme", "string")

    assert render(builder.configuration["settings"], model) == {"theme": "dark"}


def test_array_block_renders_each_element():
    """Test that an array block renders one dict per evaluated element."""
    model = SimpleNamespace(id=1, tasks=[SimpleNamespace(name="a"), SimpleNamespace(name="b")])
    builder = FieldsBlock(Configuration())
    with builder.fields("tasks", "array") as tasks:
        tasks.field("name", "string")

    assert render(builder.configuration["tasks"], model) == [{"name": "a"}, {"name": "b"}]


def test_array_block_renders_none_as_empty_list():
    """Test that a missing sequence renders as an empty list."""
    model = SimpleNamespace(id=1, tasks=None)
    builder = FieldsBlock(Configuration())
    with builder.fields("tasks", "array") as tasks:
        tasks.field("name", "string")

    assert render(builder.configuration["tasks"], model) == []


def test_array_block_without_source_or_attribute_raises():
    """Test that an array block with nothing to evaluate is a configuration error."""
    model = SimpleNamespace(id=1)
    builder = FieldsBlock(Configuration())
    with builder.fields("missing", "array") as missing:
        missing.field("name", "string")

    with pytest.raises(ConfigurationError):
        render(builder.configuration["missing"], model)


def test_nested_array_block_renders_one_dict_per_element():
    """Test that item_type=array renders a flat list of sub-field dicts."""
    model = SimpleNamespace(id=1, tasks=[SimpleNamespace(name="a"), SimpleNamespace(name="b")])
    builder = FieldsBlock(Configuration())
    with builder.fields("tasks", "array", item_type="array") as tasks:
        tasks.field("name", "string")

    assert render(builder.configuration["tasks"], model) == [{"name": "a"}, {"name": "b"}]


def test_sub_fields_honor_optional_and_conditionals():
    """Test that sub-fields gate themselves against the parent model."""
    model = SimpleNamespace(id=1, title="Roadmap", secret="s3cret")
    builder = FieldsBlock(Configuration())
    with builder.fields("summary") as summary:
        summary.field("title", "string")
        summary.field("secret", "string", optional=True)
    block = builder.configuration["summary"]

    assert render(block, model) == {"title": "Roadmap"}
    assert render(block, model, optional_fields=["secret"]) == {"title": "Roadmap", "secret": "s3cret"}


def test_with_options_merges_into_every_declaration():
    """Test that with_options applies to nested declarations and unions if clauses."""
    builder = FieldsBlock(Configuration())
    with builder.with_options(if_="is_admin") as admin:
        admin.field("secret", "string")
        admin.field("other", "string", if_="is_owner")

    assert builder.configuration["secret"].conditionals == ["is_admin"]
    assert builder.configuration["other"].conditionals == ["is_admin", "is_owner"]
