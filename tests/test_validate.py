"""
Unit tests for validators, deduplicators and product finalization.

Tests cover:
- the variant validity predicate
- default variant substitution
- image dedup by src with position collisions
- empty metafield pruning
- option / option value normalization
"""
import pytest

from catalog_normalizer.models import Image, Metafield, OptionDefinition, Product, Variant
from catalog_normalizer.validate import (
    MISSING_OPTION_VALUE,
    ParseStats,
    dedupe_images,
    drop_empty_metafields,
    finalize_product,
    is_valid_variant,
)

pytestmark = pytest.mark.unit


class TestIsValidVariant:

    @pytest.mark.parametrize(
        "variant",
        [
            Variant(price=" 10 "),
            Variant(sku="ABC"),
            Variant(option_values=["Red"]),
        ],
    )
    def test_valid(self, variant):
        assert is_valid_variant(variant)

    @pytest.mark.parametrize(
        "variant",
        [
            Variant(),
            Variant(price="  ", sku=" "),
            Variant(option_values=["default title"]),
            Variant(option_values=["", "M"]),
        ],
    )
    def test_invalid(self, variant):
        assert not is_valid_variant(variant)


class TestFinalizeProduct:

    def test_all_invalid_variants_become_one_default(self):
        stats = ParseStats()
        product = Product(handle="p", variants=[Variant(), Variant(option_values=["Default Title"])])
        finalize_product(product, stats)
        assert len(product.variants) == 1
        v = product.variants[0]
        assert v.price == "0"
        assert v.sku == ""
        assert v.option_values == ["", "", ""]
        assert product.options == []
        assert stats.invalid_variants == 2
        assert stats.default_variants == 1

    def test_no_variants_at_all_gets_default(self):
        product = finalize_product(Product(handle="p"))
        assert len(product.variants) == 1

    def test_skip_validation_keeps_invalid_variants(self):
        product = Product(handle="p", variants=[Variant(), Variant(price="5")])
        finalize_product(product, skip_validation=True)
        assert len(product.variants) == 2

    def test_options_follow_used_slots(self):
        product = Product(
            handle="p",
            options=[OptionDefinition(name="Color", values=["Blue", "Red", "Green"]), OptionDefinition(name="Size")],
            variants=[
                Variant(option_values=["Red", "S"], price="1"),
                Variant(option_values=["Blue", "M"], price="1"),
                Variant(option_values=["Red", "M"], price="1"),
            ],
        )
        finalize_product(product)
        assert [o.name for o in product.options] == ["Color", "Size"]
        assert product.options[0].values == ["Blue", "Red"]
        assert product.options[1].values == ["S", "M"]

    def test_missing_option_value_is_filled(self):
        product = Product(
            handle="p",
            variants=[Variant(option_values=["Red", "S"], price="1"), Variant(option_values=["Blue"], price="1")],
        )
        finalize_product(product)
        assert [o.name for o in product.options] == ["Option1", "Option2"]
        assert product.variants[1].option_values == ["Blue", MISSING_OPTION_VALUE, ""]

    def test_declared_options_beyond_used_slots_are_dropped(self):
        product = Product(
            handle="p",
            options=[OptionDefinition(name="Color"), OptionDefinition(name="Size")],
            variants=[Variant(option_values=["Red"], price="1")],
        )
        finalize_product(product)
        assert [o.name for o in product.options] == ["Color"]

    def test_empty_metafields_are_dropped(self):
        product = Product(
            handle="p",
            metafields=[Metafield(namespace="custom", key="a", value=""), Metafield(namespace="custom", key="b", value="x")],
        )
        finalize_product(product)
        assert [m.key for m in product.metafields] == ["b"]


class TestDedupeImages:

    def test_duplicate_src_keeps_first_position(self):
        images = [Image(src="x", position=1), Image(src="y", position=2), Image(src="x", position=3)]
        out = dedupe_images(images)
        assert [(i.src, i.position) for i in out] == [("x", 1), ("y", 2)]

    def test_src_compared_after_trim(self):
        out = dedupe_images([Image(src=" x ", position=1), Image(src="x", position=2)])
        assert len(out) == 1

    def test_position_collision_moves_after_max(self):
        out = dedupe_images([Image(src="a", position=2), Image(src="b", position=2), Image(src="c", position=1)])
        assert [(i.src, i.position) for i in out] == [("a", 2), ("b", 3), ("c", 1)]


class TestDropEmptyMetafields:

    def test_whitespace_only_values_are_dropped(self):
        out = drop_empty_metafields([Metafield(namespace="n", key="k", value="  ")])
        assert out == []
