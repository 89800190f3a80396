"""
Unit tests for the CSV exporters.

Tests cover:
- grouped continuation layout (main row + continuation rows)
- round trip through the Shopify parser
- metafield columns surviving a round trip
- WooCommerce parent/variation rows and Wix single rows
"""
import csv
import io

import pytest

from catalog_normalizer.export import (
    SHOPIFY_COLUMNS,
    export_grouped_csv,
    export_products,
    export_wix_csv,
    export_woocommerce_csv,
    metafield_column,
)
from catalog_normalizer.io import read_rows
from catalog_normalizer.models import Image, Metafield, OptionDefinition, Product, Variant
from catalog_normalizer.parsers import parse_shopify, parse_wix, parse_woocommerce

pytestmark = pytest.mark.unit


def csv_rows(text):
    return list(csv.DictReader(io.StringIO(text)))


def variant_tuples(product):
    return [(v.option_values, v.price, v.sku) for v in product.variants]


@pytest.fixture
def products():
    return [
        Product(
            handle="tee",
            title="Classic Tee",
            vendor="Acme",
            options=[OptionDefinition(name="Color", values=["Red", "Blue"]), OptionDefinition(name="Size", values=["S", "M"])],
            variants=[
                Variant(option_values=["Red", "S"], price="10.00", compare_at_price="12.00", sku="T-RS"),
                Variant(option_values=["Red", "M"], price="10.00", sku="T-RM"),
                Variant(option_values=["Blue", "S"], price="11.50", sku="T-BS"),
            ],
            images=[
                Image(src="https://cdn.example.com/1.jpg", position=1),
                Image(src="https://cdn.example.com/2.jpg", position=2),
                Image(src="https://cdn.example.com/3.jpg", position=3),
                Image(src="https://cdn.example.com/4.jpg", position=4),
            ],
            metafields=[Metafield(namespace="custom", key="material", value="cotton")],
        ),
        Product(handle="mug", title="Mug", variants=[Variant(price="5", sku="MUG")]),
    ]


class TestGroupedExport:

    def test_main_and_continuation_rows(self, products):
        rows = csv_rows(export_grouped_csv(products))
        tee_rows = [r for r in rows if r["Handle"] == "tee"]
        assert len(tee_rows) == 4
        main, second = tee_rows[0], tee_rows[1]
        assert main["Title"] == "Classic Tee"
        assert main["Option1 Name"] == "Color"
        assert main["Variant SKU"] == "T-RS"
        assert second["Title"] == ""
        assert second["Vendor"] == ""
        assert second["Option1 Name"] == ""
        assert (second["Option1 Value"], second["Option2 Value"], second["Variant SKU"]) == ("Red", "M", "T-RM")
        # fourth image has no variant row to ride on
        assert tee_rows[3]["Variant SKU"] == ""
        assert tee_rows[3]["Image Src"] == "https://cdn.example.com/4.jpg"

    def test_product_without_options_uses_default_title(self, products):
        rows = csv_rows(export_grouped_csv(products))
        mug = [r for r in rows if r["Handle"] == "mug"][0]
        assert (mug["Option1 Name"], mug["Option1 Value"]) == ("Title", "Default Title")

    def test_metafield_columns_appended(self, products):
        text = export_grouped_csv(products)
        header = next(csv.reader(io.StringIO(text)))
        assert header[: len(SHOPIFY_COLUMNS)] == SHOPIFY_COLUMNS
        assert metafield_column("custom", "material") in header

    def test_explicit_columns_are_respected(self, products):
        rows = csv_rows(export_grouped_csv(products, ["Handle", "Variant SKU"]))
        assert list(rows[0].keys()) == ["Handle", "Variant SKU"]

    def test_round_trip(self, products):
        result = parse_shopify(read_rows(export_grouped_csv(products)))
        parsed = {p.handle: p for p in result.products}
        for original in products:
            again = parsed[original.handle]
            assert again.title == original.title
            assert len(again.variants) == len(original.variants)
            assert variant_tuples(again) == variant_tuples(original)
        tee = parsed["tee"]
        assert [i.src for i in tee.images] == [i.src for i in products[0].images]
        assert tee.metafield("custom", "material").value == "cotton"
        assert tee.variants[0].compare_at_price == "12.00"

    def test_round_trip_of_parsed_fixture(self, shopify_csv):
        first = parse_shopify(read_rows(shopify_csv)).products
        second = parse_shopify(read_rows(export_grouped_csv(first))).products
        assert [p.handle for p in second] == [p.handle for p in first]
        for a, b in zip(first, second):
            assert b.title == a.title
            assert variant_tuples(b) == variant_tuples(a)


class TestWooCommerceExport:

    def test_variable_product_rows(self, products):
        rows = csv_rows(export_woocommerce_csv(products))
        parent = rows[0]
        assert parent["Type"] == "variable"
        assert parent["SKU"] == "tee"
        assert parent["Attribute 1 value(s)"] == "Red, Blue"
        variations = [r for r in rows if r["Type"] == "variation"]
        assert len(variations) == 3
        assert all(r["Parent"] == "tee" for r in variations)
        assert (variations[0]["Regular price"], variations[0]["Sale price"]) == ("12.00", "10.00")
        assert rows[-1]["Type"] == "simple"

    def test_reparse(self, products):
        result = parse_woocommerce(read_rows(export_woocommerce_csv(products)))
        assert result.stats.orphan_variations == 0
        tee = result.products[0]
        assert [v.sku for v in tee.variants] == ["T-RS", "T-RM", "T-BS"]
        assert [o.name for o in tee.options] == ["Color", "Size"]


class TestWixExport:

    def test_one_row_per_product_with_discount(self, products):
        rows = csv_rows(export_wix_csv(products))
        assert len(rows) == 2
        tee = rows[0]
        assert tee["productOptionDescription1"] == "Red;Blue"
        assert (tee["price"], tee["discountMode"], tee["discountValue"]) == ("12", "AMOUNT", "2")

    def test_wix_discount_round_trip(self, wix_csv):
        first = parse_wix(read_rows(wix_csv)).products
        second = parse_wix(read_rows(export_wix_csv(first))).products
        v = second[0].variants[0]
        assert (v.price, v.compare_at_price) == ("80", "100")
        assert len(second[0].variants) == 6


class TestExportProducts:

    def test_dispatch_by_platform(self, products):
        assert export_products(products, "shopify") == export_grouped_csv(products)
