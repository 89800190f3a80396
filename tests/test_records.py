"""
Unit tests for the customer and order normalizers.

Tests cover:
- order rows folded by order number into line items
- dotted shipping / billing address paths
- lenient money and quantity coercion with counting
- customer exports for each supported platform
- platform and header errors, CLI JSON output
"""
import json
from decimal import Decimal

import pytest

from catalog_normalizer import cli
from catalog_normalizer.errors import HeaderValidationError, UnsupportedPlatformError
from catalog_normalizer.records import RECORD_PLATFORMS, parse_customers, parse_orders

pytestmark = pytest.mark.unit


@pytest.fixture
def woocommerce_order_rows():
    return [
        {
            "Order Number": "1001", "Order Status": "Processing", "Order Date": "2024-05-01",
            "Email (Billing)": "Ann@Example.com", "First Name (Billing)": "Ann",
            "City (Billing)": "Leeds", "City (Shipping)": "York",
            "Order Subtotal Amount": "30.00", "Order Shipping Amount": "5", "Order Total Amount": "35.00",
            "SKU": "MUG", "Item Name": "Mug", "Quantity (- Refund)": "2", "Item Cost": "10.00",
        },
        {"Order Number": "1001", "SKU": "CUP", "Item Name": "Cup", "Quantity (- Refund)": "1", "Item Cost": "10"},
        {"Order Number": "1002", "Order Status": "Completed", "Order Total Amount": "abc"},
        {"Order Number": "", "SKU": "LOST"},
    ]


class TestOrders:

    @pytest.fixture
    def result(self, woocommerce_order_rows):
        return parse_orders(woocommerce_order_rows, "woocommerce")

    def test_rows_fold_into_orders(self, result):
        assert [o.order_number for o in result] == ["1001", "1002"]
        first = result.records[0]
        assert [i.sku for i in first.items] == ["MUG", "CUP"]
        assert first.items[0].quantity == 2
        assert first.items[0].total == Decimal("20")
        assert result.records[1].items == []

    def test_order_fields(self, result):
        order = result.records[0]
        assert order.status == "processing"
        assert order.email == "ann@example.com"
        assert (order.subtotal, order.shipping, order.total) == (Decimal("30.00"), Decimal("5"), Decimal("35.00"))
        assert order.currency == "USD"
        assert order.platform == "woocommerce"

    def test_addresses_come_from_dotted_paths(self, result):
        order = result.records[0]
        assert order.billing_address.first_name == "Ann"
        assert order.billing_address.city == "Leeds"
        assert order.shipping_address.city == "York"

    def test_skips_and_numeric_defaults_are_counted(self, result):
        assert result.records[1].total == Decimal(0)
        assert result.stats.numeric_defaults == 1
        assert result.stats.rows_skipped == 1
        assert result.stats.rows_read == 3

    def test_shopify_line_item_rows(self):
        text = (
            "Name,Email,Financial Status,Currency,Total,Lineitem name,Lineitem quantity,Lineitem price,Shipping City\n"
            "#1001,a@b.co,Paid,EUR,25.00,Tee,1,20.00,Paris\n"
            "#1001,,,,,Socks,1,5.00,\n"
        )
        result = parse_orders(text, "shopify")
        assert len(result) == 1
        order = result.records[0]
        assert (order.currency, order.financial_status, order.total) == ("EUR", "paid", Decimal("25.00"))
        assert [i.name for i in order.items] == ["Tee", "Socks"]
        assert order.shipping_address.city == "Paris"

    def test_bigcommerce_order_without_items(self):
        result = parse_orders("Order ID,Status,Total,Currency,Billing City\n5,Shipped,1e5000,,Austin\n", "bigcommerce")
        order = result.records[0]
        assert (order.id, order.status, order.currency) == ("5", "shipped", "USD")
        assert order.total == Decimal(0)
        assert order.billing_address.city == "Austin"
        assert result.stats.numeric_defaults == 1

    def test_missing_anchor_columns(self):
        with pytest.raises(HeaderValidationError):
            parse_orders("Foo,Bar\n1,2\n", "bigcommerce")

    def test_unsupported_platform(self):
        with pytest.raises(UnsupportedPlatformError):
            parse_orders("Name\n1\n", "wix")


class TestCustomers:

    def test_shopify_customers(self):
        text = (
            "First Name,Last Name,Email,Accepts Marketing,Total Spent,Total Orders,Tags,Tax Exempt\n"
            'Ann,Lee,ANN@EXAMPLE.COM,yes,120.50,3,"vip, wholesale",no\n'
        )
        customer = parse_customers(text, "shopify").records[0]
        assert customer.email == "ann@example.com"
        assert customer.tags == ["vip", "wholesale"]
        assert customer.accepts_marketing is True
        assert customer.tax_exempt is False
        assert (customer.total_orders, customer.total_spent) == (3, Decimal("120.50"))

    def test_woocommerce_billing_columns(self):
        rows = [{"First Name (Billing)": "Bo", "Email (Billing)": "bo@x.io", "City (Billing)": "Oslo", "Postcode (Billing)": "0150"}]
        customer = parse_customers(rows, "woocommerce").records[0]
        assert (customer.first_name, customer.city, customer.zip) == ("Bo", "Oslo", "0150")
        assert customer.platform == "woocommerce"

    def test_bigcommerce_customer_group_and_bad_count(self):
        rows = [{"Customer ID": "7", "Email": "b@x.io", "Customer Group": "Retail", "Total Orders": "many"}]
        result = parse_customers(rows, "bigcommerce")
        customer = result.records[0]
        assert (customer.id, customer.customer_group, customer.total_orders) == ("7", "Retail", 0)
        assert result.stats.numeric_defaults == 1

    def test_rows_without_identity_are_skipped(self):
        result = parse_customers("Email,First Name,City\n,,Leeds\na@b.co,,\n", "shopify")
        assert len(result) == 1
        assert result.stats.rows_skipped == 1

    def test_platforms(self):
        assert RECORD_PLATFORMS == ("shopify", "woocommerce", "bigcommerce")


class TestRecordsCli:

    def test_orders_written_as_json(self, tmp_path):
        src = tmp_path / "orders.csv"
        src.write_text("Order ID,Status,Email\n5,Shipped,X@Y.CO\n", encoding="utf-8")
        out = tmp_path / "orders.json"
        code = cli.main(["--input", str(src), "--source", "bigcommerce", "--kind", "orders", "--output", str(out)])
        assert code == 0
        orders = json.loads(out.read_text(encoding="utf-8"))
        assert [(o["id"], o["email"], o["currency"]) for o in orders] == [("5", "x@y.co", "USD")]

    def test_products_from_records_only_platform_fail(self, tmp_path, capsys):
        src = tmp_path / "products.csv"
        src.write_text("Name\nMug\n", encoding="utf-8")
        code = cli.main(["--input", str(src), "--source", "bigcommerce"])
        assert code == 1
        assert "Unsupported platform" in capsys.readouterr().err
