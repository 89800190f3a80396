"""
Customer and order normalizers.

Shopify, WooCommerce and BigCommerce customer and order exports are mapped
onto one ``Customer`` / ``Order`` shape. Column maps use dotted paths
(``shipping_address.city``) that land in nested records, numbers are coerced
leniently and counted in ParseStats, and order exports that spread one order
over several line-item rows are folded back into a single ``Order``.
"""
from __future__ import annotations
import logging
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Dict, Iterable, Iterator, List, Optional, Union

from pydantic import BaseModel, Field

from .errors import HeaderValidationError, UnsupportedPlatformError
from .io import RowTable, read_rows, rows_from_records
from .mapping import NormalizedRow, normalize_row
from .normalize import parse_bool, split_list, to_decimal
from .parsers.common import int_value
from .settings import Settings
from .validate import ParseStats


logger = logging.getLogger(__name__)

DEFAULT_CURRENCY = "USD"


class Address(BaseModel):
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    company: Optional[str] = None
    address1: Optional[str] = None
    address2: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    zip: Optional[str] = None
    country: Optional[str] = None
    phone: Optional[str] = None
    email: Optional[str] = None


class LineItem(BaseModel):
    id: Optional[str] = None
    name: Optional[str] = None
    sku: Optional[str] = None
    quantity: int = 0
    price: Decimal = Decimal(0)
    total: Decimal = Decimal(0)


class Customer(BaseModel):
    id: Optional[str] = None
    email: Optional[str] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    phone: Optional[str] = None
    company: Optional[str] = None
    address1: Optional[str] = None
    address2: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    state_code: Optional[str] = None
    zip: Optional[str] = None
    country: Optional[str] = None
    country_code: Optional[str] = None
    tags: List[str] = Field(default_factory=list)
    notes: Optional[str] = None
    customer_group: Optional[str] = None
    created_at: Optional[str] = None
    updated_at: Optional[str] = None
    total_orders: int = 0
    total_spent: Decimal = Decimal(0)
    accepts_marketing: bool = False
    tax_exempt: bool = False
    platform: Optional[str] = None


class Order(BaseModel):
    id: Optional[str] = None
    order_number: Optional[str] = None
    customer_id: Optional[str] = None
    email: Optional[str] = None
    created_at: Optional[str] = None
    updated_at: Optional[str] = None
    status: Optional[str] = None
    financial_status: Optional[str] = None
    fulfillment_status: Optional[str] = None
    total: Decimal = Decimal(0)
    subtotal: Decimal = Decimal(0)
    tax: Decimal = Decimal(0)
    shipping: Decimal = Decimal(0)
    discount: Decimal = Decimal(0)
    discount_tax: Decimal = Decimal(0)
    currency: str = DEFAULT_CURRENCY
    payment_method: Optional[str] = None
    coupon_code: Optional[str] = None
    notes: Optional[str] = None
    shipping_address: Address = Field(default_factory=Address)
    billing_address: Address = Field(default_factory=Address)
    items: List[LineItem] = Field(default_factory=list)
    platform: Optional[str] = None


SHOPIFY_CUSTOMER_FIELD_MAP = {
    "Customer ID": "id",
    "First Name": "first_name",
    "Last Name": "last_name",
    "Email": "email",
    "Company": "company",
    "Address1": "address1",
    "Address2": "address2",
    "City": "city",
    "Province": "state",
    "Province Code": "state_code",
    "Zip": "zip",
    "Country": "country",
    "Country Code": "country_code",
    "Phone": "phone",
    "Accepts Marketing": "accepts_marketing",
    "Total Orders": "total_orders",
    "Total Spent": "total_spent",
    "Tags": "tags",
    "Note": "notes",
    "Tax Exempt": "tax_exempt",
    "Created Date": "created_at",
    "Updated Date": "updated_at",
}

WOOCOMMERCE_CUSTOMER_FIELD_MAP = {
    "Customer ID": "id",
    "First Name (Billing)": "first_name",
    "Last Name (Billing)": "last_name",
    "Company (Billing)": "company",
    "Address 1&2 (Billing)": "address1",
    "City (Billing)": "city",
    "State Code (Billing)": "state",
    "Postcode (Billing)": "zip",
    "Country Code (Billing)": "country",
    "Email (Billing)": "email",
    "Phone (Billing)": "phone",
}

BIGCOMMERCE_CUSTOMER_FIELD_MAP = {
    "Customer ID": "id",
    "First Name": "first_name",
    "Last Name": "last_name",
    "Email": "email",
    "Company": "company",
    "Phone": "phone",
    "Address 1": "address1",
    "Address 2": "address2",
    "City": "city",
    "State": "state",
    "Zip": "zip",
    "Country": "country",
    "Customer Group": "customer_group",
    "Notes": "notes",
    "Date Created": "created_at",
    "Date Modified": "updated_at",
    "Total Orders": "total_orders",
    "Total Spent": "total_spent",
}

SHOPIFY_ORDER_FIELD_MAP = {
    "Id": "id",
    "Name": "order_number",
    "Email": "email",
    "Created at": "created_at",
    "Updated at": "updated_at",
    "Total": "total",
    "Subtotal": "subtotal",
    "Taxes": "tax",
    "Shipping": "shipping",
    "Discount Amount": "discount",
    "Discount Code": "coupon_code",
    "Currency": "currency",
    "Financial Status": "financial_status",
    "Fulfillment Status": "fulfillment_status",
    "Payment Method": "payment_method",
    "Notes": "notes",
    "Lineitem name": "items.name",
    "Lineitem sku": "items.sku",
    "Lineitem quantity": "items.quantity",
    "Lineitem price": "items.price",
    "Billing Name": "billing_address.first_name",
    "Billing Company": "billing_address.company",
    "Billing Address1": "billing_address.address1",
    "Billing Address2": "billing_address.address2",
    "Billing City": "billing_address.city",
    "Billing Province": "billing_address.state",
    "Billing Zip": "billing_address.zip",
    "Billing Country": "billing_address.country",
    "Billing Phone": "billing_address.phone",
    "Shipping Name": "shipping_address.first_name",
    "Shipping Company": "shipping_address.company",
    "Shipping Address1": "shipping_address.address1",
    "Shipping Address2": "shipping_address.address2",
    "Shipping City": "shipping_address.city",
    "Shipping Province": "shipping_address.state",
    "Shipping Zip": "shipping_address.zip",
    "Shipping Country": "shipping_address.country",
    "Shipping Phone": "shipping_address.phone",
}

WOOCOMMERCE_ORDER_FIELD_MAP = {
    "Order ID": "id",
    "Order Number": "order_number",
    "Order Status": "status",
    "Order Date": "created_at",
    "Customer User ID": "customer_id",
    "Customer Note": "notes",
    "Order Currency": "currency",
    "First Name (Billing)": "billing_address.first_name",
    "Last Name (Billing)": "billing_address.last_name",
    "Company (Billing)": "billing_address.company",
    "Address 1&2 (Billing)": "billing_address.address1",
    "City (Billing)": "billing_address.city",
    "State Code (Billing)": "billing_address.state",
    "Postcode (Billing)": "billing_address.zip",
    "Country Code (Billing)": "billing_address.country",
    "Email (Billing)": "billing_address.email",
    "Phone (Billing)": "billing_address.phone",
    "First Name (Shipping)": "shipping_address.first_name",
    "Last Name (Shipping)": "shipping_address.last_name",
    "Address 1&2 (Shipping)": "shipping_address.address1",
    "City (Shipping)": "shipping_address.city",
    "State Code (Shipping)": "shipping_address.state",
    "Postcode (Shipping)": "shipping_address.zip",
    "Country Code (Shipping)": "shipping_address.country",
    "Payment Method Title": "payment_method",
    "Order Subtotal Amount": "subtotal",
    "Order Shipping Amount": "shipping",
    "Order Total Amount": "total",
    "Order Total Tax Amount": "tax",
    "SKU": "items.sku",
    "Item #": "items.id",
    "Item Name": "items.name",
    "Quantity (- Refund)": "items.quantity",
    "Item Cost": "items.price",
    "Coupon Code": "coupon_code",
    "Discount Amount": "discount",
    "Discount Amount Tax": "discount_tax",
}

BIGCOMMERCE_ORDER_FIELD_MAP = {
    "Order ID": "id",
    "Date Created": "created_at",
    "Date Modified": "updated_at",
    "Status": "status",
    "Customer ID": "customer_id",
    "Email": "email",
    "Total": "total",
    "Subtotal": "subtotal",
    "Tax": "tax",
    "Shipping": "shipping",
    "Currency": "currency",
    "Shipping First Name": "shipping_address.first_name",
    "Shipping Last Name": "shipping_address.last_name",
    "Shipping Address 1": "shipping_address.address1",
    "Shipping Address 2": "shipping_address.address2",
    "Shipping City": "shipping_address.city",
    "Shipping State": "shipping_address.state",
    "Shipping Zip": "shipping_address.zip",
    "Shipping Country": "shipping_address.country",
    "Shipping Phone": "shipping_address.phone",
    "Billing First Name": "billing_address.first_name",
    "Billing Last Name": "billing_address.last_name",
    "Billing Address 1": "billing_address.address1",
    "Billing Address 2": "billing_address.address2",
    "Billing City": "billing_address.city",
    "Billing State": "billing_address.state",
    "Billing Zip": "billing_address.zip",
    "Billing Country": "billing_address.country",
    "Billing Phone": "billing_address.phone",
}

CUSTOMER_FIELD_MAPS = {
    "shopify": SHOPIFY_CUSTOMER_FIELD_MAP,
    "woocommerce": WOOCOMMERCE_CUSTOMER_FIELD_MAP,
    "bigcommerce": BIGCOMMERCE_CUSTOMER_FIELD_MAP,
}

ORDER_FIELD_MAPS = {
    "shopify": SHOPIFY_ORDER_FIELD_MAP,
    "woocommerce": WOOCOMMERCE_ORDER_FIELD_MAP,
    "bigcommerce": BIGCOMMERCE_ORDER_FIELD_MAP,
}

RECORD_PLATFORMS = tuple(CUSTOMER_FIELD_MAPS)

# a row needs at least one of these to describe a customer or an order
CUSTOMER_ANCHORS = {
    "shopify": ("Email", "First Name", "Last Name"),
    "woocommerce": ("Email (Billing)", "First Name (Billing)", "Last Name (Billing)"),
    "bigcommerce": ("Customer ID", "Email"),
}

ORDER_ANCHORS = {
    "shopify": ("Name", "Id"),
    "woocommerce": ("Order Number", "Order ID"),
    "bigcommerce": ("Order ID",),
}


@dataclass
class RecordResult:
    records: List = field(default_factory=list)
    stats: ParseStats = field(default_factory=ParseStats)

    def __iter__(self) -> Iterator:
        return iter(self.records)

    def __len__(self) -> int:
        return len(self.records)


def resolve_record_platform(platform: str) -> str:
    key = (platform or "").strip().lower()
    if key not in CUSTOMER_FIELD_MAPS:
        raise UnsupportedPlatformError(platform)
    return key


def _text(norm: NormalizedRow, path: str) -> Optional[str]:
    return norm.get(path).strip() or None


def _lower(norm: NormalizedRow, path: str) -> Optional[str]:
    value = _text(norm, path)
    return value.lower() if value else None


def _money(raw: str, stats: ParseStats, what: str) -> Decimal:
    text = (raw or "").strip()
    if not text:
        return Decimal(0)
    d = to_decimal(text)
    if d is None:
        stats.numeric_defaults += 1
        logger.warning(f"Unparseable {what} {text!r}; using 0")
        return Decimal(0)
    return d


def _address(norm: NormalizedRow, prefix: str) -> Address:
    return Address(**{name: _text(norm, f"{prefix}.{name}") for name in Address.model_fields})


def _line_item(norm: NormalizedRow, stats: ParseStats) -> Optional[LineItem]:
    item = norm.fields.get("items")
    if not isinstance(item, dict) or not any((v or "").strip() for v in item.values()):
        return None
    quantity = int_value(norm.get("items.quantity"), stats, "item quantity")
    price = _money(norm.get("items.price"), stats, "item price")
    return LineItem(
        id=_text(norm, "items.id"),
        name=_text(norm, "items.name"),
        sku=_text(norm, "items.sku"),
        quantity=quantity,
        price=price,
        total=price * quantity,
    )


def normalize_customer(norm: NormalizedRow, platform: str, stats: ParseStats) -> Customer:
    return Customer(
        id=_text(norm, "id"),
        email=_lower(norm, "email"),
        first_name=_text(norm, "first_name"),
        last_name=_text(norm, "last_name"),
        phone=_text(norm, "phone"),
        company=_text(norm, "company"),
        address1=_text(norm, "address1"),
        address2=_text(norm, "address2"),
        city=_text(norm, "city"),
        state=_text(norm, "state"),
        state_code=_text(norm, "state_code"),
        zip=_text(norm, "zip"),
        country=_text(norm, "country"),
        country_code=_text(norm, "country_code"),
        tags=split_list(norm.get("tags")),
        notes=_text(norm, "notes"),
        customer_group=_text(norm, "customer_group"),
        created_at=_text(norm, "created_at"),
        updated_at=_text(norm, "updated_at"),
        total_orders=int_value(norm.get("total_orders"), stats, "total orders"),
        total_spent=_money(norm.get("total_spent"), stats, "total spent"),
        accepts_marketing=parse_bool(norm.get("accepts_marketing")),
        tax_exempt=parse_bool(norm.get("tax_exempt")),
        platform=platform,
    )


def normalize_order(norm: NormalizedRow, platform: str, stats: ParseStats) -> Order:
    item = _line_item(norm, stats)
    return Order(
        id=_text(norm, "id"),
        order_number=_text(norm, "order_number"),
        customer_id=_text(norm, "customer_id"),
        email=_lower(norm, "email") or _lower(norm, "billing_address.email"),
        created_at=_text(norm, "created_at"),
        updated_at=_text(norm, "updated_at"),
        status=_lower(norm, "status"),
        financial_status=_lower(norm, "financial_status"),
        fulfillment_status=_lower(norm, "fulfillment_status"),
        total=_money(norm.get("total"), stats, "order total"),
        subtotal=_money(norm.get("subtotal"), stats, "order subtotal"),
        tax=_money(norm.get("tax"), stats, "order tax"),
        shipping=_money(norm.get("shipping"), stats, "order shipping"),
        discount=_money(norm.get("discount"), stats, "order discount"),
        discount_tax=_money(norm.get("discount_tax"), stats, "order discount tax"),
        currency=_text(norm, "currency") or DEFAULT_CURRENCY,
        payment_method=_text(norm, "payment_method"),
        coupon_code=_text(norm, "coupon_code"),
        notes=_text(norm, "notes"),
        shipping_address=_address(norm, "shipping_address"),
        billing_address=_address(norm, "billing_address"),
        items=[item] if item else [],
        platform=platform,
    )


def _check_anchors(table: RowTable, anchors: tuple, platform: str, settings: Settings) -> None:
    if settings.skip_validation:
        return
    if not any(name in table.index for name in anchors):
        raise HeaderValidationError(platform, list(anchors))


def parse_customer_table(table: RowTable, platform: str, settings: Optional[Settings] = None) -> RecordResult:
    platform = resolve_record_platform(platform)
    settings = settings or Settings()
    _check_anchors(table, CUSTOMER_ANCHORS[platform], platform, settings)
    stats = ParseStats(rows_skipped=table.skipped)
    customers = []
    for row in table:
        stats.rows_read += 1
        norm = normalize_row(row, CUSTOMER_FIELD_MAPS[platform], table.index)
        customers.append(normalize_customer(norm, platform, stats))
    logger.info(f"Parsed {len(customers)} {platform} customers from {stats.rows_read} rows")
    return RecordResult(records=customers, stats=stats)


def parse_order_table(table: RowTable, platform: str, settings: Optional[Settings] = None) -> RecordResult:
    """One Order per order number; repeated rows only add line items."""
    platform = resolve_record_platform(platform)
    settings = settings or Settings()
    _check_anchors(table, ORDER_ANCHORS[platform], platform, settings)
    stats = ParseStats(rows_skipped=table.skipped)
    orders: Dict[str, Order] = {}
    for row in table:
        stats.rows_read += 1
        norm = normalize_row(row, ORDER_FIELD_MAPS[platform], table.index)
        key = _text(norm, "order_number") or _text(norm, "id")
        if key is None:
            stats.rows_skipped += 1
            logger.warning(f"Skipping row {stats.rows_read}: no order number or ID")
            continue
        order = orders.get(key)
        if order is None:
            orders[key] = normalize_order(norm, platform, stats)
            continue
        item = _line_item(norm, stats)
        if item is not None:
            order.items.append(item)
            logger.debug(f"Order {key}: added line item {item.sku or item.name}")
    logger.info(f"Parsed {len(orders)} {platform} orders from {stats.rows_read} rows")
    return RecordResult(records=list(orders.values()), stats=stats)


def _table(source: Union[str, Iterable[dict]], anchors: tuple) -> RowTable:
    if isinstance(source, str):
        return read_rows(source, anchors=anchors)
    return rows_from_records(list(source), anchors=anchors)


def parse_customers(
    source: Union[str, Iterable[dict]],
    platform: str,
    settings: Optional[Settings] = None,
) -> RecordResult:
    """Parse a customer export (CSV text or row dicts) into Customer records."""
    platform = resolve_record_platform(platform)
    return parse_customer_table(_table(source, CUSTOMER_ANCHORS[platform]), platform, settings)


def parse_orders(
    source: Union[str, Iterable[dict]],
    platform: str,
    settings: Optional[Settings] = None,
) -> RecordResult:
    """Parse an order export (CSV text or row dicts) into Order records."""
    platform = resolve_record_platform(platform)
    return parse_order_table(_table(source, ORDER_ANCHORS[platform]), platform, settings)
