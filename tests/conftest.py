"""
Shared fixtures: small but realistic exports for each supported platform.
"""
import csv
import io

import pytest

from catalog_normalizer.settings import Settings


def make_csv(header, rows):
    buf = io.StringIO()
    writer = csv.DictWriter(buf, fieldnames=header, restval="")
    writer.writeheader()
    for r in rows:
        writer.writerow(r)
    return buf.getvalue()


SHOPIFY_HEADER = [
    "Handle", "Title", "Body (HTML)", "Vendor", "Type", "Tags", "Published",
    "Option1 Name", "Option1 Value", "Option2 Name", "Option2 Value",
    "Variant SKU", "Variant Grams", "Variant Inventory Qty", "Variant Inventory Policy",
    "Variant Price", "Variant Compare At Price", "Variant Weight Unit",
    "Image Src", "Image Position", "Image Alt Text", "SEO Title", "Status",
    "Gift Wrap?", "Material (product.metafields.custom.material)",
]

SHOPIFY_ROWS = [
    {
        "Handle": "tee", "Title": "Classic Tee", "Body (HTML)": "<p>Soft</p>", "Vendor": "Acme",
        "Type": "Shirts", "Tags": "cotton, summer", "Published": "true",
        "Option1 Name": "Color", "Option1 Value": "Red", "Option2 Name": "Size", "Option2 Value": "S",
        "Variant SKU": "TEE-RED-S", "Variant Grams": "200", "Variant Inventory Qty": "5",
        "Variant Inventory Policy": "deny", "Variant Price": "19.90", "Variant Compare At Price": "25.00",
        "Variant Weight Unit": "g", "Image Src": "https://cdn.example.com/tee-1.jpg", "Image Position": "1",
        "Image Alt Text": "Front", "SEO Title": "Classic Tee | Acme", "Status": "active",
        "Gift Wrap?": "yes", "Material (product.metafields.custom.material)": "cotton",
    },
    {
        "Handle": "tee", "Option1 Value": "Red", "Option2 Value": "M",
        "Variant SKU": "TEE-RED-M", "Variant Grams": "210", "Variant Inventory Qty": "3",
        "Variant Inventory Policy": "deny", "Variant Price": "19.90", "Variant Weight Unit": "g",
        "Image Src": "https://cdn.example.com/tee-2.jpg", "Image Position": "2", "Image Alt Text": "Back",
    },
    {
        "Handle": "tee", "Option1 Value": "Blue", "Option2 Value": "S",
        "Variant SKU": "TEE-BLUE-S", "Variant Grams": "200", "Variant Inventory Qty": "0",
        "Variant Inventory Policy": "continue", "Variant Price": "21.00", "Variant Weight Unit": "g",
    },
    {
        "Handle": "tee", "Image Src": "https://cdn.example.com/tee-3.jpg", "Image Position": "3",
    },
    {
        "Handle": "mug", "Title": "Coffee Mug", "Vendor": "Acme", "Type": "Kitchen", "Published": "false",
        "Option1 Name": "Title", "Option1 Value": "Default Title",
        "Variant SKU": "MUG-1", "Variant Grams": "350", "Variant Inventory Qty": "10",
        "Variant Inventory Policy": "deny", "Variant Price": "9.5", "Variant Weight Unit": "kg",
        "Image Src": "https://cdn.example.com/mug.jpg", "Image Position": "1", "Status": "draft",
    },
]

WOOCOMMERCE_HEADER = [
    "ID", "Type", "SKU", "Name", "Published", "Description", "Tax status", "Stock",
    "Backorders allowed?", "Weight (kg)", "Sale price", "Regular price", "Categories", "Tags",
    "Brands", "Images", "Parent",
    "Attribute 1 name", "Attribute 1 value(s)", "Attribute 2 name", "Attribute 2 value(s)",
]

WOOCOMMERCE_ROWS = [
    {
        "ID": "10", "Type": "variable", "SKU": "HOODIE", "Name": "Hoodie", "Published": "1",
        "Description": "Warm\\nhoodie", "Tax status": "taxable", "Weight (kg)": "0.5",
        "Categories": "Clothing > Hoodies, Sale", "Tags": "winter", "Brands": "Acme",
        "Images": "https://shop.example.com/h1.jpg, https://shop.example.com/h2.jpg",
        "Attribute 1 name": "Color", "Attribute 1 value(s)": "Black, Grey",
        "Attribute 2 name": "Material", "Attribute 2 value(s)": "Cotton",
    },
    {
        "ID": "11", "Type": "variation", "SKU": "HOODIE-BLK", "Name": "Hoodie - Black", "Published": "1",
        "Stock": "4", "Backorders allowed?": "0", "Sale price": "30", "Regular price": "40",
        "Parent": "id:10", "Attribute 1 name": "Color", "Attribute 1 value(s)": "Black",
    },
    {
        "ID": "12", "Type": "variation", "SKU": "HOODIE-GRY", "Name": "Hoodie - Grey", "Published": "1",
        "Stock": "0", "Backorders allowed?": "1", "Regular price": "40",
        "Parent": "HOODIE", "Attribute 1 name": "Color", "Attribute 1 value(s)": "Grey",
    },
    {
        "ID": "13", "Type": "variation", "SKU": "HOODIE-RED", "Name": "Hoodie - Red", "Published": "1",
        "Regular price": "40", "Parent": "999", "Attribute 1 name": "Color", "Attribute 1 value(s)": "Red",
    },
    {
        "ID": "20", "Type": "simple, virtual", "SKU": "EBOOK", "Name": "E-book", "Published": "1",
        "Tax status": "none", "Regular price": "12",
    },
    {
        "ID": "21", "Type": "grouped", "SKU": "BUNDLE", "Name": "Bundle", "Published": "1",
    },
]

WIX_HEADER = [
    "handleId", "fieldType", "name", "description", "productImageUrl", "collection", "sku",
    "ribbon", "price", "visible", "discountMode", "discountValue", "inventory", "weight", "brand",
    "productOptionName1", "productOptionType1", "productOptionDescription1",
    "productOptionName2", "productOptionType2", "productOptionDescription2",
]

WIX_ROWS = [
    {
        "handleId": "product_linen", "fieldType": "Product", "name": "Linen Shirt",
        "description": "<p>Airy</p>",
        "productImageUrl": "abc123.jpg;https://static.example.com/full.jpg",
        "collection": "Shirts;Summer", "sku": "LS-1", "ribbon": "New", "price": "100",
        "visible": "true", "discountMode": "PERCENT", "discountValue": "20", "inventory": "InStock",
        "weight": "0.3", "brand": "Acme",
        "productOptionName1": "Color", "productOptionType1": "DROP_DOWN",
        "productOptionDescription1": "Color:White;Color:Sand",
        "productOptionName2": "Size", "productOptionType2": "DROP_DOWN",
        "productOptionDescription2": "S;M;L",
    },
    {
        "handleId": "product_linen", "fieldType": "Variant", "sku": "LS-1-W-S", "price": "80",
    },
    {
        "handleId": "product_gift", "fieldType": "Product", "name": "Gift Card", "sku": "GC",
        "price": "25", "visible": "false", "inventory": "7",
    },
]


@pytest.fixture
def settings():
    return Settings()


@pytest.fixture
def shopify_csv():
    return make_csv(SHOPIFY_HEADER, SHOPIFY_ROWS)


@pytest.fixture
def woocommerce_csv():
    return make_csv(WOOCOMMERCE_HEADER, WOOCOMMERCE_ROWS)


@pytest.fixture
def wix_csv():
    return make_csv(WIX_HEADER, WIX_ROWS)
