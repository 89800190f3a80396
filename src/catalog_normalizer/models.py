"""
Canonical product model shared by every parser, builder and exporter.

Parsers mutate these objects while consuming rows; once a product has been
finalized (see validate.finalize_product) it is treated as read-only.
"""
from __future__ import annotations
from typing import List, Literal, Optional

from pydantic import BaseModel, Field, field_validator


SINGLE_LINE_TEXT = "single_line_text_field"
MAX_OPTIONS = 3
DEFAULT_OPTION_NAME = "Title"
DEFAULT_OPTION_VALUE = "Default Title"

Status = Literal["active", "draft"]
WeightUnit = Literal["kg", "g", "lb", "oz"]
InventoryPolicy = Literal["continue", "deny"]


class Metafield(BaseModel):
    namespace: str
    key: str
    value: str = ""
    type: str = SINGLE_LINE_TEXT


class Image(BaseModel):
    src: str
    position: int = Field(default=1, ge=1)
    alt: str = ""


class OptionDefinition(BaseModel):
    name: str
    values: List[str] = Field(default_factory=list)


class Variant(BaseModel):
    option_values: List[str] = Field(default_factory=lambda: [""] * MAX_OPTIONS)
    price: str = ""
    compare_at_price: Optional[str] = None
    sku: str = ""
    barcode: str = ""
    weight: float = 0.0
    weight_unit: WeightUnit = "kg"
    inventory_quantity: int = 0
    inventory_policy: InventoryPolicy = "deny"
    inventory_management: str = "shopify"
    requires_shipping: bool = True
    taxable: bool = True

    @field_validator("option_values")
    @classmethod
    def _pad_option_values(cls, v: List[str]) -> List[str]:
        if len(v) > MAX_OPTIONS:
            raise ValueError(f"at most {MAX_OPTIONS} option values are supported")
        return [x or "" for x in v] + [""] * (MAX_OPTIONS - len(v))

    @property
    def title(self) -> str:
        return " / ".join(v for v in self.option_values if v) or DEFAULT_OPTION_VALUE


class Product(BaseModel):
    handle: str
    title: str = ""
    body_html: str = ""
    vendor: str = ""
    product_type: str = ""
    product_category: str = ""
    tags: List[str] = Field(default_factory=list)
    status: Status = "active"
    collections: List[str] = Field(default_factory=list)
    images: List[Image] = Field(default_factory=list)
    options: List[OptionDefinition] = Field(default_factory=list)
    variants: List[Variant] = Field(default_factory=list)
    metafields: List[Metafield] = Field(default_factory=list)

    def metafield(self, namespace: str, key: str) -> Optional[Metafield]:
        for mf in self.metafields:
            if mf.namespace == namespace and mf.key == key:
                return mf
        return None
