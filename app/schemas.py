from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field, field_validator

# Column limits
INT_MAX = 2**31 - 1
MAX_LINE_QTY = 1000
MAX_CART_LINES = 100
PHONE_LEN = 32
MAX_PRICE = 10_000_000
MAX_STOCK = 1_000_000


# Order requests
class AddressIn(BaseModel):
    name: str = Field("", max_length=255)
    phone: str = Field("", max_length=PHONE_LEN)
    line1: str = Field(..., min_length=1, max_length=255)
    line2: str = Field("", max_length=255)
    landmark: Optional[str] = Field(None, max_length=255)
    pincode: str = Field("", max_length=32)
    lat: Optional[float] = None
    lng: Optional[float] = None

    @field_validator("lat", "lng", mode="before")
    @classmethod
    def _numbers_only(cls, value):
        # Anything but a JSON number means "no coordinates"
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            return None
        return value


class OrderItemIn(BaseModel):
    variantId: int = Field(..., gt=0, le=INT_MAX)
    qty: int = Field(..., gt=0, le=MAX_LINE_QTY)


class CreateOrderRequest(BaseModel):
    """Body of POST /orders. Emptiness checks live in the order service."""

    userPhone: Optional[str] = Field(None, max_length=PHONE_LEN)
    tbyb: bool = False
    address: Optional[AddressIn] = None
    items: List[OrderItemIn] = Field([], max_length=MAX_CART_LINES)


# Order responses
class OrderItemOut(BaseModel):
    id: int
    variant_id: int
    qty: int
    price: int

    model_config = {"from_attributes": True}


class OrderOut(BaseModel):
    id: int
    user_id: int
    address_id: int
    subtotal: int
    tbyb: bool
    status: str
    created_at: Optional[datetime] = None
    items: List[OrderItemOut] = []

    model_config = {"from_attributes": True}


# Catalog
class VariantIn(BaseModel):
    id: Optional[int] = Field(None, gt=0, le=INT_MAX)  # present when editing an existing variant
    size: str = Field(..., min_length=1, max_length=50)
    sku: str = Field(..., min_length=1, max_length=100)
    stockQty: int = Field(0, ge=0, le=MAX_STOCK)


class ProductCreate(BaseModel):
    title: str = Field(..., min_length=1, max_length=255)
    slug: Optional[str] = Field(None, max_length=200)
    description: str = ""
    brand: str = Field("", max_length=100)
    color: str = Field("", max_length=50)
    priceMrp: int = Field(..., ge=0, le=MAX_PRICE)
    priceSale: int = Field(..., ge=0, le=MAX_PRICE)
    images: List[str] = []
    active: bool = True
    variants: List[VariantIn] = []


class ProductUpdate(BaseModel):
    title: Optional[str] = Field(None, min_length=1, max_length=255)
    description: Optional[str] = None
    brand: Optional[str] = Field(None, max_length=100)
    color: Optional[str] = Field(None, max_length=50)
    priceMrp: Optional[int] = Field(None, ge=0, le=MAX_PRICE)
    priceSale: Optional[int] = Field(None, ge=0, le=MAX_PRICE)
    images: Optional[List[str]] = None
    active: Optional[bool] = None
    # When sent, replaces the existing variant set
    variants: Optional[List[VariantIn]] = None


class StockUpdate(BaseModel):
    delta: Optional[int] = Field(None, ge=-MAX_STOCK, le=MAX_STOCK)  # +1 / -1 / +5 ...
    stock: Optional[int] = Field(None, ge=0, le=MAX_STOCK)  # set exact


class VariantOut(BaseModel):
    id: int
    size: str
    sku: str
    stock_qty: int

    model_config = {"from_attributes": True}


class ProductOut(BaseModel):
    id: int
    title: str
    slug: str
    description: Optional[str] = ""
    brand: Optional[str] = ""
    color: Optional[str] = ""
    price_mrp: int
    price_sale: int
    images: Optional[List[str]] = None
    active: bool
    total_stock: int
    variants: List[VariantOut] = []

    model_config = {"from_attributes": True}
