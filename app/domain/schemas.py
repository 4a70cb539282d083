# app/domain/schemas.py
import json
from datetime import datetime
from decimal import Decimal
from typing import Any, List, Literal

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator, model_validator

from app.domain.pricing import as_utc


# =====================================================
# CATALOG INPUT
# =====================================================

class AttributeIn(BaseModel):
    key: str = Field(..., min_length=1)
    value: str

    @field_validator("key", "value")
    @classmethod
    def _strip(cls, v: str) -> str:
        return v.strip()


class ImageIn(BaseModel):
    """Image already hosted by the media host."""

    url: str = Field(..., min_length=1)
    public_id: str = Field(..., min_length=1)
    alt_text: str = ""
    order: int | None = None


class PriceIn(BaseModel):
    """
    Price as sent by admin clients.
    Accepts a bare number, a numeric string, a JSON string or an object.
    """

    base: Decimal = Field(..., ge=0)
    sale: Decimal | None = Field(None, ge=0)
    cost_price: Decimal | None = Field(None, ge=0)
    sale_start_date: datetime | None = None
    sale_end_date: datetime | None = None

    @model_validator(mode="before")
    @classmethod
    def _coerce(cls, data: Any) -> Any:
        if isinstance(data, str):
            try:
                data = json.loads(data)
            except ValueError:
                raise ValueError("price must be a number or an object with base/sale")
        if isinstance(data, bool):
            raise ValueError("price must be a number or an object with base/sale")
        if isinstance(data, (int, float, Decimal)):
            return {"base": data}
        return data

    @field_validator("sale_start_date", "sale_end_date")
    @classmethod
    def _utc(cls, v: datetime | None) -> datetime | None:
        #naive dates are UTC, same as the stored ones
        return as_utc(v)

    @model_validator(mode="after")
    def _check_rules(self) -> "PriceIn":
        if self.sale is not None and self.sale >= self.base:
            raise ValueError("Sale price must be less than base price")
        if self.sale_start_date and self.sale_end_date and self.sale_start_date > self.sale_end_date:
            raise ValueError("Sale start date cannot be after sale end date")
        return self


class InventoryIn(BaseModel):
    quantity: int = Field(0, ge=0)
    track_inventory: bool = True
    low_stock_threshold: int = Field(5, ge=0)


class VariantIn(BaseModel):
    sku: str | None = None
    attributes: List[AttributeIn] = []
    images: List[ImageIn] = Field(default_factory=list, max_length=5)
    price: PriceIn
    inventory: InventoryIn = Field(default_factory=InventoryIn)
    is_active: bool = True


class VariantUpdate(BaseModel):
    """
    Variant change inside a product update.
    With id: edits that variant (stock is not touched).
    Without id: appends a new variant, price required.
    """

    model_config = ConfigDict(extra="forbid")

    id: int | None = None
    attributes: List[AttributeIn] | None = None
    images: List[ImageIn] | None = Field(None, max_length=5)
    price: PriceIn | None = None
    is_active: bool | None = None
    track_inventory: bool | None = None
    low_stock_threshold: int | None = Field(None, ge=0)
    initial_quantity: int = Field(0, ge=0)


ProductStatus = Literal["draft", "active", "archived"]


class ProductCreate(BaseModel):
    # slug and sku are generated server side
    model_config = ConfigDict(extra="forbid")

    name: str = Field(..., min_length=1)
    title: str | None = None
    description: str = Field(..., min_length=1)
    category: str = Field(..., min_length=1, description="Category id, slug or name")
    brand: str = "Generic"

    # single default variant shortcut
    price: PriceIn | None = None
    inventory: InventoryIn | None = None
    variants: List[VariantIn] = []

    attributes: List[AttributeIn] = []
    images: List[ImageIn] = []
    is_featured: bool = False
    status: ProductStatus = "draft"


class ProductUpdate(BaseModel):
    model_config = ConfigDict(extra="forbid")

    name: str | None = Field(None, min_length=1)
    title: str | None = None
    description: str | None = None
    category: str | None = None
    brand: str | None = None
    attributes: List[AttributeIn] | None = None
    images: List[ImageIn] | None = None
    variants: List[VariantUpdate] | None = None
    is_featured: bool | None = None
    status: ProductStatus | None = None


class StockAdjustIn(BaseModel):
    delta: int = Field(..., description="Positive restocks, negative removes")

    @field_validator("delta")
    @classmethod
    def _non_zero(cls, v: int) -> int:
        if v == 0:
            raise ValueError("delta must not be 0")
        return v


class BulkIdsIn(BaseModel):
    ids: List[int] = Field(..., min_length=1)


class CategoryImageIn(BaseModel):
    url: str = Field(..., min_length=1)
    public_id: str = Field(..., min_length=1)


class CategoryCreate(BaseModel):
    name: str = Field(..., min_length=1)
    description: str = ""
    parent_id: int | None = None
    sort_order: int = 0
    is_active: bool = True
    show_in_menu: bool = True
    image: CategoryImageIn | None = None


class CategoryUpdate(BaseModel):
    name: str | None = Field(None, min_length=1)
    description: str | None = None
    parent_id: int | None = None
    sort_order: int | None = None
    is_active: bool | None = None
    show_in_menu: bool | None = None
    image: CategoryImageIn | None = None


# =====================================================
# CART / ORDER / WISHLIST INPUT
# =====================================================

class CartItemIn(BaseModel):
    product_id: int | None = Field(None, gt=0)
    product_slug: str | None = None
    variant_id: int | None = Field(None, gt=0)
    quantity: int = Field(1, gt=0)

    @model_validator(mode="after")
    def _needs_product(self) -> "CartItemIn":
        if self.product_id is None and not self.product_slug:
            raise ValueError("product_id or product_slug required")
        return self


class CartItemUpdate(BaseModel):
    product_id: int = Field(..., gt=0)
    variant_id: int = Field(..., gt=0)
    quantity: int  # <= 0 removes the line


class CartItemRef(BaseModel):
    product_id: int = Field(..., gt=0)
    variant_id: int = Field(..., gt=0)


class BulkRemoveIn(BaseModel):
    items: List[CartItemRef]


class MergeItemIn(BaseModel):
    product_id: int
    variant_id: int
    quantity: int = Field(1, gt=0)


class MergeCartIn(BaseModel):
    items: List[MergeItemIn]


class CheckoutIn(BaseModel):
    payment_info: dict | None = None


class WishlistAddIn(BaseModel):
    product_slug: str = Field(..., min_length=1)
    variant_id: int | None = None


class MoveToCartIn(BaseModel):
    product_ids: List[int] = []
    move_all: bool = False


class SlugsIn(BaseModel):
    slugs: List[str] = Field(..., min_length=1)


# =====================================================
# AUTH INPUT
# =====================================================

class RegisterIn(BaseModel):
    email: EmailStr
    password: str = Field(..., min_length=6)
    first_name: str = Field(..., min_length=2)
    last_name: str = Field(..., min_length=2)
    phone: str = Field(..., min_length=7, max_length=20)

    @field_validator("first_name", "last_name", "phone")
    @classmethod
    def _strip(cls, v: str) -> str:
        return v.strip()


class LoginIn(BaseModel):
    email: EmailStr
    password: str = Field(..., min_length=1)


class OtpRequestIn(BaseModel):
    phone: str = Field(..., min_length=7, max_length=20)


class OtpVerifyIn(BaseModel):
    phone: str = Field(..., min_length=7, max_length=20)
    otp: str = Field(..., min_length=6, max_length=6)


class GoogleLoginIn(BaseModel):
    id_token: str = Field(..., min_length=1)


# =====================================================
# OUTPUT
# =====================================================

class UserRead(BaseModel):
    id: int
    name: str | None = None
    email: str | None = None
    phone: str | None = None
    role: str
    status: str
    is_email_verified: bool
    is_phone_verified: bool

    model_config = ConfigDict(from_attributes=True)


class AuthOut(BaseModel):
    success: bool = True
    message: str | None = None
    token: str
    token_type: str = "bearer"
    user: UserRead


class MessageOut(BaseModel):
    success: bool = True
    message: str


class UserOut(BaseModel):
    success: bool = True
    user: UserRead


class Attribute(BaseModel):
    key: str | None = None
    value: str | None = None


class PriceOut(BaseModel):
    base: Decimal
    sale: Decimal | None = None
    sale_start_date: datetime | None = None
    sale_end_date: datetime | None = None


class VariantOut(BaseModel):
    id: int
    sku: str
    attributes: List[Attribute]
    images: List[dict]
    price: PriceOut
    final_price: Decimal
    is_sale_active: bool
    discount_percentage: int
    inventory: dict
    is_active: bool


class CategoryRef(BaseModel):
    id: int
    name: str
    slug: str


class ProductView(BaseModel):
    id: int
    name: str
    slug: str
    title: str
    description: str
    brand: str
    category: CategoryRef | None = None
    attributes: List[Attribute]
    images: List[dict]
    variants: List[VariantOut]
    is_featured: bool
    status: str
    min_price: Decimal | None = None
    max_price: Decimal | None = None
    in_stock: bool
    max_discount_percentage: int
    created_at: datetime | None = None


class ProductOut(BaseModel):
    success: bool = True
    message: str | None = None
    product: ProductView


class Pagination(BaseModel):
    total: int
    page: int
    limit: int
    total_pages: int
    has_next_page: bool
    has_prev_page: bool


class ProductListOut(BaseModel):
    success: bool = True
    count: int
    products: List[ProductView]
    pagination: Pagination | None = None
    category: CategoryRef | None = None


class RelatedOut(BaseModel):
    success: bool = True
    related: List[ProductView]


class BulkArchiveOut(BaseModel):
    success: bool = True
    message: str
    modified_count: int


class CategoryView(BaseModel):
    id: int
    name: str
    slug: str
    description: str
    parent_id: int | None = None
    level: int
    image: dict | None = None
    is_active: bool
    show_in_menu: bool
    sort_order: int
    children: List["CategoryView"] = []


class CategoryOut(BaseModel):
    success: bool = True
    message: str | None = None
    category: CategoryView


class CategoryListOut(BaseModel):
    success: bool = True
    count: int
    categories: List[CategoryView]


class CartItemOut(BaseModel):
    product_id: int
    variant_id: int
    quantity: int
    price_snapshot: PriceOut
    variant_attributes_snapshot: List[Attribute]
    unit_price: Decimal


class CartView(BaseModel):
    id: int | None = None
    user_id: int | None = None
    items: List[CartItemOut]
    total_amount: Decimal


class CartOut(BaseModel):
    success: bool = True
    message: str | None = None
    cart: CartView


class OrderItemOut(BaseModel):
    product_id: int
    variant_id: int
    sku: str
    quantity: int
    unit_price: Decimal
    price_snapshot: PriceOut
    variant_attributes_snapshot: List[Attribute]


class OrderView(BaseModel):
    id: int
    user_id: int
    items: List[OrderItemOut]
    total_amount: Decimal
    status: str
    payment_info: dict | None = None
    created_at: datetime


class OrderOut(BaseModel):
    success: bool = True
    order: OrderView


class OrderListOut(BaseModel):
    success: bool = True
    count: int
    orders: List[OrderView]


class WishlistEntryOut(BaseModel):
    product_id: int
    variant_id: int | None = None
    added_at: datetime
    product: dict


class WishlistView(BaseModel):
    products: List[WishlistEntryOut]


class WishlistOut(BaseModel):
    success: bool = True
    message: str | None = None
    wishlist: WishlistView


class LowStockEntry(BaseModel):
    product_id: int
    product_name: str
    product_slug: str
    variant: VariantOut


class LowStockOut(BaseModel):
    success: bool = True
    count: int
    variants: List[LowStockEntry]


class HealthOut(BaseModel):
    status: str
    checks: dict = {}
