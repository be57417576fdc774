from pydantic import BaseModel, Field, model_validator
from typing import Optional, List, Dict, Any, Union
from .models import ProductCategory, Currency, OrderStatus, PaymentMethod, ShippingMethod, ReviewStatus

# Wire format is camelCase, so request models use camelCase field names directly.

EMAIL_PATTERN = r"^[^@\s]+@[^@\s]+\.[^@\s]+$"
PHONE_PATTERN = r"^[+]?[0-9\s\-()]+$"
LANGUAGE_PATTERN = r"^(en|he|es)$"


# --- Catalog ---

class DimensionSpec(BaseModel):
    min: float
    max: float
    default: float
    step: float = Field(1, gt=0)
    multiplier: float = 0
    visible: bool = True
    editable: bool = True

    @model_validator(mode="after")
    def check_bounds(self):
        if self.min > self.max:
            raise ValueError(f"min ({self.min}) must not exceed max ({self.max})")
        if not self.min <= self.default <= self.max:
            raise ValueError(f"default ({self.default}) must lie within [{self.min}, {self.max}]")
        return self


class OptionSpec(BaseModel):
    available: bool = True
    price: float = Field(0, ge=0)


class LocalizedText(BaseModel):
    en: str = Field(..., min_length=1)
    he: Optional[str] = None
    es: Optional[str] = None


class ProductImage(BaseModel):
    url: str
    alt: Optional[str] = None
    isPrimary: bool = False


class ProductBase(BaseModel):
    name: LocalizedText
    description: LocalizedText
    category: ProductCategory
    basePrice: float = Field(..., gt=0)
    currency: Currency = Currency.NIS
    dimensions: Dict[str, DimensionSpec] = {}
    options: Dict[str, OptionSpec] = {}
    tags: List[str] = []
    images: List[ProductImage] = []
    inStock: bool = True
    stockLevel: int = Field(100, ge=0)
    lowStockThreshold: int = Field(10, ge=0)
    isActive: bool = True


class ProductCreate(ProductBase):
    productId: str = Field(..., min_length=1, max_length=100)


class ProductUpdate(BaseModel):
    name: Optional[LocalizedText] = None
    description: Optional[LocalizedText] = None
    category: Optional[ProductCategory] = None
    basePrice: Optional[float] = Field(None, gt=0)
    currency: Optional[Currency] = None
    dimensions: Optional[Dict[str, DimensionSpec]] = None
    options: Optional[Dict[str, OptionSpec]] = None
    tags: Optional[List[str]] = None
    images: Optional[List[ProductImage]] = None
    inStock: Optional[bool] = None
    stockLevel: Optional[int] = Field(None, ge=0)
    lowStockThreshold: Optional[int] = Field(None, ge=0)
    isActive: Optional[bool] = None


class PriceRequest(BaseModel):
    """
    Dimension/option values stay untyped so the calculator can report bad
    values per field instead of pydantic coercing them.
    """
    productId: Optional[str] = None
    configuration: Optional[Dict[str, Any]] = None
    # Accepted at the top level on the per-product route
    dimensions: Optional[Dict[str, Any]] = None
    options: Optional[Dict[str, Any]] = None

    def to_configuration(self) -> dict:
        config = dict(self.configuration or {})
        if self.dimensions is not None:
            config.setdefault("dimensions", self.dimensions)
        if self.options is not None:
            config.setdefault("options", self.options)
        return config


class PricingUpdate(BaseModel):
    basePrice: Optional[float] = Field(None, gt=0)
    dimensions: Optional[Dict[str, DimensionSpec]] = None
    options: Optional[Dict[str, OptionSpec]] = None


# --- Orders ---

class Address(BaseModel):
    street: str = Field(..., min_length=1)
    city: str = Field(..., min_length=1)
    postalCode: Optional[str] = None
    country: str = "Israel"


class CustomerInfo(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    email: str = Field(..., pattern=EMAIL_PATTERN)
    phone: str = Field(..., pattern=PHONE_PATTERN)
    address: Union[Address, str]


class OrderItemCreate(BaseModel):
    productId: str = Field(..., min_length=1)
    quantity: int = Field(1, ge=1)
    configuration: Dict[str, Any] = {}


class OrderCreate(BaseModel):
    customer: CustomerInfo
    items: List[OrderItemCreate] = Field(..., min_length=1)
    shippingCost: float = Field(0, ge=0)
    discount: float = Field(0, ge=0)
    currency: Optional[Currency] = None
    paymentMethod: PaymentMethod = PaymentMethod.CREDIT_CARD
    shippingMethod: ShippingMethod = ShippingMethod.DELIVERY
    customerNotes: Optional[str] = Field(None, max_length=1000)
    language: str = Field("en", pattern=LANGUAGE_PATTERN)


class OrderStatusUpdate(BaseModel):
    status: OrderStatus
    note: Optional[str] = Field(None, max_length=500)
    trackingNumber: Optional[str] = None


# --- Reviews ---

class ReviewCustomer(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    email: Optional[str] = Field(None, pattern=EMAIL_PATTERN)


class ReviewCreate(BaseModel):
    productId: str = Field(..., min_length=1)
    customer: ReviewCustomer
    rating: int = Field(..., ge=1, le=5)
    title: Optional[str] = Field(None, max_length=200)
    text: str = Field(..., min_length=10, max_length=2000)
    language: str = Field("en", pattern=LANGUAGE_PATTERN)


class ReviewModeration(BaseModel):
    status: ReviewStatus
    moderationNotes: Optional[str] = Field(None, max_length=500)


class ReviewReply(BaseModel):
    text: str = Field(..., min_length=1, max_length=1000)
    authorName: Optional[str] = Field(None, max_length=100)


# --- Admin ---

class AdminLogin(BaseModel):
    username: str = Field(..., min_length=1)
    password: str = Field(..., min_length=1)


# --- Payments ---

class PaymentIntentCreate(BaseModel):
    orderId: str
    amount: int = Field(..., ge=1)  # minor units
    currency: str = "ils"


class PaymentConfirm(BaseModel):
    paymentIntentId: str
    orderId: str


class RefundRequest(BaseModel):
    orderId: str
    amount: Optional[int] = Field(None, ge=1)  # minor units; full refund when omitted
    reason: str = "requested_by_customer"


# --- Email ---

class EmailSend(BaseModel):
    to: str = Field(..., pattern=EMAIL_PATTERN)
    subject: str = Field(..., min_length=1, max_length=200)
    html: Optional[str] = None
    text: Optional[str] = None

    @model_validator(mode="after")
    def check_body(self):
        if not self.html and not self.text:
            raise ValueError("Either html or text content is required")
        return self


class EmailTest(BaseModel):
    to: str = Field(..., pattern=EMAIL_PATTERN)
