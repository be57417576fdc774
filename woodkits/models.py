from sqlalchemy import Column, Integer, String, Float, DateTime, Text, ForeignKey, Enum, Boolean, JSON
from sqlalchemy.orm import relationship
from datetime import datetime
from .database import Base
import enum


# --- Enums ---

class ProductCategory(str, enum.Enum):
    BOOKSHELF = "bookshelf"
    STAIRS = "stairs"
    FURNITURE = "furniture"
    OUTDOOR = "outdoor"
    PET = "pet"


class Currency(str, enum.Enum):
    NIS = "NIS"
    USD = "USD"
    EUR = "EUR"


class OrderStatus(str, enum.Enum):
    PENDING = "pending"          # Order created, awaiting payment
    CONFIRMED = "confirmed"      # Payment confirmed
    PROCESSING = "processing"    # Being manufactured
    READY = "ready"              # Ready for pickup/delivery
    SHIPPED = "shipped"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"
    REFUNDED = "refunded"


class PaymentStatus(str, enum.Enum):
    PENDING = "pending"
    PAID = "paid"
    FAILED = "failed"
    REFUNDED = "refunded"


class PaymentMethod(str, enum.Enum):
    CREDIT_CARD = "credit_card"
    BANK_TRANSFER = "bank_transfer"
    CASH = "cash"
    PAYPAL = "paypal"


class ShippingMethod(str, enum.Enum):
    PICKUP = "pickup"
    DELIVERY = "delivery"
    COURIER = "courier"


class ReviewStatus(str, enum.Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"
    SPAM = "spam"


SUPPORTED_LANGUAGES = ["en", "he", "es"]

# Orders in these states no longer count as purchases or revenue
INACTIVE_ORDER_STATUSES = [OrderStatus.CANCELLED, OrderStatus.REFUNDED]


# --- Catalog ---

class Product(Base):
    """A configurable wood kit. Dimension and option schemas live in JSON columns."""
    __tablename__ = "products"

    id = Column(Integer, primary_key=True, index=True)
    product_id = Column(String, unique=True, nullable=False, index=True)  # public code, e.g. 'stairs'
    name = Column(JSON, nullable=False)         # {en, he, es}
    description = Column(JSON, nullable=False)  # {en, he, es}
    category = Column(Enum(ProductCategory), nullable=False)
    base_price = Column(Float, nullable=False)
    currency = Column(Enum(Currency), default=Currency.NIS)
    # {name: {min, max, default, step, multiplier, visible, editable}}
    dimensions = Column(JSON, default=dict)
    # {name: {available, price}}
    options = Column(JSON, default=dict)
    tags = Column(JSON, default=list)
    images = Column(JSON, default=list)  # [{url, alt, isPrimary}]
    is_active = Column(Boolean, default=True)
    in_stock = Column(Boolean, default=True)
    stock_level = Column(Integer, default=100)
    low_stock_threshold = Column(Integer, default=10)
    rating_average = Column(Float, default=0.0)
    rating_count = Column(Integer, default=0)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    reviews = relationship("Review", back_populates="product", cascade="all, delete-orphan")


# --- Orders ---

class Order(Base):
    __tablename__ = "orders"

    id = Column(Integer, primary_key=True, index=True)
    order_number = Column(String, unique=True, nullable=False, index=True)  # 'WK-...', the orderId on the wire
    # Customer
    customer_name = Column(String, nullable=False)
    customer_email = Column(String, nullable=False, index=True)
    customer_phone = Column(String, nullable=False)
    customer_address = Column(JSON, nullable=False)  # str or {street, city, postalCode, country}
    # Pricing
    subtotal = Column(Float, default=0.0)
    tax_rate = Column(Float, default=0.17)
    tax = Column(Float, default=0.0)
    shipping_cost = Column(Float, default=0.0)
    discount = Column(Float, default=0.0)
    total = Column(Float, default=0.0)
    currency = Column(Enum(Currency), default=Currency.NIS)
    # Status
    status = Column(Enum(OrderStatus), default=OrderStatus.PENDING, index=True)
    payment_status = Column(Enum(PaymentStatus), default=PaymentStatus.PENDING, index=True)
    payment_method = Column(Enum(PaymentMethod), default=PaymentMethod.CREDIT_CARD)
    transaction_id = Column(String, nullable=True)
    payment_provider = Column(String, nullable=True)
    payment_date = Column(DateTime, nullable=True)
    # Notes
    customer_notes = Column(Text, nullable=True)
    admin_notes = Column(Text, nullable=True)
    # Shipping
    shipping_method = Column(Enum(ShippingMethod), default=ShippingMethod.DELIVERY)
    shipping_address = Column(String, nullable=True)
    estimated_delivery = Column(DateTime, nullable=True)
    tracking_number = Column(String, nullable=True)
    timeline = Column(JSON, default=list)  # [{status, timestamp, note, updatedBy}]
    # Request metadata
    source = Column(String, default="website")
    user_agent = Column(String, nullable=True)
    ip_address = Column(String, nullable=True)
    language = Column(String, default="en")
    created_at = Column(DateTime, default=datetime.utcnow, index=True)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    items = relationship("OrderItem", back_populates="order", cascade="all, delete-orphan")


class OrderItem(Base):
    """One configured product on an order, with the pricing snapshot taken at order time."""
    __tablename__ = "order_items"

    id = Column(Integer, primary_key=True, index=True)
    order_id = Column(Integer, ForeignKey("orders.id"), nullable=False)
    product_pk = Column(Integer, ForeignKey("products.id"), nullable=False)
    product_code = Column(String, nullable=False)
    name = Column(String, nullable=False)
    configuration = Column(JSON, default=dict)  # {dimensions, options, color, customization}
    base_price = Column(Float, nullable=False)
    size_adjustment = Column(Float, default=0.0)
    options_cost = Column(Float, default=0.0)
    unit_price = Column(Float, nullable=False)
    quantity = Column(Integer, default=1)
    total_price = Column(Float, nullable=False)

    order = relationship("Order", back_populates="items")
    product = relationship("Product")


# --- Reviews ---

class Review(Base):
    __tablename__ = "reviews"

    id = Column(Integer, primary_key=True, index=True)
    product_pk = Column(Integer, ForeignKey("products.id"), nullable=False, index=True)
    customer_name = Column(String, nullable=False)
    customer_email = Column(String, nullable=True, index=True)
    customer_verified = Column(Boolean, default=False)
    rating = Column(Integer, nullable=False)
    title = Column(String, nullable=True)
    text = Column(Text, nullable=False)
    images = Column(JSON, default=list)
    helpful_count = Column(Integer, default=0)
    helpful_users = Column(JSON, default=list)  # IPs / identifiers that voted
    status = Column(Enum(ReviewStatus), default=ReviewStatus.PENDING, index=True)
    language = Column(String, default="en")
    source = Column(String, default="website")
    user_agent = Column(String, nullable=True)
    ip_address = Column(String, nullable=True)
    order_reference = Column(String, nullable=True)
    moderation_notes = Column(String, nullable=True)
    moderated_at = Column(DateTime, nullable=True)
    replies = Column(JSON, default=list)  # [{text, author: {name, isAdmin}, createdAt}]
    created_at = Column(DateTime, default=datetime.utcnow, index=True)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    product = relationship("Product", back_populates="reviews")


# --- Admin ---

class AdminUser(Base):
    """Back-office accounts. Sessions are stateless JWTs; only the password hash is stored."""
    __tablename__ = "admin_users"

    id = Column(Integer, primary_key=True, index=True)
    username = Column(String, unique=True, nullable=False)
    password_hash = Column(String, nullable=False)
    last_login_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow)
