"""
Wire schemas for the Course Shop API

Each Pydantic model is the JSON shape of one entity. Reverse references
(User.orders, Category.products, Product.orders, OrderItem.order,
Payment.order) are never part of the wire format.

Timestamps are written as UTC with second precision: 2019-06-20T19:53:07Z
"""
from datetime import datetime, timezone
from typing import List, Optional

from pydantic import BaseModel, EmailStr, Field, field_serializer, field_validator

from models import Category as CategoryEntity
from models import Order as OrderEntity
from models import OrderItem as OrderItemEntity
from models import OrderStatus
from models import Payment as PaymentEntity
from models import Product as ProductEntity
from models import User as UserEntity

MOMENT_FORMAT = "%Y-%m-%dT%H:%M:%SZ"


def format_moment(value: Optional[datetime]) -> Optional[str]:
    if value is None:
        return None
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).strftime(MOMENT_FORMAT)


class UserIn(BaseModel):
    """
    Request body for POST /users and PUT /users/{id}
    """
    name: str = Field(..., description="Full name")
    email: EmailStr = Field(..., description="Email address")
    phone: Optional[str] = Field(None, description="Phone number")
    password: Optional[str] = Field(None, description="Password, stored as given")

    def to_entity(self) -> UserEntity:
        return UserEntity(name=self.name, email=self.email, phone=self.phone, password=self.password)


class User(BaseModel):
    """
    Users collection schema
    Collection name: "user"
    """
    id: Optional[int] = Field(None, description="Surrogate id")
    name: Optional[str] = Field(None, description="Full name")
    email: Optional[str] = Field(None, description="Email address")
    phone: Optional[str] = Field(None, description="Phone number")
    password: Optional[str] = Field(None, description="Password (plain text)")

    @classmethod
    def from_entity(cls, user: UserEntity) -> "User":
        return cls(id=user.id, name=user.name, email=user.email, phone=user.phone, password=user.password)

    def to_entity(self) -> UserEntity:
        return UserEntity(id=self.id, name=self.name, email=self.email, phone=self.phone, password=self.password)


class Category(BaseModel):
    """
    Categories collection schema
    Collection name: "category"
    """
    id: Optional[int] = None
    name: Optional[str] = Field(None, description="Category name")

    @classmethod
    def from_entity(cls, category: CategoryEntity) -> "Category":
        return cls(id=category.id, name=category.name)

    def to_entity(self) -> CategoryEntity:
        return CategoryEntity(id=self.id, name=self.name)


class Product(BaseModel):
    """
    Products collection schema
    Collection name: "product"
    """
    id: Optional[int] = None
    name: Optional[str] = Field(None, description="Product name")
    description: Optional[str] = Field(None, description="Product description")
    price: Optional[float] = Field(None, ge=0, description="Unit price")
    img_url: Optional[str] = Field(None, description="Image URL")
    categories: List[Category] = Field(default_factory=list, description="Categories, ordered by id")

    @classmethod
    def from_entity(cls, product: ProductEntity) -> "Product":
        categories = sorted(product.categories, key=lambda c: (c.id is None, c.id or 0))
        return cls(
            id=product.id,
            name=product.name,
            description=product.description,
            price=product.price,
            img_url=product.img_url,
            categories=[Category.from_entity(c) for c in categories],
        )

    def to_entity(self) -> ProductEntity:
        product = ProductEntity(
            id=self.id,
            name=self.name,
            description=self.description,
            price=self.price,
            img_url=self.img_url,
        )
        product.categories = {c.to_entity() for c in self.categories}
        return product


class OrderItem(BaseModel):
    quantity: Optional[int] = Field(None, ge=0)
    price: Optional[float] = Field(None, ge=0, description="Unit price at time of sale")
    product: Product
    sub_total: Optional[float] = Field(None, description="price * quantity, computed on output")

    @classmethod
    def from_entity(cls, item: OrderItemEntity) -> "OrderItem":
        return cls(
            quantity=item.quantity,
            price=item.price,
            product=Product.from_entity(item.product),
            sub_total=item.sub_total,
        )


class Payment(BaseModel):
    """
    Payments collection schema
    Collection name: "payment" (id shared with the order)
    """
    id: Optional[int] = None
    moment: Optional[datetime] = None

    @field_serializer("moment")
    def _serialize_moment(self, moment: Optional[datetime]):
        return format_moment(moment)

    @classmethod
    def from_entity(cls, payment: PaymentEntity) -> "Payment":
        return cls(id=payment.id, moment=payment.moment)


class Order(BaseModel):
    """
    Orders collection schema
    Collection name: "order"
    """
    id: Optional[int] = None
    moment: Optional[datetime] = None
    order_status: Optional[OrderStatus] = Field(None, description="WAITING_PAYMENT | PAID | SHIPPED | DELIVERED | CANCELED")
    client: Optional[User] = None
    items: List[OrderItem] = Field(default_factory=list)
    payment: Optional[Payment] = None
    total: Optional[float] = Field(None, description="Sum of item subtotals, computed on output")

    @field_validator("order_status", mode="before")
    @classmethod
    def _parse_status(cls, value):
        if value is None or isinstance(value, OrderStatus):
            return value
        if isinstance(value, str):
            try:
                return OrderStatus[value]
            except KeyError:
                raise ValueError(f"Unknown order status: {value}")
        return OrderStatus.from_code(value)

    @field_serializer("order_status")
    def _serialize_status(self, status: Optional[OrderStatus]):
        return status.name if status is not None else None

    @field_serializer("moment")
    def _serialize_moment(self, moment: Optional[datetime]):
        return format_moment(moment)

    @classmethod
    def from_entity(cls, order: OrderEntity) -> "Order":
        items = sorted(order.items, key=lambda i: (i.product.id is None, i.product.id or 0))
        return cls(
            id=order.id,
            moment=order.moment,
            order_status=order.order_status,
            client=User.from_entity(order.client) if order.client is not None else None,
            items=[OrderItem.from_entity(i) for i in items],
            payment=Payment.from_entity(order.payment) if order.payment is not None else None,
            total=order.total,
        )

    def to_entity(self) -> OrderEntity:
        """Rebuild the domain order; total and subtotals are recomputed, not read."""
        order = OrderEntity(
            id=self.id,
            moment=self.moment,
            order_status=self.order_status,
            client=self.client.to_entity() if self.client is not None else None,
        )
        for item in self.items:
            order.items.add(OrderItemEntity(order, item.product.to_entity(), item.quantity, item.price))
        if self.payment is not None:
            order.payment = PaymentEntity(moment=self.payment.moment)
        return order
