"""
Domain model for the Course Shop

Plain classes holding entity state. Identity is explicit: every entity
compares and hashes by its id (OrderItem by its (order, product) key),
never by attribute values.
"""
import math
from datetime import datetime
from enum import Enum
from typing import List, Optional, Set


class InvalidStatusCodeError(ValueError):
    def __init__(self, code):
        super().__init__(f"Invalid OrderStatus code: {code}")
        self.code = code


class IncompleteItemError(ValueError):
    """Raised when a computed value needs a field that is still unset."""


class OrderStatus(Enum):
    WAITING_PAYMENT = 1
    PAID = 2
    SHIPPED = 3
    DELIVERED = 4
    CANCELED = 5

    @property
    def code(self) -> int:
        return self.value

    @classmethod
    def from_code(cls, code: int) -> "OrderStatus":
        # bool is an int subclass, True must not decode to WAITING_PAYMENT
        if isinstance(code, int) and not isinstance(code, bool):
            for status in cls:
                if status.value == code:
                    return status
        raise InvalidStatusCodeError(code)


class Entity:
    """Base for surrogate-id entities: equality and hash by id only.

    Unsaved entities (id is None) are only equal to themselves.
    """

    id: Optional[int] = None

    def __eq__(self, other):
        if self is other:
            return True
        if type(other) is not type(self):
            return NotImplemented
        if self.id is None or other.id is None:
            return False
        return self.id == other.id

    def __hash__(self):
        if self.id is None:
            return id(self)
        return hash((type(self).__name__, self.id))

    def __repr__(self):
        return f"{type(self).__name__}(id={self.id!r})"


class User(Entity):
    def __init__(self, id: Optional[int] = None, name: Optional[str] = None,
                 email: Optional[str] = None, phone: Optional[str] = None,
                 password: Optional[str] = None):
        self.id = id
        self.name = name
        self.email = email
        self.phone = phone
        self.password = password
        # reverse side of Order.client, filled by the repository
        self.orders: List["Order"] = []


class Category(Entity):
    def __init__(self, id: Optional[int] = None, name: Optional[str] = None):
        self.id = id
        self.name = name
        self.products: Set["Product"] = set()


class Product(Entity):
    def __init__(self, id: Optional[int] = None, name: Optional[str] = None,
                 description: Optional[str] = None, price: Optional[float] = None,
                 img_url: Optional[str] = None):
        self.id = id
        self.name = name
        self.description = description
        self.price = price
        self.img_url = img_url
        self.categories: Set[Category] = set()
        # OrderItems referencing this product
        self.items: Set["OrderItem"] = set()

    @property
    def orders(self) -> Set["Order"]:
        """Distinct orders containing this product, recomputed on each access."""
        return {item.order for item in self.items if item.order is not None}


class Payment(Entity):
    """Payment of an order. Shares its id with the order it settles."""

    def __init__(self, id: Optional[int] = None, moment: Optional[datetime] = None,
                 order: Optional["Order"] = None):
        self.id = id
        self.moment = moment
        self.order = order


class Order(Entity):
    def __init__(self, id: Optional[int] = None, moment: Optional[datetime] = None,
                 order_status: Optional[OrderStatus] = None,
                 client: Optional[User] = None):
        self.id = id
        self.moment = moment
        self._order_status: Optional[int] = None
        self.order_status = order_status
        self.client = client
        self.items: Set["OrderItem"] = set()
        self._payment: Optional[Payment] = None

    @property
    def order_status_code(self) -> Optional[int]:
        return self._order_status

    @order_status_code.setter
    def order_status_code(self, code: Optional[int]):
        # raw stored value, decoded lazily by order_status
        self._order_status = code

    @property
    def order_status(self) -> Optional[OrderStatus]:
        if self._order_status is None:
            return None
        return OrderStatus.from_code(self._order_status)

    @order_status.setter
    def order_status(self, status: Optional[OrderStatus]):
        # None keeps the current code, it does not clear it
        if status is not None:
            self._order_status = status.code

    @property
    def payment(self) -> Optional[Payment]:
        return self._payment

    @payment.setter
    def payment(self, payment: Optional[Payment]):
        if payment is not None:
            payment.order = self
            payment.id = self.id
        self._payment = payment

    @property
    def total(self) -> float:
        return math.fsum(item.sub_total for item in self.items)


class OrderItemPK:
    """Composite key of an OrderItem: the (order, product) pair."""

    def __init__(self, order: Optional[Order] = None, product: Optional[Product] = None):
        self.order = order
        self.product = product

    @property
    def key(self):
        return (
            self.order.id if self.order is not None else None,
            self.product.id if self.product is not None else None,
        )

    def __eq__(self, other):
        if not isinstance(other, OrderItemPK):
            return NotImplemented
        return self.key == other.key

    def __hash__(self):
        return hash(self.key)

    def __repr__(self):
        order_id, product_id = self.key
        return f"OrderItemPK(order_id={order_id!r}, product_id={product_id!r})"


class OrderItem:
    def __init__(self, order: Optional[Order] = None, product: Optional[Product] = None,
                 quantity: Optional[int] = None, price: Optional[float] = None):
        self.id = OrderItemPK(order, product)
        self.quantity = quantity
        self.price = price

    @property
    def order(self) -> Optional[Order]:
        return self.id.order

    @order.setter
    def order(self, order: Optional[Order]):
        self.id.order = order

    @property
    def product(self) -> Optional[Product]:
        return self.id.product

    @product.setter
    def product(self, product: Optional[Product]):
        self.id.product = product

    @property
    def sub_total(self) -> float:
        if self.price is None or self.quantity is None:
            raise IncompleteItemError(
                f"OrderItem {self.id!r} has no price or quantity, cannot compute subtotal"
            )
        return self.price * self.quantity

    def __eq__(self, other):
        if self is other:
            return True
        if not isinstance(other, OrderItem):
            return NotImplemented
        return self.id == other.id

    def __hash__(self):
        return hash(self.id)

    def __repr__(self):
        return f"OrderItem({self.id!r}, quantity={self.quantity!r}, price={self.price!r})"
