"""
Repositories: one persistence port per entity, backed by MongoDB.

Each repository turns documents into fresh domain objects on every call
and back into documents on every write. Relationships are stored as ids
(product.category_ids, order.client_id, order_item._id) and resolved at
load time.
"""
import logging
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Optional, Tuple

from pymongo.database import Database

from database import create_document, get_documents, reserve_id
from models import Category, Order, OrderItem, Payment, Product, User

logger = logging.getLogger(__name__)


class ResourceNotFoundError(LookupError):
    def __init__(self, resource: str, id: Any):
        super().__init__(f"{resource} not found. Id {id}")
        self.resource = resource
        self.id = id


def as_utc(value: Optional[datetime]) -> Optional[datetime]:
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


class MongoRepository:
    """Generic CRUD over one collection with integer surrogate ids.

    Subclasses set `collection_name`, `resource` and `updatable_fields`
    and implement `to_document` / `from_document`.
    """

    collection_name: str = ""
    resource: str = ""
    updatable_fields: Tuple[str, ...] = ()

    def __init__(self, database: Database):
        self.db = database

    @property
    def collection(self):
        return self.db[self.collection_name]

    def to_document(self, entity) -> Dict[str, Any]:
        raise NotImplementedError

    def from_document(self, doc: Dict[str, Any]):
        raise NotImplementedError

    def _write(self, entity):
        doc = self.to_document(entity)
        if entity.id is None:
            entity.id = create_document(self.db, self.collection_name, doc)
        else:
            self.collection.replace_one({"_id": entity.id}, doc, upsert=True)
            reserve_id(self.db, self.collection_name, entity.id)
        return entity

    def create(self, entity):
        entity = self.save(entity)
        logger.debug("Created %s %s", self.resource, entity.id)
        return entity

    def save(self, entity):
        return self._write(entity)

    def save_all(self, entities: Iterable) -> List:
        return [self.save(e) for e in entities]

    def exists(self, id) -> bool:
        return self.collection.count_documents({"_id": id}, limit=1) > 0

    def get_by_id(self, id):
        doc = self.collection.find_one({"_id": id})
        if doc is None:
            raise ResourceNotFoundError(self.resource, id)
        return self.from_document(doc)

    def get_all(self) -> List:
        return [self.from_document(doc) for doc in get_documents(self.db, self.collection_name)]

    def update(self, id, entity):
        current = self.get_by_id(id)
        for field in self.updatable_fields:
            setattr(current, field, getattr(entity, field))
        self.save(current)
        logger.debug("Updated %s %s", self.resource, id)
        return current

    def delete(self, id) -> None:
        result = self.collection.delete_one({"_id": id})
        if result.deleted_count == 0:
            raise ResourceNotFoundError(self.resource, id)
        logger.debug("Deleted %s %s", self.resource, id)

    def count(self) -> int:
        return self.collection.count_documents({})


class UserRepository(MongoRepository):
    collection_name = "user"
    resource = "User"
    updatable_fields = ("name", "email", "phone")

    def to_document(self, user: User) -> Dict[str, Any]:
        return {
            "name": user.name,
            "email": user.email,
            "phone": user.phone,
            "password": user.password,
        }

    def from_document(self, doc: Dict[str, Any]) -> User:
        return User(
            id=doc["_id"],
            name=doc.get("name"),
            email=doc.get("email"),
            phone=doc.get("phone"),
            password=doc.get("password"),
        )

    def get_by_id(self, id) -> User:
        user = super().get_by_id(id)
        user.orders = [
            _order_from_document(doc, client=user)
            for doc in get_documents(self.db, OrderRepository.collection_name, {"client_id": id})
        ]
        return user


class CategoryRepository(MongoRepository):
    collection_name = "category"
    resource = "Category"
    updatable_fields = ("name",)

    def to_document(self, category: Category) -> Dict[str, Any]:
        return {"name": category.name}

    def from_document(self, doc: Dict[str, Any]) -> Category:
        return Category(id=doc["_id"], name=doc.get("name"))

    def get_by_id(self, id) -> Category:
        category = super().get_by_id(id)
        for doc in get_documents(self.db, ProductRepository.collection_name, {"category_ids": id}):
            product = _product_from_document(doc)
            product.categories.add(category)
            category.products.add(product)
        return category


def _product_from_document(doc: Dict[str, Any]) -> Product:
    return Product(
        id=doc["_id"],
        name=doc.get("name"),
        description=doc.get("description"),
        price=doc.get("price"),
        img_url=doc.get("img_url"),
    )


def _order_from_document(doc: Dict[str, Any], client: Optional[User] = None) -> Order:
    order = Order(id=doc["_id"], moment=as_utc(doc.get("moment")), client=client)
    # kept raw: an unknown code only fails when the status is read
    order.order_status_code = doc.get("order_status")
    return order


class ProductRepository(MongoRepository):
    collection_name = "product"
    resource = "Product"
    updatable_fields = ("name", "description", "price", "img_url", "categories")

    def to_document(self, product: Product) -> Dict[str, Any]:
        category_ids = sorted(c.id for c in product.categories if c.id is not None)
        return {
            "name": product.name,
            "description": product.description,
            "price": product.price,
            "img_url": product.img_url,
            "category_ids": category_ids,
        }

    def from_document(self, doc: Dict[str, Any]) -> Product:
        product = _product_from_document(doc)
        category_ids = doc.get("category_ids") or []
        if category_ids:
            for cdoc in get_documents(self.db, CategoryRepository.collection_name, {"_id": {"$in": category_ids}}):
                category = Category(id=cdoc["_id"], name=cdoc.get("name"))
                category.products.add(product)
                product.categories.add(category)
        orders: Dict[int, Order] = {}
        for idoc in self.db[OrderItemRepository.collection_name].find({"_id.product_id": product.id}):
            order_id = idoc["_id"]["order_id"]
            if order_id not in orders:
                odoc = self.db[OrderRepository.collection_name].find_one({"_id": order_id})
                orders[order_id] = _order_from_document(odoc) if odoc else Order(id=order_id)
            product.items.add(OrderItem(orders[order_id], product, idoc.get("quantity"), idoc.get("price")))
        return product


class PaymentRepository(MongoRepository):
    """Payments keyed by their order's id; never allocates ids of its own."""

    collection_name = "payment"
    resource = "Payment"
    updatable_fields = ("moment",)

    def to_document(self, payment: Payment) -> Dict[str, Any]:
        return {"moment": payment.moment}

    def from_document(self, doc: Dict[str, Any]) -> Payment:
        return Payment(id=doc["_id"], moment=as_utc(doc.get("moment")), order=Order(id=doc["_id"]))

    def save(self, payment: Payment) -> Payment:
        if payment.order is None or payment.order.id is None:
            raise ValueError("Payment must belong to a saved order")
        payment.id = payment.order.id
        self.collection.replace_one({"_id": payment.id}, self.to_document(payment), upsert=True)
        return payment

    def find_by_order_id(self, order_id: int) -> Optional[Payment]:
        doc = self.collection.find_one({"_id": order_id})
        return self.from_document(doc) if doc else None

    def delete_by_order_id(self, order_id: int) -> None:
        self.collection.delete_one({"_id": order_id})


class OrderItemRepository(MongoRepository):
    """Order items keyed by (order_id, product_id).

    Writes are upserts by key: saving an item whose pair already exists
    replaces the stored quantity and price.
    """

    collection_name = "order_item"
    resource = "OrderItem"
    updatable_fields = ("quantity", "price")

    @staticmethod
    def key(order_id: int, product_id: int) -> Dict[str, int]:
        return {"order_id": order_id, "product_id": product_id}

    def to_document(self, item: OrderItem) -> Dict[str, Any]:
        return {"quantity": item.quantity, "price": item.price}

    def from_document(self, doc: Dict[str, Any]) -> OrderItem:
        order_id = doc["_id"]["order_id"]
        product_id = doc["_id"]["product_id"]
        odoc = self.db[OrderRepository.collection_name].find_one({"_id": order_id})
        pdoc = self.db[ProductRepository.collection_name].find_one({"_id": product_id})
        order = _order_from_document(odoc) if odoc else Order(id=order_id)
        product = _product_from_document(pdoc) if pdoc else Product(id=product_id)
        item = OrderItem(order, product, doc.get("quantity"), doc.get("price"))
        order.items.add(item)
        product.items.add(item)
        return item

    def _write(self, item: OrderItem) -> OrderItem:
        order_id, product_id = item.id.key
        if order_id is None or product_id is None:
            raise ValueError("OrderItem needs a saved order and a saved product")
        self.collection.replace_one(
            {"_id": self.key(order_id, product_id)}, self.to_document(item), upsert=True
        )
        return item

    def exists(self, id) -> bool:
        return self.collection.count_documents({"_id": self.key(*id)}, limit=1) > 0

    def get_by_id(self, id) -> OrderItem:
        doc = self.collection.find_one({"_id": self.key(*id)})
        if doc is None:
            raise ResourceNotFoundError(self.resource, id)
        return self.from_document(doc)

    def get_all(self) -> List[OrderItem]:
        return [self.from_document(doc) for doc in self.collection.find()]

    def find_by_order_id(self, order_id: int) -> List[Dict[str, Any]]:
        return list(self.collection.find({"_id.order_id": order_id}))

    def delete(self, id) -> None:
        result = self.collection.delete_one({"_id": self.key(*id)})
        if result.deleted_count == 0:
            raise ResourceNotFoundError(self.resource, id)
        logger.debug("Deleted %s %s", self.resource, id)

    def delete_by_order_id(self, order_id: int) -> int:
        return self.collection.delete_many({"_id.order_id": order_id}).deleted_count


class OrderRepository(MongoRepository):
    """Orders with their client, items and payment.

    The payment follows the order: it is written with the order and
    removed with it. An order without a payment leaves a stored payment
    in place. Items are written through OrderItemRepository, but
    deleting an order also deletes its items.
    """

    collection_name = "order"
    resource = "Order"

    def __init__(self, database: Database):
        super().__init__(database)
        self.payments = PaymentRepository(database)
        self.items = OrderItemRepository(database)

    def to_document(self, order: Order) -> Dict[str, Any]:
        return {
            "moment": order.moment,
            "order_status": order.order_status_code,
            "client_id": order.client.id if order.client is not None else None,
        }

    def from_document(self, doc: Dict[str, Any]) -> Order:
        client = None
        if doc.get("client_id") is not None:
            udoc = self.db[UserRepository.collection_name].find_one({"_id": doc["client_id"]})
            client = UserRepository(self.db).from_document(udoc) if udoc else User(id=doc["client_id"])
        order = _order_from_document(doc, client=client)
        for idoc in self.items.find_by_order_id(order.id):
            pdoc = self.db[ProductRepository.collection_name].find_one({"_id": idoc["_id"]["product_id"]})
            product = (
                ProductRepository(self.db).from_document(pdoc)
                if pdoc else Product(id=idoc["_id"]["product_id"])
            )
            order.items.add(OrderItem(order, product, idoc.get("quantity"), idoc.get("price")))
        order.payment = self.payments.find_by_order_id(order.id)
        return order

    def save(self, order: Order) -> Order:
        order = self._write(order)
        if order.payment is not None:
            # re-align now that the order has its id
            order.payment = order.payment
            self.payments.save(order.payment)
        return order

    def update(self, id, order: Order) -> Order:
        current = self.get_by_id(id)
        current.moment = order.moment
        current.order_status = order.order_status
        current.client = order.client
        if order.payment is not None:
            current.payment = order.payment
        self.save(current)
        logger.debug("Updated %s %s", self.resource, id)
        return current

    def delete(self, id) -> None:
        super().delete(id)
        self.payments.delete_by_order_id(id)
        removed = self.items.delete_by_order_id(id)
        logger.debug("Removed payment and %d item(s) of %s %s", removed, self.resource, id)
