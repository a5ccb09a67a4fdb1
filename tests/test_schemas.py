import json
from datetime import datetime, timezone

import pytest
from pydantic import ValidationError

import schemas
from models import Category, Order, OrderItem, OrderStatus, Payment, Product, User

MOMENT = datetime(2019, 6, 20, 19, 53, 7, tzinfo=timezone.utc)


@pytest.fixture
def order():
    maria = User(id=1, name="Maria Brown", email="maria@gmail.com", phone="988888888", password="123456")
    books = Category(id=2, name="Books")
    lotr = Product(id=1, name="The Lord of the Rings", price=90.5)
    lotr.categories.add(books)
    macbook = Product(id=3, name="Macbook Pro", price=1250.0)
    o = Order(id=1, moment=MOMENT, order_status=OrderStatus.PAID, client=maria)
    o.items.update({OrderItem(o, lotr, 2, 90.5), OrderItem(o, macbook, 1, 1250.0)})
    o.payment = Payment(moment=datetime(2019, 6, 20, 21, 53, 7, tzinfo=timezone.utc))
    maria.orders.append(o)
    lotr.items.update(o.items)
    return o


def test_order_wire_format(order):
    data = json.loads(schemas.Order.from_entity(order).model_dump_json())
    assert data["moment"] == "2019-06-20T19:53:07Z"
    assert data["order_status"] == "PAID"
    assert data["total"] == 1431.0
    assert data["payment"] == {"id": 1, "moment": "2019-06-20T21:53:07Z"}
    assert [i["product"]["id"] for i in data["items"]] == [1, 3]
    assert data["items"][0]["sub_total"] == 181.0
    assert data["items"][0]["product"]["categories"] == [{"id": 2, "name": "Books"}]


def test_back_references_not_serialized(order):
    data = json.loads(schemas.Order.from_entity(order).model_dump_json())
    assert "orders" not in data["client"]
    assert "order" not in data["items"][0]
    assert "orders" not in data["items"][0]["product"]
    assert "order" not in data["payment"]
    assert "products" not in data["items"][0]["product"]["categories"][0]


def test_moment_normalized_to_utc():
    from datetime import timedelta

    local = datetime(2019, 6, 20, 16, 53, 7, 500000, tzinfo=timezone(timedelta(hours=-3)))
    assert schemas.format_moment(local) == "2019-06-20T19:53:07Z"
    assert schemas.format_moment(None) is None


def test_order_round_trip(order):
    raw = schemas.Order.from_entity(order).model_dump_json()
    restored = schemas.Order.model_validate_json(raw).to_entity()
    assert restored == order
    assert restored.moment == MOMENT
    assert restored.order_status_code == order.order_status_code
    assert restored.client.id == order.client.id
    assert restored.client.orders == []
    assert restored.total == order.total
    assert restored.payment.id == order.id
    assert restored.payment.order is restored


def test_total_is_recomputed_not_read(order):
    data = json.loads(schemas.Order.from_entity(order).model_dump_json())
    data["total"] = 1.0
    data["items"][0]["sub_total"] = 1.0
    restored = schemas.Order.model_validate(data).to_entity()
    assert restored.total == 1431.0


@pytest.mark.parametrize("value,expected", [
    ("SHIPPED", OrderStatus.SHIPPED),
    (4, OrderStatus.DELIVERED),
    (None, None),
])
def test_order_status_input(value, expected):
    assert schemas.Order(order_status=value).order_status is expected


@pytest.mark.parametrize("value", ["LOST", 0, 6])
def test_order_status_input_rejected(value):
    with pytest.raises(ValidationError):
        schemas.Order(order_status=value)


def test_user_in_requires_valid_email():
    with pytest.raises(ValidationError):
        schemas.UserIn(name="Bob", email="not-an-email")
    user = schemas.UserIn(name="Bob", email="bob@gmail.com", phone="977777777", password="123456").to_entity()
    assert user.id is None
    assert user.password == "123456"


def test_product_round_trip_keeps_categories():
    product = Product(id=4, name="PC Gamer", description="Donec", price=1200.0, img_url="")
    product.categories.update({Category(id=3, name="Computers"), Category(id=1, name="Electronics")})
    wire = schemas.Product.from_entity(product)
    assert [c.id for c in wire.categories] == [1, 3]
    assert wire.to_entity().categories == product.categories
