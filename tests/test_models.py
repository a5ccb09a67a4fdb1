from datetime import datetime, timezone

import pytest

from models import (
    Category,
    IncompleteItemError,
    InvalidStatusCodeError,
    Order,
    OrderItem,
    OrderItemPK,
    OrderStatus,
    Payment,
    Product,
    User,
)


@pytest.mark.parametrize("code", [1, 2, 3, 4, 5])
def test_status_from_code_round_trips(code):
    assert OrderStatus.from_code(code).code == code


@pytest.mark.parametrize("code", [0, 6, -1, 100, None, "2", True])
def test_status_from_code_rejects_unknown(code):
    with pytest.raises(InvalidStatusCodeError):
        OrderStatus.from_code(code)


def test_status_codes_are_fixed():
    assert [(s.name, s.code) for s in OrderStatus] == [
        ("WAITING_PAYMENT", 1),
        ("PAID", 2),
        ("SHIPPED", 3),
        ("DELIVERED", 4),
        ("CANCELED", 5),
    ]


def test_order_status_none_keeps_current_code():
    order = Order(id=1, order_status=OrderStatus.PAID)
    order.order_status = None
    assert order.order_status is OrderStatus.PAID
    assert order.order_status_code == 2


def test_order_status_unset_reads_none():
    assert Order(id=1).order_status is None


def test_order_status_any_transition_allowed():
    order = Order(id=1, order_status=OrderStatus.CANCELED)
    order.order_status = OrderStatus.WAITING_PAYMENT
    assert order.order_status is OrderStatus.WAITING_PAYMENT


def test_order_status_invalid_stored_code_fails_on_read():
    order = Order(id=1)
    order.order_status_code = 9
    with pytest.raises(InvalidStatusCodeError):
        order.order_status


@pytest.mark.parametrize("price,quantity", [
    (10.0, 2),
    (0.1, 3),
    (100.99, 0),
    (0.0, 7),
    (1250.0, 1),
    (19.95, 13),
])
def test_sub_total_is_price_times_quantity(price, quantity):
    item = OrderItem(Order(id=1), Product(id=1), quantity, price)
    assert item.sub_total == price * quantity


def test_sub_total_zero_quantity():
    assert OrderItem(Order(id=1), Product(id=1), 0, 12.5).sub_total == 0


@pytest.mark.parametrize("quantity,price", [(None, 1.0), (1, None), (None, None)])
def test_sub_total_incomplete_item(quantity, price):
    with pytest.raises(IncompleteItemError):
        OrderItem(Order(id=1), Product(id=1), quantity, price).sub_total


def test_order_total():
    order = Order(id=1)
    order.items.add(OrderItem(order, Product(id=1), 2, 10.0))
    order.items.add(OrderItem(order, Product(id=2), 1, 5.0))
    assert order.total == 25.0


def test_order_total_empty():
    assert Order(id=1).total == 0


def test_order_total_incomplete_item():
    order = Order(id=1)
    order.items.add(OrderItem(order, Product(id=1), None, 5.0))
    with pytest.raises(IncompleteItemError):
        order.total


def test_order_items_equal_by_composite_key():
    order, p1, p2 = Order(id=1), Product(id=1), Product(id=2)
    assert OrderItem(order, p1, 1, 10.0) == OrderItem(Order(id=1), Product(id=1), 5, 99.0)
    assert OrderItem(order, p1, 1, 10.0) != OrderItem(order, p2, 1, 10.0)
    assert len({OrderItem(order, p1, 1, 10.0), OrderItem(order, p1, 3, 10.0)}) == 1


def test_order_item_pk_equality():
    assert OrderItemPK(Order(id=1), Product(id=2)) == OrderItemPK(Order(id=1), Product(id=2))
    assert OrderItemPK(Order(id=1), Product(id=2)) != OrderItemPK(Order(id=2), Product(id=2))
    assert hash(OrderItemPK(Order(id=1), Product(id=2))) == hash(OrderItemPK(Order(id=1), Product(id=2)))


def test_order_item_accessors_go_through_key():
    order, product = Order(id=3), Product(id=4)
    item = OrderItem()
    item.order = order
    item.product = product
    assert item.id.order is order
    assert item.id.product is product


@pytest.mark.parametrize("cls", [User, Category, Product, Order, Payment])
def test_entity_equality_by_id(cls):
    a, b, c = cls(id=7), cls(id=7), cls(id=7)
    assert a == a
    assert a == b and b == a
    assert b == c and a == c
    assert hash(a) == hash(b)
    assert cls(id=7) != cls(id=8)


def test_entity_equality_ignores_attributes():
    a = User(id=1, name="Maria", email="maria@gmail.com")
    b = User(id=1, name="Alex", email="alex@gmail.com")
    assert a == b
    b.name = "Bob"
    b.phone = "999"
    assert a == b


def test_unsaved_entities_equal_only_to_themselves():
    a, b = Product(name="TV"), Product(name="TV")
    assert a == a
    assert a != b
    assert len({a, b}) == 2


def test_entities_of_different_types_are_unequal():
    assert User(id=1) != Order(id=1)
    assert Category(id=1) != Product(id=1)


def test_product_orders_are_distinct():
    product, other = Product(id=1), Product(id=2)
    order = Order(id=1)
    product.items.add(OrderItem(order, product, 1, 10.0))
    product.items.add(OrderItem(Order(id=1), other, 2, 10.0))
    assert product.orders == {Order(id=1)}
    assert len(product.orders) == 1


def test_product_orders_follow_items():
    product = Product(id=1)
    assert product.orders == set()
    product.items.add(OrderItem(Order(id=1), product, 1, 1.0))
    product.items.add(OrderItem(Order(id=2), product, 1, 1.0))
    assert product.orders == {Order(id=1), Order(id=2)}
    product.items.clear()
    assert product.orders == set()


def test_payment_shares_order_id():
    order = Order(id=5, moment=datetime(2019, 6, 20, 19, 53, 7, tzinfo=timezone.utc))
    payment = Payment(moment=datetime(2019, 6, 20, 21, 53, 7, tzinfo=timezone.utc))
    order.payment = payment
    assert payment.id == 5
    assert payment.order is order
