import logging
from datetime import datetime, timezone

from pymongo.database import Database

from models import Category, Order, OrderItem, OrderStatus, Payment, Product, User
from repositories import (
    CategoryRepository,
    OrderItemRepository,
    OrderRepository,
    ProductRepository,
    UserRepository,
)

logger = logging.getLogger(__name__)


def seed_data(database: Database) -> bool:
    """Load the demo data set into an empty store. Returns False if data exists."""
    users_repo = UserRepository(database)
    if users_repo.count() > 0:
        logger.info("Store already holds data, skipping seed")
        return False

    categories_repo = CategoryRepository(database)
    products_repo = ProductRepository(database)
    orders_repo = OrderRepository(database)
    items_repo = OrderItemRepository(database)

    electronics = Category(name="Electronics")
    books = Category(name="Books")
    computers = Category(name="Computers")
    categories_repo.save_all([electronics, books, computers])

    lotr = Product(name="The Lord of the Rings", description="Lorem ipsum dolor sit amet, consectetur.", price=90.5)
    tv = Product(name="Smart TV", description="Nulla eu imperdiet purus. Maecenas ante.", price=2190.0)
    macbook = Product(name="Macbook Pro", description="Nam eleifend maximus tortor, at mollis.", price=1250.0)
    pc = Product(name="PC Gamer", description="Donec aliquet odio ac rhoncus cursus.", price=1200.0)
    rails = Product(name="Rails for Dummies", description="Cras fringilla convallis sem vel faucibus.", price=100.99)
    lotr.categories.add(books)
    tv.categories.update({electronics, computers})
    macbook.categories.add(computers)
    pc.categories.add(computers)
    rails.categories.add(books)
    products_repo.save_all([lotr, tv, macbook, pc, rails])

    maria = User(name="Maria Brown", email="maria@gmail.com", phone="988888888", password="123456")
    alex = User(name="Alex Green", email="alex@gmail.com", phone="977777777", password="123456")
    users_repo.save_all([maria, alex])

    o1 = Order(moment=datetime(2019, 6, 20, 19, 53, 7, tzinfo=timezone.utc), order_status=OrderStatus.PAID, client=maria)
    o2 = Order(moment=datetime(2019, 7, 21, 3, 42, 10, tzinfo=timezone.utc), order_status=OrderStatus.WAITING_PAYMENT, client=alex)
    o3 = Order(moment=datetime(2019, 7, 22, 15, 21, 22, tzinfo=timezone.utc), order_status=OrderStatus.WAITING_PAYMENT, client=maria)
    orders_repo.save_all([o1, o2, o3])

    # snapshot the product price at time of sale
    items_repo.save_all([
        OrderItem(o1, lotr, 2, lotr.price),
        OrderItem(o1, macbook, 1, macbook.price),
        OrderItem(o2, macbook, 2, macbook.price),
        OrderItem(o3, rails, 2, rails.price),
    ])

    o1.payment = Payment(moment=datetime(2019, 6, 20, 21, 53, 7, tzinfo=timezone.utc))
    orders_repo.save(o1)

    logger.info("Seeded %d users, %d categories, %d products, %d orders",
                users_repo.count(), categories_repo.count(), products_repo.count(), orders_repo.count())
    return True


if __name__ == "__main__":
    from database import db

    logging.basicConfig(level=logging.INFO)
    if db is None:
        raise SystemExit("DATABASE_URL and DATABASE_NAME must be set")
    seed_data(db)
