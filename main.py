import logging
import os
from typing import List, Optional

from fastapi import APIRouter, Depends, FastAPI, HTTPException, Request, Response, status
from fastapi.exceptions import RequestValidationError
from fastapi.encoders import jsonable_encoder
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pymongo.database import Database

from database import db
from models import IncompleteItemError, InvalidStatusCodeError
from repositories import (
    CategoryRepository,
    OrderRepository,
    ProductRepository,
    ResourceNotFoundError,
    UserRepository,
)
from schemas import Category, Order, Product, User, UserIn
from seed_data import seed_data

logging.basicConfig(
    level=os.getenv("LOG_LEVEL", "INFO").upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


# Dependencies
def get_database(request: Request) -> Database:
    database = request.app.state.database
    if database is None:
        raise HTTPException(status_code=503, detail="Database not configured")
    return database


def get_user_repository(database: Database = Depends(get_database)) -> UserRepository:
    return UserRepository(database)


def get_category_repository(database: Database = Depends(get_database)) -> CategoryRepository:
    return CategoryRepository(database)


def get_product_repository(database: Database = Depends(get_database)) -> ProductRepository:
    return ProductRepository(database)


def get_order_repository(database: Database = Depends(get_database)) -> OrderRepository:
    return OrderRepository(database)


# Users
users = APIRouter(prefix="/users", tags=["users"])


@users.get("", response_model=List[User])
def find_all_users(repo: UserRepository = Depends(get_user_repository)):
    return [User.from_entity(u) for u in repo.get_all()]


@users.get("/{user_id}", response_model=User)
def find_user(user_id: int, repo: UserRepository = Depends(get_user_repository)):
    return User.from_entity(repo.get_by_id(user_id))


@users.post("", response_model=User, status_code=status.HTTP_201_CREATED)
def insert_user(req: UserIn, response: Response, repo: UserRepository = Depends(get_user_repository)):
    user = repo.create(req.to_entity())
    response.headers["Location"] = f"/users/{user.id}"
    return User.from_entity(user)


@users.put("/{user_id}", response_model=User)
def update_user(user_id: int, req: UserIn, repo: UserRepository = Depends(get_user_repository)):
    return User.from_entity(repo.update(user_id, req.to_entity()))


@users.delete("/{user_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_user(user_id: int, repo: UserRepository = Depends(get_user_repository)):
    repo.delete(user_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


# Orders
orders = APIRouter(prefix="/orders", tags=["orders"])


@orders.get("", response_model=List[Order])
def find_all_orders(repo: OrderRepository = Depends(get_order_repository)):
    return [Order.from_entity(o) for o in repo.get_all()]


@orders.get("/{order_id}", response_model=Order)
def find_order(order_id: int, repo: OrderRepository = Depends(get_order_repository)):
    return Order.from_entity(repo.get_by_id(order_id))


# Products
products = APIRouter(prefix="/products", tags=["products"])


@products.get("", response_model=List[Product])
def find_all_products(repo: ProductRepository = Depends(get_product_repository)):
    return [Product.from_entity(p) for p in repo.get_all()]


@products.get("/{product_id}", response_model=Product)
def find_product(product_id: int, repo: ProductRepository = Depends(get_product_repository)):
    return Product.from_entity(repo.get_by_id(product_id))


# Categories
categories = APIRouter(prefix="/categories", tags=["categories"])


@categories.get("", response_model=List[Category])
def find_all_categories(repo: CategoryRepository = Depends(get_category_repository)):
    return [Category.from_entity(c) for c in repo.get_all()]


@categories.get("/{category_id}", response_model=Category)
def find_category(category_id: int, repo: CategoryRepository = Depends(get_category_repository)):
    return Category.from_entity(repo.get_by_id(category_id))


# Error handlers
def resource_not_found(request: Request, exc: ResourceNotFoundError):
    logger.warning("%s %s: %s", request.method, request.url.path, exc)
    return JSONResponse(status_code=404, content={"detail": str(exc)})


def request_validation_failed(request: Request, exc: RequestValidationError):
    logger.warning("%s %s: malformed request", request.method, request.url.path)
    return JSONResponse(status_code=400, content={"detail": jsonable_encoder(exc.errors())})


def domain_error(request: Request, exc: ValueError):
    logger.error("%s %s: %s", request.method, request.url.path, exc)
    return JSONResponse(status_code=500, content={"detail": str(exc)})


def create_app(database: Optional[Database], seed: bool = False) -> FastAPI:
    app = FastAPI(title="Course Shop API")
    app.state.database = database

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.add_exception_handler(ResourceNotFoundError, resource_not_found)
    app.add_exception_handler(RequestValidationError, request_validation_failed)
    app.add_exception_handler(InvalidStatusCodeError, domain_error)
    app.add_exception_handler(IncompleteItemError, domain_error)

    @app.get("/")
    def root():
        return {"message": "Course Shop API running"}

    @app.get("/test")
    def test_database():
        response = {
            "backend": "✅ Running",
            "database": "❌ Not Available",
            "database_url": None,
            "database_name": None,
            "connection_status": "Not Connected",
            "collections": [],
        }
        database = app.state.database
        if database is None:
            return response
        response["database"] = "✅ Available"
        response["database_url"] = "✅ Set" if os.getenv("DATABASE_URL") else "❌ Not Set"
        response["database_name"] = database.name
        response["connection_status"] = "Connected"
        try:
            response["collections"] = database.list_collection_names()[:10]
            response["database"] = "✅ Connected & Working"
        except Exception as e:
            logger.exception("Database check failed")
            response["database"] = f"⚠️  Connected but Error: {str(e)[:50]}"
        return response

    if seed:
        @app.on_event("startup")
        def seed_if_empty():
            if app.state.database is not None:
                seed_data(app.state.database)

    app.include_router(users)
    app.include_router(orders)
    app.include_router(products)
    app.include_router(categories)
    return app


app = create_app(db, seed=os.getenv("SEED_DATA", "1") == "1")


if __name__ == "__main__":
    import uvicorn
    port = int(os.getenv("PORT", 8000))
    uvicorn.run(app, host="0.0.0.0", port=port)
