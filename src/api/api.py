import logging
from contextlib import asynccontextmanager
from decimal import Decimal
from time import perf_counter
from typing import Annotated, AsyncGenerator, Awaitable, Callable
from uuid import UUID

from fastapi import APIRouter, Depends, FastAPI, Header, Request, Response, status
from pydantic import BaseModel
from sqlalchemy.orm import sessionmaker

from api.dependencies import (
    get_catalog_reader,
    get_identification_resolver,
    get_settlement_engine,
    get_transaction_repository,
)
from api.error_handlers import register_error_handlers
from config import config
from db.db import create_db_engine
from db.models import Base
from db.repositories import TransactionRepository
from domain.base_types import TransactionId
from domain.cart import Cart, parse_weight
from domain.catalog import CatalogReader, WasteCategory
from domain.customer import Customer
from domain.errors import TransactionNotFound
from domain.identification import IdentificationResolver
from domain.settlement import SettlementEngine
from domain.transaction import Transaction

logger = logging.getLogger(__name__)


class DepositItem(BaseModel):
    category_id: str
    weight: Decimal | str


class DepositRequest(BaseModel):
    customer_id: str
    items: list[DepositItem]


@asynccontextmanager
async def lifespan(fastapi_app: FastAPI) -> AsyncGenerator[None, None]:
    settings = config()
    settings.db_file.parent.mkdir(parents=True, exist_ok=True)
    engine = create_db_engine(settings.db_file, timeout=settings.sqlite_timeout_seconds)
    Base.metadata.create_all(engine)
    fastapi_app.state.sessionmaker = sessionmaker(engine)
    yield
    engine.dispose()


router = APIRouter()


@router.get("/categories")
def get_categories(catalog: Annotated[CatalogReader, Depends(get_catalog_reader)]) -> list[WasteCategory]:
    return catalog.list_categories()


@router.get("/customers/{customer_id}")
def get_customer(
    customer_id: str,
    resolver: Annotated[IdentificationResolver, Depends(get_identification_resolver)],
) -> Customer:
    return resolver.resolve(customer_id)


@router.get("/customers/{customer_id}/transactions")
def get_customer_transactions(
    customer_id: str,
    resolver: Annotated[IdentificationResolver, Depends(get_identification_resolver)],
    transactions: Annotated[TransactionRepository, Depends(get_transaction_repository)],
) -> list[Transaction]:
    customer = resolver.resolve(customer_id)
    return transactions.list_for_customer(customer.id)


@router.get("/transactions/{transaction_id}")
def get_transaction(
    transaction_id: UUID,
    transactions: Annotated[TransactionRepository, Depends(get_transaction_repository)],
) -> Transaction:
    transaction = transactions.get(TransactionId(transaction_id))
    if transaction is None:
        raise TransactionNotFound(transaction_id=str(transaction_id))
    return transaction


@router.post("/deposits", status_code=status.HTTP_201_CREATED)
def create_deposit(
    deposit: DepositRequest,
    idempotency_key: Annotated[str, Header(alias="Idempotency-Key")],
    catalog: Annotated[CatalogReader, Depends(get_catalog_reader)],
    resolver: Annotated[IdentificationResolver, Depends(get_identification_resolver)],
    engine: Annotated[SettlementEngine, Depends(get_settlement_engine)],
) -> Transaction:
    items = [(item.category_id, parse_weight(item.weight)) for item in deposit.items]
    settled = engine.find_settled(idempotency_key, deposit.customer_id, items)
    if settled is not None:
        return settled

    cart = Cart(checkout_key=idempotency_key)
    cart.bind_customer(resolver.resolve(deposit.customer_id))
    for category_id, weight in items:
        cart.add_line_item(catalog.get_category(category_id), weight)
    return engine.commit(cart.snapshot(), idempotency_key)


def create_app() -> FastAPI:
    fastapi_app = FastAPI(title="Waste Bank", lifespan=lifespan)

    @fastapi_app.middleware("http")
    async def log_process_time(request: Request, call_next: Callable[[Request], Awaitable[Response]]) -> Response:
        start_time = perf_counter()
        response = await call_next(request)
        process_time = perf_counter() - start_time
        logger.info("Request time: %s %s: %.4fs", request.method, request.url, process_time)
        return response

    register_error_handlers(fastapi_app)
    fastapi_app.include_router(router)
    return fastapi_app


app = create_app()
