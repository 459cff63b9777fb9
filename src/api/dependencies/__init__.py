from typing import Annotated, Generator

from fastapi import Depends, Request
from sqlalchemy.orm import Session, sessionmaker

from db.repositories import (
    CustomerRepository,
    SqlSettlementUnitOfWork,
    TransactionRepository,
    WasteCategoryRepository,
)
from domain.catalog import CatalogReader
from domain.identification import IdentificationResolver
from domain.settlement import SettlementEngine


def get_session_factory(request: Request) -> sessionmaker[Session]:
    return request.app.state.sessionmaker


def get_session(
    session_factory: Annotated[sessionmaker[Session], Depends(get_session_factory)],
) -> Generator[Session, None, None]:
    with session_factory() as session:
        yield session


def get_catalog_reader(session: Annotated[Session, Depends(get_session)]) -> CatalogReader:
    return CatalogReader(WasteCategoryRepository(session))


def get_identification_resolver(session: Annotated[Session, Depends(get_session)]) -> IdentificationResolver:
    return IdentificationResolver(CustomerRepository(session))


def get_transaction_repository(session: Annotated[Session, Depends(get_session)]) -> TransactionRepository:
    return TransactionRepository(session)


def get_settlement_engine(
    session_factory: Annotated[sessionmaker[Session], Depends(get_session_factory)],
) -> SettlementEngine:
    return SettlementEngine(unit_of_work_factory=lambda: SqlSettlementUnitOfWork(session_factory))
