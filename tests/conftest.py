from typing import Generator

import pytest
from sqlalchemy import Engine, create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from db.models import Base
from db.repositories import CustomerRepository, SqlSettlementUnitOfWork, WasteCategoryRepository
from domain.catalog import WasteCategory
from domain.customer import Customer
from domain.settlement import SettlementEngine
from tests.constants import BUDI_CUSTOMER, GLASS_CATEGORY, PAPER_CATEGORY, PLASTIC_CATEGORY, SITI_CUSTOMER

# StaticPool keeps one in-memory database visible to every session and thread.
engine: Engine = create_engine(
    "sqlite:///:memory:", connect_args={"check_same_thread": False}, poolclass=StaticPool
)
test_sessionmaker = sessionmaker(engine)


@pytest.fixture(scope="function")
def test_session() -> Generator[Session, None, None]:
    with test_sessionmaker() as session:
        yield session


@pytest.fixture(scope="function", autouse=True)
def reset_db() -> Generator[None, None, None]:
    Base.metadata.create_all(engine)
    yield
    Base.metadata.drop_all(engine)


@pytest.fixture(scope="function")
def session_factory() -> sessionmaker[Session]:
    return test_sessionmaker


@pytest.fixture(scope="function")
def categories(test_session: Session) -> list[WasteCategory]:
    return WasteCategoryRepository(test_session).create_many([PAPER_CATEGORY, PLASTIC_CATEGORY, GLASS_CATEGORY])


@pytest.fixture(scope="function")
def customers(test_session: Session) -> list[Customer]:
    return CustomerRepository(test_session).create_many([SITI_CUSTOMER, BUDI_CUSTOMER])


@pytest.fixture(scope="function")
def settlement_engine(session_factory: sessionmaker[Session]) -> SettlementEngine:
    return SettlementEngine(unit_of_work_factory=lambda: SqlSettlementUnitOfWork(session_factory))
