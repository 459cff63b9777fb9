from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from uuid import UUID, uuid4

from sqlalchemy import BigInteger, DateTime, ForeignKey, Integer, String, Uuid
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship
from sqlalchemy.types import TypeDecorator

from utils.decimal_scaling import MONEY_SCALE, decimal_to_int, int_to_decimal


class DecimalAsString(TypeDecorator):
    impl = String
    cache_ok = True

    def process_bind_param(self, value: Decimal | None, dialect: object) -> str | None:
        if value is None:
            return None
        return str(value)

    def process_result_value(self, value: str | None, dialect: object) -> Decimal | None:
        if value is None:
            return None
        return Decimal(value)


class ScaledDecimal(TypeDecorator):
    """Exact decimal stored as an integer count of 10**-scale units.

    Integer storage lets the database add to a balance in place
    (``balance = balance + :amount``) without float rounding.
    """

    impl = BigInteger
    cache_ok = True

    def __init__(self, scale: int = MONEY_SCALE) -> None:
        super().__init__()
        self.scale = scale

    def process_bind_param(self, value: Decimal | None, dialect: object) -> int | None:
        if value is None:
            return None
        return decimal_to_int(value, self.scale)

    def process_result_value(self, value: int | None, dialect: object) -> Decimal | None:
        if value is None:
            return None
        return int_to_decimal(value, self.scale)


class Base(DeclarativeBase):
    pass


class CustomerOrm(Base):
    __tablename__ = "customers"

    id: Mapped[str] = mapped_column(String, primary_key=True)
    name: Mapped[str] = mapped_column(String, nullable=False)
    balance: Mapped[Decimal] = mapped_column(ScaledDecimal(), nullable=False, default=Decimal(0))


class WasteCategoryOrm(Base):
    __tablename__ = "waste_categories"

    id: Mapped[str] = mapped_column(String, primary_key=True)
    name: Mapped[str] = mapped_column(String, nullable=False)
    price_per_unit_weight: Mapped[Decimal] = mapped_column(DecimalAsString, nullable=False)
    image_ref: Mapped[str | None] = mapped_column(String, nullable=True)


class TransactionOrm(Base):
    __tablename__ = "transactions"

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    customer_id: Mapped[str] = mapped_column(String, ForeignKey("customers.id"), nullable=False, index=True)
    customer_name: Mapped[str] = mapped_column(String, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    kind: Mapped[str] = mapped_column(String, nullable=False)
    total_weight: Mapped[Decimal] = mapped_column(DecimalAsString, nullable=False)
    total_amount: Mapped[Decimal] = mapped_column(DecimalAsString, nullable=False)
    idempotency_key: Mapped[str] = mapped_column(String, nullable=False, unique=True)
    fingerprint: Mapped[str] = mapped_column(String, nullable=False)

    lines: Mapped[list["TransactionLineOrm"]] = relationship(
        cascade="all, delete-orphan",
        back_populates="transaction",
        lazy="joined",
        order_by="TransactionLineOrm.position",
    )


class TransactionLineOrm(Base):
    __tablename__ = "transaction_lines"

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    line_item_id: Mapped[UUID] = mapped_column(Uuid, nullable=False)
    transaction_id: Mapped[UUID] = mapped_column(Uuid, ForeignKey("transactions.id"), nullable=False)
    position: Mapped[int] = mapped_column(Integer, nullable=False)
    category_id: Mapped[str] = mapped_column(String, nullable=False)
    category_name: Mapped[str] = mapped_column(String, nullable=False)
    weight: Mapped[Decimal] = mapped_column(DecimalAsString, nullable=False)
    unit_price: Mapped[Decimal] = mapped_column(DecimalAsString, nullable=False)

    transaction: Mapped[TransactionOrm] = relationship(back_populates="lines")


class BalanceCreditOrm(Base):
    __tablename__ = "balance_credits"

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    customer_id: Mapped[str] = mapped_column(String, ForeignKey("customers.id"), nullable=False, index=True)
    amount: Mapped[Decimal] = mapped_column(ScaledDecimal(), nullable=False)
    idempotency_key: Mapped[str] = mapped_column(String, nullable=False, unique=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
