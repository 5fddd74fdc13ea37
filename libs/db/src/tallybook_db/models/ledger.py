from __future__ import annotations

from datetime import datetime
from decimal import Decimal

from sqlalchemy import (
    BigInteger,
    DateTime,
    Integer,
    String,
    Text,
    UniqueConstraint,
    text,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column
from sqlalchemy.types import TypeDecorator

_MAX_CENTS = 2**63 - 1


class Base(DeclarativeBase):
    pass


class Cents(TypeDecorator[Decimal]):
    """Money column: ``Decimal`` in Python, integer minor units in the database.

    Integers compare exactly on every backend, so the natural key holds on
    SQLite too. Values with more than two fractional digits are rejected, not
    rounded.
    """

    impl = BigInteger
    cache_ok = True

    def process_bind_param(self, value, dialect):
        if value is None:
            return None
        cents = Decimal(value).scaleb(2)
        if cents != cents.to_integral_value():
            raise ValueError(f"amount {value!r} has more than two decimal places")
        if abs(cents) > _MAX_CENTS:
            raise ValueError(f"amount {value!r} is out of range")
        return int(cents)

    def process_result_value(self, value, dialect):
        if value is None:
            return None
        return Decimal(int(value)).scaleb(-2)


# ---------------------------
# Core: tb_transactions
# ---------------------------


class TbTransaction(Base):
    __tablename__ = "tb_transactions"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    # Dates are kept exactly as they appear in the source file. They take part
    # in the natural key, so no reformatting happens on the way in.
    transaction_date: Mapped[str] = mapped_column(String, nullable=False)
    post_date: Mapped[str] = mapped_column(String, nullable=False, server_default=text("''"))
    description: Mapped[str] = mapped_column(Text, nullable=False)
    # Empty string means "uncategorized".
    category: Mapped[str] = mapped_column(String, nullable=False, server_default=text("''"))
    type: Mapped[str] = mapped_column(String, nullable=False, server_default=text("''"))
    amount: Mapped[Decimal] = mapped_column(Cents, nullable=False)
    memo: Mapped[str] = mapped_column(Text, nullable=False, server_default=text("''"))
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=text("CURRENT_TIMESTAMP")
    )

    __table_args__ = (
        UniqueConstraint(
            "transaction_date",
            "description",
            "amount",
            name="uq_tb_tx_natural_key",
        ),
    )


# ---------------------------
# Rules: tb_rules
# ---------------------------


class TbRule(Base):
    __tablename__ = "tb_rules"

    # Storage order (ascending id) is the order rules are applied in.
    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    keyword: Mapped[str] = mapped_column(String, nullable=False)
    category: Mapped[str] = mapped_column(String, nullable=False)


# ---------------------------
# Settings: tb_settings
# ---------------------------


class TbSetting(Base):
    __tablename__ = "tb_settings"

    key: Mapped[str] = mapped_column(String, primary_key=True)
    value: Mapped[str] = mapped_column(Text, nullable=False, server_default=text("''"))


__all__ = [
    "Base",
    "Cents",
    "TbRule",
    "TbSetting",
    "TbTransaction",
]
