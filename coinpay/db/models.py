"""SQLAlchemy ORM models."""
import uuid

from sqlalchemy import BigInteger, Column, DateTime, ForeignKey, Integer, String, Text
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from coinpay.db.session import Base


def generate_uuid() -> str:
    return str(uuid.uuid4())


class PaymentOrder(Base):
    __tablename__ = "payment_orders"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    rail = Column(String(20), nullable=False)  # on_chain, fiat_gateway
    status = Column(String(30), nullable=False, default="created", index=True)
    payer_wallet = Column(String(128), index=True)
    payer_email = Column(String(255))
    source_amount = Column(String(64), nullable=False)
    source_currency = Column(String(20), nullable=False)
    rate = Column(String(64), nullable=False)
    # amounts below are integer base units: nanotoken, kobo, nano-coin
    token_units = Column(BigInteger, nullable=False)
    fiat_units = Column(BigInteger, nullable=False)
    credit_units = Column(BigInteger, nullable=False)
    settlement_amount = Column(BigInteger, nullable=False)
    external_ref = Column(String(100), nullable=False, unique=True)
    settlement_target = Column(Text)
    failure_reason = Column(String(50))
    detail = Column(Text)
    created_at = Column(DateTime(timezone=True), nullable=False)
    expires_at = Column(DateTime(timezone=True), nullable=False, index=True)
    settled_at = Column(DateTime(timezone=True))
    credited_at = Column(DateTime(timezone=True))
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())


class CreditBalance(Base):
    __tablename__ = "credit_balances"

    wallet = Column(String(128), primary_key=True)
    balance_units = Column(BigInteger, nullable=False, default=0)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    entries = relationship("CreditLedgerEntry", back_populates="balance")


class CreditLedgerEntry(Base):
    __tablename__ = "credit_ledger"

    id = Column(Integer, primary_key=True, autoincrement=True)
    order_id = Column(String(36), ForeignKey("payment_orders.id"), nullable=False, unique=True)
    wallet = Column(String(128), ForeignKey("credit_balances.wallet"), nullable=False, index=True)
    amount_units = Column(BigInteger, nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False)

    balance = relationship("CreditBalance", back_populates="entries")
    order = relationship("PaymentOrder")
