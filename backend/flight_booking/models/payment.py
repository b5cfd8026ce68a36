"""
Payment model: an append-only record of one charge attempt.

A reservation may have several payment rows but at most one in SUCCESS.
Once SUCCESS or FAILED is written the row is never updated. A SUCCESS
payment on a CANCELLED reservation is left in place for refund.
"""

import enum

from sqlalchemy import Column, Integer, String, DateTime, Numeric, ForeignKey, Enum, Index

from flight_booking.db.base import Base, TimestampMixin, utcnow


class PaymentStatus(str, enum.Enum):
    PENDING = "PENDING"
    SUCCESS = "SUCCESS"
    FAILED = "FAILED"


class Payment(Base, TimestampMixin):
    __tablename__ = "payments"

    id = Column(Integer, primary_key=True, index=True)
    reservation_id = Column(Integer, ForeignKey("reservations.id"), nullable=False, index=True)
    transaction_id = Column(String(40), unique=True, nullable=False, index=True)
    payment_method = Column(String(30), nullable=False)
    amount = Column(Numeric(10, 2), nullable=False)
    status = Column(
        Enum(PaymentStatus, name="payment_status", native_enum=False, create_constraint=True, length=20),
        nullable=False,
        default=PaymentStatus.PENDING,
    )
    payment_date = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    processed_at = Column(DateTime(timezone=True), nullable=True)
    card_last_four = Column(String(4), nullable=True)
    card_holder_name = Column(String(255), nullable=True)
    payment_gateway_response = Column(String(255), nullable=True)
    failure_reason = Column(String(255), nullable=True)

    __table_args__ = (
        Index("ix_payments_reservation_status", "reservation_id", "status"),
    )

    @property
    def is_successful(self) -> bool:
        return self.status == PaymentStatus.SUCCESS

    def __repr__(self) -> str:
        return f"<Payment(id={self.id}, txn={self.transaction_id}, reservation={self.reservation_id}, status={self.status})>"
