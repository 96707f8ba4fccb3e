"""
Booking model representing one child's reservation for an activity.

Key design decisions:
- No unique constraint on (subject, activity): every submission is its own booking
- Line items are owned by the booking and deleted with it
- `amount` always equals the sum of line item unit prices; both are written together
- Cancellation deletes the row; the status column still admits 'cancelled'
  so occupancy counts exclude it if a cancelled row is ever kept
"""

from sqlalchemy import Column, Integer, String, Text, ForeignKey, CheckConstraint
from sqlalchemy.orm import relationship

from workshop_booking.db.base import Base, TimestampMixin

BOOKING_STATUSES = ("pending", "completed", "cancelled")
PAYMENT_STATUSES = ("pending", "paid", "refunded")


class Booking(Base, TimestampMixin):
    __tablename__ = "bookings"

    id = Column(Integer, primary_key=True, index=True)
    subject_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    payer_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    activity_id = Column(Integer, ForeignKey("activities.id"), nullable=False, index=True)
    status = Column(String(20), nullable=False, default="pending")
    payment_status = Column(String(20), nullable=False, default="pending")
    amount = Column(Integer, nullable=False, default=0)
    notes = Column(Text, nullable=True)

    line_items = relationship(
        "BookingLineItem",
        back_populates="booking",
        cascade="all, delete-orphan",
        order_by="BookingLineItem.position",
        lazy="selectin",
    )

    __table_args__ = (
        CheckConstraint("amount >= 0", name="check_booking_amount_non_negative"),
        CheckConstraint("status IN ('pending', 'completed', 'cancelled')", name="check_booking_status"),
        CheckConstraint(
            "payment_status IN ('pending', 'paid', 'refunded')",
            name="check_booking_payment_status",
        ),
    )

    @property
    def owner_ids(self) -> frozenset[int]:
        return frozenset({self.payer_id, self.subject_id})

    def __repr__(self) -> str:
        return f"<Booking(id={self.id}, subject={self.subject_id}, activity={self.activity_id}, status={self.status})>"


class BookingLineItem(Base):
    __tablename__ = "booking_line_items"

    id = Column(Integer, primary_key=True, index=True)
    booking_id = Column(
        Integer,
        ForeignKey("bookings.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    item_id = Column(Integer, ForeignKey("catalog_items.id"), nullable=False)
    variant_id = Column(Integer, ForeignKey("catalog_variants.id"), nullable=True)
    unit_price = Column(Integer, nullable=False)
    position = Column(Integer, nullable=False, default=0)

    booking = relationship("Booking", back_populates="line_items")

    __table_args__ = (
        CheckConstraint("unit_price >= 0", name="check_line_item_price_non_negative"),
    )

    def __repr__(self) -> str:
        return f"<BookingLineItem(booking={self.booking_id}, item={self.item_id}, price={self.unit_price})>"
