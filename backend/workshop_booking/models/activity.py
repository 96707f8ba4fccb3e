"""
Activity (workshop) model with a derived occupancy counter.

Key design decisions:
- `current_participants` is denormalized so listings need no COUNT per row.
  It is only ever written by the occupancy tracker from a fresh aggregate query.
- executor/contact/notes are real columns, not a serialized blob in `notes`
- Index on `starts_at` for schedule range queries
"""

from sqlalchemy import Column, Integer, String, Text, DateTime, ForeignKey, Index, CheckConstraint

from workshop_booking.db.base import Base, TimestampMixin

ACTIVITY_STATUSES = ("scheduled", "in-progress", "completed", "cancelled")


class Activity(Base, TimestampMixin):
    __tablename__ = "activities"

    id = Column(Integer, primary_key=True, index=True)
    service_id = Column(Integer, ForeignKey("services.id"), nullable=False, index=True)
    title = Column(String(255), nullable=False, default="")
    starts_at = Column(DateTime(timezone=True), nullable=False)
    max_participants = Column(Integer, nullable=False, default=20)
    current_participants = Column(Integer, nullable=False, default=0)
    status = Column(String(20), nullable=False, default="scheduled")

    # Details sub-record
    executor_id = Column(Integer, ForeignKey("users.id"), nullable=True, index=True)
    contact_phone = Column(String(50), nullable=True)
    notes = Column(Text, nullable=True)

    __table_args__ = (
        CheckConstraint("current_participants >= 0", name="check_current_participants_non_negative"),
        CheckConstraint("max_participants > 0", name="check_max_participants_positive"),
        CheckConstraint(
            "status IN ('scheduled', 'in-progress', 'completed', 'cancelled')",
            name="check_activity_status",
        ),
        Index("ix_activities_starts_at", "starts_at"),
    )

    def __repr__(self) -> str:
        return (
            f"<Activity(id={self.id}, starts_at={self.starts_at}, "
            f"occupancy={self.current_participants}/{self.max_participants})>"
        )
