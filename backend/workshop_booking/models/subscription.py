"""
Durable web push endpoint. One row per (user, endpoint); a user may have many devices.
"""

from sqlalchemy import Column, Integer, String, ForeignKey, UniqueConstraint

from workshop_booking.db.base import Base, TimestampMixin


class PushSubscription(Base, TimestampMixin):
    __tablename__ = "push_subscriptions"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    endpoint = Column(String(2048), nullable=False)
    p256dh = Column(String(512), nullable=False)
    auth = Column(String(512), nullable=False)

    __table_args__ = (
        UniqueConstraint("user_id", "endpoint", name="uq_push_subscription_user_endpoint"),
    )

    def __repr__(self) -> str:
        return f"<PushSubscription(id={self.id}, user={self.user_id})>"
