"""
User model. Owned by the identity service; the booking engine only reads it.
"""

from sqlalchemy import Column, Integer, String, Boolean, CheckConstraint

from workshop_booking.db.base import Base, TimestampMixin


class User(Base, TimestampMixin):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    email = Column(String(255), unique=True, index=True, nullable=False)
    first_name = Column(String(100), nullable=False, default="")
    last_name = Column(String(100), nullable=False, default="")
    role = Column(String(20), nullable=False, index=True)  # admin, staff, parent, child
    # Only children carry an age; it drives catalog item eligibility
    age = Column(Integer, nullable=True)
    is_active = Column(Boolean, default=True, nullable=False)

    __table_args__ = (
        CheckConstraint("role IN ('admin', 'staff', 'parent', 'child')", name="check_user_role"),
    )

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()

    def __repr__(self) -> str:
        return f"<User(id={self.id}, email={self.email}, role={self.role})>"
