"""
Service catalog: services, their selectable items (sub-services) and priced variants.

Reference data maintained elsewhere; the booking engine only reads it.
Prices are integers in the minor currency unit.
"""

from sqlalchemy import Column, Integer, String, ForeignKey, CheckConstraint
from sqlalchemy.orm import relationship

from workshop_booking.db.base import Base, TimestampMixin


class Service(Base, TimestampMixin):
    __tablename__ = "services"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(255), nullable=False)

    items = relationship(
        "CatalogItem",
        back_populates="service",
        order_by="CatalogItem.order_index",
        lazy="selectin",
    )

    def __repr__(self) -> str:
        return f"<Service(id={self.id}, name={self.name})>"


class CatalogItem(Base, TimestampMixin):
    __tablename__ = "catalog_items"

    id = Column(Integer, primary_key=True, index=True)
    service_id = Column(Integer, ForeignKey("services.id"), nullable=False, index=True)
    name = Column(String(255), nullable=False)
    price = Column(Integer, nullable=False, default=0)
    min_age = Column(Integer, nullable=False, default=0)
    order_index = Column(Integer, nullable=False, default=0)

    service = relationship("Service", back_populates="items")
    variants = relationship(
        "CatalogVariant",
        back_populates="item",
        order_by="CatalogVariant.order_index",
        lazy="selectin",
    )

    __table_args__ = (
        CheckConstraint("price >= 0", name="check_catalog_item_price_non_negative"),
        CheckConstraint("min_age >= 0", name="check_catalog_item_min_age_non_negative"),
    )

    def __repr__(self) -> str:
        return f"<CatalogItem(id={self.id}, name={self.name}, price={self.price}, min_age={self.min_age})>"


class CatalogVariant(Base, TimestampMixin):
    __tablename__ = "catalog_variants"

    id = Column(Integer, primary_key=True, index=True)
    item_id = Column(Integer, ForeignKey("catalog_items.id"), nullable=False, index=True)
    name = Column(String(255), nullable=False)
    price = Column(Integer, nullable=False, default=0)
    order_index = Column(Integer, nullable=False, default=0)

    item = relationship("CatalogItem", back_populates="variants")

    __table_args__ = (
        CheckConstraint("price >= 0", name="check_catalog_variant_price_non_negative"),
    )

    def __repr__(self) -> str:
        return f"<CatalogVariant(id={self.id}, item={self.item_id}, price={self.price})>"
