"""
Pricing and eligibility for booking line items.

Each selection is a catalog item plus an optional variant. A variant's price
replaces the item's base price. Items whose minimum age is above the subject's
age are collected and rejected together, so the caller can fix every choice in
one round trip.
"""

from dataclasses import dataclass, field
from typing import Optional, Sequence

from workshop_booking.domain.errors import IneligibleItem, NotFound
from workshop_booking.models import BookingLineItem
from workshop_booking.repositories.interfaces import CatalogReader


@dataclass(frozen=True)
class Selection:
    item_id: int
    variant_id: Optional[int] = None


@dataclass(frozen=True)
class PricedLine:
    item_id: int
    variant_id: Optional[int]
    unit_price: int
    name: str


@dataclass(frozen=True)
class PricedSelection:
    lines: list[PricedLine] = field(default_factory=list)

    @property
    def total(self) -> int:
        return sum(line.unit_price for line in self.lines)

    def to_line_items(self) -> list[BookingLineItem]:
        return [
            BookingLineItem(
                item_id=line.item_id,
                variant_id=line.variant_id,
                unit_price=line.unit_price,
                position=position,
            )
            for position, line in enumerate(self.lines)
        ]


async def resolve(
    catalog: CatalogReader,
    subject_age: Optional[int],
    selections: Sequence[Selection],
) -> PricedSelection:
    """
    Price the selections for a subject of the given age.

    A subject without a recorded age is treated as age 0.

    Raises:
        NotFound: an item or variant does not exist, or the variant belongs to another item.
        IneligibleItem: one or more items require an older subject (all names listed).
    """
    age = subject_age or 0
    lines: list[PricedLine] = []
    ineligible: list[str] = []

    for selection in selections:
        item = await catalog.get_item(selection.item_id)
        if item is None:
            raise NotFound("Catalog item", selection.item_id)

        if (item.min_age or 0) > age and item.name not in ineligible:
            ineligible.append(item.name)

        price = item.price
        if selection.variant_id is not None:
            variant = await catalog.get_variant(selection.variant_id)
            if variant is None or variant.item_id != item.id:
                raise NotFound("Catalog variant", selection.variant_id)
            price = variant.price

        lines.append(
            PricedLine(
                item_id=item.id,
                variant_id=selection.variant_id,
                unit_price=price,
                name=item.name,
            )
        )

    if ineligible:
        raise IneligibleItem(ineligible, age)

    return PricedSelection(lines=lines)
