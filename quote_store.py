from __future__ import annotations

import logging
from typing import List, Mapping, Optional

from pricing_engine import (
    AccessoryEntry,
    AccessoryKind,
    LineItem,
    ProductQuote,
    QuoteData,
    ROLLER_BLIND,
)

logger = logging.getLogger(__name__)

PRICE_INPUT_COLUMNS = frozenset({"width", "height", "fabric_type"})
EDITABLE_COLUMNS = frozenset({"width", "height", "fabric_type", "location", "dual", "chain"})
WINDER_MOTOR_COLUMNS = frozenset({"winder", "motor"})

_COST_SUM_FIELDS = {
    AccessoryKind.WINDER: "winder_cost_sum",
    AccessoryKind.MOTOR: "motor_cost_sum",
    AccessoryKind.REMOTE: "remote_cost_sum",
    AccessoryKind.CHARGER: "charger_cost_sum",
    AccessoryKind.CORD: "cord_cost_sum",
}


class QuoteStore:
    """In-memory owner of the quote document for one session."""

    def __init__(self, quote_data: Optional[QuoteData] = None) -> None:
        if quote_data is None:
            quote_data = QuoteData(current_product=ROLLER_BLIND, products={ROLLER_BLIND: ProductQuote()})
        self._quote_data = quote_data

    @property
    def quote_data(self) -> QuoteData:
        return self._quote_data

    def commit(self, quote_data: QuoteData) -> None:
        self._quote_data = quote_data

    def get_current_product_type(self) -> str:
        return self._quote_data.current_product

    def _product(self) -> ProductQuote:
        return self._quote_data.current()

    def get_items(self) -> List[LineItem]:
        return self._product().items

    def add_item(
        self,
        *,
        width: Optional[float] = None,
        height: Optional[float] = None,
        fabric_type: Optional[str] = None,
        location: str = "",
    ) -> LineItem:
        items = self._product().items
        item = LineItem(
            sequence=len(items) + 1,
            width=width,
            height=height,
            fabric_type=fabric_type,
            location=location,
        )
        items.append(item)
        return item

    def delete_item(self, row_index: int) -> None:
        items = self._product().items
        if not 0 <= row_index < len(items):
            return
        del items[row_index]
        for seq, item in enumerate(items, start=1):
            item.sequence = seq

    def update_item_property(self, row_index: int, column: str, value: object) -> None:
        if column not in EDITABLE_COLUMNS:
            raise KeyError(f"Column {column!r} is not editable")
        items = self._product().items
        if not 0 <= row_index < len(items):
            return
        item = items[row_index]
        if column == "dual":
            value = value or None
        setattr(item, column, value)
        if column in PRICE_INPUT_COLUMNS:
            item.line_price = None

    def update_winder_motor_property(self, row_index: int, column: str, value: Optional[str]) -> None:
        if column not in WINDER_MOTOR_COLUMNS:
            raise KeyError(f"Column {column!r} is not a winder/motor column")
        items = self._product().items
        if not 0 <= row_index < len(items):
            return
        setattr(items[row_index], column, value or None)

    def update_accessory_summary(self, summary_data: Mapping[str, AccessoryEntry]) -> None:
        accessories = self._product().summary.accessories
        for name, entry in summary_data.items():
            if not hasattr(accessories, name):
                logger.warning("Ignoring unknown accessory summary entry: %s", name)
                continue
            setattr(accessories, name, entry)

    def update_cost_sum(self, accessory: AccessoryKind, value: Optional[float]) -> None:
        setattr(self._product().summary, _COST_SUM_FIELDS[accessory], value)

    def get_cost_sum(self, accessory: AccessoryKind) -> Optional[float]:
        return getattr(self._product().summary, _COST_SUM_FIELDS[accessory])
