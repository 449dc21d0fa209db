from __future__ import annotations

import logging
import math
from typing import Callable, Optional, Union

from notifications import NotificationChannel, NotificationType
from pricing_engine import DUAL_MARK, AccessoryKind, CalculationService
from quote_store import QuoteStore
from ui_state import DualChainMode, TargetCell, UIStateStore

logger = logging.getLogger(__name__)

DUAL_CHAIN_COLUMNS = ("sequence", "fabricTypeDisplay", "location", "dual", "chain")


def parse_chain_value(value: str) -> Optional[int]:
    """
    Parse a chain length entry.

    Returns the positive integer, or None for an empty entry. Raises ValueError for
    anything else.
    """
    text = (value or "").strip()
    if not text:
        return None
    number = float(text)
    if not math.isfinite(number) or not number.is_integer() or number <= 0:
        raise ValueError(f"not a positive integer: {value!r}")
    return int(number)


class DualChainController:
    def __init__(
        self,
        *,
        quote_store: QuoteStore,
        ui_store: UIStateStore,
        calculation_service: CalculationService,
        notifier: NotificationChannel,
        publish: Optional[Callable[[], None]] = None,
    ) -> None:
        self.quote_store = quote_store
        self.ui_store = ui_store
        self.calculation_service = calculation_service
        self.notifier = notifier
        self.publish = publish or (lambda: None)
        logger.debug("DualChainController initialized")

    def activate(self) -> None:
        self.ui_store.set_visible_columns(DUAL_CHAIN_COLUMNS)
        self.update_summary_accessories_total()

    def handle_mode_change(self, mode: Union[str, DualChainMode]) -> bool:
        """
        Toggle dual/chain mode. Returns False when leaving dual mode is refused.
        """
        mode = DualChainMode(mode)
        current = self.ui_store.get_state().dual_chain_mode
        new_mode = DualChainMode.NONE if current == mode else mode

        if current == DualChainMode.DUAL and not self.recalculate_dual_price():
            self.publish()
            return False

        self.ui_store.set_dual_chain_mode(new_mode)

        if new_mode == DualChainMode.DUAL:
            self.ui_store.set_dual_price(None)

        if new_mode != DualChainMode.CHAIN:
            self.ui_store.set_target_cell(None)
            self.ui_store.clear_dual_chain_input_value()

        self.publish()
        return True

    def recalculate_dual_price(self) -> bool:
        items = self.quote_store.get_items()
        dual_count = sum(1 for item in items if item.dual == DUAL_MARK)

        if dual_count % 2 != 0:
            logger.info("Dual bracket count %d is odd; staying in dual mode", dual_count)
            self.notifier.show_message(
                "The number of dual brackets (D) must be even. Please fix it before leaving.",
                NotificationType.ERROR,
            )
            return False

        price = self.calculation_service.calculate_accessory_price(
            self.quote_store.get_current_product_type(), AccessoryKind.DUAL, items=items
        )
        self.ui_store.set_dual_price(price)
        self.update_summary_accessories_total()
        return True

    def handle_table_cell_click(self, row_index: int, column: str) -> None:
        mode = self.ui_store.get_state().dual_chain_mode
        items = self.quote_store.get_items()
        if not 0 <= row_index < len(items):
            return
        item = items[row_index]

        if mode == DualChainMode.DUAL and column == "dual":
            new_value = None if item.dual == DUAL_MARK else DUAL_MARK
            self.quote_store.update_item_property(row_index, "dual", new_value)
            self.publish()
        elif mode == DualChainMode.CHAIN and column == "chain":
            self.ui_store.set_target_cell(TargetCell(row_index=row_index, column="chain"))
            self.ui_store.set_dual_chain_input_value(str(item.chain) if item.chain else "")
            self.publish()

    def handle_chain_enter_pressed(self, value: str) -> bool:
        target = self.ui_store.get_state().target_cell
        if target is None:
            return False

        try:
            chain = parse_chain_value(value)
        except ValueError:
            self.notifier.show_message("Only positive whole numbers are allowed.", NotificationType.ERROR)
            return False

        self.quote_store.update_item_property(target.row_index, target.column, chain)
        self.ui_store.set_target_cell(None)
        self.ui_store.clear_dual_chain_input_value()
        self.publish()
        return True

    def update_summary_accessories_total(self) -> float:
        state = self.ui_store.get_state()
        total = (
            (state.dual_price or 0)
            + (state.summary_winder_price or 0)
            + (state.summary_motor_price or 0)
            + (state.summary_remote_price or 0)
            + (state.summary_charger_price or 0)
            + (state.summary_cord_price or 0)
        )
        self.ui_store.set_summary_accessories_total(total)
        return total
