from __future__ import annotations

import logging
from typing import Callable, Dict, Mapping, Optional, Union

from notifications import NotificationChannel, PendingConfirmation
from pricing_engine import (
    AccessoryEntry,
    AccessoryKind,
    CalculationService,
    MOTOR_MARK,
    WINDER_HD,
)
from quote_store import QuoteStore
from ui_state import COUNTED_ACCESSORIES, DriveAccessoryMode, UIStateStore

logger = logging.getLogger(__name__)

DRIVE_COLUMNS = ("sequence", "fabricTypeDisplay", "location", "winder", "motor")

COST_KEYS: Mapping[AccessoryKind, str] = {
    AccessoryKind.WINDER: "cost-winder",
    AccessoryKind.MOTOR: "cost-motor",
    AccessoryKind.REMOTE: "cost-A-1ch-remote",
    AccessoryKind.CHARGER: "cost-charger",
    AccessoryKind.CORD: "cost-3mcord",
}

_HINTS: Mapping[DriveAccessoryMode, str] = {
    DriveAccessoryMode.WINDER: "Click a cell in the Winder column to set HD.",
    DriveAccessoryMode.MOTOR: "Click a cell in the Motor column to set Motor.",
    DriveAccessoryMode.REMOTE: "Use + or - to change the number of remotes.",
    DriveAccessoryMode.CHARGER: "Use + or - to change the number of chargers.",
    DriveAccessoryMode.CORD: "Use + or - to change the number of extension cords.",
}

# counters that a motorised row depends on
_MOTOR_COMPANIONS = ("remote", "charger")


class DriveAccessoriesController:
    """
    Drive/Accessories tab: winder and motor flags per row, remote/charger/cord counters.

    Leaving any mode stores that accessory's cost and re-derives every accessory sale
    price, so all panels read the same numbers.
    """

    def __init__(
        self,
        *,
        quote_store: QuoteStore,
        ui_store: UIStateStore,
        calculation_service: CalculationService,
        notifier: NotificationChannel,
        publish: Optional[Callable[[], None]] = None,
        on_prices_changed: Optional[Callable[[], None]] = None,
    ) -> None:
        self.quote_store = quote_store
        self.ui_store = ui_store
        self.calculation_service = calculation_service
        self.notifier = notifier
        self.publish = publish or (lambda: None)
        self.on_prices_changed = on_prices_changed
        logger.debug("DriveAccessoriesController initialized")

    def activate(self) -> None:
        self.ui_store.set_visible_columns(DRIVE_COLUMNS)

    def _has_motor(self) -> bool:
        return any(item.motor for item in self.quote_store.get_items())

    def _flag_count(self, kind: AccessoryKind) -> int:
        items = self.quote_store.get_items()
        if kind == AccessoryKind.WINDER:
            return sum(1 for item in items if item.winder == WINDER_HD)
        return sum(1 for item in items if item.motor)

    def handle_mode_change(self, mode: Union[str, DriveAccessoryMode]) -> None:
        mode = DriveAccessoryMode(mode)
        current = self.ui_store.get_state().drive_accessory_mode
        new_mode = DriveAccessoryMode.NONE if current == mode else mode

        if current != DriveAccessoryMode.NONE:
            self._on_exit(current)

        self.ui_store.set_drive_accessory_mode(new_mode)

        # A motor needs a remote and a charger unless the operator removes them.
        if new_mode in (DriveAccessoryMode.REMOTE, DriveAccessoryMode.CHARGER):
            accessory = new_mode.value
            if self._has_motor() and self.ui_store.get_state().accessory_count(accessory) == 0:
                self.ui_store.set_drive_accessory_count(accessory, 1)

        if new_mode != DriveAccessoryMode.NONE:
            self.notifier.show_message(_HINTS[new_mode])

        self.publish()

    def _on_exit(self, old_mode: DriveAccessoryMode) -> None:
        logger.debug("Leaving %s mode", old_mode.value, extra={"mode": old_mode.value})
        self._store_cost(AccessoryKind(old_mode.value))
        self.recalculate_all_drive_accessory_prices()

    def _store_cost(self, kind: AccessoryKind) -> None:
        product_type = self.quote_store.get_current_product_type()
        if kind in (AccessoryKind.WINDER, AccessoryKind.MOTOR):
            count = self._flag_count(kind)
        else:
            count = self.ui_store.get_state().accessory_count(kind.value)

        if count > 0:
            total_cost = self.calculation_service.calculate_accessory_price(
                product_type, kind, count=count, cost_key=COST_KEYS[kind]
            )
            self.quote_store.update_cost_sum(kind, total_cost)
        else:
            self.quote_store.update_cost_sum(kind, None)

    def handle_table_cell_click(self, row_index: int, column: str) -> Optional[PendingConfirmation]:
        mode = self.ui_store.get_state().drive_accessory_mode
        if mode == DriveAccessoryMode.NONE or column not in ("winder", "motor"):
            return None
        items = self.quote_store.get_items()
        if not 0 <= row_index < len(items):
            return None
        item = items[row_index]

        if mode == DriveAccessoryMode.WINDER and column == "winder":
            if item.motor:
                return self.notifier.request_confirmation(
                    f"Row {row_index + 1} is already motorised. Change it to HD?",
                    lambda: self._toggle_winder(row_index),
                )
            self._toggle_winder(row_index)
        elif mode == DriveAccessoryMode.MOTOR and column == "motor":
            if item.winder:
                return self.notifier.request_confirmation(
                    f"Row {row_index + 1} is already set to HD. Change it to Motor?",
                    lambda: self._toggle_motor(row_index),
                )
            self._toggle_motor(row_index)
        return None

    def _toggle_winder(self, row_index: int) -> None:
        item = self.quote_store.get_items()[row_index]
        if item.winder:
            self.quote_store.update_winder_motor_property(row_index, "winder", None)
        else:
            self.quote_store.update_winder_motor_property(row_index, "motor", None)
            self.quote_store.update_winder_motor_property(row_index, "winder", WINDER_HD)
        self.publish()

    def _toggle_motor(self, row_index: int) -> None:
        item = self.quote_store.get_items()[row_index]
        if item.motor:
            self.quote_store.update_winder_motor_property(row_index, "motor", None)
        else:
            self.quote_store.update_winder_motor_property(row_index, "winder", None)
            self.quote_store.update_winder_motor_property(row_index, "motor", MOTOR_MARK)
        self.publish()

    def handle_counter_change(self, accessory: str, direction: str) -> Optional[PendingConfirmation]:
        if accessory not in COUNTED_ACCESSORIES:
            raise KeyError(f"{accessory!r} has no counter")
        if direction not in ("add", "subtract"):
            raise ValueError(f"direction must be 'add' or 'subtract' (got {direction!r})")

        current = self.ui_store.get_state().accessory_count(accessory)
        new_count = current + 1 if direction == "add" else max(0, current - 1)

        removing_last = direction == "subtract" and current > 0 and new_count == 0
        if removing_last and accessory in _MOTOR_COMPANIONS and self._has_motor():

            def _commit() -> None:
                self.ui_store.set_drive_accessory_count(accessory, 0)
                self.publish()

            return self.notifier.request_confirmation(
                f"This quote has motorised blinds. Are you sure you want no {accessory}?",
                _commit,
                confirm_label="Remove",
            )

        self.ui_store.set_drive_accessory_count(accessory, new_count)
        self.publish()
        return None

    def recalculate_all_drive_accessory_prices(self) -> float:
        items = self.quote_store.get_items()
        state = self.ui_store.get_state()
        product_type = self.quote_store.get_current_product_type()
        calc = self.calculation_service.calculate_accessory_price

        counts: Dict[AccessoryKind, int] = {
            AccessoryKind.WINDER: self._flag_count(AccessoryKind.WINDER),
            AccessoryKind.MOTOR: self._flag_count(AccessoryKind.MOTOR),
            AccessoryKind.REMOTE: state.drive_remote_count,
            AccessoryKind.CHARGER: state.drive_charger_count,
            AccessoryKind.CORD: state.drive_cord_count,
        }
        prices: Dict[AccessoryKind, float] = {
            AccessoryKind.WINDER: calc(product_type, AccessoryKind.WINDER, items=items),
            AccessoryKind.MOTOR: calc(product_type, AccessoryKind.MOTOR, items=items),
            AccessoryKind.REMOTE: calc(product_type, AccessoryKind.REMOTE, count=counts[AccessoryKind.REMOTE]),
            AccessoryKind.CHARGER: calc(product_type, AccessoryKind.CHARGER, count=counts[AccessoryKind.CHARGER]),
            AccessoryKind.CORD: calc(product_type, AccessoryKind.CORD, count=counts[AccessoryKind.CORD]),
        }

        summary_data = {
            "winder": AccessoryEntry(count=counts[AccessoryKind.WINDER], price=prices[AccessoryKind.WINDER]),
            "motor": AccessoryEntry(count=counts[AccessoryKind.MOTOR], price=prices[AccessoryKind.MOTOR]),
            "remote": AccessoryEntry(
                count=counts[AccessoryKind.REMOTE], price=prices[AccessoryKind.REMOTE], type="standard"
            ),
            "charger": AccessoryEntry(count=counts[AccessoryKind.CHARGER], price=prices[AccessoryKind.CHARGER]),
            "cord3m": AccessoryEntry(count=counts[AccessoryKind.CORD], price=prices[AccessoryKind.CORD]),
        }
        self.quote_store.update_accessory_summary(summary_data)

        for kind, price in prices.items():
            self.ui_store.set_summary_price(kind.value, price)

        grand_total = sum(prices.values())
        self.ui_store.set_drive_grand_total(grand_total)

        if self.on_prices_changed is not None:
            self.on_prices_changed()
        return grand_total
