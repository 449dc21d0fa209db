from __future__ import annotations

import logging
import math
from typing import Callable, MutableMapping, Optional

from drive_accessories import DriveAccessoriesController
from dual_chain import DualChainController
from notifications import NotificationChannel, NotificationType
from price_config import PriceConfig
from pricing_engine import (
    F1_COST_KEYS,
    CalculationService,
    FinancialSummary,
    ProductFactory,
    QuoteData,
    RowError,
)
from quote_store import QuoteStore
from ui_state import F2_INPUT_FIELDS, UIStateStore

logger = logging.getLogger(__name__)


def _parse_quantity(value: str) -> Optional[float]:
    text = (value or "").strip()
    if not text:
        return None
    number = float(text)
    if not math.isfinite(number) or number < 0:
        raise ValueError(f"invalid quantity: {value!r}")
    return number


class QuoteSession:
    """
    One open quote: the quote document, its UI state and the controllers that edit them.

    Engine results are committed here; the controllers never price anything themselves.
    """

    def __init__(
        self,
        config: PriceConfig,
        *,
        session_state: Optional[MutableMapping[str, object]] = None,
        quote_data: Optional[QuoteData] = None,
        product_factory: Optional[ProductFactory] = None,
        publish: Optional[Callable[[], None]] = None,
    ) -> None:
        self.config = config
        self.product_factory = product_factory or ProductFactory()
        self.calculation_service = CalculationService(self.product_factory, config)
        self.quote_store = QuoteStore(quote_data)
        self.ui_store = UIStateStore(session_state)
        self.notifier = NotificationChannel()
        self.publish = publish or (lambda: None)

        self.dual_chain = DualChainController(
            quote_store=self.quote_store,
            ui_store=self.ui_store,
            calculation_service=self.calculation_service,
            notifier=self.notifier,
            publish=self.publish,
        )
        self.drive_accessories = DriveAccessoriesController(
            quote_store=self.quote_store,
            ui_store=self.ui_store,
            calculation_service=self.calculation_service,
            notifier=self.notifier,
            publish=self.publish,
            on_prices_changed=self._on_drive_prices_changed,
        )

    def _on_drive_prices_changed(self) -> None:
        # total_sum includes the drive accessory prices.
        self.calculate_and_sum()
        self.dual_chain.update_summary_accessories_total()

    def close(self) -> None:
        self.ui_store.reset()

    # quick quote

    def calculate_and_sum(self) -> Optional[RowError]:
        product_type = self.quote_store.get_current_product_type()
        strategy = self.product_factory.get_product_strategy(product_type)
        result = self.calculation_service.calculate_and_sum(self.quote_store.quote_data, strategy)

        error = result.first_error
        if error is not None and error.row_index is None:
            # Engine-level failure: nothing was priced, keep the current document.
            self.notifier.show_message(error.message, NotificationType.ERROR)
            self.ui_store.set_row_error(error)
            self.publish()
            return error

        self.quote_store.commit(result.quote_data)
        self.ui_store.set_row_error(error)
        if error is not None:
            self.notifier.show_message(error.message, NotificationType.ERROR)
        self.publish()
        return error

    def total_sum(self) -> float:
        return self.quote_store.quote_data.current().summary.total_sum

    # F1 cost panel

    def handle_f1_input_change(self, component: str, value: str) -> Optional[float]:
        if component not in F1_COST_KEYS:
            raise KeyError(f"Unknown F1 component: {component!r}")
        text = (value or "").strip()
        if not text:
            quantity = 0
        else:
            try:
                quantity = int(text)
            except ValueError:
                return None
            if quantity < 0:
                return None
        price = self.calculation_service.calculate_f1_component_price(component, quantity)
        self.ui_store.set_f1_price(component, price)
        self.publish()
        return price

    def f1_dual_price(self) -> float:
        prices = self.ui_store.get_state().f1_prices
        return prices.get("dual-combo", 0) + prices.get("slim", 0)

    def f1_total(self) -> float:
        return sum(self.ui_store.get_state().f1_prices.values())

    # F2 financial panel

    def handle_f2_value_changed(self, name: str, value: str) -> bool:
        if name not in F2_INPUT_FIELDS:
            raise KeyError(f"Unknown F2 input: {name!r}")
        try:
            number = _parse_quantity(value)
        except ValueError:
            self.notifier.show_message("Please enter a valid non-negative number.", NotificationType.ERROR)
            return False
        self.ui_store.set_f2_value(name, number)
        self.refresh_financial_summary()
        return True

    def toggle_fee_exclusion(self, fee_type: str) -> None:
        self.ui_store.toggle_fee_exclusion(fee_type)
        self.refresh_financial_summary()

    def refresh_financial_summary(self) -> FinancialSummary:
        summary = self.calculation_service.calculate_financial_summary(
            self.quote_store.quote_data, self.ui_store.get_state()
        )
        self.ui_store.set_f2_summary(summary)
        self.publish()
        return summary
