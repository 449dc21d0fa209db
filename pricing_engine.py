from __future__ import annotations

import copy
import logging
import math
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Callable, Dict, Iterable, List, Mapping, Optional, Sequence, Union

from price_config import PriceConfig, PriceMatrix

if TYPE_CHECKING:
    from ui_state import UIState

logger = logging.getLogger(__name__)

ROLLER_BLIND = "rollerBlind"

WINDER_HD = "HD"
MOTOR_MARK = "Motor"
DUAL_MARK = "D"


class AccessoryKind(str, Enum):
    DUAL = "dual"
    WINDER = "winder"
    MOTOR = "motor"
    REMOTE = "remote"
    CHARGER = "charger"
    CORD = "cord"


# accessory -> canonical sale-price key
SALE_PRICE_KEYS: Mapping[AccessoryKind, str] = {
    AccessoryKind.DUAL: "comboBracket",
    AccessoryKind.WINDER: "winderHD",
    AccessoryKind.MOTOR: "motorStandard",
    AccessoryKind.REMOTE: "remoteStandard",
    AccessoryKind.CHARGER: "chargerStandard",
    AccessoryKind.CORD: "cord3m",
}

# F1 panel component -> cost key
F1_COST_KEYS: Mapping[str, str] = {
    "winder": "cost-winder",
    "motor": "cost-motor",
    "remote-1ch": "cost-A-1ch-remote",
    "remote-16ch": "cost-A-16ch-remote",
    "charger": "cost-charger",
    "3m-cord": "cost-3mcord",
    "dual-combo": "cost-dual-combo",
    "slim": "cost-slim",
}

ITEM_COUNTED = frozenset({AccessoryKind.DUAL, AccessoryKind.WINDER, AccessoryKind.MOTOR})


@dataclass
class LineItem:
    sequence: int
    width: Optional[float] = None
    height: Optional[float] = None
    fabric_type: Optional[str] = None
    location: str = ""
    line_price: Optional[float] = None
    winder: Optional[str] = None
    motor: Optional[str] = None
    dual: Optional[str] = None
    chain: Optional[int] = None


@dataclass
class AccessoryEntry:
    count: int = 0
    price: float = 0.0
    type: Optional[str] = None


@dataclass
class AccessorySummary:
    winder: AccessoryEntry = field(default_factory=AccessoryEntry)
    motor: AccessoryEntry = field(default_factory=AccessoryEntry)
    remote: AccessoryEntry = field(default_factory=AccessoryEntry)
    charger: AccessoryEntry = field(default_factory=AccessoryEntry)
    cord3m: AccessoryEntry = field(default_factory=AccessoryEntry)
    dual: AccessoryEntry = field(default_factory=AccessoryEntry)

    def drive_total(self) -> float:
        """Winder + motor + remote + charger + cord; dual brackets are summed on the F2 side."""
        entries = (self.winder, self.motor, self.remote, self.charger, self.cord3m)
        return sum((e.price or 0) for e in entries)


@dataclass
class ProductSummary:
    total_sum: float = 0.0
    accessories: AccessorySummary = field(default_factory=AccessorySummary)
    winder_cost_sum: Optional[float] = None
    motor_cost_sum: Optional[float] = None
    remote_cost_sum: Optional[float] = None
    charger_cost_sum: Optional[float] = None
    cord_cost_sum: Optional[float] = None


@dataclass
class ProductQuote:
    items: List[LineItem] = field(default_factory=list)
    summary: ProductSummary = field(default_factory=ProductSummary)


@dataclass
class QuoteData:
    current_product: str = ROLLER_BLIND
    products: Dict[str, ProductQuote] = field(default_factory=dict)

    def current(self) -> ProductQuote:
        return self.products.setdefault(self.current_product, ProductQuote())


@dataclass(frozen=True)
class PriceResult:
    price: Optional[float]
    error: Optional[str] = None


@dataclass(frozen=True)
class RowError:
    message: str
    row_index: Optional[int] = None
    column: Optional[str] = None


@dataclass(frozen=True)
class CalculationResult:
    quote_data: QuoteData
    first_error: Optional[RowError] = None


@dataclass(frozen=True)
class FinancialSummary:
    total_sum_for_rb_time: float
    wifi_sum: float
    delivery_fee: float
    install_fee: float
    removal_fee: float
    acce_sum: float
    e_acce_sum: float
    surcharge_fee: float
    first_rb_price: float
    dis_rb_price: float
    sum_price: float


CountOrItems = Union[None, int, Sequence[LineItem]]


def _quantity(count_or_items: CountOrItems, flagged: Callable[[LineItem], bool]) -> int:
    if count_or_items is None:
        return 0
    if isinstance(count_or_items, (int, float)) and not isinstance(count_or_items, bool):
        return max(0, int(count_or_items))
    return sum(1 for item in count_or_items if flagged(item))


def _next_size_up(value: float, allowed: Sequence[int]) -> int:
    for idx, a in enumerate(allowed):
        if value <= a:
            return idx
    return len(allowed) - 1


def round_half_up(value: float, places: int = 2) -> float:
    scale = 10 ** places
    return math.floor(value * scale + 0.5) / scale


class ProductStrategy(ABC):
    """
    Pricing rules for one product type.

    `calculate_price` is product specific; the accessory formulas are shared defaults
    (quantity x unit price) that a product may override.
    """

    product_type: str = ""

    @abstractmethod
    def calculate_price(self, item: LineItem, price_matrix: Optional[PriceMatrix]) -> PriceResult:
        raise NotImplementedError

    def calculate_dual_price(self, count_or_items: CountOrItems, price_per_unit: float) -> float:
        return _quantity(count_or_items, lambda it: it.dual == DUAL_MARK) * price_per_unit

    def calculate_winder_price(self, count_or_items: CountOrItems, price_per_unit: float) -> float:
        return _quantity(count_or_items, lambda it: it.winder == WINDER_HD) * price_per_unit

    def calculate_motor_price(self, count_or_items: CountOrItems, price_per_unit: float) -> float:
        return _quantity(count_or_items, lambda it: bool(it.motor)) * price_per_unit

    def calculate_remote_price(self, count: Optional[int], price_per_unit: float) -> float:
        return _quantity(count, lambda it: False) * price_per_unit

    def calculate_charger_price(self, count: Optional[int], price_per_unit: float) -> float:
        return _quantity(count, lambda it: False) * price_per_unit

    def calculate_cord_price(self, count: Optional[int], price_per_unit: float) -> float:
        return _quantity(count, lambda it: False) * price_per_unit


class RollerBlindStrategy(ProductStrategy):
    product_type = ROLLER_BLIND

    def calculate_price(self, item: LineItem, price_matrix: Optional[PriceMatrix]) -> PriceResult:
        """
        Price a roller blind from its fabric matrix.

        Sizes between matrix steps are priced at the next size up on each axis.
        """
        if price_matrix is None:
            return PriceResult(price=None, error=f"No price matrix found for fabric type {item.fabric_type}.")

        width = float(item.width or 0)
        height = float(item.height or 0)
        if width < price_matrix.min_width or width > price_matrix.max_width:
            return PriceResult(
                price=None,
                error=(
                    f"Width {width:g}mm is out of range "
                    f"({price_matrix.min_width}-{price_matrix.max_width}mm)."
                ),
            )
        if height < price_matrix.min_drop or height > price_matrix.max_drop:
            return PriceResult(
                price=None,
                error=(
                    f"Height {height:g}mm is out of range "
                    f"({price_matrix.min_drop}-{price_matrix.max_drop}mm)."
                ),
            )

        w_idx = _next_size_up(width, price_matrix.widths_mm)
        d_idx = _next_size_up(height, price_matrix.drops_mm)
        return PriceResult(price=price_matrix.prices[d_idx][w_idx])


class ProductFactory:
    def __init__(self, strategies: Optional[Iterable[ProductStrategy]] = None) -> None:
        if strategies is None:
            strategies = (RollerBlindStrategy(),)
        self._strategies: Dict[str, ProductStrategy] = {s.product_type: s for s in strategies}

    def get_product_strategy(self, product_type: str) -> Optional[ProductStrategy]:
        return self._strategies.get(product_type)


class CalculationService:
    """
    Stateless pricing executor.

    Product-specific rules live in the strategies; this service walks the quote, prices
    accessories through one entry point and derives the F2 financial summary.
    """

    def __init__(self, product_factory: ProductFactory, config_manager: PriceConfig) -> None:
        self.product_factory = product_factory
        self.config_manager = config_manager
        logger.debug("CalculationService initialized (config=%s)", config_manager.revision)

    def calculate_and_sum(
        self, quote_data: QuoteData, product_strategy: Optional[ProductStrategy]
    ) -> CalculationResult:
        if product_strategy is None:
            logger.error("calculate_and_sum called without a product strategy")
            return CalculationResult(quote_data=quote_data, first_error=RowError("Product strategy not provided."))

        updated = copy.deepcopy(quote_data)
        product = updated.current()
        first_error: Optional[RowError] = None

        for index, item in enumerate(product.items):
            item.line_price = None
            if not (item.width and item.height and item.fabric_type):
                continue
            matrix = self.config_manager.get_price_matrix(item.fabric_type)
            result = product_strategy.calculate_price(item, matrix)
            if result.price is not None:
                item.line_price = result.price
            elif result.error:
                logger.info("Row %d not priced: %s", index + 1, result.error, extra={"row_index": index})
                if first_error is None:
                    column = "width" if "width" in result.error.lower() else "height"
                    first_error = RowError(
                        message=f"Row {index + 1}: {result.error}",
                        row_index=index,
                        column=column,
                    )

        items_total = sum((item.line_price or 0) for item in product.items)
        accessories_total = product.summary.accessories.drive_total()
        product.summary.total_sum = items_total + accessories_total

        return CalculationResult(quote_data=updated, first_error=first_error)

    def calculate_accessory_price(
        self,
        product_type: str,
        accessory_name: Union[str, AccessoryKind],
        *,
        items: Optional[Sequence[LineItem]] = None,
        count: Optional[int] = None,
        cost_key: Optional[str] = None,
    ) -> float:
        """
        The single place accessory sale prices and cost sums are produced.

        `cost_key` selects an internal cost basis; without it the accessory's sale key is
        used. Item-counted accessories take `items`, counter-based ones take `count`.
        Unknown product types and unpriced keys price at 0.
        """
        strategy = self.product_factory.get_product_strategy(product_type)
        if strategy is None:
            return 0

        try:
            kind = AccessoryKind(accessory_name)
        except ValueError:
            logger.error("No price key found for accessory: %s", accessory_name)
            return 0

        price_key = cost_key or SALE_PRICE_KEYS[kind]
        price_per_unit = self.config_manager.get_accessory_price(price_key)
        if price_per_unit is None:
            logger.warning(
                "Accessory price %r is not configured; pricing %s at 0",
                price_key,
                kind.value,
                extra={"accessory": kind.value},
            )
            return 0

        formula = getattr(strategy, f"calculate_{kind.value}_price")
        if items is not None and kind in ITEM_COUNTED:
            return formula(items, price_per_unit)
        return formula(count, price_per_unit)

    def calculate_f1_component_price(self, component_key: str, quantity: int) -> float:
        cost_key = F1_COST_KEYS.get(component_key)
        if cost_key is None:
            logger.error("Unknown F1 component: %s", component_key)
            return 0
        unit = self.config_manager.get_accessory_price(cost_key)
        if unit is None or quantity <= 0:
            return 0
        return quantity * unit

    def calculate_financial_summary(self, quote_data: QuoteData, ui_state: "UIState") -> FinancialSummary:
        product = quote_data.products.get(quote_data.current_product)
        total_sum_from_quick_quote = (product.summary.total_sum if product else 0) or 0

        f2 = ui_state.f2

        def unit(key: str) -> float:
            return self.config_manager.get_accessory_price(key) or 0

        winder_price = ui_state.summary_winder_price or 0
        dual_price = ui_state.dual_price or 0
        motor_price = ui_state.summary_motor_price or 0
        remote_price = ui_state.summary_remote_price or 0
        charger_price = ui_state.summary_charger_price or 0
        cord_price = ui_state.summary_cord_price or 0

        mul_times = f2.mul_times or 0
        discount = f2.discount or 0

        wifi_sum = (f2.wifi_qty or 0) * unit("wifiHub")
        delivery_fee = (f2.delivery_qty or 0) * unit("delivery")
        install_fee = (f2.install_qty or 0) * unit("install")
        removal_fee = (f2.removal_qty or 0) * unit("removal")

        acce_sum = winder_price + dual_price
        e_acce_sum = motor_price + remote_price + charger_price + cord_price + wifi_sum
        surcharge_fee = (
            (0 if f2.delivery_fee_excluded else delivery_fee)
            + (0 if f2.install_fee_excluded else install_fee)
            + (0 if f2.removal_fee_excluded else removal_fee)
        )

        first_rb_price = total_sum_from_quick_quote * mul_times
        dis_rb_price = round_half_up(first_rb_price * (1 - discount / 100), 2)
        sum_price = acce_sum + e_acce_sum + surcharge_fee + dis_rb_price

        return FinancialSummary(
            total_sum_for_rb_time=total_sum_from_quick_quote,
            wifi_sum=wifi_sum,
            delivery_fee=delivery_fee,
            install_fee=install_fee,
            removal_fee=removal_fee,
            acce_sum=acce_sum,
            e_acce_sum=e_acce_sum,
            surcharge_fee=surcharge_fee,
            first_rb_price=first_rb_price,
            dis_rb_price=dis_rb_price,
            sum_price=sum_price,
        )
