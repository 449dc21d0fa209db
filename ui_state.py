from __future__ import annotations

from dataclasses import dataclass, field, fields
from enum import Enum
from typing import TYPE_CHECKING, Dict, MutableMapping, Optional, Sequence, Tuple

if TYPE_CHECKING:
    from pricing_engine import FinancialSummary, RowError

UI_STATE_KEY = "_ui_state"


class DriveAccessoryMode(str, Enum):
    NONE = "none"
    WINDER = "winder"
    MOTOR = "motor"
    REMOTE = "remote"
    CHARGER = "charger"
    CORD = "cord"


class DualChainMode(str, Enum):
    NONE = "none"
    DUAL = "dual"
    CHAIN = "chain"


COUNTED_ACCESSORIES = ("remote", "charger", "cord")
SUMMARY_PRICE_ACCESSORIES = ("winder", "motor", "remote", "charger", "cord")
FEE_TYPES = ("delivery", "install", "removal")
F2_INPUT_FIELDS = ("wifi_qty", "delivery_qty", "install_qty", "removal_qty", "mul_times", "discount")


@dataclass(frozen=True)
class TargetCell:
    row_index: int
    column: str


@dataclass
class F2State:
    # inputs
    wifi_qty: Optional[float] = None
    delivery_qty: Optional[float] = None
    install_qty: Optional[float] = None
    removal_qty: Optional[float] = None
    mul_times: Optional[float] = None
    discount: Optional[float] = None
    delivery_fee_excluded: bool = False
    install_fee_excluded: bool = False
    removal_fee_excluded: bool = False
    # derived, written from the FinancialSummary
    total_sum_for_rb_time: Optional[float] = None
    wifi_sum: Optional[float] = None
    delivery_fee: Optional[float] = None
    install_fee: Optional[float] = None
    removal_fee: Optional[float] = None
    acce_sum: Optional[float] = None
    e_acce_sum: Optional[float] = None
    surcharge_fee: Optional[float] = None
    first_rb_price: Optional[float] = None
    dis_rb_price: Optional[float] = None
    sum_price: Optional[float] = None


@dataclass
class UIState:
    drive_accessory_mode: DriveAccessoryMode = DriveAccessoryMode.NONE
    dual_chain_mode: DualChainMode = DualChainMode.NONE
    drive_remote_count: int = 0
    drive_charger_count: int = 0
    drive_cord_count: int = 0
    summary_winder_price: Optional[float] = None
    summary_motor_price: Optional[float] = None
    summary_remote_price: Optional[float] = None
    summary_charger_price: Optional[float] = None
    summary_cord_price: Optional[float] = None
    dual_price: Optional[float] = None
    drive_grand_total: Optional[float] = None
    summary_accessories_total: Optional[float] = None
    target_cell: Optional[TargetCell] = None
    dual_chain_input_value: str = ""
    visible_columns: Tuple[str, ...] = ()
    row_error: Optional["RowError"] = None
    f1_prices: Dict[str, float] = field(default_factory=dict)
    f2: F2State = field(default_factory=F2State)

    def accessory_count(self, accessory: str) -> int:
        return int(getattr(self, f"drive_{accessory}_count"))


class UIStateStore:
    """
    Session-scoped UI state.

    The state object lives inside a mutable mapping (a plain dict, or Streamlit's
    `st.session_state`) so it survives reruns. Every field has one setter here.
    """

    def __init__(self, session_state: Optional[MutableMapping[str, object]] = None) -> None:
        self._session = session_state if session_state is not None else {}
        if not isinstance(self._session.get(UI_STATE_KEY), UIState):
            self._session[UI_STATE_KEY] = UIState()

    def get_state(self) -> UIState:
        return self._session[UI_STATE_KEY]  # type: ignore[return-value]

    def reset(self) -> None:
        self._session[UI_STATE_KEY] = UIState()

    # modes

    def set_drive_accessory_mode(self, mode: DriveAccessoryMode) -> None:
        self.get_state().drive_accessory_mode = mode

    def set_dual_chain_mode(self, mode: DualChainMode) -> None:
        self.get_state().dual_chain_mode = mode

    # counters and prices

    def set_drive_accessory_count(self, accessory: str, count: int) -> None:
        if accessory not in COUNTED_ACCESSORIES:
            raise KeyError(f"{accessory!r} has no counter")
        setattr(self.get_state(), f"drive_{accessory}_count", max(0, int(count)))

    def set_summary_price(self, accessory: str, price: Optional[float]) -> None:
        if accessory not in SUMMARY_PRICE_ACCESSORIES:
            raise KeyError(f"{accessory!r} has no summary price")
        setattr(self.get_state(), f"summary_{accessory}_price", price)

    def set_dual_price(self, price: Optional[float]) -> None:
        self.get_state().dual_price = price

    def set_drive_grand_total(self, total: Optional[float]) -> None:
        self.get_state().drive_grand_total = total

    def set_summary_accessories_total(self, total: Optional[float]) -> None:
        self.get_state().summary_accessories_total = total

    # table projection and chain input

    def set_visible_columns(self, columns: Sequence[str]) -> None:
        self.get_state().visible_columns = tuple(columns)

    def set_target_cell(self, cell: Optional[TargetCell]) -> None:
        self.get_state().target_cell = cell

    def set_dual_chain_input_value(self, value: str) -> None:
        self.get_state().dual_chain_input_value = value

    def clear_dual_chain_input_value(self) -> None:
        self.get_state().dual_chain_input_value = ""

    def set_row_error(self, error: Optional["RowError"]) -> None:
        self.get_state().row_error = error

    # F1 / F2 panels

    def set_f1_price(self, component: str, price: float) -> None:
        self.get_state().f1_prices[component] = price

    def set_f2_value(self, name: str, value: Optional[float]) -> None:
        if name not in F2_INPUT_FIELDS:
            raise KeyError(f"Unknown F2 input: {name!r}")
        setattr(self.get_state().f2, name, value)

    def toggle_fee_exclusion(self, fee_type: str) -> None:
        if fee_type not in FEE_TYPES:
            raise KeyError(f"Unknown fee type: {fee_type!r}")
        f2 = self.get_state().f2
        name = f"{fee_type}_fee_excluded"
        setattr(f2, name, not getattr(f2, name))

    def set_f2_summary(self, summary: "FinancialSummary") -> None:
        f2 = self.get_state().f2
        for f in fields(summary):
            setattr(f2, f.name, getattr(summary, f.name))
