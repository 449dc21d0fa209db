from __future__ import annotations

import logging
import math
import os
from pathlib import Path
from typing import List, Mapping, Optional

import pandas as pd
import streamlit as st

from logging_config import setup_logging
from notifications import NotificationType
from price_config import PRICE_CONFIG_ENV, PriceConfig, load_price_config, resolve_price_config
from pricing_engine import F1_COST_KEYS, LineItem
from quote_session import QuoteSession
from ui_state import DriveAccessoryMode, DualChainMode

logger = logging.getLogger(__name__)

_SESSION_KEY = "_quote_session"
_ACTIVE_PANEL_KEY = "_active_panel"

_EDITOR_COLUMNS = ("#", "width", "height", "fabric_type", "location", "price")

PANEL_QUOTE = "Quick quote"
PANEL_DRIVE = "Drive / Accessories"
PANEL_DUAL_CHAIN = "Dual / Chain"
PANEL_F1 = "F1 cost"
PANEL_F2 = "F2 summary"
PANELS = (PANEL_QUOTE, PANEL_DRIVE, PANEL_DUAL_CHAIN, PANEL_F1, PANEL_F2)

_F2_LABELS = {
    "wifi_qty": "Wifi hub qty",
    "delivery_qty": "Delivery qty",
    "install_qty": "Install qty",
    "removal_qty": "Removal qty",
    "mul_times": "Multiplier",
    "discount": "Discount %",
}


def _format_usd(amount: Optional[float], *, decimals: int = 0) -> str:
    if amount is None:
        return "$"
    return f"${amount:,.{decimals}f}"


def _read_secret_or_env_str(key: str) -> str:
    """
    Read a configuration value from Streamlit Secrets (preferred) or environment variables.

    Returns a stripped string; returns "" when missing.
    """
    val: object = ""
    try:
        val = st.secrets.get(key, "")  # type: ignore[attr-defined]
    except Exception:
        val = ""
    if not val:
        val = os.environ.get(key, "")
    if isinstance(val, str):
        return val.strip()
    return str(val).strip() if val is not None else ""


@st.cache_resource
def _load_price_config_cached(path_str: str, path_mtime: float) -> PriceConfig:
    """
    Cached price config loader.

    Do NOT call Streamlit UI functions in cached code. `path_mtime` only invalidates the cache.
    """
    _ = path_mtime
    return load_price_config(Path(path_str))


def _load_price_config() -> PriceConfig:
    path_str = _read_secret_or_env_str(PRICE_CONFIG_ENV)
    if path_str:
        path = Path(path_str)
        return _load_price_config_cached(str(path), path.stat().st_mtime)
    return resolve_price_config()


def _quote_session(config: PriceConfig) -> QuoteSession:
    session = st.session_state.get(_SESSION_KEY)
    if not isinstance(session, QuoteSession):
        session = QuoteSession(config, session_state=st.session_state)
        st.session_state[_SESSION_KEY] = session
    return session


def _reset_quote_session() -> None:
    session = st.session_state.get(_SESSION_KEY)
    if isinstance(session, QuoteSession):
        session.close()
    st.session_state.pop(_SESSION_KEY, None)
    st.session_state.pop(_ACTIVE_PANEL_KEY, None)
    logger.info("Quote session reset")


def _rows_for_editor(items: List[LineItem]) -> pd.DataFrame:
    """
    Quick-quote table as a frame with a fixed column set.

    Size and price columns are float64 even when every cell is blank, so the editor
    offers numeric input on an empty quote.
    """
    rows = [
        {
            "#": item.sequence,
            "width": item.width,
            "height": item.height,
            "fabric_type": item.fabric_type or "",
            "location": item.location,
            "price": item.line_price,
        }
        for item in items
    ]
    frame = pd.DataFrame(rows, columns=list(_EDITOR_COLUMNS))
    for column in ("width", "height", "price"):
        frame[column] = frame[column].astype("float64")
    return frame


def _parse_size(raw: object) -> Optional[float]:
    if raw is None or isinstance(raw, bool):
        return None
    if isinstance(raw, str):
        text = raw.strip()
        if not text:
            return None
        try:
            value = float(text)
        except ValueError:
            return None
    else:
        if pd.isna(raw):
            return None
        value = float(raw)  # type: ignore[arg-type]
    if not math.isfinite(value) or value <= 0:
        return None
    return value


def _parse_text(raw: object) -> str:
    if raw is None or (not isinstance(raw, str) and pd.isna(raw)):
        return ""
    return str(raw).strip()


def _apply_editor_rows(session: QuoteSession, rows: List[Mapping[str, object]]) -> bool:
    """
    Push edited table rows into the quote store. Returns True when anything changed.
    """
    store = session.quote_store
    changed = False
    for idx, row in enumerate(rows):
        if idx >= len(store.get_items()):
            store.add_item()
            changed = True
        item = store.get_items()[idx]
        for column in ("width", "height", "fabric_type", "location"):
            raw = row.get(column)
            value: object
            if column in ("width", "height"):
                value = _parse_size(raw)
            elif column == "fabric_type":
                value = _parse_text(raw) or None
            else:
                value = _parse_text(raw)
            if getattr(item, column) != value:
                store.update_item_property(idx, column, value)
                changed = True
    while len(store.get_items()) > len(rows):
        store.delete_item(len(store.get_items()) - 1)
        changed = True
    return changed


def _render_notifications(session: QuoteSession) -> None:
    for note in session.notifier.drain_messages():
        if note.type == NotificationType.ERROR:
            st.error(note.message)
        else:
            st.info(note.message)

    pending = session.notifier.pending_confirmation()
    if pending is None:
        return
    st.warning(pending.message)
    c1, c2, _ = st.columns([1, 1, 4])
    if c1.button(pending.confirm_label, key="confirm_pending"):
        pending.confirm()
        st.rerun()
    if c2.button(pending.cancel_label, key="cancel_pending"):
        pending.cancel()
        st.rerun()


def _activate_panel(session: QuoteSession, panel: str) -> bool:
    """
    Run the controller activation for `panel` when the operator switches to it.

    Returns True when the panel changed on this run.
    """
    if st.session_state.get(_ACTIVE_PANEL_KEY) == panel:
        return False
    st.session_state[_ACTIVE_PANEL_KEY] = panel
    if panel == PANEL_DRIVE:
        session.drive_accessories.activate()
    elif panel == PANEL_DUAL_CHAIN:
        session.dual_chain.activate()
    logger.debug("Panel activated: %s", panel)
    return True


def _render_quick_quote(session: QuoteSession) -> None:
    edited = st.data_editor(
        _rows_for_editor(session.quote_store.get_items()),
        num_rows="dynamic",
        disabled=["#", "price"],
        hide_index=True,
        column_config={
            "#": st.column_config.NumberColumn("#"),
            "width": st.column_config.NumberColumn("Width (mm)", min_value=0, step=1),
            "height": st.column_config.NumberColumn("Height (mm)", min_value=0, step=1),
            "fabric_type": st.column_config.TextColumn("Fabric type"),
            "location": st.column_config.TextColumn("Location"),
            "price": st.column_config.NumberColumn("Price", format="$%.2f"),
        },
        key="quick_quote_table",
        use_container_width=True,
    )
    if _apply_editor_rows(session, edited.to_dict("records")):
        session.calculate_and_sum()
        st.rerun()

    if st.button("Calculate ($)", key="calculate_and_sum"):
        session.calculate_and_sum()
        st.rerun()
    st.metric("Total", _format_usd(session.total_sum(), decimals=2))


def _render_drive_tab(session: QuoteSession) -> None:
    controller = session.drive_accessories
    state = session.ui_store.get_state()

    cols = st.columns(5)
    for col, mode in zip(cols, [m for m in DriveAccessoryMode if m != DriveAccessoryMode.NONE]):
        active = state.drive_accessory_mode == mode
        if col.button(mode.value.title(), key=f"drive_mode_{mode.value}", type="primary" if active else "secondary"):
            controller.handle_mode_change(mode)
            st.rerun()

    if state.drive_accessory_mode in (DriveAccessoryMode.WINDER, DriveAccessoryMode.MOTOR):
        column = state.drive_accessory_mode.value
        for idx, item in enumerate(session.quote_store.get_items()):
            flag = getattr(item, column) or "-"
            label = f"#{item.sequence} {item.fabric_type or ''} {item.location} | {column}: {flag}"
            if st.button(label, key=f"drive_cell_{column}_{idx}"):
                controller.handle_table_cell_click(idx, column)
                st.rerun()

    for accessory in ("remote", "charger", "cord"):
        c1, c2, c3, c4 = st.columns([2, 1, 1, 2])
        c1.write(f"{accessory.title()}: {state.accessory_count(accessory)}")
        if c2.button("+", key=f"count_add_{accessory}"):
            controller.handle_counter_change(accessory, "add")
            st.rerun()
        if c3.button("-", key=f"count_sub_{accessory}"):
            controller.handle_counter_change(accessory, "subtract")
            st.rerun()
        c4.write(_format_usd(getattr(state, f"summary_{accessory}_price")))

    st.write(f"Winder: {_format_usd(state.summary_winder_price)} | Motor: {_format_usd(state.summary_motor_price)}")
    st.metric("Drive/accessories total", _format_usd(state.drive_grand_total))


def _render_dual_chain_tab(session: QuoteSession) -> None:
    controller = session.dual_chain
    state = session.ui_store.get_state()

    c1, c2, _ = st.columns([1, 1, 4])
    for col, mode in ((c1, DualChainMode.DUAL), (c2, DualChainMode.CHAIN)):
        active = state.dual_chain_mode == mode
        if col.button(mode.value.title(), key=f"dual_chain_mode_{mode.value}", type="primary" if active else "secondary"):
            controller.handle_mode_change(mode)
            st.rerun()

    if state.dual_chain_mode != DualChainMode.NONE:
        column = state.dual_chain_mode.value
        for idx, item in enumerate(session.quote_store.get_items()):
            value = getattr(item, column) or "-"
            if st.button(f"#{item.sequence} {item.location} | {column}: {value}", key=f"dc_cell_{column}_{idx}"):
                controller.handle_table_cell_click(idx, column)
                st.rerun()

    if state.target_cell is not None:
        value = st.text_input(
            f"Chain for row {state.target_cell.row_index + 1}",
            value=state.dual_chain_input_value,
            key="chain_input",
        )
        if st.button("Enter", key="chain_enter"):
            controller.handle_chain_enter_pressed(value)
            st.rerun()

    st.write(f"Dual: {_format_usd(state.dual_price)}")
    st.metric("Accessories total", _format_usd(state.summary_accessories_total))


def _render_f1_tab(session: QuoteSession) -> None:
    for component in F1_COST_KEYS:
        c1, c2 = st.columns([3, 1])
        raw = c1.text_input(component, key=f"f1_qty_{component}")
        price = session.handle_f1_input_change(component, raw)
        c2.write(_format_usd(price, decimals=2) if price else "")
    st.write(f"Dual: {_format_usd(session.f1_dual_price(), decimals=2)}")
    st.metric("F1 total", _format_usd(session.f1_total(), decimals=2))


def _render_f2_tab(session: QuoteSession) -> None:
    summary = session.refresh_financial_summary()
    f2 = session.ui_store.get_state().f2

    for name, label in _F2_LABELS.items():
        current = getattr(f2, name)
        raw = st.text_input(label, value="" if current is None else f"{current:g}", key=f"f2_{name}")
        if raw != ("" if current is None else f"{current:g}"):
            session.handle_f2_value_changed(name, raw)
            st.rerun()

    for fee in ("delivery", "install", "removal"):
        excluded = bool(getattr(f2, f"{fee}_fee_excluded"))
        amount = getattr(summary, f"{fee}_fee")
        label = f"{fee.title()} fee {_format_usd(amount)}" + (" (excluded)" if excluded else "")
        if st.button(label, key=f"f2_toggle_{fee}"):
            session.toggle_fee_exclusion(fee)
            st.rerun()

    st.write(f"Accessories: {_format_usd(summary.acce_sum)} | Electronics: {_format_usd(summary.e_acce_sum)}")
    st.write(f"Surcharge: {_format_usd(summary.surcharge_fee)}")
    st.write(f"1st RB price: {_format_usd(summary.first_rb_price, decimals=2)}")
    st.write(f"Discounted RB price: {_format_usd(summary.dis_rb_price, decimals=2)}")
    st.metric("Sum price", _format_usd(summary.sum_price, decimals=2))


def main() -> None:
    setup_logging(level=_read_secret_or_env_str("LOG_LEVEL") or None)
    st.set_page_config(page_title="Roller Blind Quick Quote", layout="wide")
    st.title("Roller Blind Quick Quote")

    config = _load_price_config()
    session = _quote_session(config)
    st.caption(f"Price config: {config.revision}")

    if st.sidebar.button("New quote", key="new_quote"):
        _reset_quote_session()
        st.rerun()

    _render_notifications(session)

    # Only the selected panel renders.
    panel = st.radio("Panel", PANELS, horizontal=True, key="panel", label_visibility="collapsed")
    _activate_panel(session, panel)
    if panel == PANEL_QUOTE:
        _render_quick_quote(session)
    elif panel == PANEL_DRIVE:
        _render_drive_tab(session)
    elif panel == PANEL_DUAL_CHAIN:
        _render_dual_chain_tab(session)
    elif panel == PANEL_F1:
        _render_f1_tab(session)
    else:
        _render_f2_tab(session)


if __name__ == "__main__":
    main()
