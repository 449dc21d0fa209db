from __future__ import annotations

"""
Smoke test for the quick-quote engine (local, offline).

This script simulates a small number of operator "button presses" against one quote
session, one step at a time, printing the derived totals after each step. It exits
non-zero if a step breaks or a final total drifts from the expected invariant.

Usage:
  python3 scripts/smoke_test_quote.py
  python3 scripts/smoke_test_quote.py --price-config path/to/price_config.json
"""

import argparse
import sys
import traceback
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Optional

# Allow running as `python3 scripts/smoke_test_quote.py` (module imports live at repo root).
_ROOT = Path(__file__).resolve().parents[1]
if str(_ROOT) not in sys.path:
    sys.path.insert(0, str(_ROOT))

from logging_config import setup_logging
from price_config import PriceConfigError, load_price_config, resolve_price_config
from quote_session import QuoteSession


@dataclass(frozen=True)
class Step:
    label: str
    apply: Callable[[QuoteSession], None]


def _add_row(width: float, height: float, fabric_type: str, location: str) -> Callable[[QuoteSession], None]:
    def _apply(s: QuoteSession) -> None:
        s.quote_store.add_item(width=width, height=height, fabric_type=fabric_type, location=location)
        s.calculate_and_sum()

    return _apply


def _click_drive(row_index: int, column: str) -> Callable[[QuoteSession], None]:
    def _apply(s: QuoteSession) -> None:
        pending = s.drive_accessories.handle_table_cell_click(row_index, column)
        if pending is not None:
            pending.confirm()

    return _apply


def _click_dual(row_index: int) -> Callable[[QuoteSession], None]:
    return lambda s: s.dual_chain.handle_table_cell_click(row_index, "dual")


def _print_state(i: int, total: int, step: Step, s: QuoteSession) -> None:
    state = s.ui_store.get_state()
    print(f"[{i}/{total}] {step.label}")
    print(f"  - rows: {len(s.quote_store.get_items())}  total_sum: ${s.total_sum():,.2f}")
    print(
        f"  - modes: drive={state.drive_accessory_mode.value} dual_chain={state.dual_chain_mode.value}"
        f"  accessories: ${state.summary_accessories_total or 0:,.2f}"
    )
    for note in s.notifier.drain_messages():
        print(f"  - {note.type.value}: {note.message}")


def _run_scenario(*, name: str, session: QuoteSession, steps: list[Step]) -> None:
    print("")
    print("=" * 72)
    print(f"SCENARIO: {name}")
    print("=" * 72)
    for i, step in enumerate(steps, start=1):
        step.apply(session)
        _print_state(i, len(steps), step, session)

    product = session.quote_store.quote_data.current()
    items_total = sum((item.line_price or 0) for item in product.items)
    expected = items_total + product.summary.accessories.drive_total()
    if abs(product.summary.total_sum - expected) > 1e-9:
        raise AssertionError(f"{name}: total_sum {product.summary.total_sum} != {expected}")


def main(argv: Optional[list[str]] = None) -> int:
    parser = argparse.ArgumentParser(description="Offline smoke test for the roller blind quick quote.")
    parser.add_argument("--price-config", type=Path, default=None, help="JSON price config (defaults to sample)")
    args = parser.parse_args(argv)

    setup_logging(level="WARNING")
    config = load_price_config(args.price_config) if args.price_config else resolve_price_config()

    s1_steps = [
        Step(label="add_row_kitchen", apply=_add_row(1000, 1200, "A", "Kitchen")),
        Step(label="add_row_lounge", apply=_add_row(2400, 2100, "B", "Lounge")),
        Step(label="add_row_out_of_range", apply=_add_row(3200, 1200, "A", "Garage")),
        Step(label="press_winder_mode", apply=lambda s: s.drive_accessories.handle_mode_change("winder")),
        Step(label="click_winder_row_1", apply=_click_drive(0, "winder")),
        Step(label="press_motor_mode", apply=lambda s: s.drive_accessories.handle_mode_change("motor")),
        Step(label="click_motor_row_2", apply=_click_drive(1, "motor")),
        Step(label="press_remote_mode", apply=lambda s: s.drive_accessories.handle_mode_change("remote")),
        Step(label="leave_remote_mode", apply=lambda s: s.drive_accessories.handle_mode_change("remote")),
        Step(label="recalculate", apply=lambda s: s.calculate_and_sum()),
    ]

    s2_steps = [
        Step(label="add_row_bed_1", apply=_add_row(900, 1500, "C", "Bed 1")),
        Step(label="add_row_bed_2", apply=_add_row(900, 1500, "C", "Bed 2")),
        Step(label="press_dual_mode", apply=lambda s: s.dual_chain.handle_mode_change("dual")),
        Step(label="click_dual_row_1", apply=_click_dual(0)),
        Step(label="leave_dual_mode_odd", apply=lambda s: s.dual_chain.handle_mode_change("dual")),
        Step(label="click_dual_row_2", apply=_click_dual(1)),
        Step(label="leave_dual_mode_even", apply=lambda s: s.dual_chain.handle_mode_change("dual")),
        Step(label="press_chain_mode", apply=lambda s: s.dual_chain.handle_mode_change("chain")),
        Step(label="click_chain_row_1", apply=lambda s: s.dual_chain.handle_table_cell_click(0, "chain")),
        Step(label="enter_chain_4", apply=lambda s: s.dual_chain.handle_chain_enter_pressed("4")),
        Step(label="set_f2_multiplier", apply=lambda s: s.handle_f2_value_changed("mul_times", "2")),
        Step(label="set_f2_discount", apply=lambda s: s.handle_f2_value_changed("discount", "12.5")),
        Step(label="recalculate", apply=lambda s: s.calculate_and_sum()),
    ]

    _run_scenario(name="drive_accessories", session=QuoteSession(config), steps=s1_steps)
    _run_scenario(name="dual_chain_and_f2", session=QuoteSession(config), steps=s2_steps)

    print("")
    print("OK")
    return 0


if __name__ == "__main__":
    try:
        raise SystemExit(main())
    except PriceConfigError as exc:
        print(f"FAIL: PriceConfigError: {exc}", file=sys.stderr)
        raise SystemExit(2)
    except Exception:
        traceback.print_exc()
        raise SystemExit(1)
