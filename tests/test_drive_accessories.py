from __future__ import annotations

import unittest

from drive_accessories import DRIVE_COLUMNS, DriveAccessoriesController
from notifications import NotificationChannel, NotificationType
from pricing_engine import AccessoryKind, CalculationService, ProductFactory
from quote_store import QuoteStore
from sample_price_config import load_sample_price_config
from ui_state import DriveAccessoryMode, UIStateStore


class TestDriveAccessoriesController(unittest.TestCase):
    def setUp(self) -> None:
        self.quote_store = QuoteStore()
        for location in ("Kitchen", "Lounge", "Bed 1"):
            self.quote_store.add_item(width=1000, height=1200, fabric_type="A", location=location)
        self.ui_store = UIStateStore({})
        self.notifier = NotificationChannel()
        self.prices_changed = 0
        self.controller = DriveAccessoriesController(
            quote_store=self.quote_store,
            ui_store=self.ui_store,
            calculation_service=CalculationService(ProductFactory(), load_sample_price_config()),
            notifier=self.notifier,
            on_prices_changed=self._count_price_change,
        )

    def _count_price_change(self) -> None:
        self.prices_changed += 1

    def _state(self):
        return self.ui_store.get_state()

    def test_activate_projects_drive_columns(self) -> None:
        self.controller.activate()
        self.assertEqual(self._state().visible_columns, DRIVE_COLUMNS)

    def test_mode_button_toggles_and_shows_hint(self) -> None:
        self.controller.handle_mode_change("winder")
        self.assertEqual(self._state().drive_accessory_mode, DriveAccessoryMode.WINDER)
        messages = self.notifier.drain_messages()
        self.assertEqual(len(messages), 1)
        self.assertEqual(messages[0].type, NotificationType.INFO)

        self.controller.handle_mode_change("winder")
        self.assertEqual(self._state().drive_accessory_mode, DriveAccessoryMode.NONE)
        self.assertEqual(self.notifier.drain_messages(), [])

    def test_cell_click_ignored_outside_matching_mode(self) -> None:
        self.assertIsNone(self.controller.handle_table_cell_click(0, "winder"))
        self.controller.handle_mode_change("winder")
        self.controller.handle_table_cell_click(0, "motor")
        items = self.quote_store.get_items()
        self.assertIsNone(items[0].winder)
        self.assertIsNone(items[0].motor)

    def test_winder_click_toggles_hd(self) -> None:
        self.controller.handle_mode_change("winder")
        self.controller.handle_table_cell_click(0, "winder")
        self.assertEqual(self.quote_store.get_items()[0].winder, "HD")
        self.controller.handle_table_cell_click(0, "winder")
        self.assertIsNone(self.quote_store.get_items()[0].winder)

    def test_winder_on_motor_row_needs_confirmation(self) -> None:
        self.controller.handle_mode_change("motor")
        self.controller.handle_table_cell_click(1, "motor")
        self.controller.handle_mode_change("winder")

        pending = self.controller.handle_table_cell_click(1, "winder")
        self.assertIsNotNone(pending)
        item = self.quote_store.get_items()[1]
        self.assertEqual(item.motor, "Motor")
        self.assertIsNone(item.winder)

        pending.confirm()
        item = self.quote_store.get_items()[1]
        self.assertEqual(item.winder, "HD")
        self.assertIsNone(item.motor)
        self.assertIsNone(self.notifier.pending_confirmation())

    def test_cancelled_motor_confirmation_leaves_row(self) -> None:
        self.controller.handle_mode_change("winder")
        self.controller.handle_table_cell_click(2, "winder")
        self.controller.handle_mode_change("motor")

        pending = self.controller.handle_table_cell_click(2, "motor")
        self.assertIs(self.notifier.pending_confirmation(), pending)
        pending.cancel()
        pending.confirm()  # already resolved

        item = self.quote_store.get_items()[2]
        self.assertEqual(item.winder, "HD")
        self.assertIsNone(item.motor)

    def test_remote_and_charger_default_to_one_with_a_motor(self) -> None:
        self.controller.handle_mode_change("motor")
        self.controller.handle_table_cell_click(0, "motor")
        self.controller.handle_mode_change("remote")
        self.assertEqual(self._state().drive_remote_count, 1)
        self.controller.handle_mode_change("charger")
        self.assertEqual(self._state().drive_charger_count, 1)
        self.controller.handle_mode_change("cord")
        self.assertEqual(self._state().drive_cord_count, 0)

    def test_remote_stays_zero_without_a_motor(self) -> None:
        self.controller.handle_mode_change("remote")
        self.assertEqual(self._state().drive_remote_count, 0)

    def test_counter_never_goes_negative(self) -> None:
        self.assertIsNone(self.controller.handle_counter_change("cord", "subtract"))
        self.assertEqual(self._state().drive_cord_count, 0)
        self.controller.handle_counter_change("cord", "add")
        self.controller.handle_counter_change("cord", "add")
        self.assertEqual(self._state().drive_cord_count, 2)

    def test_removing_last_remote_with_motor_needs_confirmation(self) -> None:
        self.controller.handle_mode_change("motor")
        self.controller.handle_table_cell_click(0, "motor")
        self.controller.handle_mode_change("remote")

        pending = self.controller.handle_counter_change("remote", "subtract")
        self.assertIsNotNone(pending)
        self.assertEqual(self._state().drive_remote_count, 1)
        pending.confirm()
        self.assertEqual(self._state().drive_remote_count, 0)

    def test_removing_last_cord_never_asks(self) -> None:
        self.controller.handle_mode_change("motor")
        self.controller.handle_table_cell_click(0, "motor")
        self.controller.handle_counter_change("cord", "add")
        self.assertIsNone(self.controller.handle_counter_change("cord", "subtract"))
        self.assertEqual(self._state().drive_cord_count, 0)

    def test_unknown_counter_is_rejected(self) -> None:
        with self.assertRaises(KeyError):
            self.controller.handle_counter_change("winder", "add")
        with self.assertRaises(ValueError):
            self.controller.handle_counter_change("cord", "double")

    def test_leaving_winder_mode_stores_cost_and_prices(self) -> None:
        self.controller.handle_mode_change("winder")
        self.controller.handle_table_cell_click(0, "winder")
        self.controller.handle_table_cell_click(1, "winder")
        self.controller.handle_mode_change("winder")

        self.assertEqual(self.quote_store.get_cost_sum(AccessoryKind.WINDER), 16)
        self.assertEqual(self._state().summary_winder_price, 40)
        entry = self.quote_store.quote_data.current().summary.accessories.winder
        self.assertEqual((entry.count, entry.price), (2, 40))
        self.assertEqual(self.prices_changed, 1)

    def test_leaving_counter_mode_with_zero_clears_cost(self) -> None:
        self.quote_store.update_cost_sum(AccessoryKind.REMOTE, 90)
        self.controller.handle_mode_change("remote")
        self.controller.handle_mode_change("remote")
        self.assertIsNone(self.quote_store.get_cost_sum(AccessoryKind.REMOTE))

    def test_recalculate_all_prices(self) -> None:
        self.quote_store.update_winder_motor_property(0, "motor", "Motor")
        self.quote_store.update_winder_motor_property(1, "winder", "HD")
        self.ui_store.set_drive_accessory_count("remote", 2)
        self.ui_store.set_drive_accessory_count("charger", 1)
        self.ui_store.set_drive_accessory_count("cord", 3)

        total = self.controller.recalculate_all_drive_accessory_prices()

        self.assertEqual(total, 20 + 250 + 200 + 50 + 30)
        state = self._state()
        self.assertEqual(state.drive_grand_total, total)
        self.assertEqual(
            (
                state.summary_winder_price,
                state.summary_motor_price,
                state.summary_remote_price,
                state.summary_charger_price,
                state.summary_cord_price,
            ),
            (20, 250, 200, 50, 30),
        )
        accessories = self.quote_store.quote_data.current().summary.accessories
        self.assertEqual(accessories.remote.type, "standard")
        self.assertEqual(accessories.cord3m.count, 3)
        self.assertEqual(accessories.drive_total(), total)
        self.assertEqual(self.prices_changed, 1)


if __name__ == "__main__":
    unittest.main()
