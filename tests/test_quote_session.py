from __future__ import annotations

import unittest

from notifications import NotificationType
from pricing_engine import ProductFactory
from quote_session import QuoteSession
from sample_price_config import load_sample_price_config
from ui_state import UI_STATE_KEY, DriveAccessoryMode


class TestQuoteSessionQuickQuote(unittest.TestCase):
    def setUp(self) -> None:
        self.config = load_sample_price_config()
        self.published = 0
        self.session = QuoteSession(self.config, publish=self._publish)

    def _publish(self) -> None:
        self.published += 1

    def _matrix_price(self, fabric_type: str, width_idx: int, drop_idx: int) -> float:
        return self.config.get_price_matrix(fabric_type).prices[drop_idx][width_idx]

    def test_calculate_commits_prices_and_total(self) -> None:
        self.session.quote_store.add_item(width=1200, height=1200, fabric_type="A", location="Kitchen")
        self.session.quote_store.add_item(width=600, height=300, fabric_type="B", location="Laundry")

        self.assertIsNone(self.session.calculate_and_sum())

        expected = self._matrix_price("A", 3, 3) + self._matrix_price("B", 1, 0)
        self.assertEqual(self.session.total_sum(), expected)
        self.assertGreater(self.published, 0)

    def test_row_error_is_committed_and_notified(self) -> None:
        self.session.quote_store.add_item(width=1200, height=1200, fabric_type="A")
        self.session.quote_store.add_item(width=3500, height=1200, fabric_type="A")

        error = self.session.calculate_and_sum()

        self.assertIsNotNone(error)
        self.assertEqual((error.row_index, error.column), (1, "width"))
        self.assertEqual(self.session.ui_store.get_state().row_error, error)
        self.assertEqual(self.session.total_sum(), self._matrix_price("A", 3, 3))
        messages = self.session.notifier.drain_messages()
        self.assertEqual([m.type for m in messages], [NotificationType.ERROR])

    def test_engine_error_keeps_document(self) -> None:
        session = QuoteSession(self.config, product_factory=ProductFactory(strategies=()))
        session.quote_store.add_item(width=1200, height=1200, fabric_type="A")
        before = session.quote_store.quote_data

        error = session.calculate_and_sum()

        self.assertIsNotNone(error)
        self.assertIsNone(error.row_index)
        self.assertIs(session.quote_store.quote_data, before)
        self.assertIsNone(session.quote_store.get_items()[0].line_price)

    def test_leaving_drive_mode_refreshes_the_total(self) -> None:
        self.session.quote_store.add_item(width=1200, height=1200, fabric_type="A")
        self.session.calculate_and_sum()
        blind_price = self._matrix_price("A", 3, 3)
        self.assertEqual(self.session.total_sum(), blind_price)

        drive = self.session.drive_accessories
        drive.handle_mode_change("winder")
        drive.handle_table_cell_click(0, "winder")
        drive.handle_mode_change("winder")

        self.assertEqual(self.session.total_sum(), blind_price + 20)
        self.assertEqual(self.session.ui_store.get_state().summary_accessories_total, 20)
        self.assertEqual(self.session.refresh_financial_summary().total_sum_for_rb_time, blind_price + 20)

    def test_removing_an_accessory_lowers_the_total(self) -> None:
        self.session.quote_store.add_item(width=1200, height=1200, fabric_type="A")
        drive = self.session.drive_accessories
        drive.handle_mode_change("cord")
        drive.handle_counter_change("cord", "add")
        drive.handle_counter_change("cord", "add")
        drive.handle_mode_change("cord")
        blind_price = self._matrix_price("A", 3, 3)
        self.assertEqual(self.session.total_sum(), blind_price + 20)

        drive.handle_mode_change("cord")
        drive.handle_counter_change("cord", "subtract")
        drive.handle_mode_change("cord")
        self.assertEqual(self.session.total_sum(), blind_price + 10)

    def test_editing_a_size_clears_its_price(self) -> None:
        self.session.quote_store.add_item(width=1200, height=1200, fabric_type="A")
        self.session.calculate_and_sum()
        self.session.quote_store.update_item_property(0, "width", 1500)
        self.assertIsNone(self.session.quote_store.get_items()[0].line_price)

    def test_close_resets_ui_state(self) -> None:
        self.session.drive_accessories.handle_mode_change("cord")
        self.session.close()
        self.assertEqual(self.session.ui_store.get_state().drive_accessory_mode, DriveAccessoryMode.NONE)

    def test_ui_state_lives_in_session_mapping(self) -> None:
        store: dict[str, object] = {}
        session = QuoteSession(self.config, session_state=store)
        self.assertIs(store[UI_STATE_KEY], session.ui_store.get_state())


class TestQuoteSessionF1(unittest.TestCase):
    def setUp(self) -> None:
        self.session = QuoteSession(load_sample_price_config())

    def test_component_price_is_quantity_times_cost(self) -> None:
        self.assertEqual(self.session.handle_f1_input_change("motor", "2"), 320)
        self.assertEqual(self.session.ui_store.get_state().f1_prices["motor"], 320)

    def test_empty_input_is_zero(self) -> None:
        self.session.handle_f1_input_change("winder", "3")
        self.assertEqual(self.session.handle_f1_input_change("winder", ""), 0)

    def test_invalid_input_changes_nothing(self) -> None:
        self.session.handle_f1_input_change("charger", "2")
        self.assertIsNone(self.session.handle_f1_input_change("charger", "two"))
        self.assertIsNone(self.session.handle_f1_input_change("charger", "-1"))
        self.assertEqual(self.session.ui_store.get_state().f1_prices["charger"], 50)

    def test_unknown_component_is_rejected(self) -> None:
        with self.assertRaises(KeyError):
            self.session.handle_f1_input_change("valance", "1")

    def test_dual_and_total(self) -> None:
        self.session.handle_f1_input_change("dual-combo", "2")
        self.session.handle_f1_input_change("slim", "2")
        self.session.handle_f1_input_change("remote-16ch", "1")
        self.assertEqual(self.session.f1_dual_price(), 12)
        self.assertEqual(self.session.f1_total(), 72)


class TestQuoteSessionF2(unittest.TestCase):
    def setUp(self) -> None:
        self.session = QuoteSession(load_sample_price_config())
        self.session.quote_store.quote_data.current().summary.total_sum = 1000

    def test_value_change_refreshes_summary(self) -> None:
        self.assertTrue(self.session.handle_f2_value_changed("mul_times", "1"))
        self.assertTrue(self.session.handle_f2_value_changed("discount", "12.5"))
        f2 = self.session.ui_store.get_state().f2
        self.assertEqual(f2.first_rb_price, 1000)
        self.assertEqual(f2.dis_rb_price, 875.0)
        self.assertEqual(f2.sum_price, 875.0)

    def test_invalid_value_is_rejected(self) -> None:
        self.session.handle_f2_value_changed("wifi_qty", "1")
        self.assertFalse(self.session.handle_f2_value_changed("wifi_qty", "-3"))
        self.assertFalse(self.session.handle_f2_value_changed("wifi_qty", "lots"))
        self.assertEqual(self.session.ui_store.get_state().f2.wifi_qty, 1)
        self.assertEqual(len(self.session.notifier.drain_messages()), 2)

    def test_empty_value_clears_input(self) -> None:
        self.session.handle_f2_value_changed("install_qty", "2")
        self.session.handle_f2_value_changed("install_qty", "")
        self.assertIsNone(self.session.ui_store.get_state().f2.install_qty)
        self.assertEqual(self.session.ui_store.get_state().f2.install_fee, 0)

    def test_fee_toggle_excludes_from_surcharge(self) -> None:
        self.session.handle_f2_value_changed("delivery_qty", "1")
        self.session.handle_f2_value_changed("removal_qty", "2")
        self.assertEqual(self.session.ui_store.get_state().f2.surcharge_fee, 140)

        self.session.toggle_fee_exclusion("delivery")
        f2 = self.session.ui_store.get_state().f2
        self.assertTrue(f2.delivery_fee_excluded)
        self.assertEqual(f2.delivery_fee, 100)
        self.assertEqual(f2.surcharge_fee, 40)

        self.session.toggle_fee_exclusion("delivery")
        self.assertEqual(self.session.ui_store.get_state().f2.surcharge_fee, 140)

    def test_accessory_prices_flow_into_summary(self) -> None:
        self.session.quote_store.add_item(width=900, height=900, fabric_type="A")
        self.session.drive_accessories.handle_mode_change("motor")
        self.session.drive_accessories.handle_table_cell_click(0, "motor")
        self.session.drive_accessories.handle_mode_change("motor")
        self.session.handle_f2_value_changed("wifi_qty", "1")

        f2 = self.session.ui_store.get_state().f2
        self.assertEqual(f2.e_acce_sum, 250 + 200)
        self.assertEqual(f2.acce_sum, 0)


if __name__ == "__main__":
    unittest.main()
