from __future__ import annotations

import unittest

from notifications import NotificationChannel, NotificationType
from pricing_engine import AccessoryEntry, AccessoryKind
from quote_store import QuoteStore


class TestQuoteStore(unittest.TestCase):
    def setUp(self) -> None:
        self.store = QuoteStore()
        self.store.add_item(width=1000, height=1200, fabric_type="A", location="Kitchen")
        self.store.add_item(width=600, height=900, fabric_type="B", location="Laundry")
        self.store.add_item(width=2000, height=2100, fabric_type="C", location="Lounge")

    def test_delete_renumbers_sequence(self) -> None:
        self.store.delete_item(0)
        self.assertEqual([item.sequence for item in self.store.get_items()], [1, 2])
        self.assertEqual(self.store.get_items()[0].location, "Laundry")

    def test_out_of_range_rows_are_ignored(self) -> None:
        self.store.delete_item(9)
        self.store.update_item_property(9, "width", 100)
        self.assertEqual(len(self.store.get_items()), 3)

    def test_unknown_column_is_rejected(self) -> None:
        with self.assertRaises(KeyError):
            self.store.update_item_property(0, "line_price", 10)
        with self.assertRaises(KeyError):
            self.store.update_winder_motor_property(0, "dual", "D")

    def test_location_edit_keeps_price(self) -> None:
        self.store.get_items()[0].line_price = 120.0
        self.store.update_item_property(0, "location", "Dining")
        self.assertEqual(self.store.get_items()[0].line_price, 120.0)
        self.store.update_item_property(0, "fabric_type", "B")
        self.assertIsNone(self.store.get_items()[0].line_price)

    def test_empty_dual_is_none(self) -> None:
        self.store.update_item_property(1, "dual", "")
        self.assertIsNone(self.store.get_items()[1].dual)

    def test_accessory_summary_and_cost_sums(self) -> None:
        self.store.update_accessory_summary(
            {"motor": AccessoryEntry(count=1, price=250), "valance": AccessoryEntry(count=1, price=5)}
        )
        self.store.update_cost_sum(AccessoryKind.MOTOR, 160)
        summary = self.store.quote_data.current().summary
        self.assertEqual(summary.accessories.motor.price, 250)
        self.assertFalse(hasattr(summary.accessories, "valance"))
        self.assertEqual(self.store.get_cost_sum(AccessoryKind.MOTOR), 160)
        self.assertIsNone(self.store.get_cost_sum(AccessoryKind.CORD))


class TestNotificationChannel(unittest.TestCase):
    def test_messages_drain_in_order(self) -> None:
        channel = NotificationChannel()
        channel.show_message("first")
        channel.show_message("second", NotificationType.ERROR)
        self.assertEqual(len(channel.messages), 2)
        drained = channel.drain_messages()
        self.assertEqual([m.message for m in drained], ["first", "second"])
        self.assertEqual(channel.drain_messages(), [])

    def test_confirmation_fires_once(self) -> None:
        calls: list[str] = []
        channel = NotificationChannel()
        pending = channel.request_confirmation(
            "Sure?", lambda: calls.append("yes"), on_cancel=lambda: calls.append("no")
        )
        pending.confirm()
        pending.confirm()
        pending.cancel()
        self.assertEqual(calls, ["yes"])
        self.assertIsNone(channel.pending_confirmation())


if __name__ == "__main__":
    unittest.main()
