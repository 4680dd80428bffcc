# Overview: Pytest coverage for the table aggregate and the sales records.

from dataclasses import FrozenInstanceError
from decimal import Decimal

import pytest

from clubpos.models import (
    BilledItem,
    CardPayment,
    CashPayment,
    DayClosureRecord,
    FoodItem,
    SalesTransaction,
    Session,
    SplitPayment,
    Table,
    TableStateError,
)
from clubpos.models.finance import legacy_payment_method, payment_from_dict
from clubpos.models.tables import TABLE_AVAILABLE, TABLE_MAINTENANCE, TABLE_OCCUPIED, TABLE_PAUSED


def make_table(**kwargs) -> Table:
    defaults = dict(id=1, number="Snooker Table 1", hourly_rate=Decimal("15.00"), activity_id="snooker")
    defaults.update(kwargs)
    return Table(**defaults)


def start(table: Table, now: int = 0) -> Session:
    return table.start(session_id="session-1", customer_name="Ali", customer_phone=None, now=now)


def make_transaction(**kwargs) -> SalesTransaction:
    defaults = dict(
        id="trans-1",
        session_id="session-1",
        date="2024-06-10",
        table_number="Snooker Table 1",
        activity_name="Snooker",
        start_time=1718020800000,
        end_time=1718024700000,
        duration=65,
        table_charge=Decimal("15.00"),
        fnb_items=(BilledItem(id="item-1", name="Sandwich", price=Decimal("5.00"), quantity=2, menu_item_id="7"),),
        fnb_total=Decimal("10.00"),
        subtotal=Decimal("25.00"),
        discount_amount=Decimal("2.50"),
        discount_reason="loyalty",
        discount_approved_by="Owner",
        total=Decimal("22.50"),
        payment=SplitPayment(cash=Decimal("12.50"), card=Decimal("10.00")),
        started_by="Owner",
        ended_by="Owner",
        created_at=1718024701000,
    )
    defaults.update(kwargs)
    return SalesTransaction(**defaults)


class TestTableLifecycle:
    def test_start_snapshots_rate(self):
        table = make_table()
        session = start(table, now=1000)

        assert table.status == TABLE_OCCUPIED
        assert session.hourly_rate == Decimal("15.00")
        assert session.start_time == 1000

        table.hourly_rate = Decimal("20.00")
        assert table.session.hourly_rate == Decimal("15.00")

    def test_start_requires_available(self):
        table = make_table()
        start(table)
        with pytest.raises(TableStateError):
            start(table)

    def test_pause_and_resume_accumulate_paused_time(self):
        table = make_table()
        start(table, now=0)

        table.pause(now=10_000)
        assert table.status == TABLE_PAUSED
        table.resume(now=25_000)

        assert table.status == TABLE_OCCUPIED
        assert table.session.paused_at is None
        assert table.session.paused_duration == 15_000

    def test_elapsed_is_frozen_while_paused(self):
        table = make_table()
        start(table, now=0)
        table.pause(now=60_000)

        assert table.session.elapsed_ms(60_000) == 60_000
        assert table.session.elapsed_ms(600_000) == 60_000

    def test_elapsed_stops_at_an_earlier_end_time_while_paused(self):
        table = make_table()
        start(table, now=0)
        table.pause(now=90_000)

        assert table.session.elapsed_ms(30_000) == 30_000

    def test_double_pause_leaves_state_unchanged(self):
        table = make_table()
        start(table, now=0)
        table.pause(now=5_000)

        with pytest.raises(TableStateError):
            table.pause(now=9_000)
        assert table.session.paused_at == 5_000

    def test_resume_requires_paused(self):
        table = make_table()
        start(table)
        with pytest.raises(TableStateError):
            table.resume(now=1)

    def test_food_lines_merge_by_source(self):
        table = make_table()
        start(table)

        table.add_food_item(line_id="item-1", menu_item_id="7", name="Sandwich", price=Decimal("5.00"), quantity=2)
        table.add_food_item(line_id="item-2", menu_item_id="7", name="Sandwich", price=Decimal("5.00"), quantity=3)

        assert len(table.session.food_items) == 1
        assert table.session.food_items[0].quantity == 5
        assert table.session.food_items[0].id == "item-1"

    def test_remove_food_item_drops_whole_line(self):
        table = make_table()
        start(table)
        table.add_food_item(line_id="item-1", menu_item_id="1", name="Coca Cola", price=Decimal("2.50"), quantity=4)

        removed = table.remove_food_item("item-1")
        assert removed.quantity == 4
        assert table.session.food_items == []

        with pytest.raises(TableStateError):
            table.remove_food_item("item-1")

    def test_food_requires_session(self):
        with pytest.raises(TableStateError):
            make_table().add_food_item(line_id="x", menu_item_id="1", name="Water", price=Decimal("1"), quantity=1)

    def test_end_detaches_session(self):
        table = make_table()
        start(table)
        session = table.end()

        assert session.id == "session-1"
        assert table.session is None
        assert table.status == TABLE_AVAILABLE

    def test_maintenance_only_without_session(self):
        table = make_table()
        table.set_maintenance(True)
        assert table.status == TABLE_MAINTENANCE
        with pytest.raises(TableStateError):
            start(table)

        table.set_maintenance(False)
        start(table)
        with pytest.raises(TableStateError):
            table.set_maintenance(True)


class TestTableSerialization:
    def test_round_trip_with_paused_session(self):
        table = make_table()
        start(table, now=100)
        table.add_bundle(
            line_id="bundle-line", bundle_id="bundle-2", name="Snack Pack", price=Decimal("9.00"),
            components=["1x Chips", "1x Sandwich", "1x Pepsi"], quantity=1,
        )
        table.pause(now=500)

        restored = Table.from_dict(table.to_dict())
        assert restored == table

    def test_rejects_status_without_session(self):
        data = make_table().to_dict()
        data["status"] = TABLE_OCCUPIED
        with pytest.raises(ValueError):
            Table.from_dict(data)

    def test_rejects_pause_marker_mismatch(self):
        table = make_table()
        start(table)
        data = table.to_dict()
        data["session"]["pausedAt"] = 50
        with pytest.raises(ValueError):
            Table.from_dict(data)

    def test_rejects_negative_paused_duration(self):
        table = make_table()
        start(table)
        data = table.to_dict()
        data["session"]["pausedDuration"] = -1
        with pytest.raises(ValueError):
            Table.from_dict(data)

    def test_food_item_rejects_non_positive_quantity(self):
        with pytest.raises(ValueError):
            FoodItem.from_dict({"id": "a", "name": "Tea", "price": 2, "quantity": 0})


class TestPayments:
    def test_split_reports_cash_in_legacy_view(self):
        payment = SplitPayment(cash=Decimal("12.50"), card=Decimal("10.00"))
        assert legacy_payment_method(payment) == "cash"
        assert payment.amount == Decimal("22.50")

    def test_single_tenders_keep_their_kind(self):
        assert legacy_payment_method(CardPayment(amount=Decimal("5"))) == "card"
        assert legacy_payment_method(CashPayment(amount=Decimal("5"))) == "cash"

    def test_payment_from_dict(self):
        assert payment_from_dict({"kind": "upi", "amount": 3.5}).amount == Decimal("3.50")
        with pytest.raises(ValueError):
            payment_from_dict({"kind": "cheque", "amount": 1})


class TestSalesTransaction:
    def test_split_transaction_wire_format(self):
        data = make_transaction().to_dict()

        assert data["paymentMethod"] == "cash"
        assert data["splitPayment"] == {"cash": 12.5, "card": 10.0}
        assert data["payment"] == {"kind": "split", "cash": 12.5, "card": 10.0}
        assert data["locked"] is True

    def test_round_trip(self):
        transaction = make_transaction()
        assert SalesTransaction.from_dict(transaction.to_dict()) == transaction

    def test_reads_records_without_tagged_payment(self):
        data = make_transaction().to_dict()
        del data["payment"]
        restored = SalesTransaction.from_dict(data)
        assert restored.payment == SplitPayment(cash=Decimal("12.50"), card=Decimal("10.00"))

        data = make_transaction(payment=CardPayment(amount=Decimal("22.50"))).to_dict()
        del data["payment"]
        assert SalesTransaction.from_dict(data).payment == CardPayment(amount=Decimal("22.50"))

    def test_is_immutable_and_always_locked(self):
        transaction = make_transaction()
        with pytest.raises(FrozenInstanceError):
            transaction.total = Decimal("0")
        with pytest.raises(ValueError):
            make_transaction(locked=False)


class TestDayClosureRecord:
    def test_round_trip(self):
        record = DayClosureRecord(
            id="closure-1",
            date="2024-06-10",
            total_sessions=2,
            gross_revenue=Decimal("50.00"),
            total_discounts=Decimal("2.50"),
            net_revenue=Decimal("47.50"),
            expected_cash=Decimal("30.00"),
            expected_card=Decimal("17.50"),
            expected_upi=Decimal("0.00"),
            actual_cash=Decimal("29.00"),
            actual_card=Decimal("17.50"),
            actual_upi=Decimal("0.00"),
            cash_variance=Decimal("-1.00"),
            card_variance=Decimal("0.00"),
            upi_variance=Decimal("0.00"),
            balanced=False,
            closed_by="Owner",
            closed_at=1718060000000,
            locked=True,
            variance_notes="Change given twice",
        )
        assert DayClosureRecord.from_dict(record.to_dict()) == record
