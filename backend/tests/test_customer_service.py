"""
Customer ledger tests.

Verifies:
- QR hash derivation and lookup
- Soft delete semantics
- adjust_balance bookkeeping
- History ordering and drift reconciliation
"""

import hashlib

import pytest

from jimpitan.errors import NotFoundError, ValidationError
from jimpitan.extensions import db
from jimpitan.models import Customer, Transaction
from jimpitan.services import customer_service, transaction_service
from jimpitan.time_utils import utcnow
from jimpitan.validation import MAX_BALANCE


class TestCreateAndLookup:

    def test_create_customer(self, db_session):
        customer = customer_service.create_customer(" A1 ", "Pak Slamet")

        assert customer.id == "CUST-001"
        assert customer.blok == "A1"
        assert customer.total_deposits == 0
        assert customer.last_transaction_at is None
        expected = hashlib.sha256(b"JimpitanCUST-001").hexdigest()[:10]
        assert customer.qr_hash == expected

    @pytest.mark.parametrize("blok,name", [("", "Name"), ("A1", ""), (None, "Name"), ("  ", "Name")])
    def test_missing_fields_rejected(self, db_session, blok, name):
        with pytest.raises(ValidationError):
            customer_service.create_customer(blok, name)

    def test_lookup_by_qr_hash(self, customer):
        found = customer_service.get_customer_by_qr_hash(customer.qr_hash)
        assert found.id == customer.id

    def test_unknown_qr_hash(self, customer):
        with pytest.raises(NotFoundError):
            customer_service.get_customer_by_qr_hash("0000000000")

    def test_qr_collision_resolves_to_lowest_id(self, customer, second_customer):
        second_customer.qr_hash = customer.qr_hash
        db.session.commit()
        assert customer_service.get_customer_by_qr_hash(customer.qr_hash).id == "CUST-001"

    def test_list_is_live_only_and_ordered(self, customer, second_customer):
        customer_service.delete_customer(customer.id)
        assert [c.id for c in customer_service.list_customers()] == ["CUST-002"]

    def test_list_orders_ids_numerically(self, db_session):
        now = utcnow()
        for customer_id in ("CUST-1000", "CUST-999", "CUST-001"):
            db_session.add(Customer(id=customer_id, blok="A", name=customer_id, qr_hash="q",
                                    total_deposits=0, created_at=now, updated_at=now))
        db_session.commit()

        assert [c.id for c in customer_service.list_customers()] == ["CUST-001", "CUST-999", "CUST-1000"]
        assert customer_service.get_customer_by_qr_hash("q").id == "CUST-001"

    @pytest.mark.parametrize("blok,name", [(5, "Name"), ("A1", ["Name"]), ({"b": 1}, "Name")])
    def test_non_string_fields_rejected(self, db_session, blok, name):
        with pytest.raises(ValidationError):
            customer_service.create_customer(blok, name)


class TestUpdateAndDelete:

    def test_update(self, customer):
        updated = customer_service.update_customer(customer.id, name="Pak Slamet Riyadi")
        assert updated.name == "Pak Slamet Riyadi"
        assert updated.blok == "A1"

    def test_update_requires_a_field(self, customer):
        with pytest.raises(ValidationError):
            customer_service.update_customer(customer.id)
        with pytest.raises(ValidationError):
            customer_service.update_customer(customer.id, blok=7)

    def test_update_keeps_transaction_snapshots(self, customer, operator_user):
        txn = transaction_service.submit_transaction(customer.id, operator_user.id, 5000)
        customer_service.update_customer(customer.id, blok="Z9", name="Renamed")
        assert transaction_service.get_transaction(txn.id).blok == "A1"
        assert transaction_service.get_transaction(txn.id).name == "Pak Slamet"

    def test_delete_is_soft_and_not_repeatable(self, customer):
        customer_service.delete_customer(customer.id)

        row = db.session.get(Customer, customer.id)
        assert row.deleted_at is not None
        with pytest.raises(NotFoundError):
            customer_service.get_customer(customer.id)
        with pytest.raises(NotFoundError):
            customer_service.delete_customer(customer.id)
        with pytest.raises(NotFoundError):
            customer_service.get_customer_by_qr_hash(customer.qr_hash)

    def test_update_deleted_customer(self, customer):
        customer_service.delete_customer(customer.id)
        with pytest.raises(NotFoundError):
            customer_service.update_customer(customer.id, name="X")

    def test_bulk_delete_partial(self, customer, second_customer):
        result = customer_service.bulk_delete_customers([customer.id, "CUST-404", second_customer.id])
        assert result.succeeded == 2
        assert result.errors == [{"id": "CUST-404", "error": "Customer not found"}]


class TestAdjustBalance:

    def test_positive_delta_stamps_last_transaction(self, customer):
        customer_service.adjust_balance(customer.id, 7000)
        db.session.commit()

        row = db.session.get(Customer, customer.id)
        assert row.total_deposits == 7000
        assert row.last_transaction_at is not None

    def test_negative_delta_leaves_last_transaction(self, customer):
        customer_service.adjust_balance(customer.id, -500)
        db.session.commit()

        row = db.session.get(Customer, customer.id)
        assert row.total_deposits == -500
        assert row.last_transaction_at is None

    def test_applies_to_soft_deleted_row(self, customer):
        customer_service.delete_customer(customer.id)
        customer_service.adjust_balance(customer.id, 100)
        db.session.commit()
        assert db.session.get(Customer, customer.id).total_deposits == 100

    def test_missing_customer(self, db_session):
        with pytest.raises(NotFoundError):
            customer_service.adjust_balance("CUST-404", 100)

    def test_total_beyond_storable_range(self, customer):
        customer_service.adjust_balance(customer.id, MAX_BALANCE)
        db.session.commit()

        with pytest.raises(ValidationError):
            customer_service.adjust_balance(customer.id, 1)
        db.session.rollback()
        assert db.session.get(Customer, customer.id).total_deposits == MAX_BALANCE

    def test_deposit_overflowing_total_is_rejected(self, customer, operator_user):
        customer_service.adjust_balance(customer.id, MAX_BALANCE - 10)
        db.session.commit()

        with pytest.raises(ValidationError):
            transaction_service.submit_transaction(customer.id, operator_user.id, 11)
        assert db.session.query(Transaction).count() == 0


class TestHistory:

    def test_newest_first_and_excludes_voided(self, customer, admin_user):
        first = transaction_service.submit_transaction(customer.id, admin_user.id, 1000)
        second = transaction_service.submit_transaction(customer.id, admin_user.id, 2000)
        third = transaction_service.submit_transaction(customer.id, admin_user.id, 3000)
        transaction_service.void_transaction(second.id, admin_user.id, "admin")

        history = customer_service.customer_history(customer.id)
        assert [t.id for t in history] == [third.id, first.id]

    def test_unknown_customer(self, db_session):
        with pytest.raises(NotFoundError):
            customer_service.customer_history("CUST-404")

    def test_empty_history(self, customer):
        assert customer_service.customer_history(customer.id) == []


class TestReconcile:

    def test_no_drift(self, customer, admin_user):
        transaction_service.submit_transaction(customer.id, admin_user.id, 1000)
        assert customer_service.find_balance_drift() == []

    def test_detects_and_repairs_drift(self, customer, second_customer, admin_user):
        transaction_service.submit_transaction(customer.id, admin_user.id, 1000)
        row = db.session.get(Customer, customer.id)
        row.total_deposits = 4500
        db.session.commit()

        drift = customer_service.reconcile_balances()
        assert drift == [{"customer_id": customer.id, "recorded": 4500, "expected": 1000, "difference": 3500}]
        assert db.session.get(Customer, customer.id).total_deposits == 4500

        customer_service.reconcile_balances(fix=True)
        assert db.session.get(Customer, customer.id).total_deposits == 1000
        assert customer_service.find_balance_drift() == []
