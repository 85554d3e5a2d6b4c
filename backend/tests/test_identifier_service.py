"""
Identifier allocation tests.

Verifies:
- Formats per kind (USR-001, CUST-001, 0001)
- Sequential, independent reservation per kind
- First reservation continues after existing rows, deleted ones included
"""

import pytest

from jimpitan.errors import ValidationError
from jimpitan.extensions import db
from jimpitan.models import Customer, IdentifierSequence
from jimpitan.services.identifier_service import (
    KIND_CUSTOMER,
    KIND_TRANSACTION,
    KIND_USER,
    format_identifier,
    next_identifier,
)
from jimpitan.time_utils import utcnow


class TestFormatIdentifier:

    @pytest.mark.parametrize(
        "kind,count,expected",
        [
            (KIND_USER, 0, "USR-001"),
            (KIND_USER, 41, "USR-042"),
            (KIND_CUSTOMER, 0, "CUST-001"),
            (KIND_CUSTOMER, 999, "CUST-1000"),
            (KIND_TRANSACTION, 0, "0001"),
            (KIND_TRANSACTION, 9, "0010"),
            (KIND_TRANSACTION, 9999, "10000"),
        ],
    )
    def test_formats(self, kind, count, expected):
        assert format_identifier(kind, count) == expected

    def test_negative_count_rejected(self):
        with pytest.raises(ValidationError):
            format_identifier(KIND_USER, -1)

    def test_unknown_kind_rejected(self):
        with pytest.raises(ValidationError):
            format_identifier("invoice", 0)


class TestNextIdentifier:

    def test_sequential_per_kind(self, db_session):
        assert next_identifier(KIND_TRANSACTION) == "0001"
        assert next_identifier(KIND_TRANSACTION) == "0002"
        assert next_identifier(KIND_CUSTOMER) == "CUST-001"
        assert next_identifier(KIND_TRANSACTION) == "0003"
        db_session.commit()

        seq = db_session.query(IdentifierSequence).filter_by(kind=KIND_TRANSACTION).one()
        assert seq.next_number == 4

    def test_seeds_from_existing_rows_including_deleted(self, db_session):
        now = utcnow()
        db_session.add_all([
            Customer(id="CUST-001", blok="A", name="One", qr_hash="x", total_deposits=0,
                     created_at=now, updated_at=now),
            Customer(id="CUST-002", blok="A", name="Two", qr_hash="y", total_deposits=0,
                     created_at=now, updated_at=now, deleted_at=now),
        ])
        db_session.commit()

        assert next_identifier(KIND_CUSTOMER) == "CUST-003"

    def test_rolled_back_reservation_is_reused(self, db_session):
        assert next_identifier(KIND_USER) == "USR-001"
        db_session.rollback()
        assert next_identifier(KIND_USER) == "USR-001"

    def test_created_entities_get_distinct_ids(self, customer, second_customer):
        assert customer.id == "CUST-001"
        assert second_customer.id == "CUST-002"
        assert db.session.query(Customer).count() == 2
