"""
Integration tests for stock-in receipts.
A receipt moves stock only on its draft -> confirmed transition.
"""

from decimal import Decimal

import pytest
from sqlalchemy import select

from retail.exceptions import (
    InvalidRequestError, InvalidStatusError, ProductNotFoundError, ReceiptNotFoundError
)
from retail.models import InventoryTransaction, Product, ReferenceType, TransactionType
from retail.services import product_service, stock_in_service
from retail.services.stock_ledger_service import verify_stock


def _receipt_rows(session, stock_in_id):
    return session.execute(
        select(InventoryTransaction)
        .where(
            InventoryTransaction.reference_type == ReferenceType.STOCK_IN,
            InventoryTransaction.reference_id == stock_in_id,
        )
        .order_by(InventoryTransaction.id)
    ).scalars().all()


def _cost_price(session, product_id):
    return session.execute(select(Product.cost_price).where(Product.id == product_id)).scalar_one()


@pytest.fixture
def two_products(make_product):
    return make_product(), make_product()


class TestConfirmReceipt:

    def test_confirming_draft_applies_lines(self, session, two_products, supplier, user, stock_of):
        a, b = two_products
        draft = stock_in_service.create_stock_in(session, supplier, [
            {'product_id': a, 'quantity': 5, 'unit_cost': 10},
            {'product_id': b, 'quantity': 3, 'unit_cost': 20},
        ], actor_id=user)

        assert draft.status == 'draft'
        assert draft.total_amount == Decimal('110.00')
        assert stock_of(a) == 0
        assert _receipt_rows(session, draft.id) == []

        confirmed = stock_in_service.update_stock_in_status(session, draft.id, 'confirmed', actor_id=user)

        assert confirmed.status == 'confirmed'
        assert stock_of(a) == 5
        assert stock_of(b) == 3
        assert _cost_price(session, a) == Decimal('10.00')
        assert _cost_price(session, b) == Decimal('20.00')

        rows = _receipt_rows(session, draft.id)
        assert len(rows) == 2
        assert all(r.type == TransactionType.IMPORT for r in rows)

    def test_reconfirming_never_credits_twice(self, session, two_products, supplier, user, stock_of):
        a, _ = two_products
        receipt = stock_in_service.create_stock_in(
            session, supplier, [{'product_id': a, 'quantity': 5, 'unit_cost': 10}], actor_id=user
        )
        stock_in_service.update_stock_in_status(session, receipt.id, 'confirmed', actor_id=user)
        again = stock_in_service.update_stock_in_status(session, receipt.id, 'CONFIRMED', actor_id=user)

        assert again.status == 'confirmed'
        assert stock_of(a) == 5
        assert len(_receipt_rows(session, receipt.id)) == 1

    def test_create_as_confirmed(self, session, two_products, supplier, user, stock_of):
        a, _ = two_products
        receipt = stock_in_service.create_stock_in(
            session, supplier, [{'product_id': a, 'quantity': 8, 'unit_cost': '3.25'}],
            actor_id=user, status='confirmed', note='Weekly delivery'
        )

        assert receipt.status == 'confirmed'
        assert receipt.supplier_name == 'Acme Wholesale'
        assert receipt.note == 'Weekly delivery'
        assert stock_of(a) == 8
        assert _cost_price(session, a) == Decimal('3.25')

    def test_same_product_twice_last_cost_wins(self, session, two_products, supplier, user, stock_of):
        a, _ = two_products
        stock_in_service.create_stock_in(session, supplier, [
            {'product_id': a, 'quantity': 2, 'unit_cost': 4},
            {'product_id': a, 'quantity': 3, 'unit_cost': 6},
        ], actor_id=user, status='confirmed')

        assert stock_of(a) == 5
        assert _cost_price(session, a) == Decimal('6.00')


class TestCancelReceipt:

    def test_cancelled_draft_cannot_be_confirmed(self, session, two_products, supplier, user, stock_of):
        a, _ = two_products
        receipt = stock_in_service.create_stock_in(
            session, supplier, [{'product_id': a, 'quantity': 5, 'unit_cost': 10}], actor_id=user
        )
        cancelled = stock_in_service.cancel_stock_in(session, receipt.id, actor_id=user)
        assert cancelled.status == 'cancelled'

        with pytest.raises(InvalidStatusError):
            stock_in_service.update_stock_in_status(session, receipt.id, 'confirmed', actor_id=user)

        assert stock_of(a) == 0

    def test_cancelling_confirmed_receipt_keeps_stock(self, session, two_products, supplier, user, stock_of):
        a, _ = two_products
        receipt = stock_in_service.create_stock_in(
            session, supplier, [{'product_id': a, 'quantity': 5, 'unit_cost': 10}],
            actor_id=user, status='confirmed'
        )

        cancelled = stock_in_service.cancel_stock_in(session, receipt.id, actor_id=user)

        assert cancelled.status == 'cancelled'
        assert stock_of(a) == 5
        assert verify_stock(session) == []

    def test_confirmed_receipt_cannot_go_back_to_draft(self, session, two_products, supplier, user):
        a, _ = two_products
        receipt = stock_in_service.create_stock_in(
            session, supplier, [{'product_id': a, 'quantity': 1, 'unit_cost': 1}],
            actor_id=user, status='confirmed'
        )

        with pytest.raises(InvalidStatusError):
            stock_in_service.update_stock_in_status(session, receipt.id, 'draft', actor_id=user)


class TestValidation:

    def test_cannot_create_cancelled(self, session, two_products, supplier, user):
        with pytest.raises(InvalidStatusError):
            stock_in_service.create_stock_in(
                session, supplier, [{'product_id': two_products[0], 'quantity': 1, 'unit_cost': 1}],
                actor_id=user, status='cancelled'
            )

    def test_unknown_status(self, session, two_products, supplier, user):
        receipt = stock_in_service.create_stock_in(
            session, supplier, [{'product_id': two_products[0], 'quantity': 1, 'unit_cost': 1}], actor_id=user
        )
        with pytest.raises(InvalidStatusError):
            stock_in_service.update_stock_in_status(session, receipt.id, 'received', actor_id=user)

    def test_unknown_supplier(self, session, two_products, user):
        with pytest.raises(InvalidRequestError):
            stock_in_service.create_stock_in(
                session, 31337, [{'product_id': two_products[0], 'quantity': 1, 'unit_cost': 1}], actor_id=user
            )

    def test_deleted_product(self, session, two_products, supplier, user):
        product_service.soft_delete_product(session, two_products[0])
        with pytest.raises(ProductNotFoundError):
            stock_in_service.create_stock_in(
                session, supplier, [{'product_id': two_products[0], 'quantity': 1, 'unit_cost': 1}],
                actor_id=user
            )

    @pytest.mark.parametrize('line', [
        {'product_id': 1, 'quantity': 0, 'unit_cost': 1},
        {'product_id': 1, 'quantity': 1, 'unit_cost': -1},
        {'product_id': 1, 'quantity': 1},
    ])
    def test_invalid_lines(self, session, supplier, user, line):
        with pytest.raises(InvalidRequestError):
            stock_in_service.create_stock_in(session, supplier, [line], actor_id=user)

    def test_unknown_receipt(self, session, user):
        with pytest.raises(ReceiptNotFoundError):
            stock_in_service.update_stock_in_status(session, 999, 'confirmed', actor_id=user)
        with pytest.raises(ReceiptNotFoundError):
            stock_in_service.get_stock_in_items(session, 999)


class TestQueries:

    def test_items_show_current_cost_price(self, session, two_products, supplier, user):
        a, b = two_products
        first = stock_in_service.create_stock_in(session, supplier, [
            {'product_id': a, 'quantity': 1, 'unit_cost': '2.00'},
            {'product_id': b, 'quantity': 1, 'unit_cost': '3.00'},
        ], actor_id=user, status='confirmed')
        stock_in_service.create_stock_in(
            session, supplier, [{'product_id': a, 'quantity': 1, 'unit_cost': '2.50'}],
            actor_id=user, status='confirmed'
        )

        items = stock_in_service.get_stock_in_items(session, first.id)

        assert [i.product_id for i in items] == [a, b]
        assert items[0].unit_cost == Decimal('2.00')
        assert items[0].current_cost_price == Decimal('2.50')

    def test_list_by_status(self, session, two_products, supplier, user):
        line = [{'product_id': two_products[0], 'quantity': 1, 'unit_cost': 1}]
        draft = stock_in_service.create_stock_in(session, supplier, line, actor_id=user)
        stock_in_service.create_stock_in(session, supplier, line, actor_id=user, status='confirmed')

        drafts = stock_in_service.list_stock_ins(session, status='draft')
        assert [r.id for r in drafts] == [draft.id]
        assert len(stock_in_service.list_stock_ins(session, supplier_id=supplier)) == 2
