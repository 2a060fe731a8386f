from decimal import Decimal

import pytest

from laundry.errors import OrderValidationError
from laundry.models.orders import OrderPaymentStatus, OrderStatus
from laundry.models.payments import PaymentMethod
from laundry.services.reconciliation import (
    ItemsUpdate,
    OrderSnapshot,
    PaymentOnlyUpdate,
    derive_payment_status,
    reconcile,
    resolve_update_intent,
)


def snapshot(total="100", paid=(), status=OrderStatus.PENDING, discount="0", notes="first visit"):
    return OrderSnapshot(
        id="order-1",
        customer_id="customer-1",
        notes=notes,
        total_amount=Decimal(total),
        discount=Decimal(discount),
        status=status,
        version=1,
        items=({"service_type_id": "wash", "subtotal": Decimal(total)},),
        payments=tuple({"amount": Decimal(p)} for p in paid),
    )


def item(total, **extra):
    data = {"serviceTypeId": "wash", "quantity": 1, "unitPrice": total, "total": total}
    data.update(extra)
    return data


def run(payload, existing=None):
    return reconcile(existing or snapshot(), resolve_update_intent(payload))


@pytest.mark.reconciliation
class TestPaymentStatus:
    """Mapping from amount due to payment status."""

    @pytest.mark.parametrize(
        "total, due, expected",
        [
            ("100", "0", OrderPaymentStatus.PAID),
            ("100", "-5", OrderPaymentStatus.PAID),
            ("100", "40", OrderPaymentStatus.PARTIAL),
            ("100", "100", OrderPaymentStatus.PENDING),
            ("100", "120", OrderPaymentStatus.PENDING),
        ],
    )
    def test_derive_payment_status(self, total, due, expected):
        assert derive_payment_status(Decimal(total), Decimal(due)) == expected


@pytest.mark.reconciliation
class TestIntentResolution:
    """Payload shape decides which update variant applies."""

    def test_absent_items_is_payment_only(self):
        intent = resolve_update_intent({"payments": [{"amount": 20, "paymentMethod": "cash"}]})
        assert isinstance(intent, PaymentOnlyUpdate)
        assert intent.payment.amount == Decimal("20")
        assert intent.payment.method == PaymentMethod.CASH

    def test_empty_items_list_is_items_update(self):
        intent = resolve_update_intent({"items": []})
        assert isinstance(intent, ItemsUpdate)
        assert intent.items == ()

    def test_non_list_items_treated_as_absent(self):
        intent = resolve_update_intent({"items": "not-a-list", "amountPaid": 10, "paymentMethod": "card"})
        assert isinstance(intent, PaymentOnlyUpdate)

    def test_item_without_total_is_rejected(self):
        with pytest.raises(OrderValidationError) as exc_info:
            resolve_update_intent({"items": [{"serviceTypeId": "wash", "quantity": 1, "unitPrice": 5}]})
        assert "total" in exc_info.value.message

    def test_subtotal_accepted_in_place_of_total(self):
        intent = resolve_update_intent(
            {"items": [{"serviceTypeId": "wash", "quantity": 2, "price": 5, "subtotal": 10}]}
        )
        assert intent.items[0].line_total == Decimal("10")
        assert intent.items[0].unit_amount == Decimal("5")

    def test_structured_payment_wins_over_legacy_fields(self):
        intent = resolve_update_intent(
            {
                "payments": [{"amount": 30, "paymentMethod": "MOBILE_MONEY", "transactionId": "tx-9"}],
                "amountPaid": 80,
                "paymentMethod": "cash",
            }
        )
        assert intent.payment.amount == Decimal("30")
        assert intent.payment.method == PaymentMethod.MOBILE_MONEY
        assert intent.payment.transaction_id == "tx-9"

    def test_legacy_zero_amount_is_no_payment(self):
        intent = resolve_update_intent({"amountPaid": 0, "paymentMethod": "cash"})
        assert intent.payment is None

    def test_positive_amount_without_method_is_counted_but_not_recorded(self):
        result = run({"payments": [{"amount": 25}]})

        assert result.new_payment is None
        assert result.amount_paid == Decimal("25")
        assert result.amount_due == Decimal("75")
        assert result.payment_status == OrderPaymentStatus.PARTIAL

    def test_unknown_payment_method_is_rejected(self):
        with pytest.raises(OrderValidationError):
            resolve_update_intent({"amountPaid": 10, "paymentMethod": "cheque"})

    def test_new_customer_requires_name(self):
        with pytest.raises(OrderValidationError):
            resolve_update_intent({"customer": {"phone": "555"}})


@pytest.mark.reconciliation
class TestReconcile:
    """Totals, amount due and status after an update."""

    def test_items_with_discount_and_payment(self):
        result = run(
            {
                "items": [item(100), item(50)],
                "discount": 10,
                "payments": [{"amount": 50, "paymentMethod": "cash"}],
            }
        )
        assert result.total_amount == Decimal("140")
        assert result.amount_paid == Decimal("50")
        assert result.amount_due == Decimal("90")
        assert result.payment_status == OrderPaymentStatus.PARTIAL
        assert len(result.replacement_items) == 2
        assert result.new_payment.amount == Decimal("50")

    def test_payment_only_keeps_total(self):
        result = run({"amountPaid": 0}, existing=snapshot(total="100", paid=("100",)))
        assert result.total_amount == Decimal("100")
        assert result.amount_paid == Decimal("100")
        assert result.amount_due == Decimal("0")
        assert result.payment_status == OrderPaymentStatus.PAID
        assert result.replacement_items is None
        assert result.new_payment is None

    def test_payment_only_adds_to_existing_payments(self):
        result = run(
            {"payments": [{"amount": 30, "paymentMethod": "card"}]},
            existing=snapshot(total="100", paid=("20", "10")),
        )
        assert result.total_amount == Decimal("100")
        assert result.amount_paid == Decimal("60")
        assert result.amount_due == Decimal("40")
        assert result.payment_status == OrderPaymentStatus.PARTIAL

    def test_empty_items_recomputes_total_from_discount(self):
        result = run({"items": [], "discount": 5})
        assert result.total_amount == Decimal("-5")
        assert result.replacement_items == ()
        assert result.new_payment is None

    def test_absent_items_without_payment_keeps_total(self):
        result = run({"status": "processing"}, existing=snapshot(total="75"))
        assert result.total_amount == Decimal("75")
        assert result.replacement_items is None
        assert result.status == OrderStatus.PROCESSING
        assert result.status_changed

    def test_discount_defaults_to_zero(self):
        result = run({"items": [item(40), item(60)]})
        assert result.total_amount == Decimal("100")
        assert result.discount == Decimal("0")

    def test_overpayment_leaves_negative_due(self):
        result = run(
            {"payments": [{"amount": 130, "paymentMethod": "cash"}]},
            existing=snapshot(total="100"),
        )
        assert result.amount_due == Decimal("-30")
        assert result.payment_status == OrderPaymentStatus.PAID

    def test_caller_total_is_trusted(self):
        result = run({"items": [item(10, quantity=3, unitPrice=10)]})
        assert result.total_amount == Decimal("10")

    def test_amount_due_matches_total_minus_paid(self):
        for payload in (
            {"items": [item(80)], "amountPaid": 15, "paymentMethod": "cash"},
            {"payments": [{"amount": 5, "paymentMethod": "card"}]},
            {"notes": "rush"},
        ):
            result = run(payload, existing=snapshot(total="100", paid=("25",)))
            assert result.amount_due == result.total_amount - result.amount_paid

    def test_same_payload_gives_same_result(self):
        payload = {"items": [item(100), item(50)], "discount": 10, "amountPaid": 20, "paymentMethod": "cash"}
        existing = snapshot(paid=("10",))
        assert run(payload, existing) == run(payload, existing)

    def test_status_and_notes_carried_forward(self):
        existing = snapshot(status=OrderStatus.READY, notes="fold shirts")
        result = run({"amountPaid": 5, "paymentMethod": "cash"}, existing)
        assert result.status == OrderStatus.READY
        assert result.notes == "fold shirts"
        assert not result.status_changed

    def test_customer_without_id_requests_creation(self):
        result = run({"customer": {"name": "Kofi Boateng", "email": "kofi@example.com"}})
        assert result.customer_id is None
        assert result.new_customer.name == "Kofi Boateng"

    def test_customer_with_id_is_used(self):
        result = run({"customer": {"id": "customer-2"}})
        assert result.customer_id == "customer-2"
        assert result.new_customer is None

    def test_no_customer_keeps_existing(self):
        assert run({"notes": "x"}).customer_id == "customer-1"
