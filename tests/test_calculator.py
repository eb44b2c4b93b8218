import pytest
from decimal import Decimal

from app.core.exceptions import ValidationError
from app.domain.ipd_billing import calculator, ledger, payments
from app.domain.ipd_billing.models import InvoiceState, InvoiceStatus
from app.domain.ipd_billing.money import money2


def make_charges(*pairs):
    return [
        ledger.create_charge("adm-1", "other", f"Item {i}", qty, price)
        for i, (qty, price) in enumerate(pairs)
    ]


@pytest.mark.unit
@pytest.mark.billing
class TestRecompute:

    def test_subtotal_is_sum_of_charge_totals(self) -> None:
        charges = make_charges((3, 1500), (2, 250), (1, "99.99"))
        totals = calculator.recompute(charges, 0, 0)
        assert totals.subtotal == sum(c.total for c in charges)
        assert totals.subtotal == Decimal("5099.99")

    def test_empty_ledger(self) -> None:
        totals = calculator.recompute([], 10, 5)
        assert totals.subtotal == 0
        assert totals.total == 0
        assert totals.status == InvoiceStatus.PAID

    def test_tax_applies_after_discount(self) -> None:
        totals = calculator.recompute(make_charges((1, 5000)), 10, 5)
        assert totals.discount == Decimal("500")
        assert totals.taxable_amount == Decimal("4500")
        assert totals.tax == Decimal("225")
        assert totals.total == Decimal("4725")
        assert totals.balance == Decimal("4725")
        assert totals.status == InvoiceStatus.PENDING

    @pytest.mark.parametrize("discount,tax", [
        (0, 0), (0, 18), (12.5, 5), (33, 12), (99, 100), (100, 0),
    ])
    def test_total_formula(self, discount, tax) -> None:
        charges = make_charges((7, "123.45"), (1, 999))
        totals = calculator.recompute(charges, discount, tax)
        d = Decimal(str(discount))
        t = Decimal(str(tax))
        expected = (totals.subtotal - totals.subtotal * d / 100) * (1 + t / 100)
        assert totals.total == expected
        assert totals.total >= 0
        assert totals.total == totals.subtotal - totals.discount + totals.tax

    def test_full_discount_zeroes_everything(self) -> None:
        totals = calculator.recompute(make_charges((2, 700)), 100, 18)
        assert totals.discount == totals.subtotal
        assert totals.taxable_amount == 0
        assert totals.tax == 0
        assert totals.total == 0

    def test_zero_price_charge(self) -> None:
        totals = calculator.recompute(make_charges((1, 0)), 0, 5)
        assert totals.total == 0

    def test_idempotent(self) -> None:
        charges = make_charges((3, "333.33"), (2, "0.07"))
        first = calculator.recompute(charges, "7.5", "12", "100")
        second = calculator.recompute(charges, "7.5", "12", "100")
        assert first == second

    def test_full_precision_until_presentation(self) -> None:
        totals = calculator.recompute(make_charges((1, 100)), "33.333", 0)
        assert totals.discount == Decimal("33.333")
        assert money2(totals.total) == Decimal("66.67")

    def test_balance_subtracts_paid(self) -> None:
        totals = calculator.recompute(make_charges((1, 1000)), 0, 0, Decimal("400"))
        assert totals.paid == Decimal("400")
        assert totals.balance == Decimal("600")
        assert totals.status == InvoiceStatus.PARTIAL


@pytest.mark.unit
@pytest.mark.billing
class TestAdjustments:

    def test_updates_percentages(self, empty_invoice: InvoiceState) -> None:
        invoice = ledger.add_charge(empty_invoice, "bed", "Bed", 2, 1000)
        adjusted = calculator.apply_adjustments(invoice, discount_percent=Decimal("10"), tax_percent=Decimal("5"))

        assert adjusted.discount_percent == Decimal("10")
        assert adjusted.tax_percent == Decimal("5")
        assert calculator.invoice_totals(adjusted).total == Decimal("1890")
        assert invoice.discount_percent == 0

    def test_only_given_percentage_changes(self, empty_invoice: InvoiceState) -> None:
        invoice = empty_invoice.model_copy(update={"tax_percent": Decimal("5")})
        adjusted = calculator.apply_adjustments(invoice, discount_percent=Decimal("20"))
        assert adjusted.tax_percent == Decimal("5")

    def test_no_change_returns_same_invoice(self, empty_invoice: InvoiceState) -> None:
        assert calculator.apply_adjustments(empty_invoice) is empty_invoice

    @pytest.mark.parametrize("value", [-1, "100.01", "abc"])
    def test_out_of_range_percent_rejected(self, empty_invoice: InvoiceState, value) -> None:
        with pytest.raises(ValidationError):
            calculator.apply_adjustments(empty_invoice, discount_percent=value)
        with pytest.raises(ValidationError):
            calculator.apply_adjustments(empty_invoice, tax_percent=value)

    def test_cannot_drop_total_below_paid(self, empty_invoice: InvoiceState) -> None:
        invoice = ledger.add_charge(empty_invoice, "bed", "Bed", 1, 1000)
        invoice = payments.record_payment(invoice, 900, "cash")

        with pytest.raises(ValidationError) as exc:
            calculator.apply_adjustments(invoice, discount_percent=Decimal("20"))
        assert exc.value.error_code == "PAID_EXCEEDS_TOTAL"

        # a discount that still covers what was paid is fine
        adjusted = calculator.apply_adjustments(invoice, discount_percent=Decimal("10"))
        assert calculator.invoice_totals(adjusted).status == InvoiceStatus.PAID
