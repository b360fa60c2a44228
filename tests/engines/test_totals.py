"""Document totals, WHT totals and receipt settlement."""

from datetime import date
from decimal import Decimal

from charter_engines.totals import (
    apply_document_totals,
    compute_document_totals,
    compute_receipt_settlement,
    compute_total_wht,
    net_amount_to_pay,
    receipt_settlement,
)
from charter_kernel.domain.documents import (
    AdjustmentType,
    Document,
    LineItem,
    PaymentRecord,
    PricingType,
)


LINES = (
    LineItem(description="Charter day", quantity=1, unit_price=1000, tax_rate=7, wht_rate=3),
    LineItem(description="Fuel surcharge", quantity=3, unit_price="33.33", tax_rate=7, wht_rate=0),
)


class TestDocumentTotals:
    def test_exclude_vat(self):
        totals = compute_document_totals(LINES, PricingType.EXCLUDE_VAT)
        assert totals.subtotal == Decimal("1099.99")
        assert totals.tax_amount == Decimal("77.00")
        assert totals.total_amount == Decimal("1176.99")

    def test_total_is_sum_of_rounded_parts(self):
        for pricing in PricingType:
            totals = compute_document_totals(LINES, pricing)
            assert totals.total_amount == totals.subtotal + totals.tax_amount

    def test_no_vat_has_no_tax(self):
        totals = compute_document_totals(LINES, PricingType.NO_VAT)
        assert totals.tax_amount == Decimal("0")
        assert totals.total_amount == totals.subtotal

    def test_empty_lines_yield_zero(self):
        totals = compute_document_totals((), PricingType.INCLUDE_VAT)
        assert totals.subtotal == totals.tax_amount == totals.total_amount == Decimal("0")

    def test_include_vat_gross_preserved(self):
        lines = (LineItem(description="Charter", unit_price=1070, tax_rate=7),)
        totals = compute_document_totals(lines, PricingType.INCLUDE_VAT)
        assert totals.subtotal == Decimal("1000.00")
        assert totals.tax_amount == Decimal("70.00")
        assert totals.total_amount == Decimal("1070.00")

    def test_total_wht(self):
        assert compute_total_wht(LINES, PricingType.EXCLUDE_VAT) == Decimal("30.00")


class TestReceiptSettlement:
    def test_net_amount_to_pay(self):
        assert net_amount_to_pay(Decimal("1070"), Decimal("30")) == Decimal("1040.00")

    def test_add_adjustment_increases_received(self):
        settlement = compute_receipt_settlement(
            [PaymentRecord(amount=1000)], AdjustmentType.ADD, Decimal("40"), Decimal("1040")
        )
        assert settlement.total_payments == Decimal("1000.00")
        assert settlement.total_received == Decimal("1040.00")
        assert settlement.remaining_amount == Decimal("0.00")

    def test_deduct_adjustment_reduces_received(self):
        settlement = compute_receipt_settlement(
            [PaymentRecord(amount=1040)], AdjustmentType.DEDUCT, Decimal("15"), Decimal("1040")
        )
        assert settlement.total_received == Decimal("1025.00")
        assert settlement.remaining_amount == Decimal("15.00")

    def test_overpayment_goes_negative(self):
        settlement = compute_receipt_settlement(
            [PaymentRecord(amount=600), PaymentRecord(amount=500)],
            AdjustmentType.NONE,
            Decimal("0"),
            Decimal("1040"),
        )
        assert settlement.remaining_amount == Decimal("-60.00")


class TestApplyDocumentTotals:
    def test_overwrites_stale_figures(self):
        doc = Document(
            document_type="receipt",
            company_id="c1",
            issue_date=date(2026, 1, 15),
            line_items=LINES[:1],
            payments=(PaymentRecord(amount=1040),),
            subtotal="1",
            total_amount="999999",
        )
        doc = apply_document_totals(doc)
        assert doc.subtotal == Decimal("1000.00")
        assert doc.total_amount == Decimal("1070.00")
        assert doc.wht_amount == Decimal("30.00")
        assert receipt_settlement(doc).remaining_amount == Decimal("0.00")
