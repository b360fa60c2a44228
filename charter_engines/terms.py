"""Due dates from invoice payment terms."""

from datetime import date, timedelta

from charter_kernel.domain.documents import PaymentTerms

TERM_DAYS: dict[PaymentTerms, int] = {
    PaymentTerms.DUE_ON_RECEIPT: 0,
    PaymentTerms.NET_15: 15,
    PaymentTerms.NET_30: 30,
    PaymentTerms.NET_60: 60,
}


def calculate_due_date(
    invoice_date: date,
    terms: PaymentTerms,
    custom_due_date: date | None = None,
) -> date:
    """Due date for ``terms``; ``custom`` keeps the given date (or the invoice date)."""
    terms = PaymentTerms(terms)
    if terms is PaymentTerms.CUSTOM:
        return custom_due_date or invoice_date
    return invoice_date + timedelta(days=TERM_DAYS[terms])
