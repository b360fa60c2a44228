from datetime import date

import pytest

from charter_engines.terms import calculate_due_date
from charter_kernel.domain.documents import PaymentTerms


@pytest.mark.parametrize(
    "terms, expected",
    [
        (PaymentTerms.DUE_ON_RECEIPT, date(2026, 1, 15)),
        (PaymentTerms.NET_15, date(2026, 1, 30)),
        (PaymentTerms.NET_30, date(2026, 2, 14)),
        ("net_60", date(2026, 3, 16)),
    ],
)
def test_standard_terms(terms, expected):
    assert calculate_due_date(date(2026, 1, 15), terms) == expected


def test_custom_keeps_given_date():
    assert calculate_due_date(date(2026, 1, 15), PaymentTerms.CUSTOM, date(2026, 4, 1)) == date(2026, 4, 1)


def test_custom_without_date_falls_back_to_invoice_date():
    assert calculate_due_date(date(2026, 1, 15), PaymentTerms.CUSTOM) == date(2026, 1, 15)
