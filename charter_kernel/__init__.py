"""
Charter Kernel - document calculation and lifecycle core.

A pure-computation core for the charter back office's income documents
(invoices, receipts, credit notes, debit notes):
- Decimal-only VAT and withholding-tax arithmetic
- A small, irreversible document lifecycle (draft -> issued/paid -> void)
- Company-scoped document numbering with recycling of voided numbers
- Multi-currency documents carrying a save-time exchange rate
"""

__version__ = "0.1.0"
