"""
Typed Exception Hierarchy for the Charter Kernel.

===============================================================================
WHY TYPED EXCEPTIONS
===============================================================================

Callers (form handlers, API adapters, batch jobs) must react to failures
precisely: a validation failure is shown next to the offending field, a
numbering race is retried, a partial write is escalated to an operator.
Parsing message strings for that is fragile, so:

  1. Every error has a TYPED exception class (catch by type, not message)
  2. Every exception has a CODE attribute (machine-readable, API-safe)
  3. Exceptions carry structured DATA (not just a message string)

===============================================================================
EXCEPTION HIERARCHY
===============================================================================

All exceptions inherit from CharterKernelError:

    CharterKernelError (base)
    |
    +-- DocumentValidationError
    |
    +-- LifecycleError
    |   +-- InvalidTransitionError
    |       +-- DocumentVoidedError
    |
    +-- NumberingError
    |   +-- DuplicateDocumentNumberError
    |   +-- NumberingRetriesExhaustedError
    |
    +-- CurrencyError
    |   +-- InvalidCurrencyError
    |   +-- InvalidExchangeRateError
    |
    +-- PersistenceError
    |   +-- DocumentNotFoundError
    |   +-- PartialPersistenceError
    |
    +-- ConfigurationError

===============================================================================
ERROR CODES - QUICK REFERENCE
===============================================================================

Category        | Code                         | When Raised
----------------|------------------------------|---------------------------------------
Validation      | DOCUMENT_VALIDATION_FAILED   | Field-level errors block a save
----------------|------------------------------|---------------------------------------
Lifecycle       | INVALID_TRANSITION           | Status change not allowed for the type
                | DOCUMENT_VOIDED              | Any status change out of void
----------------|------------------------------|---------------------------------------
Numbering       | DUPLICATE_DOCUMENT_NUMBER    | Persistence rejected a taken number
                | NUMBERING_RETRIES_EXHAUSTED  | Collision retry bound reached
----------------|------------------------------|---------------------------------------
Currency        | INVALID_CURRENCY             | Not a valid ISO 4217 code
                | INVALID_EXCHANGE_RATE        | Rate is zero/negative/invalid
----------------|------------------------------|---------------------------------------
Persistence     | DOCUMENT_NOT_FOUND           | Document id unknown to the store
                | PARTIAL_PERSISTENCE          | A save step failed after earlier
                |                              | steps were committed
----------------|------------------------------|---------------------------------------
Configuration   | CONFIGURATION_ERROR          | Config file missing a key / bad value

===============================================================================
HANDLING PATTERNS
===============================================================================

1. VALIDATION ERRORS ARE COLLECTED, NOT FAIL-FAST:

    try:
        await service.save(document, DocumentStatus.PAID)
    except DocumentValidationError as e:
        for field_name, message in e.field_errors.items():
            form.show_error(field_name, message)

2. PARTIAL WRITES ARE NOT ROLLED BACK:

    except PartialPersistenceError as e:
        alert_operator(e.document_id, e.failed_step, e.completed_steps)

3. FX AND LEDGER POSTING FAILURES ARE NOT EXCEPTIONS AT THE SERVICE
   BOUNDARY -- they are reported as warnings on the save result.
"""

from __future__ import annotations

from typing import Mapping, Sequence


class CharterKernelError(Exception):
    """
    Base exception for all charter kernel errors.

    All subclasses must have a `code` class attribute
    for machine-readable error identification.
    """

    code: str = "CHARTER_KERNEL_ERROR"


# Validation


class DocumentValidationError(CharterKernelError):
    """One or more field-level validation errors block the requested save."""

    code: str = "DOCUMENT_VALIDATION_FAILED"

    def __init__(self, field_errors: Mapping[str, str], target_status: str):
        self.field_errors = dict(field_errors)
        self.target_status = target_status
        super().__init__(
            f"Cannot save document as {target_status}: "
            f"{len(self.field_errors)} field error(s) "
            f"({', '.join(sorted(self.field_errors))})"
        )


# Lifecycle


class LifecycleError(CharterKernelError):
    """Base exception for document lifecycle errors."""

    code: str = "LIFECYCLE_ERROR"


class InvalidTransitionError(LifecycleError):
    """The requested status change is not part of the document's workflow."""

    code: str = "INVALID_TRANSITION"

    def __init__(self, document_type: str, from_status: str, to_status: str):
        self.document_type = document_type
        self.from_status = from_status
        self.to_status = to_status
        super().__init__(
            f"{document_type} cannot move from '{from_status}' to '{to_status}'"
        )


class DocumentVoidedError(InvalidTransitionError):
    """The document is void; void is terminal."""

    code: str = "DOCUMENT_VOIDED"

    def __init__(self, document_type: str, to_status: str, document_id: str | None = None):
        self.document_id = document_id
        super().__init__(document_type, "void", to_status)


# Numbering


class NumberingError(CharterKernelError):
    """Base exception for document numbering errors."""

    code: str = "NUMBERING_ERROR"


class DuplicateDocumentNumberError(NumberingError):
    """
    The store already holds an active document with this number.

    Raised by persistence implementations when a concurrent writer won
    the race for a number.
    """

    code: str = "DUPLICATE_DOCUMENT_NUMBER"

    def __init__(self, company_id: str, document_type: str, document_number: str):
        self.company_id = company_id
        self.document_type = document_type
        self.document_number = document_number
        super().__init__(
            f"Document number {document_number} is already used by another "
            f"{document_type} of company {company_id}"
        )


class NumberingRetriesExhaustedError(NumberingError):
    """Every create attempt collided with an existing number."""

    code: str = "NUMBERING_RETRIES_EXHAUSTED"

    def __init__(self, document_type: str, attempts: int, last_number: str | None):
        self.document_type = document_type
        self.attempts = attempts
        self.last_number = last_number
        super().__init__(
            f"{document_type} was not saved: document number still collided "
            f"after {attempts} attempt(s) (last tried {last_number})"
        )


# Currency


class CurrencyError(CharterKernelError):
    """Base exception for currency-related errors."""

    code: str = "CURRENCY_ERROR"


class InvalidCurrencyError(CurrencyError):
    """Currency code is not a valid ISO 4217 code."""

    code: str = "INVALID_CURRENCY"

    def __init__(self, currency: str):
        self.currency = currency
        super().__init__(f"Invalid currency code: {currency}")


class InvalidExchangeRateError(CurrencyError):
    """Exchange rate is zero, negative or not a number."""

    code: str = "INVALID_EXCHANGE_RATE"

    def __init__(self, currency: str, rate: str, reason: str):
        self.currency = currency
        self.rate = rate
        self.reason = reason
        super().__init__(f"Invalid exchange rate {rate} for {currency}: {reason}")


# Persistence


class PersistenceError(CharterKernelError):
    """Base exception for persistence collaborator errors."""

    code: str = "PERSISTENCE_ERROR"


class DocumentNotFoundError(PersistenceError):
    """Document id is unknown to the store."""

    code: str = "DOCUMENT_NOT_FOUND"

    def __init__(self, document_id: str):
        self.document_id = document_id
        super().__init__(f"Document not found: {document_id}")


class PartialPersistenceError(PersistenceError):
    """
    A save step failed after earlier steps were already committed.

    Committed steps are not rolled back.
    """

    code: str = "PARTIAL_PERSISTENCE"

    def __init__(
        self,
        document_id: str | None,
        failed_step: str,
        completed_steps: Sequence[str],
        reason: str,
    ):
        self.document_id = document_id
        self.failed_step = failed_step
        self.completed_steps = tuple(completed_steps)
        self.reason = reason
        super().__init__(
            f"Saving document {document_id} failed at step '{failed_step}' "
            f"after {list(self.completed_steps)} were committed: {reason}"
        )


# Configuration


class ConfigurationError(CharterKernelError):
    """Configuration file is missing a key or holds an invalid value."""

    code: str = "CONFIGURATION_ERROR"

    def __init__(self, key: str, reason: str):
        self.key = key
        self.reason = reason
        super().__init__(f"Invalid configuration at '{key}': {reason}")
