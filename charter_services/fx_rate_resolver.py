"""
FxRateResolver -- attaches a base-currency exchange rate at save time.

Responsibility:
    Given a currency and a document date, obtain a rate to the base
    currency.  Providers are consulted in precedence order (``bot`` ->
    ``api`` -> ``fallback``); the first usable quote wins and is cached
    per (currency, date).  A manual override for a (currency, date) wins
    over both the cache and the providers.

Architecture position:
    Services layer -- async I/O through ``FxRateProvider`` collaborators.

Invariants enforced:
    - The base currency never carries a rate.
    - Dates after today are resolved at today's rate.
    - Quotes with a rate <= 0 are discarded.

Failure modes:
    - InvalidCurrencyError for a code that is not ISO 4217.
    - Provider exceptions are logged at WARNING and the next provider is
      tried.  When nobody answers the resolver returns ``None``; it never
      raises for a missing rate.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import date
from decimal import Decimal
from typing import Mapping, Sequence

from charter_kernel.domain.clock import Clock, SystemClock
from charter_kernel.domain.currency import CurrencyRegistry
from charter_kernel.domain.documents import Document, FxRateSource, as_decimal
from charter_kernel.exceptions import InvalidCurrencyError, InvalidExchangeRateError
from charter_kernel.logging_config import get_logger
from charter_services.contracts import FxQuote, FxRateProvider

logger = get_logger("services.fx_rate_resolver")

SOURCE_PRECEDENCE = (FxRateSource.BOT, FxRateSource.API, FxRateSource.FALLBACK)

FX_RATE_UNAVAILABLE = "fx_rate_unavailable"


class StaticFxRateProvider:
    """Provider backed by a fixed table (the ``fallback`` source by default)."""

    def __init__(
        self,
        rates: Mapping[str, Decimal | str],
        source: FxRateSource = FxRateSource.FALLBACK,
    ):
        self.source = source
        self._rates = {code.upper(): as_decimal(rate) for code, rate in rates.items()}

    async def get_rate(self, currency: str, as_of: date) -> FxQuote | None:
        rate = self._rates.get(currency)
        if rate is None:
            return None
        return FxQuote(currency=currency, rate=rate, source=self.source, rate_date=as_of)


@dataclass(frozen=True)
class FxApplication:
    document: Document
    quote: FxQuote | None
    warning: str | None = None


class FxRateResolver:
    """Resolves rates through a provider chain with cache and manual override."""

    def __init__(
        self,
        providers: Sequence[FxRateProvider] = (),
        *,
        base_currency: str = "THB",
        clock: Clock | None = None,
    ):
        self._base_currency = CurrencyRegistry.validate(base_currency)
        self._clock = clock or SystemClock()
        rank = {source: i for i, source in enumerate(SOURCE_PRECEDENCE)}
        self._providers = sorted(
            providers, key=lambda p: rank.get(FxRateSource(p.source), len(rank))
        )
        self._cache: dict[tuple[str, date], FxQuote] = {}
        self._manual: dict[tuple[str, date], FxQuote] = {}

    @property
    def base_currency(self) -> str:
        return self._base_currency

    def _normalize(self, currency: str) -> str:
        if not CurrencyRegistry.is_valid(currency):
            raise InvalidCurrencyError(str(currency))
        return currency.upper().strip()

    def _effective_date(self, as_of: date) -> date:
        today = self._clock.today()
        return today if as_of > today else as_of

    def set_manual_rate(self, currency: str, as_of: date, rate: Decimal | str) -> FxQuote:
        """Pin a rate entered by the user; it wins over cache and providers."""
        code = self._normalize(currency)
        value = as_decimal(rate, "rate")
        if value <= 0:
            raise InvalidExchangeRateError(code, str(value), "rate must be greater than zero")
        effective = self._effective_date(as_of)
        quote = FxQuote(code, value, FxRateSource.MANUAL, effective)
        self._manual[(code, effective)] = quote
        logger.info(
            "fx_manual_rate_set",
            extra={"currency": code, "rate_date": effective, "rate": str(value)},
        )
        return quote

    def clear_manual_rate(self, currency: str, as_of: date) -> None:
        self._manual.pop((self._normalize(currency), self._effective_date(as_of)), None)

    async def resolve(self, currency: str, as_of: date) -> FxQuote | None:
        """Rate for ``currency`` on ``as_of``; None for the base currency or when unavailable."""
        code = self._normalize(currency)
        if code == self._base_currency:
            return None

        effective = self._effective_date(as_of)
        key = (code, effective)

        manual = self._manual.get(key)
        if manual is not None:
            return manual

        cached = self._cache.get(key)
        if cached is not None:
            logger.debug("fx_rate_cache_hit", extra={"currency": code, "rate_date": effective})
            return cached

        for provider in self._providers:
            try:
                quote = await provider.get_rate(code, effective)
            except Exception as exc:  # noqa: BLE001
                logger.warning(
                    "fx_provider_failed",
                    extra={
                        "currency": code,
                        "rate_date": effective,
                        "source": FxRateSource(provider.source).value,
                        "error": str(exc),
                    },
                )
                continue
            if quote is None:
                continue
            if quote.rate <= 0:
                logger.warning(
                    "fx_rate_rejected",
                    extra={"currency": code, "source": quote.source, "rate": str(quote.rate)},
                )
                continue

            self._cache[key] = quote
            logger.info(
                "fx_rate_resolved",
                extra={
                    "currency": code,
                    "rate_date": quote.rate_date,
                    "source": quote.source,
                    "rate": str(quote.rate),
                },
            )
            return quote

        logger.warning(
            FX_RATE_UNAVAILABLE,
            extra={"currency": code, "rate_date": effective, "providers": len(self._providers)},
        )
        return None

    async def apply_to(self, document: Document) -> FxApplication:
        """Attach (or clear) the document's rate for its currency and date.

        A manual rate already on the document is kept.  Any other rate is
        resolved again for the current currency and date; the per-(currency,
        date) cache keeps repeated saves on the same quote.
        """
        if document.currency == self._base_currency:
            cleared = replace(document, fx_rate=None, fx_rate_source=None, fx_rate_date=None)
            return FxApplication(cleared, None)

        if document.fx_rate_source is FxRateSource.MANUAL and document.fx_rate is not None:
            if document.fx_rate <= 0:
                raise InvalidExchangeRateError(
                    document.currency, str(document.fx_rate), "rate must be greater than zero"
                )
            return FxApplication(document, None)

        as_of = document.issue_date or self._clock.today()
        effective = self._effective_date(as_of)
        quote = await self.resolve(document.currency, as_of)
        if quote is None:
            cleared = replace(document, fx_rate=None, fx_rate_source=None, fx_rate_date=None)
            return FxApplication(
                cleared,
                None,
                f"No exchange rate for {document.currency} on {effective}; enter the rate manually",
            )

        return FxApplication(
            replace(
                document,
                fx_rate=quote.rate,
                fx_rate_source=quote.source,
                fx_rate_date=quote.rate_date,
            ),
            quote,
        )
