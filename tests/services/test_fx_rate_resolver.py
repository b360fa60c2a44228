"""FX rate resolution: provider precedence, caching, overrides and fallbacks."""

import asyncio
from dataclasses import replace
from datetime import date
from decimal import Decimal

import pytest

from charter_kernel.domain.documents import FxRateSource
from charter_kernel.exceptions import InvalidCurrencyError, InvalidExchangeRateError
from charter_services.fx_rate_resolver import FxRateResolver, StaticFxRateProvider
from tests.factories import make_document
from tests.fakes import FakeFxProvider

TODAY = date(2026, 1, 15)


def _resolver(clock, *providers) -> FxRateResolver:
    return FxRateResolver(providers, base_currency="THB", clock=clock)


class TestResolve:
    def test_base_currency_has_no_rate(self, clock):
        bot = FakeFxProvider(FxRateSource.BOT, {"USD": "34.10"})
        assert asyncio.run(_resolver(clock, bot).resolve("thb", TODAY)) is None
        assert bot.calls == []

    def test_precedence_is_bot_then_api_then_fallback(self, clock):
        fallback = FakeFxProvider(FxRateSource.FALLBACK, {"USD": "35"})
        api = FakeFxProvider(FxRateSource.API, {"USD": "34.50"})
        bot = FakeFxProvider(FxRateSource.BOT, {"USD": "34.10"})
        quote = asyncio.run(_resolver(clock, fallback, api, bot).resolve("USD", TODAY))
        assert (quote.rate, quote.source) == (Decimal("34.10"), FxRateSource.BOT)
        assert api.calls == [] and fallback.calls == []

    def test_failed_provider_falls_through(self, clock, captured_logs):
        bot = FakeFxProvider(FxRateSource.BOT, fail=True)
        api = FakeFxProvider(FxRateSource.API, {"EUR": "37.20"})
        quote = asyncio.run(_resolver(clock, bot, api).resolve("EUR", TODAY))
        assert quote.source is FxRateSource.API
        assert any(r["message"] == "fx_provider_failed" for r in captured_logs())

    def test_non_positive_quote_skipped(self, clock):
        bot = FakeFxProvider(FxRateSource.BOT, {"USD": "0"})
        fallback = StaticFxRateProvider({"usd": "35"})
        quote = asyncio.run(_resolver(clock, bot, fallback).resolve("USD", TODAY))
        assert quote.source is FxRateSource.FALLBACK

    def test_unavailable_returns_none(self, clock, captured_logs):
        bot = FakeFxProvider(FxRateSource.BOT, {})
        assert asyncio.run(_resolver(clock, bot).resolve("GBP", TODAY)) is None
        assert any(r["message"] == "fx_rate_unavailable" for r in captured_logs())

    def test_cached_per_currency_and_date(self, clock):
        bot = FakeFxProvider(FxRateSource.BOT, {"USD": "34.10"})
        resolver = _resolver(clock, bot)

        async def scenario():
            await resolver.resolve("USD", TODAY)
            await resolver.resolve("USD", TODAY)
            await resolver.resolve("USD", date(2026, 1, 14))

        asyncio.run(scenario())
        assert bot.calls == [("USD", TODAY), ("USD", date(2026, 1, 14))]

    def test_future_date_uses_today(self, clock):
        bot = FakeFxProvider(FxRateSource.BOT, {"USD": "34.10"})
        quote = asyncio.run(_resolver(clock, bot).resolve("USD", date(2026, 6, 1)))
        assert quote.rate_date == TODAY

    def test_manual_override_wins(self, clock):
        bot = FakeFxProvider(FxRateSource.BOT, {"USD": "34.10"})
        resolver = _resolver(clock, bot)
        resolver.set_manual_rate("USD", TODAY, "33.95")
        quote = asyncio.run(resolver.resolve("USD", TODAY))
        assert (quote.rate, quote.source) == (Decimal("33.95"), FxRateSource.MANUAL)

        resolver.clear_manual_rate("USD", TODAY)
        assert asyncio.run(resolver.resolve("USD", TODAY)).source is FxRateSource.BOT

    def test_manual_rate_must_be_positive(self, clock):
        with pytest.raises(InvalidExchangeRateError):
            _resolver(clock).set_manual_rate("USD", TODAY, "-1")

    def test_invalid_currency(self, clock):
        with pytest.raises(InvalidCurrencyError):
            asyncio.run(_resolver(clock).resolve("DOGE", TODAY))


class TestApplyToDocument:
    def test_base_currency_document_cleared(self, clock):
        doc = make_document(fx_rate="1.5", fx_rate_source="api", fx_rate_date=TODAY)
        applied = asyncio.run(_resolver(clock).apply_to(doc))
        assert applied.document.fx_rate is None
        assert applied.document.fx_rate_source is None
        assert applied.warning is None

    def test_rate_attached(self, clock):
        bot = FakeFxProvider(FxRateSource.BOT, {"USD": "34.10"})
        applied = asyncio.run(_resolver(clock, bot).apply_to(make_document(currency="USD")))
        doc = applied.document
        assert (doc.fx_rate, doc.fx_rate_source, doc.fx_rate_date) == (
            Decimal("34.10"), FxRateSource.BOT, TODAY,
        )

    def test_manual_rate_on_document_kept(self, clock):
        bot = FakeFxProvider(FxRateSource.BOT, {"USD": "34.10"})
        doc = make_document(currency="USD", fx_rate="33", fx_rate_source="manual")
        applied = asyncio.run(_resolver(clock, bot).apply_to(doc))
        assert applied.document.fx_rate == Decimal("33")
        assert bot.calls == []

    def test_currency_change_re_resolves(self, clock):
        bot = FakeFxProvider(FxRateSource.BOT, {"USD": "35", "EUR": "38"})
        resolver = _resolver(clock, bot)
        usd = asyncio.run(resolver.apply_to(make_document(currency="USD"))).document
        eur = asyncio.run(resolver.apply_to(replace(usd, currency="EUR"))).document
        assert (eur.fx_rate, eur.fx_rate_source, eur.fx_rate_date) == (
            Decimal("38"), FxRateSource.BOT, TODAY,
        )

    def test_resave_uses_cached_quote(self, clock):
        bot = FakeFxProvider(FxRateSource.BOT, {"USD": "34.10"})
        resolver = _resolver(clock, bot)
        first = asyncio.run(resolver.apply_to(make_document(currency="USD"))).document
        bot.rates["USD"] = Decimal("34.99")
        again = asyncio.run(resolver.apply_to(first)).document
        assert again.fx_rate == Decimal("34.10")
        assert len(bot.calls) == 1

    def test_date_change_re_resolves(self, clock):
        bot = FakeFxProvider(FxRateSource.BOT, {"USD": "34.99"})
        doc = make_document(
            currency="USD", fx_rate="34.10", fx_rate_source="bot", fx_rate_date=date(2026, 1, 2)
        )
        applied = asyncio.run(_resolver(clock, bot).apply_to(doc))
        assert applied.document.fx_rate == Decimal("34.99")

    def test_missing_rate_becomes_warning(self, clock):
        doc = make_document(currency="SGD", fx_rate="25", fx_rate_source="api", fx_rate_date=date(2026, 1, 1))
        applied = asyncio.run(_resolver(clock).apply_to(doc))
        assert applied.document.fx_rate is None
        assert "SGD" in applied.warning
