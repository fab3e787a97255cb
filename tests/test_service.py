"""
Tests for holding valuation and batch refresh.
"""
import pytest
from datetime import datetime, timezone
from decimal import Decimal

import httpx

from app.core.config import Settings
from app.pricing.models import AssetCategory, PriceSource, QuoteResult, QuoteStatus
from app.pricing.providers import CryptoSpotProvider, MutualFundNavProvider, TwelveDataQuoteProvider
from app.pricing.service import PricingService, build_pricing_service


class TestPriceHolding:

    @pytest.mark.asyncio
    async def test_values_quantity_at_unit_price(self, pricing_service, holding_generator):
        holding = holding_generator(ticker="RELIANCE", quantity=Decimal("10"), value=Decimal("20000"))

        priced = await pricing_service.price_holding(holding)

        assert priced.value == Decimal("29455.00")
        assert priced.price_source == PriceSource.API
        assert priced.last_updated is not None
        assert priced.last_updated.tzinfo is timezone.utc
        assert priced.id == holding.id

    @pytest.mark.asyncio
    async def test_missing_quantity_counts_as_one_unit(self, pricing_service, holding_generator):
        holding = holding_generator(category=AssetCategory.CRYPTO, ticker="bitcoin", quantity=None)

        priced = await pricing_service.price_holding(holding)

        assert priced.value == Decimal("5423100.12")

    @pytest.mark.asyncio
    async def test_fund_name_replaced_by_scheme_code(self, pricing_service, holding_generator):
        holding = holding_generator(
            category=AssetCategory.MUTUAL_FUND,
            ticker="SBI Small Cap",
            quantity=Decimal("100")
        )

        priced = await pricing_service.price_holding(holding)

        assert priced.ticker == "118825"
        assert priced.nav_date == "17-10-2026"
        assert priced.value == Decimal("15234.1100")

    @pytest.mark.asyncio
    async def test_unpriced_holding_is_unchanged(self, make_resolver, make_provider, holding_generator):
        provider = make_provider(QuoteResult.failure(QuoteStatus.MISSING_CREDENTIAL))
        service = PricingService(make_resolver({AssetCategory.EQUITY: provider}))
        holding = holding_generator(ticker="RELIANCE")

        assert await service.price_holding(holding) is holding

    @pytest.mark.asyncio
    async def test_holdings_without_ticker_are_skipped(self, pricing_service, providers, holding_generator):
        no_ticker = holding_generator(ticker=None)
        cash = holding_generator(category=AssetCategory.CASH, ticker="SAVINGS")

        assert await pricing_service.price_holding(no_ticker) is no_ticker
        assert await pricing_service.price_holding(cash) is cash
        assert all(provider.quote.await_count == 0 for provider in providers.values())


class TestQuote:

    @pytest.mark.asyncio
    async def test_non_market_category(self, pricing_service, providers):
        assert await pricing_service.quote("HOUSE", AssetCategory.REAL_ESTATE) is None
        assert all(provider.quote.await_count == 0 for provider in providers.values())

    @pytest.mark.asyncio
    async def test_market_category(self, pricing_service):
        resolved = await pricing_service.quote("bitcoin", AssetCategory.CRYPTO)
        assert resolved.price == Decimal("5423100.12")


class TestRefreshHoldings:

    @pytest.mark.asyncio
    async def test_mixed_batch(self, make_resolver, make_provider, providers, holding_generator):
        providers[AssetCategory.EQUITY] = make_provider(side_effect=RuntimeError("provider exploded"))
        service = PricingService(make_resolver(providers))

        holdings = [
            holding_generator(category=AssetCategory.MUTUAL_FUND, ticker="118825", quantity=Decimal("2")),
            holding_generator(category=AssetCategory.EQUITY, ticker="RELIANCE"),
            holding_generator(category=AssetCategory.CASH, ticker=None, value=Decimal("50000")),
            holding_generator(category=AssetCategory.CRYPTO, ticker="bitcoin", quantity=Decimal("0.5")),
        ]

        summary = await service.refresh_holdings(holdings)

        assert summary.refreshed == 2
        assert summary.unchanged == 2
        assert [holding.id for holding in summary.holdings] == [holding.id for holding in holdings]

        fund, equity, cash, coin = summary.holdings
        assert fund.value == Decimal("304.6822")
        assert fund.price_source == PriceSource.API
        assert equity is holdings[1]
        assert cash is holdings[2]
        assert coin.value == Decimal("2711550.060")

    @pytest.mark.asyncio
    async def test_duplicate_holdings_each_priced(self, pricing_service, holding_generator):
        first = holding_generator(id="dup", ticker="RELIANCE", quantity=Decimal("1"))
        second = holding_generator(id="dup", ticker="RELIANCE", quantity=Decimal("3"))

        summary = await pricing_service.refresh_holdings([first, second])

        assert [holding.value for holding in summary.holdings] == [Decimal("2945.50"), Decimal("8836.50")]

    @pytest.mark.asyncio
    async def test_shared_timestamp(self, pricing_service, holding_generator):
        holdings = [holding_generator(ticker="RELIANCE"), holding_generator(ticker="TCS")]

        summary = await pricing_service.refresh_holdings(holdings)

        timestamps = {holding.last_updated for holding in summary.holdings}
        assert len(timestamps) == 1
        assert isinstance(timestamps.pop(), datetime)


class TestBuildPricingService:

    @pytest.mark.asyncio
    async def test_wiring_from_settings(self):
        settings = Settings(TWELVE_DATA_API_KEY="demo", PRICE_CACHE_TTL_SECONDS=60, PROVIDER_TIMEOUT_SECONDS=3.0)

        async with httpx.AsyncClient() as client:
            service = build_pricing_service(settings, client)

        providers = service.resolver.providers
        assert isinstance(providers[AssetCategory.MUTUAL_FUND], MutualFundNavProvider)
        assert isinstance(providers[AssetCategory.CRYPTO], CryptoSpotProvider)
        assert providers[AssetCategory.EQUITY].default_country == "India"
        assert providers[AssetCategory.FIXED_INCOME].default_country is None
        assert isinstance(providers[AssetCategory.FIXED_INCOME], TwelveDataQuoteProvider)
        assert set(providers) == {
            AssetCategory.MUTUAL_FUND,
            AssetCategory.CRYPTO,
            AssetCategory.EQUITY,
            AssetCategory.FIXED_INCOME,
        }
        assert service.resolver.cache.ttl_seconds == 60
        assert service.resolver.timeout_seconds == 3.0

    @pytest.mark.asyncio
    async def test_equity_without_api_key_makes_no_request(self):
        requests = []

        def handler(request):
            requests.append(request)
            return httpx.Response(200, json={"price": "1"})

        settings = Settings(TWELVE_DATA_API_KEY=None)
        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
            service = build_pricing_service(settings, client)

            assert await service.quote("RELIANCE", AssetCategory.EQUITY) is None
            assert await service.quote("GOLDBEES", AssetCategory.FIXED_INCOME) is None

        assert requests == []

    @pytest.mark.asyncio
    async def test_directory_loads_from_catalog(self):
        def handler(request):
            if request.url.path == "/mf":
                return httpx.Response(200, json=[
                    {"schemeCode": 118825, "schemeName": "SBI Small Cap Fund Regular Growth"},
                ])
            return httpx.Response(200, json={"meta": {}, "data": [{"date": "17-10-2026", "nav": "152.3411"}]})

        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
            service = build_pricing_service(Settings(), client)
            resolved = await service.quote("SBI Small Cap", AssetCategory.MUTUAL_FUND)

        assert resolved.price == Decimal("152.3411")
        assert resolved.resolved_ticker == "118825"
