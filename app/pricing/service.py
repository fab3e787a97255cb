from dataclasses import dataclass
from datetime import datetime, timezone
from typing import List, Optional, Sequence
import httpx
import structlog

from app.core.config import Settings
from app.pricing.cache import PriceCache
from app.pricing.directory import SchemeDirectory
from app.pricing.models import AssetCategory, Holding, PriceRequest, ResolvedPrice
from app.pricing.providers import (
    CryptoSpotProvider,
    MutualFundNavProvider,
    TwelveDataQuoteProvider,
)
from app.pricing.resolver import PriceResolver


logger = structlog.get_logger("pricing_service")


@dataclass(frozen=True)
class RefreshSummary:
    """Result of a batch holdings refresh"""
    holdings: List[Holding]
    refreshed: int
    unchanged: int


class PricingService:
    """Value a user's holdings at current market prices"""

    def __init__(self, resolver: PriceResolver):
        self.resolver = resolver

    async def quote(
        self,
        ticker: str,
        category: AssetCategory,
        exchange: Optional[str] = None
    ) -> Optional[ResolvedPrice]:
        """Current unit price for a single asset, None means enter it manually"""
        try:
            category = AssetCategory(category)
        except ValueError:
            return None
        if not category.is_market_linked:
            return None
        return await self.resolver.resolve(ticker, category, exchange)

    async def price_holding(self, holding: Holding) -> Holding:
        """Return the holding revalued at its current price, or unchanged"""

        if not holding.is_priceable:
            return holding

        resolved = await self.resolver.resolve(holding.ticker, holding.category, holding.exchange)
        if resolved is None:
            return holding

        return holding.with_price(resolved, datetime.now(timezone.utc))

    async def refresh_holdings(self, holdings: Sequence[Holding]) -> RefreshSummary:
        """Revalue every priceable holding concurrently"""

        positions = [index for index, holding in enumerate(holdings) if holding.is_priceable]
        resolved = await self.resolver.resolve_many([
            PriceRequest(
                ticker=holdings[index].ticker,
                category=holdings[index].category,
                exchange=holdings[index].exchange
            )
            for index in positions
        ])

        priced_at = datetime.now(timezone.utc)
        updated = list(holdings)
        refreshed = 0
        for index, price in zip(positions, resolved):
            if price is None:
                continue
            updated[index] = holdings[index].with_price(price, priced_at)
            refreshed += 1

        logger.info(
            "Refreshed holdings",
            holdings_count=len(holdings),
            priceable_count=len(positions),
            refreshed=refreshed
        )

        return RefreshSummary(holdings=updated, refreshed=refreshed, unchanged=len(holdings) - refreshed)


def build_pricing_service(settings: Settings, client: httpx.AsyncClient) -> PricingService:
    """Wire providers, cache and scheme directory into a pricing service"""

    mutual_funds = MutualFundNavProvider(client, settings.MFAPI_BASE_URL)
    crypto = CryptoSpotProvider(client, settings.COINGECKO_BASE_URL, settings.CRYPTO_VS_CURRENCY)
    equities = TwelveDataQuoteProvider(
        client,
        settings.TWELVE_DATA_BASE_URL,
        settings.TWELVE_DATA_API_KEY,
        default_country=settings.DEFAULT_EQUITY_COUNTRY
    )
    bonds = TwelveDataQuoteProvider(client, settings.TWELVE_DATA_BASE_URL, settings.TWELVE_DATA_API_KEY)

    if not settings.TWELVE_DATA_API_KEY:
        logger.warning("TWELVE_DATA_API_KEY not set, equity and fixed income prices disabled")

    resolver = PriceResolver(
        cache=PriceCache(ttl_seconds=settings.PRICE_CACHE_TTL_SECONDS),
        directory=SchemeDirectory(
            mutual_funds.list_schemes,
            load_timeout_seconds=settings.PROVIDER_TIMEOUT_SECONDS
        ),
        providers={
            AssetCategory.MUTUAL_FUND: mutual_funds,
            AssetCategory.CRYPTO: crypto,
            AssetCategory.EQUITY: equities,
            AssetCategory.FIXED_INCOME: bonds,
        },
        timeout_seconds=settings.PROVIDER_TIMEOUT_SECONDS
    )
    return PricingService(resolver)


def create_http_client(settings: Settings) -> httpx.AsyncClient:
    """Shared HTTP client for all providers"""
    return httpx.AsyncClient(
        timeout=httpx.Timeout(settings.PROVIDER_TIMEOUT_SECONDS),
        headers={"Accept": "application/json", "User-Agent": f"{settings.APP_NAME}/{settings.APP_VERSION}"},
        follow_redirects=True,
    )
