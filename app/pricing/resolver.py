from typing import List, Mapping, Optional, Sequence
import asyncio
import structlog

from app.pricing.cache import PriceCache
from app.pricing.directory import SchemeDirectory
from app.pricing.models import (
    AssetCategory,
    CacheKey,
    PriceRequest,
    QuoteResult,
    QuoteStatus,
    ResolvedPrice,
)
from app.pricing.providers import BasePriceProvider


logger = structlog.get_logger("price_resolver")


def build_cache_key(ticker: str, category: AssetCategory, exchange: Optional[str] = None) -> CacheKey:
    """Normalize a lookup into its cache key"""
    return CacheKey(
        category=category,
        ticker=ticker.strip().upper(),
        exchange=exchange.strip().upper() if exchange else "",
    )


def is_scheme_code(ticker: str) -> bool:
    """mfapi.in scheme codes are plain ASCII digits"""
    return ticker.isascii() and ticker.isdigit()


class PriceResolver:
    """Resolve current unit prices for market-linked assets.

    Lookups go cache first, then to the provider registered for the asset
    category. Every failure (unknown asset, provider error, timeout,
    missing credentials, a nonsensical price) comes back as None; callers
    fall back to manual price entry.

    Concurrent lookups of the same key are not de-duplicated. Both calls hit
    the provider and the later write wins.
    """

    def __init__(
        self,
        cache: PriceCache,
        directory: SchemeDirectory,
        providers: Mapping[AssetCategory, BasePriceProvider],
        timeout_seconds: float = 8.0
    ):
        self.cache = cache
        self.directory = directory
        self.providers = dict(providers)
        self.timeout_seconds = timeout_seconds

    async def resolve(
        self,
        ticker: str,
        category: AssetCategory,
        exchange: Optional[str] = None
    ) -> Optional[ResolvedPrice]:
        """Current price for ticker, or None if no price is available"""

        if not ticker or not ticker.strip():
            return None

        try:
            category = AssetCategory(category)
        except ValueError:
            logger.info("Unknown asset category", ticker=ticker, category=str(category))
            return None

        key = build_cache_key(ticker, category, exchange)

        cached = self.cache.get(key)
        if cached is not None:
            return ResolvedPrice(price=cached.price, quote_date=cached.quote_date)

        try:
            result = await self._fetch(ticker.strip(), key)
        except Exception as e:
            logger.error(
                "Unexpected error resolving price",
                ticker=key.ticker,
                category=category.value,
                error=str(e),
                exc_info=True
            )
            return None

        if result.ok and result.price is not None and result.price <= 0:
            result = QuoteResult.failure(QuoteStatus.MALFORMED, detail=f"non-positive price {result.price}")

        if not result.ok:
            self._log_failure(key, result)
            return None

        self.cache.put(key, result.price, result.quote_date)

        logger.debug(
            "Resolved price",
            ticker=key.ticker,
            category=category.value,
            price=str(result.price),
            quote_date=result.quote_date
        )

        return ResolvedPrice(
            price=result.price,
            quote_date=result.quote_date,
            resolved_ticker=result.canonical_id
        )

    async def resolve_many(self, requests: Sequence[PriceRequest]) -> List[Optional[ResolvedPrice]]:
        """Resolve a batch concurrently; results follow request order"""

        results = await asyncio.gather(
            *(self.resolve(request.ticker, request.category, request.exchange) for request in requests),
            return_exceptions=True
        )

        resolved = []
        for request, result in zip(requests, results):
            if isinstance(result, BaseException):
                logger.error("Batch price resolution failed", ticker=request.ticker, error=str(result))
                resolved.append(None)
            else:
                resolved.append(result)
        return resolved

    async def _fetch(self, query: str, key: CacheKey) -> QuoteResult:
        """Pick the provider for the key's category and call it"""

        provider = self.providers.get(key.category)
        if provider is None:
            return QuoteResult.failure(QuoteStatus.NOT_FOUND, detail="category is not market linked")

        if key.category == AssetCategory.MUTUAL_FUND:
            scheme_code = key.ticker
            if not is_scheme_code(scheme_code):
                # Names are matched against the catalog as the user typed them
                # Giving up on a lookup leaves the shared catalog load running
                try:
                    scheme = await asyncio.wait_for(
                        asyncio.shield(self.directory.find_scheme(query)),
                        timeout=self.timeout_seconds
                    )
                except asyncio.TimeoutError:
                    return QuoteResult.failure(
                        QuoteStatus.TIMEOUT,
                        detail=f"scheme directory did not answer within {self.timeout_seconds}s"
                    )
                if scheme is None:
                    return QuoteResult.failure(QuoteStatus.NOT_FOUND, detail="no scheme matched name")
                scheme_code = scheme.scheme_code
            return await self._call(provider, scheme_code, None)

        return await self._call(provider, key.ticker, key.exchange or None)

    async def _call(self, provider: BasePriceProvider, identifier: str, exchange: Optional[str]) -> QuoteResult:
        try:
            return await asyncio.wait_for(provider.quote(identifier, exchange), timeout=self.timeout_seconds)
        except asyncio.TimeoutError:
            return QuoteResult.failure(
                QuoteStatus.TIMEOUT,
                detail=f"{provider.name} did not answer within {self.timeout_seconds}s"
            )

    def _log_failure(self, key: CacheKey, result: QuoteResult) -> None:
        fields = dict(
            ticker=key.ticker,
            category=key.category.value,
            exchange=key.exchange or None,
            status=result.status.value,
            detail=result.detail,
            http_status=result.http_status,
        )
        if result.status == QuoteStatus.MISSING_CREDENTIAL:
            logger.warning("Price provider not configured", **fields)
        elif result.status == QuoteStatus.NOT_FOUND:
            logger.info("No price found", **fields)
        else:
            logger.warning("Price provider call failed", **fields)
