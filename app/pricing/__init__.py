"""
Market price resolution

This module provides:
- Price providers for mutual fund NAVs (mfapi.in), crypto spot prices (CoinGecko)
  and equity/bond quotes (Twelve Data)
- A time-bounded price cache and a lazily loaded mutual fund scheme directory
- The price resolver that ties them together, and a pricing service for
  valuing holdings in batches
"""

from .cache import PriceCache
from .directory import DirectoryState, SchemeDirectory
from .models import AssetCategory, Holding, PriceRequest, QuoteResult, QuoteStatus, ResolvedPrice
from .providers import (
    BasePriceProvider,
    MutualFundNavProvider,
    CryptoSpotProvider,
    TwelveDataQuoteProvider
)
from .resolver import PriceResolver
from .service import PricingService, build_pricing_service


__all__ = [
    "AssetCategory",
    "BasePriceProvider",
    "CryptoSpotProvider",
    "DirectoryState",
    "Holding",
    "MutualFundNavProvider",
    "PriceCache",
    "PriceRequest",
    "PriceResolver",
    "PricingService",
    "QuoteResult",
    "QuoteStatus",
    "ResolvedPrice",
    "SchemeDirectory",
    "TwelveDataQuoteProvider",
    "build_pricing_service",
]
