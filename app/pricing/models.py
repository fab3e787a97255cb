from dataclasses import dataclass, replace
from datetime import datetime
from decimal import Decimal
from typing import NamedTuple, Optional
import enum


class AssetCategory(str, enum.Enum):
    """Asset category enumeration"""
    EQUITY = "equity"
    MUTUAL_FUND = "mutual_fund"
    FIXED_INCOME = "fixed_income"
    CRYPTO = "crypto"
    CASH = "cash"
    REAL_ESTATE = "real_estate"
    VEHICLES = "vehicles"
    OTHER = "other"

    @property
    def is_market_linked(self) -> bool:
        return self in MARKET_LINKED_CATEGORIES


MARKET_LINKED_CATEGORIES = frozenset({
    AssetCategory.EQUITY,
    AssetCategory.MUTUAL_FUND,
    AssetCategory.FIXED_INCOME,
    AssetCategory.CRYPTO,
})


class PriceSource(str, enum.Enum):
    """Where a holding's current value came from"""
    MANUAL = "manual"
    API = "api"


class QuoteStatus(str, enum.Enum):
    """Outcome of a single provider call"""
    OK = "ok"
    NOT_FOUND = "not_found"
    MALFORMED = "malformed"
    HTTP_ERROR = "http_error"
    NETWORK_ERROR = "network_error"
    TIMEOUT = "timeout"
    MISSING_CREDENTIAL = "missing_credential"


class CacheKey(NamedTuple):
    """Price cache key. Only these three fields identify a cached price."""
    category: AssetCategory
    ticker: str
    exchange: str


@dataclass(frozen=True)
class CacheEntry:
    """Last resolved price for a cache key"""
    price: Decimal
    as_of: float
    quote_date: Optional[str] = None


@dataclass(frozen=True)
class SchemeRecord:
    """Mutual fund scheme as listed by the catalog endpoint"""
    scheme_code: str
    scheme_name: str


@dataclass(frozen=True)
class QuoteResult:
    """Normalized provider response.

    Successful results carry the price and whatever the provider told us
    about it; failed results carry the cause so it can be logged before the
    resolver collapses everything into "no price".
    """
    status: QuoteStatus
    price: Optional[Decimal] = None
    quote_date: Optional[str] = None
    canonical_id: Optional[str] = None
    http_status: Optional[int] = None
    detail: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.status == QuoteStatus.OK

    @classmethod
    def success(
        cls,
        price: Decimal,
        quote_date: Optional[str] = None,
        canonical_id: Optional[str] = None
    ) -> "QuoteResult":
        return cls(QuoteStatus.OK, price=price, quote_date=quote_date, canonical_id=canonical_id)

    @classmethod
    def failure(
        cls,
        status: QuoteStatus,
        detail: Optional[str] = None,
        http_status: Optional[int] = None
    ) -> "QuoteResult":
        return cls(status, http_status=http_status, detail=detail)


@dataclass(frozen=True)
class ResolvedPrice:
    """Price returned to callers of the resolver"""
    price: Decimal
    quote_date: Optional[str] = None
    resolved_ticker: Optional[str] = None


@dataclass(frozen=True)
class PriceRequest:
    """One entry of a batch resolution"""
    ticker: str
    category: AssetCategory
    exchange: Optional[str] = None


@dataclass(frozen=True)
class Holding:
    """A user's asset as supplied by the caller.

    The profile itself is owned and persisted elsewhere; the pricing
    service only returns updated copies.
    """
    id: str
    name: str
    category: AssetCategory
    value: Decimal
    ticker: Optional[str] = None
    exchange: Optional[str] = None
    quantity: Optional[Decimal] = None
    nav_date: Optional[str] = None
    last_updated: Optional[datetime] = None
    price_source: PriceSource = PriceSource.MANUAL

    @property
    def is_priceable(self) -> bool:
        return bool(self.ticker and self.ticker.strip()) and self.category.is_market_linked

    def with_price(self, resolved: ResolvedPrice, priced_at: datetime) -> "Holding":
        """Copy of this holding valued at the resolved unit price"""
        units = self.quantity if self.quantity else Decimal("1")
        return replace(
            self,
            value=resolved.price * units,
            ticker=resolved.resolved_ticker or self.ticker,
            nav_date=resolved.quote_date,
            last_updated=priced_at,
            price_source=PriceSource.API,
        )
