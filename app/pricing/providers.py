from abc import ABC, abstractmethod
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, List, Optional, Tuple
import httpx
import structlog

from app.pricing.models import QuoteResult, QuoteStatus, SchemeRecord


logger = structlog.get_logger("pricing")


def parse_price(value: Any) -> Optional[Decimal]:
    """Parse a provider price field that may arrive as a string or a number"""
    if value is None or isinstance(value, bool):
        return None
    try:
        price = Decimal(str(value).strip())
    except (InvalidOperation, ValueError):
        return None
    if not price.is_finite():
        return None
    return price


class BasePriceProvider(ABC):
    """Abstract base class for price providers"""

    name = "base"

    def __init__(self, client: httpx.AsyncClient, base_url: str):
        self.client = client
        self.base_url = base_url.rstrip("/")

    @abstractmethod
    async def quote(self, identifier: str, exchange: Optional[str] = None) -> QuoteResult:
        """Get the current unit price for a normalized identifier"""
        pass

    async def _get_json(
        self,
        path: str,
        params: Optional[Dict[str, str]] = None
    ) -> Tuple[Any, Optional[QuoteResult]]:
        """GET a JSON document, mapping transport problems to a failed QuoteResult"""

        url = f"{self.base_url}{path}"
        try:
            response = await self.client.get(url, params=params)
        except httpx.TimeoutException as e:
            return None, QuoteResult.failure(QuoteStatus.TIMEOUT, detail=str(e) or "request timed out")
        except httpx.HTTPError as e:
            return None, QuoteResult.failure(QuoteStatus.NETWORK_ERROR, detail=str(e))

        if not response.is_success:
            return None, QuoteResult.failure(
                QuoteStatus.HTTP_ERROR,
                detail=response.reason_phrase,
                http_status=response.status_code
            )

        try:
            return response.json(), None
        except ValueError as e:
            return None, QuoteResult.failure(QuoteStatus.MALFORMED, detail=f"invalid JSON: {e}")


class MutualFundNavProvider(BasePriceProvider):
    """Mutual fund NAV provider backed by mfapi.in"""

    name = "mfapi"

    async def quote(self, identifier: str, exchange: Optional[str] = None) -> QuoteResult:
        """Latest NAV for a scheme code"""

        payload, failure = await self._get_json(f"/mf/{identifier}")
        if failure:
            return failure

        series = payload.get("data") if isinstance(payload, dict) else None
        if not series:
            return QuoteResult.failure(QuoteStatus.NOT_FOUND, detail=f"no NAV history for scheme {identifier}")

        # Series is ordered most recent first
        latest = series[0]
        if not isinstance(latest, dict):
            return QuoteResult.failure(QuoteStatus.MALFORMED, detail="NAV entry is not an object")

        nav = parse_price(latest.get("nav"))
        if nav is None:
            return QuoteResult.failure(QuoteStatus.MALFORMED, detail=f"non-numeric NAV {latest.get('nav')!r}")

        return QuoteResult.success(nav, quote_date=latest.get("date"), canonical_id=identifier)

    async def list_schemes(self) -> List[SchemeRecord]:
        """Fetch the full scheme catalog, in provider order.

        Raises on transport or shape errors; the scheme directory decides
        what a failed load means.
        """
        response = await self.client.get(f"{self.base_url}/mf")
        response.raise_for_status()
        payload = response.json()
        if not isinstance(payload, list):
            raise ValueError("scheme catalog is not a list")

        records = []
        for item in payload:
            if not isinstance(item, dict):
                continue
            code = item.get("schemeCode")
            name = item.get("schemeName")
            if code is None or not name:
                continue
            records.append(SchemeRecord(scheme_code=str(code), scheme_name=str(name)))

        return records


class CryptoSpotProvider(BasePriceProvider):
    """Crypto spot price provider backed by CoinGecko"""

    name = "coingecko"

    def __init__(self, client: httpx.AsyncClient, base_url: str, vs_currency: str = "inr"):
        super().__init__(client, base_url)
        self.vs_currency = vs_currency.lower()

    async def quote(self, identifier: str, exchange: Optional[str] = None) -> QuoteResult:
        """Spot price for a CoinGecko coin id"""

        coin_id = identifier.lower()
        payload, failure = await self._get_json(
            "/simple/price",
            params={"ids": coin_id, "vs_currencies": self.vs_currency}
        )
        if failure:
            return failure

        prices = payload.get(coin_id) if isinstance(payload, dict) else None
        if not isinstance(prices, dict) or prices.get(self.vs_currency) is None:
            return QuoteResult.failure(
                QuoteStatus.NOT_FOUND,
                detail=f"no {self.vs_currency} price for {coin_id}"
            )

        price = parse_price(prices[self.vs_currency])
        if price is None:
            return QuoteResult.failure(QuoteStatus.MALFORMED, detail=f"non-numeric price {prices[self.vs_currency]!r}")

        return QuoteResult.success(price)


class TwelveDataQuoteProvider(BasePriceProvider):
    """Equity and bond quote provider backed by Twelve Data.

    When no exchange is given, default_country (if set) narrows the symbol
    search. The equity instance sets it; the fixed income instance does not.
    """

    name = "twelvedata"

    def __init__(
        self,
        client: httpx.AsyncClient,
        base_url: str,
        api_key: Optional[str],
        default_country: Optional[str] = None
    ):
        super().__init__(client, base_url)
        self.api_key = api_key
        self.default_country = default_country

    async def quote(self, identifier: str, exchange: Optional[str] = None) -> QuoteResult:
        """Latest price for a ticker symbol"""

        if not self.api_key:
            logger.warning("Twelve Data API key missing", symbol=identifier)
            return QuoteResult.failure(QuoteStatus.MISSING_CREDENTIAL, detail="TWELVE_DATA_API_KEY is not set")

        params = {"symbol": identifier, "apikey": self.api_key}
        if exchange:
            params["exchange"] = exchange
        elif self.default_country:
            params["country"] = self.default_country

        payload, failure = await self._get_json("/price", params=params)
        if failure:
            return failure

        if not isinstance(payload, dict):
            return QuoteResult.failure(QuoteStatus.MALFORMED, detail="quote payload is not an object")

        # Errors come back with HTTP 200 and a status field
        if payload.get("status") == "error":
            return QuoteResult.failure(
                QuoteStatus.NOT_FOUND,
                detail=payload.get("message"),
                http_status=payload.get("code")
            )

        price = parse_price(payload.get("price"))
        if price is None:
            return QuoteResult.failure(QuoteStatus.MALFORMED, detail=f"unparseable price {payload.get('price')!r}")

        return QuoteResult.success(price)
