from typing import Optional
from fastapi import APIRouter, Depends, HTTPException, Query, status
import structlog

from app.api.dependencies import get_pricing_service
from app.api.v1.schemas.prices import (
    HoldingSchema,
    QuoteResponse,
    RefreshRequest,
    RefreshResponse
)
from app.pricing.models import AssetCategory, PriceSource
from app.pricing.service import PricingService


router = APIRouter()
logger = structlog.get_logger("prices_api")


@router.get("/quote", response_model=QuoteResponse)
async def get_quote(
    ticker: str = Query(..., min_length=1, description="Ticker, scheme code/name or coin id"),
    category: AssetCategory = Query(...),
    exchange: Optional[str] = Query(None, description="Exchange hint, e.g. NSE"),
    pricing_service: PricingService = Depends(get_pricing_service)
) -> QuoteResponse:
    """Get the current unit price of an asset"""

    try:
        resolved = await pricing_service.quote(ticker, category, exchange)
    except Exception as e:
        logger.error("Error resolving quote", ticker=ticker, category=category.value, error=str(e))
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to resolve price"
        )

    if resolved is None:
        return QuoteResponse(ticker=ticker, category=category, exchange=exchange)

    return QuoteResponse(
        ticker=ticker,
        category=category,
        exchange=exchange,
        price=resolved.price,
        quote_date=resolved.quote_date,
        resolved_ticker=resolved.resolved_ticker,
        price_source=PriceSource.API
    )


@router.post("/refresh", response_model=RefreshResponse)
async def refresh_prices(
    request: RefreshRequest,
    pricing_service: PricingService = Depends(get_pricing_service)
) -> RefreshResponse:
    """Revalue holdings at current market prices"""

    try:
        summary = await pricing_service.refresh_holdings(
            [holding.to_holding() for holding in request.holdings]
        )
    except Exception as e:
        logger.error("Error refreshing holdings", holdings_count=len(request.holdings), error=str(e))
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to refresh prices"
        )

    return RefreshResponse(
        holdings=[HoldingSchema.from_holding(holding) for holding in summary.holdings],
        refreshed=summary.refreshed,
        unchanged=summary.unchanged
    )
