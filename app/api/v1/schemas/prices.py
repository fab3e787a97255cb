from typing import List, Optional
from pydantic import BaseModel, Field
from datetime import datetime
from decimal import Decimal

from app.pricing.models import AssetCategory, Holding, PriceSource


class QuoteResponse(BaseModel):
    """Unit price lookup response. A null price means manual entry is needed."""
    ticker: str
    category: AssetCategory
    exchange: Optional[str] = None
    price: Optional[Decimal] = None
    quote_date: Optional[str] = None
    resolved_ticker: Optional[str] = None
    price_source: PriceSource = PriceSource.MANUAL


class HoldingSchema(BaseModel):
    """Holding as exchanged with the client"""
    id: str
    name: str
    category: AssetCategory
    value: Decimal = Field(default=Decimal("0"), ge=0)
    ticker: Optional[str] = None
    exchange: Optional[str] = None
    quantity: Optional[Decimal] = Field(default=None, ge=0)
    nav_date: Optional[str] = None
    last_updated: Optional[datetime] = None
    price_source: PriceSource = PriceSource.MANUAL

    def to_holding(self) -> Holding:
        return Holding(
            id=self.id,
            name=self.name,
            category=self.category,
            value=self.value,
            ticker=self.ticker,
            exchange=self.exchange,
            quantity=self.quantity,
            nav_date=self.nav_date,
            last_updated=self.last_updated,
            price_source=self.price_source,
        )

    @classmethod
    def from_holding(cls, holding: Holding) -> "HoldingSchema":
        return cls(
            id=holding.id,
            name=holding.name,
            category=holding.category,
            value=holding.value,
            ticker=holding.ticker,
            exchange=holding.exchange,
            quantity=holding.quantity,
            nav_date=holding.nav_date,
            last_updated=holding.last_updated,
            price_source=holding.price_source,
        )


class RefreshRequest(BaseModel):
    """Batch refresh request"""
    holdings: List[HoldingSchema]


class RefreshResponse(BaseModel):
    """Batch refresh response"""
    holdings: List[HoldingSchema]
    refreshed: int
    unchanged: int
