"""
Test configuration and shared fixtures for the pricing test suite.
"""
import os

# Set test environment before importing app modules
os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("LOG_FORMAT", "console")

import pytest
from decimal import Decimal
from typing import Callable, Dict, List, Optional
from unittest.mock import AsyncMock
from faker import Faker

from app.pricing.cache import PriceCache
from app.pricing.directory import SchemeDirectory
from app.pricing.models import (
    AssetCategory,
    Holding,
    PriceSource,
    QuoteResult,
    SchemeRecord,
)
from app.pricing.providers import BasePriceProvider
from app.pricing.resolver import PriceResolver
from app.pricing.service import PricingService


# Configure Faker for consistent test data
fake = Faker()
fake.seed_instance(42)


class FakeClock:
    """Manually advanced monotonic clock"""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


# ============================================================================
# Directory and provider fixtures
# ============================================================================

@pytest.fixture
def scheme_records() -> List[SchemeRecord]:
    """Small scheme catalog in provider order"""
    return [
        SchemeRecord("100027", "Aditya Birla Sun Life Liquid Fund - Growth"),
        SchemeRecord("119551", "Axis Bluechip Fund - Direct Plan - Growth"),
        SchemeRecord("118825", "SBI Small Cap Fund Regular Growth"),
        SchemeRecord("125497", "SBI Small Cap Fund Direct Growth"),
        SchemeRecord("120465", "HDFC Mid-Cap Opportunities Fund - Direct Plan"),
        SchemeRecord("147622", "Parag Parikh Flexi Cap Fund"),
    ]


@pytest.fixture
def scheme_directory(scheme_records) -> SchemeDirectory:
    return SchemeDirectory.from_records(scheme_records)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def make_provider() -> Callable[..., AsyncMock]:
    """Build a provider double whose quote() returns the given result"""

    def _make_provider(result: Optional[QuoteResult] = None, side_effect=None) -> AsyncMock:
        provider = AsyncMock(spec=BasePriceProvider)
        provider.name = "stub"
        if side_effect is not None:
            provider.quote.side_effect = side_effect
        else:
            provider.quote.return_value = result
        return provider

    return _make_provider


@pytest.fixture
def providers(make_provider) -> Dict[AssetCategory, AsyncMock]:
    """One healthy provider double per market-linked category"""
    return {
        AssetCategory.MUTUAL_FUND: make_provider(
            QuoteResult.success(Decimal("152.3411"), quote_date="17-10-2026", canonical_id="118825")
        ),
        AssetCategory.CRYPTO: make_provider(QuoteResult.success(Decimal("5423100.12"))),
        AssetCategory.EQUITY: make_provider(QuoteResult.success(Decimal("2945.50"))),
        AssetCategory.FIXED_INCOME: make_provider(QuoteResult.success(Decimal("101.25"))),
    }


@pytest.fixture
def make_resolver(scheme_directory, clock) -> Callable[..., PriceResolver]:
    def _make_resolver(providers, directory: Optional[SchemeDirectory] = None, timeout_seconds: float = 1.0):
        return PriceResolver(
            cache=PriceCache(ttl_seconds=300, clock=clock),
            directory=directory or scheme_directory,
            providers=providers,
            timeout_seconds=timeout_seconds
        )

    return _make_resolver


@pytest.fixture
def resolver(make_resolver, providers) -> PriceResolver:
    return make_resolver(providers)


@pytest.fixture
def pricing_service(resolver) -> PricingService:
    return PricingService(resolver)


# ============================================================================
# Data Generator Fixtures
# ============================================================================

@pytest.fixture
def holding_generator() -> Callable[..., Holding]:
    """Generate synthetic holdings."""

    def generate_holding(**overrides) -> Holding:
        defaults = {
            "id": fake.uuid4(),
            "name": fake.company(),
            "category": AssetCategory.EQUITY,
            "value": Decimal(str(fake.random_int(min=1000, max=100000))),
            "ticker": fake.lexify("????").upper(),
            "quantity": Decimal(str(fake.random_int(min=1, max=500))),
            "price_source": PriceSource.MANUAL,
        }
        defaults.update(overrides)
        return Holding(**defaults)

    return generate_holding
