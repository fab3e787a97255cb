from celery import Celery
from celery.signals import worker_process_shutdown
from typing import Any, Dict, List, Optional
import asyncio
import httpx

from app.core.config import settings
from app.core.logging import get_logger
from app.api.v1.schemas.prices import HoldingSchema, RefreshResponse
from app.pricing.service import PricingService, build_pricing_service, create_http_client


# Create Celery app
celery_app = Celery(
    "pricing_worker",
    broker=settings.REDIS_URL,
    backend=settings.REDIS_URL,
    include=["app.pricing.tasks"]
)

# Configure Celery
celery_app.conf.update(
    timezone="Asia/Kolkata",
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    task_track_started=True,
    result_expires=3600,
)

logger = get_logger("pricing_tasks")


class WorkerPricing:
    """Event loop and pricing service kept for the life of a worker process.

    The HTTP client, price cache and scheme directory are bound to one
    loop, so every task run reuses that loop instead of starting a new one
    with asyncio.run. The catalog is then downloaded once per process and
    cached prices carry over between runs.
    """

    def __init__(self):
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._client: Optional[httpx.AsyncClient] = None
        self._pricing_service: Optional[PricingService] = None

    @property
    def pricing_service(self) -> PricingService:
        if self._pricing_service is None:
            self._client = create_http_client(settings)
            self._pricing_service = build_pricing_service(settings, self._client)
        return self._pricing_service

    def run(self, holdings: List[Dict[str, Any]]) -> Dict[str, Any]:
        if self._loop is None or self._loop.is_closed():
            self._loop = asyncio.new_event_loop()
        return self._loop.run_until_complete(self._refresh(holdings))

    async def _refresh(self, holdings: List[Dict[str, Any]]) -> Dict[str, Any]:
        return await refresh_holdings_payload(holdings, self.pricing_service)

    def close(self) -> None:
        """Close the client and the loop; the next run starts afresh"""
        loop, client = self._loop, self._client
        self._loop = self._client = self._pricing_service = None

        if loop is None or loop.is_closed():
            return
        try:
            if client is not None:
                loop.run_until_complete(client.aclose())
        finally:
            loop.close()


worker_pricing = WorkerPricing()


@worker_process_shutdown.connect
def close_worker_pricing(**kwargs):
    worker_pricing.close()


async def refresh_holdings_payload(
    holdings: List[Dict[str, Any]],
    pricing_service: PricingService
) -> Dict[str, Any]:
    """Refresh a JSON batch of holdings and return the JSON response body"""

    parsed = [HoldingSchema.model_validate(item).to_holding() for item in holdings]
    summary = await pricing_service.refresh_holdings(parsed)

    response = RefreshResponse(
        holdings=[HoldingSchema.from_holding(holding) for holding in summary.holdings],
        refreshed=summary.refreshed,
        unchanged=summary.unchanged
    )
    return response.model_dump(mode="json")


@celery_app.task(bind=True)
def refresh_holdings_task(self, holdings: List[Dict[str, Any]]):
    """Celery task to revalue a batch of holdings"""

    try:
        result = worker_pricing.run(holdings)
    except Exception as e:
        logger.error(
            "Holdings refresh failed",
            task_id=self.request.id,
            error=str(e)
        )
        raise

    logger.info(
        "Holdings refresh completed",
        task_id=self.request.id,
        refreshed=result["refreshed"],
        unchanged=result["unchanged"]
    )
    return result
