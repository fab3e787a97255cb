from fastapi import HTTPException, Request, status
import structlog

from app.pricing.service import PricingService


logger = structlog.get_logger("dependencies")


async def get_pricing_service(request: Request) -> PricingService:
    """Pricing service created by the application lifespan"""

    pricing_service = getattr(request.app.state, "pricing_service", None)
    if pricing_service is None:
        logger.error("Pricing service requested before application startup")
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Pricing service is not available"
        )
    return pricing_service
