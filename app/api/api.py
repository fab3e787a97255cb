from fastapi import APIRouter
from app.api.v1.endpoints import prices

# Create API v1 router
api_router = APIRouter()

# Include all endpoint routers
api_router.include_router(prices.router, prefix="/prices", tags=["prices"])
