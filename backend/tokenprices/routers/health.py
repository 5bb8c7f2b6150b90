"""Health check router."""

from typing import Optional

from fastapi import APIRouter, Depends

from ..services.refresher import PriceRefresher, get_refresher

router = APIRouter()


@router.get("/health")
async def health_check(refresher: Optional[PriceRefresher] = Depends(get_refresher)):
    """Health check endpoint."""
    return {
        "status": "ok",
        "service": "token-prices",
        "version": "1.0.0",
        "refresh": refresher.get_status() if refresher else None,
    }
